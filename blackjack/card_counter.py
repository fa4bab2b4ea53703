"""
Card Counter - Hi-Lo counting system.

Tracks shoe composition and turns the count into bet sizing, an insurance
signal and a small EV modifier for the strategy engine. Counting can be
switched off, in which case every method returns its neutral fallback.
"""

import logging
import math
from typing import Any, Dict, Iterable, Optional

from .card import Card
from .config import (
    BotConfig,
    CARDS_PER_DECK,
    INSURANCE_TRUE_COUNT,
    STRATEGY_MODIFIER_CAP,
    STRATEGY_MODIFIER_PER_COUNT,
)

logger = logging.getLogger(__name__)

# (minimum true count, share of max bet), highest tier first
BET_TIERS = (
    (5.0, 1.0),
    (4.0, 0.8),
    (3.0, 0.6),
)
THRESHOLD_TIER_SHARE = 0.4


class CardCounter:
    """Running/true count over a single shoe."""

    def __init__(self, config: Optional[BotConfig] = None, enabled: Optional[bool] = None):
        self.config = config or BotConfig()
        self.enabled = self.config.card_counting_enabled if enabled is None else enabled
        self.total_cards = self.config.shoe_size
        self.running_count = 0
        self.cards_dealt = 0

        if self.enabled:
            logger.info("Card counting ENABLED")
        else:
            logger.info("Card counting DISABLED - using basic strategy only")

    def observe(self, card: Card) -> None:
        """Update the count with a card seen leaving the shoe."""
        if not self.enabled:
            return

        if self.cards_dealt < self.total_cards:
            self.cards_dealt += 1
        self.running_count += card.hi_lo_weight

    def observe_many(self, cards: Iterable[Card]) -> None:
        for card in cards:
            self.observe(card)

    @property
    def cards_remaining(self) -> int:
        return self.total_cards - self.cards_dealt

    @property
    def decks_remaining(self) -> float:
        return self.cards_remaining / CARDS_PER_DECK

    def true_count(self) -> float:
        """Running count per remaining deck, rounded half up to one decimal."""
        if not self.enabled:
            return 0.0

        decks_remaining = self.decks_remaining
        if decks_remaining <= 0:
            return 0.0

        return math.floor(self.running_count / decks_remaining * 10 + 0.5) / 10

    def recommended_bet(self, chips: int) -> int:
        """Bet size for the next hand given the available chips.

        Step function on the true count: max bet at +5, then 80%, 60% and
        40% of it down to the configured threshold, table minimum below.
        """
        if not self.enabled:
            return self.config.min_bet

        true_count = self.true_count()
        max_bet = min(self.config.max_bet, chips)

        for min_count, share in BET_TIERS:
            if true_count >= min_count:
                return min(math.floor(max_bet * share), chips)

        if true_count >= self.config.count_threshold:
            return min(math.floor(max_bet * THRESHOLD_TIER_SHARE), chips)

        return self.config.min_bet

    def should_take_insurance(self) -> bool:
        if not self.enabled:
            return False
        return self.true_count() >= INSURANCE_TRUE_COUNT

    def strategy_modifier(self) -> float:
        """Small EV nudge in [-0.1, 0.1]; positive when the shoe is ten-rich."""
        if not self.enabled:
            return 0.0
        modifier = self.true_count() * STRATEGY_MODIFIER_PER_COUNT
        return max(-STRATEGY_MODIFIER_CAP, min(STRATEGY_MODIFIER_CAP, modifier))

    def reset(self) -> None:
        """Start a fresh shoe. Only call between shoes, never mid-shoe."""
        self.running_count = 0
        self.cards_dealt = 0
        if self.enabled:
            logger.info("Count reset for new shoe")

    def set_enabled(self, enabled: bool) -> None:
        if enabled != self.enabled:
            logger.info(f"Card counting {'ENABLED' if enabled else 'DISABLED'}")
        self.enabled = enabled

    def get_stats(self) -> Dict[str, Any]:
        return {
            'enabled': self.enabled,
            'running_count': self.running_count,
            'true_count': self.true_count(),
            'cards_dealt': self.cards_dealt,
            'cards_remaining': self.cards_remaining,
            'penetration': round(self.cards_dealt / self.total_cards * 100, 1),
        }

    def log_status(self) -> None:
        if not self.enabled:
            return
        stats = self.get_stats()
        logger.debug(
            f"RC: {stats['running_count']}, TC: {stats['true_count']}, "
            f"Dealt: {stats['cards_dealt']}/{self.total_cards} ({stats['penetration']}%)"
        )
