"""
Strategy Engine - expected value of each blackjack action.

Computes stand, hit, double and split EVs for a situation from fixed dealer
outcome tables and an 8-deck draw distribution, applies the learning and
card-count adjustments, and picks the best action.

Usage:
    counter = CardCounter(config)
    engine = StrategyEngine(counter)
    decision = engine.decide(situation, learning_adjustment=0.0)
"""

import logging
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from .card import Card, rank_value
from .card_counter import CardCounter
from .config import CONFIDENCE_SPREAD, MAX_HIT_DEPTH
from .decision import ACTION_PRIORITY, Action, BotDecision, GameSituation

logger = logging.getLogger(__name__)

# Dealer final-total distribution by upcard value (Ace = 11)
DEALER_FINAL_DISTRIBUTION: Dict[int, Dict[object, float]] = {
    2: {17: 0.1389, 18: 0.1311, 19: 0.1310, 20: 0.1176, 21: 0.0775, 'bust': 0.3539},
    3: {17: 0.1299, 18: 0.1299, 19: 0.1299, 20: 0.1164, 21: 0.0693, 'bust': 0.3745},
    4: {17: 0.1199, 18: 0.1199, 19: 0.1199, 20: 0.1152, 21: 0.1050, 'bust': 0.4002},
    5: {17: 0.1199, 18: 0.1169, 19: 0.1169, 20: 0.1070, 21: 0.1111, 'bust': 0.4282},
    6: {17: 0.1654, 18: 0.1061, 19: 0.1061, 20: 0.1061, 21: 0.0958, 'bust': 0.4205},
    7: {17: 0.3691, 18: 0.1378, 19: 0.0790, 20: 0.0790, 21: 0.0732, 'bust': 0.2619},
    8: {17: 0.1289, 18: 0.3594, 19: 0.1289, 20: 0.0727, 21: 0.0718, 'bust': 0.2383},
    9: {17: 0.1189, 18: 0.1060, 19: 0.3481, 20: 0.1189, 21: 0.0780, 'bust': 0.2301},
    10: {17: 0.1102, 18: 0.1102, 19: 0.1102, 20: 0.3438, 21: 0.1127, 'bust': 0.2129},
    11: {17: 0.1304, 18: 0.1304, 19: 0.1304, 20: 0.3045, 21: 0.1865, 'bust': 0.1178},
}

# Next-card distribution for an 8-deck shoe; 1 is the ace, 10 the ten group
CARD_PROBABILITIES: Tuple[Tuple[int, float], ...] = tuple(
    [(value, 32 / 416) for value in range(1, 10)] + [(10, 128 / 416)]
)


def dealer_distribution(dealer_upcard: int) -> Dict[object, float]:
    return DEALER_FINAL_DISTRIBUTION.get(dealer_upcard, DEALER_FINAL_DISTRIBUTION[10])


def _draw(total: int, is_soft: bool, card_value: int) -> Tuple[int, bool]:
    """Add a drawn card to a hand total, handling aces."""
    new_total = total + card_value
    new_soft = is_soft

    if card_value == 1:
        if total + 11 <= 21:
            new_total = total + 11
            new_soft = True
        else:
            new_total = total + 1

    if new_soft and new_total > 21:
        new_total -= 10
        new_soft = False

    return new_total, new_soft


@lru_cache(maxsize=None)
def stand_ev(player_total: int, dealer_upcard: int) -> float:
    """EV of standing on player_total against the dealer's upcard value."""
    if player_total > 21:
        return -1.0

    dist = dealer_distribution(dealer_upcard)
    if player_total == 21:
        return dist['bust']

    ev = dist['bust']
    for dealer_total in range(17, 22):
        prob = dist.get(dealer_total, 0.0)
        if dealer_total < player_total:
            ev += prob
        elif dealer_total > player_total:
            ev -= prob
    return ev


@lru_cache(maxsize=None)
def hit_ev(player_total: int, dealer_upcard: int, is_soft: bool, depth: int = 0) -> float:
    """EV of hitting, taking the better of stand/hit at each later branch.

    Lookahead stops at MAX_HIT_DEPTH, where the hand is valued as a stand.
    """
    if player_total > 21:
        return -1.0
    if depth >= MAX_HIT_DEPTH:
        return stand_ev(player_total, dealer_upcard)

    ev = 0.0
    for card_value, prob in CARD_PROBABILITIES:
        new_total, new_soft = _draw(player_total, is_soft, card_value)

        if new_total > 21:
            ev -= prob
        elif new_total == 21:
            ev += prob * stand_ev(21, dealer_upcard)
        else:
            ev += prob * max(
                stand_ev(new_total, dealer_upcard),
                hit_ev(new_total, dealer_upcard, new_soft, depth + 1),
            )
    return ev


@lru_cache(maxsize=None)
def double_ev(player_total: int, dealer_upcard: int, is_soft: bool) -> float:
    """EV of doubling: one forced card, then stand, on twice the stake."""
    ev = 0.0
    for card_value, prob in CARD_PROBABILITIES:
        new_total, _ = _draw(player_total, is_soft, card_value)
        ev += prob * stand_ev(new_total, dealer_upcard) * 2.0
    return ev


@lru_cache(maxsize=None)
def split_ev(pair_rank: str, dealer_upcard: int) -> float:
    """Approximate EV of splitting a pair.

    Aces receive a single card each. Other pairs are valued as one hit
    from the single card, doubled; hands are not re-evaluated individually.
    """
    if pair_rank == 'A':
        per_hand = 0.0
        for card_value, prob in CARD_PROBABILITIES:
            total = 11 + card_value
            if total > 21:
                total = 1 + card_value
            per_hand += prob * stand_ev(total, dealer_upcard)
        return per_hand * 2

    return hit_ev(rank_value(pair_rank), dealer_upcard, False) * 2


class StrategyEngine:
    """Picks the highest-EV action for a situation."""

    def __init__(self, card_counter: Optional[CardCounter] = None):
        self.card_counter = card_counter or CardCounter()

    def decide(self, situation: GameSituation, learning_adjustment: float = 0.0) -> BotDecision:
        """Return the best action, its EV and confidence, and a bet size."""
        evs = self.calculate_action_evs(situation)

        adjusted: Dict[Action, float] = {
            action: ev + learning_adjustment for action, ev in evs.items()
        }

        count_modifier = self.card_counter.strategy_modifier()
        if count_modifier > 0:
            adjusted[Action.STAND] += count_modifier
        elif count_modifier < 0:
            adjusted[Action.HIT] += abs(count_modifier) * 0.5

        best_action, best_ev, second_ev = self._rank_actions(adjusted)
        confidence = min(1.0, max(0.0, (best_ev - second_ev) / CONFIDENCE_SPREAD))
        bet_size = self.card_counter.recommended_bet(situation.chip_stack)

        logger.debug(
            f"{situation.player_total}{' (soft)' if situation.is_soft else ''} "
            f"vs {situation.dealer_upcard.rank}: {best_action.value} "
            f"(EV: {best_ev:.3f}, confidence: {confidence * 100:.1f}%)"
        )
        self.card_counter.log_status()

        return BotDecision(
            action=best_action,
            confidence=confidence,
            expected_value=best_ev,
            bet_size=bet_size,
            action_evs={action.value: ev for action, ev in adjusted.items()},
        )

    def calculate_action_evs(self, situation: GameSituation) -> Dict[Action, float]:
        """Raw EV per action; illegal actions get -inf."""
        upcard = situation.dealer_upcard.value
        total = situation.player_total

        evs = {
            Action.STAND: stand_ev(total, upcard),
            Action.HIT: hit_ev(total, upcard, situation.is_soft),
            Action.DOUBLE: float('-inf'),
            Action.SPLIT: float('-inf'),
        }
        if situation.can_double:
            evs[Action.DOUBLE] = double_ev(total, upcard, situation.is_soft)
        if situation.can_split and situation.is_pair:
            evs[Action.SPLIT] = split_ev(situation.player_hand[0].rank, upcard)
        return evs

    @staticmethod
    def _rank_actions(evs: Dict[Action, float]) -> Tuple[Action, float, float]:
        """Best action, its EV and the runner-up EV.

        Equal EVs resolve by ACTION_PRIORITY (stand, hit, double, split).
        """
        ordered: List[Tuple[Action, float]] = sorted(
            ((action, evs[action]) for action in ACTION_PRIORITY),
            key=lambda item: item[1],
            reverse=True,
        )
        return ordered[0][0], ordered[0][1], ordered[1][1]

    def recommend_bet(self, chip_stack: int) -> int:
        """Bet for the betting phase, before any hand is dealt."""
        return self.card_counter.recommended_bet(chip_stack)

    def observe_card(self, card: Card) -> None:
        self.card_counter.observe(card)

    def reset_count(self) -> None:
        self.card_counter.reset()
