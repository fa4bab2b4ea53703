"""
Decision inputs and outputs exchanged with the game client.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from .card import Card, hand_value


class Action(Enum):
    # Declaration order doubles as the EV tie-break priority
    STAND = "stand"
    HIT = "hit"
    DOUBLE = "double"
    SPLIT = "split"


ACTION_PRIORITY: Tuple[Action, ...] = tuple(Action)


@dataclass(frozen=True)
class GameSituation:
    """Snapshot of one decision point, built fresh by the caller."""
    player_hand: Tuple[Card, ...]
    player_total: int
    is_soft: bool
    dealer_upcard: Card
    chip_stack: int
    can_double: bool = False
    can_split: bool = False
    hands_remaining: int = 0
    current_rank: int = 1

    @classmethod
    def from_cards(cls, player_hand: Iterable[Card], dealer_upcard: Card,
                   chip_stack: int, can_double: bool = True, can_split: bool = True,
                   hands_remaining: int = 0, current_rank: int = 1) -> 'GameSituation':
        """Build a situation, computing the total and softness from the cards."""
        cards = tuple(player_hand)
        total, is_soft = hand_value(cards)
        return cls(
            player_hand=cards,
            player_total=total,
            is_soft=is_soft,
            dealer_upcard=dealer_upcard,
            chip_stack=chip_stack,
            can_double=can_double,
            can_split=can_split,
            hands_remaining=hands_remaining,
            current_rank=current_rank,
        )

    @property
    def is_pair(self) -> bool:
        return (len(self.player_hand) == 2
                and self.player_hand[0].rank == self.player_hand[1].rank)


@dataclass(frozen=True)
class BotDecision:
    """Result of one decision call."""
    action: Action
    confidence: float        # 0-1, how far the best action beats the runner-up
    expected_value: float    # Expected chip return per chip wagered
    bet_size: Optional[int] = None
    action_evs: Dict[str, float] = field(default_factory=dict, compare=False)

    def with_bet_size(self, bet_size: int) -> 'BotDecision':
        return replace(self, bet_size=bet_size)

    def to_dict(self) -> Dict[str, object]:
        return {
            'action': self.action.value,
            'confidence': self.confidence,
            'expected_value': self.expected_value,
            'bet_size': self.bet_size,
        }
