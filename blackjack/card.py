from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple


class InvalidCardError(ValueError):
    """Raised when a card is built from an unknown rank or suit."""
    pass


RANKS: Tuple[str, ...] = ('2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A')
SUITS: Tuple[str, ...] = ('hearts', 'diamonds', 'clubs', 'spades')
TEN_RANKS = frozenset({'10', 'J', 'Q', 'K'})

# Hi-Lo weights: low cards leaving the shoe favour the player
HI_LO_WEIGHTS: Dict[str, int] = {
    '2': 1, '3': 1, '4': 1, '5': 1, '6': 1,
    '7': 0, '8': 0, '9': 0,
    '10': -1, 'J': -1, 'Q': -1, 'K': -1, 'A': -1,
}

_SUIT_CODES = {'h': 'hearts', 'd': 'diamonds', 'c': 'clubs', 's': 'spades'}
_SUIT_TO_ASCII = {'hearts': '♥', 'diamonds': '♦', 'clubs': '♣', 'spades': '♠'}


def rank_value(rank: str) -> int:
    """Blackjack value of a rank (Ace counts 11, faces 10)."""
    if rank == 'A':
        return 11
    if rank in ('J', 'Q', 'K'):
        return 10
    if rank not in RANKS:
        raise InvalidCardError(f"Unknown card rank: {rank!r}")
    return int(rank)


@dataclass(frozen=True)
class Card:
    """Immutable playing card.

    Attributes:
        rank: '2'-'10', 'J', 'Q', 'K' or 'A'
        suit: 'hearts', 'diamonds', 'clubs' or 'spades'
    """
    rank: str
    suit: str = 'spades'

    def __post_init__(self):
        if self.rank not in RANKS:
            raise InvalidCardError(f"Unknown card rank: {self.rank!r}")
        if self.suit not in SUITS:
            raise InvalidCardError(f"Unknown card suit: {self.suit!r}")

    @property
    def value(self) -> int:
        return rank_value(self.rank)

    @property
    def hi_lo_weight(self) -> int:
        return HI_LO_WEIGHTS[self.rank]

    @property
    def is_ten_value(self) -> bool:
        return self.rank in TEN_RANKS

    @classmethod
    def parse(cls, code: str) -> 'Card':
        """Build a card from a short code such as 'As', '10h' or 'Td'.

        A code without a suit letter gets spades.
        """
        cleaned = code.strip().replace(' ', '')
        if not cleaned:
            raise InvalidCardError("Empty card code")

        suit = 'spades'
        if len(cleaned) > 1 and cleaned[-1].lower() in _SUIT_CODES:
            suit = _SUIT_CODES[cleaned[-1].lower()]
            cleaned = cleaned[:-1]

        rank = cleaned.upper()
        if rank == 'T':
            rank = '10'
        return cls(rank, suit)

    def to_dict(self) -> Dict[str, str]:
        return {'rank': self.rank, 'suit': self.suit}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> 'Card':
        return cls(rank=data['rank'], suit=data.get('suit', 'spades'))

    @staticmethod
    def list_to_dict(cards: Iterable['Card']) -> List[Dict[str, str]]:
        return [card.to_dict() for card in cards]

    @classmethod
    def list_from_dict_list(cls, card_dicts: Iterable[Dict[str, str]]) -> List['Card']:
        return [cls.from_dict(c) for c in card_dicts]

    def __str__(self):
        return f"{self.rank}{_SUIT_TO_ASCII[self.suit]}"


def hand_value(cards: Iterable[Card]) -> Tuple[int, bool]:
    """Return (total, is_soft) for a blackjack hand.

    Aces start at 11 and drop to 1 one at a time while the hand is over 21.
    The hand is soft when an ace is still counted as 11.
    """
    total = 0
    aces = 0
    for card in cards:
        total += card.value
        if card.rank == 'A':
            aces += 1
    while total > 21 and aces:
        total -= 10
        aces -= 1
    return total, aces > 0
