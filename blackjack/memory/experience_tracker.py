"""
Experience Tracking System.

Records every hand and session Bob plays, bounded to the most recent
entries, and derives performance figures and learned EV corrections.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..card import Card
from ..config import (
    DEFAULT_MIN_BET,
    LEARNED_EV_CAP,
    LEARNED_EV_SCALE,
    MAX_EXPERIENCES,
    MAX_SESSIONS,
    MIN_SESSIONS_FOR_TREND,
    MIN_SITUATION_SAMPLES,
    TREND_THRESHOLD,
)
from .history import BoundedHistory

logger = logging.getLogger(__name__)

HAND_RESULTS = ('win', 'loss', 'push')


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise ValueError(f"Expected an ISO timestamp, got {value!r}")


@dataclass(frozen=True)
class GameExperience:
    """One fully resolved hand (immutable)."""
    session_id: str
    hand_number: int
    player_hand: Tuple[Card, ...]
    player_total: int
    dealer_upcard: Card
    action_taken: str          # 'hit', 'stand', 'double', 'split'
    bet_size: int
    hand_result: str           # 'win', 'loss', 'push'
    chips_won: int             # Negative for losses
    true_count: float = 0.0
    chip_stack: int = 0
    current_rank: int = 1
    hands_remaining: int = 0
    dealer_final_hand: Optional[Tuple[Card, ...]] = None
    dealer_total: Optional[int] = None
    opponent_ids: Tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.hand_result not in HAND_RESULTS:
            raise ValueError(f"Unknown hand result: {self.hand_result!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'hand_number': self.hand_number,
            'player_hand': Card.list_to_dict(self.player_hand),
            'player_total': self.player_total,
            'dealer_upcard': self.dealer_upcard.to_dict(),
            'dealer_final_hand': (Card.list_to_dict(self.dealer_final_hand)
                                  if self.dealer_final_hand is not None else None),
            'dealer_total': self.dealer_total,
            'true_count': self.true_count,
            'chip_stack': self.chip_stack,
            'current_rank': self.current_rank,
            'hands_remaining': self.hands_remaining,
            'action_taken': self.action_taken,
            'bet_size': self.bet_size,
            'hand_result': self.hand_result,
            'chips_won': self.chips_won,
            'opponent_ids': list(self.opponent_ids),
            'timestamp': self.timestamp.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameExperience':
        dealer_final = data.get('dealer_final_hand')
        return cls(
            session_id=data['session_id'],
            hand_number=data['hand_number'],
            player_hand=tuple(Card.list_from_dict_list(data.get('player_hand', []))),
            player_total=data['player_total'],
            dealer_upcard=Card.from_dict(data['dealer_upcard']),
            dealer_final_hand=(tuple(Card.list_from_dict_list(dealer_final))
                               if dealer_final is not None else None),
            dealer_total=data.get('dealer_total'),
            true_count=data.get('true_count', 0.0),
            chip_stack=data.get('chip_stack', 0),
            current_rank=data.get('current_rank', 1),
            hands_remaining=data.get('hands_remaining', 0),
            action_taken=data['action_taken'],
            bet_size=data['bet_size'],
            hand_result=data['hand_result'],
            chips_won=data['chips_won'],
            opponent_ids=tuple(data.get('opponent_ids', [])),
            timestamp=_parse_time(data['timestamp'])
        )


@dataclass(frozen=True)
class OpponentSessionData:
    """One opponent's aggregated behaviour within a single session."""
    opponent_id: str
    final_rank: int
    final_chips: int
    hands_won: int = 0
    avg_bet_size: float = 0.0
    total_hits: int = 0
    total_stands: int = 0
    total_doubles: int = 0
    total_splits: int = 0

    @property
    def total_actions(self) -> int:
        return self.total_hits + self.total_stands + self.total_doubles + self.total_splits

    def to_dict(self) -> Dict[str, Any]:
        return {
            'opponent_id': self.opponent_id,
            'final_rank': self.final_rank,
            'final_chips': self.final_chips,
            'hands_won': self.hands_won,
            'avg_bet_size': self.avg_bet_size,
            'total_hits': self.total_hits,
            'total_stands': self.total_stands,
            'total_doubles': self.total_doubles,
            'total_splits': self.total_splits
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OpponentSessionData':
        return cls(
            opponent_id=data['opponent_id'],
            final_rank=data['final_rank'],
            final_chips=data['final_chips'],
            hands_won=data.get('hands_won', 0),
            avg_bet_size=data.get('avg_bet_size', 0.0),
            total_hits=data.get('total_hits', 0),
            total_stands=data.get('total_stands', 0),
            total_doubles=data.get('total_doubles', 0),
            total_splits=data.get('total_splits', 0)
        )


@dataclass(frozen=True)
class SessionResult:
    """Outcome of one completed session."""
    session_id: str
    final_rank: int
    total_players: int
    final_chips: int
    hands_played: int
    hands_won: int
    net_profit: float
    payout: float = 0.0
    total_wagered: int = 0
    opponents: Tuple[OpponentSessionData, ...] = ()
    completed_at: datetime = field(default_factory=datetime.now)

    @property
    def is_win(self) -> bool:
        return self.final_rank == 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'final_rank': self.final_rank,
            'total_players': self.total_players,
            'final_chips': self.final_chips,
            'hands_played': self.hands_played,
            'hands_won': self.hands_won,
            'total_wagered': self.total_wagered,
            'net_profit': self.net_profit,
            'payout': self.payout,
            'opponents': [o.to_dict() for o in self.opponents],
            'completed_at': self.completed_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionResult':
        return cls(
            session_id=data['session_id'],
            final_rank=data['final_rank'],
            total_players=data['total_players'],
            final_chips=data['final_chips'],
            hands_played=data['hands_played'],
            hands_won=data['hands_won'],
            total_wagered=data.get('total_wagered', 0),
            net_profit=data['net_profit'],
            payout=data.get('payout', 0.0),
            opponents=tuple(OpponentSessionData.from_dict(o) for o in data.get('opponents', [])),
            completed_at=_parse_time(data['completed_at'])
        )


@dataclass
class PerformanceSummary:
    """Aggregates over a window of sessions."""
    win_rate: float = 0.0
    avg_rank: float = 0.0
    avg_chips: float = 0.0
    total_profit: float = 0.0
    total_hands: int = 0
    total_sessions: int = 0


@dataclass
class ActionEffectiveness:
    action: str
    total_uses: int
    win_rate: float
    avg_chips_won: float


@dataclass
class SessionInsights:
    best_decision: str = "No data"
    worst_decision: str = "No data"
    hands_won: int = 0
    missed_opportunities: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'best_decision': self.best_decision,
            'worst_decision': self.worst_decision,
            'hands_won': self.hands_won,
            'missed_opportunities': self.missed_opportunities
        }


def _summarize(sessions: List[SessionResult]) -> PerformanceSummary:
    if not sessions:
        return PerformanceSummary()
    count = len(sessions)
    return PerformanceSummary(
        win_rate=sum(1 for s in sessions if s.is_win) / count,
        avg_rank=sum(s.final_rank for s in sessions) / count,
        avg_chips=sum(s.final_chips for s in sessions) / count,
        total_profit=sum(s.net_profit for s in sessions),
        total_sessions=count,
    )


class ExperienceTracker:
    """Bounded store of hand and session records."""

    def __init__(self, experiences: Optional[Iterable[GameExperience]] = None,
                 sessions: Optional[Iterable[SessionResult]] = None,
                 max_experiences: int = MAX_EXPERIENCES,
                 max_sessions: int = MAX_SESSIONS):
        self.max_experiences = max_experiences
        self.max_sessions = max_sessions
        self._experiences: BoundedHistory[GameExperience] = BoundedHistory(max_experiences, experiences)
        self._sessions: BoundedHistory[SessionResult] = BoundedHistory(max_sessions, sessions)

        logger.info(
            f"Loaded {len(self._experiences)} hands, {len(self._sessions)} sessions"
        )

    @property
    def experiences(self) -> List[GameExperience]:
        return self._experiences.to_list()

    @property
    def sessions(self) -> List[SessionResult]:
        return self._sessions.to_list()

    def record_hand(self, experience: GameExperience) -> None:
        self._experiences.append(experience)
        logger.debug(
            f"Recorded hand {experience.hand_number} in session {experience.session_id}: "
            f"{experience.action_taken} -> {experience.hand_result} ({experience.chips_won:+} chips)"
        )

    def record_session(self, session: SessionResult) -> None:
        self._sessions.append(session)
        logger.info(
            f"Recorded session {session.session_id}: "
            f"Rank {session.final_rank}/{session.total_players}, "
            f"{session.final_chips} chips, {session.hands_won}/{session.hands_played} hands won"
        )

    def analyze_performance(self, recent_session_count: int = 20) -> PerformanceSummary:
        """Win rate (share of first places), average rank/chips and profit."""
        return _summarize(self._sessions.recent(recent_session_count))

    def get_experiences_for_situation(self, player_total: int,
                                      dealer_upcard_rank: str) -> List[GameExperience]:
        return [
            e for e in self._experiences
            if e.player_total == player_total and e.dealer_upcard.rank == dealer_upcard_rank
        ]

    def get_learned_ev_adjustment(self, player_total: int, dealer_upcard_rank: str,
                                  action: str) -> float:
        """EV correction from past outcomes of this exact situation and action.

        Returns 0 until MIN_SITUATION_SAMPLES matching hands exist.
        """
        relevant = [
            e for e in self.get_experiences_for_situation(player_total, dealer_upcard_rank)
            if e.action_taken == action
        ]
        if len(relevant) < MIN_SITUATION_SAMPLES:
            return 0.0

        avg_outcome = sum(e.chips_won for e in relevant) / len(relevant)
        return max(-LEARNED_EV_CAP, min(LEARNED_EV_CAP, avg_outcome / LEARNED_EV_SCALE))

    def get_performance_trend(self) -> str:
        """'improving', 'stable' or 'declining' from first vs second half win rate."""
        sessions = self.sessions
        if len(sessions) < MIN_SESSIONS_FOR_TREND:
            return 'stable'

        mid = len(sessions) // 2
        first_half = _summarize(sessions[:mid]).win_rate
        second_half = _summarize(sessions[mid:]).win_rate
        improvement = second_half - first_half

        if improvement > TREND_THRESHOLD:
            return 'improving'
        if improvement < -TREND_THRESHOLD:
            return 'declining'
        return 'stable'

    def analyze_action_effectiveness(self) -> List[ActionEffectiveness]:
        totals: Dict[str, List[int]] = defaultdict(lambda: [0, 0, 0])  # uses, wins, chips
        for exp in self._experiences:
            stats = totals[exp.action_taken]
            stats[0] += 1
            stats[2] += exp.chips_won
            if exp.hand_result == 'win':
                stats[1] += 1

        return [
            ActionEffectiveness(
                action=action,
                total_uses=uses,
                win_rate=wins / uses,
                avg_chips_won=chips / uses,
            )
            for action, (uses, wins, chips) in totals.items()
        ]

    def generate_session_insights(self, session_id: str,
                                  min_bet: int = DEFAULT_MIN_BET) -> SessionInsights:
        session_hands = [e for e in self._experiences if e.session_id == session_id]
        if not session_hands:
            return SessionInsights()

        best = max(session_hands, key=lambda e: e.chips_won)
        worst = min(session_hands, key=lambda e: e.chips_won)

        return SessionInsights(
            best_decision=(
                f"{best.action_taken} on {best.player_total} vs dealer "
                f"{best.dealer_upcard.rank} - won {best.chips_won} chips"
            ),
            worst_decision=(
                f"{worst.action_taken} on {worst.player_total} vs dealer "
                f"{worst.dealer_upcard.rank} - lost {abs(worst.chips_won)} chips"
            ),
            hands_won=sum(1 for e in session_hands if e.hand_result == 'win'),
            # Won while betting the table minimum
            missed_opportunities=sum(
                1 for e in session_hands if e.hand_result == 'win' and e.bet_size == min_bet
            ),
        )

    def get_summary_stats(self) -> PerformanceSummary:
        summary = _summarize(self.sessions)
        summary.total_hands = len(self._experiences) if self._sessions else 0
        return summary
