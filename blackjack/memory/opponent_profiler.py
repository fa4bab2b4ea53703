"""
Opponent Profiling System.

Learns repeat opponents' betting and playing tendencies across sessions
and tags the weaknesses Bob can exploit.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .experience_tracker import OpponentSessionData

logger = logging.getLogger(__name__)

AGGRESSION_BET_CAP = 75.0   # Average bet that counts as fully aggressive
CONSISTENCY_PLACEHOLDER = 0.7

# situation key -> (pattern attribute, action that counts as a hit for the marker)
HAND_MARKERS = {
    '16_vs_7': ('hit_on_16_vs_7', 'hit'),
    '12_vs_2': ('stand_on_12_vs_2', 'stand'),
    '11': ('double_on_11', 'double'),
    'AA': ('split_aces', 'split'),
    'TT': ('split_tens', 'split'),
}


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise ValueError(f"Expected an ISO timestamp, got {value!r}")


def running_average(current_avg: float, new_value: float, n: int) -> float:
    """Incremental mean after adding new_value to n prior samples."""
    return (current_avg * n + new_value) / (n + 1)


@dataclass
class OpponentStats:
    """Running averages across every session with this opponent."""
    avg_bet_size: float = 0.0
    avg_final_chips: float = 0.0
    avg_final_rank: float = 0.0

    # Share of the opponent's actions, per session, averaged
    hit_frequency: float = 0.0
    stand_frequency: float = 0.0
    double_frequency: float = 0.0
    split_frequency: float = 0.0

    aggression_score: float = 0.5   # 0 = conservative, 1 = aggressive
    skill_score: float = 0.5        # 0 = poor, 1 = near-optimal
    consistency_score: float = 0.5  # 0 = unpredictable, 1 = very consistent

    def to_dict(self) -> Dict[str, Any]:
        return {
            'avg_bet_size': self.avg_bet_size,
            'avg_final_chips': self.avg_final_chips,
            'avg_final_rank': self.avg_final_rank,
            'hit_frequency': self.hit_frequency,
            'stand_frequency': self.stand_frequency,
            'double_frequency': self.double_frequency,
            'split_frequency': self.split_frequency,
            'aggression_score': self.aggression_score,
            'skill_score': self.skill_score,
            'consistency_score': self.consistency_score
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OpponentStats':
        defaults = cls()
        return cls(**{key: data.get(key, value) for key, value in defaults.to_dict().items()})


@dataclass
class OpponentPatterns:
    """Observed frequency of specific strategic choices."""
    hit_on_16_vs_7: float = 0.0
    stand_on_12_vs_2: float = 0.0
    double_on_11: float = 0.0
    split_aces: float = 0.0
    split_tens: float = 0.0     # Bad play indicator

    increase_bet_after_win: float = 0.0
    increase_bet_after_loss: float = 0.0
    average_risk_level: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hit_on_16_vs_7': self.hit_on_16_vs_7,
            'stand_on_12_vs_2': self.stand_on_12_vs_2,
            'double_on_11': self.double_on_11,
            'split_aces': self.split_aces,
            'split_tens': self.split_tens,
            'increase_bet_after_win': self.increase_bet_after_win,
            'increase_bet_after_loss': self.increase_bet_after_loss,
            'average_risk_level': self.average_risk_level
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OpponentPatterns':
        defaults = cls()
        return cls(**{key: data.get(key, value) for key, value in defaults.to_dict().items()})


@dataclass
class OpponentProfile:
    """Persisted behavioural summary of one opponent."""
    opponent_id: str
    display_name: Optional[str] = None
    sessions_played: int = 0
    first_seen_at: datetime = field(default_factory=datetime.now)
    last_seen_at: datetime = field(default_factory=datetime.now)
    bob_wins: int = 0
    opponent_wins: int = 0
    stats: OpponentStats = field(default_factory=OpponentStats)
    patterns: OpponentPatterns = field(default_factory=OpponentPatterns)
    weaknesses: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'opponent_id': self.opponent_id,
            'display_name': self.display_name,
            'sessions_played': self.sessions_played,
            'first_seen_at': self.first_seen_at.isoformat(),
            'last_seen_at': self.last_seen_at.isoformat(),
            'bob_wins': self.bob_wins,
            'opponent_wins': self.opponent_wins,
            'stats': self.stats.to_dict(),
            'patterns': self.patterns.to_dict(),
            'weaknesses': list(self.weaknesses)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OpponentProfile':
        return cls(
            opponent_id=data['opponent_id'],
            display_name=data.get('display_name'),
            sessions_played=data.get('sessions_played', 0),
            first_seen_at=_parse_time(data['first_seen_at']),
            last_seen_at=_parse_time(data['last_seen_at']),
            bob_wins=data.get('bob_wins', 0),
            opponent_wins=data.get('opponent_wins', 0),
            stats=OpponentStats.from_dict(data.get('stats', {})),
            patterns=OpponentPatterns.from_dict(data.get('patterns', {})),
            weaknesses=list(data.get('weaknesses', []))
        )


class OpponentProfiler:
    """Keyed table of opponent profiles, updated once per completed session."""

    def __init__(self, profiles: Optional[Dict[str, OpponentProfile]] = None):
        self.profiles: Dict[str, OpponentProfile] = dict(profiles or {})
        if self.profiles:
            logger.info(f"Loaded {len(self.profiles)} opponent profiles")

    def get_profile(self, opponent_id: str) -> Optional[OpponentProfile]:
        return self.profiles.get(opponent_id)

    def update_profile(self, opponent_id: str, session_data: OpponentSessionData,
                       bob_rank: int) -> OpponentProfile:
        """Fold one session's observations into the opponent's profile."""
        profile = self.profiles.get(opponent_id)
        if profile is None:
            profile = OpponentProfile(opponent_id=opponent_id)
            self.profiles[opponent_id] = profile

        prior_sessions = profile.sessions_played
        profile.sessions_played += 1
        profile.last_seen_at = datetime.now()

        # Head-to-head: lower finishing rank wins, equal ranks count for neither
        if bob_rank < session_data.final_rank:
            profile.bob_wins += 1
        elif bob_rank > session_data.final_rank:
            profile.opponent_wins += 1

        self._update_stats(profile, session_data, prior_sessions)
        self._recalculate(profile)

        logger.debug(
            f"Updated profile for {opponent_id[:8]}... "
            f"({profile.sessions_played} sessions, skill: {profile.stats.skill_score:.2f})"
        )
        return profile

    def observe_hand(self, opponent_id: str, situation: str, action: str) -> None:
        """Record an opponent's choice in one of the tracked strategic spots.

        Args:
            opponent_id: Known opponent identifier (unknown ids are ignored)
            situation: One of HAND_MARKERS keys, e.g. '16_vs_7' or 'TT'
            action: The action the opponent took
        """
        profile = self.profiles.get(opponent_id)
        if profile is None or situation not in HAND_MARKERS:
            return

        attribute, marker_action = HAND_MARKERS[situation]
        observed = 1.0 if action == marker_action else 0.0
        alpha = 1 / max(1, profile.sessions_played)
        current = getattr(profile.patterns, attribute)
        setattr(profile.patterns, attribute, current * (1 - alpha) + observed * alpha)

        self._recalculate(profile)

    def get_opponent_insights(self, opponent_id: str) -> List[str]:
        profile = self.profiles.get(opponent_id)
        if profile is None:
            return []

        insights = []
        stats, patterns = profile.stats, profile.patterns

        if stats.skill_score < 0.3:
            insights.append("Weak player - makes frequent mistakes")
        elif stats.skill_score > 0.7:
            insights.append("Strong player - plays near-optimal strategy")

        if stats.aggression_score > 0.7:
            insights.append("Aggressive bettor - can be exploited with conservative play")
        elif stats.aggression_score < 0.3:
            insights.append("Conservative bettor - unlikely to take risks")

        if patterns.split_tens > 0.1:
            insights.append("MAJOR WEAKNESS: Splits 10s frequently")
        if patterns.hit_on_16_vs_7 > 0.8:
            insights.append("Always hits on 16 vs dealer 7")
        if patterns.double_on_11 < 0.5:
            insights.append("Doesn't double on 11 enough - misses value")

        decided = profile.bob_wins + profile.opponent_wins
        if decided > 5:
            insights.append(f"Bob's win rate vs this player: {profile.bob_wins / decided * 100:.1f}%")

        return insights

    def _update_stats(self, profile: OpponentProfile, session_data: OpponentSessionData,
                      n: int) -> None:
        stats = profile.stats
        stats.avg_bet_size = running_average(stats.avg_bet_size, session_data.avg_bet_size, n)
        stats.avg_final_chips = running_average(stats.avg_final_chips, session_data.final_chips, n)
        stats.avg_final_rank = running_average(stats.avg_final_rank, session_data.final_rank, n)

        total_actions = session_data.total_actions
        if total_actions > 0:
            stats.hit_frequency = running_average(
                stats.hit_frequency, session_data.total_hits / total_actions, n)
            stats.stand_frequency = running_average(
                stats.stand_frequency, session_data.total_stands / total_actions, n)
            stats.double_frequency = running_average(
                stats.double_frequency, session_data.total_doubles / total_actions, n)
            stats.split_frequency = running_average(
                stats.split_frequency, session_data.total_splits / total_actions, n)

    def _recalculate(self, profile: OpponentProfile) -> None:
        self._calculate_scores(profile)
        profile.weaknesses = self._identify_weaknesses(profile)

    @staticmethod
    def _calculate_scores(profile: OpponentProfile) -> None:
        stats, patterns = profile.stats, profile.patterns

        avg_bet_normalized = min(1.0, stats.avg_bet_size / AGGRESSION_BET_CAP)
        stats.aggression_score = min(1.0, (avg_bet_normalized + stats.double_frequency * 2) / 2)

        skill = 0.5
        if patterns.double_on_11 > 0.8:
            skill += 0.1
        if patterns.split_aces > 0.8:
            skill += 0.1
        if patterns.hit_on_16_vs_7 > 0.6:
            skill += 0.05
        if patterns.split_tens > 0.05:
            skill -= 0.3
        if patterns.stand_on_12_vs_2 > 0.6:
            skill -= 0.1
        if stats.avg_final_rank > profile.sessions_played * 0.6:
            skill -= 0.1
        stats.skill_score = max(0.0, min(1.0, skill))

        # TODO: derive from bet-size variance once per-hand bets are stored per opponent
        stats.consistency_score = CONSISTENCY_PLACEHOLDER

    @staticmethod
    def _identify_weaknesses(profile: OpponentProfile) -> List[str]:
        stats, patterns = profile.stats, profile.patterns
        weaknesses = []

        if stats.aggression_score > 0.75:
            weaknesses.append('overly_aggressive')
        if stats.aggression_score < 0.25:
            weaknesses.append('overly_conservative')
        if stats.skill_score < 0.4:
            weaknesses.append('poor_strategy')
        if patterns.split_tens > 0.05:
            weaknesses.append('splits_tens')
        if patterns.double_on_11 < 0.5:
            weaknesses.append('misses_double_opportunities')
        if stats.double_frequency < 0.05:
            weaknesses.append('rarely_doubles')

        return weaknesses
