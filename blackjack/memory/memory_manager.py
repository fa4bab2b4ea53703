"""
Memory Manager - durable storage for Bob's learning state.

Owns the BobMemory aggregate (opponent profile table plus bounded history
buffers), loads it once at startup and writes it back atomically after
every session.
"""

import csv
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..config import (
    BASELINE_SESSIONS,
    DEFAULT_MEMORY_FILE,
    IMPROVEMENT_THRESHOLD,
    MAX_EXPERIENCES,
    MAX_PERFORMANCE_HISTORY,
    MAX_SESSIONS,
    MAX_STRATEGY_ADJUSTMENTS,
    MEMORY_VERSION,
)
from .experience_tracker import GameExperience, SessionResult
from .history import BoundedHistory
from .opponent_profiler import OpponentProfile

logger = logging.getLogger(__name__)

SESSION_CSV_FIELDS = [
    'session_id', 'final_rank', 'total_players', 'final_chips', 'hands_played',
    'hands_won', 'net_profit', 'payout', 'completed_at',
]
OPPONENT_CSV_FIELDS = [
    'opponent_id', 'sessions_played', 'bob_wins', 'opponent_wins',
    'avg_bet_size', 'skill_score', 'aggression_score', 'weaknesses',
]


class MemoryPersistenceError(Exception):
    """Raised when the memory file cannot be written."""
    pass


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise ValueError(f"Expected an ISO timestamp, got {value!r}")


@dataclass
class PerformanceHistory:
    """Rolling per-session results plus lifetime totals."""
    win_by_session: BoundedHistory[int] = field(
        default_factory=lambda: BoundedHistory(MAX_PERFORMANCE_HISTORY))
    rank_by_session: BoundedHistory[int] = field(
        default_factory=lambda: BoundedHistory(MAX_PERFORMANCE_HISTORY))
    chips_by_session: BoundedHistory[int] = field(
        default_factory=lambda: BoundedHistory(MAX_PERFORMANCE_HISTORY))

    total_wins: int = 0         # First-place finishes
    total_top3: int = 0
    total_profit: float = 0.0

    win_rate_before_learning: float = 0.0   # Baseline over the first sessions
    win_rate_after_learning: float = 0.0    # Most recent window

    def to_dict(self) -> Dict[str, Any]:
        return {
            'win_by_session': self.win_by_session.to_list(),
            'rank_by_session': self.rank_by_session.to_list(),
            'chips_by_session': self.chips_by_session.to_list(),
            'total_wins': self.total_wins,
            'total_top3': self.total_top3,
            'total_profit': self.total_profit,
            'win_rate_before_learning': self.win_rate_before_learning,
            'win_rate_after_learning': self.win_rate_after_learning
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PerformanceHistory':
        return cls(
            win_by_session=BoundedHistory(MAX_PERFORMANCE_HISTORY, data.get('win_by_session', [])),
            rank_by_session=BoundedHistory(MAX_PERFORMANCE_HISTORY, data.get('rank_by_session', [])),
            chips_by_session=BoundedHistory(MAX_PERFORMANCE_HISTORY, data.get('chips_by_session', [])),
            total_wins=data.get('total_wins', 0),
            total_top3=data.get('total_top3', 0),
            total_profit=data.get('total_profit', 0.0),
            win_rate_before_learning=data.get('win_rate_before_learning', 0.0),
            win_rate_after_learning=data.get('win_rate_after_learning', 0.0)
        )


@dataclass(frozen=True)
class StrategyAdjustment:
    """A derived adjustment, logged for later review."""
    situation: str
    adjustment: str
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'situation': self.situation,
            'adjustment': self.adjustment,
            'reason': self.reason,
            'timestamp': self.timestamp.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StrategyAdjustment':
        return cls(
            situation=data['situation'],
            adjustment=data['adjustment'],
            reason=data['reason'],
            timestamp=_parse_time(data['timestamp'])
        )


@dataclass
class BobMemory:
    """Aggregate root of everything Bob has learned."""
    version: str = MEMORY_VERSION
    total_sessions_played: int = 0
    total_hands_played: int = 0
    learning_enabled: bool = True
    last_updated: datetime = field(default_factory=datetime.now)

    opponent_profiles: Dict[str, OpponentProfile] = field(default_factory=dict)
    performance: PerformanceHistory = field(default_factory=PerformanceHistory)
    recent_experiences: BoundedHistory[GameExperience] = field(
        default_factory=lambda: BoundedHistory(MAX_EXPERIENCES))
    recent_sessions: BoundedHistory[SessionResult] = field(
        default_factory=lambda: BoundedHistory(MAX_SESSIONS))
    strategy_adjustments: BoundedHistory[StrategyAdjustment] = field(
        default_factory=lambda: BoundedHistory(MAX_STRATEGY_ADJUSTMENTS))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'total_sessions_played': self.total_sessions_played,
            'total_hands_played': self.total_hands_played,
            'learning_enabled': self.learning_enabled,
            'last_updated': self.last_updated.isoformat(),
            # Stored as a list, re-keyed by opponent_id on load
            'opponent_profiles': [p.to_dict() for p in self.opponent_profiles.values()],
            'performance': self.performance.to_dict(),
            'recent_experiences': [e.to_dict() for e in self.recent_experiences],
            'recent_sessions': [s.to_dict() for s in self.recent_sessions],
            'strategy_adjustments': [a.to_dict() for a in self.strategy_adjustments]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BobMemory':
        if not isinstance(data, dict):
            raise ValueError(f"Memory root must be an object, got {type(data).__name__}")
        profiles = [OpponentProfile.from_dict(p) for p in data.get('opponent_profiles', [])]
        return cls(
            version=data.get('version', MEMORY_VERSION),
            total_sessions_played=data.get('total_sessions_played', 0),
            total_hands_played=data.get('total_hands_played', 0),
            learning_enabled=data.get('learning_enabled', True),
            last_updated=_parse_time(data['last_updated']) if data.get('last_updated') else datetime.now(),
            opponent_profiles={p.opponent_id: p for p in profiles},
            performance=PerformanceHistory.from_dict(data.get('performance', {})),
            recent_experiences=BoundedHistory(
                MAX_EXPERIENCES,
                (GameExperience.from_dict(e) for e in data.get('recent_experiences', []))),
            recent_sessions=BoundedHistory(
                MAX_SESSIONS,
                (SessionResult.from_dict(s) for s in data.get('recent_sessions', []))),
            strategy_adjustments=BoundedHistory(
                MAX_STRATEGY_ADJUSTMENTS,
                (StrategyAdjustment.from_dict(a) for a in data.get('strategy_adjustments', [])))
        )


@dataclass
class LearningEffectiveness:
    improving: bool
    improvement_rate: float
    sessions_played: int


class MemoryManager:
    """Loads, mutates and persists the BobMemory aggregate."""

    def __init__(self, memory_file_path: str = DEFAULT_MEMORY_FILE,
                 learning_enabled: bool = True):
        """Initialize the memory manager.

        Args:
            memory_file_path: JSON file holding the persisted memory
            learning_enabled: Recorded in fresh memory snapshots
        """
        self.memory_file_path = Path(memory_file_path)
        self.learning_enabled = learning_enabled
        self.memory = BobMemory(learning_enabled=learning_enabled)

    def load(self) -> BobMemory:
        """Read memory from disk.

        A missing file is the normal first run. An unreadable or corrupt
        file is logged and replaced by empty memory so play can continue.
        """
        try:
            with open(self.memory_file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            self.memory = BobMemory.from_dict(data)
        except FileNotFoundError:
            logger.info("No existing memory found, starting fresh")
            self.memory = BobMemory(learning_enabled=self.learning_enabled)
            return self.memory
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Error loading memory from {self.memory_file_path}: {e}")
            self.memory = BobMemory(learning_enabled=self.learning_enabled)
            return self.memory

        logger.info(
            f"Loaded memory: {self.memory.total_sessions_played} sessions, "
            f"{len(self.memory.opponent_profiles)} opponents"
        )
        return self.memory

    def save(self) -> None:
        """Write memory to disk atomically (temp file, then rename).

        Raises:
            MemoryPersistenceError: if the file could not be written.
        """
        self.memory.last_updated = datetime.now()
        temp_file = self.memory_file_path.with_name(self.memory_file_path.name + '.tmp')
        try:
            self.memory_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(self.memory.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_file, self.memory_file_path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving memory to {self.memory_file_path}: {e}")
            try:
                temp_file.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(f"Could not remove {temp_file}: {cleanup_error}")
            raise MemoryPersistenceError(str(e)) from e

        logger.debug("Memory saved successfully")

    def update_opponent_profiles(self, profiles: Dict[str, OpponentProfile]) -> None:
        self.memory.opponent_profiles = dict(profiles)

    def update_experiences(self, experiences: Iterable[GameExperience],
                           sessions: Iterable[SessionResult], hands_added: int = 0) -> None:
        self.memory.recent_experiences = BoundedHistory(MAX_EXPERIENCES, experiences)
        self.memory.recent_sessions = BoundedHistory(MAX_SESSIONS, sessions)
        self.memory.total_hands_played += hands_added

    def update_performance(self, session: SessionResult) -> None:
        """Roll one session result into the performance history."""
        perf = self.memory.performance

        perf.win_by_session.append(1 if session.is_win else 0)
        perf.rank_by_session.append(session.final_rank)
        perf.chips_by_session.append(session.final_chips)

        if session.is_win:
            perf.total_wins += 1
        if session.final_rank <= 3:
            perf.total_top3 += 1
        perf.total_profit += session.net_profit

        wins = perf.win_by_session.to_list()
        if self.memory.total_sessions_played < BASELINE_SESSIONS:
            perf.win_rate_before_learning = sum(wins) / len(wins)
        else:
            recent = wins[-BASELINE_SESSIONS:]
            perf.win_rate_after_learning = sum(recent) / len(recent)

        self.memory.total_sessions_played += 1

    def add_strategy_adjustment(self, situation: str, adjustment: str, reason: str) -> None:
        self.memory.strategy_adjustments.append(
            StrategyAdjustment(situation=situation, adjustment=adjustment, reason=reason)
        )

    def get_learning_effectiveness(self) -> LearningEffectiveness:
        """Compare recent win rate against the baseline sessions."""
        sessions_played = self.memory.total_sessions_played
        if sessions_played < BASELINE_SESSIONS:
            return LearningEffectiveness(False, 0.0, sessions_played)

        perf = self.memory.performance
        improvement_rate = perf.win_rate_after_learning - perf.win_rate_before_learning
        return LearningEffectiveness(
            improving=improvement_rate > IMPROVEMENT_THRESHOLD,
            improvement_rate=improvement_rate,
            sessions_played=sessions_played,
        )

    def export_to_csv(self, export_dir: str) -> Optional[Tuple[Path, Path]]:
        """Write sessions.csv and opponents.csv for offline analysis.

        Returns the two paths, or None if the export failed (logged).
        """
        out_dir = Path(export_dir)
        sessions_path = out_dir / 'sessions.csv'
        opponents_path = out_dir / 'opponents.csv'
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            self._write_csv(sessions_path, SESSION_CSV_FIELDS, self._session_rows())
            self._write_csv(opponents_path, OPPONENT_CSV_FIELDS, self._opponent_rows())
        except OSError as e:
            logger.error(f"Error exporting CSV to {out_dir}: {e}")
            return None

        logger.info(f"Exported memory to {sessions_path} and {opponents_path}")
        return sessions_path, opponents_path

    @staticmethod
    def _write_csv(path: Path, fieldnames: List[str], rows: List[Dict[str, Any]]) -> None:
        with path.open('w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for row in rows:
                writer.writerow(row)

    def _session_rows(self) -> List[Dict[str, Any]]:
        return [
            {
                'session_id': s.session_id,
                'final_rank': s.final_rank,
                'total_players': s.total_players,
                'final_chips': s.final_chips,
                'hands_played': s.hands_played,
                'hands_won': s.hands_won,
                'net_profit': s.net_profit,
                'payout': s.payout,
                'completed_at': s.completed_at.isoformat(),
            }
            for s in self.memory.recent_sessions
        ]

    def _opponent_rows(self) -> List[Dict[str, Any]]:
        return [
            {
                'opponent_id': p.opponent_id,
                'sessions_played': p.sessions_played,
                'bob_wins': p.bob_wins,
                'opponent_wins': p.opponent_wins,
                'avg_bet_size': f"{p.stats.avg_bet_size:.2f}",
                'skill_score': f"{p.stats.skill_score:.2f}",
                'aggression_score': f"{p.stats.aggression_score:.2f}",
                'weaknesses': ';'.join(p.weaknesses),
            }
            for p in self.memory.opponent_profiles.values()
        ]
