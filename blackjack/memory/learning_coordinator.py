"""
Learning Coordinator - orchestrates Bob's learning systems.

Coordinates:
- Experience tracking (hand and session history)
- Opponent profiling
- Memory persistence
- Wiring learned adjustments into the strategy engine
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..card import Card
from ..card_counter import CardCounter
from ..config import (
    AGGRESSIVE_OPPONENT_THRESHOLD,
    BASELINE_SESSIONS,
    DEFAULT_ADJUSTMENT_ACTION,
    WEAK_OPPONENT_BET_MULTIPLIER,
    WEAK_OPPONENT_SKILL,
    BotConfig,
)
from ..decision import BotDecision, GameSituation
from ..strategy_engine import StrategyEngine
from .experience_tracker import ExperienceTracker, GameExperience, SessionInsights, SessionResult
from .memory_manager import MemoryManager, MemoryPersistenceError
from .opponent_profiler import OpponentProfiler

logger = logging.getLogger(__name__)


@dataclass
class LearningInsights:
    """Human-readable summary of a finished session. Informational only."""
    session_insights: SessionInsights
    opponent_insights: List[Dict[str, str]] = field(default_factory=list)
    performance_trend: str = 'stable'
    suggested_adjustments: List[str] = field(default_factory=list)


class LearningCoordinator:
    """Single owner of the learning state for one bot process."""

    def __init__(self, config: Optional[BotConfig] = None,
                 memory_file_path: Optional[str] = None,
                 strategy_engine: Optional[StrategyEngine] = None):
        self.config = config or BotConfig()
        self.enabled = self.config.learning_enabled

        self.strategy_engine = strategy_engine or StrategyEngine(CardCounter(self.config))
        self.memory = MemoryManager(memory_file_path or self.config.memory_file,
                                    learning_enabled=self.enabled)

        # Replaced with loaded state in init()
        self.tracker = ExperienceTracker()
        self.profiler = OpponentProfiler()

        self.current_session_id: Optional[str] = None
        self.current_session_hand_count = 0

    @property
    def card_counter(self) -> CardCounter:
        return self.strategy_engine.card_counter

    def init(self) -> None:
        """Load persisted memory and rebuild the tracker and profiler from it."""
        if not self.enabled:
            logger.info("Learning system DISABLED")
            return

        bob_memory = self.memory.load()
        self.tracker = ExperienceTracker(bob_memory.recent_experiences, bob_memory.recent_sessions)
        self.profiler = OpponentProfiler(bob_memory.opponent_profiles)
        logger.info("Learning system initialized")

        effectiveness = self.memory.get_learning_effectiveness()
        if effectiveness.sessions_played > BASELINE_SESSIONS:
            logger.info(
                f"Effectiveness: {'improving' if effectiveness.improving else 'stable'} "
                f"({effectiveness.improvement_rate * 100:.1f}% improvement)"
            )

    def start_session(self, session_id: str) -> None:
        """Begin a session on a fresh shoe."""
        self.current_session_id = session_id
        self.current_session_hand_count = 0
        self.card_counter.reset()
        logger.debug(f"Started tracking session {session_id}")

    def observe_card(self, card: Card) -> None:
        self.strategy_engine.observe_card(card)

    def decide(self, situation: GameSituation, opponent_ids: Iterable[str] = ()) -> BotDecision:
        """Full decision chain: learned adjustment, EV engine, opponent posture."""
        adjustment = self.get_strategy_adjustment(
            situation.player_total, situation.dealer_upcard.rank
        )
        decision = self.strategy_engine.decide(situation, adjustment)
        return self.adjust_for_opponents(decision, opponent_ids, situation.chip_stack)

    def get_strategy_adjustment(self, player_total: int, dealer_upcard_rank: str,
                                action: str = DEFAULT_ADJUSTMENT_ACTION) -> float:
        if not self.enabled:
            return 0.0
        return self.tracker.get_learned_ev_adjustment(player_total, dealer_upcard_rank, action)

    def adjust_for_opponents(self, decision: BotDecision, opponent_ids: Iterable[str],
                             chip_stack: Optional[int] = None) -> BotDecision:
        """Scale the wager to the table: press weak tables, stay small vs aggressive ones.

        The adjusted bet never exceeds max_bet or, when given, chip_stack.
        """
        if not self.enabled:
            return decision

        profiles = [self.profiler.get_profile(o) for o in opponent_ids]
        profiles = [p for p in profiles if p is not None]
        if not profiles:
            return decision

        avg_skill = sum(p.stats.skill_score for p in profiles) / len(profiles)
        avg_aggression = sum(p.stats.aggression_score for p in profiles) / len(profiles)

        if decision.bet_size and avg_skill < WEAK_OPPONENT_SKILL:
            logger.debug("Increasing bet vs weak opponents")
            bet = min(int(decision.bet_size * WEAK_OPPONENT_BET_MULTIPLIER), self.config.max_bet)
            return decision.with_bet_size(self._cap_to_stack(bet, chip_stack))

        if avg_aggression > AGGRESSIVE_OPPONENT_THRESHOLD:
            logger.debug("Conservative play vs aggressive opponents")
            bet = decision.bet_size or self.config.min_bet
            return decision.with_bet_size(self._cap_to_stack(bet, chip_stack))

        return decision

    @staticmethod
    def _cap_to_stack(bet: int, chip_stack: Optional[int]) -> int:
        return bet if chip_stack is None else min(bet, chip_stack)

    def record_hand(self, experience: GameExperience) -> None:
        if not self.enabled or not self.current_session_id:
            return
        self.tracker.record_hand(experience)
        self.current_session_hand_count += 1

    def observe_opponent_hand(self, opponent_id: str, situation: str, action: str) -> None:
        if not self.enabled:
            return
        self.profiler.observe_hand(opponent_id, situation, action)

    def record_session(self, session_result: SessionResult,
                       bob_rank: Optional[int] = None) -> Optional[LearningInsights]:
        """Fold a finished session into every learning system and persist.

        A failed save is logged and the bot carries on with in-memory state.
        """
        if not self.enabled:
            return None

        bob_rank = session_result.final_rank if bob_rank is None else bob_rank

        self.tracker.record_session(session_result)
        for opponent in session_result.opponents:
            self.profiler.update_profile(opponent.opponent_id, opponent, bob_rank)

        self.memory.update_performance(session_result)
        self.memory.update_opponent_profiles(self.profiler.profiles)
        self.memory.update_experiences(
            self.tracker.experiences,
            self.tracker.sessions,
            hands_added=self.current_session_hand_count,
        )

        insights = self.generate_insights(session_result.session_id)
        for suggestion in insights.suggested_adjustments:
            self.memory.add_strategy_adjustment(
                situation=f"session {session_result.session_id}",
                adjustment=suggestion,
                reason=f"performance trend {insights.performance_trend}",
            )
        self._log_insights(insights)

        self.save()

        logger.info(
            f"Session {session_result.session_id} recorded: "
            f"Rank {session_result.final_rank}/{session_result.total_players}"
        )
        self.current_session_id = None
        self.current_session_hand_count = 0
        return insights

    def generate_insights(self, session_id: str) -> LearningInsights:
        session_insights = self.tracker.generate_session_insights(
            session_id, min_bet=self.config.min_bet
        )

        opponent_insights = []
        session = next((s for s in self.tracker.sessions if s.session_id == session_id), None)
        if session is not None:
            for opponent in session.opponents:
                opponent_insights.append({
                    'opponent_id': opponent.opponent_id,
                    'insight': '; '.join(self.profiler.get_opponent_insights(opponent.opponent_id)),
                })

        suggestions = []
        stats = self.tracker.get_summary_stats()
        if stats.avg_rank > 2.5:
            suggestions.append("Consider more aggressive betting when count is favorable")
        if stats.avg_chips < 1000:
            suggestions.append("Focus on chip preservation in early hands")

        for action_stats in self.tracker.analyze_action_effectiveness():
            if action_stats.action == 'double' and action_stats.win_rate < 0.4:
                suggestions.append("Review double-down situations - lower win rate than expected")

        return LearningInsights(
            session_insights=session_insights,
            opponent_insights=opponent_insights,
            performance_trend=self.tracker.get_performance_trend(),
            suggested_adjustments=suggestions,
        )

    def get_stats(self) -> Dict[str, Any]:
        summary = self.tracker.get_summary_stats()
        effectiveness = self.memory.get_learning_effectiveness()
        return {
            'enabled': self.enabled,
            'total_hands': summary.total_hands,
            'total_sessions': summary.total_sessions,
            'overall_win_rate': summary.win_rate,
            'avg_rank': summary.avg_rank,
            'avg_chips': summary.avg_chips,
            'total_profit': summary.total_profit,
            'opponent_profiles': len(self.profiler.profiles),
            'learning_effectiveness': {
                'improving': effectiveness.improving,
                'improvement_rate': effectiveness.improvement_rate,
                'sessions_played': effectiveness.sessions_played,
            },
        }

    def export(self, export_dir: Optional[str] = None):
        return self.memory.export_to_csv(export_dir or self.config.export_dir)

    def save(self) -> bool:
        """Persist memory. Returns False (after logging) when the write failed."""
        try:
            self.memory.save()
        except MemoryPersistenceError as e:
            logger.warning(f"Continuing in memory-only mode: {e}")
            return False
        return True

    def _log_insights(self, insights: LearningInsights) -> None:
        logger.info("=== Session Insights ===")
        logger.info(f"Best: {insights.session_insights.best_decision}")
        logger.info(f"Worst: {insights.session_insights.worst_decision}")
        logger.info(f"Trend: {insights.performance_trend}")

        for opponent in insights.opponent_insights:
            if opponent['insight']:
                logger.info(f"{opponent['opponent_id'][:8]}: {opponent['insight']}")

        for suggestion in insights.suggested_adjustments:
            logger.info(f"Suggested: {suggestion}")
