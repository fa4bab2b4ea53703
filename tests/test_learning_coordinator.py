"""Tests for the learning coordinator that ties the subsystems together."""

import json
import os
from dataclasses import replace

import pytest

from blackjack.card import Card
from blackjack.decision import Action, BotDecision, GameSituation
from blackjack.memory import LearningCoordinator, OpponentProfile
from blackjack.memory.opponent_profiler import OpponentStats


def _situation(ranks=('10', '6'), upcard='7', chips=1000):
    return GameSituation.from_cards([Card(r) for r in ranks], Card(upcard), chips,
                                    can_double=False)


@pytest.fixture
def coordinator(bot_config):
    coordinator = LearningCoordinator(bot_config)
    coordinator.init()
    return coordinator


def _add_profile(coordinator, opponent_id, skill, aggression):
    coordinator.profiler.profiles[opponent_id] = OpponentProfile(
        opponent_id=opponent_id,
        sessions_played=3,
        stats=OpponentStats(skill_score=skill, aggression_score=aggression),
    )


class TestLifecycle:

    def test_init_without_memory_file(self, coordinator):
        assert coordinator.tracker.experiences == []
        assert coordinator.profiler.profiles == {}

    def test_record_hand_requires_active_session(self, coordinator, make_experience):
        coordinator.record_hand(make_experience())
        assert coordinator.tracker.experiences == []

        coordinator.start_session('s1')
        coordinator.record_hand(make_experience())
        assert len(coordinator.tracker.experiences) == 1
        assert coordinator.current_session_hand_count == 1

    def test_start_session_resets_count(self, coordinator):
        coordinator.observe_card(Card('5'))
        assert coordinator.card_counter.running_count == 1
        coordinator.start_session('s1')
        assert coordinator.card_counter.running_count == 0

    def test_full_session_persists(self, coordinator, bot_config, make_experience,
                                   make_session, make_opponent):
        coordinator.start_session('s1')
        coordinator.record_hand(make_experience(result='win', chips_won=25))
        coordinator.record_hand(make_experience(result='loss', chips_won=-25))

        insights = coordinator.record_session(
            make_session(session_id='s1', opponents=[make_opponent()]))

        assert os.path.exists(bot_config.memory_file)
        assert coordinator.current_session_id is None
        assert insights.session_insights.hands_won == 1
        assert insights.performance_trend == 'stable'
        assert insights.opponent_insights[0]['opponent_id'] == 'opp-1'

        restored = LearningCoordinator(bot_config)
        restored.init()
        assert restored.memory.memory.total_sessions_played == 1
        assert restored.memory.memory.total_hands_played == 2
        assert len(restored.tracker.experiences) == 2
        assert restored.profiler.get_profile('opp-1').sessions_played == 1

    def test_suggestions_logged_as_adjustments(self, coordinator, make_experience, make_session):
        coordinator.start_session('s1')
        coordinator.record_hand(make_experience(action='double', result='loss', chips_won=-50))

        insights = coordinator.record_session(
            make_session(session_id='s1', final_rank=3, final_chips=800, net_profit=-200))

        assert insights.suggested_adjustments == [
            "Consider more aggressive betting when count is favorable",
            "Focus on chip preservation in early hands",
            "Review double-down situations - lower win rate than expected",
        ]
        assert len(coordinator.memory.memory.strategy_adjustments) == 3

    def test_save_failure_keeps_playing(self, bot_config, tmp_path, make_session):
        blocker = tmp_path / 'blocker'
        blocker.write_text('x')
        config = replace(bot_config, memory_file=str(blocker / 'bob-memory.json'))
        coordinator = LearningCoordinator(config)
        coordinator.init()

        insights = coordinator.record_session(make_session())
        assert insights is not None
        assert coordinator.save() is False
        assert len(coordinator.tracker.sessions) == 1

    def test_unreadable_memory_does_not_break_session(self, bot_config, make_session,
                                                      make_experience):
        record = make_experience().to_dict()
        record['timestamp'] = 1700000000000
        os.makedirs(os.path.dirname(bot_config.memory_file))
        with open(bot_config.memory_file, 'w') as f:
            json.dump({'recent_experiences': [record]}, f)

        coordinator = LearningCoordinator(bot_config)
        coordinator.init()
        assert coordinator.tracker.experiences == []

        assert coordinator.record_session(make_session()) is not None
        assert coordinator.save() is True

    def test_export(self, coordinator, bot_config, make_session):
        coordinator.record_session(make_session())
        sessions_path, opponents_path = coordinator.export()
        assert str(sessions_path).startswith(bot_config.export_dir)
        assert opponents_path.exists()

    def test_stats(self, coordinator, make_session):
        coordinator.record_session(make_session(final_rank=1))
        stats = coordinator.get_stats()
        assert stats['enabled'] is True
        assert stats['total_sessions'] == 1
        assert stats['overall_win_rate'] == 1.0
        assert stats['learning_effectiveness']['sessions_played'] == 1


class TestDisabled:

    @pytest.fixture
    def disabled(self, bot_config):
        coordinator = LearningCoordinator(replace(bot_config, learning_enabled=False))
        coordinator.init()
        return coordinator

    def test_record_session_is_noop(self, disabled, bot_config, make_session):
        assert disabled.record_session(make_session()) is None
        assert not os.path.exists(bot_config.memory_file)

    def test_no_learning_adjustment(self, disabled, make_experience):
        disabled.start_session('s1')
        for _ in range(10):
            disabled.record_hand(make_experience(chips_won=100, result='win'))
        assert disabled.tracker.experiences == []
        assert disabled.get_strategy_adjustment(16, '7') == 0.0

    def test_decide_still_works(self, disabled):
        decision = disabled.decide(_situation())
        assert decision.action == Action.HIT


class TestDecisions:

    def test_learned_adjustment_flows_into_decision(self, coordinator, make_experience):
        baseline = coordinator.decide(_situation())

        coordinator.start_session('s1')
        for _ in range(5):
            coordinator.record_hand(make_experience(action='hit', result='win', chips_won=100))

        assert coordinator.get_strategy_adjustment(16, '7') == pytest.approx(0.2)
        adjusted = coordinator.decide(_situation())
        assert adjusted.expected_value == pytest.approx(baseline.expected_value + 0.2)

    def test_weak_opponents_raise_bet(self, coordinator):
        _add_profile(coordinator, 'weak', skill=0.2, aggression=0.5)
        decision = BotDecision(Action.STAND, 0.5, 0.1, bet_size=50)

        assert coordinator.adjust_for_opponents(decision, ['weak']).bet_size == 60

    def test_weak_opponent_bet_capped_at_table_max(self, coordinator):
        _add_profile(coordinator, 'weak', skill=0.2, aggression=0.5)
        decision = BotDecision(Action.STAND, 0.5, 0.1, bet_size=90)

        assert coordinator.adjust_for_opponents(decision, ['weak']).bet_size == 100

    def test_weak_opponent_bet_capped_at_chip_stack(self, coordinator):
        _add_profile(coordinator, 'weak', skill=0.2, aggression=0.5)
        decision = BotDecision(Action.STAND, 0.5, 0.1, bet_size=50)

        assert coordinator.adjust_for_opponents(decision, ['weak'], chip_stack=55).bet_size == 55

    def test_decide_caps_opponent_bet_at_stack(self, coordinator):
        _add_profile(coordinator, 'aggro', skill=0.8, aggression=0.9)
        decision = coordinator.decide(_situation(chips=10), opponent_ids=['aggro'])
        assert decision.bet_size == 10

    def test_aggressive_opponents_keep_minimum(self, coordinator):
        _add_profile(coordinator, 'aggro', skill=0.8, aggression=0.9)
        decision = BotDecision(Action.STAND, 0.5, 0.1)

        assert coordinator.adjust_for_opponents(decision, ['aggro']).bet_size == 25

    def test_unknown_opponents_leave_decision(self, coordinator):
        decision = BotDecision(Action.HIT, 0.5, 0.1, bet_size=40)
        assert coordinator.adjust_for_opponents(decision, ['stranger']) is decision

    def test_observe_opponent_hand(self, coordinator, make_opponent, make_session):
        coordinator.record_session(make_session(opponents=[make_opponent()]))
        coordinator.observe_opponent_hand('opp-1', 'TT', 'split')
        assert 'splits_tens' in coordinator.profiler.get_profile('opp-1').weaknesses
