"""
Shared pytest fixtures for the blackjack decision core test suite.

unittest.TestCase classes keep their own setUp/tearDown; pytest-style
tests should prefer these fixtures.
"""
from datetime import datetime, timedelta

import pytest

from blackjack.card import Card
from blackjack.config import BotConfig
from blackjack.memory import GameExperience, OpponentSessionData, SessionResult


@pytest.fixture
def memory_path(tmp_path):
    """Path to a not-yet-existing memory file inside pytest's tmp_path."""
    return str(tmp_path / "data" / "bob-memory.json")


@pytest.fixture
def bot_config(memory_path, tmp_path):
    """Default configuration pointed at temporary storage."""
    return BotConfig(memory_file=memory_path, export_dir=str(tmp_path / "exports"))


@pytest.fixture
def make_experience():
    """Factory for GameExperience records.

    Usage::

        def test_x(make_experience):
            exp = make_experience(player_total=16, upcard='7', action='hit', chips_won=-25)
    """
    counter = {'hand': 0}

    def _make(session_id="s1", player_total=16, upcard='7', action='hit',
              result='loss', chips_won=-25, bet_size=25, **kwargs):
        counter['hand'] += 1
        return GameExperience(
            session_id=session_id,
            hand_number=counter['hand'],
            player_hand=(Card('10', 'hearts'), Card('6', 'clubs')),
            player_total=player_total,
            dealer_upcard=Card(upcard, 'spades'),
            action_taken=action,
            bet_size=bet_size,
            hand_result=result,
            chips_won=chips_won,
            **kwargs
        )
    return _make


@pytest.fixture
def make_session():
    """Factory for SessionResult records with optional opponents."""
    base_time = datetime(2026, 1, 1, 12, 0, 0)
    counter = {'session': 0}

    def _make(session_id=None, final_rank=1, final_chips=1200, net_profit=200.0,
              opponents=(), total_players=4, hands_played=10, hands_won=6):
        counter['session'] += 1
        return SessionResult(
            session_id=session_id or f"session-{counter['session']}",
            final_rank=final_rank,
            total_players=total_players,
            final_chips=final_chips,
            hands_played=hands_played,
            hands_won=hands_won,
            net_profit=net_profit,
            payout=0.1 if final_rank == 1 else 0.0,
            opponents=tuple(opponents),
            completed_at=base_time + timedelta(minutes=counter['session']),
        )
    return _make


@pytest.fixture
def make_opponent():
    """Factory for OpponentSessionData."""
    def _make(opponent_id="opp-1", final_rank=2, final_chips=900, avg_bet_size=30.0,
              hits=10, stands=8, doubles=1, splits=1):
        return OpponentSessionData(
            opponent_id=opponent_id,
            final_rank=final_rank,
            final_chips=final_chips,
            hands_won=4,
            avg_bet_size=avg_bet_size,
            total_hits=hits,
            total_stands=stands,
            total_doubles=doubles,
            total_splits=splits,
        )
    return _make
