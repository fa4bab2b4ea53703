"""
Decision core for an autonomous blackjack player.

Expected-value strategy, Hi-Lo card counting, and (in blackjack.memory)
the adaptive learning subsystem.
"""

from .card import Card, InvalidCardError, hand_value
from .card_counter import CardCounter
from .config import BotConfig, load_config
from .decision import Action, BotDecision, GameSituation
from .strategy_engine import StrategyEngine

__all__ = [
    'Card',
    'InvalidCardError',
    'hand_value',
    'CardCounter',
    'BotConfig',
    'load_config',
    'Action',
    'BotDecision',
    'GameSituation',
    'StrategyEngine',
]
