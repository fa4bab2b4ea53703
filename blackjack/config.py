"""
Centralized configuration for the blackjack decision core.

Constants live here so the strategy, counting and learning modules share
one source of truth. Runtime switches are read from the environment (a
local .env file is honoured) through load_config().
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Shoe composition
CARDS_PER_DECK = 52
DEFAULT_SHOE_SIZE = 416  # 8 decks

# Betting configuration
DEFAULT_MIN_BET = 25
DEFAULT_MAX_BET = 100
DEFAULT_COUNT_THRESHOLD = 2.0

# Card counting
STRATEGY_MODIFIER_PER_COUNT = 0.02
STRATEGY_MODIFIER_CAP = 0.1
INSURANCE_TRUE_COUNT = 3.0

# Strategy engine
MAX_HIT_DEPTH = 5
CONFIDENCE_SPREAD = 0.5  # EV gap at which confidence saturates

# Learning
MIN_SITUATION_SAMPLES = 5
LEARNED_EV_CAP = 0.2
LEARNED_EV_SCALE = 100.0
MIN_SESSIONS_FOR_TREND = 10
TREND_THRESHOLD = 0.1
DEFAULT_ADJUSTMENT_ACTION = 'hit'

# Opponent-aware betting
WEAK_OPPONENT_SKILL = 0.4
AGGRESSIVE_OPPONENT_THRESHOLD = 0.7
WEAK_OPPONENT_BET_MULTIPLIER = 1.2

# Memory limits (FIFO eviction beyond these)
MEMORY_VERSION = '1.0.0'
MAX_EXPERIENCES = 1000
MAX_SESSIONS = 100
MAX_PERFORMANCE_HISTORY = 100
MAX_STRATEGY_ADJUSTMENTS = 50
BASELINE_SESSIONS = 20
IMPROVEMENT_THRESHOLD = 0.05

DEFAULT_MEMORY_FILE = './data/bob-memory.json'
DEFAULT_EXPORT_DIR = './data'


def _bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if not raw:
        return default
    return raw.lower() == 'true' or raw == '1'


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid number for {name}: {raw}")


@dataclass(frozen=True)
class BotConfig:
    """Values the decision core reads at startup."""
    card_counting_enabled: bool = True
    learning_enabled: bool = True
    min_bet: int = DEFAULT_MIN_BET
    max_bet: int = DEFAULT_MAX_BET
    count_threshold: float = DEFAULT_COUNT_THRESHOLD
    shoe_size: int = DEFAULT_SHOE_SIZE
    memory_file: str = DEFAULT_MEMORY_FILE
    export_dir: str = DEFAULT_EXPORT_DIR
    log_level: str = 'info'

    def __post_init__(self):
        if self.min_bet <= 0:
            raise ValueError(f"min_bet must be positive, got {self.min_bet}")
        if self.max_bet < self.min_bet:
            raise ValueError(
                f"max_bet ({self.max_bet}) must not be below min_bet ({self.min_bet})"
            )
        if self.shoe_size <= 0:
            raise ValueError(f"shoe_size must be positive, got {self.shoe_size}")


def load_config() -> BotConfig:
    """Build a BotConfig from environment variables.

    Raises:
        ValueError: if a numeric variable cannot be parsed.
    """
    return BotConfig(
        card_counting_enabled=_bool_env('CARD_COUNTING_ENABLED', True),
        learning_enabled=_bool_env('LEARNING_ENABLED', True),
        min_bet=int(_float_env('MIN_BET', DEFAULT_MIN_BET)),
        max_bet=int(_float_env('MAX_BET', DEFAULT_MAX_BET)),
        count_threshold=_float_env('COUNT_THRESHOLD_BET_INCREASE', DEFAULT_COUNT_THRESHOLD),
        shoe_size=int(_float_env('SHOE_SIZE', DEFAULT_SHOE_SIZE)),
        memory_file=os.environ.get('MEMORY_FILE', DEFAULT_MEMORY_FILE),
        export_dir=os.environ.get('EXPORT_DIR', DEFAULT_EXPORT_DIR),
        log_level=os.environ.get('LOG_LEVEL', 'info'),
    )


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging for scripts that drive the decision core."""
    level_name = (level or os.environ.get('LOG_LEVEL', 'info')).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
