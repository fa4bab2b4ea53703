"""
Memory and Learning System for the blackjack bot.

This module provides learning capabilities across sessions:
- Hand and session history (bounded, FIFO)
- Opponent profiling (learning player tendencies)
- Persistent memory with atomic saves and CSV export
- Learning coordinator orchestration
"""

from .history import BoundedHistory
from .experience_tracker import (
    GameExperience, OpponentSessionData, SessionResult, ExperienceTracker
)
from .opponent_profiler import OpponentStats, OpponentPatterns, OpponentProfile, OpponentProfiler
from .memory_manager import BobMemory, MemoryManager, MemoryPersistenceError
from .learning_coordinator import LearningInsights, LearningCoordinator

__all__ = [
    # History
    'BoundedHistory',
    'GameExperience',
    'OpponentSessionData',
    'SessionResult',
    'ExperienceTracker',

    # Opponent profiling
    'OpponentStats',
    'OpponentPatterns',
    'OpponentProfile',
    'OpponentProfiler',

    # Persistence
    'BobMemory',
    'MemoryManager',
    'MemoryPersistenceError',

    # Coordinator
    'LearningInsights',
    'LearningCoordinator',
]
