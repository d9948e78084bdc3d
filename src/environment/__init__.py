"""Game environment for row/column hacking puzzles."""

from .models import (
    Difficulty,
    Constraint,
    Status,
    FailReason,
    PickOutcome,
    DifficultyConfig,
    DIFFICULTIES,
    GameConfig,
    Puzzle,
    PickRecord,
    GameState,
    SessionResult,
    TIMER_SECONDS,
    FAULTS_MAX,
)
from .game import create_puzzle
from .session import GameSession
from .timer import TimerSource
from .hacking import HackingGame

__all__ = [
    "Difficulty",
    "Constraint",
    "Status",
    "FailReason",
    "PickOutcome",
    "DifficultyConfig",
    "DIFFICULTIES",
    "GameConfig",
    "Puzzle",
    "PickRecord",
    "GameState",
    "SessionResult",
    "TIMER_SECONDS",
    "FAULTS_MAX",
    "create_puzzle",
    "GameSession",
    "TimerSource",
    "HackingGame",
]
