"""
Pydantic models for the environment layer.

This module contains the data models (configurations, game state, pick records,
results) used throughout the environment layer. The main logic classes
(GameSession, TimerSource, HackingGame) remain in their respective files.
"""

from typing import List, Dict, Optional, Literal, Set, Tuple, Union
from pydantic import BaseModel, Field, ConfigDict, model_validator

from ..generator.models import Cell, Grid, ObjectiveLine, Token


# Type aliases
Difficulty = Literal["easy", "medium", "hard"]
Constraint = Literal["entry_row", "same_column", "same_row"]
Status = Literal["idle", "running", "paused", "won", "failed"]
FailReason = Literal["timeout", "fault_limit"]
PickOutcome = Literal["correct", "fault"]

TIMER_SECONDS = 150
FAULTS_MAX = 5


class DifficultyConfig(BaseModel):
    """Grid size and objective line parameters for one difficulty."""
    model_config = ConfigDict(frozen=True)

    rows: int = Field(..., ge=1)
    cols: int = Field(..., ge=1)
    line_count: int = Field(..., ge=1)
    length: Union[int, Tuple[int, int]]

    @model_validator(mode="after")
    def _check_length(self) -> "DifficultyConfig":
        low, high = (self.length, self.length) if isinstance(self.length, int) else self.length
        if low < 1 or high < low:
            raise ValueError(f"Invalid line length spec: {self.length}")
        return self


DIFFICULTIES: Dict[str, DifficultyConfig] = {
    "easy": DifficultyConfig(rows=2, cols=2, line_count=2, length=2),
    "medium": DifficultyConfig(rows=5, cols=5, line_count=4, length=(3, 6)),
    "hard": DifficultyConfig(rows=7, cols=8, line_count=6, length=(5, 7)),
}


class GameConfig(BaseModel):
    """Configuration for a hacking session."""
    difficulty: Difficulty = "medium"
    seed: Optional[int] = None
    timer_seconds: int = Field(default=TIMER_SECONDS, ge=1)
    faults_max: int = Field(default=FAULTS_MAX, ge=1)
    max_attempts: int = Field(default=500, ge=1)
    decoy_chance: float = Field(default=0.4, ge=0.0, le=1.0)
    letter_chance: float = Field(default=0.75, ge=0.0, le=1.0)

    @property
    def difficulty_config(self) -> DifficultyConfig:
        return DIFFICULTIES[self.difficulty]


class Puzzle(BaseModel):
    """A generated grid with its objective lines, at rest."""
    difficulty: Optional[Difficulty] = None
    grid: Grid
    lines: List[ObjectiveLine]


class PickRecord(BaseModel):
    """The last accepted pick and what it did to the objective lines."""
    cell: Cell
    token: Token
    outcome: PickOutcome
    advanced: List[int] = Field(default_factory=list)
    diverged: Optional[int] = None  # Line soft-reset because the pick left its route
    nullified: List[int] = Field(default_factory=list)  # Cohort members dropped


class GameState(BaseModel):
    """
    Mutable-by-copy state of one running puzzle.

    Every engine transition takes a GameState and returns a new one;
    the previous value is never modified.
    """
    constraint: Constraint = "entry_row"
    last_position: Optional[Cell] = None
    line_progress: List[int] = Field(default_factory=list)
    active_line: Optional[int] = None
    cohort: Optional[Set[int]] = None
    faults: int = Field(default=0, ge=0)
    time_left: int = TIMER_SECONDS
    status: Status = "idle"
    fail_reason: Optional[FailReason] = None
    last_pick: Optional[PickRecord] = None
    message: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status in ("won", "failed")

    @property
    def is_running(self) -> bool:
        return self.status == "running"


class SessionResult(BaseModel):
    """Result of a complete hacking session."""
    config: GameConfig
    puzzle: Optional[Puzzle] = None
    final_state: Optional[GameState] = None
    lines_done: int = 0
    picks: List[PickRecord] = Field(default_factory=list)
    started_at: str = ""
    ended_at: str = ""
    duration_seconds: float = 0.0
