import json
import logging
import random
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Optional, Any
from pydantic import BaseModel, Field, ConfigDict

from .game import create_puzzle
from .session import GameSession
from .timer import TimerSource
from .models import Difficulty, GameConfig, GameState, PickRecord, Puzzle, SessionResult
from ..generator.models import Cell, Token


logger = logging.getLogger(__name__)


class HackingGame(BaseModel):
    """
    Top-level orchestrator for a row/column hacking session.

    Owns the displayed puzzle, the rules session built over it and the
    current GameState, and records every accepted pick.

    Attributes:
        config: Game configuration
        puzzle: The grid and objective lines currently displayed
        session: Rules engine over `puzzle` (None until a difficulty is chosen)
        state: Current game state (None until started)
        history: Accepted picks since the last start
        timer: Tick source polled by `poll_timer`
        started_at: When the current run started
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    config: GameConfig = Field(default_factory=GameConfig)
    puzzle: Optional[Puzzle] = None
    session: Optional[GameSession] = None
    state: Optional[GameState] = None
    history: List[PickRecord] = Field(default_factory=list)
    timer: TimerSource = Field(default_factory=TimerSource)
    started_at: Optional[datetime] = None
    _rng: random.Random = None

    def model_post_init(self, __context) -> None:
        """Initialize the random generator after model creation."""
        self._rng = random.Random(self.config.seed)

    @classmethod
    def create(
        cls,
        config: Optional[GameConfig] = None,
        **config_kwargs: Any
    ) -> "HackingGame":
        """
        Factory method to create a game with its first puzzle generated.

        Args:
            config: Optional GameConfig instance
            **config_kwargs: Config parameters if config not provided

        Returns:
            HackingGame showing a puzzle for the configured difficulty
        """
        if config is None:
            config = GameConfig(**config_kwargs)

        game = cls(config=config)
        game.select_difficulty(config.difficulty)
        return game

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def select_difficulty(self, level: Difficulty) -> Puzzle:
        """
        Switch difficulty and generate a fresh puzzle at rest.

        Raises:
            ValueError: If a run is in progress or the level is unknown
        """
        if self.state is not None and self.state.is_running:
            raise ValueError("Cannot change difficulty while running")

        puzzle = create_puzzle(level, self._rng, self.config)
        self.config = self.config.model_copy(update={"difficulty": level})
        return self._show(puzzle)

    def new_setup(self) -> Puzzle:
        """Regenerate the grid and lines for the current difficulty."""
        if self.puzzle is None:
            raise ValueError("No difficulty selected")
        puzzle = create_puzzle(self.config.difficulty, self._rng, self.config)
        return self._show(puzzle)

    def _show(self, puzzle: Puzzle) -> Puzzle:
        self.puzzle = puzzle
        self.session = GameSession.from_puzzle(puzzle, self.config)
        self.state = None
        self.history = []
        self.started_at = None
        self.timer.stop()
        logger.info(
            "New %s puzzle: %dx%d grid, %d lines (%d fallback)",
            puzzle.difficulty,
            puzzle.grid.rows,
            puzzle.grid.cols,
            len(puzzle.lines),
            sum(1 for line in puzzle.lines if line.fallback),
        )
        return puzzle

    def _require_session(self) -> GameSession:
        if self.session is None:
            raise ValueError("No difficulty selected")
        return self.session

    # ------------------------------------------------------------------
    # Play
    # ------------------------------------------------------------------

    def start(self) -> GameState:
        """Start a run on the puzzle currently displayed (no regeneration)."""
        session = self._require_session()
        self.state = session.start()
        self.history = []
        self.started_at = datetime.now()
        self.timer.start()
        logger.info("Run started: %ds on the clock, %d faults allowed",
                    session.timer_seconds, session.faults_max)
        return self.state

    def stop(self) -> Optional[GameState]:
        """Halt tick and pick processing, keeping accumulated state."""
        if self.state is not None and self.session is not None:
            self.state = self.session.stop(self.state)
        self.timer.stop()
        return self.state

    def resume(self) -> Optional[GameState]:
        if self.state is not None and self.session is not None and self.state.status == "paused":
            self.state = self.session.resume(self.state)
            self.timer.start()
        return self.state

    def pick(self, row: int, col: int) -> Optional[GameState]:
        """
        Pick the cell at (row, col).

        Returns:
            The resulting state (unchanged if not running or not allowed)

        Raises:
            ValueError: If no puzzle is shown or the cell is outside the grid
        """
        session = self._require_session()
        if not session.grid.contains(row, col):
            raise ValueError(
                f"Cell ({row}, {col}) is outside the {session.grid.rows}x{session.grid.cols} grid"
            )
        if self.state is None:
            return None

        before = self.state
        self.state = session.pick(before, row, col)

        if self.state is not before and self.state.last_pick is not None:
            self.history.append(self.state.last_pick)
            self._log_pick(self.state.last_pick)
            self._check_terminal()
        return self.state

    def tick(self, count: int = 1) -> Optional[GameState]:
        """Deliver `count` timer ticks."""
        if self.state is None or self.session is None:
            return self.state
        for _ in range(count):
            self.state = self.session.tick(self.state)
        self._check_terminal()
        return self.state

    def poll_timer(self) -> Optional[GameState]:
        """Apply every tick the timer source has accumulated."""
        ticks = self.timer.due()
        if ticks:
            return self.tick(ticks)
        return self.state

    def _check_terminal(self) -> None:
        if self.state is not None and self.state.is_terminal:
            self.timer.stop()
            if self.state.status == "won":
                logger.info("Hack complete with %d faults, %ds left",
                            self.state.faults, self.state.time_left)
            else:
                logger.info("Hack failed: %s", self.state.fail_reason)

    def _log_pick(self, record: PickRecord) -> None:
        if record.diverged is not None:
            logger.info("Line %d diverged, progress reset", record.diverged)
        if record.outcome == "fault":
            logger.info("Fault on %s at %s", record.token, tuple(record.cell))
        else:
            logger.debug("Advanced lines %s with %s", record.advanced, record.token)
        if record.nullified:
            logger.info("Competing lines %s nullified", record.nullified)

    # ------------------------------------------------------------------
    # Hover queries
    # ------------------------------------------------------------------

    def next_needed_token(self, row: int, col: int) -> Optional[Token]:
        """Objective token to highlight when hovering (row, col)."""
        if self.state is None or self.session is None:
            return None
        return self.session.next_needed_token(self.state, row, col)

    def cells_with_token(self, token: Token) -> List[Cell]:
        """Grid cells to highlight when hovering an objective token."""
        if self.session is None:
            return []
        return self.session.cells_with_token(token)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @property
    def lines_done(self) -> int:
        if self.state is None or self.session is None:
            return 0
        return self.session.lines_done(self.state)

    def get_state(self) -> Dict:
        """
        Get the current game state as a dictionary.

        Useful for serialization and logging.

        Returns:
            Dictionary containing game state
        """
        return {
            "difficulty": self.config.difficulty,
            "status": self.state.status if self.state else "idle",
            "lines_done": self.lines_done,
            "lines_total": len(self.puzzle.lines) if self.puzzle else 0,
            "faults": self.state.faults if self.state else 0,
            "faults_max": self.config.faults_max,
            "time_left": self.state.time_left if self.state else self.config.timer_seconds,
            "constraint": self.state.constraint if self.state else "entry_row",
            "picks": len(self.history),
        }

    def get_result(self) -> SessionResult:
        """
        Get the result of the current run.

        Returns:
            SessionResult containing the puzzle, final state and pick history
        """
        ended_at = datetime.now()
        duration = (ended_at - self.started_at).total_seconds() if self.started_at else 0.0

        return SessionResult(
            config=self.config,
            puzzle=self.puzzle,
            final_state=self.state,
            lines_done=self.lines_done,
            picks=self.history,
            started_at=self.started_at.isoformat() if self.started_at else "",
            ended_at=ended_at.isoformat(),
            duration_seconds=duration,
        )

    def save_result(self, path: str | Path) -> None:
        """
        Save the run result to a JSON file.

        Args:
            path: Path to save the result file
        """
        result = self.get_result()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            json.dump(result.model_dump(mode="json"), f, indent=2, default=str)
