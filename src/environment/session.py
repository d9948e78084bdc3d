"""
Move-validation state machine for a hacking puzzle.

GameSession holds the immutable grid and objective lines. Every transition
(start, pick, tick, stop, resume) takes a GameState and returns the next one,
so callers always hold an explicit snapshot and nothing is shared between
calls.

Pick rules, applied in order for an allowed cell holding token T:
1. Divergence: if the active line is mid-route and T is not its next token,
   that line drops back to 0 without a fault.
2. Every incomplete line whose next token is T advances by one.
3. If several lines advanced they form a cohort. When a later pick advances
   only one cohort member, the other members are nullified.
4. If nothing advanced the pick is a fault. The active line was already
   reset by divergence, since any token it does not need diverges it.
Completed lines are never reset by any of these rules.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from .models import (
    Constraint,
    GameConfig,
    GameState,
    PickRecord,
    Puzzle,
    FAULTS_MAX,
    TIMER_SECONDS,
)
from ..generator.models import Cell, Grid, ObjectiveLine, Token


logger = logging.getLogger(__name__)

NEXT_CONSTRAINT = {
    "entry_row": "same_column",
    "same_column": "same_row",
    "same_row": "same_column",
}


class GameSession(BaseModel):
    """
    Rules engine for one grid and its objective lines.

    Attributes:
        grid: The token grid
        lines: The objective lines to complete
        timer_seconds: Countdown budget for a fresh state
        faults_max: Faults that end the session
    """

    model_config = ConfigDict(frozen=True)

    grid: Grid
    lines: List[ObjectiveLine]
    timer_seconds: int = TIMER_SECONDS
    faults_max: int = FAULTS_MAX

    @classmethod
    def from_puzzle(cls, puzzle: Puzzle, config: Optional[GameConfig] = None) -> "GameSession":
        """Create a session over an already generated puzzle."""
        config = config or GameConfig()
        return cls(
            grid=puzzle.grid,
            lines=puzzle.lines,
            timer_seconds=config.timer_seconds,
            faults_max=config.faults_max,
        )

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def is_complete(self, progress: List[int], index: int) -> bool:
        return progress[index] >= self.lines[index].length

    def in_progress(self, progress: List[int], index: int) -> bool:
        return 0 < progress[index] < self.lines[index].length

    def lines_done(self, state: GameState) -> int:
        """Number of lines fully matched."""
        return sum(1 for i in range(len(self.lines)) if self.is_complete(state.line_progress, i))

    def needed_token(self, state: GameState, index: int) -> Optional[Token]:
        """The next token line `index` is waiting for, or None if complete."""
        if self.is_complete(state.line_progress, index):
            return None
        return self.lines[index].tokens[state.line_progress[index]]

    def allowed(self, state: GameState, row: int, col: int) -> bool:
        """Check the cell against the current row/column constraint."""
        if not self.grid.contains(row, col):
            return False
        if state.constraint == "entry_row":
            return row == 0
        if state.last_position is None:
            return False
        if state.constraint == "same_column":
            return col == state.last_position.col
        return row == state.last_position.row

    def candidate_lines(self, state: GameState, token: Token) -> List[int]:
        """Indexes of incomplete lines whose next token is `token`."""
        return [
            i for i in range(len(self.lines))
            if self.needed_token(state, i) == token
        ]

    def next_needed_token(self, state: GameState, row: int, col: int) -> Optional[Token]:
        """
        Token to highlight in the objectives when hovering a cell.

        Returns the cell's token if the session is running, the cell is
        allowed and it would advance at least one incomplete line.
        """
        if not state.is_running or not self.allowed(state, row, col):
            return None
        token = self.grid.cells[row][col]
        return token if self.candidate_lines(state, token) else None

    def cells_with_token(self, token: Token) -> List[Cell]:
        """Cells to highlight on the grid when hovering an objective token."""
        return self.grid.cells_with_token(token)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> GameState:
        """Fresh running state over the current grid and lines."""
        return GameState(
            constraint="entry_row",
            line_progress=[0] * len(self.lines),
            time_left=self.timer_seconds,
            status="running",
        )

    def stop(self, state: GameState) -> GameState:
        """Pause a running session without touching its progress."""
        if not state.is_running:
            return state
        return state.model_copy(update={"status": "paused"}, deep=True)

    def resume(self, state: GameState) -> GameState:
        if state.status != "paused":
            return state
        return state.model_copy(update={"status": "running"}, deep=True)

    def tick(self, state: GameState) -> GameState:
        """Apply one second of countdown; late ticks after the end are ignored."""
        if not state.is_running:
            return state

        new = state.model_copy(deep=True)
        new.time_left -= 1
        if new.time_left <= 0:
            new.status = "failed"
            new.fail_reason = "timeout"
            new.message = "Time's up."
            logger.debug("Timer expired")
        return new

    def pick(self, state: GameState, row: int, col: int) -> GameState:
        """
        Process a click on (row, col).

        Args:
            state: The state before the pick
            row: Grid row
            col: Grid column

        Returns:
            The state after the pick. Picks outside a running session or
            outside the constraint return `state` unchanged.
        """
        if not state.is_running or not self.allowed(state, row, col):
            return state

        cell = Cell(row, col)
        token = self.grid.token_at(cell)
        # Rules read the pre-pick snapshot; all writes go to the copy
        snapshot = state.line_progress
        new = state.model_copy(deep=True)

        diverged = None
        active = state.active_line
        if active is not None and self.in_progress(snapshot, active):
            if token != self.lines[active].tokens[snapshot[active]]:
                new.line_progress[active] = 0
                new.active_line = None
                new.cohort = None
                diverged = active
                logger.debug("Line %d diverged at %s (%s)", active, tuple(cell), token)

        candidates = self.candidate_lines(state, token)
        if candidates:
            self._advance(state, new, candidates, cell, token, diverged)
        else:
            self._fault(new, cell, token, diverged)

        new.last_position = cell
        new.constraint = self._toggle(state.constraint)
        return new

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _toggle(constraint: Constraint) -> Constraint:
        return NEXT_CONSTRAINT[constraint]

    def _advance(
        self,
        state: GameState,
        new: GameState,
        candidates: List[int],
        cell: Cell,
        token: Token,
        diverged: Optional[int],
    ) -> None:
        """Advance every candidate at once and resolve the cohort."""
        for i in candidates:
            new.line_progress[i] = state.line_progress[i] + 1

        nullified: List[int] = []
        if len(candidates) > 1:
            new.cohort = set(candidates)
        else:
            survivor = candidates[0]
            if state.cohort and survivor in state.cohort:
                for i in sorted(state.cohort - {survivor}):
                    if self.is_complete(new.line_progress, i) or new.line_progress[i] == 0:
                        continue
                    new.line_progress[i] = 0
                    nullified.append(i)
                if nullified:
                    logger.debug("Cohort resolved to line %d, nullified %s", survivor, nullified)
            new.cohort = None

        new.active_line = max(candidates)
        new.message = ""
        new.last_pick = PickRecord(
            cell=cell,
            token=token,
            outcome="correct",
            advanced=list(candidates),
            diverged=diverged,
            nullified=nullified,
        )

        if all(self.is_complete(new.line_progress, i) for i in range(len(self.lines))):
            new.status = "won"
            new.message = "Hack complete!"
            logger.debug("All %d lines complete", len(self.lines))

    def _fault(self, new: GameState, cell: Cell, token: Token, diverged: Optional[int]) -> None:
        """
        Count a wrong token.

        An allowed token the in-progress active line does not need has
        already diverged that line, so the fault itself resets nothing.
        """
        new.faults += 1
        new.cohort = None

        if new.faults >= self.faults_max:
            new.status = "failed"
            new.fail_reason = "fault_limit"
            new.message = "Too many faults."
        else:
            new.message = "Wrong token."

        new.last_pick = PickRecord(
            cell=cell,
            token=token,
            outcome="fault",
            diverged=diverged,
        )
        logger.debug("Fault %d/%d at %s (%s)", new.faults, self.faults_max, tuple(cell), token)
