"""Data models for grid and objective line generation."""

from typing import List, Optional, Literal, NamedTuple
from pydantic import BaseModel, ConfigDict, Field, model_validator


Token = str
Direction = Literal["column", "row"]


class Cell(NamedTuple):
    """A grid coordinate."""
    row: int
    col: int


def flip(direction: Direction) -> Direction:
    """Return the perpendicular direction."""
    return "row" if direction == "column" else "column"


class Grid(BaseModel):
    """An immutable R x C matrix of tokens."""
    model_config = ConfigDict(frozen=True)

    cells: List[List[Token]]

    @model_validator(mode="after")
    def _check_rectangular(self) -> "Grid":
        if not self.cells or not self.cells[0]:
            raise ValueError("Grid must have at least one row and one column")
        width = len(self.cells[0])
        if any(len(row) != width for row in self.cells):
            raise ValueError("Grid rows must all have the same length")
        return self

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def cols(self) -> int:
        return len(self.cells[0])

    def contains(self, row: int, col: int) -> bool:
        """Check if a coordinate lies inside the grid."""
        return 0 <= row < self.rows and 0 <= col < self.cols

    def token_at(self, cell: Cell) -> Token:
        return self.cells[cell.row][cell.col]

    def cells_along(self, direction: Direction, cell: Cell) -> List[Cell]:
        """All cells of the full column or row running through `cell`."""
        if direction == "column":
            return [Cell(r, cell.col) for r in range(self.rows)]
        return [Cell(cell.row, c) for c in range(self.cols)]

    def line_has_token(self, direction: Direction, cell: Cell, token: Token) -> bool:
        return any(self.token_at(other) == token for other in self.cells_along(direction, cell))

    def cells_with_token(self, token: Token) -> List[Cell]:
        """Every cell holding `token`, in row-major order."""
        return [
            Cell(r, c)
            for r, row in enumerate(self.cells)
            for c, value in enumerate(row)
            if value == token
        ]

    def has_token(self, token: Token) -> bool:
        return any(token in row for row in self.cells)


class ObjectiveLine(BaseModel):
    """
    An ordered token sequence traced through the grid.

    Attributes:
        tokens: The tokens to match, in order
        path: The cells the line was generated from (one per token)
        start_direction: Direction of the move from path[0] to path[1]
        decoy_steps: Number of positions that offered at least one decoy
        fallback: True if the line missed its decoy target and was built by the
            simple-line fallback
    """
    model_config = ConfigDict(frozen=True)

    tokens: List[Token] = Field(..., min_length=1)
    path: List[Cell] = Field(default_factory=list)
    start_direction: Direction = "column"
    decoy_steps: int = Field(default=0, ge=0)
    fallback: bool = False

    @property
    def length(self) -> int:
        return len(self.tokens)

    def direction_at(self, step: int) -> Direction:
        """Direction used to move from path[step] to path[step + 1]."""
        return self.start_direction if step % 2 == 0 else flip(self.start_direction)


class CheckError(BaseModel):
    """A single puzzle check failure."""
    code: str
    message: str
    line: Optional[int] = None
    index: Optional[int] = None


class CheckResult(BaseModel):
    """Result of checking a generated puzzle."""
    valid: bool
    errors: List[CheckError] = Field(default_factory=list)
    lines_checked: int = 0
    fallback_lines: int = 0
