"""
Objective line construction.

An objective line is an alternating column/row walk over the grid: the move
from token i to token i+1 runs along a column when i is even (for a line
starting with "column") and along a row when i is odd. The first line always
starts in row 0 moving along a column, so it can be entered under the
row-0 entry constraint.

Tricky lines are retried until enough positions offer a decoy: another cell
on the same line holding the same token whose next line does NOT hold the
following token. Picking it looks right but dead-ends. When no walk over the
grid as generated reaches the target, twins of path tokens are planted on
free cells.
"""

import logging
import math
import random
from typing import List, Optional, Sequence, Tuple, Union

from .models import Cell, Direction, Grid, ObjectiveLine, Token, flip


logger = logging.getLogger(__name__)

LengthSpec = Union[int, Tuple[int, int]]

MAX_ATTEMPTS = 500
DECOY_CHANCE = 0.4
PLANT_ATTEMPTS = 20


def pick_length(length: LengthSpec, rng: random.Random) -> int:
    """Resolve a fixed length or draw one uniformly from a [min, max] range."""
    if isinstance(length, int):
        return length
    low, high = length
    return rng.randint(low, high)


def decoy_target(length: int) -> int:
    """Decoy positions a line of `length` tokens needs: ceil(length / 2), capped at length - 1."""
    # Only the first length - 1 positions have a following token
    return min(math.ceil(length / 2), length - 1)


def count_decoys(grid: Grid, cell: Cell, direction: Direction, next_token: str) -> int:
    """
    Count decoys for the token at `cell`.

    `direction` is the direction of the move leaving `cell`; the cell itself
    was reached along the perpendicular line, so that is where a player would
    see the look-alike tokens.
    """
    token = grid.token_at(cell)
    return sum(
        1
        for other in grid.cells_along(flip(direction), cell)
        if other != cell
        and grid.token_at(other) == token
        and not grid.line_has_token(direction, other, next_token)
    )


def _walk(
    grid: Grid,
    start: Cell,
    length: int,
    start_direction: Direction,
    rng: random.Random,
    decoy_chance: float,
) -> Tuple[List[Cell], int]:
    """Walk `length` cells, flipping direction after every step."""
    path = [start]
    direction = start_direction
    decoy_steps = 0

    for _ in range(1, length):
        current = path[-1]
        candidates = grid.cells_along(direction, current)
        nxt = rng.choice(candidates)

        # Bias toward same-token chains (A8 -> A8); the current cell counts too
        if decoy_chance and rng.random() < decoy_chance:
            dupes = [c for c in candidates if grid.token_at(c) == grid.token_at(current)]
            if dupes:
                nxt = rng.choice(dupes)

        if count_decoys(grid, current, direction, grid.token_at(nxt)) > 0:
            decoy_steps += 1

        path.append(nxt)
        direction = flip(direction)

    return path, decoy_steps


def _to_line(
    grid: Grid,
    path: List[Cell],
    start_direction: Direction,
    decoy_steps: int,
    fallback: bool,
) -> ObjectiveLine:
    return ObjectiveLine(
        tokens=[grid.token_at(cell) for cell in path],
        path=path,
        start_direction=start_direction,
        decoy_steps=decoy_steps,
        fallback=fallback,
    )


def build_simple_line(
    grid: Grid,
    start: Cell,
    length: int,
    start_direction: Direction,
    rng: random.Random,
) -> ObjectiveLine:
    """Build a connected alternating line with no decoy guarantee."""
    path, decoy_steps = _walk(grid, start, length, start_direction, rng, decoy_chance=0.0)
    return _to_line(grid, path, start_direction, decoy_steps, fallback=True)


def build_tricky_line(
    grid: Grid,
    start: Cell,
    length: int,
    start_direction: Direction,
    rng: random.Random,
    min_decoys: Optional[int] = None,
    attempts: int = MAX_ATTEMPTS,
    decoy_chance: float = DECOY_CHANCE,
) -> ObjectiveLine:
    """
    Build a line where at least `min_decoys` positions offer a decoy.

    Args:
        grid: The grid to trace through
        start: First cell of the line
        length: Number of tokens
        start_direction: Direction of the first move
        rng: Random source
        min_decoys: Required decoy positions (default: ceil(length / 2))
        attempts: Walks to try before falling back
        decoy_chance: Probability of preferring a same-token continuation

    Returns:
        An ObjectiveLine; `fallback` is set if no walk met the decoy target
    """
    if length < 1:
        raise ValueError(f"Line length must be positive, got {length}")

    if min_decoys is None:
        min_decoys = decoy_target(length)
    min_decoys = min(min_decoys, length - 1)

    for attempt in range(attempts):
        path, decoy_steps = _walk(grid, start, length, start_direction, rng, decoy_chance)
        if decoy_steps >= min_decoys:
            logger.debug(
                "Tricky line of length %d found after %d attempts (%d decoy steps)",
                length, attempt + 1, decoy_steps,
            )
            return _to_line(grid, path, start_direction, decoy_steps, fallback=False)

    logger.debug(
        "No tricky line of length %d from %s after %d attempts, falling back",
        length, tuple(start), attempts,
    )
    return build_simple_line(grid, start, length, start_direction, rng)


def decoy_positions(grid: Grid, line: ObjectiveLine) -> List[int]:
    """Positions of `line` that currently offer at least one decoy on `grid`."""
    return [
        i for i in range(line.length - 1)
        if count_decoys(grid, line.path[i], line.direction_at(i), line.tokens[i + 1]) > 0
    ]


def _with_token(grid: Grid, cell: Cell, token: Token) -> Grid:
    cells = [list(row) for row in grid.cells]
    cells[cell.row][cell.col] = token
    return Grid(cells=cells)


def plant_decoys(
    grid: Grid,
    line: ObjectiveLine,
    rng: random.Random,
    min_decoys: Optional[int] = None,
    earlier: Sequence[ObjectiveLine] = (),
) -> Tuple[Grid, ObjectiveLine]:
    """
    Copy path tokens onto free cells until `line` offers `min_decoys` decoys.

    For a position without a decoy, a twin of its token is written to another
    cell on the line that position is reached along, where the twin's next
    line lacks the following token. Path cells of `line` and `earlier` are
    never overwritten, so every line stays traceable, and a plant that costs
    an earlier line a decoy position is rejected.

    Args:
        grid: The grid the line was traced on
        line: The line to enrich
        rng: Random source
        min_decoys: Required decoy positions (default: decoy_target(length))
        earlier: Lines already committed on `grid`

    Returns:
        The new grid and the line with `fallback` cleared, or the original
        grid and line unchanged if the target cannot be met
    """
    if min_decoys is None:
        min_decoys = decoy_target(line.length)

    protected = {cell for other in (*earlier, line) for cell in other.path}
    floors = [len(decoy_positions(grid, other)) for other in earlier]
    have = set(decoy_positions(grid, line))
    missing = [i for i in range(line.length - 1) if i not in have]
    rng.shuffle(missing)

    current = grid
    for i in missing:
        if len(have) >= min_decoys:
            break
        token, next_token = line.tokens[i], line.tokens[i + 1]
        # A twin's own next line would hold the next token
        if token == next_token:
            continue

        spots = [
            cell for cell in current.cells_along(flip(line.direction_at(i)), line.path[i])
            if cell not in protected and current.token_at(cell) != token
        ]
        rng.shuffle(spots)
        for spot in spots:
            trial = _with_token(current, spot, token)
            gained = set(decoy_positions(trial, line))
            if i not in gained or not have <= gained:
                continue
            if any(len(decoy_positions(trial, other)) < floor for other, floor in zip(earlier, floors)):
                continue
            current, have = trial, gained
            break

    if len(have) < min_decoys:
        return grid, line

    logger.debug("Planted decoys for a line of length %d (%d decoy steps)", line.length, len(have))
    return current, line.model_copy(update={"decoy_steps": len(have), "fallback": False})


def build_objective_lines(
    grid: Grid,
    length: LengthSpec,
    count: int,
    rng: Optional[random.Random] = None,
    attempts: int = MAX_ATTEMPTS,
    decoy_chance: float = DECOY_CHANCE,
    plant_attempts: int = PLANT_ATTEMPTS,
) -> Tuple[Grid, List[ObjectiveLine]]:
    """
    Build `count` objective lines over `grid`.

    The first line starts in row 0 moving along a column; every other line
    starts at a random cell with a random direction. When no walk meets the
    decoy target, decoys are planted along fresh simple walks.

    Returns:
        The grid with any planted decoys, and the lines traced on it
    """
    rng = rng or random.Random()
    lines: List[ObjectiveLine] = []

    for i in range(count):
        if i == 0:
            start = Cell(0, rng.randrange(grid.cols))
            start_direction: Direction = "column"
        else:
            start = Cell(rng.randrange(grid.rows), rng.randrange(grid.cols))
            start_direction = rng.choice(["column", "row"])

        size = pick_length(length, rng)
        line = build_tricky_line(
            grid,
            start,
            size,
            start_direction,
            rng,
            attempts=attempts,
            decoy_chance=decoy_chance,
        )

        if line.fallback:
            for _ in range(plant_attempts):
                planted_grid, planted = plant_decoys(grid, line, rng, earlier=lines)
                if not planted.fallback:
                    grid, line = planted_grid, planted
                    break
                line = build_simple_line(grid, start, size, start_direction, rng)

        lines.append(line)

    # Later plants can add decoys to earlier lines
    lines = [
        line.model_copy(update={"decoy_steps": len(decoy_positions(grid, line))})
        for line in lines
    ]

    fallbacks = sum(1 for line in lines if line.fallback)
    if fallbacks:
        logger.debug("%d of %d objective lines used the simple fallback", fallbacks, count)

    return grid, lines
