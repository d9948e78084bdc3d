"""
Puzzle checks for generated grids and objective lines.

Validates:
1. Token presence (every objective token exists somewhere on the grid)
2. Path consistency (recorded path cells hold the line's tokens)
3. Alternation (each move runs along the expected column or row)
4. Traceability from tokens alone (a connecting move exists for every pair)
5. Entry (the first line starts in row 0 moving along a column)
6. Length (line lengths match the difficulty's length spec)
"""

from typing import List, Optional

from .models import Grid, ObjectiveLine, CheckError, CheckResult, Direction, flip
from .lines import LengthSpec


def check_token_presence(grid: Grid, lines: List[ObjectiveLine]) -> List[CheckError]:
    """Every token of every line must appear on the grid."""
    errors: List[CheckError] = []
    for li, line in enumerate(lines):
        for ti, token in enumerate(line.tokens):
            if not grid.has_token(token):
                errors.append(CheckError(
                    code="TOKEN_NOT_ON_GRID",
                    message=f"Token '{token}' of line {li} (index {ti}) not found on grid",
                    line=li,
                    index=ti,
                ))
    return errors


def check_path(grid: Grid, line: ObjectiveLine, line_index: int) -> List[CheckError]:
    """Check the recorded path against the tokens and the alternation rule."""
    errors: List[CheckError] = []

    if len(line.path) != line.length:
        errors.append(CheckError(
            code="PATH_LENGTH_MISMATCH",
            message=f"Line {line_index} has {line.length} tokens but {len(line.path)} path cells",
            line=line_index,
        ))
        return errors

    for i, cell in enumerate(line.path):
        if not grid.contains(cell.row, cell.col):
            errors.append(CheckError(
                code="OUT_OF_BOUNDS",
                message=f"Line {line_index} path cell {tuple(cell)} is outside the grid",
                line=line_index,
                index=i,
            ))
            return errors
        if grid.token_at(cell) != line.tokens[i]:
            errors.append(CheckError(
                code="PATH_TOKEN_MISMATCH",
                message=(
                    f"Line {line_index} index {i}: path cell {tuple(cell)} holds "
                    f"'{grid.token_at(cell)}', expected '{line.tokens[i]}'"
                ),
                line=line_index,
                index=i,
            ))

    for i in range(line.length - 1):
        direction = line.direction_at(i)
        if line.path[i + 1] not in grid.cells_along(direction, line.path[i]):
            errors.append(CheckError(
                code="BROKEN_ALTERNATION",
                message=(
                    f"Line {line_index} step {i}: {tuple(line.path[i + 1])} is not on the "
                    f"{direction} through {tuple(line.path[i])}"
                ),
                line=line_index,
                index=i,
            ))

    return errors


def is_traceable(grid: Grid, tokens: List[str], start_direction: Direction) -> bool:
    """
    Check that consecutive tokens can be connected by alternating moves.

    Tracks every cell that can hold token i at the end of a valid walk, so a
    line passes only if one continuous walk exists.
    """
    reachable = set(grid.cells_with_token(tokens[0]))
    direction = start_direction
    for token in tokens[1:]:
        reachable = {
            nxt
            for cell in reachable
            for nxt in grid.cells_along(direction, cell)
            if grid.token_at(nxt) == token
        }
        if not reachable:
            return False
        direction = flip(direction)
    return bool(reachable)


def check_length(line: ObjectiveLine, line_index: int, length: LengthSpec) -> List[CheckError]:
    low, high = (length, length) if isinstance(length, int) else length
    if low <= line.length <= high:
        return []
    return [CheckError(
        code="LENGTH_OUT_OF_RANGE",
        message=f"Line {line_index} has length {line.length}, expected {low}-{high}",
        line=line_index,
    )]


def check_puzzle(
    grid: Grid,
    lines: List[ObjectiveLine],
    length: Optional[LengthSpec] = None,
) -> CheckResult:
    """
    Main check function: validates a generated puzzle.

    Returns a CheckResult with:
    - valid: True if every check passes
    - errors: List of check errors
    - lines_checked: Number of lines inspected
    - fallback_lines: Number of lines built without the decoy guarantee
    """
    errors: List[CheckError] = []

    if not lines:
        errors.append(CheckError(code="NO_LINES", message="Puzzle has no objective lines"))
        return CheckResult(valid=False, errors=errors)

    errors.extend(check_token_presence(grid, lines))

    first = lines[0]
    if first.start_direction != "column" or (first.path and first.path[0].row != 0):
        errors.append(CheckError(
            code="ENTRY_NOT_ROW_ZERO",
            message="First line must start in row 0 and move along a column",
            line=0,
        ))

    for li, line in enumerate(lines):
        errors.extend(check_path(grid, line, li))
        if not is_traceable(grid, line.tokens, line.start_direction):
            errors.append(CheckError(
                code="NOT_TRACEABLE",
                message=f"Line {li} cannot be traced with alternating moves",
                line=li,
            ))
        if length is not None:
            errors.extend(check_length(line, li, length))

    return CheckResult(
        valid=len(errors) == 0,
        errors=errors,
        lines_checked=len(lines),
        fallback_lines=sum(1 for line in lines if line.fallback),
    )
