"""Grid and objective line generation for row/column hacking puzzles."""

from .models import Token, Direction, Cell, Grid, ObjectiveLine, CheckError, CheckResult, flip
from .tokens import make_token, LETTERS, NUMBERS, LETTER_CHANCE
from .grid import generate_grid
from .lines import (
    LengthSpec,
    MAX_ATTEMPTS,
    DECOY_CHANCE,
    PLANT_ATTEMPTS,
    pick_length,
    decoy_target,
    count_decoys,
    decoy_positions,
    plant_decoys,
    build_simple_line,
    build_tricky_line,
    build_objective_lines,
)
from .checks import check_puzzle, check_token_presence, check_path, is_traceable

__all__ = [
    # Models
    "Token",
    "Direction",
    "Cell",
    "Grid",
    "ObjectiveLine",
    "CheckError",
    "CheckResult",
    "flip",
    # Tokens and grid
    "make_token",
    "LETTERS",
    "NUMBERS",
    "LETTER_CHANCE",
    "generate_grid",
    # Lines
    "LengthSpec",
    "MAX_ATTEMPTS",
    "DECOY_CHANCE",
    "PLANT_ATTEMPTS",
    "pick_length",
    "decoy_target",
    "count_decoys",
    "decoy_positions",
    "plant_decoys",
    "build_simple_line",
    "build_tricky_line",
    "build_objective_lines",
    # Checks
    "check_puzzle",
    "check_token_presence",
    "check_path",
    "is_traceable",
]
