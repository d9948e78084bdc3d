"""Grid generation."""

import random
from typing import Optional

from .models import Grid
from .tokens import make_token, LETTER_CHANCE


def generate_grid(
    rows: int,
    cols: int,
    rng: Optional[random.Random] = None,
    letter_chance: float = LETTER_CHANCE,
) -> Grid:
    """
    Fill a rows x cols grid with independently drawn tokens.

    Duplicates are allowed anywhere; decoys depend on them.

    Raises:
        ValueError: If either dimension is not positive
    """
    if rows < 1 or cols < 1:
        raise ValueError(f"Grid dimensions must be positive, got {rows}x{cols}")

    rng = rng or random.Random()
    return Grid(cells=[
        [make_token(rng, letter_chance) for _ in range(cols)]
        for _ in range(rows)
    ])

