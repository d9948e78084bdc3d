import random
from typing import List

from .models import Token


LETTERS: List[str] = ["A", "C", "E", "F", "X", "8"]
NUMBERS: List[str] = ["1", "2", "3", "4", "5", "6", "7", "8", "9"]

# Share of tokens that are letter+digit; the rest are digit+digit (like "85")
LETTER_CHANCE = 0.75


def make_token(rng: random.Random, letter_chance: float = LETTER_CHANCE) -> Token:
    """Draw a single two-character token."""
    if rng.random() < letter_chance:
        return f"{rng.choice(LETTERS)}{rng.choice(NUMBERS)}"
    return f"{rng.choice(NUMBERS)}{rng.choice(NUMBERS)}"
