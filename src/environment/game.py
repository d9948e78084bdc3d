import random
from typing import Optional

from .models import Difficulty, DIFFICULTIES, GameConfig, Puzzle
from ..generator import generate_grid, build_objective_lines


def create_puzzle(
    difficulty: Difficulty,
    rng: Optional[random.Random] = None,
    config: Optional[GameConfig] = None,
) -> Puzzle:
    """
    Generate a fresh grid and objective lines for a difficulty.

    Args:
        difficulty: One of "easy", "medium", "hard"
        rng: Random source (a new unseeded one if not given)
        config: Optional generation tuning (attempts, decoy and letter chances)

    Returns:
        A Puzzle at rest

    Raises:
        ValueError: If the difficulty is unknown
    """
    if difficulty not in DIFFICULTIES:
        raise ValueError(
            f"Unknown difficulty '{difficulty}' (expected one of {', '.join(DIFFICULTIES)})"
        )

    rng = rng or random.Random()
    config = (config or GameConfig()).model_copy(update={"difficulty": difficulty})
    preset = config.difficulty_config

    grid = generate_grid(preset.rows, preset.cols, rng, letter_chance=config.letter_chance)
    grid, lines = build_objective_lines(
        grid,
        preset.length,
        preset.line_count,
        rng,
        attempts=config.max_attempts,
        decoy_chance=config.decoy_chance,
    )
    return Puzzle(difficulty=difficulty, grid=grid, lines=lines)
