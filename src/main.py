"""
Main entry point for playing a row/column hacking puzzle in the terminal.

Usage:
    python -m src.main --difficulty medium
    python -m src.main --config config.yaml --output results/run1.json --verbose
    python -m src.main --difficulty hard --seed 7 --check
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

import yaml

from .environment import HackingGame, GameConfig, DIFFICULTIES
from .generator import check_puzzle
from .utils.grid_visualizer import render_session
from .utils.logger_config import configure_logging


HELP = """Commands:
  start              start the timer on the current grid
  pick R C  (or R C) pick the cell at row R, column C
  hint R C           show which objective token the cell would advance
  find TOKEN         list the cells holding TOKEN
  stop / resume      pause and continue
  new                new grid and objectives, same difficulty
  difficulty LEVEL   easy | medium | hard
  show               print the board
  quit               end the session"""


def load_config(config_path: str) -> GameConfig:
    """Load game configuration from a YAML file."""
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return GameConfig(**data)


def handle_command(game: HackingGame, text: str) -> Optional[str]:
    """
    Apply one command to the game.

    Returns:
        Text to print, or None when the session should end

    Raises:
        ValueError: For malformed commands or invalid game actions
    """
    game.poll_timer()
    parts = text.strip().split()
    if not parts:
        return ""

    command, args = parts[0].lower(), parts[1:]
    if command.isdigit():
        command, args = "pick", parts

    if command in ("quit", "exit", "q"):
        return None
    if command in ("help", "?"):
        return HELP
    if command == "show":
        return render_session(game.session, game.state)
    if command == "start":
        game.start()
        return render_session(game.session, game.state)
    if command == "stop":
        game.stop()
        return "Stopped."
    if command == "resume":
        game.resume()
        return render_session(game.session, game.state)
    if command == "new":
        game.new_setup()
        return render_session(game.session, game.state)
    if command == "difficulty":
        if len(args) != 1 or args[0].lower() not in DIFFICULTIES:
            raise ValueError(f"Usage: difficulty {'|'.join(DIFFICULTIES)}")
        game.select_difficulty(args[0].lower())
        return render_session(game.session, game.state)
    if command == "find":
        if len(args) != 1:
            raise ValueError("Usage: find TOKEN")
        cells = game.cells_with_token(args[0].upper())
        return ", ".join(f"({c.row}, {c.col})" for c in cells) or "Not on the grid."
    if command in ("pick", "hint"):
        if len(args) != 2 or not all(a.isdigit() for a in args):
            raise ValueError(f"Usage: {command} ROW COL")
        row, col = int(args[0]), int(args[1])
        if command == "hint":
            token = game.next_needed_token(row, col)
            return f"Advances {token}" if token else "Advances nothing."
        if game.state is None or not game.state.is_running:
            return "Not running. Type 'start' first."
        before = game.state
        game.pick(row, col)
        if game.state is before:
            return "Locked: that cell is outside the current row/column."
        return render_session(game.session, game.state)

    raise ValueError(f"Unknown command '{command}' (type 'help')")


def main():
    parser = argparse.ArgumentParser(
        description="Play a row/column hacking puzzle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example config.yaml:
  difficulty: hard
  seed: 42
  timer_seconds: 150
  faults_max: 5
        """
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to YAML configuration file"
    )
    parser.add_argument(
        "--difficulty", "-d",
        choices=list(DIFFICULTIES),
        help="Difficulty (overrides the config file)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible puzzles (overrides the config file)"
    )
    parser.add_argument(
        "--output", "-o",
        help="Path to save the run result as JSON"
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Check the generated puzzle and exit"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log game events to stderr"
    )

    args = parser.parse_args()
    configure_logging("INFO" if args.verbose else "WARNING")

    try:
        config = load_config(args.config) if args.config else GameConfig()
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    overrides = {}
    if args.difficulty:
        overrides["difficulty"] = args.difficulty
    if args.seed is not None:
        overrides["seed"] = args.seed
    if overrides:
        config = config.model_copy(update=overrides)

    game = HackingGame.create(config=config)

    if args.check:
        result = check_puzzle(game.puzzle.grid, game.puzzle.lines, config.difficulty_config.length)
        print(render_session(game.session))
        print()
        print(f"Lines checked: {result.lines_checked} ({result.fallback_lines} fallback)")
        for err in result.errors:
            print(f"  - {err.code}: {err.message}")
        print("✓ Puzzle is valid" if result.valid else "✗ Puzzle has errors")
        return 0 if result.valid else 1

    print(render_session(game.session))
    print()
    print("Type 'start' to begin, 'help' for commands.")

    while True:
        try:
            text = input("> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break

        try:
            output = handle_command(game, text)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            continue

        if output is None:
            break
        if output:
            print(output)

    if args.output:
        game.save_result(args.output)
        print(f"Results saved to: {args.output}")

    # Print summary
    state = game.get_state()
    print()
    print("=== Session Summary ===")
    print(f"Status: {state['status']}")
    print(f"Lines done: {state['lines_done']}/{state['lines_total']}")
    print(f"Faults: {state['faults']}/{state['faults_max']}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
