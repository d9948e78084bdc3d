"""Plain-text rendering of a hacking session for the terminal."""

from typing import List, Optional

from ..environment.models import GameState
from ..environment.session import GameSession


CONSTRAINT_LABELS = {
    "entry_row": "top row",
    "same_column": "column",
    "same_row": "row",
}


def format_time(seconds: int) -> str:
    """Format a countdown as m:ss, clamped at zero."""
    seconds = max(0, seconds)
    return f"{seconds // 60}:{seconds % 60:02d}"


def render_grid(session: GameSession, state: Optional[GameState] = None) -> str:
    """
    Render the grid with row/column indexes.

    While running, cells outside the constraint are dimmed to '..' and the
    last accepted pick is bracketed ('[A1]' when correct, '!A1!' on a fault).
    """
    grid = session.grid
    running = state is not None and state.is_running
    last = state.last_pick if state is not None else None

    header = "    " + " ".join(f"{c:^4}" for c in range(grid.cols))
    lines = [header]
    for r, row in enumerate(grid.cells):
        cells = []
        for c, token in enumerate(row):
            text = f" {token} "
            if running and not session.allowed(state, r, c):
                text = " .. "
            if last is not None and last.cell == (r, c):
                text = f"[{token}]" if last.outcome == "correct" else f"!{token}!"
            cells.append(text)
        lines.append(f"{r:>2}  " + " ".join(cells))
    return '\n'.join(lines)


def render_objectives(session: GameSession, state: Optional[GameState] = None) -> str:
    """Render each objective line; matched tokens are shown in lowercase."""
    lines: List[str] = []
    for i, line in enumerate(session.lines):
        progress = state.line_progress[i] if state is not None else 0
        tokens = [
            token.lower() if j < progress else token
            for j, token in enumerate(line.tokens)
        ]
        marker = ">" if state is not None and state.active_line == i else " "
        done = " done" if progress >= line.length else ""
        lines.append(f"{marker} {i}: {' '.join(tokens)}  ({progress}/{line.length}){done}")
    return '\n'.join(lines)


def render_hud(session: GameSession, state: Optional[GameState] = None) -> str:
    """One-line summary: lines done, faults, constraint and time."""
    if state is None:
        return (
            f"Grid {session.grid.rows}x{session.grid.cols} | "
            f"Lines 0/{len(session.lines)} | Faults 0/{session.faults_max} | "
            f"Time {format_time(session.timer_seconds)}"
        )
    return (
        f"Grid {session.grid.rows}x{session.grid.cols} | "
        f"Lines {session.lines_done(state)}/{len(session.lines)} | "
        f"Faults {state.faults}/{session.faults_max} | "
        f"Constraint {CONSTRAINT_LABELS[state.constraint]} | "
        f"Time {format_time(state.time_left)} | {state.status}"
    )


def render_session(session: GameSession, state: Optional[GameState] = None) -> str:
    """Full board: HUD, grid, objectives and any transient message."""
    parts = [render_hud(session, state), "", render_grid(session, state), "", render_objectives(session, state)]
    if state is not None and state.message:
        parts.extend(["", state.message])
    return '\n'.join(parts)
