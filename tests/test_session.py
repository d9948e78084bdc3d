"""
Test suite for the pick-processing state machine.

Covers:
- Constraint checks (entry row, same column, same row) and alternation
- Simultaneous advancement and cohort formation/resolution
- Divergence soft resets vs counted faults
- Completed-line immunity
- Terminal states (won, fault limit, timeout) and stop/resume
- Read-only hover queries
"""

import pytest

from src.environment import GameSession, GameState
from src.generator import Grid, ObjectiveLine, Cell


EASY_CELLS = [
    ["A1", "C2"],
    ["E3", "F4"],
]

# Column 0 holds A1, X4, 85 so an entry pick on (0, 0) can be followed by
# three different tokens in the same column.
CELLS_3X3 = [
    ["A1", "C2", "E3"],
    ["X4", "A1", "F5"],
    ["85", "C2", "E6"],
]


def make_session(cells, lines, **kwargs) -> GameSession:
    return GameSession(
        grid=Grid(cells=cells),
        lines=[ObjectiveLine(tokens=tokens) for tokens in lines],
        **kwargs
    )


def play(session: GameSession, *cells) -> GameState:
    state = session.start()
    for row, col in cells:
        state = session.pick(state, row, col)
    return state


class TestStart:
    """Test the fresh state produced by start()."""

    def test_start_state(self):
        """A fresh state is running at the entry row with nothing matched."""
        session = make_session(EASY_CELLS, [["A1", "F4"], ["C2", "F4"]])
        state = session.start()
        assert state.status == "running"
        assert state.constraint == "entry_row"
        assert state.line_progress == [0, 0]
        assert state.faults == 0
        assert state.time_left == 150
        assert state.last_position is None
        assert state.active_line is None
        assert state.cohort is None

    def test_custom_budget(self):
        """Timer budget comes from the session."""
        session = make_session(EASY_CELLS, [["A1"]], timer_seconds=30)
        assert session.start().time_left == 30


class TestConstraint:
    """Test the row/column legality check."""

    def test_entry_row_only_row_zero(self):
        """Before the first pick only row 0 is allowed."""
        session = make_session(EASY_CELLS, [["A1", "E3"]])
        state = session.start()
        assert session.allowed(state, 0, 0)
        assert session.allowed(state, 0, 1)
        assert not session.allowed(state, 1, 0)
        assert not session.allowed(state, 1, 1)

    def test_outside_grid_not_allowed(self):
        """Coordinates outside the grid are never allowed."""
        session = make_session(EASY_CELLS, [["A1", "E3"]])
        state = session.start()
        assert not session.allowed(state, 0, 5)
        assert not session.allowed(state, -1, 0)

    def test_alternation(self):
        """Constraint goes entry -> column -> row -> column."""
        session = make_session(CELLS_3X3, [["A1", "X4", "F5", "E3"]])
        state = session.start()

        state = session.pick(state, 0, 0)
        assert state.constraint == "same_column"
        assert session.allowed(state, 2, 0)
        assert not session.allowed(state, 0, 1)

        state = session.pick(state, 1, 0)
        assert state.constraint == "same_row"
        assert session.allowed(state, 1, 2)
        assert not session.allowed(state, 2, 0)

        state = session.pick(state, 1, 2)
        assert state.constraint == "same_column"
        assert state.line_progress == [3]

    def test_fault_still_toggles(self):
        """A fault counts as a move for alternation."""
        session = make_session(EASY_CELLS, [["C2", "F4"]])
        state = play(session, (0, 0))
        assert state.faults == 1
        assert state.constraint == "same_column"
        assert state.last_position == Cell(0, 0)


class TestEasyScenario:
    """The 2x2 walkthrough: correct pick, locked pick, fault."""

    def test_walkthrough(self):
        """A1 advances, F4 is locked out, E3 diverges the line and is a fault."""
        session = make_session(EASY_CELLS, [["A1", "F4"]])
        state = session.start()

        state = session.pick(state, 0, 0)
        assert state.line_progress == [1]
        assert state.constraint == "same_column"
        assert state.last_position == Cell(0, 0)
        assert state.active_line == 0

        locked = session.pick(state, 1, 1)
        assert locked is state
        assert locked.faults == 0

        state = session.pick(state, 1, 0)
        assert state.faults == 1
        assert state.line_progress == [0]
        assert state.constraint == "same_row"
        assert state.last_pick.outcome == "fault"
        assert state.last_pick.diverged == 0
        assert state.message == "Wrong token."

    def test_win(self):
        """Matching every token of every line wins immediately."""
        session = make_session(EASY_CELLS, [["A1", "E3"]])
        state = play(session, (0, 0), (1, 0))
        assert state.status == "won"
        assert state.message == "Hack complete!"
        assert session.lines_done(state) == 1

    def test_pick_after_win_ignored(self):
        """Terminal states reject further picks."""
        session = make_session(EASY_CELLS, [["A1", "E3"]])
        state = play(session, (0, 0), (1, 0))
        assert session.pick(state, 1, 1) is state


class TestSimultaneousAdvancement:
    """Test that a shared next token advances every matching line."""

    def test_shared_token_advances_all(self):
        """One pick advances both lines and forms a cohort."""
        session = make_session(CELLS_3X3, [["A1", "X4"], ["A1", "85", "C2"]])
        state = play(session, (0, 0))
        assert state.line_progress == [1, 1]
        assert state.cohort == {0, 1}
        assert state.active_line == 1
        assert state.last_pick.advanced == [0, 1]

    def test_same_cell_repeat(self):
        """Picking the same cell again is evaluated like any other pick."""
        session = make_session(CELLS_3X3, [["A1", "A1", "C2"]])
        state = play(session, (0, 0), (0, 0))
        assert state.line_progress == [2]
        assert state.faults == 0
        assert state.constraint == "same_row"


class TestCohortResolution:
    """Test cohort nullification when shared progress splits."""

    def test_survivor_nullifies_other_member(self):
        """Advancing only the active member drops the other to 0."""
        session = make_session(CELLS_3X3, [["A1", "X4"], ["A1", "85", "C2"]])
        state = play(session, (0, 0), (2, 0))
        assert state.line_progress == [0, 2]
        assert state.cohort is None
        assert state.last_pick.nullified == [0]
        assert state.last_pick.diverged is None
        assert state.faults == 0

    def test_survivor_that_is_not_active(self):
        """Advancing only the non-active member resets the other one."""
        session = make_session(CELLS_3X3, [["A1", "X4", "F5"], ["A1", "85", "C2"]])
        state = play(session, (0, 0), (1, 0))
        assert state.line_progress == [2, 0]
        assert state.cohort is None
        assert state.active_line == 0

    def test_three_member_cohort(self):
        """Every member other than the survivor is dropped."""
        session = make_session(
            CELLS_3X3,
            [["A1", "X4", "F5"], ["A1", "85", "C2"], ["A1", "C2"]],
        )
        state = play(session, (0, 0))
        assert state.cohort == {0, 1, 2}

        state = session.pick(state, 1, 0)
        assert state.line_progress == [2, 0, 0]
        assert state.last_pick.diverged == 2
        assert state.last_pick.nullified == [1]
        assert state.cohort is None

    def test_unrelated_single_advance_clears_cohort(self):
        """A single advance by a line outside the cohort clears it without nullifying."""
        session = make_session(CELLS_3X3, [["A1", "X4"], ["A1", "X4", "C2"], ["85", "C2"]])
        state = play(session, (0, 0))
        assert state.cohort == {0, 1}

        state = session.pick(state, 2, 0)
        # Line 1 was active and diverged; line 0 keeps its progress
        assert state.line_progress == [1, 0, 1]
        assert state.cohort is None
        assert state.last_pick.nullified == []

    def test_cohort_includes_newly_started_line(self):
        """Cohort is exactly the set of lines advanced by the last pick."""
        cells = [
            ["A1", "C2", "E3"],
            ["X4", "A1", "F5"],
            ["X4", "C2", "E6"],
        ]
        session = make_session(cells, [["A1", "X4", "E6"], ["A1", "X4", "F5"], ["X4", "C2"]])
        state = play(session, (0, 0), (1, 0))
        # X4 advances lines 0 and 1 (cohort) and starts line 2
        assert state.line_progress == [2, 2, 1]
        assert state.cohort == {0, 1, 2}

    def test_cohort_recomputed_each_pick(self):
        """A new shared advance replaces the previous cohort."""
        session = make_session(
            CELLS_3X3,
            [["A1", "X4", "F5"], ["A1", "X4", "A1"], ["A1", "85"]],
        )
        state = play(session, (0, 0))
        assert state.cohort == {0, 1, 2}
        state = session.pick(state, 1, 0)
        assert state.cohort == {0, 1}
        assert state.line_progress == [2, 2, 0]


class TestDivergence:
    """Test the no-fault soft reset of the active line."""

    def test_divergence_is_not_a_fault(self):
        """Leaving the active route for another line's token costs no fault."""
        session = make_session(CELLS_3X3, [["A1", "X4"], ["85", "C2"]])
        state = play(session, (0, 0))
        assert state.line_progress == [1, 0]

        state = session.pick(state, 2, 0)
        assert state.line_progress == [0, 1]
        assert state.faults == 0
        assert state.active_line == 1
        assert state.last_pick.outcome == "correct"
        assert state.last_pick.diverged == 0

    def test_divergence_then_fault(self):
        """A token matching nothing resets the active line and counts a fault."""
        session = make_session(CELLS_3X3, [["A1", "X4"], ["C2", "F5"]])
        state = play(session, (0, 0), (2, 0))
        assert state.line_progress == [0, 0]
        assert state.faults == 1
        assert state.active_line is None


class TestFaultTargeting:
    """Test that faults only penalize the active line."""

    def test_fault_diverges_only_active_line(self):
        """The active line is reset through divergence; other lines keep progress."""
        session = make_session(CELLS_3X3, [["A1", "X4"], ["A1", "85", "C2"]])
        state = play(session, (0, 0))
        assert state.active_line == 1

        # A1 again: neither line needs it
        state = session.pick(state, 0, 0)
        assert state.faults == 1
        assert state.line_progress == [1, 0]
        assert state.cohort is None
        assert state.last_pick.outcome == "fault"
        assert state.last_pick.diverged == 1

    def test_fault_without_active_line(self):
        """A first-pick fault touches no line."""
        session = make_session(EASY_CELLS, [["C2", "F4"], ["C2", "E3"]])
        state = play(session, (0, 0))
        assert state.faults == 1
        assert state.line_progress == [0, 0]
        assert state.last_pick.diverged is None

    def test_fault_keeps_completed_active_line(self):
        """A fault after finishing the active line neither resets nor clears it."""
        session = make_session(CELLS_3X3, [["A1"], ["E3", "E6"]])
        state = play(session, (0, 0), (2, 0))
        assert state.faults == 1
        assert state.line_progress == [1, 0]
        assert state.active_line == 0
        assert state.last_pick.diverged is None


class TestCompletedLineImmunity:
    """Completed lines never lose progress."""

    def test_fault_and_divergence_spare_completed_line(self):
        """A completed cohort member survives later faults."""
        session = make_session(CELLS_3X3, [["A1"], ["A1", "X4"], ["E3", "E6"]])
        state = play(session, (0, 0))
        assert state.line_progress == [1, 1, 0]

        state = session.pick(state, 2, 0)
        assert state.faults == 1
        assert state.line_progress[0] == 1

        state = session.pick(state, 2, 2)
        assert state.faults == 2
        assert state.line_progress[0] == 1

    def test_nullification_spares_completed_member(self):
        """Cohort resolution does not reset a member that already finished."""
        session = make_session(CELLS_3X3, [["A1"], ["A1", "X4"], ["E3", "E6"]])
        state = play(session, (0, 0), (1, 0))
        assert state.line_progress == [1, 2, 0]
        assert state.last_pick.nullified == []

    def test_completed_line_is_not_a_candidate(self):
        """A finished line is never advanced again."""
        session = make_session(CELLS_3X3, [["A1"], ["X4", "A1"]])
        state = play(session, (0, 0))
        assert session.candidate_lines(state, "A1") == []
        assert session.needed_token(state, 0) is None


class TestTerminalStates:
    """Test fault limit, timeout, and stop/resume."""

    def test_fault_limit(self):
        """Reaching the fault cap fails the run."""
        session = make_session(EASY_CELLS, [["F4", "F4"]])
        state = play(session, (0, 0), (1, 0), (1, 0), (0, 0), (0, 0))
        assert state.faults == 5
        assert state.status == "failed"
        assert state.fail_reason == "fault_limit"
        assert state.message == "Too many faults."
        assert session.pick(state, 0, 1) is state

    def test_custom_fault_cap(self):
        """The cap comes from the session."""
        session = make_session(EASY_CELLS, [["F4", "F4"]], faults_max=2)
        state = play(session, (0, 0), (1, 0))
        assert state.status == "failed"

    def test_timeout(self):
        """Counting down to zero fails the run."""
        session = make_session(EASY_CELLS, [["A1", "E3"]], timer_seconds=3)
        state = session.start()
        for _ in range(2):
            state = session.tick(state)
        assert state.status == "running"
        assert state.time_left == 1

        state = session.tick(state)
        assert state.status == "failed"
        assert state.fail_reason == "timeout"
        assert state.time_left == 0
        assert session.pick(state, 0, 0) is state

    def test_late_tick_ignored(self):
        """Ticks after a terminal state change nothing."""
        session = make_session(EASY_CELLS, [["A1", "E3"]])
        state = play(session, (0, 0), (1, 0))
        assert session.tick(state) is state

    def test_tick_does_not_mutate_input(self):
        """Transitions return new values."""
        session = make_session(EASY_CELLS, [["A1", "E3"]])
        state = session.start()
        ticked = session.tick(state)
        assert state.time_left == 150
        assert ticked.time_left == 149

    def test_stop_and_resume(self):
        """A paused run ignores picks and ticks until resumed."""
        session = make_session(EASY_CELLS, [["A1", "E3"]])
        state = play(session, (0, 0))
        paused = session.stop(state)
        assert paused.status == "paused"
        assert paused.line_progress == [1]
        assert session.pick(paused, 1, 0) is paused
        assert session.tick(paused) is paused

        resumed = session.resume(paused)
        assert resumed.status == "running"
        assert session.pick(resumed, 1, 0).status == "won"


class TestHoverQueries:
    """Test the read-only next-needed-token query."""

    def test_next_needed_token(self):
        """Only allowed cells that advance a line report their token."""
        session = make_session(EASY_CELLS, [["A1", "E3"]])
        state = session.start()
        assert session.next_needed_token(state, 0, 0) == "A1"
        assert session.next_needed_token(state, 0, 1) is None
        assert session.next_needed_token(state, 1, 0) is None

    def test_not_running(self):
        """Nothing is highlighted outside a running session."""
        session = make_session(EASY_CELLS, [["A1", "E3"]])
        state = session.stop(session.start())
        assert session.next_needed_token(state, 0, 0) is None

    def test_query_is_idempotent(self):
        """Repeated queries never change the state."""
        session = make_session(CELLS_3X3, [["A1", "X4"], ["A1", "85"]])
        state = play(session, (0, 0))
        before = state.model_copy(deep=True)
        for _ in range(10):
            for row in range(3):
                for col in range(3):
                    session.next_needed_token(state, row, col)
        assert state == before

    def test_cells_with_token(self):
        """Objective hover lists every matching cell."""
        session = make_session(CELLS_3X3, [["A1"]])
        assert session.cells_with_token("C2") == [Cell(0, 1), Cell(2, 1)]
        assert session.cells_with_token("ZZ") == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
