"""Tests for sctui.core.mutations module."""

import pytest
from transitions import MachineError

from sctui.core.events import Operation
from sctui.core.mutations import STATES, TRANSITIONS, MutationMachine, PendingMutation


def _pending(story_id: int = 42, operation: Operation = Operation.MOVE) -> PendingMutation:
    return PendingMutation(
        story_id=story_id,
        field="workflow_state_id",
        previous_value=10,
        new_value=20,
        correlation_id="abc123",
        operation=operation,
    )


class TestMachineDefinition:

    def test_all_states_defined(self):
        assert set(STATES) == {"idle", "open", "submitting", "applied", "rejected"}

    def test_every_transition_uses_known_states(self):
        for t in TRANSITIONS:
            assert t["source"] in STATES
            assert t["dest"] in STATES


class TestMutationMachine:
    """Lifecycle of a single change."""

    def test_starts_idle(self):
        machine = MutationMachine(Operation.MOVE, 42)
        assert machine.state == "idle"

    def test_open_then_cancel(self):
        machine = MutationMachine(Operation.EDIT, 42)
        machine.open_form()
        assert machine.state == "open"
        machine.cancel()
        assert machine.state == "idle"

    def test_happy_path(self):
        machine = MutationMachine(Operation.MOVE, 42)
        machine.open_form()
        machine.begin(_pending())
        assert machine.in_flight is True
        pending = machine.resolve()
        assert pending.story_id == 42
        assert machine.state == "applied"
        assert machine.pending is None

    def test_failure_records_error(self):
        machine = MutationMachine(Operation.MOVE, 42)
        machine.open_form()
        machine.begin(_pending())
        error = RuntimeError("nope")
        machine.resolve(error)
        assert machine.state == "rejected"
        assert machine.error is error

    def test_formless_dispatch(self):
        """Take ownership skips the open phase."""
        machine = MutationMachine(Operation.TAKE_OWNERSHIP, 42)
        machine.begin(_pending(operation=Operation.TAKE_OWNERSHIP))
        assert machine.state == "submitting"

    def test_cannot_cancel_while_submitting(self):
        machine = MutationMachine(Operation.MOVE, 42)
        machine.open_form()
        machine.begin(_pending())
        with pytest.raises(MachineError):
            machine.cancel()
        assert machine.in_flight is True

    def test_no_auto_transitions(self):
        machine = MutationMachine(Operation.MOVE, 42)
        assert not hasattr(machine, "to_applied")

    def test_create_gets_story_id_on_begin(self):
        machine = MutationMachine(Operation.CREATE)
        assert machine.label == "create:new"
        machine.open_form()
        machine.begin(_pending(story_id=-1, operation=Operation.CREATE))
        assert machine.story_id == -1
        assert machine.label == "create:#-1"

    def test_transitions_are_logged(self, caplog):
        machine = MutationMachine(Operation.COMMENT, 7)
        with caplog.at_level("INFO"):
            machine.open_form()
        assert "[FSM] comment:#7: idle -> open (open_form)" in caplog.text
