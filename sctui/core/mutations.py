"""Mutation state machine using transitions library.

One machine per user-triggered change (move, create, edit, take ownership,
branch, comment, create epic):

    idle -> open -> submitting -> applied | rejected

- open: a popup is showing; editing and validation happen here, no network.
- submitting: the optimistic change is in the model and the remote call is
  running. There is no way out except a result: cancel is only legal while open.
- applied / rejected: terminal; the board is back to browsing.

Take ownership has no form, so it goes straight from idle to submitting.

Usage:
    from sctui.core.mutations import MutationMachine

    machine = MutationMachine(Operation.MOVE, story_id=42)
    machine.open_form()
    machine.submit()
    machine.succeed()
"""

import logging
from dataclasses import dataclass
from typing import Any

from transitions import Machine

from sctui.core.events import Operation

logger = logging.getLogger(__name__)


STATES = ["idle", "open", "submitting", "applied", "rejected"]

# Transitions defined as (trigger, source, dest)
# Each trigger becomes a method on the machine
TRANSITIONS = [
    {"trigger": "open_form", "source": "idle", "dest": "open"},
    {"trigger": "cancel", "source": "open", "dest": "idle"},
    {"trigger": "submit", "source": "open", "dest": "submitting"},
    # Formless operations (take ownership)
    {"trigger": "dispatch", "source": "idle", "dest": "submitting"},
    # Remote outcome
    {"trigger": "succeed", "source": "submitting", "dest": "applied"},
    {"trigger": "fail", "source": "submitting", "dest": "rejected"},
]


@dataclass
class PendingMutation:
    """An optimistic change waiting for the remote verdict.

    previous_value is what gets restored on failure.
    """
    story_id: int | None  # None for changes that are not about one story
    field: str
    previous_value: Any
    new_value: Any
    correlation_id: str
    operation: Operation


class MutationMachine:
    """State machine for a single user-triggered change.

    Wraps the transitions library with mutation-specific bookkeeping:
    - Holds the PendingMutation while submitting
    - Logs all transitions
    """

    def __init__(self, operation: Operation, story_id: int | None = None):
        """
        Args:
            operation: Which change this machine drives
            story_id: Story being changed (None for create until the optimistic insert)
        """
        self.operation = operation
        self.story_id = story_id
        self.pending: PendingMutation | None = None
        self.error: Exception | None = None

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial="idle",
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",  # Callback after any transition
        )

    @property
    def label(self) -> str:
        target = f"#{self.story_id}" if self.story_id is not None else "new"
        return f"{self.operation.value}:{target}"

    @property
    def in_flight(self) -> bool:
        return self.state == "submitting"

    def on_state_change(self, event) -> None:
        """Callback after any state transition."""
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.info(f"[FSM] {self.label}: {from_state} -> {to_state} ({trigger})")

    def begin(self, pending: PendingMutation) -> None:
        """Enter submitting with the given pending change (from open or idle)."""
        self.pending = pending
        self.story_id = pending.story_id
        if self.state == "open":
            self.submit()
        else:
            self.dispatch()

    def resolve(self, error: Exception | None = None) -> PendingMutation | None:
        """Consume the pending change and finish as applied or rejected."""
        pending, self.pending = self.pending, None
        if error is None:
            self.succeed()
        else:
            self.error = error
            self.fail()
        return pending
