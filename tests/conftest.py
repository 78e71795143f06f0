"""Shared fixtures: a small board and a worker pool tests can drive by hand."""

from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest

from sctui.api.client import ShortcutClient
from sctui.api.models import Member, Story, StoryType, WorkflowState
from sctui.core.dispatcher import Dispatcher
from sctui.core.events import CallResult, Operation
from sctui.core.model import RecordModel
from sctui.core.pagination import PaginationEngine, PaginationState

BACKLOG, IN_PROGRESS, DONE = 10, 20, 30

ME = Member(id="u-me", name="Pat Doe", mention_name="pat")
OTHER = Member(id="u-other", name="Sam Roe", mention_name="sam")


def make_story(story_id: int, state_id: int = BACKLOG, name: str | None = None, **kwargs) -> Story:
    return Story(
        id=story_id,
        name=name or f"Story {story_id}",
        story_type=kwargs.pop("story_type", StoryType.FEATURE),
        workflow_state_id=state_id,
        **kwargs,
    )


def make_states() -> list[WorkflowState]:
    return [
        WorkflowState(id=DONE, name="Done", position=3, state_type="done"),
        WorkflowState(id=BACKLOG, name="Backlog", position=1),
        WorkflowState(id=IN_PROGRESS, name="In Progress", position=2, state_type="started"),
    ]


@dataclass
class FakeCall:
    correlation_id: str
    operation: Operation
    fn: object
    args: tuple
    kwargs: dict


class FakeWorkers:
    """Stands in for WorkerPool; calls stay queued until a test resolves them."""

    def __init__(self):
        self.calls: list[FakeCall] = []
        self._results: list[CallResult] = []

    @property
    def in_flight(self) -> int:
        return len(self.calls)

    def submit(self, correlation_id, operation, fn, *args, **kwargs):
        self.calls.append(FakeCall(correlation_id, operation, fn, args, kwargs))

    def complete(self, index: int = 0, value=None) -> FakeCall:
        call = self.calls.pop(index)
        self._results.append(CallResult(call.correlation_id, call.operation, value=value))
        return call

    def fail(self, index: int = 0, error: Exception | None = None) -> FakeCall:
        call = self.calls.pop(index)
        error = error or RuntimeError("boom")
        self._results.append(CallResult(call.correlation_id, call.operation, error=error))
        return call

    def drain(self) -> list[CallResult]:
        results, self._results = self._results, []
        return results


@pytest.fixture
def states():
    return make_states()


@pytest.fixture
def model(states):
    return RecordModel(
        states,
        stories=[
            make_story(1, BACKLOG),
            make_story(2, BACKLOG),
            make_story(3, IN_PROGRESS, owner_ids=(OTHER.id,)),
        ],
        members=[ME, OTHER],
        current_member=ME,
    )


@pytest.fixture
def workers():
    return FakeWorkers()


@pytest.fixture
def client():
    return MagicMock(spec=ShortcutClient)


@pytest.fixture
def dispatcher(model, client, workers):
    pagination = PaginationEngine(
        model,
        PaginationState(query="owner:pat is:story", cursor="page-2", loaded_count=3, started=True),
    )
    branch_creator = MagicMock(return_value="Created branch 'x'")
    return Dispatcher(model, pagination, client, workers, branch_creator=branch_creator)


def run(dispatcher, *events):
    """Post events and tick until they are all handled."""
    for event in events:
        dispatcher.post(event)
        dispatcher.tick()
