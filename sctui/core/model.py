"""
In-memory record model for the board.

Holds the loaded stories in load order plus the session's reference data
(workflow states, epics, members, current member). Columns are derived on read,
never stored. Only the dispatcher's reconciliation code mutates stories.
"""

import dataclasses
import logging
from dataclasses import dataclass, field

from sctui.api.models import Epic, Member, Story, WorkflowState

logger = logging.getLogger(__name__)


class ModelInvariantViolation(Exception):
    """The model or the selection reached a state that should be impossible."""


@dataclass
class Column:
    """A workflow state with the visible stories that sit in it."""
    state: WorkflowState
    stories: list[Story] = field(default_factory=list)


class RecordModel:
    """Stories in load order, indexed by id."""

    def __init__(
        self,
        workflow_states: list[WorkflowState],
        stories: list[Story] | None = None,
        members: list[Member] | None = None,
        current_member: Member | None = None,
        epics: list[Epic] | None = None,
    ) -> None:
        # Stable sort keeps the API's workflow order when positions tie
        self.workflow_states = sorted(workflow_states, key=lambda s: s.position)
        self._state_ids = {s.id for s in self.workflow_states}
        self.members = {m.id: m for m in members or []}
        self.epics: list[Epic] = list(epics or [])
        self.current_member = current_member
        if current_member and current_member.id not in self.members:
            self.members[current_member.id] = current_member
        self._stories: list[Story] = []
        self._placeholder_seq = 0
        for story in stories or []:
            self.add(story)

    def __len__(self) -> int:
        return len(self._stories)

    def __contains__(self, story_id: int) -> bool:
        return self.index_of(story_id) is not None

    @property
    def stories(self) -> list[Story]:
        return list(self._stories)

    def get(self, story_id: int) -> Story | None:
        for story in self._stories:
            if story.id == story_id:
                return story
        return None

    def index_of(self, story_id: int) -> int | None:
        for i, story in enumerate(self._stories):
            if story.id == story_id:
                return i
        return None

    def state(self, state_id: int) -> WorkflowState | None:
        for state in self.workflow_states:
            if state.id == state_id:
                return state
        return None

    def is_visible(self, story: Story) -> bool:
        return story.workflow_state_id in self._state_ids

    def epic(self, epic_id: int | None) -> Epic | None:
        for epic in self.epics:
            if epic.id == epic_id:
                return epic
        return None

    def add_epic(self, epic: Epic) -> None:
        if self.epic(epic.id) is None:
            self.epics.append(epic)

    def member_name(self, member_id: str) -> str:
        member = self.members.get(member_id)
        return member.name if member else member_id

    def next_placeholder_id(self) -> int:
        """Negative ids never collide with server ids."""
        self._placeholder_seq += 1
        return -self._placeholder_seq

    # Mutation

    def add(self, story: Story) -> bool:
        """Append a story unless one with the same id is already loaded."""
        if story.id in self:
            return False
        if not self.is_visible(story):
            logger.warning(
                f"Story #{story.id} references unknown workflow state "
                f"{story.workflow_state_id}; it will not be shown"
            )
        self._stories.append(story)
        return True

    def replace(self, story_id: int, story: Story) -> Story:
        """Swap the story with story_id for story at the same load position.

        Returns the story that was replaced.
        """
        i = self.index_of(story_id)
        if i is None:
            raise KeyError(story_id)
        previous = self._stories[i]
        self._stories[i] = story
        return previous

    def update(self, story_id: int, **changes) -> Story:
        """Apply field changes to a story; returns the previous story."""
        story = self.get(story_id)
        if story is None:
            raise KeyError(story_id)
        return self.replace(story_id, dataclasses.replace(story, **changes))

    def remove(self, story_id: int) -> Story | None:
        i = self.index_of(story_id)
        if i is None:
            return None
        return self._stories.pop(i)

    def clear_stories(self, keep: set[int] = frozenset()) -> int:
        """Forget loaded stories except those in keep; reference data stays.

        Returns how many were kept.
        """
        self._stories = [s for s in self._stories if s.id in keep]
        return len(self._stories)

    # Derived layouts

    def columns(self, epic_id: int | None = None) -> list[Column]:
        """One column per workflow state, empty ones included.

        With epic_id, only that epic's stories are placed in the columns.
        """
        columns = [Column(state=s) for s in self.workflow_states]
        by_state = {c.state.id: c for c in columns}
        for story in self._stories:
            if epic_id is not None and story.epic_id != epic_id:
                continue
            column = by_state.get(story.workflow_state_id)
            if column is not None:
                column.stories.append(story)
        return columns

    def visible_stories(self, epic_id: int | None = None) -> list[Story]:
        """Flat list of visible stories in load order."""
        return [
            s for s in self._stories
            if self.is_visible(s) and (epic_id is None or s.epic_id == epic_id)
        ]
