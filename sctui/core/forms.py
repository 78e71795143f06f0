"""
Popup form state for the mutation popups.

Forms hold what the user has typed so far and validate it. They never
touch the model or the network; the dispatcher reads a validated form
and turns it into an optimistic change plus a remote call.
"""

from dataclasses import dataclass, field
from enum import Enum

from sctui.api.models import STORY_TYPES, Epic, Story, StoryType, WorkflowState
from sctui.git.branch import is_valid_branch_name, suggest_branch_name


class PopupKind(Enum):
    MOVE = "move"
    CREATE = "create"
    EDIT = "edit"
    BRANCH = "branch"
    COMMENT = "comment"
    EPIC = "epic"


class ValidationError(Exception):
    """Form input is invalid; shown inline, never sent anywhere."""

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        super().__init__(message)


@dataclass
class Form:
    """Base for text forms: an ordered set of fields with one focused."""

    FIELDS = ()
    TEXT_FIELDS = ()
    MULTILINE_FIELDS = ()

    focus: int = 0
    error: str | None = None

    @property
    def focused(self) -> str:
        return self.FIELDS[self.focus]

    def next_field(self) -> None:
        self.focus = (self.focus + 1) % len(self.FIELDS)

    def prev_field(self) -> None:
        self.focus = (self.focus - 1) % len(self.FIELDS)

    def type_char(self, char: str) -> bool:
        if self.focused not in self.TEXT_FIELDS:
            return False
        setattr(self, self.focused, getattr(self, self.focused) + char)
        self.error = None
        return True

    def backspace(self) -> bool:
        if self.focused not in self.TEXT_FIELDS:
            return False
        setattr(self, self.focused, getattr(self, self.focused)[:-1])
        self.error = None
        return True

    def newline(self) -> bool:
        if self.focused not in self.MULTILINE_FIELDS:
            return False
        return self.type_char("\n")

    def cycle(self, delta: int) -> bool:
        """Up/down inside the popup; only choice fields react."""
        return False


@dataclass
class MoveForm(Form):
    """Pick a target workflow state; the story's current state is excluded."""

    FIELDS = ("target",)

    story_id: int = 0
    options: list[WorkflowState] = field(default_factory=list)
    index: int = 0

    @classmethod
    def for_story(cls, story: Story, states: list[WorkflowState]) -> "MoveForm":
        options = [s for s in states if s.id != story.workflow_state_id]
        return cls(story_id=story.id, options=options)

    @property
    def target(self) -> WorkflowState | None:
        if not self.options:
            return None
        return self.options[self.index]

    def cycle(self, delta: int) -> bool:
        if not self.options:
            return False
        self.index = (self.index + delta) % len(self.options)
        return True

    def validate(self) -> WorkflowState:
        if self.target is None:
            raise ValidationError("target", "No other workflow state to move to")
        return self.target


@dataclass
class StoryForm(Form):
    """Name, description, type and epic; used by both create and edit.

    An edit form remembers what it was pre-filled with, so only the fields
    the user actually touched count as changes.
    """

    FIELDS = ("name", "description", "story_type", "epic")
    TEXT_FIELDS = ("name", "description")
    MULTILINE_FIELDS = ("description",)

    story_id: int | None = None
    name: str = ""
    description: str = ""
    type_index: int = 0
    epics: list[Epic] = field(default_factory=list)
    epic_index: int = 0  # 0 is "no epic"
    initial: dict = field(default_factory=dict)

    @classmethod
    def for_new(cls, epics: list[Epic], epic_id: int | None = None) -> "StoryForm":
        form = cls(epics=list(epics))
        form.epic_index = form._epic_position(epic_id)
        return form

    @classmethod
    def for_story(cls, story: Story, epics: list[Epic] | None = None) -> "StoryForm":
        form = cls(
            story_id=story.id,
            name=story.name,
            description=story.description,
            type_index=STORY_TYPES.index(story.story_type.value),
            epics=list(epics or []),
        )
        form.epic_index = form._epic_position(story.epic_id)
        form.initial = form._raw()
        return form

    def _epic_position(self, epic_id: int | None) -> int:
        for i, epic in enumerate(self.epics):
            if epic.id == epic_id:
                return i + 1
        return 0

    def _raw(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "story_type": self.story_type,
            "epic_id": self.epic_id,
        }

    @property
    def story_type(self) -> StoryType:
        return StoryType(STORY_TYPES[self.type_index])

    @property
    def epic(self) -> Epic | None:
        if self.epic_index == 0 or self.epic_index > len(self.epics):
            return None
        return self.epics[self.epic_index - 1]

    @property
    def epic_id(self) -> int | None:
        return self.epic.id if self.epic else None

    def cycle(self, delta: int) -> bool:
        if self.focused == "story_type":
            self.type_index = (self.type_index + delta) % len(STORY_TYPES)
        elif self.focused == "epic":
            self.epic_index = (self.epic_index + delta) % (len(self.epics) + 1)
        else:
            return False
        self.error = None
        return True

    def validate(self) -> dict:
        """Cleaned values ready for the API. Only the name is trimmed."""
        name = self.name.strip()
        if not name:
            raise ValidationError("name", "Name cannot be empty")
        if not 0 <= self.type_index < len(STORY_TYPES):
            raise ValidationError("story_type", f"Type must be one of: {', '.join(STORY_TYPES)}")
        return {
            "name": name,
            "description": self.description,
            "story_type": self.story_type,
            "epic_id": self.epic_id,
        }

    def changes_from(self, story: Story) -> dict:
        """Validated values of touched fields that differ from story."""
        values = self.validate()
        raw = self._raw()
        return {
            k: v for k, v in values.items()
            if (k not in self.initial or raw[k] != self.initial[k]) and getattr(story, k) != v
        }


@dataclass
class EpicForm(Form):
    """Name and description of a new epic."""

    FIELDS = ("name", "description")
    TEXT_FIELDS = ("name", "description")
    MULTILINE_FIELDS = ("description",)

    name: str = ""
    description: str = ""

    def validate(self) -> dict:
        name = self.name.strip()
        if not name:
            raise ValidationError("name", "Epic name cannot be empty")
        return {"name": name, "description": self.description}


@dataclass
class BranchForm(Form):
    FIELDS = ("branch_name",)
    TEXT_FIELDS = ("branch_name",)

    story_id: int = 0
    branch_name: str = ""
    suggested: str = ""

    @classmethod
    def for_story(cls, story: Story) -> "BranchForm":
        suggested = suggest_branch_name(story)
        return cls(story_id=story.id, branch_name=suggested, suggested=suggested)

    def validate(self) -> str:
        name = self.branch_name.strip()
        if not name:
            raise ValidationError("branch_name", "Branch name cannot be empty")
        if not is_valid_branch_name(name):
            raise ValidationError("branch_name", f"'{name}' is not a valid branch name")
        return name


@dataclass
class CommentForm(Form):
    FIELDS = ("text",)
    TEXT_FIELDS = ("text",)
    MULTILINE_FIELDS = ("text",)

    story_id: int = 0
    text: str = ""

    def validate(self) -> str:
        text = self.text.strip()
        if not text:
            raise ValidationError("text", "Comment cannot be empty")
        return text
