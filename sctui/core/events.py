"""Events consumed by the dispatcher: decoded input and worker results."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class InputEvent(Enum):
    """Logical input, already decoded from keys by the front-end."""

    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    SELECT = "select"
    BACK = "back"
    TOGGLE_VIEW_MODE = "toggle_view_mode"
    OPEN_CREATE = "open_create"
    OPEN_EDIT = "open_edit"
    TAKE_OWNERSHIP = "take_ownership"
    OPEN_MOVE = "open_move"
    OPEN_GIT_BRANCH = "open_git_branch"
    OPEN_COMMENT = "open_comment"
    OPEN_CREATE_EPIC = "open_create_epic"
    CYCLE_EPIC_FILTER = "cycle_epic_filter"
    LOAD_MORE = "load_more"
    REFRESH = "refresh"
    QUIT = "quit"
    # Popup field editing
    NEXT_FIELD = "next_field"
    PREV_FIELD = "prev_field"
    BACKSPACE = "backspace"
    NEWLINE = "newline"


@dataclass(frozen=True)
class TextInput:
    """A typed character while a popup field has focus."""
    char: str


Event = InputEvent | TextInput


class Operation(Enum):
    """What a worker call does; routes its result."""

    LOAD_PAGE = "load_page"
    REFRESH = "refresh"
    MOVE = "move"
    CREATE = "create"
    EDIT = "edit"
    TAKE_OWNERSHIP = "take_ownership"
    BRANCH = "branch"
    COMMENT = "comment"
    CREATE_EPIC = "create_epic"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


@dataclass(frozen=True)
class CallResult:
    """Outcome of one worker call, matched to its dispatch by correlation_id."""
    correlation_id: str
    operation: Operation
    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
