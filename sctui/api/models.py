"""
Record types for Shortcut data.

Stories, epics, workflow states, members and comments as plain dataclasses.
Each type knows how to build itself from the JSON the v3 API returns.
"""

from dataclasses import dataclass, field
from enum import Enum


class StoryType(Enum):
    """The three story types Shortcut supports."""

    FEATURE = "feature"
    BUG = "bug"
    CHORE = "chore"

    @classmethod
    def parse(cls, value: str | None) -> "StoryType":
        """Parse a type string, falling back to FEATURE for unknown values."""
        for story_type in cls:
            if story_type.value == value:
                return story_type
        return cls.FEATURE


STORY_TYPES = [t.value for t in StoryType]


@dataclass(frozen=True)
class Member:
    """A workspace member (owner, requester, comment author)."""
    id: str
    name: str
    mention_name: str

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.mention_name})"

    @classmethod
    def from_dict(cls, data: dict) -> "Member":
        # /members nests name fields under "profile"; /member does not
        profile = data.get("profile") or data
        return cls(
            id=data["id"],
            name=profile.get("name", ""),
            mention_name=profile.get("mention_name", ""),
        )


@dataclass(frozen=True)
class Comment:
    """A story comment."""
    id: int
    text: str
    author_id: str = ""
    created_at: str = ""
    placeholder: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Comment":
        return cls(
            id=data["id"],
            text=data.get("text") or "",
            author_id=data.get("author_id") or "",
            created_at=data.get("created_at") or "",
        )


@dataclass(frozen=True)
class WorkflowState:
    """A named stage of a workflow; one board column per state."""
    id: int
    name: str
    position: int
    state_type: str = "unstarted"  # "unstarted", "started", "done"

    @classmethod
    def from_dict(cls, data: dict) -> "WorkflowState":
        return cls(
            id=data["id"],
            name=data["name"],
            position=data.get("position", 0),
            state_type=data.get("type", "unstarted"),
        )


@dataclass(frozen=True)
class Epic:
    """A group of stories; stories point at it through epic_id."""
    id: int
    name: str
    description: str = ""
    app_url: str = ""
    state: str = ""  # "to do", "in progress", "done"

    @classmethod
    def from_dict(cls, data: dict) -> "Epic":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description") or "",
            app_url=data.get("app_url") or "",
            state=data.get("state") or "",
        )


@dataclass(frozen=True)
class Story:
    """A Shortcut story.

    Frozen so that every change goes through dataclasses.replace() and the
    previous value stays available for rollback.
    """
    id: int
    name: str
    story_type: StoryType
    workflow_state_id: int
    owner_ids: tuple[str, ...] = ()
    requested_by_id: str = ""
    description: str = ""
    comments: tuple[Comment, ...] = ()
    app_url: str = ""
    formatted_vcs_branch_name: str | None = None
    epic_id: int | None = None
    placeholder: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Story":
        comments = sorted(
            (Comment.from_dict(c) for c in data.get("comments") or []),
            key=lambda c: (c.created_at, c.id),
        )
        return cls(
            id=data["id"],
            name=data["name"],
            story_type=StoryType.parse(data.get("story_type")),
            workflow_state_id=data["workflow_state_id"],
            owner_ids=tuple(data.get("owner_ids") or ()),
            requested_by_id=data.get("requested_by_id") or "",
            description=data.get("description") or "",
            comments=tuple(comments),
            app_url=data.get("app_url") or "",
            formatted_vcs_branch_name=data.get("formatted_vcs_branch_name"),
            epic_id=data.get("epic_id"),
        )


@dataclass
class SearchPage:
    """One page of search results."""
    stories: list[Story] = field(default_factory=list)
    next_cursor: str | None = None
