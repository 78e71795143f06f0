"""Shortcut API records, errors and client."""

from sctui.api.errors import ApiError, ApiErrorKind
from sctui.api.models import (
    STORY_TYPES,
    Comment,
    Epic,
    Member,
    SearchPage,
    Story,
    StoryType,
    WorkflowState,
)
from sctui.api.client import ShortcutApi, ShortcutClient

__all__ = [
    "ApiError",
    "ApiErrorKind",
    "STORY_TYPES",
    "Comment",
    "Epic",
    "Member",
    "SearchPage",
    "Story",
    "StoryType",
    "WorkflowState",
    "ShortcutApi",
    "ShortcutClient",
]
