"""
sctui finish / comment - One-shot changes to a single story.
"""

import argparse
import logging
import re
import sys

from sctui.api.client import ShortcutApi
from sctui.api.errors import ApiError, ApiErrorKind
from sctui.api.models import WorkflowState
from sctui.core.model import RecordModel

logger = logging.getLogger(__name__)

STORY_ID_PATTERN = re.compile(r'^(?:sc-|#)?(\d+)$', re.IGNORECASE)


def parse_story_id(value: str) -> int:
    """argparse type for story ids: 42, #42 and sc-42 are all story 42."""
    match = STORY_ID_PATTERN.match(value.strip())
    if not match:
        raise argparse.ArgumentTypeError(f"'{value}' is not a story id (expected 42 or sc-42)")
    return int(match.group(1))


def done_state(model: RecordModel) -> WorkflowState | None:
    """The first state of type done, in position order."""
    for state in model.workflow_states:
        if state.state_type == "done":
            return state
    return None


def _api_error(story_id: int, action: str, error: ApiError) -> int:
    if error.kind == ApiErrorKind.NOT_FOUND:
        print(f"ERROR: Story #{story_id} was not found", file=sys.stderr)
    else:
        print(f"ERROR: Could not {action} #{story_id}: {error}", file=sys.stderr)
    return 2


def cmd_finish(args, client: ShortcutApi, model: RecordModel) -> int:
    """Move a story to the workspace's done state."""
    state = done_state(model)
    if state is None:
        print("ERROR: Workspace has no workflow state of type 'done'", file=sys.stderr)
        return 2

    try:
        story = client.update_story(args.story_id, workflow_state_id=state.id)
    except ApiError as e:
        return _api_error(args.story_id, "finish", e)

    logger.info(f"Moved #{story.id} to {state.name}")
    print(f"Finished #{story.id} {story.name} ({state.name})")
    return 0


def cmd_comment(args, client: ShortcutApi, model: RecordModel) -> int:
    """Add a comment to a story."""
    text = args.message.strip()
    if not text:
        print("ERROR: Comment cannot be empty", file=sys.stderr)
        return 2

    try:
        comment = client.add_comment(args.story_id, text)
    except ApiError as e:
        return _api_error(args.story_id, "comment on", e)

    logger.info(f"Commented on #{args.story_id} (comment {comment.id})")
    print(f"Commented on #{args.story_id}")
    return 0
