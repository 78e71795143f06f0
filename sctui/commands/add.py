"""
sctui add - Create a story from the command line.

The story lands in the first workflow state, requested by the token's
owner, the same way the board's create popup files it.
"""

import logging
import sys

from sctui.api.client import ShortcutApi
from sctui.api.errors import ApiError
from sctui.core.model import RecordModel

logger = logging.getLogger(__name__)


def cmd_add(args, client: ShortcutApi, model: RecordModel) -> int:
    """Create a story named by the positional words."""
    name = " ".join(args.name).strip()
    if not name:
        print("ERROR: Story name cannot be empty", file=sys.stderr)
        return 2
    if not model.workflow_states:
        print("ERROR: Workspace has no workflow states", file=sys.stderr)
        return 2
    if args.epic is not None and model.epic(args.epic) is None:
        print(f"ERROR: Epic {args.epic} not found", file=sys.stderr)
        return 2

    state = model.workflow_states[0]
    try:
        story = client.create_story(
            name,
            args.description or "",
            args.type,
            model.current_member.id,
            workflow_state_id=state.id,
            epic_id=args.epic,
        )
    except ApiError as e:
        print(f"ERROR: Could not create story: {e}", file=sys.stderr)
        return 2

    logger.info(f"Created story #{story.id} in {state.name}")
    print(f"Created #{story.id} {story.name}")
    if story.app_url:
        print(f"  {story.app_url}")
    return 0
