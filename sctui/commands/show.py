"""
sctui show - Print matching stories without opening the board.

On a terminal the listing pauses after every chunk and asks before going
on; piped output gets everything in one go.
"""

import logging
import sys
from typing import Callable, Iterator

from rich.console import Console
from rich.markup import escape

from sctui.api.client import ShortcutApi
from sctui.api.errors import ApiError
from sctui.api.models import Story
from sctui.core.model import RecordModel
from sctui.tui.widgets import STATE_TYPE_COLORS, TYPE_COLORS

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10


def iter_stories(client: ShortcutApi, query: str) -> Iterator[Story]:
    """Every story matching query, fetching pages lazily."""
    cursor = None
    while True:
        page = client.search(query, cursor)
        yield from page.stories
        if page.next_cursor is None or not page.stories:
            return
        cursor = page.next_cursor


def story_lines(story: Story, model: RecordModel) -> list[str]:
    """Rich markup for one story: title, first description line, owners, state."""
    lines = [f"[bold cyan]#{story.id} - {escape(story.name)}[/bold cyan]"]

    summary = story.description.strip().splitlines()[0] if story.description.strip() else ""
    if summary:
        lines.append(f"   {escape(summary)}")

    if story.owner_ids:
        owners = []
        for owner_id in story.owner_ids:
            member = model.members.get(owner_id)
            owners.append(member.display_name if member else owner_id)
        lines.append(f"   [yellow]Owner(s): {escape(', '.join(owners))}[/yellow]")

    state = model.state(story.workflow_state_id)
    state_name = state.name if state else f"state {story.workflow_state_id}"
    state_color = STATE_TYPE_COLORS.get(state.state_type if state else "", "white")
    type_color = TYPE_COLORS.get(story.story_type.value, "white")
    details = (
        f"   [{state_color}]{escape(state_name)}[/{state_color}]"
        f" | [{type_color}]{story.story_type.value}[/{type_color}]"
    )
    epic = model.epic(story.epic_id)
    if epic:
        details += f" | [magenta]{escape(epic.name)}[/magenta]"
    if story.app_url:
        details += f" | {escape(story.app_url)}"
    lines.append(details)
    return lines


def _ask_more(console: Console, shown: int) -> bool:
    answer = console.input(f"[dim]-- {shown} shown, more? [Y/n] --[/dim] ")
    return answer.strip().lower() not in ("n", "no", "q")


def cmd_show(
    args,
    client: ShortcutApi,
    model: RecordModel,
    query: str,
    console: Console | None = None,
    ask_more: Callable[[Console, int], bool] | None = None,
) -> int:
    """List stories matching query, chunk by chunk."""
    console = console or Console(highlight=False)
    if ask_more is None and sys.stdin.isatty():
        ask_more = _ask_more
    chunk = args.limit or DEFAULT_CHUNK_SIZE

    shown = 0
    try:
        for story in iter_stories(client, query):
            if shown and shown % chunk == 0 and ask_more is not None and not ask_more(console, shown):
                logger.info(f"show stopped by user after {shown} stories")
                return 0
            for line in story_lines(story, model):
                console.print(line)
            console.print()
            shown += 1
    except ApiError as e:
        print(f"ERROR: Could not load stories: {e}", file=sys.stderr)
        return 2

    if shown == 0:
        console.print(f"No stories found for '{escape(query)}'")
    else:
        console.print(f"[dim]{shown} stories[/dim]")
    return 0
