"""Board widgets and the Rich rendering they use.

The render_* helpers are pure functions of the view model so they can be
tested without running an app.
"""

from rich.markup import escape
from rich.table import Table
from textual.reactive import reactive
from textual.widgets import Static

from sctui.core.forms import PopupKind
from sctui.core.layout import ViewMode
from sctui.core.view import DetailView, PopupView, StoryRow, ViewModel

TYPE_COLORS = {
    "feature": "yellow",
    "bug": "red",
    "chore": "blue",
}

STATE_TYPE_COLORS = {
    "unstarted": "white",
    "started": "cyan",
    "done": "green",
}

BROWSE_ACTIONS = [
    "[a]dd",
    "[e]dit",
    "[m]ove",
    "[o]wn",
    "[g]it branch",
    "[c]omment",
    "[E]pic",
    "[f]ilter epic",
    "[v]iew",
    "[n]ext page",
    "[r]efresh",
    "[q]uit",
]


def format_story_row(row: StoryRow, selected: bool = False) -> str:
    """One story line with Rich markup."""
    color = TYPE_COLORS.get(row.story_type, "")
    story_id = "new" if row.placeholder else f"#{row.id}"
    text = f"[{color}]{story_id}[/{color}] {escape(row.name)}"
    if row.pending:
        text += " [dim](saving)[/dim]"
    if selected:
        return f"[reverse]{text}[/reverse]"
    return text


def render_columns(view: ViewModel) -> Table:
    """Side-by-side columns, one per workflow state."""
    table = Table(expand=True, show_lines=False, box=None, padding=(0, 1))
    for column in view.columns:
        color = STATE_TYPE_COLORS.get(column.state_type, "white")
        table.add_column(f"[bold {color}]{escape(column.title)}[/bold {color}] ({len(column.rows)})", ratio=1)

    height = max((len(c.rows) for c in view.columns), default=0)
    sel = view.selection
    for i in range(height):
        cells = []
        for col_index, column in enumerate(view.columns):
            if i < len(column.rows):
                selected = sel is not None and sel.column == col_index and sel.row == i
                cells.append(format_story_row(column.rows[i], selected))
            else:
                cells.append("")
        table.add_row(*cells)
    return table


def render_list(view: ViewModel) -> str:
    if not view.rows:
        return "[dim]No stories[/dim]"
    lines = []
    for i, row in enumerate(view.rows):
        selected = view.selection is not None and view.selection.row == i
        lines.append(format_story_row(row, selected) + f" [dim]{escape(row.owners)}[/dim]")
    return "\n".join(lines)


def render_popup(popup: PopupView) -> str:
    lines = [f"[bold]{popup.title}[/bold]", ""]
    if popup.kind == PopupKind.MOVE:
        for i, name in enumerate(popup.options):
            marker = "> " if i == popup.option_index else "  "
            line = f"{marker}{escape(name)}"
            lines.append(f"[reverse]{line}[/reverse]" if i == popup.option_index else line)
        hint = "up/down choose | enter move | esc cancel"
    else:
        for f in popup.fields:
            label = f"[bold]{f.label}:[/bold]" if f.focused else f"{f.label}:"
            cursor = "_" if f.focused else ""
            lines.append(f"{label} {escape(f.value)}{cursor}")
        hint = "tab next field | ctrl+n newline | enter save | esc cancel"
        if popup.kind == PopupKind.BRANCH:
            hint = "enter create | esc cancel"
        elif popup.kind in (PopupKind.CREATE, PopupKind.EDIT):
            hint = "tab next field | left/right change type or epic | ctrl+n newline | enter save | esc cancel"
    if popup.error:
        lines.extend(["", f"[red]{escape(popup.error)}[/red]"])
    lines.extend(["", f"[dim]{hint}[/dim]"])
    return "\n".join(lines)


def render_detail(detail: DetailView) -> str:
    story = detail.story
    lines = [
        f"[bold]#{story.id} {escape(story.name)}[/bold]",
        f"Type: {story.story_type.value}    State: [cyan]{escape(detail.state_name)}[/cyan]",
        f"Owners: {escape(detail.owners)}",
    ]
    if detail.epic:
        lines.append(f"Epic: {escape(detail.epic)}")
    if detail.requester:
        lines.append(f"Requester: {escape(detail.requester)}")
    if story.app_url:
        lines.append(f"[dim]{escape(story.app_url)}[/dim]")
    lines.extend(["", escape(story.description) if story.description else "[dim]No description[/dim]"])
    if detail.comments:
        lines.extend(["", f"[bold]Comments ({len(detail.comments)}):[/bold]"])
        for author, text in detail.comments:
            lines.append(f"  [cyan]{escape(author)}[/cyan]: {escape(text)}")
    return "\n".join(lines)


def render_status(view: ViewModel) -> str:
    parts = []
    if view.status:
        parts.append(escape(view.status))
    if view.epic_filter:
        parts.append(f"[magenta]epic: {escape(view.epic_filter)}[/magenta]")
    if view.loading:
        parts.append("[yellow]loading...[/yellow]")
    if view.pending_count:
        parts.append(f"[yellow]{view.pending_count} change(s) pending[/yellow]")
    more = "" if view.has_more else ", all loaded"
    parts.append(f"[dim]{view.loaded_count} stories{more}[/dim]")
    return " | ".join(parts)


class BoardWidget(Static):
    """Columns or list, whichever the view mode says."""

    view: reactive[ViewModel | None] = reactive(None, always_update=True)

    def render(self):
        if self.view is None:
            return "Loading..."
        if self.view.detail is not None:
            return render_detail(self.view.detail)
        if self.view.mode == ViewMode.LIST:
            return render_list(self.view)
        return render_columns(self.view)


class PopupWidget(Static):
    popup: reactive[PopupView | None] = reactive(None, always_update=True)

    def watch_popup(self, popup: PopupView | None) -> None:
        self.display = popup is not None

    def render(self) -> str:
        if self.popup is None:
            return ""
        return render_popup(self.popup)


class ActionBar(Static):
    view: reactive[ViewModel | None] = reactive(None, always_update=True)

    def render(self) -> str:
        if self.view is None:
            return ""
        actions = "" if self.view.popup else escape(" | ".join(BROWSE_ACTIONS))
        status = render_status(self.view)
        return f"{status}\n[dim]{actions}[/dim]" if actions else status
