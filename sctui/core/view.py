"""
Read-only snapshot of the board for the renderer.

The renderer never reaches into the dispatcher; it gets a ViewModel each
tick and draws it.
"""

from dataclasses import dataclass, field

from sctui.api.models import Story
from sctui.core.forms import BranchForm, CommentForm, EpicForm, MoveForm, PopupKind, StoryForm
from sctui.core.layout import Selection, ViewMode

POPUP_TITLES = {
    PopupKind.MOVE: "Move story",
    PopupKind.CREATE: "Create story",
    PopupKind.EDIT: "Edit story",
    PopupKind.BRANCH: "Create git branch",
    PopupKind.COMMENT: "Add comment",
    PopupKind.EPIC: "Create epic",
}


@dataclass
class StoryRow:
    id: int
    name: str
    story_type: str
    owners: str
    placeholder: bool = False
    pending: bool = False


@dataclass
class ColumnView:
    title: str
    state_type: str
    rows: list[StoryRow] = field(default_factory=list)


@dataclass
class FieldView:
    label: str
    value: str
    focused: bool = False


@dataclass
class PopupView:
    kind: PopupKind
    title: str
    fields: list[FieldView] = field(default_factory=list)
    options: list[str] = field(default_factory=list)
    option_index: int = 0
    error: str | None = None


@dataclass
class DetailView:
    story: Story
    state_name: str
    owners: str
    requester: str
    epic: str = ""
    comments: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class ViewModel:
    """Everything the renderer needs for one frame."""
    mode: ViewMode
    columns: list[ColumnView]
    rows: list[StoryRow]
    selection: Selection | None
    popup: PopupView | None
    detail: DetailView | None
    status: str | None
    loading: bool
    has_more: bool
    loaded_count: int
    pending_count: int
    epic_filter: str | None = None


def _owners(model, story: Story) -> str:
    if not story.owner_ids:
        return "unassigned"
    return ", ".join(model.member_name(m) for m in story.owner_ids)


def _row(model, story: Story, pending: set[int]) -> StoryRow:
    return StoryRow(
        id=story.id,
        name=story.name,
        story_type=story.story_type.value,
        owners=_owners(model, story),
        placeholder=story.placeholder,
        pending=story.id in pending,
    )


def _popup_view(popup) -> PopupView:
    form = popup.form
    view = PopupView(kind=popup.kind, title=POPUP_TITLES[popup.kind], error=form.error)
    if isinstance(form, MoveForm):
        view.options = [s.name for s in form.options]
        view.option_index = form.index
    elif isinstance(form, StoryForm):
        view.fields = [
            FieldView("Name", form.name, form.focused == "name"),
            FieldView("Description", form.description, form.focused == "description"),
            FieldView("Type", form.story_type.value, form.focused == "story_type"),
            FieldView("Epic", form.epic.name if form.epic else "(none)", form.focused == "epic"),
        ]
    elif isinstance(form, EpicForm):
        view.fields = [
            FieldView("Name", form.name, form.focused == "name"),
            FieldView("Description", form.description, form.focused == "description"),
        ]
    elif isinstance(form, BranchForm):
        view.fields = [FieldView("Branch", form.branch_name, True)]
    elif isinstance(form, CommentForm):
        view.fields = [FieldView("Comment", form.text, True)]
    return view


def _detail_view(model, story: Story) -> DetailView:
    state = model.state(story.workflow_state_id)
    epic = model.epic(story.epic_id)
    return DetailView(
        story=story,
        state_name=state.name if state else str(story.workflow_state_id),
        owners=_owners(model, story),
        requester=model.member_name(story.requested_by_id) if story.requested_by_id else "",
        epic=epic.name if epic else "",
        comments=[(model.member_name(c.author_id), c.text) for c in story.comments],
    )


def build_view_model(dispatcher) -> ViewModel:
    """Snapshot the dispatcher's state."""
    model = dispatcher.model
    layout = dispatcher.layout
    pending = dispatcher.pending_story_ids

    columns = []
    rows = []
    if layout.mode == ViewMode.COLUMNS:
        columns = [
            ColumnView(
                title=c.state.name,
                state_type=c.state.state_type,
                rows=[_row(model, s, pending) for s in c.stories],
            )
            for c in model.columns(layout.epic_filter)
        ]
    else:
        rows = [_row(model, s, pending) for s in model.visible_stories(layout.epic_filter)]

    filter_epic = model.epic(layout.epic_filter)
    selected = layout.selected_story()
    detail = None
    if dispatcher.show_detail and selected is not None:
        detail = _detail_view(model, selected)

    return ViewModel(
        mode=layout.mode,
        columns=columns,
        rows=rows,
        selection=layout.selection,
        popup=_popup_view(dispatcher.popup) if dispatcher.popup else None,
        detail=detail,
        status=dispatcher.status,
        loading=dispatcher.pagination.state.loading,
        has_more=dispatcher.pagination.state.has_more,
        loaded_count=len(model),
        pending_count=dispatcher.pending_count,
        epic_filter=filter_epic.name if filter_epic else None,
    )
