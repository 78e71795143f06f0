"""
Board dispatcher: the single owner of all board state.

Input events and worker results come in; the dispatcher routes them to the
active popup, the layout engine or the pagination engine, applies
optimistic changes, hands blocking calls to the worker pool, and reconciles
results by correlation id. Everything here runs on one thread.

Each tick applies every finished result first, then at most one input
event, so a result that has already arrived is never rendered as still
pending.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable

from sctui.api.client import ShortcutApi
from sctui.api.models import Comment, Epic, SearchPage, Story, StoryType
from sctui.core.events import CallResult, Event, InputEvent, Operation, TextInput
from sctui.core.forms import (
    BranchForm,
    CommentForm,
    EpicForm,
    Form,
    MoveForm,
    PopupKind,
    StoryForm,
    ValidationError,
)
from sctui.core.layout import LayoutEngine
from sctui.core.model import RecordModel
from sctui.core.mutations import MutationMachine, PendingMutation
from sctui.core.pagination import PaginationEngine
from sctui.core.view import ViewModel, build_view_model
from sctui.core.workers import WorkerPool, new_correlation_id
from sctui.git.branch import GitError, create_branch

logger = logging.getLogger(__name__)

OPERATION_FOR_POPUP = {
    PopupKind.MOVE: Operation.MOVE,
    PopupKind.CREATE: Operation.CREATE,
    PopupKind.EDIT: Operation.EDIT,
    PopupKind.BRANCH: Operation.BRANCH,
    PopupKind.COMMENT: Operation.COMMENT,
    PopupKind.EPIC: Operation.CREATE_EPIC,
}

POPUP_FOR_EVENT = {
    InputEvent.OPEN_MOVE: PopupKind.MOVE,
    InputEvent.OPEN_CREATE: PopupKind.CREATE,
    InputEvent.OPEN_EDIT: PopupKind.EDIT,
    InputEvent.OPEN_GIT_BRANCH: PopupKind.BRANCH,
    InputEvent.OPEN_COMMENT: PopupKind.COMMENT,
    InputEvent.OPEN_CREATE_EPIC: PopupKind.EPIC,
}


@dataclass
class ActivePopup:
    """The one popup currently showing; kind decides how input is routed."""
    kind: PopupKind
    form: Form
    machine: MutationMachine


def _api_value(value):
    return value.value if isinstance(value, StoryType) else value


class Dispatcher:
    """Routes events and results; owns model, layout, pagination and popups."""

    def __init__(
        self,
        model: RecordModel,
        pagination: PaginationEngine,
        client: ShortcutApi,
        workers: WorkerPool,
        layout: LayoutEngine | None = None,
        branch_creator: Callable[[str], str] = create_branch,
    ) -> None:
        self.model = model
        self.pagination = pagination
        self.client = client
        self.workers = workers
        self.layout = layout or LayoutEngine(model)
        self.branch_creator = branch_creator

        self.popup: ActivePopup | None = None
        self.machine: MutationMachine | None = None  # open or submitting
        self.last_machine: MutationMachine | None = None
        self.status: str | None = None
        self.show_detail = False
        self.quit_requested = False
        self.should_quit = False

        self._inputs: deque[Event] = deque()
        self._pending: dict[str, PendingMutation] = {}
        self._page_request: str | None = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def pending_story_ids(self) -> set[int]:
        return {p.story_id for p in self._pending.values()}

    # Loop

    def post(self, event: Event) -> None:
        """Queue one decoded input event for the next tick."""
        self._inputs.append(event)

    def tick(self) -> bool:
        """Apply finished results, then at most one input. True if a redraw is needed."""
        redraw = False
        for result in self.workers.drain():
            self.apply_result(result)
            redraw = True
        if self._inputs:
            redraw = self.handle(self._inputs.popleft()) or redraw
        self.layout.validate()
        return redraw

    def handle(self, event: Event) -> bool:
        """Route one input event. Returns True if anything visible changed."""
        if self.should_quit:
            return False
        if event == InputEvent.QUIT:
            return self._handle_quit()
        if self.machine is not None and self.machine.in_flight:
            logger.debug(f"Ignoring {event} while {self.machine.label} is submitting")
            return False
        if self.popup is not None:
            return self._handle_popup(self.popup, event)
        if isinstance(event, TextInput):
            return False
        return self._handle_browse(event)

    def _handle_quit(self) -> bool:
        if self.popup is not None:
            # Popups take text; quitting from one is not a thing
            return False
        if self.machine is not None and self.machine.in_flight:
            self.quit_requested = True
            self.status = "Waiting for the pending change to finish before quitting..."
            logger.info(f"Quit deferred until {self.machine.label} resolves")
            return True
        self.should_quit = True
        return True

    # Browsing

    def _handle_browse(self, event: InputEvent) -> bool:
        if event == InputEvent.MOVE_UP:
            return self.layout.move_up()
        if event == InputEvent.MOVE_DOWN:
            return self.layout.move_down()
        if event == InputEvent.MOVE_LEFT:
            return self.layout.move_left()
        if event == InputEvent.MOVE_RIGHT:
            return self.layout.move_right()
        if event == InputEvent.TOGGLE_VIEW_MODE:
            self.layout.toggle_mode()
            return True
        if event == InputEvent.SELECT:
            if self.layout.selected_story() is None:
                return False
            self.show_detail = not self.show_detail
            return True
        if event == InputEvent.BACK:
            if not self.show_detail:
                return False
            self.show_detail = False
            return True
        if event in POPUP_FOR_EVENT:
            return self._open_popup(POPUP_FOR_EVENT[event])
        if event == InputEvent.TAKE_OWNERSHIP:
            return self._take_ownership()
        if event == InputEvent.LOAD_MORE:
            return self._load_more()
        if event == InputEvent.REFRESH:
            return self._refresh()
        if event == InputEvent.CYCLE_EPIC_FILTER:
            return self._cycle_epic_filter()
        return False

    def _selected_for_change(self, action: str) -> Story | None:
        story = self.layout.selected_story()
        if story is None:
            self.status = f"Select a story to {action}"
        elif story.placeholder:
            self.status = f"#{story.id} is still being created"
            return None
        return story

    def _open_popup(self, kind: PopupKind) -> bool:
        story = None
        if kind == PopupKind.CREATE:
            if not self.model.workflow_states:
                self.status = "No workflow states to create a story in"
                return True
            form = StoryForm.for_new(self.model.epics, self.layout.epic_filter)
        elif kind == PopupKind.EPIC:
            form = EpicForm()
        else:
            story = self._selected_for_change(kind.value)
            if story is None:
                return True
            if kind == PopupKind.MOVE:
                form = MoveForm.for_story(story, self.model.workflow_states)
                if not form.options:
                    self.status = "No other workflow state to move to"
                    return True
            elif kind == PopupKind.EDIT:
                form = StoryForm.for_story(story, self.model.epics)
            elif kind == PopupKind.BRANCH:
                form = BranchForm.for_story(story)
            else:
                form = CommentForm(story_id=story.id)

        machine = MutationMachine(OPERATION_FOR_POPUP[kind], story.id if story else None)
        machine.open_form()
        self.machine = machine
        self.popup = ActivePopup(kind=kind, form=form, machine=machine)
        return True

    # Popup input

    def _handle_popup(self, popup: ActivePopup, event: Event) -> bool:
        form = popup.form
        if isinstance(event, TextInput):
            return form.type_char(event.char)
        if event == InputEvent.BACK:
            popup.machine.cancel()
            self._close_popup()
            self.status = "Cancelled"
            return True
        if event == InputEvent.SELECT:
            return self._submit(popup)
        if event in (InputEvent.MOVE_UP, InputEvent.MOVE_LEFT):
            return form.cycle(-1)
        if event in (InputEvent.MOVE_DOWN, InputEvent.MOVE_RIGHT):
            return form.cycle(1)
        if event == InputEvent.NEXT_FIELD:
            form.next_field()
            return True
        if event == InputEvent.PREV_FIELD:
            form.prev_field()
            return True
        if event == InputEvent.BACKSPACE:
            return form.backspace()
        if event == InputEvent.NEWLINE:
            return form.newline()
        # Other triggers are ignored while a popup is open
        return False

    def _close_popup(self) -> None:
        self.popup = None
        if self.machine is not None and not self.machine.in_flight:
            self.machine = None

    def _submit(self, popup: ActivePopup) -> bool:
        try:
            if popup.kind == PopupKind.MOVE:
                self._submit_move(popup)
            elif popup.kind == PopupKind.CREATE:
                self._submit_create(popup)
            elif popup.kind == PopupKind.EDIT:
                self._submit_edit(popup)
            elif popup.kind == PopupKind.BRANCH:
                self._submit_branch(popup)
            elif popup.kind == PopupKind.EPIC:
                self._submit_epic(popup)
            else:
                self._submit_comment(popup)
        except ValidationError as e:
            popup.form.error = str(e)
        return True

    def _story_or_close(self, popup: ActivePopup, story_id: int) -> Story | None:
        story = self.model.get(story_id)
        if story is None:
            popup.machine.cancel()
            self._close_popup()
            self.status = f"Story #{story_id} is no longer loaded"
        return story

    def _dispatch(self, machine: MutationMachine, pending: PendingMutation, fn: Callable, *args, **kwargs) -> None:
        """Record the pending change, start the call, and enter submitting."""
        self._pending[pending.correlation_id] = pending
        self.workers.submit(pending.correlation_id, pending.operation, fn, *args, **kwargs)
        machine.begin(pending)
        self.popup = None
        self.show_detail = False
        logger.info(f"Dispatched {machine.label} ({pending.correlation_id[:8]})")

    def _submit_move(self, popup: ActivePopup) -> None:
        target = popup.form.validate()
        story = self._story_or_close(popup, popup.form.story_id)
        if story is None:
            return
        pending = PendingMutation(
            story_id=story.id,
            field="workflow_state_id",
            previous_value=story.workflow_state_id,
            new_value=target.id,
            correlation_id=new_correlation_id(),
            operation=Operation.MOVE,
        )
        self.model.update(story.id, workflow_state_id=target.id)
        self.layout.select_story(story.id)
        self.status = f"Moving #{story.id} to {target.name}..."
        self._dispatch(popup.machine, pending, self.client.update_story, story.id, workflow_state_id=target.id)

    def _submit_create(self, popup: ActivePopup) -> None:
        values = popup.form.validate()
        state = self.model.workflow_states[0]
        me = self.model.current_member
        placeholder = Story(
            id=self.model.next_placeholder_id(),
            name=values["name"],
            story_type=values["story_type"],
            workflow_state_id=state.id,
            requested_by_id=me.id if me else "",
            description=values["description"],
            epic_id=values["epic_id"],
            placeholder=True,
        )
        pending = PendingMutation(
            story_id=placeholder.id,
            field="story",
            previous_value=None,
            new_value=placeholder,
            correlation_id=new_correlation_id(),
            operation=Operation.CREATE,
        )
        self.model.add(placeholder)
        self.layout.select_story(placeholder.id)
        self.status = f"Creating '{placeholder.name}'..."
        self._dispatch(
            popup.machine,
            pending,
            self.client.create_story,
            placeholder.name,
            placeholder.description,
            placeholder.story_type.value,
            placeholder.requested_by_id,
            workflow_state_id=state.id,
            epic_id=placeholder.epic_id,
        )

    def _submit_edit(self, popup: ActivePopup) -> None:
        story = self._story_or_close(popup, popup.form.story_id)
        if story is None:
            return
        changes = popup.form.changes_from(story)
        if not changes:
            popup.machine.cancel()
            self._close_popup()
            self.status = "No changes"
            return
        pending = PendingMutation(
            story_id=story.id,
            field="details",
            previous_value={k: getattr(story, k) for k in changes},
            new_value=changes,
            correlation_id=new_correlation_id(),
            operation=Operation.EDIT,
        )
        self.model.update(story.id, **changes)
        self.status = f"Saving #{story.id}..."
        patch = {k: _api_value(v) for k, v in changes.items()}
        self._dispatch(popup.machine, pending, self.client.update_story, story.id, **patch)

    def _submit_branch(self, popup: ActivePopup) -> None:
        name = popup.form.validate()
        pending = PendingMutation(
            story_id=popup.form.story_id,
            field="branch",
            previous_value=None,
            new_value=name,
            correlation_id=new_correlation_id(),
            operation=Operation.BRANCH,
        )
        self.status = f"Creating branch '{name}'..."
        self._dispatch(popup.machine, pending, self.branch_creator, name)

    def _submit_comment(self, popup: ActivePopup) -> None:
        text = popup.form.validate()
        story = self._story_or_close(popup, popup.form.story_id)
        if story is None:
            return
        me = self.model.current_member
        comment = Comment(
            id=self.model.next_placeholder_id(),
            text=text,
            author_id=me.id if me else "",
            placeholder=True,
        )
        pending = PendingMutation(
            story_id=story.id,
            field="comments",
            previous_value=story.comments,
            new_value=comment,
            correlation_id=new_correlation_id(),
            operation=Operation.COMMENT,
        )
        self.model.update(story.id, comments=story.comments + (comment,))
        self.status = f"Adding comment to #{story.id}..."
        self._dispatch(popup.machine, pending, self.client.add_comment, story.id, text)

    def _submit_epic(self, popup: ActivePopup) -> None:
        values = popup.form.validate()
        pending = PendingMutation(
            story_id=None,
            field="epics",
            previous_value=None,
            new_value=values["name"],
            correlation_id=new_correlation_id(),
            operation=Operation.CREATE_EPIC,
        )
        self.status = f"Creating epic '{values['name']}'..."
        self._dispatch(popup.machine, pending, self.client.create_epic, values["name"], values["description"])

    # Formless actions

    def _take_ownership(self) -> bool:
        story = self._selected_for_change("take")
        if story is None:
            return True
        me = self.model.current_member
        if me is None:
            self.status = "Current member unknown; cannot take ownership"
            return True
        if story.owner_ids == (me.id,):
            self.status = f"You already own #{story.id}"
            return True

        machine = MutationMachine(Operation.TAKE_OWNERSHIP, story.id)
        self.machine = machine
        pending = PendingMutation(
            story_id=story.id,
            field="owner_ids",
            previous_value=story.owner_ids,
            new_value=(me.id,),
            correlation_id=new_correlation_id(),
            operation=Operation.TAKE_OWNERSHIP,
        )
        self.model.update(story.id, owner_ids=(me.id,))
        self.status = f"Taking ownership of #{story.id}..."
        self._dispatch(machine, pending, self.client.update_story, story.id, owner_ids=[me.id])
        return True

    def _load_more(self) -> bool:
        if not self.pagination.request():
            if not self.pagination.state.has_more:
                self.status = "No more stories to load"
                return True
            return False
        correlation_id = new_correlation_id()
        self._page_request = correlation_id
        state = self.pagination.state
        self.workers.submit(correlation_id, Operation.LOAD_PAGE, self.client.search, state.query, state.cursor)
        self.status = "Loading more stories..."
        return True

    def _refresh(self) -> bool:
        if not self.pagination.request_refresh():
            return False
        correlation_id = new_correlation_id()
        self._page_request = correlation_id
        self.workers.submit(correlation_id, Operation.REFRESH, self.client.search, self.pagination.state.query, None)
        self.status = "Refreshing stories..."
        return True

    def _cycle_epic_filter(self) -> bool:
        """All epics, then each known epic in turn, then back to all."""
        if not self.model.epics:
            self.status = "No epics to filter by"
            return True
        choices = [None] + [e.id for e in self.model.epics]
        current = self.layout.epic_filter
        position = choices.index(current) if current in choices else 0
        epic_id = choices[(position + 1) % len(choices)]
        self.layout.set_epic_filter(epic_id)
        self.show_detail = False
        epic = self.model.epic(epic_id)
        self.status = f"Showing epic: {epic.name}" if epic else "Showing all epics"
        return True

    # Results

    def apply_result(self, result: CallResult) -> None:
        """Reconcile one finished call with the model."""
        if result.operation in (Operation.LOAD_PAGE, Operation.REFRESH):
            self._apply_page(result)
            return

        pending = self._pending.pop(result.correlation_id, None)
        if pending is None:
            logger.warning(f"Dropping result for unknown correlation id {result.correlation_id[:8]}")
            return

        if result.ok:
            self._commit(pending, result.value)
        else:
            self._rollback(pending, result.error)

        machine = self.machine
        if machine is not None and machine.pending is pending:
            machine.resolve(result.error)
            self.last_machine = machine
            self.machine = None

        self.layout.repair()
        if self.quit_requested and self.machine is None:
            logger.info("Pending change resolved; quitting")
            self.should_quit = True

    def _apply_page(self, result: CallResult) -> None:
        if result.correlation_id != self._page_request:
            logger.warning(f"Dropping stale page result {result.correlation_id[:8]}")
            return
        self._page_request = None
        if result.ok:
            page: SearchPage = result.value
            if result.operation == Operation.REFRESH:
                self.pagination.apply_refresh(page.stories, page.next_cursor, keep=self.pending_story_ids)
                self.status = f"Refreshed: {len(self.model)} stories"
            else:
                added = self.pagination.apply_page(page.stories, page.next_cursor)
                self.status = f"Loaded {added} more stories"
            self.layout.repair()
        else:
            message = self.pagination.fail(result.error)
            self.status = f"Refresh failed: {result.error}" if result.operation == Operation.REFRESH else message

    def _commit(self, pending: PendingMutation, value) -> None:
        op = pending.operation
        if op == Operation.BRANCH:
            self.status = value or f"Created branch '{pending.new_value}'"
            return
        if op == Operation.CREATE_EPIC:
            epic: Epic = value
            self.model.add_epic(epic)
            self.status = f"Created epic {epic.name}"
            return

        if self.model.get(pending.story_id) is None:
            logger.warning(f"{op.label} succeeded for #{pending.story_id} but it is no longer loaded")
            return

        if op == Operation.CREATE:
            story: Story = value
            was_selected = self._is_selected(pending.story_id)
            if story.id in self.model:
                # A page already brought the real story in; drop the placeholder
                self.model.remove(pending.story_id)
            else:
                self.model.replace(pending.story_id, story)
            if was_selected:
                self.layout.select_story(story.id)
            self.status = f"Created #{story.id} {story.name}"
        elif op == Operation.COMMENT:
            comment: Comment = value
            story = self.model.get(pending.story_id)
            comments = tuple(comment if c.id == pending.new_value.id else c for c in story.comments)
            self.model.update(pending.story_id, comments=comments)
            self.status = f"Comment added to #{pending.story_id}"
        else:
            # Move, edit, take ownership: the server's story is authoritative
            self.model.replace(pending.story_id, value)
            if op == Operation.MOVE:
                state = self.model.state(value.workflow_state_id)
                self.status = f"Moved #{value.id} to {state.name if state else value.workflow_state_id}"
            elif op == Operation.EDIT:
                self.status = f"Updated #{value.id}"
            else:
                self.status = f"You now own #{value.id}"

    def _rollback(self, pending: PendingMutation, error: Exception) -> None:
        op = pending.operation
        if op == Operation.CREATE_EPIC:
            logger.warning(f"Create epic '{pending.new_value}' failed: {error}")
            self.status = f"Could not create epic '{pending.new_value}': {error}"
            return

        logger.warning(f"{op.label} failed for #{pending.story_id}: {error}")

        if op == Operation.BRANCH:
            kind = f" ({error.kind.value})" if isinstance(error, GitError) else ""
            self.status = f"Could not create branch '{pending.new_value}'{kind}: {error}"
            return

        target = "new story" if op == Operation.CREATE else f"#{pending.story_id}"
        self.status = f"{op.label} failed for {target}: {error}"

        if self.model.get(pending.story_id) is None:
            logger.warning(f"Cannot roll back {op.value} for #{pending.story_id}: no longer loaded")
            return
        if op == Operation.CREATE:
            self.model.remove(pending.story_id)
        elif op == Operation.EDIT:
            self.model.update(pending.story_id, **pending.previous_value)
        else:
            self.model.update(pending.story_id, **{pending.field: pending.previous_value})

    def _is_selected(self, story_id: int) -> bool:
        story = self.layout.selected_story()
        return story is not None and story.id == story_id

    def view(self) -> ViewModel:
        """Snapshot for the renderer."""
        return build_view_model(self)
