"""
sctui board - interactive Shortcut story board.

Textual owns the terminal: it decodes keys into logical events for the
dispatcher and redraws from the view model. The dispatcher is ticked on a
timer so that worker results show up without a key press.
"""

import logging

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import Header

from sctui.core.dispatcher import Dispatcher
from sctui.core.events import Event, InputEvent, TextInput
from sctui.core.forms import PopupKind
from sctui.tui.widgets import ActionBar, BoardWidget, PopupWidget

logger = logging.getLogger(__name__)

TICK_INTERVAL_SECONDS = 0.05

NAVIGATION_KEYS = {
    "up": InputEvent.MOVE_UP,
    "k": InputEvent.MOVE_UP,
    "down": InputEvent.MOVE_DOWN,
    "j": InputEvent.MOVE_DOWN,
    "left": InputEvent.MOVE_LEFT,
    "h": InputEvent.MOVE_LEFT,
    "right": InputEvent.MOVE_RIGHT,
    "l": InputEvent.MOVE_RIGHT,
    "enter": InputEvent.SELECT,
    "escape": InputEvent.BACK,
}

BROWSE_KEYS = {
    **NAVIGATION_KEYS,
    "v": InputEvent.TOGGLE_VIEW_MODE,
    "a": InputEvent.OPEN_CREATE,
    "e": InputEvent.OPEN_EDIT,
    "o": InputEvent.TAKE_OWNERSHIP,
    "m": InputEvent.OPEN_MOVE,
    "space": InputEvent.OPEN_MOVE,
    "g": InputEvent.OPEN_GIT_BRANCH,
    "c": InputEvent.OPEN_COMMENT,
    "E": InputEvent.OPEN_CREATE_EPIC,
    "shift+e": InputEvent.OPEN_CREATE_EPIC,
    "f": InputEvent.CYCLE_EPIC_FILTER,
    "n": InputEvent.LOAD_MORE,
    "r": InputEvent.REFRESH,
    "q": InputEvent.QUIT,
}

# Keys with a meaning in text popups; anything printable is typed
TEXT_POPUP_KEYS = {
    "up": InputEvent.MOVE_UP,
    "down": InputEvent.MOVE_DOWN,
    "left": InputEvent.MOVE_LEFT,
    "right": InputEvent.MOVE_RIGHT,
    "enter": InputEvent.SELECT,
    "escape": InputEvent.BACK,
    "tab": InputEvent.NEXT_FIELD,
    "shift+tab": InputEvent.PREV_FIELD,
    "backspace": InputEvent.BACKSPACE,
    "ctrl+n": InputEvent.NEWLINE,
}


def decode_key(key: str, character: str | None, popup: PopupKind | None) -> Event | None:
    """Map a Textual key to a logical event, or None if it means nothing here."""
    if popup is None:
        return BROWSE_KEYS.get(key)
    if popup == PopupKind.MOVE:
        return NAVIGATION_KEYS.get(key)
    if key in TEXT_POPUP_KEYS:
        return TEXT_POPUP_KEYS[key]
    if character and character.isprintable():
        return TextInput(character)
    return None


class BoardApp(App):
    """Main board application."""

    CSS = """
    #board-container {
        height: 1fr;
        padding: 0 1;
    }

    #board {
        height: auto;
    }

    #popup {
        dock: bottom;
        height: auto;
        margin: 0 4 1 4;
        padding: 1 2;
        background: $surface;
        border: thick $primary;
    }

    #action-bar {
        dock: bottom;
        height: 2;
        background: $surface;
        padding: 0 1;
    }
    """

    def __init__(self, dispatcher: Dispatcher, workspace: str = "") -> None:
        super().__init__()
        self.dispatcher = dispatcher
        self.workspace = workspace

    def compose(self) -> ComposeResult:
        yield Header()
        yield Container(BoardWidget(id="board"), id="board-container")
        yield ActionBar(id="action-bar")
        yield PopupWidget(id="popup")

    def on_mount(self) -> None:
        self.title = f"sctui: {self.workspace}" if self.workspace else "sctui"
        self.query_one("#popup", PopupWidget).display = False
        self.refresh_view()
        self.set_interval(TICK_INTERVAL_SECONDS, self.tick)

    def on_key(self, event: events.Key) -> None:
        popup = self.dispatcher.popup
        decoded = decode_key(event.key, event.character, popup.kind if popup else None)
        if decoded is None:
            return
        event.stop()
        self.dispatcher.post(decoded)
        self.tick()

    def tick(self) -> None:
        """Advance the dispatcher and redraw if anything changed."""
        if self.dispatcher.tick():
            self.refresh_view()
        if self.dispatcher.should_quit:
            logger.info("Exiting board")
            self.exit()

    def refresh_view(self) -> None:
        view = self.dispatcher.view()
        self.query_one("#board", BoardWidget).view = view
        self.query_one("#popup", PopupWidget).popup = view.popup
        self.query_one("#action-bar", ActionBar).view = view
        self.sub_title = view.mode.value
