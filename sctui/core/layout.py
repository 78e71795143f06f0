"""
Selection and layout over the record model.

Two layouts share one cursor: columns grouped by workflow state, or a flat
list in load order. The cursor remembers which story it points at so that
it can follow that story through model changes.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sctui.api.models import Story
from sctui.core.model import ModelInvariantViolation, RecordModel

logger = logging.getLogger(__name__)


class ViewMode(Enum):
    COLUMNS = "columns"
    LIST = "list"


@dataclass(frozen=True)
class Selection:
    """Position of the selected story. column is always 0 in list mode."""
    column: int
    row: int


class LayoutEngine:
    """Cursor over the columns or list layout of a RecordModel."""

    def __init__(self, model: RecordModel, mode: ViewMode = ViewMode.COLUMNS, strict: bool = False):
        """
        Args:
            model: The record model to lay out
            mode: Initial view mode
            strict: Raise ModelInvariantViolation instead of repairing
        """
        self.model = model
        self.mode = mode
        self.strict = strict
        self.epic_filter: int | None = None
        self.column_index = 0
        self.row_index: int | None = None
        self._anchor_id: int | None = None
        self._select_first()

    # Queries

    def rows(self) -> list[Story]:
        """Stories of the active column (columns mode) or the whole list."""
        if self.mode == ViewMode.LIST:
            return self.model.visible_stories(self.epic_filter)
        columns = self.model.columns(self.epic_filter)
        if not columns:
            return []
        return columns[min(self.column_index, len(columns) - 1)].stories

    def column_count(self) -> int:
        if self.mode == ViewMode.LIST:
            return 1
        return len(self.model.workflow_states)

    def selected_story(self) -> Story | None:
        rows = self.rows()
        if self.row_index is None or not 0 <= self.row_index < len(rows):
            return None
        return rows[self.row_index]

    @property
    def selection(self) -> Selection | None:
        if self.selected_story() is None:
            return None
        column = 0 if self.mode == ViewMode.LIST else self.column_index
        return Selection(column=column, row=self.row_index)

    # Movement

    def move_up(self) -> bool:
        return self._move_row(-1)

    def move_down(self) -> bool:
        return self._move_row(1)

    def move_left(self) -> bool:
        return self._move_column(-1)

    def move_right(self) -> bool:
        return self._move_column(1)

    def _move_row(self, delta: int) -> bool:
        rows = self.rows()
        if self.row_index is None or not rows:
            return False
        target = max(0, min(self.row_index + delta, len(rows) - 1))
        if target == self.row_index:
            return False
        self.row_index = target
        self._remember()
        return True

    def _move_column(self, delta: int) -> bool:
        if self.mode == ViewMode.LIST:
            return False
        count = self.column_count()
        if count == 0:
            return False
        target = max(0, min(self.column_index + delta, count - 1))
        if target == self.column_index:
            return False
        self.column_index = target
        rows = self.rows()
        if not rows:
            self.row_index = None
        elif self.row_index is None or self.row_index >= len(rows):
            self.row_index = 0
        self._remember()
        return True

    def toggle_mode(self) -> ViewMode:
        """Switch layouts, keeping the selected story when it is visible."""
        keep = self._anchor_id
        self.mode = ViewMode.LIST if self.mode == ViewMode.COLUMNS else ViewMode.COLUMNS
        self.column_index = 0
        self.row_index = None
        if keep is None or not self.select_story(keep):
            self._select_first()
        return self.mode

    def set_epic_filter(self, epic_id: int | None) -> None:
        """Show only stories of one epic (None shows all), keeping the
        selected story when it survives the filter."""
        keep = self._anchor_id
        self.epic_filter = epic_id
        self.row_index = None
        if keep is None or not self.select_story(keep):
            self._clamp()
            if self.row_index is None:
                self._select_first()

    # Repair

    def select_story(self, story_id: int) -> bool:
        """Point the cursor at story_id; False if it is not visible."""
        location = self._locate(story_id)
        if location is None:
            return False
        self.column_index, self.row_index = location
        self._anchor_id = story_id
        return True

    def repair(self) -> None:
        """Re-derive the cursor after the model changed.

        Follows the previously selected story if it is still visible,
        otherwise keeps the old position clamped to the new layout.
        """
        if self._anchor_id is not None and self.select_story(self._anchor_id):
            return
        self._clamp()

    def validate(self) -> None:
        """Check that the cursor is consistent with the layout.

        In strict mode a violation raises; otherwise it is logged and the
        cursor is rebuilt from scratch.
        """
        rows = self.rows()
        problem = None
        if self.mode == ViewMode.COLUMNS and self.column_count() and self.column_index >= self.column_count():
            problem = f"column {self.column_index} out of range ({self.column_count()} columns)"
        elif self.row_index is not None and not 0 <= self.row_index < len(rows):
            problem = f"row {self.row_index} out of range ({len(rows)} rows)"
        elif self.row_index is None and rows:
            problem = "no row selected in a non-empty column"

        if problem is None:
            return
        if self.strict:
            raise ModelInvariantViolation(f"Dangling selection: {problem}")
        logger.warning(f"Dangling selection: {problem}; rebuilding")
        self.column_index = 0
        self.row_index = None
        self._anchor_id = None
        self._select_first()

    def _locate(self, story_id: int) -> tuple[int, int] | None:
        if self.mode == ViewMode.LIST:
            for row, story in enumerate(self.model.visible_stories(self.epic_filter)):
                if story.id == story_id:
                    return 0, row
            return None
        for col, column in enumerate(self.model.columns(self.epic_filter)):
            for row, story in enumerate(column.stories):
                if story.id == story_id:
                    return col, row
        return None

    def _select_first(self) -> None:
        if self.mode == ViewMode.LIST:
            self.column_index = 0
            self.row_index = 0 if self.model.visible_stories(self.epic_filter) else None
        else:
            self.row_index = None
            for col, column in enumerate(self.model.columns(self.epic_filter)):
                if column.stories:
                    self.column_index, self.row_index = col, 0
                    break
        self._remember()

    def _clamp(self) -> None:
        count = self.column_count()
        self.column_index = max(0, min(self.column_index, count - 1)) if count else 0
        rows = self.rows()
        if not rows:
            self.row_index = None
        elif self.row_index is None:
            self.row_index = 0
        else:
            self.row_index = min(self.row_index, len(rows) - 1)
        self._remember()

    def _remember(self) -> None:
        story = self.selected_story()
        self._anchor_id = story.id if story else None
