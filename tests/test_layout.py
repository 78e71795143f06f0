"""Tests for sctui.core.layout module."""

import itertools
import random

import pytest

from sctui.core.layout import LayoutEngine, Selection, ViewMode
from sctui.core.model import ModelInvariantViolation, RecordModel

from conftest import BACKLOG, DONE, IN_PROGRESS, make_states, make_story


def _assert_consistent(layout: LayoutEngine):
    """Selection either is None or points at a real, visible story."""
    sel = layout.selection
    story = layout.selected_story()
    if sel is None:
        assert story is None
        return
    assert story is not None
    assert story.id in layout.model
    assert layout.model.is_visible(story)


class TestColumnsNavigation:
    """Column-mode movement clamps and handles empty columns."""

    def test_initial_selection_is_first_story(self, model):
        layout = LayoutEngine(model)
        assert layout.selection == Selection(column=0, row=0)
        assert layout.selected_story().id == 1

    def test_down_and_up_clamp(self, model):
        layout = LayoutEngine(model)
        assert layout.move_down() is True
        assert layout.selected_story().id == 2
        assert layout.move_down() is False
        assert layout.selected_story().id == 2
        layout.move_up()
        assert layout.move_up() is False
        assert layout.selected_story().id == 1

    def test_right_keeps_row_when_valid_else_zero(self, model):
        layout = LayoutEngine(model)
        layout.move_down()  # row 1 in Backlog
        layout.move_right()  # In Progress has one story
        assert layout.selection == Selection(column=1, row=0)
        assert layout.selected_story().id == 3

    def test_entering_empty_column_clears_selection(self, model):
        layout = LayoutEngine(model)
        layout.move_right()
        layout.move_right()  # Done is empty
        assert layout.column_index == 2
        assert layout.selection is None
        assert layout.move_down() is False
        assert layout.move_up() is False

    def test_leaving_empty_column_selects_row_zero(self, model):
        layout = LayoutEngine(model)
        layout.move_right()
        layout.move_right()
        layout.move_left()
        assert layout.selection == Selection(column=1, row=0)

    def test_left_right_clamp_without_wrap(self, model):
        layout = LayoutEngine(model)
        assert layout.move_left() is False
        layout.move_right()
        layout.move_right()
        assert layout.move_right() is False
        assert layout.column_index == 2

    def test_empty_model_has_no_selection(self):
        layout = LayoutEngine(RecordModel(make_states()))
        assert layout.selection is None
        for move in (layout.move_up, layout.move_down, layout.move_left, layout.move_right):
            move()
            assert layout.selection is None

    def test_random_navigation_never_dangles(self, states):
        """Any sequence of moves keeps the selection on a real story or None."""
        rng = random.Random(7)
        stories = [make_story(i, rng.choice([BACKLOG, IN_PROGRESS, DONE, 999])) for i in range(1, 15)]
        layout = LayoutEngine(RecordModel(states, stories=stories), strict=True)
        moves = [layout.move_up, layout.move_down, layout.move_left, layout.move_right, layout.toggle_mode]
        for move in (rng.choice(moves) for _ in range(300)):
            move()
            layout.validate()
            _assert_consistent(layout)

    def test_exhaustive_short_sequences_on_sparse_board(self, states):
        model = RecordModel(states, stories=[make_story(1, IN_PROGRESS)])
        names = ["move_up", "move_down", "move_left", "move_right"]
        for seq in itertools.product(names, repeat=4):
            layout = LayoutEngine(model, strict=True)
            for name in seq:
                getattr(layout, name)()
                layout.validate()
                _assert_consistent(layout)


class TestListMode:

    def test_list_is_visible_stories_in_load_order(self, states):
        model = RecordModel(states, stories=[make_story(5, DONE), make_story(2, 999), make_story(8, BACKLOG)])
        layout = LayoutEngine(model, mode=ViewMode.LIST)
        assert [s.id for s in layout.rows()] == [5, 8]

    def test_left_right_are_noops(self, model):
        layout = LayoutEngine(model, mode=ViewMode.LIST)
        assert layout.move_right() is False
        assert layout.move_left() is False
        assert layout.selection == Selection(column=0, row=0)

    def test_up_down_clamp(self, model):
        layout = LayoutEngine(model, mode=ViewMode.LIST)
        layout.move_down()
        layout.move_down()
        assert layout.move_down() is False
        assert layout.selected_story().id == 3


class TestToggleMode:

    def test_toggle_keeps_selected_story(self, model):
        layout = LayoutEngine(model)
        layout.move_right()
        assert layout.selected_story().id == 3
        assert layout.toggle_mode() == ViewMode.LIST
        assert layout.selected_story().id == 3
        assert layout.selection == Selection(column=0, row=2)
        layout.toggle_mode()
        assert layout.selection == Selection(column=1, row=0)

    def test_toggle_from_empty_column_picks_first(self, model):
        layout = LayoutEngine(model)
        layout.move_right()
        layout.move_right()
        layout.toggle_mode()
        assert layout.selected_story().id == 1


class TestEpicFilter:

    def test_filter_keeps_selected_story_when_visible(self, model):
        model.update(2, epic_id=900)
        layout = LayoutEngine(model)
        layout.move_down()
        layout.set_epic_filter(900)
        assert layout.selected_story().id == 2
        assert layout.selection == Selection(column=0, row=0)

    def test_filter_moves_to_first_visible_story(self, model):
        model.update(3, epic_id=900)
        layout = LayoutEngine(model)
        layout.set_epic_filter(900)
        assert layout.selected_story().id == 3
        _assert_consistent(layout)

    def test_filter_with_no_stories_clears_selection(self, model):
        layout = LayoutEngine(model)
        layout.set_epic_filter(404)
        assert layout.selection is None
        layout.move_down()
        _assert_consistent(layout)
        layout.set_epic_filter(None)
        assert layout.selected_story().id == 1

    def test_list_mode_honours_filter(self, model):
        model.update(1, epic_id=900)
        model.update(3, epic_id=900)
        layout = LayoutEngine(model)
        layout.toggle_mode()
        layout.set_epic_filter(900)
        assert [s.id for s in layout.rows()] == [1, 3]
        layout.move_down()
        assert layout.selected_story().id == 3


class TestRepair:
    """Cursor repair after model changes."""

    def test_follows_story_to_new_column(self, model):
        layout = LayoutEngine(model)
        model.update(1, workflow_state_id=DONE)
        layout.repair()
        assert layout.selected_story().id == 1
        assert layout.column_index == 2

    def test_clamps_when_story_removed(self, model):
        layout = LayoutEngine(model)
        layout.move_down()
        model.remove(2)
        layout.repair()
        assert layout.selected_story().id == 1

    def test_column_emptied_clears_selection(self, model):
        layout = LayoutEngine(model)
        layout.move_right()
        model.remove(3)
        layout.repair()
        assert layout.selection is None

    def test_select_story(self, model):
        layout = LayoutEngine(model)
        assert layout.select_story(3) is True
        assert layout.selection == Selection(column=1, row=0)
        assert layout.select_story(404) is False

    def test_validate_logs_and_rebuilds(self, model, caplog):
        layout = LayoutEngine(model)
        layout.row_index = 9
        with caplog.at_level("WARNING"):
            layout.validate()
        assert "Dangling selection" in caplog.text
        assert layout.selected_story().id == 1

    def test_validate_strict_raises(self, model):
        layout = LayoutEngine(model, strict=True)
        layout.row_index = 9
        with pytest.raises(ModelInvariantViolation):
            layout.validate()
