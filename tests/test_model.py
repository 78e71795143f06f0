"""Tests for sctui.core.model module."""

import pytest

from sctui.api.models import Epic
from sctui.core.model import RecordModel

from conftest import BACKLOG, DONE, IN_PROGRESS, ME, make_states, make_story


class TestRecordModelColumns:
    """Column derivation from workflow states and stories."""

    def test_states_sorted_by_position(self, model):
        assert [s.name for s in model.workflow_states] == ["Backlog", "In Progress", "Done"]

    def test_every_state_yields_a_column(self, model):
        columns = model.columns()
        assert [c.state.id for c in columns] == [BACKLOG, IN_PROGRESS, DONE]
        assert columns[2].stories == []

    def test_stories_keep_load_order_within_column(self, states):
        model = RecordModel(states, stories=[make_story(9), make_story(4), make_story(7)])
        assert [s.id for s in model.columns()[0].stories] == [9, 4, 7]

    def test_empty_search_result_gives_empty_columns(self, states):
        """All workflow state columns are present even with no stories."""
        model = RecordModel(states)
        columns = model.columns()
        assert len(columns) == 3
        assert all(c.stories == [] for c in columns)

    def test_unknown_state_is_invisible(self, states, caplog):
        model = RecordModel(states)
        with caplog.at_level("WARNING"):
            model.add(make_story(5, state_id=999))
        assert 5 in model
        assert model.visible_stories() == []
        assert all(5 not in [s.id for s in c.stories] for c in model.columns())
        assert "unknown workflow state" in caplog.text


class TestRecordModelMutation:
    """add / replace / update / remove."""

    def test_add_skips_duplicate_ids(self, model):
        assert model.add(make_story(1, DONE, name="other")) is False
        assert len(model) == 3
        assert model.get(1).workflow_state_id == BACKLOG

    def test_replace_keeps_load_position(self, model):
        model.replace(2, make_story(502, BACKLOG))
        assert [s.id for s in model.stories] == [1, 502, 3]

    def test_replace_missing_raises(self, model):
        with pytest.raises(KeyError):
            model.replace(404, make_story(404))

    def test_update_returns_previous(self, model):
        previous = model.update(1, workflow_state_id=DONE)
        assert previous.workflow_state_id == BACKLOG
        assert model.get(1).workflow_state_id == DONE
        assert model.index_of(1) == 0

    def test_remove(self, model):
        removed = model.remove(2)
        assert removed.id == 2
        assert 2 not in model
        assert model.remove(2) is None

    def test_placeholder_ids_are_negative_and_unique(self, model):
        assert model.next_placeholder_id() == -1
        assert model.next_placeholder_id() == -2


class TestRecordModelMembers:

    def test_member_name_falls_back_to_id(self, model):
        assert model.member_name(ME.id) == "Pat Doe"
        assert model.member_name("u-unknown") == "u-unknown"

    def test_current_member_added_to_directory(self):
        model = RecordModel(make_states(), current_member=ME)
        assert model.member_name(ME.id) == "Pat Doe"


class TestRecordModelEpics:

    def test_epic_lookup_and_add(self, states):
        login = Epic(id=900, name="Login revamp")
        model = RecordModel(states, epics=[login])
        assert model.epic(900) == login
        assert model.epic(None) is None
        model.add_epic(Epic(id=901, name="Billing"))
        model.add_epic(login)
        assert [e.id for e in model.epics] == [900, 901]

    def test_columns_filtered_by_epic(self, model):
        model.update(3, epic_id=900)
        assert [len(c.stories) for c in model.columns()] == [2, 1, 0]
        assert [len(c.stories) for c in model.columns(900)] == [0, 1, 0]
        assert [s.id for s in model.visible_stories(900)] == [3]

    def test_clear_stories_keeps_listed_ids(self, model):
        assert model.clear_stories(keep={2}) == 1
        assert [s.id for s in model.stories] == [2]
        model.clear_stories()
        assert len(model) == 0
        assert len(model.workflow_states) == 3
