"""Tests for sctui.core.pagination module."""

from unittest.mock import MagicMock

import pytest

from sctui.api.errors import ApiError, ApiErrorKind
from sctui.api.models import SearchPage
from sctui.core.model import RecordModel
from sctui.core.pagination import PaginationEngine, PaginationState

from conftest import DONE, make_states, make_story


@pytest.fixture
def engine():
    model = RecordModel(make_states())
    return PaginationEngine(model, PaginationState(query="is:story"))


class TestPaginationState:

    def test_fresh_state_has_more(self):
        assert PaginationState(query="q").has_more is True

    def test_exhausted_after_last_page(self):
        state = PaginationState(query="q", started=True)
        assert state.has_more is False


class TestRequest:
    """Load-more gating."""

    def test_request_sets_loading(self, engine):
        assert engine.request() is True
        assert engine.state.loading is True

    def test_second_request_rejected_while_loading(self, engine):
        """A second load-more before the first page returns issues nothing."""
        assert engine.request() is True
        assert engine.request() is False
        assert engine.state.loading is True

    def test_request_rejected_when_exhausted(self, engine):
        engine.request()
        engine.apply_page([make_story(1)], next_cursor=None)
        assert engine.state.has_more is False
        assert engine.request() is False
        assert engine.state.loading is False


class TestMerge:

    def test_apply_page_appends_and_advances(self, engine):
        engine.request()
        added = engine.apply_page([make_story(1), make_story(2)], next_cursor="c2")
        assert added == 2
        assert engine.state.cursor == "c2"
        assert engine.state.loading is False
        assert engine.state.loaded_count == 2

    def test_same_page_twice_is_idempotent(self, engine):
        page = [make_story(1), make_story(2)]
        engine.request()
        engine.apply_page(page, next_cursor="c2")
        engine.request()
        assert engine.apply_page(page, next_cursor="c3") == 0
        assert len(engine.model) == 2

    def test_existing_story_not_overwritten(self, engine):
        engine.model.add(make_story(1, DONE, name="edited locally"))
        engine.request()
        engine.apply_page([make_story(1, name="stale"), make_story(2)], next_cursor=None)
        assert engine.model.get(1).name == "edited locally"
        assert [s.id for s in engine.model.stories] == [1, 2]


class TestFail:

    def test_fail_clears_loading_and_keeps_cursor(self, engine, caplog):
        engine.state.cursor = "c5"
        engine.state.started = True
        engine.request()
        with caplog.at_level("WARNING"):
            message = engine.fail(ApiError(ApiErrorKind.NETWORK, "connection reset"))
        assert engine.state.loading is False
        assert engine.state.cursor == "c5"
        assert "connection reset" in message
        assert "[PAGE] Fetch failed" in caplog.text


class TestRefresh:
    """Re-fetching from the first page."""

    def test_refresh_allowed_when_exhausted(self, engine):
        engine.request()
        engine.apply_page([make_story(1)], next_cursor=None)
        assert engine.request_refresh() is True
        assert engine.state.loading is True

    def test_refresh_rejected_while_loading(self, engine):
        engine.request()
        assert engine.request_refresh() is False

    def test_apply_refresh_replaces_stories(self, engine):
        engine.request()
        engine.apply_page([make_story(1), make_story(2)], next_cursor="c2")
        engine.request_refresh()
        added = engine.apply_refresh([make_story(2, DONE), make_story(3)], next_cursor=None)
        assert added == 2
        assert [s.id for s in engine.model.stories] == [2, 3]
        assert engine.model.get(2).workflow_state_id == DONE
        assert engine.state.loaded_count == 2
        assert engine.state.cursor is None
        assert engine.state.loading is False

    def test_apply_refresh_keeps_listed_stories(self, engine):
        engine.request()
        engine.apply_page([make_story(1), make_story(2)], next_cursor=None)
        engine.model.update(1, workflow_state_id=DONE)
        engine.request_refresh()
        engine.apply_refresh([make_story(1), make_story(4)], next_cursor=None, keep={1})
        assert [s.id for s in engine.model.stories] == [1, 4]
        assert engine.model.get(1).workflow_state_id == DONE
        assert engine.state.loaded_count == 2


class TestFill:
    """Startup load up to the workspace limit."""

    def test_stops_at_limit(self, engine):
        search = MagicMock(side_effect=[
            SearchPage(stories=[make_story(1), make_story(2)], next_cursor="c2"),
            SearchPage(stories=[make_story(3), make_story(4)], next_cursor="c3"),
        ])
        assert engine.fill(search, limit=3) == 4
        assert search.call_count == 2
        search.assert_called_with("is:story", "c2")
        assert engine.state.cursor == "c3"

    def test_stops_when_exhausted(self, engine):
        search = MagicMock(return_value=SearchPage(stories=[make_story(1)], next_cursor=None))
        assert engine.fill(search, limit=50) == 1
        search.assert_called_once_with("is:story", None)

    def test_stops_when_page_adds_nothing(self, engine):
        search = MagicMock(return_value=SearchPage(stories=[make_story(1)], next_cursor="again"))
        engine.fill(search, limit=50)
        assert search.call_count == 2
        assert len(engine.model) == 1

    def test_error_propagates_and_clears_loading(self, engine):
        search = MagicMock(side_effect=ApiError(ApiErrorKind.UNAUTHORIZED, "bad token", status=401))
        with pytest.raises(ApiError):
            engine.fill(search, limit=10)
        assert engine.state.loading is False
