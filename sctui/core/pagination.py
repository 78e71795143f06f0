"""
Incremental loading of search results.

The engine tracks pagination state and merges pages. Once the board is
running, issuing the fetch is the dispatcher's job. A page is merged
all-or-nothing, and stories already in the model are left alone so a
stale page can never overwrite a local edit.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from sctui.api.errors import ApiError
from sctui.api.models import SearchPage, Story
from sctui.core.model import RecordModel

logger = logging.getLogger(__name__)


@dataclass
class PaginationState:
    query: str
    cursor: str | None = None  # None after the first page: no more pages
    loaded_count: int = 0
    loading: bool = False
    started: bool = False

    @property
    def has_more(self) -> bool:
        return not self.started or self.cursor is not None


class PaginationEngine:
    """Owns PaginationState and merges fetched pages into a RecordModel."""

    def __init__(self, model: RecordModel, state: PaginationState) -> None:
        self.model = model
        self.state = state

    def request(self) -> bool:
        """Mark a fetch as in flight.

        Returns False, without changing anything, when there are no more
        pages or a fetch is already running. Re-entrant calls are rejected,
        never queued.
        """
        if not self.state.has_more:
            logger.debug("[PAGE] No more pages; load-more ignored")
            return False
        if self.state.loading:
            logger.debug("[PAGE] Fetch already in flight; load-more rejected")
            return False
        self.state.loading = True
        logger.info(f"[PAGE] Fetching next page (cursor={self.state.cursor})")
        return True

    def request_refresh(self) -> bool:
        """Mark a first-page refetch as in flight; same rules as request()
        except that an exhausted query can always be refreshed."""
        if self.state.loading:
            logger.debug("[PAGE] Fetch already in flight; refresh rejected")
            return False
        self.state.loading = True
        logger.info("[PAGE] Refreshing from the first page")
        return True

    def apply_refresh(self, stories: list[Story], next_cursor: str | None, keep: set[int] = frozenset()) -> int:
        """Replace the loaded stories with a freshly fetched first page.

        Stories in keep have a change in flight; their local version stays.
        """
        self.state.loaded_count = self.model.clear_stories(keep)
        return self.apply_page(stories, next_cursor)

    def merge(self, stories: list[Story]) -> int:
        """Append unseen stories in order; returns how many were added."""
        added = 0
        for story in stories:
            if self.model.add(story):
                added += 1
        self.state.loaded_count += added
        return added

    def apply_page(self, stories: list[Story], next_cursor: str | None) -> int:
        """Merge a successfully fetched page and advance the cursor."""
        added = self.merge(stories)
        skipped = len(stories) - added
        self.state.cursor = next_cursor
        self.state.started = True
        self.state.loading = False
        logger.info(
            f"[PAGE] Merged {added} stories ({skipped} already loaded), "
            f"more={self.state.has_more}"
        )
        return added

    def fail(self, error: Exception) -> str:
        """Record a failed fetch. The cursor stays put so the user can retry."""
        self.state.loading = False
        logger.warning(f"[PAGE] Fetch failed: {error}")
        return f"Failed to load more stories: {error}"

    def fill(self, search: Callable[[str, str | None], SearchPage], limit: int) -> int:
        """Load pages synchronously until limit stories are loaded.

        Used once at startup, before the board is interactive. Stops early
        when the results are exhausted or a page adds nothing new. ApiError
        from search propagates after the fetch is marked failed.
        """
        total = 0
        while len(self.model) < limit and self.request():
            try:
                page = search(self.state.query, self.state.cursor)
            except ApiError as e:
                self.fail(e)
                raise
            added = self.apply_page(page.stories, page.next_cursor)
            total += added
            if added == 0:
                break
        return total
