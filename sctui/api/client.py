"""
Shortcut REST v3 client.

Thin blocking wrapper over urllib. Every method either returns parsed
records or raises ApiError; retries and backoff are left to the caller
(which in practice means the user pressing the key again).
"""

import json
import logging
import socket
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs, urlencode, urlparse
from urllib.request import Request, urlopen

from sctui.api.errors import ApiError, ApiErrorKind, kind_for_status
from sctui.api.models import Comment, Epic, Member, SearchPage, Story, WorkflowState

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.app.shortcut.com/api/v3"
REQUEST_TIMEOUT_SECONDS = 30
PAGE_SIZE = 25


class ShortcutApi(Protocol):
    """Calls the board needs from the remote service."""

    def search(self, query: str, cursor: str | None = None) -> SearchPage: ...

    def create_story(
        self,
        name: str,
        description: str,
        story_type: str,
        requested_by_id: str,
        workflow_state_id: int | None = None,
        epic_id: int | None = None,
    ) -> Story: ...
    def update_story(self, story_id: int, **patch) -> Story: ...

    def get_workflow_states(self) -> list[WorkflowState]: ...

    def get_current_member(self) -> Member: ...

    def get_members(self) -> list[Member]: ...

    def get_epics(self) -> list[Epic]: ...

    def create_epic(self, name: str, description: str = "") -> Epic: ...

    def add_comment(self, story_id: int, text: str) -> Comment: ...


def _next_token(next_path: str | None) -> str | None:
    """Extract the opaque continuation token from the API's "next" link."""
    if not next_path:
        return None
    values = parse_qs(urlparse(next_path).query).get("next")
    return values[0] if values else None


class ShortcutClient:
    """Blocking Shortcut client authenticated with an API token."""

    def __init__(
        self,
        api_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size

    def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        payload: dict | None = None,
    ):
        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"

        data = json.dumps(payload).encode() if payload is not None else None
        req = Request(
            url,
            data=data,
            headers={
                "Shortcut-Token": self.api_token,
                "Content-Type": "application/json",
            },
            method=method,
        )
        logger.debug(f"[API] {method} {path}")

        try:
            with urlopen(req, timeout=self.timeout) as response:
                body = response.read()
        except HTTPError as e:
            detail = ""
            try:
                detail = e.read().decode(errors="replace")[:200]
            except OSError:
                pass
            logger.warning(f"[API] {method} {path} -> HTTP {e.code} {detail}")
            raise ApiError(kind_for_status(e.code), detail or e.reason, status=e.code) from None
        except (URLError, socket.timeout, ConnectionError) as e:
            logger.warning(f"[API] {method} {path} -> {e}")
            raise ApiError(ApiErrorKind.NETWORK, str(e)) from None

        if not body:
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise ApiError(ApiErrorKind.MALFORMED, f"Invalid JSON from {path}: {e}") from None

    def _parse(self, parser, data, what: str):
        try:
            return parser(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ApiError(ApiErrorKind.MALFORMED, f"Unexpected {what} payload: {e!r}") from None

    def search(self, query: str, cursor: str | None = None) -> SearchPage:
        """Fetch one page of stories matching a Shortcut search query."""
        params = {"query": query, "page_size": self.page_size, "detail": "full"}
        if cursor:
            params["next"] = cursor
        data = self._request("GET", "/search/stories", params=params)

        def parse(d):
            return SearchPage(
                stories=[Story.from_dict(s) for s in d.get("data") or []],
                next_cursor=_next_token(d.get("next")),
            )

        page = self._parse(parse, data or {}, "search")
        logger.debug(f"[API] search returned {len(page.stories)} stories, more={page.next_cursor is not None}")
        return page

    def create_story(
        self,
        name: str,
        description: str,
        story_type: str,
        requested_by_id: str,
        workflow_state_id: int | None = None,
        epic_id: int | None = None,
    ) -> Story:
        payload = {
            "name": name,
            "description": description,
            "story_type": story_type,
            "requested_by_id": requested_by_id,
        }
        if workflow_state_id is not None:
            payload["workflow_state_id"] = workflow_state_id
        if epic_id is not None:
            payload["epic_id"] = epic_id
        data = self._request("POST", "/stories", payload=payload)
        return self._parse(Story.from_dict, data, "story")

    def update_story(self, story_id: int, **patch) -> Story:
        """Update a story. Accepted keys: name, description, story_type,
        workflow_state_id, owner_ids, epic_id (None detaches)."""
        data = self._request("PUT", f"/stories/{story_id}", payload=patch)
        return self._parse(Story.from_dict, data, "story")

    def get_workflow_states(self) -> list[WorkflowState]:
        """All states of all workflows, each workflow's states in position order."""
        data = self._request("GET", "/workflows")

        def parse(workflows):
            states = []
            for workflow in workflows:
                wf_states = [WorkflowState.from_dict(s) for s in workflow.get("states") or []]
                states.extend(sorted(wf_states, key=lambda s: s.position))
            return states

        return self._parse(parse, data or [], "workflows")

    def get_current_member(self) -> Member:
        data = self._request("GET", "/member")
        return self._parse(Member.from_dict, data, "member")

    def get_members(self) -> list[Member]:
        data = self._request("GET", "/members")
        return self._parse(lambda d: [Member.from_dict(m) for m in d], data or [], "members")

    def add_comment(self, story_id: int, text: str) -> Comment:
        data = self._request("POST", f"/stories/{story_id}/comments", payload={"text": text})
        return self._parse(Comment.from_dict, data, "comment")

    def get_epics(self) -> list[Epic]:
        """Epics that are not archived, in the order the API returns them."""
        data = self._request("GET", "/epics")

        def parse(epics):
            return [Epic.from_dict(e) for e in epics if not e.get("archived")]

        return self._parse(parse, data or [], "epics")

    def create_epic(self, name: str, description: str = "") -> Epic:
        data = self._request("POST", "/epics", payload={"name": name, "description": description})
        epic = self._parse(Epic.from_dict, data, "epic")
        logger.info(f"[API] Created epic {epic.id} '{epic.name}'")
        return epic
