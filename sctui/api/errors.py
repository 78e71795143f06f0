"""Typed failures raised by the Shortcut client."""

from enum import Enum


class ApiErrorKind(Enum):
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    MALFORMED = "malformed"


class ApiError(Exception):
    """A Shortcut API call failed.

    kind says what went wrong; status is the HTTP status when there was one.
    """

    def __init__(self, kind: ApiErrorKind, message: str, status: int | None = None):
        self.kind = kind
        self.message = message
        self.status = status
        super().__init__(
            f"{kind.value}: {message}" + (f" (HTTP {status})" if status else "")
        )


def kind_for_status(status: int) -> ApiErrorKind:
    """Map an HTTP error status to an ApiErrorKind."""
    if status in (401, 403):
        return ApiErrorKind.UNAUTHORIZED
    if status == 404:
        return ApiErrorKind.NOT_FOUND
    if status == 429:
        return ApiErrorKind.RATE_LIMITED
    if status >= 500:
        return ApiErrorKind.NETWORK
    # Remaining 4xx: the server rejected what we sent
    return ApiErrorKind.MALFORMED
