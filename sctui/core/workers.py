"""
Background execution of blocking calls.

Each remote or git call runs on its own daemon thread. Threads never touch
the record model: they put a CallResult on one shared queue, and the main
loop drains that queue between input events.
"""

import logging
import queue
import threading
import uuid
from typing import Callable

from sctui.api.errors import ApiError
from sctui.core.events import CallResult, Operation
from sctui.git.branch import GitError

logger = logging.getLogger(__name__)


def new_correlation_id() -> str:
    return uuid.uuid4().hex


class WorkerPool:
    """One thread per in-flight call, results delivered in completion order."""

    def __init__(self) -> None:
        self._results: queue.Queue[CallResult] = queue.Queue()
        self._lock = threading.Lock()
        self._in_flight: set[str] = set()

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def submit(
        self,
        correlation_id: str,
        operation: Operation,
        fn: Callable,
        *args,
        **kwargs,
    ) -> threading.Thread:
        """Run fn(*args, **kwargs) on a new thread."""
        with self._lock:
            self._in_flight.add(correlation_id)

        thread = threading.Thread(
            target=self._run,
            args=(correlation_id, operation, fn, args, kwargs),
            name=f"sctui-{operation.value}-{correlation_id[:8]}",
            daemon=True,
        )
        thread.start()
        return thread

    def _run(self, correlation_id: str, operation: Operation, fn: Callable, args, kwargs) -> None:
        try:
            result = CallResult(correlation_id, operation, value=fn(*args, **kwargs))
        except (ApiError, GitError) as e:
            result = CallResult(correlation_id, operation, error=e)
        except Exception as e:
            logger.exception(f"Unexpected error in {operation.value} worker")
            result = CallResult(correlation_id, operation, error=e)
        finally:
            with self._lock:
                self._in_flight.discard(correlation_id)
        self._results.put(result)

    def drain(self) -> list[CallResult]:
        """All results available right now, without blocking."""
        results = []
        while True:
            try:
                results.append(self._results.get_nowait())
            except queue.Empty:
                return results
