"""Latest-request-wins background fetching.

Picking a new location while the previous weather request is still in flight
supersedes the old request: it is cancelled when it has not started yet, and
its result is dropped when it has. Only the newest request ever reaches the
``on_result``/``on_error`` callbacks.
"""
from __future__ import annotations

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from farmsim.core.debug import DebugCollector, NullDebugCollector

T = TypeVar("T")


class RequestSuperseded(RuntimeError):
    """Raised when reading the result of a request that a newer one replaced."""


@dataclass(frozen=True)
class FetchTicket(Generic[T]):
    request_id: int
    for_day: int
    future: Future


class LatestRequestFetcher(Generic[T]):
    def __init__(
        self,
        fn: Callable[..., T],
        executor: Executor | None = None,
        debug: DebugCollector | None = None,
    ):
        self._fn = fn
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="farmsim-fetch")
        self.debug = debug or NullDebugCollector()
        self._lock = threading.Lock()
        self._latest_id = 0
        self._current: Optional[Future] = None

    def submit(
        self,
        *args: Any,
        for_day: int = 1,
        on_result: Callable[[T, "FetchTicket[T]"], None] | None = None,
        on_error: Callable[[BaseException, "FetchTicket[T]"], None] | None = None,
        **kwargs: Any,
    ) -> FetchTicket[T]:
        with self._lock:
            self._latest_id += 1
            request_id = self._latest_id
            previous = self._current
            self._current = None
        if previous is not None and not previous.done():
            cancelled = previous.cancel()
            self.debug.emit(
                "fetch.superseded",
                {"by_request": request_id, "cancelled_before_start": cancelled},
                ts=None,
                day=for_day,
            )

        future = self._executor.submit(self._fn, *args, **kwargs)
        ticket: FetchTicket[T] = FetchTicket(request_id=request_id, for_day=for_day, future=future)
        with self._lock:
            if request_id == self._latest_id:
                self._current = future

        def _done(fut: Future) -> None:
            if fut.cancelled() or not self.is_current(ticket):
                self.debug.emit("fetch.discarded", {"request": request_id}, ts=None, day=for_day)
                return
            exc = fut.exception()
            if exc is not None:
                self.debug.emit("fetch.error", {"request": request_id, "error": str(exc)}, ts=None, day=for_day)
                if on_error is not None:
                    on_error(exc, ticket)
                return
            self.debug.emit("fetch.completed", {"request": request_id}, ts=None, day=for_day)
            if on_result is not None:
                on_result(fut.result(), ticket)

        future.add_done_callback(_done)
        self.debug.emit("fetch.submitted", {"request": request_id}, ts=None, day=for_day)
        return ticket

    def is_current(self, ticket: FetchTicket) -> bool:
        with self._lock:
            return ticket.request_id == self._latest_id

    def result(self, ticket: FetchTicket[T], timeout: float | None = None) -> T:
        """Block for a ticket's value; raise RequestSuperseded if a newer request exists."""
        if not self.is_current(ticket):
            raise RequestSuperseded(f"request {ticket.request_id} was superseded")
        value = ticket.future.result(timeout=timeout)
        if not self.is_current(ticket):
            raise RequestSuperseded(f"request {ticket.request_id} was superseded")
        return value

    def cancel(self) -> None:
        """Supersede whatever is in flight without starting a new request."""
        with self._lock:
            self._latest_id += 1
            previous = self._current
            self._current = None
        if previous is not None:
            previous.cancel()

    def shutdown(self, wait: bool = True) -> None:
        self.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> "LatestRequestFetcher[T]":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()


__all__ = ["LatestRequestFetcher", "FetchTicket", "RequestSuperseded"]
