"""
shellies_lib/pending.py

Pending-request table.

Each in-flight RPC owns one PendingRequest record holding its future and
its expiry timer handle. The table is owned by exactly one RpcClient and is
only touched from the event loop thread.

Lifecycle:
    create()  -> record exists, no timer yet
    arm()     -> deadline set, timer scheduled (call after the frame is sent)
    resolve() / fail() / expiry / fail_all() -> record removed, timer cancelled

A resolve/fail for an id that is not in the table is a no-op and returns False.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PendingRequest:
    request_id: int
    method: str
    params: Optional[Mapping[str, Any]]
    future: asyncio.Future
    deadline: Optional[float] = None
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class PendingRequestTable:
    def __init__(
        self,
        *,
        on_timeout: Optional[Callable[[PendingRequest], BaseException]] = None,
    ) -> None:
        self._requests: dict[int, PendingRequest] = {}
        # Builds the exception used to reject an expired request.
        self._on_timeout = on_timeout or (
            lambda req: asyncio.TimeoutError(f"Request {req.method} (id={req.request_id}) timed out")
        )

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._requests

    def __len__(self) -> int:
        return len(self._requests)

    def __iter__(self) -> Iterator[PendingRequest]:
        return iter(list(self._requests.values()))

    def get(self, request_id: int) -> Optional[PendingRequest]:
        return self._requests.get(request_id)

    def create(
        self,
        request_id: int,
        *,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> asyncio.Future:
        if request_id in self._requests:
            raise ValueError(f"Request id {request_id} is already pending")
        loop = loop or asyncio.get_running_loop()
        future = loop.create_future()
        self._requests[request_id] = PendingRequest(
            request_id=request_id,
            method=method,
            params=params,
            future=future,
        )
        return future

    def arm(self, request_id: int, timeout_s: Optional[float]) -> None:
        """Start the expiry timer. A timeout of None or <= 0 never expires."""
        req = self._requests.get(request_id)
        if req is None or timeout_s is None or timeout_s <= 0:
            return
        loop = req.future.get_loop()
        req.cancel_timer()
        req.deadline = loop.time() + timeout_s
        req.timer = loop.call_later(timeout_s, self._expire, request_id)

    def resolve(self, request_id: int, result: Any) -> bool:
        req = self._requests.pop(request_id, None)
        if req is None:
            return False
        req.cancel_timer()
        if not req.future.done():
            req.future.set_result(result)
        return True

    def fail(self, request_id: int, exc: BaseException) -> bool:
        req = self._requests.pop(request_id, None)
        if req is None:
            return False
        req.cancel_timer()
        if not req.future.done():
            req.future.set_exception(exc)
        return True

    def drop(self, request_id: int) -> None:
        req = self._requests.pop(request_id, None)
        if req is not None:
            req.cancel_timer()

    def fail_all(self, exc_factory: Callable[[], BaseException]) -> int:
        """Reject every pending request; returns how many were rejected."""
        requests = list(self._requests.values())
        self._requests.clear()
        for req in requests:
            req.cancel_timer()
            if not req.future.done():
                req.future.set_exception(exc_factory())
        return len(requests)

    def _expire(self, request_id: int) -> None:
        req = self._requests.pop(request_id, None)
        if req is None:
            return
        req.timer = None
        logger.debug("Request %s (id=%s) expired", req.method, request_id)
        if not req.future.done():
            req.future.set_exception(self._on_timeout(req))
