"""
shellies_lib/rpc.py

Authenticated RPC client.

Turns (method, params) into an awaitable result, correlating responses by
id through a PendingRequestTable and transparently answering one digest
challenge per logical call. The AuthContext is per connection and is
dropped every time the session (re)connects.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from .auth import UNAUTHORIZED_CODE, AuthChallenge, create_auth_response
from .errors import (
    ConnectionClosed,
    ErrorContext,
    InvalidPasswordError,
    RequestTimeout,
    RpcError,
    UnauthorizedError,
)
from .events import Connected, Event
from .pending import PendingRequest, PendingRequestTable
from .session import WebSocketSession

logger = logging.getLogger(__name__)

_MAX_REQUEST_ID = 2_147_483_647


def _error_fields(error: Any) -> tuple[int, str]:
    if isinstance(error, Mapping):
        code = error.get("code")
        message = error.get("message")
        return (code if isinstance(code, int) else -1, str(message) if message is not None else "")
    return -1, str(error)


class RpcClient:
    """
    RPC client bound to exactly one session.

    Typical usage:
        rpc = RpcClient(WebSocketSession("192.168.1.10"), password="secret")
        info = await rpc.request("Shelly.GetDeviceInfo")
        await rpc.destroy()
    """

    def __init__(
        self,
        session: WebSocketSession,
        *,
        password: Optional[str] = None,
        request_timeout_s: Optional[float] = None,
    ) -> None:
        self.session = session
        self.password = password
        self.request_timeout_s = (
            request_timeout_s if request_timeout_s is not None else session.cfg.request_timeout_s
        )
        self._pending = PendingRequestTable(on_timeout=self._timeout_error)
        self._last_id = 0
        self._auth: Optional[dict[str, Any]] = None

        session.on_response = self.handle_response
        session.on_destroy = self._reject_all
        self._unsubscribe_session = session.subscribe(self._on_session_event)

    @property
    def hostname(self) -> str:
        return self.session.hostname

    @property
    def auth_context(self) -> Optional[Mapping[str, Any]]:
        return self._auth

    @property
    def pending(self) -> PendingRequestTable:
        return self._pending

    def _on_session_event(self, evt: Event) -> None:
        if isinstance(evt, Connected):
            # New connection; any previous challenge answer is stale.
            self._auth = None

    def _next_request_id(self) -> int:
        self._last_id = self._last_id + 1 if self._last_id < _MAX_REQUEST_ID else 1
        return self._last_id

    async def request(
        self,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        *,
        timeout_s: Optional[float] = None,
    ) -> Any:
        """
        Send one RPC and return its ``result``.

        Raises:
            RequestTimeout: no response within the timeout.
            UnauthorizedError: the device requires a password and none is set.
            InvalidPasswordError: the device rejected the challenge answer.
            AuthProtocolError: the challenge could not be understood.
            RpcError: any other error response.
            ConnectionFailed / ConnectionClosed / SendFailed: transport failures.
        """
        auth: Optional[Mapping[str, Any]] = None
        while True:
            response, auth = await self._exchange(method, params, auth=auth, timeout_s=timeout_s)
            if response.get("error") is None:
                return response.get("result")

            code, message = _error_fields(response["error"])
            context = ErrorContext(host=self.hostname, method=method, request_id=response.get("id"), phase="request")
            if code != UNAUTHORIZED_CODE:
                raise RpcError(code, message, context=context)
            if not self.password:
                raise UnauthorizedError(context=context)
            if auth is not None:
                raise InvalidPasswordError(context=context)

            challenge = AuthChallenge.parse(message)
            auth = self._auth = create_auth_response(challenge, self.password)
            logger.debug("Answering auth challenge from %s for %s", self.hostname, method)

    async def _exchange(
        self,
        method: str,
        params: Optional[Mapping[str, Any]],
        *,
        auth: Optional[Mapping[str, Any]],
        timeout_s: Optional[float],
    ) -> tuple[Mapping[str, Any], Optional[Mapping[str, Any]]]:
        """Send one envelope and wait for its response; returns it with the auth that was sent."""
        await self.session.connect()
        if auth is None:
            auth = self._auth

        request_id = self._next_request_id()
        envelope: dict[str, Any] = {"id": request_id, "method": method}
        if params is not None:
            envelope["params"] = dict(params)
        if auth is not None:
            envelope["auth"] = dict(auth)

        future = self._pending.create(request_id, method=method, params=params)
        try:
            await self.session.send_request(envelope)
        except BaseException:
            self._pending.drop(request_id)
            raise

        # The timer starts once the frame is on the wire.
        self._pending.arm(request_id, timeout_s if timeout_s is not None else self.request_timeout_s)
        try:
            return await future, auth
        finally:
            self._pending.drop(request_id)

    def handle_response(self, msg: Mapping[str, Any]) -> None:
        request_id = msg.get("id")
        if not isinstance(request_id, int) or not self._pending.resolve(request_id, msg):
            logger.debug("Ignoring response for unknown request id %r from %s", request_id, self.hostname)

    def _timeout_error(self, req: PendingRequest) -> BaseException:
        return RequestTimeout(
            f"Request {req.method} timed out",
            context=ErrorContext(host=self.hostname, method=req.method, request_id=req.request_id, phase="request"),
        )

    def _reject_all(self) -> None:
        count = self._pending.fail_all(
            lambda: ConnectionClosed("Connection closed", context=ErrorContext(host=self.hostname, phase="destroy"))
        )
        if count:
            logger.debug("Rejected %d pending request(s) for %s", count, self.hostname)

    async def destroy(self) -> None:
        """Reject every pending request, then tear the session down."""
        self._reject_all()
        self._unsubscribe_session()
        await self.session.destroy()
