"""
Shellies WebSocket session.

Responsibilities:
- Own the WebSocket lifecycle for one device (ws://<hostname>/rpc).
- Drive the DISCONNECTED -> CONNECTING -> OPEN -> CLOSING state machine,
  including reconnect/backoff after abnormal closes.
- Keepalive: ping after an idle interval, terminate if no pong arrives.
- Tag outbound requests with the client id and send them.
- Demultiplex inbound frames into responses vs. status/event pushes.

Non-responsibilities (explicit):
- Request/response correlation and authentication (rpc.RpcClient).
- Routing pushes to components (devices.Device).
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, Mapping, Optional

import aiohttp

from .errors import ConnectionClosed, ConnectionFailed, ErrorContext, SendFailed
from .events import (
    Connected,
    Disconnected,
    Event,
    EventNotification,
    RequestSent,
    StatusUpdate,
    TransportErrorOccurred,
)
from .types import SessionConfig

logger = logging.getLogger(__name__)

CLOSE_NORMAL = 1000
CLOSE_ABNORMAL = 1006

METHOD_NOTIFY_STATUS = "NotifyStatus"
METHOD_NOTIFY_FULL_STATUS = "NotifyFullStatus"
METHOD_NOTIFY_EVENT = "NotifyEvent"


class SessionState(str, Enum):
    """Connection lifecycle states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


ResponseHandler = Callable[[Mapping[str, Any]], None]
EventCallback = Callable[[Event], None]


class WebSocketSession:
    """
    One persistent WebSocket connection to one device.

    Typical usage:
        s = WebSocketSession("192.168.1.10", SessionConfig())
        s.on_response = rpc_client.handle_response
        await s.connect()
        await s.send_request({"id": 1, "method": "Shelly.GetStatus"})
    """

    def __init__(
        self,
        hostname: str,
        cfg: SessionConfig | None = None,
        *,
        client_session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.hostname = hostname
        self.cfg = cfg or SessionConfig()
        self.url = f"ws://{hostname}{self.cfg.path}"

        self.state: SessionState = SessionState.DISCONNECTED
        self.last_error: Exception | None = None

        self._client_session = client_session
        self._owns_client_session = client_session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._connect_task: Optional[asyncio.Task[None]] = None
        self._reader_task: Optional[asyncio.Task[None]] = None
        self._close_task: Optional[asyncio.Task[None]] = None

        self._reconnect_attempt = 0
        self._reconnect_enabled = True
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._ping_handle: Optional[asyncio.TimerHandle] = None
        self._pong_timeout_handle: Optional[asyncio.TimerHandle] = None
        self._closing_intentionally = False
        self._destroyed = False

        self._subscribers: list[EventCallback] = []
        self._subscriber_error_types: set[type] = set()

        # Set by the RPC client; receives every frame that carries a response id.
        self.on_response: Optional[ResponseHandler] = None
        # Called first thing in destroy(), before the socket is closed.
        self.on_destroy: Optional[Callable[[], None]] = None

    # --------------------------
    # Subscriptions
    # --------------------------

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: EventCallback) -> bool:
        if callback not in self._subscribers:
            return False
        self._subscribers.remove(callback)
        return True

    def _emit(self, event: Event) -> None:
        for cb in list(self._subscribers):
            try:
                cb(event)
            except Exception as exc:  # noqa: BLE001
                exc_type = type(exc)
                if exc_type not in self._subscriber_error_types:
                    self._subscriber_error_types.add(exc_type)
                    logger.warning(
                        "Subscriber callback failed for %s: %s", self.hostname, exc_type.__name__, exc_info=True
                    )

    # --------------------------
    # Connection lifecycle
    # --------------------------

    @property
    def connected(self) -> bool:
        return self.state is SessionState.OPEN

    async def connect(self) -> None:
        """
        Open the connection if needed.

        Concurrent callers share a single in-flight attempt, and a close
        started by disconnect() completes before a new socket is opened.
        Raises ConnectionFailed if the socket does not open.
        """
        if self._destroyed:
            raise ConnectionClosed("Connection closed", context=self._context("connect"))
        close_task = self._close_task
        if close_task is not None and not close_task.done():
            # An intentional close is in flight; let it finish before reopening.
            await asyncio.shield(close_task)
            if self._destroyed:
                raise ConnectionClosed("Connection closed", context=self._context("connect"))
        if self.state is SessionState.OPEN:
            return
        await asyncio.shield(self._start_connect())

    def _start_connect(self) -> asyncio.Task[None]:
        if self._connect_task is None or self._connect_task.done():
            self._cancel_reconnect()
            self._connect_task = asyncio.get_running_loop().create_task(self._open())
            self._connect_task.add_done_callback(self._on_connect_done)
        return self._connect_task

    @staticmethod
    def _on_connect_done(task: asyncio.Task[None]) -> None:
        # Failures are reported through events; mark them retrieved for
        # attempts started by the reconnect timer.
        if not task.cancelled():
            task.exception()

    async def _open(self) -> None:
        self.state = SessionState.CONNECTING
        self._closing_intentionally = False
        logger.info("Connecting to %s", self.url)

        try:
            ws = await asyncio.wait_for(
                self._get_client_session().ws_connect(self.url, autoping=False, heartbeat=None),
                timeout=self.cfg.connect_timeout_s,
            )
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            reason = str(exc) or type(exc).__name__
            err = ConnectionFailed(f"Connection closed ({reason})", context=self._context("connect"))
            self.last_error = err
            self._emit(TransportErrorOccurred(hostname=self.hostname, error=err))
            self._handle_abnormal_close(CLOSE_ABNORMAL, reason)
            raise err from exc

        if self._destroyed:
            await ws.close()
            raise ConnectionClosed("Connection closed", context=self._context("connect"))

        self._ws = ws
        self.state = SessionState.OPEN
        self.last_error = None
        self._reconnect_attempt = 0
        logger.info("Connected to %s", self.url)

        self._reader_task = asyncio.get_running_loop().create_task(self._read_loop(ws))
        self._emit(Connected(hostname=self.hostname))
        self._schedule_ping()

    def _get_client_session(self) -> aiohttp.ClientSession:
        if self._client_session is None or self._client_session.closed:
            self._client_session = aiohttp.ClientSession()
            self._owns_client_session = True
        return self._client_session

    async def disconnect(self) -> None:
        """Close the connection intentionally; no reconnect is scheduled."""
        self._cancel_reconnect()
        self._cancel_keepalive()

        connect_task = self._connect_task
        if connect_task is not None and not connect_task.done():
            connect_task.cancel()
            try:
                await connect_task
            except (asyncio.CancelledError, ConnectionFailed, ConnectionClosed):
                pass

        close_task = self._close_task
        if close_task is not None and not close_task.done():
            await asyncio.shield(close_task)
            return

        ws = self._ws
        if ws is None:
            self.state = SessionState.DISCONNECTED
            return

        self._closing_intentionally = True
        self.state = SessionState.CLOSING
        self._close_task = asyncio.get_running_loop().create_task(self._close(ws, self._reader_task))
        await asyncio.shield(self._close_task)

    async def _close(self, ws: aiohttp.ClientWebSocketResponse, reader: Optional[asyncio.Task[None]]) -> None:
        try:
            await ws.close(code=aiohttp.WSCloseCode.OK, message=b"")
        except (aiohttp.ClientError, OSError) as exc:
            logger.debug("Error while closing %s: %s", self.url, exc)
        finally:
            await self._stop_reader(reader)
            # Only release state still owned by the socket being closed.
            if self._ws is ws:
                self._ws = None
                self.state = SessionState.DISCONNECTED
            if self._reader_task is reader:
                self._reader_task = None

        logger.info("Disconnected from %s", self.url)
        self._emit(Disconnected(hostname=self.hostname, code=CLOSE_NORMAL, reason="", next_attempt_ms=None))

    async def destroy(self) -> None:
        """
        Tear the session down for good: cancel timers, reject pending
        requests (via on_destroy), close the socket and release resources.
        """
        if self._destroyed:
            return
        self._reconnect_enabled = False
        self._cancel_reconnect()
        self._cancel_keepalive()
        if self.on_destroy is not None:
            self.on_destroy()
        await self.disconnect()
        self._destroyed = True
        if self._owns_client_session and self._client_session is not None:
            await self._client_session.close()
        self._client_session = None
        self._subscribers.clear()

    @staticmethod
    async def _stop_reader(task: Optional[asyncio.Task[None]]) -> None:
        if task is None or task is asyncio.current_task():
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # --------------------------
    # Reconnect policy
    # --------------------------

    def _next_reconnect_delay(self) -> Optional[float]:
        """
        Pick the wait before the next attempt. The index clamps at the last
        entry; a value of 0 disables further attempts.
        """
        intervals = self.cfg.reconnect_intervals
        if not intervals or not self._reconnect_enabled:
            return None
        idx = min(self._reconnect_attempt, len(intervals) - 1)
        self._reconnect_attempt += 1
        delay = intervals[idx]
        if delay <= 0:
            return None
        return delay

    def _handle_abnormal_close(self, code: int, reason: str) -> None:
        self._cancel_keepalive()
        self._ws = None
        self.state = SessionState.DISCONNECTED

        delay = self._next_reconnect_delay()
        next_attempt_ms: Optional[int] = None
        if delay is not None:
            self._cancel_reconnect()
            self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._reconnect)
            next_attempt_ms = int(delay * 1000)
            logger.info(
                "Connection to %s closed (code=%s reason=%r); reconnecting in %ss",
                self.url,
                code,
                reason,
                delay,
            )
        else:
            logger.info("Connection to %s closed (code=%s reason=%r)", self.url, code, reason)

        self._emit(
            Disconnected(hostname=self.hostname, code=code, reason=reason, next_attempt_ms=next_attempt_ms)
        )

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if self._destroyed or self.state is not SessionState.DISCONNECTED:
            return
        self._start_connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    # --------------------------
    # Keepalive
    # --------------------------

    def _schedule_ping(self) -> None:
        if self._ping_handle is not None:
            self._ping_handle.cancel()
            self._ping_handle = None
        if self.cfg.ping_interval_s <= 0 or self.state is not SessionState.OPEN:
            return
        self._ping_handle = asyncio.get_running_loop().call_later(self.cfg.ping_interval_s, self._send_ping)

    def _send_ping(self) -> None:
        self._ping_handle = None
        ws = self._ws
        if ws is None or self.state is not SessionState.OPEN:
            return
        loop = asyncio.get_running_loop()
        self._pong_timeout_handle = loop.call_later(self.cfg.request_timeout_s, self._on_pong_timeout)
        loop.create_task(self._ping(ws))

    async def _ping(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            await ws.ping()
        except (aiohttp.ClientError, OSError, RuntimeError) as exc:
            logger.debug("Ping to %s failed: %s", self.url, exc)

    def _on_pong(self) -> None:
        if self._pong_timeout_handle is not None:
            self._pong_timeout_handle.cancel()
            self._pong_timeout_handle = None
        self._schedule_ping()

    def _on_pong_timeout(self) -> None:
        self._pong_timeout_handle = None
        ws = self._ws
        if ws is None:
            return
        logger.warning("No pong from %s within %ss; terminating connection", self.url, self.cfg.request_timeout_s)
        asyncio.get_running_loop().create_task(self._terminate(ws))

    async def _terminate(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Drop the socket without a close handshake; treated as an abnormal close."""
        if ws is not self._ws:
            return
        self._ws = None
        reader, self._reader_task = self._reader_task, None
        await self._stop_reader(reader)
        self._handle_abnormal_close(CLOSE_ABNORMAL, "ping timeout")
        try:
            await ws.close(code=aiohttp.WSCloseCode.GOING_AWAY, message=b"ping timeout")
        except (aiohttp.ClientError, OSError) as exc:
            logger.debug("Error while terminating %s: %s", self.url, exc)

    def _cancel_keepalive(self) -> None:
        if self._ping_handle is not None:
            self._ping_handle.cancel()
            self._ping_handle = None
        if self._pong_timeout_handle is not None:
            self._pong_timeout_handle.cancel()
            self._pong_timeout_handle = None

    # --------------------------
    # Receive
    # --------------------------

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        code = CLOSE_ABNORMAL
        reason = ""
        try:
            while True:
                msg = await ws.receive()
                if msg.type is aiohttp.WSMsgType.TEXT:
                    self._handle_frame(msg.data)
                elif msg.type is aiohttp.WSMsgType.BINARY:
                    self._handle_frame(msg.data.decode("utf-8", errors="replace"))
                elif msg.type is aiohttp.WSMsgType.PING:
                    await ws.pong(msg.data)
                elif msg.type is aiohttp.WSMsgType.PONG:
                    self._on_pong()
                elif msg.type is aiohttp.WSMsgType.CLOSE:
                    code = msg.data if isinstance(msg.data, int) else CLOSE_ABNORMAL
                    reason = msg.extra or ""
                    break
                elif msg.type is aiohttp.WSMsgType.ERROR:
                    exc = ws.exception()
                    reason = str(exc) if exc else "websocket error"
                    self._emit_error(exc or ConnectionClosed(reason))
                    break
                else:
                    # CLOSING / CLOSED
                    break
        except (aiohttp.ClientError, OSError) as exc:
            reason = str(exc)
            self._emit_error(exc)

        if ws is not self._ws or self._closing_intentionally:
            return
        if ws.close_code is not None and code == CLOSE_ABNORMAL:
            code = ws.close_code
        self._reader_task = None
        self._handle_abnormal_close(code, reason)

    def _emit_error(self, exc: BaseException) -> None:
        self.last_error = exc if isinstance(exc, Exception) else None
        logger.warning("Transport error on %s: %s", self.url, exc)
        self._emit(TransportErrorOccurred(hostname=self.hostname, error=exc))

    def _handle_frame(self, data: str) -> None:
        if self.cfg.wire_log and logger.isEnabledFor(logging.DEBUG):
            logger.debug("RX %s: %s", self.hostname, data)
        try:
            obj = json.loads(data)
        except ValueError as exc:
            self._emit_error(exc)
            return
        if not isinstance(obj, dict):
            logger.debug("Ignoring non-object frame from %s", self.hostname)
            return
        self.dispatch_message(obj)

    def dispatch_message(self, msg: Mapping[str, Any]) -> None:
        """Route one decoded inbound message."""
        if "id" in msg and ("result" in msg or "error" in msg):
            if self.on_response is not None:
                self.on_response(msg)
            return

        method = msg.get("method")
        params = msg.get("params")
        if not isinstance(params, Mapping):
            params = {}
        if method in (METHOD_NOTIFY_STATUS, METHOD_NOTIFY_FULL_STATUS):
            self._emit(
                StatusUpdate(
                    ts=params.get("ts"),
                    params=params,
                    full=method == METHOD_NOTIFY_FULL_STATUS,
                )
            )
        elif method == METHOD_NOTIFY_EVENT:
            events = params.get("events")
            self._emit(
                EventNotification(
                    ts=params.get("ts"),
                    events=tuple(e for e in events if isinstance(e, Mapping)) if isinstance(events, list) else (),
                )
            )
        elif logger.isEnabledFor(logging.DEBUG):
            logger.debug("Ignoring message from %s: method=%s keys=%s", self.hostname, method, tuple(msg.keys()))

    # --------------------------
    # Send
    # --------------------------

    async def send_request(self, payload: Mapping[str, Any]) -> None:
        """
        Tag ``payload`` with the client id and send it.

        Raises:
            SendFailed: not connected, or the socket write failed.
        """
        envelope = {"src": self.cfg.client_id, **payload}
        ws = self._ws
        if ws is None or self.state is not SessionState.OPEN:
            raise SendFailed("Not connected", context=self._context("send", envelope))
        data = json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)
        if self.cfg.wire_log and logger.isEnabledFor(logging.DEBUG):
            logger.debug("TX %s: %s", self.hostname, data)
        try:
            await ws.send_str(data)
        except (aiohttp.ClientError, OSError, RuntimeError) as exc:
            raise SendFailed(
                f"Failed to send {envelope.get('method')} to {self.hostname}: {exc}",
                context=self._context("send", envelope),
            ) from exc
        self._emit(RequestSent(hostname=self.hostname, envelope=envelope))

    def _context(self, phase: str, envelope: Optional[Mapping[str, Any]] = None) -> ErrorContext:
        return ErrorContext(
            host=self.hostname,
            method=envelope.get("method") if envelope else None,
            request_id=envelope.get("id") if envelope else None,
            phase=phase,
        )
