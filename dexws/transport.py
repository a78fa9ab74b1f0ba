# =============================================================================
# dexws -- Transport Adapter
# =============================================================================
#
# One Transport wraps one WebSocket connection. It never reconnects by
# itself: it reports open / message / error / close / pong through the
# handlers it was built with and leaves every decision to the supervisor.
# =============================================================================

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

import websockets.asyncio.client
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from ._logging import logger, redact_url
from .codec import decode_payload
from .constants import (
    CLOSE_TIMEOUT,
    MAX_MESSAGE_SIZE,
    OPEN_TIMEOUT,
    WS_CLOSE_ABNORMAL,
    WS_CLOSE_NORMAL,
)
from .errors import DexError, DexNotOpenError, DexTimeoutError, normalize_error

if TYPE_CHECKING:
    from .config import SupervisorConfig


def _noop(*_: Any) -> None:
    return None


@dataclass(frozen=True)
class TransportHandlers:
    """Event sinks a transport reports to.

    ``on_message`` receives ``(decoded, raw)`` where *decoded* is the parsed
    JSON value, or *raw* itself when the frame is not JSON.
    """

    on_open: Callable[[], Any] = _noop
    on_message: Callable[[Any, str | bytes], Any] = _noop
    on_error: Callable[[DexError], Any] = _noop
    on_close: Callable[[int, str], Any] = _noop
    on_pong: Callable[[float], Any] = _noop


class Transport(ABC):
    """Contract between the supervisor and one underlying connection.

    Subclasses implement the I/O; this base class guarantees the event
    ordering: at most one ``on_open``, exactly one ``on_close``, nothing
    after ``on_close``.
    """

    def __init__(self, handlers: TransportHandlers) -> None:
        self._handlers = handlers
        self._opened = False
        self._closed = False

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while frames can be sent."""

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    async def open(self, url: str) -> bool:
        """Open the connection. Returns True if ``on_open`` fired."""

    @abstractmethod
    async def send(self, data: str) -> None:
        """Send one text frame."""

    @abstractmethod
    async def ping(self) -> None:
        """Send a liveness probe; ``on_pong`` fires when answered."""

    @abstractmethod
    async def close(self, code: int = WS_CLOSE_NORMAL, reason: str = "") -> None:
        """Graceful close. Returns after ``on_close`` has fired."""

    @abstractmethod
    def abort(self) -> None:
        """Drop the connection without a close handshake."""

    # -- Event emission -------------------------------------------------------

    def _emit_open(self) -> None:
        if self._opened or self._closed:
            return
        self._opened = True
        self._handlers.on_open()

    def _emit_message(self, raw: str | bytes) -> None:
        if self._closed:
            return
        decoded = decode_payload(raw)
        self._handlers.on_message(raw if decoded is None else decoded, raw)

    def _emit_error(self, error: object) -> None:
        if self._closed:
            return
        self._handlers.on_error(normalize_error(error))

    def _emit_close(self, code: int, reason: str) -> None:
        if self._closed:
            return
        self._closed = True
        self._handlers.on_close(code, reason)

    def _emit_pong(self, latency: float) -> None:
        if self._closed:
            return
        self._handlers.on_pong(latency)


class WebSocketTransport(Transport):
    """:class:`Transport` over ``websockets.asyncio.client``.

    The library keepalive is disabled; probes come from the supervisor's
    heartbeat driver only.

    Args:
        handlers: Event sinks.
        open_timeout: Handshake timeout in seconds.
        max_message_size: Largest inbound frame accepted.
        extra_headers: Additional HTTP headers for the handshake.
    """

    def __init__(
        self,
        handlers: TransportHandlers,
        *,
        open_timeout: float = OPEN_TIMEOUT,
        max_message_size: int = MAX_MESSAGE_SIZE,
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(handlers)
        self._open_timeout = open_timeout
        self._max_message_size = max_message_size
        self._extra_headers = dict(extra_headers or {})

        self._ws: websockets.asyncio.client.ClientConnection | None = None
        self._recv_task: asyncio.Task[None] | None = None
        self._pong_waiters: set[asyncio.Future[Any]] = set()

    @classmethod
    def from_config(
        cls, config: SupervisorConfig, handlers: TransportHandlers
    ) -> WebSocketTransport:
        return cls(
            handlers,
            open_timeout=config.open_timeout,
            max_message_size=config.max_message_size,
            extra_headers=dict(config.extra_headers),
        )

    @property
    def is_open(self) -> bool:
        return (
            self._ws is not None
            and not self._closed
            and self._ws.state is State.OPEN
        )

    # -- Open -----------------------------------------------------------------

    async def open(self, url: str) -> bool:
        if self._ws is not None or self._closed:
            raise DexNotOpenError("Transport is single-use; create a new one")

        logger.debug("Opening %s", redact_url(url))
        try:
            self._ws = await asyncio.wait_for(
                websockets.asyncio.client.connect(
                    url,
                    additional_headers=self._extra_headers or None,
                    max_size=self._max_message_size,
                    ping_interval=None,  # heartbeat driver owns probing
                    open_timeout=None,  # asyncio.wait_for handles timeout
                    close_timeout=CLOSE_TIMEOUT,
                ),
                timeout=self._open_timeout,
            )
        except asyncio.TimeoutError:
            self._fail(
                DexTimeoutError(f"Connection timed out after {self._open_timeout}s"),
                "open timeout",
            )
            return False
        except Exception as exc:
            self._fail(exc, str(exc))
            return False

        self._recv_task = asyncio.create_task(self._recv_loop())
        self._emit_open()
        return True

    def _fail(self, error: object, reason: str) -> None:
        logger.debug("Open failed: %s", error)
        self._emit_error(error)
        self._emit_close(WS_CLOSE_ABNORMAL, reason)

    # -- Send / probe ---------------------------------------------------------

    async def send(self, data: str) -> None:
        if not self.is_open:
            raise DexNotOpenError(
                "WebSocket is not open; call connect() and wait for on_open"
            )
        assert self._ws is not None
        try:
            await self._ws.send(data)
        except ConnectionClosed as exc:
            raise DexNotOpenError("WebSocket closed during send") from exc

    async def ping(self) -> None:
        if not self.is_open:
            raise DexNotOpenError("WebSocket is not open")
        assert self._ws is not None
        loop = asyncio.get_running_loop()
        sent_at = loop.time()
        try:
            waiter = await self._ws.ping()
        except ConnectionClosed as exc:
            raise DexNotOpenError("WebSocket closed during ping") from exc

        self._pong_waiters.add(waiter)

        def _on_done(fut: asyncio.Future[Any]) -> None:
            self._pong_waiters.discard(fut)
            if fut.cancelled() or fut.exception() is not None:
                return
            self._emit_pong(loop.time() - sent_at)

        waiter.add_done_callback(_on_done)

    # -- Close / abort --------------------------------------------------------

    async def close(self, code: int = WS_CLOSE_NORMAL, reason: str = "") -> None:
        ws = self._ws
        if ws is None or self._closed:
            return
        try:
            await ws.close(code, reason)
        except Exception as exc:
            logger.debug("Close handshake failed: %s", exc)
            self.abort()
        if self._recv_task is not None:
            await asyncio.gather(self._recv_task, return_exceptions=True)

    def abort(self) -> None:
        ws = self._ws
        if ws is None or self._closed:
            return
        logger.debug("Aborting connection")
        ws.transport.abort()

    # -- Receive loop ---------------------------------------------------------

    async def _recv_loop(self) -> None:
        """Read frames until the connection ends, then report the close."""
        ws = self._ws
        assert ws is not None
        try:
            async for message in ws:
                self._emit_message(message)
        except ConnectionClosed:
            pass
        except Exception as exc:
            logger.warning("Receive loop error: %s", exc)
            self._emit_error(exc)
            ws.transport.abort()

        await ws.wait_closed()
        for waiter in list(self._pong_waiters):
            waiter.cancel()
        self._pong_waiters.clear()

        code = ws.close_code if ws.close_code is not None else WS_CLOSE_ABNORMAL
        self._emit_close(int(code), ws.close_reason or "")
