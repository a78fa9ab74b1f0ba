# =============================================================================
# dexws -- Connection Supervisor
# =============================================================================
#
# Owns the lifecycle of one logical connection: opens it, keeps it probed,
# kills it when the remote goes silent, and reconnects after unexpected
# closes within a lifetime budget.
#
# Every handler runs on the event loop thread. Events from a transport that
# no longer belongs to the current ConnectionState are dropped.
# =============================================================================

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

from ._logging import logger, redact_url
from .codec import encode_payload
from .config import SupervisorConfig
from .constants import WS_CLOSE_NORMAL
from .errors import DexError, DexNotOpenError
from .health import HealthEvaluator
from .heartbeat import HeartbeatDriver, PollingDriver
from .reconnect import ReconnectScheduler
from .state import ConnectionState
from .transport import Transport, TransportHandlers, WebSocketTransport
from .types import ConnectionStatus, SupervisorStats

TransportFactory = Callable[[SupervisorConfig, TransportHandlers], Transport]


class ConnectionSupervisor:
    """Resilient client for a single WebSocket connection.

    Args:
        config: Immutable settings, validated at construction.
        on_open: Called when a connection (or reconnection) opens.
        on_message: Called with ``(decoded, raw)`` for every inbound frame.
            *decoded* is the parsed JSON value, or *raw* if it is not JSON.
        on_error: Called with a :class:`~dexws.errors.DexError` for
            transport failures. Errors do not close the connection.
        on_close: Called with ``(code, reason)`` on every close.
        on_pong: Called with the probe round-trip time in seconds.
        on_give_up: Called with the budget size when reconnection stops
            for good.
        transport_factory: Builds one :class:`Transport` per attempt.
            Defaults to :class:`WebSocketTransport`.
        clock: Monotonic clock used for pong ages.

    Hooks may be plain functions or coroutine functions. Exceptions raised
    by hooks are logged and never reach the supervisor.

    Calling :meth:`connect` while already connected is the caller's
    responsibility to avoid; it is logged and ignored.

    Example::

        config = SupervisorConfig("wss://api.example.com/v1/ws", token="t0k3n")
        async with ConnectionSupervisor(config, on_message=print) as sup:
            await sup.send({"op": "hello"})
            await sup.wait_closed()
    """

    def __init__(
        self,
        config: SupervisorConfig,
        *,
        on_open: Callable[[], Any] | None = None,
        on_message: Callable[[Any, str | bytes], Any] | None = None,
        on_error: Callable[[DexError], Any] | None = None,
        on_close: Callable[[int, str], Any] | None = None,
        on_pong: Callable[[float], Any] | None = None,
        on_give_up: Callable[[int], Any] | None = None,
        transport_factory: TransportFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self._on_close = on_close
        self._on_pong = on_pong
        self._on_give_up = on_give_up
        self._transport_factory = transport_factory or WebSocketTransport.from_config
        self._clock = clock

        self._evaluator = HealthEvaluator(
            config.pong_timeout, config.max_missed_pongs, clock=clock
        )
        self._heartbeat = HeartbeatDriver(
            config.heartbeat_interval,
            self._evaluator,
            on_unresponsive=self._terminate_unresponsive,
            on_probe_sent=self._count_probe,
        )
        self._poller: PollingDriver | None = None
        if config.polling_enabled:
            self._poller = PollingDriver(
                config.poll_interval, on_poll_sent=self._count_poll
            )
        self._reconnect = ReconnectScheduler(
            config.reconnect_delay,
            config.max_reconnect_attempts,
            enabled=config.auto_reconnect,
        )

        self._state: ConnectionState | None = None
        self._status = ConnectionStatus.IDLE
        self._closing = False
        self._stats = SupervisorStats()
        self._closed_event = asyncio.Event()
        self._background_tasks: set[asyncio.Task[Any]] = set()

    # -- Context manager ------------------------------------------------------

    async def __aenter__(self) -> ConnectionSupervisor:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # -- Properties -----------------------------------------------------------

    @property
    def config(self) -> SupervisorConfig:
        return self._config

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_open(self) -> bool:
        return self._state is not None and self._state.is_live

    @property
    def reconnect_attempts_left(self) -> int:
        return self._reconnect.attempts_left

    @property
    def missed_pongs(self) -> int:
        return self._state.missed_pongs if self._state is not None else 0

    @property
    def stats(self) -> SupervisorStats:
        return self._stats

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of counters plus the current status."""
        stats = self._stats.as_dict()
        stats["status"] = self._status.value
        stats["reconnect_attempts_left"] = self._reconnect.attempts_left
        stats["missed_pongs"] = self.missed_pongs
        return stats

    # -- Connect / Close ------------------------------------------------------

    async def connect(self) -> bool:
        """Start a fresh connection attempt.

        Returns:
            True if the connection opened. Failures are reported through
            ``on_error`` / ``on_close`` and may trigger a reconnect.
        """
        if self.is_open or self._status is ConnectionStatus.CONNECTING:
            logger.warning("connect() called while %s, ignoring", self._status.value)
            return self.is_open

        self._closing = False
        self._reconnect.cancel()
        self._closed_event.clear()
        await self._open_attempt()
        return self.is_open

    async def close(self, code: int = WS_CLOSE_NORMAL, reason: str = "") -> None:
        """Close for good: no reconnect follows, whatever the close code."""
        # Everything up to the first await runs before any close event.
        self._closing = True
        self._reconnect.cancel()

        state = self._state
        if state is None or state.closed:
            self._finish(ConnectionStatus.CLOSED)
            return

        state.closed_by_caller = True
        state.cancel_timers()
        await state.transport.close(code, reason)

        if not state.closed:
            # Never opened, so the transport had nothing to report.
            state.closed = True
            self._finish(ConnectionStatus.CLOSED)

    async def wait_closed(self) -> None:
        """Wait until the supervisor is CLOSED or FAILED."""
        await self._closed_event.wait()

    # -- Send -----------------------------------------------------------------

    async def send(self, payload: Any) -> None:
        """Send a string as-is, or any other value as JSON.

        Raises:
            DexNotOpenError: If the connection is not open.
            DexProtocolError: If *payload* cannot be serialized.
        """
        state = self._state
        if state is None or not state.is_live:
            raise DexNotOpenError(
                "WebSocket is not open; call connect() and wait for on_open"
            )
        data = encode_payload(payload)
        await state.transport.send(data)
        self._stats.messages_sent += 1
        self._stats.bytes_sent += len(data.encode("utf-8"))

    # -- Internal: attempts ---------------------------------------------------

    def _new_state(self) -> ConnectionState:
        state: ConnectionState
        handlers = TransportHandlers(
            on_open=lambda: self._handle_open(state),
            on_message=lambda decoded, raw: self._handle_message(state, decoded, raw),
            on_error=lambda error: self._handle_error(state, error),
            on_close=lambda code, reason: self._handle_close(state, code, reason),
            on_pong=lambda latency: self._handle_pong(state, latency),
        )
        state = ConnectionState(transport=self._transport_factory(self._config, handlers))
        return state

    async def _open_attempt(self) -> None:
        previous = self._state
        if previous is not None and not previous.closed:
            # Drop a half-dead predecessor so no two attempts are ever live.
            previous.closed = True
            previous.cancel_timers()
            previous.transport.abort()

        state = self._new_state()
        self._state = state
        self._set_status(ConnectionStatus.CONNECTING)

        url = self._config.build_url()
        logger.info("Connecting to %s (attempt %d)", redact_url(url), state.attempt_id)
        await state.transport.open(url)

    async def _reconnect_now(self) -> None:
        if self._closing:
            return
        self._stats.reconnect_count += 1
        await self._open_attempt()

    def _give_up(self, attempts: int) -> None:
        self._finish(ConnectionStatus.FAILED)
        self._invoke("on_give_up", self._on_give_up, attempts)

    def _finish(self, status: ConnectionStatus) -> None:
        self._set_status(status)
        self._closed_event.set()

    # -- Internal: transport events -------------------------------------------

    def _handle_open(self, state: ConnectionState) -> None:
        state.opened = True
        if (
            state is not self._state
            or state.closed
            or state.closed_by_caller
            or self._closing
        ):
            # close() raced the handshake, or the attempt was superseded.
            state.closed_by_caller = True
            self._fire_task(state.transport.close())
            return

        self._stats.connected_since = time.monotonic()
        self._set_status(ConnectionStatus.CONNECTED)
        logger.info("Connected (attempt %d)", state.attempt_id)

        self._heartbeat.start(state)
        if self._poller is not None:
            self._poller.start(state)

        self._invoke("on_open", self._on_open)

    def _handle_message(
        self, state: ConnectionState, decoded: Any, raw: str | bytes
    ) -> None:
        if state is not self._state or state.closed:
            return
        self._stats.messages_received += 1
        self._stats.bytes_received += (
            len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
        )
        self._invoke("on_message", self._on_message, decoded, raw)

    def _handle_error(self, state: ConnectionState, error: DexError) -> None:
        if state is not self._state or state.closed:
            return
        logger.warning("Transport error: %s", error)
        self._invoke("on_error", self._on_error, error)

    def _handle_pong(self, state: ConnectionState, latency: float) -> None:
        if state is not self._state or state.closed:
            return
        state.record_pong(self._clock())
        self._stats.pongs_received += 1
        self._stats.last_latency_ms = latency * 1000
        self._invoke("on_pong", self._on_pong, latency)

    def _handle_close(self, state: ConnectionState, code: int, reason: str) -> None:
        if state is not self._state or state.closed:
            state.cancel_timers()
            return

        state.closed = True
        state.cancel_timers()
        self._stats.connected_since = None
        logger.info(
            "Connection closed (attempt %d, code=%d, reason=%s)",
            state.attempt_id,
            code,
            reason or "n/a",
        )
        self._invoke("on_close", self._on_close, code, reason)

        if state.closed_by_caller or self._closing or not self._reconnect.enabled:
            self._finish(ConnectionStatus.CLOSED)
            return

        self._set_status(ConnectionStatus.RECONNECTING)
        self._reconnect.schedule(self._reconnect_now, self._give_up)

    # -- Internal: heartbeat callbacks ----------------------------------------

    def _terminate_unresponsive(self, state: ConnectionState) -> None:
        if state.terminated or state.closed:
            return
        state.terminated = True
        self._stats.forced_terminations += 1
        logger.warning("Terminating unresponsive connection (attempt %d)", state.attempt_id)
        state.transport.abort()

    def _count_probe(self, state: ConnectionState) -> None:
        self._stats.probes_sent += 1

    def _count_poll(self, state: ConnectionState) -> None:
        self._stats.polls_sent += 1

    # -- Internal: helpers ----------------------------------------------------

    def _invoke(self, name: str, hook: Callable[..., Any] | None, *args: Any) -> None:
        """Call a user hook; contain and log anything it raises."""
        if hook is None:
            return
        try:
            result = hook(*args)
            if asyncio.iscoroutine(result):
                self._fire_task(result)
        except Exception as exc:
            logger.error("%s handler error: %s", name, exc)

    def _fire_task(self, coro: Any) -> None:
        """Schedule a coroutine with a strong reference to prevent GC."""
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._background_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task failed: %s", task.exception())

    def _set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        old = self._status
        self._status = status
        logger.debug("Status: %s -> %s", old.value, status.value)
