# =============================================================================
# dexws -- Heartbeat and Polling Drivers
# =============================================================================
#
# Both drivers are repeating timers bound to one ConnectionState. They are
# started on open, cancelled on close, and never touch a later attempt.
# =============================================================================

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable

from ._logging import logger
from .constants import POLL_MESSAGE
from .errors import DexNotOpenError
from .health import HealthEvaluator
from .state import ConnectionState
from .types import HealthVerdict


class _PeriodicDriver(ABC):
    """Repeating timer stored on a :class:`ConnectionState` attribute.

    Ticks run on a fixed schedule. A tick that has not finished within one
    interval is cancelled, so a stalled write never delays the next tick.
    """

    _task_attr: str = ""
    name: str = ""

    def __init__(self, interval: float) -> None:
        self._interval = interval

    @property
    def interval(self) -> float:
        return self._interval

    def start(self, state: ConnectionState) -> None:
        """STOPPED -> RUNNING. Replaces any timer already on *state*."""
        self.stop(state)
        task = asyncio.create_task(
            self._run(state), name=f"dexws-{self.name}-{state.attempt_id}"
        )
        setattr(state, self._task_attr, task)

    def stop(self, state: ConnectionState) -> None:
        """RUNNING -> STOPPED. No-op when already stopped."""
        task: asyncio.Task[Any] | None = getattr(state, self._task_attr)
        setattr(state, self._task_attr, None)
        if task is not None and not task.done():
            task.cancel()

    def is_running(self, state: ConnectionState) -> bool:
        task: asyncio.Task[Any] | None = getattr(state, self._task_attr)
        return task is not None and not task.done()

    @abstractmethod
    async def tick(self, state: ConnectionState) -> None:
        """One unit of periodic work."""

    async def _run(self, state: ConnectionState) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            deadline += self._interval
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            if state.closed:
                return
            try:
                await asyncio.wait_for(self.tick(state), self._interval)
            except asyncio.TimeoutError:
                logger.warning(
                    "%s tick did not finish within %gs", self.name, self._interval
                )
            except DexNotOpenError:
                logger.debug("%s tick skipped: connection not open", self.name)
            except Exception as exc:
                logger.warning("%s tick failed: %s", self.name, exc)


class HeartbeatDriver(_PeriodicDriver):
    """Evaluate health, then probe, once per interval.

    Args:
        interval: Seconds between ticks.
        evaluator: Decides whether the connection is still answering.
        on_unresponsive: Called once when the evaluator gives up on the
            connection; expected to force-terminate the transport.
        on_probe_sent: Optional hook after each successful probe.
    """

    _task_attr = "heartbeat_task"
    name = "heartbeat"

    def __init__(
        self,
        interval: float,
        evaluator: HealthEvaluator,
        on_unresponsive: Callable[[ConnectionState], Any],
        on_probe_sent: Callable[[ConnectionState], Any] | None = None,
    ) -> None:
        super().__init__(interval)
        self._evaluator = evaluator
        self._on_unresponsive = on_unresponsive
        self._on_probe_sent = on_probe_sent

    async def tick(self, state: ConnectionState) -> None:
        if state.terminated:
            return

        verdict = self._evaluator.evaluate(state)
        if verdict is HealthVerdict.UNRESPONSIVE:
            self._on_unresponsive(state)

        if not state.is_live:
            return

        await state.transport.ping()
        logger.debug("Probe sent (attempt %d)", state.attempt_id)
        if self._on_probe_sent is not None:
            self._on_probe_sent(state)


class PollingDriver(_PeriodicDriver):
    """Send the empty pull message once per interval.

    Not used in streaming mode. Has no failure-detection role.
    """

    _task_attr = "poll_task"
    name = "poll"

    def __init__(
        self,
        interval: float,
        on_poll_sent: Callable[[ConnectionState], Any] | None = None,
    ) -> None:
        super().__init__(interval)
        self._on_poll_sent = on_poll_sent

    async def tick(self, state: ConnectionState) -> None:
        if not state.is_live:
            return
        await state.transport.send(POLL_MESSAGE)
        if self._on_poll_sent is not None:
            self._on_poll_sent(state)
