# =============================================================================
# dexws -- Reconnect Scheduler
# =============================================================================
#
# Fixed-delay reconnection with a lifetime attempts budget. The budget is
# decremented on every scheduled attempt and never refilled, not even by a
# successful reconnect.
# =============================================================================

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from ._logging import logger


class ReconnectScheduler:
    """Run one delayed reconnect at a time against a shared budget.

    Args:
        delay: Seconds to wait before each attempt.
        max_attempts: Lifetime budget. An attempt is only made while the
            budget is still positive after being decremented.
        enabled: When False, :meth:`schedule` is a no-op.
    """

    def __init__(self, delay: float, max_attempts: int, *, enabled: bool = True) -> None:
        self._delay = delay
        self._max_attempts = max_attempts
        self._attempts_left = max_attempts
        self._enabled = enabled
        self._exhausted = False
        self._task: asyncio.Task[None] | None = None

    # -- Properties -----------------------------------------------------------

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def attempts_left(self) -> int:
        return self._attempts_left

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def pending(self) -> bool:
        """A delayed attempt is waiting to fire."""
        return self._task is not None and not self._task.done()

    # -- Scheduling -----------------------------------------------------------

    def schedule(
        self,
        reconnect: Callable[[], Awaitable[Any]],
        on_give_up: Callable[[int], Any],
    ) -> bool:
        """Arm one reconnect attempt.

        Returns True if a delayed verdict was armed. The delay always comes
        first; *on_give_up* runs after it once the budget is spent.
        """
        if not self._enabled:
            return False
        if self.pending:
            logger.debug("Reconnect already pending, ignoring")
            return False
        logger.info(
            "Reconnecting in %.1fs (%d attempt(s) left)",
            self._delay,
            self._attempts_left,
        )
        self._task = asyncio.create_task(
            self._run(reconnect, on_give_up), name="dexws-reconnect"
        )
        return True

    def cancel(self) -> None:
        """Disarm a pending attempt. Synchronous and idempotent."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Pending reconnect cancelled")

    async def _run(
        self,
        reconnect: Callable[[], Awaitable[Any]],
        on_give_up: Callable[[int], Any],
    ) -> None:
        await asyncio.sleep(self._delay)

        if self._attempts_left > 0:
            self._attempts_left -= 1
        if self._attempts_left <= 0:
            self._task = None
            self._give_up(on_give_up)
            return

        # Release the slot first: a failed attempt re-schedules from here.
        self._task = None
        try:
            await reconnect()
        except Exception as exc:
            logger.warning("Reconnect attempt failed: %s", exc)

    def _give_up(self, on_give_up: Callable[[int], Any]) -> None:
        self._exhausted = True
        logger.error(
            "Max reconnect attempts (%d) reached, giving up", self._max_attempts
        )
        on_give_up(self._max_attempts)
