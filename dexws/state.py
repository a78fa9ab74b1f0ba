# =============================================================================
# dexws -- Per-Attempt Connection State
# =============================================================================
#
# One ConnectionState per connect attempt, replaced wholesale on reconnect.
# It owns the transport handle and both timers; nothing here is shared
# with the next attempt.
# =============================================================================

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from itertools import count
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .transport import Transport

_attempt_ids = count(1)


@dataclass(eq=False)
class ConnectionState:
    """Mutable state of a single connection attempt.

    Attributes:
        transport: Handle owned exclusively by this attempt.
        attempt_id: Monotonic id, for logs.
        last_pong: ``clock()`` of the last pong, ``None`` until the first.
        missed_pongs: Consecutive heartbeat ticks with an overdue pong.
        closed_by_caller: Set by ``close()`` before the transport closes.
        terminated: Forced termination already requested.
        opened: Transport reported open.
        closed: Close event handled, timers torn down.
        heartbeat_task: Heartbeat timer.
        poll_task: Polling timer.
    """

    transport: Transport
    attempt_id: int = field(default_factory=lambda: next(_attempt_ids))
    last_pong: float | None = None
    missed_pongs: int = 0
    closed_by_caller: bool = False
    terminated: bool = False
    opened: bool = False
    closed: bool = False
    heartbeat_task: asyncio.Task[Any] | None = None
    poll_task: asyncio.Task[Any] | None = None

    @property
    def is_live(self) -> bool:
        return (
            self.opened
            and not self.closed
            and not self.terminated
            and self.transport.is_open
        )

    def record_pong(self, now: float) -> None:
        self.last_pong = now

    def cancel_timers(self) -> None:
        """Cancel and clear both timers. Safe to call repeatedly."""
        for name in ("heartbeat_task", "poll_task"):
            task: asyncio.Task[Any] | None = getattr(self, name)
            setattr(self, name, None)
            if task is not None and not task.done():
                task.cancel()
