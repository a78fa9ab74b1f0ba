# =============================================================================
# dexws -- Health Evaluator
# =============================================================================
#
# Decides, once per heartbeat tick, whether the remote is still answering
# probes. A single late pong is tolerated; only max_missed_pongs consecutive
# overdue ticks condemn the connection.
# =============================================================================

from __future__ import annotations

import time
from typing import Callable

from ._logging import logger
from .state import ConnectionState
from .types import HealthVerdict


class HealthEvaluator:
    """Track pong age against a timeout across consecutive ticks.

    Args:
        pong_timeout: Max seconds since the last pong for a healthy tick.
        max_missed_pongs: Consecutive overdue ticks before UNRESPONSIVE.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        pong_timeout: float,
        max_missed_pongs: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._pong_timeout = pong_timeout
        self._max_missed = max_missed_pongs
        self._clock = clock

    def evaluate(self, state: ConnectionState) -> HealthVerdict:
        """Update ``state.missed_pongs`` and return the verdict.

        The caller is responsible for terminating the transport on
        ``UNRESPONSIVE``.
        """
        if state.last_pong is None:
            return HealthVerdict.PENDING

        elapsed = self._clock() - state.last_pong
        if elapsed <= self._pong_timeout:
            if state.missed_pongs:
                logger.debug(
                    "Pong received, clearing %d missed beat(s)", state.missed_pongs
                )
            state.missed_pongs = 0
            return HealthVerdict.HEALTHY

        state.missed_pongs += 1
        if state.missed_pongs >= self._max_missed:
            logger.warning(
                "No pong for %.1fs over %d heartbeats, connection unresponsive",
                elapsed,
                state.missed_pongs,
            )
            return HealthVerdict.UNRESPONSIVE

        logger.warning(
            "Pong overdue (%.1fs > %.1fs), missed %d/%d",
            elapsed,
            self._pong_timeout,
            state.missed_pongs,
            self._max_missed,
        )
        return HealthVerdict.MISSED
