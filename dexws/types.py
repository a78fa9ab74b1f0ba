# =============================================================================
# dexws -- Type Definitions
# =============================================================================

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class ConnectionStatus(str, Enum):
    """Supervisor lifecycle status.

    Typical flow: IDLE -> CONNECTING -> CONNECTED -> CLOSED.
    RECONNECTING is transient, FAILED is terminal (reconnect budget spent).
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"
    FAILED = "failed"


class HealthVerdict(str, Enum):
    """Outcome of one health evaluation.

    PENDING -- no pong recorded yet for this attempt.
    HEALTHY -- last pong within the timeout, missed counter reset.
    MISSED -- pong overdue, counter below the limit.
    UNRESPONSIVE -- counter reached the limit, connection must go.
    """

    PENDING = "pending"
    HEALTHY = "healthy"
    MISSED = "missed"
    UNRESPONSIVE = "unresponsive"


@dataclass
class SupervisorStats:
    """Counters for a supervisor across all of its connection attempts."""

    messages_received: int = 0
    messages_sent: int = 0
    bytes_received: int = 0
    bytes_sent: int = 0
    probes_sent: int = 0
    pongs_received: int = 0
    polls_sent: int = 0
    forced_terminations: int = 0
    reconnect_count: int = 0
    connected_since: float | None = None
    last_latency_ms: float | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
