# =============================================================================
# dexws -- Supervisor Configuration
# =============================================================================

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import quote

from .constants import (
    DEFAULT_PATH,
    DEFAULT_SCHEME,
    ENV_BASE_URL,
    ENV_STREAM,
    ENV_TOKEN,
    HEARTBEAT_INTERVAL,
    MAX_MESSAGE_SIZE,
    MAX_MISSED_PONGS,
    MAX_RECONNECT_ATTEMPTS,
    OPEN_TIMEOUT,
    POLL_INTERVAL,
    PONG_TIMEOUT,
    RECONNECT_DELAY,
)
from .errors import DexConfigError

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class SupervisorConfig:
    """Immutable configuration for :class:`~dexws.ConnectionSupervisor`.

    Durations are in seconds.

    Attributes:
        base_url: Endpoint, e.g. ``"wss://api.example.com/v1/ws"``.
        token: Auth token, sent as the ``token`` query parameter.
        stream: Streaming mode. The server pushes continuously, so the
            polling driver is disabled and ``stream=true`` is requested.
        heartbeat_interval: Time between heartbeat ticks.
        pong_timeout: Max age of the last pong before a tick counts as missed.
        max_missed_pongs: Consecutive missed ticks before the connection
            is force-terminated.
        poll_interval: Time between empty pull messages (non-stream only).
        reconnect_delay: Fixed wait before each reconnect attempt.
        auto_reconnect: Reconnect after unexpected closes.
        max_reconnect_attempts: Reconnect budget for the supervisor's
            whole lifetime. Never replenished.
        open_timeout: Handshake timeout for one open attempt.
        max_message_size: Largest inbound frame accepted.
        extra_headers: Additional HTTP headers for the handshake.

    Raises:
        DexConfigError: If a value is out of range, or if polling is active
            and ``heartbeat_interval + pong_timeout + reconnect_delay``
            exceeds ``poll_interval``.
    """

    base_url: str
    token: str
    stream: bool = False
    heartbeat_interval: float = HEARTBEAT_INTERVAL
    pong_timeout: float = PONG_TIMEOUT
    max_missed_pongs: int = MAX_MISSED_PONGS
    poll_interval: float = POLL_INTERVAL
    reconnect_delay: float = RECONNECT_DELAY
    auto_reconnect: bool = True
    max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS
    open_timeout: float = OPEN_TIMEOUT
    max_message_size: int = MAX_MESSAGE_SIZE
    extra_headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.base_url:
            raise DexConfigError("base_url is required")
        if not self.token:
            raise DexConfigError("token is required")

        for name in (
            "heartbeat_interval",
            "pong_timeout",
            "poll_interval",
            "reconnect_delay",
            "open_timeout",
        ):
            if getattr(self, name) <= 0:
                raise DexConfigError(f"{name} must be positive")

        if self.max_missed_pongs < 1:
            raise DexConfigError("max_missed_pongs must be at least 1")
        if self.max_reconnect_attempts < 0:
            raise DexConfigError("max_reconnect_attempts must not be negative")
        if self.max_message_size <= 0:
            raise DexConfigError("max_message_size must be positive")

        budget = self.recovery_budget
        if (
            self.polling_enabled
            and budget > self.poll_interval
            and not math.isclose(budget, self.poll_interval)
        ):
            raise DexConfigError(
                "heartbeat_interval + pong_timeout + reconnect_delay "
                f"({budget:g}s) must not exceed "
                f"poll_interval ({self.poll_interval:g}s)"
            )

    # -- Derived --------------------------------------------------------------

    @property
    def polling_enabled(self) -> bool:
        return not self.stream

    @property
    def recovery_budget(self) -> float:
        """Time needed to detect one missed pong and reconnect."""
        return self.heartbeat_interval + self.pong_timeout + self.reconnect_delay

    @property
    def max_detection_latency(self) -> float:
        """Worst case from the last pong to forced termination."""
        return self.max_missed_pongs * self.heartbeat_interval + self.pong_timeout

    def build_url(self) -> str:
        """Full connection URL with the token (and stream flag) appended."""
        sep = "&" if "?" in self.base_url else "?"
        url = f"{self.base_url}{sep}token={quote(self.token, safe='')}"
        if self.stream:
            url += "&stream=true"
        return url

    # -- Construction helpers -------------------------------------------------

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> SupervisorConfig:
        """Build a config from ``DEX_BASE_URL`` / ``DEX_TOKEN`` / ``DEX_STREAM``.

        A bare host in ``DEX_BASE_URL`` expands to ``wss://<host>/v1/ws``.
        Keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ

        base_url = overrides.pop("base_url", None) or env.get(ENV_BASE_URL, "")
        token = overrides.pop("token", None) or env.get(ENV_TOKEN, "")
        if not token:
            raise DexConfigError(f"Set {ENV_TOKEN} in the environment")
        if not base_url:
            raise DexConfigError(f"Set {ENV_BASE_URL} in the environment")

        if "stream" not in overrides and ENV_STREAM in env:
            overrides["stream"] = env[ENV_STREAM].strip().lower() in _TRUTHY

        return cls(base_url=expand_base_url(base_url), token=token, **overrides)


def expand_base_url(base_url: str) -> str:
    """Turn ``host[:port]`` into ``wss://host[:port]/v1/ws``; keep full URLs."""
    if "://" in base_url:
        return base_url
    return f"{DEFAULT_SCHEME}://{base_url.rstrip('/')}{DEFAULT_PATH}"
