"""Helpers shared across dexws tests."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

import pytest

from dexws.config import SupervisorConfig

BASE_URL = "wss://dex.example.com/v1/ws"
TOKEN = "test-token"


def make_config(**overrides: Any) -> SupervisorConfig:
    """Fast timings that satisfy the polling budget."""
    fields: dict[str, Any] = {
        "base_url": BASE_URL,
        "token": TOKEN,
        "heartbeat_interval": 0.02,
        "pong_timeout": 0.05,
        "max_missed_pongs": 3,
        "poll_interval": 0.2,
        "reconnect_delay": 0.05,
        "max_reconnect_attempts": 5,
    }
    fields.update(overrides)
    return SupervisorConfig(**fields)


async def wait_until(
    predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.005
) -> None:
    """Poll *predicate* until true; fail the test on timeout."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            pytest.fail(f"condition not met within {timeout:.1f}s")
        await asyncio.sleep(interval)
