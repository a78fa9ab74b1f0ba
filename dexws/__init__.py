"""Resilient asyncio client for a single supervised WebSocket connection.

Usage::

    from dexws import connect

    async with connect("wss://api.example.com/v1/ws", "your-token") as sup:
        await sup.send({})
        await sup.wait_closed()

Callbacks::

    from dexws import ConnectionSupervisor, SupervisorConfig

    config = SupervisorConfig("wss://api.example.com/v1/ws", token="your-token")
    supervisor = ConnectionSupervisor(
        config,
        on_open=lambda: print("Connected."),
        on_message=lambda message, raw: print(message),
        on_close=lambda code, reason: print("closed", code, reason),
    )
    await supervisor.connect()

Optional extras::

    pip install dexws[fast]   # orjson for payload encoding
"""

from typing import Any

from ._version import __version__
from .config import SupervisorConfig
from .errors import (
    DexConfigError,
    DexError,
    DexNotOpenError,
    DexProtocolError,
    DexTimeoutError,
    DexTransportError,
)
from .supervisor import ConnectionSupervisor
from .transport import Transport, TransportHandlers, WebSocketTransport
from .types import ConnectionStatus, HealthVerdict, SupervisorStats


def connect(
    base_url: str,
    token: str,
    **kwargs: Any,
) -> ConnectionSupervisor:
    """Create a supervisor for *base_url*.

    Use as an async context manager. Keyword arguments naming
    :class:`SupervisorConfig` fields build the config; the rest (``on_open``,
    ``on_message``, ``on_error``, ``on_close``, ``on_pong``, ``on_give_up``,
    ``transport_factory``, ``clock``) go to :class:`ConnectionSupervisor`.

    Raises:
        DexConfigError: If the timing settings are inconsistent.

    Example::

        async with connect("wss://host/v1/ws", "token", stream=True) as sup:
            await sup.wait_closed()
    """
    config_fields = set(SupervisorConfig.__dataclass_fields__)
    config_kwargs = {k: v for k, v in kwargs.items() if k in config_fields}
    supervisor_kwargs = {k: v for k, v in kwargs.items() if k not in config_fields}
    config = SupervisorConfig(base_url=base_url, token=token, **config_kwargs)
    return ConnectionSupervisor(config, **supervisor_kwargs)


__all__ = [
    "__version__",
    "connect",
    "ConnectionSupervisor",
    "SupervisorConfig",
    "ConnectionStatus",
    "HealthVerdict",
    "SupervisorStats",
    "Transport",
    "TransportHandlers",
    "WebSocketTransport",
    "DexError",
    "DexConfigError",
    "DexNotOpenError",
    "DexProtocolError",
    "DexTimeoutError",
    "DexTransportError",
]
