# =============================================================================
# dexws -- Error Types
# =============================================================================

from __future__ import annotations


class DexError(Exception):
    """Base exception for all dexws errors."""


class DexConfigError(DexError):
    """Invalid supervisor configuration (raised at construction)."""


class DexNotOpenError(DexError):
    """Operation requires an open connection (e.g. send before on_open)."""


class DexTransportError(DexError):
    """Connection-level failure reported by the transport."""


class DexTimeoutError(DexTransportError):
    """Opening the connection timed out."""


class DexProtocolError(DexError):
    """Payload could not be serialized for the wire."""


def normalize_error(error: object) -> DexError:
    """Map anything the transport raised to a :class:`DexError`.

    ``DexError`` instances pass through; other exceptions are wrapped in
    :class:`DexTransportError` with the original chained as ``__cause__``.
    """
    if isinstance(error, DexError):
        return error
    if isinstance(error, BaseException):
        wrapped = DexTransportError(str(error) or type(error).__name__)
        wrapped.__cause__ = error
        return wrapped
    if isinstance(error, str):
        return DexTransportError(error)
    return DexTransportError("Unknown WebSocket error")
