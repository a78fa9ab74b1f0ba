# =============================================================================
# dexws -- Payload Codec
# =============================================================================
#
# Inbound:  text or UTF-8 binary frames, best-effort JSON decode.
# Outbound: strings pass through, everything else becomes compact JSON.
# =============================================================================

from __future__ import annotations

import json
from typing import Any

from .errors import DexProtocolError

try:
    import orjson

    def _json_loads(data: str | bytes) -> Any:
        return orjson.loads(data)

    def _json_dumps(obj: Any) -> str:
        return orjson.dumps(obj).decode()

except ImportError:

    def _json_loads(data: str | bytes) -> Any:
        return json.loads(data)

    def _json_dumps(obj: Any) -> str:
        return json.dumps(obj, separators=(",", ":"))


def decode_payload(raw: str | bytes | bytearray | memoryview) -> Any | None:
    """Parse an inbound frame as JSON.

    Returns ``None`` when the frame is not valid UTF-8 JSON, or nests too
    deeply for the parser. Never raises: callers fall back to the raw frame.
    """
    if isinstance(raw, (bytearray, memoryview)):
        raw = bytes(raw)
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(raw, str):
        return None
    try:
        return _json_loads(raw)
    except (ValueError, RecursionError):
        return None


def encode_payload(payload: Any) -> str:
    """Serialize an outbound payload.

    Strings are assumed to be pre-serialized and are sent as-is.
    """
    if isinstance(payload, str):
        return payload
    try:
        return _json_dumps(payload)
    except (TypeError, ValueError) as exc:
        raise DexProtocolError(f"Payload is not JSON serializable: {exc}") from exc
