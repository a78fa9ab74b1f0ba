"""Tests for error types and normalization."""

from dexws.errors import (
    DexConfigError,
    DexError,
    DexNotOpenError,
    DexTimeoutError,
    DexTransportError,
    normalize_error,
)


class TestHierarchy:
    def test_all_derive_from_base(self):
        for cls in (DexConfigError, DexNotOpenError, DexTransportError, DexTimeoutError):
            assert issubclass(cls, DexError)

    def test_timeout_is_transport_error(self):
        assert issubclass(DexTimeoutError, DexTransportError)


class TestNormalizeError:
    def test_dex_error_passes_through(self):
        err = DexTimeoutError("slow")
        assert normalize_error(err) is err

    def test_wraps_exception_with_cause(self):
        original = ConnectionResetError("reset by peer")
        err = normalize_error(original)
        assert isinstance(err, DexTransportError)
        assert str(err) == "reset by peer"
        assert err.__cause__ is original

    def test_exception_without_message_uses_type_name(self):
        err = normalize_error(OSError())
        assert str(err) == "OSError"

    def test_string(self):
        err = normalize_error("handshake rejected")
        assert isinstance(err, DexTransportError)
        assert str(err) == "handshake rejected"

    def test_unknown_value(self):
        assert str(normalize_error(42)) == "Unknown WebSocket error"
