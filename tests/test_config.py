"""Tests for SupervisorConfig validation, URL building and env loading."""

import dataclasses

import pytest

from dexws.config import SupervisorConfig, expand_base_url
from dexws.errors import DexConfigError
from tests.helpers import BASE_URL, TOKEN, make_config


class TestTimingInvariant:
    def test_rejects_budget_over_poll_interval(self):
        with pytest.raises(DexConfigError, match="poll_interval"):
            SupervisorConfig(
                BASE_URL,
                TOKEN,
                heartbeat_interval=5.0,
                pong_timeout=10.0,
                reconnect_delay=6.0,
                poll_interval=20.0,
            )

    def test_accepts_budget_equal_to_poll_interval(self):
        config = SupervisorConfig(
            BASE_URL,
            TOKEN,
            heartbeat_interval=5.0,
            pong_timeout=10.0,
            reconnect_delay=5.0,
            poll_interval=20.0,
        )
        assert config.recovery_budget == config.poll_interval

    def test_accepts_inexact_float_boundary(self):
        # 0.1 + 0.2 + 0.3 == 0.6000000000000001 in binary floating point
        config = SupervisorConfig(
            BASE_URL,
            TOKEN,
            heartbeat_interval=0.1,
            pong_timeout=0.2,
            reconnect_delay=0.3,
            poll_interval=0.6,
        )
        assert config.poll_interval == 0.6

    def test_rejects_just_over_boundary(self):
        with pytest.raises(DexConfigError, match="poll_interval"):
            SupervisorConfig(
                BASE_URL,
                TOKEN,
                heartbeat_interval=0.1,
                pong_timeout=0.2,
                reconnect_delay=0.301,
                poll_interval=0.6,
            )

    def test_rejects_one_second_heartbeat_with_ten_second_poll(self):
        # 1.0 + 15.0 (pong_timeout) + 5.0 (reconnect_delay) > 10.0
        with pytest.raises(DexConfigError):
            SupervisorConfig(
                BASE_URL, TOKEN, heartbeat_interval=1.0, poll_interval=10.0
            )

    def test_stream_mode_skips_poll_budget(self):
        config = SupervisorConfig(
            BASE_URL, TOKEN, stream=True, heartbeat_interval=1.0, poll_interval=1.0
        )
        assert config.polling_enabled is False

    def test_defaults_are_consistent(self):
        config = SupervisorConfig(BASE_URL, TOKEN)
        assert config.recovery_budget <= config.poll_interval
        assert config.auto_reconnect is True
        assert config.stream is False


class TestFieldValidation:
    @pytest.mark.parametrize(
        "field",
        ["heartbeat_interval", "pong_timeout", "poll_interval", "reconnect_delay", "open_timeout"],
    )
    def test_non_positive_durations_rejected(self, field):
        with pytest.raises(DexConfigError, match=field):
            make_config(**{field: 0})

    def test_missing_token(self):
        with pytest.raises(DexConfigError, match="token"):
            SupervisorConfig(BASE_URL, "")

    def test_missing_base_url(self):
        with pytest.raises(DexConfigError, match="base_url"):
            SupervisorConfig("", TOKEN)

    def test_max_missed_pongs_at_least_one(self):
        with pytest.raises(DexConfigError):
            make_config(max_missed_pongs=0)

    def test_negative_reconnect_budget(self):
        with pytest.raises(DexConfigError):
            make_config(max_reconnect_attempts=-1)

    def test_frozen(self):
        config = make_config()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.token = "other"  # type: ignore[misc]

    def test_replace_revalidates(self):
        config = make_config()
        with pytest.raises(DexConfigError):
            dataclasses.replace(config, poll_interval=0.01)


class TestDerived:
    def test_max_detection_latency(self):
        config = SupervisorConfig(
            BASE_URL,
            TOKEN,
            heartbeat_interval=2.0,
            pong_timeout=3.0,
            max_missed_pongs=4,
            poll_interval=60.0,
        )
        assert config.max_detection_latency == 11.0


class TestBuildUrl:
    def test_token_query_param(self):
        config = make_config()
        assert config.build_url() == f"{BASE_URL}?token={TOKEN}"

    def test_token_is_url_encoded(self):
        config = make_config(token="a b&c=d/e")
        assert config.build_url() == f"{BASE_URL}?token=a%20b%26c%3Dd%2Fe"

    def test_stream_flag(self):
        config = make_config(stream=True)
        assert config.build_url() == f"{BASE_URL}?token={TOKEN}&stream=true"

    def test_existing_query(self):
        config = make_config(base_url=f"{BASE_URL}?v=2")
        assert config.build_url() == f"{BASE_URL}?v=2&token={TOKEN}"


class TestFromEnv:
    def test_bare_host_expanded(self):
        config = SupervisorConfig.from_env(
            {"DEX_BASE_URL": "dex.example.com", "DEX_TOKEN": "abc"}
        )
        assert config.base_url == "wss://dex.example.com/v1/ws"
        assert config.token == "abc"

    def test_full_url_kept(self):
        config = SupervisorConfig.from_env(
            {"DEX_BASE_URL": "ws://localhost:9000/ws", "DEX_TOKEN": "abc"}
        )
        assert config.base_url == "ws://localhost:9000/ws"

    def test_missing_token(self):
        with pytest.raises(DexConfigError, match="DEX_TOKEN"):
            SupervisorConfig.from_env({"DEX_BASE_URL": "dex.example.com"})

    def test_missing_base_url(self):
        with pytest.raises(DexConfigError, match="DEX_BASE_URL"):
            SupervisorConfig.from_env({"DEX_TOKEN": "abc"})

    @pytest.mark.parametrize("value,expected", [("true", True), ("1", True), ("no", False)])
    def test_stream_from_env(self, value, expected):
        config = SupervisorConfig.from_env(
            {"DEX_BASE_URL": "h", "DEX_TOKEN": "t", "DEX_STREAM": value}
        )
        assert config.stream is expected

    def test_overrides_win(self):
        config = SupervisorConfig.from_env(
            {"DEX_BASE_URL": "h", "DEX_TOKEN": "t", "DEX_STREAM": "true"},
            token="override",
            stream=False,
        )
        assert config.token == "override"
        assert config.stream is False

    def test_expand_base_url_strips_trailing_slash(self):
        assert expand_base_url("host:8443/") == "wss://host:8443/v1/ws"
