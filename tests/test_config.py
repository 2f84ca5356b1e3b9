"""Tests for forwarder configuration."""

import json

import pytest

from analytics_forwarder.config import ForwarderConfig
from analytics_forwarder.errors import ConfigError
from analytics_forwarder.events import FlushMode


class TestForwarderConfig:
    def test_defaults(self):
        config = ForwarderConfig(host="https://collect.example/ev")

        assert config.debug is False
        assert config.interval_minutes == 30.0
        assert config.flush_interval_seconds == 1800.0
        assert config.basic_auth_token is None
        assert config.retry_limit == 3
        assert config.mode == FlushMode.BATCHED

    def test_zero_interval_is_instant(self):
        config = ForwarderConfig(host="https://collect.example/ev", interval_minutes=0)
        assert config.mode == FlushMode.INSTANT

    def test_missing_host(self):
        with pytest.raises(ConfigError):
            ForwarderConfig(host="")

    def test_negative_interval(self):
        with pytest.raises(ConfigError):
            ForwarderConfig(host="https://collect.example/ev", interval_minutes=-1)


class TestConfigLoading:
    def test_from_flat_dict(self):
        config = ForwarderConfig.from_dict({
            "host": "https://collect.example/ev",
            "debug": True,
            "interval": 5,
            "basicAuthToken": "dXNlcjpwYXNz",
        })

        assert config.host == "https://collect.example/ev"
        assert config.debug is True
        assert config.interval_minutes == 5
        assert config.basic_auth_token == "dXNlcjpwYXNz"

    def test_from_app_config(self):
        config = ForwarderConfig.from_dict({
            "app": {
                "title": "Portal",
                "analytics": {
                    "generic": {
                        "host": "https://collect.example/ev",
                        "interval": 0,
                    },
                },
            },
        })

        assert config.host == "https://collect.example/ev"
        assert config.mode == FlushMode.INSTANT

    def test_unknown_keys_ignored(self):
        config = ForwarderConfig.from_dict({"host": "https://collect.example/ev", "colour": "blue"})
        assert config.host == "https://collect.example/ev"

    def test_null_values_use_defaults(self):
        config = ForwarderConfig.from_dict({"host": "https://collect.example/ev", "interval": None})
        assert config.interval_minutes == 30.0

    def test_from_dict_without_host(self):
        with pytest.raises(ConfigError):
            ForwarderConfig.from_dict({"app": {"analytics": {}}})

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "app-config.yaml"
        path.write_text(
            "app:\n"
            "  analytics:\n"
            "    generic:\n"
            "      host: https://collect.example/ev\n"
            "      interval: 10\n"
            "      retryLimit: 5\n"
        )

        config = ForwarderConfig.from_yaml(str(path))
        assert config.interval_minutes == 10
        assert config.retry_limit == 5

    def test_from_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"host": "https://collect.example/ev", "timeoutSeconds": 2.5}))

        config = ForwarderConfig.from_json(str(path))
        assert config.timeout_seconds == 2.5


class TestConfigCoercion:
    def test_string_values_from_env_style_sources(self):
        config = ForwarderConfig.from_dict({
            "host": "https://collect.example/ev",
            "debug": "false",
            "interval": "30",
            "retryLimit": "5",
            "timeoutSeconds": "2.5",
        })

        assert config.debug is False
        assert config.interval_minutes == 30.0
        assert config.retry_limit == 5
        assert config.timeout_seconds == 2.5

    def test_truthy_debug_strings(self):
        config = ForwarderConfig(host="https://collect.example/ev", debug="TRUE")
        assert config.debug is True

    @pytest.mark.parametrize("value", ["maybe", 2, [True]])
    def test_bad_debug(self, value):
        with pytest.raises(ConfigError):
            ForwarderConfig(host="https://collect.example/ev", debug=value)

    @pytest.mark.parametrize("key, value", [
        ("interval", "soon"),
        ("interval", True),
        ("retryLimit", "3.5"),
        ("retryLimit", 2.5),
    ])
    def test_bad_numbers(self, key, value):
        data = {"host": "https://collect.example/ev", key: value}
        with pytest.raises(ConfigError):
            ForwarderConfig.from_dict(data)

    def test_missing_timeout(self):
        with pytest.raises(ConfigError):
            ForwarderConfig(host="https://collect.example/ev", timeout_seconds=None)

    def test_non_string_host(self):
        with pytest.raises(ConfigError):
            ForwarderConfig(host=123)
