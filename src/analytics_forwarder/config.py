"""Configuration for the analytics forwarder."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import ConfigError
from .events import FlushMode


# Host app configs nest the forwarder under this path
CONFIG_PATH = ("app", "analytics", "generic")

# Config file key -> dataclass field
_KEY_MAP = {
    "host": "host",
    "debug": "debug",
    "interval": "interval_minutes",
    "basicAuthToken": "basic_auth_token",
    "retryLimit": "retry_limit",
    "timeoutSeconds": "timeout_seconds",
}

_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0", ""}


def _to_bool(key: str, value: Any) -> bool:
    """Accept real booleans and the usual string spellings (env vars, .ini)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _to_number(key: str, value: Any, kind: type) -> Any:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    try:
        number = kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {value!r}") from None
    if kind is int and isinstance(value, float) and value != number:
        raise ConfigError(f"{key} must be a whole number, got {value!r}")
    return number


@dataclass
class ForwarderConfig:
    """
    Forwarder configuration, read once at construction.

    Can be loaded from:
    - A flat dict ({"host": ..., "interval": ...})
    - A host app config nesting it under app.analytics.generic
    - YAML or JSON files of either shape
    """
    # Collection endpoint URL
    host: str

    # Gates verbose (DEBUG) logging for the package
    debug: bool = False

    # Flush period in minutes (0 = instant delivery)
    interval_minutes: float = 30.0

    # Sent as "Authorization: Basic <token>" when set
    basic_auth_token: str | None = None

    # Failed deliveries re-enqueued per event before giving up
    retry_limit: int = 3

    # Transport timeout for a single POST
    timeout_seconds: float = 5.0

    def __post_init__(self):
        if not self.host or not isinstance(self.host, str):
            raise ConfigError("host is required for the analytics forwarder")
        self.debug = _to_bool("debug", self.debug)
        self.interval_minutes = _to_number("interval", self.interval_minutes, float)
        self.retry_limit = _to_number("retryLimit", self.retry_limit, int)
        self.timeout_seconds = _to_number("timeoutSeconds", self.timeout_seconds, float)
        if self.basic_auth_token is not None:
            self.basic_auth_token = str(self.basic_auth_token)

        if self.interval_minutes < 0:
            raise ConfigError(f"interval must be >= 0, got {self.interval_minutes}")
        if self.retry_limit < 0:
            raise ConfigError(f"retryLimit must be >= 0, got {self.retry_limit}")

    @property
    def flush_interval_seconds(self) -> float:
        return self.interval_minutes * 60

    @property
    def mode(self) -> FlushMode:
        """Delivery mode, fixed by the configured interval."""
        if self.interval_minutes == 0:
            return FlushMode.INSTANT
        return FlushMode.BATCHED

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ForwarderConfig:
        """Create config from a flat or app-nested dictionary."""
        section = data
        if "app" in data:
            for key in CONFIG_PATH:
                section = (section or {}).get(key) or {}

        kwargs = {}
        for key, value in section.items():
            field_name = _KEY_MAP.get(key)
            if field_name is None:
                continue
            if value is not None:
                kwargs[field_name] = value

        if "host" not in kwargs:
            raise ConfigError("host is required for the analytics forwarder")

        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: str) -> ForwarderConfig:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> ForwarderConfig:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)
