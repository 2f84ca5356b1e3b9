"""Exceptions raised and reported by the forwarder."""

from __future__ import annotations


class ForwarderError(Exception):
    """Base exception for analytics forwarder errors."""
    pass


class ConfigError(ForwarderError):
    """Invalid or incomplete forwarder configuration."""
    pass


class DeliveryError(ForwarderError):
    """A batch could not be delivered to the collection endpoint."""
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RetryLimitExceeded(ForwarderError):
    """An event exhausted its retry budget and was abandoned."""
    def __init__(self, event_key: str, attempts: int):
        super().__init__(f"Max retries reached for event: {event_key}")
        self.event_key = event_key
        self.attempts = attempts
