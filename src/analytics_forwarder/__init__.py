"""
Analytics Forwarder - client-side analytics event delivery

Collects application analytics events and forwards them to a collection
endpoint:
- Enrichment with user, team metadata and session context
- In-memory batching on a fixed flush interval (or instant delivery)
- Bounded retry with terminal failure reporting
"""

from .config import ForwarderConfig
from .errors import ConfigError, DeliveryError, ForwarderError, RetryLimitExceeded
from .events import EnrichedEvent, FlushMode, SessionState, UserIdentity
from .forwarder import AnalyticsForwarder

__version__ = "0.1.0"

__all__ = [
    "AnalyticsForwarder",
    "ForwarderConfig",
    "EnrichedEvent",
    "FlushMode",
    "SessionState",
    "UserIdentity",
    "ForwarderError",
    "ConfigError",
    "DeliveryError",
    "RetryLimitExceeded",
]
