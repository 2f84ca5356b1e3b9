"""Analytics event types."""

from __future__ import annotations

import copy
import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# Caller-supplied payload; passed through untouched
AnalyticsEvent = dict[str, Any]


class SessionState(str, Enum):
    """Session transitions emitted by the host session provider."""
    SIGNED_IN = "SignedIn"
    SIGNED_OUT = "SignedOut"


class FlushMode(str, Enum):
    """How captured events reach the delivery engine."""
    BATCHED = "batched"  # periodic timer drains the queue
    INSTANT = "instant"  # each capture is delivered on its own


@dataclass(frozen=True, slots=True)
class UserIdentity:
    """
    Identity of the signed-in user, as returned by the identity provider.

    The entity ref (e.g. "user:default/alice") is what gets stamped on events
    and used to look up team metadata.
    """
    user_entity_ref: str | None = None

    def __str__(self) -> str:
        return self.user_entity_ref or "anonymous"


@dataclass(frozen=True, slots=True)
class EnrichedEvent:
    """
    An analytics event stamped with capture context.

    Created once at capture time. The retry key is fixed at construction,
    so it stays stable across delivery attempts.
    """
    event: AnalyticsEvent
    timestamp: datetime
    user: str | None = None
    team_metadata: dict[str, Any] | None = None
    session_id: str | None = None

    # Digest of the wire record, computed once
    retry_key: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        payload = json.dumps(self.to_dict(), default=str)
        object.__setattr__(self, "retry_key", hashlib.sha256(payload.encode("utf-8")).hexdigest())

    @classmethod
    def create(
        cls,
        event: AnalyticsEvent,
        user: str | None,
        team_metadata: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> EnrichedEvent:
        """
        Factory stamping the current UTC time.

        Payload and metadata are copied so later changes by the caller do
        not reach the queued record.
        """
        return cls(
            event=copy.deepcopy(event),
            timestamp=datetime.now(timezone.utc),
            user=user,
            team_metadata=copy.deepcopy(team_metadata),
            session_id=session_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire record posted to the collection endpoint."""
        return {
            "event": self.event,
            "timestamp": self.timestamp.isoformat(),
            "user": self.user,
            "teamMetadata": self.team_metadata,
            "sessionId": self.session_id,
        }


def serialize_batch(events: list[EnrichedEvent]) -> bytes:
    """Encode a batch as the JSON array body of a delivery request."""
    return json.dumps([e.to_dict() for e in events], default=str).encode("utf-8")
