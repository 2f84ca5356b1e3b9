"""Event enrichment with user, team and session context."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from .events import AnalyticsEvent, EnrichedEvent
from .providers.base import CatalogProvider, IdentityProvider
from .session import SessionIdCell


logger = logging.getLogger(__name__)


@dataclass
class EventEnricher:
    """
    Stamps captured events with who, when and which session.

    Events whose user cannot be resolved are dropped: analytics without a
    user is not worth queueing. Metadata lookup failures are handled the
    same way.
    """
    identity: IdentityProvider | None
    catalog: CatalogProvider
    session: SessionIdCell

    async def enrich(self, event: AnalyticsEvent) -> EnrichedEvent | None:
        """Return the enriched event, or None if it should be dropped."""
        user = await self._get_user()
        if not user:
            logger.debug("Dropping event: user is undefined")
            return None

        try:
            team_metadata = await self.catalog.get_entity_by_ref(user)
        except Exception as e:
            logger.warning(f"Dropping event: failed to get metadata for {user}: {e}")
            return None

        session_id = self.session.get()
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Capturing event: {json.dumps(event, default=str)} "
                f"User ID: {user} "
                f"Team Metadata: {json.dumps(team_metadata, default=str)} "
                f"Session ID: {session_id}"
            )

        return EnrichedEvent.create(
            event=event,
            user=user,
            team_metadata=team_metadata,
            session_id=session_id,
        )

    async def _get_user(self) -> str | None:
        if self.identity is None:
            return None
        try:
            identity = await self.identity.get_identity()
        except Exception as e:
            logger.warning(f"Failed to get user identity: {e}")
            return None

        logger.debug(f"Identity: {identity}")
        if identity is None:
            return None
        return identity.user_entity_ref
