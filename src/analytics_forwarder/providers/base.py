"""Base collaborator interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

from ..events import SessionState, UserIdentity


SessionListener = Callable[[SessionState], None]


class IdentityProvider(ABC):
    """Resolves the currently signed-in user."""

    @abstractmethod
    async def get_identity(self) -> UserIdentity | None:
        """
        Return the current user's identity.

        May return None when nobody is signed in, and may raise.
        """
        ...


class CatalogProvider(ABC):
    """Looks up descriptive metadata for an entity reference."""

    @abstractmethod
    async def get_entity_by_ref(self, entity_ref: str) -> dict[str, Any] | None:
        """Return the entity record for a ref like "user:default/alice"."""
        ...


class SessionProvider(ABC):
    """Source of sign-in / sign-out notifications."""

    @abstractmethod
    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener for session state changes.

        Returns a callable that removes the listener.
        """
        ...


class ErrorSink(ABC):
    """
    Receives failure reports.

    Reports are fire-and-forget: the forwarder never waits on, or reacts
    to, what the sink does with them.
    """

    @abstractmethod
    def post(self, error: Exception) -> None:
        ...
