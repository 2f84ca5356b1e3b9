"""Host collaborators - identity, catalog, session and error reporting."""

from .base import CatalogProvider, ErrorSink, IdentityProvider, SessionListener, SessionProvider
from .console import ConsoleErrorSink
from .stream import SessionStateStream

__all__ = [
    "IdentityProvider",
    "CatalogProvider",
    "SessionProvider",
    "SessionListener",
    "ErrorSink",
    "ConsoleErrorSink",
    "SessionStateStream",
]
