"""Session tracking for captured events."""

from __future__ import annotations

import logging
import random
import string
import time
from dataclasses import dataclass, field
from typing import Callable

from .events import SessionState
from .providers.base import SessionProvider


logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase

# Attempts at a session id that differs from the previous one
MAX_ID_ATTEMPTS = 5


def to_base36(value: int) -> str:
    """Encode a non-negative integer in base 36."""
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative value")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_session_id() -> str:
    """
    Random base-36 fragment followed by the base-36 current time (ms).

    Unique enough for analytics sessions, not a security token.
    """
    fragment = to_base36(random.getrandbits(52))
    now_ms = to_base36(int(time.time() * 1000))
    return fragment + now_ms


@dataclass
class SessionIdCell:
    """The single current session id, or None when signed out."""
    _value: str | None = field(default=None, init=False)

    def get(self) -> str | None:
        return self._value

    def set(self, session_id: str) -> None:
        self._value = session_id

    def clear(self) -> None:
        self._value = None


@dataclass
class SessionTracker:
    """
    Keeps the session id in step with sign-in / sign-out notifications.

    Each sign-in starts a fresh session; sign-out clears it so events
    captured afterwards carry no session id.
    """
    cell: SessionIdCell = field(default_factory=SessionIdCell)

    # Injected for tests
    id_factory: Callable[[], str] = generate_session_id

    _unsubscribe: Callable[[], None] | None = field(default=None, init=False)

    @property
    def session_id(self) -> str | None:
        return self.cell.get()

    def attach(self, provider: SessionProvider | None) -> bool:
        """
        Subscribe to the provider's session stream.

        A failing subscription is logged; the tracker keeps working with no
        session id. Returns True if subscribed.
        """
        if provider is None:
            return False
        try:
            self._unsubscribe = provider.subscribe(self.on_session_state_changed)
            return True
        except Exception as e:
            logger.error(f"Failed to subscribe to session state changes: {e}")
            return False

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_session_state_changed(self, state: SessionState) -> None:
        logger.debug(f"Session state changed to: {state}")

        if state == SessionState.SIGNED_IN:
            previous = self.cell.get()
            for _ in range(MAX_ID_ATTEMPTS):
                session_id = self.id_factory()
                if session_id != previous:
                    self.cell.set(session_id)
                    logger.debug(f"Generated session id: {session_id}")
                    return
            logger.error(
                f"Session id factory repeated the previous id {MAX_ID_ATTEMPTS} times, clearing session"
            )
            self.cell.clear()
        elif state == SessionState.SIGNED_OUT:
            self.cell.clear()
            logger.debug("Cleared session id")
        else:
            logger.warning(f"Ignoring unknown session state: {state!r}")
