"""In-memory session state stream."""

from __future__ import annotations

import logging
from typing import Callable

from ..events import SessionState
from .base import SessionListener, SessionProvider


logger = logging.getLogger(__name__)


class SessionStateStream(SessionProvider):
    """
    Minimal publisher of session transitions.

    Hosts call publish() from their auth flow; every subscribed listener is
    notified synchronously, in subscription order. New subscribers receive
    the last published state, if any.
    """

    def __init__(self) -> None:
        self._listeners: list[SessionListener] = []
        self._current: SessionState | None = None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)
        if self._current is not None:
            listener(self._current)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, state: SessionState) -> None:
        self._current = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Session listener error: {e}")

    @property
    def current(self) -> SessionState | None:
        return self._current
