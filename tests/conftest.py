"""Shared test fixtures for analytics forwarder tests.

Collaborators (identity, catalog, session, error sink) are in-memory fakes,
and the collection endpoint is served by httpx.MockTransport so no test
touches the network.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from analytics_forwarder.config import ForwarderConfig
from analytics_forwarder.events import UserIdentity
from analytics_forwarder.forwarder import AnalyticsForwarder
from analytics_forwarder.providers.base import CatalogProvider, ErrorSink, IdentityProvider
from analytics_forwarder.providers.stream import SessionStateStream


ENDPOINT = "https://collect.example/ev"


# =============================================================================
# Collaborator fakes
# =============================================================================

class FakeIdentity(IdentityProvider):
    """Identity provider returning a fixed user, or raising."""

    def __init__(self, user_entity_ref: str | None = "user:default/alice", error: Exception | None = None):
        self.user_entity_ref = user_entity_ref
        self.error = error
        self.calls = 0

    async def get_identity(self) -> UserIdentity | None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.user_entity_ref is None:
            return None
        return UserIdentity(user_entity_ref=self.user_entity_ref)


class FakeCatalog(CatalogProvider):
    """Catalog keyed by entity ref."""

    def __init__(self, entities: dict[str, dict[str, Any]] | None = None, error: Exception | None = None):
        self.entities = entities if entities is not None else {
            "user:default/alice": {"name": "alice"},
        }
        self.error = error
        self.lookups: list[str] = []

    async def get_entity_by_ref(self, entity_ref: str) -> dict[str, Any] | None:
        self.lookups.append(entity_ref)
        if self.error is not None:
            raise self.error
        return self.entities.get(entity_ref)


class RecordingErrorSink(ErrorSink):
    """Error sink that keeps every report."""

    def __init__(self):
        self.errors: list[Exception] = []

    def post(self, error: Exception) -> None:
        self.errors.append(error)

    def of_type(self, error_type: type) -> list[Exception]:
        return [e for e in self.errors if isinstance(e, error_type)]


class CollectorEndpoint:
    """
    Fake collection endpoint behind httpx.MockTransport.

    Responds 200 unless told to fail the next N requests.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.response_code: int = 200
        self.delay: float = 0.0
        self._failures: list[int | Exception] = []

    def fail_next(self, n: int, status: int = 500) -> None:
        self._failures.extend([status] * n)

    def disconnect_next(self, n: int) -> None:
        self._failures.extend([httpx.ConnectError("connection refused")] * n)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self._failures:
            failure = self._failures.pop(0)
            if isinstance(failure, Exception):
                raise failure
            return httpx.Response(failure)
        return httpx.Response(self.response_code)

    @property
    def batches(self) -> list[list[dict[str, Any]]]:
        return [json.loads(r.content) for r in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def session_stream() -> SessionStateStream:
    return SessionStateStream()


@pytest.fixture
def error_sink() -> RecordingErrorSink:
    return RecordingErrorSink()


@pytest.fixture
def endpoint() -> CollectorEndpoint:
    return CollectorEndpoint()


@pytest.fixture
def make_forwarder(identity, catalog, session_stream, error_sink, endpoint):
    """Build a forwarder wired to the fakes; keyword args override config."""

    def factory(**config_kwargs) -> AnalyticsForwarder:
        config_kwargs.setdefault("host", ENDPOINT)
        return AnalyticsForwarder(
            ForwarderConfig(**config_kwargs),
            identity=identity,
            catalog=catalog,
            session=session_stream,
            error_sink=error_sink,
            client=endpoint.client(),
        )

    return factory


def accounted_events(forwarder: AnalyticsForwarder) -> int:
    """Events that ended up delivered, still queued, or abandoned."""
    stats = forwarder.stats
    return stats["events_sent"] + stats["queue_depth"] + stats["abandoned"]
