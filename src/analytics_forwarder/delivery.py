"""HTTP delivery of event batches with bounded retry."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from .batching import EventQueue
from .errors import DeliveryError, RetryLimitExceeded
from .events import EnrichedEvent, serialize_batch
from .providers.base import ErrorSink


logger = logging.getLogger(__name__)


@dataclass
class RetryLedger:
    """
    Retry counts keyed by an event's content digest.

    Entries are never removed: a delivered or abandoned event simply stops
    being looked up.
    """
    _counts: dict[str, int] = field(default_factory=dict, init=False)

    def get(self, key: str) -> int:
        return self._counts.get(key, 0)

    def increment(self, key: str) -> int:
        count = self._counts.get(key, 0) + 1
        self._counts[key] = count
        return count

    def __len__(self) -> int:
        return len(self._counts)


@dataclass
class DeliveryEngine:
    """
    Posts batches to the collection endpoint.

    A batch succeeds or fails as a whole. On failure every event in it is
    re-enqueued until it has been retried retry_limit times, after which
    it is reported as abandoned and dropped.
    """
    endpoint: str
    queue: EventQueue
    error_sink: ErrorSink
    basic_auth_token: str | None = None
    retry_limit: int = 3
    timeout_seconds: float = 5.0

    # Supply a client to share connections or to mock the transport
    client: httpx.AsyncClient | None = None

    ledger: RetryLedger = field(default_factory=RetryLedger)

    _owns_client: bool = field(default=False, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "batches_sent": 0,
            "events_sent": 0,
            "delivery_failures": 0,
            "retried": 0,
            "abandoned": 0,
        }

    @property
    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.basic_auth_token:
            headers["Authorization"] = f"Basic {self.basic_auth_token}"
        return headers

    async def deliver(self, batch: list[EnrichedEvent]) -> bool:
        """
        Deliver one batch.

        Returns True if any event was re-enqueued for another attempt.
        Never raises for delivery problems.
        """
        logger.debug(f"deliver called with {len(batch)} events")
        if not batch:
            logger.debug("No events to flush.")
            return False

        logger.debug(f"Flushing {len(batch)} events to endpoint: {self.endpoint}")

        try:
            await self._send(batch)
        except DeliveryError as e:
            logger.warning(f"Failed to flush analytics events: {e}")
            self._stats["delivery_failures"] += 1
            self._report(DeliveryError(f"Failed to flush analytics events: {e}", e.status_code))
            return self._handle_failure(batch)

        self._stats["batches_sent"] += 1
        self._stats["events_sent"] += len(batch)
        logger.debug("Successfully flushed events.")
        return False

    async def _send(self, batch: list[EnrichedEvent]) -> None:
        client = self._get_client()
        try:
            response = await client.post(
                self.endpoint,
                content=serialize_batch(batch),
                headers=self.headers,
            )
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            raise DeliveryError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise DeliveryError(
                f"Server responded with non-OK status: {response.status_code}",
                status_code=response.status_code,
            )

    def _handle_failure(self, batch: list[EnrichedEvent]) -> bool:
        requeued = False
        for event in batch:
            key = event.retry_key
            retries = self.ledger.get(key)
            if retries < self.retry_limit:
                self.queue.append(event)
                attempt = self.ledger.increment(key)
                self._stats["retried"] += 1
                logger.debug(f"Retrying event {key}, attempt {attempt}")
                requeued = True
            else:
                logger.error(f"Max retries reached for event: {key}")
                self._stats["abandoned"] += 1
                self._report(RetryLimitExceeded(key, retries + 1))
        return requeued

    def _report(self, error: Exception) -> None:
        try:
            self.error_sink.post(error)
        except Exception as e:
            logger.error(f"Error sink failed to accept report: {e}")

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout_seconds)
            self._owns_client = True
        return self.client

    async def close(self) -> None:
        """Close the HTTP client if this engine created it."""
        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None
            self._owns_client = False

    @property
    def stats(self) -> dict:
        return {
            **self._stats,
            "ledger_size": len(self.ledger),
        }
