"""Analytics forwarder - capture, enrich, batch and deliver events."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass

import httpx

from .batching import EventQueue, FlushScheduler
from .config import ForwarderConfig
from .delivery import DeliveryEngine
from .enricher import EventEnricher
from .events import AnalyticsEvent, EnrichedEvent, FlushMode
from .providers.base import CatalogProvider, ErrorSink, IdentityProvider, SessionProvider
from .providers.console import ConsoleErrorSink
from .session import SessionTracker


logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "analytics_forwarder"


@dataclass
class BatchedDispatch:
    """Queue captured events; the flush timer delivers them."""
    queue: EventQueue
    scheduler: FlushScheduler

    mode = FlushMode.BATCHED

    async def submit(self, event: EnrichedEvent) -> None:
        self.queue.append(event)

    def start(self) -> None:
        self.scheduler.schedule_flush()

    async def flush(self) -> None:
        await self.scheduler.flush()

    async def stop(self) -> None:
        await self.scheduler.stop()


@dataclass
class InstantDispatch:
    """
    Deliver each captured event on its own, straight away.

    Failed events come back through the queue and are re-sent immediately,
    with no delay, until they succeed or run out of retries.
    """
    queue: EventQueue
    engine: DeliveryEngine

    mode = FlushMode.INSTANT

    async def submit(self, event: EnrichedEvent) -> None:
        self.queue.append(event)
        await self.flush()

    def start(self) -> None:
        pass

    async def flush(self) -> None:
        while True:
            event = self.queue.pop()
            if event is None:
                return
            requeued = await self.engine.deliver([event])
            if not requeued:
                return

    async def stop(self) -> None:
        pass


class AnalyticsForwarder:
    """
    Client-side analytics event forwarder.

    Usage:
        forwarder = AnalyticsForwarder.from_config(
            ForwarderConfig.from_yaml("app-config.yaml"),
            identity=identity_api,
            catalog=catalog_api,
            session=session_stream,
        )
        await forwarder.start()
        forwarder.capture({"action": "click", "subject": "nav"})

    capture() never blocks and never raises: events that cannot be enriched
    are dropped, delivery failures are retried and finally reported to the
    error sink.
    """

    def __init__(
        self,
        config: ForwarderConfig,
        *,
        identity: IdentityProvider | None,
        catalog: CatalogProvider,
        session: SessionProvider | None = None,
        error_sink: ErrorSink | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.config = config
        self.error_sink = error_sink or ConsoleErrorSink()

        if config.debug:
            logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)
            logger.info("Debug mode is enabled.")

        self.queue = EventQueue()
        self.tracker = SessionTracker()
        self.enricher = EventEnricher(
            identity=identity,
            catalog=catalog,
            session=self.tracker.cell,
        )
        self.engine = DeliveryEngine(
            endpoint=config.host,
            queue=self.queue,
            error_sink=self.error_sink,
            basic_auth_token=config.basic_auth_token,
            retry_limit=config.retry_limit,
            timeout_seconds=config.timeout_seconds,
            client=client,
        )

        if config.mode is FlushMode.INSTANT:
            self._dispatch = InstantDispatch(queue=self.queue, engine=self.engine)
        else:
            self._dispatch = BatchedDispatch(
                queue=self.queue,
                scheduler=FlushScheduler(
                    queue=self.queue,
                    interval_seconds=config.flush_interval_seconds,
                    sink=self.engine.deliver,
                ),
            )

        self.tracker.attach(session)

        self._pending: set[asyncio.Task] = set()
        self._stats = {
            "captured": 0,
            "dropped": 0,
            "errors": 0,
        }

    @classmethod
    def from_config(
        cls,
        config: ForwarderConfig | dict,
        *,
        identity: IdentityProvider | None,
        catalog: CatalogProvider,
        session: SessionProvider | None = None,
        error_sink: ErrorSink | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> AnalyticsForwarder:
        if isinstance(config, dict):
            config = ForwarderConfig.from_dict(config)
        return cls(
            config,
            identity=identity,
            catalog=catalog,
            session=session,
            error_sink=error_sink,
            client=client,
        )

    @property
    def mode(self) -> FlushMode:
        return self._dispatch.mode

    @property
    def session_id(self) -> str | None:
        return self.tracker.session_id

    async def start(self) -> None:
        """Start the flush timer (no timer in instant mode)."""
        self._dispatch.start()
        logger.info(
            f"Analytics forwarder started (mode={self.mode.value}, endpoint={self.config.host})"
        )

    async def stop(self) -> None:
        """Stop the timer, finish pending captures and flush once more."""
        await self._dispatch.stop()
        await self.join()
        await self._dispatch.flush()
        await self.engine.close()
        self.tracker.detach()
        logger.info(f"Analytics forwarder stopped. Stats: {self.stats}")

    def capture(self, event: AnalyticsEvent) -> None:
        """
        Capture an event (non-blocking).

        Must be called from within a running event loop.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping analytics event")
            self._stats["dropped"] += 1
            return

        task = loop.create_task(self.track(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def track(self, event: AnalyticsEvent) -> bool:
        """
        Capture an event and wait for it to be queued (or delivered, in
        instant mode). Returns False if the event was dropped.
        """
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"capture called with event: {json.dumps(event, default=str)}")

        try:
            enriched = await self.enricher.enrich(event)
            if enriched is None:
                self._stats["dropped"] += 1
                return False

            self._stats["captured"] += 1
            await self._dispatch.submit(enriched)
            return True
        except Exception as e:
            logger.error(f"Error capturing analytics event: {e}")
            self._stats["errors"] += 1
            return False

    async def flush(self) -> None:
        """Deliver whatever is queued now, without waiting for the timer."""
        await self._dispatch.flush()

    async def join(self) -> None:
        """Wait for every capture scheduled so far to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def stats(self) -> dict:
        stats = {
            **self._stats,
            **self.engine.stats,
            "mode": self.mode.value,
            "queue_depth": len(self.queue),
            "pending_captures": len(self._pending),
            "session_active": self.tracker.session_id is not None,
        }
        if isinstance(self._dispatch, BatchedDispatch):
            stats["flush"] = self._dispatch.scheduler.stats
        return stats
