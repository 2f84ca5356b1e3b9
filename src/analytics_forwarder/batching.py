"""In-memory event queue and periodic flush scheduling."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from .events import EnrichedEvent


logger = logging.getLogger(__name__)


@dataclass
class EventQueue:
    """
    Enriched events waiting for delivery.

    Lives in process memory only; whatever is queued at shutdown is lost.
    None of the operations await, so on a single event loop a drain can
    never interleave with an append.
    """
    _events: list[EnrichedEvent] = field(default_factory=list, init=False)

    def append(self, event: EnrichedEvent) -> None:
        self._events.append(event)

    def pop(self) -> EnrichedEvent | None:
        """Remove and return the most recently appended event."""
        if not self._events:
            return None
        return self._events.pop()

    def drain(self) -> list[EnrichedEvent]:
        """Remove every queued event and return them as one batch."""
        batch = self._events
        self._events = []
        return batch

    def __len__(self) -> int:
        return len(self._events)


@dataclass
class FlushScheduler:
    """
    Drains the queue into the delivery sink on a fixed interval.

    Events appended while a batch is being delivered stay in the queue
    and go out on the next tick.
    """
    queue: EventQueue
    interval_seconds: float

    # Receives each drained batch
    sink: Callable[[list[EnrichedEvent]], Awaitable[object]]

    # Internal state
    _task: asyncio.Task | None = field(default=None, init=False)
    _running: bool = field(default=False, init=False)
    _sleeping: bool = field(default=False, init=False)
    _last_flush: float = field(default_factory=time.time, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        if self.interval_seconds <= 0:
            raise ValueError(f"Flush interval must be positive, got {self.interval_seconds}")
        self._stats = {
            "ticks": 0,
            "empty_ticks": 0,
            "flush_errors": 0,
        }

    def schedule_flush(self) -> asyncio.Task:
        """Start the recurring timer (idempotent; needs a running loop)."""
        if self._task is None or self._task.done():
            self._running = True
            self._task = asyncio.get_running_loop().create_task(self.timer_loop())
            logger.debug(f"Starting flush cycle with interval: {self.interval_seconds}s")
        return self._task

    async def timer_loop(self) -> None:
        """Background loop that flushes on interval until stopped."""
        while self._running:
            try:
                self._sleeping = True
                try:
                    await asyncio.sleep(self.interval_seconds)
                finally:
                    self._sleeping = False
                await self.flush()
            except asyncio.CancelledError:
                logger.debug("Flush timer cancelled")
                break
            except Exception as e:
                logger.error(f"Flush timer error: {e}")
                self._stats["flush_errors"] += 1

        self._running = False

    async def flush(self) -> int:
        """Run one tick now. Returns the size of the batch handed off."""
        self._stats["ticks"] += 1
        if not len(self.queue):
            self._stats["empty_ticks"] += 1
            logger.debug("No events to flush.")
            return 0

        batch = self.queue.drain()
        self._last_flush = time.time()
        await self.sink(batch)
        return len(batch)

    async def stop(self) -> None:
        """
        Stop the timer. Queued events are left in place.

        A tick that is already delivering is allowed to finish; only the
        wait between ticks is cancelled.
        """
        self._running = False
        if self._task is not None:
            if self._sleeping:
                self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stats(self) -> dict:
        return {
            **self._stats,
            "queue_depth": len(self.queue),
            "seconds_since_flush": time.time() - self._last_flush,
        }
