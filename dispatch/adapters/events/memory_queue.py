"""In-process event channel: a bounded asyncio queue and the worker that drains it."""

from __future__ import annotations

import asyncio
import logging

from dispatch.application.ports.event_publisher import EventPublisher
from dispatch.application.use_cases.notify_transition import TransitionNotifier
from dispatch.domain.entities.transition_event import TransitionEvent

logger = logging.getLogger(__name__)


class AsyncioEventQueue(EventPublisher):
    """Non-blocking publisher. When the queue is full the event is dropped with a warning."""

    def __init__(self, maxsize: int = 1000):
        self._queue: asyncio.Queue[TransitionEvent] = asyncio.Queue(maxsize=maxsize)

    def publish(self, event: TransitionEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Event queue full, dropping %s event for %s",
                event.kind.value, event.request_number,
            )

    async def get(self) -> TransitionEvent:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()

    def qsize(self) -> int:
        return self._queue.qsize()


class NotificationWorker:
    """Consumes transition events and hands each to the TransitionNotifier."""

    def __init__(self, queue: AsyncioEventQueue, notifier: TransitionNotifier):
        self._queue = queue
        self._notifier = notifier
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run(), name="notification-worker")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.handle(event)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Handle everything currently queued, without a background task."""
        while self._queue.qsize():
            event = await self._queue.get()
            try:
                await self.handle(event)
            finally:
                self._queue.task_done()

    async def handle(self, event: TransitionEvent) -> None:
        try:
            reports = await self._notifier.notify(event)
        except Exception:
            logger.exception(
                "Notification for %s event on %s failed", event.kind.value, event.request_number
            )
            return
        for report in reports:
            if not report.success:
                logger.warning(
                    "%s notification for %s partially failed: %s",
                    report.template.value, report.request_number, ", ".join(report.failed),
                )
