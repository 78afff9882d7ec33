from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from models.event import ResourceEvent

log = logging.getLogger(__name__)


class EventConsumer(ABC):
    """Queue-driven subscriber to a live resource.

    Obtain the queue from ``resource.subscribe(*names)``; the subscription
    itself counts as interest, so the resource polls for as long as the queue
    stays subscribed. Events are handled one at a time in emission order.
    """

    def __init__(self, queue: asyncio.Queue[ResourceEvent]) -> None:
        self._queue = queue

    @property
    def queue(self) -> asyncio.Queue[ResourceEvent]:
        return self._queue

    @abstractmethod
    async def process(self, event: ResourceEvent) -> None:
        """Handle one event."""

    async def run(self) -> None:
        """Consume events until cancelled.

        A failure in ``process()`` is logged and the loop moves on to the
        next event.
        """
        name = type(self).__name__
        log.info("%s started, awaiting events", name)
        try:
            while True:
                event = await self._queue.get()
                try:
                    await self.process(event)
                except Exception:
                    log.exception("%s failed processing %r event", name, event.name)
                finally:
                    self._queue.task_done()
        finally:
            log.info("%s stopped", name)
