from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from models.event import ResourceEvent

log = logging.getLogger(__name__)

Listener = Callable[..., Any]


class _Once:
    """Listener wrapper that unregisters itself before its first call."""

    def __init__(self, bus: EventBus, name: str, listener: Listener) -> None:
        self._bus = bus
        self._name = name
        self.listener = listener

    def __call__(self, *args: Any) -> Any:
        self._bus.off(self._name, self)
        return self.listener(*args)


class EventBus:
    """Named-event channel with two kinds of subscribers.

    Callback listeners (``on``/``once``) are invoked synchronously by
    ``emit`` in registration order. Queue subscribers (``subscribe``) each
    receive their own ``asyncio.Queue`` of ``ResourceEvent`` records so that a
    slow consumer never blocks the emitter or other consumers.

    Every subscription change is reported to ``_listener_added`` and
    ``_listener_removed``; subclasses override those to react to interest.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}
        self._queues: dict[asyncio.Queue[ResourceEvent], frozenset[str]] = {}

    def on(self, name: str, listener: Listener) -> Listener:
        self._listeners.setdefault(name, []).append(listener)
        self._listener_added(name)
        return listener

    def once(self, name: str, listener: Listener) -> Listener:
        """Register ``listener`` for the next ``name`` event only."""
        self.on(name, _Once(self, name, listener))
        return listener

    def off(self, name: str, listener: Listener) -> None:
        """Remove one registration of ``listener``; unknown listeners are ignored."""
        listeners = self._listeners.get(name, [])
        for i, registered in enumerate(listeners):
            if registered is listener or getattr(registered, "listener", None) is listener:
                del listeners[i]
                break
        else:
            return
        if not listeners:
            del self._listeners[name]
        self._listener_removed(name)

    def listener_count(self, name: str) -> int:
        queued = sum(1 for names in self._queues.values() if name in names)
        return len(self._listeners.get(name, ())) + queued

    def emit(self, name: str, *args: Any) -> None:
        """Deliver an event to every listener and subscribed queue.

        Exceptions raised by callback listeners propagate to the caller.
        """
        for listener in list(self._listeners.get(name, ())):
            listener(*args)

        if not self._queues:
            return
        event = ResourceEvent(name=name, args=args)
        for q, names in list(self._queues.items()):
            if name not in names:
                continue
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                log.warning("Subscriber queue full, dropping %r event", name)

    def subscribe(self, *names: str, maxsize: int = 0) -> asyncio.Queue[ResourceEvent]:
        """Create and return a new subscriber queue for the given event names.

        Each consumer should call this once and then ``await queue.get()``
        in a loop. A queue counts as one listener per name it follows.
        """
        if not names:
            raise ValueError("subscribe() needs at least one event name")
        q: asyncio.Queue[ResourceEvent] = asyncio.Queue(maxsize=maxsize)
        self._queues[q] = frozenset(names)
        for name in self._queues[q]:
            self._listener_added(name)
        return q

    def unsubscribe(self, q: asyncio.Queue[ResourceEvent]) -> None:
        names = self._queues.pop(q, frozenset())
        for name in names:
            self._listener_removed(name)

    def _listener_added(self, name: str) -> None:
        """Called after a subscription for ``name`` was added."""

    def _listener_removed(self, name: str) -> None:
        """Called after a subscription for ``name`` was removed."""
