from __future__ import annotations

import json
from typing import Any

from consumers.base import EventConsumer
from models.event import ResourceEvent


def _render(value: Any) -> str:
    if isinstance(value, BaseException):
        return repr(value)
    try:
        return json.dumps(value, sort_keys=True, default=str)
    except ValueError:
        return repr(value)


class ConsoleConsumer(EventConsumer):
    """Reactive consumer that prints resource events to stdout."""

    async def process(self, event: ResourceEvent) -> None:
        ts = event.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        args = ", ".join(_render(arg) for arg in event.args)
        print(f"[{ts}] {event.name}({args})", flush=True)
