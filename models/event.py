from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ResourceEvent:
    """Record of one emitted event, as delivered to queue subscribers.

    Fields:
        name:      Event name ("refresh", "change", "add", ...).
        args:      Positional arguments the event was emitted with, in the
                   same order callback listeners receive them.
        timestamp: When the event was emitted (UTC).
    """

    name: str
    args: tuple[Any, ...] = ()
    timestamp: datetime = field(default_factory=_now)
