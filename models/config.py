from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_POLL_INTERVAL_MS = 1000


@dataclass(frozen=True)
class ResourceConfig:
    """Connection settings for a single live resource.

    Fields:
        endpoint:         URL of the resource. Required.
        query:            Extra query parameters merged into every read.
        poll_interval_ms: Delay between the completion of one poll and the
                          start of the next.
    """

    endpoint: str
    query: Mapping[str, Any] = field(default_factory=dict)
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS

    def __post_init__(self) -> None:
        if not self.endpoint:
            raise ValueError("config.endpoint is required")
        if self.poll_interval_ms <= 0:
            raise ValueError(
                f"config.poll_interval_ms must be positive, got {self.poll_interval_ms}"
            )
        # Own a copy so later changes to the caller's mapping are not seen.
        object.__setattr__(self, "query", dict(self.query or {}))

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> ResourceConfig:
        """Build a config from a plain mapping.

        Accepts ``poll_interval_ms`` or the camel-case ``pollIntervalMs`` key.
        """
        interval = mapping.get("poll_interval_ms", mapping.get("pollIntervalMs"))
        return cls(
            endpoint=mapping.get("endpoint") or "",
            query=mapping.get("query") or {},
            poll_interval_ms=(
                DEFAULT_POLL_INTERVAL_MS if interval is None else int(interval)
            ),
        )
