from __future__ import annotations

from collections.abc import Callable, Iterable


class InterestCounter:
    """Reference count of subscribers across a fixed set of event names.

    ``on_first`` runs when the count goes from 0 to 1 and ``on_last`` when it
    drops back to 0. Names outside the set are ignored, so callers can feed
    every subscription change through ``acquire``/``release``.
    """

    def __init__(
        self,
        names: Iterable[str],
        on_first: Callable[[], None],
        on_last: Callable[[], None],
    ) -> None:
        self._names = frozenset(names)
        self._on_first = on_first
        self._on_last = on_last
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def acquire(self, name: str) -> None:
        if name not in self._names:
            return
        self._count += 1
        if self._count == 1:
            self._on_first()

    def release(self, name: str, notify: bool = True) -> None:
        """Drop one unit of interest; ``notify=False`` skips ``on_last``."""
        if name not in self._names or self._count == 0:
            return
        self._count -= 1
        if self._count == 0 and notify:
            self._on_last()
