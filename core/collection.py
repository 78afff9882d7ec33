from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from core.interest import InterestCounter
from core.resource import (
    CHANGE,
    HTTP_DELETE,
    HTTP_POST,
    HTTP_PUT,
    LiveResource,
    json_equal,
)

log = logging.getLogger(__name__)

ADD = "add"
REMOVE = "remove"
UPDATE = "update"

ITEM_EVENTS = (ADD, REMOVE, UPDATE)


def _item_url(endpoint: str, item_id: Any) -> str:
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    return f"{endpoint}/{item_id}"


def _find(items: Sequence[Any] | None, item_id: Any) -> Any:
    """Return the first item whose ``id`` equals ``item_id``, or None."""
    for item in items or ():
        if isinstance(item, Mapping) and item.get("id") == item_id:
            return item
    return None


class LiveCollection(LiveResource):
    """Live resource whose value is an ordered list of items keyed by ``id``.

    On top of the resource events, every ``change`` is diffed against the
    previous list and reported per item:

        add(id, item, None)
        update(id, item, previous)
        remove(id, None, item)

    The diff is only attached to ``change`` while somebody listens for one of
    the item events, so ``refresh``/``change`` subscribers alone pay nothing
    for it.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        # Keep one bound method so it can be removed again with off().
        self._diff_listener = self._diff
        self._diff_interest = InterestCounter(
            ITEM_EVENTS, self._attach_diff, self._detach_diff
        )

    def _diff(self, new_items: Any, old_items: Any) -> None:
        if not isinstance(new_items, list):
            raise TypeError("Server must respond with a list")

        old_items = old_items or []
        for item in new_items:
            item_id = item.get("id")
            previous = _find(old_items, item_id)
            if previous is None:
                self.emit(ADD, item_id, item, None)
            elif not json_equal(item, previous):
                self.emit(UPDATE, item_id, item, previous)

        for item in old_items:
            item_id = item.get("id")
            if _find(new_items, item_id) is None:
                self.emit(REMOVE, item_id, None, item)

    def _attach_diff(self) -> None:
        log.debug("Diffing %s", self.endpoint)
        self.on(CHANGE, self._diff_listener)

    def _detach_diff(self) -> None:
        self.off(CHANGE, self._diff_listener)

    def _listener_added(self, name: str) -> None:
        super()._listener_added(name)
        self._diff_interest.acquire(name)

    def _listener_removed(self, name: str) -> None:
        super()._listener_removed(name)
        self._diff_interest.release(name)

    async def update(self, item_id: Any, data: Any) -> Any:  # type: ignore[override]
        """PUT ``data`` to the item and return it from the refreshed list."""
        items, _ = await self.request(_item_url(self.endpoint, item_id), HTTP_PUT, data)
        return _find(items, item_id)

    async def add(self, data: Any) -> Any:
        """POST a new item and return it, as refreshed, by its assigned id."""
        items, body = await self.request(self.endpoint, HTTP_POST, data)
        return _find(items, body["id"])

    async def remove(self, item_id: Any) -> None:
        await self.request(_item_url(self.endpoint, item_id), HTTP_DELETE)
        return None
