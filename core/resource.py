from __future__ import annotations

import asyncio
import dataclasses
import functools
import logging
from collections.abc import Mapping
from json import dumps
from typing import Any

import httpx

from core.errors import StatusCodeError
from core.event_bus import EventBus
from core.interest import InterestCounter
from models.config import ResourceConfig

log = logging.getLogger(__name__)

OPEN = "open"
CLOSE = "close"
REFRESH = "refresh"
CHANGE = "change"
ERROR = "error"

# Subscribing to any of these starts polling.
POLLING_EVENTS = (REFRESH, CHANGE, ERROR)

HTTP_PUT = "PUT"
HTTP_POST = "POST"
HTTP_DELETE = "DELETE"

CONTENT_TYPE = "Content-Type"
MIME_JSON = "application/json"

# Marks a request that carries no body, as opposed to a JSON null body.
_NO_BODY = object()


def _check_response(response: httpx.Response, allow_empty: bool = False) -> Any:
    """Return the JSON body of a 2xx response, raise StatusCodeError otherwise."""
    if not response.is_success:
        raise StatusCodeError(response.text, response)
    if allow_empty and not response.content:
        return None
    return response.json()


def json_equal(a: Any, b: Any) -> bool:
    """Compare decoded JSON values, keeping booleans distinct from numbers."""
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(json_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(map(json_equal, a, b))
    if isinstance(a, (Mapping, list)) or isinstance(b, (Mapping, list)):
        return False
    return a == b


def _build_config(
    config: ResourceConfig | Mapping[str, Any] | str | None,
    query: Mapping[str, Any] | None,
    poll_interval_ms: int | None,
) -> ResourceConfig:
    if isinstance(config, ResourceConfig):
        base = config
    elif isinstance(config, Mapping):
        base = ResourceConfig.from_mapping(config)
    else:
        base = ResourceConfig(endpoint=config or "")

    overrides: dict[str, Any] = {}
    if query is not None:
        overrides["query"] = query
    if poll_interval_ms is not None:
        overrides["poll_interval_ms"] = poll_interval_ms
    return dataclasses.replace(base, **overrides) if overrides else base


class LiveResource(EventBus):
    """Local mirror of one remote JSON value, kept fresh by polling.

    Polling runs only while somebody cares: the first subscriber to
    ``refresh``, ``change`` or ``error`` opens the resource and removing the
    last one closes it. While open, one asyncio task per open/close session
    (an *epoch*) refreshes the value, waiting ``poll_interval_ms`` after each
    completed request before issuing the next, so polls never overlap.

    Events:
        open(), close()
        refresh(data)            after every successful read
        change(new, previous)    when the value differs from the last one
        error(exc)               for every failed read or write

    A shared ``httpx.AsyncClient`` may be injected so that many resources
    reuse one connection pool. Without one, the resource creates its own and
    releases it in ``aclose()``.
    """

    def __init__(
        self,
        config: ResourceConfig | Mapping[str, Any] | str | None,
        *,
        client: httpx.AsyncClient | None = None,
        query: Mapping[str, Any] | None = None,
        poll_interval_ms: int | None = None,
    ) -> None:
        super().__init__()
        self._config = _build_config(config, query, poll_interval_ms)
        self._client = client if client is not None else httpx.AsyncClient()
        self._owns_client = client is None

        self._data: Any = None
        self._opened = False
        self._epoch = 0
        self._waiters: list[asyncio.Future[Any]] = []
        self._poll_tasks: set[asyncio.Task[None]] = set()
        self._interest = InterestCounter(POLLING_EVENTS, self.open, self.close)

    @property
    def config(self) -> ResourceConfig:
        return self._config

    @property
    def endpoint(self) -> str:
        return self._config.endpoint

    @property
    def data(self) -> Any:
        """Last successfully fetched value, ``None`` before the first fetch."""
        return self._data

    @property
    def opened(self) -> bool:
        return self._opened

    # -- reads -------------------------------------------------------------

    async def refresh(self) -> Any:
        """Fetch the current value and notify subscribers.

        Emits ``refresh`` for every successful read and ``change`` when the
        value differs from the previous one. Failures are emitted on
        ``error`` and re-raised.
        """
        try:
            data = await self._fetch()
        except Exception as exc:
            self._report(exc)
            raise
        self._apply(data)
        return data

    async def _fetch(self) -> Any:
        log.debug("GET %s", self.endpoint)
        response = await self._client.get(
            self.endpoint, params=self._config.query or None
        )
        return _check_response(response)

    def _apply(self, data: Any) -> None:
        previous = self._data
        self._data = data
        self.emit(REFRESH, data)

        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(data)

        if not json_equal(data, previous):
            self.emit(CHANGE, data, previous)

    def _report(self, exc: BaseException, level: int = logging.WARNING) -> None:
        if isinstance(exc, StatusCodeError):
            log.log(level, "%s answered %d: %s", self.endpoint, exc.status, exc.message)
        else:
            log.log(level, "Request to %s failed: %s", self.endpoint, exc)
        self.emit(ERROR, exc)

    # -- writes ------------------------------------------------------------

    async def update(self, payload: Any) -> Any:
        """PUT ``payload`` to the endpoint and return the refreshed value."""
        refreshed, _ = await self.request(self.endpoint, HTTP_PUT, payload)
        return refreshed

    async def request(
        self,
        url: str,
        method: str,
        json: Any = _NO_BODY,
        headers: Mapping[str, str] | None = None,
    ) -> tuple[Any, Any]:
        """Perform a write and resynchronize before returning.

        Polling is paused for the duration of the request. On success polling
        is resumed, which triggers an immediate refresh, and the call returns
        ``(refreshed_data, write_response_body)`` once that refresh has been
        emitted. On failure polling is restored to its prior state, the error
        is emitted on ``error`` and raised.

        ``json`` is serialized as the request body, ``None`` included; leave
        it out to send no body. While the call waits for its refresh it holds
        a share of the polling interest, so unsubscribing cannot strand it.
        """
        was_open = self._opened
        self.close()

        send_headers = dict(headers or {})
        content = None
        if json is not _NO_BODY:
            send_headers.setdefault(CONTENT_TYPE, MIME_JSON)
            content = dumps(json).encode()

        log.debug("%s %s", method, url)
        try:
            response = await self._client.request(
                method,
                url,
                content=content,
                headers=send_headers,
            )
            body = _check_response(response, allow_empty=True)
        except Exception as exc:
            if was_open:
                self.open()
            self._report(exc)
            raise

        waiter: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.open()
        self._waiters.append(waiter)
        self._interest.acquire(REFRESH)
        try:
            refreshed = await waiter
        finally:
            # A successful write leaves polling running either way.
            self._interest.release(REFRESH, notify=False)
        return refreshed, body

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> None:
        """Start polling. The first refresh runs on the next loop iteration."""
        if self._opened:
            return

        self._opened = True
        self._epoch += 1
        epoch = self._epoch
        log.info("Opened %s (interval=%dms)", self.endpoint, self._config.poll_interval_ms)
        self.emit(OPEN)

        task = asyncio.get_running_loop().create_task(
            self._poll(epoch),
            name=f"poll-{self.endpoint}",
        )
        self._poll_tasks.add(task)
        task.add_done_callback(functools.partial(self._poll_finished, epoch))

    def close(self) -> None:
        """Stop polling. An in-flight request completes but schedules nothing."""
        if not self._opened:
            return

        self._opened = False
        self._epoch += 1
        log.info("Closed %s", self.endpoint)
        self.emit(CLOSE)

    async def aclose(self) -> None:
        """Close the resource and release the HTTP client if it is ours."""
        self.close()
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> LiveResource:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _poll(self, epoch: int) -> None:
        """Polling loop for one open/close session.

        Each cycle:
        1. stop if the resource was closed (or reopened) since ``epoch``
        2. fetch and apply the current value
        3. sleep for the poll interval, measured from completion
        """
        while epoch == self._epoch:
            try:
                data = await self._fetch()
            except Exception as exc:
                self._report(exc, logging.DEBUG)
            else:
                self._apply(data)

            if epoch != self._epoch:
                break
            await asyncio.sleep(self._config.poll_interval_seconds)

    def _poll_finished(self, epoch: int, task: asyncio.Task[None]) -> None:
        self._poll_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error(
                "Polling of %s stopped by listener error",
                self.endpoint,
                exc_info=exc,
            )
            if epoch == self._epoch:
                self.close()

    # -- subscription hooks ------------------------------------------------

    def _listener_added(self, name: str) -> None:
        self._interest.acquire(name)

    def _listener_removed(self, name: str) -> None:
        self._interest.release(name)
