"""Test doubles shared by the test modules."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable

import httpx

_UNSET = object()


class FakeServer:
    """In-memory HTTP server behind ``httpx.MockTransport``.

    Routes are keyed by ``(method, path)``. Every received request is
    recorded, including requests whose response is still being held.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Callable[[httpx.Request], Any]] = {}

    @staticmethod
    def _responder(
        status: int,
        json: Any,
        text: str | None,
        error: Exception | None,
    ) -> Callable[[httpx.Request], httpx.Response]:
        def respond(request: httpx.Request) -> httpx.Response:
            if error is not None:
                raise error
            if text is not None:
                return httpx.Response(status, text=text)
            if json is _UNSET:
                return httpx.Response(status)
            return httpx.Response(status, json=json)

        return respond

    def reply(
        self,
        method: str,
        path: str,
        status: int = 200,
        *,
        json: Any = _UNSET,
        text: str | None = None,
    ) -> None:
        self._routes[(method, path)] = self._responder(status, json, text, None)

    def fail(self, method: str, path: str, message: str = "connection refused") -> None:
        self._routes[(method, path)] = self._responder(
            0, _UNSET, None, httpx.ConnectError(message)
        )

    def hold(
        self,
        method: str,
        path: str,
        status: int = 200,
        *,
        json: Any = _UNSET,
        text: str | None = None,
    ) -> asyncio.Event:
        """Hold matching requests until the returned event is set, then reply."""
        gate = asyncio.Event()
        build = self._responder(status, json, text, None)

        async def respond(request: httpx.Request) -> httpx.Response:
            await gate.wait()
            return build(request)

        self._routes[(method, path)] = respond
        return gate

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method)
            and (path is None or r.url.path == path)
        ]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        respond = self._routes.get((request.method, request.url.path))
        if respond is None:
            return httpx.Response(599, text=f"no route for {request.method} {request.url.path}")
        result = respond(request)
        if inspect.isawaitable(result):
            result = await result
        return result


class Recorder:
    """Collects ``(event_name, args)`` pairs from callback listeners."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def listener(self, name: str) -> Callable[..., None]:
        def record(*args: Any) -> None:
            self.calls.append((name, args))

        return record

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def args(self, name: str) -> list[tuple[Any, ...]]:
        return [args for n, args in self.calls if n == name]

    def clear(self) -> None:
        self.calls.clear()


async def settle(rounds: int = 20) -> None:
    """Let pending callbacks and tasks run without advancing time."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)
