"""
Shared test fixtures and configuration for pytest.
"""

from __future__ import annotations

import httpx
import pytest

from core.collection import LiveCollection
from core.resource import LiveResource
from helpers import FakeServer, Recorder

ENDPOINT = "/api/campaigns"
QUERY = {"foo": "bar", "hello": "world"}


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
async def client(server):
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(server.handle),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
async def make_resource(client):
    """Factory for resources bound to the fake server; closed on teardown."""
    created: list[LiveResource] = []

    def factory(cls=LiveResource, endpoint=ENDPOINT, **kwargs):
        resource = cls(endpoint, client=client, **kwargs)
        created.append(resource)
        return resource

    yield factory

    for resource in created:
        await resource.aclose()


@pytest.fixture
def resource(make_resource):
    return make_resource(query=QUERY, poll_interval_ms=5000)


@pytest.fixture
def collection(make_resource):
    return make_resource(LiveCollection, endpoint="/api/items", poll_interval_ms=5000)
