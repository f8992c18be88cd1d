"""Shared fixtures: an in-memory transport standing in for the network."""

import asyncio
from typing import Any

import pytest

from tradelink.exchanges.transport import RawResponse, RequestSpec


class FakeTransport:
    """Routes (method, path) to a payload, an exception, or a callable.

    A callable route receives the request and returns a payload or raises.
    """

    def __init__(self, delay: float = 0.0):
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[RequestSpec] = []
        self.delay = delay
        self.closed = False

    def route(self, method: str, path: str, response: Any) -> None:
        self.routes[(method, path)] = response

    def count(self, method: str, path: str) -> int:
        return sum(1 for c in self.calls if c.method == method and c.path == path)

    def last(self, method: str, path: str) -> RequestSpec:
        return [c for c in self.calls if c.method == method and c.path == path][-1]

    async def perform(self, request: RequestSpec) -> RawResponse:
        self.calls.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.routes[(request.method, request.path)]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(request)
        return RawResponse(status_code=200, payload=response)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_transport():
    return FakeTransport()
