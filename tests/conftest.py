"""
Test configuration and shared fixtures.

The remote OData service is never contacted: tests use StubClient, or a real
RemoteClient over httpx.MockTransport.
"""

import asyncio
from typing import Any, List, Optional

import pytest

from bcb_mcp.dispatcher import Dispatcher
from bcb_mcp.protocol import McpProtocol
from bcb_mcp.tools.catalog import default_registry
from bcb_mcp.tools.query import QueryDescriptor

MONTHLY_PAYLOAD = {"value": [{"AnoMes": "202312", "Pix": 100}]}


class StubClient:
    """Records every query and answers with a fixed payload or error."""

    def __init__(self, payload: Any = None, error: Optional[Exception] = None, delay: float = 0.0):
        self.payload = payload if payload is not None else MONTHLY_PAYLOAD
        self.error = error
        self.delay = delay
        self.calls: List[QueryDescriptor] = []

    async def fetch(self, query: QueryDescriptor) -> Any:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def stub_client():
    return StubClient()


@pytest.fixture
def dispatcher(registry, stub_client):
    return Dispatcher(registry, stub_client)


@pytest.fixture
def protocol(registry, dispatcher):
    return McpProtocol(registry, dispatcher)
