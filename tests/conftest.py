"""
Shared fixtures for the dhtgate test suite.

- local_node: seeded in-memory DHT node
- failing_node: node whose store operations always raise
- client: TestClient bound to an app over local_node
"""

from typing import Optional

import pytest
from fastapi.testclient import TestClient
from loguru import logger

from dhtgate.api_server import ServerConfig, create_app
from dhtgate.core.codec import ValueCodec
from dhtgate.core.identifiers import IdentifierDeriver, StoreIdentifier
from dhtgate.core.username_directory import UsernameDirectory
from dhtgate.p2p.facade import Receipt, Value
from dhtgate.p2p.local_node import LocalDHTNode


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: HTTP-level tests through the app")


class RecordingNode(LocalDHTNode):
    """Local node that counts facade calls."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.find_calls = 0
        self.store_calls = 0

    async def find_value(self, id: StoreIdentifier) -> Optional[Value]:
        self.find_calls += 1
        return await super().find_value(id)

    async def store_value(self, value: Value) -> Receipt:
        self.store_calls += 1
        return await super().store_value(value)


class FailingNode(LocalDHTNode):
    """Node whose lookups and stores fail like an unreachable network."""

    def __init__(self, message: str = "lookup timed out: no reachable peers", **kwargs):
        super().__init__(**kwargs)
        self.message = message

    async def find_value(self, id: StoreIdentifier) -> Optional[Value]:
        raise ConnectionError(self.message)

    async def store_value(self, value: Value) -> Receipt:
        raise ConnectionError(self.message)


@pytest.fixture
def log_messages():
    """Capture loguru output for the duration of a test."""
    messages = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{message}")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def local_node():
    """Provide a recording in-memory node with a fixed identity."""
    return RecordingNode(address4="10.0.0.7", port=39001, seed=b"test_node")


@pytest.fixture
def failing_node():
    return FailingNode(seed=b"failing_node")


@pytest.fixture
def deriver():
    return IdentifierDeriver()


@pytest.fixture
def codec():
    return ValueCodec()


@pytest.fixture
def directory(local_node, deriver, codec):
    return UsernameDirectory(local_node, deriver, codec)


@pytest.fixture
def config():
    return ServerConfig(service_name="dht-http-api-test")


@pytest.fixture
def client(local_node, config):
    """Provide a TestClient over the local node."""
    with TestClient(create_app(local_node, config)) as test_client:
        yield test_client


@pytest.fixture
def failing_client(failing_node, config):
    with TestClient(create_app(failing_node, config)) as test_client:
        yield test_client
