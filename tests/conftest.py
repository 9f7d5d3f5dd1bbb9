"""Test configuration and fixtures."""

import os

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from segmented_image_pull.core.cache import ResultCache
from segmented_image_pull.core.session import create_session
from segmented_image_pull.core.types import RegistryConfig
from tests.helpers import FakeImage, FakeInspector, FakeRegistry, FakeTransfer


@pytest_asyncio.fixture
async def fake_registry():
    """Start an in-process registry and token service."""
    registry = FakeRegistry()
    server = TestServer(registry.app())
    await server.start_server()
    registry.server = server
    yield registry
    await server.close()


@pytest.fixture
def registry_config(fake_registry):
    """Registry configuration pointing at the fake registry."""
    server = fake_registry.server
    return RegistryConfig(
        registry=f"{server.host}:{server.port}",
        scheme="http",
        auth_url=str(server.make_url("/token")),
        connect_timeout=5,
        timeout=10,
    )


@pytest_asyncio.fixture
async def session(registry_config):
    """HTTP session bound to the test's event loop."""
    session = await create_session(registry_config)
    yield session
    await session.close()


@pytest.fixture
def cache(tmp_path):
    """Isolated result cache."""
    return ResultCache(tmp_path / "cache")


@pytest.fixture
def image():
    """Two-layer multi-platform image, amd64 backed by content."""
    return FakeImage()


@pytest.fixture
def inspector(image):
    return FakeInspector(image.documents())


@pytest.fixture
def transfer(image):
    return FakeTransfer(image.layers)


# Pytest configuration
def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring registry"
    )
    config.addinivalue_line("markers", "unit: mark test as unit test (default)")


def pytest_collection_modifyitems(config, items):
    """Modify test collection."""
    # Skip integration tests if no registry
    skip_integration = pytest.mark.skip(reason="Registry not available")

    for item in items:
        if (
            "integration" in item.keywords
            and os.getenv("REGISTRY_AVAILABLE", "false").lower() != "true"
        ):
            item.add_marker(skip_integration)
