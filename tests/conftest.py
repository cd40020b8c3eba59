"""Fixtures for the harness unit tests (no live NutriApp needed)."""
import pytest_asyncio

from nutriapp_tests.api_client import NutriAppApiClient
from nutriapp_tests.conftest_mock_api import mock_nutriapp_server  # noqa: F401


@pytest_asyncio.fixture
async def mock_api(mock_nutriapp_server):  # noqa: F811
    """Connected client pointed at a fresh mock server."""
    async with NutriAppApiClient(base_url=mock_nutriapp_server.url, timeout=5.0) as client:
        yield client
