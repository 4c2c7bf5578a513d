"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from scorecard.core import metrics as metrics_module
from scorecard.core.config import get_settings
from scorecard.main import app


@pytest.fixture(autouse=True)
def fresh_metrics_collector():
    """Give each test its own aggregation metrics collector."""
    metrics_module._metrics_collector = None
    yield
    metrics_module._metrics_collector = None


@pytest.fixture
def settings():
    return get_settings()


@pytest_asyncio.fixture(scope="function")
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client against the in-process app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
