"""Fixtures for endpoint tests."""

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from clubhost.api import deps
from clubhost.main import app


@pytest.fixture
async def api_client(db_session, stripe_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app, bound to the test database and a test Stripe client.

    The lifespan does not run, so nothing connects to Postgres or starts the scheduler.
    """

    async def _get_db():
        yield db_session

    app.dependency_overrides[deps.get_db] = _get_db
    app.state.stripe_client = stripe_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    app.state.stripe_client = None
