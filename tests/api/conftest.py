"""API fixtures — ASGI client bound to the test store."""

import pytest
from httpx import ASGITransport, AsyncClient

from parallel_calendar.main import app


@pytest.fixture
async def client(store):
    previous = getattr(app.state, "db", None)
    app.state.db = store
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as ac:
        yield ac
    app.state.db = previous


@pytest.fixture
def as_owner(owner):
    return {"X-User-Id": str(owner.id)}
