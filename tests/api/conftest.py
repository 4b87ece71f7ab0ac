"""Fixtures for exercising the HTTP layer in-process."""

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.database import aget_db
from app.core.security import create_jwt_token
from app.main import app
from app.utils.rate_limit import limiter


@pytest.fixture
async def client(session_factory):
    """AsyncClient bound to the app, with aget_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[aget_db] = override_get_db
    limiter.enabled = False

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    """Build an Authorization header for a user."""

    def _headers(user):
        token = create_jwt_token({"sub": user.user_id, "role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    return _headers
