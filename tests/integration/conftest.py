"""Integration-test fixtures.

Requires a PostgreSQL database with migrations applied (alembic upgrade head)
and a reachable Redis. All integration tests share a single event loop so
that the module-level SQLAlchemy async engine pool stays valid across the
whole session.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt

from config.settings import settings
from src.main import app
from tests.integration.seeding import Seed


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if "integration" in item.path.parts:
            item.add_marker(pytest.mark.integration)


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _bearer(user_id: str) -> dict[str, str]:
    token = jwt.encode(
        {"sub": user_id, "type": "access", "exp": datetime.now(UTC) + timedelta(minutes=10)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="session")
def seed() -> Seed:
    return Seed()


@pytest.fixture(scope="session")
def bearer() -> Callable[[str], dict[str, str]]:
    """Authorization header for a user id, signed with the shared JWT secret."""
    return _bearer
