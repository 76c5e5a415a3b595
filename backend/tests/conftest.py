import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.services.ai_service import AIService
from app.services.goal_service import GoalService
from app.services.memory_store import InMemoryGoalStore
from app.services.sql_store import SqlGoalStore
from main import create_app


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DATABASE_URL=None,
        GROQ_API_KEY=None,
        JWT_SECRET="test-secret",
        RATE_LIMIT_ENABLED=False,
        LOG_LEVEL="WARNING",
    )


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request, tmp_path):
    if request.param == "memory":
        goal_store = InMemoryGoalStore()
    else:
        goal_store = SqlGoalStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'goals.db'}")
        await goal_store.init()
    yield goal_store
    await goal_store.close()


@pytest.fixture
def service(store):
    return GoalService(store)


@pytest_asyncio.fixture
async def client(settings):
    app = create_app(settings=settings, store=InMemoryGoalStore(), ai_service=AIService(settings))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register(client):
    """Register a user through the API and return bearer headers for them."""

    async def _register(email="alice@example.com", password="secret123"):
        resp = await client.post("/api/auth/register", json={"email": email, "password": password, "firstName": "Test"})
        assert resp.status_code == 201, resp.text
        token = resp.json()["data"]["tokens"]["accessToken"]
        return {"Authorization": f"Bearer {token}"}

    return _register
