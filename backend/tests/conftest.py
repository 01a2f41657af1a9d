import os

# Settings are read at import time, so the test environment must be in place first
os.environ["SESSION_SECRET"] = "test-session-secret-not-for-production"
os.environ["ADMIN_EMAIL"] = "admin@portfolio.dev"
os.environ["DATABASE_URL"] = ""
os.environ["DEV_AUTH_BYPASS"] = "false"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from portfolio.main import app
from portfolio.storage import InMemoryStorage, SqlStorage

# Use SQLite for testing the relational backend
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_EMAIL = "admin@portfolio.dev"
PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def storage(request):
    """Run each test against both storage backends"""
    if request.param == "memory":
        store = InMemoryStorage()
    else:
        store = SqlStorage(TEST_DATABASE_URL)
    await store.init()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def make_client(storage):
    """Factory for test clients; each client keeps its own session cookie"""
    app.state.storage = storage
    clients = []

    async def _make() -> AsyncClient:
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(ac)
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()


@pytest_asyncio.fixture
async def client(make_client):
    """Anonymous client"""
    return await make_client()


async def register(ac: AsyncClient, email: str, first_name: str = "Ana", last_name: str = "Silva"):
    response = await ac.post("/api/auth/register", json={
        "email": email,
        "password": PASSWORD,
        "firstName": first_name,
        "lastName": last_name,
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def admin_client(make_client):
    ac = await make_client()
    await register(ac, ADMIN_EMAIL, first_name="Rafaela", last_name="Botelho")
    return ac


@pytest_asyncio.fixture
async def user_client(make_client):
    ac = await make_client()
    await register(ac, "visitor@mail.com")
    return ac


@pytest.fixture
def project_data():
    return {
        "title": "Portfolio Site",
        "description": "Single page portfolio with an admin area",
        "image": "https://images.example.org/portfolio.png",
        "githubUrl": "https://github.com/someone/portfolio",
        "technologies": ["React", "FastAPI", "PostgreSQL"],
        "category": "web",
        "tags": ["fullstack"],
    }


@pytest.fixture
def achievement_data():
    return {
        "title": "Cloud Practitioner",
        "description": "Foundational cloud certification",
        "date": "2024-05-10T00:00:00Z",
        "organization": "AWS",
        "certificateUrl": "https://certs.example.org/123",
    }
