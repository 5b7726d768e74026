"""Shared test fixtures."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from devquest.auth.jwt import reset_keys
from devquest.config import get_settings
from devquest.database import close_db, create_all, init_db, session_scope
from devquest.main import create_app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "secret123"


def _ensure_test_keys() -> tuple[str, str]:
    """Generate a throwaway RSA key pair and point the settings at it."""
    if os.environ.get("DEVQUEST_JWT_PRIVATE_KEY_PATH") and os.path.exists(os.environ["DEVQUEST_JWT_PRIVATE_KEY_PATH"]):
        return os.environ["DEVQUEST_JWT_PRIVATE_KEY_PATH"], os.environ["DEVQUEST_JWT_PUBLIC_KEY_PATH"]

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    tmpdir = Path(tempfile.mkdtemp(prefix="devquest_test_keys_"))
    private_path = tmpdir / "jwt_private.pem"
    public_path = tmpdir / "jwt_public.pem"
    private_path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )

    os.environ["DEVQUEST_JWT_PRIVATE_KEY_PATH"] = str(private_path)
    os.environ["DEVQUEST_JWT_PUBLIC_KEY_PATH"] = str(public_path)
    return str(private_path), str(public_path)


@pytest.fixture(autouse=True)
def _test_settings() -> Generator[None, None, None]:
    """In-memory database, test keys and fresh cached settings for every test."""
    _ensure_test_keys()
    os.environ["DEVQUEST_DATABASE_URL"] = TEST_DATABASE_URL
    os.environ["DEVQUEST_LOG_FORMAT"] = "console"
    get_settings.cache_clear()
    reset_keys()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema per test; the in-memory database dies with the engine."""
    await init_db(get_settings().database_url)
    await create_all()
    yield
    await close_db()


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app. Redis is never initialised, so rate limiting passes through."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for service-level tests and assertions."""
    async with session_scope() as session:
        yield session


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def register(client: AsyncClient, name: str, role: str, email: str | None = None) -> dict:
    """Register a user through the API; returns id, token and auth headers."""
    response = await client.post("/api/auth/user/register", json={
        "name": name,
        "email": email or f"{name.lower().replace(' ', '.')}@example.com",
        "password": PASSWORD,
        "role": role,
    })
    assert response.status_code == 201, response.text
    data = response.json()
    return {
        "id": data["user"]["id"],
        "email": data["user"]["email"],
        "token": data["access_token"],
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
    }


@pytest_asyncio.fixture
async def client_user(client: AsyncClient) -> dict:
    return await register(client, "Carol Client", "client")


@pytest_asyncio.fixture
async def pm_user(client: AsyncClient) -> dict:
    return await register(client, "Pat Manager", "pm")


@pytest_asyncio.fixture
async def dev_user(client: AsyncClient) -> dict:
    return await register(client, "Dana Dev", "developer")


async def create_project(client: AsyncClient, owner: dict, pm: dict | None = None, **fields) -> dict:
    """Create a project through the API and return its JSON body."""
    body = {"title": "Website Revamp", "xp_budget": 100, **fields}
    if pm is not None:
        body["pm_id"] = pm["id"]
    response = await client.post("/api/projects/create", json=body, headers=owner["headers"])
    assert response.status_code == 201, response.text
    return response.json()["project"]


async def create_task(client: AsyncClient, pm: dict, project_id: int, dev: dict | None = None, **fields) -> dict:
    """Create a task through the API and return its JSON body."""
    body = {"title": "Build landing page", "project_id": project_id, "xp": 50, **fields}
    if dev is not None:
        body["assigned_to"] = dev["id"]
    response = await client.post("/api/tasks/create", json=body, headers=pm["headers"])
    assert response.status_code == 201, response.text
    return response.json()["task"]
