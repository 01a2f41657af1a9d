from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from conftest import ADMIN_EMAIL, PASSWORD, register
from portfolio.auth import create_session_token, hash_password, is_admin_email, verify_password
from portfolio.config import get_settings


def _session_cookie(token: str) -> dict:
    return {"Cookie": f"portfolio_session={token}"}


def _far_future() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=1)


def _past() -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=5)


def test_password_hashing():
    hashed = hash_password("s3cret-password")
    assert hashed != "s3cret-password"
    assert verify_password("s3cret-password", hashed)
    assert not verify_password("wrong-password", hashed)


def test_is_admin_email_is_case_insensitive():
    settings = get_settings()
    assert is_admin_email("Admin@Portfolio.dev", settings)
    assert not is_admin_email("someone@portfolio.dev", settings)


@pytest.mark.asyncio
async def test_register_opens_session(client: AsyncClient):
    user = await register(client, "new@mail.com", first_name="Novo")
    assert user["email"] == "new@mail.com"
    assert user["firstName"] == "Novo"
    assert user["isAdmin"] is False
    assert "hashedPassword" not in user
    assert "portfolio_session" in client.cookies

    me = await client.get("/api/auth/user")
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, make_client):
    await register(client, "dup@mail.com")
    other = await make_client()
    response = await other.post("/api/auth/register", json={
        "email": "DUP@mail.com",
        "password": PASSWORD,
    })
    assert response.status_code == 409
    assert response.json()["detail"] == "Este email já está cadastrado"


@pytest.mark.asyncio
async def test_register_short_password(client: AsyncClient):
    response = await client.post("/api/auth/register", json={
        "email": "short@mail.com",
        "password": "1234",
    })
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "password"


@pytest.mark.asyncio
async def test_admin_flag_only_for_configured_email(admin_client: AsyncClient, user_client: AsyncClient):
    admin = (await admin_client.get("/api/auth/user")).json()
    visitor = (await user_client.get("/api/auth/user")).json()
    assert admin["email"] == ADMIN_EMAIL
    assert admin["isAdmin"] is True
    assert visitor["isAdmin"] is False


@pytest.mark.asyncio
async def test_admin_flag_is_persisted(admin_client: AsyncClient, monkeypatch):
    # Changing the configured admin later does not demote an existing account
    monkeypatch.setattr(get_settings(), "admin_email", "someone-else@portfolio.dev")
    me = await admin_client.get("/api/auth/user")
    assert me.json()["isAdmin"] is True


@pytest.mark.asyncio
async def test_login(client: AsyncClient, make_client):
    await register(client, "login@mail.com")

    fresh = await make_client()
    response = await fresh.post("/api/auth/login", json={"email": "Login@mail.com", "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["email"] == "login@mail.com"
    assert (await fresh.get("/api/auth/user")).status_code == 200


@pytest.mark.asyncio
async def test_login_invalid_credentials(client: AsyncClient):
    await register(client, "login@mail.com")

    wrong_password = await client.post("/api/auth/login", json={"email": "login@mail.com", "password": "nope-nope"})
    unknown_user = await client.post("/api/auth/login", json={"email": "ghost@mail.com", "password": PASSWORD})
    assert wrong_password.status_code == 401
    assert unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {"detail": "Email ou senha inválidos"}


@pytest.mark.asyncio
async def test_current_user_requires_session(client: AsyncClient):
    response = await client.get("/api/auth/user")
    assert response.status_code == 401
    assert response.json()["detail"] == "Não autenticado"


@pytest.mark.asyncio
async def test_logout_ends_session(user_client: AsyncClient):
    token = user_client.cookies["portfolio_session"]

    response = await user_client.post("/api/auth/logout")
    assert response.status_code == 200
    assert response.json()["message"] == "Sessão encerrada"
    assert (await user_client.get("/api/auth/user")).status_code == 401

    # The old cookie no longer maps to a server-side session
    response = await user_client.get("/api/auth/user", headers=_session_cookie(token))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_tampered_cookie_is_anonymous(client: AsyncClient):
    response = await client.get("/api/auth/user", headers=_session_cookie("not-a-token"))
    assert response.status_code == 401

    token = create_session_token("unknown-sid", _far_future())
    response = await client.get("/api/auth/user", headers=_session_cookie(token))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_session_is_rejected(client: AsyncClient, storage):
    user = await register(client, "late@mail.com")
    sid = await storage.create_session(user["id"], _past())
    client.cookies.clear()
    token = create_session_token(sid, _far_future())
    response = await client.get("/api/auth/user", headers=_session_cookie(token))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_update_profile(user_client: AsyncClient):
    response = await user_client.patch("/api/auth/user", json={
        "firstName": "Beatriz",
        "profileImageUrl": "https://images.example.org/me.png",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["firstName"] == "Beatriz"
    assert data["lastName"] == "Silva"
    assert data["profileImageUrl"] == "https://images.example.org/me.png"

    cleared = (await user_client.patch("/api/auth/user", json={"lastName": None})).json()
    assert cleared["lastName"] is None
    assert cleared["firstName"] == "Beatriz"


@pytest.mark.asyncio
async def test_login_redirect(client: AsyncClient):
    response = await client.get("/api/login")
    assert response.status_code == 307
    assert response.headers["location"] == "/auth"


@pytest.mark.asyncio
async def test_logout_redirect(user_client: AsyncClient):
    response = await user_client.get("/api/logout")
    assert response.status_code == 307
    assert response.headers["location"] == "/"
    assert (await user_client.get("/api/auth/user")).status_code == 401


@pytest.mark.asyncio
async def test_dev_bypass_disabled_by_default(client: AsyncClient):
    assert get_settings().dev_auth_bypass is False
    assert (await client.get("/api/auth/user")).status_code == 401


@pytest.mark.asyncio
async def test_dev_bypass_synthesizes_user(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(get_settings(), "dev_auth_bypass", True)

    first = await client.get("/api/auth/user")
    second = await client.get("/api/auth/user")
    assert first.status_code == 200
    assert first.json()["email"] == "dev@portfolio.dev"
    assert first.json()["isAdmin"] is False
    assert first.json()["id"] == second.json()["id"]
