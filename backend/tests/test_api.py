import asyncio
import logging
from datetime import datetime

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from conftest import register
from portfolio.config import get_settings
from portfolio.main import RequestTimeoutMiddleware, app, lifespan
from portfolio.storage import InMemoryStorage, SqlStorage


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert data["version"] == "1.0.0"


@pytest.mark.asyncio
async def test_health(client: AsyncClient, storage):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["storage"] == storage.name


@pytest.mark.asyncio
async def test_security_headers(client: AsyncClient):
    response = await client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


@pytest.mark.asyncio
async def test_get_projects_empty(client: AsyncClient):
    response = await client.get("/api/projects")
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_create_project_requires_login(client: AsyncClient, project_data):
    response = await client.post("/api/projects", json=project_data)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_project_requires_admin(user_client: AsyncClient, project_data):
    response = await user_client.post("/api/projects", json=project_data)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_project(admin_client: AsyncClient, client: AsyncClient, project_data):
    response = await admin_client.post("/api/projects", json=project_data)
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Portfolio Site"
    assert data["technologies"] == ["React", "FastAPI", "PostgreSQL"]
    assert data["status"] == "published"
    assert data["featured"] is False
    assert data["likesCount"] == 0
    assert data["commentsCount"] == 0

    listed = (await client.get("/api/projects")).json()
    assert [p["id"] for p in listed] == [data["id"]]

    detail = await client.get(f"/api/projects/{data['id']}")
    assert detail.status_code == 200
    assert detail.json()["githubUrl"] == "https://github.com/someone/portfolio"


@pytest.mark.asyncio
async def test_create_project_validation_error(admin_client: AsyncClient):
    response = await admin_client.post("/api/projects", json={"title": "", "image": "x.png"})
    assert response.status_code == 400
    data = response.json()
    assert data["message"] == "Dados inválidos"
    fields = {e["field"] for e in data["errors"]}
    assert {"title", "description"} <= fields


@pytest.mark.asyncio
async def test_get_project_not_found(client: AsyncClient):
    response = await client.get("/api/projects/does-not-exist")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_project_is_partial(admin_client: AsyncClient, project_data):
    created = (await admin_client.post("/api/projects", json=project_data)).json()

    response = await admin_client.put(
        f"/api/projects/{created['id']}", json={"featured": True, "demoUrl": "https://demo.example.org"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["featured"] is True
    assert data["demoUrl"] == "https://demo.example.org"
    assert data["title"] == project_data["title"]
    assert _parse(data["updatedAt"]) >= _parse(created["updatedAt"])


@pytest.mark.asyncio
async def test_update_missing_project(admin_client: AsyncClient):
    response = await admin_client.put("/api/projects/missing", json={"featured": True})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_project(admin_client: AsyncClient, client: AsyncClient, project_data):
    created = (await admin_client.post("/api/projects", json=project_data)).json()

    response = await admin_client.delete(f"/api/projects/{created['id']}")
    assert response.status_code == 200
    assert response.json()["message"] == "Projeto deletado com sucesso"

    assert (await client.get(f"/api/projects/{created['id']}")).status_code == 404
    assert (await admin_client.delete(f"/api/projects/{created['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_draft_projects_hidden_from_visitors(
    admin_client: AsyncClient, user_client: AsyncClient, project_data
):
    draft = (await admin_client.post("/api/projects", json={**project_data, "status": "draft"})).json()

    assert (await user_client.get("/api/projects")).json() == []
    assert (await user_client.get("/api/projects", params={"include_drafts": True})).json() == []
    assert (await user_client.get(f"/api/projects/{draft['id']}")).status_code == 404

    admin_view = (await admin_client.get("/api/projects", params={"include_drafts": True})).json()
    assert [p["id"] for p in admin_view] == [draft["id"]]


@pytest.mark.asyncio
async def test_like_requires_login_then_toggles(
    admin_client: AsyncClient, client: AsyncClient, project_data
):
    project = (await admin_client.post("/api/projects", json=project_data)).json()
    url = f"/api/projects/{project['id']}/like"

    assert (await client.post(url)).status_code == 401

    await register(client, "fan@mail.com")
    first = await client.post(url)
    assert first.status_code == 200
    assert first.json() == {"liked": True}

    listed = (await client.get("/api/projects")).json()
    assert listed[0]["likesCount"] == 1
    assert listed[0]["userLiked"] is True

    second = await client.post(url)
    assert second.status_code == 200
    assert second.json() == {"liked": False}

    listed = (await client.get("/api/projects")).json()
    assert listed[0]["likesCount"] == 0
    assert listed[0]["userLiked"] is False


@pytest.mark.asyncio
async def test_like_missing_project(user_client: AsyncClient):
    response = await user_client.post("/api/projects/missing/like")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_comments_include_author(
    admin_client: AsyncClient, user_client: AsyncClient, client: AsyncClient, project_data
):
    project = (await admin_client.post("/api/projects", json=project_data)).json()
    url = f"/api/projects/{project['id']}/comments"

    assert (await client.post(url, json={"content": "Nice"})).status_code == 401
    assert (await user_client.post(url, json={"content": "   "})).status_code == 400

    response = await user_client.post(url, json={"content": "  Muito bom!  "})
    assert response.status_code == 200
    comment = response.json()
    assert comment["content"] == "Muito bom!"
    assert comment["entityId"] == project["id"]
    assert comment["user"]["firstName"] == "Ana"
    assert "email" not in comment["user"]

    comments = (await client.get(url)).json()
    assert [c["id"] for c in comments] == [comment["id"]]

    listed = (await client.get("/api/projects")).json()
    assert listed[0]["commentsCount"] == 1


@pytest.mark.asyncio
async def test_like_and_comment_notify_admin(
    admin_client: AsyncClient, user_client: AsyncClient, project_data
):
    project = (await admin_client.post("/api/projects", json=project_data)).json()
    await user_client.post(f"/api/projects/{project['id']}/like")
    await user_client.post(f"/api/projects/{project['id']}/comments", json={"content": "Top"})
    # Unliking does not notify
    await user_client.post(f"/api/projects/{project['id']}/like")

    notifications = (await admin_client.get("/api/notifications")).json()
    assert sorted(n["type"] for n in notifications) == ["comment", "like"]
    assert all(n["entityId"] == project["id"] for n in notifications)
    assert all(n["read"] is False for n in notifications)
    assert any("curtiu o projeto" in n["message"] for n in notifications)

    # Admin activity never notifies, and visitors have no notifications of their own
    await admin_client.post(f"/api/projects/{project['id']}/like")
    assert len((await admin_client.get("/api/notifications")).json()) == 2
    assert (await user_client.get("/api/notifications")).json() == []

    target = notifications[0]["id"]
    assert (await user_client.post(f"/api/notifications/{target}/read")).status_code == 404
    assert (await admin_client.post(f"/api/notifications/{target}/read")).status_code == 200
    updated = {n["id"]: n for n in (await admin_client.get("/api/notifications")).json()}
    assert updated[target]["read"] is True


@pytest.mark.asyncio
async def test_achievements_sorted_by_date(admin_client: AsyncClient, client: AsyncClient, achievement_data):
    for title, date in [("Old", "2021-01-01T00:00:00Z"), ("New", "2024-06-01T00:00:00Z"), ("Mid", "2023-03-01T00:00:00Z")]:
        response = await admin_client.post(
            "/api/achievements", json={**achievement_data, "title": title, "date": date}
        )
        assert response.status_code == 200

    titles = [a["title"] for a in (await client.get("/api/achievements")).json()]
    assert titles == ["New", "Mid", "Old"]


@pytest.mark.asyncio
async def test_achievement_like_and_comment(
    admin_client: AsyncClient, user_client: AsyncClient, achievement_data
):
    achievement = (await admin_client.post("/api/achievements", json=achievement_data)).json()
    base = f"/api/achievements/{achievement['id']}"

    assert (await user_client.post(f"{base}/like")).json() == {"liked": True}
    assert (await user_client.post(f"{base}/comments", json={"content": "Parabéns!"})).status_code == 200

    detail = (await user_client.get(base)).json()
    assert detail["likesCount"] == 1
    assert detail["commentsCount"] == 1
    assert detail["userLiked"] is True

    assert (await admin_client.delete(base)).json()["message"] == "Conquista deletada com sucesso"
    assert (await user_client.get(f"{base}/comments")).status_code == 404


@pytest.mark.asyncio
async def test_experiences_crud(admin_client: AsyncClient, client: AsyncClient):
    payload = {
        "title": "Backend Developer",
        "company": "Acme",
        "description": "APIs and data pipelines",
        "startDate": "2022-02-01T00:00:00Z",
        "technologies": ["Python"],
    }
    assert (await client.post("/api/experiences", json=payload)).status_code == 401

    first = (await admin_client.post("/api/experiences", json=payload)).json()
    second = (await admin_client.post(
        "/api/experiences", json={**payload, "title": "Lead Developer", "startDate": "2024-01-01T00:00:00Z", "current": True}
    )).json()

    titles = [e["title"] for e in (await client.get("/api/experiences")).json()]
    assert titles == ["Lead Developer", "Backend Developer"]

    response = await admin_client.put(
        f"/api/experiences/{first['id']}", json={"endDate": "2023-12-31T00:00:00Z"}
    )
    assert response.status_code == 200
    assert response.json()["endDate"].startswith("2023-12-31")

    assert (await admin_client.delete(f"/api/experiences/{second['id']}")).status_code == 200
    assert (await client.get(f"/api/experiences/{second['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_experience_end_before_start_rejected(admin_client: AsyncClient):
    response = await admin_client.post("/api/experiences", json={
        "title": "Intern",
        "company": "Acme",
        "description": "Internship",
        "startDate": "2022-02-01T00:00:00Z",
        "endDate": "2021-02-01T00:00:00Z",
    })
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_contact_submission(client: AsyncClient, user_client: AsyncClient, admin_client: AsyncClient):
    response = await client.post("/api/contact", json={
        "name": "Ana",
        "email": "ana@x.com",
        "subject": "Hi",
        "message": "Test",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["id"]
    assert data["message"] == "Mensagem enviada com sucesso! Entrarei em contato em breve."

    assert (await client.get("/api/admin/contacts")).status_code == 401
    assert (await user_client.get("/api/admin/contacts")).status_code == 403

    contacts = (await admin_client.get("/api/admin/contacts")).json()
    assert len(contacts) == 1
    assert contacts[0]["id"] == data["id"]
    assert contacts[0]["email"] == "ana@x.com"
    assert contacts[0]["subject"] == "Hi"


@pytest.mark.asyncio
async def test_contact_invalid_email(client: AsyncClient):
    response = await client.post("/api/contact", json={
        "name": "Ana",
        "email": "not-an-email",
        "subject": "Hi",
        "message": "Test",
    })
    assert response.status_code == 400
    assert [e["field"] for e in response.json()["errors"]] == ["email"]


@pytest.mark.asyncio
async def test_admin_users_listing(admin_client: AsyncClient, user_client: AsyncClient):
    assert (await user_client.get("/api/admin/users")).status_code == 403
    users = (await admin_client.get("/api/admin/users")).json()
    assert {u["email"]: u["isAdmin"] for u in users} == {
        "admin@portfolio.dev": True,
        "visitor@mail.com": False,
    }


@pytest.mark.asyncio
async def test_storage_outage_returns_503(tmp_path):
    broken = SqlStorage(f"sqlite+aiosqlite:///{tmp_path}/missing/dir/portfolio.db")
    app.state.storage = broken
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/api/projects")
    finally:
        await broken.close()
    assert response.status_code == 503
    assert response.json() == {"message": "Serviço temporariamente indisponível"}


@pytest.mark.asyncio
async def test_experience_update_keeps_dates_ordered(admin_client: AsyncClient, client: AsyncClient):
    experience = (await admin_client.post("/api/experiences", json={
        "title": "Backend Developer",
        "company": "Acme",
        "description": "APIs",
        "startDate": "2022-02-01T00:00:00Z",
    })).json()
    url = f"/api/experiences/{experience['id']}"

    response = await admin_client.put(url, json={"endDate": "2010-01-01T00:00:00Z"})
    assert response.status_code == 400
    data = response.json()
    assert data["message"] == "Dados inválidos"
    assert [e["field"] for e in data["errors"]] == ["endDate"]

    # Moving the start past an existing end is rejected the same way
    await admin_client.put(url, json={"endDate": "2023-01-01T00:00:00Z"})
    response = await admin_client.put(url, json={"startDate": "2024-01-01T00:00:00Z"})
    assert response.status_code == 400
    assert [e["field"] for e in response.json()["errors"]] == ["startDate"]

    stored = (await client.get(url)).json()
    assert stored["startDate"].startswith("2022-02-01")
    assert stored["endDate"].startswith("2023-01-01")

    assert (await admin_client.put("/api/experiences/missing", json={"endDate": "2010-01-01T00:00:00Z"})).status_code == 404


class ExplodingStorage(InMemoryStorage):
    async def list_projects(self, viewer_id=None, include_drafts=False):
        raise RuntimeError("unexpected failure")


@pytest.mark.asyncio
async def test_unexpected_error_returns_generic_500():
    app.state.storage = ExplodingStorage()
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/api/projects")
    assert response.status_code == 500
    assert response.json() == {"message": "Erro interno do servidor"}


def _slow_app(timeout: float, delay: float, events: list) -> FastAPI:
    slow = FastAPI()
    slow.add_middleware(RequestTimeoutMiddleware, timeout=timeout)

    @slow.get("/slow")
    async def slow_route():
        await asyncio.sleep(delay)
        events.append("handler finished")
        return {"ok": True}

    return slow


@pytest.mark.asyncio
async def test_request_timeout_cancels_handler():
    events = []
    slow = _slow_app(timeout=0.05, delay=0.5, events=events)

    async with AsyncClient(transport=ASGITransport(app=slow), base_url="http://test") as ac:
        response = await ac.get("/slow")
    assert response.status_code == 504
    assert response.json() == {"message": "Tempo limite da requisição excedido"}

    # The handler was cancelled, not left running in the background
    await asyncio.sleep(0.6)
    assert events == []


@pytest.mark.asyncio
async def test_request_within_timeout_passes_through():
    events = []
    slow = _slow_app(timeout=1.0, delay=0.01, events=events)

    async with AsyncClient(transport=ASGITransport(app=slow), base_url="http://test") as ac:
        response = await ac.get("/slow")
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert events == ["handler finished"]


@pytest.mark.asyncio
async def test_startup_warns_without_admin_email(monkeypatch, caplog):
    monkeypatch.setattr(get_settings(), "admin_email", "")
    with caplog.at_level(logging.WARNING, logger="portfolio.main"):
        async with lifespan(app):
            assert isinstance(app.state.storage, InMemoryStorage)
    assert "ADMIN_EMAIL is not set" in caplog.text
