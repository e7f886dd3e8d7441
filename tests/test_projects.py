"""Tests for portfolio project CRUD and public lookup."""
import pytest
from httpx import AsyncClient

from tests.conftest import ADMIN_HEADERS


async def _create_project(client: AsyncClient, **overrides) -> dict:
    body = {"title": "Weather Dashboard", "short_description": "Forecasts", "technologies": ["React"]}
    body.update(overrides)
    resp = await client.post("/api/admin/projects", json=body, headers=ADMIN_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_create_project_derives_slug(client: AsyncClient):
    data = await _create_project(client, title="My Cool Project!")
    assert data["slug"] == "my-cool-project"
    assert data["technologies"] == ["React"]
    assert data["published"] is True
    assert isinstance(data["id"], int)


@pytest.mark.asyncio
async def test_duplicate_slug_returns_409(client: AsyncClient):
    await _create_project(client, title="Same Title")
    resp = await client.post("/api/admin/projects", json={"title": "Same Title"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_get_project_by_id_and_slug(client: AsyncClient):
    project = await _create_project(client, slug="weather")

    by_id = await client.get(f"/api/portfolio/{project['id']}")
    assert by_id.status_code == 200
    assert by_id.json()["slug"] == "weather"

    by_slug = await client.get("/api/portfolio/weather")
    assert by_slug.status_code == 200
    assert by_slug.json()["id"] == project["id"]


@pytest.mark.asyncio
async def test_unknown_project_returns_404(client: AsyncClient):
    resp = await client.get("/api/portfolio/does-not-exist")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_drafts_hidden_from_public_list(client: AsyncClient):
    await _create_project(client, title="Live")
    draft = await _create_project(client, title="Draft", published=False)

    public = await client.get("/api/portfolio")
    assert [p["title"] for p in public.json()] == ["Live"]

    resp = await client.get(f"/api/portfolio/{draft['id']}")
    assert resp.status_code == 404

    admin = await client.get("/api/admin/projects", headers=ADMIN_HEADERS)
    assert {p["title"] for p in admin.json()} == {"Live", "Draft"}


@pytest.mark.asyncio
async def test_featured_projects_listed_first(client: AsyncClient):
    await _create_project(client, title="Newer", date="2024-06-01T00:00:00Z")
    await _create_project(client, title="Featured", featured=True, date="2020-01-01T00:00:00Z")

    resp = await client.get("/api/portfolio")
    assert [p["title"] for p in resp.json()] == ["Featured", "Newer"]


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields(client: AsyncClient):
    project = await _create_project(client, demo_url="https://demo.example.com")
    resp = await client.patch(
        f"/api/admin/projects/{project['id']}",
        json={"featured": True},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["featured"] is True
    assert data["demo_url"] == "https://demo.example.com"
    assert data["title"] == "Weather Dashboard"


@pytest.mark.asyncio
async def test_update_slug_conflict(client: AsyncClient):
    await _create_project(client, title="First")
    second = await _create_project(client, title="Second")
    resp = await client.put(
        f"/api/admin/projects/{second['id']}",
        json={"slug": "first"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_delete_project(client: AsyncClient):
    project = await _create_project(client)
    resp = await client.delete(f"/api/admin/projects/{project['id']}", headers=ADMIN_HEADERS)
    assert resp.status_code == 204

    resp = await client.get(f"/api/admin/projects/{project['id']}", headers=ADMIN_HEADERS)
    assert resp.status_code == 404
