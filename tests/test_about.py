"""Tests for the editable About page."""
import os

import pytest
from httpx import AsyncClient

from portfolio.config import settings
from tests.conftest import ADMIN_HEADERS

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.mark.asyncio
async def test_defaults_before_first_save(client: AsyncClient):
    resp = await client.get("/api/about-me")
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] is None
    assert data["life_pictures_title"] == "Life in Pictures"
    assert data["hero_image"] is None


@pytest.mark.asyncio
async def test_save_replaces_content(client: AsyncClient):
    first = await client.post(
        "/api/admin/about-me",
        json={"hero_image": "/uploads/about/a.png", "life_pictures_caption": "Hiking"},
        headers=ADMIN_HEADERS,
    )
    assert first.status_code == 200

    second = await client.post(
        "/api/admin/about-me",
        json={"life_pictures_title": "Weekends"},
        headers=ADMIN_HEADERS,
    )
    data = second.json()
    assert data["id"] == first.json()["id"]
    assert data["life_pictures_title"] == "Weekends"
    assert data["hero_image"] is None
    assert data["life_pictures_caption"] == ""

    public = (await client.get("/api/about-me")).json()
    assert public["life_pictures_title"] == "Weekends"


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields(client: AsyncClient):
    await client.post(
        "/api/admin/about-me",
        json={"hero_image": "/uploads/about/a.png", "life_pictures_caption": "Hiking"},
        headers=ADMIN_HEADERS,
    )

    resp = await client.put(
        "/api/admin/about-me",
        json={"life_pictures_caption": "Climbing", "life_pictures_title": None},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["life_pictures_caption"] == "Climbing"
    assert data["life_pictures_title"] == "Life in Pictures"
    assert data["hero_image"] == "/uploads/about/a.png"

    cleared = await client.patch("/api/admin/about-me", json={"hero_image": None}, headers=ADMIN_HEADERS)
    assert cleared.json()["hero_image"] is None


@pytest.mark.asyncio
async def test_upload_image_assigns_field_and_is_served(client: AsyncClient):
    resp = await client.post(
        "/api/admin/about-me/upload-image?field=hero_image",
        files={"image": ("me.png", PNG_BYTES, "image/png")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["url"].startswith("/uploads/about/")
    assert data["field"] == "hero_image"
    assert os.path.exists(os.path.join(settings.UPLOAD_DIR, "about", data["filename"]))

    about = (await client.get("/api/about-me")).json()
    assert about["hero_image"] == data["url"]

    served = await client.get(data["url"])
    assert served.status_code == 200
    assert served.content == PNG_BYTES


@pytest.mark.asyncio
async def test_upload_image_without_field_leaves_content(client: AsyncClient):
    resp = await client.post(
        "/api/admin/about-me/upload-image",
        files={"image": ("me.png", PNG_BYTES, "image/png")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["field"] is None
    assert (await client.get("/api/about-me")).json()["id"] is None


@pytest.mark.asyncio
async def test_upload_image_rejects_non_image(client: AsyncClient):
    resp = await client.post(
        "/api/admin/about-me/upload-image",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_admin_routes_require_key(client: AsyncClient):
    assert (await client.get("/api/admin/about-me")).status_code == 401
    assert (await client.post("/api/admin/about-me", json={})).status_code == 401
