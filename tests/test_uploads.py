"""Tests for the project media upload endpoint."""
import os

import pytest
from httpx import AsyncClient

from portfolio.config import settings
from tests.conftest import ADMIN_HEADERS

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _files(*names: str):
    return [("files", (name, PNG_BYTES, "image/png")) for name in names]


def _projects_dir_listing() -> set:
    path = os.path.join(settings.UPLOAD_DIR, "projects")
    return set(os.listdir(path)) if os.path.isdir(path) else set()


@pytest.mark.asyncio
async def test_upload_returns_public_urls(client: AsyncClient):
    resp = await client.post(
        "/api/admin/upload", files=_files("shot.png", "demo.PNG"), headers=ADMIN_HEADERS
    )
    assert resp.status_code == 201
    data = resp.json()
    assert len(data["files"]) == 2
    assert data["urls"] == [f["url"] for f in data["files"]]
    for entry in data["files"]:
        assert entry["url"].startswith("/uploads/projects/")
        assert entry["size"] == len(PNG_BYTES)
        assert os.path.exists(os.path.join(settings.UPLOAD_DIR, "projects", entry["filename"]))
    assert data["files"][1]["filename"].endswith(".png")


@pytest.mark.asyncio
async def test_too_many_files_rejected(client: AsyncClient):
    names = [f"img{i}.png" for i in range(settings.MAX_FILES_PER_UPLOAD + 1)]
    resp = await client.post("/api/admin/upload", files=_files(*names), headers=ADMIN_HEADERS)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_bad_extension_rolls_back_whole_request(client: AsyncClient):
    before = _projects_dir_listing()
    resp = await client.post(
        "/api/admin/upload",
        files=_files("ok.png") + [("files", ("script.exe", b"MZ", "application/octet-stream"))],
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 400
    assert _projects_dir_listing() == before


@pytest.mark.asyncio
async def test_upload_requires_admin(client: AsyncClient):
    resp = await client.post("/api/admin/upload", files=_files("shot.png"))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_uploaded_media_is_served(client: AsyncClient):
    resp = await client.post("/api/admin/upload", files=_files("shot.png"), headers=ADMIN_HEADERS)
    url = resp.json()["files"][0]["url"]

    served = await client.get(url)
    assert served.status_code == 200
    assert served.content == PNG_BYTES
