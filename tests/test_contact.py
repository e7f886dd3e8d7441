"""Tests for the contact form."""
import pytest
from httpx import AsyncClient

from tests.conftest import ADMIN_HEADERS

VALID = {
    "name": "Ada",
    "email": "ada@example.com",
    "subject": "Hello",
    "message": "Loved the blog series.",
}


@pytest.mark.asyncio
async def test_submit_contact(client: AsyncClient):
    resp = await client.post("/api/contact", json=VALID)
    assert resp.status_code == 201
    data = resp.json()
    assert data["email"] == "ada@example.com"
    assert "id" in data


@pytest.mark.asyncio
async def test_invalid_email_rejected(client: AsyncClient):
    resp = await client.post("/api/contact", json={**VALID, "email": "not-an-email"})
    assert resp.status_code == 422

    listed = (await client.get("/api/admin/contacts", headers=ADMIN_HEADERS)).json()
    assert listed == []


@pytest.mark.asyncio
async def test_missing_message_rejected(client: AsyncClient):
    body = {k: v for k, v in VALID.items() if k != "message"}
    assert (await client.post("/api/contact", json=body)).status_code == 422


@pytest.mark.asyncio
async def test_admin_lists_and_deletes_contacts(client: AsyncClient):
    first = (await client.post("/api/contact", json=VALID)).json()
    await client.post("/api/contact", json={**VALID, "subject": "Second"})

    assert (await client.get("/api/admin/contacts")).status_code == 401

    listed = (await client.get("/api/admin/contacts", headers=ADMIN_HEADERS)).json()
    assert len(listed) == 2

    paged = (await client.get("/api/admin/contacts?limit=1", headers=ADMIN_HEADERS)).json()
    assert len(paged) == 1

    resp = await client.delete(f"/api/admin/contacts/{first['id']}", headers=ADMIN_HEADERS)
    assert resp.status_code == 204
    resp = await client.delete(f"/api/admin/contacts/{first['id']}", headers=ADMIN_HEADERS)
    assert resp.status_code == 404
