"""Registration, login and account deletion through the real auth stack."""

from __future__ import annotations

from typing import AsyncIterator

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.apis.documents.main import get_ingestor
from app.core.config import settings
from app.core.db.base import get_session
from app.core.db.schemas import Document, FlashCard
from main import create_app

V = f"/{settings.app.version}"
EMAIL = "lin@example.com"
PASSWORD = "correct-horse-battery"


@pytest.fixture
async def client(session_maker, make_ingestor, valid_deck) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app()

    async def _session() -> AsyncIterator[AsyncSession]:
        async with session_maker() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_ingestor] = lambda: make_ingestor(valid_deck)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _register_and_login(client: httpx.AsyncClient) -> dict[str, str]:
    resp = await client.post(
        f"{V}/auth/register",
        json={"email": EMAIL, "password": PASSWORD, "username": "lin"},
    )
    assert resp.status_code == 201, resp.text
    resp = await client.post(
        f"{V}/auth/login", data={"username": EMAIL, "password": PASSWORD}
    )
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


async def test_register_login_and_me(client):
    headers = await _register_and_login(client)
    me = await client.get(f"{V}/users/me", headers=headers)
    assert me.status_code == 200
    body = me.json()
    assert body["email"] == EMAIL
    assert body["username"] == "lin"
    assert body["dark_mode"] is False
    assert body["document_ids"] == []


async def test_update_preferences(client):
    headers = await _register_and_login(client)
    resp = await client.patch(f"{V}/users/me", json={"dark_mode": True}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["dark_mode"] is True


@pytest.mark.parametrize("password", ["short", "xx-lin@example.com-xx"])
async def test_weak_password_is_rejected(client, password):
    resp = await client.post(f"{V}/auth/register", json={"email": EMAIL, "password": password})
    assert resp.status_code == 400


async def test_protected_routes_require_token(client):
    assert (await client.get(f"{V}/docs")).status_code == 401


async def test_upload_then_delete_account(client, session_maker):
    headers = await _register_and_login(client)
    resp = await client.post(
        f"{V}/upload",
        files={"file": ("notes.txt", b"Osmosis moves water across membranes.", "text/plain")},
        headers=headers,
    )
    assert resp.status_code == 201
    me = (await client.get(f"{V}/users/me", headers=headers)).json()
    assert me["document_ids"] == [resp.json()["doc"]["id"]]

    resp = await client.delete(f"{V}/users/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    async with session_maker() as s:
        docs = (await s.execute(select(func.count()).select_from(Document))).scalar_one()
        cards = (await s.execute(select(func.count()).select_from(FlashCard))).scalar_one()
    assert (docs, cards) == (0, 0)
    assert (await client.get(f"{V}/users/me", headers=headers)).status_code == 401
