from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select, update

from arcade_api.core.settings import settings
from arcade_api.models.auth_identity import AuthSession
from arcade_api.models.user import User


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_register_issues_session_cookie(app_with_db) -> None:
    app, session_factory = app_with_db

    async with _client(app) as client:
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "Pixel@Arcade.test", "username": "Pixel", "password": "hunter2-hunter2"},
        )
        assert response.status_code == 201
        payload = response.json()
        assert payload["user"]["email"] == "pixel@arcade.test"
        assert payload["user"]["role"] == "player"
        assert payload["user"]["coinBalance"] == 0
        assert payload["user"]["pointBalance"] == 0
        assert "passwordHash" not in payload["user"]
        assert response.cookies.get(settings.session_cookie_name) == payload["sessionToken"]

        me = await client.get(
            "/api/v1/auth/me",
            headers={"Cookie": f"{settings.session_cookie_name}={payload['sessionToken']}"},
        )
        assert me.status_code == 200
        assert me.json()["username"] == "pixel"

    async with session_factory() as session:
        stored = await session.get(User, UUID(payload["user"]["id"]))
        assert stored is not None
        assert stored.password_hash != "hunter2-hunter2"


@pytest.mark.asyncio
async def test_duplicate_registration_conflicts(app_with_db) -> None:
    app, _ = app_with_db
    body = {"email": "dup@arcade.test", "username": "dup", "password": "long-enough-pw"}

    async with _client(app) as client:
        first = await client.post("/api/v1/auth/register", json=body)
        second = await client.post("/api/v1/auth/register", json={**body, "username": "other"})

    assert first.status_code == 201
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_register_validates_payload(app_with_db) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        short = await client.post(
            "/api/v1/auth/register",
            json={"email": "a@arcade.test", "username": "ab", "password": "short"},
        )
        bad_email = await client.post(
            "/api/v1/auth/register",
            json={"email": "not-an-email", "username": "abc", "password": "long-enough-pw"},
        )

    assert short.status_code == 422
    assert bad_email.status_code == 400


@pytest.mark.asyncio
async def test_login_and_logout_with_bearer_token(app_with_db, make_user, login) -> None:
    app, session_factory = app_with_db
    async with session_factory() as session:
        await make_user(session, email="joystick@arcade.test")
        await session.commit()

    async with _client(app) as client:
        wrong = await client.post(
            "/api/v1/auth/login",
            json={"email": "joystick@arcade.test", "password": "definitely-wrong"},
        )
        assert wrong.status_code == 401
        assert wrong.headers["www-authenticate"] == "Bearer"

        headers = await login(client, "JOYSTICK@arcade.test")
        me = await client.get("/api/v1/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["email"] == "joystick@arcade.test"

        logout = await client.post("/api/v1/auth/logout", headers=headers)
        assert logout.status_code == 204

        client.cookies.clear()
        after = await client.get("/api/v1/auth/me", headers=headers)
        assert after.status_code == 401

    async with session_factory() as session:
        remaining = await session.scalar(select(func.count()).select_from(AuthSession))
        assert remaining == 0


@pytest.mark.asyncio
async def test_missing_or_tampered_tokens_are_rejected(app_with_db, make_user, login) -> None:
    app, session_factory = app_with_db
    async with session_factory() as session:
        await make_user(session, email="tamper@arcade.test")
        await session.commit()

    async with _client(app) as client:
        headers = await login(client, "tamper@arcade.test")
        client.cookies.clear()
        tampered = {"Authorization": headers["Authorization"][:-1] + "0"}
        if tampered == headers:
            tampered = {"Authorization": headers["Authorization"][:-1] + "1"}

        missing = await client.get("/api/v1/user/balance")
        forged = await client.get("/api/v1/user/balance", headers=tampered)
        unsigned = await client.get("/api/v1/user/balance", headers={"Authorization": "Bearer raw-token"})

    assert missing.status_code == 401
    assert forged.status_code == 401
    assert unsigned.status_code == 401


@pytest.mark.asyncio
async def test_players_are_forbidden_from_admin_routes(app_with_db, make_user, login) -> None:
    app, session_factory = app_with_db
    async with session_factory() as session:
        await make_user(session, email="player@arcade.test")
        await session.commit()

    async with _client(app) as client:
        headers = await login(client, "player@arcade.test")
        analytics = await client.get("/api/v1/admin/analytics", headers=headers)
        topup = await client.post(
            "/api/v1/admin/topup",
            headers=headers,
            json={"userId": "00000000-0000-0000-0000-000000000000", "coins": 5},
        )

    assert analytics.status_code == 403
    assert topup.status_code == 403


@pytest.mark.asyncio
async def test_expired_session_is_rejected(app_with_db, make_user, login) -> None:
    app, session_factory = app_with_db
    async with session_factory() as session:
        await make_user(session, email="stale@arcade.test")
        await session.commit()

    async with _client(app) as client:
        headers = await login(client, "stale@arcade.test")
        client.cookies.clear()

        async with session_factory() as session:
            await session.execute(
                update(AuthSession).values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
            )
            await session.commit()

        response = await client.get("/api/v1/auth/me", headers=headers)

    assert response.status_code == 401
