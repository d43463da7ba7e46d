import asyncio
import threading

import pytest
from httpx import ASGITransport, AsyncClient

from arcade_api.services.auth import passwords
from arcade_api.services.auth.passwords import hash_password_in_thread, verify_password_in_thread


async def _ticks_while(awaitable):
    ticks = 0
    done = asyncio.Event()

    async def ticker() -> None:
        nonlocal ticks
        while not done.is_set():
            await asyncio.sleep(0.001)
            ticks += 1

    task = asyncio.create_task(ticker())
    try:
        result = await awaitable
    finally:
        done.set()
        await task
    return result, ticks


@pytest.mark.asyncio
async def test_hashing_leaves_event_loop_responsive() -> None:
    hashes, ticks = await _ticks_while(
        asyncio.gather(*(hash_password_in_thread(f"token-{index}-pass") for index in range(5)))
    )

    assert ticks > 0
    assert len(set(hashes)) == 5
    assert await verify_password_in_thread("token-3-pass", hashes[3])
    assert not await verify_password_in_thread("token-3-pass", hashes[2])


def _record_threads(monkeypatch, name: str) -> list[int]:
    seen: list[int] = []
    original = getattr(passwords, name)

    def wrapper(*args):
        seen.append(threading.get_ident())
        return original(*args)

    monkeypatch.setattr(passwords, name, wrapper)
    return seen


@pytest.mark.asyncio
async def test_login_verifies_password_off_the_event_loop(app_with_db, make_user, monkeypatch) -> None:
    app, session_factory = app_with_db
    async with session_factory() as session:
        await make_user(session, email="ticker@arcade.test")
        await session.commit()
    seen = _record_threads(monkeypatch, "verify_password")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response, ticks = await _ticks_while(
            client.post("/api/v1/auth/login", json={"email": "ticker@arcade.test", "password": "insert-coin-42"})
        )

    assert response.status_code == 200
    assert ticks > 0
    assert seen and threading.get_ident() not in seen


@pytest.mark.asyncio
async def test_register_hashes_password_off_the_event_loop(app_with_db, monkeypatch) -> None:
    app, _ = app_with_db
    seen = _record_threads(monkeypatch, "hash_password")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "spinner@arcade.test", "username": "spinner", "password": "long-enough-pw"},
        )

    assert response.status_code == 201
    assert seen and threading.get_ident() not in seen
