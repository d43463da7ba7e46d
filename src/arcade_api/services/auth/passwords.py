"""Salted scrypt password hashing."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import secrets

_SCHEME = "scrypt"
_N = 2**14
_R = 8
_P = 1
_DKLEN = 64


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _unb64(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def hash_password(password: str) -> str:
    """Return ``scrypt$n$r$p$salt$digest`` for storage."""

    salt = secrets.token_bytes(16)
    digest = hashlib.scrypt(password.encode("utf-8"), salt=salt, n=_N, r=_R, p=_P, dklen=_DKLEN)
    return f"{_SCHEME}${_N}${_R}${_P}${_b64(salt)}${_b64(digest)}"


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, n, r, p, salt, digest = stored.split("$")
    except ValueError:
        return False
    if scheme != _SCHEME:
        return False

    expected = _unb64(digest)
    candidate = hashlib.scrypt(
        password.encode("utf-8"),
        salt=_unb64(salt),
        n=int(n),
        r=int(r),
        p=int(p),
        dklen=len(expected),
    )
    return hmac.compare_digest(candidate, expected)


async def hash_password_in_thread(password: str) -> str:
    """Hash on a worker thread. Coroutines never call ``hash_password`` directly."""

    return await asyncio.to_thread(hash_password, password)


async def verify_password_in_thread(password: str, stored: str) -> bool:
    return await asyncio.to_thread(verify_password, password, stored)
