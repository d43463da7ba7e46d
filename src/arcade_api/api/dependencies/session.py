"""Resolve the calling principal from the session cookie or bearer header."""

from __future__ import annotations

from fastapi import Depends, Header, Request

from arcade_api.api.errors import to_http_exception
from arcade_api.core.settings import settings
from arcade_api.db.session import get_session
from arcade_api.services.auth.sessions import AuthService, Principal
from arcade_api.services.errors import AuthenticationError, PermissionDeniedError
from sqlalchemy.ext.asyncio import AsyncSession


def read_session_token(request: Request, authorization: str | None) -> str | None:
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    return request.cookies.get(settings.session_cookie_name)


async def require_principal(
    request: Request,
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
) -> Principal:
    """Resolve the authenticated principal or answer 401."""

    token = read_session_token(request, authorization)
    try:
        principal, _ = await AuthService(db).resolve(token)
    except AuthenticationError as exc:
        raise to_http_exception(exc) from exc
    return principal


async def require_admin(principal: Principal = Depends(require_principal)) -> Principal:
    try:
        principal.require_admin()
    except PermissionDeniedError as exc:
        raise to_http_exception(exc) from exc
    return principal
