"""Registration, login and session endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Header, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.api.dependencies.session import read_session_token, require_principal
from arcade_api.api.errors import to_http_exception
from arcade_api.core.settings import settings
from arcade_api.db.session import get_session
from arcade_api.schemas.user import LoginRequest, RegisterRequest, UserResponse
from arcade_api.services.auth.sessions import AuthService, IssuedSession, Principal
from arcade_api.services.errors import LedgerError
from arcade_api.services.users import UserService

router = APIRouter(prefix="/auth", tags=["Auth"])


class AuthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: UserResponse
    session_token: str = Field(..., alias="sessionToken")
    expires_at: datetime = Field(..., alias="expiresAt")


def _client_context(request: Request) -> dict[str, str | None]:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def _set_session_cookie(response: Response, issued: IssuedSession) -> AuthResponse:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=issued.signed_token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return AuthResponse(
        user=UserResponse.model_validate(issued.user),
        session_token=issued.signed_token,
        expires_at=issued.expires,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    try:
        issued = await AuthService(db).register(
            email=payload.email,
            username=payload.username,
            password=payload.password,
            **_client_context(request),
        )
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return _set_session_cookie(response, issued)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    try:
        issued = await AuthService(db).login(
            email=payload.email,
            password=payload.password,
            **_client_context(request),
        )
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return _set_session_cookie(response, issued)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await AuthService(db).logout(read_session_token(request, authorization))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/me", response_model=UserResponse)
async def current_user(
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    try:
        user = await UserService(db).get_user(principal.user_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return UserResponse.model_validate(user)
