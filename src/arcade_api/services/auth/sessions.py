"""Session issuance and the authenticated-principal capability."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.core.settings import settings
from arcade_api.models.auth_identity import AuthSession
from arcade_api.models.user import User, UserRoleEnum
from arcade_api.services.auth.passwords import verify_password_in_thread
from arcade_api.services.errors import AuthenticationError, PermissionDeniedError
from arcade_api.services.ledger.unit import atomic
from arcade_api.services.users import UserService, normalize_email


@dataclass(frozen=True, slots=True)
class Principal:
    """Who is calling. Passed explicitly into every engine operation."""

    user_id: UUID
    role: UserRoleEnum

    @property
    def is_admin(self) -> bool:
        return self.role == UserRoleEnum.ADMIN

    def require_admin(self) -> None:
        if not self.is_admin:
            raise PermissionDeniedError("Admin access required")


class SessionSigner:
    """HMAC-SHA256 signing of opaque session tokens (``<token>.<signature>``)."""

    def __init__(self, secret_key: str) -> None:
        self._key = secret_key.encode("utf-8")

    def _signature(self, token: str) -> str:
        return hmac.new(self._key, token.encode("utf-8"), hashlib.sha256).hexdigest()

    def sign(self, token: str) -> str:
        return f"{token}.{self._signature(token)}"

    def unsign(self, value: str) -> str | None:
        token, sep, signature = value.rpartition(".")
        if not sep or not token:
            return None
        if not hmac.compare_digest(signature, self._signature(token)):
            return None
        return token


@dataclass(slots=True)
class IssuedSession:
    user: User
    signed_token: str
    expires: datetime


class AuthService:
    """Register, log in, resolve and revoke sessions."""

    def __init__(
        self,
        db_session: AsyncSession,
        *,
        secret_key: str | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        self._db = db_session
        self._signer = SessionSigner(secret_key or settings.secret_key)
        self._ttl = timedelta(seconds=ttl_seconds or settings.session_ttl_seconds)
        self._users = UserService(db_session)

    async def register(
        self,
        *,
        email: str,
        username: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> IssuedSession:
        """Create a player account and log it in."""

        async with atomic(self._db, operation="register"):
            user = await self._users.create_user(email=email, username=username, password=password)
            issued = await self._issue(user, ip_address=ip_address, user_agent=user_agent)
        return issued

    async def login(
        self,
        *,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> IssuedSession:
        result = await self._db.execute(select(User).where(User.email == normalize_email(email)))
        user = result.scalar_one_or_none()
        if user is None or not await verify_password_in_thread(password, user.password_hash):
            logger.warning("Rejected login attempt")
            raise AuthenticationError("Invalid email or password")

        async with atomic(self._db, operation="login"):
            issued = await self._issue(user, ip_address=ip_address, user_agent=user_agent)
        logger.info("User logged in", user_id=str(user.id))
        return issued

    async def resolve(self, signed_token: str | None) -> tuple[Principal, User]:
        """Map a signed session value to a live principal."""

        if not signed_token:
            raise AuthenticationError("Authentication required")
        token = self._signer.unsign(signed_token)
        if token is None:
            raise AuthenticationError("Authentication required")

        now = datetime.now(timezone.utc)
        stmt = select(AuthSession).where(AuthSession.session_token == token)
        auth_session = (await self._db.execute(stmt)).scalar_one_or_none()
        if auth_session is None or auth_session.is_expired(now) or auth_session.user is None:
            raise AuthenticationError("Authentication required")

        user = auth_session.user
        return Principal(user_id=user.id, role=UserRoleEnum(user.role)), user

    async def logout(self, signed_token: str | None) -> None:
        token = self._signer.unsign(signed_token) if signed_token else None
        if token is None:
            return
        async with atomic(self._db, operation="logout"):
            await self._db.execute(delete(AuthSession).where(AuthSession.session_token == token))

    async def _issue(self, user: User, *, ip_address: str | None, user_agent: str | None) -> IssuedSession:
        token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + self._ttl
        self._db.add(
            AuthSession(
                session_token=token,
                user_id=user.id,
                expires_at=expires_at,
                role_at_issue=UserRoleEnum(user.role).value,
                client_ip=ip_address,
                user_agent=user_agent[:255] if user_agent else None,
            )
        )
        await self._db.flush()
        return IssuedSession(user=user, signed_token=self._signer.sign(token), expires=expires_at)
