"""User accounts: registration, lookup and admin listing."""

from __future__ import annotations

from uuid import UUID

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.models.user import User, UserRoleEnum
from arcade_api.services.auth.passwords import hash_password_in_thread
from arcade_api.services.errors import DuplicateUserError, LedgerValidationError, NotFoundError


def normalize_email(value: str) -> str:
    email = value.strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise LedgerValidationError("Invalid email address")
    return email


class UserService:
    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get_user(self, user_id: UUID) -> User:
        user = await self._db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self._db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def create_user(
        self,
        *,
        email: str,
        username: str,
        password: str,
        role: UserRoleEnum = UserRoleEnum.PLAYER,
    ) -> User:
        """Create an account with zero balances. Flushes; the caller commits."""

        normalized_email = normalize_email(email)
        normalized_username = username.strip().lower()
        if not normalized_username:
            raise LedgerValidationError("Username is required")
        if len(password) < 8:
            raise LedgerValidationError("Password must be at least 8 characters")

        stmt = select(User.id).where(
            or_(User.email == normalized_email, User.username == normalized_username)
        )
        if (await self._db.execute(stmt)).first() is not None:
            raise DuplicateUserError()

        user = User(
            email=normalized_email,
            username=normalized_username,
            password_hash=await hash_password_in_thread(password),
            role=role.value,
            coin_balance=0,
            point_balance=0,
            level=1,
        )
        self._db.add(user)
        try:
            await self._db.flush()
        except IntegrityError as exc:
            await self._db.rollback()
            logger.warning("Detected race when registering user", email=normalized_email)
            raise DuplicateUserError() from exc
        await self._db.refresh(user)

        logger.info("Created user", user_id=str(user.id), role=role.value)
        return user

    async def list_users(self, *, search: str | None = None, limit: int = 200) -> list[User]:
        stmt = select(User)
        if search:
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(func.lower(User.email).like(pattern), func.lower(User.username).like(pattern))
            )
        stmt = stmt.order_by(User.created_at.desc(), User.id).limit(limit)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())
