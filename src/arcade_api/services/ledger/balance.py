"""The single write path for user coin and point balances."""

from __future__ import annotations

from uuid import UUID

from loguru import logger
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.models.user import User
from arcade_api.services.errors import (
    InsufficientCoinsError,
    InsufficientPointsError,
    NotFoundError,
)


class BalanceMutator:
    """Apply signed coin/point deltas to a user.

    The arithmetic happens inside one conditional UPDATE, so concurrent callers
    never overwrite each other's deltas and a debit can never take either
    balance below zero. The mutator does not commit; callers run it inside
    their atomic unit next to the matching ledger row.
    """

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def adjust_balance(self, user_id: UUID, coin_delta: int, point_delta: int) -> User:
        """Return the post-mutation user after applying both deltas."""

        stmt = update(User).where(User.id == user_id)
        if coin_delta < 0:
            stmt = stmt.where(User.coin_balance + coin_delta >= 0)
        if point_delta < 0:
            stmt = stmt.where(User.point_balance + point_delta >= 0)
        stmt = stmt.values(
            coin_balance=User.coin_balance + coin_delta,
            point_balance=User.point_balance + point_delta,
        ).execution_options(synchronize_session=False)

        result = await self._db.execute(stmt)
        if result.rowcount == 0:
            await self._raise_for_rejected(user_id, coin_delta, point_delta)

        user = await self._db.get(User, user_id, populate_existing=True)
        logger.debug(
            "Adjusted user balance",
            user_id=str(user_id),
            coin_delta=coin_delta,
            point_delta=point_delta,
            coin_balance=user.coin_balance,
            point_balance=user.point_balance,
        )
        return user

    async def _raise_for_rejected(self, user_id: UUID, coin_delta: int, point_delta: int) -> None:
        user = await self._db.get(User, user_id, populate_existing=True)
        if user is None:
            raise NotFoundError("User", user_id)
        if point_delta < 0 and user.point_balance + point_delta < 0:
            raise InsufficientPointsError(required=-point_delta, available=user.point_balance)
        raise InsufficientCoinsError()
