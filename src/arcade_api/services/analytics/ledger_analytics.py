"""Read-only aggregates over the transaction ledger and the user table."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.models.ledger import Transaction, TransactionTypeEnum
from arcade_api.models.user import User


_CENTS = Decimal("0.01")


@dataclass(slots=True)
class SalesAnalytics:
    """Cash taken at the counter, from ``purchase`` ledger rows."""

    total_revenue: Decimal
    total_transactions: int
    average_transaction: Decimal


@dataclass(slots=True)
class UserAnalytics:
    total_users: int
    active_users: int


class LedgerAnalyticsService:
    """Recomputed on every call; results are a pure function of stored rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def sales(self) -> SalesAnalytics:
        stmt = select(
            func.coalesce(func.sum(Transaction.amount), 0),
            func.count(Transaction.id),
        ).where(Transaction.type == TransactionTypeEnum.PURCHASE)
        revenue, count = (await self._session.execute(stmt)).one()

        total = Decimal(str(revenue or 0)).quantize(_CENTS)
        count = int(count or 0)
        average = (total / count).quantize(_CENTS) if count else Decimal("0.00")
        return SalesAnalytics(total_revenue=total, total_transactions=count, average_transaction=average)

    async def users(self) -> UserAnalytics:
        # "active" means the player still has at least one coin to spend
        stmt = select(
            func.count(User.id),
            func.coalesce(func.sum(case((User.coin_balance >= 1, 1), else_=0)), 0),
        )
        total, active = (await self._session.execute(stmt)).one()
        return UserAnalytics(total_users=int(total or 0), active_users=int(active or 0))
