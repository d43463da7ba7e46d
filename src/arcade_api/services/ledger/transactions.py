"""Append-only transaction ledger writes and filtered reads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.models.ledger import Transaction, TransactionStatusEnum, TransactionTypeEnum


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(slots=True)
class TransactionFilters:
    """Optional criteria for ledger listings. Dates bound ``created_at`` inclusively."""

    user_id: UUID | None = None
    type: TransactionTypeEnum | None = None
    status: TransactionStatusEnum | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = 100
    offset: int = 0


class TransactionLedger:
    """Record and query ``Transaction`` rows."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def record(
        self,
        *,
        user_id: UUID,
        type: TransactionTypeEnum,
        description: str,
        coins_added: int = 0,
        points_earned: int = 0,
        amount: Decimal | None = None,
        status: TransactionStatusEnum = TransactionStatusEnum.COMPLETED,
        metadata: dict[str, Any] | None = None,
    ) -> Transaction:
        """Stage a ledger row in the current unit. The caller commits."""

        entry = Transaction(
            user_id=user_id,
            type=type,
            amount=amount,
            coins_added=coins_added,
            points_earned=points_earned,
            description=description,
            status=status,
            metadata_json=metadata,
        )
        self._db.add(entry)
        await self._db.flush()
        await self._db.refresh(entry)
        logger.info(
            "Recorded ledger transaction",
            transaction_id=str(entry.id),
            user_id=str(user_id),
            type=type.value,
            coins_added=coins_added,
            points_earned=points_earned,
        )
        return entry

    async def list_transactions(self, filters: TransactionFilters | None = None) -> list[Transaction]:
        filters = filters or TransactionFilters()
        stmt = select(Transaction)
        if filters.user_id is not None:
            stmt = stmt.where(Transaction.user_id == filters.user_id)
        if filters.type is not None:
            stmt = stmt.where(Transaction.type == filters.type)
        if filters.status is not None:
            stmt = stmt.where(Transaction.status == filters.status)
        if filters.start_date is not None:
            stmt = stmt.where(Transaction.created_at >= _as_utc(filters.start_date))
        if filters.end_date is not None:
            stmt = stmt.where(Transaction.created_at <= _as_utc(filters.end_date))

        stmt = (
            stmt.order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        result = await self._db.execute(stmt)
        return list(result.scalars().all())
