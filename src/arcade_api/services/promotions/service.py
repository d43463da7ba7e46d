"""Promotion administration and the promotion redemption engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import UUID

from loguru import logger
from sqlalchemy import exists, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from arcade_api.models.ledger import Transaction, TransactionTypeEnum
from arcade_api.models.promotion import Promotion, PromotionRedemption, PromotionTypeEnum
from arcade_api.models.user import User
from arcade_api.observability.ledger import LedgerObservabilityStore, get_ledger_store
from arcade_api.services.auth.sessions import Principal
from arcade_api.services.errors import (
    ConflictError,
    LedgerValidationError,
    NotFoundError,
    PromotionAlreadyRedeemedError,
    PromotionCapacityReachedError,
    PromotionNotRedeemableError,
    PromotionUnavailableError,
    ResourceInUseError,
)
from arcade_api.services.ledger import AdminAuditLog, BalanceMutator, TransactionLedger, atomic


_EDITABLE_FIELDS = {
    "title",
    "description",
    "type",
    "value",
    "is_active",
    "start_date",
    "end_date",
    "max_redemptions",
    "emoji",
}
_NULLABLE_FIELDS = {"max_redemptions", "emoji"}


@dataclass(frozen=True, slots=True)
class PromotionGrant:
    points: int
    coins: int


@dataclass(slots=True)
class PromotionRedemptionResult:
    promotion: Promotion
    redemption: PromotionRedemption
    transaction: Transaction
    user: User

    @property
    def points_earned(self) -> int:
        return self.redemption.points_earned

    @property
    def coins_earned(self) -> int:
        return self.redemption.coins_earned


def compute_grant(promotion_type: str, value: int) -> PromotionGrant:
    """Translate a promotion into the balance it grants."""

    try:
        kind = PromotionTypeEnum(promotion_type)
    except ValueError as exc:
        raise LedgerValidationError(f"Unsupported promotion type: {promotion_type}") from exc

    if kind == PromotionTypeEnum.BONUS_POINTS:
        return PromotionGrant(points=value, coins=0)
    if kind in (PromotionTypeEnum.EXTRA_COINS, PromotionTypeEnum.FREE_CREDITS):
        return PromotionGrant(points=0, coins=value)
    raise PromotionNotRedeemableError(kind.value)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PromotionService:
    """Coordinates promotion CRUD and per-user redemption."""

    def __init__(self, db_session: AsyncSession, *, store: LedgerObservabilityStore | None = None) -> None:
        self._db = db_session
        self._store = store or get_ledger_store()
        self._balances = BalanceMutator(db_session)
        self._ledger = TransactionLedger(db_session)
        self._audit = AdminAuditLog(db_session, store=self._store)

    @staticmethod
    def _active_clause(now: datetime):
        return (
            Promotion.is_active.is_(True),
            Promotion.start_date <= now,
            Promotion.end_date >= now,
        )

    async def list_active_promotions(self) -> list[Promotion]:
        """Return promotions that are enabled and inside their window, newest first."""

        now = datetime.now(timezone.utc)
        stmt = (
            select(Promotion)
            .where(*self._active_clause(now))
            .order_by(Promotion.created_at.desc(), Promotion.id)
        )
        result = await self._db.execute(stmt)
        promotions = list(result.scalars().all())
        logger.debug("Fetched active promotions", count=len(promotions))
        return promotions

    async def list_all_promotions(self) -> list[Promotion]:
        stmt = select(Promotion).order_by(Promotion.created_at.desc(), Promotion.id)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def get_promotion(self, promotion_id: UUID) -> Promotion:
        promotion = await self._db.get(Promotion, promotion_id)
        if promotion is None:
            raise NotFoundError("Promotion", promotion_id)
        return promotion

    async def create_promotion(
        self,
        principal: Principal,
        *,
        title: str,
        description: str,
        type: str,
        value: int,
        start_date: datetime,
        end_date: datetime,
        is_active: bool = True,
        max_redemptions: int | None = None,
        emoji: str | None = None,
    ) -> Promotion:
        principal.require_admin()
        self._validate(
            type=type,
            value=value,
            start_date=start_date,
            end_date=end_date,
            max_redemptions=max_redemptions,
        )

        async with atomic(self._db, operation="create_promotion"):
            promotion = Promotion(
                title=title,
                description=description,
                type=PromotionTypeEnum(type).value,
                value=value,
                is_active=is_active,
                start_date=_as_utc(start_date),
                end_date=_as_utc(end_date),
                max_redemptions=max_redemptions,
                current_redemptions=0,
                emoji=emoji or "🎮",
            )
            self._db.add(promotion)
            await self._db.flush()
            await self._db.refresh(promotion)

        logger.info("Created promotion", promotion_id=str(promotion.id), type=promotion.type)
        await self._audit.log_action(
            admin_id=principal.user_id,
            action="create_promotion",
            description=f"Created promotion: {promotion.title}",
            metadata={"promotionId": str(promotion.id)},
        )
        return promotion

    async def update_promotion(
        self,
        principal: Principal,
        promotion_id: UUID,
        changes: Mapping[str, Any],
    ) -> Promotion:
        """Apply a partial update. ``current_redemptions`` is never writable."""

        principal.require_admin()
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise LedgerValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        cleared = sorted(field for field, value in changes.items() if value is None and field not in _NULLABLE_FIELDS)
        if cleared:
            raise LedgerValidationError(f"Fields cannot be cleared: {', '.join(cleared)}")

        async with atomic(self._db, operation="update_promotion"):
            promotion = await self.get_promotion(promotion_id)
            merged = {field: getattr(promotion, field) for field in _EDITABLE_FIELDS}
            merged.update(changes)
            self._validate(
                type=merged["type"],
                value=merged["value"],
                start_date=merged["start_date"],
                end_date=merged["end_date"],
                max_redemptions=merged["max_redemptions"],
            )
            for field, value in changes.items():
                if field in ("start_date", "end_date"):
                    value = _as_utc(value)
                elif field == "type":
                    value = PromotionTypeEnum(value).value
                setattr(promotion, field, value)
            await self._db.flush()

        logger.info("Updated promotion", promotion_id=str(promotion_id), fields=sorted(changes))
        await self._audit.log_action(
            admin_id=principal.user_id,
            action="update_promotion",
            description=f"Updated promotion: {promotion.title}",
            metadata={"promotionId": str(promotion_id), "fields": sorted(changes)},
        )
        return promotion

    async def delete_promotion(self, principal: Principal, promotion_id: UUID) -> None:
        principal.require_admin()
        async with atomic(self._db, operation="delete_promotion"):
            promotion = await self.get_promotion(promotion_id)
            in_use = await self._db.scalar(
                select(exists().where(PromotionRedemption.promotion_id == promotion_id))
            )
            if in_use:
                raise ResourceInUseError("Promotion has redemptions; deactivate it instead")
            title = promotion.title
            await self._db.delete(promotion)

        logger.info("Deleted promotion", promotion_id=str(promotion_id))
        await self._audit.log_action(
            admin_id=principal.user_id,
            action="delete_promotion",
            description=f"Deleted promotion: {title}",
            metadata={"promotionId": str(promotion_id)},
        )

    async def redeem_promotion(self, principal: Principal, promotion_id: UUID) -> PromotionRedemptionResult:
        """Grant a promotion to the caller at most once.

        The redemption row, the counter increment, the balance change and the
        ledger row commit together or not at all.
        """

        user_id = principal.user_id
        try:
            async with atomic(self._db, operation="redeem_promotion"):
                if await self._db.get(User, user_id) is None:
                    raise NotFoundError("User", user_id)

                now = datetime.now(timezone.utc)
                stmt = (
                    select(Promotion)
                    .where(Promotion.id == promotion_id, *self._active_clause(now))
                    .with_for_update()
                )
                promotion = (await self._db.execute(stmt)).scalar_one_or_none()
                if promotion is None:
                    raise PromotionUnavailableError()

                grant = compute_grant(promotion.type, promotion.value)

                if await self._has_redeemed(user_id, promotion_id):
                    raise PromotionAlreadyRedeemedError()

                redemption = PromotionRedemption(
                    user_id=user_id,
                    promotion_id=promotion_id,
                    points_earned=grant.points,
                    coins_earned=grant.coins,
                )
                self._db.add(redemption)
                try:
                    await self._db.flush()
                except IntegrityError as exc:
                    raise PromotionAlreadyRedeemedError() from exc

                counter = await self._db.execute(
                    update(Promotion)
                    .where(
                        Promotion.id == promotion_id,
                        or_(
                            Promotion.max_redemptions.is_(None),
                            Promotion.current_redemptions < Promotion.max_redemptions,
                        ),
                    )
                    .values(current_redemptions=Promotion.current_redemptions + 1)
                    .execution_options(synchronize_session=False)
                )
                if counter.rowcount == 0:
                    raise PromotionCapacityReachedError()

                user = await self._balances.adjust_balance(user_id, grant.coins, grant.points)
                transaction = await self._ledger.record(
                    user_id=user_id,
                    type=TransactionTypeEnum.PROMOTION,
                    coins_added=grant.coins,
                    points_earned=grant.points,
                    description=f"Redeemed promotion: {promotion.title}",
                    metadata={
                        "promotionId": str(promotion_id),
                        "redemptionId": str(redemption.id),
                    },
                )
                await self._db.refresh(promotion)
        except ConflictError as exc:
            self._store.record_rejected("redeem_promotion", type(exc).__name__)
            logger.warning(
                "Promotion redemption rejected",
                user_id=str(user_id),
                promotion_id=str(promotion_id),
                reason=str(exc),
            )
            raise

        self._store.record_committed("redeem_promotion")
        logger.info(
            "Redeemed promotion",
            user_id=str(user_id),
            promotion_id=str(promotion_id),
            points_earned=grant.points,
            coins_earned=grant.coins,
        )
        return PromotionRedemptionResult(
            promotion=promotion,
            redemption=redemption,
            transaction=transaction,
            user=user,
        )

    async def list_user_redemptions(self, user_id: UUID) -> list[PromotionRedemption]:
        stmt = (
            select(PromotionRedemption)
            .options(selectinload(PromotionRedemption.promotion))
            .where(PromotionRedemption.user_id == user_id)
            .order_by(PromotionRedemption.redeemed_at.desc(), PromotionRedemption.id)
        )
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def _has_redeemed(self, user_id: UUID, promotion_id: UUID) -> bool:
        stmt = select(
            exists().where(
                PromotionRedemption.user_id == user_id,
                PromotionRedemption.promotion_id == promotion_id,
            )
        )
        return bool(await self._db.scalar(stmt))

    @staticmethod
    def _validate(
        *,
        type: str,
        value: int,
        start_date: datetime,
        end_date: datetime,
        max_redemptions: int | None,
    ) -> None:
        try:
            PromotionTypeEnum(type)
        except ValueError as exc:
            raise LedgerValidationError(f"Unsupported promotion type: {type}") from exc
        if value is None or value < 0:
            raise LedgerValidationError("Promotion value must be zero or positive")
        if start_date is None or end_date is None:
            raise LedgerValidationError("Promotion window requires start and end dates")
        if _as_utc(end_date) <= _as_utc(start_date):
            raise LedgerValidationError("Promotion end date must be after its start date")
        if max_redemptions is not None and max_redemptions < 1:
            raise LedgerValidationError("maxRedemptions must be at least 1")
