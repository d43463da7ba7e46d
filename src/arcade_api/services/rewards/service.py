"""Reward catalog administration and the reward redemption engine."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import UUID

from loguru import logger
from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from arcade_api.models.ledger import Transaction, TransactionTypeEnum
from arcade_api.models.reward import Reward, RewardRedemption, RewardRedemptionStatusEnum
from arcade_api.models.user import User
from arcade_api.observability.ledger import LedgerObservabilityStore, get_ledger_store
from arcade_api.services.auth.sessions import Principal
from arcade_api.services.errors import (
    ConflictError,
    InsufficientPointsError,
    InvalidRedemptionTransitionError,
    LedgerValidationError,
    NotFoundError,
    OutOfStockError,
    ResourceInUseError,
    RewardUnavailableError,
    StoreFailureError,
)
from arcade_api.services.ledger import AdminAuditLog, BalanceMutator, TransactionLedger, atomic


_EDITABLE_FIELDS = {
    "title",
    "description",
    "image_url",
    "points_required",
    "stock",
    "is_active",
    "category",
    "emoji",
}
_NULLABLE_FIELDS = {"image_url", "emoji"}


def generate_redemption_code(prefix: str) -> str:
    """Human-presentable claim ticket, e.g. ``RWD-1760745600000-9F2C41AB``."""

    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


@dataclass(slots=True)
class RewardRedemptionResult:
    reward: Reward
    redemption: RewardRedemption
    transaction: Transaction
    user: User


class RewardService:
    """Reward CRUD, point-priced redemption and fulfilment status tracking."""

    _ALLOWED_TRANSITIONS: dict[RewardRedemptionStatusEnum, set[RewardRedemptionStatusEnum]] = {
        RewardRedemptionStatusEnum.PENDING: {
            RewardRedemptionStatusEnum.COMPLETED,
            RewardRedemptionStatusEnum.CANCELLED,
        },
        RewardRedemptionStatusEnum.COMPLETED: set(),
        RewardRedemptionStatusEnum.CANCELLED: set(),
    }

    def __init__(
        self,
        db_session: AsyncSession,
        *,
        code_prefix: str = "RWD",
        admin_code_prefix: str = "ADM",
        store: LedgerObservabilityStore | None = None,
    ) -> None:
        self._db = db_session
        self._code_prefix = code_prefix
        self._admin_code_prefix = admin_code_prefix
        self._store = store or get_ledger_store()
        self._balances = BalanceMutator(db_session)
        self._ledger = TransactionLedger(db_session)
        self._audit = AdminAuditLog(db_session, store=self._store)

    async def list_rewards(self, *, include_inactive: bool = False) -> list[Reward]:
        """Catalog listing, cheapest first."""

        stmt = select(Reward)
        if not include_inactive:
            stmt = stmt.where(Reward.is_active.is_(True))
        stmt = stmt.order_by(Reward.points_required.asc(), Reward.title)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def get_reward(self, reward_id: UUID) -> Reward:
        reward = await self._db.get(Reward, reward_id)
        if reward is None:
            raise NotFoundError("Reward", reward_id)
        return reward

    async def create_reward(
        self,
        principal: Principal,
        *,
        title: str,
        description: str,
        points_required: int,
        stock: int = 0,
        is_active: bool = True,
        category: str = "general",
        emoji: str | None = None,
        image_url: str | None = None,
    ) -> Reward:
        principal.require_admin()
        self._validate(points_required=points_required, stock=stock)

        async with atomic(self._db, operation="create_reward"):
            reward = Reward(
                title=title,
                description=description,
                points_required=points_required,
                stock=stock,
                is_active=is_active,
                category=category or "general",
                emoji=emoji or "🎁",
                image_url=image_url,
            )
            self._db.add(reward)
            await self._db.flush()
            await self._db.refresh(reward)

        logger.info("Created reward", reward_id=str(reward.id), points_required=points_required, stock=stock)
        await self._audit.log_action(
            admin_id=principal.user_id,
            action="create_reward",
            description=f"Created reward: {reward.title}",
            metadata={"rewardId": str(reward.id)},
        )
        return reward

    async def update_reward(self, principal: Principal, reward_id: UUID, changes: Mapping[str, Any]) -> Reward:
        principal.require_admin()
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise LedgerValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        cleared = sorted(field for field, value in changes.items() if value is None and field not in _NULLABLE_FIELDS)
        if cleared:
            raise LedgerValidationError(f"Fields cannot be cleared: {', '.join(cleared)}")

        async with atomic(self._db, operation="update_reward"):
            reward = await self.get_reward(reward_id)
            self._validate(
                points_required=changes.get("points_required", reward.points_required),
                stock=changes.get("stock", reward.stock),
            )
            for field, value in changes.items():
                setattr(reward, field, value)
            reward.updated_at = datetime.now(timezone.utc)
            await self._db.flush()
            await self._db.refresh(reward)

        logger.info("Updated reward", reward_id=str(reward_id), fields=sorted(changes))
        await self._audit.log_action(
            admin_id=principal.user_id,
            action="update_reward",
            description=f"Updated reward: {reward.title}",
            metadata={"rewardId": str(reward_id), "fields": sorted(changes)},
        )
        return reward

    async def delete_reward(self, principal: Principal, reward_id: UUID) -> None:
        principal.require_admin()
        async with atomic(self._db, operation="delete_reward"):
            reward = await self.get_reward(reward_id)
            in_use = await self._db.scalar(select(exists().where(RewardRedemption.reward_id == reward_id)))
            if in_use:
                raise ResourceInUseError("Reward has redemptions; deactivate it instead")
            title = reward.title
            await self._db.delete(reward)

        logger.info("Deleted reward", reward_id=str(reward_id))
        await self._audit.log_action(
            admin_id=principal.user_id,
            action="delete_reward",
            description=f"Deleted reward: {title}",
            metadata={"rewardId": str(reward_id)},
        )

    async def redeem_reward(self, principal: Principal, reward_id: UUID) -> RewardRedemptionResult:
        """Self-service redemption; the ticket starts ``pending`` until fulfilled."""

        return await self._redeem(
            operation="redeem_reward",
            user_id=principal.user_id,
            reward_id=reward_id,
            status=RewardRedemptionStatusEnum.PENDING,
            code_prefix=self._code_prefix,
            require_active=True,
        )

    async def claim_reward_for_user(
        self,
        principal: Principal,
        user_id: UUID,
        reward_id: UUID,
    ) -> RewardRedemptionResult:
        """Redeem on a player's behalf at the counter; the ticket is already ``completed``."""

        principal.require_admin()
        result = await self._redeem(
            operation="claim_reward",
            user_id=user_id,
            reward_id=reward_id,
            status=RewardRedemptionStatusEnum.COMPLETED,
            code_prefix=self._admin_code_prefix,
            require_active=False,
        )
        await self._audit.log_action(
            admin_id=principal.user_id,
            target_user_id=user_id,
            action="reward_redemption",
            description=f"Claimed reward '{result.reward.title}' for {result.redemption.points_spent} points",
            metadata={
                "rewardId": str(reward_id),
                "redemptionId": str(result.redemption.id),
                "redemptionCode": result.redemption.redemption_code,
                "pointsSpent": result.redemption.points_spent,
            },
        )
        return result

    async def _redeem(
        self,
        *,
        operation: str,
        user_id: UUID,
        reward_id: UUID,
        status: RewardRedemptionStatusEnum,
        code_prefix: str,
        require_active: bool,
    ) -> RewardRedemptionResult:
        try:
            async with atomic(self._db, operation=operation):
                reward = await self._load_reward(reward_id)
                if reward is None:
                    raise NotFoundError("Reward", reward_id)
                if require_active and not reward.is_active:
                    raise RewardUnavailableError()
                if reward.stock <= 0:
                    raise OutOfStockError()

                user = await self._db.get(User, user_id)
                if user is None:
                    raise NotFoundError("User", user_id)
                cost = reward.points_required
                if user.point_balance < cost:
                    raise InsufficientPointsError(required=cost, available=user.point_balance)

                now = datetime.now(timezone.utc)
                redemption = RewardRedemption(
                    user_id=user_id,
                    reward_id=reward_id,
                    points_spent=cost,
                    status=status,
                    redemption_code=generate_redemption_code(code_prefix),
                    claimed_at=now,
                    completed_at=now if status == RewardRedemptionStatusEnum.COMPLETED else None,
                )
                self._db.add(redemption)
                try:
                    await self._db.flush()
                except IntegrityError as exc:
                    raise StoreFailureError("Could not allocate a redemption code") from exc

                user = await self._balances.adjust_balance(user_id, 0, -cost)

                decremented = await self._db.execute(
                    update(Reward)
                    .where(Reward.id == reward_id, Reward.stock > 0)
                    .values(stock=Reward.stock - 1)
                    .execution_options(synchronize_session=False)
                )
                if decremented.rowcount == 0:
                    raise OutOfStockError()

                transaction = await self._ledger.record(
                    user_id=user_id,
                    type=TransactionTypeEnum.REWARD_REDEMPTION,
                    coins_added=0,
                    points_earned=-cost,
                    description=f"Redeemed reward: {reward.title}",
                    metadata={
                        "rewardId": str(reward_id),
                        "redemptionId": str(redemption.id),
                    },
                )
                await self._db.refresh(reward)
        except ConflictError as exc:
            self._store.record_rejected(operation, type(exc).__name__)
            logger.warning(
                "Reward redemption rejected",
                operation=operation,
                user_id=str(user_id),
                reward_id=str(reward_id),
                reason=str(exc),
            )
            raise

        self._store.record_committed(operation)
        logger.info(
            "Redeemed reward",
            operation=operation,
            user_id=str(user_id),
            reward_id=str(reward_id),
            redemption_id=str(redemption.id),
            points_spent=cost,
            remaining_stock=reward.stock,
        )
        return RewardRedemptionResult(reward=reward, redemption=redemption, transaction=transaction, user=user)

    async def _load_reward(self, reward_id: UUID) -> Reward | None:
        stmt = select(Reward).where(Reward.id == reward_id).with_for_update()
        return (await self._db.execute(stmt)).scalar_one_or_none()

    async def update_redemption_status(
        self,
        principal: Principal,
        redemption_id: UUID,
        status: RewardRedemptionStatusEnum,
        *,
        notes: str | None = None,
    ) -> RewardRedemption:
        """Move a pending ticket to completed or cancelled.

        Cancelling does not refund points or restock the reward.
        """

        principal.require_admin()
        async with atomic(self._db, operation="update_redemption_status"):
            stmt = (
                select(RewardRedemption)
                .options(selectinload(RewardRedemption.reward))
                .where(RewardRedemption.id == redemption_id)
                .with_for_update()
            )
            redemption = (await self._db.execute(stmt)).scalar_one_or_none()
            if redemption is None:
                raise NotFoundError("Redemption", redemption_id)

            current = RewardRedemptionStatusEnum(redemption.status)
            if status not in self._ALLOWED_TRANSITIONS[current]:
                raise InvalidRedemptionTransitionError(current.value, status.value)

            redemption.status = status
            if status == RewardRedemptionStatusEnum.COMPLETED:
                redemption.completed_at = datetime.now(timezone.utc)
            if notes is not None:
                redemption.notes = notes
            await self._db.flush()

        logger.info(
            "Updated reward redemption status",
            redemption_id=str(redemption_id),
            previous_status=current.value,
            status=status.value,
        )
        await self._audit.log_action(
            admin_id=principal.user_id,
            target_user_id=redemption.user_id,
            action="update_redemption_status",
            description=f"Marked redemption {redemption.redemption_code} as {status.value}",
            metadata={"redemptionId": str(redemption_id), "from": current.value, "to": status.value},
        )
        return redemption

    async def list_redemptions(
        self,
        *,
        user_id: UUID | None = None,
        status: RewardRedemptionStatusEnum | None = None,
        limit: int = 100,
    ) -> list[RewardRedemption]:
        stmt = select(RewardRedemption).options(selectinload(RewardRedemption.reward))
        if user_id is not None:
            stmt = stmt.where(RewardRedemption.user_id == user_id)
        if status is not None:
            stmt = stmt.where(RewardRedemption.status == status)
        stmt = stmt.order_by(RewardRedemption.claimed_at.desc(), RewardRedemption.id).limit(limit)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    def _validate(*, points_required: int, stock: int) -> None:
        if points_required is None or points_required <= 0:
            raise LedgerValidationError("pointsRequired must be positive")
        if stock is None or stock < 0:
            raise LedgerValidationError("Stock cannot be negative")
