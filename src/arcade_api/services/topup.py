"""Cashier top-ups: cash in, coins and points out."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from uuid import UUID

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.models.ledger import Transaction, TransactionTypeEnum
from arcade_api.models.user import User
from arcade_api.observability.ledger import LedgerObservabilityStore, get_ledger_store
from arcade_api.services.auth.sessions import Principal
from arcade_api.services.errors import LedgerValidationError
from arcade_api.services.ledger import AdminAuditLog, BalanceMutator, TransactionLedger, atomic


DEFAULT_AMOUNT_PER_POINT = 50
MAX_TOPUP_COINS = 1_000_000


def compute_points(amount_paid: Decimal, amount_per_point: Decimal | int = DEFAULT_AMOUNT_PER_POINT) -> int:
    """One loyalty point per full ``amount_per_point`` paid, rounded down."""

    if amount_paid <= 0:
        return 0
    return int(amount_paid // Decimal(amount_per_point))


@dataclass(slots=True)
class TopUpResult:
    user: User
    transaction: Transaction
    coins_added: int
    computed_points: int


class TopUpService:
    """Apply a cashier purchase to a player's balances and audit it."""

    def __init__(
        self,
        db_session: AsyncSession,
        *,
        amount_per_point: Decimal | int = DEFAULT_AMOUNT_PER_POINT,
        store: LedgerObservabilityStore | None = None,
    ) -> None:
        if amount_per_point <= 0:
            raise ValueError("amount_per_point must be positive")
        self._db = db_session
        self._amount_per_point = amount_per_point
        self._store = store or get_ledger_store()
        self._balances = BalanceMutator(db_session)
        self._ledger = TransactionLedger(db_session)
        self._audit = AdminAuditLog(db_session, store=self._store)

    async def top_up(
        self,
        principal: Principal,
        user_id: UUID,
        *,
        coins: int = 0,
        amount_paid: Decimal | int | str = Decimal("0"),
        reason: str | None = None,
    ) -> TopUpResult:
        principal.require_admin()
        coins, amount = self._validate(coins, amount_paid)
        points = compute_points(amount, self._amount_per_point)

        description = f"Top-up: {coins} coins, {points} points"
        if reason:
            description = f"{description} ({reason})"

        async with atomic(self._db, operation="top_up"):
            user = await self._balances.adjust_balance(user_id, coins, points)
            transaction = await self._ledger.record(
                user_id=user_id,
                type=TransactionTypeEnum.PURCHASE,
                amount=amount,
                coins_added=coins,
                points_earned=points,
                description=description,
                metadata={"adminId": str(principal.user_id), "reason": reason},
            )

        self._store.record_committed("top_up")
        logger.info(
            "Applied top-up",
            admin_id=str(principal.user_id),
            user_id=str(user_id),
            coins=coins,
            amount_paid=str(amount),
            computed_points=points,
        )
        await self._audit.log_action(
            admin_id=principal.user_id,
            target_user_id=user_id,
            action="topup",
            description=f"Added {coins} coins and {points} points for {amount} paid",
            metadata={
                "coins": coins,
                "amountPaid": str(amount),
                "computedPoints": points,
                "transactionId": str(transaction.id),
                "reason": reason,
            },
        )
        return TopUpResult(user=user, transaction=transaction, coins_added=coins, computed_points=points)

    @staticmethod
    def _validate(coins: int, amount_paid: Decimal | int | str) -> tuple[int, Decimal]:
        try:
            amount = Decimal(str(amount_paid)).quantize(Decimal("0.01"))
        except (InvalidOperation, ValueError) as exc:
            raise LedgerValidationError("amountPaid must be numeric") from exc
        if not amount.is_finite():
            raise LedgerValidationError("amountPaid must be numeric")
        if isinstance(coins, bool) or not isinstance(coins, int):
            raise LedgerValidationError("coins must be an integer")
        if coins < 0 or amount < 0:
            raise LedgerValidationError("coins and amountPaid cannot be negative")
        if coins > MAX_TOPUP_COINS:
            raise LedgerValidationError(f"coins cannot exceed {MAX_TOPUP_COINS} per top-up")
        if coins == 0 and amount == 0:
            raise LedgerValidationError("Provide coins or an amount paid")
        return coins, amount
