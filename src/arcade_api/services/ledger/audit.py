"""Administrator audit trail."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from arcade_api.models.ledger import AdminAction
from arcade_api.models.user import User
from arcade_api.observability.ledger import LedgerObservabilityStore, get_ledger_store


@dataclass(slots=True)
class AdminActionRecord:
    """Audit row enriched with the emails of the admin and the target user."""

    id: UUID
    admin_id: UUID
    admin_email: str | None
    target_user_id: UUID | None
    target_user_email: str | None
    action: str
    description: str
    metadata: dict[str, Any]
    created_at: datetime


class AdminAuditLog:
    """Write and read ``AdminAction`` rows.

    Entries are written only after the audited mutation has committed, through
    a short-lived session of their own on the same bind. A failed write is
    logged and counted but never raised, and it leaves the caller's session and
    the objects it already returned untouched.
    """

    def __init__(self, db_session: AsyncSession, *, store: LedgerObservabilityStore | None = None) -> None:
        self._db = db_session
        self._store = store or get_ledger_store()

    async def log_action(
        self,
        *,
        admin_id: UUID,
        action: str,
        description: str,
        target_user_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AdminAction | None:
        entry = AdminAction(
            admin_id=admin_id,
            target_user_id=target_user_id,
            action=action,
            description=description,
            metadata_json=metadata or {},
        )
        try:
            async with self._audit_session() as session:
                session.add(entry)
                await session.commit()
                await session.refresh(entry)
        except SQLAlchemyError:
            self._store.record_audit_failure(action)
            logger.exception(
                "Failed to write admin audit entry",
                admin_id=str(admin_id),
                action=action,
                target_user_id=str(target_user_id) if target_user_id else None,
            )
            return None

        logger.info(
            "Logged admin action",
            admin_id=str(admin_id),
            action=action,
            target_user_id=str(target_user_id) if target_user_id else None,
        )
        return entry

    def _audit_session(self) -> AsyncSession:
        return AsyncSession(bind=self._db.bind, expire_on_commit=False)

    async def list_actions(self, *, action: str | None = None, limit: int = 100) -> list[AdminActionRecord]:
        admin_user = aliased(User)
        target_user = aliased(User)
        stmt = (
            select(AdminAction, admin_user.email, target_user.email)
            .join(admin_user, AdminAction.admin_id == admin_user.id, isouter=True)
            .join(target_user, AdminAction.target_user_id == target_user.id, isouter=True)
            .order_by(AdminAction.created_at.desc(), AdminAction.id.desc())
            .limit(limit)
        )
        if action:
            stmt = stmt.where(AdminAction.action == action)

        result = await self._db.execute(stmt)
        return [
            AdminActionRecord(
                id=entry.id,
                admin_id=entry.admin_id,
                admin_email=admin_email,
                target_user_id=entry.target_user_id,
                target_user_email=target_email,
                action=entry.action,
                description=entry.description,
                metadata=dict(entry.metadata_json or {}),
                created_at=entry.created_at,
            )
            for entry, admin_email, target_email in result.all()
        ]
