"""Append-only ledger tables: balance transactions and the admin audit trail."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from arcade_api.db.base import Base


class TransactionTypeEnum(str, Enum):
    """What produced a ledger row."""

    PURCHASE = "purchase"
    PROMOTION = "promotion"
    ADMIN_TOPUP = "admin_topup"
    REWARD_REDEMPTION = "reward_redemption"


class TransactionStatusEnum(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Transaction(Base):
    """One signed balance change. Rows are never updated after insert."""

    __tablename__ = "transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(SqlEnum(TransactionTypeEnum, name="transaction_type"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=True)
    coins_added = Column(Integer, nullable=False, default=0, server_default="0")
    points_earned = Column(Integer, nullable=False, default=0, server_default="0")
    description = Column(Text, nullable=False)
    status = Column(
        SqlEnum(TransactionStatusEnum, name="transaction_status"),
        nullable=False,
        default=TransactionStatusEnum.COMPLETED,
        server_default=TransactionStatusEnum.COMPLETED.name,
    )
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    user = relationship("User", lazy="raise")


class AdminAction(Base):
    """Audit record of an administrator-initiated operation."""

    __tablename__ = "admin_actions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    target_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    action = Column(String(64), nullable=False, index=True)
    description = Column(Text, nullable=False)
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    admin = relationship("User", foreign_keys=[admin_id], lazy="raise")
    target_user = relationship("User", foreign_keys=[target_user_id], lazy="raise")
