"""Point-priced catalog rewards and their fulfilment tickets."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
    true,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from arcade_api.db.base import Base


class RewardRedemptionStatusEnum(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Reward(Base):
    __tablename__ = "rewards"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_rewards_stock_non_negative"),
        CheckConstraint("points_required > 0", name="ck_rewards_points_required_positive"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    image_url = Column(String, nullable=True)
    points_required = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    category = Column(String(32), nullable=False, default="general", server_default="general")
    emoji = Column(String(16), nullable=True, default="🎁")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    redemptions = relationship("RewardRedemption", back_populates="reward", lazy="raise")


class RewardRedemption(Base):
    __tablename__ = "reward_redemptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    reward_id = Column(UUID(as_uuid=True), ForeignKey("rewards.id"), nullable=False, index=True)
    points_spent = Column(Integer, nullable=False)
    status = Column(
        SqlEnum(RewardRedemptionStatusEnum, name="reward_redemption_status"),
        nullable=False,
        default=RewardRedemptionStatusEnum.PENDING,
        server_default=RewardRedemptionStatusEnum.PENDING.name,
    )
    redemption_code = Column(String(64), nullable=False, unique=True)
    claimed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    reward = relationship("Reward", back_populates="redemptions", lazy="raise")
