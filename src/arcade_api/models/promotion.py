"""Time-windowed promotions and the per-user redemption record."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    true,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from arcade_api.db.base import Base


class PromotionTypeEnum(str, Enum):
    BONUS_POINTS = "bonus_points"
    EXTRA_COINS = "extra_coins"
    DISCOUNT = "discount"
    FREE_CREDITS = "free_credits"


class Promotion(Base):
    __tablename__ = "promotions"
    __table_args__ = (
        CheckConstraint("value >= 0", name="ck_promotions_value_non_negative"),
        CheckConstraint("current_redemptions >= 0", name="ck_promotions_redemptions_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    type = Column(String(32), nullable=False)
    value = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    max_redemptions = Column(Integer, nullable=True)
    current_redemptions = Column(Integer, nullable=False, default=0, server_default="0")
    emoji = Column(String(16), nullable=True, default="🎮")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    redemptions = relationship("PromotionRedemption", back_populates="promotion", lazy="raise")


class PromotionRedemption(Base):
    """Snapshot of what a promotion granted one user. Created at most once per pair."""

    __tablename__ = "promotion_redemptions"
    __table_args__ = (
        UniqueConstraint("user_id", "promotion_id", name="uq_promotion_redemptions_user_promotion"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.id"), nullable=False)
    points_earned = Column(Integer, nullable=False, default=0, server_default="0")
    coins_earned = Column(Integer, nullable=False, default=0, server_default="0")
    redeemed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    promotion = relationship("Promotion", back_populates="redemptions", lazy="raise")
