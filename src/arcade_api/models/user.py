from enum import Enum
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID

from arcade_api.db.base import Base


class UserRoleEnum(str, Enum):
    PLAYER = "player"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("coin_balance >= 0", name="ck_users_coin_balance_non_negative"),
        CheckConstraint("point_balance >= 0", name="ck_users_point_balance_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String, nullable=False, unique=True, index=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(length=16), nullable=False, default=UserRoleEnum.PLAYER.value, server_default=UserRoleEnum.PLAYER.value)
    # Balances change only through BalanceMutator.
    coin_balance = Column(Integer, nullable=False, default=0, server_default="0")
    point_balance = Column(Integer, nullable=False, default=0, server_default="0")
    level = Column(Integer, nullable=False, default=1, server_default="1")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
