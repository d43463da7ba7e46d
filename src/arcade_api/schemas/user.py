from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(..., min_length=3, max_length=320)
    username: str = Field(..., min_length=2, max_length=64)
    password: str = Field(..., min_length=8, max_length=256)


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str
    password: str


class BalanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    coin_balance: int = Field(..., alias="coinBalance")
    point_balance: int = Field(..., alias="pointBalance")
    level: int


class UserResponse(BaseModel):
    """Public view of an account. The password hash never leaves the service."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    email: str
    username: str
    role: str
    coin_balance: int = Field(..., alias="coinBalance")
    point_balance: int = Field(..., alias="pointBalance")
    level: int
    created_at: datetime | None = Field(None, alias="createdAt")
