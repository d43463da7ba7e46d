from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from arcade_api.models.reward import RewardRedemptionStatusEnum
from arcade_api.schemas.user import BalanceResponse


class RewardResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    title: str
    description: str
    image_url: str | None = Field(None, alias="imageUrl")
    points_required: int = Field(..., alias="pointsRequired")
    stock: int
    is_active: bool = Field(..., alias="isActive")
    category: str
    emoji: str | None = None
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")


class RewardCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    description: str
    image_url: str | None = Field(None, alias="imageUrl")
    points_required: int = Field(..., gt=0, alias="pointsRequired")
    stock: int = Field(0, ge=0)
    is_active: bool = Field(True, alias="isActive")
    category: str = Field("general", max_length=32)
    emoji: str | None = Field(None, max_length=16)


class RewardUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    image_url: str | None = Field(None, alias="imageUrl")
    points_required: int | None = Field(None, gt=0, alias="pointsRequired")
    stock: int | None = Field(None, ge=0)
    is_active: bool | None = Field(None, alias="isActive")
    category: str | None = Field(None, max_length=32)
    emoji: str | None = Field(None, max_length=16)


class RewardRedemptionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    user_id: UUID = Field(..., alias="userId")
    reward_id: UUID = Field(..., alias="rewardId")
    points_spent: int = Field(..., alias="pointsSpent")
    status: RewardRedemptionStatusEnum
    redemption_code: str = Field(..., alias="redemptionCode")
    claimed_at: datetime | None = Field(None, alias="claimedAt")
    completed_at: datetime | None = Field(None, alias="completedAt")
    notes: str | None = None


class RewardRedemptionDetail(RewardRedemptionResponse):
    """Redemption with its reward; only built from rows loaded with the reward."""

    reward: RewardResponse | None = None


class RewardRedeemResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    redemption: RewardRedemptionResponse
    new_balance: BalanceResponse = Field(..., alias="newBalance")
    remaining_stock: int = Field(..., alias="remainingStock")


class RewardClaimRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    user_id: UUID = Field(..., alias="userId")
    reward_id: UUID = Field(..., alias="rewardId")


class RedemptionStatusUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: RewardRedemptionStatusEnum
    notes: str | None = Field(None, max_length=1000)
