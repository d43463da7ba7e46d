from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from arcade_api.models.promotion import PromotionTypeEnum
from arcade_api.schemas.user import BalanceResponse


class PromotionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    title: str
    description: str
    type: PromotionTypeEnum
    value: int
    is_active: bool = Field(..., alias="isActive")
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    max_redemptions: int | None = Field(None, alias="maxRedemptions")
    current_redemptions: int = Field(..., alias="currentRedemptions")
    emoji: str | None = None
    created_at: datetime | None = Field(None, alias="createdAt")


class PromotionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    description: str
    type: PromotionTypeEnum
    value: int = Field(..., ge=0)
    is_active: bool = Field(True, alias="isActive")
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    max_redemptions: int | None = Field(None, ge=1, alias="maxRedemptions")
    emoji: str | None = Field(None, max_length=16)


class PromotionUpdate(BaseModel):
    """Partial update; omitted fields are left alone."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    type: PromotionTypeEnum | None = None
    value: int | None = Field(None, ge=0)
    is_active: bool | None = Field(None, alias="isActive")
    start_date: datetime | None = Field(None, alias="startDate")
    end_date: datetime | None = Field(None, alias="endDate")
    max_redemptions: int | None = Field(None, ge=1, alias="maxRedemptions")
    emoji: str | None = Field(None, max_length=16)


class PromotionRedeemResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    redemption_id: UUID = Field(..., alias="redemptionId")
    points_earned: int = Field(..., alias="pointsEarned")
    coins_earned: int = Field(..., alias="coinsEarned")
    new_balance: BalanceResponse = Field(..., alias="newBalance")


class PromotionRedemptionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    promotion_id: UUID = Field(..., alias="promotionId")
    points_earned: int = Field(..., alias="pointsEarned")
    coins_earned: int = Field(..., alias="coinsEarned")
    redeemed_at: datetime | None = Field(None, alias="redeemedAt")
    promotion: PromotionResponse | None = None
