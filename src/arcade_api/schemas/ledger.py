from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from arcade_api.models.ledger import TransactionStatusEnum, TransactionTypeEnum
from arcade_api.schemas.user import BalanceResponse
from arcade_api.services.topup import MAX_TOPUP_COINS


class TransactionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    user_id: UUID = Field(..., alias="userId")
    type: TransactionTypeEnum
    amount: float | None = None
    coins_added: int = Field(..., alias="coinsAdded")
    points_earned: int = Field(..., alias="pointsEarned")
    description: str
    status: TransactionStatusEnum
    metadata: dict | None = Field(
        default=None,
        alias="metadata",
        validation_alias=AliasChoices("metadata_json", "metadata"),
    )
    created_at: datetime | None = Field(None, alias="createdAt")


class AdminActionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    admin_id: UUID = Field(..., alias="adminId")
    admin_email: str | None = Field(None, alias="adminEmail")
    target_user_id: UUID | None = Field(None, alias="targetUserId")
    target_user_email: str | None = Field(None, alias="targetUserEmail")
    action: str
    description: str
    metadata: dict = Field(default_factory=dict)
    created_at: datetime | None = Field(None, alias="createdAt")


class TopUpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    user_id: UUID = Field(..., alias="userId")
    coins: int = Field(0, ge=0, le=MAX_TOPUP_COINS)
    amount_paid: Decimal = Field(Decimal("0"), ge=0, alias="amountPaid", max_digits=10, decimal_places=2)
    reason: str | None = Field(None, max_length=500)


class TopUpResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transaction_id: UUID = Field(..., alias="transactionId")
    coins_added: int = Field(..., alias="coinsAdded")
    computed_points: int = Field(..., alias="computedPoints")
    new_balance: BalanceResponse = Field(..., alias="newBalance")


class AnalyticsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_revenue: float = Field(..., alias="totalRevenue")
    total_transactions: int = Field(..., alias="totalTransactions")
    average_transaction: float = Field(..., alias="averageTransaction")
    total_users: int = Field(..., alias="totalUsers")
    active_users: int = Field(..., alias="activeUsers")
