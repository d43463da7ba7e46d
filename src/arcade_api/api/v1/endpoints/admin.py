"""Administrator endpoints: catalog management, cashier operations and reporting."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.api.dependencies.session import require_admin
from arcade_api.api.errors import to_http_exception
from arcade_api.api.v1.endpoints.rewards import reward_service, serialize_redemption_result
from arcade_api.core.settings import settings
from arcade_api.db.session import get_session
from arcade_api.models.ledger import TransactionStatusEnum, TransactionTypeEnum
from arcade_api.models.reward import RewardRedemptionStatusEnum
from arcade_api.observability.ledger import get_ledger_store
from arcade_api.schemas.ledger import (
    AdminActionResponse,
    AnalyticsResponse,
    TopUpRequest,
    TopUpResponse,
    TransactionResponse,
)
from arcade_api.schemas.promotion import PromotionCreate, PromotionResponse, PromotionUpdate
from arcade_api.schemas.reward import (
    RedemptionStatusUpdate,
    RewardClaimRequest,
    RewardCreate,
    RewardRedeemResponse,
    RewardRedemptionDetail,
    RewardResponse,
    RewardUpdate,
)
from arcade_api.schemas.user import BalanceResponse, UserResponse
from arcade_api.services.analytics import LedgerAnalyticsService
from arcade_api.services.auth.sessions import Principal
from arcade_api.services.errors import LedgerError
from arcade_api.services.ledger import AdminAuditLog, TransactionFilters, TransactionLedger
from arcade_api.services.promotions import PromotionService
from arcade_api.services.topup import TopUpService
from arcade_api.services.users import UserService

router = APIRouter(prefix="/admin", tags=["Admin"])


# Promotions


@router.get("/promotions", response_model=list[PromotionResponse])
async def list_promotions(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[PromotionResponse]:
    promotions = await PromotionService(db).list_all_promotions()
    return [PromotionResponse.model_validate(promotion) for promotion in promotions]


@router.post("/promotions", response_model=PromotionResponse, status_code=status.HTTP_201_CREATED)
async def create_promotion(
    payload: PromotionCreate,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> PromotionResponse:
    try:
        promotion = await PromotionService(db).create_promotion(
            principal,
            title=payload.title,
            description=payload.description,
            type=payload.type.value,
            value=payload.value,
            start_date=payload.start_date,
            end_date=payload.end_date,
            is_active=payload.is_active,
            max_redemptions=payload.max_redemptions,
            emoji=payload.emoji,
        )
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return PromotionResponse.model_validate(promotion)


@router.get("/promotions/{promotion_id}", response_model=PromotionResponse)
async def get_promotion(
    promotion_id: UUID,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> PromotionResponse:
    try:
        promotion = await PromotionService(db).get_promotion(promotion_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return PromotionResponse.model_validate(promotion)


@router.put("/promotions/{promotion_id}", response_model=PromotionResponse)
async def update_promotion(
    promotion_id: UUID,
    payload: PromotionUpdate,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> PromotionResponse:
    changes: dict[str, Any] = payload.model_dump(exclude_unset=True)
    if changes.get("type") is not None:
        changes["type"] = changes["type"].value
    try:
        promotion = await PromotionService(db).update_promotion(principal, promotion_id, changes)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return PromotionResponse.model_validate(promotion)


@router.delete("/promotions/{promotion_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_promotion(
    promotion_id: UUID,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await PromotionService(db).delete_promotion(principal, promotion_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Rewards


@router.get("/rewards/redemptions", response_model=list[RewardRedemptionDetail])
async def list_reward_redemptions(
    status_filter: RewardRedemptionStatusEnum | None = Query(None, alias="status"),
    user_id: UUID | None = Query(None, alias="userId"),
    limit: int = Query(100, ge=1, le=500),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[RewardRedemptionDetail]:
    redemptions = await reward_service(db).list_redemptions(user_id=user_id, status=status_filter, limit=limit)
    return [RewardRedemptionDetail.model_validate(entry) for entry in redemptions]


@router.put("/rewards/redemptions/{redemption_id}/status", response_model=RewardRedemptionDetail)
async def update_redemption_status(
    redemption_id: UUID,
    payload: RedemptionStatusUpdate,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> RewardRedemptionDetail:
    try:
        redemption = await reward_service(db).update_redemption_status(
            principal,
            redemption_id,
            payload.status,
            notes=payload.notes,
        )
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return RewardRedemptionDetail.model_validate(redemption)


@router.post("/rewards/claim", response_model=RewardRedeemResponse, status_code=status.HTTP_201_CREATED)
async def claim_reward(
    payload: RewardClaimRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> RewardRedeemResponse:
    try:
        result = await reward_service(db).claim_reward_for_user(principal, payload.user_id, payload.reward_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return serialize_redemption_result(result)


@router.get("/rewards", response_model=list[RewardResponse])
async def list_rewards(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[RewardResponse]:
    rewards = await reward_service(db).list_rewards(include_inactive=True)
    return [RewardResponse.model_validate(reward) for reward in rewards]


@router.post("/rewards", response_model=RewardResponse, status_code=status.HTTP_201_CREATED)
async def create_reward(
    payload: RewardCreate,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> RewardResponse:
    try:
        reward = await reward_service(db).create_reward(principal, **payload.model_dump())
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return RewardResponse.model_validate(reward)


@router.get("/rewards/{reward_id}", response_model=RewardResponse)
async def get_reward(
    reward_id: UUID,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> RewardResponse:
    try:
        reward = await reward_service(db).get_reward(reward_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return RewardResponse.model_validate(reward)


@router.put("/rewards/{reward_id}", response_model=RewardResponse)
async def update_reward(
    reward_id: UUID,
    payload: RewardUpdate,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> RewardResponse:
    try:
        reward = await reward_service(db).update_reward(
            principal,
            reward_id,
            payload.model_dump(exclude_unset=True),
        )
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return RewardResponse.model_validate(reward)


@router.delete("/rewards/{reward_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reward(
    reward_id: UUID,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await reward_service(db).delete_reward(principal, reward_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Cashier


@router.post("/topup", response_model=TopUpResponse)
async def top_up(
    payload: TopUpRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> TopUpResponse:
    service = TopUpService(db, amount_per_point=settings.topup_amount_per_point)
    try:
        result = await service.top_up(
            principal,
            payload.user_id,
            coins=payload.coins,
            amount_paid=payload.amount_paid,
            reason=payload.reason,
        )
    except LedgerError as exc:
        raise to_http_exception(exc) from exc

    return TopUpResponse(
        transaction_id=result.transaction.id,
        coins_added=result.coins_added,
        computed_points=result.computed_points,
        new_balance=BalanceResponse.model_validate(result.user),
    )


# Reporting


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    search: str | None = Query(None, max_length=200),
    limit: int = Query(200, ge=1, le=500),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[UserResponse]:
    users = await UserService(db).list_users(search=search, limit=limit)
    return [UserResponse.model_validate(user) for user in users]


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    user_id: UUID | None = Query(None, alias="userId"),
    type_filter: TransactionTypeEnum | None = Query(None, alias="type"),
    status_filter: TransactionStatusEnum | None = Query(None, alias="status"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[TransactionResponse]:
    filters = TransactionFilters(
        user_id=user_id,
        type=type_filter,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    transactions = await TransactionLedger(db).list_transactions(filters)
    return [TransactionResponse.model_validate(entry) for entry in transactions]


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AnalyticsResponse:
    service = LedgerAnalyticsService(db)
    sales = await service.sales()
    users = await service.users()
    return AnalyticsResponse(
        total_revenue=float(sales.total_revenue),
        total_transactions=sales.total_transactions,
        average_transaction=float(sales.average_transaction),
        total_users=users.total_users,
        active_users=users.active_users,
    )


@router.get("/actions", response_model=list[AdminActionResponse])
async def list_admin_actions(
    action: str | None = Query(None, max_length=64),
    limit: int = Query(100, ge=1, le=500),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[AdminActionResponse]:
    records = await AdminAuditLog(db).list_actions(action=action, limit=limit)
    return [AdminActionResponse.model_validate(record) for record in records]


@router.get("/observability")
async def ledger_observability(_: Principal = Depends(require_admin)) -> dict[str, object]:
    return get_ledger_store().snapshot().as_dict()
