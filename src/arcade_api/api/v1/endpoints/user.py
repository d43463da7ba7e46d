"""The authenticated player's own balance and history."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.api.dependencies.session import require_principal
from arcade_api.api.errors import to_http_exception
from arcade_api.db.session import get_session
from arcade_api.schemas.ledger import TransactionResponse
from arcade_api.schemas.promotion import PromotionRedemptionResponse
from arcade_api.schemas.reward import RewardRedemptionDetail
from arcade_api.schemas.user import BalanceResponse
from arcade_api.services.auth.sessions import Principal
from arcade_api.services.errors import LedgerError
from arcade_api.services.ledger import TransactionFilters, TransactionLedger
from arcade_api.services.promotions import PromotionService
from arcade_api.services.rewards import RewardService
from arcade_api.services.users import UserService

router = APIRouter(prefix="/user", tags=["User"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_session),
) -> BalanceResponse:
    try:
        user = await UserService(db).get_user(principal.user_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return BalanceResponse.model_validate(user)


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_my_transactions(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_session),
) -> list[TransactionResponse]:
    filters = TransactionFilters(user_id=principal.user_id, limit=limit, offset=offset)
    transactions = await TransactionLedger(db).list_transactions(filters)
    return [TransactionResponse.model_validate(entry) for entry in transactions]


@router.get("/promotions/redeemed", response_model=list[PromotionRedemptionResponse])
async def list_my_promotion_redemptions(
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_session),
) -> list[PromotionRedemptionResponse]:
    redemptions = await PromotionService(db).list_user_redemptions(principal.user_id)
    return [PromotionRedemptionResponse.model_validate(entry) for entry in redemptions]


@router.get("/rewards/redemptions", response_model=list[RewardRedemptionDetail])
async def list_my_reward_redemptions(
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_session),
) -> list[RewardRedemptionDetail]:
    redemptions = await RewardService(db).list_redemptions(user_id=principal.user_id)
    return [RewardRedemptionDetail.model_validate(entry) for entry in redemptions]
