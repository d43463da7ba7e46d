"""Reward catalog browsing and self-service redemption."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.api.dependencies.session import require_principal
from arcade_api.api.errors import to_http_exception
from arcade_api.core.settings import settings
from arcade_api.db.session import get_session
from arcade_api.schemas.reward import RewardRedeemResponse, RewardRedemptionResponse, RewardResponse
from arcade_api.schemas.user import BalanceResponse
from arcade_api.services.auth.sessions import Principal
from arcade_api.services.errors import LedgerError, NotFoundError
from arcade_api.services.rewards import RewardRedemptionResult, RewardService

router = APIRouter(prefix="/rewards", tags=["Rewards"])


def reward_service(db: AsyncSession) -> RewardService:
    return RewardService(
        db,
        code_prefix=settings.redemption_code_prefix,
        admin_code_prefix=settings.admin_redemption_code_prefix,
    )


def serialize_redemption_result(result: RewardRedemptionResult) -> RewardRedeemResponse:
    return RewardRedeemResponse(
        redemption=RewardRedemptionResponse.model_validate(result.redemption),
        new_balance=BalanceResponse.model_validate(result.user),
        remaining_stock=result.reward.stock,
    )


@router.get("", response_model=list[RewardResponse])
async def list_rewards(db: AsyncSession = Depends(get_session)) -> list[RewardResponse]:
    rewards = await reward_service(db).list_rewards()
    return [RewardResponse.model_validate(reward) for reward in rewards]


@router.get("/{reward_id}", response_model=RewardResponse)
async def get_reward(reward_id: UUID, db: AsyncSession = Depends(get_session)) -> RewardResponse:
    try:
        reward = await reward_service(db).get_reward(reward_id)
        if not reward.is_active:
            raise NotFoundError("Reward", reward_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return RewardResponse.model_validate(reward)


@router.post("/redeem/{reward_id}", response_model=RewardRedeemResponse)
async def redeem_reward(
    reward_id: UUID,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_session),
) -> RewardRedeemResponse:
    try:
        result = await reward_service(db).redeem_reward(principal, reward_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return serialize_redemption_result(result)
