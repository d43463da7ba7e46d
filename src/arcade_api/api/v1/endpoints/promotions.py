"""Public promotion listing and player redemption."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.api.dependencies.session import require_principal
from arcade_api.api.errors import to_http_exception
from arcade_api.db.session import get_session
from arcade_api.schemas.promotion import PromotionRedeemResponse, PromotionResponse
from arcade_api.schemas.user import BalanceResponse
from arcade_api.services.auth.sessions import Principal
from arcade_api.services.errors import LedgerError
from arcade_api.services.promotions import PromotionService

router = APIRouter(prefix="/promotions", tags=["Promotions"])


@router.get("", response_model=list[PromotionResponse])
async def list_active_promotions(db: AsyncSession = Depends(get_session)) -> list[PromotionResponse]:
    promotions = await PromotionService(db).list_active_promotions()
    return [PromotionResponse.model_validate(promotion) for promotion in promotions]


@router.post("/redeem/{promotion_id}", response_model=PromotionRedeemResponse)
async def redeem_promotion(
    promotion_id: UUID,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_session),
) -> PromotionRedeemResponse:
    try:
        result = await PromotionService(db).redeem_promotion(principal, promotion_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc

    return PromotionRedeemResponse(
        redemption_id=result.redemption.id,
        points_earned=result.points_earned,
        coins_earned=result.coins_earned,
        new_balance=BalanceResponse.model_validate(result.user),
    )
