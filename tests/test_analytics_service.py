from decimal import Decimal

import pytest

from arcade_api.models.user import UserRoleEnum
from arcade_api.services.analytics import LedgerAnalyticsService
from arcade_api.services.promotions import PromotionService
from arcade_api.services.topup import TopUpService


@pytest.mark.asyncio
async def test_empty_ledger_reports_zeroes(session_factory) -> None:
    async with session_factory() as session:
        service = LedgerAnalyticsService(session)
        sales = await service.sales()
        users = await service.users()

    assert sales.total_revenue == Decimal("0.00")
    assert sales.total_transactions == 0
    assert sales.average_transaction == Decimal("0.00")
    assert (users.total_users, users.active_users) == (0, 0)


@pytest.mark.asyncio
async def test_revenue_counts_purchases_only(session_factory, make_user, make_promotion, as_principal) -> None:
    async with session_factory() as session:
        admin = await make_user(session, role=UserRoleEnum.ADMIN)
        player = await make_user(session)
        idle = await make_user(session)
        promotion = await make_promotion(session, value=10)

        topups = TopUpService(session, amount_per_point=50)
        await topups.top_up(as_principal(admin), player.id, coins=20, amount_paid=Decimal("100"))
        await topups.top_up(as_principal(admin), idle.id, amount_paid=Decimal("25.50"))
        await PromotionService(session).redeem_promotion(as_principal(player), promotion.id)

        service = LedgerAnalyticsService(session)
        first = await service.sales()
        second = await service.sales()
        users = await service.users()

    assert first == second
    assert first.total_revenue == Decimal("125.50")
    assert first.total_transactions == 2
    assert first.average_transaction == Decimal("62.75")
    # idle received points but no coins
    assert (users.total_users, users.active_users) == (3, 1)
