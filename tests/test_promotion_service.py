from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from arcade_api.models.ledger import AdminAction, Transaction, TransactionTypeEnum
from arcade_api.models.promotion import Promotion, PromotionRedemption, PromotionTypeEnum
from arcade_api.models.user import User, UserRoleEnum
from arcade_api.services.errors import (
    LedgerValidationError,
    PermissionDeniedError,
    PromotionAlreadyRedeemedError,
    PromotionCapacityReachedError,
    PromotionNotRedeemableError,
    PromotionUnavailableError,
    ResourceInUseError,
    StoreFailureError,
)
from arcade_api.services.ledger import TransactionLedger
from arcade_api.services.promotions import PromotionService, compute_grant


async def _count(session, model, *criteria) -> int:
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return int(await session.scalar(stmt))


@pytest.mark.asyncio
async def test_bonus_points_redemption_grants_points_once(session_factory, make_user, make_promotion, as_principal) -> None:
    async with session_factory() as session:
        user = await make_user(session, coins=500, points=2)
        promotion = await make_promotion(session, type=PromotionTypeEnum.BONUS_POINTS, value=50)
        service = PromotionService(session)

        result = await service.redeem_promotion(as_principal(user), promotion.id)

        assert result.points_earned == 50
        assert result.coins_earned == 0
        assert result.user.point_balance == 52
        assert result.user.coin_balance == 500
        assert result.promotion.current_redemptions == 1

        assert await _count(session, PromotionRedemption, PromotionRedemption.user_id == user.id) == 1
        ledger = (
            await session.execute(select(Transaction).where(Transaction.type == TransactionTypeEnum.PROMOTION))
        ).scalars().all()
        assert len(ledger) == 1
        assert (ledger[0].coins_added, ledger[0].points_earned) == (0, 50)
        assert ledger[0].metadata_json["promotionId"] == str(promotion.id)
        assert ledger[0].metadata_json["redemptionId"] == str(result.redemption.id)


@pytest.mark.asyncio
@pytest.mark.parametrize("promotion_type", [PromotionTypeEnum.EXTRA_COINS, PromotionTypeEnum.FREE_CREDITS])
async def test_coin_promotions_grant_coins(
    session_factory, make_user, make_promotion, as_principal, promotion_type
) -> None:
    async with session_factory() as session:
        user = await make_user(session)
        promotion = await make_promotion(session, type=promotion_type, value=25)

        result = await PromotionService(session).redeem_promotion(as_principal(user), promotion.id)

    assert (result.coins_earned, result.points_earned) == (25, 0)
    assert (result.user.coin_balance, result.user.point_balance) == (25, 0)
    assert result.transaction.coins_added == 25


def test_discount_promotions_have_no_balance_grant() -> None:
    with pytest.raises(PromotionNotRedeemableError):
        compute_grant("discount", 20)
    with pytest.raises(LedgerValidationError):
        compute_grant("mystery_box", 20)


@pytest.mark.asyncio
async def test_discount_redemption_is_rejected_without_writes(
    session_factory, make_user, make_promotion, as_principal, ledger_store
) -> None:
    async with session_factory() as session:
        user = await make_user(session)
        promotion = await make_promotion(session, type=PromotionTypeEnum.DISCOUNT, value=10)
        await session.commit()

        with pytest.raises(PromotionNotRedeemableError):
            await PromotionService(session).redeem_promotion(as_principal(user), promotion.id)

        assert await _count(session, PromotionRedemption) == 0
        assert await _count(session, Transaction) == 0

    snapshot = ledger_store.snapshot()
    assert snapshot.rejected == {"redeem_promotion:PromotionNotRedeemableError": 1}


@pytest.mark.asyncio
async def test_second_redemption_fails_and_changes_nothing(
    session_factory, make_user, make_promotion, as_principal
) -> None:
    async with session_factory() as session:
        user = await make_user(session)
        promotion = await make_promotion(session, value=50)
        service = PromotionService(session)
        principal = as_principal(user)
        user_id, promotion_id = user.id, promotion.id

        await service.redeem_promotion(principal, promotion_id)
        with pytest.raises(PromotionAlreadyRedeemedError):
            await service.redeem_promotion(principal, promotion_id)

        refreshed_user = await session.get(User, user_id, populate_existing=True)
        refreshed_promotion = await session.get(Promotion, promotion_id, populate_existing=True)
        assert refreshed_user.point_balance == 50
        assert refreshed_promotion.current_redemptions == 1
        assert await _count(session, Transaction) == 1


@pytest.mark.asyncio
async def test_unique_constraint_blocks_duplicate_when_precheck_is_raced(
    session_factory, make_user, make_promotion, as_principal, monkeypatch
) -> None:
    async with session_factory() as session:
        user = await make_user(session)
        promotion = await make_promotion(session, value=50)
        service = PromotionService(session)
        user_id, promotion_id = user.id, promotion.id
        await service.redeem_promotion(as_principal(user), promotion_id)

        # A concurrent request that read "not redeemed" before the first commit.
        async def _stale_check(self, user_id, promotion_id) -> bool:
            return False

        monkeypatch.setattr(PromotionService, "_has_redeemed", _stale_check)

        with pytest.raises(PromotionAlreadyRedeemedError):
            await service.redeem_promotion(as_principal(user), promotion_id)

        refreshed_user = await session.get(User, user_id, populate_existing=True)
        refreshed_promotion = await session.get(Promotion, promotion_id, populate_existing=True)
        assert refreshed_user.point_balance == 50
        assert refreshed_promotion.current_redemptions == 1
        assert await _count(session, PromotionRedemption) == 1
        assert await _count(session, Transaction) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"is_active": False},
        {"starts_in": timedelta(days=-10), "ends_in": timedelta(days=-1)},
        {"starts_in": timedelta(days=1), "ends_in": timedelta(days=5)},
    ],
    ids=["inactive", "expired", "not-started"],
)
async def test_promotions_outside_active_window_are_unavailable(
    session_factory, make_user, make_promotion, as_principal, overrides
) -> None:
    async with session_factory() as session:
        user = await make_user(session)
        promotion = await make_promotion(session, **overrides)
        await session.commit()

        with pytest.raises(PromotionUnavailableError):
            await PromotionService(session).redeem_promotion(as_principal(user), promotion.id)

        assert await _count(session, PromotionRedemption) == 0


@pytest.mark.asyncio
async def test_capacity_limit_is_enforced(session_factory, make_user, make_promotion, as_principal) -> None:
    async with session_factory() as session:
        first = await make_user(session)
        second = await make_user(session)
        promotion = await make_promotion(session, value=10, max_redemptions=1)
        service = PromotionService(session)
        second_id = second.id

        await service.redeem_promotion(as_principal(first), promotion.id)
        with pytest.raises(PromotionCapacityReachedError):
            await service.redeem_promotion(as_principal(second), promotion.id)

        refreshed = await session.get(User, second_id, populate_existing=True)
        assert refreshed.point_balance == 0
        assert await _count(session, PromotionRedemption, PromotionRedemption.user_id == second_id) == 0


@pytest.mark.asyncio
async def test_failure_mid_unit_rolls_back_every_write(
    session_factory, make_user, make_promotion, as_principal, monkeypatch
) -> None:
    async with session_factory() as session:
        user = await make_user(session)
        promotion = await make_promotion(session, value=50)
        await session.commit()

        async def _broken_record(self, **kwargs):
            raise OperationalError("INSERT INTO transactions", {}, Exception("disk I/O error"))

        monkeypatch.setattr(TransactionLedger, "record", _broken_record)
        user_id, promotion_id = user.id, promotion.id

        with pytest.raises(StoreFailureError):
            await PromotionService(session).redeem_promotion(as_principal(user), promotion_id)

        refreshed_user = await session.get(User, user_id, populate_existing=True)
        refreshed_promotion = await session.get(Promotion, promotion_id, populate_existing=True)
        assert refreshed_user.point_balance == 0
        assert refreshed_promotion.current_redemptions == 0
        assert await _count(session, PromotionRedemption) == 0


@pytest.mark.asyncio
async def test_active_listing_hides_inactive_and_expired(session_factory, make_promotion) -> None:
    async with session_factory() as session:
        live = await make_promotion(session, title="Live")
        await make_promotion(session, title="Paused", is_active=False)
        await make_promotion(session, title="Over", starts_in=timedelta(days=-9), ends_in=timedelta(days=-2))
        await session.commit()

        service = PromotionService(session)
        active = await service.list_active_promotions()
        everything = await service.list_all_promotions()

    assert [promotion.id for promotion in active] == [live.id]
    assert len(everything) == 3


@pytest.mark.asyncio
async def test_admin_promotion_lifecycle_is_audited(session_factory, make_user, as_principal) -> None:
    now = datetime.now(timezone.utc)
    async with session_factory() as session:
        admin = await make_user(session, role=UserRoleEnum.ADMIN)
        await session.commit()
        service = PromotionService(session)
        principal = as_principal(admin)

        promotion = await service.create_promotion(
            principal,
            title="Happy Hour",
            description="Extra coins before six",
            type="extra_coins",
            value=20,
            start_date=now - timedelta(hours=1),
            end_date=now + timedelta(days=1),
            max_redemptions=100,
        )
        assert promotion.emoji == "🎮"
        assert promotion.current_redemptions == 0

        updated = await service.update_promotion(principal, promotion.id, {"value": 30, "is_active": False})
        assert (updated.value, updated.is_active) == (30, False)

        await service.delete_promotion(principal, promotion.id)
        assert await session.get(Promotion, promotion.id, populate_existing=True) is None

        actions = (
            await session.execute(select(AdminAction.action).order_by(AdminAction.created_at, AdminAction.id))
        ).scalars().all()

    assert sorted(actions) == ["create_promotion", "delete_promotion", "update_promotion"]


@pytest.mark.asyncio
async def test_promotion_validation(session_factory, make_user, as_principal) -> None:
    now = datetime.now(timezone.utc)
    async with session_factory() as session:
        admin = await make_user(session, role=UserRoleEnum.ADMIN)
        service = PromotionService(session)
        principal = as_principal(admin)
        base = dict(title="Bad", description="x", type="bonus_points", value=5)

        with pytest.raises(LedgerValidationError):
            await service.create_promotion(principal, **base, start_date=now, end_date=now - timedelta(days=1))
        with pytest.raises(LedgerValidationError):
            await service.create_promotion(
                principal, **base, start_date=now, end_date=now + timedelta(days=1), max_redemptions=0
            )

        promotion = await service.create_promotion(
            principal, **base, start_date=now, end_date=now + timedelta(days=1)
        )
        promotion_id = promotion.id
        with pytest.raises(LedgerValidationError):
            await service.update_promotion(principal, promotion_id, {"current_redemptions": 9})
        with pytest.raises(LedgerValidationError):
            await service.update_promotion(principal, promotion_id, {"end_date": now - timedelta(days=2)})
        with pytest.raises(LedgerValidationError):
            await service.update_promotion(principal, promotion_id, {"title": None})


@pytest.mark.asyncio
async def test_players_cannot_manage_promotions(session_factory, make_user, make_promotion, as_principal) -> None:
    now = datetime.now(timezone.utc)
    async with session_factory() as session:
        player = await make_user(session)
        promotion = await make_promotion(session)
        service = PromotionService(session)

        with pytest.raises(PermissionDeniedError):
            await service.create_promotion(
                as_principal(player),
                title="Nope",
                description="x",
                type="bonus_points",
                value=1,
                start_date=now,
                end_date=now + timedelta(days=1),
            )
        with pytest.raises(PermissionDeniedError):
            await service.delete_promotion(as_principal(player), promotion.id)


@pytest.mark.asyncio
async def test_redeemed_promotion_cannot_be_deleted(
    session_factory, make_user, make_promotion, as_principal
) -> None:
    async with session_factory() as session:
        admin = await make_user(session, role=UserRoleEnum.ADMIN)
        player = await make_user(session)
        promotion = await make_promotion(session)
        service = PromotionService(session)
        player_id, title = player.id, promotion.title
        await service.redeem_promotion(as_principal(player), promotion.id)

        with pytest.raises(ResourceInUseError):
            await service.delete_promotion(as_principal(admin), promotion.id)

        history = await service.list_user_redemptions(player_id)

    assert len(history) == 1
    assert history[0].promotion.title == title
