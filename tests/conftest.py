import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

import arcade_api.models  # noqa: E402,F401
from arcade_api.app import create_app  # noqa: E402
from arcade_api.db.base import Base  # noqa: E402
from arcade_api.db.session import get_session  # noqa: E402
from arcade_api.models.promotion import Promotion, PromotionTypeEnum  # noqa: E402
from arcade_api.models.reward import Reward  # noqa: E402
from arcade_api.models.user import User, UserRoleEnum  # noqa: E402
from arcade_api.observability.ledger import get_ledger_store  # noqa: E402
from arcade_api.services.auth.passwords import hash_password  # noqa: E402
from arcade_api.services.auth.sessions import Principal  # noqa: E402

DEFAULT_PASSWORD = "insert-coin-42"


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def app_with_db(session_factory):
    app = create_app()

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, session_factory
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def ledger_store():
    store = get_ledger_store()
    store.reset()
    yield store
    store.reset()


@pytest.fixture
def make_user():
    async def _make(
        session: AsyncSession,
        *,
        email: str | None = None,
        role: UserRoleEnum = UserRoleEnum.PLAYER,
        coins: int = 0,
        points: int = 0,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        handle = uuid4().hex[:10]
        user = User(
            email=email or f"{handle}@arcade.test",
            username=handle if email is None else email.split("@", 1)[0],
            password_hash=hash_password(password),
            role=role.value,
            coin_balance=coins,
            point_balance=points,
            level=1,
        )
        session.add(user)
        await session.flush()
        await session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_promotion():
    async def _make(
        session: AsyncSession,
        *,
        type: PromotionTypeEnum = PromotionTypeEnum.BONUS_POINTS,
        value: int = 50,
        is_active: bool = True,
        starts_in: timedelta = timedelta(days=-1),
        ends_in: timedelta = timedelta(days=7),
        max_redemptions: int | None = None,
        title: str = "Double Trouble Weekend",
    ) -> Promotion:
        now = datetime.now(timezone.utc)
        promotion = Promotion(
            title=title,
            description="Limited-time arcade promotion",
            type=type.value,
            value=value,
            is_active=is_active,
            start_date=now + starts_in,
            end_date=now + ends_in,
            max_redemptions=max_redemptions,
            current_redemptions=0,
        )
        session.add(promotion)
        await session.flush()
        await session.refresh(promotion)
        return promotion

    return _make


@pytest.fixture
def make_reward():
    async def _make(
        session: AsyncSession,
        *,
        points_required: int = 50,
        stock: int = 3,
        is_active: bool = True,
        title: str = "Plush Pac-Man",
    ) -> Reward:
        reward = Reward(
            title=title,
            description="Prize counter item",
            points_required=points_required,
            stock=stock,
            is_active=is_active,
            category="plush",
        )
        session.add(reward)
        await session.flush()
        await session.refresh(reward)
        return reward

    return _make


def principal_for(user: User) -> Principal:
    return Principal(user_id=user.id, role=UserRoleEnum(user.role))


@pytest.fixture
def as_principal():
    return principal_for


@pytest.fixture
def login():
    async def _login(client, email: str, password: str = DEFAULT_PASSWORD) -> dict[str, str]:
        response = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['sessionToken']}"}

    return _login
