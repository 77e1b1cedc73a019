from datetime import datetime, timedelta
from itertools import count

import pytest

from food_share.config import Settings
from food_share.db import init_db, make_engine, make_session_pool
from food_share.models import User
from food_share.models.donation import DonationCreate
from food_share.services.identity import IdentityProvider
from food_share.services.lifecycle import DonationLifecycle
from food_share.webapp.server import create_app

SECRET = "test-secret"
START = datetime(2026, 3, 1, 12, 0, 0)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(START)


@pytest.fixture
def cfg(tmp_path):
    return Settings(
        AUTH_SECRET=SECRET,
        DB_PATH=tmp_path / "food_share.db",
        LIST_PAGE_SIZE=20,
    )


@pytest.fixture
async def engine(cfg):
    engine = make_engine(cfg.database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_pool(engine):
    return make_session_pool(engine)


@pytest.fixture
def identity(session_pool):
    return IdentityProvider(session_pool, SECRET)


@pytest.fixture
def lifecycle(session_pool, identity, clock):
    return DonationLifecycle(session_pool, identity, clock=clock, pickup_window=timedelta(hours=24))


@pytest.fixture
def make_user(session_pool):
    seq = count(1)

    async def _make(role: str, name: str | None = None, verified: bool = True) -> User:
        n = next(seq)
        user = User(
            id=f"{role}-{n}",
            email=f"{role}{n}@example.org",
            display_name=name or f"{role.title()} {n}",
            role=role,
            email_verified=verified,
        )
        async with session_pool() as session:
            session.add(user)
            await session.commit()
        return user

    return _make


@pytest.fixture
def donation_data(clock):
    def _data(**overrides) -> DonationCreate:
        fields = dict(
            title="Fresh bread",
            description="Two crates of sourdough from today",
            category="bakery",
            quantity=12,
            quantity_unit="loaves",
            pickup_address="12 Baker Street",
            image_urls=["https://img.example.org/bread.jpg"],
            expiry_date=clock() + timedelta(days=2),
        )
        fields.update(overrides)
        return DonationCreate(**fields)

    return _data


@pytest.fixture
async def donor(make_user):
    return await make_user("donor", name="Corner Bakery")


@pytest.fixture
async def recipient(make_user):
    return await make_user("recipient", name="Food Bank North")


@pytest.fixture
async def donation(lifecycle, donor, donation_data):
    return await lifecycle.create(donor.id, donation_data())


@pytest.fixture
async def client(aiohttp_client, cfg, session_pool, identity, lifecycle):
    return await aiohttp_client(create_app(cfg, session_pool, identity, lifecycle))


@pytest.fixture
def auth(identity):
    def _headers(uid: str) -> dict:
        return {"Authorization": f"Bearer {identity.issue_token(uid)}"}

    return _headers
