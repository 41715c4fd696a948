from __future__ import annotations

import hashlib
import hmac
import json
import time
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from formlytics.models import Base, Customer, Organization, User

WEBHOOK_SECRET = "pdl_ntfset_test_secret"

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    # One engine per test so the pooled connection never outlives its event loop.
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def billing_user(db_session: AsyncSession) -> User:
    """user_1 in their own organization, linked to provider customer cus_1."""
    organization = Organization(name="Ada's Organization", billing_customer_id="cus_1")
    db_session.add(organization)
    await db_session.flush()

    user = User(id="user_1", email="ada@example.com", name="Ada", organization_id=organization.id)
    db_session.add(user)
    await db_session.flush()

    db_session.add(Customer(customer_id="cus_1", email=user.email, user_id=user.id))
    await db_session.commit()
    return user


class FakeRedis:
    def __init__(self) -> None:
        self.published: list[tuple[str, str]] = []
        self.options: dict = {}
        self.error: Exception | None = None

    async def publish(self, channel: str, message: str) -> int:
        if self.error is not None:
            raise self.error
        self.published.append((channel, message))
        return 1

    async def aclose(self) -> None:
        return None


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    from formlytics.api.routes import webhooks

    fake = FakeRedis()

    def _from_url(url: str, **kwargs) -> FakeRedis:  # noqa: ANN003
        fake.options = kwargs
        return fake

    monkeypatch.setattr(webhooks.redis, "from_url", _from_url)
    return fake


def subscription_event(
    event_type: str = "subscription.created",
    *,
    subscription_id: str = "sub_1",
    status: str = "active",
    price_id: str | None = "pri_basic_month",
    customer_id: str = "cus_1",
    user_id: str | None = "user_1",
) -> dict:
    items = [{"price": {"id": price_id, "productId": "prod_1"}}] if price_id else []
    return {
        "eventType": event_type,
        "data": {
            "id": subscription_id,
            "status": status,
            "items": items,
            "customerId": customer_id,
            "customData": {"userId": user_id} if user_id else None,
        },
    }


def sign_notification(raw_body: bytes, secret: str, timestamp: int) -> str:
    """Paddle-Signature header value for a body, as Paddle computes it."""
    payload = f"{timestamp}:".encode("utf-8") + raw_body
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return f"ts={timestamp};h1={digest}"


def signed_headers(raw_body: bytes, secret: str = WEBHOOK_SECRET) -> dict[str, str]:
    return {"Paddle-Signature": sign_notification(raw_body, secret, int(time.time()))}


def encode(payload: dict) -> bytes:
    return json.dumps(payload).encode("utf-8")
