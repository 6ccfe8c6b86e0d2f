"""
Pytest fixtures for test database, client, users and events.

Tests run against a throwaway SQLite database (aiosqlite). Tables are created
and dropped around every test; Redis is disabled and Stripe is replaced by an
in-process fake.
"""

import hashlib
import hmac
import os
import time
from datetime import timedelta
from typing import AsyncGenerator

# Settings are read once at import time, so configure them before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_macsync.db"
os.environ["REDIS_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_fake"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ.pop("SMTP_HOST", None)

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from macsync.main import app
from macsync.db.base import Base
from macsync.db.session import get_db
from macsync.core.clock import utcnow
from macsync.core.security import create_access_token, hash_password
from macsync.models import User, UserRole, Event
from macsync.services import payment_gateway
from macsync.services.role_service import ensure_default_roles

TEST_DATABASE_URL = os.environ["DATABASE_URL"]
WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
PASSWORD = "testpassword123"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


# pysqlite defers BEGIN on its own, which breaks SAVEPOINT; emit it ourselves
@event.listens_for(test_engine.sync_engine, "connect")
def _disable_driver_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(test_engine.sync_engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client that overrides the DB dependency with the test session.

    Each request runs in a SAVEPOINT: a failed request rolls back its own
    writes, a successful one is committed, as with the real get_db.
    """

    async def override_get_db():
        async with db_session.begin_nested():
            yield db_session
        await db_session.commit()

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def roles(db_session: AsyncSession) -> dict:
    created = await ensure_default_roles(db_session)
    await db_session.commit()
    return {role.name: role for role in created}


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession, roles: dict):
    """Factory for users with a complete profile, a known password and the given roles."""

    async def _make_user(email: str, role_names=("Member",), **fields) -> User:
        fields.setdefault("first_name", "Test")
        fields.setdefault("last_name", "User")
        fields.setdefault("name", f"{fields['first_name']} {fields['last_name']}")
        fields.setdefault("phone_number", "+19055551234")
        fields.setdefault("program", "Software Engineering")
        user = User(email=email, password_hash=hash_password(PASSWORD), **fields)
        for name in role_names:
            user.user_roles.append(UserRole(role=roles[name]))
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


def auth_headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest_asyncio.fixture
async def member(make_user) -> User:
    return await make_user("member@mcmaster.ca")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user("admin@mcmaster.ca", role_names=("Admin",), first_name="Ada", last_name="Admin")


@pytest_asyncio.fixture
async def member_headers(member: User) -> dict:
    return auth_headers_for(member)


@pytest_asyncio.fixture
async def admin_headers(admin: User) -> dict:
    return auth_headers_for(admin)


@pytest_asyncio.fixture
async def make_event(db_session: AsyncSession):
    async def _make_event(**fields) -> Event:
        fields.setdefault("name", "Engineering Formal")
        fields.setdefault("description", "Annual formal")
        fields.setdefault("date", utcnow() + timedelta(days=30))
        fields.setdefault("location", "Hamilton Convention Centre")
        fields.setdefault("capacity", 100)
        fields.setdefault("price", 0)
        event = Event(**fields)
        db_session.add(event)
        await db_session.commit()
        await db_session.refresh(event)
        return event

    return _make_event


@pytest_asyncio.fixture
async def free_event(make_event) -> Event:
    return await make_event(name="Welcome Week BBQ", capacity=100)


@pytest_asyncio.fixture
async def paid_event(make_event) -> Event:
    return await make_event(name="Engineering Formal", capacity=2, price=4500)


class FakeStripe:
    """Stands in for the Stripe gateway functions and records what was asked of it."""

    def __init__(self):
        self.sessions = []
        self.refunds = []
        self.refund_status = "succeeded"

    async def create_checkout_session(self, **kwargs) -> dict:
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions.append({"id": session_id, **kwargs})
        return {"id": session_id, "url": f"https://checkout.stripe.com/c/pay/{session_id}"}

    async def retrieve_payment_details(self, session: dict) -> dict:
        return {
            "payment_intent_id": session.get("payment_intent") or "pi_test_1",
            "charge_id": "ch_test_1",
            "amount": session.get("amount_total") or 0,
            "currency": session.get("currency") or "usd",
        }

    async def create_refund(self, payment_intent_id: str, amount: int) -> dict:
        self.refunds.append((payment_intent_id, amount))
        return {"id": f"re_test_{len(self.refunds)}", "status": self.refund_status, "amount": amount}


@pytest.fixture
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    monkeypatch.setattr(payment_gateway, "create_checkout_session", fake.create_checkout_session)
    monkeypatch.setattr(payment_gateway, "retrieve_payment_details", fake.retrieve_payment_details)
    monkeypatch.setattr(payment_gateway, "create_refund", fake.create_refund)
    return fake


def stripe_signature(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header the same way Stripe signs webhook deliveries."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"
