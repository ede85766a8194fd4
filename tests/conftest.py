"""Pytest configuration and fixtures."""

import os

# Webhook signature checks need a real token; tests run without one
os.environ.setdefault("TWILIO_VALIDATE_SIGNATURES", "false")
os.environ.setdefault("REDIS_ENABLED", "false")

import asyncio
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leadline.infrastructure.notifications import NotificationDispatcher
from leadline.infrastructure.transports.base import MessageTransport, TransportOutcome
from leadline.persistence.database import Base, get_db
from leadline.persistence.models import *  # noqa: F401, F403
from leadline.persistence.models.tenant import Tenant


class FakeTransport(MessageTransport):
    """In-memory transport that records every send.

    ``fail`` raises on send, ``delay`` sleeps before answering.
    """

    provider = "fake"

    def __init__(self, configured: bool = True, fail: bool = False, delay: float = 0.0) -> None:
        self._configured = configured
        self.fail = fail
        self.delay = delay
        self.sent: list[dict[str, Any]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def send(self, to: str, content: Any, **kwargs: Any) -> TransportOutcome:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("provider unavailable")
        self.sent.append({"to": to, "content": content, **kwargs})
        return TransportOutcome(success=True, provider=self.provider, provider_message_id=f"fake-{len(self.sent)}")


@pytest.fixture
async def engine():
    """In-memory SQLite engine shared by every session in a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def make_tenant(db_session):
    """Factory for committed tenants."""
    counter = {"n": 0}

    async def _make(**overrides: Any) -> Tenant:
        counter["n"] += 1
        n = counter["n"]
        data = {
            "business_name": f"Acme Plumbing {n}",
            "slug": f"acme{n}",
            "status": "active",
            "twilio_phone_number": f"+1555000{n:04d}",
            "twilio_forward_to": "+15559990000",
            "notification_email": "owner@acme.test",
            "notification_phone": "+15558880000",
        }
        data.update(overrides)
        tenant = Tenant(**data)
        db_session.add(tenant)
        await db_session.commit()
        return tenant

    return _make


@pytest.fixture
async def tenant(make_tenant):
    return await make_tenant()


@pytest.fixture
def email_transport():
    return FakeTransport()


@pytest.fixture
def alert_sms_transport():
    return FakeTransport()


@pytest.fixture
def caller_sms_transport():
    """Transport for SMS sent directly to callers."""
    return FakeTransport()


@pytest.fixture
def dispatcher(email_transport, alert_sms_transport):
    return NotificationDispatcher(
        email_transport=email_transport,
        sms_transport=alert_sms_transport,
        email_enabled=True,
        sms_enabled=True,
        timeout_seconds=1.0,
    )


@pytest.fixture
async def client(db_session, dispatcher, caller_sms_transport):
    """Async HTTP client against the app with database and transports swapped out."""
    from leadline.api.deps import get_notification_dispatcher, get_sms_transport
    from leadline.main import app

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_sms_transport] = lambda: caller_sms_transport

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def fake_transport():
    """The FakeTransport class, for tests that build their own transports."""
    return FakeTransport
