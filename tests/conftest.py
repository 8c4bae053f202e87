import os
from typing import AsyncGenerator

# Settings are read at import time; configure the test environment first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["NOTIFICATIONS_ENABLED"] = "false"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.config import enable_sqlite_savepoints

# Import all models so metadata includes every table
from services.partner_service import models as _partner_models  # noqa: F401
from services.partner_service.app.main import app

get_settings.cache_clear()
settings = get_settings()


class RecordingNotifier:
    """Stands in for NotificationClient and remembers what would be sent."""

    def __init__(self):
        self.partner_messages: list[dict] = []
        self.admin_messages: list[dict] = []

    async def notify_partner(self, partner_id, title, message, severity="info"):
        self.partner_messages.append(
            {
                "partner_id": str(partner_id),
                "title": title,
                "message": message,
                "severity": getattr(severity, "value", severity),
            }
        )
        return True

    async def notify_all_admins(self, title, message, severity="info"):
        self.admin_messages.append(
            {
                "title": title,
                "message": message,
                "severity": getattr(severity, "value", severity),
            }
        )
        return True

    def partner_titles(self) -> list[str]:
        return [m["title"] for m in self.partner_messages]


@pytest_asyncio.fixture
async def test_engine():
    """
    A fresh in-memory SQLite database per test.

    StaticPool keeps every session on the one connection that owns the
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def client(db_session, notifier) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with the DB and notification dependencies overridden.

    Tests pick the caller with ``as_partner`` / ``as_admin``.
    """
    from libs.common.notifications import get_notification_client
    from libs.db.session import get_async_db

    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_notification_client] = lambda: notifier

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def make_partner_user(partner_id) -> AuthUser:
    return AuthUser(user_id=str(partner_id), role="partner")


def make_admin_user() -> AuthUser:
    return AuthUser(user_id="admin-user", email="admin@example.com", role="admin")


def override_auth(user: AuthUser) -> None:
    """Authenticate every following request as ``user``.

    ``require_partner`` and ``require_admin`` both build on
    ``get_current_user``, so overriding it covers all three.
    """
    from libs.auth.dependencies import get_current_user

    app.dependency_overrides[get_current_user] = lambda: user


@pytest.fixture
def as_partner():
    return lambda partner: override_auth(make_partner_user(partner.id))


@pytest.fixture
def as_admin():
    return lambda: override_auth(make_admin_user())
