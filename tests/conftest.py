"""Pytest fixtures for distributor portal tests."""

import asyncio
from collections.abc import AsyncGenerator
from datetime import date
from typing import Any
from uuid import UUID

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from distportal.config.settings import NotificationConfig, Settings
from distportal.db.config import get_db
from distportal.db.models import (
    AccountStatus,
    Base,
    ContentStatus,
    Customer,
    Device,
    Distributor,
    ReleaseStatus,
    SoftwareRelease,
    SoftwareReleaseDevice,
    SoftwareReleaseDistributor,
    User,
)
from distportal.notifications.email import DeliveryResult
from distportal.sharing import binding_for
from distportal.utils.exceptions import EmailDeliveryError

API_KEY = "test-api-secret-0123456789abcdef0123"


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    create_app() configures structlog globally; this keeps tests independent.
    """
    yield
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Email
# =============================================================================


class FakeEmailClient:
    """In-process email client recording every delivery.

    Addresses can be configured to be rejected by the provider, to be
    unreachable (raises), or to hang past the send timeout.
    """

    def __init__(self):
        self.sent: list[dict[str, str]] = []
        self.rejected: set[str] = set()
        self.unreachable: set[str] = set()
        self.slow: set[str] = set()
        self.closed = False

    async def send(self, to: str, subject: str, html: str) -> DeliveryResult:
        if to in self.slow:
            await asyncio.sleep(5)
        if to in self.unreachable:
            raise EmailDeliveryError("Email provider unreachable: connection refused")
        if to in self.rejected:
            return DeliveryResult(ok=False, error="mailbox rejected")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return DeliveryResult(ok=True, message_id=f"msg-{len(self.sent)}")

    async def aclose(self) -> None:
        self.closed = True

    @property
    def recipients(self) -> list[str]:
        return [message["to"] for message in self.sent]


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create settings for testing."""
    return Settings(
        API_SECRET_KEY=SecretStr(API_KEY),
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        ENVIRONMENT="test",
        DEBUG=True,
        log_level="DEBUG",
        portal_base_url="https://portal.example.com",
        notifications=NotificationConfig(send_timeout_seconds=0.2, max_concurrency=3),
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine with a fresh schema for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


class Factory:
    """Builds persisted portal records with sensible defaults."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._serial = 0

    async def _add(self, obj: Any) -> Any:
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def distributor(
        self, company_name: str = "Acme Distribution", **fields: Any
    ) -> Distributor:
        fields.setdefault("status", AccountStatus.ACTIVE)
        return await self._add(Distributor(company_name=company_name, **fields))

    async def user(self, distributor: Distributor, email: str, **fields: Any) -> User:
        fields.setdefault("status", AccountStatus.ACTIVE)
        return await self._add(
            User(distributor_id=distributor.distributor_id, email=email, **fields)
        )

    async def customer(self, distributor: Distributor, **fields: Any) -> Customer:
        fields.setdefault("company_name", "Hospital North")
        return await self._add(Customer(distributor_id=distributor.distributor_id, **fields))

    async def device(self, customer: Customer, **fields: Any) -> Device:
        self._serial += 1
        fields.setdefault("serial_number", f"SN-{self._serial:05d}")
        fields.setdefault("device_name", f"Analyzer {self._serial}")
        fields.setdefault("installation_date", date(2025, 1, 15))
        return await self._add(Device(customer_id=customer.customer_id, **fields))

    async def release(
        self,
        *,
        distributors: list[Distributor] = (),
        devices: list[Device] = (),
        **fields: Any,
    ) -> SoftwareRelease:
        fields.setdefault("name", "Analyzer Suite")
        fields.setdefault("version", "2.0.0")
        fields.setdefault("file_url", "https://files.example.com/suite-2.0.0.zip")
        fields.setdefault("file_name", "suite-2.0.0.zip")
        fields.setdefault("status", ReleaseStatus.PUBLISHED)
        if distributors:
            fields.setdefault("target_type", "distributors")
        elif devices:
            fields.setdefault("target_type", "devices")
        release = await self._add(SoftwareRelease(**fields))
        for distributor in distributors:
            self.db.add(
                SoftwareReleaseDistributor(
                    release_id=release.release_id, distributor_id=distributor.distributor_id
                )
            )
        for device in devices:
            self.db.add(
                SoftwareReleaseDevice(release_id=release.release_id, device_id=device.device_id)
            )
        await self.db.flush()
        return release

    async def content(
        self,
        kind: str,
        *,
        allowed: list[Distributor] = (),
        status: ContentStatus | str = ContentStatus.PUBLISHED,
        **fields: Any,
    ) -> Any:
        binding = binding_for(kind)
        label = "name" if hasattr(binding.model, "name") else "title"
        fields.setdefault(label, f"Sample {binding.kind.value}")
        item = await self._add(binding.model(status=status, **fields))
        for distributor in allowed:
            self.db.add(binding.allow_row(binding.identify(item), distributor.distributor_id))
        await self.db.flush()
        return item


@pytest.fixture
def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


# =============================================================================
# API test fixtures
# =============================================================================


@pytest.fixture
def test_app(
    test_settings: Settings, db_session: AsyncSession, email_client: FakeEmailClient
) -> FastAPI:
    """Create a FastAPI test application bound to the test session."""
    from distportal.api.app import create_app

    app = create_app(settings=test_settings, email_client=email_client)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated async HTTP client calling the app in-process."""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client


@pytest_asyncio.fixture
async def authenticated_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Client carrying the API key only, i.e. an internal service caller."""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {API_KEY}"},
    ) as client:
        yield client


@pytest.fixture
def as_user():
    """Build request headers acting on behalf of a portal user."""

    def headers(user: User | UUID) -> dict[str, str]:
        user_id = user if isinstance(user, UUID) else user.user_id
        return {"X-User-ID": str(user_id)}

    return headers
