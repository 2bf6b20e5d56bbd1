"""Pytest configuration and fixtures."""

import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

import pytest
from fastapi.testclient import TestClient

from cart_recovery.config import Settings, get_settings
from cart_recovery.exceptions import DeliveryError, GenerationError, PersistenceError
from cart_recovery.infrastructure.database.models import MessageType
from cart_recovery.infrastructure.database.repository import (
    ProductRecord,
    RecentView,
    ReminderRecord,
    UserRecord,
    ViewRecord,
)
from cart_recovery.main import create_app
from cart_recovery.services.abandonment_scanner import AbandonmentScanner
from cart_recovery.services.reminder_dispatcher import ReminderDispatcher
from cart_recovery.services.urgency import UrgencyLevel
from cart_recovery.services.view_recorder import ViewRecorder

T0 = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# In-memory collaborators
# =============================================================================


class FakeRepository:
    """In-memory stand-in for CartRecoveryRepository.

    Methods named in ``fail_on`` raise PersistenceError.
    """

    def __init__(self) -> None:
        self.users: dict[str, UserRecord] = {}
        self.products: dict[str, ProductRecord] = {}
        self.views: list[ViewRecord] = []
        self.reminders: list[ReminderRecord] = []
        self.fail_on: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise PersistenceError(f"{operation} failed", details="connection refused")

    def add_user(
        self, email: str, full_name: str | None = None, phone: str | None = "+15550001111"
    ) -> str:
        user = UserRecord(id=str(uuid.uuid4()), email=email, full_name=full_name, phone=phone)
        self.users[email] = user
        return user.id

    def add_view(self, user_id: str | None, product_id: str, product_name: str, at: datetime) -> None:
        self.views.append(
            ViewRecord(str(uuid.uuid4()), user_id, product_id, product_name, at)
        )

    def add_reminder(self, user_id: str, at: datetime) -> None:
        self.reminders.append(
            ReminderRecord(str(uuid.uuid4()), user_id, MessageType.SMS, "earlier reminder", at)
        )

    async def find_user_by_email(self, email: str) -> UserRecord | None:
        self._check("find_user_by_email")
        return self.users.get(email)

    async def get_or_create_user(self, email: str, phone: str | None = None) -> str:
        self._check("get_or_create_user")
        if email not in self.users:
            return self.add_user(email, phone=phone)
        return self.users[email].id

    async def get_or_create_product(self, product_id: str, name: str) -> ProductRecord:
        self._check("get_or_create_product")
        return self.products.setdefault(product_id, ProductRecord(id=product_id, name=name))

    async def get_products(self, product_ids: list[str]) -> list[ProductRecord]:
        self._check("get_products")
        return [self.products[pid] for pid in product_ids if pid in self.products]

    async def create_view(
        self, user_id: str | None, product_id: str, product_name: str, timestamp: datetime
    ) -> ViewRecord:
        self._check("create_view")
        view = ViewRecord(str(uuid.uuid4()), user_id, product_id, product_name, timestamp)
        self.views.append(view)
        return view

    async def get_view(self, view_id: str) -> ViewRecord | None:
        self._check("get_view")
        return next((view for view in self.views if view.id == view_id), None)

    async def list_recent_views(self, since: datetime) -> list[RecentView]:
        self._check("list_recent_views")
        users_by_id = {user.id: user for user in self.users.values()}
        recent = []
        for view in sorted(self.views, key=lambda v: v.timestamp):
            user = users_by_id.get(view.user_id)
            if user is None or view.timestamp < since:
                continue
            recent.append(
                RecentView(
                    view_id=view.id,
                    user_id=user.id,
                    email=user.email,
                    full_name=user.full_name,
                    phone=user.phone,
                    product_id=view.product_id,
                    product_name=view.product_name,
                    timestamp=view.timestamp,
                )
            )
        return recent

    async def list_latest_views(self, limit: int = 100) -> list[RecentView]:
        self._check("list_latest_views")
        views = await self.list_recent_views(datetime.min.replace(tzinfo=timezone.utc))
        return list(reversed(views))[:limit]

    async def list_reminders(
        self, user_id: str, message_type: MessageType, since: datetime
    ) -> list[ReminderRecord]:
        self._check("list_reminders")
        return [
            r
            for r in self.reminders
            if r.user_id == user_id and r.message_type == message_type and r.sent_at >= since
        ]

    async def create_reminder(
        self, user_id: str, message_type: MessageType, content: str, sent_at: datetime
    ) -> ReminderRecord:
        self._check("create_reminder")
        reminder = ReminderRecord(str(uuid.uuid4()), user_id, message_type, content, sent_at)
        self.reminders.append(reminder)
        return reminder


class FakeComposer:
    """Deterministic composer; names in ``fail_for`` raise GenerationError."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_for: set[str] = set()

    async def compose(self, name, product_text, urgency=UrgencyLevel.MEDIUM, link=None) -> str:
        self.calls.append(
            {"name": name, "product_text": product_text, "urgency": urgency, "link": link}
        )
        if name in self.fail_for:
            raise GenerationError("Message generation failed", details="upstream 500")
        return f"Hi {name}, {product_text} is waiting: {link}"

    async def compose_variations(self, name, product_text, urgency, link=None, variations=3):
        return [f"#{i} {await self.compose(name, product_text, urgency, link)}" for i in range(variations)]

    async def compose_from_template(self, name, product_text, template, link=None) -> str:
        return template.format(name=name, product=product_text, link=link or "")


class FakeSMSSender:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_sms(self, to_number: str, body: str) -> str:
        if self.fail:
            raise DeliveryError("Twilio returned HTTP 500", details="upstream")
        self.sent.append((to_number, body))
        return f"SM{len(self.sent):04d}"


class FakeCache:
    """Dict-backed CacheService with a lock that can be pre-held."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.lock_held = False

    async def get(self, key: str) -> Any | None:
        return self.data.get(key)

    async def set(self, key: str, value: Any, ttl_seconds: int = 300) -> None:
        self.data[key] = value

    async def acquire_lock(self, key: str, ttl_seconds: int) -> str | None:
        return None if self.lock_held else "token"

    async def release_lock(self, key: str, token: str) -> None:
        return None

    async def health_check(self) -> bool:
        return False

    async def close(self) -> None:
        return None


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Get test settings with overrides."""
    return Settings(
        app_env="test",
        debug=True,
        postgres_host="localhost",
        postgres_port=5432,
        postgres_user="test",
        postgres_password="test",
        postgres_db="test_db",
        redis_host="localhost",
        redis_port=6379,
        openai_api_key="test-key",
        shop_url="https://shop.example.com",
        reminder_dry_run=True,
    )


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def composer() -> FakeComposer:
    return FakeComposer()


@pytest.fixture
def sms_sender() -> FakeSMSSender:
    return FakeSMSSender()


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def make_dispatcher(
    repository: FakeRepository, composer: FakeComposer, sms_sender: FakeSMSSender
) -> Callable[..., ReminderDispatcher]:
    def _make(dry_run: bool = False, record_undelivered: bool = True) -> ReminderDispatcher:
        return ReminderDispatcher(
            repository,
            composer,
            sms_sender,
            shop_url="https://shop.example.com",
            checkout_path="/checkout",
            dry_run=dry_run,
            record_undelivered=record_undelivered,
        )

    return _make


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_scanner(
    repository: FakeRepository,
    cache: FakeCache,
    make_dispatcher: Callable[..., ReminderDispatcher],
    sleeps: list[float],
) -> Callable[..., AbandonmentScanner]:
    async def record_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    def _make(
        detection_window_minutes: int = 30,
        cooldown_minutes: int | None = None,
        dry_run: bool = False,
        record_undelivered: bool = True,
        sleep: Callable | None = None,
    ) -> AbandonmentScanner:
        return AbandonmentScanner(
            repository,
            make_dispatcher(dry_run=dry_run, record_undelivered=record_undelivered),
            cache=cache,
            detection_window_minutes=detection_window_minutes,
            cooldown_minutes=cooldown_minutes,
            pacing_delay_ms=1000,
            clock=lambda: T0 + timedelta(minutes=35),
            sleep=sleep or record_sleep,
        )

    return _make


@pytest.fixture
def container(
    test_settings: Settings,
    repository: FakeRepository,
    composer: FakeComposer,
    sms_sender: FakeSMSSender,
    cache: FakeCache,
) -> SimpleNamespace:
    """Service container wired to in-memory collaborators."""
    dispatcher = ReminderDispatcher(
        repository,
        composer,
        sms_sender,
        shop_url=test_settings.shop_url,
        dry_run=True,
    )
    return SimpleNamespace(
        settings=test_settings,
        cache=cache,
        repository=repository,
        composer=composer,
        sms_sender=sms_sender,
        view_recorder=ViewRecorder(repository),
        dispatcher=dispatcher,
        scanner=AbandonmentScanner(repository, dispatcher, cache=cache, pacing_delay_ms=0),
    )


@pytest.fixture
def app(test_settings: Settings, container: SimpleNamespace) -> Any:
    """Create test application."""
    # Override settings
    def get_test_settings() -> Settings:
        return test_settings

    app = create_app()
    app.dependency_overrides[get_settings] = get_test_settings
    # The lifespan is not run by a bare TestClient, so wire services directly
    app.state.container = container
    return app


@pytest.fixture
def client(app: Any) -> TestClient:
    """Create synchronous test client."""
    return TestClient(app)


@pytest.fixture
def sample_view_data() -> dict:
    """Sample track-view request data."""
    return {
        "product_id": "p1",
        "product_name": "Widget",
        "user_email": "a@x.com",
        "timestamp": "2026-03-02T12:00:00Z",
    }


@pytest.fixture
def t0() -> datetime:
    """Reference instant; scanner fixtures tick at t0 + 35 minutes."""
    return T0
