"""Abandoned-cart detection.

Each tick looks at recent product views, groups them by user and sends one
reminder per user that has not been reminded within the cooldown window:

    Viewed → Candidate → Reminded → (cooldown expires) → Candidate

A recorded sms message is the only "reminded" signal. Users are processed
one at a time so the cooldown check and the record insert for a user never
interleave with another tick's work on the same user.
"""

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import structlog

from cart_recovery.config import Settings
from cart_recovery.exceptions import (
    CartRecoveryError,
    GenerationError,
    PersistenceError,
    SchedulerAbort,
)
from cart_recovery.infrastructure.database.models import MessageType
from cart_recovery.infrastructure.database.repository import (
    CartRecoveryRepository,
    RecentView,
)
from cart_recovery.infrastructure.redis import CacheService
from cart_recovery.services.reminder_dispatcher import ReminderDispatcher, display_name
from cart_recovery.services.urgency import (
    classify_urgency,
    minutes_between,
    unique_in_order,
)
from shared.constants import LAST_SCAN_CACHE_KEY, LAST_SCAN_TTL_SECONDS, SCAN_LOCK_KEY

logger = structlog.get_logger()


class OutcomeStatus(str, Enum):
    """Per-user result of a tick."""

    PROCESSED = "processed"
    SKIPPED_COOLDOWN = "skipped_cooldown"
    SKIPPED_ERROR = "skipped_error"


@dataclass
class UserOutcome:
    user_id: str
    status: OutcomeStatus
    urgency: str | None = None
    product_ids: list[str] = field(default_factory=list)
    message_id: str | None = None
    delivered: bool = False
    delivery_error: str | None = None
    reason: str | None = None


@dataclass
class TickSummary:
    """Counts and per-user outcomes for one scan tick."""

    tick_id: str
    started_at: datetime
    finished_at: datetime | None = None
    users_scanned: int = 0
    users_skipped_cooldown: int = 0
    users_skipped_error: int = 0
    users_processed: int = 0
    messages_recorded: int = 0
    deliveries_sent: int = 0
    deliveries_failed: int = 0
    dry_run: bool = True
    aborted: bool = False
    skipped_overlap: bool = False
    error: str | None = None
    outcomes: list[UserOutcome] = field(default_factory=list)

    def add(self, outcome: UserOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status is OutcomeStatus.SKIPPED_COOLDOWN:
            self.users_skipped_cooldown += 1
        elif outcome.status is OutcomeStatus.SKIPPED_ERROR:
            self.users_skipped_error += 1
        else:
            self.users_processed += 1
            if outcome.message_id:
                self.messages_recorded += 1
            if outcome.delivered:
                self.deliveries_sent += 1
            if outcome.delivery_error:
                self.deliveries_failed += 1

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        data["outcomes"] = [
            {**asdict(outcome), "status": outcome.status.value} for outcome in self.outcomes
        ]
        return data


def group_by_user(views: list[RecentView]) -> dict[str, list[RecentView]]:
    """Group views by user id, keeping first-seen user order."""
    groups: dict[str, list[RecentView]] = {}
    for view in views:
        groups.setdefault(view.user_id, []).append(view)
    return groups


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AbandonmentScanner:
    """Periodic scan that turns recent product views into SMS reminders."""

    def __init__(
        self,
        repository: CartRecoveryRepository,
        dispatcher: ReminderDispatcher,
        cache: CacheService | None = None,
        detection_window_minutes: int = 30,
        cooldown_minutes: int | None = None,
        pacing_delay_ms: int = 1000,
        lock_ttl_seconds: int = 540,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.repository = repository
        self.dispatcher = dispatcher
        self.cache = cache or CacheService(None)
        self.detection_window = timedelta(minutes=detection_window_minutes)
        self.cooldown_window = timedelta(minutes=cooldown_minutes or detection_window_minutes)
        self.pacing_delay_seconds = pacing_delay_ms / 1000.0
        self.lock_ttl_seconds = lock_ttl_seconds
        self.clock = clock
        self.sleep = sleep
        self._tick_in_progress = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        repository: CartRecoveryRepository,
        dispatcher: ReminderDispatcher,
        cache: CacheService | None = None,
    ) -> "AbandonmentScanner":
        return cls(
            repository,
            dispatcher,
            cache=cache,
            detection_window_minutes=settings.abandonment_window_minutes,
            cooldown_minutes=settings.cooldown_minutes,
            pacing_delay_ms=settings.reminder_pacing_delay_ms,
            lock_ttl_seconds=settings.scan_lock_ttl_seconds,
        )

    @property
    def tick_in_progress(self) -> bool:
        return self._tick_in_progress

    async def run_tick(self, now: datetime | None = None) -> TickSummary:
        """
        Run one scan to completion and return its summary.

        Overlapping calls (same process, or another process while the Redis
        lock is held) return immediately with skipped_overlap set.
        """
        now = now or self.clock()
        summary = TickSummary(
            tick_id=uuid.uuid4().hex[:12],
            started_at=now,
            dry_run=self.dispatcher.dry_run,
        )

        if self._tick_in_progress:
            logger.warning("Scan already in progress, skipping tick")
            summary.skipped_overlap = True
            summary.finished_at = now
            return summary

        self._tick_in_progress = True
        try:
            lock_token = await self.cache.acquire_lock(SCAN_LOCK_KEY, self.lock_ttl_seconds)
            if lock_token is None:
                logger.warning("Scan lock held elsewhere, skipping tick")
                summary.skipped_overlap = True
                summary.finished_at = now
                return summary

            try:
                with structlog.contextvars.bound_contextvars(tick_id=summary.tick_id):
                    await self._scan(summary, now)
            finally:
                await self.cache.release_lock(SCAN_LOCK_KEY, lock_token)
        finally:
            self._tick_in_progress = False

        summary.finished_at = self.clock()
        await self.cache.set(LAST_SCAN_CACHE_KEY, summary.to_dict(), ttl_seconds=LAST_SCAN_TTL_SECONDS)
        return summary

    async def last_summary(self) -> dict[str, Any] | None:
        return await self.cache.get(LAST_SCAN_CACHE_KEY)

    async def _scan(self, summary: TickSummary, now: datetime) -> None:
        logger.info("Checking for abandoned carts", now=now.isoformat())

        try:
            groups = await self._fetch_groups(now)
        except SchedulerAbort as e:
            logger.error("Abandoned cart check aborted", error=e.message, details=e.details)
            summary.aborted = True
            summary.error = e.message
            return

        if not groups:
            logger.info("No recent product views found")
            return

        for index, (user_id, views) in enumerate(groups.items()):
            if index > 0 and self.pacing_delay_seconds > 0:
                await self.sleep(self.pacing_delay_seconds)
            summary.users_scanned += 1
            summary.add(await self._process_user(user_id, views, now))

        logger.info(
            "Abandoned cart check complete",
            users_scanned=summary.users_scanned,
            users_skipped_cooldown=summary.users_skipped_cooldown,
            users_skipped_error=summary.users_skipped_error,
            users_processed=summary.users_processed,
            messages_recorded=summary.messages_recorded,
        )

    async def _fetch_groups(self, now: datetime) -> dict[str, list[RecentView]]:
        detection_cutoff = now - self.detection_window
        try:
            views = await self.repository.list_recent_views(detection_cutoff)
        except PersistenceError as e:
            raise SchedulerAbort("Error fetching recent views", details=e.details) from e

        # A reminder needs a deliverable identity
        views = [view for view in views if view.email]
        logger.info("Found recent product views", count=len(views))
        return group_by_user(views)

    async def _process_user(
        self, user_id: str, views: list[RecentView], now: datetime
    ) -> UserOutcome:
        log = logger.bind(user_id=user_id)
        try:
            return await self._remind_user(user_id, views, now, log)
        except GenerationError as e:
            log.error("Message generation failed, skipping user", error=e.message)
            return UserOutcome(user_id, OutcomeStatus.SKIPPED_ERROR, reason=e.message)
        except CartRecoveryError as e:
            log.error("Error processing user", error=e.message, details=e.details)
            return UserOutcome(user_id, OutcomeStatus.SKIPPED_ERROR, reason=e.message)
        except Exception as e:
            log.exception("Unexpected error processing user")
            return UserOutcome(user_id, OutcomeStatus.SKIPPED_ERROR, reason=str(e))

    async def _remind_user(
        self,
        user_id: str,
        views: list[RecentView],
        now: datetime,
        log,
    ) -> UserOutcome:
        cooldown_cutoff = now - self.cooldown_window
        recent_reminders = await self.repository.list_reminders(
            user_id, MessageType.SMS, cooldown_cutoff
        )
        if recent_reminders:
            log.info("Skipping user, already sent reminder recently")
            return UserOutcome(user_id, OutcomeStatus.SKIPPED_COOLDOWN)

        oldest = min(view.timestamp for view in views)
        urgency = classify_urgency(minutes_between(oldest, now))

        product_ids = unique_in_order([view.product_id for view in views])
        product_names = unique_in_order([view.product_name for view in views])
        first = views[0]

        result = await self.dispatcher.dispatch(
            user_id=user_id,
            name=display_name(first.full_name, first.email),
            phone=first.phone,
            product_text=", ".join(product_names),
            urgency=urgency,
            link=self.dispatcher.checkout_link(product_ids, user_id),
            now=now,
        )
        log.info("Generated reminder", urgency=urgency.value, content=result.content)

        return UserOutcome(
            user_id=user_id,
            status=OutcomeStatus.PROCESSED,
            urgency=urgency.value,
            product_ids=product_ids,
            message_id=result.reminder.id if result.reminder else None,
            delivered=result.delivered,
            delivery_error=result.delivery_error,
        )
