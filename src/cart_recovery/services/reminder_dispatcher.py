"""Compose, deliver and record a single SMS reminder."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog

from cart_recovery.config import Settings
from cart_recovery.exceptions import DeliveryError, NotFoundError, ValidationError
from cart_recovery.infrastructure.database.models import MessageType
from cart_recovery.infrastructure.database.repository import (
    CartRecoveryRepository,
    ReminderRecord,
)
from cart_recovery.services.message_composer import MessageComposer
from cart_recovery.services.urgency import UrgencyLevel, build_checkout_link, unique_in_order

logger = structlog.get_logger()


class SMSSender(Protocol):
    async def send_sms(self, to_number: str, body: str) -> str: ...


def display_name(full_name: str | None, email: str) -> str:
    """Full name when known, otherwise the local part of the email."""
    if full_name and full_name.strip():
        return full_name.strip()
    return email.split("@")[0]


@dataclass
class DispatchResult:
    """What happened to one reminder after composition."""

    content: str
    reminder: ReminderRecord | None
    dry_run: bool
    receipt_id: str | None = None
    delivery_error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.receipt_id is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "message_id": self.reminder.id if self.reminder else None,
            "dry_run": self.dry_run,
            "delivered": self.delivered,
            "receipt_id": self.receipt_id,
            "delivery_error": self.delivery_error,
        }


class ReminderDispatcher:
    """Runs compose → deliver (or dry-run) → record for one user."""

    def __init__(
        self,
        repository: CartRecoveryRepository,
        composer: MessageComposer,
        sms_sender: SMSSender,
        shop_url: str,
        checkout_path: str = "/checkout",
        dry_run: bool = True,
        record_undelivered: bool = True,
    ):
        self.repository = repository
        self.composer = composer
        self.sms_sender = sms_sender
        self.shop_url = shop_url
        self.checkout_path = checkout_path
        self.dry_run = dry_run
        self.record_undelivered = record_undelivered

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        repository: CartRecoveryRepository,
        composer: MessageComposer,
        sms_sender: SMSSender,
    ) -> "ReminderDispatcher":
        return cls(
            repository,
            composer,
            sms_sender,
            shop_url=settings.shop_url,
            checkout_path=settings.checkout_path,
            dry_run=settings.reminder_dry_run,
            record_undelivered=settings.reminder_record_undelivered,
        )

    def checkout_link(self, product_ids: list[str], user_id: str) -> str:
        return build_checkout_link(self.shop_url, self.checkout_path, product_ids, user_id)

    async def dispatch(
        self,
        user_id: str,
        name: str,
        phone: str | None,
        product_text: str,
        urgency: UrgencyLevel,
        link: str,
        now: datetime,
    ) -> DispatchResult:
        """
        Generate, send and log one reminder.

        A delivery failure does not stop the reminder from being recorded
        unless record_undelivered is off, in which case nothing is written
        and the user stays eligible for the next scan.

        Raises:
            GenerationError: Composition failed; nothing was sent or recorded
            PersistenceError: The reminder record could not be written
        """
        content = await self.composer.compose(name, product_text, urgency, link)
        result = DispatchResult(content=content, reminder=None, dry_run=self.dry_run)

        if self.dry_run:
            logger.info("Dry run: would send SMS", user_id=user_id, phone=phone, content=content)
        else:
            try:
                if not phone:
                    raise DeliveryError("No phone number on file")
                result.receipt_id = await self.sms_sender.send_sms(phone, content)
            except (DeliveryError, ValidationError) as e:
                result.delivery_error = e.message
                logger.warning(
                    "SMS delivery failed",
                    user_id=user_id,
                    error=e.message,
                    details=e.details,
                )

        if result.delivery_error and not self.record_undelivered:
            logger.info("Reminder not recorded, delivery unconfirmed", user_id=user_id)
            return result

        result.reminder = await self.repository.create_reminder(
            user_id=user_id,
            message_type=MessageType.SMS,
            content=content,
            sent_at=now,
        )
        logger.info("Reminder logged", user_id=user_id, message_id=result.reminder.id)
        return result

    async def send_reminder(
        self,
        email: str,
        product_ids: list[str],
        urgency: UrgencyLevel | str = UrgencyLevel.MEDIUM,
    ) -> DispatchResult:
        """Send a reminder to a known user for specific products, ignoring cooldown."""
        if not product_ids:
            raise ValidationError("product_ids must not be empty")
        try:
            level = UrgencyLevel(urgency)
        except ValueError:
            raise ValidationError('urgency must be "low", "medium", or "high"') from None

        user = await self.repository.find_user_by_email(email)
        if user is None:
            raise NotFoundError("User not found")

        product_ids = unique_in_order(product_ids)
        products = await self.repository.get_products(product_ids)
        if not products:
            raise NotFoundError("No products found")

        return await self.dispatch(
            user_id=user.id,
            name=display_name(user.full_name, user.email),
            phone=user.phone,
            product_text=", ".join(unique_in_order([p.name for p in products])),
            urgency=level,
            link=self.checkout_link([p.id for p in products], user.id),
            now=datetime.now(timezone.utc),
        )
