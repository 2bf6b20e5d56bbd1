"""Product view recording.

Validates one view event, resolves the user and product it refers to and
stores it. User and product resolution are best effort: a failure there is
logged and the view is stored without that reference. Only a failed view
insert is surfaced to the caller.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

from cart_recovery.exceptions import PersistenceError, ValidationError
from cart_recovery.infrastructure.database.repository import (
    CartRecoveryRepository,
    ViewRecord,
)
from shared.constants import (
    EMAIL_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    PRODUCT_ID_MAX_LENGTH,
    PRODUCT_NAME_MAX_LENGTH,
)

logger = structlog.get_logger()

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class RecordedView:
    view_id: str
    user_id: str | None
    product_id: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "view_id": self.view_id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "timestamp": self.timestamp.isoformat(),
        }


def check_length(value: str, field: str, max_length: int) -> str:
    if len(value) > max_length:
        raise ValidationError(f"Invalid {field}: must be at most {max_length} characters")
    return value


def validate_required_text(value: Any, field: str, max_length: int) -> str:
    if value is None or value == "":
        raise ValidationError(f"Missing required field: {field} is required")
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {field}: must be a non-empty string")
    return check_length(value, field, max_length)


def validate_email(value: Any) -> str:
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
        raise ValidationError("Invalid email format")
    return check_length(value, "user_email", EMAIL_MAX_LENGTH)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    if not isinstance(value, str):
        raise ValidationError(
            "Invalid timestamp format. Use ISO 8601 format (e.g., 2024-01-01T12:00:00.000Z)"
        )
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(
            "Invalid timestamp format. Use ISO 8601 format (e.g., 2024-01-01T12:00:00.000Z)"
        ) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class ViewRecorder:
    """Validates and persists product view events."""

    def __init__(self, repository: CartRecoveryRepository):
        self.repository = repository

    async def record(
        self,
        product_id: Any,
        product_name: Any,
        email: Any = None,
        timestamp: Any = None,
        phone: Any = None,
    ) -> RecordedView:
        """
        Record a product view.

        Args:
            product_id: Storefront product identifier
            product_name: Product name at view time
            email: Optional shopper email; anonymous views are allowed
            timestamp: Optional ISO-8601 instant, defaults to now
            phone: Optional shopper phone, stored only when the user is created

        Returns:
            RecordedView: Identifiers of the stored view

        Raises:
            ValidationError: On invalid input
            PersistenceError: When the view itself cannot be stored
        """
        product_id = validate_required_text(product_id, "product_id", PRODUCT_ID_MAX_LENGTH)
        product_name = validate_required_text(
            product_name, "product_name", PRODUCT_NAME_MAX_LENGTH
        )

        occurred_at = (
            parse_timestamp(timestamp)
            if timestamp not in (None, "")
            else datetime.now(timezone.utc)
        )

        if email not in (None, ""):
            email = validate_email(email)
        else:
            email = None

        if phone is not None and not isinstance(phone, str):
            raise ValidationError("Invalid user_phone: must be a string")
        if phone:
            check_length(phone, "user_phone", PHONE_MAX_LENGTH)

        user_id = await self._resolve_user(email, phone or None) if email else None
        await self._resolve_product(product_id, product_name)

        view = await self.repository.create_view(
            user_id=user_id,
            product_id=product_id,
            product_name=product_name,
            timestamp=occurred_at,
        )

        logger.info(
            "Product view tracked",
            view_id=view.id,
            user_id=user_id,
            product_id=product_id,
            timestamp=occurred_at.isoformat(),
        )

        return RecordedView(
            view_id=view.id,
            user_id=user_id,
            product_id=product_id,
            timestamp=occurred_at,
        )

    async def get_view(self, view_id: str) -> ViewRecord | None:
        return await self.repository.get_view(view_id)

    async def _resolve_user(self, email: str, phone: str | None) -> str | None:
        try:
            return await self.repository.get_or_create_user(email, phone=phone)
        except PersistenceError as e:
            logger.error("Error handling user, recording view anonymously", error=e.details)
            return None

    async def _resolve_product(self, product_id: str, product_name: str) -> None:
        try:
            await self.repository.get_or_create_product(product_id, product_name)
        except PersistenceError as e:
            logger.error("Error handling product", product_id=product_id, error=e.details)
