"""Abandoned-cart reminder endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cart_recovery.dependencies import get_composer, get_dispatcher, get_scanner
from cart_recovery.exceptions import NotFoundError
from cart_recovery.services.abandonment_scanner import AbandonmentScanner
from cart_recovery.services.message_composer import MessageComposer
from cart_recovery.services.reminder_dispatcher import ReminderDispatcher
from cart_recovery.services.urgency import UrgencyLevel
from shared.constants import DEFAULT_VARIATIONS, MAX_VARIATIONS

router = APIRouter()


# =============================================================================
# Models
# =============================================================================


class PreviewRequest(BaseModel):
    """Request model for generating reminder text without sending it."""

    name: str = Field(..., min_length=1, description="Customer display name")
    product_text: str = Field(..., min_length=1, description="Product name(s), comma-joined")
    urgency: UrgencyLevel = UrgencyLevel.MEDIUM
    link: str | None = Field(None, description="Checkout link to include")
    template: str | None = Field(
        None,
        description="Optional template such as 'Hey {name}! Your {product} is waiting: {link}'",
    )
    variations: int = Field(DEFAULT_VARIATIONS, ge=1, le=MAX_VARIATIONS)


class PreviewResponse(BaseModel):
    urgency: UrgencyLevel
    messages: list[str]


class SendReminderRequest(BaseModel):
    """Request model for a manual reminder to a known user."""

    email: str = Field(..., description="Email of an existing user")
    product_ids: list[str] = Field(..., min_length=1, max_length=50)
    urgency: UrgencyLevel = UrgencyLevel.MEDIUM


class SendReminderResponse(BaseModel):
    success: bool
    content: str
    message_id: str | None
    dry_run: bool
    delivered: bool
    receipt_id: str | None
    delivery_error: str | None


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/scan")
async def run_scan(
    scanner: AbandonmentScanner = Depends(get_scanner),
) -> dict[str, Any]:
    """
    Run one abandoned-cart scan now and return its summary.

    The scheduled worker runs the same tick on a fixed interval. If a scan
    is already running the response has `skipped_overlap: true`.
    """
    summary = await scanner.run_tick()
    return summary.to_dict()


@router.get("/scan/last")
async def last_scan(
    scanner: AbandonmentScanner = Depends(get_scanner),
) -> dict[str, Any]:
    """Summary of the most recent scan, from any process sharing Redis."""
    summary = await scanner.last_summary()
    if summary is None:
        raise NotFoundError("No scan summary available")
    return summary


@router.post("/preview", response_model=PreviewResponse)
async def preview_reminder(
    request: PreviewRequest,
    composer: MessageComposer = Depends(get_composer),
) -> PreviewResponse:
    """
    Generate reminder text for A/B comparison. Nothing is sent or recorded.

    With `template` set a single message is generated from it and
    `variations` is ignored.
    """
    if request.template:
        message = await composer.compose_from_template(
            request.name, request.product_text, request.template, request.link
        )
        return PreviewResponse(urgency=request.urgency, messages=[message])

    messages = await composer.compose_variations(
        request.name,
        request.product_text,
        request.urgency,
        request.link,
        variations=request.variations,
    )
    return PreviewResponse(urgency=request.urgency, messages=messages)


@router.post("/send", response_model=SendReminderResponse)
async def send_reminder(
    request: SendReminderRequest,
    dispatcher: ReminderDispatcher = Depends(get_dispatcher),
) -> SendReminderResponse:
    """
    Compose, deliver and record a reminder for a known user right away.

    The cooldown is not checked, but the recorded message does arm it for
    the next scheduled scan. Delivery honours the dry-run setting.
    """
    result = await dispatcher.send_reminder(request.email, request.product_ids, request.urgency)
    return SendReminderResponse(success=True, **result.to_dict())
