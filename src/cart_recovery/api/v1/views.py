"""Product view tracking API endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from cart_recovery.dependencies import get_view_recorder
from cart_recovery.exceptions import NotFoundError, ValidationError
from cart_recovery.services.view_recorder import ViewRecorder

router = APIRouter()


# =============================================================================
# Models
# =============================================================================


class TrackedView(BaseModel):
    view_id: str
    user_id: str | None
    product_id: str
    timestamp: str


class TrackViewResponse(BaseModel):
    """Response after recording a product view."""

    success: bool
    message: str
    data: TrackedView


class ViewDetail(BaseModel):
    view_id: str
    user_id: str | None
    product_id: str
    product_name: str
    timestamp: str


# =============================================================================
# Endpoints
# =============================================================================


async def _json_object(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON") from None
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


@router.post("", response_model=TrackViewResponse)
async def track_view(
    request: Request,
    recorder: ViewRecorder = Depends(get_view_recorder),
) -> TrackViewResponse:
    """
    Track a single product view.

    **Body:**
    - `product_id` (required): storefront product identifier
    - `product_name` (required): product name as shown to the shopper
    - `user_email` (optional): shopper email; anonymous views are stored
      but never produce a reminder
    - `timestamp` (optional): ISO 8601 instant, defaults to now
    - `user_phone` (optional): E.164 phone, stored when the user is first created

    **Errors:**
    - 400 `{error}` for invalid input
    - 500 `{error, details}` when the view cannot be stored
    """
    payload = await _json_object(request)

    recorded = await recorder.record(
        product_id=payload.get("product_id"),
        product_name=payload.get("product_name"),
        email=payload.get("user_email"),
        timestamp=payload.get("timestamp"),
        phone=payload.get("user_phone"),
    )

    return TrackViewResponse(
        success=True,
        message="Product view tracked successfully",
        data=TrackedView(**recorded.to_dict()),
    )


@router.get("/{view_id}", response_model=ViewDetail)
async def get_view(
    view_id: str,
    recorder: ViewRecorder = Depends(get_view_recorder),
) -> ViewDetail:
    """Read back a stored product view."""
    view = await recorder.get_view(view_id)
    if view is None:
        raise NotFoundError("Product view not found")

    return ViewDetail(
        view_id=view.id,
        user_id=view.user_id,
        product_id=view.product_id,
        product_name=view.product_name,
        timestamp=view.timestamp.isoformat(),
    )
