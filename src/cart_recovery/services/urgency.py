"""Urgency tiers and checkout link helpers for reminders."""

from datetime import datetime
from enum import Enum
from urllib.parse import quote

from shared.constants import URGENCY_HIGH_AFTER_MINUTES, URGENCY_MEDIUM_AFTER_MINUTES


class UrgencyLevel(str, Enum):
    """How pressing the reminder tone should be."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def classify_urgency(age_minutes: float) -> UrgencyLevel:
    """Map minutes since the oldest recent view to a tier.

    Lower bounds are exclusive: exactly 15 is low, exactly 20 is medium.
    """
    if age_minutes > URGENCY_HIGH_AFTER_MINUTES:
        return UrgencyLevel.HIGH
    if age_minutes > URGENCY_MEDIUM_AFTER_MINUTES:
        return UrgencyLevel.MEDIUM
    return UrgencyLevel.LOW


def minutes_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / 60.0


def build_checkout_link(
    shop_url: str, checkout_path: str, product_ids: list[str], user_id: str
) -> str:
    """Checkout URL carrying the viewed product ids and the user id."""
    products = ",".join(quote(pid, safe="") for pid in product_ids)
    path = checkout_path if checkout_path.startswith("/") else f"/{checkout_path}"
    return f"{shop_url.rstrip('/')}{path}?products={products}&user={quote(user_id, safe='')}"


def unique_in_order(values: list[str]) -> list[str]:
    """Drop repeats, keeping the first occurrence of each value."""
    return list(dict.fromkeys(values))
