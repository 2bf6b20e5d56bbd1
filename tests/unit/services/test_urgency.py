"""Unit tests for urgency tiers and checkout links."""

from datetime import datetime, timedelta, timezone

import pytest

from cart_recovery.services.urgency import (
    UrgencyLevel,
    build_checkout_link,
    classify_urgency,
    minutes_between,
    unique_in_order,
)


@pytest.mark.parametrize(
    "age_minutes, expected",
    [
        (0, UrgencyLevel.LOW),
        (14, UrgencyLevel.LOW),
        (15, UrgencyLevel.LOW),
        (15.01, UrgencyLevel.MEDIUM),
        (20, UrgencyLevel.MEDIUM),
        (20.01, UrgencyLevel.HIGH),
        (35, UrgencyLevel.HIGH),
    ],
)
def test_classify_urgency(age_minutes: float, expected: UrgencyLevel) -> None:
    assert classify_urgency(age_minutes) is expected


def test_minutes_between_is_fractional() -> None:
    start = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
    assert minutes_between(start, start + timedelta(minutes=15, seconds=30)) == 15.5


def test_checkout_link_lists_products_and_user() -> None:
    link = build_checkout_link("https://shop.example.com/", "checkout", ["p1", "p2"], "u-1")
    assert link == "https://shop.example.com/checkout?products=p1,p2&user=u-1"


def test_checkout_link_escapes_ids() -> None:
    link = build_checkout_link("https://shop.example.com", "/checkout", ["a b", "c&d"], "u")
    assert "products=a%20b,c%26d" in link


def test_unique_in_order() -> None:
    assert unique_in_order(["p2", "p1", "p2", "p3", "p1"]) == ["p2", "p1", "p3"]
