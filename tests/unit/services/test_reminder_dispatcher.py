"""Unit tests for manual reminder dispatch."""

import pytest

from cart_recovery.exceptions import NotFoundError, ValidationError
from cart_recovery.infrastructure.database.repository import ProductRecord
from cart_recovery.services.reminder_dispatcher import display_name


def test_display_name_prefers_full_name() -> None:
    assert display_name(" Jane Doe ", "jane@x.com") == "Jane Doe"
    assert display_name(None, "jane@x.com") == "jane"
    assert display_name("  ", "jane@x.com") == "jane"


class TestSendReminder:
    @pytest.fixture(autouse=True)
    def catalog(self, repository) -> None:
        repository.products["p1"] = ProductRecord("p1", "Widget")
        repository.products["p2"] = ProductRecord("p2", "Gadget")

    @pytest.mark.asyncio
    async def test_sends_and_records(self, repository, composer, sms_sender, make_dispatcher) -> None:
        user_id = repository.add_user("a@x.com", phone="+15550004444")

        result = await make_dispatcher().send_reminder("a@x.com", ["p2", "p1", "p2"], "high")

        assert result.delivered is True
        assert result.receipt_id == "SM0001"
        assert sms_sender.sent == [("+15550004444", result.content)]
        assert repository.reminders[0].user_id == user_id
        assert composer.calls[0]["product_text"] == "Gadget, Widget"
        assert composer.calls[0]["link"].endswith(f"?products=p2,p1&user={user_id}")

    @pytest.mark.asyncio
    async def test_unknown_products_are_dropped(self, repository, composer, make_dispatcher) -> None:
        repository.add_user("a@x.com")

        await make_dispatcher(dry_run=True).send_reminder("a@x.com", ["p1", "nope"])

        assert composer.calls[0]["product_text"] == "Widget"

    @pytest.mark.asyncio
    async def test_unknown_user(self, make_dispatcher) -> None:
        with pytest.raises(NotFoundError, match="User not found"):
            await make_dispatcher().send_reminder("ghost@x.com", ["p1"])

    @pytest.mark.asyncio
    async def test_no_known_products(self, repository, make_dispatcher) -> None:
        repository.add_user("a@x.com")
        with pytest.raises(NotFoundError, match="No products found"):
            await make_dispatcher().send_reminder("a@x.com", ["nope"])

    @pytest.mark.asyncio
    async def test_empty_product_ids(self, make_dispatcher) -> None:
        with pytest.raises(ValidationError):
            await make_dispatcher().send_reminder("a@x.com", [])

    @pytest.mark.asyncio
    async def test_bad_urgency(self, make_dispatcher) -> None:
        with pytest.raises(ValidationError, match="urgency"):
            await make_dispatcher().send_reminder("a@x.com", ["p1"], "extreme")
