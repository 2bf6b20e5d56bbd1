"""Mock SMS sender for testing and development."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import structlog

from cart_recovery.services.sms_sender import require_destination

logger = structlog.get_logger()


class MockSMSSender:
    """
    Mock SMS service for testing and development.

    Stores sent messages to filesystem for inspection instead of
    actually sending them. Switch SMS_PROVIDER to "twilio" in production.
    """

    def __init__(self, storage_path: str | None = None):
        """
        Initialize the mock SMS sender.

        Args:
            storage_path: Directory to store mock messages.
                         Defaults to /tmp/cart_recovery_mock_sms
        """
        self.storage_path = Path(storage_path or "/tmp/cart_recovery_mock_sms")
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.sent_messages: list[dict[str, Any]] = []

    async def send_sms(self, to_number: str, body: str) -> str:
        """
        Simulate sending an SMS.

        Args:
            to_number: Recipient phone number
            body: Message text

        Returns:
            str: Simulated message id
        """
        require_destination(to_number, body)

        message_id = f"MOCK{uuid4().hex}"
        timestamp = datetime.now(timezone.utc)

        record = {
            "message_id": message_id,
            "to_number": to_number,
            "body": body,
            "sent_at": timestamp.isoformat(),
            "status": "sent",
        }

        self.sent_messages.append(record)

        filename = f"{timestamp.strftime('%Y%m%d_%H%M%S')}_{message_id}.json"
        filepath = self.storage_path / filename

        with open(filepath, "w") as f:
            json.dump(record, f, indent=2)

        logger.info(
            "Mock SMS sent",
            message_id=message_id,
            to_number=to_number,
            stored_at=str(filepath),
        )

        return message_id

    def get_sent_messages(
        self,
        limit: int = 50,
        to_number: str | None = None,
    ) -> list[dict[str, Any]]:
        """Retrieve recently sent mock messages, optionally by recipient."""
        messages = self.sent_messages

        if to_number:
            messages = [m for m in messages if m["to_number"] == to_number]

        return messages[-limit:]

    def get_all_stored_messages(self) -> list[dict[str, Any]]:
        messages = []

        for filepath in sorted(self.storage_path.glob("*.json")):
            with open(filepath) as f:
                messages.append(json.load(f))

        return messages

    def clear_stored_messages(self) -> int:
        """
        Clear all stored mock messages.

        Returns:
            int: Number of messages deleted
        """
        count = 0
        for filepath in self.storage_path.glob("*.json"):
            filepath.unlink()
            count += 1

        self.sent_messages.clear()
        logger.info("Cleared mock SMS messages", count=count)

        return count
