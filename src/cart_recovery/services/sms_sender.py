"""SMS delivery through the Twilio REST API.

Uses Twilio's Messages resource with HTTP Basic Auth (account SID + auth
token). Only the outbound send is needed here.

Endpoint used:
- POST /Accounts/{AccountSid}/Messages.json
"""

import httpx
import structlog

from cart_recovery.config import Settings
from cart_recovery.exceptions import DeliveryError, ValidationError

logger = structlog.get_logger()


def require_destination(to_number: str | None, body: str | None) -> None:
    """Destination and body are caller preconditions, not delivery failures."""
    if not to_number or not body:
        raise ValidationError("to_number and body are required")


class TwilioSMSSender:
    """Send SMS messages via Twilio."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        base_url: str = "https://api.twilio.com/2010-04-01",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "TwilioSMSSender":
        return cls(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_phone_number,
            base_url=settings.twilio_api_base_url,
            timeout_seconds=settings.sms_timeout_seconds,
        )

    @property
    def _configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send_sms(self, to_number: str, body: str) -> str:
        """
        Send one SMS.

        Args:
            to_number: Recipient in E.164 format, e.g. +15551234567
            body: Message text

        Returns:
            str: Twilio message SID

        Raises:
            ValidationError: Missing recipient or body
            DeliveryError: Twilio not configured, rejected the request, or timed out
        """
        require_destination(to_number, body)
        if not self._configured:
            raise DeliveryError("Twilio credentials are not configured")

        url = f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"
        payload = {"To": to_number, "From": self.from_number, "Body": body}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self.transport
            ) as client:
                resp = await client.post(
                    url,
                    data=payload,
                    auth=(self.account_sid, self.auth_token),
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            logger.error("Twilio request timed out", to_number=to_number)
            raise DeliveryError("SMS delivery timed out") from e
        except httpx.HTTPError as e:
            logger.error("Twilio request failed", to_number=to_number, error=str(e))
            raise DeliveryError("SMS delivery failed", details=str(e)) from e

        if not 200 <= resp.status_code < 300:
            logger.error(
                "Twilio rejected SMS",
                to_number=to_number,
                status=resp.status_code,
                response=resp.text[:300],
            )
            raise DeliveryError(f"Twilio returned HTTP {resp.status_code}", details=resp.text[:300])

        try:
            sid = resp.json().get("sid")
        except ValueError as e:
            raise DeliveryError("Twilio returned a non-JSON response", details=resp.text[:300]) from e
        if not sid:
            raise DeliveryError("Twilio response carried no message SID", details=resp.text[:300])

        logger.info("SMS sent", to_number=to_number, sid=sid)
        return sid
