"""Personalized SMS reminder generation via OpenAI chat completions."""

import asyncio
import re

import openai
import structlog
from openai import AsyncOpenAI

from cart_recovery.config import Settings
from cart_recovery.exceptions import GenerationError, ValidationError
from cart_recovery.services.urgency import UrgencyLevel
from shared.constants import (
    DEFAULT_VARIATIONS,
    MAX_VARIATIONS,
    SMS_ELLIPSIS,
    SMS_MAX_LENGTH,
    SMS_TRUNCATE_AT,
)

logger = structlog.get_logger()

URGENCY_PROMPTS = {
    UrgencyLevel.LOW: "gentle and friendly reminder",
    UrgencyLevel.MEDIUM: "moderate urgency with a sense of limited availability",
    UrgencyLevel.HIGH: "high urgency with scarcity messaging and time pressure",
}

URGENCY_TONES = {
    UrgencyLevel.LOW: "friendly, casual, no pressure",
    UrgencyLevel.MEDIUM: "slightly urgent, mention limited stock or time",
    UrgencyLevel.HIGH: "urgent, emphasize scarcity, create FOMO",
}

REMINDER_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates personalized SMS messages for "
    "e-commerce abandoned cart reminders. Keep messages concise, friendly, and "
    "under 160 characters."
)

TEMPLATE_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates personalized SMS messages for "
    "e-commerce. Fill in templates with appropriate content while keeping "
    "messages concise."
)

_SURROUNDING_QUOTES = re.compile(r"^[\"']|[\"']$")


def clean_message(raw: str) -> str:
    """Strip whitespace and surrounding quotes, then cap at SMS length."""
    message = _SURROUNDING_QUOTES.sub("", raw.strip())
    if len(message) > SMS_MAX_LENGTH:
        message = message[:SMS_TRUNCATE_AT] + SMS_ELLIPSIS
    return message


def _require_text(value: str | None, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _parse_urgency(value: UrgencyLevel | str) -> UrgencyLevel:
    try:
        return UrgencyLevel(value)
    except ValueError:
        raise ValidationError('urgency must be "low", "medium", or "high"') from None


class MessageComposer:
    """Turns (name, products, urgency, link) into a short reminder text."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-3.5-turbo",
        max_tokens: int = 100,
        temperature: float = 0.7,
        timeout_seconds: float = 15.0,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "MessageComposer":
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not configured, message generation will fail")
        client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout_seconds,
            max_retries=0,
        )
        return cls(
            client,
            model=settings.openai_model,
            max_tokens=settings.openai_max_tokens,
            temperature=settings.openai_temperature,
            timeout_seconds=settings.openai_timeout_seconds,
        )

    async def compose(
        self,
        name: str,
        product_text: str,
        urgency: UrgencyLevel | str = UrgencyLevel.MEDIUM,
        link: str | None = None,
    ) -> str:
        """
        Generate a personalized abandoned-cart reminder.

        Args:
            name: Customer display name
            product_text: Product name, or several names pre-joined
            urgency: low, medium or high
            link: Optional checkout link to include

        Returns:
            str: Message text of at most 160 characters

        Raises:
            ValidationError: On empty name/product or unknown urgency
            GenerationError: When the upstream call fails or times out
        """
        name = _require_text(name, "name")
        product_text = _require_text(product_text, "product_text")
        level = _parse_urgency(urgency)

        link_line = (
            f"- Include this checkout link: {link}" if link else "- Include a generic checkout link"
        )
        prompt = f"""Generate a short, personalized SMS message for an abandoned cart reminder.

Customer Name: {name}
Product: {product_text}
Urgency Level: {level.value} ({URGENCY_PROMPTS[level]})
Tone: {URGENCY_TONES[level]}

Requirements:
- Keep it under 160 characters for SMS
- Include the customer's name
- Mention the specific product
- Use the appropriate urgency level
- Make it personal and engaging
- Include a call-to-action
{link_line}
- Don't use quotes around the message
- Don't include "SMS:" or any labels

Generate the message:"""

        return await self._complete(REMINDER_SYSTEM_PROMPT, prompt)

    async def compose_variations(
        self,
        name: str,
        product_text: str,
        urgency: UrgencyLevel | str = UrgencyLevel.MEDIUM,
        link: str | None = None,
        variations: int = DEFAULT_VARIATIONS,
    ) -> list[str]:
        """Generate several independent messages for A/B comparison."""
        if not 1 <= variations <= MAX_VARIATIONS:
            raise ValidationError(f"variations must be between 1 and {MAX_VARIATIONS}")

        messages = []
        for _ in range(variations):
            messages.append(await self.compose(name, product_text, urgency, link))
        return messages

    async def compose_from_template(
        self,
        name: str,
        product_text: str,
        template: str,
        link: str | None = None,
    ) -> str:
        """Fill a free-form template like 'Hey {name}! Your {product} ...'."""
        name = _require_text(name, "name")
        product_text = _require_text(product_text, "product_text")
        template = _require_text(template, "template")

        link_line = f"Checkout Link: {link}" if link else ""
        prompt = f"""Generate a personalized SMS message based on this template:

Template: {template}
Customer Name: {name}
Product: {product_text}
{link_line}

Requirements:
- Replace any placeholders with appropriate content
- Keep it under 160 characters
- Make it personal and engaging
- Don't use quotes around the message

Generate the message:"""

        return await self._complete(TEMPLATE_SYSTEM_PROMPT, prompt)

    async def _complete(self, system_prompt: str, prompt: str) -> str:
        try:
            completion = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": prompt},
                    ],
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error("Message generation timed out", timeout=self.timeout_seconds)
            raise GenerationError("Message generation timed out") from e
        except openai.OpenAIError as e:
            logger.error("Message generation failed", error=str(e))
            raise GenerationError("Message generation failed", details=str(e)) from e

        content = completion.choices[0].message.content if completion.choices else None
        message = clean_message(content or "")
        if not message.strip():
            raise GenerationError("Message generation returned no content")

        return message
