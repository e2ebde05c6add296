"""Email channel over the Brevo transactional email API.

Delivery is a single HTTP call; the provider owns its own retries, so the
delivery worker makes one attempt per run.
"""

import logging
from html import escape
from typing import Any

import httpx

from devotion_notify.channels.base import ChannelOutcome, EmailSender, classify_email_status
from devotion_notify.config import Settings
from devotion_notify.errors import ConfigurationError
from devotion_notify.services.messages import GeneratedMessage

logger = logging.getLogger(__name__)


def render_email_html(message: GeneratedMessage) -> str:
    """Render the HTML body for a daily message email."""
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #4F46E5;">{escape(message.title)}</h2>
  <p style="font-size: 16px; line-height: 1.6;">{escape(message.body)}</p>
  <blockquote style="border-left: 4px solid #4F46E5; padding-left: 16px; margin: 20px 0; font-style: italic;">
    "{escape(message.scripture_text)}"
    <footer style="margin-top: 8px; font-weight: bold;">- {escape(message.scripture_reference)}</footer>
  </blockquote>
  <p style="color: #666; font-size: 14px;">Blessings,<br>The ChristianKit Team</p>
</div>
""".strip()


def render_email_text(message: GeneratedMessage) -> str:
    return (
        f"{message.title}\n\n{message.body}\n\n"
        f"\"{message.scripture_text}\"\n- {message.scripture_reference}"
    )


class BrevoEmailSender(EmailSender):
    """Email sender backed by the Brevo HTTP API."""

    def __init__(
        self,
        api_key: str,
        sender_name: str,
        sender_address: str,
        api_url: str = "https://api.brevo.com/v3/smtp/email",
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Brevo API key is required for email delivery")
        self.api_key = api_key
        self.sender_name = sender_name
        self.sender_address = sender_address
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "BrevoEmailSender":
        return cls(
            api_key=settings.BREVO_API_KEY,
            sender_name=settings.EMAIL_SENDER_NAME,
            sender_address=settings.EMAIL_SENDER_ADDRESS,
            api_url=settings.BREVO_API_URL,
            timeout_seconds=settings.CHANNEL_TIMEOUT_SECONDS,
        )

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout_seconds)
        return self._client

    def build_request(self, email_address: str, message: GeneratedMessage) -> dict[str, Any]:
        return {
            "sender": {"name": self.sender_name, "email": self.sender_address},
            "to": [{"email": email_address}],
            "subject": message.title,
            "htmlContent": render_email_html(message),
            "textContent": render_email_text(message),
        }

    def send(self, email_address: str, message: GeneratedMessage) -> ChannelOutcome:
        """Send the daily message to one address."""
        try:
            response = self.client.post(
                self.api_url,
                json=self.build_request(email_address, message),
                headers={"api-key": self.api_key, "accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.warning(
                f"[EMAIL] Request to email provider failed: {e}",
                extra={"error": str(e)},
            )
            return ChannelOutcome.transient(f"request failed: {e}"[:500])

        outcome = classify_email_status(
            response.status_code,
            f"email provider returned {response.status_code}: {response.text[:300]}",
        )
        if not outcome.is_delivered:
            logger.warning(
                f"[EMAIL] Provider returned {response.status_code}",
                extra={"status_code": response.status_code, "outcome": outcome.status.value},
            )
        return outcome
