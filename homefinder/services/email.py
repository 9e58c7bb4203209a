"""Email delivery through the Resend HTTP API."""

import logging
from typing import List, Optional

import httpx

from homefinder.config import Settings, get_settings
from homefinder.utils.exceptions import DeliveryError

logger = logging.getLogger(__name__)


class ResendEmailClient:
    """Minimal async client for POST /emails"""

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def send(
        self,
        sender: str,
        to: List[str],
        subject: str,
        html: str,
        reply_to: Optional[str] = None,
    ) -> str:
        """
        Send one email.

        Returns:
            Provider message id

        Raises:
            DeliveryError: not configured, provider-reported failure, or transport failure
        """
        if not self.is_configured():
            raise DeliveryError.not_configured()

        payload = {
            "from": sender,
            "to": to,
            "subject": subject,
            "html": html,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Email transport error: {e}")
            raise DeliveryError.transport()

        if response.status_code >= 400:
            provider_message = _json_field(response, "message") or response.text
            logger.error(f"Email provider rejected message ({response.status_code}): {provider_message}")
            raise DeliveryError("Failed to send message. Please try again later.")

        message_id = _json_field(response, "id") or ""

        logger.info(f"Email sent successfully: {message_id}")
        return message_id


def _json_field(response: httpx.Response, key: str) -> Optional[str]:
    """A top-level field of a JSON object body; None for other bodies."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    value = body.get(key)
    return str(value) if value is not None else None


def build_email_client(settings: Optional[Settings] = None) -> ResendEmailClient:
    settings = settings or get_settings()
    if not settings.email_configured:
        logger.warning("RESEND_API_KEY not set; contact and inquiry emails are disabled")
    return ResendEmailClient(
        api_key=settings.resend_api_key,
        api_url=settings.resend_api_url,
        timeout=settings.email_timeout,
    )
