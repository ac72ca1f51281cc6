"""
Email Provider (Resend)

Transactional email over the Resend HTTP API.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class ResendProvider:
    """Resend email provider."""

    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None):
        self.api_key = settings.RESEND_API_KEY if api_key is None else api_key
        self.from_email = from_email or settings.RESEND_FROM_EMAIL
        self.base_url = settings.RESEND_API_BASE.rstrip("/")
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=30.0,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._http_client

    async def close(self):
        """Explicit cleanup method."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def send(self, to_email: str, subject: str, html: str) -> SendResult:
        """Send a single HTML email."""
        if not self.api_key:
            logger.warning("Resend API key not configured")
            return SendResult(success=False, error="Email not configured")

        payload = {
            "from": self.from_email,
            "to": [to_email],
            "subject": subject,
            "html": html,
        }

        http = await self._get_http_client()
        try:
            resp = await http.post(f"{self.base_url}/emails", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Resend request failed: {type(e).__name__}: {e}")
            return SendResult(success=False, error=str(e) or type(e).__name__)

        if resp.status_code in (200, 201, 202):
            try:
                message_id = resp.json().get("id")
            except ValueError:
                message_id = None
            return SendResult(success=True, message_id=message_id)

        logger.error(f"Resend send failed: {resp.status_code} - {resp.text[:200]}")
        return SendResult(success=False, error=f"Provider returned {resp.status_code}")


email_provider = ResendProvider()
