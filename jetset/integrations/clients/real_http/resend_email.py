"""
Real transactional email client (Resend HTTP API).

Used when RESEND_API_KEY is configured.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import httpx

from jetset.integrations.contracts.interfaces import EmailMessage, EmailSender
from jetset.integrations.policy.response_wrappers import (
    IntegrationError,
    response_payload,
    upstream_error_detail,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.resend.com/emails"


class ResendEmailClient(EmailSender):
    def __init__(
        self,
        api_key: Optional[str] = None,
        from_address: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = 15.0,
    ) -> None:
        self.api_key = api_key or os.getenv("RESEND_API_KEY", "")
        self.from_address = from_address or os.getenv("EMAIL_FROM", "JetSetters <noreply@jetsetterss.com>")
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds

    async def send(self, message: EmailMessage) -> Dict[str, Any]:
        if not self.api_key:
            raise IntegrationError("RESEND_API_KEY is not configured.")

        payload: Dict[str, Any] = {
            "from": message.from_address or self.from_address,
            "to": message.to,
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            payload["text"] = message.text
        if message.reply_to:
            payload["reply_to"] = message.reply_to

        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            body = response_payload(e.response)
            detail = upstream_error_detail(body, "Email provider rejected the message")
            logger.error("HTTP error from email provider: %s %s", e.response.status_code, detail)
            raise IntegrationError(detail, status_code=e.response.status_code, payload=body) from e
        except httpx.RequestError as e:
            logger.error("Request error connecting to email provider: %s", e)
            raise IntegrationError(f"Email provider unreachable: {e}") from e

        logger.info("Email '%s' sent to %d recipient(s)", message.subject, len(message.to))
        return data
