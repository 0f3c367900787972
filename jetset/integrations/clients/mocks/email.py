import logging
import uuid
from typing import Any, Dict, List

from jetset.integrations.contracts.interfaces import EmailMessage, EmailSender
from jetset.integrations.policy.response_wrappers import IntegrationError

logger = logging.getLogger(__name__)


class MockEmailSender(EmailSender):
    """Records messages instead of sending them. ``fail=True`` simulates a provider outage."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[EmailMessage] = []

    async def send(self, message: EmailMessage) -> Dict[str, Any]:
        if self.fail:
            raise IntegrationError("[EMAIL MOCK] provider unavailable", status_code=503)
        self.sent.append(message)
        logger.info("[EMAIL MOCK] '%s' -> %s", message.subject, ", ".join(message.to))
        return {"id": str(uuid.uuid4())}
