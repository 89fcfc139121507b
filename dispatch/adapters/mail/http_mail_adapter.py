"""HTTP mail adapter — sends through a Resend-compatible JSON API. Implements MailTransport."""

from __future__ import annotations

import logging

import httpx

from dispatch.application.ports.mail_transport import MailTransport
from dispatch.config import settings
from dispatch.domain.entities.notification import MailDelivery

logger = logging.getLogger(__name__)


class HttpMailAdapter(MailTransport):
    """POSTs one message per call to ``api_url``.

    Without an API key nothing is sent: the call logs a warning and reports
    the message as not delivered. Connection errors propagate to the caller.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        sender: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = settings.mail_api_key if api_key is None else api_key
        self._api_url = api_url or settings.mail_api_url
        self._sender = sender or settings.mail_from
        self._timeout = timeout or settings.mail_timeout_seconds
        self._transport = transport

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> MailDelivery:
        if not self._api_key:
            logger.warning("MAIL_API_KEY not set — email to %s not sent: %s", to, subject)
            return MailDelivery(delivered=False, error="mail API key not configured")

        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            response = await client.post(
                self._api_url,
                json={
                    "from": self._sender,
                    "to": [to],
                    "subject": subject,
                    "html": html_body,
                    "text": text_body,
                },
                headers={"Authorization": f"Bearer {self._api_key}"},
            )

        if response.is_success:
            logger.info("Email sent to %s: %s", to, subject)
            return MailDelivery(delivered=True)

        error = f"HTTP {response.status_code}: {response.text[:200]}"
        logger.warning("Mail API rejected email to %s: %s", to, error)
        return MailDelivery(delivered=False, error=error)
