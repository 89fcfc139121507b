"""NotificationDispatcher — render and send one logical message to many recipients."""

from __future__ import annotations

import logging

from dispatch.application.ports.mail_transport import MailTransport
from dispatch.application.ports.template_renderer import TemplateRenderer
from dispatch.domain.entities.notification import (
    DispatchReport,
    NotificationMessage,
    Recipient,
    RecipientResult,
    RenderedMessage,
)
from dispatch.domain.value_objects.enums import DeliveryStatus, Locale

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Best-effort fan-out: every recipient is attempted, each outcome is recorded.

    Nothing raised by the renderer or the transport escapes ``dispatch``;
    the caller gets a DispatchReport instead.
    """

    def __init__(self, renderer: TemplateRenderer, transport: MailTransport):
        self._renderer = renderer
        self._transport = transport

    async def dispatch(self, message: NotificationMessage) -> DispatchReport:
        report = DispatchReport(
            template=message.template,
            request_number=message.data.request_number,
        )
        rendered: dict[Locale | None, RenderedMessage] = {}

        for recipient in message.recipients:
            address = (recipient.address or "").strip()
            if not address or recipient.is_placeholder:
                logger.info(
                    "Skipping %s recipient %r for %s (%s): not a deliverable mailbox",
                    recipient.category, address, message.data.request_number,
                    message.template.value,
                )
                report.results.append(
                    RecipientResult(address, DeliveryStatus.SKIPPED, recipient.locale)
                )
                continue
            report.results.append(await self._send_one(message, recipient, address, rendered))

        logger.info(
            "%s notification for %s: %d delivered, %d failed, %d skipped",
            message.template.value, message.data.request_number,
            len(report.delivered), len(report.failed), len(report.skipped),
        )
        return report

    async def _send_one(
        self,
        message: NotificationMessage,
        recipient: Recipient,
        address: str,
        rendered: dict[Locale | None, RenderedMessage],
    ) -> RecipientResult:
        try:
            if recipient.locale not in rendered:
                rendered[recipient.locale] = self._renderer.render(
                    message.template, message.data, recipient.locale
                )
            content = rendered[recipient.locale]
            delivery = await self._transport.send(
                address, content.subject, content.html_body, content.text_body
            )
        except Exception as exc:
            logger.exception(
                "Failed to send %s notification for %s to %s",
                message.template.value, message.data.request_number, address,
            )
            return RecipientResult(address, DeliveryStatus.FAILED, recipient.locale, str(exc))

        if not delivery.delivered:
            logger.warning(
                "Mail transport did not deliver %s notification for %s to %s: %s",
                message.template.value, message.data.request_number, address, delivery.error,
            )
            return RecipientResult(
                address, DeliveryStatus.FAILED, recipient.locale, delivery.error
            )
        return RecipientResult(address, DeliveryStatus.DELIVERED, recipient.locale)
