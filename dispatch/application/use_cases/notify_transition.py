"""TransitionNotifier — turns a committed TransitionEvent into notification messages."""

from __future__ import annotations

import logging

from dispatch.application.ports.configuration import ConfigurationPort
from dispatch.application.ports.directory import DirectoryPort
from dispatch.application.use_cases.dispatch_notification import NotificationDispatcher
from dispatch.domain.entities.notification import (
    DispatchReport,
    NotificationData,
    NotificationMessage,
    Recipient,
)
from dispatch.domain.entities.transition_event import TransitionEvent
from dispatch.domain.value_objects.enums import NotificationTemplate, TransitionKind

logger = logging.getLogger(__name__)


class TransitionNotifier:
    """Routes each transition kind to its templates and audiences.

    | kind          | audience -> template                          |
    |---------------|-----------------------------------------------|
    | submitted     | operators -> status_change                    |
    | assigned      | partner -> assigned                           |
    | accepted      | operators -> accepted, customer -> confirmed  |
    | rejected      | operators -> rejected                         |
    | in_progress   | customer + operators -> in_progress           |
    | completed     | customer + operators -> completed             |
    | closed        | customer -> closed                            |
    | timed_out     | operators -> sla_timeout                      |
    """

    def __init__(
        self,
        directory: DirectoryPort,
        configuration: ConfigurationPort,
        dispatcher: NotificationDispatcher,
    ):
        self._directory = directory
        self._config = configuration
        self._dispatcher = dispatcher

    async def notify(self, event: TransitionEvent) -> list[DispatchReport]:
        reports = []
        for message in await self.build_messages(event):
            if not message.recipients:
                logger.warning(
                    "No recipients configured for %s notification on %s",
                    message.template.value, event.request_number,
                )
                continue
            reports.append(await self._dispatcher.dispatch(message))
        return reports

    async def build_messages(self, event: TransitionEvent) -> list[NotificationMessage]:
        data = await self._build_data(event)
        kind = event.kind

        if kind == TransitionKind.SUBMITTED:
            plan = [(NotificationTemplate.STATUS_CHANGE, await self._operators())]
        elif kind == TransitionKind.ASSIGNED:
            plan = [(NotificationTemplate.ASSIGNED, await self._partner(event))]
        elif kind == TransitionKind.ACCEPTED:
            plan = [
                (NotificationTemplate.ACCEPTED, await self._operators()),
                (NotificationTemplate.CONFIRMED, await self._customer(event)),
            ]
        elif kind == TransitionKind.REJECTED:
            plan = [(NotificationTemplate.REJECTED, await self._operators())]
        elif kind in (TransitionKind.IN_PROGRESS, TransitionKind.COMPLETED):
            template = NotificationTemplate(kind.value)
            plan = [
                (template, await self._customer(event)),
                (template, await self._operators()),
            ]
        elif kind == TransitionKind.CLOSED:
            plan = [(NotificationTemplate.CLOSED, await self._customer(event))]
        elif kind == TransitionKind.TIMED_OUT:
            plan = [(NotificationTemplate.SLA_TIMEOUT, await self._operators())]
        else:
            plan = []

        return [
            NotificationMessage(template=template, data=data, recipients=recipients)
            for template, recipients in plan
        ]

    async def _build_data(self, event: TransitionEvent) -> NotificationData:
        data = NotificationData(
            request_number=event.request_number,
            status=event.status.value,
            notes=event.notes,
            rejection_reason=event.reason,
            timeout_minutes=event.timeout_minutes,
        )
        if event.partner_id is not None:
            partner = await self._directory.get_partner(event.partner_id)
            if partner:
                data.partner_name = partner.name
        if event.branch_id is not None:
            branch = await self._directory.get_branch(event.branch_id)
            if branch:
                data.branch_name = branch.name
                data.branch_address = branch.address or ""
        customer = await self._directory.get_customer(event.customer_id)
        if customer:
            data.customer_name = customer.name
        category = await self._directory.get_category(event.category_id)
        if category:
            data.category_name = category.name
        if event.service_id is not None:
            service = await self._directory.get_service(event.service_id)
            if service:
                data.service_name = service.name
        return data

    async def _operators(self) -> list[Recipient]:
        addresses = await self._config.get_sla_notification_recipients()
        return [Recipient(address=a, category="admin") for a in addresses]

    async def _partner(self, event: TransitionEvent) -> list[Recipient]:
        if event.partner_id is None:
            return []
        partner = await self._directory.get_partner(event.partner_id)
        if partner is None or not partner.contact_email:
            return []
        return [Recipient(partner.contact_email, partner.locale, category="partner")]

    async def _customer(self, event: TransitionEvent) -> list[Recipient]:
        customer = await self._directory.get_customer(event.customer_id)
        if customer is None or not customer.email:
            return []
        return [
            Recipient(
                customer.email,
                customer.locale,
                is_placeholder=customer.is_placeholder,
                category="customer",
            )
        ]
