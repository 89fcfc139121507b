"""Notification value types — logical messages, rendered content and delivery reports."""

from __future__ import annotations

from dataclasses import dataclass, field

from dispatch.domain.value_objects.enums import DeliveryStatus, Locale, NotificationTemplate


@dataclass(frozen=True)
class Recipient:
    address: str
    # None means "operator distribution list": render every supported locale.
    locale: Locale | None = None
    is_placeholder: bool = False
    category: str = "admin"


@dataclass
class NotificationData:
    request_number: str
    partner_name: str = ""
    branch_name: str = ""
    branch_address: str = ""
    customer_name: str = ""
    service_name: str = ""
    category_name: str = ""
    status: str = ""
    notes: str | None = None
    rejection_reason: str | None = None
    timeout_minutes: int | None = None


@dataclass
class NotificationMessage:
    template: NotificationTemplate
    data: NotificationData
    recipients: list[Recipient] = field(default_factory=list)


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    html_body: str
    text_body: str


@dataclass(frozen=True)
class MailDelivery:
    """Outcome reported by the mail transport for a single send."""

    delivered: bool
    error: str | None = None


@dataclass(frozen=True)
class RecipientResult:
    address: str
    status: DeliveryStatus
    locale: Locale | None = None
    error: str | None = None


@dataclass
class DispatchReport:
    template: NotificationTemplate
    request_number: str
    results: list[RecipientResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(
            r.status == DeliveryStatus.DELIVERED
            for r in self.results
            if r.status != DeliveryStatus.SKIPPED
        )

    @property
    def delivered(self) -> list[str]:
        return [r.address for r in self.results if r.status == DeliveryStatus.DELIVERED]

    @property
    def failed(self) -> list[str]:
        return [r.address for r in self.results if r.status == DeliveryStatus.FAILED]

    @property
    def skipped(self) -> list[str]:
        return [r.address for r in self.results if r.status == DeliveryStatus.SKIPPED]
