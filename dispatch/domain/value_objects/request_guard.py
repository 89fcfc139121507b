"""RequestGuard — the precondition a guarded update re-checks inside the store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from dispatch.domain.entities.service_request import ServiceRequest
from dispatch.domain.value_objects.enums import RequestStatus


@dataclass(frozen=True)
class RequestGuard:
    """Conditions the request row must still satisfy for an update to apply.

    Stores translate this into the WHERE clause of a single UPDATE statement,
    so the check and the write are indivisible.
    """

    statuses: frozenset[RequestStatus]
    partner_id: int | None = None
    sla_deadline: datetime | None = None
    deadline_before: datetime | None = None
    customer_id: int | None = None

    @classmethod
    def status_in(cls, *statuses: RequestStatus, **conditions) -> RequestGuard:
        return cls(statuses=frozenset(statuses), **conditions)

    def matches(self, request: ServiceRequest) -> bool:
        if request.status not in self.statuses:
            return False
        if self.partner_id is not None and request.partner_id != self.partner_id:
            return False
        if self.customer_id is not None and request.customer_id != self.customer_id:
            return False
        if self.sla_deadline is not None and request.sla_deadline != self.sla_deadline:
            return False
        if self.deadline_before is not None and (
            request.sla_deadline is None or not request.sla_deadline < self.deadline_before
        ):
            return False
        return True
