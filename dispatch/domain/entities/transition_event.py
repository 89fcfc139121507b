"""TransitionEvent — what a committed transition tells the notification side."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from dispatch.domain.entities.service_request import ServiceRequest
from dispatch.domain.value_objects.enums import RequestStatus, TransitionKind


@dataclass(frozen=True)
class TransitionEvent:
    kind: TransitionKind
    request_id: int
    request_number: str
    status: RequestStatus
    actor_id: int
    occurred_at: datetime
    customer_id: int
    category_id: int
    service_id: int | None = None
    # Partner/branch of the episode the event is about. Kept even when the
    # request row itself was cleared (reject, timeout).
    partner_id: int | None = None
    branch_id: int | None = None
    assigned_at: datetime | None = None
    sla_deadline: datetime | None = None
    timeout_minutes: int | None = None
    notes: str | None = None
    reason: str | None = None

    @classmethod
    def from_request(
        cls,
        kind: TransitionKind,
        request: ServiceRequest,
        actor_id: int,
        occurred_at: datetime,
        **extra,
    ) -> TransitionEvent:
        values = {
            "partner_id": request.partner_id,
            "branch_id": request.branch_id,
            "assigned_at": request.assigned_at,
            "sla_deadline": request.sla_deadline,
            "service_id": request.service_id,
        }
        values.update(extra)
        return cls(
            kind=kind,
            request_id=request.id,
            request_number=request.request_number,
            status=request.status,
            actor_id=actor_id,
            occurred_at=occurred_at,
            customer_id=request.customer_id,
            category_id=request.category_id,
            **values,
        )
