"""ServiceRequest entity — a customer request moving through the dispatch lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from dispatch.domain.value_objects.enums import RequestStatus

# Fields that describe the current assignment episode.
EPISODE_FIELDS = ("partner_id", "branch_id", "assigned_at", "assigned_by_user_id")


@dataclass
class ServiceRequest:
    id: int | None
    request_number: str
    customer_id: int
    category_id: int
    pickup_option_id: int
    service_id: int | None = None
    status: RequestStatus = RequestStatus.SUBMITTED
    partner_id: int | None = None
    branch_id: int | None = None
    assigned_by_user_id: int | None = None
    assigned_at: datetime | None = None
    sla_deadline: datetime | None = None
    submitted_at: datetime | None = None
    confirmed_at: datetime | None = None
    rejected_at: datetime | None = None
    in_progress_at: datetime | None = None
    completed_at: datetime | None = None
    closed_at: datetime | None = None
    closed_by_user_id: int | None = None
    rating: int | None = None
    feedback: str | None = None
    rated_at: datetime | None = None
    notes: str | None = None
    updated_at: datetime | None = None
    updated_by_id: int | None = None
    is_deleted: bool = False

    def is_assigned(self) -> bool:
        return self.status == RequestStatus.ASSIGNED

    def is_assigned_to(self, partner_id: int) -> bool:
        return self.is_assigned() and self.partner_id == partner_id

    def is_sla_expired(self, now: datetime) -> bool:
        return (
            self.is_assigned()
            and self.sla_deadline is not None
            and self.sla_deadline < now
        )

    def invariant_violations(self) -> list[str]:
        """Return a description of every broken field invariant (empty when consistent)."""
        problems = []
        if self.is_assigned():
            if self.sla_deadline is None:
                problems.append("assigned request has no sla_deadline")
            problems.extend(
                f"assigned request has no {name}"
                for name in EPISODE_FIELDS
                if getattr(self, name) is None
            )
        else:
            if self.sla_deadline is not None:
                problems.append(f"{self.status.value} request still carries an sla_deadline")
            if self.status in (
                RequestStatus.SUBMITTED,
                RequestStatus.UNASSIGNED,
                RequestStatus.REJECTED,
            ):
                problems.extend(
                    f"{self.status.value} request still carries {name}"
                    for name in EPISODE_FIELDS
                    if getattr(self, name) is not None
                )
        if self.rating is not None and not 1 <= self.rating <= 5:
            problems.append("rating outside 1..5")
        return problems
