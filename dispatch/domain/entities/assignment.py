"""Assignment ledger entry — one row per attempt to hand a request to a partner."""

from dataclasses import dataclass
from datetime import datetime

from dispatch.domain.value_objects.enums import AssignmentResponse


@dataclass
class Assignment:
    id: int | None
    request_id: int
    partner_id: int
    branch_id: int
    assigned_by_user_id: int
    assigned_at: datetime
    response: AssignmentResponse = AssignmentResponse.PENDING
    responded_at: datetime | None = None
    rejection_reason: str | None = None

    def is_open(self) -> bool:
        return self.response == AssignmentResponse.PENDING
