"""StatusLogEntry — append-only audit record of a committed transition."""

from dataclasses import dataclass
from datetime import datetime

from dispatch.domain.value_objects.enums import RequestStatus


@dataclass
class StatusLogEntry:
    id: int | None
    request_id: int
    status: RequestStatus
    changed_by_id: int
    timestamp: datetime
    notes: str | None = None
