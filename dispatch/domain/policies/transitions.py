"""TransitionPolicy: which statuses each operation may start from."""

from __future__ import annotations

from dispatch.domain.value_objects.enums import RequestStatus

# Statuses from which an operator may (re)assign a request.
ASSIGNABLE_FROM: frozenset[RequestStatus] = frozenset(
    {RequestStatus.SUBMITTED, RequestStatus.UNASSIGNED, RequestStatus.REJECTED}
)

# advance() target -> the only status it may be entered from.
ADVANCE_PREDECESSOR: dict[RequestStatus, RequestStatus] = {
    RequestStatus.IN_PROGRESS: RequestStatus.CONFIRMED,
    RequestStatus.COMPLETED: RequestStatus.IN_PROGRESS,
    RequestStatus.CLOSED: RequestStatus.COMPLETED,
}

# advance() target -> timestamp field stamped on entry.
ADVANCE_TIMESTAMP_FIELD: dict[RequestStatus, str] = {
    RequestStatus.IN_PROGRESS: "in_progress_at",
    RequestStatus.COMPLETED: "completed_at",
    RequestStatus.CLOSED: "closed_at",
}


def parse_advance_target(raw: str | RequestStatus) -> RequestStatus:
    """Validate an advance() target.

    Raises:
        ValueError: if *raw* is not one of in_progress / completed / closed.
    """
    try:
        target = RequestStatus(raw)
    except ValueError:
        raise ValueError(f"Unknown status '{raw}'") from None
    if target not in ADVANCE_PREDECESSOR:
        allowed = ", ".join(s.value for s in ADVANCE_PREDECESSOR)
        raise ValueError(f"Status '{target.value}' cannot be set directly (allowed: {allowed})")
    return target
