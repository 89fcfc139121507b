"""SLA deadline policy — timeout sanitizing and deadline arithmetic."""

from __future__ import annotations

from datetime import datetime, timedelta

DEFAULT_SLA_TIMEOUT_MINUTES = 15
MAX_SLA_TIMEOUT_MINUTES = 60


def parse_timeout_minutes(
    raw: str | int | None,
    maximum: int = MAX_SLA_TIMEOUT_MINUTES,
) -> int | None:
    """Parse a configured timeout value.

    Returns None for anything that is not an integer in ``1..maximum`` so the
    caller can fall back to the next configuration scope.
    """
    if raw is None:
        return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    if value <= 0 or value > maximum:
        return None
    return value


def compute_deadline(assigned_at: datetime, timeout_minutes: int) -> datetime:
    if timeout_minutes <= 0:
        raise ValueError("SLA timeout must be positive")
    return assigned_at + timedelta(minutes=timeout_minutes)


def episode_minutes(assigned_at: datetime | None, deadline: datetime | None) -> int | None:
    """Length of an assignment episode's SLA window, rounded to whole minutes."""
    if assigned_at is None or deadline is None:
        return None
    return round((deadline - assigned_at).total_seconds() / 60)


def timeout_reason(timeout_minutes: int | None) -> str:
    if timeout_minutes:
        return f"Auto-unassigned: No response within {timeout_minutes}-minute SLA"
    return "Auto-unassigned: No response within the configured SLA"


def timeout_log_note(timeout_minutes: int | None) -> str:
    if timeout_minutes:
        return f"SLA timeout - no partner response within {timeout_minutes} minutes"
    return "SLA timeout - no partner response within the configured SLA"
