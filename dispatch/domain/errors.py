"""Domain errors raised by the dispatch state machine.

The API layer maps each class to one user-facing outcome:
validation (bad input), not found, and conflict (the request moved on).
Infrastructure faults are not wrapped here; they propagate as-is.
"""

from __future__ import annotations


class DispatchError(Exception):
    """Base class for all dispatch domain errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(DispatchError):
    """Malformed input, rejected before the store is touched."""


class RequestNotFoundError(DispatchError):
    def __init__(self, request_id: int | str):
        self.request_id = request_id
        super().__init__(f"Request {request_id} not found", {"request_id": request_id})


class ConflictError(DispatchError):
    """The request is no longer in the state the caller assumed.

    Expected under concurrent operation. Callers re-fetch instead of retrying.
    """

    def __init__(
        self,
        message: str,
        request_id: int | None = None,
        current_status: str | None = None,
    ):
        self.request_id = request_id
        self.current_status = current_status
        super().__init__(
            message,
            {"request_id": request_id, "current_status": current_status},
        )
