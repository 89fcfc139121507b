"""Port interface for the assignment ledger (one row per assignment attempt)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from dispatch.domain.entities.assignment import Assignment
from dispatch.domain.value_objects.enums import AssignmentResponse


class AssignmentLedger(ABC):
    @abstractmethod
    async def open_entry(self, entry: Assignment) -> Assignment:
        """Insert a pending entry. Fails if the request already has one open."""
        ...

    @abstractmethod
    async def close_open(
        self,
        request_id: int,
        response: AssignmentResponse,
        responded_at: datetime,
        reason: str | None = None,
        partner_id: int | None = None,
    ) -> bool:
        """Resolve the pending entry, guarded on it still being pending.

        When *partner_id* is given the entry must also belong to that partner.
        Returns False when nothing was resolved.
        """
        ...

    @abstractmethod
    async def list_for_request(self, request_id: int) -> list[Assignment]:
        ...
