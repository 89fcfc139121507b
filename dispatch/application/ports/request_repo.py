"""Port interface for service request persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime

from dispatch.domain.entities.service_request import ServiceRequest
from dispatch.domain.value_objects.enums import RequestStatus
from dispatch.domain.value_objects.request_guard import RequestGuard


class RequestNumberTaken(Exception):
    """Another writer committed the same request number first."""


class RequestRepository(ABC):
    @abstractmethod
    async def create(self, request: ServiceRequest) -> ServiceRequest:
        """Insert a new request.

        Raises:
            RequestNumberTaken: if ``request.request_number`` is already used.
        """
        ...

    @abstractmethod
    async def get_by_id(self, request_id: int) -> ServiceRequest | None:
        ...

    @abstractmethod
    async def list(
        self,
        status: RequestStatus | None = None,
        partner_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ServiceRequest]:
        """Non-deleted requests, newest first."""
        ...

    @abstractmethod
    async def find_expired(self, now: datetime) -> list[ServiceRequest]:
        """Requests in ``assigned`` whose sla_deadline is strictly before *now*."""
        ...

    @abstractmethod
    async def apply_guarded(self, request_id: int, guard: RequestGuard, changes: dict) -> bool:
        """Write *changes* only if the row still satisfies *guard*.

        The condition and the write must be a single indivisible step.
        Returns False when no row matched.
        """
        ...

    @abstractmethod
    async def next_request_number(self, day: date) -> str:
        """Next free ``REQ-YYYYMMDD-NNNN`` number for *day*."""
        ...
