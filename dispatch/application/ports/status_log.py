"""Port interface for the append-only status log."""

from __future__ import annotations

from abc import ABC, abstractmethod

from dispatch.domain.entities.status_log import StatusLogEntry


class StatusLogWriter(ABC):
    @abstractmethod
    async def append(self, entry: StatusLogEntry) -> StatusLogEntry:
        ...

    @abstractmethod
    async def list_for_request(self, request_id: int) -> list[StatusLogEntry]:
        """Entries in the order they were written."""
        ...
