"""Port interface for an atomic unit of work over the request store."""

from __future__ import annotations

from abc import ABC, abstractmethod

from dispatch.application.ports.assignment_ledger import AssignmentLedger
from dispatch.application.ports.request_repo import RequestRepository
from dispatch.application.ports.status_log import StatusLogWriter


class UnitOfWork(ABC):
    """Groups request, ledger and log writes so they commit or roll back together.

    Usage::

        async with uow_factory() as uow:
            await uow.requests.apply_guarded(...)
            await uow.ledger.open_entry(...)

    Leaving the block normally commits; an exception rolls back and propagates.
    """

    requests: RequestRepository
    ledger: AssignmentLedger
    status_log: StatusLogWriter

    async def __aenter__(self) -> UnitOfWork:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
