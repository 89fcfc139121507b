"""SqlUnitOfWork — one AsyncSession, one transaction, three repositories."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dispatch.adapters.persistence.repositories import (
    SqlAssignmentLedger,
    SqlRequestRepository,
    SqlStatusLogWriter,
)
from dispatch.application.ports.unit_of_work import UnitOfWork


class SqlUnitOfWork(UnitOfWork):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> SqlUnitOfWork:
        self._session = self._session_factory()
        self.requests = SqlRequestRepository(self._session)
        self.ledger = SqlAssignmentLedger(self._session)
        self.status_log = SqlStatusLogWriter(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            await self._session.close()
            self._session = None

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()


def sql_uow_factory(session_factory: async_sessionmaker[AsyncSession]):
    """Zero-argument factory suitable for the use cases."""

    def factory() -> SqlUnitOfWork:
        return SqlUnitOfWork(session_factory)

    return factory
