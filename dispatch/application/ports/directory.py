"""Port interface for read-only reference data (partners, branches, customers, catalog)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from dispatch.domain.entities.directory import Branch, Category, Customer, Partner, Service


class DirectoryPort(ABC):
    @abstractmethod
    async def get_partner(self, partner_id: int) -> Partner | None:
        ...

    @abstractmethod
    async def get_branch(self, branch_id: int) -> Branch | None:
        ...

    @abstractmethod
    async def get_customer(self, customer_id: int) -> Customer | None:
        ...

    @abstractmethod
    async def get_category(self, category_id: int) -> Category | None:
        ...

    @abstractmethod
    async def get_service(self, service_id: int) -> Service | None:
        ...
