"""SqlDirectory — read-only lookups of partners, branches, customers and catalog entries."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dispatch.adapters.persistence.models import (
    BranchModel,
    CategoryModel,
    CustomerModel,
    PartnerModel,
    ServiceModel,
)
from dispatch.application.ports.directory import DirectoryPort
from dispatch.domain.entities.directory import Branch, Category, Customer, Partner, Service
from dispatch.domain.value_objects.enums import Locale


def _locale(raw: str | None) -> Locale:
    try:
        return Locale((raw or "en").lower())
    except ValueError:
        return Locale.EN


class SqlDirectory(DirectoryPort):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_partner(self, partner_id: int) -> Partner | None:
        async with self._session_factory() as session:
            m = await session.get(PartnerModel, partner_id)
        if m is None:
            return None
        return Partner(
            id=m.id, name=m.name, contact_email=m.contact_email, locale=_locale(m.locale)
        )

    async def get_branch(self, branch_id: int) -> Branch | None:
        async with self._session_factory() as session:
            m = await session.get(BranchModel, branch_id)
        if m is None:
            return None
        return Branch(id=m.id, partner_id=m.partner_id, name=m.name, address=m.address)

    async def get_customer(self, customer_id: int) -> Customer | None:
        async with self._session_factory() as session:
            m = await session.get(CustomerModel, customer_id)
        if m is None:
            return None
        return Customer(
            id=m.id,
            name=m.name,
            email=m.email,
            locale=_locale(m.locale),
            is_placeholder=m.is_placeholder,
        )

    async def get_category(self, category_id: int) -> Category | None:
        async with self._session_factory() as session:
            m = await session.get(CategoryModel, category_id)
        return Category(id=m.id, name=m.name) if m else None

    async def get_service(self, service_id: int) -> Service | None:
        async with self._session_factory() as session:
            m = await session.get(ServiceModel, service_id)
        return Service(id=m.id, category_id=m.category_id, name=m.name) if m else None
