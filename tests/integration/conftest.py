"""Fixtures for tests that run against an in-memory SQLite database."""

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dispatch.adapters.persistence.database import Base
from dispatch.adapters.persistence.models import (
    BranchModel,
    CategoryModel,
    CustomerModel,
    PartnerModel,
    ServiceModel,
)


@pytest_asyncio.fixture
async def session_factory():
    """Schema plus a small directory: two partners, two customers, one catalog entry."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db:
        db.add_all([
            PartnerModel(id=10, name="Acme Towing", contact_email="dispatch@acme.test", locale="en"),
            PartnerModel(id=20, name="Gulf Motors", contact_email="ops@gulf.test", locale="AR"),
            CategoryModel(id=1, name="Roadside"),
            CustomerModel(id=5, name="Sara", email="sara@example.com", locale="ar"),
            CustomerModel(
                id=6, name="Walk-in", email="walkin@system.local", locale="en", is_placeholder=True
            ),
        ])
        await db.flush()
        db.add_all([
            BranchModel(id=100, partner_id=10, name="Downtown", address="1 Main St"),
            BranchModel(id=200, partner_id=20, name="Corniche", address="2 Sea Rd"),
            ServiceModel(id=11, category_id=1, name="Towing"),
        ])
        await db.commit()

    yield factory
    await engine.dispose()
