"""Seed reference data (partners, branches, customers, catalog, configuration) from CSV files.

Usage:
    python -m dispatch.tools.seed_db
    python -m dispatch.tools.seed_db --data-dir data
    python -m dispatch.tools.seed_db --drop  # drop existing data first
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dispatch.adapters.csv_loader.loader import (
    load_branches,
    load_categories,
    load_configurations,
    load_customers,
    load_partners,
    load_services,
)
from dispatch.adapters.persistence.database import async_session_factory
from dispatch.adapters.persistence.models import (
    BranchModel,
    CategoryModel,
    ConfigurationModel,
    CustomerModel,
    PartnerModel,
    RequestAssignmentModel,
    RequestModel,
    RequestStatusLogModel,
    ServiceModel,
)

logger = logging.getLogger(__name__)

CSV_HINTS: dict[str, list[str]] = {
    "partners": ["partners", "partner"],
    "branches": ["branches", "branch"],
    "customers": ["customers", "customer"],
    "categories": ["categories", "category"],
    "services": ["services", "service"],
    "configurations": ["configurations", "configuration", "settings"],
}


async def _drop_data(session: AsyncSession) -> None:
    """Delete all data in correct order (respecting FK constraints)."""
    for model in [
        RequestStatusLogModel,
        RequestAssignmentModel,
        RequestModel,
        ConfigurationModel,
        ServiceModel,
        CategoryModel,
        BranchModel,
        PartnerModel,
        CustomerModel,
    ]:
        await session.execute(delete(model))
    await session.commit()
    logger.info("Dropped all existing data")


async def _name_map(session: AsyncSession, model) -> dict[str, int]:
    result = await session.execute(select(model.name, model.id))
    return {name.lower(): id_ for name, id_ in result.all()}


async def seed(
    data_dir: Path,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    drop: bool = False,
) -> dict[str, int]:
    """Main seed function. Returns counts of seeded records."""
    session_factory = session_factory or async_session_factory

    counts = {key: 0 for key in CSV_HINTS}
    files = {key: _find_csv(data_dir, hints) for key, hints in CSV_HINTS.items()}
    if files["partners"] is None or files["categories"] is None:
        raise FileNotFoundError(
            f"{data_dir} must contain at least partners.csv and categories.csv"
        )

    async with session_factory() as session:
        if drop:
            await _drop_data(session)

        # 1. Partners
        partners = await _name_map(session, PartnerModel)
        for pd in load_partners(files["partners"]):
            if pd["name"].lower() in partners:
                logger.debug("Partner '%s' already exists, skipping", pd["name"])
                continue
            m = PartnerModel(**pd)
            session.add(m)
            await session.flush()
            partners[pd["name"].lower()] = m.id
            counts["partners"] += 1

        # 2. Branches
        if files["branches"]:
            for bd in load_branches(files["branches"]):
                partner_id = partners.get(bd["partner_name"].lower())
                if partner_id is None:
                    logger.warning(
                        "Branch '%s': partner '%s' not found, skipping",
                        bd["name"], bd["partner_name"],
                    )
                    continue
                existing = await session.execute(
                    select(BranchModel).where(
                        BranchModel.partner_id == partner_id, BranchModel.name == bd["name"]
                    )
                )
                if existing.scalar_one_or_none():
                    continue
                session.add(BranchModel(partner_id=partner_id, name=bd["name"], address=bd["address"]))
                counts["branches"] += 1

        # 3. Customers
        if files["customers"]:
            for cd in load_customers(files["customers"]):
                if cd["email"]:
                    existing = await session.execute(
                        select(CustomerModel).where(CustomerModel.email == cd["email"])
                    )
                    if existing.scalar_one_or_none():
                        continue
                session.add(CustomerModel(**cd))
                counts["customers"] += 1

        # 4. Categories and services
        categories = await _name_map(session, CategoryModel)
        for cd in load_categories(files["categories"]):
            if cd["name"].lower() in categories:
                continue
            m = CategoryModel(name=cd["name"])
            session.add(m)
            await session.flush()
            categories[cd["name"].lower()] = m.id
            counts["categories"] += 1

        if files["services"]:
            for sd in load_services(files["services"]):
                category_id = categories.get(sd["category_name"].lower())
                if category_id is None:
                    logger.warning(
                        "Service '%s': category '%s' not found, skipping",
                        sd["name"], sd["category_name"],
                    )
                    continue
                session.add(ServiceModel(category_id=category_id, name=sd["name"]))
                counts["services"] += 1

        # 5. Configuration (upsert by scope/partner/key)
        if files["configurations"]:
            for cfg in load_configurations(files["configurations"]):
                partner_id = None
                if cfg["scope"] == "partner":
                    partner_id = partners.get((cfg["partner_name"] or "").lower())
                    if partner_id is None:
                        logger.warning(
                            "Configuration '%s': partner '%s' not found, skipping",
                            cfg["key"], cfg["partner_name"],
                        )
                        continue
                existing = (
                    await session.execute(
                        select(ConfigurationModel).where(
                            ConfigurationModel.scope == cfg["scope"],
                            ConfigurationModel.partner_id.is_(None)
                            if partner_id is None
                            else ConfigurationModel.partner_id == partner_id,
                            ConfigurationModel.key == cfg["key"],
                        )
                    )
                ).scalar_one_or_none()
                if existing:
                    existing.value = cfg["value"]
                    existing.description = cfg["description"]
                    existing.is_active = cfg["is_active"]
                    existing.updated_at = datetime.now(timezone.utc)
                else:
                    session.add(
                        ConfigurationModel(
                            scope=cfg["scope"],
                            partner_id=partner_id,
                            key=cfg["key"],
                            value=cfg["value"],
                            description=cfg["description"],
                            is_active=cfg["is_active"],
                        )
                    )
                counts["configurations"] += 1

        await session.commit()

    logger.info("Seed complete: %s", ", ".join(f"{v} {k}" for k, v in counts.items()))
    return counts


def _find_csv(data_dir: Path, name_hints: list[str]) -> Path | None:
    """Find a CSV file matching any of the name hints."""
    for hint in name_hints:
        for f in sorted(data_dir.glob("*.csv")):
            if hint in f.stem.lower():
                logger.info("Found CSV: %s (matched hint '%s')", f.name, hint)
                return f
    return None


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
    parser = argparse.ArgumentParser(description="Seed dispatch reference data from CSV files")
    parser.add_argument(
        "--data-dir", type=str, default="data",
        help="Directory containing CSV files (default: data)",
    )
    parser.add_argument(
        "--drop", action="store_true",
        help="Drop existing data before seeding",
    )
    args = parser.parse_args()

    data_dir = Path(args.data_dir)
    if not data_dir.exists():
        logger.error("Data directory not found: %s", data_dir)
        sys.exit(1)

    asyncio.run(seed(data_dir, drop=args.drop))


if __name__ == "__main__":
    main()
