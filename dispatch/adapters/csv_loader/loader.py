"""CSV loader — reads reference data files for the seed tool."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from dispatch.adapters.csv_loader.normalizer import (
    clean_string,
    normalize_column_name,
    normalize_email_list,
    parse_bool,
    parse_locale,
)

logger = logging.getLogger(__name__)


def _sniff_dialect(sample: str) -> type[csv.Dialect]:
    """Pick the delimiter (comma/semicolon/tab) used most in the header line."""
    if not sample:
        return csv.excel

    first_line = sample.splitlines()[0]
    counts = {d: first_line.count(d) for d in (";", ",", "\t")}
    best_delim = max(counts, key=counts.get)
    if counts[best_delim] == 0:
        return csv.excel

    class DynamicDialect(csv.excel):
        delimiter = best_delim

    return DynamicDialect


def _read_csv(file_path: Path, encoding: str = "utf-8-sig") -> list[dict[str, str | None]]:
    """Read a CSV file with BOM handling and column normalization."""
    with open(file_path, encoding=encoding, newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        reader = csv.DictReader(f, dialect=_sniff_dialect(sample))
        if reader.fieldnames is None:
            raise ValueError(f"CSV file {file_path} has no header row")

        col_map = {col: normalize_column_name(col) for col in reader.fieldnames}
        rows = [
            {col_map[k]: clean_string(v) for k, v in raw_row.items() if k is not None}
            for raw_row in reader
        ]

    logger.info("Loaded %d rows from %s (columns: %s)", len(rows), file_path.name, list(col_map.values()))
    return rows


def load_partners(file_path: Path) -> list[dict]:
    """Columns: name, contact_email (or email), locale."""
    partners = []
    for row in _read_csv(file_path):
        name = row.get("name") or row.get("partner")
        if not name:
            logger.warning("Skipping partner row without a name: %s", row)
            continue
        partners.append({
            "name": name,
            "contact_email": row.get("contact_email") or row.get("email"),
            "locale": parse_locale(row.get("locale") or row.get("language")),
        })
    logger.info("Parsed %d partners", len(partners))
    return partners


def load_branches(file_path: Path) -> list[dict]:
    """Columns: partner (partner name), name, address."""
    branches = []
    for row in _read_csv(file_path):
        partner_name = row.get("partner") or row.get("partner_name")
        name = row.get("name") or row.get("branch")
        if not partner_name or not name:
            logger.warning("Skipping branch row without partner or name: %s", row)
            continue
        branches.append({
            "partner_name": partner_name,
            "name": name,
            "address": row.get("address"),
        })
    logger.info("Parsed %d branches", len(branches))
    return branches


def load_customers(file_path: Path) -> list[dict]:
    """Columns: name, email, locale, is_placeholder."""
    customers = []
    for row in _read_csv(file_path):
        name = row.get("name") or row.get("customer")
        if not name:
            logger.warning("Skipping customer row without a name: %s", row)
            continue
        customers.append({
            "name": name,
            "email": row.get("email"),
            "locale": parse_locale(row.get("locale") or row.get("language")),
            "is_placeholder": parse_bool(row.get("is_placeholder")),
        })
    logger.info("Parsed %d customers", len(customers))
    return customers


def load_categories(file_path: Path) -> list[dict]:
    """Columns: name."""
    categories = [
        {"name": row.get("name") or row.get("category")}
        for row in _read_csv(file_path)
        if row.get("name") or row.get("category")
    ]
    logger.info("Parsed %d categories", len(categories))
    return categories


def load_services(file_path: Path) -> list[dict]:
    """Columns: category (category name), name."""
    services = []
    for row in _read_csv(file_path):
        category_name = row.get("category") or row.get("category_name")
        name = row.get("name") or row.get("service")
        if not category_name or not name:
            logger.warning("Skipping service row without category or name: %s", row)
            continue
        services.append({"category_name": category_name, "name": name})
    logger.info("Parsed %d services", len(services))
    return services


def load_configurations(file_path: Path) -> list[dict]:
    """Columns: key, value, scope (global/partner), partner (partner name), description."""
    configurations = []
    for row in _read_csv(file_path):
        key = row.get("key")
        if not key or row.get("value") is None:
            logger.warning("Skipping configuration row without key or value: %s", row)
            continue
        value = row["value"]
        if key.endswith("_emails"):
            value = normalize_email_list(value)
        partner_name = row.get("partner") or row.get("partner_name")
        configurations.append({
            "key": key,
            "value": value,
            "scope": "partner" if partner_name else (row.get("scope") or "global").lower(),
            "partner_name": partner_name,
            "description": row.get("description"),
            "is_active": parse_bool(row.get("is_active"), default=True),
        })
    logger.info("Parsed %d configuration entries", len(configurations))
    return configurations
