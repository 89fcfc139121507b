"""Tests for CSV loader functions."""

import csv
import tempfile
from pathlib import Path

import pytest

from dispatch.adapters.csv_loader.loader import (
    _read_csv,
    load_branches,
    load_categories,
    load_configurations,
    load_customers,
    load_partners,
    load_services,
)


def _write_csv(rows: list[dict], path: Path, encoding: str = "utf-8-sig", delimiter: str = ",") -> None:
    """Helper to write a test CSV file."""
    if not rows:
        return
    with open(path, "w", encoding=encoding, newline="") as f:
        writer = csv.DictWriter(f, fieldnames=rows[0].keys(), delimiter=delimiter)
        writer.writeheader()
        writer.writerows(rows)


def test_load_partners_basic():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "partners.csv"
        _write_csv([
            {"Name": "Acme Towing", "Email": "dispatch@acme.test", "Language": "English"},
            {"Name": "Gulf Motors", "Email": "ops@gulf.test", "Language": "AR"},
            {"Name": "", "Email": "ghost@x.test", "Language": ""},
        ], csv_path)

        partners = load_partners(csv_path)
        assert [p["name"] for p in partners] == ["Acme Towing", "Gulf Motors"]
        assert partners[0]["contact_email"] == "dispatch@acme.test"
        assert partners[1]["locale"] == "ar"


def test_semicolon_delimiter_is_detected():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "branches.csv"
        _write_csv([
            {"Partner": "Acme Towing", "Branch": "Downtown", "Address": "1 Main St, Suite 2"},
        ], csv_path, delimiter=";")

        branches = load_branches(csv_path)
        assert branches == [
            {"partner_name": "Acme Towing", "name": "Downtown", "address": "1 Main St, Suite 2"}
        ]


def test_load_customers_placeholder_flag():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "customers.csv"
        _write_csv([
            {"name": "Sara", "email": "sara@example.com", "locale": "ar", "is_placeholder": ""},
            {"name": "Walk-in", "email": "walkin@system.local", "locale": "", "is_placeholder": "yes"},
        ], csv_path)

        customers = load_customers(csv_path)
        assert [c["is_placeholder"] for c in customers] == [False, True]


def test_load_categories_and_services():
    with tempfile.TemporaryDirectory() as tmpdir:
        categories_path = Path(tmpdir) / "categories.csv"
        services_path = Path(tmpdir) / "services.csv"
        _write_csv([{"Category": "Roadside"}, {"Category": "  "}], categories_path)
        _write_csv([
            {"Category": "Roadside", "Service": "Towing"},
            {"Category": "", "Service": "Orphan"},
        ], services_path)

        assert load_categories(categories_path) == [{"name": "Roadside"}]
        assert load_services(services_path) == [{"category_name": "Roadside", "name": "Towing"}]


def test_load_configurations_scopes():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "configurations.csv"
        _write_csv([
            {"key": "sla_timeout_minutes", "value": "20", "partner": "", "is_active": ""},
            {"key": "sla_timeout_minutes", "value": "30", "partner": "Acme Towing", "is_active": "1"},
            {"key": "operational_team_emails", "value": "a@x.test; b@x.test", "partner": "", "is_active": ""},
            {"key": "", "value": "orphan", "partner": "", "is_active": ""},
        ], csv_path)

        rows = load_configurations(csv_path)
        assert [(r["scope"], r["partner_name"]) for r in rows] == [
            ("global", None), ("partner", "Acme Towing"), ("global", None),
        ]
        assert rows[2]["value"] == "a@x.test,b@x.test"
        assert all(r["is_active"] for r in rows)


def test_empty_file_has_no_header():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "empty.csv"
        csv_path.write_text("", encoding="utf-8")
        with pytest.raises(ValueError, match="no header"):
            _read_csv(csv_path)
