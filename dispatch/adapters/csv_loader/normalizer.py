"""CSV value normalization — handles BOM, stray whitespace and loose spellings."""

from __future__ import annotations

import re

TRUE_VALUES = {"1", "true", "yes", "y", "t", "on"}


def normalize_column_name(name: str) -> str:
    """Normalize a CSV column name.

    - Removes BOM characters (\\ufeff)
    - Replaces runs of whitespace / non-breaking spaces with a single underscore
    - Lowercases
    - Strips anything that is not alphanumeric or underscore
    """
    name = name.replace("\ufeff", "").strip()
    name = re.sub(r"[\s\u00a0]+", "_", name)
    name = name.lower()
    return re.sub(r"[^\w]", "", name, flags=re.UNICODE)


def clean_string(value: str | None) -> str | None:
    """Strip whitespace and return None for empty strings."""
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def parse_bool(value: str | None, default: bool = False) -> bool:
    value = clean_string(value)
    if value is None:
        return default
    return value.lower() in TRUE_VALUES


def parse_locale(value: str | None) -> str:
    """Map 'AR', 'ar-SA', 'arabic', ... to 'ar'; everything else to 'en'."""
    value = (clean_string(value) or "").lower()
    return "ar" if value.startswith("ar") else "en"


def normalize_email_list(raw: str | None) -> str:
    """Canonical comma-separated address list: trimmed, deduplicated, order kept."""
    if not raw:
        return ""
    seen: list[str] = []
    for part in re.split(r"[,;\s]+", raw.strip()):
        if part and part.lower() not in (s.lower() for s in seen):
            seen.append(part)
    return ",".join(seen)
