"""
Transform legacy charges into service items.
"""

from __future__ import annotations
import logging
from datetime import datetime
import pandas as pd
from clinic_migration.models.legacy import LegacyCharge
from clinic_migration.transforms.cleaning import as_text, to_float

log = logging.getLogger(__name__)

# first matching rule wins
CATEGORY_RULES = (
    (("pathology", "lab"), "laboratory"),
    (("radiology", "x-ray", "xray"), "radiology"),
    (("procedure",), "procedure"),
)
DEFAULT_CATEGORY = "other"
UNKNOWN_SERVICE = "Unknown Service"


def classify_charge(charge_type) -> str:
    t = as_text(charge_type).lower()
    for needles, category in CATEGORY_RULES:
        if any(n in t for n in needles):
            return category
    return DEFAULT_CATEGORY


def transform_charge(row: LegacyCharge, now: datetime) -> dict:
    return {
        "name": as_text(row.charge_category) or UNKNOWN_SERVICE,
        "category": classify_charge(row.charge_type),
        "rate": to_float(row.standard_charge),
        "description": as_text(row.description),
        "code": as_text(row.code),
        "isActive": True,
        "legacyId": row.id,
        "createdAt": now,
        "updatedAt": now,
    }


def dedupe_service_items(items: list[dict]) -> list[dict]:
    """Keep the first item per (case-insensitive name, category)."""
    if not items:
        return []
    keys = pd.DataFrame({
        "name_key": [str(i["name"]).strip().lower() for i in items],
        "category": [i["category"] for i in items],
    })
    keep = ~keys.duplicated(subset=["name_key", "category"], keep="first")
    unique = [item for item, k in zip(items, keep) if k]
    if len(unique) < len(items):
        log.info("Service items: collapsed %d duplicates by name/category", len(items) - len(unique))
    return unique


def transform_charges(rows: list[LegacyCharge], now: datetime) -> list[dict]:
    kept = [r for r in rows if as_text(r.charge_category)]
    if len(kept) < len(rows):
        log.info("Charges: skipped %d rows without a category name", len(rows) - len(kept))
    return dedupe_service_items([transform_charge(r, now) for r in kept])
