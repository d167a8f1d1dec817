"""
Transform legacy patients into patient documents.
"""

from __future__ import annotations
import logging
from datetime import datetime
from clinic_migration.core.config import DEFAULT_LEGACY_TIMEZONE
from clinic_migration.models.legacy import LegacyPatient
from clinic_migration.transforms.cleaning import (
    as_text,
    clean_name,
    clean_phone,
    normalize_gender,
    parse_date,
    parse_timestamp,
    text_or_none,
    to_age,
)

log = logging.getLogger(__name__)

DISPLAY_ID_PREFIX = "PAT"
DISPLAY_ID_OFFSET = 1000
PLACEHOLDER_NAMES = {"", "-"}


def is_migratable(row: LegacyPatient) -> bool:
    return as_text(row.patient_name) not in PLACEHOLDER_NAMES


def display_id(row: LegacyPatient, index: int) -> str:
    base = row.patient_unique_id if row.patient_unique_id not in (None, "", 0) else DISPLAY_ID_OFFSET + index
    return f"{DISPLAY_ID_PREFIX}{str(base).zfill(4)}"


def transform_patient(row: LegacyPatient, index: int, now: datetime,
                      tz: str = DEFAULT_LEGACY_TIMEZONE) -> dict:
    allergies = as_text(row.known_allergies)
    return {
        "patientId": display_id(row, index),
        "name": clean_name(row.patient_name),
        "phone": clean_phone(row.mobileno),
        "email": text_or_none(row.email),
        "age": to_age(row.age),
        "gender": normalize_gender(row.gender),
        "dateOfBirth": parse_date(row.dob),
        "bloodGroup": text_or_none(row.blood_group),
        "address": {
            "line1": as_text(row.address),
            "city": "",
            "state": "",
            "pincode": "",
        },
        "emergencyContact": {
            "name": text_or_none(row.guardian_name),
            "phone": clean_phone(row.guardian_phone),
            "relation": "Guardian",
        },
        "medicalHistory": {
            "allergies": [allergies] if allergies else [],
            "conditions": [],
            "notes": as_text(row.note),
        },
        "isActive": as_text(row.is_active).lower() == "yes",
        "legacyId": row.id,
        "createdAt": parse_timestamp(row.created_at, tz) or now,
        "updatedAt": now,
    }


def transform_patients(rows: list[LegacyPatient], now: datetime,
                       tz: str = DEFAULT_LEGACY_TIMEZONE) -> list[dict]:
    kept = [r for r in rows if is_migratable(r)]
    if len(kept) < len(rows):
        log.info("Patients: skipped %d rows without a usable name", len(rows) - len(kept))
    return [transform_patient(r, i, now, tz) for i, r in enumerate(kept)]
