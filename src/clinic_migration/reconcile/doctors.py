"""
Doctor reconciliation: seeding historical doctors, repairing links to a stale
doctor id, and merging a confirmed duplicate doctor into its survivor.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping
from clinic_migration.core.config import APPOINTMENTS, BILLS, DOCTORS, PRESCRIPTIONS
from clinic_migration.core.errors import ReconciliationError
from clinic_migration.load.crosswalk import LEGACY_DOCTORS, LegacyDoctor, doctor_name_matches, find_doctor_matches
from clinic_migration.load.loader import load_records
from clinic_migration.store.base import DocumentStore, UpdateOp, coerce_id

log = logging.getLogger(__name__)

DOCTOR_DEPENDENTS = (APPOINTMENTS, BILLS, PRESCRIPTIONS)


def seed_legacy_doctors(store: DocumentStore, mode: str = "exact",
                        legacy_doctors: Mapping[int, LegacyDoctor] = LEGACY_DOCTORS) -> int:
    """Insert a doctor record for each historical doctor nobody matches yet."""
    doctors = store.find(DOCTORS, {}, {"name": 1, "legacyId": 1})
    now = datetime.now(timezone.utc)
    candidates = []
    for legacy_id, info in legacy_doctors.items():
        if find_doctor_matches(doctors, info.name, mode):
            continue
        candidates.append({
            "doctorId": f"DOC{str(legacy_id).zfill(4)}",
            "name": info.name,
            "specialization": info.specialization,
            "phone": "",
            "email": "",
            "isActive": True,
            "legacyId": legacy_id,
            "createdAt": now,
            "updatedAt": now,
        })
    result = load_records(store, DOCTORS, candidates)
    log.info("Seeded %d legacy doctors", result.inserted)
    return result.inserted


def _repoint(store: DocumentStore, stale_id: Any, target_id: Any) -> dict[str, int]:
    counts = {}
    for collection in DOCTOR_DEPENDENTS:
        counts[collection] = store.bulk_update(
            collection,
            [UpdateOp({"doctorId": stale_id}, {"$set": {"doctorId": target_id}}, many=True)],
        )
        log.info("%s: repointed %d records", collection, counts[collection])
    return counts


def repair_doctor_links(store: DocumentStore, stale_id: Any, target_id: Any,
                        specialization: str | None = None) -> dict[str, int]:
    """Rebind appointments, bills and prescriptions from a deleted/duplicate doctor id."""
    stale_id, target_id = coerce_id(stale_id), coerce_id(target_id)
    if stale_id == target_id:
        raise ReconciliationError("stale and target doctor ids are the same")
    if not store.count(DOCTORS, {"_id": target_id}):
        raise ReconciliationError(f"target doctor {target_id} does not exist")

    if specialization:
        store.bulk_update(DOCTORS, [UpdateOp({"_id": target_id}, {"$set": {"specialization": specialization}})])
        log.info("Doctor %s specialization set to %s", target_id, specialization)
    return _repoint(store, stale_id, target_id)


@dataclass(frozen=True)
class DoctorSelector:
    name: str
    specialization: str

    def matches(self, doctor: Mapping[str, Any], mode: str = "exact") -> bool:
        spec = str(doctor.get("specialization") or "").strip().lower()
        return spec == self.specialization.strip().lower() and doctor_name_matches(
            doctor.get("name"), self.name, mode)

    def __str__(self) -> str:
        return f"{self.name} ({self.specialization})"


@dataclass
class MergeResult:
    duplicate_id: Any = None
    survivor_id: Any = None
    repointed: dict[str, int] = field(default_factory=dict)
    deleted: int = 0


def merge_doctors(store: DocumentStore, duplicate: DoctorSelector, survivor: DoctorSelector,
                  mode: str = "exact") -> MergeResult:
    """Move every dependent of `duplicate` to `survivor`, then delete `duplicate`.

    Both selectors must match exactly one doctor on name and specialization.
    Once the duplicate is gone a rerun is a no-op.
    """
    doctors = store.find(DOCTORS, {}, {"name": 1, "specialization": 1})
    keep = [d for d in doctors if survivor.matches(d, mode)]
    drop = [d for d in doctors if duplicate.matches(d, mode)]

    if len(keep) != 1:
        raise ReconciliationError(f"survivor {survivor} matched {len(keep)} doctors, expected 1")
    if not drop:
        log.info("No doctor matches %s; nothing to merge", duplicate)
        return MergeResult(survivor_id=keep[0]["_id"])
    if len(drop) > 1:
        raise ReconciliationError(f"duplicate {duplicate} matched {len(drop)} doctors, expected 1")
    if drop[0]["_id"] == keep[0]["_id"]:
        raise ReconciliationError("duplicate and survivor resolve to the same doctor")

    result = MergeResult(duplicate_id=drop[0]["_id"], survivor_id=keep[0]["_id"])
    log.info("Merging %s (%s) into %s (%s)", drop[0].get("name"), result.duplicate_id,
             keep[0].get("name"), result.survivor_id)
    result.repointed = _repoint(store, result.duplicate_id, result.survivor_id)
    result.deleted = store.delete_many(DOCTORS, {"_id": result.duplicate_id})
    log.info("Deleted duplicate doctor %s", result.duplicate_id)
    return result
