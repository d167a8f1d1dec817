"""
Link step: fill in resolved references for records that only carry a legacy
foreign key. Unresolvable keys are left null and counted as not found.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from clinic_migration.core.config import APPOINTMENTS, BILLS, DEFAULT_CHUNK_SIZE
from clinic_migration.load.crosswalk import Crosswalk
from clinic_migration.store.base import DocumentStore, UpdateOp, chunked

log = logging.getLogger(__name__)

BILL_REFS = ("appointmentId", "patientId", "doctorId")


@dataclass
class LinkResult:
    collection: str
    field: str
    found: int = 0
    linked: int = 0
    not_found: int = 0


def unresolved_filter(legacy_field: str, ref_field: str) -> dict:
    return {
        legacy_field: {"$exists": True, "$ne": None},
        "$or": [{ref_field: None}, {ref_field: {"$exists": False}}],
    }


def _apply(store: DocumentStore, collection: str, ops: list[UpdateOp], chunk_size: int) -> int:
    modified = 0
    for chunk in chunked(ops, chunk_size):
        modified += store.bulk_update(collection, chunk)
    return modified


def link_references(store: DocumentStore, collection: str, legacy_field: str, ref_field: str,
                    crosswalk: Crosswalk, chunk_size: int = DEFAULT_CHUNK_SIZE) -> LinkResult:
    pending = store.find(collection, unresolved_filter(legacy_field, ref_field), {legacy_field: 1})
    result = LinkResult(collection, ref_field, found=len(pending))

    ops = []
    for doc in pending:
        current = crosswalk.resolve(doc.get(legacy_field))
        if current is None:
            result.not_found += 1
            continue
        ops.append(UpdateOp({"_id": doc["_id"]}, {"$set": {ref_field: current}}))

    result.linked = _apply(store, collection, ops, chunk_size)

    log.info("%s.%s: %d unlinked, %d linked, %d not found", collection, ref_field,
             result.found, result.linked, result.not_found)
    if result.not_found:
        log.warning("%s.%s: %d records reference a %s with no crosswalk entry", collection,
                    ref_field, result.not_found, crosswalk.entity)
    return result


def link_bills_to_appointments(store: DocumentStore, chunk_size: int = DEFAULT_CHUNK_SIZE) -> LinkResult:
    """Copy appointment/patient/doctor references onto bills from their owning appointment."""
    pending = store.find(
        BILLS,
        {"legacyId": {"$exists": True, "$ne": None}, "$or": [{f: None} for f in BILL_REFS]},
        {"legacyId": 1, **{f: 1 for f in BILL_REFS}},
    )
    result = LinkResult(BILLS, "appointmentId", found=len(pending))
    if not pending:
        log.info("%s: every bill already carries its appointment references", BILLS)
        return result

    legacy_ids = sorted({b["legacyId"] for b in pending}, key=str)
    owners = {
        a["legacyId"]: a
        for a in store.find(APPOINTMENTS, {"legacyId": {"$in": legacy_ids}},
                            {"legacyId": 1, "patientId": 1, "doctorId": 1})
    }

    ops = []
    for bill in pending:
        owner = owners.get(bill["legacyId"])
        if owner is None:
            result.not_found += 1
            continue
        wanted = {
            "appointmentId": owner["_id"],
            "patientId": owner.get("patientId"),
            "doctorId": owner.get("doctorId"),
        }
        changes = {k: v for k, v in wanted.items() if bill.get(k) != v}
        if changes:
            ops.append(UpdateOp({"_id": bill["_id"]}, {"$set": changes}))

    result.linked = _apply(store, BILLS, ops, chunk_size)
    log.info("%s: %d bills pending, %d updated from appointments, %d without an appointment",
             BILLS, result.found, result.linked, result.not_found)
    return result
