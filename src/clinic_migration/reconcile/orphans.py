"""
Orphan appointments and bills: migrated records whose patient could not be
resolved. The source patients were dropped for lacking a usable phone, so
these records have no owner to show.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from clinic_migration.core.config import APPOINTMENTS, BILLS
from clinic_migration.store.base import DocumentStore

log = logging.getLogger(__name__)

ORPHAN_FILTER = {
    "legacyId": {"$exists": True},
    "$or": [{"patientId": None}, {"patientId": {"$exists": False}}],
}
SAMPLE_SIZE = 5


@dataclass
class OrphanReport:
    appointments: int = 0
    bills: int = 0
    with_legacy_patient: int = 0
    legacy_patient_ids: list = field(default_factory=list)
    sample: list[dict] = field(default_factory=list)


def find_orphans(store: DocumentStore) -> OrphanReport:
    apts = store.find(APPOINTMENTS, ORPHAN_FILTER,
                      {"appointmentId": 1, "legacyPatientId": 1, "appointmentDate": 1})
    with_legacy = [a for a in apts if a.get("legacyPatientId") is not None]
    report = OrphanReport(
        appointments=len(apts),
        bills=store.count(BILLS, ORPHAN_FILTER),
        with_legacy_patient=len(with_legacy),
        legacy_patient_ids=sorted({a["legacyPatientId"] for a in with_legacy}, key=str),
        sample=apts[:SAMPLE_SIZE],
    )
    log.info("Orphans: %d appointments (%d with a legacy patient id, %d distinct), %d bills",
             report.appointments, report.with_legacy_patient, len(report.legacy_patient_ids),
             report.bills)
    return report


def prune_orphans(store: DocumentStore, dry_run: bool = False) -> dict[str, int]:
    if dry_run:
        report = find_orphans(store)
        return {APPOINTMENTS: report.appointments, BILLS: report.bills}

    deleted = {
        APPOINTMENTS: store.delete_many(APPOINTMENTS, ORPHAN_FILTER),
        BILLS: store.delete_many(BILLS, ORPHAN_FILTER),
    }
    log.info("Deleted %d orphan appointments and %d orphan bills", deleted[APPOINTMENTS], deleted[BILLS])
    return deleted
