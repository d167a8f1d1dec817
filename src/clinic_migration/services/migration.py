"""
Migration service - orchestrates extract, transform, load and link for the
legacy clinic dump.
"""

from __future__ import annotations
import logging
from pathlib import Path
from clinic_migration.core.config import (
    APPOINTMENTS,
    BILLS,
    DOCTORS,
    PATIENTS,
    PRESCRIPTIONS,
    SERVICE_ITEMS,
)
from clinic_migration.core.context import RunContext
from clinic_migration.extract.dump_reader import check_dump
from clinic_migration.extract.extract_legacy import read_charges, read_opd_details, read_patients
from clinic_migration.load.crosswalk import build_crosswalk, build_doctor_crosswalk
from clinic_migration.load.link import link_bills_to_appointments, link_references
from clinic_migration.load.loader import LoadResult, load_records
from clinic_migration.store.base import DocumentStore
from clinic_migration.transforms.transform_charges import transform_charges
from clinic_migration.transforms.transform_opd import transform_opd
from clinic_migration.transforms.transform_patients import transform_patients

log = logging.getLogger(__name__)

SUMMARY_COLLECTIONS = (PATIENTS, APPOINTMENTS, BILLS, SERVICE_ITEMS, DOCTORS, PRESCRIPTIONS)


def _record(ctx: RunContext, result: LoadResult) -> None:
    stats = ctx.phase(result.collection)
    stats.found += result.found
    stats.inserted += result.inserted
    stats.skipped += result.skipped


def migrate_patients(store: DocumentStore, dump_path: Path, ctx: RunContext, logs_dir=None) -> LoadResult:
    log.info("Migrating patients...")
    rows = read_patients(dump_path, ctx, logs_dir)
    patients = transform_patients(rows, ctx.started_at, ctx.legacy_timezone)
    result = load_records(store, PATIENTS, patients, ctx.chunk_size, crosswalk=ctx.patients)
    _record(ctx, result)
    return result


def migrate_opd(store: DocumentStore, dump_path: Path, ctx: RunContext,
                logs_dir=None) -> tuple[LoadResult, LoadResult]:
    log.info("Migrating OPD details (appointments and bills)...")
    rows = read_opd_details(dump_path, ctx, logs_dir)

    appointments, bills = [], []
    for row in rows:
        appointment, bill = transform_opd(row, ctx.patients, ctx.doctors, ctx.started_at,
                                          ctx.legacy_timezone)
        appointments.append(appointment)
        if bill is not None:
            bills.append(bill)

    unresolved = sum(1 for a in appointments if a["patientId"] is None)
    if unresolved:
        log.warning("Appointments: %d of %d have no resolvable patient; left unlinked",
                    unresolved, len(appointments))

    apt_result = load_records(store, APPOINTMENTS, appointments, ctx.chunk_size)
    _record(ctx, apt_result)
    bill_result = load_records(store, BILLS, bills, ctx.chunk_size)
    _record(ctx, bill_result)
    return apt_result, bill_result


def migrate_charges(store: DocumentStore, dump_path: Path, ctx: RunContext, logs_dir=None) -> LoadResult:
    log.info("Migrating service charges...")
    rows = read_charges(dump_path, ctx, logs_dir)
    items = transform_charges(rows, ctx.started_at)
    result = load_records(store, SERVICE_ITEMS, items, ctx.chunk_size)
    _record(ctx, result)
    return result


def link_all(store: DocumentStore, ctx: RunContext | None = None) -> dict:
    """Resolve legacy foreign keys left null by earlier runs."""
    if ctx is None:
        ctx = RunContext()
    if not len(ctx.patients):
        ctx.patients = build_crosswalk(store, PATIENTS, "patient")
    if not len(ctx.doctors):
        ctx.doctors = build_doctor_crosswalk(store, ctx.doctor_match)

    results = [
        link_references(store, APPOINTMENTS, "legacyPatientId", "patientId", ctx.patients, ctx.chunk_size),
        link_references(store, APPOINTMENTS, "legacyDoctorId", "doctorId", ctx.doctors, ctx.chunk_size),
        link_bills_to_appointments(store, ctx.chunk_size),
    ]
    for r in results:
        stats = ctx.phase(f"link:{r.collection}.{r.field}")
        stats.found += r.found
        stats.linked += r.linked
        stats.not_found += r.not_found
    return {f"{r.collection}.{r.field}": r for r in results}


def collection_counts(store: DocumentStore) -> dict[str, int]:
    return {name: store.count(name) for name in SUMMARY_COLLECTIONS}


def run_migration(store: DocumentStore, dump_path: str | Path, ctx: RunContext | None = None,
                  logs_dir=None) -> dict:
    """Execute the complete migration; safe to rerun after a partial failure."""
    dump_path = check_dump(dump_path)
    ctx = ctx or RunContext()
    log.info("Starting legacy migration from %s (%.2f MB)", dump_path,
             dump_path.stat().st_size / 1024 / 1024)

    try:
        migrate_patients(store, dump_path, ctx, logs_dir)
        ctx.doctors = build_doctor_crosswalk(store, ctx.doctor_match)
        migrate_opd(store, dump_path, ctx, logs_dir)
        migrate_charges(store, dump_path, ctx, logs_dir)
        log.info("Linking references...")
        link_all(store, ctx)
    except Exception as e:
        log.error("Migration failed: %s", e, exc_info=True)
        raise

    totals = collection_counts(store)
    for name, n in totals.items():
        log.info("   %-14s %d", name, n)
    log.info("Migration complete")
    return {"phases": ctx.summary(), "totals": totals}
