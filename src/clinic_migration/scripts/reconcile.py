"""
One-off reconciliation passes over an already-migrated store.
Run with:
    python -m clinic_migration.scripts.reconcile <command> [options]

Commands:
    seed-doctors          insert historical doctors nobody matches yet
    repair-doctor-links   rebind records from a stale doctor id to a live one
    merge-doctors         fold a duplicate doctor into its survivor
    check-orphans         report appointments/bills without a patient
    prune-orphans         delete them
    normalize-ids         rewrite display ids to canonical formats
    relabel               rewrite an obsolete enum value
"""
import argparse
import logging
import sys
from clinic_migration.core.config import get_settings
from clinic_migration.core.db import get_store
from clinic_migration.core.errors import MigrationError
from clinic_migration.core.logging_setup import setup_logging
from clinic_migration.reconcile.doctors import DoctorSelector, merge_doctors, repair_doctor_links, seed_legacy_doctors
from clinic_migration.reconcile.ids import normalize_ids
from clinic_migration.reconcile.orphans import find_orphans, prune_orphans
from clinic_migration.reconcile.relabel import KNOWN_RELABELS, relabel_field

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reconcile a migrated clinic store")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("seed-doctors", help="Insert historical doctors missing from the store")

    p = sub.add_parser("repair-doctor-links", help="Repoint records from a stale doctor id")
    p.add_argument("--from", dest="stale_id", required=True, help="Stale doctor id")
    p.add_argument("--to", dest="target_id", required=True, help="Existing doctor id")
    p.add_argument("--specialization", help="Also set the target doctor's specialization")

    p = sub.add_parser("merge-doctors", help="Merge a duplicate doctor into its survivor")
    p.add_argument("--duplicate-name", required=True)
    p.add_argument("--duplicate-specialization", required=True)
    p.add_argument("--survivor-name", required=True)
    p.add_argument("--survivor-specialization", required=True)
    p.add_argument("--yes", action="store_true", help="Confirm the merge; without it nothing is written")

    sub.add_parser("check-orphans", help="Report records with no resolvable patient")

    p = sub.add_parser("prune-orphans", help="Delete records with no resolvable patient")
    p.add_argument("--dry-run", action="store_true", help="Count only")

    sub.add_parser("normalize-ids", help="Rewrite display ids to canonical formats")

    p = sub.add_parser("relabel", help="Rewrite an obsolete enum value")
    p.add_argument("preset", nargs="?", choices=sorted(KNOWN_RELABELS), help="Known relabel")
    p.add_argument("--collection")
    p.add_argument("--field")
    p.add_argument("--old")
    p.add_argument("--new")
    return parser


def run_command(store, args, settings) -> None:
    if args.command == "seed-doctors":
        seed_legacy_doctors(store, settings.doctor_match)

    elif args.command == "repair-doctor-links":
        counts = repair_doctor_links(store, args.stale_id, args.target_id, args.specialization)
        log.info("Repointed: %s", counts)

    elif args.command == "merge-doctors":
        duplicate = DoctorSelector(args.duplicate_name, args.duplicate_specialization)
        survivor = DoctorSelector(args.survivor_name, args.survivor_specialization)
        if not args.yes:
            log.warning("Refusing to merge %s into %s without --yes", duplicate, survivor)
            return
        result = merge_doctors(store, duplicate, survivor, settings.doctor_match)
        log.info("Merge result: %s", result)

    elif args.command == "check-orphans":
        find_orphans(store)

    elif args.command == "prune-orphans":
        counts = prune_orphans(store, dry_run=args.dry_run)
        log.info("%s: %s", "Would delete" if args.dry_run else "Deleted", counts)

    elif args.command == "normalize-ids":
        normalize_ids(store, chunk_size=settings.chunk_size)

    elif args.command == "relabel":
        if args.preset:
            collection, field, old, new = KNOWN_RELABELS[args.preset]
        elif all((args.collection, args.field, args.old, args.new)):
            collection, field, old, new = args.collection, args.field, args.old, args.new
        else:
            raise MigrationError("relabel needs a preset or --collection, --field, --old and --new")
        relabel_field(store, collection, field, old, new)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except MigrationError as e:
        setup_logging()
        log.error("%s", e)
        return 1
    setup_logging(settings.log_level)

    store = get_store(settings)
    try:
        run_command(store, args, settings)
    except MigrationError as e:
        log.error("%s failed: %s", args.command, e)
        return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
