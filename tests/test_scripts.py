"""
Tests for the reconcile command-line dispatch
"""
import pytest
from clinic_migration.core.config import Settings
from clinic_migration.core.errors import MigrationError
from clinic_migration.scripts.reconcile import build_parser, run_command

SETTINGS = Settings(database_url="sqlite://")


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_repair_arguments():
    args = build_parser().parse_args(["repair-doctor-links", "--from", "a" * 24, "--to", "b" * 24])
    assert (args.stale_id, args.target_id, args.specialization) == ("a" * 24, "b" * 24, None)


def test_relabel_preset(store):
    store.insert_many("appointments", [{"type": "new"}])
    run_command(store, build_parser().parse_args(["relabel", "appointment-type"]), SETTINGS)
    assert store.count("appointments", {"type": "consultation"}) == 1


def test_relabel_needs_all_fields(store):
    args = build_parser().parse_args(["relabel", "--collection", "appointments", "--field", "type"])
    with pytest.raises(MigrationError):
        run_command(store, args, SETTINGS)


def test_merge_without_confirmation_writes_nothing(store):
    store.insert_many("doctors", [
        {"name": "Ankita Sharma", "specialization": "Gynecology"},
        {"name": "Ankita Sharma", "specialization": "General Physician"},
    ])
    args = build_parser().parse_args([
        "merge-doctors",
        "--duplicate-name", "Ankita Sharma", "--duplicate-specialization", "Gynecology",
        "--survivor-name", "Ankita Sharma", "--survivor-specialization", "General Physician",
    ])
    run_command(store, args, SETTINGS)
    assert store.count("doctors") == 2


def test_prune_orphans_dry_run(store):
    store.insert_many("appointments", [{"legacyId": 1, "patientId": None}])
    run_command(store, build_parser().parse_args(["prune-orphans", "--dry-run"]), SETTINGS)
    assert store.count("appointments") == 1
    run_command(store, build_parser().parse_args(["prune-orphans"]), SETTINGS)
    assert store.count("appointments") == 0
