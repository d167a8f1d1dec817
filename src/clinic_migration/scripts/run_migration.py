"""
CLI wrapper for the legacy clinic migration.
Run with:
    python -m clinic_migration.scripts.run_migration [dump.sql]
Reads DATABASE_URL / DB_NAME / LEGACY_DUMP_FILE from the environment (.env).
"""
import logging
import sys
from clinic_migration.core.config import get_settings
from clinic_migration.core.context import RunContext
from clinic_migration.core.db import get_store
from clinic_migration.core.errors import MigrationError
from clinic_migration.core.logging_setup import setup_logging
from clinic_migration.extract.dump_reader import check_dump
from clinic_migration.services.migration import run_migration

log = logging.getLogger(__name__)

def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        settings = get_settings()
        setup_logging(settings.log_level)
        dump_path = check_dump(argv[0] if argv else settings.dump_file)
    except MigrationError as e:
        setup_logging()
        log.error("%s", e)
        return 1

    log.info("Starting legacy clinic migration")
    store = get_store(settings)
    try:
        ctx = RunContext(chunk_size=settings.chunk_size, doctor_match=settings.doctor_match,
                         legacy_timezone=settings.legacy_timezone)
        stats = run_migration(store, dump_path, ctx)
    finally:
        store.close()

    for phase, counts in stats["phases"].items():
        log.info("%-34s %s", phase, ", ".join(f"{k}={v}" for k, v in counts.items() if v))
    return 0

if __name__ == "__main__":
    sys.exit(main())
