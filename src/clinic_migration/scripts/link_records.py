"""
Rerun only the link step, e.g. after patients were added or fixed.
Run with: python -m clinic_migration.scripts.link_records
"""
import logging
import sys
from clinic_migration.core.config import get_settings
from clinic_migration.core.context import RunContext
from clinic_migration.core.db import get_store
from clinic_migration.core.errors import MigrationError
from clinic_migration.core.logging_setup import setup_logging
from clinic_migration.services.migration import link_all

log = logging.getLogger(__name__)

def main() -> int:
    try:
        settings = get_settings()
    except MigrationError as e:
        setup_logging()
        log.error("%s", e)
        return 1
    setup_logging(settings.log_level)

    store = get_store(settings)
    try:
        ctx = RunContext(chunk_size=settings.chunk_size, doctor_match=settings.doctor_match,
                         legacy_timezone=settings.legacy_timezone)
        results = link_all(store, ctx)
    finally:
        store.close()

    for name, r in results.items():
        log.info("%s: found=%d linked=%d not_found=%d", name, r.found, r.linked, r.not_found)
    return 0

if __name__ == "__main__":
    sys.exit(main())
