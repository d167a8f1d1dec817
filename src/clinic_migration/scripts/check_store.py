"""
Check the store connection, list collection counts and report orphans.
Run with: python -m clinic_migration.scripts.check_store
"""
import pandas as pd
from clinic_migration.core.config import get_settings
from clinic_migration.core.db import get_store
from clinic_migration.reconcile.orphans import find_orphans
from clinic_migration.services.migration import collection_counts

def main():
    try:
        store = get_store(get_settings())
        counts = collection_counts(store)
    except Exception as e:
        print("Store Connection: FAILED")
        print(f"Error: {e}")
        return

    try:
        print("Store Connection: SUCCESS\n")
        print("Collections:")
        print(pd.Series(counts, name="documents").to_string())

        report = find_orphans(store)
        print(f"\nAppointments without patient link: {report.appointments}")
        print(f"  - With legacyPatientId: {report.with_legacy_patient}")
        print(f"  - Unique legacy patient IDs: {len(report.legacy_patient_ids)}")
        print(f"OPD bills without patient link: {report.bills}")
        if report.sample:
            print("\nSample orphan appointments:")
            print(pd.DataFrame(report.sample).drop(columns=["_id"], errors="ignore").to_string(index=False))
    finally:
        store.close()

if __name__ == "__main__":
    main()
