"""
Extract typed legacy rows per table; rows with the wrong value count are
dropped and written to a per-table drop log.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import TypeVar
import pandas as pd
from clinic_migration.core.config import LOGS_DIR
from clinic_migration.core.context import RunContext
from clinic_migration.extract.dump_reader import iter_table_rows
from clinic_migration.extract.row_parser import parse_row_values
from clinic_migration.models.legacy import LegacyCharge, LegacyOpd, LegacyPatient, LegacyRow

log = logging.getLogger(__name__)

R = TypeVar("R", bound=LegacyRow)

DROP_LOG_COLS = ["table", "row_number", "expected", "found", "raw"]
RAW_PREVIEW = 200


def read_table(dump_path: str | Path, record_cls: type[R], ctx: RunContext | None = None,
               logs_dir: str | Path | None = None) -> list[R]:
    table = record_cls.TABLE
    expected = len(record_cls.columns())
    records: list[R] = []
    rejected = []

    for n, body in enumerate(iter_table_rows(dump_path, table, expected), start=1):
        values = parse_row_values(body)
        if len(values) != expected:
            rejected.append({
                "table": table,
                "row_number": n,
                "expected": expected,
                "found": len(values),
                "raw": body[:RAW_PREVIEW],
            })
            continue
        records.append(record_cls.from_values(values))

    if rejected:
        log.warning("%s: rejected %d rows with a column-count mismatch", table, len(rejected))
        out_dir = Path(logs_dir if logs_dir is not None else LOGS_DIR)
        out_dir.mkdir(parents=True, exist_ok=True)
        drop_log = out_dir / f"{table}_rejected.csv"
        pd.DataFrame(rejected, columns=DROP_LOG_COLS).to_csv(drop_log, index=False)
        log.warning("Wrote drop log: %s (%d rows)", drop_log, len(rejected))

    if ctx is not None:
        ctx.phase(table).rejected += len(rejected)

    log.info("Extracted %s: %d rows", table, len(records))
    return records


def read_patients(dump_path, ctx=None, logs_dir=None) -> list[LegacyPatient]:
    return read_table(dump_path, LegacyPatient, ctx, logs_dir)


def read_opd_details(dump_path, ctx=None, logs_dir=None) -> list[LegacyOpd]:
    return read_table(dump_path, LegacyOpd, ctx, logs_dir)


def read_charges(dump_path, ctx=None, logs_dir=None) -> list[LegacyCharge]:
    return read_table(dump_path, LegacyCharge, ctx, logs_dir)
