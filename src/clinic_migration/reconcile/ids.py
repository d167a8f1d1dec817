"""
Normalize display ids to the canonical formats:
- patients: digits only, at least four (1001, 1002, ...)
- appointments and OPD bills: OPDN + number (OPDN1, OPDN2, ...)

Every rewrite is planned first; if any collection would end up with duplicate
ids, nothing is written.
"""

from __future__ import annotations
import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable
from clinic_migration.core.config import APPOINTMENTS, BILLS, DEFAULT_CHUNK_SIZE, PATIENTS
from clinic_migration.core.errors import IdCollisionError
from clinic_migration.store.base import DocumentStore, UpdateOp, chunked

log = logging.getLogger(__name__)

TRAILING_DIGITS_RX = re.compile(r"(\d+)$")


def trailing_number(value: Any) -> int:
    m = TRAILING_DIGITS_RX.search(str(value)) if value is not None else None
    return int(m.group(1)) if m else 0


def patient_display_id(n: int) -> str:
    return str(n).zfill(4) if n else "1001"


def opd_display_id(n: int) -> str:
    return f"OPDN{n or 1}"


@dataclass(frozen=True)
class IdRule:
    collection: str
    field: str
    pattern: str
    build: Callable[[int], str]


ID_RULES = (
    IdRule(PATIENTS, "patientId", r"^\d{4,}$", patient_display_id),
    IdRule(APPOINTMENTS, "appointmentId", r"^OPDN\d+$", opd_display_id),
    IdRule(BILLS, "billNo", r"^OPDN\d+$", opd_display_id),
)


def plan_rule(store: DocumentStore, rule: IdRule) -> list[UpdateOp]:
    canonical = re.compile(rule.pattern)
    bad = store.find(rule.collection,
                     {rule.field: {"$exists": True, "$ne": None, "$not": canonical}},
                     {rule.field: 1})
    if not bad:
        return []
    taken = Counter(
        d[rule.field] for d in store.find(rule.collection, {rule.field: canonical}, {rule.field: 1})
    )
    rewrites = [(d["_id"], rule.build(trailing_number(d.get(rule.field)))) for d in bad]
    taken.update(new_id for _, new_id in rewrites)
    collisions = sorted({new_id for _, new_id in rewrites if taken[new_id] > 1})
    if collisions:
        raise IdCollisionError(rule.collection, rule.field, collisions)
    return [UpdateOp({"_id": doc_id}, {"$set": {rule.field: new_id}}) for doc_id, new_id in rewrites]


def normalize_ids(store: DocumentStore, rules=ID_RULES, chunk_size: int = DEFAULT_CHUNK_SIZE) -> dict[str, int]:
    plans = {rule.collection: (rule, plan_rule(store, rule)) for rule in rules}

    updated = {}
    for collection, (rule, ops) in plans.items():
        log.info("%s.%s: %d ids to normalize", collection, rule.field, len(ops))
        updated[collection] = sum(store.bulk_update(collection, c) for c in chunked(ops, chunk_size))
        if ops:
            log.info("%s: updated %d", collection, updated[collection])
    return updated
