"""
Idempotent bulk loader.

`legacyId` is the only idempotency key: a candidate whose legacy id is already
present in the target collection is skipped, everything else is inserted in
bounded chunks. Running the same batch twice writes nothing the second time.
A failing chunk propagates; rerunning resumes where the store left off.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any
from clinic_migration.core.config import DEFAULT_CHUNK_SIZE
from clinic_migration.load.crosswalk import Crosswalk, legacy_key
from clinic_migration.store.base import DocumentStore, chunked

log = logging.getLogger(__name__)


@dataclass
class LoadResult:
    collection: str
    found: int = 0
    inserted: int = 0
    skipped: int = 0
    inserted_ids: dict[Any, Any] = field(default_factory=dict)


def existing_legacy_ids(store: DocumentStore, collection: str) -> dict[Any, Any]:
    docs = store.find(collection, {"legacyId": {"$exists": True, "$ne": None}}, {"legacyId": 1})
    return {legacy_key(d["legacyId"]): d["_id"] for d in docs}


def partition(records: list[dict], existing: dict[Any, Any]) -> tuple[list[dict], list[dict]]:
    """Split candidates into (to_insert, skipped); repeated legacy ids keep the first."""
    seen = set(existing)
    to_insert, skipped = [], []
    missing_key = 0
    for rec in records:
        key = legacy_key(rec.get("legacyId"))
        if key is None or key == "":
            missing_key += 1
            skipped.append(rec)
            continue
        if key in seen:
            skipped.append(rec)
            continue
        seen.add(key)
        to_insert.append(rec)
    if missing_key:
        log.warning("Skipped %d candidates without a legacyId", missing_key)
    return to_insert, skipped


def load_records(store: DocumentStore, collection: str, records: list[dict],
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 crosswalk: Crosswalk | None = None) -> LoadResult:
    result = LoadResult(collection, found=len(records))
    existing = existing_legacy_ids(store, collection)
    to_insert, skipped = partition(records, existing)
    result.skipped = len(skipped)

    for chunk in chunked(to_insert, chunk_size):
        try:
            ids = store.insert_many(collection, list(chunk))
        except Exception as e:
            log.error("%s: chunk insert failed after %d inserted: %s", collection, result.inserted, e,
                      exc_info=True)
            raise
        for rec, new_id in zip(chunk, ids):
            result.inserted_ids[legacy_key(rec["legacyId"])] = new_id
        result.inserted += len(ids)
        log.info("%s: inserted chunk of %d", collection, len(ids))

    if crosswalk is not None:
        for legacy_id, current_id in existing.items():
            crosswalk.add(legacy_id, current_id)
        for legacy_id, current_id in result.inserted_ids.items():
            crosswalk.add(legacy_id, current_id)

    if result.inserted:
        log.info("%s: found %d, inserted %d, skipped %d", collection, result.found, result.inserted,
                 result.skipped)
    else:
        log.info("%s: found %d, nothing new to insert (skipped %d)", collection, result.found,
                 result.skipped)
    return result
