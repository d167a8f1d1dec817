"""
Crosswalks: legacy id -> current id maps used to wire foreign keys.

A crosswalk is built from target records already carrying `legacyId` and is
extended with ids the loader assigns during the same run. Lookups never create
records; an unknown legacy id resolves to None.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator, Mapping
from clinic_migration.core.config import DOCTORS
from clinic_migration.store.base import DocumentStore
from clinic_migration.transforms.cleaning import clean_name

log = logging.getLogger(__name__)


INT_KEY_RX = re.compile(r"-?[0-9]+")


def legacy_key(legacy_id: Any) -> Any:
    """Numeric legacy ids compare equal whether they arrive as 4, "4" or 4.0."""
    if isinstance(legacy_id, str):
        s = legacy_id.strip()
        if INT_KEY_RX.fullmatch(s):
            return int(s)
        return s
    if isinstance(legacy_id, float) and legacy_id.is_integer():
        return int(legacy_id)
    return legacy_id


class Crosswalk:
    def __init__(self, entity: str, mapping: Mapping[Any, Any] | None = None):
        self.entity = entity
        self._map: dict[Any, Any] = {}
        for legacy_id, current_id in (mapping or {}).items():
            self.add(legacy_id, current_id)

    def add(self, legacy_id: Any, current_id: Any) -> None:
        if legacy_id is None or current_id is None:
            return
        self._map[legacy_key(legacy_id)] = current_id

    def resolve(self, legacy_id: Any) -> Any:
        if legacy_id is None or legacy_id == "":
            return None
        return self._map.get(legacy_key(legacy_id))

    def __contains__(self, legacy_id: Any) -> bool:
        return self.resolve(legacy_id) is not None

    def __len__(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._map)

    def __repr__(self) -> str:
        return f"Crosswalk({self.entity!r}, {len(self)} entries)"


def build_crosswalk(store: DocumentStore, collection: str, entity: str | None = None) -> Crosswalk:
    docs = store.find(collection, {"legacyId": {"$exists": True, "$ne": None}}, {"legacyId": 1})
    xwalk = Crosswalk(entity or collection)
    for doc in docs:
        xwalk.add(doc["legacyId"], doc["_id"])
    log.info("Crosswalk %s: %d entries from existing records", xwalk.entity, len(xwalk))
    return xwalk


# --- doctors -------------------------------------------------------------

@dataclass(frozen=True)
class LegacyDoctor:
    name: str
    specialization: str


# consultants referenced by opd_details.cons_doctor in the historical dump
LEGACY_DOCTORS: dict[int, LegacyDoctor] = {
    4: LegacyDoctor("Dr. Vaibhav Awasthi", "General Physician"),
    9: LegacyDoctor("Dr. Ankita Sharma", "General Physician"),
}


def normalize_doctor_name(name: Any) -> str:
    if not name:
        return ""
    return re.sub(r"\s+", " ", clean_name(name)).strip().lower()


def doctor_name_matches(candidate: Any, wanted: Any, mode: str = "exact") -> bool:
    """Compare honorific-stripped, case-folded names.

    `exact` requires equality; `substring` accepts the wanted name anywhere in
    the candidate (the permissive historical behaviour).
    """
    cand, want = normalize_doctor_name(candidate), normalize_doctor_name(wanted)
    if not cand or not want:
        return False
    if mode == "substring":
        return want in cand
    if mode == "exact":
        return cand == want
    raise ValueError(f"Unknown doctor match mode: {mode}")


def find_doctor_matches(doctors: list[dict], name: str, mode: str = "exact") -> list[dict]:
    return [d for d in doctors if doctor_name_matches(d.get("name"), name, mode)]


def build_doctor_crosswalk(store: DocumentStore, mode: str = "exact",
                           legacy_doctors: Mapping[int, LegacyDoctor] = LEGACY_DOCTORS) -> Crosswalk:
    doctors = store.find(DOCTORS, {}, {"name": 1, "specialization": 1, "legacyId": 1})
    xwalk = Crosswalk("doctor")
    for doc in doctors:
        if doc.get("legacyId") is not None:
            xwalk.add(doc["legacyId"], doc["_id"])

    for legacy_id, info in legacy_doctors.items():
        if legacy_id in xwalk:
            continue
        hits = find_doctor_matches(doctors, info.name, mode)
        if len(hits) == 1:
            xwalk.add(legacy_id, hits[0]["_id"])
            log.info("Doctor %d (%s) matched existing %s", legacy_id, info.name, hits[0].get("name"))
        elif len(hits) > 1:
            log.warning("Doctor %d (%s) is ambiguous: %s; left unresolved", legacy_id, info.name,
                        ", ".join(str(h.get("name")) for h in hits))
        else:
            log.info("Doctor %d (%s) has no match yet", legacy_id, info.name)

    log.info("Crosswalk doctor: %d entries", len(xwalk))
    return xwalk
