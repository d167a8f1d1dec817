"""
Document store on top of a relational database (SQLAlchemy).

Every document is one row of the `documents` table, its body kept as MongoDB
extended JSON so ObjectIds and datetimes survive the round trip (datetimes come
back as aware UTC). Filters are evaluated in Python; each public call runs in
one transaction.
"""

from __future__ import annotations
import logging
from datetime import timezone
from typing import Any, Iterable, Mapping
from bson import ObjectId, json_util
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from clinic_migration.models.tables import Document
from clinic_migration.store.base import Filter, Record, UpdateOp
from clinic_migration.store.matching import apply_update, matches, project

log = logging.getLogger(__name__)

# datetimes come back aware, matching a tz_aware MongoClient
JSON_OPTIONS = json_util.RELAXED_JSON_OPTIONS.with_options(tz_aware=True, tzinfo=timezone.utc)


class SqlDocumentStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    @staticmethod
    def _load(session: Session, collection: str) -> list[tuple[Document, dict]]:
        rows = session.execute(
            select(Document).where(Document.collection == collection).order_by(Document.seq)
        ).scalars().all()
        return [(row, json_util.loads(row.body, json_options=JSON_OPTIONS)) for row in rows]

    def find(self, collection: str, filter: Filter | None = None,
             projection: Mapping[str, int] | None = None) -> list[Record]:
        with Session(self.engine) as session:
            loaded = self._load(session, collection)
        return [project(doc, projection) for _, doc in loaded if matches(doc, filter)]

    def insert_many(self, collection: str, records: Iterable[Record]) -> list[Any]:
        records = list(records)
        if not records:
            return []
        ids = []
        with Session(self.engine) as session:
            try:
                for rec in records:
                    rec.setdefault("_id", ObjectId())
                    session.add(Document(
                        collection=collection,
                        doc_id=str(rec["_id"]),
                        body=json_util.dumps(rec, json_options=JSON_OPTIONS),
                    ))
                    ids.append(rec["_id"])
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                log.error("insert_many into %s failed; rolled back: %s", collection, e)
                raise
        return ids

    def bulk_update(self, collection: str, ops: Iterable[UpdateOp]) -> int:
        ops = list(ops)
        if not ops:
            return 0
        modified = 0
        with Session(self.engine) as session:
            try:
                loaded = self._load(session, collection)
                by_id = {doc.get("_id"): (row, doc) for row, doc in loaded}
                dirty: dict[int, tuple[Document, dict]] = {}
                for op in ops:
                    for row, doc in self._targets(loaded, by_id, op):
                        if apply_update(doc, op.update):
                            modified += 1
                            dirty[row.seq] = (row, doc)
                for row, doc in dirty.values():
                    row.body = json_util.dumps(doc, json_options=JSON_OPTIONS)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                log.error("bulk_update on %s failed; rolled back: %s", collection, e)
                raise
        return modified

    @staticmethod
    def _targets(loaded, by_id, op: UpdateOp):
        flt = op.filter
        if set(flt) == {"_id"} and not isinstance(flt["_id"], Mapping):
            hit = by_id.get(flt["_id"])
            return [hit] if hit is not None else []
        hits = [(row, doc) for row, doc in loaded if matches(doc, flt)]
        return hits if op.many else hits[:1]

    def delete_many(self, collection: str, filter: Filter) -> int:
        with Session(self.engine) as session:
            try:
                doomed = [row for row, doc in self._load(session, collection) if matches(doc, filter)]
                for row in doomed:
                    session.delete(row)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                log.error("delete_many on %s failed; rolled back: %s", collection, e)
                raise
        return len(doomed)

    def count(self, collection: str, filter: Filter | None = None) -> int:
        return len(self.find(collection, filter, {"_id": 1}))

    def close(self) -> None:
        self.engine.dispose()
