"""
MongoDB implementation of the document store (pymongo).
"""

from __future__ import annotations
import logging
from typing import Any, Iterable, Mapping
from pymongo import MongoClient, UpdateMany, UpdateOne
from pymongo.server_api import ServerApi
from clinic_migration.store.base import Filter, Record, UpdateOp

log = logging.getLogger(__name__)


class MongoStore:
    def __init__(self, client: MongoClient, db_name: str):
        self.client = client
        self.db = client[db_name]

    @classmethod
    def from_url(cls, url: str, db_name: str) -> "MongoStore":
        client = MongoClient(url, server_api=ServerApi("1"), tz_aware=True)
        log.info("Connected to MongoDB database %r", db_name)
        return cls(client, db_name)

    def find(self, collection: str, filter: Filter | None = None,
             projection: Mapping[str, int] | None = None) -> list[Record]:
        return list(self.db[collection].find(dict(filter or {}), projection))

    def insert_many(self, collection: str, records: Iterable[Record]) -> list[Any]:
        records = list(records)
        if not records:
            return []
        result = self.db[collection].insert_many(records, ordered=True)
        return list(result.inserted_ids)

    def bulk_update(self, collection: str, ops: Iterable[UpdateOp]) -> int:
        requests = [
            (UpdateMany if op.many else UpdateOne)(dict(op.filter), dict(op.update))
            for op in ops
        ]
        if not requests:
            return 0
        result = self.db[collection].bulk_write(requests, ordered=True)
        return result.modified_count

    def delete_many(self, collection: str, filter: Filter) -> int:
        return self.db[collection].delete_many(dict(filter)).deleted_count

    def count(self, collection: str, filter: Filter | None = None) -> int:
        return self.db[collection].count_documents(dict(filter or {}))

    def close(self) -> None:
        self.client.close()
