"""
Persistence interface the pipeline writes through.

Any document store offering these five operations can host the migration.
Filters and updates use the MongoDB query/update dialect.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Protocol, Sequence, TypeVar
from bson import ObjectId

T = TypeVar("T")

Filter = Mapping[str, Any]
Record = dict


@dataclass(frozen=True)
class UpdateOp:
    filter: Filter
    update: Mapping[str, Any]
    many: bool = False


class DocumentStore(Protocol):
    def find(self, collection: str, filter: Filter | None = None,
             projection: Mapping[str, int] | None = None) -> list[Record]: ...

    def insert_many(self, collection: str, records: Iterable[Record]) -> list[Any]: ...

    def bulk_update(self, collection: str, ops: Iterable[UpdateOp]) -> int: ...

    def delete_many(self, collection: str, filter: Filter) -> int: ...

    def count(self, collection: str, filter: Filter | None = None) -> int: ...

    def close(self) -> None: ...


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size < 1:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def coerce_id(value: Any) -> Any:
    """Turn a 24-hex string (e.g. from the command line) into an ObjectId."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value
