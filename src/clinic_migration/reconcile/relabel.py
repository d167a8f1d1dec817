"""
Bulk rewrite of an obsolete enum value to its current equivalent.
"""

from __future__ import annotations
import logging
from typing import Any
from clinic_migration.core.config import APPOINTMENTS
from clinic_migration.store.base import DocumentStore, UpdateOp

log = logging.getLogger(__name__)

# (collection, field, obsolete, current)
KNOWN_RELABELS = {
    "appointment-type": (APPOINTMENTS, "type", "new", "consultation"),
}


def relabel_field(store: DocumentStore, collection: str, field: str, old: Any, new: Any) -> int:
    if old == new:
        return 0
    modified = store.bulk_update(collection, [UpdateOp({field: old}, {"$set": {field: new}}, many=True)])
    log.info("%s.%s: relabeled %d records from %r to %r", collection, field, modified, old, new)
    return modified
