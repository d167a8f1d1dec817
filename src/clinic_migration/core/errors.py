"""
Exception types for the migration pipeline.
"""


class MigrationError(Exception):
    """Base class for failures that should stop a migration run."""


class ConfigError(MigrationError):
    pass


class DumpNotFoundError(MigrationError, FileNotFoundError):
    pass


class ReconciliationError(MigrationError):
    """A reconciliation pass refused to write because its preconditions failed."""


class IdCollisionError(ReconciliationError):
    def __init__(self, collection: str, field: str, collisions: list[str]):
        self.collection = collection
        self.field = field
        self.collisions = collisions
        sample = ", ".join(collisions[:10])
        super().__init__(
            f"{collection}.{field}: {len(collisions)} normalized ids would collide ({sample})"
        )
