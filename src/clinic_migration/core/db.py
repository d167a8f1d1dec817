import logging
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import SQLAlchemyError
from clinic_migration.core.config import Settings
from clinic_migration.models.tables import Base
from clinic_migration.store.mongo import MongoStore
from clinic_migration.store.sql import SqlDocumentStore

log = logging.getLogger(__name__)

def get_engine(url: str):
    try:
        return create_engine(url, echo=False, future=True)
    except SQLAlchemyError as e:
        log.error("Failed to create engine: %s", e)
        raise

def create_tables(engine):
    """Create missing tables (idempotent)."""
    insp = inspect(engine)
    existing = set(insp.get_table_names())
    expected = set(Base.metadata.tables.keys())

    if expected.issubset(existing):
        log.info("All tables exist. Skipping creation.")
        return engine

    missing = sorted(expected - existing)
    log.info("Creating tables: %s", ", ".join(missing))
    Base.metadata.create_all(engine)
    log.info("Tables created.")
    return engine

def get_store(settings: Settings):
    """Open the document store named by the connection string."""
    if settings.is_mongo:
        return MongoStore.from_url(settings.database_url, settings.db_name)
    engine = create_tables(get_engine(settings.database_url))
    log.info("Using SQL document store at %s", engine.url.render_as_string(hide_password=True))
    return SqlDocumentStore(engine)
