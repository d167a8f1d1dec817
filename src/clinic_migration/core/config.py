
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import os
import pandas as pd
from dotenv import load_dotenv
from clinic_migration.core.errors import ConfigError

load_dotenv()

# project paths
BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent
DATA_DIR = BASE_DIR / "data"
RAW_DIR  = DATA_DIR / "raw"
LOGS_DIR = DATA_DIR / "logs"

# input files
DUMP_FILE = RAW_DIR / "legacy_dump.sql"

# target collections
PATIENTS      = "patients"
APPOINTMENTS  = "appointments"
BILLS         = "opd_bills"
SERVICE_ITEMS = "service_items"
DOCTORS       = "doctors"
PRESCRIPTIONS = "prescriptions"

# loader
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_DB_NAME = "clinic_db"
DOCTOR_MATCH_MODES = ("exact", "substring")

# legacy timestamps are naive clinic-local times; everything stored is UTC
DEFAULT_LEGACY_TIMEZONE = "Asia/Kolkata"

MONGO_SCHEMES = ("mongodb://", "mongodb+srv://")


@dataclass(frozen=True)
class Settings:
    database_url: str
    db_name: str = DEFAULT_DB_NAME
    dump_file: Path = DUMP_FILE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    doctor_match: str = "exact"
    log_level: str = "INFO"
    legacy_timezone: str = DEFAULT_LEGACY_TIMEZONE

    @property
    def is_mongo(self) -> bool:
        return self.database_url.startswith(MONGO_SCHEMES)


def get_settings() -> Settings:
    """Read settings from the environment. DATABASE_URL is mandatory."""
    url = os.getenv("DATABASE_URL", "").strip()
    if not url:
        raise ConfigError("Missing required environment variable DATABASE_URL")

    raw_chunk = os.getenv("MIGRATION_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE))
    try:
        chunk_size = int(raw_chunk)
    except ValueError:
        raise ConfigError(f"MIGRATION_CHUNK_SIZE must be an integer, got {raw_chunk!r}") from None
    if chunk_size < 1:
        raise ConfigError("MIGRATION_CHUNK_SIZE must be positive")

    match_mode = os.getenv("DOCTOR_MATCH_MODE", "exact").strip().lower()
    if match_mode not in DOCTOR_MATCH_MODES:
        raise ConfigError(f"DOCTOR_MATCH_MODE must be one of {DOCTOR_MATCH_MODES}, got {match_mode!r}")

    legacy_tz = os.getenv("LEGACY_TIMEZONE", DEFAULT_LEGACY_TIMEZONE).strip()
    try:
        pd.Timestamp("2000-01-01").tz_localize(legacy_tz)
    except (KeyError, ValueError):
        raise ConfigError(f"LEGACY_TIMEZONE is not a known time zone: {legacy_tz!r}") from None

    return Settings(
        database_url=url,
        db_name=os.getenv("DB_NAME", DEFAULT_DB_NAME),
        dump_file=Path(os.getenv("LEGACY_DUMP_FILE", str(DUMP_FILE))),
        chunk_size=chunk_size,
        doctor_match=match_mode,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        legacy_timezone=legacy_tz,
    )
