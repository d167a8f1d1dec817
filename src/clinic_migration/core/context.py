"""
Per-run state threaded through every migration stage and dropped afterwards.
"""

from __future__ import annotations
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from clinic_migration.core.config import DEFAULT_CHUNK_SIZE, DEFAULT_LEGACY_TIMEZONE
from clinic_migration.load.crosswalk import Crosswalk


@dataclass
class PhaseStats:
    found: int = 0
    inserted: int = 0
    skipped: int = 0
    linked: int = 0
    not_found: int = 0
    rejected: int = 0


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunContext:
    started_at: datetime = field(default_factory=_now)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    doctor_match: str = "exact"
    legacy_timezone: str = DEFAULT_LEGACY_TIMEZONE
    patients: Crosswalk = field(default_factory=lambda: Crosswalk("patient"))
    doctors: Crosswalk = field(default_factory=lambda: Crosswalk("doctor"))
    stats: dict[str, PhaseStats] = field(default_factory=dict)

    def phase(self, name: str) -> PhaseStats:
        return self.stats.setdefault(name, PhaseStats())

    def summary(self) -> dict[str, dict[str, int]]:
        return {name: asdict(s) for name, s in self.stats.items()}
