"""
Field-level cleaning shared by the entity transformers.

None of these raise: an unusable value becomes a documented default.
"""

from __future__ import annotations
import re
from datetime import datetime, timezone
from typing import Any
import pandas as pd
from clinic_migration.core.config import DEFAULT_LEGACY_TIMEZONE

HONORIFIC_RX = re.compile(r"^(?:(?:Mrs|Mr|Ms|Dr)\.|(?:Baby|Master)\b)\s*", re.IGNORECASE)
NON_DIGIT_RX = re.compile(r"\D")
LEADING_INT_RX = re.compile(r"^\s*(\d+)")

ZERO_DATE = "0000-00-00"
DEFAULT_TIME = "10:00"
PHONE_DIGITS = 10

DATE_FORMATS = ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d")
DATETIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S", "%d-%m-%Y %H:%M:%S",
                    "%d/%m/%Y %H:%M")


def as_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def clean_name(name: Any) -> str:
    s = as_text(name)
    if not s:
        return "Unknown"
    return HONORIFIC_RX.sub("", s, count=1).strip() or s


def clean_phone(phone: Any) -> str | None:
    """Keep the last 10 digits; fewer than 10 digits means no usable phone."""
    digits = NON_DIGIT_RX.sub("", as_text(phone))
    return digits[-PHONE_DIGITS:] if len(digits) >= PHONE_DIGITS else None


def normalize_gender(gender: Any) -> str | None:
    g = as_text(gender).lower()
    if not g:
        return None
    if g.startswith("m"):
        return "Male"
    if g.startswith("f"):
        return "Female"
    return "Other"


def parse_datetime(value: Any) -> datetime | None:
    s = as_text(value)
    if not s or s.startswith(ZERO_DATE):
        return None
    for fmt in DATETIME_FORMATS + DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def parse_date(value: Any) -> datetime | None:
    """Date-only fields; stored as UTC midnight of the calendar date (BSON has no date type)."""
    dt = parse_datetime(value)
    return datetime(dt.year, dt.month, dt.day, tzinfo=timezone.utc) if dt else None


def to_utc(dt: datetime | None, tz: str = DEFAULT_LEGACY_TIMEZONE) -> datetime | None:
    """Read a naive legacy timestamp as clinic-local time in `tz` and convert it to aware UTC."""
    if dt is None:
        return None
    try:
        ts = pd.Timestamp(dt)
        if ts.tzinfo is None:
            ts = ts.tz_localize(tz, ambiguous="NaT", nonexistent="NaT")
    except (ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.tz_convert("UTC").to_pydatetime()


def parse_timestamp(value: Any, tz: str = DEFAULT_LEGACY_TIMEZONE) -> datetime | None:
    return to_utc(parse_datetime(value), tz)


def format_time(value: Any) -> str:
    """HH:MM of a legacy timestamp; values without a time part get the default slot."""
    s = as_text(value)
    if not s or s.startswith(ZERO_DATE):
        return DEFAULT_TIME
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(s, fmt).strftime("%H:%M")
        except ValueError:
            continue
    return DEFAULT_TIME


def to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(as_text(value))
    except ValueError:
        return default


def to_age(value: Any) -> int | None:
    m = LEADING_INT_RX.match(as_text(value))
    age = int(m.group(1)) if m else 0
    return age or None


def normalize_payment_mode(mode: Any) -> str:
    m = as_text(mode).lower()
    if "cash" in m:
        return "cash"
    if "card" in m:
        return "card"
    if "upi" in m:
        return "upi"
    return "cash"


def text_or_none(value: Any) -> str | None:
    s = as_text(value)
    return s or None
