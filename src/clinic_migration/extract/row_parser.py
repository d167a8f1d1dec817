"""
Parse the body of one VALUES row into typed scalars.

Grammar subset: comma-separated literals, strings quoted with ' or ", a doubled
quote inside a string is a literal quote, bare NULL is null. No backslash
escapes, function calls or binary literals.
"""

from __future__ import annotations
import re
from clinic_migration.models.legacy import Scalar

INT_RX   = re.compile(r"^-?\d+$")
FLOAT_RX = re.compile(r"^-?\d+\.\d+$")

# longer digit runs (phone numbers, account numbers) stay strings
MAX_INT_LENGTH = 9

QUOTES = ("'", '"')


def coerce_value(token: str) -> Scalar:
    if token in ("NULL", "null"):
        return None
    if token == "":
        return ""
    if INT_RX.match(token) and len(token) <= MAX_INT_LENGTH:
        return int(token)
    if FLOAT_RX.match(token):
        return float(token)
    return token


def parse_row_values(body: str) -> list[Scalar]:
    values: list[Scalar] = []
    buf: list[str] = []
    in_string = False
    quote = ""
    i = 0
    n = len(body)

    while i < n:
        ch = body[i]
        if not in_string and ch in QUOTES:
            in_string = True
            quote = ch
        elif in_string and ch == quote:
            if i + 1 < n and body[i + 1] == quote:
                buf.append(ch)
                i += 1
            else:
                in_string = False
        elif not in_string and ch == ",":
            values.append(coerce_value("".join(buf).strip()))
            buf = []
        else:
            buf.append(ch)
        i += 1

    # the last field is committed even when empty
    values.append(coerce_value("".join(buf).strip()))
    return values


def ends_inside_string(text: str) -> bool:
    """True when `text` stops with a quoted literal still open."""
    in_string = False
    quote = ""
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if not in_string and ch in QUOTES:
            in_string, quote = True, ch
        elif in_string and ch == quote:
            if i + 1 < n and text[i + 1] == quote:
                i += 1
            else:
                in_string = False
        i += 1
    return in_string
