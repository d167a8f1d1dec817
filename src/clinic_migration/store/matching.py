"""
In-process evaluation of the MongoDB filter/update subset the pipeline uses.

Used by the SQL document store, where documents are opaque JSON bodies.
"""

from __future__ import annotations
import re
from typing import Any, Mapping

_MISSING = object()

_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}


def get_path(doc: Mapping[str, Any], path: str) -> Any:
    current: Any = doc
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def matches(doc: Mapping[str, Any], flt: Mapping[str, Any] | None) -> bool:
    for key, cond in (flt or {}).items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in cond):
                return False
        elif key == "$and":
            if not all(matches(doc, sub) for sub in cond):
                return False
        elif key == "$nor":
            if any(matches(doc, sub) for sub in cond):
                return False
        elif key.startswith("$"):
            raise ValueError(f"Unsupported top-level operator: {key}")
        elif not _match_condition(get_path(doc, key), cond):
            return False
    return True


def _is_operator_dict(cond: Any) -> bool:
    return isinstance(cond, Mapping) and bool(cond) and all(str(k).startswith("$") for k in cond)


def _regex(pattern: Any, options: str = "") -> re.Pattern:
    if isinstance(pattern, re.Pattern):
        return pattern
    flags = 0
    for opt in options:
        flags |= _REGEX_FLAGS.get(opt, 0)
    return re.compile(pattern, flags)


def _match_condition(value: Any, cond: Any) -> bool:
    if isinstance(cond, re.Pattern):
        return _regex_match(value, cond)
    if not _is_operator_dict(cond):
        return _equals(value, cond)

    for op, arg in cond.items():
        if op == "$options":
            continue
        if op == "$regex":
            if not _regex_match(value, _regex(arg, cond.get("$options", ""))):
                return False
        elif not _apply_operator(value, op, arg):
            return False
    return True


def _regex_match(value: Any, pattern: re.Pattern) -> bool:
    if isinstance(value, list):
        return any(_regex_match(v, pattern) for v in value)
    return isinstance(value, str) and pattern.search(value) is not None


def _equals(value: Any, expected: Any) -> bool:
    if expected is None:
        return value is _MISSING or value is None
    if value is _MISSING:
        return False
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def _compare(value: Any, arg: Any, op: str) -> bool:
    if value is _MISSING or value is None or arg is None:
        return False
    try:
        if op == "$gt":
            return value > arg
        if op == "$gte":
            return value >= arg
        if op == "$lt":
            return value < arg
        return value <= arg
    except TypeError:
        return False


def _apply_operator(value: Any, op: str, arg: Any) -> bool:
    if op == "$exists":
        return (value is not _MISSING) == bool(arg)
    if op == "$ne":
        return not _equals(value, arg)
    if op == "$in":
        return any(_equals(value, a) for a in arg)
    if op == "$nin":
        return not any(_equals(value, a) for a in arg)
    if op == "$not":
        return not _match_condition(value, arg)
    if op in ("$gt", "$gte", "$lt", "$lte"):
        return _compare(value, arg, op)
    raise ValueError(f"Unsupported query operator: {op}")


def project(doc: Mapping[str, Any], projection: Mapping[str, Any] | None) -> dict:
    """Apply a top-level inclusion or exclusion projection."""
    if not projection:
        return dict(doc)
    include = {k for k, v in projection.items() if v and k != "_id"}
    keep_id = bool(projection.get("_id", 1))
    if include:
        out = {k: doc[k] for k in include if k in doc}
    else:
        excluded = {k for k, v in projection.items() if not v}
        out = {k: v for k, v in doc.items() if k not in excluded}
    if keep_id and "_id" in doc:
        out["_id"] = doc["_id"]
    elif not keep_id:
        out.pop("_id", None)
    return out


def _set_path(doc: dict, path: str, value: Any) -> bool:
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        nxt = target.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            target[part] = nxt
        target = nxt
    leaf = parts[-1]
    if leaf in target and target[leaf] == value and type(target[leaf]) is type(value):
        return False
    target[leaf] = value
    return True


def _unset_path(doc: dict, path: str) -> bool:
    parts = path.split(".")
    target: Any = doc
    for part in parts[:-1]:
        target = target.get(part) if isinstance(target, dict) else None
        if target is None:
            return False
    if isinstance(target, dict) and parts[-1] in target:
        del target[parts[-1]]
        return True
    return False


def apply_update(doc: dict, update: Mapping[str, Any]) -> bool:
    """Apply $set/$unset in place; return True when the document changed."""
    changed = False
    for op, fields in update.items():
        if op == "$set":
            for path, value in fields.items():
                changed = _set_path(doc, path, value) or changed
        elif op == "$unset":
            for path in fields:
                changed = _unset_path(doc, path) or changed
        else:
            raise ValueError(f"Unsupported update operator: {op}")
    return changed
