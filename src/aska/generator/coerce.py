"""Coercion helpers for loosely-typed model output.

The model's field names and value types drift between prompt revisions, so
every lookup goes through an ordered alias list and a coercer that returns
None for anything unusable.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

T = TypeVar("T")

_LEADING_INT_RE = re.compile(r"^[+-]?\d+")

_TRUE_WORDS = frozenset({"true", "t", "yes"})
_FALSE_WORDS = frozenset({"false", "f", "no"})


def coerce_string(value: Any) -> str | None:
    """Return the stripped string, or None for non-strings and blanks."""
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def coerce_string_list(value: Any) -> list[str] | None:
    """Return the non-blank string entries of a list, or None if there are none."""
    if not isinstance(value, list):
        return None
    items = [entry.strip() for entry in value if isinstance(entry, str) and entry.strip()]
    return items or None


def coerce_int(value: Any) -> int | None:
    """Accept finite numbers and strings that start with an integer ("2023-24" → 2023)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT_RE.match(value.strip())
        if match:
            return int(match.group(0))
    return None


def coerce_bool_from_text(value: Any) -> bool | None:
    """Accept booleans and true/false/t/f/yes/no in any case."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def coerce_scalar_text(value: Any) -> str | None:
    """Like coerce_string, but also renders numbers (e.g. difficulty 2 → "2")."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    return coerce_string(value)


def first_alias(
    item: Mapping[str, Any],
    aliases: Sequence[str],
    coerce: Callable[[Any], T | None] = coerce_string,
) -> T | None:
    """Return the first alias whose value coerces to something non-empty."""
    for name in aliases:
        value = coerce(item.get(name))
        if value is not None:
            return value
    return None
