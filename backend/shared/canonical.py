"""Deterministic JSON serialization used as the signing substrate.

Both the arcade server and its clients hash the output of canonical_dumps(),
so the same logical value must always produce the same string:

- Object keys are sorted by base-strength collation: case and accents are
  ignored, and ASCII whitespace and punctuation come before digits and letters
  in the CLDR root order that ICU (and so Intl.Collator) uses. Ties fall back
  to code point order. Outside ASCII and accented Latin letters the order is
  code point based, which is only an approximation of ICU.
- Array order is preserved.
- Numbers are formatted the way ECMAScript's Number::toString formats them,
  so JavaScript and Python clients render every number identically.
  NaN and +/-Infinity become null.
- Values with no JSON form (callables) become null inside arrays and are
  omitted from objects.
- Unordered containers (sets, non-dict mappings) are serialized member by
  member and the resulting strings sorted.
"""

from __future__ import annotations

import dataclasses
import json
import math
import re
import unicodedata
from collections.abc import Mapping, Set
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel

# ECMAScript switches to exponent notation outside (1e-7, 1e21).
_MAX_FIXED_EXPONENT = 21
_MIN_FIXED_EXPONENT = -6

# CLDR root order of ASCII whitespace, punctuation and symbols; all of them
# sort before digits and letters.
_VARIABLE_ORDER = "\t\n\x0b\x0c\r _-,;:!?.'\"()[]{}@*/\\&#%`^+<=>|~$"
_VARIABLE_RANKS = {ch: rank for rank, ch in enumerate(_VARIABLE_ORDER)}


class CircularStructureError(TypeError):
    """Raised when a value contains itself. Circular payloads are never signed."""

    def __init__(self) -> None:
        super().__init__("Converting circular structure to JSON")


def _primary_weight(ch: str) -> int:
    rank = _VARIABLE_RANKS.get(ch)
    if rank is not None:
        return rank
    return len(_VARIABLE_RANKS) + ord(ch)


def collation_key(value: str) -> tuple[tuple[int, ...], str]:
    """Sort key approximating base-sensitivity locale collation."""
    decomposed = unicodedata.normalize("NFKD", value)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return tuple(_primary_weight(ch) for ch in base), value


def canonical_dumps(value: Any) -> str:  # noqa: ANN401
    """Serialize value to its canonical JSON string."""
    return _serialize(value, set())


def format_number(value: float) -> str:
    """Format a number as ECMAScript's Number::toString would."""
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        return "null"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = int(exponent) + k

    if k <= n <= _MAX_FIXED_EXPONENT:
        return sign + digits + "0" * (n - k)
    if 0 < n <= _MAX_FIXED_EXPONENT:
        return f"{sign}{digits[:n]}.{digits[n:]}"
    if _MIN_FIXED_EXPONENT < n <= 0:
        return f"{sign}0.{'0' * -n}{digits}"

    e = n - 1
    exp_sign = "+" if e >= 0 else "-"
    mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
    return f"{sign}{mantissa}e{exp_sign}{abs(e)}"


def _is_unrepresentable(value: object) -> bool:
    return callable(value) and not isinstance(value, (BaseModel, Mapping, Set, list, tuple))


def _serialize_primitive(value: object) -> str | None:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return _serialize_primitive(value.value) or json.dumps(str(value.value), ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, Decimal):
        return format_number(float(value))
    if _is_unrepresentable(value):
        return "null"
    return None


def _serialize_temporal(value: object) -> str | None:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return json.dumps(value.isoformat(timespec="milliseconds") + "Z")
    if isinstance(value, date):
        return json.dumps(value.isoformat())
    if isinstance(value, re.Pattern):
        return json.dumps(f"/{value.pattern}/", ensure_ascii=False)
    return None


def _object_fields(value: object) -> dict[str, Any] | None:
    """Return the shallow field mapping of a model-like object, or None."""
    if isinstance(value, BaseModel):
        return {
            (info.alias or name): getattr(value, name)
            for name, info in type(value).model_fields.items()
        }
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    return None


def _serialize(value: object, stack: set[int]) -> str:
    primitive = _serialize_primitive(value)
    if primitive is not None:
        return primitive

    if id(value) in stack:
        raise CircularStructureError

    temporal = _serialize_temporal(value)
    if temporal is not None:
        return temporal

    stack.add(id(value))
    try:
        if isinstance(value, dict):
            return _serialize_object(value, stack)
        fields = _object_fields(value)
        if fields is not None:
            return _serialize_object(fields, stack)
        if isinstance(value, Mapping):
            return _serialize_pairs(value, stack)
        if isinstance(value, Set):
            return _serialize_members(value, stack)
        if isinstance(value, (list, tuple)):
            return _serialize_array(value, stack)
    finally:
        stack.discard(id(value))

    msg = f"Object of type {type(value).__name__} is not canonically serializable"
    raise TypeError(msg)


def _key_string(key: object) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, Enum):
        return str(key.value)
    primitive = _serialize_primitive(key)
    if primitive is None or _is_unrepresentable(key):
        msg = f"Object keys must be primitives, got {type(key).__name__}"
        raise TypeError(msg)
    return primitive


def _serialize_object(obj: Mapping[Any, Any], stack: set[int]) -> str:
    items = sorted(((_key_string(k), v) for k, v in obj.items()), key=lambda kv: collation_key(kv[0]))
    parts = [
        f"{json.dumps(key, ensure_ascii=False)}:{_serialize(val, stack)}"
        for key, val in items
        if not _is_unrepresentable(val)
    ]
    return "{" + ",".join(parts) + "}"


def _serialize_array(items: list[Any] | tuple[Any, ...], stack: set[int]) -> str:
    return "[" + ",".join(_serialize(item, stack) for item in items) + "]"


def _serialize_pairs(mapping: Mapping[Any, Any], stack: set[int]) -> str:
    pairs = [f"[{_serialize(k, stack)},{_serialize(v, stack)}]" for k, v in mapping.items()]
    return "[" + ",".join(sorted(pairs, key=collation_key)) + "]"


def _serialize_members(members: Set[Any], stack: set[int]) -> str:
    serialized = [_serialize(member, stack) for member in members]
    return "[" + ",".join(sorted(serialized, key=collation_key)) + "]"
