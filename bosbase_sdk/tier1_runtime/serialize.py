"""
bosbase_sdk.tier1_runtime.serialize
────────────────────────────────────
Conversion between application values and the JSON wire tree.

normalize() turns native containers into wire values: mappings become dicts
with None-valued entries dropped (omitted fields), other iterables become
lists, and anything else is assumed wire-safe already. Each container family
has its own registered adapter; register more with ``normalize.register``.

denormalize() walks a decoded tree and narrows numbers: integral values in
the signed 64-bit range become int, the rest float, and literals too large
for a float keep their raw text.
"""
from __future__ import annotations

import json
import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from functools import singledispatch
from typing import Any, Union

from pydantic import BaseModel

WireValue = Union[None, str, int, float, bool, list["WireValue"], dict[str, "WireValue"]]

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


# ── normalize ───────────────────────────────────────────────────────────────

@singledispatch
def normalize(value: Any) -> Any:
    """Convert *value* into a wire value. Unknown types pass through unchanged."""
    return value


@normalize.register(str)
@normalize.register(bytes)
@normalize.register(bytearray)
def _normalize_scalar_text(value: Any) -> Any:
    return value


@normalize.register(Mapping)
def _normalize_mapping(value: Mapping) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, item in value.items():
        normalized = normalize(item)
        if normalized is not None:
            result[str(key)] = normalized
    return result


@normalize.register(Iterable)
def _normalize_iterable(value: Iterable) -> list[Any]:
    return [normalize(item) for item in value]


@normalize.register(BaseModel)
def _normalize_model(value: BaseModel) -> Any:
    return normalize(value.model_dump(mode="json"))


@normalize.register(date)
def _normalize_date(value: date) -> str:
    # datetime is a date subclass
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return value.isoformat()


# ── denormalize ─────────────────────────────────────────────────────────────

def denormalize(value: Any) -> Any:
    """Convert a decoded wire tree into plain Python containers."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, (int, float)):
        return _narrow_number(value)
    if isinstance(value, Mapping):
        return {str(k): denormalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [denormalize(item) for item in value]
    return value


def _narrow_number(value: int | float) -> int | float | str:
    if isinstance(value, int):
        if _INT64_MIN <= value <= _INT64_MAX:
            return value
        try:
            return float(value)
        except OverflowError:
            return str(value)
    if math.isfinite(value) and value.is_integer() and _INT64_MIN <= value <= _INT64_MAX:
        return int(value)
    return value


def _parse_number_literal(raw: str) -> int | float | str:
    if not any(c in raw for c in ".eE"):
        return _narrow_number(int(raw))
    number = float(raw)
    if math.isinf(number):
        return raw
    return _narrow_number(number)


# ── JSON text ───────────────────────────────────────────────────────────────

def to_json(value: Any) -> str:
    """Normalize *value* and serialize it as compact JSON text."""
    return json.dumps(normalize(value), separators=(",", ":"), ensure_ascii=False)


def from_json(text: str | bytes) -> Any:
    """Parse JSON text into plain Python containers with narrowed numbers."""
    decoded = json.loads(
        text,
        parse_int=_parse_number_literal,
        parse_float=_parse_number_literal,
    )
    return denormalize(decoded)


__all__ = ["WireValue", "normalize", "denormalize", "to_json", "from_json"]
