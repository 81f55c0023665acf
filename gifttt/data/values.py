#data/values.py
"""
Variable value domain and the persisted record format.

A variable holds a JSON-shaped value: int, float, str, bool, None, or nested
lists / string-keyed maps of those. Each value is persisted as the record
``{"value": <payload>}``; the variable name lives only in the storage key.
"""
from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, JsonValue, TypeAdapter, ValidationError

from gifttt.core.exceptions import DecodeError, ValueTypeError

_VALUE_ADAPTER: TypeAdapter[JsonValue] = TypeAdapter(JsonValue)


class StoredValue(BaseModel):
    """The on-disk record of one variable."""
    model_config = ConfigDict(frozen=True, extra="ignore")
    value: JsonValue


def validate_value(value: Any) -> JsonValue:
    """Return ``value`` checked against the value domain.

    Raises ValueTypeError for anything that cannot be persisted
    (functions, non-string map keys, arbitrary objects) and for
    non-finite floats, which JSON cannot represent.
    """
    try:
        checked = _VALUE_ADAPTER.validate_python(value)
    except ValidationError as e:
        raise ValueTypeError(
            f"value of type {type(value).__name__} cannot be stored in a variable"
        ) from e
    _reject_non_finite(checked)
    return checked


def _reject_non_finite(value: JsonValue) -> None:
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueTypeError(f"non-finite number {value!r} cannot be stored in a variable")
    elif isinstance(value, list):
        for item in value:
            _reject_non_finite(item)
    elif isinstance(value, dict):
        for item in value.values():
            _reject_non_finite(item)


def encode_record(value: JsonValue) -> str:
    return StoredValue(value=value).model_dump_json()


def decode_record(data: str | bytes) -> JsonValue:
    try:
        return StoredValue.model_validate_json(data).value
    except ValidationError as e:
        raise DecodeError(f"cannot decode variable record: {e.error_count()} error(s), {e.errors()[0]['msg']}") from e


def values_equal(a: Any, b: Any) -> bool:
    """Deep equality over the value domain.

    Values compare equal only when they carry the same type tag, so
    ``True != 1`` and ``1 != 1.0`` here even though Python says otherwise.
    """
    if type(a) is not type(b):
        return False
    if isinstance(a, list):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
    return a == b
