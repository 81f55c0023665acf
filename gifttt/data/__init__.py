"""
Data models for gifttt.
"""

from .values import (
    StoredValue,
    decode_record,
    encode_record,
    validate_value,
    values_equal,
)

__all__ = [
    "StoredValue",
    "decode_record",
    "encode_record",
    "validate_value",
    "values_equal",
]
