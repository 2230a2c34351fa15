"""
Type compatibility lookups used by FieldValidator.

Two independent tables:

- value-level (lenient): is a probed Python value acceptable for a declared
  target type? Used for computed projections where only a sample can be trusted.
- schema-level (strict): is a declared source column type safe to copy
  column-to-column into a declared target type? Used for bare `SELECT *` from a
  single table. Cross-family pairs are rejected regardless of sample values.

Both are keyed by TypeFamily; column attributes never take part.
"""

import re
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, FrozenSet

from ..models import TypeFamily, type_family


_NUMERIC_STRING = re.compile(r'^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*$')

BOOLEAN_STRINGS = frozenset(['0', '1', 'true', 'false', 'yes', 'no', 'on', 'off'])


def is_numeric_string(value: Any) -> bool:
    return isinstance(value, str) and _NUMERIC_STRING.match(value) is not None


def is_number(value: Any) -> bool:
    """True for int, float and Decimal values (bool excluded)."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def is_iso_datetime_string(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        datetime.fromisoformat(text)
        return True
    except ValueError:
        return False


def _numeric_element(value: Any) -> bool:
    return is_number(value) or is_numeric_string(value)


def _multi_string(value: str) -> bool:
    text = value.strip()
    if not text:
        return True
    if text.startswith('['):
        try:
            decoded = json.loads(text)
        except ValueError:
            return False
        return isinstance(decoded, list) and all(_numeric_element(item) for item in decoded)
    if text.startswith('(') and text.endswith(')'):
        text = text[1:-1]
        if not text.strip():
            return True
    return all(_numeric_element(part) for part in text.split(','))


def _accepts_number(value: Any) -> bool:
    if value is None or isinstance(value, bool) or is_number(value):
        return True
    if isinstance(value, str):
        return value == '' or is_numeric_string(value)
    return False


def _accepts_boolean(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return True
    if is_number(value):
        return value in (0, 1)
    if isinstance(value, str):
        return value.strip().lower() in BOOLEAN_STRINGS
    return False


def _accepts_text(value: Any) -> bool:
    return not isinstance(value, (list, tuple, set, dict))


def _accepts_anything(value: Any) -> bool:
    return True


def _accepts_multi(value: Any) -> bool:
    if isinstance(value, (list, tuple, set)):
        return all(_numeric_element(item) for item in value)
    if value is None or is_number(value):
        return True
    if isinstance(value, str):
        return _multi_string(value)
    return False


def _accepts_timestamp(value: Any) -> bool:
    if value is None or isinstance(value, (date, datetime)) or is_number(value):
        return True
    if isinstance(value, str):
        return value == '' or is_numeric_string(value) or is_iso_datetime_string(value)
    return False


# Target family -> predicate over probed Python values
VALUE_COMPATIBILITY: Dict[TypeFamily, Callable[[Any], bool]] = {
    TypeFamily.INTEGER: _accepts_number,
    TypeFamily.FLOAT: _accepts_number,
    TypeFamily.BOOLEAN: _accepts_boolean,
    TypeFamily.TEXT: _accepts_text,
    TypeFamily.JSON: _accepts_anything,
    TypeFamily.MULTI: _accepts_multi,
    TypeFamily.TIMESTAMP: _accepts_timestamp,
    TypeFamily.UNKNOWN: _accepts_anything,
}

# Target family -> source families allowed for a raw column-to-column copy
SCHEMA_COMPATIBILITY: Dict[TypeFamily, FrozenSet[TypeFamily]] = {
    TypeFamily.INTEGER: frozenset([TypeFamily.INTEGER, TypeFamily.BOOLEAN, TypeFamily.TIMESTAMP]),
    TypeFamily.FLOAT: frozenset([TypeFamily.FLOAT, TypeFamily.INTEGER, TypeFamily.BOOLEAN]),
    TypeFamily.BOOLEAN: frozenset([TypeFamily.BOOLEAN, TypeFamily.INTEGER]),
    TypeFamily.TEXT: frozenset([TypeFamily.TEXT]),
    TypeFamily.JSON: frozenset([TypeFamily.JSON]),
    TypeFamily.MULTI: frozenset([TypeFamily.MULTI]),
    TypeFamily.TIMESTAMP: frozenset([TypeFamily.TIMESTAMP, TypeFamily.INTEGER]),
}


def is_value_compatible(value: Any, target_type: str) -> bool:
    """
    Check a probed value against a declared target type (lenient).

    Args:
        value: Value as returned by the data store for one output column
        target_type: Declared type of the target column

    Returns:
        True if the value can be converted for the target column
    """
    return VALUE_COMPATIBILITY[type_family(target_type)](value)


def is_schema_compatible(source_type: str, target_type: str) -> bool:
    """
    Check a declared source type against a declared target type (strict).

    Unknown target types only accept an identical declared source type.
    """
    target_family = type_family(target_type)
    if target_family is TypeFamily.UNKNOWN:
        return (source_type or '').strip().lower() == (target_type or '').strip().lower()
    return type_family(source_type) in SCHEMA_COMPATIBILITY[target_family]
