"""
Per-type conversion of source values into wire-ready SQL literals.

Every function returns either a Python int/float (emitted as a bare numeric
literal) or a str that is already a complete SQL literal (quoted string, MVA
tuple, or an oversized integer kept as its digit string). Conversion failures
raise ValueError/TypeError; BatchProcessor turns them into RowConversionError.
"""

import json
import math
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Union

from ..models import TypeFamily, type_family
from ..validation.type_compatibility import is_numeric_string, is_number


SqlLiteral = Union[int, float, str]

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

FALSY_STRINGS = frozenset(['', '0', 'false', 'no', 'off'])


def quote_string(text: str) -> str:
    """Quote text as a single-quoted SQL string literal."""
    return "'" + text.replace('\\', '\\\\').replace("'", "\\'") + "'"


def to_json_text(value: Any) -> str:
    return json.dumps(value, separators=(',', ':'), ensure_ascii=False, default=str)


def _truncate(value: Union[float, Decimal]) -> int:
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        raise ValueError(f"Cannot convert {value} to integer")
    return int(value)


def _finite(number: float) -> float:
    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"Cannot store non-finite float {number}")
    return number


def convert_integer(value: Any) -> SqlLiteral:
    if value is None or isinstance(value, bool):
        return int(bool(value))
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        return _truncate(value)
    if isinstance(value, str):
        text = value.strip()
        if text == '':
            return 0
        if not is_numeric_string(text):
            raise ValueError(f"'{value}' is not numeric")
        try:
            number = int(text)
        except ValueError:
            # Decimal or exponent notation
            return _truncate(Decimal(text))
        if INT64_MIN <= number <= INT64_MAX:
            return number
        # Beyond 64-bit range the digits are kept as written
        return text.lstrip('+')
    raise TypeError(f"Cannot convert {type(value).__name__} to integer")


def convert_float(value: Any) -> SqlLiteral:
    if value is None or isinstance(value, bool):
        return float(bool(value))
    if is_number(value):
        return _finite(float(value))
    if isinstance(value, str):
        text = value.strip()
        if text == '':
            return 0.0
        if not is_numeric_string(text):
            raise ValueError(f"'{value}' is not numeric")
        return _finite(float(text))
    raise TypeError(f"Cannot convert {type(value).__name__} to float")


def convert_boolean(value: Any) -> SqlLiteral:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in FALSY_STRINGS:
            return 0
        if is_numeric_string(text):
            return 0 if Decimal(text) == 0 else 1
        return 1
    return 1 if value else 0


def text_form(value: Any) -> str:
    """Render a value as plain text before quoting."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode('utf-8', errors='replace')
    if isinstance(value, (dict, list, tuple)):
        return to_json_text(value)
    return str(value)


def convert_text(value: Any) -> SqlLiteral:
    return quote_string(text_form(value))


def convert_json(value: Any) -> SqlLiteral:
    if isinstance(value, str):
        return quote_string(value)
    if isinstance(value, (bytes, bytearray)):
        return quote_string(bytes(value).decode('utf-8', errors='replace'))
    return quote_string(to_json_text(value))


def _multi_element(item: Any) -> str:
    if isinstance(item, bool):
        return '1' if item else '0'
    if is_number(item):
        if isinstance(item, float):
            _finite(item)
        return str(item)
    if is_numeric_string(item):
        return item.strip()
    raise ValueError(f"Multi-value element {item!r} is not numeric")


def convert_multi(value: Any) -> SqlLiteral:
    if value is None:
        return '()'
    if isinstance(value, (list, tuple, set)):
        items = sorted(value) if isinstance(value, set) else value
        return '(' + ','.join(_multi_element(item) for item in items) + ')'
    if is_number(value) or isinstance(value, bool):
        return f"({_multi_element(value)})"
    if isinstance(value, str):
        text = value.strip()
        if text.startswith('['):
            decoded = json.loads(text)
            if not isinstance(decoded, list):
                raise ValueError(f"'{value}' is not a JSON array")
            return convert_multi(decoded)
        if text.startswith('(') and text.endswith(')'):
            text = text[1:-1].strip()
        if text == '':
            return '()'
        return '(' + ','.join(_multi_element(part) for part in text.split(',')) + ')'
    raise TypeError(f"Cannot convert {type(value).__name__} to multi-value")


def convert_timestamp(value: Any) -> SqlLiteral:
    if value is None or isinstance(value, bool):
        return int(bool(value))
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        return _truncate(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp())
    if isinstance(value, str):
        text = value.strip()
        if text == '':
            return 0
        if is_numeric_string(text):
            return convert_integer(text)
        # Date strings are left for the store to parse
        return quote_string(text)
    raise TypeError(f"Cannot convert {type(value).__name__} to timestamp")


def convert_unknown(value: Any) -> SqlLiteral:
    return quote_string(text_form(value))


CONVERTERS: Dict[TypeFamily, Callable[[Any], SqlLiteral]] = {
    TypeFamily.INTEGER: convert_integer,
    TypeFamily.FLOAT: convert_float,
    TypeFamily.BOOLEAN: convert_boolean,
    TypeFamily.TEXT: convert_text,
    TypeFamily.JSON: convert_json,
    TypeFamily.MULTI: convert_multi,
    TypeFamily.TIMESTAMP: convert_timestamp,
    TypeFamily.UNKNOWN: convert_unknown,
}


def convert_value(value: Any, declared_type: str) -> SqlLiteral:
    """
    Convert one source value for a target column.

    Args:
        value: Value as fetched from the source
        declared_type: Declared type of the target column

    Returns:
        int, float, or a complete SQL literal string

    Raises:
        ValueError: If the value cannot be represented in the target type
        TypeError: If the value's Python type is not convertible
    """
    return CONVERTERS[type_family(declared_type)](value)


def render_literal(value: SqlLiteral) -> str:
    """Render a converted value for a VALUES tuple."""
    if isinstance(value, float):
        return repr(value)
    return str(value)
