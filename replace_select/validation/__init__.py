"""
Validation of source/target compatibility before any row moves.

- FieldValidator: resolves the ordered target schema for a run
- type_compatibility: lenient value-level and strict schema-level lookups
"""

from .field_validator import FieldValidator
from .type_compatibility import is_value_compatible, is_schema_compatible

__all__ = [
    'FieldValidator',
    'is_value_compatible',
    'is_schema_compatible',
]
