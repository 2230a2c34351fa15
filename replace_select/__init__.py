"""
REPLACE ... SELECT batch transfer engine

Validates that the projected columns of a `REPLACE INTO target SELECT ... FROM source`
statement fit the target table, then moves every matching row in bounded pages inside
one BEGIN/COMMIT transaction, reporting exact progress even on failure.
"""

__version__ = "1.0.0"

# Import core models and interfaces for easy access
from .models import (
    ColumnSpec,
    TargetSchema,
    BatchStats,
    RunStats,
    TransactionState,
    TypeFamily,
    ReplaceSelectRequest
)

from .interfaces import DataStoreClientInterface

from .exceptions import (
    ReplaceSelectError,
    StatementParseError,
    ConfigurationError,
    ValidationError,
    ClientProtocolError,
    RowConversionError,
    WriteError,
    DataClientError
)

__all__ = [
    # Core models
    "ColumnSpec",
    "TargetSchema",
    "BatchStats",
    "RunStats",
    "TransactionState",
    "TypeFamily",
    "ReplaceSelectRequest",

    # Interfaces
    "DataStoreClientInterface",

    # Exceptions
    "ReplaceSelectError",
    "StatementParseError",
    "ConfigurationError",
    "ValidationError",
    "ClientProtocolError",
    "RowConversionError",
    "WriteError",
    "DataClientError"
]
