"""
Custom exceptions for the REPLACE ... SELECT transfer engine.

This module defines specific exception types for the error conditions that
can occur while validating, paging and writing rows between two tables.
"""


class ReplaceSelectError(Exception):
    """Base exception for all REPLACE ... SELECT related errors."""

    def __init__(self, message: str, records_processed: int = None):
        """
        Initialize REPLACE ... SELECT error.

        Args:
            message: Error description
            records_processed: Optional number of rows written before the error occurred
        """
        super().__init__(message)
        self.records_processed = records_processed


class StatementParseError(ReplaceSelectError):
    """Exception raised when a REPLACE ... SELECT statement cannot be parsed."""
    pass


class ConfigurationError(ReplaceSelectError):
    """Exception raised when configuration is invalid or missing."""
    pass


class ValidationError(ReplaceSelectError):
    """Exception raised when source and target schemas are not compatible."""

    def __init__(self, message: str, column_name: str = None, expected: str = None,
                 actual: str = None):
        """
        Initialize validation error.

        Args:
            message: Error description
            column_name: Name of the offending target column, if any
            expected: Expected type or count
            actual: Actual type or count
        """
        super().__init__(message, records_processed=0)
        self.column_name = column_name
        self.expected = expected
        self.actual = actual


class ClientProtocolError(ReplaceSelectError):
    """Exception raised when a data store call fails at the network or protocol level."""
    pass


class RowConversionError(ReplaceSelectError):
    """Exception raised when a fetched row cannot be converted to the target schema."""

    def __init__(self, message: str, field_name: str = None, source_value=None,
                 target_type: str = None):
        """
        Initialize row conversion error.

        Args:
            message: Error description
            field_name: Name of the target column that failed conversion
            source_value: Original value that failed conversion
            target_type: Declared type of the target column
        """
        super().__init__(message)
        self.field_name = field_name
        self.source_value = source_value
        self.target_type = target_type


class WriteError(ReplaceSelectError):
    """Exception raised when the data store rejects a page write."""

    def __init__(self, message: str, row_count: int = 0):
        super().__init__(message)
        self.row_count = row_count


class DataClientError(ReplaceSelectError):
    """
    The single error surfaced to callers of a REPLACE ... SELECT run.

    Always carries the number of rows processed before the failure so callers
    can tell a zero-progress failure (safe to resubmit) from a partial one.
    """

    def __init__(self, message: str, records_processed: int = 0, state=None):
        super().__init__(message, records_processed)
        self.state = state
