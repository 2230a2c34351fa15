"""
Core data models for the REPLACE ... SELECT transfer engine.

This module defines the primary data structures used throughout the system:
column and schema descriptions, per-page and per-run statistics, the
transaction lifecycle and the parsed request handed in by the statement layer.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple, Iterator
from enum import Enum

from .exceptions import StatementParseError


class TypeFamily(Enum):
    """Storage families that declared column types belong to."""
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TEXT = "text"
    JSON = "json"
    MULTI = "multi"
    TIMESTAMP = "timestamp"
    UNKNOWN = "unknown"


# Declared type name (as reported by DESC) -> storage family
DECLARED_TYPE_FAMILIES = {
    "int": TypeFamily.INTEGER,
    "uint": TypeFamily.INTEGER,
    "bigint": TypeFamily.INTEGER,
    "float": TypeFamily.FLOAT,
    "bool": TypeFamily.BOOLEAN,
    "text": TypeFamily.TEXT,
    "string": TypeFamily.TEXT,
    "json": TypeFamily.JSON,
    "multi": TypeFamily.MULTI,
    "multi64": TypeFamily.MULTI,
    "mva": TypeFamily.MULTI,
    "mva64": TypeFamily.MULTI,
    "float_vector": TypeFamily.MULTI,
    "timestamp": TypeFamily.TIMESTAMP,
}


def type_family(declared_type: str) -> TypeFamily:
    """
    Resolve the storage family of a declared column type.

    Args:
        declared_type: Type name as reported by the data store (case-insensitive)

    Returns:
        Matching TypeFamily, or TypeFamily.UNKNOWN for unrecognised types
    """
    if not declared_type:
        return TypeFamily.UNKNOWN
    return DECLARED_TYPE_FAMILIES.get(declared_type.strip().lower(), TypeFamily.UNKNOWN)


class TransactionState(Enum):
    """Lifecycle of one REPLACE ... SELECT run."""
    IDLE = "idle"
    BEGUN = "begun"
    VALIDATED = "validated"
    PROCESSING = "processing"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


@dataclass(frozen=True)
class ColumnSpec:
    """
    One column of a described table.

    Attributes:
        name: Column name
        declared_type: Declared type (int, uint, bigint, float, bool, text, string,
            json, multi, multi64, timestamp, ...)
        attributes: Free-form properties reported by the store (e.g. "stored indexed")
    """
    name: str
    declared_type: str
    attributes: str = ""

    def __post_init__(self):
        """Validate column description."""
        if not self.name:
            raise ValueError("name cannot be empty")
        if not self.declared_type:
            raise ValueError(f"declared_type cannot be empty for column '{self.name}'")

    @classmethod
    def from_describe_row(cls, row: Dict[str, Any]) -> 'ColumnSpec':
        """
        Build a column from one row of DESC output.

        Args:
            row: Mapping with 'Field', 'Type' and optionally 'Properties' keys

        Returns:
            ColumnSpec for the row
        """
        return cls(
            name=str(row['Field']),
            declared_type=str(row['Type']).strip().lower(),
            attributes=str(row.get('Properties') or '')
        )


@dataclass(frozen=True)
class TargetSchema:
    """
    Ordered columns a run writes, in write order.

    Position is load-bearing: converted rows are index-aligned with it.
    """
    columns: Tuple[ColumnSpec, ...] = ()

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[ColumnSpec]:
        return iter(self.columns)

    def __getitem__(self, index: int) -> ColumnSpec:
        return self.columns[index]

    @property
    def names(self) -> List[str]:
        return [column.name for column in self.columns]


@dataclass
class BatchStats:
    """Statistics for one written page."""
    batch_number: int
    row_count: int
    duration_seconds: float
    rows_per_second: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batch_number': self.batch_number,
            'records_count': self.row_count,
            'duration_seconds': round(self.duration_seconds, 4),
            'records_per_second': round(self.rows_per_second, 2),
        }


@dataclass
class RunStats:
    """
    Statistics for a complete run.

    Attributes:
        total_rows: Rows written across all pages
        total_batches: Non-empty pages written
        total_duration_seconds: Wall time since processing started
        rows_per_second: Overall throughput
        avg_batch_size: Mean rows per written page
        batches: Per-page statistics in write order
        peak_memory_mb: Highest resident memory sampled during the run
    """
    total_rows: int = 0
    total_batches: int = 0
    total_duration_seconds: float = 0.0
    rows_per_second: float = 0.0
    avg_batch_size: float = 0.0
    batches: List[BatchStats] = field(default_factory=list)
    peak_memory_mb: float = 0.0

    def to_result_row(self, batch_size: int, include_batches: bool = False) -> Dict[str, Any]:
        """
        Build the result row reported to the caller.

        Args:
            batch_size: Effective page size used for the run
            include_batches: Include per-page detail (debug mode)

        Returns:
            Dictionary with total, batches, batch_size, duration and throughput
        """
        row = {
            'total': self.total_rows,
            'batches': self.total_batches,
            'batch_size': batch_size,
            'duration_seconds': round(self.total_duration_seconds, 3),
            'records_per_second': round(self.rows_per_second, 2),
        }
        if include_batches:
            row['avg_batch_size'] = round(self.avg_batch_size, 2)
            row['peak_memory_mb'] = round(self.peak_memory_mb, 1)
            row['batch_statistics'] = [batch.to_dict() for batch in self.batches]
        return row


@dataclass
class ReplaceSelectRequest:
    """
    A parsed REPLACE INTO ... SELECT statement.

    Attributes:
        target_table: Target table name, without cluster prefix
        select_query: Complete, independently valid SELECT statement
        column_list: Explicit target columns, or None to write the full target schema
        batch_size: Requested page size, or None for the configured default
        cluster: Optional cluster the target table belongs to
    """
    target_table: str
    select_query: str
    column_list: Optional[List[str]] = None
    batch_size: Optional[int] = None
    cluster: Optional[str] = None

    @property
    def target_table_with_cluster(self) -> str:
        if self.cluster:
            return f"`{self.cluster}`:{self.target_table}"
        return self.target_table

    def validate(self) -> None:
        """
        Validate request contents before any call to the data store.

        Raises:
            StatementParseError: If the request is structurally invalid
        """
        if not self.target_table:
            raise StatementParseError("Target table name cannot be empty")
        if not self.select_query or not self.select_query.strip():
            raise StatementParseError("SELECT query cannot be empty")
        if self.batch_size is not None and self.batch_size < 1:
            raise StatementParseError("Batch size must be at least 1")
        if not re.match(r'^\s*SELECT\s+', self.select_query, re.IGNORECASE):
            raise StatementParseError("Query must start with SELECT")
        if not re.search(r'\s+FROM\s+', self.select_query, re.IGNORECASE):
            raise StatementParseError("SELECT query must contain FROM clause")
        if self.column_list is not None and not self.column_list:
            raise StatementParseError("Column list cannot be empty")
