"""
Source/target compatibility validation for REPLACE ... SELECT.

FieldValidator decides which target columns a run writes, in what order, and
proves the projected source values fit them before any row moves.

Resolution Modes:
- Explicit column list: the list is the target schema, in list order. Every name
  must exist in the target table and the probed row must have exactly as many
  output columns as the list. No type checks in this mode.
- No column list: the target's full described schema, in creation order. The
  probed row must have exactly as many output columns, matched by position.
  A bare `SELECT * FROM one_table` is checked column-to-column against the
  described source schema (strict); anything else is checked value-by-value
  against the probed sample (lenient).

Both modes return one ordered TargetSchema so downstream conversion never
branches on the mode.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..exceptions import ValidationError, ClientProtocolError
from ..interfaces import DataStoreClientInterface
from ..models import ColumnSpec, TargetSchema
from ..parsing.select_query import SelectQuery
from .type_compatibility import is_value_compatible, is_schema_compatible


class FieldValidator:
    """
    Resolve and validate the target schema of one run.

    Described schemas are cached for the lifetime of the validator, so each
    table is described at most once per run. The cache is never shared between
    validators.
    """

    def __init__(self, client: DataStoreClientInterface, debug: bool = False):
        """
        Initialize validator.

        Args:
            client: Data store client used for DESC and the probe query
            debug: Log a summary of validated fields and sample types
        """
        self.client = client
        self.debug = debug
        self.logger = logging.getLogger(__name__)
        self._schema_cache: Dict[str, List[ColumnSpec]] = {}
        self._target_fields: Optional[TargetSchema] = None

    def validate_compatibility(self, select_query: str, target_table: str,
                               column_list: Optional[Sequence[str]] = None) -> TargetSchema:
        """
        Validate a SELECT against a target table and resolve the write schema.

        Args:
            select_query: Caller's complete SELECT statement
            target_table: Target table name (without cluster prefix)
            column_list: Explicit target columns, or None for the full target schema

        Returns:
            Ordered TargetSchema of the columns the run writes

        Raises:
            ValidationError: If names, counts or types do not match
            ClientProtocolError: If DESC or the probe query fails
        """
        query = SelectQuery(select_query)
        target_columns = self._describe(target_table)
        if not target_columns:
            raise ValidationError(f"Target table '{target_table}' has no columns")

        probe_row = self._probe(query)

        if column_list is not None:
            schema = self._resolve_column_list(target_table, target_columns, column_list, probe_row)
        else:
            schema = self._resolve_full_schema(query, target_table, target_columns, probe_row)

        self._target_fields = schema
        if self.debug:
            self._log_validation_results(schema, probe_row)
        return schema

    def get_target_fields(self) -> TargetSchema:
        """
        Return the schema resolved by the last successful validation.

        Raises:
            ValidationError: If validate_compatibility has not succeeded yet
        """
        if self._target_fields is None:
            raise ValidationError("Target fields requested before validation")
        return self._target_fields

    def _describe(self, table: str) -> List[ColumnSpec]:
        if table not in self._schema_cache:
            columns = self.client.describe(table)
            self._schema_cache[table] = list(columns)
            self.logger.debug(f"Described {table}: {[c.name for c in columns]}")
        return self._schema_cache[table]

    def _probe(self, query: SelectQuery) -> Dict[str, Any]:
        probe_sql = query.probe_query()
        rows = self.client.query(probe_sql)
        if not isinstance(rows, list):
            raise ClientProtocolError(f"Probe query returned {type(rows).__name__}, expected a row list")
        if not rows:
            raise ValidationError(
                "Cannot validate field compatibility: SELECT returned no rows to sample "
                f"({probe_sql})"
            )
        row = rows[0]
        if not isinstance(row, dict):
            raise ClientProtocolError(f"Probe query returned row of type {type(row).__name__}")
        return row

    def _resolve_column_list(self, target_table: str, target_columns: List[ColumnSpec],
                             column_list: Sequence[str], probe_row: Dict[str, Any]) -> TargetSchema:
        # Column names are case-insensitive; resolve to the described spelling
        by_name = {column.name.lower(): column for column in target_columns}
        resolved = []
        seen = set()

        for name in column_list:
            key = name.lower()
            if key not in by_name:
                raise ValidationError(
                    f"Column '{name}' does not exist in target table '{target_table}'",
                    column_name=name
                )
            if key in seen:
                raise ValidationError(f"Column '{name}' is listed more than once", column_name=name)
            seen.add(key)
            resolved.append(by_name[key])

        if len(probe_row) != len(resolved):
            raise ValidationError(
                f"Field count mismatch: column list has {len(resolved)} columns, "
                f"SELECT returns {len(probe_row)} fields",
                expected=str(len(resolved)),
                actual=str(len(probe_row))
            )

        return TargetSchema(tuple(resolved))

    def _resolve_full_schema(self, query: SelectQuery, target_table: str,
                             target_columns: List[ColumnSpec],
                             probe_row: Dict[str, Any]) -> TargetSchema:
        if len(probe_row) != len(target_columns):
            raise ValidationError(
                f"Field count mismatch: target table '{target_table}' has {len(target_columns)} "
                f"columns, SELECT returns {len(probe_row)} fields",
                expected=str(len(target_columns)),
                actual=str(len(probe_row))
            )

        source_table = query.star_source_table()
        if source_table is not None:
            self._check_schema_types(source_table, target_columns)
        else:
            self._check_value_types(list(probe_row.items()), target_columns)

        return TargetSchema(tuple(target_columns))

    def _check_schema_types(self, source_table: str, target_columns: List[ColumnSpec]) -> None:
        source_columns = self._describe(source_table)
        if len(source_columns) != len(target_columns):
            raise ValidationError(
                f"Field count mismatch: source table '{source_table}' has {len(source_columns)} "
                f"columns, target has {len(target_columns)}",
                expected=str(len(target_columns)),
                actual=str(len(source_columns))
            )

        for source, target in zip(source_columns, target_columns):
            if not is_schema_compatible(source.declared_type, target.declared_type):
                raise ValidationError(
                    f"Column '{target.name}' type mismatch: cannot copy source column "
                    f"'{source.name}' ({source.declared_type}) into {target.declared_type}",
                    column_name=target.name,
                    expected=target.declared_type,
                    actual=source.declared_type
                )

    def _check_value_types(self, probed: List, target_columns: List[ColumnSpec]) -> None:
        for (source_name, value), target in zip(probed, target_columns):
            if not is_value_compatible(value, target.declared_type):
                raise ValidationError(
                    f"Column '{target.name}' type mismatch: field '{source_name}' value "
                    f"{value!r} ({type(value).__name__}) is not compatible with "
                    f"{target.declared_type}",
                    column_name=target.name,
                    expected=target.declared_type,
                    actual=type(value).__name__
                )

    def _log_validation_results(self, schema: TargetSchema, probe_row: Dict[str, Any]) -> None:
        summary = {
            'fields_validated': schema.names,
            'sample_types': {name: type(value).__name__ for name, value in probe_row.items()},
            'target_types': {column.name: column.declared_type for column in schema},
        }
        self.logger.info(f"ReplaceSelect validation: {summary}")
