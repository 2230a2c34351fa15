"""
Paged transfer of rows from a SELECT into a target table.

BatchProcessor fetches the caller's SELECT one page at a time under a stable
order, converts each row to the target schema's wire representation and writes
the page with a single REPLACE call. Memory is bounded by one page of source
rows plus one page of converted rows.
"""

import time
import logging
from typing import Any, Dict, List, Mapping, Optional

from ..exceptions import ClientProtocolError, ReplaceSelectError, RowConversionError
from ..interfaces import DataStoreClientInterface
from ..models import ReplaceSelectRequest, RunStats, TargetSchema
from ..monitoring.performance_monitor import PerformanceMonitor
from ..parsing.select_query import SelectQuery
from .value_converter import convert_value


class BatchProcessor:
    """
    Move every row produced by a SELECT into the target, one page at a time.

    Pagination:
    - page size is the configured batch size, reduced to the rows still allowed
      by the caller's own LIMIT
    - the caller's ORDER BY is kept, otherwise ORDER BY <order_column> ASC is
      injected; the caller's LIMIT bounds the total, never an individual page
    - offset advances by the rows actually returned
    - an empty page is retried until max_empty_batches consecutive empty pages
      have been seen, which ends the run successfully
    - a short page, or reaching the caller's LIMIT, ends the run

    Errors propagate unchanged with records_processed set to the rows written
    so far; nothing is retried.
    """

    def __init__(self, client: DataStoreClientInterface, request: ReplaceSelectRequest,
                 target_schema: TargetSchema, batch_size: Optional[int] = None,
                 debug: bool = False, max_empty_batches: int = 3, order_column: str = 'id'):
        """
        Initialize batch processor.

        Args:
            client: Data store client for page fetches and writes
            request: Parsed REPLACE ... SELECT request
            target_schema: Ordered columns to write, as resolved by FieldValidator
            batch_size: Page size; defaults to request.batch_size, then 1000
            debug: Log every page
            max_empty_batches: Consecutive empty pages that end the run
            order_column: Column ordered by when the caller gave no ORDER BY
        """
        self.client = client
        self.request = request
        self.target_schema = target_schema
        self.batch_size = batch_size or request.batch_size or 1000
        self.debug = debug
        self.max_empty_batches = max_empty_batches
        self.order_column = order_column
        self.logger = logging.getLogger(__name__)

        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.query = SelectQuery(request.select_query)
        self.monitor = PerformanceMonitor()
        self._match_by_name = self._select_names_match_schema()
        self._total_processed = 0
        self._batches_processed = 0

    def execute(self) -> int:
        """
        Run the paged transfer.

        Returns:
            Total number of rows written

        Raises:
            ReplaceSelectError: Any fetch, conversion or write failure, with
                records_processed set to the rows written before it
        """
        offset = 0
        consecutive_empty = 0
        user_limit = self.query.limit
        target_table = self.request.target_table_with_cluster
        columns = self.target_schema.names

        self.monitor.start_monitoring()
        if self.debug:
            self.logger.info(f"Starting batch processing into {target_table} with size: {self.batch_size}"
                             + (f", limit: {user_limit}" if user_limit is not None else ""))

        try:
            while True:
                page_limit = self.batch_size
                if user_limit is not None:
                    remaining = user_limit - self._total_processed
                    if remaining <= 0:
                        break
                    page_limit = min(page_limit, remaining)

                page_started = time.time()
                rows = self._fetch_page(page_limit, offset)

                if not rows:
                    consecutive_empty += 1
                    if consecutive_empty >= self.max_empty_batches:
                        if self.debug:
                            self.logger.info(f"Stopping after {consecutive_empty} consecutive empty batches")
                        break
                    continue

                consecutive_empty = 0
                converted = [self.process_row(row) for row in rows]
                self.client.write_page(target_table, columns, converted)

                offset += len(rows)
                self._total_processed += len(rows)
                self._batches_processed += 1
                stats = self.monitor.record_batch(len(rows), page_started)

                if self.debug:
                    self.logger.info(
                        f"Batch {stats.batch_number}: {stats.row_count} records in "
                        f"{stats.duration_seconds:.2f}s ({stats.rows_per_second:.0f} records/sec)"
                    )

                if len(rows) < page_limit:
                    break
        except ReplaceSelectError as e:
            self.logger.error(f"Batch processing failed at offset {offset}: {e}")
            e.records_processed = self._total_processed
            raise

        self._log_processing_statistics()
        return self._total_processed

    def process_row(self, row: Mapping[str, Any]) -> List[Any]:
        """
        Convert one source row into values index-aligned with the target schema.

        Values are taken by position. With an explicit column list whose names
        are the SELECT's output names in another order, values are taken by
        name (case-insensitively) instead.

        Raises:
            RowConversionError: If the row shape or a value does not fit
        """
        if len(row) != len(self.target_schema):
            raise RowConversionError(
                f"Row has {len(row)} fields, target schema has {len(self.target_schema)} columns"
            )

        values = list(row.values())
        if self._match_by_name:
            by_key = {str(key).lower(): value for key, value in row.items()}
            keys = [name.lower() for name in self.target_schema.names]
            if all(key in by_key for key in keys):
                values = [by_key[key] for key in keys]

        converted = []
        for column, value in zip(self.target_schema, values):
            try:
                converted.append(convert_value(value, column.declared_type))
            except (ValueError, TypeError, OverflowError) as e:
                raise RowConversionError(
                    f"Cannot convert value {value!r} for column '{column.name}' "
                    f"({column.declared_type}): {e}",
                    field_name=column.name,
                    source_value=value,
                    target_type=column.declared_type
                ) from e
        return converted

    def get_batches_processed(self) -> int:
        return self._batches_processed

    def get_total_processed(self) -> int:
        return self._total_processed

    def get_processing_statistics(self) -> RunStats:
        return self.monitor.get_run_stats()

    def _select_names_match_schema(self) -> bool:
        if self.request.column_list is None:
            return False
        output_names = self.query.output_names()
        if output_names is None or len(output_names) != len(self.target_schema):
            return False
        target_names = {name.lower() for name in self.target_schema.names}
        return {name.lower() for name in output_names} == target_names

    def _fetch_page(self, limit: int, offset: int) -> List[Dict[str, Any]]:
        sql = self.query.page_query(limit, offset, self.order_column)
        rows = self.client.query(sql)

        if not isinstance(rows, list):
            raise ClientProtocolError(
                f"Batch SELECT failed. Wrong response structure: {type(rows).__name__}"
            )
        for row in rows:
            if not isinstance(row, Mapping):
                raise ClientProtocolError(
                    f"Batch SELECT failed. Wrong row structure: {type(row).__name__}"
                )
        return rows

    def _log_processing_statistics(self) -> None:
        if not self.debug or not self._batches_processed:
            return

        stats = self.get_processing_statistics()
        summary = {
            'total_records': stats.total_rows,
            'total_batches': stats.total_batches,
            'total_duration_seconds': round(stats.total_duration_seconds, 4),
            'avg_records_per_batch': round(stats.avg_batch_size, 2),
            'overall_records_per_second': round(stats.rows_per_second, 2),
        }
        self.logger.info(f"Batch processing completed: {summary}")
