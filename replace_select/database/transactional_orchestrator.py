"""
Transactional orchestration of one REPLACE ... SELECT run.

Sequence: BEGIN -> validate -> process pages -> COMMIT. Any failure after BEGIN
issues a best-effort ROLLBACK and surfaces one DataClientError whose message
carries the number of rows processed, so callers can tell a zero-progress
failure (safe to resubmit) from a partial one.

State transitions:
    IDLE -> BEGUN -> VALIDATED -> PROCESSING -> COMMITTED
    BEGUN | VALIDATED | PROCESSING -> ROLLED_BACK -> FAILED
    BEGIN failure, COMMIT failure -> FAILED (no ROLLBACK)
"""

import logging
from typing import Optional

from ..config.config_manager import ProcessingParameters
from ..exceptions import DataClientError
from ..interfaces import DataStoreClientInterface
from ..models import ReplaceSelectRequest, RunStats, TargetSchema, TransactionState
from ..processing.batch_processor import BatchProcessor
from ..validation.field_validator import FieldValidator


def format_error(records_processed: int, error: BaseException) -> str:
    return f"Operation error (processed {records_processed} records): {error}"


class TransactionalOrchestrator:
    """
    Run one validate-then-process sequence inside a single transaction.

    The orchestrator is the only component that catches errors: validator and
    processor raise, the orchestrator rolls back and wraps.
    """

    def __init__(self, client: DataStoreClientInterface, request: ReplaceSelectRequest,
                 processing_params: Optional[ProcessingParameters] = None):
        """
        Initialize orchestrator.

        Args:
            client: Data store client shared by all steps of the run
            request: Parsed REPLACE ... SELECT request
            processing_params: Processing configuration; defaults to ProcessingParameters()
        """
        self.client = client
        self.request = request
        self.params = processing_params or ProcessingParameters()
        self.batch_size = self.params.clamp_batch_size(request.batch_size)
        self.logger = logging.getLogger(__name__)

        self.state = TransactionState.IDLE
        self.state_history = [self.state]
        self.records_processed = 0
        self.target_schema: Optional[TargetSchema] = None
        self.processor: Optional[BatchProcessor] = None

    def run(self) -> RunStats:
        """
        Execute the run.

        Returns:
            RunStats of the committed run

        Raises:
            DataClientError: On any failure, with records_processed and state set
        """
        if self.state is not TransactionState.IDLE:
            raise DataClientError("Orchestrator has already been run", self.records_processed, self.state)

        try:
            self.client.begin_transaction()
        except Exception as e:
            self._transition(TransactionState.FAILED)
            self.logger.error(f"BEGIN failed: {e}")
            raise DataClientError(format_error(0, e), 0, self.state) from e
        self._transition(TransactionState.BEGUN)
        self.logger.debug(f"Transaction started for REPLACE into {self.request.target_table_with_cluster}")

        try:
            validator = FieldValidator(self.client, debug=self.params.debug)
            self.target_schema = validator.validate_compatibility(
                self.request.select_query,
                self.request.target_table,
                self.request.column_list
            )
            self._transition(TransactionState.VALIDATED)

            self.processor = BatchProcessor(
                self.client,
                self.request,
                self.target_schema,
                batch_size=self.batch_size,
                debug=self.params.debug,
                max_empty_batches=self.params.max_empty_batches,
                order_column=self.params.order_column
            )
            self._transition(TransactionState.PROCESSING)
            self.records_processed = self.processor.execute()
        except Exception as e:
            self._sync_processed()
            self._rollback(e)
            raise DataClientError(format_error(self.records_processed, e),
                                  self.records_processed, self.state) from e
        except BaseException as e:
            # Cancellation: let the in-flight call finish, undo, and propagate unchanged
            self._sync_processed()
            self._rollback(e)
            raise

        try:
            self.client.commit()
        except Exception as e:
            self._transition(TransactionState.FAILED)
            self.logger.error(f"COMMIT failed after {self.records_processed} records; "
                              f"landing status is unknown: {e}")
            raise DataClientError(format_error(self.records_processed, e),
                                  self.records_processed, self.state) from e

        self._transition(TransactionState.COMMITTED)
        stats = self.processor.get_processing_statistics()
        self.logger.info(f"REPLACE SELECT committed {stats.total_rows} records in "
                         f"{stats.total_batches} batches ({stats.total_duration_seconds:.2f}s)")
        return stats

    def result_row(self, stats: RunStats) -> dict:
        """Result row reported to the caller for a committed run."""
        return stats.to_result_row(self.batch_size, include_batches=self.params.debug)

    def _sync_processed(self) -> None:
        if self.processor is not None:
            self.records_processed = self.processor.get_total_processed()

    def _rollback(self, error: BaseException) -> None:
        try:
            self.client.rollback()
            self.logger.error(f"Transaction rolled back due to error: {str(error)[:200]}")
        except Exception as rollback_error:
            self.logger.critical(f"ROLLBACK FAILED - target may hold uncommitted pages: {rollback_error}")
        self._transition(TransactionState.ROLLED_BACK)
        self._transition(TransactionState.FAILED)

    def _transition(self, state: TransactionState) -> None:
        self.logger.debug(f"Transaction state {self.state.value} -> {state.value}")
        self.state = state
        self.state_history.append(state)
