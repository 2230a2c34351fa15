"""
Performance monitoring for REPLACE ... SELECT runs.

Collects per-page timing and resident memory samples and summarises them as
RunStats. Sampling happens synchronously when a page is recorded; no
background thread is started, so a run never owns more than its own call stack.
"""

import time
import logging
import psutil
from typing import List, Optional

from ..models import BatchStats, RunStats


class PerformanceMonitor:
    """
    Per-run performance tracker.

    One monitor belongs to one BatchProcessor; it is not shared between runs.
    """

    def __init__(self):
        """Initialize the performance monitor."""
        self.logger = logging.getLogger(__name__)
        self._start_time: Optional[float] = None
        self._batches: List[BatchStats] = []
        self._total_rows = 0
        self._peak_memory_mb = 0.0

    def start_monitoring(self) -> None:
        """Reset counters and start the run clock."""
        self._start_time = time.time()
        self._batches = []
        self._total_rows = 0
        self._peak_memory_mb = self._get_current_memory_mb()

    def record_batch(self, row_count: int, started_at: float) -> BatchStats:
        """
        Record one written page.

        Args:
            row_count: Rows written in the page
            started_at: time.time() value taken before the page was fetched

        Returns:
            BatchStats appended for the page
        """
        if self._start_time is None:
            self.start_monitoring()

        duration = max(time.time() - started_at, 0.0)
        stats = BatchStats(
            batch_number=len(self._batches) + 1,
            row_count=row_count,
            duration_seconds=duration,
            rows_per_second=row_count / duration if duration > 0 else 0.0
        )
        self._batches.append(stats)
        self._total_rows += row_count

        memory_mb = self._get_current_memory_mb()
        if memory_mb > self._peak_memory_mb:
            self._peak_memory_mb = memory_mb

        return stats

    def get_run_stats(self) -> RunStats:
        """Summarise everything recorded since start_monitoring()."""
        elapsed = time.time() - self._start_time if self._start_time is not None else 0.0
        batch_count = len(self._batches)

        return RunStats(
            total_rows=self._total_rows,
            total_batches=batch_count,
            total_duration_seconds=elapsed,
            rows_per_second=self._total_rows / elapsed if elapsed > 0 else 0.0,
            avg_batch_size=self._total_rows / batch_count if batch_count else 0.0,
            batches=list(self._batches),
            peak_memory_mb=self._peak_memory_mb
        )

    def _get_current_memory_mb(self) -> float:
        """Get current memory usage in MB."""
        try:
            process = psutil.Process()
            return process.memory_info().rss / 1024 / 1024
        except psutil.Error as e:
            self.logger.warning(f"Unable to sample memory usage: {e}")
            return 0.0
