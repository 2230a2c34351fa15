"""
Centralized configuration defaults for REPLACE ... SELECT runs.

This module defines operational configuration constants used throughout the engine.
Environment variables (REPLACE_SELECT_*) and CLI arguments override these defaults
at runtime.

Single Source of Truth: Change these values once; all modules automatically use updated defaults.
"""

import logging


class ProcessingDefaults:
    """
    Centralized operational configuration for REPLACE ... SELECT runs.

    All values are defaults that can be overridden via environment or CLI arguments:
    - REPLACE_SELECT_BATCH_SIZE=500 replace-select "REPLACE INTO ..."
    - replace-select --batch-size 500 --log-level DEBUG "REPLACE INTO ..."
    """

    # Paging
    BATCH_SIZE = 1000  # Rows per page fetched and written
    MAX_BATCH_SIZE = 10000  # Upper clamp for any requested page size
    MAX_EMPTY_BATCHES = 3  # Consecutive empty pages that end a run
    ORDER_COLUMN = "id"  # Injected ORDER BY column when the SELECT has none

    # Database connection
    CONNECTION_TIMEOUT = 30  # Connection timeout in seconds
    QUERY_TIMEOUT = 0  # Per-statement timeout in seconds (0 = store default)

    # Logging
    LOG_LEVEL = "WARNING"  # Default logging level (CRITICAL, ERROR, WARNING, INFO, DEBUG)
    DEBUG = False  # Per-batch logging and per-batch detail in results

    @classmethod
    def to_dict(cls) -> dict:
        """Defaults by constant name, in declaration order."""
        return {name: value for name, value in vars(cls).items() if name.isupper()}

    @classmethod
    def log_summary(cls, logger: logging.Logger) -> None:
        """Log one line per default, used by the CLI in debug runs."""
        lines = [f"  {name}: {value}" for name, value in cls.to_dict().items()]
        logger.info("Processing defaults:\n" + "\n".join(lines))
