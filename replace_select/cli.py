"""
Command-line interface for the REPLACE ... SELECT engine.

Runs one statement against the configured data store and prints the result row
as JSON.

    replace-select "REPLACE INTO products_copy SELECT * FROM products" --batch-size 500
"""

import sys
import json
import logging
import argparse
from typing import Optional

from .config.config_manager import ConfigManager, DatabaseConfig, ProcessingParameters
from .config.processing_defaults import ProcessingDefaults
from .database.odbc_client import OdbcDataStoreClient
from .database.transactional_orchestrator import TransactionalOrchestrator
from .exceptions import ReplaceSelectError
from .parsing.statement_parser import parse_replace_select


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="replace-select",
        description="Copy the rows of a SELECT into a target table in one transaction"
    )
    parser.add_argument("statement", help="REPLACE INTO target [(columns)] SELECT ... statement")
    parser.add_argument("--batch-size", type=int,
                        help=f"Rows per page (default: REPLACE_SELECT_BATCH_SIZE or {ProcessingDefaults.BATCH_SIZE})")
    parser.add_argument("--connection-string",
                        help="ODBC connection string (default: REPLACE_SELECT_CONNECTION_STRING or REPLACE_SELECT_DB_*)")
    parser.add_argument("--log-level", type=str.upper,
                        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
                        help=f"Logging level (default: REPLACE_SELECT_LOG_LEVEL or {ProcessingDefaults.LOG_LEVEL})")
    parser.add_argument("--debug", action="store_true",
                        help="Log every batch and include per-batch statistics in the result")
    return parser


def setup_logging(log_level: str) -> None:
    """Configure console logging without reconfiguring root if already configured."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.WARNING))


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for the CLI application.

    Args:
        args: Optional command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    options = build_parser().parse_args(args)

    try:
        params = ProcessingParameters.from_environment()
        if options.debug:
            params.debug = True
        if options.log_level:
            params.log_level = options.log_level

        setup_logging(params.log_level)
        logger = logging.getLogger(__name__)
        if params.debug:
            ProcessingDefaults.log_summary(logger)

        if options.connection_string:
            db_config = DatabaseConfig(connection_string=options.connection_string)
        else:
            db_config = DatabaseConfig.from_environment()

        config_manager = ConfigManager(db_config, params)
        config_manager.validate_configuration()
        logger.debug(f"Configuration: {config_manager.get_configuration_summary()}")

        request = parse_replace_select(options.statement, batch_size=options.batch_size)

        with OdbcDataStoreClient(db_config.connection_string,
                                 connection_timeout=db_config.connection_timeout,
                                 query_timeout=db_config.query_timeout) as client:
            orchestrator = TransactionalOrchestrator(client, request, params)
            stats = orchestrator.run()
            result = orchestrator.result_row(stats)

        print(json.dumps(result, indent=2))
        return 0

    except ReplaceSelectError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
