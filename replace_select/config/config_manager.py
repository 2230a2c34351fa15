"""
Configuration management for the REPLACE ... SELECT engine.

Configuration is read from REPLACE_SELECT_* environment variables, falling back to
ProcessingDefaults. Each run builds its own configuration objects; nothing is kept
in module-level state.
"""

import os
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass

from ..exceptions import ConfigurationError
from .processing_defaults import ProcessingDefaults


ENV_PREFIX = 'REPLACE_SELECT_'

_TRUE_VALUES = ('true', '1', 'yes', 'on')
_LOG_LEVELS = ('CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG')


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got '{raw}'")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class DatabaseConfig:
    """Database configuration with environment variable support."""
    connection_string: str
    driver: str = "MySQL ODBC 8.0 Unicode Driver"
    server: str = "127.0.0.1"
    port: int = 9306
    database: str = "Manticore"
    username: str = ""
    password: str = ""
    connection_timeout: int = ProcessingDefaults.CONNECTION_TIMEOUT
    query_timeout: int = ProcessingDefaults.QUERY_TIMEOUT

    @classmethod
    def from_environment(cls) -> 'DatabaseConfig':
        """Create database configuration from environment variables."""
        connection_timeout = _env_int('DB_CONNECTION_TIMEOUT', cls.connection_timeout)
        query_timeout = _env_int('DB_QUERY_TIMEOUT', cls.query_timeout)

        # Primary connection string from environment
        connection_string = os.environ.get(ENV_PREFIX + 'CONNECTION_STRING')
        if connection_string:
            return cls(
                connection_string=connection_string,
                connection_timeout=connection_timeout,
                query_timeout=query_timeout
            )

        # Build connection string from individual components
        driver = os.environ.get(ENV_PREFIX + 'DB_DRIVER', cls.driver)
        server = os.environ.get(ENV_PREFIX + 'DB_SERVER', cls.server)
        port = _env_int('DB_PORT', cls.port)
        database = os.environ.get(ENV_PREFIX + 'DB_DATABASE', cls.database)
        username = os.environ.get(ENV_PREFIX + 'DB_USERNAME', cls.username)
        password = os.environ.get(ENV_PREFIX + 'DB_PASSWORD', cls.password)

        connection_string = (
            f"DRIVER={{{driver}}};"
            f"SERVER={server};"
            f"PORT={port};"
            f"DATABASE={database};"
        )
        if username:
            connection_string += f"UID={username};PWD={password};"

        return cls(
            connection_string=connection_string,
            driver=driver,
            server=server,
            port=port,
            database=database,
            username=username,
            password=password,
            connection_timeout=connection_timeout,
            query_timeout=query_timeout
        )


@dataclass
class ProcessingParameters:
    """Processing parameters with environment variable support."""
    batch_size: int = ProcessingDefaults.BATCH_SIZE
    max_batch_size: int = ProcessingDefaults.MAX_BATCH_SIZE
    max_empty_batches: int = ProcessingDefaults.MAX_EMPTY_BATCHES
    order_column: str = ProcessingDefaults.ORDER_COLUMN
    debug: bool = ProcessingDefaults.DEBUG
    log_level: str = ProcessingDefaults.LOG_LEVEL

    def __post_init__(self):
        if self.max_batch_size < 1:
            raise ConfigurationError("Max batch size must be at least 1")
        self.batch_size = self.clamp_batch_size(self.batch_size)
        self.log_level = (self.log_level or ProcessingDefaults.LOG_LEVEL).upper()
        if self.log_level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level '{self.log_level}'")

    @classmethod
    def from_environment(cls) -> 'ProcessingParameters':
        """Create processing parameters from environment variables."""
        return cls(
            batch_size=_env_int('BATCH_SIZE', cls.batch_size),
            max_batch_size=_env_int('MAX_BATCH_SIZE', cls.max_batch_size),
            debug=_env_bool('DEBUG', cls.debug),
            log_level=os.environ.get(ENV_PREFIX + 'LOG_LEVEL', cls.log_level)
        )

    def clamp_batch_size(self, requested: Optional[int]) -> int:
        """
        Clamp a requested page size to [1, max_batch_size].

        None resolves to the configured batch size.
        """
        if requested is None:
            requested = self.batch_size
        return max(1, min(int(requested), self.max_batch_size))


class ConfigManager:
    """
    Configuration for one run: database connection plus processing parameters.
    """

    def __init__(self, database_config: Optional[DatabaseConfig] = None,
                 processing_params: Optional[ProcessingParameters] = None):
        """
        Initialize configuration, reading the environment for anything not supplied.

        Raises:
            ConfigurationError: If an environment value is malformed
        """
        self.logger = logging.getLogger(__name__)
        self.database_config = database_config or DatabaseConfig.from_environment()
        self.processing_params = processing_params or ProcessingParameters.from_environment()

    def get_database_config(self) -> DatabaseConfig:
        return self.database_config

    def get_processing_parameters(self) -> ProcessingParameters:
        return self.processing_params

    def validate_configuration(self) -> bool:
        """
        Validate all configuration settings.

        Returns:
            True if all configurations are valid

        Raises:
            ConfigurationError: If any configuration is invalid
        """
        errors = []

        if not self.database_config.connection_string:
            errors.append("Database connection string is empty")
        if self.database_config.connection_timeout < 0:
            errors.append("Connection timeout cannot be negative")
        if self.database_config.query_timeout < 0:
            errors.append("Query timeout cannot be negative")
        if self.processing_params.max_empty_batches < 1:
            errors.append("Max empty batches must be at least 1")
        if not self.processing_params.order_column:
            errors.append("Order column cannot be empty")

        if errors:
            error_message = "Configuration validation failed:\n" + "\n".join(f"- {e}" for e in errors)
            self.logger.error(error_message)
            raise ConfigurationError(error_message)

        self.logger.debug("Configuration validation passed")
        return True

    def get_configuration_summary(self) -> Dict[str, Any]:
        """
        Get a summary of all configuration settings.

        Returns:
            Dictionary containing configuration summary, with the password masked
        """
        return {
            'database': {
                'server': self.database_config.server,
                'port': self.database_config.port,
                'database': self.database_config.database,
                'driver': self.database_config.driver,
                'username': self.database_config.username,
                'password': '***' if self.database_config.password else '',
                'connection_timeout': self.database_config.connection_timeout,
                'query_timeout': self.database_config.query_timeout
            },
            'processing': {
                'batch_size': self.processing_params.batch_size,
                'max_batch_size': self.processing_params.max_batch_size,
                'max_empty_batches': self.processing_params.max_empty_batches,
                'order_column': self.processing_params.order_column,
                'debug': self.processing_params.debug,
                'log_level': self.processing_params.log_level
            }
        }
