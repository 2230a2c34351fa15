"""Configuration management components."""

from .config_manager import ConfigManager, DatabaseConfig, ProcessingParameters
from .processing_defaults import ProcessingDefaults

__all__ = ['ConfigManager', 'DatabaseConfig', 'ProcessingParameters', 'ProcessingDefaults']
