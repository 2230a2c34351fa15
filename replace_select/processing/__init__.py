"""
Processing module for the REPLACE ... SELECT engine.

This module provides the paged batch processor and per-type value conversion.
"""

from .batch_processor import BatchProcessor
from .value_converter import convert_value

__all__ = [
    'BatchProcessor',
    'convert_value'
]
