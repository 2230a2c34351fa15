"""
Monitoring module for the REPLACE ... SELECT engine.

This module provides per-page timing and memory sampling for run statistics.
"""

from .performance_monitor import PerformanceMonitor

__all__ = [
    'PerformanceMonitor'
]
