"""
Utilities package for the Trip Sampler.

Exports shared helpers for logging and profiling. Keep this package free of
sampling logic.
"""

from trip_sampler.utils.logging import configure_logging, get_logger
from trip_sampler.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
