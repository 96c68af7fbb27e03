"""Utility functions and helpers."""

from .debug_stats import DebugStatsTracker, get_stats_tracker
from .logger import VerbosityLevel, setup_logger

__all__ = ["DebugStatsTracker", "VerbosityLevel", "get_stats_tracker", "setup_logger"]
