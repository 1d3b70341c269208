"""
Utility functions and performance helpers for LaserScore.

This module provides:
- Performance timing of code blocks
- Safe arithmetic helpers for ratio calculations
- Name normalization used by the mode registry
"""

import logging
import math
import time
import unicodedata

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """
    Context manager for monitoring performance of code blocks.

    Usage:
        with PerformanceMonitor("processing game A1B2"):
            processor.process(game)
    """

    def __init__(self, operation_name: str, log_level: int = logging.DEBUG):
        self.operation_name = operation_name
        self.log_level = log_level
        self.start_time: float | None = None
        self.elapsed: float = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - (self.start_time or 0)
        if exc_type is not None:
            logger.error(f"{self.operation_name} failed after {self.elapsed:.3f}s: {exc_val}")
        else:
            logger.log(self.log_level, f"{self.operation_name} completed in {self.elapsed:.3f}s")
        return False


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is 0.

    Args:
        numerator: Top of fraction
        denominator: Bottom of fraction
        default: Value to return if denominator is 0

    Returns:
        Result of division or default
    """
    if denominator == 0:
        return default
    return numerator / denominator


def nonzero(value: float, fallback: float = 1.0) -> float:
    """Return value, or fallback when its integer part is zero."""
    return value if int(value) != 0 else fallback


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def percentage(part: float, whole: float, decimals: int = 2) -> float:
    """Percentage of part in whole, 0 for an empty whole."""
    if whole == 0:
        return 0.0
    return round(100 * part / whole, decimals)


def to_ascii(text: str) -> str:
    """Strip diacritics: 'Základny' -> 'Zakladny'."""
    normalized = unicodedata.normalize("NFKD", text)
    return normalized.encode("ascii", "ignore").decode("ascii")


def normalize_mode_name(name: str) -> str:
    """
    Convert a free-text mode name into a registry key.

    Names starting with a digit get an 'M' prefix, every word is capitalized,
    diacritics are dropped and separators removed:

        '100 nábojů' -> 'M100Naboju'
        'Team survival' -> 'TeamSurvival'
        'CSGO' -> 'Csgo'
    """
    name = name.strip()
    if not name:
        return ""
    if name[0].isdigit():
        name = "M" + name
    name = to_ascii(name.title())
    for separator in (" ", ".", "_", "-", ","):
        name = name.replace(separator, "")
    return name
