"""
LaserScore Infrastructure.

This module contains:
- database: SQLite storage for baselines and player history
"""

__all__: list[str] = []
