"""
Statistics: regression baselines and player skill.

This module contains:
- regression: OLS fitting and feature expansions (numpy)
- engine: baseline fitting from historical rows (pandas)
- baselines: cached and persisted baselines, batch recompute
- player_stats: expected counts and skill
"""

__all__: list[str] = []
