"""
Game modes.

This module contains:
- base: GameMode and the optional capability mixins
- generic: modes available on every system
- lasermaxx: Evo5 / Evo6 modes
- laserforce: LaserForce modes
- registry: resolution of stored modes to variants
"""

from laserscore.modes.base import GameMode
from laserscore.modes.registry import GameModeRegistry, default_registry

__all__ = ["GameMode", "GameModeRegistry", "default_registry"]
