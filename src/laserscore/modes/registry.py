"""
Game mode registry.

Maps a mode (a storage row or a free-text name) played on a vendor system to
exactly one GameMode variant. Variants are registered explicitly per system
under a normalized name; resolution follows a fixed fallback chain:

1. vendor variant registered under the normalized mode name (exact, then
   upper-case), for each candidate system in order
2. vendor TeamDeathmatch / Deathmatch when there is no mode row
3. generic CustomTeamMode / CustomSoloMode for a mode row, otherwise the
   generic TeamDeathmatch / Deathmatch

Results are memoized per (system, type, mode id), or per mode name for rows
without an id.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol

from laserscore.core.constants import ACTIVE_SYSTEMS, GameModeType, SystemType
from laserscore.core.errors import GameModeNotFoundError
from laserscore.core.utils import normalize_mode_name
from laserscore.models.settings import GameModeRow
from laserscore.modes.base import GameMode

logger = logging.getLogger(__name__)

ModeFactory = Callable[..., GameMode]
SystemInput = SystemType | str | Iterable[SystemType | str] | None


class ModeRepository(Protocol):
    """Read access to stored game modes."""

    def find_by_name(
        self, name: str, game_type: GameModeType, systems: tuple[SystemType, ...] = ()
    ) -> GameModeRow | None: ...

    def get(self, mode_id: int) -> GameModeRow | None: ...

    def all(self) -> list[GameModeRow]: ...


class InMemoryModeRepository:
    """Mode rows kept in a list. Counts lookups so callers can check memoization."""

    def __init__(self, rows: Iterable[GameModeRow] = ()):
        self.rows = list(rows)
        self.lookups = 0

    def add(self, row: GameModeRow) -> GameModeRow:
        self.rows.append(row)
        return row

    def find_by_name(
        self, name: str, game_type: GameModeType, systems: tuple[SystemType, ...] = ()
    ) -> GameModeRow | None:
        self.lookups += 1
        wanted = normalize_mode_name(name).upper()
        for row in self.rows:
            if row.type != game_type or normalize_mode_name(row.name).upper() != wanted:
                continue
            if systems and row.systems is not None:
                row_systems = {SystemType.parse(s) for s in row.systems.split(",")}
                if not row_systems.intersection(systems):
                    continue
            return row
        return None

    def get(self, mode_id: int) -> GameModeRow | None:
        self.lookups += 1
        for row in self.rows:
            if row.id == mode_id:
                return row
        return None

    def all(self) -> list[GameModeRow]:
        return list(self.rows)


@dataclass(frozen=True)
class ResolutionKey:
    """Memo key of one resolution. Rows without an id are told apart by name."""

    system: SystemType | None
    type: GameModeType
    mode_id: int | None = None
    mode_name: str | None = None

    @classmethod
    def for_row(
        cls, system: SystemType | None, game_type: GameModeType, row: GameModeRow | None
    ) -> ResolutionKey:
        if row is None:
            return cls(system, game_type)
        if row.id is not None:
            return cls(system, game_type, row.id)
        return cls(system, game_type, mode_name=normalize_mode_name(row.name).upper())

    def __str__(self) -> str:
        key = f"{self.system or 'generic'}_{self.type.value}"
        if self.mode_id is not None:
            key += f"_{self.mode_id}"
        elif self.mode_name is not None:
            key += f"_{self.mode_name or '-'}"
        return key


@dataclass(frozen=True)
class Resolution:
    """Registered variant a key resolved to."""

    scope: SystemType | None
    key: str
    factory: ModeFactory


class GameModeRegistry:
    """Explicit registry of game mode variants with memoized resolution."""

    def __init__(
        self,
        repository: ModeRepository | None = None,
        active_systems: Iterable[SystemType] = ACTIVE_SYSTEMS,
    ):
        self.repository = repository
        self.active_systems = tuple(active_systems)
        self._factories: dict[tuple[SystemType | None, str], ModeFactory] = {}
        self._resolved: dict[ResolutionKey, Resolution] = {}
        self._rows: dict[tuple, GameModeRow | None] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        system: SystemType | None,
        key: str,
        factory: ModeFactory,
        aliases: Iterable[str] = (),
    ) -> None:
        """
        Register a variant.

        Args:
            system: Vendor system, None for generic variants
            key: Normalized mode name, e.g. 'TeamSurvival'
            factory: Callable(row, system) returning the mode
            aliases: Extra keys resolving to the same factory
        """
        for name in (key, *aliases):
            self._factories[(system, name)] = factory
        logger.debug(f"Registered mode {key} for {system or 'all systems'}")

    def is_registered(self, system: SystemType | None, key: str) -> bool:
        return (system, key) in self._factories

    def create(
        self,
        scope: SystemType | None,
        key: str,
        row: GameModeRow | None = None,
        system: SystemType | None = None,
    ) -> GameMode:
        """Instantiate a registered variant directly."""
        factory = self._factories.get((scope, key))
        if factory is None:
            raise GameModeNotFoundError("Mode is not registered", system=scope, key=key)
        return self._instantiate(Resolution(scope, key, factory), row, system or scope)

    def clear_cache(self) -> None:
        with self._lock:
            self._resolved.clear()
            self._rows.clear()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def normalize_systems(self, system: SystemInput) -> list[SystemType]:
        """Single system, comma list, iterable or None (all active systems)."""
        if system is None:
            return list(self.active_systems)
        if isinstance(system, SystemType):
            return [system]
        if isinstance(system, str):
            items: Iterable = system.split(",")
        else:
            items = system
        systems = []
        for item in items:
            parsed = SystemType.parse(item)
            if parsed is None:
                logger.warning(f"Ignoring unknown system {item!r}")
            elif parsed not in systems:
                systems.append(parsed)
        return systems

    def resolve_variant(
        self, system: SystemInput, row: GameModeRow | None, game_type: GameModeType
    ) -> tuple[Resolution, SystemType | None]:
        """Resolution for the inputs and the system the mode will run on."""
        systems = self.normalize_systems(system)
        for sys in systems:
            key = ResolutionKey.for_row(sys, game_type, row)
            cached = self._resolved.get(key)
            if cached is not None:
                logger.debug(f"Mode cache hit for {key}")
                return cached, sys

            resolution = self._find_vendor_variant(sys, row, game_type)
            if resolution is not None:
                with self._lock:
                    self._resolved[key] = resolution
                logger.debug(f"Resolved mode {row.name if row else '-'} to {sys} {resolution.key}")
                return resolution, sys

        resolution = self._find_generic_variant(row, game_type)
        with self._lock:
            for sys in systems or [None]:
                self._resolved[ResolutionKey.for_row(sys, game_type, row)] = resolution

        logger.debug(f"Resolved mode {row.name if row else '-'} to generic {resolution.key}")
        return resolution, systems[0] if systems else None

    def resolve(
        self,
        system: SystemInput,
        row: GameModeRow | None = None,
        game_type: GameModeType = GameModeType.TEAM,
    ) -> GameMode:
        """Resolve to a mode instance."""
        resolution, matched_system = self.resolve_variant(system, row, game_type)
        return self._instantiate(resolution, row, matched_system)

    def find(
        self,
        mode_name: str,
        game_type: GameModeType = GameModeType.TEAM,
        system: SystemInput = None,
    ) -> GameMode:
        """
        Resolve a free-text mode name as sent by a vendor console.

        The stored mode row is looked up once per (name, type, systems) and
        memoized; unknown names resolve like a game without a mode row.
        """
        systems = tuple(self.normalize_systems(system)) if system is not None else ()
        row = self._find_row(mode_name, game_type, systems)
        if system is None and row is not None and row.systems is not None:
            system = row.systems
        mode = self.resolve(system, row, game_type)
        if row is None and mode_name:
            mode.name = mode_name
        return mode

    def get_by_id(self, mode_id: int, system: SystemInput = None) -> GameMode:
        """Resolve a stored mode by its id."""
        if self.repository is None:
            raise GameModeNotFoundError("No mode repository configured", mode_id=mode_id)
        cache_key = ("id", mode_id)
        if cache_key in self._rows:
            row = self._rows[cache_key]
        else:
            row = self.repository.get(mode_id)
            with self._lock:
                self._rows[cache_key] = row
        if row is None:
            raise GameModeNotFoundError("Mode does not exist", mode_id=mode_id)
        return self.resolve(system if system is not None else row.systems, row, row.type)

    def alternative(self, mode: GameMode, game_type: GameModeType) -> GameMode:
        """The same mode played as the other type (Revolver <-> Team Revolver)."""
        if (game_type == GameModeType.TEAM) == mode.is_team():
            return mode
        key = mode.team_alternative if game_type == GameModeType.TEAM else mode.solo_alternative
        if key is None:
            return mode
        for scope in (mode.system, None):
            if self.is_registered(scope, key):
                return self.create(scope, key, mode.row, mode.system)
        logger.warning(f"Alternative {key} of mode {mode.key} is not registered")
        return mode

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _find_row(
        self, mode_name: str, game_type: GameModeType, systems: tuple[SystemType, ...]
    ) -> GameModeRow | None:
        cache_key = ("name", normalize_mode_name(mode_name).upper(), game_type, systems)
        if cache_key in self._rows:
            return self._rows[cache_key]
        row = None
        if self.repository is not None:
            row = self.repository.find_by_name(mode_name, game_type, systems)
        with self._lock:
            self._rows[cache_key] = row
        return row

    def _lookup(self, scope: SystemType | None, key: str) -> Resolution | None:
        factory = self._factories.get((scope, key))
        if factory is None:
            return None
        return Resolution(scope, key, factory)

    def _find_vendor_variant(
        self, system: SystemType, row: GameModeRow | None, game_type: GameModeType
    ) -> Resolution | None:
        if row is not None:
            name = normalize_mode_name(row.name)
            return self._lookup(system, name) or self._lookup(system, name.upper())
        default = "TeamDeathmatch" if game_type == GameModeType.TEAM else "Deathmatch"
        return self._lookup(system, default)

    def _find_generic_variant(
        self, row: GameModeRow | None, game_type: GameModeType
    ) -> Resolution:
        team = game_type == GameModeType.TEAM
        if row is not None:
            key = "CustomTeamMode" if team else "CustomSoloMode"
        else:
            key = "TeamDeathmatch" if team else "Deathmatch"
        resolution = self._lookup(None, key)
        if resolution is None:
            raise GameModeNotFoundError(
                "Cannot find generic game mode", key=key, type=game_type.value
            )
        logger.debug(f"Using generic mode {key}")
        return resolution

    @staticmethod
    def _instantiate(
        resolution: Resolution, row: GameModeRow | None, system: SystemType | None
    ) -> GameMode:
        mode = resolution.factory(row, system)
        mode.key = resolution.key
        mode.scope = resolution.scope
        return mode


def register_builtin_modes(registry: GameModeRegistry) -> GameModeRegistry:
    """Register the generic and all vendor variants."""
    from functools import partial

    from laserscore.modes import generic, laserforce, lasermaxx

    registry.register(None, "Deathmatch", generic.Deathmatch)
    registry.register(None, "TeamDeathmatch", generic.TeamDeathmatch)
    registry.register(None, "CustomTeamMode", generic.CustomTeamMode)
    registry.register(None, "CustomSoloMode", generic.CustomSoloMode)

    evo5 = SystemType.EVO5
    registry.register(evo5, "Deathmatch", generic.Deathmatch)
    registry.register(evo5, "TeamDeathmatch", generic.TeamDeathmatch)
    registry.register(evo5, "CSGO", lasermaxx.CSGO)
    registry.register(
        evo5, "Zakladny", partial(lasermaxx.Zakladny, base_counter=lasermaxx.shield_pickups)
    )
    registry.register(evo5, "Survival", lasermaxx.Survival)
    registry.register(evo5, "TeamSurvival", lasermaxx.TeamSurvival)
    registry.register(evo5, "M100Naboju", lasermaxx.M100Naboju)
    registry.register(evo5, "Barvicky", lasermaxx.Barvicky)
    registry.register(evo5, "Tma", lasermaxx.Tma, aliases=("TMA",))
    registry.register(evo5, "TmaSolo", lasermaxx.TmaSolo, aliases=("TMASolo",))
    registry.register(evo5, "Apokalypsa", lasermaxx.Apokalypsa)

    evo6 = SystemType.EVO6
    registry.register(evo6, "CSGO", lasermaxx.CSGO)
    registry.register(evo6, "Zakladny", lasermaxx.Zakladny)
    registry.register(evo6, "Survival", lasermaxx.Survival)
    registry.register(evo6, "TeamSurvival", lasermaxx.TeamSurvival)
    registry.register(evo6, "SensorTag", lasermaxx.SensorTag)
    registry.register(evo6, "Gladiator", lasermaxx.Gladiator)
    registry.register(evo6, "Revolver", lasermaxx.Revolver)
    registry.register(evo6, "TeamRevolver", lasermaxx.TeamRevolver)
    registry.register(evo6, "KamenNuzkyPapir", lasermaxx.KamenNuzkyPapir)
    registry.register(evo6, "Tma", lasermaxx.Tma, aliases=("TMA",))
    registry.register(evo6, "TmaSolo", lasermaxx.TmaSolo, aliases=("TMASolo",))

    laser_force = SystemType.LASERFORCE
    registry.register(laser_force, "Deathmatch", generic.Deathmatch)
    registry.register(laser_force, "TeamDeathmatch", generic.TeamDeathmatch)
    registry.register(laser_force, "LaserBall", laserforce.LaserBall)

    return registry


_default_registry: GameModeRegistry | None = None


def default_registry() -> GameModeRegistry:
    """Process-wide registry with the built-in modes and no mode repository."""
    global _default_registry
    if _default_registry is None:
        _default_registry = register_builtin_modes(GameModeRegistry())
    return _default_registry
