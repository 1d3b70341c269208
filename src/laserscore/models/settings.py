"""
Value objects attached to games, modes and players.

Each object maps to the flat column layout used by the results database via
``to_row()`` / ``from_row()``.
"""

import re
from dataclasses import asdict, dataclass, field, fields
from typing import Any

from laserscore.core.constants import GameModeType


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


@dataclass
class Scoring:
    """Point values per counter. Negative values are penalties."""

    death_other: int = 0
    hit_other: int = 0
    death_own: int = 0
    hit_own: int = 0
    hit_pod: int = 0
    shot: int = 0
    machine_gun: int = 0
    invisibility: int = 0
    agent: int = 0
    shield: int = 0

    # Column names for each field; powers carry a "power_" infix
    COLUMNS = {
        "death_other": "scoring_death_other",
        "hit_other": "scoring_hit_other",
        "death_own": "scoring_death_own",
        "hit_own": "scoring_hit_own",
        "hit_pod": "scoring_hit_pod",
        "shot": "scoring_shot",
        "machine_gun": "scoring_power_machine_gun",
        "invisibility": "scoring_power_invisibility",
        "agent": "scoring_power_agent",
        "shield": "scoring_power_shield",
    }

    def to_row(self, legacy_death_own: bool = False) -> dict[str, int]:
        """
        Flatten into ``scoring_*`` columns.

        Args:
            legacy_death_own: Write ``hit_own`` into ``scoring_death_own``, the
                way rows exported by older importers look. Only for reproducing
                archived data.
        """
        row = {column: getattr(self, name) for name, column in self.COLUMNS.items()}
        if legacy_death_own:
            row["scoring_death_own"] = self.hit_own
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Scoring":
        return cls(**{name: int(row.get(column) or 0) for name, column in cls.COLUMNS.items()})

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Scoring":
        return cls(**{f.name: int(data.get(f.name, 0)) for f in fields(cls)})


@dataclass
class Timing:
    """Game timing in seconds."""

    before: int = 0
    game_length: int = 0
    after: int = 0

    def to_row(self) -> dict[str, int]:
        return {
            "timing_before": self.before,
            "timing_game_length": self.game_length,
            "timing_after": self.after,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Timing":
        return cls(
            before=int(row.get("timing_before") or 0),
            game_length=int(row.get("timing_game_length") or 0),
            after=int(row.get("timing_after") or 0),
        )


@dataclass
class ModeSettings:
    """Display and ranking flags of a game mode. Everything is on by default."""

    public: bool = True
    mines: bool = True
    part_win: bool = True
    part_teams: bool = True
    part_players: bool = True
    part_hits: bool = True
    part_best: bool = True
    part_best_day: bool = True
    player_score: bool = True
    player_shots: bool = True
    player_miss: bool = True
    player_accuracy: bool = True
    player_mines: bool = True
    player_players: bool = True
    player_players_teams: bool = True
    player_kd: bool = True
    player_favourites: bool = True
    player_lives: bool = True
    team_score: bool = True
    team_accuracy: bool = True
    team_shots: bool = True
    team_hits: bool = True
    team_zakladny: bool = True
    best_score: bool = True
    best_hits: bool = True
    best_deaths: bool = True
    best_accuracy: bool = True
    best_hits_own: bool = True
    best_deaths_own: bool = True
    best_shots: bool = True
    best_miss: bool = True
    best_mines: bool = True

    def to_row(self) -> dict[str, int]:
        return {f.name: int(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ModeSettings":
        settings = cls()
        for f in fields(cls):
            if row.get(f.name) is not None:
                setattr(settings, f.name, int(row[f.name]) == 1)
        return settings

    def best_enabled(self, prop: str) -> bool:
        """Whether the 'best <prop>' board entry is shown, e.g. best_enabled('hitsOwn')."""
        return getattr(self, "best_" + _snake_case(prop), True)


@dataclass(frozen=True)
class GameModeRow:
    """A mode as defined in storage. ``systems`` is a comma list or None for all."""

    id: int | None = None
    name: str = ""
    systems: str | None = None
    type: GameModeType = GameModeType.TEAM
    rankable: bool = True
    description: str | None = None
    settings: ModeSettings = field(default_factory=ModeSettings, compare=False, hash=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "systems": self.systems,
            "type": self.type.value,
            "rankable": self.rankable,
            "description": self.description,
            "settings": self.settings.to_row(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameModeRow":
        return cls(
            id=int(data["id"]) if data.get("id") is not None else None,
            name=data.get("name", ""),
            systems=data.get("systems"),
            type=GameModeType(data.get("type", GameModeType.TEAM)),
            rankable=bool(data.get("rankable", True)),
            description=data.get("description"),
            settings=ModeSettings.from_row(data.get("settings") or {}),
        )


@dataclass
class BonusCounts:
    """Evo5 power-up pickups."""

    agent: int = 0
    invisibility: int = 0
    machine_gun: int = 0
    shield: int = 0

    @property
    def total(self) -> int:
        return self.agent + self.invisibility + self.machine_gun + self.shield


@dataclass
class PowerCount:
    """LaserForce power activations."""

    machine_gun: int = 0
    invincibility: int = 0
    payback: int = 0
    nuke_start: int = 0
    nuke: int = 0
    shield: int = 0
    reset: int = 0


@dataclass
class LaserBallCounts:
    """Ball handling statistics of the LaserForce laser-ball mode."""

    ball_got: int = 0
    steals: int = 0
    lost: int = 0
    passes: int = 0
    clears: int = 0
    goals: int = 0


@dataclass
class LaserForceCounters:
    """LaserForce-only player counters filled from the event stream."""

    level: int = 0
    target_hits: int = 0
    targets_destroyed: int = 0
    rocket_targets: int = 0
    rocket_misses: int = 0
    rockets: int = 0
    rocket_deaths: int = 0
    punished: int = 0
    added_lives: int = 0
    added_ammo: int = 0
    added_team_lives: int = 0
    added_team_ammo: int = 0
    lives_added_to: int = 0
    ammo_added_to: int = 0
    beacons: int = 0
    powers: PowerCount = field(default_factory=PowerCount)
    laser_ball: LaserBallCounts = field(default_factory=LaserBallCounts)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LaserForceCounters":
        data = dict(data)
        powers = PowerCount(**data.pop("powers", {}))
        laser_ball = LaserBallCounts(**data.pop("laser_ball", {}))
        return cls(powers=powers, laser_ball=laser_ball, **data)


@dataclass
class Evo6Counters:
    """Evo6-only player counters."""

    bonuses: int = 0
    activity: int = 0
    calories: int = 0
    score_activity: int = 0
    score_encouragement: int = 0
    score_knockout: int = 0
    score_penalty: int = 0
    score_reality: int = 0
    penalty_count: int = 0
    birthday: bool = False
