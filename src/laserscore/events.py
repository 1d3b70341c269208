"""
LaserForce event stream.

LaserForce consoles report a game as a list of timed events. Each event type
has a hexadecimal vendor code; processing an event updates the counters of
the players involved. Mode-specific actions are handed to the game mode when
it implements CustomEventsMode.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from laserscore.core.errors import ResultsParseError
from laserscore.models.game import Game, Player, Target
from laserscore.models.settings import LaserForceCounters

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    # System
    START = "start"
    END = "end"
    # Hits
    HIT = "hit"
    HIT_OWN = "hit_own"
    TARGET_HIT = "target_hit"
    TARGET_DESTROYED = "target"
    TARGET_ROCKET_DESTROYED = "target_rocket"
    TARGETS = "targets"
    ROCKET_MISS = "rocket_miss"
    ROCKET = "rocket"
    # Shots
    TARGET_MISS = "target_miss"
    MISS = "miss"
    # Other
    ACHIEVEMENT = "achievement"
    LEVEL_UP = "level_up"
    PUNISHED = "punished"
    # Powers
    MACHINE_GUN = "machine_gun"
    INVINCIBILITY = "invincibility"
    NUKE_START = "nuke_start"
    NUKE = "nuke"
    PAYBACK = "payback"
    RESET = "reset"
    SHIELD = "shield"
    # Space marines
    ADD_LIVES = "add_lives"
    ADD_TEAM_LIVES = "add_team_lives"
    ADD_AMMO = "add_ammo"
    ADD_TEAM_AMMO = "add_team_ammo"
    # Mode specific actions
    MODE_ACTION_1 = "mode_action_1"
    MODE_ACTION_2 = "mode_action_2"
    MODE_ACTION_3 = "mode_action_3"
    MODE_ACTION_4 = "mode_action_4"
    MODE_ACTION_5 = "mode_action_5"
    MODE_ACTION_6 = "mode_action_6"
    MODE_ACTION_7 = "mode_action_7"
    MODE_ACTION_8 = "mode_action_8"
    MODE_ACTION_9 = "mode_action_9"
    MODE_ACTION_10 = "mode_action_10"
    # Domination
    BEACON = "beacon"

    @classmethod
    def from_code(cls, code: str) -> EventType | None:
        """Event type for a vendor code such as '0205', None when unknown."""
        return EVENT_CODES.get(code.upper())

    @property
    def is_mode_action(self) -> bool:
        return self.value.startswith("mode_action_")


EVENT_CODES: dict[str, EventType] = {
    "0E00": EventType.LEVEL_UP,
    "0100": EventType.START,
    "0101": EventType.END,
    "0201": EventType.MISS,
    "0202": EventType.TARGET_MISS,
    "0203": EventType.TARGET_HIT,
    "0204": EventType.TARGET_DESTROYED,
    "0205": EventType.HIT,
    "0206": EventType.HIT,
    "0208": EventType.HIT_OWN,
    "0300": EventType.TARGETS,
    "0301": EventType.ROCKET_MISS,
    "0303": EventType.TARGET_ROCKET_DESTROYED,
    "0306": EventType.ROCKET,
    "0400": EventType.MACHINE_GUN,
    "0402": EventType.INVINCIBILITY,
    "0404": EventType.NUKE_START,
    "0405": EventType.NUKE,
    "0408": EventType.PAYBACK,
    "0409": EventType.RESET,
    "040A": EventType.SHIELD,
    "0500": EventType.ADD_LIVES,
    "0502": EventType.ADD_AMMO,
    "0510": EventType.ADD_TEAM_LIVES,
    "0512": EventType.ADD_TEAM_AMMO,
    "0600": EventType.PUNISHED,
    "0900": EventType.ACHIEVEMENT,
    "0B00": EventType.BEACON,
    **{f"110{i}": EventType(f"mode_action_{i + 1}") for i in range(10)},
}

POWER_EVENTS = {
    EventType.MACHINE_GUN: "machine_gun",
    EventType.INVINCIBILITY: "invincibility",
    EventType.NUKE_START: "nuke_start",
    EventType.NUKE: "nuke",
    EventType.PAYBACK: "payback",
    EventType.RESET: "reset",
    EventType.SHIELD: "shield",
}


def counters(player: Player) -> LaserForceCounters:
    """LaserForce counters of a player, created on first use."""
    if player.laserforce is None:
        player.laserforce = LaserForceCounters()
    return player.laserforce


def record_player_hit(shooter: Player, target: Player, own: bool = False) -> None:
    shooter.hits += 1
    target.deaths += 1
    if own:
        shooter.hits_own += 1
        target.deaths_own += 1
    else:
        shooter.hits_other += 1
        target.deaths_other += 1
    shooter.add_hits(target)


@dataclass(eq=False)
class Event:
    """One timed console event."""

    time: int
    type: EventType | None
    actor1: Player
    actor2: Player | Target | None = None
    game: Game | None = None
    type_code: str = ""
    score1: int | None = None
    score2: int | None = None

    @classmethod
    def from_code(cls, time: int, code: str, actor1: Player, actor2=None, game=None) -> Event:
        return cls(
            time=time,
            type=EventType.from_code(code),
            actor1=actor1,
            actor2=actor2,
            game=game if game is not None else actor1.game,
            type_code=code,
        )

    def require_actor2(self, description: str) -> Player | Target:
        if self.actor2 is None:
            raise ResultsParseError(
                f"{description} event must have both actors", time=self.time, type=self.type
            )
        return self.actor2

    def require_player2(self, description: str) -> Player:
        actor2 = self.require_actor2(description)
        if not isinstance(actor2, Player):
            raise ResultsParseError(
                f"{description} event must have both actors", time=self.time, type=self.type
            )
        return actor2

    def process(self) -> None:
        """Apply the event to the counters of its actors."""
        actor = self.actor1
        kind = self.type

        if kind in (EventType.HIT, EventType.HIT_OWN):
            target = self.require_actor2("Hit")
            if isinstance(target, Player):
                actor.shots += 1
                record_player_hit(actor, target, own=kind == EventType.HIT_OWN)
            elif kind == EventType.HIT:
                counters(actor).target_hits += 1
                target.hits += 1

        elif kind == EventType.TARGET_HIT:
            target = self.require_actor2("Hit")
            if isinstance(target, Target):
                actor.shots += 1
                counters(actor).target_hits += 1
                target.hits += 1

        elif kind in (EventType.TARGET_DESTROYED, EventType.TARGET_ROCKET_DESTROYED):
            target = self.require_actor2("Hit")
            if isinstance(target, Target):
                actor.shots += 1
                counters(actor).targets_destroyed += 1
                target.destroyed += 1

        elif kind == EventType.TARGETS:
            counters(actor).rocket_targets += 1

        elif kind in (EventType.TARGET_MISS, EventType.ROCKET_MISS):
            counters(actor).rocket_misses += 1

        elif kind == EventType.ROCKET:
            target = self.require_actor2("Rocket")
            counters(actor).rockets += 1
            if isinstance(target, Player):
                record_player_hit(actor, target)
                counters(actor).rockets += 1
                counters(target).rocket_deaths += 1
            else:
                counters(actor).target_hits += 1
                target.hits += 1

        elif kind == EventType.MISS:
            actor.shots += 1

        elif kind == EventType.LEVEL_UP:
            counters(actor).level += 1

        elif kind == EventType.PUNISHED:
            counters(actor).punished += 1

        elif kind in POWER_EVENTS:
            powers = counters(actor).powers
            attribute = POWER_EVENTS[kind]
            setattr(powers, attribute, getattr(powers, attribute) + 1)

        elif kind == EventType.ADD_LIVES:
            target = self.require_player2("Add lives")
            counters(actor).added_lives += 1
            counters(target).lives_added_to += 1

        elif kind == EventType.ADD_TEAM_LIVES:
            counters(actor).added_team_lives += 1

        elif kind == EventType.ADD_AMMO:
            target = self.require_player2("Add ammo")
            counters(actor).added_ammo += 1
            counters(target).ammo_added_to += 1

        elif kind == EventType.ADD_TEAM_AMMO:
            counters(actor).added_team_ammo += 1

        elif kind is not None and kind.is_mode_action:
            self._dispatch_to_mode()

        elif kind == EventType.BEACON:
            counters(actor).beacons += 1

        else:
            logger.debug(f"Ignoring event {self.type_code or kind} at {self.time}")

    def _dispatch_to_mode(self) -> None:
        from laserscore.modes.base import CustomEventsMode

        mode = self.game.mode if self.game is not None else None
        if isinstance(mode, CustomEventsMode):
            mode.process_event(self)


def process_events(events: list[Event]) -> int:
    """Process events in time order. Returns the number processed."""
    ordered = sorted(events, key=lambda e: e.time)
    for event in ordered:
        event.process()
    return len(ordered)
