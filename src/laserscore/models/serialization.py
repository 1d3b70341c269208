"""
Plain-dict serialization of games.

``game_to_dict`` produces JSON-compatible data; ``game_from_dict`` rebuilds
an equivalent game including per-target hits and the resolved mode variant.
"""

from dataclasses import asdict, fields
from datetime import datetime
from typing import Any

from laserscore.core.constants import UNLIMITED, GameModeType, SystemType
from laserscore.core.errors import ValidationError
from laserscore.models.game import Game, Player, Team
from laserscore.models.settings import (
    BonusCounts,
    Evo6Counters,
    GameModeRow,
    LaserForceCounters,
    Scoring,
    Timing,
)

PLAYER_COUNTERS = (
    "shots",
    "hits",
    "deaths",
    "accuracy",
    "position",
    "hits_other",
    "hits_own",
    "deaths_other",
    "deaths_own",
    "score",
    "skill",
    "shot_points",
    "score_bonus",
    "score_powers",
    "score_mines",
    "ammo_rest",
    "mines_hits",
    "vip",
)


def _datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _mode_to_dict(game: Game) -> dict[str, Any] | None:
    mode = game.mode
    if mode is None:
        return None
    return {
        "key": mode.key,
        "scope": mode.scope.value if mode.scope is not None else None,
        "system": mode.system.value if mode.system is not None else None,
        "row": mode.row.to_dict() if mode.row is not None else None,
    }


def _player_to_dict(player: Player, teams: list[Team]) -> dict[str, Any]:
    data: dict[str, Any] = {"name": player.name, "vest": player.vest}
    data.update({name: getattr(player, name) for name in PLAYER_COUNTERS})
    data["team"] = teams.index(player.team) if player.team is not None else None
    data["bonus"] = asdict(player.bonus)
    data["evo6"] = asdict(player.evo6) if player.evo6 is not None else None
    data["laserforce"] = player.laserforce.to_dict() if player.laserforce is not None else None
    data["hits_players"] = [
        {"target": record.target.vest, "count": record.count}
        for record in player.hit_players.values()
    ]
    return data


def game_to_dict(game: Game) -> dict[str, Any]:
    """Serialize a game with its teams, players, hits and mode."""
    return {
        "code": game.code,
        "system": game.system.value,
        "game_type": game.game_type.value,
        "start": _datetime(game.start),
        "end": _datetime(game.end),
        "import_time": _datetime(game.import_time),
        "mode": _mode_to_dict(game),
        "mode_name": game.mode_name,
        "scoring": game.scoring.to_dict() if game.scoring is not None else None,
        "timing": asdict(game.timing) if game.timing is not None else None,
        "lives": game.lives,
        "ammo": game.ammo,
        "respawn_lives": game.respawn_lives,
        "arena_id": game.arena_id,
        "sync": game.sync,
        "rounds": game.rounds,
        "meta": dict(game.meta),
        "teams": [
            {
                "color": team.color,
                "name": team.name,
                "score": team.score,
                "bonus": team.bonus,
                "position": team.position,
            }
            for team in game.teams
        ],
        "players": [_player_to_dict(player, game.teams) for player in game.players],
    }


def game_from_dict(data: dict[str, Any], registry=None) -> Game:
    """
    Rebuild a game serialized by ``game_to_dict``.

    Args:
        data: Serialized game
        registry: GameModeRegistry used to recreate the mode, the default
            registry when omitted

    Raises:
        ValidationError: Unknown system or inconsistent player/team data
    """
    system = SystemType.parse(data.get("system"))
    if system is None:
        raise ValidationError("Unknown system", system=data.get("system"))

    game = Game(
        code=data["code"],
        system=system,
        game_type=GameModeType(data.get("game_type", GameModeType.TEAM)),
        start=_parse_datetime(data.get("start")),
        end=_parse_datetime(data.get("end")),
        import_time=_parse_datetime(data.get("import_time")),
        mode_name=data.get("mode_name", ""),
        scoring=Scoring.from_dict(data["scoring"]) if data.get("scoring") else None,
        timing=Timing(**data["timing"]) if data.get("timing") else None,
        lives=data.get("lives", UNLIMITED),
        ammo=data.get("ammo", UNLIMITED),
        respawn_lives=data.get("respawn_lives", 0),
        arena_id=data.get("arena_id"),
        sync=data.get("sync", False),
        rounds=data.get("rounds", 0),
        meta=dict(data.get("meta") or {}),
    )

    for team_data in data.get("teams", []):
        game.add_team(
            Team(
                color=team_data["color"],
                name=team_data.get("name", ""),
                score=team_data.get("score", 0),
                bonus=team_data.get("bonus"),
                position=team_data.get("position", 0),
            )
        )

    evo6_fields = {f.name for f in fields(Evo6Counters)}
    for player_data in data.get("players", []):
        player = Player(name=player_data["name"], vest=player_data["vest"])
        for name in PLAYER_COUNTERS:
            if name in player_data:
                setattr(player, name, player_data[name])
        player.bonus = BonusCounts(**(player_data.get("bonus") or {}))
        if player_data.get("evo6") is not None:
            player.evo6 = Evo6Counters(
                **{k: v for k, v in player_data["evo6"].items() if k in evo6_fields}
            )
        if player_data.get("laserforce") is not None:
            player.laserforce = LaserForceCounters.from_dict(player_data["laserforce"])

        team_index = player_data.get("team")
        team = None
        if team_index is not None:
            if not 0 <= team_index < len(game.teams):
                raise ValidationError(
                    "Player references a missing team", vest=player.vest, team=team_index
                )
            team = game.teams[team_index]
        game.add_player(player, team)

    for player_data in data.get("players", []):
        shooter = game.vest_player(player_data["vest"])
        for hit in player_data.get("hits_players", []):
            target = game.vest_player(hit["target"])
            if target is None:
                raise ValidationError(
                    "Hit references a missing player", shooter=shooter.vest, target=hit["target"]
                )
            shooter.add_hits(target, hit["count"])

    mode_data = data.get("mode")
    if mode_data:
        if registry is None:
            from laserscore.modes.registry import default_registry

            registry = default_registry()
        row = GameModeRow.from_dict(mode_data["row"]) if mode_data.get("row") else None
        game.mode = registry.create(
            SystemType.parse(mode_data.get("scope")),
            mode_data["key"],
            row,
            SystemType.parse(mode_data.get("system")),
        )

    return game
