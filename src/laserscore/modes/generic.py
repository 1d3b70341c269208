"""Built-in modes available on every system."""

from laserscore.core.constants import GameModeType
from laserscore.modes.base import GameMode


class Deathmatch(GameMode):
    name = "Deathmatch"
    description = "Free for all game type."
    type = GameModeType.SOLO
    team_alternative = "TeamDeathmatch"


class TeamDeathmatch(GameMode):
    name = "Team deathmatch"
    description = "Classic team game type."
    type = GameModeType.TEAM
    solo_alternative = "Deathmatch"


class CustomTeamMode(GameMode):
    """Admin-defined team mode without dedicated behaviour."""

    type = GameModeType.TEAM


class CustomSoloMode(GameMode):
    """Admin-defined solo mode without dedicated behaviour."""

    type = GameModeType.SOLO
