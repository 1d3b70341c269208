"""
LaserScore - Constants

Defines vendor systems, game types, trophy keys and the literal thresholds
used by the skill and trophy calculations.
"""

from enum import StrEnum


class SystemType(StrEnum):
    """
    Laser-tag hardware platform that produced the raw results.

    Evo5 and Evo6 are both LaserMaxx systems and share most of their modes.
    """

    EVO5 = "evo5"
    EVO6 = "evo6"
    LASERFORCE = "laserForce"

    @classmethod
    def parse(cls, value: "str | SystemType | None") -> "SystemType | None":
        """Return the matching system or None for unknown input."""
        if value is None:
            return None
        if isinstance(value, SystemType):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        return None

    @property
    def is_lasermaxx(self) -> bool:
        return self in (SystemType.EVO5, SystemType.EVO6)


# Systems considered active when a mode lists no systems
ACTIVE_SYSTEMS: tuple[SystemType, ...] = (
    SystemType.EVO5,
    SystemType.EVO6,
    SystemType.LASERFORCE,
)


class GameModeType(StrEnum):
    """Whether a game is played in teams or free-for-all."""

    SOLO = "SOLO"
    TEAM = "TEAM"


class Statistic(StrEnum):
    """Statistics that have a regression baseline."""

    HITS = "hits"
    DEATHS = "deaths"
    HITS_OWN = "hitsOwn"
    DEATHS_OWN = "deathsOwn"

    @property
    def team_only(self) -> bool:
        return self in (Statistic.HITS_OWN, Statistic.DEATHS_OWN)


class FeatureExpansion(StrEnum):
    """Feature sets tried when fitting a baseline, lowest order first."""

    LINEAR = "linear"
    INTERACTION = "interaction"
    QUADRATIC = "quadratic"


# Historical player-stat column holding each statistic, per game type
STAT_COLUMNS: dict[GameModeType, dict[Statistic, str]] = {
    GameModeType.TEAM: {
        Statistic.HITS: "hits_other",
        Statistic.DEATHS: "deaths_other",
        Statistic.HITS_OWN: "hits_own",
        Statistic.DEATHS_OWN: "deaths_own",
    },
    GameModeType.SOLO: {
        Statistic.HITS: "hits",
        Statistic.DEATHS: "deaths",
    },
}

# Regression settings
MIN_REGRESSION_ROWS = 10
TEAM_COUNTS = range(2, 7)

# Fallback baselines used when there is not enough history to fit a model.
# Keys: (statistic, game type) -> (enemy coef, teammate coef, intercept)
FALLBACK_COEFFICIENTS: dict[tuple[Statistic, GameModeType], tuple[float, float, float]] = {
    (Statistic.HITS, GameModeType.TEAM): (2.5771, 2.48007, 36.76356),
    (Statistic.HITS, GameModeType.SOLO): (2.05869, 0.0, 44.8715),
    (Statistic.DEATHS, GameModeType.TEAM): (2.730673, -0.0566788, 43.203734389),
    (Statistic.DEATHS, GameModeType.SOLO): (4.01628957539, 0.0, -15.0000175286),
}

# Skill weights
SKILL_HITS_WEIGHT = 200.0
SKILL_KD_WEIGHT = 50.0
SKILL_KD_LOW_WEIGHT = 5.0
SKILL_KD_DEVIATION_WEIGHT = 80.0
SKILL_ACCURACY_WEIGHT = 500.0
SKILL_POSITION_WEIGHT = 200.0
SKILL_TEAM_HITS_WEIGHT = 100.0
SKILL_BONUS_WEIGHT = 10.0
SKILL_REFERENCE_LENGTH = 15.0  # minutes
SKILL_MODULATION_DAMPING = 8.0

# Default lives and ammo when the vendor did not send a limit
UNLIMITED = 9999

# Points awarded to survivors by the survival-style modes
SURVIVAL_BONUS = 1000


class Trophy(StrEnum):
    """Stable trophy keys. Display text is looked up elsewhere."""

    # Special
    ACCURACY_100 = "100-percent"
    ZERO_DEATHS = "zero-deaths"
    DEVIL = "devil"
    NOT_FOUND = "not-found"
    NOT_FOUND_SHOTS = "not-found-shots"
    # Rare
    ZERO = "zero"
    TEAM_50 = "team-50"
    FAVOURITE_TARGET = "favouriteTarget"
    FAVOURITE_TARGET_OF = "favouriteTargetOf"
    # Classic bests
    SCORE = "score"
    HITS = "hits"
    DEATHS = "deaths"
    ACCURACY = "accuracy"
    SHOTS = "shots"
    MISS = "miss"
    HITS_OWN = "hitsOwn"
    DEATHS_OWN = "deathsOwn"
    MINES = "mines"
    # Other
    KD_1 = "kd-1"
    KD_2 = "kd-2"
    ACCURACY_50 = "50-percent"
    ACCURACY_5 = "5-percent"
    KD_0_5 = "kd-0-5"
    FAIR = "fair"
    AVERAGE = "average"


SPECIAL_TROPHIES = (
    Trophy.ACCURACY_100,
    Trophy.ZERO_DEATHS,
    Trophy.DEVIL,
    Trophy.NOT_FOUND,
    Trophy.NOT_FOUND_SHOTS,
)
RARE_TROPHIES = (
    Trophy.ZERO,
    Trophy.TEAM_50,
    Trophy.FAVOURITE_TARGET,
    Trophy.FAVOURITE_TARGET_OF,
)
OTHER_TROPHIES = (
    Trophy.KD_1,
    Trophy.KD_2,
    Trophy.ACCURACY_50,
    Trophy.ACCURACY_5,
    Trophy.KD_0_5,
    Trophy.FAIR,
)

# Classic best-of-game checks in results-board order; first match wins
BASE_CLASSIC_BESTS = ("score", "hits", "score", "accuracy", "shots", "miss")
LASERMAXX_CLASSIC_BESTS = BASE_CLASSIC_BESTS + ("hitsOwn", "deathsOwn", "mines")

# Trophy thresholds
TROPHY_THRESHOLDS = {
    "accuracy_special": 95.0,
    "zero_deaths": 10,
    "devil_scores": (666, 6666),
    "devil_shots": 666,
    "not_found_scores": (404, 4040, 40400),
    "not_found_shots": 404,
    "team_share": 0.45,
    "favourite_share": 0.45,
    "kd_1_tolerance": 0.1,
    "kd_2": 1.9,
    "kd_0_5": 0.65,
    "accuracy_50": 50.0,
    "accuracy_5": 6.0,
    "fair_max_deviation": 4.0,
}
