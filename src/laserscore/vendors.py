"""
Vendor profiles.

A VendorProfile bundles the few behaviours that differ between hardware
systems: how bonuses are counted, which best-of-game checks are shown, the
scoring rules and the fallback baselines used when no regression model can be
fitted.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from laserscore.core.constants import (
    BASE_CLASSIC_BESTS,
    FALLBACK_COEFFICIENTS,
    LASERMAXX_CLASSIC_BESTS,
    GameModeType,
    Statistic,
    SystemType,
)
from laserscore.scoring import BASIC_RULES, LASERMAXX_RULES, ScoringRules

if TYPE_CHECKING:
    from laserscore.models.game import Player


def _evo5_bonus_count(player: "Player") -> int:
    return player.bonus.total


def _evo6_bonus_count(player: "Player") -> int:
    return player.evo6.bonuses if player.evo6 is not None else 0


def _no_bonus_count(player: "Player") -> int:
    return 0


@dataclass(frozen=True)
class VendorProfile:
    """Per-system behaviour selected by composition."""

    system: SystemType | None
    classic_bests: tuple[str, ...]
    scoring_rules: ScoringRules
    count_bonuses: Callable[["Player"], int]
    # Skill adjustments for teammate hits and bonuses only exist on LaserMaxx
    team_hits_skill: bool = False
    bonus_skill: bool = False

    def bonus_count(self, player: "Player") -> int:
        return self.count_bonuses(player)

    def stat_value(self, player: "Player", prop: str) -> float:
        """Value of a results-board property ('hits', 'hitsOwn', 'mines', ...)."""
        if prop == "mines":
            return self.bonus_count(player)
        attribute = {
            "hitsOwn": "hits_own",
            "deathsOwn": "deaths_own",
            "hitsOther": "hits_other",
            "deathsOther": "deaths_other",
        }.get(prop, prop)
        return getattr(player, attribute)

    def fallback_expected(
        self, statistic: Statistic, game_type: GameModeType, enemies: int, teammates: int
    ) -> float:
        """Heuristic expected count used when no regression model is available."""
        coefficients = FALLBACK_COEFFICIENTS.get((statistic, game_type))
        if coefficients is None:
            # Teammate statistics have no heuristic
            return 0.0
        enemy_coef, teammate_coef, intercept = coefficients
        if game_type == GameModeType.SOLO:
            return enemy_coef * enemies + intercept
        return enemy_coef * enemies + teammate_coef * teammates + intercept


GENERIC_PROFILE = VendorProfile(
    system=None,
    classic_bests=BASE_CLASSIC_BESTS,
    scoring_rules=BASIC_RULES,
    count_bonuses=_no_bonus_count,
)

VENDOR_PROFILES: dict[SystemType, VendorProfile] = {
    SystemType.EVO5: VendorProfile(
        system=SystemType.EVO5,
        classic_bests=LASERMAXX_CLASSIC_BESTS,
        scoring_rules=LASERMAXX_RULES,
        count_bonuses=_evo5_bonus_count,
        team_hits_skill=True,
        bonus_skill=True,
    ),
    SystemType.EVO6: VendorProfile(
        system=SystemType.EVO6,
        classic_bests=LASERMAXX_CLASSIC_BESTS,
        scoring_rules=LASERMAXX_RULES,
        count_bonuses=_evo6_bonus_count,
        team_hits_skill=True,
        bonus_skill=True,
    ),
    SystemType.LASERFORCE: VendorProfile(
        system=SystemType.LASERFORCE,
        classic_bests=BASE_CLASSIC_BESTS,
        scoring_rules=BASIC_RULES,
        count_bonuses=_no_bonus_count,
    ),
}


def get_vendor_profile(system: SystemType | str | None) -> VendorProfile:
    """Profile for a system, the generic one for unknown systems."""
    parsed = SystemType.parse(system)
    if parsed is None:
        return GENERIC_PROFILE
    return VENDOR_PROFILES.get(parsed, GENERIC_PROFILE)
