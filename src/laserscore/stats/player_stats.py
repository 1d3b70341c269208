"""
Player skill.

Skill rates how well a player played independently of the scoring settings.
It is the sum of:

- hits: 200 points for exactly the expected number of hits, scaled by the
  relative difference to the regression baseline
- K:D: kd * 50 (or -5 / kd below 1) plus 80 points scaled by the deviation
  from the game's average K:D
- accuracy: 5 points per percent
- position: up to 200 points for the best placed player
- teammate hits (LaserMaxx, team games): a penalty around 100 points for the
  expected number of teammate hits, normalized to a 15 minute game
- bonuses (LaserMaxx): 10 points per bonus

After every player has a base skill the game-level pass modulates each value
by the average skill of the other players, so beating weak opponents counts
less than beating strong ones.
"""

from __future__ import annotations

import logging

from laserscore.core.config import SkillConfig
from laserscore.core.constants import (
    SKILL_ACCURACY_WEIGHT,
    SKILL_BONUS_WEIGHT,
    SKILL_HITS_WEIGHT,
    SKILL_KD_DEVIATION_WEIGHT,
    SKILL_KD_LOW_WEIGHT,
    SKILL_KD_WEIGHT,
    SKILL_MODULATION_DAMPING,
    SKILL_POSITION_WEIGHT,
    SKILL_TEAM_HITS_WEIGHT,
    GameModeType,
    Statistic,
)
from laserscore.core.errors import InsufficientDataError
from laserscore.core.utils import nonzero, round_half_up, safe_divide
from laserscore.models.game import Game, Player
from laserscore.stats.baselines import StatBaselineStore
from laserscore.vendors import get_vendor_profile

logger = logging.getLogger(__name__)


def player_kd(player: Player) -> float:
    """Enemy hits per enemy death. Solo games use the totals."""
    game = player.game
    if game is not None and game.is_team:
        return player.hits_other / (player.deaths_other or 1)
    return player.hits / (player.deaths or 1)


def average_kd(game: Game) -> float:
    """Mean K:D of all players, 1 for an empty game."""
    if not game.players:
        return 1.0
    return sum(player_kd(p) for p in game.players) / len(game.players)


def favourite_target(player: Player) -> Player | None:
    """Player this player hit the most. Ties go to the first recorded target."""
    best = None
    most = 0
    for record in player.hit_players.values():
        if record.count > most:
            most = record.count
            best = record.target
    return best


def favourite_target_of(player: Player) -> Player | None:
    """Player that hit this player the most."""
    if player.game is None:
        return None
    best = None
    most = 0
    for other in player.game.players:
        if other is player:
            continue
        hits = other.hits_on(player)
        if hits > most:
            most = hits
            best = other
    return best


class PlayerStatModel:
    """Expected counts and skill of one player in a finished game."""

    def __init__(
        self,
        player: Player,
        baselines: StatBaselineStore | None = None,
        config: SkillConfig | None = None,
        game_average_kd: float | None = None,
    ):
        if player.game is None:
            raise ValueError(f"Player {player.name} is not part of a game")
        self.player = player
        self.game = player.game
        self.baselines = baselines
        self.config = config or SkillConfig()
        self.profile = get_vendor_profile(self.game.system)
        self._average_kd = game_average_kd

    # ------------------------------------------------------------------
    # Game context
    # ------------------------------------------------------------------

    @property
    def game_type(self) -> GameModeType:
        return GameModeType.TEAM if self.game.is_team else GameModeType.SOLO

    @property
    def team_size(self) -> int:
        if self.player.team is None:
            return 1
        return self.player.team.player_count

    @property
    def enemies(self) -> int:
        if self.game.is_team:
            return self.game.player_count - self.team_size
        return self.game.player_count - 1

    @property
    def teammates(self) -> int:
        if self.game.is_team:
            return self.team_size - 1
        return 0

    @property
    def team_count(self) -> int:
        """Number of teams, clamped to the range baselines exist for."""
        return min(max(len(self.game.teams), 2), 6)

    @property
    def kd(self) -> float:
        return player_kd(self.player)

    @property
    def average_kd(self) -> float:
        if self._average_kd is None:
            self._average_kd = average_kd(self.game)
        return self._average_kd

    # ------------------------------------------------------------------
    # Expected counts
    # ------------------------------------------------------------------

    def _predict(self, statistic: Statistic, game_type: GameModeType) -> float | None:
        if self.baselines is None:
            return None
        arena = self.game.arena_id if self.config.arena_baselines else None
        try:
            model = self.baselines.get(
                statistic, game_type, self.game.mode, self.team_count, arena
            )
        except InsufficientDataError as e:
            logger.warning(f"Using fallback for {statistic.value} of {self.player.name}: {e}")
            return None
        return model.predict(self.enemies, self.teammates, self.game.real_game_length)

    def _expected(self, statistic: Statistic) -> float:
        expected = self._predict(statistic, self.game_type)
        if expected is None:
            expected = self.profile.fallback_expected(
                statistic, self.game_type, self.enemies, self.teammates
            )
        return expected

    def expected_average_hit_count(self) -> float:
        return self._expected(Statistic.HITS)

    def expected_average_death_count(self) -> float:
        return self._expected(Statistic.DEATHS)

    def expected_average_teammate_hit_count(self) -> float:
        if not self.game.is_team:
            return 0.0
        expected = self._predict(Statistic.HITS_OWN, GameModeType.TEAM)
        return expected if expected is not None else 0.0

    def expected_average_teammate_death_count(self) -> float:
        if not self.game.is_team:
            return 0.0
        expected = self._predict(Statistic.DEATHS_OWN, GameModeType.TEAM)
        return expected if expected is not None else 0.0

    def relative_hits(self) -> float | None:
        """Hits relative to the expected count, 1.0 meaning exactly average."""
        expected = self.expected_average_hit_count()
        if expected == 0:
            return None
        return 1 + (self.player.hits - expected) / expected

    def relative_deaths(self) -> float | None:
        expected = self.expected_average_death_count()
        if expected == 0:
            return None
        return 1 + (self.player.deaths - expected) / expected

    # ------------------------------------------------------------------
    # Skill parts
    # ------------------------------------------------------------------

    def skill_from_hits(self) -> float:
        expected = self.expected_average_hit_count()
        diff = self.player.hits - expected
        return (1 + diff / nonzero(expected)) * SKILL_HITS_WEIGHT

    def skill_from_kd(self) -> float:
        kd = self.kd
        skill = 0.0
        if kd >= 1:
            skill += kd * SKILL_KD_WEIGHT
        elif kd != 0:
            skill -= (1 / kd) * SKILL_KD_LOW_WEIGHT

        avg = self.average_kd or 1.0
        skill += (1 + (kd - avg) / avg) * SKILL_KD_DEVIATION_WEIGHT
        return skill

    def skill_from_accuracy(self) -> float:
        return SKILL_ACCURACY_WEIGHT * (self.player.accuracy / 100)

    def skill_from_position(self) -> float:
        """Players tied on score share the better position."""
        position = sum(1 for other in self.game.players if other.score > self.player.score)
        count = self.game.player_count
        return SKILL_POSITION_WEIGHT * safe_divide(count - position, count)

    def skill_from_team_hits(self) -> float:
        """Teammate hits penalty, never positive."""
        if not self.profile.team_hits_skill or not self.game.is_team:
            return 0.0
        expected = self.expected_average_teammate_hit_count()
        if expected <= 0:
            expected = 0.1
        diff = self.player.hits_own - expected
        skill = (1 + diff / nonzero(expected)) * SKILL_TEAM_HITS_WEIGHT

        length = self.game.real_game_length
        if length != 0:
            skill *= self.config.reference_length / length
        return -skill

    def skill_from_bonuses(self) -> float:
        if not self.profile.bonus_skill:
            return 0.0
        return self.profile.bonus_count(self.player) * SKILL_BONUS_WEIGHT

    def skill_parts(self) -> dict[str, float]:
        parts = {
            "position": self.skill_from_position(),
            "hits": self.skill_from_hits(),
            "kd": self.skill_from_kd(),
            "accuracy": self.skill_from_accuracy(),
        }
        if self.profile.team_hits_skill:
            parts["teamHits"] = self.skill_from_team_hits()
        if self.profile.bonus_skill:
            parts["bonuses"] = self.skill_from_bonuses()
        return parts

    def base_skill(self) -> float:
        return (
            self.skill_from_hits()
            + self.skill_from_kd()
            + self.skill_from_accuracy()
            + self.skill_from_position()
        )

    def calculate_skill(self) -> int:
        """Compute and store the player's unmodulated skill."""
        skill = self.base_skill() + self.skill_from_team_hits() + self.skill_from_bonuses()
        self.player.skill = round_half_up(skill)
        return self.player.skill


def modulate_skills(players: list[Player], damping: float = SKILL_MODULATION_DAMPING) -> None:
    """
    Adjust every skill towards the average skill of the other players.

    Uses 1 - d / (x + d) of the relative difference x, so a skill is never
    changed by 100 %.
    """
    others = len(players) - 1
    if others <= 0:
        return
    base = [p.skill for p in players]
    total = sum(base)
    for player, skill in zip(players, base, strict=True):
        avg = (total - skill) / others
        diff = avg - skill
        if avg == 0:
            avg = 1
        diff_percent = abs(diff / avg)
        percent = 1 - damping / (diff_percent + damping)
        change = abs(round_half_up(skill * percent))
        player.skill = skill - change if diff < 0 else skill + change


def calculate_game_skills(
    game: Game,
    baselines: StatBaselineStore | None = None,
    config: SkillConfig | None = None,
) -> dict[int | str, int]:
    """
    Compute the skill of every player of a game.

    Returns:
        Mapping of vest to final skill
    """
    config = config or SkillConfig()
    game_kd = average_kd(game)
    for player in game.players:
        PlayerStatModel(player, baselines, config, game_average_kd=game_kd).calculate_skill()

    if config.modulate:
        modulate_skills(game.players)

    logger.debug(f"Calculated skills of {game.player_count} players in game {game.code}")
    return {p.vest: p.skill for p in game.players}
