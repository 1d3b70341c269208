"""Tests for expected counts, skill parts and skill modulation."""

import math

import pytest

from laserscore.core.config import SkillConfig
from laserscore.core.constants import FeatureExpansion, GameModeType, Statistic, SystemType
from laserscore.core.errors import InsufficientDataError
from laserscore.models.game import Player, normalize_counters
from laserscore.models.settings import BonusCounts
from laserscore.scoring import LASERMAXX_RULES, ScoringEngine
from laserscore.stats.baselines import StatBaselineStore
from laserscore.stats.engine import DataFrameStatSource, RegressionStatEngine
from laserscore.stats.player_stats import (
    PlayerStatModel,
    average_kd,
    calculate_game_skills,
    favourite_target,
    favourite_target_of,
    modulate_skills,
    player_kd,
)
from laserscore.stats.regression import CoefficientModel


class FixedBaselines:
    """Returns the same model for every statistic and records the requests."""

    def __init__(self, model: CoefficientModel | None = None):
        self.model = model
        self.requests = []

    def get(self, statistic, game_type, mode=None, team_count=2, arena=None):
        self.requests.append((statistic, game_type, team_count, arena))
        if self.model is None:
            raise InsufficientDataError("no history", rows=0)
        return self.model


def constant_model(game_type: GameModeType, value: float) -> CoefficientModel:
    width = 4 if game_type == GameModeType.TEAM else 3
    return CoefficientModel(game_type, FeatureExpansion.LINEAR, [value] + [0.0] * (width - 1))


@pytest.fixture
def scored_team_game(team_game):
    normalize_counters(team_game)
    ScoringEngine(LASERMAXX_RULES).recalculate(team_game)
    return team_game


@pytest.fixture
def scored_solo_game(solo_game):
    normalize_counters(solo_game)
    ScoringEngine(LASERMAXX_RULES).recalculate(solo_game)
    return solo_game


class TestGameContext:
    def test_team_player(self, team_game):
        model = PlayerStatModel(team_game.vest_player(1))
        assert model.game_type == GameModeType.TEAM
        assert model.enemies == 2
        assert model.teammates == 1
        assert model.team_count == 2

    def test_solo_player(self, solo_game):
        model = PlayerStatModel(solo_game.vest_player(1))
        assert model.game_type == GameModeType.SOLO
        assert model.enemies == 2
        assert model.teammates == 0

    def test_player_without_game(self):
        with pytest.raises(ValueError):
            PlayerStatModel(Player(name="Ghost", vest=1))

    def test_kd(self, scored_team_game, scored_solo_game):
        assert player_kd(scored_team_game.vest_player(1)) == pytest.approx(10 / 4)
        assert player_kd(scored_solo_game.vest_player(1)) == pytest.approx(5 / 2)

    def test_kd_without_deaths(self, make_game, make_player):
        game = make_game(game_type=GameModeType.SOLO)
        assert player_kd(make_player(game, "Alpha", 1, hits=7)) == 7

    def test_average_kd(self, scored_solo_game):
        assert average_kd(scored_solo_game) == pytest.approx((5 / 2 + 3 / 5 + 3 / 4) / 3)

    def test_favourite_targets(self, team_game):
        alpha = team_game.vest_player(1)
        assert favourite_target(alpha).name == "Charlie"
        # Charlie and Delta both hit Alpha twice, the first one wins
        assert favourite_target_of(alpha).name == "Charlie"

    def test_no_favourite_target(self, make_game, make_player):
        player = make_player(make_game(), "Alpha", 1)
        assert favourite_target(player) is None
        assert favourite_target_of(player) is None


class TestExpectedCounts:
    def test_team_fallback(self, team_game):
        model = PlayerStatModel(team_game.vest_player(1))
        assert model.expected_average_hit_count() == pytest.approx(2.5771 * 2 + 2.48007 + 36.76356)
        assert model.expected_average_death_count() == pytest.approx(
            2.730673 * 2 - 0.0566788 + 43.203734389
        )

    def test_solo_fallback(self, solo_game):
        model = PlayerStatModel(solo_game.vest_player(1))
        assert model.expected_average_hit_count() == pytest.approx(2.05869 * 2 + 44.8715)
        assert model.expected_average_death_count() == pytest.approx(
            4.01628957539 * 2 - 15.0000175286
        )

    def test_teammate_counts_without_baseline(self, team_game, solo_game):
        assert PlayerStatModel(team_game.vest_player(1)).expected_average_teammate_hit_count() == 0
        solo_model = PlayerStatModel(solo_game.vest_player(1), FixedBaselines())
        assert solo_model.expected_average_teammate_death_count() == 0

    def test_insufficient_data_falls_back(self, team_game):
        baselines = FixedBaselines()
        model = PlayerStatModel(team_game.vest_player(1), baselines)

        assert model.expected_average_hit_count() == pytest.approx(2.5771 * 2 + 2.48007 + 36.76356)
        assert baselines.requests[0][:3] == (Statistic.HITS, GameModeType.TEAM, 2)

    def test_baseline_prediction(self, solo_game):
        baselines = FixedBaselines(constant_model(GameModeType.SOLO, 10.0))
        model = PlayerStatModel(solo_game.vest_player(1), baselines)

        assert model.expected_average_hit_count() == pytest.approx(10.0)
        assert model.relative_hits() == pytest.approx(0.5)
        assert model.relative_deaths() == pytest.approx(0.2)

    def test_relative_hits_without_expectation(self, solo_game):
        baselines = FixedBaselines(constant_model(GameModeType.SOLO, 0.0))
        assert PlayerStatModel(solo_game.vest_player(1), baselines).relative_hits() is None

    def test_global_baselines_by_default(self, make_game, make_player):
        game = make_game(game_type=GameModeType.SOLO, arena_id=4)
        baselines = FixedBaselines(constant_model(GameModeType.SOLO, 10.0))
        PlayerStatModel(make_player(game, "Alpha", 1), baselines).expected_average_hit_count()
        assert baselines.requests[-1][3] is None

    def test_arena_baselines(self, make_game, make_player):
        game = make_game(game_type=GameModeType.SOLO, arena_id=4)
        baselines = FixedBaselines(constant_model(GameModeType.SOLO, 10.0))
        model = PlayerStatModel(
            make_player(game, "Alpha", 1), baselines, SkillConfig(arena_baselines=True)
        )
        model.expected_average_hit_count()
        assert baselines.requests[-1][3] == 4


class TestSkillParts:
    def test_hits_part(self, solo_game):
        baselines = FixedBaselines(constant_model(GameModeType.SOLO, 10.0))
        model = PlayerStatModel(solo_game.vest_player(1), baselines)
        assert model.skill_from_hits() == pytest.approx((1 + (5 - 10) / 10) * 200)

    def test_kd_part_at_average(self, scored_solo_game):
        model = PlayerStatModel(scored_solo_game.vest_player(1), game_average_kd=2.5)
        assert model.skill_from_kd() == pytest.approx(2.5 * 50 + 80)

    def test_kd_part_below_one(self, make_game, make_player):
        game = make_game(game_type=GameModeType.SOLO)
        player = make_player(game, "Alpha", 1, hits=1, deaths=2)
        model = PlayerStatModel(player, game_average_kd=1.0)
        assert model.skill_from_kd() == pytest.approx(-2 * 5 + 0.5 * 80)

    def test_kd_part_without_hits(self, make_game, make_player):
        game = make_game(game_type=GameModeType.SOLO)
        player = make_player(game, "Alpha", 1, deaths=3)
        assert PlayerStatModel(player, game_average_kd=1.0).skill_from_kd() == 0

    def test_accuracy_part(self, scored_solo_game):
        assert PlayerStatModel(scored_solo_game.vest_player(1)).skill_from_accuracy() == 250

    def test_position_part(self, scored_solo_game):
        parts = {
            p.name: PlayerStatModel(p).skill_from_position() for p in scored_solo_game.players
        }
        assert parts["Alpha"] == pytest.approx(200)
        assert parts["Charlie"] == pytest.approx(200 * 2 / 3)
        assert parts["Bravo"] == pytest.approx(200 / 3)

    def test_tied_players_share_position(self, scored_solo_game):
        scored_solo_game.vest_player(2).score = 100
        scored_solo_game.vest_player(3).score = 100
        bravo = PlayerStatModel(scored_solo_game.vest_player(2)).skill_from_position()
        charlie = PlayerStatModel(scored_solo_game.vest_player(3)).skill_from_position()
        assert bravo == charlie == pytest.approx(200 * 2 / 3)

    def test_team_hits_without_baseline_is_finite(self, scored_team_game):
        """Missing teammate-hit baseline uses a small expectation instead of failing."""
        alpha = scored_team_game.vest_player(1)
        alpha.hits_own = 3
        empty_store = StatBaselineStore(RegressionStatEngine(DataFrameStatSource()))

        skill = PlayerStatModel(alpha, empty_store).skill_from_team_hits()

        assert math.isfinite(skill)
        assert skill == pytest.approx(-(1 + (3 - 0.1)) * 100)

    def test_team_hits_with_baseline(self, scored_team_game):
        baselines = FixedBaselines(constant_model(GameModeType.TEAM, 2.0))
        model = PlayerStatModel(scored_team_game.vest_player(1), baselines)
        assert model.skill_from_team_hits() == pytest.approx(-(1 + (1 - 2) / 2) * 100)

    def test_team_hits_normalized_to_game_length(self, make_game, make_player):
        game = make_game(minutes=30)
        player = make_player(game, "Alpha", 1, hits_own=1)
        baselines = FixedBaselines(constant_model(GameModeType.TEAM, 2.0))
        assert PlayerStatModel(player, baselines).skill_from_team_hits() == pytest.approx(-25)

    def test_team_hits_only_on_lasermaxx(self, make_game, make_player):
        game = make_game(system=SystemType.LASERFORCE)
        player = make_player(game, "Alpha", 1, hits_own=5)
        model = PlayerStatModel(player)
        assert model.skill_from_team_hits() == 0
        assert set(model.skill_parts()) == {"position", "hits", "kd", "accuracy"}

    def test_team_hits_not_in_solo(self, scored_solo_game):
        assert PlayerStatModel(scored_solo_game.vest_player(1)).skill_from_team_hits() == 0

    def test_bonus_part(self, scored_solo_game):
        alpha = scored_solo_game.vest_player(1)
        alpha.bonus = BonusCounts(agent=1, shield=2)
        model = PlayerStatModel(alpha)
        assert model.skill_from_bonuses() == 30
        assert model.skill_parts()["bonuses"] == 30

    def test_skill_is_sum_of_parts(self, scored_team_game):
        model = PlayerStatModel(scored_team_game.vest_player(1))
        skill = model.calculate_skill()
        assert abs(skill - sum(model.skill_parts().values())) <= 0.5
        assert scored_team_game.vest_player(1).skill == skill


class TestModulation:
    def test_equal_skills_unchanged(self, solo_game):
        for player in solo_game.players:
            player.skill = 100
        modulate_skills(solo_game.players)
        assert [p.skill for p in solo_game.players] == [100, 100, 100]

    def test_moves_towards_others(self):
        strong = Player(name="Strong", vest=1, skill=200)
        weak = Player(name="Weak", vest=2, skill=100)

        modulate_skills([strong, weak])

        assert strong.skill == 178
        assert weak.skill == 106

    def test_zero_average_guard(self):
        players = [
            Player(name="A", vest=1, skill=0),
            Player(name="B", vest=2, skill=0),
            Player(name="C", vest=3, skill=50),
        ]
        modulate_skills(players)
        assert [p.skill for p in players] == [0, 0, 7]

    def test_single_player_unchanged(self):
        player = Player(name="Alone", vest=1, skill=321)
        modulate_skills([player])
        assert player.skill == 321


class TestGameSkills:
    def test_every_player_rated(self, scored_team_game):
        skills = calculate_game_skills(scored_team_game)
        assert set(skills) == {1, 2, 3, 4}
        assert all(isinstance(skill, int) for skill in skills.values())
        assert skills[1] == scored_team_game.vest_player(1).skill

    def test_modulation_can_be_disabled(self, scored_team_game):
        base = {
            p.vest: PlayerStatModel(p).calculate_skill() for p in scored_team_game.players
        }
        skills = calculate_game_skills(scored_team_game, config=SkillConfig(modulate=False))
        assert skills == base

    def test_best_player_rated_highest(self, scored_team_game):
        skills = calculate_game_skills(scored_team_game)
        assert max(skills, key=skills.get) == 1
