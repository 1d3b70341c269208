"""Tests for the game model and counter normalization."""

import pytest

from laserscore.core.constants import UNLIMITED, GameModeType, SystemType
from laserscore.core.errors import ValidationError
from laserscore.models.game import Game, Player, Team, normalize_counters
from laserscore.models.settings import (
    BonusCounts,
    Evo6Counters,
    GameModeRow,
    LaserForceCounters,
    ModeSettings,
    Timing,
)


class TestGameBuilding:
    def test_duplicate_vest_rejected(self, make_game, make_player):
        game = make_game()
        make_player(game, "Alpha", 1)
        with pytest.raises(ValidationError):
            make_player(game, "Other", 1)

    def test_player_joins_team(self, make_game, make_player):
        game = make_game()
        team = Team(color=2, name="Green")
        player = make_player(game, "Alpha", 1, team)

        assert player.team is team
        assert team.players == [player]
        assert team.game is game
        assert game.teams == [team]

    def test_vest_player(self, team_game):
        assert team_game.vest_player(3).name == "Charlie"
        assert team_game.vest_player(99) is None


class TestPlayerHits:
    def test_hits_accumulate_in_one_record(self):
        shooter = Player(name="A", vest=1)
        target = Player(name="B", vest=2)

        shooter.add_hits(target, 2)
        shooter.add_hits(target)

        assert len(shooter.hit_players) == 1
        assert shooter.hits_on(target) == 3

    def test_negative_hits_rejected(self):
        shooter = Player(name="A", vest=1)
        target = Player(name="B", vest=2)
        with pytest.raises(ValidationError):
            shooter.add_hits(target, -1)

    def test_hits_on_unknown_target(self):
        assert Player(name="A", vest=1).hits_on(Player(name="B", vest=2)) == 0

    def test_teammates(self, team_game):
        alpha, bravo, charlie, _ = team_game.players
        assert alpha.is_teammate(bravo)
        assert not alpha.is_teammate(charlie)
        assert not Player(name="Loner", vest=9).is_teammate(alpha)

    def test_team_hits_against(self, team_game):
        red, blue = team_game.teams
        assert red.hits_against(blue) == 16
        assert blue.hits_against(red) == 12
        assert red.hits_against(red) == 1


class TestNormalizeCounters:
    def test_team_totals_from_split(self, team_game):
        normalize_counters(team_game)
        alpha = team_game.vest_player(1)
        bravo = team_game.vest_player(2)

        assert alpha.hits == 11
        assert alpha.deaths == 4
        assert bravo.deaths == 9
        assert alpha.accuracy == pytest.approx(27.5)

    def test_team_totals_only(self, make_game, make_player):
        """Totals without a split count as enemy hits."""
        game = make_game()
        player = make_player(game, "Alpha", 1, Team(color=0), shots=20, hits=5, deaths=3)

        normalize_counters(game)

        assert player.hits_other == 5
        assert player.deaths_other == 3
        assert player.hits_own == 0

    def test_solo_zeroes_own_counters(self, make_game, make_player):
        game = make_game(game_type=GameModeType.SOLO)
        player = make_player(game, "Alpha", 1, hits=7, deaths=2, hits_own=3, deaths_own=1)

        normalize_counters(game)

        assert player.hits_other == 7
        assert player.deaths_other == 2
        assert player.hits_own == 0
        assert player.deaths_own == 0

    def test_zero_shots_accuracy(self, make_game, make_player):
        game = make_game(game_type=GameModeType.SOLO)
        player = make_player(game, "Alpha", 1)
        normalize_counters(game)
        assert player.accuracy == 0.0


class TestGameState:
    def test_real_game_length(self, make_game):
        assert make_game(minutes=12.5).real_game_length == pytest.approx(12.5)

    def test_unfinished_game_has_no_length(self, make_game):
        game = make_game()
        game.import_time = None
        assert not game.is_finished
        assert game.real_game_length == 0.0

    def test_type_from_game_without_mode(self, make_game):
        assert make_game().is_team
        assert make_game(game_type=GameModeType.SOLO).is_solo

    def test_mode_overrides_game_type(self, make_game, registry):
        game = make_game(game_type=GameModeType.TEAM)
        game.mode = registry.create(None, "Deathmatch")
        assert game.is_solo

    def test_players_sorted_keeps_import_order_on_ties(self, solo_game):
        for player in solo_game.players:
            player.score = 100
        assert [p.vest for p in solo_game.players_sorted] == [1, 2, 3]

    def test_remaining_lives(self, make_game, make_player):
        game = make_game(lives=10)
        player = make_player(game, "Alpha", 1, deaths=4)
        assert player.remaining_lives == 6

    def test_unlimited_lives_by_default(self, make_game, make_player):
        player = make_player(make_game(), "Alpha", 1, deaths=4)
        assert player.remaining_lives == UNLIMITED - 4

    def test_respawns(self, make_game, make_player):
        game = make_game(system=SystemType.EVO6, lives=10, respawn_lives=5)
        player = make_player(game, "Alpha", 1, deaths=21)
        assert player.respawns == 2
        player.deaths = 9
        assert player.respawns == 0


class TestBestPlayer:
    def test_best_score(self, solo_game):
        for player, score in zip(solo_game.players, (50, 400, 100), strict=True):
            player.score = score
        assert solo_game.get_best_player("score").vest == 2

    def test_fewest_shots(self, solo_game):
        assert solo_game.get_best_player("shots").vest == 1

    def test_own_hits_need_positive_value(self, team_game):
        assert team_game.get_best_player("hitsOwn").vest == 1
        for player in team_game.players:
            player.hits_own = 0
        assert team_game.get_best_player("hitsOwn") is None

    def test_mines_need_mines_on(self, solo_game):
        assert solo_game.get_best_player("mines") is None
        solo_game.vest_player(3).bonus = BonusCounts(shield=2)
        assert solo_game.is_mines_on
        assert solo_game.get_best_player("mines").vest == 3

    def test_evo6_bonuses_count_as_mines(self, make_game, make_player):
        game = make_game(system=SystemType.EVO6)
        make_player(game, "Alpha", 1)
        bravo = make_player(game, "Bravo", 2, evo6=Evo6Counters(bonuses=3))
        assert game.get_best_player("mines") is bravo


class TestSettings:
    def test_mode_settings_row(self):
        settings = ModeSettings(best_mines=False)
        row = settings.to_row()
        assert row["best_mines"] == 0
        assert ModeSettings.from_row(row) == settings

    def test_best_enabled(self):
        settings = ModeSettings(best_hits_own=False)
        assert not settings.best_enabled("hitsOwn")
        assert settings.best_enabled("hits")

    def test_timing_row(self):
        timing = Timing(before=30, game_length=900, after=10)
        assert Timing.from_row(timing.to_row()) == timing

    def test_mode_row_dict(self):
        row = GameModeRow(id=7, name="Survival", systems="evo5", type=GameModeType.SOLO)
        restored = GameModeRow.from_dict(row.to_dict())
        assert restored == row
        assert restored.type == GameModeType.SOLO

    def test_laserforce_counters_dict(self):
        counters = LaserForceCounters(level=3)
        counters.powers.nuke = 2
        counters.laser_ball.goals = 1

        restored = LaserForceCounters.from_dict(counters.to_dict())

        assert restored == counters

    def test_game_defaults(self):
        game = Game(code="X", system=SystemType.LASERFORCE)
        assert game.game_type == GameModeType.TEAM
        assert game.lives == UNLIMITED
        assert not game.is_started
