"""Tests for the regression engine and the baseline store."""

import pandas as pd
import pytest

from laserscore.core.config import BaselineConfig, RegressionConfig
from laserscore.core.constants import FeatureExpansion, GameModeType, Statistic
from laserscore.core.errors import InsufficientDataError, PersistenceError, ValidationError
from laserscore.models.settings import GameModeRow
from laserscore.stats.baselines import (
    BaselineKey,
    InMemoryBaselinePersistence,
    ModelCache,
    StatBaselineStore,
)
from laserscore.stats.engine import (
    REGRESSION_COLUMNS,
    STAT_ROW_COLUMNS,
    DataFrameStatSource,
    RegressionStatEngine,
    aggregate_rows,
    filter_rows,
    game_stat_rows,
)


def history_rows(
    games: int = 12,
    game_type: str = "TEAM",
    teams: int = 2,
    mode_id: int | None = None,
    rankable: bool = True,
    arena_id: int | None = None,
    prefix: str = "g",
) -> list[dict]:
    """Two players per game, hits linear in enemies, teammates and length."""
    rows = []
    for i in range(games):
        enemies = 2 + i % 5
        teammates = 1 + i % 3 if game_type == "TEAM" else 0
        length = 10.0 + i
        base = 3 * enemies + 2 * teammates + length
        for j in range(2):
            hits = base + 2 * j
            rows.append(
                {
                    "game_code": f"{prefix}{i}",
                    "game_type": game_type,
                    "teams": teams,
                    "mode_id": mode_id,
                    "rankable": rankable,
                    "arena_id": arena_id,
                    "enemies": enemies,
                    "teammates": teammates,
                    "game_length": length,
                    "hits": hits,
                    "deaths": 40 - i + j,
                    "hits_other": hits,
                    "deaths_other": 40 - i + j,
                    "hits_own": i % 2,
                    "deaths_own": (i + j) % 3,
                }
            )
    return rows


def history_frame(*groups: list[dict]) -> pd.DataFrame:
    return pd.DataFrame([row for group in groups for row in group], columns=STAT_ROW_COLUMNS)


class CountingSource(DataFrameStatSource):
    def __init__(self, frame):
        super().__init__(frame)
        self.calls = 0

    def fetch(self, *args, **kwargs):
        self.calls += 1
        return super().fetch(*args, **kwargs)


class FailingSource:
    def __init__(self, error: Exception):
        self.error = error

    def fetch(self, *args, **kwargs):
        raise self.error


class BrokenPersistence:
    """Store that is down."""

    def get(self, key):
        raise PersistenceError("store unavailable", key=key)

    def set(self, key, value, baseline=None):
        raise PersistenceError("store unavailable", key=key)


@pytest.fixture
def team_history():
    return history_frame(history_rows())


@pytest.fixture
def store(team_history):
    engine = RegressionStatEngine(CountingSource(team_history))
    return StatBaselineStore(engine, InMemoryBaselinePersistence())


class TestAggregation:
    def test_median_per_game(self, team_history):
        data = aggregate_rows(team_history, Statistic.HITS, GameModeType.TEAM)

        assert list(data.columns) == REGRESSION_COLUMNS
        assert len(data) == 12
        first = data.iloc[0]
        assert first["value"] == 3 * 2 + 2 * 1 + 10.0 + 1

    def test_own_statistic_in_solo_rejected(self, team_history):
        with pytest.raises(ValidationError):
            aggregate_rows(team_history, Statistic.HITS_OWN, GameModeType.SOLO)

    def test_empty_frame(self):
        data = aggregate_rows(history_frame(), Statistic.HITS, GameModeType.TEAM)
        assert data.empty
        assert list(data.columns) == REGRESSION_COLUMNS

    def test_filter_rankable_only_by_default(self):
        frame = history_frame(
            history_rows(games=3), history_rows(games=2, rankable=False, mode_id=8, prefix="m")
        )
        assert len(filter_rows(frame, GameModeType.TEAM)) == 6
        assert len(filter_rows(frame, GameModeType.TEAM, mode_id=8)) == 4

    def test_filter_team_count_and_arena(self):
        frame = history_frame(
            history_rows(games=3, teams=2, arena_id=1),
            history_rows(games=2, teams=3, arena_id=2, prefix="t"),
        )
        assert len(filter_rows(frame, GameModeType.TEAM, team_count=3)) == 4
        assert len(filter_rows(frame, GameModeType.TEAM, arena_id=1)) == 6

    def test_filter_solo_ignores_team_count(self):
        frame = history_frame(history_rows(games=3, game_type="SOLO", teams=0))
        assert len(filter_rows(frame, GameModeType.SOLO, team_count=4)) == 6

    def test_game_stat_rows(self, team_game):
        rows = game_stat_rows(team_game, mode_id=3)
        assert len(rows) == 4
        assert rows[0]["enemies"] == 2
        assert rows[0]["teammates"] == 1
        assert rows[0]["game_length"] == pytest.approx(15.0)
        assert rows[0]["mode_id"] == 3

    def test_solo_game_stat_rows(self, solo_game):
        rows = game_stat_rows(solo_game)
        assert {(r["enemies"], r["teammates"]) for r in rows} == {(2, 0)}
        assert rows[0]["game_type"] == "SOLO"


class TestRegressionStatEngine:
    def test_fits_linear_model(self, team_history):
        engine = RegressionStatEngine(DataFrameStatSource(team_history))
        model = engine.compute_model(Statistic.HITS, GameModeType.TEAM)

        assert model.expansion == FeatureExpansion.LINEAR
        assert model.predict(3, 2, 20) == pytest.approx(3 * 3 + 2 * 2 + 20 + 1)

    def test_ten_rows_are_enough(self):
        engine = RegressionStatEngine(DataFrameStatSource(history_frame(history_rows(games=10))))
        model = engine.compute_model(Statistic.HITS, GameModeType.TEAM)
        assert model.rows == 10

    def test_nine_rows_are_not(self):
        engine = RegressionStatEngine(DataFrameStatSource(history_frame(history_rows(games=9))))
        with pytest.raises(InsufficientDataError) as exc_info:
            engine.compute_model(Statistic.HITS, GameModeType.TEAM)
        assert exc_info.value.rows == 9

    def test_min_rows_configurable(self):
        engine = RegressionStatEngine(
            DataFrameStatSource(history_frame(history_rows(games=9))), RegressionConfig(min_rows=5)
        )
        assert engine.compute_model(Statistic.HITS, GameModeType.TEAM).rows == 9

    def test_team_count_selects_history(self, team_history):
        engine = RegressionStatEngine(DataFrameStatSource(team_history))
        with pytest.raises(InsufficientDataError):
            engine.compute_model(Statistic.HITS, GameModeType.TEAM, team_count=3)

    def test_non_rankable_mode_uses_own_history(self):
        frame = history_frame(
            history_rows(), history_rows(games=3, rankable=False, mode_id=8, prefix="m")
        )
        engine = RegressionStatEngine(DataFrameStatSource(frame))
        special = GameModeRow(id=8, name="Night Hunt", rankable=False)
        regular = GameModeRow(id=2, name="Team deathmatch")

        assert engine.compute_model(Statistic.HITS, GameModeType.TEAM, regular).rows == 12
        with pytest.raises(InsufficientDataError):
            engine.compute_model(Statistic.HITS, GameModeType.TEAM, special)

    def test_own_statistic_in_solo_rejected(self, team_history):
        engine = RegressionStatEngine(DataFrameStatSource(team_history))
        with pytest.raises(ValidationError):
            engine.compute_model(Statistic.DEATHS_OWN, GameModeType.SOLO)

    def test_unavailable_history_propagates(self):
        """An outage is not reported as missing history."""
        engine = RegressionStatEngine(FailingSource(PersistenceError("db down")))
        with pytest.raises(PersistenceError):
            engine.compute_model(Statistic.HITS, GameModeType.TEAM)


class TestBaselineKey:
    def test_global_cache_key(self):
        assert BaselineKey(Statistic.HITS, GameModeType.TEAM).cache_key == "hitsModelTEAM"

    def test_full_cache_key(self):
        key = BaselineKey(Statistic.HITS_OWN, GameModeType.TEAM, 8, 4, 3)
        assert key.cache_key == "3hitsOwnModelTEAM8-4"

    def test_rankable_mode_shares_global_key(self):
        mode = GameModeRow(id=2, name="Team deathmatch")
        key = BaselineKey.for_mode(Statistic.DEATHS, GameModeType.TEAM, mode)
        assert key.mode_id is None

    def test_solo_ignores_team_count(self):
        key = BaselineKey.for_mode(Statistic.HITS, GameModeType.SOLO, None, 5)
        assert key.team_count == 2
        assert key.cache_key == "hitsModelSOLO"


class TestStatBaselineStore:
    def test_memoized(self, store):
        first = store.get(Statistic.HITS, GameModeType.TEAM)
        second = store.get(Statistic.HITS, GameModeType.TEAM)

        assert first is second
        assert store.engine.source.calls == 1

    def test_written_to_persistence(self, store):
        store.get(Statistic.HITS, GameModeType.TEAM)
        stored = store.persistence.values["hitsModelTEAM"]
        assert stored["expansion"] == "linear"

    def test_loaded_from_persistence(self):
        persistence = InMemoryBaselinePersistence()
        persistence.set(
            "deathsModelSOLO",
            {"game_type": "SOLO", "expansion": "linear", "coefficients": [1.0, 2.0, 0.0]},
        )
        source = CountingSource(history_frame())
        store = StatBaselineStore(RegressionStatEngine(source), persistence)

        model = store.get(Statistic.DEATHS, GameModeType.SOLO)

        assert model.predict(4, 0, 15) == pytest.approx(9.0)
        assert source.calls == 0

    def test_invalid_stored_value_is_refitted(self, team_history):
        persistence = InMemoryBaselinePersistence()
        persistence.set("hitsModelTEAM", {"expansion": "cubic"})
        engine = RegressionStatEngine(DataFrameStatSource(team_history))
        store = StatBaselineStore(engine, persistence)

        model = store.get(Statistic.HITS, GameModeType.TEAM)

        assert model.expansion == FeatureExpansion.LINEAR
        assert persistence.values["hitsModelTEAM"]["expansion"] == "linear"

    def test_broken_persistence_still_returns_model(self, team_history):
        store = StatBaselineStore(
            RegressionStatEngine(DataFrameStatSource(team_history)), BrokenPersistence()
        )
        model = store.get(Statistic.HITS, GameModeType.TEAM)
        assert model.rows == 12

    def test_shared_cache(self, team_history):
        cache = ModelCache()
        engine = RegressionStatEngine(DataFrameStatSource(team_history))
        StatBaselineStore(engine, cache=cache).get(Statistic.HITS, GameModeType.TEAM)

        unused = RegressionStatEngine(FailingSource(RuntimeError("unused")))
        other = StatBaselineStore(unused, cache=cache)

        assert "hitsModelTEAM" in cache
        assert other.get(Statistic.HITS, GameModeType.TEAM).rows == 12

    def test_insufficient_data_propagates(self):
        store = StatBaselineStore(RegressionStatEngine(DataFrameStatSource()))
        with pytest.raises(InsufficientDataError):
            store.get(Statistic.HITS, GameModeType.SOLO)

    def test_recompute_overwrites(self, store):
        first = store.get(Statistic.HITS, GameModeType.TEAM)
        second = store.recompute(BaselineKey(Statistic.HITS, GameModeType.TEAM))

        assert second is not first
        assert store.get(Statistic.HITS, GameModeType.TEAM) is second


class TestRecomputeAll:
    def test_baseline_keys(self, store):
        solo_mode = GameModeRow(id=8, name="Night Hunt", type=GameModeType.SOLO, rankable=False)
        rankable = GameModeRow(id=2, name="Team deathmatch")

        keys = [key.cache_key for key, _ in store.baseline_keys([], [solo_mode, rankable])]

        # 2 solo + 5 team counts x 4 team statistics, plus 2 for the solo mode
        assert len(keys) == 24
        assert len(set(keys)) == len(keys)
        assert "hitsModelSOLO8" in keys
        assert "deathsOwnModelTEAM-6" in keys

    def test_arenas_add_keys(self, store):
        keys = [key.cache_key for key, _ in store.baseline_keys([1, 1])]
        assert len(keys) == 44
        assert "1hitsModelSOLO" in keys

    def test_global_can_be_excluded(self, team_history):
        store = StatBaselineStore(
            RegressionStatEngine(DataFrameStatSource(team_history)),
            config=BaselineConfig(include_global=False),
        )
        assert store.baseline_keys([]) == []

    def test_summary(self, store):
        summary = store.recompute_all()

        assert sorted(summary.computed) == [
            "deathsModelTEAM",
            "deathsOwnModelTEAM",
            "hitsModelTEAM",
            "hitsOwnModelTEAM",
        ]
        assert len(summary.skipped) == 18
        assert summary.failed == {}
        assert summary.total == 22
        assert summary.duration_seconds > 0
        assert "hitsModelTEAM" in store.cache

    def test_failures_are_recorded(self):
        store = StatBaselineStore(
            RegressionStatEngine(FailingSource(RuntimeError("boom"))),
            config=BaselineConfig(workers=2),
        )
        summary = store.recompute_all()

        assert summary.computed == []
        assert len(summary.failed) == 22
        assert summary.failed["hitsModelSOLO"] == "boom"
        assert summary.to_dict()["total"] == 22

    def test_unavailable_history_is_a_failure(self):
        store = StatBaselineStore(
            RegressionStatEngine(FailingSource(PersistenceError("db down"))),
            config=BaselineConfig(workers=2),
        )
        summary = store.recompute_all()

        assert summary.skipped == []
        assert len(summary.failed) == 22
        assert summary.failed["hitsModelTEAM"] == "db down"
