"""Tests for OLS fitting and model selection."""

import numpy as np
import pytest

from laserscore.core.constants import FeatureExpansion, GameModeType
from laserscore.stats.regression import (
    CoefficientModel,
    expand_features,
    fit_best_model,
    r_squared,
)

ENEMIES = np.array([2, 3, 4, 5, 6, 3, 4, 5, 2, 6, 4, 3], dtype=float)
TEAMMATES = np.array([1, 2, 3, 4, 5, 1, 1, 2, 3, 2, 4, 5], dtype=float)
LENGTH = np.array([10, 12, 15, 15, 20, 8, 10, 15, 12, 18, 14, 16], dtype=float)


class TestExpandFeatures:
    @pytest.mark.parametrize(
        "expansion, game_type, width",
        [
            (FeatureExpansion.LINEAR, GameModeType.TEAM, 4),
            (FeatureExpansion.INTERACTION, GameModeType.TEAM, 7),
            (FeatureExpansion.QUADRATIC, GameModeType.TEAM, 10),
            (FeatureExpansion.LINEAR, GameModeType.SOLO, 3),
            (FeatureExpansion.INTERACTION, GameModeType.SOLO, 4),
            (FeatureExpansion.QUADRATIC, GameModeType.SOLO, 6),
        ],
    )
    def test_widths(self, expansion, game_type, width):
        features = expand_features(ENEMIES, TEAMMATES, LENGTH, expansion, game_type)
        assert features.shape == (len(ENEMIES), width)

    def test_team_column_order(self):
        features = expand_features([2], [3], [10], FeatureExpansion.QUADRATIC, GameModeType.TEAM)
        assert features[0].tolist() == [1, 2, 3, 10, 6, 20, 30, 4, 9, 100]

    def test_solo_ignores_teammates(self):
        features = expand_features([2], [7], [10], FeatureExpansion.QUADRATIC, GameModeType.SOLO)
        assert features[0].tolist() == [1, 2, 10, 20, 4, 100]


class TestRSquared:
    def test_perfect_fit(self):
        actual = np.array([1.0, 2.0, 3.0])
        assert r_squared(actual, actual) == pytest.approx(1.0)

    def test_mean_prediction(self):
        actual = np.array([1.0, 2.0, 3.0])
        assert r_squared(np.full(3, 2.0), actual) == pytest.approx(0.0)

    def test_constant_target_perfect(self):
        actual = np.full(4, 5.0)
        assert r_squared(actual.copy(), actual) == 1.0

    def test_constant_target_imperfect(self):
        actual = np.full(4, 5.0)
        assert r_squared(actual + 1, actual) == 0.0


class TestModelSelection:
    def test_linear_data_prefers_linear(self):
        """Every expansion fits exactly, the lowest order wins the tie."""
        values = 2 + 3 * ENEMIES + 1.5 * TEAMMATES + 0.5 * LENGTH
        model = fit_best_model(ENEMIES, TEAMMATES, LENGTH, values, GameModeType.TEAM)

        assert model.expansion == FeatureExpansion.LINEAR
        assert model.coefficients == pytest.approx([2, 3, 1.5, 0.5])
        assert model.r_squared == pytest.approx(1.0)
        assert model.rows == len(values)
        assert set(model.candidates) == {"linear", "interaction", "quadratic"}

    def test_interaction_data(self):
        values = 5 + ENEMIES * LENGTH
        model = fit_best_model(ENEMIES, TEAMMATES, LENGTH, values, GameModeType.SOLO)

        assert model.expansion == FeatureExpansion.INTERACTION
        assert model.candidates["linear"] < model.candidates["interaction"]

    def test_quadratic_data(self):
        values = 1 + ENEMIES + TEAMMATES**2
        model = fit_best_model(ENEMIES, TEAMMATES, LENGTH, values, GameModeType.TEAM)

        assert model.expansion == FeatureExpansion.QUADRATIC
        assert model.r_squared == pytest.approx(1.0)

    def test_large_tolerance_keeps_lower_order(self):
        values = 5 + ENEMIES * LENGTH
        model = fit_best_model(
            ENEMIES, TEAMMATES, LENGTH, values, GameModeType.SOLO, r2_tolerance=1.0
        )
        assert model.expansion == FeatureExpansion.LINEAR


class TestCoefficientModel:
    def test_predict_team(self):
        model = CoefficientModel(GameModeType.TEAM, FeatureExpansion.LINEAR, [1, 2, 3, 4])
        assert model.predict(1, 1, 1) == pytest.approx(10)

    def test_predict_solo(self):
        model = CoefficientModel(GameModeType.SOLO, FeatureExpansion.LINEAR, [1, 2, 3])
        assert model.predict(2, 99, 1) == pytest.approx(8)

    def test_predict_many_matches_predict(self):
        values = 2 + 3 * ENEMIES + 1.5 * TEAMMATES + 0.5 * LENGTH
        model = fit_best_model(ENEMIES, TEAMMATES, LENGTH, values, GameModeType.TEAM)
        batch = model.predict_many(ENEMIES, TEAMMATES, LENGTH)
        assert batch[3] == pytest.approx(model.predict(ENEMIES[3], TEAMMATES[3], LENGTH[3]))
        assert batch == pytest.approx(values)

    def test_dict_keeps_expansion(self):
        model = CoefficientModel(
            GameModeType.SOLO, FeatureExpansion.QUADRATIC, [1, 2, 3, 4, 5, 6], 0.8, 40
        )
        restored = CoefficientModel.from_dict(model.to_dict())
        assert restored.expansion == FeatureExpansion.QUADRATIC
        assert restored.game_type == GameModeType.SOLO
        assert restored.coefficients == model.coefficients
        assert restored.rows == 40
