"""
Ordinary least squares regression primitives.

The baselines predict a statistic (hits, deaths, ...) from the number of
enemies, the number of teammates and the game length in minutes. Three
feature sets are tried for every baseline:

Team games:
    linear       [1, e, t, L]
    interaction  [1, e, t, L, e*t, e*L, t*L]
    quadratic    [1, e, t, L, e*t, e*L, t*L, e^2, t^2, L^2]

Solo games have no teammates:
    linear       [1, e, L]
    interaction  [1, e, L, e*L]
    quadratic    [1, e, L, e*L, e^2, L^2]

The model with the best R² wins; within tolerance the lower order wins.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from laserscore.core.constants import FeatureExpansion, GameModeType

logger = logging.getLogger(__name__)


# Feature sets in preference order for ties
EXPANSION_ORDER = (
    FeatureExpansion.LINEAR,
    FeatureExpansion.INTERACTION,
    FeatureExpansion.QUADRATIC,
)


def expand_features(
    enemies: Sequence[float] | np.ndarray,
    teammates: Sequence[float] | np.ndarray,
    length: Sequence[float] | np.ndarray,
    expansion: FeatureExpansion,
    game_type: GameModeType,
) -> np.ndarray:
    """
    Build the design matrix for one feature expansion.

    Args:
        enemies: Enemy player counts
        teammates: Teammate counts (ignored for solo games)
        length: Game lengths in minutes
        expansion: Which feature set to build
        game_type: TEAM uses teammates, SOLO does not

    Returns:
        Matrix of shape (rows, features) with the intercept column first
    """
    e = np.asarray(enemies, dtype=float)
    length = np.asarray(length, dtype=float)
    ones = np.ones_like(e)

    if game_type == GameModeType.TEAM:
        t = np.asarray(teammates, dtype=float)
        columns = [ones, e, t, length]
        if expansion in (FeatureExpansion.INTERACTION, FeatureExpansion.QUADRATIC):
            columns += [e * t, e * length, t * length]
        if expansion == FeatureExpansion.QUADRATIC:
            columns += [e**2, t**2, length**2]
    else:
        columns = [ones, e, length]
        if expansion in (FeatureExpansion.INTERACTION, FeatureExpansion.QUADRATIC):
            columns.append(e * length)
        if expansion == FeatureExpansion.QUADRATIC:
            columns += [e**2, length**2]

    return np.column_stack(columns)


def fit_ols(features: np.ndarray, values: np.ndarray) -> np.ndarray:
    """Least squares coefficients. Rank deficient inputs get the minimum-norm solution."""
    coefficients, *_ = np.linalg.lstsq(features, np.asarray(values, dtype=float), rcond=None)
    return coefficients


def r_squared(predictions: np.ndarray, actual: np.ndarray) -> float:
    """
    Coefficient of determination.

    Constant targets have no variance to explain: a perfect fit scores 1,
    anything else 0.
    """
    actual = np.asarray(actual, dtype=float)
    predictions = np.asarray(predictions, dtype=float)
    ss_res = float(np.sum((actual - predictions) ** 2))
    ss_tot = float(np.sum((actual - actual.mean()) ** 2))
    if ss_tot == 0:
        return 1.0 if np.isclose(ss_res, 0.0) else 0.0
    return 1.0 - ss_res / ss_tot


@dataclass
class CoefficientModel:
    """A fitted baseline: feature expansion plus its coefficients."""

    game_type: GameModeType
    expansion: FeatureExpansion
    coefficients: list[float]
    r_squared: float = 0.0
    rows: int = 0
    candidates: dict[str, float] = field(default_factory=dict)

    def predict(self, enemies: float, teammates: float, length: float) -> float:
        """Expected value of the statistic for one player."""
        features = expand_features(
            [enemies], [teammates], [length], self.expansion, self.game_type
        )
        return float(features[0] @ np.asarray(self.coefficients, dtype=float))

    def predict_many(self, enemies, teammates, length) -> np.ndarray:
        features = expand_features(enemies, teammates, length, self.expansion, self.game_type)
        return features @ np.asarray(self.coefficients, dtype=float)

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_type": self.game_type.value,
            "expansion": self.expansion.value,
            "coefficients": [float(c) for c in self.coefficients],
            "r_squared": self.r_squared,
            "rows": self.rows,
            "candidates": dict(self.candidates),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CoefficientModel":
        return cls(
            game_type=GameModeType(data["game_type"]),
            expansion=FeatureExpansion(data["expansion"]),
            coefficients=[float(c) for c in data["coefficients"]],
            r_squared=float(data.get("r_squared", 0.0)),
            rows=int(data.get("rows", 0)),
            candidates=dict(data.get("candidates", {})),
        )


def fit_best_model(
    enemies: Sequence[float] | np.ndarray,
    teammates: Sequence[float] | np.ndarray,
    length: Sequence[float] | np.ndarray,
    values: Sequence[float] | np.ndarray,
    game_type: GameModeType,
    r2_tolerance: float = 1e-9,
) -> CoefficientModel:
    """
    Fit every feature expansion and keep the one with the highest R².

    A higher-order model replaces the current best only when its R² is
    larger by more than ``r2_tolerance``.
    """
    values = np.asarray(values, dtype=float)
    best: CoefficientModel | None = None
    candidates: dict[str, float] = {}

    for expansion in EXPANSION_ORDER:
        features = expand_features(enemies, teammates, length, expansion, game_type)
        coefficients = fit_ols(features, values)
        score = r_squared(features @ coefficients, values)
        candidates[expansion.value] = score
        logger.debug(f"{game_type.value} {expansion.value} model: R²={score:.4f}")

        if best is None or score > best.r_squared + r2_tolerance:
            best = CoefficientModel(
                game_type=game_type,
                expansion=expansion,
                coefficients=coefficients.tolist(),
                r_squared=score,
                rows=len(values),
            )

    best.candidates = candidates
    return best
