"""
Baseline store.

Caches fitted regression baselines in process memory and in an optional
persistent key-value store, computing them on demand. ``recompute_all``
refreshes every baseline for a set of arenas and modes in parallel.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Protocol

from laserscore.core.config import BaselineConfig, RegressionConfig
from laserscore.core.constants import GameModeType, Statistic
from laserscore.core.errors import InsufficientDataError, LaserScoreError, PersistenceError
from laserscore.core.utils import PerformanceMonitor
from laserscore.stats.engine import ModeLike, RegressionStatEngine
from laserscore.stats.regression import CoefficientModel

logger = logging.getLogger(__name__)

SOLO_STATISTICS = (Statistic.HITS, Statistic.DEATHS)
TEAM_STATISTICS = (Statistic.HITS, Statistic.DEATHS, Statistic.HITS_OWN, Statistic.DEATHS_OWN)


@dataclass(frozen=True)
class BaselineKey:
    """Identity of one baseline."""

    statistic: Statistic
    game_type: GameModeType
    mode_id: int | None = None
    team_count: int = 2
    arena_id: int | None = None

    @classmethod
    def for_mode(
        cls,
        statistic: Statistic,
        game_type: GameModeType,
        mode: ModeLike | None = None,
        team_count: int = 2,
        arena_id: int | None = None,
    ) -> BaselineKey:
        """Rankable modes share the global baseline, others get their own."""
        mode_id = mode.id if mode is not None and not mode.rankable else None
        if game_type == GameModeType.SOLO:
            team_count = 2
        return cls(statistic, game_type, mode_id, team_count, arena_id)

    @property
    def cache_key(self) -> str:
        key = f"{self.arena_id if self.arena_id is not None else ''}"
        key += f"{self.statistic.value}Model{self.game_type.value}"
        if self.mode_id is not None:
            key += str(self.mode_id)
        if self.team_count > 2:
            key += f"-{self.team_count}"
        return key

    def __str__(self) -> str:
        return self.cache_key


class BaselinePersistence(Protocol):
    """Key-value store for serialized baselines."""

    def get(self, key: str) -> dict[str, Any] | None: ...

    def set(self, key: str, value: dict[str, Any], baseline: BaselineKey | None = None) -> None: ...


class InMemoryBaselinePersistence:
    """Dict-backed BaselinePersistence."""

    def __init__(self):
        self.values: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> dict[str, Any] | None:
        return self.values.get(key)

    def set(self, key: str, value: dict[str, Any], baseline: BaselineKey | None = None) -> None:
        with self._lock:
            self.values[key] = value


class ModelCache:
    """Process-wide baseline memo. Writes are serialized by a lock."""

    def __init__(self):
        self._models: dict[str, CoefficientModel] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CoefficientModel | None:
        return self._models.get(key)

    def set(self, key: str, model: CoefficientModel) -> None:
        with self._lock:
            self._models[key] = model

    def clear(self) -> None:
        with self._lock:
            self._models.clear()

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, key: str) -> bool:
        return key in self._models


@dataclass
class RecomputeSummary:
    """Outcome of a batch recompute."""

    computed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def total(self) -> int:
        return len(self.computed) + len(self.skipped) + len(self.failed)

    def to_dict(self) -> dict:
        return {
            "computed": sorted(self.computed),
            "skipped": sorted(self.skipped),
            "failed": dict(self.failed),
            "total": self.total,
            "duration_seconds": round(self.duration_seconds, 2),
        }


class StatBaselineStore:
    """
    Cached access to regression baselines.

    Lookup order is the in-process memo, then the persistent store, then a
    fresh fit. A fresh fit is written back to both; a failing persistent
    store is logged and never stops the fitted model from being returned.
    """

    def __init__(
        self,
        engine: RegressionStatEngine,
        persistence: BaselinePersistence | None = None,
        cache: ModelCache | None = None,
        config: BaselineConfig | None = None,
        regression_config: RegressionConfig | None = None,
    ):
        self.engine = engine
        self.persistence = persistence
        self.cache = cache if cache is not None else ModelCache()
        self.config = config or BaselineConfig()
        self.regression_config = regression_config or engine.config
        self._key_locks: dict[str, threading.Lock] = {}
        self._key_locks_lock = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._key_locks_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def get(
        self,
        statistic: Statistic,
        game_type: GameModeType,
        mode: ModeLike | None = None,
        team_count: int = 2,
        arena: int | None = None,
    ) -> CoefficientModel:
        """
        Baseline for a statistic, computed and stored on first use.

        Raises:
            InsufficientDataError: No stored model and too little history to fit one
        """
        key = BaselineKey.for_mode(statistic, game_type, mode, team_count, arena)
        model = self.cache.get(key.cache_key)
        if model is not None:
            return model

        with self._lock_for(key.cache_key):
            model = self.cache.get(key.cache_key)
            if model is not None:
                return model

            model = self._load(key)
            if model is None:
                logger.debug(f"Baseline {key} not stored, fitting")
                model = self.engine.compute_model(statistic, game_type, mode, team_count, arena)
                self._store(key, model)
            self.cache.set(key.cache_key, model)
            return model

    def recompute(self, key: BaselineKey, mode: ModeLike | None = None) -> CoefficientModel:
        """Fit a baseline again and overwrite the stored value."""
        with self._lock_for(key.cache_key):
            model = self.engine.compute_model(
                key.statistic, key.game_type, mode, key.team_count, key.arena_id
            )
            self._store(key, model)
            self.cache.set(key.cache_key, model)
            return model

    def baseline_keys(
        self, arenas: Iterable[int | None], modes: Iterable[Any] = ()
    ) -> list[tuple[BaselineKey, Any]]:
        """
        Every (key, mode) pair a batch recompute covers.

        Global baselines per arena for solo hits/deaths and team
        hits/deaths/hitsOwn/deathsOwn over all team counts, plus the same
        per non-rankable mode (solo modes solo only).
        """
        team_counts = range(
            self.regression_config.min_team_count, self.regression_config.max_team_count + 1
        )
        arena_list = list(arenas)
        if self.config.include_global and None not in arena_list:
            arena_list.append(None)
        mode_list = [m for m in modes if not m.rankable]

        tasks: list[tuple[BaselineKey, Any]] = []
        seen: set[str] = set()

        def add(key: BaselineKey, mode) -> None:
            if key.cache_key not in seen:
                seen.add(key.cache_key)
                tasks.append((key, mode))

        for arena in arena_list:
            for statistic in SOLO_STATISTICS:
                add(BaselineKey.for_mode(statistic, GameModeType.SOLO, None, 2, arena), None)
            for team_count in team_counts:
                for statistic in TEAM_STATISTICS:
                    add(
                        BaselineKey.for_mode(statistic, GameModeType.TEAM, None, team_count, arena),
                        None,
                    )
            for mode in mode_list:
                if mode.type == GameModeType.TEAM:
                    for team_count in team_counts:
                        for statistic in TEAM_STATISTICS:
                            add(
                                BaselineKey.for_mode(
                                    statistic, GameModeType.TEAM, mode, team_count, arena
                                ),
                                mode,
                            )
                else:
                    for statistic in SOLO_STATISTICS:
                        key = BaselineKey.for_mode(statistic, GameModeType.SOLO, mode, 2, arena)
                        add(key, mode)
        return tasks

    def recompute_all(
        self, arenas: Iterable[int | None] = (), modes: Iterable[Any] = ()
    ) -> RecomputeSummary:
        """
        Refresh every baseline in parallel.

        Combinations without enough history are skipped, other errors are
        recorded per key; neither stops the batch.
        """
        tasks = self.baseline_keys(arenas, modes)
        summary = RecomputeSummary()

        logger.info(f"Recomputing {len(tasks)} baselines with {self.config.workers} workers")

        with PerformanceMonitor("Baseline recompute") as monitor:
            with ThreadPoolExecutor(max_workers=max(1, self.config.workers)) as executor:
                future_to_key = {
                    executor.submit(self.recompute, key, mode): key for key, mode in tasks
                }
                for future in as_completed(future_to_key):
                    key = future_to_key[future]
                    try:
                        future.result()
                        summary.computed.append(key.cache_key)
                    except InsufficientDataError as e:
                        logger.debug(f"Skipping baseline {key}: {e}")
                        summary.skipped.append(key.cache_key)
                    except Exception as e:
                        logger.error(f"Baseline {key} failed: {e}")
                        summary.failed[key.cache_key] = str(e)

        summary.duration_seconds = monitor.elapsed
        logger.info(
            f"Baseline recompute complete: {len(summary.computed)} computed, "
            f"{len(summary.skipped)} skipped, {len(summary.failed)} failed "
            f"in {summary.duration_seconds:.1f}s"
        )
        return summary

    def _load(self, key: BaselineKey) -> CoefficientModel | None:
        if self.persistence is None:
            return None
        try:
            data = self.persistence.get(key.cache_key)
        except PersistenceError as e:
            logger.warning(f"Failed to load baseline {key}: {e}")
            return None
        if not data:
            return None
        try:
            return CoefficientModel.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Stored baseline {key} is invalid, refitting: {e}")
            return None

    def _store(self, key: BaselineKey, model: CoefficientModel) -> None:
        if self.persistence is None:
            return
        try:
            self.persistence.set(key.cache_key, model.to_dict(), key)
        except LaserScoreError as e:
            logger.warning(f"Failed to save baseline {key}: {e}")
