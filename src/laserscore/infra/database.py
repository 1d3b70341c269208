"""
LaserScore baseline and history database.

Stores fitted regression baselines and the raw per-player rows they are
fitted on. Uses SQLite with the SQLAlchemy ORM. DatabaseManager implements
both BaselinePersistence (get/set) and HistoricalStatSource (fetch).
"""

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    create_engine,
    func,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from laserscore.core.constants import GameModeType, Statistic
from laserscore.core.errors import PersistenceError
from laserscore.stats.baselines import BaselineKey
from laserscore.stats.engine import STAT_ROW_COLUMNS, aggregate_rows


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".laserscore" / "laserscore.db"
Base = declarative_base()


# =============================================================================
# Database Models
# =============================================================================


class RegressionBaseline(Base):
    """A fitted baseline, keyed by its cache key."""

    __tablename__ = "regression_baselines"

    key = Column(String(100), primary_key=True)
    statistic = Column(String(20), index=True)
    game_type = Column(String(10))
    team_count = Column(Integer, default=2)
    mode_id = Column(Integer, nullable=True)
    arena_id = Column(Integer, nullable=True)

    expansion = Column(String(20))
    coefficients_json = Column(Text, nullable=False)
    r_squared = Column(Float, default=0.0)
    row_count = Column(Integer, default=0)
    updated_at = Column(DateTime, default=_utc_now, onupdate=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "statistic": self.statistic,
            "game_type": self.game_type,
            "team_count": self.team_count,
            "mode_id": self.mode_id,
            "arena_id": self.arena_id,
            "expansion": self.expansion,
            "r_squared": self.r_squared,
            "row_count": self.row_count,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class PlayerGameStat(Base):
    """One player's counters in one game, used as regression history."""

    __tablename__ = "player_game_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_code = Column(String(50), nullable=False, index=True)
    game_type = Column(String(10), nullable=False)
    teams = Column(Integer, default=0)
    mode_id = Column(Integer, nullable=True)
    rankable = Column(Boolean, default=True)
    arena_id = Column(Integer, nullable=True)

    enemies = Column(Integer, default=0)
    teammates = Column(Integer, default=0)
    game_length = Column(Float, default=0.0)

    hits = Column(Integer, default=0)
    deaths = Column(Integer, default=0)
    hits_other = Column(Integer, default=0)
    deaths_other = Column(Integer, default=0)
    hits_own = Column(Integer, default=0)
    deaths_own = Column(Integer, default=0)

    created_at = Column(DateTime, default=_utc_now)

    __table_args__ = (Index("idx_stat_type_teams", "game_type", "teams"),)


# =============================================================================
# Database Manager
# =============================================================================


class DatabaseManager:
    """Manages database connections and operations."""

    def __init__(self, db_path: Path | str | None = None, echo: bool = False):
        """Initialize database connection."""
        if db_path is None:
            db_path = os.environ.get("LASERSCORE_DB_PATH", DEFAULT_DB_PATH)

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=echo,
            connect_args={"check_same_thread": False},
        )
        self.SessionLocal = sessionmaker(bind=self.engine)
        Base.metadata.create_all(self.engine)

        logger.info(f"Database initialized at: {self.db_path}")

    def get_session(self) -> Session:
        """Get a database session."""
        return self.SessionLocal()

    # =========================================================================
    # Baselines
    # =========================================================================

    def get(self, key: str) -> dict[str, Any] | None:
        """Stored baseline data for a cache key."""
        session = self.get_session()
        try:
            row = session.get(RegressionBaseline, key)
            if row is None:
                return None
            return {
                "game_type": row.game_type,
                "expansion": row.expansion,
                "coefficients": json.loads(row.coefficients_json),
                "r_squared": row.r_squared,
                "rows": row.row_count,
            }
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load baseline", key=key, error=str(e)) from e
        finally:
            session.close()

    def set(self, key: str, value: dict[str, Any], baseline: BaselineKey | None = None) -> None:
        """Insert or replace a baseline."""
        session = self.get_session()
        try:
            row = session.get(RegressionBaseline, key)
            if row is None:
                row = RegressionBaseline(key=key)
                session.add(row)
            if baseline is not None:
                row.statistic = baseline.statistic.value
                row.game_type = baseline.game_type.value
                row.team_count = baseline.team_count
                row.mode_id = baseline.mode_id
                row.arena_id = baseline.arena_id
            else:
                row.game_type = value.get("game_type")
            row.expansion = value.get("expansion")
            row.coefficients_json = json.dumps(value.get("coefficients", []))
            row.r_squared = value.get("r_squared", 0.0)
            row.row_count = value.get("rows", 0)
            row.updated_at = _utc_now()
            session.commit()
            logger.debug(f"Saved baseline {key}")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save baseline {key}: {e}")
            raise PersistenceError("Failed to save baseline", key=key, error=str(e)) from e
        finally:
            session.close()

    def list_baselines(self) -> list[dict[str, Any]]:
        session = self.get_session()
        try:
            rows = session.query(RegressionBaseline).order_by(RegressionBaseline.key).all()
            return [row.to_dict() for row in rows]
        finally:
            session.close()

    # =========================================================================
    # History
    # =========================================================================

    def add_stat_rows(self, rows: list[dict[str, Any]]) -> int:
        """Append raw per-player history rows. Returns the number added."""
        session = self.get_session()
        try:
            for row in rows:
                session.add(PlayerGameStat(**{k: row.get(k) for k in STAT_ROW_COLUMNS}))
            session.commit()
            logger.info(f"Saved {len(rows)} history rows")
            return len(rows)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save history rows: {e}")
            raise PersistenceError("Failed to save history rows", error=str(e)) from e
        finally:
            session.close()

    def stat_row_count(self) -> int:
        session = self.get_session()
        try:
            return session.query(func.count(PlayerGameStat.id)).scalar() or 0
        finally:
            session.close()

    def load_stat_frame(self) -> pd.DataFrame:
        """All history rows as a DataFrame."""
        columns = ", ".join(STAT_ROW_COLUMNS)
        try:
            with self.engine.connect() as connection:
                return pd.read_sql(f"SELECT {columns} FROM player_game_stats", connection)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load history", error=str(e)) from e

    def fetch(
        self,
        statistic: Statistic,
        game_type: GameModeType,
        team_count: int | None = None,
        mode_id: int | None = None,
        arena_id: int | None = None,
    ) -> pd.DataFrame:
        """Aggregated regression rows (HistoricalStatSource). Filtering happens in SQL."""
        query = select(*(getattr(PlayerGameStat, c) for c in STAT_ROW_COLUMNS)).where(
            PlayerGameStat.game_type == game_type.value
        )
        if game_type == GameModeType.TEAM and team_count is not None:
            query = query.where(PlayerGameStat.teams == team_count)
        if mode_id is not None:
            query = query.where(PlayerGameStat.mode_id == mode_id)
        else:
            query = query.where(PlayerGameStat.rankable.is_(True))
        if arena_id is not None:
            query = query.where(PlayerGameStat.arena_id == arena_id)

        try:
            with self.engine.connect() as connection:
                frame = pd.read_sql(query, connection)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load history", error=str(e)) from e
        return aggregate_rows(frame, statistic, game_type)


_db_manager: DatabaseManager | None = None


def get_db() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager
