"""
Configuration Management for LaserScore

Provides configuration loading from multiple sources:
- Default values
- Configuration files (YAML, TOML, JSON)
- Environment variables

Configuration precedence (highest to lowest):
1. Environment variables (LASERSCORE_*)
2. Configuration file
3. Default values
"""

import json
import logging
import logging.handlers
import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from laserscore.core.constants import MIN_REGRESSION_ROWS

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass
class RegressionConfig:
    """Configuration for fitting regression baselines."""

    # Fewer aggregated rows than this raises InsufficientDataError
    min_rows: int = MIN_REGRESSION_ROWS

    # Team counts covered by the batch recompute
    min_team_count: int = 2
    max_team_count: int = 6

    # R² differences below this count as a tie (lower-order model wins)
    r2_tolerance: float = 1e-9


@dataclass
class BaselineConfig:
    """Configuration for the baseline store and batch recompute."""

    # Worker threads used by recompute_all
    workers: int = 4

    # Also recompute the global (arena-independent) baselines next to per-arena ones
    include_global: bool = True


@dataclass
class SkillConfig:
    """Configuration for skill calculation."""

    # Compare every skill against the other players' average after the base pass
    modulate: bool = True

    # Game length (minutes) the team-hits penalty is normalized to
    reference_length: float = 15.0

    # Use baselines of the game's arena instead of the global ones
    arena_baselines: bool = False


@dataclass
class DatabaseConfig:
    """Configuration for the SQLite store."""

    path: str | None = None
    echo: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5


@dataclass
class LaserScoreConfig:
    """Main configuration container."""

    regression: RegressionConfig = field(default_factory=RegressionConfig)
    baselines: BaselineConfig = field(default_factory=BaselineConfig)
    skill: SkillConfig = field(default_factory=SkillConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Version of the config format
    config_version: str = "1.0"


SECTIONS = ("regression", "baselines", "skill", "database", "logging")


# ============================================================================
# Configuration Loading
# ============================================================================


def get_default_config_paths() -> list[Path]:
    """Get the default paths to search for configuration files."""
    paths = []

    # Current directory
    paths.append(Path.cwd() / "laserscore.yaml")
    paths.append(Path.cwd() / "laserscore.toml")
    paths.append(Path.cwd() / "laserscore.json")
    paths.append(Path.cwd() / ".laserscore.yaml")

    # User home directory
    home = Path.home()
    paths.append(home / ".config" / "laserscore" / "config.yaml")
    paths.append(home / ".config" / "laserscore" / "config.toml")

    # XDG config directory
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(home / ".config"))
    paths.append(Path(xdg_config) / "laserscore" / "config.yaml")

    return paths


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(path) as f:
        return json.load(f)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a file, detecting format from extension."""
    if not path.exists():
        return {}

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return load_yaml_config(path)
    elif suffix == ".toml":
        return load_toml_config(path)
    elif suffix == ".json":
        return load_json_config(path)
    else:
        logger.warning(f"Unknown config file format: {suffix}")
        return {}


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    env_mappings = {
        "LASERSCORE_LOG_LEVEL": ("logging", "level"),
        "LASERSCORE_LOG_FILE": ("logging", "file"),
        "LASERSCORE_DB_PATH": ("database", "path"),
        "LASERSCORE_DB_ECHO": ("database", "echo"),
        "LASERSCORE_MIN_ROWS": ("regression", "min_rows"),
        "LASERSCORE_MAX_TEAM_COUNT": ("regression", "max_team_count"),
        "LASERSCORE_WORKERS": ("baselines", "workers"),
        "LASERSCORE_MODULATE_SKILL": ("skill", "modulate"),
    }

    for env_var, (section, key) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is not None:
            if section not in config:
                config[section] = {}

            # Type conversion
            if value.lower() in ("true", "false"):
                value = value.lower() == "true"
            elif value.isdigit():
                value = int(value)
            else:
                try:
                    value = float(value)
                except ValueError:
                    pass

            config[section][key] = value

    return config


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def dict_to_config(data: dict[str, Any]) -> LaserScoreConfig:
    """Convert a dictionary to LaserScoreConfig, ignoring unknown keys."""
    config = LaserScoreConfig()

    for section_name in SECTIONS:
        if section_name not in data:
            continue
        section = getattr(config, section_name)
        for key, value in (data[section_name] or {}).items():
            if hasattr(section, key):
                setattr(section, key, value)
            else:
                logger.debug(f"Ignoring unknown config key {section_name}.{key}")

    if "config_version" in data:
        config.config_version = str(data["config_version"])

    return config


def load_config(config_file: Path | None = None, include_env: bool = True) -> LaserScoreConfig:
    """
    Load configuration from all sources.

    Args:
        config_file: Explicit path to a config file (optional)
        include_env: Whether to include environment variables

    Returns:
        Merged LaserScoreConfig
    """
    config_data: dict[str, Any] = {}

    if config_file:
        config_data = load_config_file(config_file)
        logger.info(f"Loaded config from: {config_file}")
    else:
        for path in get_default_config_paths():
            if path.exists():
                config_data = load_config_file(path)
                logger.info(f"Loaded config from: {path}")
                break

    if include_env:
        env_config = load_env_config()
        config_data = merge_configs(config_data, env_config)

    return dict_to_config(config_data)


# ============================================================================
# Configuration Saving
# ============================================================================


def config_to_dict(config: LaserScoreConfig) -> dict[str, Any]:
    """Convert LaserScoreConfig to a dictionary."""
    return asdict(config)


def save_config(config: LaserScoreConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (.yaml, .yml or .json)
    """
    data = config_to_dict(config)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    elif suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    else:
        raise ValueError(f"Unsupported config format for saving: {suffix}")

    logger.info(f"Saved config to: {path}")


# ============================================================================
# Logging Setup
# ============================================================================


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure the root logger from a LoggingConfig."""
    config = config or get_config().logging
    level = getattr(logging, str(config.level).upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                config.file,
                maxBytes=config.file_max_bytes,
                backupCount=config.file_backup_count,
            )
        )

    logging.basicConfig(level=level, format=config.format, handlers=handlers, force=True)


# ============================================================================
# Global Configuration
# ============================================================================

_global_config: LaserScoreConfig | None = None


def get_config() -> LaserScoreConfig:
    """Get the global configuration, loading it if necessary."""
    global _global_config

    if _global_config is None:
        _global_config = load_config()

    return _global_config


def set_config(config: LaserScoreConfig) -> None:
    """Set the global configuration."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset the global configuration to defaults."""
    global _global_config
    _global_config = None
