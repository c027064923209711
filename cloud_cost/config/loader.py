"""
Configuration management and loading.

Handles cache lifetimes, the pricing data location and the log level.
Every section is optional; omitted values fall back to the defaults.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV_VAR = "CLOUD_COST_CONFIG"

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass(frozen=True)
class CacheSettings:
    """Cache lifetimes in whole minutes."""
    default_ttl_minutes: int = 60
    provider_ttl_minutes: int = 60 * 24
    merged_ttl_minutes: int = 60

    def __post_init__(self):
        """Validate TTL values are positive."""
        if self.default_ttl_minutes <= 0:
            raise ValueError("default_ttl_minutes must be > 0")
        if self.provider_ttl_minutes <= 0:
            raise ValueError("provider_ttl_minutes must be > 0")
        if self.merged_ttl_minutes <= 0:
            raise ValueError("merged_ttl_minutes must be > 0")


@dataclass(frozen=True)
class DataSettings:
    """Where pricing bundles live and when they count as stale."""
    bundle_dir: Optional[Path] = None
    stale_after_days: int = 30

    def __post_init__(self):
        """Validate staleness threshold."""
        if self.stale_after_days <= 0:
            raise ValueError("stale_after_days must be > 0")


@dataclass(frozen=True)
class LoggingSettings:
    """Log verbosity."""
    level: str = "WARNING"

    def __post_init__(self):
        if self.level not in LOG_LEVELS:
            raise ValueError(f"logging level must be one of: {list(LOG_LEVELS)}")

    @property
    def numeric_level(self) -> int:
        return getattr(logging, self.level)


@dataclass(frozen=True)
class Settings:
    """Complete application settings."""
    cache: CacheSettings = field(default_factory=CacheSettings)
    data: DataSettings = field(default_factory=DataSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def default_settings() -> Settings:
    """Settings used when no configuration file is given."""
    return Settings()


def resolve_config_path(path: Optional[str] = None) -> Optional[str]:
    """Pick the explicit path, else the CLOUD_COST_CONFIG environment variable."""
    return path or os.environ.get(CONFIG_ENV_VAR) or None


def load_settings(path: str) -> Settings:
    """Load and validate settings from a YAML file.

    Strict validation ensures a typo in a key is reported instead of
    silently falling back to a default.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated Settings object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        return default_settings()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    allowed_top_keys = {'cache', 'data', 'logging'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    cache_data = _section(raw_config, 'cache', {'default_ttl_minutes', 'provider_ttl_minutes', 'merged_ttl_minutes'})
    cache = CacheSettings(**{
        key: _positive_int(value, f"cache.{key}") for key, value in cache_data.items()
    })

    data_section = _section(raw_config, 'data', {'bundle_dir', 'stale_after_days'})
    data_kwargs: Dict[str, Any] = {}
    if data_section.get('bundle_dir') is not None:
        bundle_dir = data_section['bundle_dir']
        if not isinstance(bundle_dir, str):
            raise ValueError("'data.bundle_dir' must be a string")
        # Relative paths are taken from the config file's directory
        data_kwargs['bundle_dir'] = (config_path.parent / Path(bundle_dir).expanduser()).resolve()
    if 'stale_after_days' in data_section:
        data_kwargs['stale_after_days'] = _positive_int(data_section['stale_after_days'], "data.stale_after_days")
    data = DataSettings(**data_kwargs)

    logging_section = _section(raw_config, 'logging', {'level'})
    logging_kwargs = {}
    if 'level' in logging_section:
        level = logging_section['level']
        if not isinstance(level, str):
            raise ValueError("'logging.level' must be a string")
        logging_kwargs['level'] = level.upper()
    log_settings = LoggingSettings(**logging_kwargs)

    return Settings(cache=cache, data=data, logging=log_settings)


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict:
    """Fetch an optional section and reject unknown keys in it."""
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {name}: {unknown_keys}")
    return data


def _positive_int(value: Any, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"'{path}' must be a positive integer")
    return value
