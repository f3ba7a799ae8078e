"""
Configuration for the pass cache and the ground stations used by the CLI.

Configuration is read from a YAML file of the form::

    pass_cache:
      lookback_minutes: 60
      max_cached_passes: 1000
      near_horizon_deg: 2.0
    ground_stations:
      - name: Tokyo
        latitude: 35.698
        longitude: 139.874
        altitude_m: 0.0
        min_elevation_deg: 0.0
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging
import os

import yaml  # type: ignore[import-untyped]

from .errors import ConfigError
from .observer import ObserverSite

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "PASS_PREDICTOR_CONFIG"


@dataclass
class PassCacheConfig:
    """
    Tunable constants of the pass cache.

    Passes whose LOS is older than ``lookback_minutes`` before the reference
    instant are pruned; the cache is reset once it holds more than
    ``max_cached_passes`` passes; the search walks in one-minute steps while
    the elevation is within ``near_horizon_deg`` of the horizon.
    """

    lookback_minutes: float = 60.0
    max_cached_passes: int = 1000
    near_horizon_deg: float = 2.0
    min_elevation_deg: float = 0.0

    def __post_init__(self) -> None:
        if self.lookback_minutes < 0:
            raise ValueError(f"lookback_minutes must be >= 0, got {self.lookback_minutes}")
        if self.max_cached_passes <= 0:
            raise ValueError(f"max_cached_passes must be > 0, got {self.max_cached_passes}")
        if self.near_horizon_deg <= 0:
            raise ValueError(f"near_horizon_deg must be > 0, got {self.near_horizon_deg}")
        if not -90 <= self.min_elevation_deg <= 90:
            raise ValueError(f"min_elevation_deg must be in [-90, 90], got {self.min_elevation_deg}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PassCacheConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown pass_cache settings: {sorted(unknown)}")
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StationConfig:
    """Ground station entry of the configuration file."""

    name: str
    latitude: float
    longitude: float
    altitude_m: float = 0.0
    min_elevation_deg: float = 0.0

    def to_observer(self, reference_time: Optional[datetime] = None) -> ObserverSite:
        return ObserverSite(
            latitude=self.latitude,
            longitude=self.longitude,
            altitude_m=self.altitude_m,
            min_elevation_deg=self.min_elevation_deg,
            reference_time=reference_time,
            name=self.name,
        )


@dataclass
class AppConfig:
    """Complete configuration: cache tuning plus known ground stations."""

    pass_cache: PassCacheConfig = field(default_factory=PassCacheConfig)
    stations: List[StationConfig] = field(default_factory=list)

    def station(self, name: str) -> StationConfig:
        for station in self.stations:
            if station.name.lower() == name.lower():
                return station
        raise KeyError(f"Ground station '{name}' not found in configuration")


def load_config(config_path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML file; defaults to $PASS_PREDICTOR_CONFIG

    Returns:
        AppConfig (defaults when no file is given or the file does not exist)

    Raises:
        ConfigError: If the file content is malformed
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_PATH_ENV)
    if config_path is None:
        return AppConfig()

    path = Path(config_path)
    if not path.exists():
        logger.warning(f"Configuration file not found: {path}, using defaults")
        return AppConfig()

    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration root must be a mapping in {path}")

    try:
        pass_cache = PassCacheConfig.from_dict(raw.get("pass_cache") or {})
        stations = [StationConfig(**entry) for entry in raw.get("ground_stations") or []]
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info(f"Loaded configuration from {path} ({len(stations)} ground stations)")
    return AppConfig(pass_cache=pass_cache, stations=stations)
