"""
Satellite Pass Predictor

Predicts when a satellite is visible from a ground station (AOS, maximum
elevation, LOS) and caches the predictions incrementally so repeated and
overlapping queries never recompute known passes.
"""

from .config import AppConfig, PassCacheConfig, StationConfig, load_config
from .errors import ConfigError, InvalidRangeError, PassPredictionError, TargetLostError
from .models import Event, LookAngles, Pass, SatelliteLocation, TimeInterval, VisibilityType
from .observer import ObserverSite
from .orbit import OrbitOracle, SatelliteOrbit
from .overlap import OverlapCache
from .pass_cache import PassCache

__version__ = "0.1.0"
__author__ = "Pass Predictor Team"

__all__ = [
    "AppConfig",
    "ConfigError",
    "Event",
    "InvalidRangeError",
    "LookAngles",
    "ObserverSite",
    "OrbitOracle",
    "OverlapCache",
    "Pass",
    "PassCache",
    "PassCacheConfig",
    "PassPredictionError",
    "SatelliteLocation",
    "SatelliteOrbit",
    "StationConfig",
    "TargetLostError",
    "TimeInterval",
    "VisibilityType",
    "load_config",
]
