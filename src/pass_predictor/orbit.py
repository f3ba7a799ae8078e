"""
Satellite orbit propagation and TLE handling module.

This module defines the contract the pass cache requires from an orbit model
(``OrbitOracle``) and provides ``SatelliteOrbit``, an implementation that
propagates TLE data with the orbit-predictor library.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional, Union
import logging
import math

from orbit_predictor.sources import get_predictor_from_tle_lines
import numpy as np

from .models import LookAngles, SatelliteLocation
from .observer import ObserverSite
from .utils import to_naive_utc

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

MINUTES_IN_SIDEREAL_DAY = 1436.06818
MINUTES_IN_DAY = 1440.0

# Relative tolerance used for the geostationary and long-period checks
ORBIT_DEVIATION_RATIO = 0.001

# Below this altitude the satellite is considered to have re-entered
REENTRY_ALTITUDE_KM = 80.0

SATELLITE_POSITION_CACHE_SIZE = 10000


class OrbitOracle(ABC):
    """
    Source of satellite geometry for one orbiting object.

    Every sampling method returns ``None`` when the target is lost (decayed
    or propagation diverged).
    """

    @abstractmethod
    def elevation_at(self, when: datetime, observer: ObserverSite) -> Optional[float]:
        """Elevation of the satellite above the observer's horizon in degrees."""

    @abstractmethod
    def azimuth_at(self, when: datetime, observer: ObserverSite) -> Optional[float]:
        """Azimuth of the satellite from the observer in degrees, 0 = North."""

    @abstractmethod
    def position_at(self, when: datetime) -> Optional[SatelliteLocation]:
        """Sub-satellite point at the given instant."""

    @abstractmethod
    def is_geostationary(self) -> bool:
        """Whether the orbit keeps the satellite fixed relative to the ground."""

    @abstractmethod
    def orbital_period_minutes(self) -> float:
        """Orbital period in minutes."""

    def is_long_period(self) -> bool:
        """Whether the orbital period reaches one sidereal day."""
        threshold = MINUTES_IN_SIDEREAL_DAY * (1.0 - ORBIT_DEVIATION_RATIO)
        return self.orbital_period_minutes() >= threshold

    def look_angles(self, when: datetime, observer: ObserverSite) -> Optional[LookAngles]:
        elevation = self.elevation_at(when, observer)
        azimuth = self.azimuth_at(when, observer)
        if elevation is None or azimuth is None:
            return None
        return LookAngles(elevation, azimuth)


class SatelliteOrbit(OrbitOracle):
    """
    Represents a satellite orbit with TLE-based propagation capabilities.

    Positions come from orbit-predictor's SGP4 predictor; topocentric
    elevation and azimuth are computed against the observer's WGS84 frame.
    """

    def __init__(self, tle_lines: List[str], satellite_name: str) -> None:
        """
        Initialize satellite orbit from TLE data.

        Args:
            tle_lines: List of 2 or 3 strings containing TLE data ([name,] line1, line2)
            satellite_name: Name of the satellite

        Raises:
            ValueError: If TLE data is invalid
        """
        self.satellite_name = satellite_name
        self.tle_lines = tle_lines

        if len(tle_lines) == 3:
            predictor_lines = [line.strip() for line in tle_lines[1:3]]
        elif len(tle_lines) == 2:
            predictor_lines = [line.strip() for line in tle_lines]
        else:
            raise ValueError(f"Expected 2 or 3 TLE lines for {satellite_name}, got {len(tle_lines)}")

        if not all(predictor_lines):
            raise ValueError(f"Invalid TLE data for satellite {satellite_name}: empty TLE line")

        try:
            self.predictor = get_predictor_from_tle_lines(predictor_lines)
            line2 = predictor_lines[1]
            self.inclination_deg = float(line2[8:16])
            self.eccentricity = float("0." + line2[26:33].strip())
            self.mean_motion = float(line2[52:63])
        except Exception as e:
            logger.error(f"Failed to initialize satellite orbit: {e}")
            raise ValueError(f"Invalid TLE data for satellite {satellite_name}: {e}")

        if self.mean_motion <= 0:
            raise ValueError(f"Invalid mean motion for satellite {satellite_name}: {self.mean_motion}")

        self._period_minutes = MINUTES_IN_DAY / self.mean_motion
        self._geostationary = (
            abs(math.radians(self.inclination_deg)) <= 2 * math.pi * ORBIT_DEVIATION_RATIO
            and self.eccentricity <= ORBIT_DEVIATION_RATIO
            and abs(self._period_minutes - MINUTES_IN_SIDEREAL_DAY)
            <= MINUTES_IN_SIDEREAL_DAY * ORBIT_DEVIATION_RATIO
        )

        self._propagate = lru_cache(maxsize=SATELLITE_POSITION_CACHE_SIZE)(
            self._propagate_impl
        )
        logger.info(
            f"Successfully loaded orbit for satellite: {satellite_name} "
            f"(period={self._period_minutes:.1f} min, geostationary={self._geostationary})"
        )

    @classmethod
    def from_tle_file(cls, tle_file_path: Union[str, Path], satellite_name: str) -> "SatelliteOrbit":
        """
        Create SatelliteOrbit instance from a 3-line TLE file.

        Args:
            tle_file_path: Path to TLE file
            satellite_name: Name of the satellite to extract from TLE file

        Returns:
            SatelliteOrbit instance

        Raises:
            FileNotFoundError: If TLE file doesn't exist
            ValueError: If satellite not found in TLE file
        """
        tle_path = Path(tle_file_path)
        if not tle_path.exists():
            raise FileNotFoundError(f"TLE file not found: {tle_file_path}")

        with open(tle_path, 'r') as f:
            lines = [line.strip() for line in f.readlines() if line.strip()]

        for i in range(0, len(lines) - 2, 3):
            name_line = lines[i]
            if satellite_name.upper() in name_line.upper():
                return cls([lines[i], lines[i + 1], lines[i + 2]], satellite_name)

        raise ValueError(f"Satellite '{satellite_name}' not found in TLE file")

    def _propagate_impl(self, when: datetime) -> Optional[Any]:
        """
        Propagate the satellite to ``when`` (wrapped by an LRU cache in __init__).

        Returns:
            orbit-predictor Position, or None when the target is lost
        """
        try:
            position = self.predictor.get_position(when)
        except Exception as e:
            logger.debug(f"Propagation failed for {self.satellite_name} at {when}: {e}")
            return None

        if not np.all(np.isfinite(position.position_ecef)):
            return None
        if position.position_llh[2] < REENTRY_ALTITUDE_KM:
            return None
        return position

    def _topocentric(self, when: datetime, observer: ObserverSite) -> Optional[np.ndarray]:
        """Satellite position in the observer's East/North/Up frame (km)."""
        position = self._propagate(to_naive_utc(when))
        if position is None:
            return None
        range_vector = np.asarray(position.position_ecef, dtype=float) - observer.ecef_km
        return observer.enu_basis @ range_vector

    def elevation_at(self, when: datetime, observer: ObserverSite) -> Optional[float]:
        enu = self._topocentric(when, observer)
        if enu is None:
            return None
        east, north, up = enu
        return math.degrees(math.atan2(up, math.hypot(east, north)))

    def azimuth_at(self, when: datetime, observer: ObserverSite) -> Optional[float]:
        enu = self._topocentric(when, observer)
        if enu is None:
            return None
        east, north, _ = enu
        return math.degrees(math.atan2(east, north)) % 360.0

    def position_at(self, when: datetime) -> Optional[SatelliteLocation]:
        position = self._propagate(to_naive_utc(when))
        if position is None:
            return None
        lat, lon, alt = position.position_llh
        return SatelliteLocation(lat, lon, alt)

    def is_geostationary(self) -> bool:
        return self._geostationary

    def orbital_period_minutes(self) -> float:
        return self._period_minutes

    def __repr__(self) -> str:
        """String representation of the satellite orbit."""
        return (
            f"SatelliteOrbit(name='{self.satellite_name}', "
            f"period={self._period_minutes:.2f}min)"
        )
