"""
Ground station (observer) definitions.

An observer is a fixed geodetic location with a minimum elevation threshold
for valid passes and an optional reference instant that replaces the wall
clock for deterministic or offline operation.
"""

from dataclasses import dataclass
from datetime import datetime
from functools import cached_property
from typing import Any, Dict, Optional
import math

import numpy as np

from .utils import get_current_utc, to_naive_utc

# WGS84 ellipsoid
WGS84_EQUATOR_RADIUS_KM = 6378.137
WGS84_FLATTENING = 1.0 / 298.257223563
WGS84_POLAR_RADIUS_KM = WGS84_EQUATOR_RADIUS_KM * (1.0 - WGS84_FLATTENING)
WGS84_ECCENTRICITY_SQ = WGS84_FLATTENING * (2.0 - WGS84_FLATTENING)


@dataclass(frozen=True)
class ObserverSite:
    """
    Represents a ground station observing a satellite.

    Immutable after construction; derived earth-centred coordinates are
    computed lazily and cached.
    """

    latitude: float  # degrees, -90 to +90
    longitude: float  # degrees, -180 to +180
    altitude_m: float = 0.0
    min_elevation_deg: float = 0.0
    reference_time: Optional[datetime] = None
    name: str = "station"

    def __post_init__(self) -> None:
        """Validate observer parameters after initialization."""
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Invalid latitude: {self.latitude}. Must be between -90 and 90 degrees.")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Invalid longitude: {self.longitude}. Must be between -180 and 180 degrees.")
        if not -90 <= self.min_elevation_deg <= 90:
            raise ValueError(
                f"Invalid minimum elevation: {self.min_elevation_deg}. Must be between -90 and 90 degrees."
            )
        if self.reference_time is not None:
            object.__setattr__(self, "reference_time", to_naive_utc(self.reference_time))

    def now(self) -> datetime:
        """Reference instant if configured, otherwise the current UTC time."""
        if self.reference_time is not None:
            return self.reference_time
        return get_current_utc()

    @cached_property
    def ecef_km(self) -> np.ndarray:
        """Earth-centred, earth-fixed position on the WGS84 ellipsoid (km)."""
        lat = math.radians(self.latitude)
        lon = math.radians(self.longitude)
        height_km = self.altitude_m / 1000.0
        prime_vertical = WGS84_EQUATOR_RADIUS_KM / math.sqrt(
            1.0 - WGS84_ECCENTRICITY_SQ * math.sin(lat) ** 2
        )
        return np.array([
            (prime_vertical + height_km) * math.cos(lat) * math.cos(lon),
            (prime_vertical + height_km) * math.cos(lat) * math.sin(lon),
            (prime_vertical * (1.0 - WGS84_ECCENTRICITY_SQ) + height_km) * math.sin(lat),
        ])

    @cached_property
    def earth_radius_km(self) -> float:
        """Geocentric radius of the WGS84 ellipsoid at the observer latitude."""
        lat = math.radians(self.latitude)
        a, b = WGS84_EQUATOR_RADIUS_KM, WGS84_POLAR_RADIUS_KM
        numerator = (a * a * math.cos(lat)) ** 2 + (b * b * math.sin(lat)) ** 2
        denominator = (a * math.cos(lat)) ** 2 + (b * math.sin(lat)) ** 2
        return math.sqrt(numerator / denominator)

    @cached_property
    def enu_basis(self) -> np.ndarray:
        """Rows are the local East, North and Up unit vectors in ECEF."""
        lat = math.radians(self.latitude)
        lon = math.radians(self.longitude)
        east = [-math.sin(lon), math.cos(lon), 0.0]
        north = [
            -math.sin(lat) * math.cos(lon),
            -math.sin(lat) * math.sin(lon),
            math.cos(lat),
        ]
        up = [
            math.cos(lat) * math.cos(lon),
            math.cos(lat) * math.sin(lon),
            math.sin(lat),
        ]
        return np.array([east, north, up])

    def to_dict(self) -> Dict[str, Any]:
        """Convert observer to dictionary representation."""
        return {
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude_m": self.altitude_m,
            "min_elevation_deg": self.min_elevation_deg,
            "reference_time": self.reference_time.isoformat() if self.reference_time else None,
        }

    def __str__(self) -> str:
        return f"{self.name} ({self.latitude:.4f}°, {self.longitude:.4f}°, {self.altitude_m:.0f}m)"
