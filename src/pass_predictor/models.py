"""
Data types shared by the pass prediction engine.

Passes are built from events (AOS, maximum elevation, LOS). A satellite that
is always visible from a station is represented by a single synthetic pass
that carries only the maximum-elevation event.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional


class VisibilityType(Enum):
    """Visibility behaviour of a satellite as seen from one ground station."""

    ALWAYS_VISIBLE = "always_visible"
    ALWAYS_INVISIBLE = "always_invisible"
    VARIABLE = "variable"


class SatelliteLocation(NamedTuple):
    """Geodetic sub-satellite point."""

    latitude_deg: float
    longitude_deg: float
    altitude_km: float


class LookAngles(NamedTuple):
    """Elevation/azimuth of the satellite seen from a station."""

    elevation_deg: float
    azimuth_deg: float


@dataclass(frozen=True)
class Event:
    """Satellite geometry at one instant of a pass."""

    time: datetime
    elevation_deg: float
    azimuth_deg: float
    position: SatelliteLocation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time.isoformat(),
            "elevation_deg": round(self.elevation_deg, 2),
            "azimuth_deg": round(self.azimuth_deg, 2),
            "latitude_deg": round(self.position.latitude_deg, 4),
            "longitude_deg": round(self.position.longitude_deg, 4),
            "altitude_km": round(self.position.altitude_km, 2),
        }


@dataclass(frozen=True)
class Pass:
    """
    One visibility window of a satellite over a ground station.

    For an always-visible satellite only ``max_el`` is populated; ``aos``,
    ``los`` and ``duration_ms`` are ``None``.
    """

    aos: Optional[Event]
    max_el: Event
    los: Optional[Event]
    duration_ms: Optional[int] = None

    @classmethod
    def from_events(cls, aos: Event, max_el: Event, los: Event) -> "Pass":
        """Build a complete pass, deriving its duration from AOS and LOS."""
        duration = los.time - aos.time
        return cls(
            aos=aos,
            max_el=max_el,
            los=los,
            duration_ms=int(duration / timedelta(milliseconds=1)),
        )

    @property
    def start_time(self) -> datetime:
        """AOS time, or the maximum-elevation time for a synthetic pass."""
        return self.aos.time if self.aos is not None else self.max_el.time

    @property
    def is_synthetic(self) -> bool:
        return self.aos is None or self.los is None

    def overlaps(self, other: "Pass") -> bool:
        """Check whether two complete passes share any instant."""
        if self.is_synthetic or other.is_synthetic:
            return False
        return self.aos.time <= other.los.time and other.aos.time <= self.los.time

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "aos": self.aos.to_dict() if self.aos else None,
            "max_el": self.max_el.to_dict(),
            "los": self.los.to_dict() if self.los else None,
            "duration_ms": self.duration_ms,
        }
        if self.duration_ms is not None:
            result["duration_s"] = round(self.duration_ms / 1000.0, 1)
        return result

    def __str__(self) -> str:
        if self.is_synthetic:
            return (
                f"Always visible: Max Elev {self.max_el.elevation_deg:.1f}° "
                f"at {self.max_el.time.strftime('%Y-%m-%d %H:%M:%S')} UTC"
            )
        return (
            f"Pass: {self.aos.time.strftime('%Y-%m-%d %H:%M:%S')} - "
            f"{self.los.time.strftime('%H:%M:%S')} UTC, "
            f"Max Elev: {self.max_el.elevation_deg:.1f}°"
        )


@dataclass(frozen=True)
class TimeInterval:
    """Half-open time range ``[start, end)``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(
                f"Invalid time interval: start {self.start} must be before end {self.end}"
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end

    def intersection(self, start: datetime, end: datetime) -> Optional["TimeInterval"]:
        """Clip this interval to ``[start, end)``; ``None`` when they are disjoint."""
        lower = max(self.start, start)
        upper = min(self.end, end)
        if lower >= upper:
            return None
        return TimeInterval(lower, upper)
