"""
Binary searches over the elevation curve of a satellite.

Both searches work purely on elevation samples and stop once the search
bracket is narrower than 100 ms:

- crossing search: locates the instant the elevation crosses 0° (AOS/LOS)
- extremum search: locates the maximum elevation around a candidate peak

A lost target anywhere along the way raises ``TargetLostError``.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, NamedTuple, Optional
import math

from .errors import TargetLostError

ElevationFunction = Callable[[datetime], Optional[float]]

SEARCH_RESOLUTION = timedelta(milliseconds=100)
NEAR_HORIZON_DEG = 2.0
MIN_SEARCH_STEP_MINUTES = 1.0


class CrossingType(Enum):
    RISING = "aos"
    SETTING = "los"


class Sample(NamedTuple):
    """Elevation of the satellite at one instant."""

    time: datetime
    elevation_deg: float


def require_elevation(elevation_fn: ElevationFunction, when: datetime) -> float:
    """Sample the elevation, raising TargetLostError if the target is lost."""
    elevation = elevation_fn(when)
    if elevation is None:
        raise TargetLostError(when)
    return elevation


def search_step_minutes(elevation: float, near_horizon_deg: float = NEAR_HORIZON_DEG) -> float:
    """
    Step size of the pass search for the current elevation.

    Near the horizon the search walks minute by minute. Further away it takes
    logarithmically longer steps, shorter above the horizon than below it so
    the maximum elevation stays well resolved.

    Args:
        elevation: Current elevation in degrees
        near_horizon_deg: Band around the horizon searched at one-minute steps

    Returns:
        Step in minutes, never below one minute
    """
    if abs(elevation) <= near_horizon_deg:
        return MIN_SEARCH_STEP_MINUTES
    if elevation > 0.0:
        step = math.floor(math.log2(elevation)) / 2.0
    else:
        step = float(math.floor(math.log2(abs(elevation))))
    return max(step, MIN_SEARCH_STEP_MINUTES)


def find_crossing(
    elevation_fn: ElevationFunction,
    start: datetime,
    end: datetime,
    crossing: CrossingType,
) -> Optional[Sample]:
    """
    Bisect ``[start, end]`` for the instant the elevation crosses 0°.

    The bracket is expected to straddle the crossing. The returned sample
    is the start of the final bracket; its elevation truncates to 0 for a
    true crossing.

    Returns:
        Sample at the crossing, or None if the bracket held no true crossing

    Raises:
        TargetLostError: If the target is lost inside the bracket
    """
    while True:
        elevation_start = require_elevation(elevation_fn, start)
        if end - start < SEARCH_RESOLUTION:
            if math.trunc(elevation_start) == 0:
                return Sample(start, elevation_start)
            return None

        mid = start + (end - start) / 2
        elevation_mid = require_elevation(elevation_fn, mid)

        if crossing is CrossingType.RISING and elevation_start <= 0.0 < elevation_mid:
            end = mid
        elif crossing is CrossingType.SETTING and elevation_start >= 0.0 > elevation_mid:
            end = mid
        else:
            start = mid


def find_extremum(
    elevation_fn: ElevationFunction,
    start: datetime,
    peak: Sample,
    end: datetime,
    lower: Optional[datetime] = None,
    upper: Optional[datetime] = None,
) -> Sample:
    """
    Search for the maximum elevation around a candidate peak.

    Each step compares the peak against both bracket ends, re-centres on
    whichever is highest and halves the bracket. Optional ``lower``/``upper``
    bounds keep every sample inside a window.

    Raises:
        TargetLostError: If the target is lost while searching
    """
    start, end = _clamp(start, lower, upper), _clamp(end, lower, upper)
    best = peak
    while end - start >= SEARCH_RESOLUTION:
        elevation_start = require_elevation(elevation_fn, start)
        elevation_end = require_elevation(elevation_fn, end)
        quarter = (end - start) / 4

        if best.elevation_deg < elevation_start:
            best = Sample(start, elevation_start)
        elif best.elevation_deg < elevation_end:
            best = Sample(end, elevation_end)

        start = _clamp(best.time - quarter, lower, upper)
        end = _clamp(best.time + quarter, lower, upper)
    return best


def refine_peak(
    elevation_fn: ElevationFunction,
    peak: Sample,
    near_horizon_deg: float = NEAR_HORIZON_DEG,
    lower: Optional[datetime] = None,
    upper: Optional[datetime] = None,
) -> Sample:
    """Run the extremum search seeded with half a search step around ``peak``."""
    half_step = timedelta(minutes=search_step_minutes(peak.elevation_deg, near_horizon_deg)) / 2
    return find_extremum(
        elevation_fn,
        peak.time - half_step,
        peak,
        peak.time + half_step,
        lower=lower,
        upper=upper,
    )


def _clamp(when: datetime, lower: Optional[datetime], upper: Optional[datetime]) -> datetime:
    if lower is not None and when < lower:
        return lower
    if upper is not None and when > upper:
        return upper
    return when
