"""
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and provides:
- Custom markers for test categorization
- Deterministic orbit oracles with analytic elevation curves
- Real TLE data for tests that go through orbit-predictor
"""

import math
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import pytest
from _pytest.config import Config

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pass_predictor.models import SatelliteLocation  # noqa: E402
from pass_predictor.observer import ObserverSite  # noqa: E402
from pass_predictor.orbit import MINUTES_IN_SIDEREAL_DAY, OrbitOracle  # noqa: E402

EPOCH = datetime(2024, 10, 1, 0, 0, 0)

# Sinusoidal test orbit: 100 minute period, elevation between -40° and +20°.
# Passes run from 5.41 to 44.59 minutes past every multiple of 100 minutes
# with the maximum elevation of 20° at 25 minutes.
SINE_PERIOD_MIN = 100.0
SINE_AMPLITUDE_DEG = 30.0
SINE_OFFSET_DEG = -10.0
SINE_AOS_MIN = SINE_PERIOD_MIN * math.asin(1.0 / 3.0) / (2 * math.pi)
SINE_LOS_MIN = SINE_PERIOD_MIN / 2 - SINE_AOS_MIN
SINE_MAX_EL_MIN = SINE_PERIOD_MIN / 4

ElevationCurve = Callable[[float], float]


def minutes_since_epoch(when: datetime) -> float:
    return (when - EPOCH) / timedelta(minutes=1)


def at_minutes(minutes: float) -> datetime:
    return EPOCH + timedelta(minutes=minutes)


def sine_curve(minutes: float) -> float:
    phase = 2 * math.pi * minutes / SINE_PERIOD_MIN
    return SINE_AMPLITUDE_DEG * math.sin(phase) + SINE_OFFSET_DEG


def constant_curve(elevation: float) -> ElevationCurve:
    return lambda minutes: elevation


class FakeOrbit(OrbitOracle):
    """
    Orbit oracle driven by an analytic elevation curve.

    ``shifts`` delays the curve per station name, so two stations see the
    same satellite at different times. ``curves`` overrides the curve for a
    given station name.
    """

    def __init__(
        self,
        curve: ElevationCurve,
        period_minutes: float = SINE_PERIOD_MIN,
        geostationary: bool = False,
        lost_after: Optional[datetime] = None,
        shifts: Optional[Dict[str, float]] = None,
        curves: Optional[Dict[str, ElevationCurve]] = None,
    ) -> None:
        self.curve = curve
        self.period_minutes = period_minutes
        self.geostationary = geostationary
        self.lost_after = lost_after
        self.shifts = shifts or {}
        self.curves = curves or {}
        self.calls = 0

    def _lost(self, when: datetime) -> bool:
        return self.lost_after is not None and when >= self.lost_after

    def elevation_at(self, when: datetime, observer: ObserverSite) -> Optional[float]:
        self.calls += 1
        if self._lost(when):
            return None
        curve = self.curves.get(observer.name, self.curve)
        return curve(minutes_since_epoch(when) - self.shifts.get(observer.name, 0.0))

    def azimuth_at(self, when: datetime, observer: ObserverSite) -> Optional[float]:
        if self._lost(when):
            return None
        return (minutes_since_epoch(when) * 3.6) % 360.0

    def position_at(self, when: datetime) -> Optional[SatelliteLocation]:
        if self._lost(when):
            return None
        longitude = (minutes_since_epoch(when) * 3.6) % 360.0 - 180.0
        return SatelliteLocation(0.0, longitude, 500.0)

    def is_geostationary(self) -> bool:
        return self.geostationary

    def orbital_period_minutes(self) -> float:
        return self.period_minutes

    def __repr__(self) -> str:
        return f"FakeOrbit(period={self.period_minutes:.1f}min)"


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# =============================================================================
# FIXTURES - Common test setup
# =============================================================================


@pytest.fixture
def base_datetime() -> datetime:
    """Reference time of the synthetic orbits."""
    return EPOCH


@pytest.fixture
def observer() -> ObserverSite:
    return ObserverSite(latitude=35.69809913754548, longitude=139.87427345857722,
                        reference_time=EPOCH, name="Tokyo")


@pytest.fixture
def second_observer() -> ObserverSite:
    return ObserverSite(latitude=30.3960255, longitude=130.9700461,
                        reference_time=EPOCH, name="Tanegashima")


@pytest.fixture
def sine_orbit() -> FakeOrbit:
    return FakeOrbit(sine_curve)


@pytest.fixture
def long_period_variable_orbit() -> FakeOrbit:
    """Period of one sidereal day, above the horizon half of the time."""
    return FakeOrbit(
        lambda minutes: 20.0 * math.sin(2 * math.pi * minutes / MINUTES_IN_SIDEREAL_DAY),
        period_minutes=MINUTES_IN_SIDEREAL_DAY,
    )


@pytest.fixture
def iss_tle_lines() -> Tuple[str, str]:
    return (
        "1 25544U 98067A   24256.46084667  .00027694  00000-0  50912-3 0  9998",
        "2 25544  51.6380 243.0542 0007697 345.2843 100.4574 15.48970942472084",
    )


@pytest.fixture
def himawari_tle_lines() -> Tuple[str, str]:
    """Geostationary, visible from Tokyo."""
    return (
        "1 40267U 14060A   24255.96883338 -.00000272  00000-0  00000+0 0  9997",
        "2 40267   0.0097 194.8537 0000918 318.0173 328.0486  1.00272067 36415",
    )


@pytest.fixture
def goes_tle_lines() -> Tuple[str, str]:
    """Geostationary over the eastern Pacific, below the horizon from Tokyo."""
    return (
        "1 43226U 18022A   24255.63394866 -.00000087  00000-0  00000-0 0  9999",
        "2 43226   0.0223 337.8465 0002118 223.3801 273.4352  1.00271642 23973",
    )


@pytest.fixture
def tle_file(tmp_path: Path, iss_tle_lines, himawari_tle_lines, goes_tle_lines) -> Path:
    """Three-line TLE file holding the ISS and two geostationary satellites."""
    path = tmp_path / "stations.tle"
    path.write_text(
        f"ISS (ZARYA)\n{iss_tle_lines[0]}\n{iss_tle_lines[1]}\n"
        f"HIMAWARI 8\n{himawari_tle_lines[0]}\n{himawari_tle_lines[1]}\n"
        f"GOES 17\n{goes_tle_lines[0]}\n{goes_tle_lines[1]}\n"
    )
    return path
