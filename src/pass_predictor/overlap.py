"""
Simultaneous visibility of one satellite from two ground stations.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from .config import PassCacheConfig
from .errors import InvalidRangeError, TargetLostError
from .intervals import validate_range
from .models import Event, Pass, VisibilityType
from .observer import ObserverSite
from .orbit import OrbitOracle
from .pass_cache import PassCache
from .root_finder import Sample, refine_peak, require_elevation, search_step_minutes
from .utils import to_naive_utc

logger = logging.getLogger(__name__)


class OverlapCache:
    """
    Composes two pass caches to find windows where both stations see the
    satellite.

    Overlap events carry the look angles from the first station.
    """

    def __init__(
        self,
        oracle: OrbitOracle,
        station1: ObserverSite,
        station2: ObserverSite,
        config: Optional[PassCacheConfig] = None,
    ) -> None:
        self._config = config or PassCacheConfig()
        self._lock = threading.RLock()
        self._station1 = PassCache(oracle, station1, self._config)
        self._station2 = PassCache(oracle, station2, self._config)

    @property
    def station1(self) -> PassCache:
        return self._station1

    @property
    def station2(self) -> PassCache:
        return self._station2

    @property
    def visibility_types(self) -> Tuple[VisibilityType, VisibilityType]:
        return self._station1.visibility, self._station2.visibility

    def is_visible(self, when: datetime) -> bool:
        """Whether both stations see the satellite at ``when``."""
        with self._lock:
            return self._station1.is_visible(when) and self._station2.is_visible(when)

    def overlap_in_range(self, start: datetime, end: datetime) -> Optional[List[Pass]]:
        """
        Find the windows in ``[start, end]`` when both stations see the satellite.

        Args:
            start: Range start
            end: Range end

        Returns:
            Overlap passes sorted by AOS, or None when no overlap is possible
            or the range is rejected
        """
        start, end = to_naive_utc(start), to_naive_utc(end)
        with self._lock:
            try:
                validate_range(start, end, self._station1.observer.now())
            except InvalidRangeError as e:
                logger.warning(f"Rejected overlap query: {e}")
                return None

            visibility1, visibility2 = self.visibility_types
            always_visible = VisibilityType.ALWAYS_VISIBLE

            if visibility1 is always_visible and visibility2 is always_visible:
                return self._station1.passes_in_range(start, end)
            if VisibilityType.ALWAYS_INVISIBLE in (visibility1, visibility2):
                return None
            if visibility2 is always_visible:
                return self._station1.passes_in_range(start, end) or None
            if visibility1 is always_visible:
                return self._station2.passes_in_range(start, end) or None

            return self._calculate_overlaps(start, end)

    def _calculate_overlaps(self, start: datetime, end: datetime) -> Optional[List[Pass]]:
        passes1 = self._station1.passes_in_range(start, end)
        passes2 = self._station2.passes_in_range(start, end)
        if not passes1 or not passes2:
            return None

        overlaps = []
        for pass1 in passes1:
            for pass2 in passes2:
                if not pass1.overlaps(pass2):
                    continue
                overlap = self._build_overlap(pass1, pass2)
                if overlap is not None:
                    overlaps.append(overlap)

        logger.debug(
            f"{len(overlaps)} overlaps from {len(passes1)} x {len(passes2)} passes "
            f"between {start} and {end}"
        )
        return sorted(overlaps, key=lambda p: p.start_time)

    def _build_overlap(self, pass1: Pass, pass2: Pass) -> Optional[Pass]:
        window_start = max(pass1.aos.time, pass2.aos.time)
        window_end = min(pass1.los.time, pass2.los.time)

        aos = self._station1.event_at(window_start)
        los = self._station1.event_at(window_end)
        if aos is None or los is None:
            logger.warning(f"Target lost in overlap window {window_start} - {window_end}")
            return None

        if window_start <= pass1.max_el.time <= window_end:
            max_el: Optional[Event] = pass1.max_el
        else:
            max_el = self._window_max_el(window_start, window_end)
        if max_el is None:
            return None

        return Pass.from_events(aos, max_el, los)

    def _window_max_el(self, start: datetime, end: datetime) -> Optional[Event]:
        """Highest elevation from station 1 within ``[start, end]``."""
        station = self._station1
        near_horizon = self._config.near_horizon_deg
        best: Optional[Sample] = None

        try:
            when = start
            while when < end:
                elevation = require_elevation(station.elevation_at, when)
                if best is None or elevation > best.elevation_deg:
                    best = Sample(when, elevation)
                when += timedelta(minutes=search_step_minutes(elevation, near_horizon))

            elevation = require_elevation(station.elevation_at, end)
            if best is None or elevation > best.elevation_deg:
                best = Sample(end, elevation)

            refined = refine_peak(station.elevation_at, best, near_horizon, lower=start, upper=end)
        except TargetLostError as e:
            logger.warning(f"Target lost at {e.when} while searching overlap max elevation")
            return None

        return station.event_at(refined.time, refined.elevation_deg)
