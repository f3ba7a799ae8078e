"""
Incremental pass cache for one satellite/ground station pair.

The cache walks the elevation curve with an adaptive step, pins AOS/LOS and
the maximum elevation with the binary searches of ``root_finder``, and
remembers both the passes it found and the time ranges it skipped. Later
queries only explore what is still unknown, so a range asked for in one
call or in many overlapping, reordered calls yields the same passes.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import List, NamedTuple, Optional

from .classifier import classify_visibility
from .config import PassCacheConfig
from .errors import InvalidRangeError, TargetLostError
from .intervals import UnexploredIntervals, validate_range
from .models import Event, LookAngles, Pass, TimeInterval, VisibilityType
from .observer import ObserverSite
from .orbit import MINUTES_IN_SIDEREAL_DAY, OrbitOracle
from .root_finder import (
    CrossingType,
    Sample,
    find_crossing,
    refine_peak,
    require_elevation,
    search_step_minutes,
)
from .utils import to_naive_utc

logger = logging.getLogger(__name__)


class _BackwardScan(NamedTuple):
    aos: Optional[Sample]
    peak: Sample
    # The pass in progress is already cached
    known: bool
    # The walk used up the whole horizon without going below the horizon
    exhausted: bool


class PassCache:
    """
    Pass predictions for one satellite seen from one ground station.

    Public methods hold a per-instance re-entrant lock for their whole
    duration; the pass list, the unexplored intervals and the watermark are
    only consistent as a whole.
    """

    def __init__(
        self,
        oracle: OrbitOracle,
        observer: ObserverSite,
        config: Optional[PassCacheConfig] = None,
    ) -> None:
        """
        Create the cache and classify the satellite's visibility.

        Args:
            oracle: Orbit model of the satellite
            observer: Ground station
            config: Cache tuning, defaults to PassCacheConfig()
        """
        self._oracle = oracle
        self._observer = observer
        self._config = config or PassCacheConfig()
        self._lock = threading.RLock()

        self._passes: List[Pass] = []
        self._unexplored = UnexploredIntervals()
        self._watermark = self._floor()
        self._visibility = VisibilityType.VARIABLE
        self._samples = 0

        with self._lock:
            self._classify()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def oracle(self) -> OrbitOracle:
        return self._oracle

    @property
    def observer(self) -> ObserverSite:
        return self._observer

    @property
    def config(self) -> PassCacheConfig:
        return self._config

    @property
    def visibility(self) -> VisibilityType:
        return self._visibility

    def get_visibility_type(self) -> VisibilityType:
        return self._visibility

    @property
    def watermark(self) -> datetime:
        """Furthest instant explored so far."""
        return self._watermark

    @property
    def cached_passes(self) -> List[Pass]:
        with self._lock:
            return sorted(self._passes, key=lambda p: p.start_time)

    @property
    def unexplored_intervals(self) -> List[TimeInterval]:
        with self._lock:
            return list(self._unexplored)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def next_pass_after(self, when: datetime) -> Optional[Pass]:
        """
        Find the first pass whose LOS is at or after ``when``.

        A pass in progress at ``when`` counts. For an always-visible
        satellite the synthetic pass is returned.

        Args:
            when: Instant to search from

        Returns:
            The next pass, or None if there is none within the search horizon
        """
        when = to_naive_utc(when)
        with self._lock:
            if self._visibility is VisibilityType.ALWAYS_VISIBLE:
                return self._passes[0] if self._passes else None
            if self._visibility is VisibilityType.ALWAYS_INVISIBLE:
                return None

            passes = self._calculate_passes(when, None)
            return passes[0] if passes else None

    def passes_in_range(self, start: datetime, end: datetime) -> Optional[List[Pass]]:
        """
        Find every pass overlapping ``[start, end]``.

        Args:
            start: Range start
            end: Range end, must be after ``start`` and after the reference time

        Returns:
            Passes sorted by AOS, or None for a rejected range or an
            always-invisible satellite
        """
        start, end = to_naive_utc(start), to_naive_utc(end)
        with self._lock:
            try:
                validate_range(start, end, self._observer.now())
            except InvalidRangeError as e:
                logger.warning(f"Rejected pass query for {self._observer.name}: {e}")
                return None

            if self._visibility is VisibilityType.ALWAYS_VISIBLE:
                return list(self._passes)
            if self._visibility is VisibilityType.ALWAYS_INVISIBLE:
                return None

            return self._calculate_passes(start, end)

    def is_visible(self, when: datetime) -> bool:
        """Whether the satellite is above the horizon at ``when``."""
        with self._lock:
            if self._visibility is VisibilityType.ALWAYS_VISIBLE:
                return True
            if self._visibility is VisibilityType.ALWAYS_INVISIBLE:
                return False
        elevation = self.elevation_at(when)
        return elevation is not None and elevation >= 0.0

    def look_angles(self, when: datetime) -> Optional[LookAngles]:
        return self._oracle.look_angles(to_naive_utc(when), self._observer)

    def elevation_at(self, when: datetime) -> Optional[float]:
        self._samples += 1
        return self._oracle.elevation_at(to_naive_utc(when), self._observer)

    def event_at(self, when: datetime, elevation: Optional[float] = None) -> Optional[Event]:
        """
        Build the event seen from this station at ``when``.

        Returns:
            Event, or None when the target is lost
        """
        when = to_naive_utc(when)
        if elevation is None:
            elevation = self.elevation_at(when)
        azimuth = self._oracle.azimuth_at(when, self._observer)
        position = self._oracle.position_at(when)
        if elevation is None or azimuth is None or position is None:
            return None
        return Event(when, elevation, azimuth, position)

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def _floor(self) -> datetime:
        """Oldest instant the cache keeps: reference time minus the lookback."""
        return self._observer.now() - timedelta(minutes=self._config.lookback_minutes)

    def _reset(self) -> None:
        self._passes = []
        self._unexplored.clear()
        self._watermark = self._floor()

    def _classify(self) -> None:
        reference = self._observer.now()
        classification = classify_visibility(self._oracle, self._observer, reference)
        self._visibility = classification.visibility
        if classification.sample is not None:
            self._store_synthetic(classification.sample)

        logger.info(
            f"{self._oracle} from {self._observer.name}: {self._visibility.value}"
        )
        if classification.needs_exploration:
            self._calculate_passes(reference, None)

    def _store_synthetic(self, max_el: Sample) -> None:
        self._reset()
        event = self.event_at(max_el.time, max_el.elevation_deg)
        if event is None:
            logger.warning(f"Target lost at {max_el.time} while storing always-visible pass")
            return
        self._passes = [Pass(aos=None, max_el=event, los=None)]

    def _escalate_always_visible(self, peak: Sample) -> None:
        max_el = refine_peak(self.elevation_at, peak, self._config.near_horizon_deg)
        self._visibility = VisibilityType.ALWAYS_VISIBLE
        self._store_synthetic(max_el)
        logger.info(
            f"{self._oracle} never sets from {self._observer.name}; "
            f"classification escalated to {self._visibility.value}"
        )

    def _escalate_always_invisible(self) -> None:
        self._visibility = VisibilityType.ALWAYS_INVISIBLE
        self._reset()
        logger.info(
            f"{self._oracle} has no pass over {self._observer.name}; "
            f"classification escalated to {self._visibility.value}"
        )

    def _advance_watermark(self, when: datetime) -> None:
        if when > self._watermark:
            self._watermark = when

    def _prune(self, floor: datetime) -> None:
        self._passes = [p for p in self._passes if p.los is not None and p.los.time > floor]
        self._unexplored.prune(floor)

    def _add_pass(self, new_pass: Pass) -> None:
        for existing in self._passes:
            if existing.overlaps(new_pass):
                logger.debug(f"Skipping rediscovered pass at {new_pass.start_time}")
                return
        self._passes.append(new_pass)
        self._passes.sort(key=lambda p: p.start_time)

    def _cached_pass_at(self, when: datetime) -> Optional[Pass]:
        for cached in self._passes:
            if cached.aos is not None and cached.los is not None:
                if cached.aos.time <= when <= cached.los.time:
                    return cached
        return None

    # ------------------------------------------------------------------
    # Exploration
    # ------------------------------------------------------------------

    def _calculate_passes(self, start: datetime, end: Optional[datetime]) -> Optional[List[Pass]]:
        if len(self._passes) > self._config.max_cached_passes:
            logger.info(
                f"Pass cache for {self._observer.name} exceeded "
                f"{self._config.max_cached_passes} passes, resetting"
            )
            self._reset()

        floor = self._floor()
        self._prune(floor)
        start = max(start, floor)

        if end is None:
            self._explore_next(start)
        else:
            self._explore_range(start, end)

        if self._visibility is VisibilityType.ALWAYS_VISIBLE:
            return list(self._passes)
        if self._visibility is VisibilityType.ALWAYS_INVISIBLE:
            return None

        selected = [p for p in self._passes if p.los is not None and p.los.time >= start]
        if end is not None:
            selected = [p for p in selected if p.start_time <= end]
        return sorted(selected, key=lambda p: p.start_time)

    def _explore_range(self, start: datetime, end: datetime) -> None:
        watermark = self._watermark
        if start > watermark:
            self._unexplored.add(watermark, start)
            self._explore(start, end)
        elif end > watermark:
            self._explore_unexplored(start, watermark)
            if self._visibility is VisibilityType.VARIABLE:
                self._explore(watermark, end)
        else:
            self._explore_unexplored(start, end)

    def _explore_next(self, start: datetime) -> None:
        watermark = self._watermark
        if start > watermark:
            self._unexplored.add(watermark, start)
            self._explore(start, None)
            return

        self._explore_unexplored(start, watermark)
        if self._visibility is not VisibilityType.VARIABLE:
            return
        if any(p.los is not None and p.los.time >= start for p in self._passes):
            return
        self._explore(watermark, None)

    def _explore_unexplored(self, start: datetime, end: datetime) -> None:
        for interval in self._unexplored.overlapping(start, end):
            reached = self._explore(interval.start, interval.end)
            if self._visibility is not VisibilityType.VARIABLE:
                return
            if reached is not None:
                self._unexplored.remove(interval.start, reached)

    def _explore(self, start: datetime, end: Optional[datetime]) -> Optional[datetime]:
        """
        Explore from ``start`` and record the passes found.

        Args:
            start: Instant to explore from
            end: Last instant of interest, or None to stop at the first pass

        Returns:
            The instant the exploration reached, or None when it was halted
            by a lost target or a classification change
        """
        self._samples = 0
        try:
            reached = self._scan(start, end)
        except TargetLostError as e:
            logger.warning(
                f"{self._oracle} lost at {e.when} seen from {self._observer.name}, "
                f"exploration halted"
            )
            self._advance_watermark(e.when)
            return None
        logger.debug(
            f"Explored {self._observer.name} from {start} to {reached}: "
            f"{self._samples} samples, {len(self._passes)} cached passes, "
            f"{self._unexplored.total_duration()} unexplored"
        )
        return reached

    def _period_horizon_minutes(self) -> float:
        """One sidereal day, or the orbital period when that is longer."""
        return max(MINUTES_IN_SIDEREAL_DAY, self._oracle.orbital_period_minutes())

    def _search_horizon(self, start: datetime, end: Optional[datetime]) -> float:
        """Length of the exploration in minutes."""
        if end is None:
            return self._period_horizon_minutes()

        minutes = (end - start) / timedelta(minutes=1)
        end_elevation = self.elevation_at(end)
        # A pass crossing the end of the range is followed to its LOS
        if end_elevation is not None and end_elevation >= 0.0:
            minutes += MINUTES_IN_SIDEREAL_DAY
        return minutes

    def _step(self, elevation: float) -> timedelta:
        return timedelta(minutes=search_step_minutes(elevation, self._config.near_horizon_deg))

    def _sample(self, when: datetime) -> float:
        return require_elevation(self.elevation_at, when)

    def _covers_period(self, horizon_minutes: float) -> bool:
        """Whether a horizon is long enough to conclude about a long-period orbit."""
        return (
            self._oracle.is_long_period()
            and horizon_minutes >= self._oracle.orbital_period_minutes()
        )

    def _scan_backward(self, start: datetime, elevation: float) -> _BackwardScan:
        """
        Walk back from ``start`` to the AOS of the pass in progress.

        The walk is bounded by one orbital horizon, independent of the length
        of the query, so a short range starting late in a long pass still
        reaches its AOS.
        """
        peak = Sample(start, elevation)
        later = start
        horizon = timedelta(minutes=self._period_horizon_minutes())
        when = start - self._step(elevation)

        while start - when <= horizon:
            elevation = self._sample(when)
            if elevation <= 0.0:
                self._unexplored.remove(when, start)
                aos = find_crossing(self.elevation_at, when, later, CrossingType.RISING)
                return _BackwardScan(aos, peak, known=False, exhausted=False)

            if elevation > peak.elevation_deg:
                peak = Sample(when, elevation)
            if when < self._watermark and self._cached_pass_at(when) is not None:
                return _BackwardScan(None, peak, known=True, exhausted=False)

            later = when
            when -= self._step(elevation)

        return _BackwardScan(None, peak, known=False, exhausted=True)

    def _complete_pass(
        self, aos: Sample, peak: Sample, before_los: datetime, after_los: datetime
    ) -> bool:
        """
        Pin MaxEl and LOS of a pass and store it.

        Returns:
            Whether a pass is now cached for this window
        """
        max_el = refine_peak(self.elevation_at, peak, self._config.near_horizon_deg)
        if max_el.elevation_deg < self._observer.min_elevation_deg:
            logger.debug(
                f"Discarding pass at {aos.time}: max elevation {max_el.elevation_deg:.2f}° "
                f"below {self._observer.min_elevation_deg}°"
            )
            return False

        los = find_crossing(self.elevation_at, before_los, after_los, CrossingType.SETTING)
        if los is None:
            logger.debug(f"No LOS crossing between {before_los} and {after_los}")
            return False

        aos_event = self.event_at(aos.time, aos.elevation_deg)
        max_el_event = self.event_at(max_el.time, max_el.elevation_deg)
        los_event = self.event_at(los.time, los.elevation_deg)
        if aos_event is None or max_el_event is None or los_event is None:
            raise TargetLostError(los.time)

        self._add_pass(Pass.from_events(aos_event, max_el_event, los_event))
        return True

    def _scan(self, start: datetime, end: Optional[datetime]) -> Optional[datetime]:
        """
        Walk forward from ``start`` and complete every pass on the way.

        A pass whose AOS has been pinned is followed past the horizon to its
        LOS, for at most one more orbital horizon. A pass still open after
        that is left unexplored from its AOS on, and the AOS is returned as
        the instant reached.
        """
        horizon_minutes = self._search_horizon(start, end)
        horizon_end = start + timedelta(minutes=horizon_minutes)
        overrun_end = horizon_end + timedelta(minutes=self._period_horizon_minutes())

        elevation = self._sample(start)
        aos: Optional[Sample] = None
        peak: Optional[Sample] = None
        skipping = False
        ever_below = elevation < 0.0
        found = 0

        if elevation >= 0.0:
            backward = self._scan_backward(start, elevation)
            if backward.exhausted and self._covers_period(horizon_minutes):
                self._escalate_always_visible(backward.peak)
                return None
            aos, peak = backward.aos, backward.peak
            # Only passes whose AOS was pinned here are recorded
            skipping = aos is None

        when = start
        previous: Optional[datetime] = None
        while True:
            if elevation >= 0.0:
                if peak is None:
                    peak = Sample(when, elevation)
                    if previous is not None:
                        aos = find_crossing(self.elevation_at, previous, when, CrossingType.RISING)
                        skipping = aos is None
                elif elevation > peak.elevation_deg:
                    peak = Sample(when, elevation)
            else:
                ever_below = True
                if peak is not None:
                    if not skipping and aos is not None and previous is not None:
                        if self._complete_pass(aos, peak, previous, when):
                            found += 1
                            if end is None or when > end:
                                self._advance_watermark(when)
                                return when
                    aos = peak = None
                    skipping = False

            self._advance_watermark(when)
            previous = when
            when += self._step(elevation)
            if when > horizon_end:
                pass_open = peak is not None and aos is not None and not skipping
                if not pass_open or when > overrun_end:
                    break
            elevation = self._sample(when)

        if found == 0 and not self._passes and self._covers_period(horizon_minutes):
            if not ever_below and peak is not None:
                self._escalate_always_visible(peak)
                return None
            if peak is None:
                self._escalate_always_invisible()
                return None

        if peak is not None and aos is not None and not skipping:
            logger.debug(f"Pass rising at {aos.time} still open at {previous}, left unexplored")
            self._unexplored.add(aos.time, self._watermark)
            return aos.time

        return horizon_end
