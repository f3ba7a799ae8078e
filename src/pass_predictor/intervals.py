"""
Bookkeeping of time ranges the pass search has not explored yet.
"""

from datetime import datetime, timedelta
from typing import Iterator, List

from .errors import InvalidRangeError
from .models import TimeInterval


def validate_range(start: datetime, end: datetime, reference: datetime) -> None:
    """
    Check a query range.

    Raises:
        InvalidRangeError: If the range is reversed or ends before the reference instant
    """
    if end <= start:
        raise InvalidRangeError(f"Query end {end} is not after start {start}")
    if end <= reference:
        raise InvalidRangeError(f"Query end {end} is not after reference time {reference}")


class UnexploredIntervals:
    """
    Set of disjoint unexplored time intervals.

    Adding an interval merges it with any interval it touches; removing a
    range trims or splits the intervals it covers.
    """

    def __init__(self) -> None:
        self._intervals: List[TimeInterval] = []

    def __iter__(self) -> Iterator[TimeInterval]:
        return iter(list(self._intervals))

    def __len__(self) -> int:
        return len(self._intervals)

    def __repr__(self) -> str:
        return f"UnexploredIntervals({self._intervals!r})"

    def add(self, start: datetime, end: datetime) -> None:
        if start >= end:
            return
        merged_start, merged_end = start, end
        kept = []
        for interval in self._intervals:
            if interval.end < merged_start or interval.start > merged_end:
                kept.append(interval)
            else:
                merged_start = min(merged_start, interval.start)
                merged_end = max(merged_end, interval.end)
        kept.append(TimeInterval(merged_start, merged_end))
        self._intervals = sorted(kept, key=lambda interval: interval.start)

    def remove(self, start: datetime, end: datetime) -> None:
        """Mark ``[start, end]`` as explored."""
        if start >= end:
            return
        remaining = []
        for interval in self._intervals:
            if not interval.overlaps(start, end):
                remaining.append(interval)
                continue
            if interval.start < start:
                remaining.append(TimeInterval(interval.start, start))
            if end < interval.end:
                remaining.append(TimeInterval(end, interval.end))
        self._intervals = remaining

    def total_duration(self) -> timedelta:
        return sum((interval.duration for interval in self._intervals), timedelta())

    def overlapping(self, start: datetime, end: datetime) -> List[TimeInterval]:
        """Unexplored parts of ``[start, end)``, in chronological order."""
        clipped = []
        for interval in self._intervals:
            part = interval.intersection(start, end)
            if part is not None:
                clipped.append(part)
        return clipped

    def prune(self, before: datetime) -> None:
        """Forget everything earlier than ``before``."""
        self._intervals = [
            TimeInterval(max(interval.start, before), interval.end)
            for interval in self._intervals
            if interval.end > before
        ]

    def clear(self) -> None:
        self._intervals = []
