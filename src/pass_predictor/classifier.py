"""
One-shot visibility classification of a satellite/observer pair.
"""

from datetime import datetime
from typing import NamedTuple, Optional
import logging

from .models import VisibilityType
from .observer import ObserverSite
from .orbit import OrbitOracle
from .root_finder import Sample

logger = logging.getLogger(__name__)


class Classification(NamedTuple):
    visibility: VisibilityType
    # Elevation at the reference instant, set for an always-visible satellite
    sample: Optional[Sample] = None
    # Long-period satellites need one exploration to detect the
    # always-visible/always-invisible high orbit cases
    needs_exploration: bool = False


def classify_visibility(
    oracle: OrbitOracle, observer: ObserverSite, reference: datetime
) -> Classification:
    """
    Classify how a satellite is seen from an observer.

    A geostationary satellite is always visible when its elevation at the
    reference instant reaches the observer's minimum elevation, otherwise
    always invisible. Everything else is variable. A lost target on the
    first sample is treated permissively as variable.

    Args:
        oracle: Orbit model of the satellite
        observer: Ground station
        reference: Instant to sample

    Returns:
        Classification
    """
    if not oracle.is_geostationary():
        return Classification(VisibilityType.VARIABLE, needs_exploration=oracle.is_long_period())

    elevation = oracle.elevation_at(reference, observer)
    if elevation is None:
        logger.warning(f"Target lost while classifying visibility from {observer} at {reference}")
        return Classification(VisibilityType.VARIABLE)

    if elevation >= observer.min_elevation_deg:
        return Classification(VisibilityType.ALWAYS_VISIBLE, sample=Sample(reference, elevation))
    return Classification(VisibilityType.ALWAYS_INVISIBLE)
