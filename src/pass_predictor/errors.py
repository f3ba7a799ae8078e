"""
Exception types raised by the pass prediction engine.
"""


class PassPredictionError(Exception):
    """Base class for pass prediction errors."""


class TargetLostError(PassPredictionError):
    """
    Raised when the orbit propagator cannot produce a sample.

    The satellite has decayed or the propagation diverged. The condition is
    treated as permanent for the lifetime of a cache.
    """

    def __init__(self, when) -> None:
        self.when = when
        super().__init__(f"Target lost at {when}")


class InvalidRangeError(PassPredictionError, ValueError):
    """Raised when a query range is reversed or lies entirely in the past."""


class ConfigError(PassPredictionError):
    """Raised when a configuration file cannot be parsed."""
