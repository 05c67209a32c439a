"""
Core functionality for TinyTheta.
"""

from tiny_theta.core.base import CardinalityEstimator, StreamSummary
from tiny_theta.core.domain import HashDomain
from tiny_theta.core.errors import (
    AccumulatorFinishedError,
    ConfigError,
    DegenerateStateError,
    DomainError,
    EmptyOperationError,
    FormatError,
    InvariantViolationError,
    MalformedHeaderError,
    ThetaSketchError,
    TrailingDataError,
)

__all__ = [
    # Base classes
    "StreamSummary",
    "CardinalityEstimator",
    # Hash domain
    "HashDomain",
    # Errors
    "ThetaSketchError",
    "ConfigError",
    "DomainError",
    "DegenerateStateError",
    "EmptyOperationError",
    "AccumulatorFinishedError",
    "FormatError",
    "MalformedHeaderError",
    "InvariantViolationError",
    "TrailingDataError",
]
