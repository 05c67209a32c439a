"""
tiny-theta - Composable Distinct Counting

tiny-theta is a Python library for estimating the number of distinct keys in
data streams with bounded memory, using theta sketches whose union,
intersection and difference are themselves sketches.
"""

__version__ = "0.1.0"

# Import main classes to make them available at the top level
from tiny_theta.algorithms.kmv import KMVSketch
from tiny_theta.algorithms.theta import (
    IntersectionAccumulator,
    Mode,
    ThetaSketch,
    UnionAccumulator,
    deserialize,
    difference,
    intersection,
    serialize,
    union,
)
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
    # Core base classes
    "StreamSummary",
    "CardinalityEstimator",
    "HashDomain",
    # Sketches and set operations
    "Mode",
    "ThetaSketch",
    "KMVSketch",
    "UnionAccumulator",
    "IntersectionAccumulator",
    "union",
    "intersection",
    "difference",
    "serialize",
    "deserialize",
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
