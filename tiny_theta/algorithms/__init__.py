"""
Algorithm implementations for TinyTheta.
"""

from tiny_theta.algorithms.kmv import KMVSketch
from tiny_theta.algorithms.theta import (
    IntersectionAccumulator,
    ThetaSketch,
    UnionAccumulator,
    difference,
    intersection,
    union,
)

__all__ = [
    "ThetaSketch",
    "KMVSketch",
    "UnionAccumulator",
    "IntersectionAccumulator",
    "union",
    "intersection",
    "difference",
]
