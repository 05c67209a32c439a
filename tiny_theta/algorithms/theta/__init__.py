"""
Theta sketch implementations for TinyTheta.

This includes:
- ThetaSketch: distinct-count sketch with an explicit threshold
- UnionAccumulator / union: streaming union
- IntersectionAccumulator / intersection: streaming intersection
- difference: A and not B
- serialize / deserialize: the binary wire codec
"""

from tiny_theta.algorithms.theta.codec import deserialize, serialize
from tiny_theta.algorithms.theta.difference import difference
from tiny_theta.algorithms.theta.intersection import (
    IntersectionAccumulator,
    intersection,
)
from tiny_theta.algorithms.theta.sketch import Mode, ThetaSketch
from tiny_theta.algorithms.theta.union import UnionAccumulator, union

__all__ = [
    "Mode",
    "ThetaSketch",
    "UnionAccumulator",
    "union",
    "IntersectionAccumulator",
    "intersection",
    "difference",
    "serialize",
    "deserialize",
]
