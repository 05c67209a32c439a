"""
Set difference (A and not B) of two theta sketches.
"""

import logging

from tiny_theta.algorithms.theta.sketch import ThetaSketch
from tiny_theta.core.domain import HashDomain

logger = logging.getLogger(__name__)


def difference(a: ThetaSketch, b: ThetaSketch) -> ThetaSketch:
    """
    Sketch of the values in `a` that are not in `b`.

    Both sketches are cut at the smaller of their thresholds; the result
    carries that threshold and the capacity of `a`. The operation is neither
    symmetric nor associative, so it is only defined pairwise.

    Args:
        a: The sketch to subtract from.
        b: The sketch to subtract.

    Returns:
        A new sketch for A and not B.

    Raises:
        TypeError: If either argument is not a ThetaSketch.
    """
    for sketch in (a, b):
        if not isinstance(sketch, ThetaSketch):
            raise TypeError(
                f"Cannot take a theta difference of {sketch.__class__.__name__}"
            )

    theta = min(a.theta, b.theta)
    values = [
        value
        for value in a.retained_values()
        if HashDomain.below(value, theta) and value not in b
    ]
    logger.debug(
        "Difference finished: %d of %d values kept, theta=%r", len(values), len(a), theta
    )
    return ThetaSketch._build(a.capacity, theta, values)
