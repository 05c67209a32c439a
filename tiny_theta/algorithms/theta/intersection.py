"""
Streaming intersection of theta sketches.

The first accumulated sketch seeds the candidate values; every further sketch
lowers the running theta to the smallest threshold seen and keeps only the
candidates it also retains. A value that falls out never comes back. The
result carries the running theta, so it remains a sketch with a correct
threshold and can be used in further set operations.
"""

import bisect
import logging
from typing import List, Optional

from tiny_theta.algorithms.theta.sketch import ThetaSketch
from tiny_theta.core.domain import HashDomain
from tiny_theta.core.errors import AccumulatorFinishedError, EmptyOperationError

logger = logging.getLogger(__name__)


class IntersectionAccumulator:
    """
    Single-use builder for the intersection of theta sketches.

    The result does not depend on the order of accumulation. The accumulator
    is not thread-safe, and finish() may be called only once.
    """

    def __init__(self):
        self._theta = HashDomain.MAX
        self._capacity: Optional[int] = None
        # Ascending values retained by every input so far
        self._candidates: List[float] = []
        self._inputs = 0
        self._finished = False

    @property
    def theta(self) -> float:
        """The current running threshold."""
        return self._theta

    @property
    def inputs(self) -> int:
        """Number of sketches accumulated so far."""
        return self._inputs

    def accumulate(self, sketch: ThetaSketch) -> None:
        """
        Narrow the intersection by another sketch. The sketch is not modified.

        Args:
            sketch: The sketch to intersect with.

        Raises:
            TypeError: If sketch is not a ThetaSketch.
            AccumulatorFinishedError: If finish() was already called.
        """
        if self._finished:
            raise AccumulatorFinishedError(
                "Intersection accumulator has already finished"
            )
        if not isinstance(sketch, ThetaSketch):
            raise TypeError(
                f"Cannot accumulate {sketch.__class__.__name__} "
                "into a theta intersection"
            )

        self._theta = min(self._theta, sketch.theta)
        if self._capacity is None or sketch.capacity < self._capacity:
            self._capacity = sketch.capacity
        self._inputs += 1

        if self._inputs == 1:
            self._candidates = list(sketch.retained_values())
            return

        survivors: List[float] = []
        for value in self._candidates:
            if not HashDomain.below(value, self._theta):
                break
            if value in sketch:
                survivors.append(value)
        self._candidates = survivors

    def finish(self) -> ThetaSketch:
        """
        Produce the intersection sketch and close the accumulator.

        Returns:
            A sketch of the common values below the final theta. With a single
            input this is an equal copy of that input.

        Raises:
            EmptyOperationError: If no sketch was accumulated.
            AccumulatorFinishedError: If finish() was already called.
        """
        if self._finished:
            raise AccumulatorFinishedError(
                "Intersection accumulator has already finished"
            )
        if self._capacity is None:
            raise EmptyOperationError("Intersection requires at least one sketch")
        self._finished = True

        cut = bisect.bisect_left(self._candidates, self._theta)
        values = self._candidates[:cut]
        logger.debug(
            "Intersection of %d inputs finished: %d values, theta=%r",
            self._inputs,
            len(values),
            self._theta,
        )

        result = ThetaSketch._build(self._capacity, self._theta, values)
        self._candidates = []
        return result


def intersection(*sketches: ThetaSketch) -> ThetaSketch:
    """
    Intersection of one or more theta sketches.

    Raises:
        EmptyOperationError: If no sketch is given.
    """
    accumulator = IntersectionAccumulator()
    for sketch in sketches:
        accumulator.accumulate(sketch)
    return accumulator.finish()
