"""
Streaming union of theta sketches.

The union accumulator folds any number of sketches, and optionally raw hashed
values, into one sketch. The result is the sketch that direct insertion of
every distinct input value into a single sketch of the result capacity would
have produced. Union is associative and commutative, so partial unions built by
independent accumulators can be combined by a further union.
"""

import bisect
import logging
from typing import List, Optional, Set

from tiny_theta.algorithms.theta.sketch import ThetaSketch, validate_capacity
from tiny_theta.core.domain import HashDomain
from tiny_theta.core.errors import AccumulatorFinishedError, ConfigError

logger = logging.getLogger(__name__)


class UnionAccumulator:
    """
    Single-use builder for the union of theta sketches.

    Example:
        acc = UnionAccumulator()
        acc.accumulate(sketch_a)
        acc.accumulate(sketch_b)
        result = acc.finish()

    With an explicit capacity the result keeps at most that many values. Without
    one, the result capacity is the smallest capacity among the accumulated
    sketches. The accumulator is not thread-safe, and finish() may be called
    only once.
    """

    def __init__(self, capacity: Optional[int] = None):
        """
        Initialize an empty union.

        Args:
            capacity: Result capacity, or None to use the smallest input capacity.

        Raises:
            ConfigError: If capacity is given and is not a positive integer.
        """
        if capacity is not None:
            capacity = validate_capacity(capacity)
        self._fixed_capacity = capacity is not None
        self._capacity = capacity
        self._theta = HashDomain.MAX
        self._values: List[float] = []
        self._members: Set[float] = set()
        self._inputs = 0
        self._finished = False

    @property
    def theta(self) -> float:
        """The current running threshold."""
        return self._theta

    @property
    def capacity(self) -> Optional[int]:
        """The current result capacity, None until it is known."""
        return self._capacity

    def _check_open(self) -> None:
        if self._finished:
            raise AccumulatorFinishedError("Union accumulator has already finished")

    def _insert(self, value: float) -> None:
        if not HashDomain.below(value, self._theta) or value in self._members:
            return
        bisect.insort(self._values, value)
        self._members.add(value)
        self._trim()

    def _trim(self) -> None:
        """Evict the largest values until the capacity holds, lowering theta."""
        while len(self._values) > self._capacity:
            removed = self._values.pop()
            self._members.discard(removed)
            # Evicting a stale value at or above theta leaves theta unchanged
            self._theta = min(self._theta, removed)

    def accumulate(self, sketch: ThetaSketch) -> None:
        """
        Fold a sketch into the union. The sketch is not modified.

        Args:
            sketch: The sketch to add.

        Raises:
            TypeError: If sketch is not a ThetaSketch.
            AccumulatorFinishedError: If finish() was already called.
        """
        self._check_open()
        if not isinstance(sketch, ThetaSketch):
            raise TypeError(
                f"Cannot accumulate {sketch.__class__.__name__} into a theta union"
            )

        self._inputs += 1
        if not self._fixed_capacity:
            if self._capacity is None or sketch.capacity < self._capacity:
                if self._capacity is not None:
                    logger.debug(
                        "Union capacity lowered from %d to %d",
                        self._capacity,
                        sketch.capacity,
                    )
                self._capacity = sketch.capacity
                self._trim()

        self._theta = min(self._theta, sketch.theta)
        for value in sketch.retained_values():
            if not HashDomain.below(value, self._theta):
                # Retained values are ascending, nothing further can qualify
                break
            self._insert(value)

    def update(self, value: float) -> None:
        """
        Fold a single raw hashed value into the union.

        Raises:
            DomainError: If value is outside [0, 1).
            ConfigError: If the result capacity is not known yet.
            AccumulatorFinishedError: If finish() was already called.
        """
        self._check_open()
        if self._capacity is None:
            raise ConfigError(
                "Union capacity is unknown; pass a capacity or accumulate a sketch first"
            )
        self._insert(HashDomain.validate(value))
        self._inputs += 1

    def finish(self) -> ThetaSketch:
        """
        Produce the union sketch and close the accumulator.

        Values admitted under an earlier, looser threshold are filtered out
        against the final theta.

        Returns:
            The union as a new sketch.

        Raises:
            ConfigError: If no capacity was given and nothing was accumulated.
            AccumulatorFinishedError: If finish() was already called.
        """
        self._check_open()
        if self._capacity is None:
            raise ConfigError("Cannot finish a union with no capacity and no inputs")
        self._finished = True

        self._trim()
        cut = bisect.bisect_left(self._values, self._theta)
        values = self._values[:cut]

        result = ThetaSketch._build(self._capacity, self._theta, values)
        logger.debug(
            "Union of %d inputs finished: %d values, theta=%r",
            self._inputs,
            len(values),
            self._theta,
        )

        self._values = []
        self._members = set()
        return result


def union(*sketches: ThetaSketch, capacity: Optional[int] = None) -> ThetaSketch:
    """
    Union of any number of theta sketches.

    Args:
        *sketches: The sketches to combine.
        capacity: Result capacity, or None for the smallest input capacity.

    Returns:
        The union sketch.
    """
    accumulator = UnionAccumulator(capacity=capacity)
    for sketch in sketches:
        accumulator.accumulate(sketch)
    return accumulator.finish()
