"""
Theta Sketch for distinct counting with composable set operations.

A theta sketch keeps the smallest distinct hashed values it has seen, up to a
fixed capacity k, together with an explicit threshold theta. Every retained
value is strictly below theta, and once the sketch has had to evict values,
theta is the smallest value it evicted. Because theta is stored rather than
inferred from the retained values, the result of a union, intersection or
difference is itself a theta sketch that can be fed to further operations.

References:
    - Bar-Yossef, Z., Jayram, T. S., Kumar, R., Sivakumar, D., & Trevisan, L.
      (2002). Counting distinct elements in a data stream.
    - Dasgupta, A., Lang, K., Rhodes, L., & Thaler, J. (2016). A framework for
      estimating stream expression cardinalities.
"""

import bisect
import enum
import logging
import math
import sys
from numbers import Real
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from tiny_theta.core.base import CardinalityEstimator
from tiny_theta.core.domain import HashDomain
from tiny_theta.core.errors import (
    ConfigError,
    DegenerateStateError,
    InvariantViolationError,
    MalformedHeaderError,
)

logger = logging.getLogger(__name__)


class Mode(enum.Enum):
    """State of a theta sketch. The values double as wire tags."""

    EMPTY = 0
    EXACT = 1
    ESTIMATING = 2

    @classmethod
    def derive(cls, theta: float, count: int) -> "Mode":
        """Mode implied by a threshold and a retained count."""
        if theta < HashDomain.MAX:
            return cls.ESTIMATING
        return cls.EXACT if count > 0 else cls.EMPTY


# Capacity is stored as an unsigned 32-bit field on the wire
MAX_CAPACITY = 0xFFFFFFFF

# z-scores used for the confidence bounds, keyed by number of standard deviations
_Z_SCORES = {1: 1.0, 2: 1.96, 3: 2.58}


def validate_capacity(capacity: Any) -> int:
    """Return capacity if it is an int in [1, MAX_CAPACITY], else raise ConfigError."""
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        raise ConfigError(
            f"Capacity must be an integer, got {type(capacity).__name__}"
        )
    if capacity < 1:
        raise ConfigError(f"Capacity must be at least 1, got {capacity}")
    if capacity > MAX_CAPACITY:
        raise ConfigError(f"Capacity must be at most {MAX_CAPACITY}, got {capacity}")
    return capacity


class ThetaSketch(CardinalityEstimator[float]):
    """
    Theta sketch over hashed values in [0, 1).

    The sketch is built by inserting already-hashed values. It stays in exact
    mode, counting every distinct value, until more than `capacity` distinct
    values have been offered; from then on it keeps the `capacity` smallest
    values and estimates the cardinality as count / theta.

    Example:
        sketch = ThetaSketch.with_capacity(1024)
        for h in hashed_values:
            sketch.insert(h)
        sketch.estimate()

    Sketches returned by set operations compare equal to sketches built by
    insertion when their capacity, theta and retained values agree.
    """

    DEFAULT_CAPACITY = 4096

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        memory_limit_bytes: Optional[int] = None,
    ):
        """
        Initialize an empty theta sketch.

        Args:
            capacity: Maximum number of values retained (k). Must be >= 1.
            memory_limit_bytes: Optional maximum memory usage in bytes.

        Raises:
            ConfigError: If capacity is not a positive integer.
        """
        super().__init__(memory_limit_bytes)
        self._capacity = validate_capacity(capacity)
        self._theta = HashDomain.MAX
        # Sorted ascending; _members mirrors it for O(1) duplicate checks
        self._values: List[float] = []
        self._members: Set[float] = set()

    @classmethod
    def with_capacity(cls, capacity: int) -> "ThetaSketch":
        """Create an empty sketch retaining at most `capacity` values."""
        return cls(capacity=capacity)

    @classmethod
    def _build(
        cls,
        capacity: int,
        theta: float,
        values: Iterable[float],
        memory_limit_bytes: Optional[int] = None,
    ) -> "ThetaSketch":
        """
        Assemble a sketch from parts that already satisfy the invariants.

        Used by the set operations; `values` must be distinct, ascending and
        below theta, and at most `capacity` long.
        """
        sketch = cls(capacity=capacity, memory_limit_bytes=memory_limit_bytes)
        sketch._theta = theta
        sketch._values = list(values)
        sketch._members = set(sketch._values)
        return sketch

    @classmethod
    def from_state(
        cls,
        capacity: Any,
        theta: Any,
        values: Iterable[Any],
        mode: Optional[Mode] = None,
    ) -> "ThetaSketch":
        """
        Rebuild a sketch from untrusted parts, checking every invariant.

        Args:
            capacity: The sketch capacity.
            theta: The threshold, in (0, 1].
            values: Retained values, strictly increasing and below theta.
            mode: Optional declared mode, checked against theta and count.

        Returns:
            The rebuilt sketch.

        Raises:
            MalformedHeaderError: If capacity or theta are out of range.
            InvariantViolationError: If the values or mode are inconsistent.
        """
        try:
            capacity = validate_capacity(capacity)
        except ConfigError as e:
            raise MalformedHeaderError(str(e)) from e

        if isinstance(theta, bool) or not isinstance(theta, Real):
            raise MalformedHeaderError(f"Theta must be a number, got {theta!r}")
        theta = float(theta)
        if math.isnan(theta) or not (0.0 < theta <= HashDomain.MAX):
            raise MalformedHeaderError(f"Theta {theta!r} is outside (0, 1]")

        try:
            values = list(values)
        except TypeError as e:
            raise MalformedHeaderError(f"Retained values are not a sequence: {e}") from e
        if len(values) > capacity:
            raise InvariantViolationError(
                f"{len(values)} retained values exceed capacity {capacity}"
            )

        previous = None
        for value in values:
            if isinstance(value, bool) or not isinstance(value, Real):
                raise InvariantViolationError(
                    f"Retained value {value!r} is not a number"
                )
            if not (HashDomain.MIN <= value < theta):
                raise InvariantViolationError(
                    f"Retained value {value!r} is outside [0, {theta!r})"
                )
            if previous is not None and not previous < value:
                raise InvariantViolationError(
                    "Retained values are not strictly increasing"
                )
            previous = value

        expected = Mode.derive(theta, len(values))
        if mode is not None and mode is not expected:
            raise InvariantViolationError(
                f"Declared mode {mode.name} does not match state ({expected.name})"
            )

        return cls._build(capacity, theta, [float(v) + 0.0 for v in values])

    def insert(self, value: float) -> None:
        """
        Offer a hashed value to the sketch.

        Values at or above theta and values already retained are ignored. When
        the sketch grows past its capacity, the largest retained value is
        evicted and becomes the new theta.

        Args:
            value: A hashed value in [0, 1).

        Raises:
            DomainError: If value is outside [0, 1). The sketch is unchanged.
        """
        value = HashDomain.validate(value)

        if not HashDomain.below(value, self._theta) or value in self._members:
            return

        bisect.insort(self._values, value)
        self._members.add(value)

        if len(self._values) > self._capacity:
            evicted = self._values.pop()
            self._members.discard(evicted)
            if HashDomain.is_max(self._theta):
                logger.debug(
                    "Theta sketch (k=%d) entered estimation mode at theta=%r",
                    self._capacity,
                    evicted,
                )
            self._theta = evicted

    def update(self, item: float) -> None:
        """Alias for insert(), matching the stream summary interface."""
        self.insert(item)

    def estimate(self) -> float:
        """
        Estimate the number of distinct values inserted.

        Returns:
            0.0 when empty, the exact count in exact mode, and count / theta
            in estimating mode.

        Raises:
            DegenerateStateError: If theta is not positive.
        """
        if self._theta <= 0.0:
            raise DegenerateStateError(
                f"Cannot estimate with theta={self._theta!r} "
                f"and {len(self._values)} retained values"
            )

        mode = self.mode
        if mode is Mode.EMPTY:
            return 0.0
        if mode is Mode.EXACT:
            return float(len(self._values))
        return len(self._values) / self._theta

    @property
    def mode(self) -> Mode:
        """The current mode, derived from theta and the retained count."""
        return Mode.derive(self._theta, len(self._values))

    @property
    def capacity(self) -> int:
        """Maximum number of retained values."""
        return self._capacity

    @property
    def theta(self) -> float:
        """The inclusion threshold."""
        return self._theta

    def retained_values(self) -> Tuple[float, ...]:
        """The retained values in ascending order."""
        return tuple(self._values)

    def is_empty(self) -> bool:
        """Return True if the sketch has never accepted a value."""
        return self.mode is Mode.EMPTY

    def is_estimation_mode(self) -> bool:
        """Return True if the sketch only holds a sample of its input."""
        return self.mode is Mode.ESTIMATING

    def copy(self) -> "ThetaSketch":
        """Return an independent sketch with the same content."""
        return self._build(
            self._capacity, self._theta, self._values, self._memory_limit_bytes
        )

    def merge(self, other: "ThetaSketch") -> "ThetaSketch":
        """
        Return the union of this sketch and another.

        The result capacity is the smaller of the two capacities.

        Raises:
            TypeError: If other is not a ThetaSketch.
        """
        from tiny_theta.algorithms.theta.union import UnionAccumulator

        self._check_same_type(other)
        accumulator = UnionAccumulator()
        accumulator.accumulate(self)
        accumulator.accumulate(other)
        return accumulator.finish()

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(tuple(self._values))

    def __contains__(self, value: object) -> bool:
        return value in self._members

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ThetaSketch):
            return NotImplemented
        return (
            self._capacity == other._capacity
            and self._theta == other._theta
            and self._values == other._values
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(capacity={self._capacity}, "
            f"theta={self._theta!r}, retained={len(self._values)}, "
            f"mode={self.mode.name})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the sketch to a dictionary for serialization.

        Returns:
            A dictionary representation of the sketch.
        """
        data = self._base_dict()
        data.update(
            {
                "capacity": self._capacity,
                "theta": self._theta,
                "mode": self.mode.name,
                "values": list(self._values),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThetaSketch":
        """
        Create a sketch from a dictionary representation.

        The dictionary is validated like a wire payload.

        Raises:
            MalformedHeaderError: If a field is missing or out of range.
            InvariantViolationError: If the described sketch cannot exist.
        """
        try:
            capacity = data["capacity"]
            theta = data["theta"]
            values = data["values"]
            mode_name = data.get("mode")
        except (KeyError, TypeError) as e:
            raise MalformedHeaderError(f"Missing sketch field: {e}") from e

        mode = None
        if mode_name is not None:
            try:
                mode = Mode[mode_name]
            except KeyError as e:
                raise MalformedHeaderError(f"Unknown mode {mode_name!r}") from e

        sketch = cls.from_state(capacity, theta, values, mode)
        sketch._memory_limit_bytes = data.get("memory_limit_bytes")
        return sketch

    def to_bytes(self) -> bytes:
        """Encode the sketch with the binary wire codec."""
        from tiny_theta.algorithms.theta import codec

        return codec.serialize(self)

    @classmethod
    def from_bytes(cls, data: bytes) -> "ThetaSketch":
        """Decode a sketch produced by to_bytes()."""
        from tiny_theta.algorithms.theta import codec

        return codec.deserialize(data)

    @classmethod
    def create_from_error_rate(
        cls,
        relative_error: float,
        memory_limit_bytes: Optional[int] = None,
    ) -> "ThetaSketch":
        """
        Create a sketch sized for a target relative standard error.

        The relative standard error of a theta sketch is about 1/sqrt(k), so
        the capacity is ceil(1 / relative_error**2).

        Args:
            relative_error: Target relative standard error, between 0 and 1.
            memory_limit_bytes: Optional maximum memory usage in bytes.

        Raises:
            ConfigError: If relative_error is not between 0 and 1.
        """
        if not (0 < relative_error < 1):
            raise ConfigError("Relative error must be between 0 and 1")

        capacity = math.ceil(1.0 / (relative_error**2))
        return cls(capacity=capacity, memory_limit_bytes=memory_limit_bytes)

    @classmethod
    def create_from_memory_limit(cls, memory_bytes: int) -> "ThetaSketch":
        """
        Create the largest sketch whose wire encoding fits in memory_bytes.

        Raises:
            ConfigError: If not even a capacity-1 sketch fits.
        """
        from tiny_theta.algorithms.theta import codec

        capacity = (memory_bytes - codec.HEADER_SIZE) // codec.VALUE_SIZE
        if capacity < 1:
            raise ConfigError(
                f"Memory limit of {memory_bytes} bytes is too small; a sketch "
                f"needs at least {codec.HEADER_SIZE + codec.VALUE_SIZE} bytes"
            )
        return cls(capacity=capacity, memory_limit_bytes=memory_bytes)

    def error_bounds(self) -> Dict[str, float]:
        """
        Relative standard error of the current estimate.

        In estimating mode with n retained values the relative standard error
        is sqrt(1/n - 1/N) = sqrt((1 - theta) / n), where N = n / theta. It is
        0 in exact and empty mode and 1 when nothing survived below theta.

        Returns:
            relative_error plus confidence_68pct, confidence_95pct and
            confidence_99pct.
        """
        bounds = super().error_bounds()

        n = len(self._values)
        if self.mode is not Mode.ESTIMATING:
            std_error = 0.0
        elif n == 0:
            std_error = 1.0
        else:
            std_error = math.sqrt((1.0 - self._theta) / n)

        bounds.update(
            {
                "relative_error": std_error,
                "confidence_68pct": std_error * _Z_SCORES[1],
                "confidence_95pct": std_error * _Z_SCORES[2],
                "confidence_99pct": std_error * _Z_SCORES[3],
            }
        )
        return bounds

    def _z_score(self, num_std: int) -> float:
        try:
            return _Z_SCORES[num_std]
        except KeyError:
            raise ValueError("num_std must be 1, 2 or 3") from None

    def lower_bound(self, num_std: int = 2) -> float:
        """
        Approximate lower confidence bound on the distinct count.

        Never below the number of retained values, which are known to exist.
        """
        z = self._z_score(num_std)
        estimate = self.estimate()
        rse = self.error_bounds()["relative_error"]
        return max(float(len(self._values)), estimate * (1.0 - z * rse))

    def upper_bound(self, num_std: int = 2) -> float:
        """Approximate upper confidence bound on the distinct count."""
        z = self._z_score(num_std)
        estimate = self.estimate()
        rse = self.error_bounds()["relative_error"]
        return estimate * (1.0 + z * rse)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the sketch.

        Returns:
            A dictionary with capacity, theta, mode, retained count, the
            estimate, memory usage and error bounds.
        """
        stats = super().get_stats()
        stats.update(
            {
                "capacity": self._capacity,
                "theta": self._theta,
                "mode": self.mode.name,
                "retained": len(self._values),
                "fill_pct": len(self._values) / self._capacity * 100,
            }
        )
        return stats

    def estimate_size(self) -> int:
        """Estimate the memory usage of the sketch in bytes."""
        size = super().estimate_size()
        size += sys.getsizeof(self._values)
        size += sys.getsizeof(self._members)
        size += len(self._values) * sys.getsizeof(0.0)
        return size
