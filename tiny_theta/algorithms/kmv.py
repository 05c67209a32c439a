"""
K-Minimum-Values (KMV) sketch for distinct counting.

A KMV sketch keeps the k smallest distinct hashed values seen. Its threshold is
not stored: once more than k distinct values have been offered it is inferred
as the largest retained value, and the cardinality is estimated as
k / theta - 1. Union keeps the k smallest values of both inputs and is the only
set operation that yields another KMV sketch; intersection and difference need
an explicit threshold, which is what to_theta_sketch() provides.

References:
    - Bar-Yossef, Z., Jayram, T. S., Kumar, R., Sivakumar, D., & Trevisan, L.
      (2002). Counting distinct elements in a data stream.
    - Beyer, K., Haas, P. J., Reinwald, B., Sismanis, Y., & Gemulla, R. (2007).
      On synopses for distinct-value estimation under multiset operations.
"""

import bisect
import logging
import math
import sys
from typing import Any, Dict, List, Optional, Set, Tuple

from tiny_theta.algorithms.theta.sketch import ThetaSketch, validate_capacity
from tiny_theta.core.base import CardinalityEstimator
from tiny_theta.core.domain import HashDomain
from tiny_theta.core.errors import (
    ConfigError,
    InvariantViolationError,
    MalformedHeaderError,
)

logger = logging.getLogger(__name__)


class KMVSketch(CardinalityEstimator[float]):
    """
    Bottom-k sketch over hashed values in [0, 1).

    Example:
        kmv = KMVSketch(k=64)
        for h in hashed_values:
            kmv.update(h)
        kmv.estimate()
        theta_sketch = kmv.to_theta_sketch()
    """

    def __init__(self, k: int = 256, memory_limit_bytes: Optional[int] = None):
        """
        Initialize an empty KMV sketch.

        Args:
            k: Number of minimum values kept. Must be >= 1.
            memory_limit_bytes: Optional maximum memory usage in bytes.

        Raises:
            ConfigError: If k is not a positive integer.
        """
        super().__init__(memory_limit_bytes)
        self._k = validate_capacity(k)
        self._values: List[float] = []
        self._members: Set[float] = set()
        # True once more than k distinct values have been offered
        self._saturated = False

    def update(self, item: float) -> None:
        """
        Offer a hashed value to the sketch.

        Args:
            item: A hashed value in [0, 1).

        Raises:
            DomainError: If item is outside [0, 1).
        """
        value = HashDomain.validate(item)
        if value in self._members:
            return

        if len(self._values) < self._k:
            bisect.insort(self._values, value)
            self._members.add(value)
            return

        self._saturated = True
        if value >= self._values[-1]:
            return

        bisect.insort(self._values, value)
        self._members.add(value)
        self._members.discard(self._values.pop())

    @property
    def k(self) -> int:
        """Number of minimum values kept."""
        return self._k

    @property
    def theta(self) -> float:
        """Inferred threshold: the k-th smallest value once saturated, else 1.0."""
        if self._saturated:
            return self._values[-1]
        return HashDomain.MAX

    def is_saturated(self) -> bool:
        """Return True if more than k distinct values have been offered."""
        return self._saturated

    def values(self) -> Tuple[float, ...]:
        """The retained values in ascending order."""
        return tuple(self._values)

    def estimate(self) -> float:
        """
        Estimate the number of distinct values offered.

        Returns:
            The exact count until saturation, then k / theta - 1. A zero
            inferred theta, which only a k=1 sketch holding 0.0 can reach,
            estimates 0.0.
        """
        if not self._saturated:
            return float(len(self._values))
        if self._values[-1] <= 0.0:
            return 0.0
        return self._k / self._values[-1] - 1

    def merge(self, other: "KMVSketch") -> "KMVSketch":
        """
        Union of two KMV sketches, keeping the smaller k.

        Raises:
            TypeError: If other is not a KMVSketch.
        """
        self._check_same_type(other)

        k = min(self._k, other._k)
        combined = sorted(self._members | other._members)
        result = KMVSketch(k=k, memory_limit_bytes=self._memory_limit_bytes)
        result._values = combined[:k]
        result._members = set(result._values)
        result._saturated = self._saturated or other._saturated or len(combined) > k
        return result

    def to_theta_sketch(self) -> ThetaSketch:
        """
        Convert to a theta sketch with an explicit threshold.

        An unsaturated sketch becomes an exact theta sketch of capacity k. A
        saturated one keeps its k-1 smallest values under theta = the k-th
        value, in a theta sketch of capacity k-1, whose estimate
        (k - 1) / theta is the unbiased form of the KMV estimator.

        Raises:
            ConfigError: If the sketch is saturated and k is 1.
        """
        if not self._saturated:
            return ThetaSketch._build(self._k, HashDomain.MAX, self._values)
        if self._k < 2:
            raise ConfigError("A saturated KMV sketch needs k >= 2 to carry a theta")

        logger.debug("Converting saturated KMV sketch (k=%d) to theta", self._k)
        return ThetaSketch._build(self._k - 1, self._values[-1], self._values[:-1])

    def to_dict(self) -> Dict[str, Any]:
        """Convert the sketch to a dictionary for serialization."""
        data = self._base_dict()
        data.update(
            {
                "k": self._k,
                "saturated": self._saturated,
                "values": list(self._values),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KMVSketch":
        """
        Create a KMV sketch from a dictionary representation.

        Raises:
            MalformedHeaderError: If a field is missing or k is invalid.
            InvariantViolationError: If the values cannot belong to a KMV sketch.
        """
        try:
            k = validate_capacity(data["k"])
            saturated = bool(data["saturated"])
            values = [HashDomain.validate(v) for v in data["values"]]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedHeaderError(f"Invalid KMV sketch data: {e}") from e

        if len(values) > k:
            raise InvariantViolationError(f"{len(values)} values exceed k={k}")
        if any(b <= a for a, b in zip(values, values[1:])):
            raise InvariantViolationError("Values are not strictly increasing")
        if saturated and len(values) != k:
            raise InvariantViolationError("A saturated KMV sketch must hold k values")

        sketch = cls(k=k, memory_limit_bytes=data.get("memory_limit_bytes"))
        sketch._values = values
        sketch._members = set(values)
        sketch._saturated = saturated
        return sketch

    def error_bounds(self) -> Dict[str, float]:
        """
        Relative standard error of the estimate, sqrt(1/k - 1/N).

        Zero until the sketch saturates, and 1.0 when a saturated sketch
        estimates zero.
        """
        bounds = super().error_bounds()
        estimate = self.estimate()
        if self._saturated and estimate <= 0.0:
            std_error = 1.0
        elif self._saturated:
            std_error = math.sqrt(max(0.0, 1.0 / self._k - 1.0 / estimate))
        else:
            std_error = 0.0
        bounds.update(
            {
                "relative_error": std_error,
                "confidence_68pct": std_error,
                "confidence_95pct": std_error * 1.96,
                "confidence_99pct": std_error * 2.58,
            }
        )
        return bounds

    def get_stats(self) -> Dict[str, Any]:
        """Statistics including k, the inferred theta and saturation."""
        stats = super().get_stats()
        stats.update(
            {
                "k": self._k,
                "theta": self.theta,
                "saturated": self._saturated,
                "retained": len(self._values),
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

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(k={self._k}, retained={len(self._values)}, "
            f"saturated={self._saturated})"
        )
