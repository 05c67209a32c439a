"""
Base classes and interfaces for TinyTheta summaries.

This module defines the abstract base classes that every distinct-count
summary implements, so sketches of different kinds share one interface for
updating, querying, merging, serializing and reporting statistics.
"""

import abc
import json
import sys
from typing import Any, Dict, Generic, Optional, TypeVar, Union

T = TypeVar("T")  # Type for the items being processed
R = TypeVar("R")  # Type for the result of queries

S = TypeVar("S", bound="StreamSummary")


class StreamSummary(Generic[T, R], abc.ABC):
    """
    Abstract base class for all stream summaries.

    A summary is fed items one at a time through update(), answers queries
    through query(), and can be combined with another summary of the same type
    through merge(). Summaries round-trip through a dictionary representation,
    which backs the JSON format; subclasses with a dedicated byte layout
    override to_bytes()/from_bytes() to back the binary format.
    """

    def __init__(self, memory_limit_bytes: Optional[int] = None):
        """
        Initialize a new stream summary.

        Args:
            memory_limit_bytes: Optional maximum memory usage in bytes.
                                None means no explicit limit.
        """
        self._memory_limit_bytes = memory_limit_bytes

    @abc.abstractmethod
    def update(self, item: T) -> None:
        """
        Update the summary with a new item from the stream.

        Args:
            item: The new item to process.
        """

    @abc.abstractmethod
    def query(self, *args: Any, **kwargs: Any) -> R:
        """
        Query the current state of the summary.

        Returns:
            The result of the query, which depends on the specific summary.
        """

    @abc.abstractmethod
    def merge(self: S, other: S) -> S:
        """
        Merge this summary with another of the same type.

        Neither input is modified.

        Args:
            other: Another stream summary of the same type.

        Returns:
            A new merged stream summary.

        Raises:
            TypeError: If other is not of the same type.
        """

    def _check_same_type(self, other: "StreamSummary[T, R]") -> None:
        """
        Check that another summary is of the same type.

        Args:
            other: Another stream summary to check.

        Raises:
            TypeError: If other is not of the same type.
        """
        if not isinstance(other, self.__class__):
            raise TypeError(
                f"Cannot combine {self.__class__.__name__} "
                f"with {other.__class__.__name__}"
            )

    @abc.abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the summary to a dictionary for serialization.

        Returns:
            A dictionary representation of the summary.
        """

    def _base_dict(self) -> Dict[str, Any]:
        """Dictionary entries common to all summaries."""
        return {
            "type": self.__class__.__name__,
            "memory_limit_bytes": self._memory_limit_bytes,
        }

    @classmethod
    @abc.abstractmethod
    def from_dict(cls: "type[S]", data: Dict[str, Any]) -> S:
        """
        Create a summary from a dictionary representation.

        Args:
            data: The dictionary containing the summary state.

        Returns:
            A new stream summary initialized with the given state.
        """

    def to_bytes(self) -> bytes:
        """
        Encode the summary as bytes.

        The default encoding is UTF-8 JSON of to_dict().
        """
        return json.dumps(self.to_dict()).encode("utf-8")

    @classmethod
    def from_bytes(cls: "type[S]", data: bytes) -> S:
        """Decode a summary produced by to_bytes()."""
        return cls.from_dict(json.loads(data.decode("utf-8")))

    def serialize(self, format: str = "json") -> Union[str, bytes]:
        """
        Serialize the summary to a string or bytes.

        Args:
            format: The serialization format ('json' or 'binary').

        Returns:
            A JSON string for 'json', bytes for 'binary'.

        Raises:
            ValueError: If the format is not supported.
        """
        if format == "json":
            return json.dumps(self.to_dict())
        elif format == "binary":
            return self.to_bytes()
        else:
            raise ValueError(f"Unsupported serialization format: {format}")

    @classmethod
    def deserialize(cls: "type[S]", data: Union[str, bytes], format: str = "json") -> S:
        """
        Deserialize a summary from a string or bytes.

        Args:
            data: The serialized summary.
            format: The serialization format ('json' or 'binary').

        Returns:
            A new stream summary.

        Raises:
            ValueError: If the format is not supported.
        """
        if format == "json":
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            return cls.from_dict(json.loads(data))
        elif format == "binary":
            if isinstance(data, str):
                data = data.encode("utf-8")
            return cls.from_bytes(bytes(data))
        else:
            raise ValueError(f"Unsupported serialization format: {format}")

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this summary in bytes.

        Derived classes should extend this with their own containers.

        Returns:
            Estimated memory usage in bytes.
        """
        size = sys.getsizeof(self)
        if hasattr(self, "__dict__"):
            size += sys.getsizeof(self.__dict__)
        return size

    def check_memory_limit(self) -> bool:
        """
        Check if the current memory usage is within the configured limit.

        Returns:
            True if there is no limit or usage is within it, False otherwise.
        """
        if self._memory_limit_bytes is None:
            return True

        return self.estimate_size() <= self._memory_limit_bytes

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the summary.

        Derived classes should override this to add their own entries while
        calling super().get_stats().

        Returns:
            A dictionary of statistics.
        """
        stats: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "memory_bytes": self.estimate_size(),
        }

        if self._memory_limit_bytes is not None:
            stats["memory_limit_bytes"] = self._memory_limit_bytes
            stats["memory_usage_pct"] = (
                self.estimate_size() / self._memory_limit_bytes
            ) * 100

        stats.update(self.error_bounds())
        return stats

    def error_bounds(self) -> Dict[str, float]:
        """
        Get the error bounds for the current state of this summary.

        The base implementation returns an empty dictionary.
        """
        return {}


class CardinalityEstimator(StreamSummary[T, float], abc.ABC):
    """
    Abstract base class for distinct-count summaries.

    Examples include the theta sketch and the KMV sketch.
    """

    @abc.abstractmethod
    def estimate(self) -> float:
        """
        Estimate the number of distinct items seen.

        Returns:
            The estimated cardinality.
        """

    def query(self, *args: Any, **kwargs: Any) -> float:
        """Convenience alias for estimate()."""
        return self.estimate()

    def get_stats(self) -> Dict[str, Any]:
        """Statistics including the current cardinality estimate."""
        stats = super().get_stats()
        stats["estimated_cardinality"] = self.estimate()
        return stats
