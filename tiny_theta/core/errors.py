"""
Exception types raised by TinyTheta.

Every error derives from ThetaSketchError and from the built-in exception that
best describes it, so callers catching ValueError or RuntimeError keep working.
None of these are transient: an operation that raises did not happen, and the
sketch or accumulator involved is left exactly as it was.
"""


class ThetaSketchError(Exception):
    """Base class for all TinyTheta errors."""


class ConfigError(ThetaSketchError, ValueError):
    """Raised when a sketch or accumulator is configured with invalid parameters."""


class DomainError(ThetaSketchError, ValueError):
    """Raised when a hashed value lies outside the [0, 1) domain."""


class DegenerateStateError(ThetaSketchError, ArithmeticError):
    """Raised when an estimate is requested on a state that cannot arise normally."""


class EmptyOperationError(ThetaSketchError, ValueError):
    """Raised when a set operation is finished without any inputs."""


class AccumulatorFinishedError(ThetaSketchError, RuntimeError):
    """Raised when an accumulator is used after finish() has been called."""


class FormatError(ThetaSketchError, ValueError):
    """Raised when a serialized sketch cannot be decoded."""


class MalformedHeaderError(FormatError):
    """The payload is truncated or its header fields are out of range."""


class InvariantViolationError(FormatError):
    """The payload decodes but describes a sketch that cannot exist."""


class TrailingDataError(FormatError):
    """The payload carries bytes after the declared body."""
