"""
The numeric universe hashed values live in.

Hashed values are floats in the half-open interval [0, 1). A value v belongs to
the effective view of a sketch with threshold theta iff v < theta; a value equal
to theta is always excluded. Hashing itself happens outside this library; the
helpers here only validate and adapt values that were already hashed.
"""

import math
from numbers import Real
from typing import Any

from tiny_theta.core.errors import ConfigError, DomainError


class HashDomain:
    """Bounds and ordering rules for hashed values."""

    MIN = 0.0
    MAX = 1.0

    # Doubles carry 53 significant bits; wider hashes are truncated to this.
    _MANTISSA_BITS = 53

    @classmethod
    def validate(cls, value: Any) -> float:
        """
        Check that a value lies in the hash domain.

        Args:
            value: The candidate hashed value.

        Returns:
            The value as a float.

        Raises:
            DomainError: If the value is not a real number in [0, 1).
        """
        if isinstance(value, bool) or not isinstance(value, Real):
            raise DomainError(
                f"Hashed value must be a real number, got {type(value).__name__}"
            )
        # Adding 0.0 folds -0.0 into 0.0
        value = float(value) + 0.0
        if math.isnan(value) or not (cls.MIN <= value < cls.MAX):
            raise DomainError(f"Hashed value {value!r} is outside [0, 1)")
        return value

    @classmethod
    def contains(cls, value: float) -> bool:
        """Return True if value is a valid hashed value."""
        try:
            cls.validate(value)
        except DomainError:
            return False
        return True

    @staticmethod
    def below(value: float, theta: float) -> bool:
        """Inclusion rule shared by every component: strictly below theta."""
        return value < theta

    @classmethod
    def is_max(cls, theta: float) -> bool:
        """Return True if theta still accepts the whole domain."""
        return theta >= cls.MAX

    @classmethod
    def from_unsigned(cls, hash_value: int, bits: int = 64) -> float:
        """
        Map a fixed-width unsigned integer hash onto [0, 1).

        Hashes wider than a double's mantissa keep their top 53 bits so the
        result never rounds up to 1.0.

        Args:
            hash_value: An unsigned integer in [0, 2**bits).
            bits: Width of the hash in bits.

        Returns:
            The corresponding value in [0, 1).

        Raises:
            ConfigError: If bits is not positive.
            DomainError: If hash_value does not fit in the given width.
        """
        if bits < 1:
            raise ConfigError("Hash width must be at least 1 bit")
        if isinstance(hash_value, bool) or not isinstance(hash_value, int):
            raise DomainError(
                f"Unsigned hash must be an int, got {type(hash_value).__name__}"
            )
        if not 0 <= hash_value < (1 << bits):
            raise DomainError(f"Hash {hash_value} does not fit in {bits} bits")

        if bits > cls._MANTISSA_BITS:
            shift = bits - cls._MANTISSA_BITS
            return (hash_value >> shift) / float(1 << cls._MANTISSA_BITS)
        return hash_value / float(1 << bits)
