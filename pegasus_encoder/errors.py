"""Exception types raised by pegasus-encoder."""

from __future__ import annotations


class EncoderError(Exception):
    """Base class for all encoder errors."""


class ConfigError(EncoderError, ValueError):
    """Invalid structural configuration, detected at construction time."""


class ShapeError(EncoderError, ValueError):
    """Tensor dimensions do not match what a computation step expects."""


class InvariantError(EncoderError, RuntimeError):
    """Internal composition contract was violated."""


class RangeError(EncoderError, IndexError):
    """Requested positions exceed the positional encoding capacity."""
