"""
exceptions.py
~~~~~~~~~~~~~

Error taxonomy for the network engine.
"""


class SimpleNetError(Exception):
    """Base class for all errors raised by simplenet."""


class DimensionMismatch(SimpleNetError, ValueError):
    """Operand shapes are incompatible for the requested operation."""


class InvalidConfiguration(SimpleNetError, ValueError):
    """A layer, network or settings object was built with invalid parameters."""


class LayerStateError(SimpleNetError, RuntimeError):
    """
    A layer operation was called without the state it depends on.

    Raised when gradient descent runs before any forward pass, or when a
    mutation is reversed while none is pending.
    """
