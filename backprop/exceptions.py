"""
exceptions.py
~~~~~~~~~~~~~

Exception types raised by the network engine.
"""


class BackpropError(Exception):
    """Base class for all engine errors."""


class ShapeMismatchError(BackpropError, ValueError):
    """
    Raised when vectors, batches or tensors do not have matching shapes.

    Examples are predicted/observed vectors of different length, a
    training batch whose sample and target counts differ, an empty batch,
    or weight rows that do not match the width of the previous layer.
    """


class TopologyError(BackpropError, RuntimeError):
    """Raised when a layer link is read or written in a way the topology forbids."""
