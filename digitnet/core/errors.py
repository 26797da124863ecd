"""Exception hierarchy for digitnet."""

from __future__ import annotations


class DigitNetError(Exception):
    """Base class for errors raised by the network core."""


class UnsupportedActivation(DigitNetError, ValueError):
    """Raised when an activation kind is not part of the closed set."""


class ShapeMismatch(DigitNetError, ValueError):
    """Raised when matrix operands disagree on their dimensions."""


class MissingGradient(DigitNetError, RuntimeError):
    """Raised when an update is requested for a layer without gradients."""


def check_shape(name: str, array, expected: tuple) -> None:
    """Raise :class:`ShapeMismatch` unless ``array.shape == expected``."""

    if tuple(array.shape) != tuple(expected):
        raise ShapeMismatch(f"{name} has shape {tuple(array.shape)}, expected {tuple(expected)}")


__all__ = [
    "DigitNetError",
    "MissingGradient",
    "ShapeMismatch",
    "UnsupportedActivation",
    "check_shape",
]
