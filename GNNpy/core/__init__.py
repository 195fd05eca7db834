"""
Core functionality for GNNpy.

This module contains the layer base class and the error taxonomy shared by
the rest of the library.
"""

from .errors import (
    BoundsViolationError,
    DTypeMismatchError,
    GNNError,
    InvalidDimensionError,
    ShapeMismatchError,
)
from .module import Module

__all__ = [
    "Module",
    "GNNError",
    "ShapeMismatchError",
    "BoundsViolationError",
    "InvalidDimensionError",
    "DTypeMismatchError",
]
