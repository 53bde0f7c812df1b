"""Type definitions shared across the package."""

from collections.abc import Callable
from typing import TypeAlias

import numpy as np

# Array types
FloatArray: TypeAlias = np.ndarray
IntArray: TypeAlias = np.ndarray
ArrayLike: TypeAlias = FloatArray | list[float] | tuple[float, ...]

# Geodetic (lon, lat) -> planar (x, y)
Projector: TypeAlias = Callable[[FloatArray, FloatArray], tuple[FloatArray, FloatArray]]


def as_float_array(arr: ArrayLike) -> FloatArray:
    """Convert any array-like to a flat float64 NumPy array."""
    return np.asarray(arr, dtype=np.float64).ravel()


def freeze(arr: np.ndarray) -> np.ndarray:
    """Mark an array read-only and return it."""
    arr.flags.writeable = False
    return arr
