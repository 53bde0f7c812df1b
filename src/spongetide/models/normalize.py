"""Unit normalization of interpolated tidal values."""

import numpy as np

from spongetide.core.constants import DEFAULT_MIN_DEPTH
from spongetide.core.types import ArrayLike, FloatArray, as_float_array


def floored_depth(depth: ArrayLike, min_depth: float = DEFAULT_MIN_DEPTH) -> FloatArray:
    """Depth limited from below by ``min_depth``."""
    if min_depth <= 0:
        raise ValueError(f"min_depth must be positive, got {min_depth}")
    return np.maximum(as_float_array(depth), min_depth)


def transport_to_velocity(
    amplitude: ArrayLike, depth: ArrayLike, min_depth: float = DEFAULT_MIN_DEPTH
) -> FloatArray:
    """Convert transport amplitude (m^2/s) to velocity amplitude (m/s).

    Depth is floored at ``min_depth`` so shallow nodes do not get
    unrealistically large velocities. Phase is unchanged by this step.
    """
    amplitude = as_float_array(amplitude)
    depth = floored_depth(depth, min_depth)
    if amplitude.shape != depth.shape:
        raise ValueError(f"amplitude {amplitude.shape} and depth {depth.shape} differ")
    return amplitude / depth
