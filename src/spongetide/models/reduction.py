"""Restrict a global atlas grid to the neighbourhood of the boundary.

Global atlases have millions of points. Interpolation only needs the ones
near the sponge nodes, so each grid is cropped to a padded bounding box and
then to the nearest neighbours of every boundary node. The retained indices
are computed once and reused for every constituent.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.spatial import cKDTree

from spongetide.core.constants import DEFAULT_BBOX_PAD_DEG, DEFAULT_N_NEIGHBORS
from spongetide.core.errors import InterpolationDomainError
from spongetide.core.types import ArrayLike, FloatArray, IntArray, Projector, as_float_array, freeze
from spongetide.data.atlas import AtlasGrid
from spongetide.models.boundary import SpongeBoundary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridSubset:
    """Retained points of one atlas grid.

    ``indices`` refer to the flattened full grid, so raw fields read for any
    constituent are reduced with ``values[indices]``.
    """

    kind: str
    indices: IntArray  # (P,)
    lon: FloatArray  # (P,)
    lat: FloatArray  # (P,)
    x: FloatArray  # (P,) planar
    y: FloatArray  # (P,) planar
    full_size: int

    @property
    def n_points(self) -> int:
        """Number of retained points."""
        return int(self.indices.shape[0])

    def take(self, values: np.ndarray) -> np.ndarray:
        """Reduce a full-grid field to the retained points."""
        values = np.asarray(values).ravel()
        if values.shape[0] != self.full_size:
            raise ValueError(
                f"{self.kind} field has {values.shape[0]} values, grid has {self.full_size}"
            )
        return values[self.indices]


def uses_negative_longitudes(lon: ArrayLike) -> bool:
    """True if any longitude is negative (-180..180 convention)."""
    return bool(np.any(as_float_array(lon) < 0))


def normalize_longitude(lon: ArrayLike, negative: bool) -> FloatArray:
    """Convert longitudes to the -180..180 (``negative``) or 0..360 convention."""
    lon = np.array(lon, dtype=np.float64)
    if negative:
        lon[lon > 180] -= 360
    else:
        lon[lon < 0] += 360
    return lon


def bounding_box(
    lon: ArrayLike, lat: ArrayLike, pad: float = DEFAULT_BBOX_PAD_DEG
) -> tuple[float, float, float, float]:
    """Padded (lon_min, lon_max, lat_min, lat_max) around a set of points."""
    lon = as_float_array(lon)
    lat = as_float_array(lat)
    return (
        float(lon.min()) - pad,
        float(lon.max()) + pad,
        float(lat.min()) - pad,
        float(lat.max()) + pad,
    )


def bbox_cull(
    lon: ArrayLike, lat: ArrayLike, bbox: tuple[float, float, float, float]
) -> IntArray:
    """Indices of the points inside the closed box."""
    lon = as_float_array(lon)
    lat = as_float_array(lat)
    lon_min, lon_max, lat_min, lat_max = bbox
    inside = (lon >= lon_min) & (lon <= lon_max) & (lat >= lat_min) & (lat <= lat_max)
    return np.flatnonzero(inside)


def knn_cull(
    lon: ArrayLike,
    lat: ArrayLike,
    target_lon: ArrayLike,
    target_lat: ArrayLike,
    k: int = DEFAULT_N_NEIGHBORS,
) -> IntArray:
    """Union of the ``k`` nearest points (in lon/lat) of every target.

    Returns sorted, unique indices into ``lon``/``lat``.
    """
    lon = as_float_array(lon)
    lat = as_float_array(lat)
    if lon.shape[0] == 0:
        return np.empty(0, dtype=np.int64)
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")

    k = min(k, lon.shape[0])
    tree = cKDTree(np.column_stack([lon, lat]))
    targets = np.column_stack([as_float_array(target_lon), as_float_array(target_lat)])
    _, idx = tree.query(targets, k=k)
    return np.unique(np.asarray(idx, dtype=np.int64))


def reduce_grid(
    grid: AtlasGrid,
    boundary: SpongeBoundary,
    projector: Projector,
    n_neighbors: int = DEFAULT_N_NEIGHBORS,
    pad: float = DEFAULT_BBOX_PAD_DEG,
) -> GridSubset:
    """Crop an atlas grid to the boundary nodes' neighbourhood.

    Raises:
        InterpolationDomainError: If no grid point survives the cull.
    """
    lon = normalize_longitude(grid.lon, boundary.negative_longitudes)
    lat = grid.lat

    # First delete by box, then keep the nearest neighbours
    in_box = bbox_cull(lon, lat, bounding_box(boundary.lon, boundary.lat, pad))
    near = knn_cull(lon[in_box], lat[in_box], boundary.lon, boundary.lat, k=n_neighbors)
    if near.shape[0] == 0:
        raise InterpolationDomainError(
            f"no '{grid.kind}' grid points within {pad} degrees of the sponge boundary"
        )
    indices = in_box[near]

    x, y = projector(lon[indices], lat[indices])
    logger.info(
        f"Grid {grid.kind}: {grid.size} points -> {in_box.shape[0]} in box -> "
        f"{indices.shape[0]} neighbours"
    )
    return GridSubset(
        kind=grid.kind,
        indices=freeze(indices),
        lon=freeze(lon[indices]),
        lat=freeze(lat[indices]),
        x=freeze(np.asarray(x, dtype=np.float64)),
        y=freeze(np.asarray(y, dtype=np.float64)),
        full_size=grid.size,
    )
