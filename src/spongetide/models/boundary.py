"""Sponge boundary nodes and the geodetic-to-planar projection.

Boundary data is held as a structure of arrays, like the mesh it is taken
from. Projected coordinates are only used as interpolation space, so any
conformal projection covering the mesh works.
"""

from dataclasses import dataclass, field
from typing import Self

import numpy as np
from pyproj import CRS, Transformer

from spongetide.core.constants import DEFAULT_BBOX_PAD_DEG
from spongetide.core.errors import ConfigurationError
from spongetide.core.types import ArrayLike, FloatArray, IntArray, as_float_array, freeze

CRS_WGS84 = "EPSG:4326"


@dataclass(frozen=True)
class MercatorProjector:
    """Mercator projection centred on a lon/lat window."""

    lon_min: float
    lon_max: float
    lat_min: float
    lat_max: float
    _transformer: Transformer = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        lon_0 = 0.5 * (self.lon_min + self.lon_max)
        crs = CRS.from_dict({"proj": "merc", "lon_0": lon_0, "datum": "WGS84", "units": "m"})
        object.__setattr__(
            self, "_transformer", Transformer.from_crs(CRS_WGS84, crs, always_xy=True)
        )

    @classmethod
    def from_limits(
        cls, lon: ArrayLike, lat: ArrayLike, pad: float = DEFAULT_BBOX_PAD_DEG
    ) -> Self:
        """Projection window from the padded bounding box of mesh nodes."""
        lon = as_float_array(lon)
        lat = as_float_array(lat)
        return cls(
            lon_min=float(lon.min()) - pad,
            lon_max=float(lon.max()) + pad,
            lat_min=max(float(lat.min()) - pad, -89.0),
            lat_max=min(float(lat.max()) + pad, 89.0),
        )

    def __call__(self, lon: ArrayLike, lat: ArrayLike) -> tuple[FloatArray, FloatArray]:
        x, y = self._transformer.transform(as_float_array(lon), as_float_array(lat))
        return np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64)


@dataclass(frozen=True)
class SpongeBoundary:
    """Mesh nodes in the sponge layer that receive tidal forcing.

    All arrays are read-only; the boundary is shared by every constituent.
    """

    nodes: IntArray  # (B,) mesh node indices
    lon: FloatArray  # (B,) degrees
    lat: FloatArray  # (B,) degrees
    depth: FloatArray  # (B,) bed depth in metres (positive down)

    def __post_init__(self):
        n = self.nodes.shape[0]
        for name in ("lon", "lat", "depth"):
            if getattr(self, name).shape != (n,):
                raise ConfigurationError(
                    f"boundary {name} has shape {getattr(self, name).shape}, expected ({n},)"
                )

    @property
    def n_nodes(self) -> int:
        """Number of boundary nodes."""
        return int(self.nodes.shape[0])

    @property
    def negative_longitudes(self) -> bool:
        """True if the mesh uses the -180..180 longitude convention."""
        return bool(np.any(self.lon < 0))

    @classmethod
    def from_mesh(
        cls,
        node_lon: ArrayLike,
        node_lat: ArrayLike,
        depth: ArrayLike | None,
        sponge_nodes: ArrayLike | None,
    ) -> Self:
        """Extract the sponge nodes from full mesh arrays.

        Args:
            node_lon: Longitude of every mesh node.
            node_lat: Latitude of every mesh node.
            depth: Bed depth of every mesh node.
            sponge_nodes: Zero-based indices of the sponge nodes.

        Raises:
            ConfigurationError: If depths or the sponge selection are missing
                or inconsistent with the mesh.
        """
        if depth is None or np.size(depth) == 0:
            raise ConfigurationError("Requires mesh depths to calculate the velocity")
        if sponge_nodes is None or np.size(sponge_nodes) == 0:
            raise ConfigurationError("No sponge information to put the solutions onto")

        node_lon = as_float_array(node_lon)
        node_lat = as_float_array(node_lat)
        depth = as_float_array(depth)
        if not (node_lon.shape == node_lat.shape == depth.shape):
            raise ConfigurationError(
                "mesh lon/lat/depth lengths differ: "
                f"{node_lon.shape[0]}, {node_lat.shape[0]}, {depth.shape[0]}"
            )

        nodes = np.array(sponge_nodes, dtype=np.int64).ravel()
        if nodes.min() < 0 or nodes.max() >= node_lon.shape[0]:
            raise ConfigurationError(
                f"sponge node indices out of range for mesh with {node_lon.shape[0]} nodes"
            )

        return cls(
            nodes=freeze(nodes),
            lon=freeze(node_lon[nodes]),
            lat=freeze(node_lat[nodes]),
            depth=freeze(depth[nodes]),
        )

    def project(self, projector) -> tuple[FloatArray, FloatArray]:
        """Planar coordinates of the boundary nodes."""
        x, y = projector(self.lon, self.lat)
        return freeze(np.asarray(x, dtype=np.float64)), freeze(np.asarray(y, dtype=np.float64))
