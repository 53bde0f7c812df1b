"""Complex-valued natural-neighbour interpolation onto boundary nodes.

Tidal fields are complex (amplitude and phase), so the real and imaginary
parts are interpolated with the same weights. Weights follow Sibson's
natural-neighbour rule: the weight of a data point is the area its Voronoi
cell loses when the target point is inserted into the diagram. Voronoi
diagrams come from GEOS through shapely.

Targets outside the convex hull of the data are extrapolated linearly from
the Delaunay triangle on the hull nearest to them, so the weights may be
negative there and affine fields are reproduced exactly.
"""

import logging
import threading

import numpy as np
import shapely
from scipy.sparse import csr_matrix
from scipy.spatial import Delaunay, cKDTree

from spongetide.core.constants import RAD_TO_DEG
from spongetide.core.errors import InterpolationDomainError
from spongetide.core.types import ArrayLike, FloatArray, as_float_array, freeze
from spongetide.models.reduction import GridSubset

logger = logging.getLogger(__name__)

# Minimum number of distinct data points for a 2-D interpolant
MIN_POINTS = 3

# Voronoi clip box padding, in multiples of the data extent
CLIP_PAD_FACTOR = 10.0


def wrap_phase(phase_deg: ArrayLike) -> FloatArray:
    """Wrap phases in degrees to [0, 360)."""
    phase = np.mod(np.asarray(phase_deg, dtype=np.float64), 360.0)
    # mod can round tiny negatives up to exactly 360
    phase[phase >= 360.0] = 0.0
    return phase


def amplitude_phase(values: np.ndarray) -> tuple[FloatArray, FloatArray]:
    """Amplitude and phase (degrees, [0, 360)) of complex values."""
    values = np.asarray(values, dtype=np.complex128)
    return np.abs(values), wrap_phase(np.angle(values) * RAD_TO_DEG)


class NaturalNeighborInterpolator:
    """Sibson natural-neighbour interpolant over scattered 2-D points.

    Duplicate points are merged and their values averaged. A target that
    coincides with a data point takes that point's value. Targets outside
    the convex hull are extrapolated linearly.
    """

    def __init__(self, x: ArrayLike, y: ArrayLike):
        points = np.column_stack([as_float_array(x), as_float_array(y)])
        if not np.all(np.isfinite(points)):
            raise InterpolationDomainError("interpolation points must be finite")

        unique, inverse, counts = np.unique(
            points, axis=0, return_inverse=True, return_counts=True
        )
        if unique.shape[0] < MIN_POINTS:
            raise InterpolationDomainError(
                f"need at least {MIN_POINTS} distinct points, got {unique.shape[0]}"
            )
        if np.linalg.matrix_rank(unique - unique.mean(axis=0)) < 2:
            raise InterpolationDomainError("interpolation points are collinear")

        self.n_points = points.shape[0]
        self._unique = unique
        self._inverse = np.asarray(inverse).ravel()
        self._counts = counts
        self._tree = cKDTree(unique)

        self._tri = Delaunay(unique)
        # Hull edges: the two vertices opposite each missing neighbour
        simplex, opposite = np.nonzero(self._tri.neighbors == -1)
        vertices = self._tri.simplices[simplex]
        self._hull_simplex = simplex
        self._hull_edges = np.column_stack(
            [
                vertices[np.arange(simplex.size), (opposite + 1) % 3],
                vertices[np.arange(simplex.size), (opposite + 2) % 3],
            ]
        )

    def _clip_box(self) -> shapely.Polygon:
        lo = self._unique.min(axis=0)
        hi = self._unique.max(axis=0)
        pad = CLIP_PAD_FACTOR * max(float((hi - lo).max()), 1.0)
        return shapely.box(lo[0] - pad, lo[1] - pad, hi[0] + pad, hi[1] + pad)

    def _extrapolation_weights(self, target: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Barycentric weights of the hull triangle nearest to ``target``."""
        a = self._unique[self._hull_edges[:, 0]]
        b = self._unique[self._hull_edges[:, 1]]
        ab = b - a
        t = np.clip(np.sum((target - a) * ab, axis=1) / np.sum(ab * ab, axis=1), 0.0, 1.0)
        gap = target - (a + t[:, None] * ab)
        edge = int(np.argmin(np.hypot(gap[:, 0], gap[:, 1])))

        s = self._hull_simplex[edge]
        transform = self._tri.transform[s]
        c = transform[:2] @ (target - transform[2])
        return self._tri.simplices[s], np.array([c[0], c[1], 1.0 - c[0] - c[1]])

    def _voronoi_cells(self, points: np.ndarray, clip: shapely.Polygon) -> np.ndarray:
        diagram = shapely.voronoi_polygons(
            shapely.multipoints(points), extend_to=clip, ordered=True
        )
        return shapely.get_parts(diagram)

    def weights(self, xi: ArrayLike, yi: ArrayLike) -> csr_matrix:
        """Sparse (targets x data points) weight matrix; rows sum to one.

        Weights are non-negative inside the convex hull.
        """
        targets = np.column_stack([as_float_array(xi), as_float_array(yi)])
        n_unique = self._unique.shape[0]

        clip = self._clip_box()
        cells = self._voronoi_cells(self._unique, clip)
        cell_index = shapely.STRtree(cells)
        distance, nearest = self._tree.query(targets)
        inside = self._tri.find_simplex(targets) >= 0

        rows, cols, vals = [], [], []
        for i, target in enumerate(targets):
            if distance[i] == 0.0:
                rows.append(i)
                cols.append(int(nearest[i]))
                vals.append(1.0)
                continue

            if not inside[i]:
                vertices, bary = self._extrapolation_weights(target)
                rows.extend([i] * 3)
                cols.extend(vertices.tolist())
                vals.extend(bary.tolist())
                continue

            # Cell of the target once inserted; what it takes from each neighbour
            augmented = np.vstack([self._unique, target])
            new_cell = self._voronoi_cells(augmented, clip)[-1]
            candidates = cell_index.query(new_cell, predicate="intersects")
            stolen = shapely.area(shapely.intersection(cells[candidates], new_cell))
            keep = stolen > 0
            if not np.any(keep):
                raise InterpolationDomainError(f"no natural neighbours for target {i}")

            rows.extend([i] * int(keep.sum()))
            cols.extend(candidates[keep].tolist())
            vals.extend((stolen[keep] / stolen[keep].sum()).tolist())

        w_unique = csr_matrix((vals, (rows, cols)), shape=(targets.shape[0], n_unique))

        # Spread each merged point's weight evenly over its duplicates
        spread = csr_matrix(
            (
                1.0 / self._counts[self._inverse],
                (self._inverse, np.arange(self.n_points)),
            ),
            shape=(n_unique, self.n_points),
        )
        return (w_unique @ spread).tocsr()

    def __call__(self, values: ArrayLike, xi: ArrayLike, yi: ArrayLike) -> np.ndarray:
        """Interpolate ``values`` (real or complex) at the targets."""
        values = np.asarray(values).ravel()
        if values.shape[0] != self.n_points:
            raise ValueError(f"expected {self.n_points} values, got {values.shape[0]}")
        return self.weights(xi, yi) @ values


def interpolate_complex(
    x: ArrayLike,
    y: ArrayLike,
    real: ArrayLike,
    imag: ArrayLike,
    xi: ArrayLike,
    yi: ArrayLike,
) -> np.ndarray:
    """Natural-neighbour interpolation of ``real - i*imag`` at (xi, yi).

    Samples with a real part of exactly zero are land in the atlas and are
    dropped before fitting. Open-water samples that happen to be exactly
    zero are dropped too; nearby values fill in for them.

    Raises:
        InterpolationDomainError: If fewer than three ocean samples remain.
    """
    x = as_float_array(x)
    y = as_float_array(y)
    real = as_float_array(real)
    imag = as_float_array(imag)
    ocean = real != 0
    if np.count_nonzero(ocean) < MIN_POINTS:
        raise InterpolationDomainError(
            f"only {np.count_nonzero(ocean)} non-land samples, need {MIN_POINTS}"
        )

    values = real[ocean] - 1j * imag[ocean]
    interpolant = NaturalNeighborInterpolator(x[ocean], y[ocean])
    return interpolant(values, xi, yi)


class ComplexScatteredInterpolator:
    """Interpolates fields on one reduced grid onto fixed boundary nodes.

    Weights depend only on which samples are ocean, so they are cached per
    land mask and reused across constituents.
    """

    def __init__(self, subset: GridSubset, target_x: ArrayLike, target_y: ArrayLike):
        self.subset = subset
        self.target_x = freeze(as_float_array(target_x).copy())
        self.target_y = freeze(as_float_array(target_y).copy())
        self._cache: dict[bytes, csr_matrix] = {}
        self._lock = threading.Lock()

    def _weights(self, ocean: np.ndarray) -> csr_matrix:
        key = np.packbits(ocean).tobytes()
        with self._lock:
            weights = self._cache.get(key)
        if weights is None:
            interpolant = NaturalNeighborInterpolator(
                self.subset.x[ocean], self.subset.y[ocean]
            )
            weights = interpolant.weights(self.target_x, self.target_y)
            with self._lock:
                self._cache[key] = weights
            logger.debug(
                f"Grid {self.subset.kind}: natural-neighbour weights for "
                f"{np.count_nonzero(ocean)} ocean points"
            )
        return weights

    def interpolate_values(self, real: ArrayLike, imag: ArrayLike) -> np.ndarray:
        """Complex values ``real - i*imag`` at the boundary nodes.

        ``real`` and ``imag`` are already reduced to the subset's points.
        """
        real = as_float_array(real)
        imag = as_float_array(imag)
        if real.shape[0] != self.subset.n_points or imag.shape[0] != self.subset.n_points:
            raise ValueError(
                f"expected {self.subset.n_points} samples, got {real.shape[0]}/{imag.shape[0]}"
            )

        ocean = real != 0
        if np.count_nonzero(ocean) < MIN_POINTS:
            raise InterpolationDomainError(
                f"grid {self.subset.kind}: only {np.count_nonzero(ocean)} non-land "
                f"samples near the boundary, need {MIN_POINTS}"
            )
        values = real[ocean] - 1j * imag[ocean]
        return self._weights(ocean) @ values

    def interpolate(self, real: ArrayLike, imag: ArrayLike) -> tuple[FloatArray, FloatArray]:
        """Amplitude and phase (degrees) at the boundary nodes."""
        return amplitude_phase(self.interpolate_values(real, imag))
