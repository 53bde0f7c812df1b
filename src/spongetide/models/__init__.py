"""Boundary, reduction, interpolation and normalization models."""

from spongetide.models.boundary import MercatorProjector, SpongeBoundary
from spongetide.models.constituents import Constituent, match_constituent
from spongetide.models.interpolation import (
    ComplexScatteredInterpolator,
    NaturalNeighborInterpolator,
    interpolate_complex,
    wrap_phase,
)
from spongetide.models.normalize import transport_to_velocity
from spongetide.models.reduction import GridSubset, reduce_grid

__all__ = [
    "ComplexScatteredInterpolator",
    "Constituent",
    "GridSubset",
    "MercatorProjector",
    "NaturalNeighborInterpolator",
    "SpongeBoundary",
    "interpolate_complex",
    "match_constituent",
    "reduce_grid",
    "transport_to_velocity",
    "wrap_phase",
]
