"""Build sponge-layer tidal forcing from TPXO elevation and transport files.

For each requested constituent:

1. find it in the atlas (constituent table or per-constituent file),
2. read elevation and u/v transport at that index,
3. reduce to the neighbourhood of the sponge nodes (computed once),
4. interpolate amplitude/phase onto the nodes,
5. turn transport into velocity with a floored depth.

Constituents missing from the atlas are dropped; the result keeps the
remaining ones in request order.
"""

import logging
import sys
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from spongetide.core.config import SpongeSettings, get_settings
from spongetide.core.constants import CONSTITUENT_WILDCARD
from spongetide.core.errors import (
    ConfigurationError,
    DataUnavailableError,
    InterpolationDomainError,
)
from spongetide.core.types import ArrayLike, FloatArray, Projector
from spongetide.data.atlas import (
    ELEVATION,
    TRANSPORT_U,
    TRANSPORT_V,
    AtlasGrid,
    FieldSpec,
    read_constituent_table,
    read_field,
    read_grid,
)
from spongetide.data.locator import AtlasLocator, locator_for
from spongetide.models.boundary import MercatorProjector, SpongeBoundary
from spongetide.models.constituents import Constituent, match_constituent
from spongetide.models.interpolation import ComplexScatteredInterpolator
from spongetide.models.normalize import transport_to_velocity
from spongetide.models.reduction import reduce_grid
from spongetide.pipeline.forcing import ConstituentForcing, TidalForcing

# Configure module logger
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def _as_constituents(constituents: Sequence[Constituent | str]) -> list[Constituent]:
    return [c if isinstance(c, Constituent) else Constituent.from_name(c) for c in constituents]


def _as_locator(source: AtlasLocator | str | Path, wildcard: str) -> AtlasLocator:
    if isinstance(source, AtlasLocator):
        return source
    return locator_for(source, wildcard=wildcard)


class SpongeForcingBuilder:
    """Interpolates atlas constituents onto a sponge boundary.

    Grids are read and reduced once, on the first call to :meth:`build`;
    the reduced grids and the boundary are shared, read-only, by every
    constituent.
    """

    def __init__(
        self,
        boundary: SpongeBoundary,
        elevation_source: AtlasLocator | str | Path,
        transport_source: AtlasLocator | str | Path,
        settings: SpongeSettings | None = None,
        projector: Projector | None = None,
        wildcard: str = CONSTITUENT_WILDCARD,
    ):
        if settings is None:
            settings = get_settings().sponge

        self.boundary = boundary
        self.settings = settings
        self.elevation_locator = _as_locator(elevation_source, wildcard)
        self.transport_locator = _as_locator(transport_source, wildcard)
        self.projector = projector or MercatorProjector.from_limits(
            boundary.lon, boundary.lat, pad=settings.projection_pad_deg
        )

        self._grids: dict[str, AtlasGrid] = {}
        self._interpolators: dict[str, ComplexScatteredInterpolator] = {}
        self._table: list[str] = []

    @property
    def prepared(self) -> bool:
        return bool(self._interpolators)

    def prepare(self, first: Constituent) -> None:
        """Read the grids and reduce them to the sponge neighbourhood.

        For per-constituent atlases the grids come from the files of the
        first requested constituent.

        Raises:
            ConfigurationError: If the atlas files do not exist.
            InterpolationDomainError: If a grid has no points near the boundary.
        """
        ele_path = self.elevation_locator.validate(first.name)
        vel_path = self.transport_locator.validate(first.name)

        self._grids = {
            "z": read_grid(ele_path, "z"),
            "u": read_grid(vel_path, "u"),
            "v": read_grid(vel_path, "v"),
        }
        if not self.elevation_locator.per_constituent:
            self._table = read_constituent_table(ele_path)

        bx, by = self.boundary.project(self.projector)
        self._interpolators = {}
        for kind, grid in self._grids.items():
            subset = reduce_grid(
                grid,
                self.boundary,
                self.projector,
                n_neighbors=self.settings.n_neighbors,
                pad=self.settings.bbox_pad_deg,
            )
            self._interpolators[kind] = ComplexScatteredInterpolator(subset, bx, by)

    def resolve(self, constituent: Constituent) -> tuple[int, Path, Path]:
        """Constituent index and the elevation/transport files holding it.

        Raises:
            DataUnavailableError: If the atlas has no data for the constituent.
        """
        name = constituent.name
        ele_path = self.elevation_locator.resolve(name)
        vel_path = self.transport_locator.resolve(name)

        if self.elevation_locator.per_constituent:
            if not ele_path.is_file():
                raise DataUnavailableError(f"no tidal database file for {name}: {ele_path}")
            table = read_constituent_table(ele_path)
            if not table:
                # File name is the only label
                return 0, ele_path, vel_path
        else:
            table = self._table

        index = match_constituent(name, table)
        if index is None:
            raise DataUnavailableError(f"No tidal data in file for constituent {name}")
        return index, ele_path, vel_path

    def _interpolate_field(
        self, field: FieldSpec, path: Path, index: int
    ) -> tuple[FloatArray, FloatArray]:
        interpolator = self._interpolators[field.grid]
        real, imag = read_field(path, field, index, self._grids[field.grid])
        subset = interpolator.subset
        return interpolator.interpolate(subset.take(real), subset.take(imag))

    def interpolate(self, constituent: Constituent) -> ConstituentForcing:
        """Elevation and velocity amplitude/phase of one constituent.

        Raises:
            DataUnavailableError: If the constituent is missing from the atlas.
            InterpolationDomainError: If too few ocean samples surround the boundary.
        """
        if not self.prepared:
            self.prepare(constituent)

        index, ele_path, vel_path = self.resolve(constituent)
        ele_amp, ele_phase = self._interpolate_field(ELEVATION, ele_path, index)
        u_amp, u_phase = self._interpolate_field(TRANSPORT_U, vel_path, index)
        v_amp, v_phase = self._interpolate_field(TRANSPORT_V, vel_path, index)

        # Transport (m^2/s) to velocity (m/s)
        depth = self.boundary.depth
        min_depth = self.settings.min_depth
        return ConstituentForcing(
            constituent=constituent,
            elevation_amplitude=ele_amp,
            elevation_phase=ele_phase,
            u_amplitude=transport_to_velocity(u_amp, depth, min_depth),
            u_phase=u_phase,
            v_amplitude=transport_to_velocity(v_amp, depth, min_depth),
            v_phase=v_phase,
        )

    def _interpolate_or_drop(self, constituent: Constituent) -> ConstituentForcing | None:
        try:
            return self.interpolate(constituent)
        except DataUnavailableError as e:
            logger.warning(f"Dropping constituent {constituent.name}: {e}")
            return None
        except InterpolationDomainError as e:
            if not self.settings.drop_degenerate:
                raise
            logger.warning(f"Dropping constituent {constituent.name}: {e}")
            return None

    def build(self, constituents: Sequence[Constituent | str]) -> TidalForcing:
        """Interpolate every constituent and assemble the forcing.

        Args:
            constituents: Requested constituents, in output order. Names are
                looked up in the standard frequency table.

        Returns:
            Forcing for the constituents found in the atlas, in request order.

        Raises:
            ConfigurationError: If no constituents are requested or atlas
                files are missing.
        """
        constituents = _as_constituents(constituents)
        if not constituents:
            raise ConfigurationError("No tidal constituents requested")

        if not self.prepared:
            self.prepare(constituents[0])

        logger.info(
            f"Interpolating {len(constituents)} constituents onto "
            f"{self.boundary.n_nodes} sponge nodes"
        )
        if self.settings.workers > 1:
            with ThreadPoolExecutor(max_workers=self.settings.workers) as executor:
                # map keeps request order
                results = list(executor.map(self._interpolate_or_drop, constituents))
        else:
            results = [self._interpolate_or_drop(c) for c in constituents]

        forcing = TidalForcing.collect(self.boundary.nodes, constituents, results)
        logger.info(
            f"Retained {forcing.nfreq} of {len(constituents)} constituents: "
            f"{', '.join(forcing.names) or 'none'}"
        )
        return forcing


def make_sponge_forcing(
    node_lon: ArrayLike,
    node_lat: ArrayLike,
    depth: ArrayLike | None,
    sponge_nodes: ArrayLike | None,
    constituents: Sequence[Constituent | str],
    elevation_file: str | Path | None = None,
    transport_file: str | Path | None = None,
    min_depth: float | None = None,
    settings: SpongeSettings | None = None,
    projector: Projector | None = None,
) -> TidalForcing:
    """Interpolate TPXO solutions onto the sponge nodes of a mesh.

    Args:
        node_lon: Longitude of every mesh node.
        node_lat: Latitude of every mesh node.
        depth: Bed depth of every mesh node (m, positive down).
        sponge_nodes: Zero-based mesh indices of the sponge nodes.
        constituents: Constituents to interpolate, in output order.
        elevation_file: Elevation solution, e.g. ``h_tpxo9.v1.nc`` or a
            per-constituent pattern such as ``h_**_tpxo9_atlas_30_v5.nc``.
        transport_file: Transport solution, same layout as ``elevation_file``.
            Either file defaults to the ``ATLAS_`` settings.
        min_depth: Depth floor for transport-to-velocity; overrides settings.
        settings: Interpolation settings. Defaults to environment settings.
        projector: Geodetic-to-planar projection. Defaults to Mercator over
            the padded bounding box of all mesh nodes.

    Returns:
        TidalForcing for the constituents present in the atlas.

    Raises:
        ConfigurationError: If mesh inputs or atlas files are missing.
    """
    if settings is None:
        settings = get_settings().sponge
    if min_depth is not None:
        if min_depth <= 0:
            raise ConfigurationError(f"min_depth must be positive, got {min_depth}")
        settings = settings.model_copy(update={"min_depth": min_depth})

    wildcard = CONSTITUENT_WILDCARD
    if elevation_file is None or transport_file is None:
        atlas = get_settings().atlas
        elevation_file = elevation_file or atlas.elevation_file
        transport_file = transport_file or atlas.transport_file
        wildcard = atlas.wildcard
    if elevation_file is None or transport_file is None:
        raise ConfigurationError("Tidal elevation and transport files must be given")

    constituents = _as_constituents(constituents)
    if not constituents:
        raise ConfigurationError(
            "The mesh must supply tidal boundary constituents to interpolate"
        )

    boundary = SpongeBoundary.from_mesh(node_lon, node_lat, depth, sponge_nodes)
    if projector is None:
        projector = MercatorProjector.from_limits(
            node_lon, node_lat, pad=settings.projection_pad_deg
        )

    builder = SpongeForcingBuilder(
        boundary,
        elevation_file,
        transport_file,
        settings=settings,
        projector=projector,
        wildcard=wildcard,
    )
    return builder.build(constituents)
