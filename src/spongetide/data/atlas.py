"""TPXO-style NetCDF tidal atlas reading.

Two on-disk layouts are handled:

* Global solutions (``h_tpxo9.v1.nc``, ``u_tpxo9.v1.nc``) hold every
  constituent along a leading ``nc`` dimension, in metres and m^2/s, with
  transport named ``URe``/``UIm``.
* Atlas solutions (``h_m2_tpxo9_atlas_30_v5.nc``) hold a single constituent
  as integer fields in millimetres and cm^2/s, with transport named
  ``uRe``/``uIm``. Coordinates are usually 1-D axes.

Each field is read through an ordered list of schemas; the first one that
applies wins.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

import netCDF4
import numpy as np

from spongetide.core.constants import CM2_S_TO_M2_S, MM_TO_M
from spongetide.core.errors import ConfigurationError, DataUnavailableError
from spongetide.core.types import FloatArray, freeze

logger = logging.getLogger(__name__)

# HDF5 is not thread-safe; every file access holds this lock
_NETCDF_LOCK = threading.Lock()

# Grid kinds: elevation (z) and the two transport components (u, v)
GRID_KINDS = ("z", "u", "v")


@dataclass(frozen=True)
class AtlasGrid:
    """Full coordinate set of one atlas grid, flattened.

    ``dims`` are the NetCDF dimension names of the 2-D layout the flattened
    arrays follow, so fields can be matched to it.
    """

    kind: str
    lon: FloatArray  # (N,) degrees
    lat: FloatArray  # (N,) degrees
    shape: tuple[int, int]
    dims: tuple[str, str]

    @property
    def size(self) -> int:
        """Number of grid points."""
        return int(self.lon.shape[0])

    def align(self, field: np.ndarray, dims: tuple[str, ...]) -> FloatArray | None:
        """Flatten a 2-D field in the same order as the coordinates.

        Returns None when the field does not fit this grid.
        """
        field = np.asarray(field)
        if field.ndim != 2:
            return None
        if tuple(dims) == self.dims and field.shape == self.shape:
            return field.ravel()
        if tuple(dims) == self.dims[::-1] and field.shape == self.shape[::-1]:
            return field.T.ravel()
        # Unnamed or renamed dimensions: go by shape
        if field.shape == self.shape:
            return field.ravel()
        if field.shape == self.shape[::-1]:
            return field.T.ravel()
        return None


def _read_coordinate(ds: netCDF4.Dataset, name: str, path: Path) -> netCDF4.Variable:
    if name not in ds.variables:
        raise ConfigurationError(f"variable '{name}' not found in {path}")
    return ds.variables[name]


def read_grid(path: str | Path, kind: str) -> AtlasGrid:
    """Read the ``lon_<kind>``/``lat_<kind>`` coordinates of an atlas file.

    1-D axes are expanded to a 2-D mesh laid out as (lon, lat), which is how
    TPXO stores its fields.

    Raises:
        ConfigurationError: If the coordinate variables are missing.
    """
    if kind not in GRID_KINDS:
        raise ValueError(f"unknown grid kind '{kind}'")
    path = Path(path)

    with _NETCDF_LOCK, netCDF4.Dataset(path, "r") as ds:
        lon_var = _read_coordinate(ds, f"lon_{kind}", path)
        lat_var = _read_coordinate(ds, f"lat_{kind}", path)
        lon = np.ma.filled(lon_var[:].astype(np.float64), np.nan)
        lat = np.ma.filled(lat_var[:].astype(np.float64), np.nan)
        lon_dims = tuple(lon_var.dimensions)
        lat_dims = tuple(lat_var.dimensions)

    if lon.ndim == 1 and lat.ndim == 1:
        lon, lat = np.meshgrid(lon, lat, indexing="ij")
        dims = (lon_dims[0], lat_dims[0])
    elif lon.ndim == 2 and lon.shape == lat.shape:
        dims = lon_dims
    else:
        raise ConfigurationError(
            f"incompatible coordinate shapes {lon.shape} and {lat.shape} in {path}"
        )

    return AtlasGrid(
        kind=kind,
        lon=freeze(lon.ravel()),
        lat=freeze(lat.ravel()),
        shape=(int(lon.shape[0]), int(lon.shape[1])),
        dims=(str(dims[0]), str(dims[1])),
    )


def _decode_names(raw: np.ndarray) -> list[str]:
    raw = np.asarray(raw)
    if raw.dtype.kind == "S" and raw.dtype.itemsize == 1 and raw.ndim >= 1:
        names = np.atleast_1d(netCDF4.chartostring(raw))
    else:
        names = np.atleast_1d(raw)

    decoded = []
    for name in names.ravel():
        if isinstance(name, bytes):
            name = name.decode("ascii", errors="ignore")
        decoded.append(str(name).replace("\x00", "").strip().lower())
    return decoded


def read_constituent_table(path: str | Path) -> list[str]:
    """Read the ``con`` constituent-name table, lower-cased.

    Returns an empty list when the file has no table.
    """
    with _NETCDF_LOCK, netCDF4.Dataset(Path(path), "r") as ds:
        if "con" not in ds.variables:
            return []
        var = ds.variables["con"]
        var.set_auto_chartostring(False)
        raw = np.ma.getdata(var[:])
    return _decode_names(raw)


@dataclass(frozen=True)
class RawField:
    """Real/imaginary parts as stored, with their dimensions and unit scale."""

    real: np.ndarray
    imag: np.ndarray
    dims: tuple[str, ...]
    scale: float


def _masked_to_land(values) -> np.ndarray:
    # Fill values mark land; land is zero downstream
    return np.ma.filled(np.ma.asarray(values).astype(np.float64), 0.0)


@dataclass(frozen=True)
class ConstituentSliceSchema:
    """Fields with a leading constituent dimension; read one slice."""

    real: str
    imag: str
    scale: float = 1.0

    def read(self, ds: netCDF4.Dataset, index: int) -> RawField | None:
        if self.real not in ds.variables or self.imag not in ds.variables:
            return None
        re_var = ds.variables[self.real]
        im_var = ds.variables[self.imag]
        if re_var.ndim != 3 or re_var.shape != im_var.shape:
            return None
        if not 0 <= index < re_var.shape[0]:
            return None
        return RawField(
            real=_masked_to_land(re_var[index]),
            imag=_masked_to_land(im_var[index]),
            dims=tuple(re_var.dimensions[1:]),
            scale=self.scale,
        )


@dataclass(frozen=True)
class WholeFieldSchema:
    """Single-constituent fields; read the whole variable."""

    real: str
    imag: str
    scale: float = 1.0

    def read(self, ds: netCDF4.Dataset, index: int) -> RawField | None:
        if self.real not in ds.variables or self.imag not in ds.variables:
            return None
        re_var = ds.variables[self.real]
        im_var = ds.variables[self.imag]
        if re_var.shape != im_var.shape:
            return None

        # Allow a degenerate constituent dimension of length one
        dims = tuple(re_var.dimensions)
        singleton = [d for d, n in zip(dims, re_var.shape) if n == 1]
        if re_var.ndim - len(singleton) != 2:
            return None

        real = np.squeeze(_masked_to_land(re_var[:]))
        imag = np.squeeze(_masked_to_land(im_var[:]))
        return RawField(
            real=real,
            imag=imag,
            dims=tuple(d for d, n in zip(dims, re_var.shape) if n != 1),
            scale=self.scale,
        )


@dataclass(frozen=True)
class FieldSpec:
    """A tidal field, the grid it lives on and how to read it."""

    name: str
    grid: str
    schemas: tuple[ConstituentSliceSchema | WholeFieldSchema, ...]


ELEVATION = FieldSpec(
    name="elevation",
    grid="z",
    schemas=(
        ConstituentSliceSchema("hRe", "hIm"),
        WholeFieldSchema("hRe", "hIm", scale=MM_TO_M),
    ),
)

TRANSPORT_U = FieldSpec(
    name="transport_u",
    grid="u",
    schemas=(
        ConstituentSliceSchema("URe", "UIm"),
        WholeFieldSchema("uRe", "uIm", scale=CM2_S_TO_M2_S),
    ),
)

TRANSPORT_V = FieldSpec(
    name="transport_v",
    grid="v",
    schemas=(
        ConstituentSliceSchema("VRe", "VIm"),
        WholeFieldSchema("vRe", "vIm", scale=CM2_S_TO_M2_S),
    ),
)


def read_field(
    path: str | Path,
    field: FieldSpec,
    index: int,
    grid: AtlasGrid,
) -> tuple[FloatArray, FloatArray]:
    """Read one constituent of a field in physical units.

    Args:
        path: Atlas file.
        field: Which field and the schemas to try.
        index: Zero-based constituent index (ignored by whole-field schemas).
        grid: Grid the field must line up with.

    Returns:
        Flattened (real, imag) arrays, one value per grid point.

    Raises:
        DataUnavailableError: If the file is missing or no schema applies.
    """
    path = Path(path)
    if not path.is_file():
        raise DataUnavailableError(f"{field.name}: file not found: {path}")

    with _NETCDF_LOCK, netCDF4.Dataset(path, "r") as ds:
        for schema in field.schemas:
            raw = schema.read(ds, index)
            if raw is None:
                continue
            real = grid.align(raw.real, raw.dims)
            imag = grid.align(raw.imag, raw.dims)
            if real is None or imag is None:
                logger.debug(
                    f"{field.name}: {schema.real} shape {raw.real.shape} "
                    f"does not match grid {grid.shape}"
                )
                continue
            logger.debug(f"{field.name}: read {schema.real}/{schema.imag} from {path.name}")
            return real * raw.scale, imag * raw.scale

    raise DataUnavailableError(
        f"{field.name}: no readable variables for constituent index {index} in {path}"
    )
