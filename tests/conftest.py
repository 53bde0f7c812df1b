"""Shared fixtures: small synthetic TPXO-style atlases and a sponge mesh."""

from pathlib import Path

import netCDF4
import numpy as np
import pytest

from spongetide.core.config import SpongeSettings

# Source grid: 0.5 degree spacing around the Bay of Islands
GRID_LON = np.arange(170.0, 176.01, 0.5)
GRID_LAT = np.arange(-38.0, -31.99, 0.5)

# Global file constituent table; m2 sits at index 3
GLOBAL_NAMES = ["k1", "o1", "s2", "m2"]

# Elevation real part per constituent (m), imaginary part is constant
ELEVATION_RE = [0.1, 0.2, 0.3, 0.4]
ELEVATION_IM = -0.05

# Transport (m^2/s): u = 2 + 0i, v = 1 - 1i once conjugated
U_RE, U_IM = 2.0, 0.0
V_RE, V_IM = 1.0, 1.0


def _write_names(ds: netCDF4.Dataset, names: list[str], dims: tuple[str, ...]) -> None:
    width = 4
    ds.createDimension("nct", width)
    con = ds.createVariable("con", "S1", dims + ("nct",))
    padded = np.array([n.ljust(width) for n in names], dtype=f"S{width}")
    chars = padded.view("S1").reshape(len(names), width)
    con[:] = chars if dims else chars[0]


def write_global_elevation(
    path: Path,
    names: list[str] = GLOBAL_NAMES,
    re_values: list[float] = ELEVATION_RE,
    im_value: float = ELEVATION_IM,
    land: list[tuple[int, int]] | None = None,
) -> Path:
    """h_tpxo9.v1.nc layout: 2-D coordinates, (nc, nx, ny) fields in metres."""
    lon, lat = np.meshgrid(GRID_LON, GRID_LAT, indexing="ij")
    with netCDF4.Dataset(path, "w") as ds:
        ds.createDimension("nc", len(names))
        ds.createDimension("nx", GRID_LON.size)
        ds.createDimension("ny", GRID_LAT.size)
        ds.createVariable("lon_z", "f8", ("nx", "ny"))[:] = lon
        ds.createVariable("lat_z", "f8", ("nx", "ny"))[:] = lat
        _write_names(ds, names, ("nc",))

        re = np.zeros((len(names),) + lon.shape)
        for k, value in enumerate(re_values[: len(names)]):
            re[k] = value
        for i, j in land or []:
            re[:, i, j] = 0.0
        ds.createVariable("hRe", "f4", ("nc", "nx", "ny"))[:] = re
        ds.createVariable("hIm", "f4", ("nc", "nx", "ny"))[:] = np.full(re.shape, im_value)
    return path


def write_global_transport(path: Path, names: list[str] = GLOBAL_NAMES) -> Path:
    """u_tpxo9.v1.nc layout: staggered 2-D coordinates, URe/UIm in m^2/s."""
    with netCDF4.Dataset(path, "w") as ds:
        ds.createDimension("nc", len(names))
        ds.createDimension("nx", GRID_LON.size)
        ds.createDimension("ny", GRID_LAT.size)
        lon_u, lat_u = np.meshgrid(GRID_LON - 0.25, GRID_LAT, indexing="ij")
        lon_v, lat_v = np.meshgrid(GRID_LON, GRID_LAT - 0.25, indexing="ij")
        ds.createVariable("lon_u", "f8", ("nx", "ny"))[:] = lon_u
        ds.createVariable("lat_u", "f8", ("nx", "ny"))[:] = lat_u
        ds.createVariable("lon_v", "f8", ("nx", "ny"))[:] = lon_v
        ds.createVariable("lat_v", "f8", ("nx", "ny"))[:] = lat_v
        _write_names(ds, names, ("nc",))

        shape = (len(names),) + lon_u.shape
        ds.createVariable("URe", "f4", ("nc", "nx", "ny"))[:] = np.full(shape, U_RE)
        ds.createVariable("UIm", "f4", ("nc", "nx", "ny"))[:] = np.full(shape, U_IM)
        ds.createVariable("VRe", "f4", ("nc", "nx", "ny"))[:] = np.full(shape, V_RE)
        ds.createVariable("VIm", "f4", ("nc", "nx", "ny"))[:] = np.full(shape, V_IM)
    return path


def write_atlas_elevation(
    path: Path,
    name: str,
    re_mm: int,
    im_mm: int,
    transpose: bool = False,
    with_table: bool = True,
) -> Path:
    """h_<con>_tpxo9_atlas_30_v5.nc layout: 1-D axes, integer mm fields."""
    dims = ("ny", "nx") if transpose else ("nx", "ny")
    shape = (GRID_LAT.size, GRID_LON.size) if transpose else (GRID_LON.size, GRID_LAT.size)
    with netCDF4.Dataset(path, "w") as ds:
        ds.createDimension("nx", GRID_LON.size)
        ds.createDimension("ny", GRID_LAT.size)
        ds.createVariable("lon_z", "f8", ("nx",))[:] = GRID_LON
        ds.createVariable("lat_z", "f8", ("ny",))[:] = GRID_LAT
        if with_table:
            _write_names(ds, [name], ())
        ds.createVariable("hRe", "i4", dims)[:] = np.full(shape, re_mm, dtype=np.int32)
        ds.createVariable("hIm", "i4", dims)[:] = np.full(shape, im_mm, dtype=np.int32)
    return path


def write_atlas_transport(path: Path, name: str, u_cm2: int, v_cm2: int) -> Path:
    """u_<con>_tpxo9_atlas_30_v5.nc layout: 1-D axes, integer cm^2/s fields."""
    shape = (GRID_LON.size, GRID_LAT.size)
    with netCDF4.Dataset(path, "w") as ds:
        ds.createDimension("nx", GRID_LON.size)
        ds.createDimension("ny", GRID_LAT.size)
        ds.createVariable("lon_u", "f8", ("nx",))[:] = GRID_LON - 0.25
        ds.createVariable("lat_u", "f8", ("ny",))[:] = GRID_LAT
        ds.createVariable("lon_v", "f8", ("nx",))[:] = GRID_LON
        ds.createVariable("lat_v", "f8", ("ny",))[:] = GRID_LAT - 0.25
        _write_names(ds, [name], ())
        ds.createVariable("uRe", "i4", ("nx", "ny"))[:] = np.full(shape, u_cm2, dtype=np.int32)
        ds.createVariable("uIm", "i4", ("nx", "ny"))[:] = np.zeros(shape, dtype=np.int32)
        ds.createVariable("vRe", "i4", ("nx", "ny"))[:] = np.full(shape, v_cm2, dtype=np.int32)
        ds.createVariable("vIm", "i4", ("nx", "ny"))[:] = np.zeros(shape, dtype=np.int32)
    return path


@pytest.fixture
def global_atlas(tmp_path):
    """(elevation, transport) paths of a single-file atlas."""
    ele = write_global_elevation(tmp_path / "h_test.v1.nc", land=[(7, 6)])
    vel = write_global_transport(tmp_path / "u_test.v1.nc")
    return ele, vel


@pytest.fixture
def per_constituent_atlas(tmp_path):
    """(elevation pattern, transport pattern) of a one-file-per-constituent atlas.

    Only m2 and s2 exist.
    """
    write_atlas_elevation(tmp_path / "h_m2_test_atlas.nc", "m2", re_mm=400, im_mm=-50)
    write_atlas_elevation(tmp_path / "h_s2_test_atlas.nc", "s2", re_mm=300, im_mm=0)
    write_atlas_transport(tmp_path / "u_m2_test_atlas.nc", "m2", u_cm2=20000, v_cm2=10000)
    write_atlas_transport(tmp_path / "u_s2_test_atlas.nc", "s2", u_cm2=10000, v_cm2=5000)
    return str(tmp_path / "h_**_test_atlas.nc"), str(tmp_path / "u_**_test_atlas.nc")


@pytest.fixture
def mesh():
    """Small mesh near the Bay of Islands; nodes 1, 3, 5, 6 form the sponge."""
    node_lon = np.array([173.0, 173.15, 173.4, 173.55, 173.7, 173.85, 173.35, 174.2])
    node_lat = np.array([-35.0, -35.1, -35.2, -34.9, -35.3, -34.8, -34.65, -35.0])
    depth = np.array([40.0, 10.0, 60.0, 30.0, 80.0, 5.0, 100.0, 20.0])
    sponge_nodes = np.array([1, 3, 5, 6])
    return node_lon, node_lat, depth, sponge_nodes


@pytest.fixture
def settings():
    """Interpolation settings independent of the environment."""
    return SpongeSettings(
        min_depth=25.0,
        n_neighbors=20,
        bbox_pad_deg=1.0,
        projection_pad_deg=1.0,
        drop_degenerate=False,
        workers=1,
    )
