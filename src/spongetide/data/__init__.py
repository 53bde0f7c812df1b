"""Tidal atlas access."""

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
from spongetide.data.locator import (
    AtlasLocator,
    PerConstituentLocator,
    SingleFileLocator,
    locator_for,
)

__all__ = [
    "ELEVATION",
    "TRANSPORT_U",
    "TRANSPORT_V",
    "AtlasGrid",
    "AtlasLocator",
    "FieldSpec",
    "PerConstituentLocator",
    "SingleFileLocator",
    "locator_for",
    "read_constituent_table",
    "read_field",
    "read_grid",
]
