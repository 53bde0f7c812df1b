"""Tidal constituents and matching them against atlas name tables."""

import logging
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, field_validator

from spongetide.core.constants import CONSTITUENT_FREQUENCIES
from spongetide.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Constituent(BaseModel):
    """A tidal constituent requested for the boundary forcing."""

    model_config = ConfigDict(frozen=True)

    name: str  # e.g. "M2"
    frequency: float  # angular frequency (rad/s)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("constituent name must not be empty")
        return value

    @classmethod
    def from_name(cls, name: str) -> "Constituent":
        """Create a constituent using the standard frequency table.

        Raises:
            ConfigurationError: If the frequency of ``name`` is not tabulated.
        """
        key = name.strip().lower()
        if key not in CONSTITUENT_FREQUENCIES:
            raise ConfigurationError(f"no standard frequency for constituent '{name}'")
        return cls(name=name, frequency=CONSTITUENT_FREQUENCIES[key])


def match_constituent(name: str, table: Sequence[str]) -> int | None:
    """Find a constituent in an atlas name table.

    Matching is case-insensitive and by prefix: the first table entry that
    starts with the requested name wins.

    Returns:
        Zero-based index into the table, or None if absent.
    """
    key = name.strip().lower()
    for i, entry in enumerate(table):
        if entry.strip().lower().startswith(key):
            return i
    logger.debug(f"Constituent {name} not in table {list(table)}")
    return None
