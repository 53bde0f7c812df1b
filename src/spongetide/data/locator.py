"""Resolve which atlas file holds a given constituent.

TPXO solutions come either as one file holding every constituent
(``h_tpxo9.v1.nc``) or as one file per constituent, where the file name
carries the constituent (``h_m2_tpxo9_atlas_30_v5.nc``). The per-constituent
form is described with a wildcard pattern (``h_**_tpxo9_atlas_30_v5.nc``).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from spongetide.core.constants import CONSTITUENT_WILDCARD
from spongetide.core.errors import ConfigurationError


class AtlasLocator(ABC):
    """Maps a constituent name to the file that should contain it."""

    @property
    @abstractmethod
    def per_constituent(self) -> bool:
        """True when each constituent lives in its own file."""

    @abstractmethod
    def resolve(self, name: str) -> Path:
        """Path of the file for constituent ``name`` (may not exist)."""

    def exists(self, name: str) -> bool:
        return self.resolve(name).is_file()

    def validate(self, first_name: str) -> Path:
        """Check the file for the first requested constituent exists.

        Raises:
            ConfigurationError: If the file is missing.
        """
        path = self.resolve(first_name)
        if not path.is_file():
            raise ConfigurationError(f"tidal database file does not exist: {path}")
        return path


@dataclass(frozen=True)
class SingleFileLocator(AtlasLocator):
    """All constituents in one file, indexed by the ``con`` table."""

    path: Path

    @property
    def per_constituent(self) -> bool:
        return False

    def resolve(self, name: str) -> Path:
        return Path(self.path)


@dataclass(frozen=True)
class PerConstituentLocator(AtlasLocator):
    """One file per constituent; the wildcard is replaced by the name."""

    pattern: str
    wildcard: str = CONSTITUENT_WILDCARD

    def __post_init__(self):
        if self.wildcard not in self.pattern:
            raise ConfigurationError(
                f"pattern '{self.pattern}' does not contain wildcard '{self.wildcard}'"
            )

    @property
    def per_constituent(self) -> bool:
        return True

    def resolve(self, name: str) -> Path:
        return Path(self.pattern.replace(self.wildcard, name.lower(), 1))


def locator_for(
    path_or_pattern: str | Path, wildcard: str = CONSTITUENT_WILDCARD
) -> AtlasLocator:
    """Pick the locator matching a file name or wildcard pattern."""
    text = str(path_or_pattern)
    if wildcard in text:
        return PerConstituentLocator(pattern=text, wildcard=wildcard)
    return SingleFileLocator(path=Path(text))
