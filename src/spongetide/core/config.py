"""Configuration and settings for the forcing pipeline."""

from pathlib import Path
from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from spongetide.core.constants import (
    CONSTITUENT_WILDCARD,
    DEFAULT_BBOX_PAD_DEG,
    DEFAULT_MIN_DEPTH,
    DEFAULT_N_NEIGHBORS,
)


class SpongeSettings(BaseSettings):
    """Interpolation onto the sponge boundary."""

    model_config = SettingsConfigDict(env_prefix="SPONGE_")

    # Depth floor (m) when converting transport to velocity
    min_depth: float = Field(default=DEFAULT_MIN_DEPTH, gt=0)

    # Nearest source points kept around each boundary node
    n_neighbors: int = Field(default=DEFAULT_N_NEIGHBORS, ge=1)

    # Padding (degrees) of the box used to crop the global grid
    bbox_pad_deg: float = Field(default=DEFAULT_BBOX_PAD_DEG, ge=0)

    # Padding (degrees) of the projection limits around the mesh
    projection_pad_deg: float = Field(default=DEFAULT_BBOX_PAD_DEG, ge=0)

    # Drop constituents with too few ocean samples instead of failing
    drop_degenerate: bool = False

    # Worker threads for the per-constituent loop (1 = sequential)
    workers: int = Field(default=1, ge=1)


class AtlasSettings(BaseSettings):
    """Tidal atlas file locations."""

    model_config = SettingsConfigDict(env_prefix="ATLAS_")

    # Elevation and transport files; may contain the wildcard
    elevation_file: Path | None = None
    transport_file: Path | None = None

    # Placeholder replaced by the constituent name
    wildcard: str = CONSTITUENT_WILDCARD

    @model_validator(mode="after")
    def check_wildcard_pairing(self) -> Self:
        """Both files must use the same layout."""
        if self.elevation_file is None or self.transport_file is None:
            return self
        ele_wild = self.wildcard in self.elevation_file.name
        vel_wild = self.wildcard in self.transport_file.name
        if ele_wild != vel_wild:
            raise ValueError(
                "elevation_file and transport_file must both use "
                f"the '{self.wildcard}' wildcard or neither"
            )
        return self


class Settings(BaseSettings):
    """Master configuration aggregating all subsystems."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    sponge: SpongeSettings = Field(default_factory=SpongeSettings)
    atlas: AtlasSettings = Field(default_factory=AtlasSettings)


def get_settings() -> Settings:
    """Load settings from environment and .env file."""
    return Settings()
