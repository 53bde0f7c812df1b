"""Core configuration, constants and error types."""

from spongetide.core.config import Settings
from spongetide.core.errors import (
    ConfigurationError,
    DataUnavailableError,
    InterpolationDomainError,
    SpongeTideError,
)
from spongetide.core.types import FloatArray, IntArray, Projector

__all__ = [
    "ConfigurationError",
    "DataUnavailableError",
    "FloatArray",
    "IntArray",
    "InterpolationDomainError",
    "Projector",
    "Settings",
    "SpongeTideError",
]
