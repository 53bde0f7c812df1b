"""Forcing assembly pipeline."""

from spongetide.pipeline.assembler import SpongeForcingBuilder, make_sponge_forcing
from spongetide.pipeline.forcing import ConstituentForcing, TidalForcing

__all__ = [
    "ConstituentForcing",
    "SpongeForcingBuilder",
    "TidalForcing",
    "make_sponge_forcing",
]
