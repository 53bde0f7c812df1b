"""Sponge-layer tidal forcing from gridded tidal atlases.

Interpolates harmonic constituent elevation and transport from a TPXO-style
atlas onto the sponge boundary nodes of an unstructured mesh.
"""

__version__ = "0.1.0"
