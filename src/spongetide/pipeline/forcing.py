"""Sponge forcing result container."""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Self

import numpy as np

from spongetide.core.types import FloatArray, IntArray, freeze
from spongetide.models.constituents import Constituent


@dataclass(frozen=True)
class ConstituentForcing:
    """Amplitude/phase of one constituent at every sponge node.

    Phases are in degrees, [0, 360). Velocity amplitudes are in m/s.
    """

    constituent: Constituent
    elevation_amplitude: FloatArray  # (B,) m
    elevation_phase: FloatArray  # (B,)
    u_amplitude: FloatArray  # (B,) m/s
    u_phase: FloatArray  # (B,)
    v_amplitude: FloatArray  # (B,) m/s
    v_phase: FloatArray  # (B,)

    @property
    def elevation(self) -> FloatArray:
        """(2, B) rows: amplitude, phase."""
        return np.vstack([self.elevation_amplitude, self.elevation_phase])

    @property
    def velocity(self) -> FloatArray:
        """(4, B) rows: u amplitude, u phase, v amplitude, v phase."""
        return np.vstack([self.u_amplitude, self.u_phase, self.v_amplitude, self.v_phase])


@dataclass(frozen=True)
class TidalForcing:
    """Tidal elevation and velocity forcing on the sponge nodes.

    Arrays are laid out (constituent, quantity, node), one row per retained
    constituent in request order.
    """

    nodes: IntArray  # (B,) mesh node indices
    constituents: tuple[Constituent, ...]
    elevation: FloatArray  # (F, 2, B) amplitude, phase
    velocity: FloatArray  # (F, 4, B) u amp, u phase, v amp, v phase

    @property
    def nfreq(self) -> int:
        """Number of retained constituents."""
        return len(self.constituents)

    @property
    def n_nodes(self) -> int:
        """Number of sponge nodes."""
        return int(self.nodes.shape[0])

    @property
    def names(self) -> list[str]:
        """Retained constituent names, in request order."""
        return [c.name for c in self.constituents]

    def __len__(self) -> int:
        return self.nfreq

    def __iter__(self) -> Iterator[ConstituentForcing]:
        for i in range(self.nfreq):
            yield self._record(i)

    def __getitem__(self, name: str) -> ConstituentForcing:
        for i, c in enumerate(self.constituents):
            if c.name.lower() == name.lower():
                return self._record(i)
        raise KeyError(f"constituent '{name}' not in forcing (have {self.names})")

    def _record(self, i: int) -> ConstituentForcing:
        ele = self.elevation[i]
        vel = self.velocity[i]
        return ConstituentForcing(
            constituent=self.constituents[i],
            elevation_amplitude=ele[0],
            elevation_phase=ele[1],
            u_amplitude=vel[0],
            u_phase=vel[1],
            v_amplitude=vel[2],
            v_phase=vel[3],
        )

    @classmethod
    def collect(
        cls,
        nodes: IntArray,
        constituents: Sequence[Constituent],
        results: Sequence[ConstituentForcing | None],
    ) -> Self:
        """Assemble per-constituent results, dropping the missing ones.

        ``results`` is aligned with ``constituents``; None marks a dropped
        constituent.
        """
        if len(results) != len(constituents):
            raise ValueError(
                f"{len(results)} results for {len(constituents)} constituents"
            )
        n_nodes = int(np.asarray(nodes).shape[0])
        n_all = len(constituents)

        elevation = np.zeros((n_all, 2, n_nodes))
        velocity = np.zeros((n_all, 4, n_nodes))
        keep = np.zeros(n_all, dtype=bool)
        for i, result in enumerate(results):
            if result is None:
                continue
            keep[i] = True
            elevation[i] = result.elevation
            velocity[i] = result.velocity

        return cls(
            nodes=freeze(np.array(nodes, dtype=np.int64)),
            constituents=tuple(c for c, k in zip(constituents, keep) if k),
            elevation=freeze(elevation[keep]),
            velocity=freeze(velocity[keep]),
        )

    def to_numpy(self) -> dict[str, np.ndarray]:
        """Export all arrays to numpy for serialization."""
        return {
            "nodes": np.asarray(self.nodes),
            "names": np.array(self.names, dtype=str),
            "frequencies": np.array([c.frequency for c in self.constituents], dtype=np.float64),
            "elevation": np.asarray(self.elevation),
            "velocity": np.asarray(self.velocity),
        }

    def save(self, path: Path) -> None:
        """Save forcing to NPZ file."""
        np.savez_compressed(path, **self.to_numpy())

    @classmethod
    def load(cls, path: Path) -> Self:
        """Load forcing from NPZ file."""
        data = np.load(path)
        constituents = tuple(
            Constituent(name=str(name), frequency=float(freq))
            for name, freq in zip(data["names"], data["frequencies"])
        )
        return cls(
            nodes=freeze(np.array(data["nodes"], dtype=np.int64)),
            constituents=constituents,
            elevation=freeze(np.array(data["elevation"], dtype=np.float64)),
            velocity=freeze(np.array(data["velocity"], dtype=np.float64)),
        )
