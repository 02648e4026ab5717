"""Intermediate schema for harmonic and anharmonic force constants."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np


Array = np.ndarray
Cell = tuple[int, int, int]


@dataclass(frozen=True)
class IFCTerm:
    """One real-space harmonic block Phi(0, R) for the cell translation R=(dx,dy,dz)."""

    dx: int
    dy: int
    dz: int
    block: Array


@dataclass(frozen=True)
class IFCData:
    """Harmonic lattice IFC data of the primitive cell."""

    masses: Array
    dof_per_atom: int
    terms: tuple[IFCTerm, ...]
    units: str = "unknown"
    metadata: dict[str, Any] = field(default_factory=dict)
    lattice_vectors: Array | None = None
    atom_positions: Array | None = None
    atom_symbols: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ForceConstantEntry:
    """One cubic or quartic force constant.

    ``atoms``, ``cells`` and ``components`` run over the legs of the
    derivative; leg 0 is the anchor whose cell fixes the Fourier phase.
    """

    value: float
    atoms: tuple[int, ...]
    cells: tuple[Cell, ...]
    components: tuple[int, ...]

    def __post_init__(self) -> None:
        n = len(self.atoms)
        if n not in (3, 4):
            raise ValueError("ForceConstantEntry must have 3 or 4 legs.")
        if len(self.cells) != n or len(self.components) != n:
            raise ValueError("atoms, cells and components must have the same length.")
        for cell in self.cells:
            if len(cell) != 3:
                raise ValueError("Each cell must be a 3-integer translation.")
        if any(c not in (0, 1, 2) for c in self.components):
            raise ValueError("Cartesian components must be 0, 1 or 2.")

    @property
    def order(self) -> int:
        return len(self.atoms)


@dataclass(frozen=True)
class AnharmonicForceConstants:
    """Cubic and quartic force constants plus the primitive-cell data they need."""

    masses: Array
    cubic: tuple[ForceConstantEntry, ...] = ()
    quartic: tuple[ForceConstantEntry, ...] = ()
    atom_positions: Array | None = None
    supercell: Cell | None = None
    units: str = "unknown"
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def n_atoms(self) -> int:
        return int(np.asarray(self.masses).size)

    def entries(self, order: int) -> tuple[ForceConstantEntry, ...]:
        if order == 3:
            return self.cubic
        if order == 4:
            return self.quartic
        raise ValueError("order must be 3 or 4.")
