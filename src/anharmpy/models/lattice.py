"""Toy bond lattices with harmonic, cubic and quartic central-force bonds.

Each bond ``(i, j, R)`` joins atom ``i`` in the home cell to atom ``j`` in
cell ``R``. With ``d = u_j(R) - u_i(0)`` and the bond direction ``n`` the bond
energy is

    1/2 d.K.d + k3/6 (n.d)^3 + k4/24 (n.d)^4,   K = k_par n n + k_perp (1 - n n)

so the generated force constants obey the translational sum rules and
are permutation-complete by construction.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from itertools import product

import numpy as np

from anharmpy.modeling.schema import AnharmonicForceConstants, ForceConstantEntry, IFCData, IFCTerm
from anharmpy.modeling.units import amu_to_qe_mass


Cell = tuple[int, int, int]
Bond = tuple[int, int, Cell]


@dataclass(frozen=True)
class BondModelParams:
    """Spring constants in Ry/Bohr^n, lengths in Bohr, masses in amu."""

    k_par: float = 0.1
    k_perp: float = 0.02
    k3: float = -0.2
    k4: float = 0.4

    def __post_init__(self) -> None:
        if self.k_par <= 0.0 or self.k_perp < 0.0:
            raise ValueError("k_par must be positive and k_perp non-negative.")


@dataclass(frozen=True)
class SimpleCubicParams(BondModelParams):
    mass_amu: float = 28.0855
    lattice_constant: float = 5.0


@dataclass(frozen=True)
class DiatomicParams(BondModelParams):
    mass_a_amu: float = 28.0855
    mass_b_amu: float = 72.63
    lattice_constant: float = 10.0


@dataclass(frozen=True)
class DimerizedParams(DiatomicParams):
    """The second A-B bond has its springs scaled by ``stiffness_ratio`` and ``k3`` by ``cubic_ratio``."""

    stiffness_ratio: float = 0.5
    cubic_ratio: float = 2.0

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.stiffness_ratio <= 0.0:
            raise ValueError("stiffness_ratio must be positive.")

    def second_bond(self) -> BondModelParams:
        return BondModelParams(
            k_par=self.k_par * self.stiffness_ratio,
            k_perp=self.k_perp * self.stiffness_ratio,
            k3=self.k3 * self.cubic_ratio,
            k4=self.k4 * self.stiffness_ratio,
        )


@dataclass(frozen=True)
class LatticeModel:
    name: str
    ifc: IFCData
    force_constants: AnharmonicForceConstants


def _bond_direction(lattice: np.ndarray, positions: np.ndarray, bond: Bond) -> np.ndarray:
    i, j, cell = bond
    vec = (np.asarray(cell, dtype=float) + positions[j] - positions[i]) @ lattice
    norm = float(np.linalg.norm(vec))
    if norm == 0.0:
        raise ValueError(f"Bond {bond} has zero length.")
    return vec / norm


def _harmonic_terms(n_atoms: int, bonds: list[Bond], directions: list[np.ndarray], params: list[BondModelParams]):
    ndof = 3 * n_atoms
    blocks: dict[Cell, np.ndarray] = {(0, 0, 0): np.zeros((ndof, ndof))}
    for (i, j, cell), n, p in zip(bonds, directions, params):
        proj = np.outer(n, n)
        k = p.k_par * proj + p.k_perp * (np.eye(3) - proj)
        neg = tuple(-c for c in cell)
        for key in (tuple(cell), neg):
            blocks.setdefault(key, np.zeros((ndof, ndof)))
        blocks[(0, 0, 0)][3 * i : 3 * i + 3, 3 * i : 3 * i + 3] += k
        blocks[(0, 0, 0)][3 * j : 3 * j + 3, 3 * j : 3 * j + 3] += k
        blocks[tuple(cell)][3 * i : 3 * i + 3, 3 * j : 3 * j + 3] -= k
        blocks[neg][3 * j : 3 * j + 3, 3 * i : 3 * i + 3] -= k
    return tuple(IFCTerm(dx=c[0], dy=c[1], dz=c[2], block=b) for c, b in sorted(blocks.items()))


def _anharmonic_entries(bonds: list[Bond], directions: list[np.ndarray], constants: list[float], order: int):
    """Derivatives of ``constant/order! (n.d)^order`` per bond, re-anchored so leg 0 sits in the home cell."""

    table: dict[tuple, float] = {}
    for (i, j, cell), n, constant in zip(bonds, directions, constants):
        if constant == 0.0:
            continue
        sites = ((i, (0, 0, 0), -1.0), (j, tuple(cell), 1.0))
        for legs in product(sites, repeat=order):
            sign = float(np.prod([leg[2] for leg in legs]))
            origin = np.asarray(legs[0][1], dtype=int)
            atoms = tuple(leg[0] for leg in legs)
            cells = tuple(tuple(int(x) for x in np.asarray(leg[1]) - origin) for leg in legs)
            for comps in product(range(3), repeat=order):
                value = constant * sign * float(np.prod(n[list(comps)]))
                if abs(value) < 1e-14:
                    continue
                key = (atoms, cells, comps)
                table[key] = table.get(key, 0.0) + value
    return tuple(
        ForceConstantEntry(value=v, atoms=k[0], cells=k[1], components=k[2])
        for k, v in sorted(table.items())
        if abs(v) > 1e-14
    )


def bond_lattice_model(
    name: str,
    masses_amu: list[float],
    lattice: np.ndarray,
    positions: np.ndarray,
    bonds: list[Bond],
    params: BondModelParams | Sequence[BondModelParams],
) -> LatticeModel:
    """Builds a model from bonds sharing one parameter set or carrying one set each."""

    per_bond = [params] * len(bonds) if isinstance(params, BondModelParams) else list(params)
    if len(per_bond) != len(bonds):
        raise ValueError(f"Got {len(per_bond)} parameter sets for {len(bonds)} bonds.")
    masses = np.asarray(amu_to_qe_mass(np.asarray(masses_amu, dtype=float)), dtype=float)
    directions = [_bond_direction(lattice, positions, b) for b in bonds]
    ifc = IFCData(
        masses=masses,
        dof_per_atom=3,
        terms=_harmonic_terms(len(masses), bonds, directions, per_bond),
        units="Ry/Bohr^2",
        metadata={"model": name},
        lattice_vectors=lattice,
        atom_positions=positions,
    )
    fcs = AnharmonicForceConstants(
        masses=masses,
        cubic=_anharmonic_entries(bonds, directions, [p.k3 for p in per_bond], 3),
        quartic=_anharmonic_entries(bonds, directions, [p.k4 for p in per_bond], 4),
        atom_positions=positions,
        units="Ry/Bohr^n",
        metadata={"model": name},
    )
    return LatticeModel(name=name, ifc=ifc, force_constants=fcs)


def simple_cubic_model(params: SimpleCubicParams | None = None) -> LatticeModel:
    """One atom per cell, nearest-neighbour bonds along x, y and z."""

    params = params or SimpleCubicParams()
    lattice = params.lattice_constant * np.eye(3)
    positions = np.zeros((1, 3))
    bonds: list[Bond] = [(0, 0, (1, 0, 0)), (0, 0, (0, 1, 0)), (0, 0, (0, 0, 1))]
    return bond_lattice_model("simple_cubic", [params.mass_amu], lattice, positions, bonds, params)


def diatomic_model(params: DiatomicParams | None = None) -> LatticeModel:
    """Atoms A at (0,0,0) and B at (1/2,0,0); A-B bonds along x, like-atom bonds along y and z."""

    params = params or DiatomicParams()
    lattice = params.lattice_constant * np.eye(3)
    positions = np.array([[0.0, 0.0, 0.0], [0.5, 0.0, 0.0]])
    bonds: list[Bond] = [
        (0, 1, (0, 0, 0)),
        (1, 0, (1, 0, 0)),
        (0, 0, (0, 1, 0)),
        (0, 0, (0, 0, 1)),
        (1, 1, (0, 1, 0)),
        (1, 1, (0, 0, 1)),
    ]
    return bond_lattice_model(
        "diatomic", [params.mass_a_amu, params.mass_b_amu], lattice, positions, bonds, params
    )


def dimerized_model(params: DimerizedParams | None = None) -> LatticeModel:
    """Diatomic chain with alternating A-B bonds; B sits at (1/4,0,0) and the cell has no inversion center.

    The Gamma optical mode along x is then fully symmetric, so the cubic
    tadpole couplings ``V3(-q, q, 0s0)`` do not vanish.
    """

    params = params or DimerizedParams()
    lattice = params.lattice_constant * np.eye(3)
    positions = np.array([[0.0, 0.0, 0.0], [0.25, 0.0, 0.0]])
    bonds: list[Bond] = [
        (0, 1, (0, 0, 0)),
        (1, 0, (1, 0, 0)),
        (0, 0, (0, 1, 0)),
        (0, 0, (0, 0, 1)),
        (1, 1, (0, 1, 0)),
        (1, 1, (0, 0, 1)),
    ]
    per_bond = [params, params.second_bond()] + [params] * 4
    return bond_lattice_model(
        "dimerized", [params.mass_a_amu, params.mass_b_amu], lattice, positions, bonds, per_bond
    )
