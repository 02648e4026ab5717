"""Reciprocal-space three- and four-phonon coupling elements.

For a mode tuple ``(k_0 s_0, ..., k_{n-1} s_{n-1})`` the coupling is

    V = sum_entries  Phi * prod_n m_n^{-1/2} e_{k_n s_n}[3 a_n + x_n]
                      * exp(2 pi i sum_{n>=1} r_n . k_n)  /  sqrt(prod_n w_{k_n s_n})

where ``r_n`` is the cell of leg ``n`` relative to leg 0. Eigenvectors are
used without conjugation, so ``V(-k...) = conj(V(k...))`` follows from
``e(-k) = conj(e(k))``.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import permutations

import numpy as np

from anharmpy.logger import get_logger
from anharmpy.modeling.schema import AnharmonicForceConstants

from .types import Array, Mode, PhononStates


log = get_logger(__name__)

_EINSUM = {
    3: "e,ae,be,ce->abc",
    4: "e,ae,be,ce,de->abcd",
}


@dataclass(frozen=True)
class VertexTable:
    """Precomputed per-entry data for one interaction order."""

    order: int
    coef: Array
    evec_index: Array
    relative_cells: Array

    @property
    def n_entries(self) -> int:
        return int(self.coef.size)


def _relative_cells(fcs: AnharmonicForceConstants, entry) -> Array:
    cells = np.asarray(entry.cells, dtype=float)
    rel = cells[1:] - cells[0]
    if fcs.supercell is None:
        return rel
    if fcs.atom_positions is None:
        raise ValueError("Minimum-image folding needs atom_positions when a supercell is given.")
    pos = np.asarray(fcs.atom_positions, dtype=float)
    sc = np.asarray(fcs.supercell, dtype=float)
    out = np.empty_like(rel)
    for n in range(1, entry.order):
        offset = pos[entry.atoms[n]] - pos[entry.atoms[0]]
        d = rel[n - 1] + offset
        d -= sc * np.rint(d / sc)
        out[n - 1] = d - offset
    return out


def build_vertex_table(fcs: AnharmonicForceConstants, order: int) -> VertexTable:
    entries = fcs.entries(order)
    invsqrt = 1.0 / np.sqrt(np.asarray(fcs.masses, dtype=float))
    n = len(entries)
    coef = np.empty(n)
    idx = np.empty((order, n), dtype=int)
    rel = np.empty((order - 1, n, 3))
    for i, entry in enumerate(entries):
        coef[i] = float(entry.value) * float(np.prod(invsqrt[list(entry.atoms)]))
        idx[:, i] = [3 * a + x for a, x in zip(entry.atoms, entry.components)]
        rel[:, i, :] = _relative_cells(fcs, entry)
    return VertexTable(order=order, coef=coef, evec_index=idx, relative_cells=rel)


class AnharmonicCoupling:
    """Evaluates V3 / V4 on demand from force constants and phonon states."""

    def __init__(self, fcs: AnharmonicForceConstants, states: PhononStates) -> None:
        if 3 * fcs.n_atoms != states.eigenvectors.shape[2]:
            raise ValueError(
                f"Force constants describe {fcs.n_atoms} atoms but eigenvectors have "
                f"{states.eigenvectors.shape[2]} components."
            )
        self.states = states
        self.tables = {order: build_vertex_table(fcs, order) for order in (3, 4)}
        log.debug(
            "coupling tables: %d cubic, %d quartic entries",
            self.tables[3].n_entries,
            self.tables[4].n_entries,
        )

    def has_order(self, order: int) -> bool:
        return self.tables[order].n_entries > 0

    def _weights(self, table: VertexTable, ks: tuple[int, ...]) -> Array:
        xk = self.states.grid.xk
        arg = np.zeros(table.n_entries)
        for n in range(1, table.order):
            arg += table.relative_cells[n - 1] @ xk[ks[n]]
        return table.coef * np.exp(2j * np.pi * arg)

    def _scalar(self, modes: tuple[Mode, ...]) -> complex:
        table = self.tables[len(modes)]
        if table.n_entries == 0:
            return 0j
        ks = tuple(m[0] for m in modes)
        val = self._weights(table, ks)
        omega = 1.0
        for n, (k, s) in enumerate(modes):
            val = val * self.states.eigenvectors[k, s, table.evec_index[n]]
            omega *= self.states.frequencies[k, s]
        return complex(np.sum(val)) / np.sqrt(omega)

    def v3(self, m1: Mode, m2: Mode, m3: Mode) -> complex:
        """Three-phonon coupling; the caller must exclude zero-frequency modes."""

        return self._scalar((m1, m2, m3))

    def v4(self, m1: Mode, m2: Mode, m3: Mode, m4: Mode) -> complex:
        """Four-phonon coupling; the caller must exclude zero-frequency modes."""

        return self._scalar((m1, m2, m3, m4))

    def block(
        self,
        ks: tuple[int, ...],
        branches: tuple[Array | None, ...] | None = None,
        omega_tol: float = 0.0,
    ) -> Array:
        """Couplings for all branch combinations at fixed k-points.

        Entries involving a mode with ``w <= omega_tol`` are set to zero.
        """

        order = len(ks)
        table = self.tables[order]
        ns = self.states.n_branches
        sel = [
            np.arange(ns) if b is None else np.atleast_1d(np.asarray(b, dtype=int))
            for b in (branches or (None,) * order)
        ]
        shape = tuple(s.size for s in sel)
        if table.n_entries == 0:
            return np.zeros(shape, dtype=np.complex128)
        weights = self._weights(table, ks)
        evecs = [self.states.eigenvectors[k][sel[n]][:, table.evec_index[n]] for n, k in enumerate(ks)]
        out = np.einsum(_EINSUM[order], weights, *evecs, optimize=True)

        denom = np.ones(shape)
        valid = np.ones(shape, dtype=bool)
        for n, k in enumerate(ks):
            w = self.states.frequencies[k][sel[n]]
            view = [1] * order
            view[n] = w.size
            denom = denom * w.reshape(view)
            valid = valid & (w > omega_tol).reshape(view)
        safe = np.where(valid, denom, 1.0)
        return np.where(valid, out / np.sqrt(np.abs(safe)), 0.0)

    def v3_block(self, k1: int, k2: int, k3: int, branches=None, omega_tol: float = 0.0) -> Array:
        return self.block((k1, k2, k3), branches, omega_tol)

    def v4_block(self, k1: int, k2: int, k3: int, k4: int, branches=None, omega_tol: float = 0.0) -> Array:
        return self.block((k1, k2, k3, k4), branches, omega_tol)

    def conjugation_residual(self, modes: tuple[Mode, ...]) -> float:
        """``|V(-modes) - conj(V(modes))|`` for one mode tuple."""

        minus = self.states.grid.minus
        flipped = tuple((int(minus[k]), s) for k, s in modes)
        return float(abs(self._scalar(flipped) - np.conj(self._scalar(modes))))

    def permutation_residual(self, modes: tuple[Mode, ...]) -> float:
        """Largest relative deviation of V over all permutations of ``modes``."""

        ref = self._scalar(modes)
        scale = max(abs(ref), 1e-300)
        return max(abs(self._scalar(p) - ref) / scale for p in permutations(modes))


@dataclass(frozen=True)
class ReciprocalV3Table:
    """Momentum-conserving V3 values above a threshold.

    ``modes[i]`` holds flat mode indices ``k*ns + s`` ordered ``ks1 <= ks2 <= ks3``.
    """

    modes: Array
    values: Array

    def __len__(self) -> int:
        return int(self.values.size)


def tabulate_v3(
    coupling: AnharmonicCoupling,
    threshold: float = 1e-12,
    omega_tol: float = 1e-6,
    momentum_tol: float = 1e-8,
) -> ReciprocalV3Table:
    """Tabulate ``V3`` on all conserving triplets found by the explicit grid scan."""

    grid = coupling.states.grid
    ns = coupling.states.n_branches
    modes: list[tuple[int, int, int]] = []
    values: list[complex] = []
    triplets = grid.momentum_conserving_triplets(tol=momentum_tol)
    for k1, k2, k3 in triplets:
        blk = coupling.v3_block(k1, k2, k3, omega_tol=omega_tol)
        for s1 in range(ns):
            for s2 in range(ns):
                for s3 in range(ns):
                    ks = (k1 * ns + s1, k2 * ns + s2, k3 * ns + s3)
                    if not ks[0] <= ks[1] <= ks[2]:
                        continue
                    v = blk[s1, s2, s3]
                    if abs(v) > threshold:
                        modes.append(ks)
                        values.append(complex(v))
    log.info("tabulated %d V3 elements from %d conserving triplets", len(values), len(triplets))
    return ReciprocalV3Table(
        modes=np.asarray(modes, dtype=int).reshape(-1, 3),
        values=np.asarray(values, dtype=np.complex128),
    )
