"""Per-k-point contributions of the self-energy diagrams.

Notation: ``q = (kq, sq)`` is the external mode, ``N`` the number of grid
points, ``1 = (k1, s1)`` the primary internal line and ``-1 = (-k1, s1)``.
The engine returns ``Sigma`` with ``Im Sigma = Gamma >= 0``:

    a  bubble          (1/16N)   sum |V3(-q,1,2)|^2 S2
    b  loop            -(1/8N)   sum V4(-q,q,1,-1) (2 n1 + 1)
    c  tadpole         (1/8)     sum_s0 V3(-q,q,0s0)/w0s0 * W[s0]
    d  sunset          -(1/96N^2) sum |V4(-q,1,2,3)|^2 S3
    e/h loop + insertion        (1/8N) sum V4(-q,q,1,-1') Pi[1 1'] T2(1,1')
    f/g bubble + insertion      (1/8N) sum V3(-q,1,2) V3(q,-1',-2) Pi[1 1'] B3(1,1',2)
    i/j tadpole + insertion     -(1/8N) sum_s0 V3(-q,q,0s0)/w0s0 sum V3(0s0,1,-1') Pi[1 1'] T2(1,1')

with ``W[s0] = (1/N) sum V3(0s0,1,-1)(2 n1 + 1)``. Insertions ``Pi`` are the
static loop (e, f, i) and tadpole (g, h, j) two-point functions computed by
:func:`loop_insertion` and :func:`tadpole_insertion`.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from anharmpy.logger import get_logger
from anharmpy.modeling.schema import EngineConfig

from .coupling import AnharmonicCoupling
from .kernels import Broadening
from .matsubara import b3, s2, s3, t2
from .occupation import bose, classical
from .tetrahedron import TetrahedronIntegrator
from .types import Array, PhononStates


log = get_logger(__name__)

INSERTION_OF = {"e": "loop", "f": "loop", "i": "loop", "g": "tadpole", "h": "tadpole", "j": "tadpole"}


@dataclass(frozen=True)
class Insertions:
    """Static two-point insertions for one temperature list.

    ``loop`` and ``tadpole`` have shape ``(nk, ns, ns, n_T)``; ``zero_line``
    is ``W[s0]`` with shape ``(ns, n_T)``.
    """

    loop: Array
    tadpole: Array
    zero_line: Array


def _safe_frequencies(states: PhononStates, tol: float) -> Array:
    w = states.frequencies
    return np.where(w > tol, w, 1.0)


def _occupancy(states: PhononStates, temperatures: Array, tol: float) -> Array:
    """``2 n + 1`` per mode, zero for modes at or below ``tol``."""

    w = states.frequencies
    out = 2.0 * bose(_safe_frequencies(states, tol), temperatures) + 1.0
    return np.where((w > tol)[..., None], out, 0.0)


def zero_line_sum(coupling: AnharmonicCoupling, temperatures: Array, tol: float, ks: Array | None = None) -> Array:
    """``(1/N) sum_{k1 in ks, s1} V3(0s0, 1, -1)(2 n1 + 1)`` for every ``s0``."""

    states = coupling.states
    grid = states.grid
    occ = _occupancy(states, temperatures, tol)
    ks = np.arange(grid.nk) if ks is None else ks
    out = np.zeros((states.n_branches, len(np.atleast_1d(temperatures))), dtype=np.complex128)
    for k1 in ks:
        blk = coupling.v3_block(grid.gamma_index, int(k1), int(grid.minus[k1]), omega_tol=tol)
        diag = np.einsum("oaa->oa", blk)
        out += diag @ occ[k1]
    return out / grid.nk


def loop_insertion(coupling: AnharmonicCoupling, temperatures: Array, tol: float) -> Array:
    """``Pi_L[k, s, s'] = (1/8N) sum_{k2, s2} V4((-k,s),(k,s'),(k2,s2),(-k2,s2)) (2 n2 + 1)``."""

    states = coupling.states
    grid = states.grid
    occ = _occupancy(states, temperatures, tol)
    ns = states.n_branches
    out = np.zeros((grid.nk, ns, ns, occ.shape[-1]), dtype=np.complex128)
    for k in range(grid.nk):
        mk = int(grid.minus[k])
        for k2 in range(grid.nk):
            blk = coupling.v4_block(mk, k, k2, int(grid.minus[k2]), omega_tol=tol)
            out[k] += np.einsum("abcc,ct->abt", blk, occ[k2])
    return out / (8.0 * grid.nk)


def tadpole_insertion(coupling: AnharmonicCoupling, zero_line: Array, tol: float) -> Array:
    """``Pi_T[k, s, s'] = -(1/8) sum_s0 V3((-k,s),(k,s'),0s0) W[s0] / w0s0``."""

    states = coupling.states
    grid = states.grid
    w0 = states.frequencies[grid.gamma_index]
    scale = np.where(w0 > tol, 1.0 / _safe_frequencies(states, tol)[grid.gamma_index], 0.0)
    weighted = zero_line * scale[:, None]
    ns = states.n_branches
    out = np.zeros((grid.nk, ns, ns, zero_line.shape[-1]), dtype=np.complex128)
    for k in range(grid.nk):
        blk = coupling.v3_block(int(grid.minus[k]), k, grid.gamma_index, omega_tol=tol)
        out[k] = np.einsum("abo,ot->abt", blk, weighted)
    return -out / 8.0


def compute_insertions(coupling: AnharmonicCoupling, temperatures: Array, tol: float) -> Insertions:
    zero_line = zero_line_sum(coupling, temperatures, tol)
    log.debug("computing static insertions for %d temperatures", len(np.atleast_1d(temperatures)))
    return Insertions(
        loop=loop_insertion(coupling, temperatures, tol),
        tadpole=tadpole_insertion(coupling, zero_line, tol),
        zero_line=zero_line,
    )


class DiagramEvaluator:
    """Evaluates the requested diagrams for one external mode at one primary k-point at a time."""

    def __init__(
        self,
        coupling: AnharmonicCoupling,
        config: EngineConfig,
        mode: tuple[int, int],
        omega: float,
        temperatures: Array,
        labels: tuple[str, ...],
        *,
        broadening: Broadening | None = None,
        integrator: TetrahedronIntegrator | None = None,
        insertions: Insertions | None = None,
    ) -> None:
        self.coupling = coupling
        self.states = coupling.states
        self.grid = self.states.grid
        self.config = config
        self.kq, self.sq = mode
        self.mq = int(self.grid.minus[self.kq])
        self.omega = float(omega)
        self.temperatures = np.atleast_1d(np.asarray(temperatures, dtype=float))
        self.labels = labels
        self.broadening = broadening
        self.integrator = integrator
        self.insertions = insertions
        self.tol = config.frequency_tol
        self.w = _safe_frequencies(self.states, self.tol)
        self.occ = _occupancy(self.states, self.temperatures, self.tol)

        if integrator is None and broadening is None:
            raise ValueError("Either a broadening kernel or a tetrahedron integrator is required.")
        if any(lbl in INSERTION_OF for lbl in labels) and insertions is None:
            raise ValueError("Diagrams e-j need precomputed insertions.")
        self._sheet_weights = self._tetrahedron_weights() if integrator is not None else None
        self._zero_vertex = self._zero_line_vertex() if set(labels) & {"c", "i", "j"} else None

    @property
    def n_temperatures(self) -> int:
        return int(self.temperatures.size)

    def _partner(self, k1: int) -> int:
        k2 = self.grid.partner(self.kq, k1)
        self.grid.require_conserving((self.mq, k1, k2), (1, 1, 1), self.config.momentum_tol, "bubble partner")
        return k2

    def _zero_line_vertex(self) -> Array:
        """``V3(-q, q, 0s0) / w0s0`` for every ``s0``."""

        gamma = self.grid.gamma_index
        blk = self.coupling.v3_block(self.mq, self.kq, gamma, ([self.sq], [self.sq], None), self.tol)[0, 0]
        return blk / self.w[gamma]

    def _tetrahedron_weights(self) -> Array:
        """Integration weights of the four sheets ``+-w1 +- w2`` for every branch pair, ``(4, ns, ns, nk)``."""

        ns = self.states.n_branches
        nk = self.grid.nk
        partners = np.array([self.grid.partner(self.kq, k1) for k1 in range(nk)], dtype=int)
        w1 = self.states.frequencies
        w2 = self.states.frequencies[partners]
        out = np.zeros((4, ns, ns, nk))
        for s1 in range(ns):
            for s2 in range(ns):
                sheets = (
                    w1[:, s1] + w2[:, s2],
                    w1[:, s1] - w2[:, s2],
                    -w1[:, s1] + w2[:, s2],
                    -w1[:, s1] - w2[:, s2],
                )
                for i, energies in enumerate(sheets):
                    out[i, s1, s2] = self.integrator.weights(energies, self.omega)
        return out

    def bubble(self, k1: int) -> Array:
        k2 = self._partner(k1)
        v = self.coupling.v3_block(self.mq, k1, k2, ([self.sq], None, None), self.tol)[0]
        occupation = classical if self.config.classical_occupation else bose
        s = s2(self.omega, self.w[k1][:, None], self.w[k2][None, :], self.temperatures, self.broadening, occupation)
        return np.einsum("ab,abt->t", np.abs(v) ** 2, s) / (16.0 * self.grid.nk)

    def bubble_tetrahedron(self, k1: int) -> Array:
        """Imaginary part of the bubble via the sheet weights at ``k1``."""

        k2 = self._partner(k1)
        v2 = np.abs(self.coupling.v3_block(self.mq, k1, k2, ([self.sq], None, None), self.tol)[0]) ** 2
        occupation = classical if self.config.classical_occupation else bose
        n1 = occupation(self.w[k1], self.temperatures)[:, None, :]
        n2 = occupation(self.w[k2], self.temperatures)[None, :, :]
        n_plus = n1 + n2 + 1.0
        n_minus = n1 - n2
        weights = self._sheet_weights[:, :, :, k1]
        im = (
            np.einsum("ab,ab,abt->t", weights[0], v2, n_plus)
            - np.einsum("ab,ab,abt->t", weights[1], v2, n_minus)
            + np.einsum("ab,ab,abt->t", weights[2], v2, n_minus)
            - np.einsum("ab,ab,abt->t", weights[3], v2, n_plus)
        )
        return 1j * np.pi * im / 16.0

    def loop(self, k1: int) -> Array:
        v = self.coupling.v4_block(
            self.mq, self.kq, k1, int(self.grid.minus[k1]), ([self.sq], [self.sq], None, None), self.tol
        )[0, 0]
        return -(np.diagonal(v) @ self.occ[k1]) / (8.0 * self.grid.nk)

    def tadpole(self, k1: int) -> Array:
        w_part = zero_line_sum(self.coupling, self.temperatures, self.tol, ks=np.array([k1]))
        return (self._zero_vertex @ w_part) / 8.0

    def sunset(self, k1: int) -> Array:
        out = np.zeros(self.n_temperatures, dtype=np.complex128)
        for k2 in range(self.grid.nk):
            k3 = self.grid.partner3(self.kq, k1, k2)
            self.grid.require_conserving(
                (self.mq, k1, k2, k3), (1, 1, 1, 1), self.config.momentum_tol, "sunset partner"
            )
            v = self.coupling.v4_block(self.mq, k1, k2, k3, ([self.sq], None, None, None), self.tol)[0]
            s = s3(
                self.omega,
                self.w[k1][:, None, None],
                self.w[k2][None, :, None],
                self.w[k3][None, None, :],
                self.temperatures,
                self.broadening,
            )
            out += np.einsum("abc,abct->t", np.abs(v) ** 2, s)
        return -out / (96.0 * self.grid.nk**2)

    def _insertion(self, label: str) -> Array:
        return getattr(self.insertions, INSERTION_OF[label])

    def loop_with_insertion(self, k1: int, label: str) -> Array:
        mk1 = int(self.grid.minus[k1])
        v = self.coupling.v4_block(self.mq, self.kq, k1, mk1, ([self.sq], [self.sq], None, None), self.tol)[0, 0]
        w1 = self.w[k1]
        t = t2(w1[:, None], w1[None, :], self.temperatures, self.config.degeneracy_tol)
        return np.einsum("ab,abt,abt->t", v, self._insertion(label)[k1], t) / (8.0 * self.grid.nk)

    def bubble_with_insertion(self, k1: int, label: str) -> Array:
        k2 = self._partner(k1)
        mk1 = int(self.grid.minus[k1])
        mk2 = int(self.grid.minus[k2])
        va = self.coupling.v3_block(self.mq, k1, k2, ([self.sq], None, None), self.tol)[0]
        vb = self.coupling.v3_block(self.kq, mk1, mk2, ([self.sq], None, None), self.tol)[0]
        w1 = self.w[k1]
        b = b3(
            self.omega,
            w1[:, None, None],
            w1[None, :, None],
            self.w[k2][None, None, :],
            self.temperatures,
            self.broadening,
            self.config.degeneracy_tol,
        )
        return np.einsum("ac,bc,abt,abct->t", va, vb, self._insertion(label)[k1], b) / (8.0 * self.grid.nk)

    def tadpole_with_insertion(self, k1: int, label: str) -> Array:
        mk1 = int(self.grid.minus[k1])
        v = self.coupling.v3_block(self.grid.gamma_index, k1, mk1, omega_tol=self.tol)
        w1 = self.w[k1]
        t = t2(w1[:, None], w1[None, :], self.temperatures, self.config.degeneracy_tol)
        inner = np.einsum("oab,abt,abt->ot", v, self._insertion(label)[k1], t)
        return -(self._zero_vertex @ inner) / (8.0 * self.grid.nk)

    def evaluate(self, k1: int) -> Array:
        """All requested diagrams at primary index ``k1``, shape ``(n_labels, n_T)``."""

        k1 = int(k1)
        out = np.zeros((len(self.labels), self.n_temperatures), dtype=np.complex128)
        for i, label in enumerate(self.labels):
            if label == "a":
                out[i] = self.bubble_tetrahedron(k1) if self.integrator is not None else self.bubble(k1)
            elif label == "b":
                out[i] = self.loop(k1)
            elif label == "c":
                out[i] = self.tadpole(k1)
            elif label == "d":
                out[i] = self.sunset(k1)
            elif label in ("e", "h"):
                out[i] = self.loop_with_insertion(k1, label)
            elif label in ("f", "g"):
                out[i] = self.bubble_with_insertion(k1, label)
            elif label in ("i", "j"):
                out[i] = self.tadpole_with_insertion(k1, label)
            else:
                raise ValueError(f"Unknown diagram label '{label}'.")
        log.debug2("k1=%d evaluated diagrams %s", k1, "".join(self.labels))
        return out
