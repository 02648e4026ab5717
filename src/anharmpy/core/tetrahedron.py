"""Linear tetrahedron integration over a uniform k-grid.

Each grid cube is split into six tetrahedra sharing the (0,0,0)-(1,1,1)
diagonal. For a target energy the isosurface integral of a quantity ``f`` is

    (1/N_k) sum_k f(k) delta(target - e(k))
        ~ sum_T (1/(6 N_k)) g_T(target) <f>_T

with ``g_T`` the piecewise-quadratic tetrahedron DOS (normalized to one) and
``<f>_T`` the average of the linear interpolant of ``f`` over the isosurface
polygon inside ``T``.
"""

from __future__ import annotations

import numpy as np

from .errors import GridError
from .kgrid import KPointGrid


Array = np.ndarray

_CUBE_CORNERS = np.array(
    [(0, 0, 0), (1, 0, 0), (0, 1, 0), (1, 1, 0), (0, 0, 1), (1, 0, 1), (0, 1, 1), (1, 1, 1)],
    dtype=int,
)
_CUBE_TETRAHEDRA = np.array(
    [(0, 1, 3, 7), (0, 2, 3, 7), (0, 1, 5, 7), (0, 4, 5, 7), (0, 2, 6, 7), (0, 4, 6, 7)],
    dtype=int,
)
# Vertices of the reference tetrahedron; sorted corners map onto these rows.
_REFERENCE = np.array([(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)])


def _edge_point(es: Array, target: float, i: int, j: int) -> Array:
    """Barycentric weights of the isosurface crossing on edge (i, j)."""

    t = (target - es[:, i]) / (es[:, j] - es[:, i])
    bary = np.zeros((es.shape[0], 4))
    bary[:, i] = 1.0 - t
    bary[:, j] = t
    return bary


def _triangle_area(p0: Array, p1: Array, p2: Array) -> Array:
    a = (p1 - p0) @ _REFERENCE
    b = (p2 - p0) @ _REFERENCE
    return 0.5 * np.linalg.norm(np.cross(a, b), axis=1)


class TetrahedronIntegrator:
    """Isosurface integrals on a :class:`KPointGrid`."""

    def __init__(self, grid: KPointGrid) -> None:
        self.grid = grid
        nkx, nky, nkz = grid.dims
        tetra = []
        for ix in range(nkx):
            for iy in range(nky):
                for iz in range(nkz):
                    corners = [grid.index(ix + c[0], iy + c[1], iz + c[2]) for c in _CUBE_CORNERS]
                    for tet in _CUBE_TETRAHEDRA:
                        tetra.append([corners[c] for c in tet])
        self.tetrahedra = np.asarray(tetra, dtype=int)

    @property
    def n_tetrahedra(self) -> int:
        return int(self.tetrahedra.shape[0])

    def weights(self, energies: Array, target: float) -> Array:
        """Per-k-point weights ``w`` such that ``integrate(e, f, target) = w @ f``."""

        e = np.asarray(energies, dtype=float)
        if e.shape != (self.grid.nk,):
            raise GridError(f"energies must have shape ({self.grid.nk},), got {e.shape}.")
        et = e[self.tetrahedra]
        order = np.argsort(et, axis=1, kind="stable")
        es = np.take_along_axis(et, order, axis=1)
        corners = np.take_along_axis(self.tetrahedra, order, axis=1)

        e1, e2, e3, e4 = es[:, 0], es[:, 1], es[:, 2], es[:, 3]
        g = np.zeros(es.shape[0])
        bary = np.zeros((es.shape[0], 4))

        lower = (e1 <= target) & (target < e2)
        if np.any(lower):
            s = es[lower]
            d = target - s[:, 0]
            g[lower] = 3.0 * d * d / ((s[:, 1] - s[:, 0]) * (s[:, 2] - s[:, 0]) * (s[:, 3] - s[:, 0]))
            pts = [_edge_point(s, target, 0, j) for j in (1, 2, 3)]
            bary[lower] = (pts[0] + pts[1] + pts[2]) / 3.0

        middle = (e2 <= target) & (target < e3)
        if np.any(middle):
            s = es[middle]
            e21 = s[:, 1] - s[:, 0]
            e31 = s[:, 2] - s[:, 0]
            e41 = s[:, 3] - s[:, 0]
            e32 = s[:, 2] - s[:, 1]
            e42 = s[:, 3] - s[:, 1]
            d = target - s[:, 1]
            g[middle] = (3.0 * e21 + 6.0 * d - 3.0 * (e31 + e42) * d * d / (e32 * e42)) / (e31 * e41)
            p13 = _edge_point(s, target, 0, 2)
            p14 = _edge_point(s, target, 0, 3)
            p24 = _edge_point(s, target, 1, 3)
            p23 = _edge_point(s, target, 1, 2)
            area_a = _triangle_area(p13, p14, p24)
            area_b = _triangle_area(p13, p24, p23)
            total = area_a + area_b
            mean_a = (p13 + p14 + p24) / 3.0
            mean_b = (p13 + p24 + p23) / 3.0
            safe = np.where(total > 0.0, total, 1.0)[:, None]
            bary[middle] = np.where(
                (total > 0.0)[:, None],
                (area_a[:, None] * mean_a + area_b[:, None] * mean_b) / safe,
                0.5 * (mean_a + mean_b),
            )

        upper = (e3 <= target) & (target < e4)
        if np.any(upper):
            s = es[upper]
            d = s[:, 3] - target
            g[upper] = 3.0 * d * d / ((s[:, 3] - s[:, 0]) * (s[:, 3] - s[:, 1]) * (s[:, 3] - s[:, 2]))
            pts = [_edge_point(s, target, i, 3) for i in (0, 1, 2)]
            bary[upper] = (pts[0] + pts[1] + pts[2]) / 3.0

        w = np.zeros(self.grid.nk)
        np.add.at(w, corners, (g / (6.0 * self.grid.nk))[:, None] * bary)
        return w

    def integrate(self, energies: Array, values: Array, target: float) -> float | Array:
        """Integrate ``values`` (shape ``(nk,)`` or ``(nk, m)``) over the ``energies == target`` surface."""

        f = np.asarray(values)
        if f.shape[0] != self.grid.nk:
            raise GridError(f"values must have leading dimension {self.grid.nk}, got {f.shape}.")
        w = self.weights(energies, target)
        out = np.tensordot(w, f, axes=(0, 0))
        if f.ndim == 1:
            return float(out) if np.isrealobj(out) else complex(out)
        return out
