"""Uniform Gamma-centred k-point grids and momentum-conservation folding."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .errors import GridError, MomentumConservationError


Array = np.ndarray


def _wrapped_residual(x: Array) -> Array:
    x = np.asarray(x, dtype=float)
    return x - np.rint(x)


@dataclass(frozen=True)
class KPointGrid:
    """Gamma-centred ``nkx x nky x nkz`` mesh in fractional reciprocal coordinates.

    Points are stored with the flat index ``iz + nkz*iy + nky*nkz*ix`` and
    ``xk[i] = (ix/nkx, iy/nky, iz/nkz)``. ``minus[i]`` is the index of ``-xk[i]``.
    """

    dims: tuple[int, int, int]
    xk: Array = field(init=False, repr=False)
    minus: Array = field(init=False, repr=False)

    def __post_init__(self) -> None:
        dims = tuple(int(n) for n in self.dims)
        if len(dims) != 3 or min(dims) <= 0:
            raise GridError(f"k-grid dimensions must be three positive integers, got {self.dims!r}.")
        object.__setattr__(self, "dims", dims)
        nkx, nky, nkz = dims
        ix, iy, iz = np.meshgrid(np.arange(nkx), np.arange(nky), np.arange(nkz), indexing="ij")
        xk = np.stack([ix.ravel() / nkx, iy.ravel() / nky, iz.ravel() / nkz], axis=1)
        xk.setflags(write=False)
        object.__setattr__(self, "xk", xk)
        minus = np.array([self.fold(-x) for x in xk], dtype=int)
        minus.setflags(write=False)
        object.__setattr__(self, "minus", minus)

    @property
    def nk(self) -> int:
        return int(self.xk.shape[0])

    @property
    def gamma_index(self) -> int:
        return 0

    def index(self, ix: int, iy: int, iz: int) -> int:
        nkx, nky, nkz = self.dims
        return int((iz % nkz) + nkz * (iy % nky) + nky * nkz * (ix % nkx))

    def fold(self, x: Array) -> int:
        """Round a fractional vector onto the grid and return its flat index."""

        x = np.asarray(x, dtype=float)
        if x.shape != (3,):
            raise GridError(f"Fractional k-vector must have shape (3,), got {x.shape}.")
        n = np.asarray(self.dims, dtype=float)
        i = np.rint(x * n + 2.0 * n).astype(int) % np.asarray(self.dims)
        return self.index(int(i[0]), int(i[1]), int(i[2]))

    def partner(self, k: int, k1: int) -> int:
        """Index of ``k2`` with ``k = k1 + k2`` modulo a reciprocal lattice vector."""

        return self.fold(self.xk[k] - self.xk[k1])

    def partner3(self, k: int, k1: int, k2: int) -> int:
        """Index of ``k3`` with ``k = k1 + k2 + k3`` modulo a reciprocal lattice vector."""

        return self.fold(self.xk[k] - self.xk[k1] - self.xk[k2])

    def momentum_residual(self, ks: tuple[int, ...], signs: tuple[int, ...] | None = None) -> float:
        signs = signs or (1,) * len(ks)
        total = np.zeros(3)
        for k, s in zip(ks, signs):
            total += s * self.xk[k]
        return float(np.linalg.norm(_wrapped_residual(total)))

    def conserves(self, ks: tuple[int, ...], tol: float = 1e-8, signs: tuple[int, ...] | None = None) -> bool:
        return self.momentum_residual(ks, signs) < tol

    def require_conserving(self, ks: tuple[int, ...], signs: tuple[int, ...], tol: float, context: str) -> None:
        residual = self.momentum_residual(ks, signs)
        if residual >= tol:
            raise MomentumConservationError(
                f"{context}: k-points {ks} with signs {signs} violate momentum conservation "
                f"(residual {residual:.3e} >= tol {tol:.1e})."
            )

    def nearest_grid_index(self, x: Array, tol: float = 1e-6) -> int:
        """Return the grid index of ``x``; raise ``GridError`` if ``x`` is not on the grid."""

        x = np.asarray(x, dtype=float)
        idx = self.fold(x)
        residual = float(np.linalg.norm(_wrapped_residual(x - self.xk[idx])))
        if residual > tol:
            raise GridError(f"k-point {x.tolist()} is not on the {self.dims} grid (residual {residual:.3e}).")
        return idx

    def momentum_conserving_triplets(self, tol: float = 1e-8) -> list[tuple[int, int, int]]:
        """Explicit O(N_k^3) scan for ``k1 + k2 + k3 = 0`` (mod G) with ``k1 <= k2 <= k3``."""

        triplets: list[tuple[int, int, int]] = []
        xk = self.xk
        for k1 in range(self.nk):
            for k2 in range(k1, self.nk):
                for k3 in range(k2, self.nk):
                    d = _wrapped_residual(xk[k1] + xk[k2] + xk[k3])
                    if float(np.linalg.norm(d)) < tol:
                        triplets.append((k1, k2, k3))
        return triplets


def check_lattice(lattice_vectors: Array, tol: float = 1e-12) -> float:
    """Return the cell volume; raise ``GridError`` for a singular lattice metric."""

    lat = np.asarray(lattice_vectors, dtype=float)
    if lat.shape != (3, 3):
        raise GridError("lattice_vectors must have shape (3, 3).")
    volume = float(abs(np.linalg.det(lat)))
    scale = float(np.prod(np.linalg.norm(lat, axis=1)))
    if scale == 0.0 or volume <= tol * scale:
        raise GridError("Lattice metric is singular (cell volume is zero).")
    return volume
