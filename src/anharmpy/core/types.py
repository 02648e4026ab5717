"""Core data structures for anharmonic self-energy evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .errors import GridError
from .kgrid import KPointGrid


Array = np.ndarray
Mode = tuple[int, int]

DIAGRAM_LABELS: tuple[str, ...] = ("a", "b", "c", "d", "e", "f", "g", "h", "i", "j")


@dataclass(frozen=True)
class PhononStates:
    """Harmonic frequencies and eigenvectors on every point of a k-grid.

    ``frequencies[k, s]`` are QE omega (may be <= 0 for unstable or acoustic
    modes at Gamma); ``eigenvectors[k, s, 3*atom+xyz]`` are unit-normalized
    complex polarization vectors with ``e(-k) = conj(e(k))``.
    """

    grid: KPointGrid
    frequencies: Array
    eigenvectors: Array
    group_velocities: Array | None = None

    def __post_init__(self) -> None:
        if self.frequencies.ndim != 2:
            raise ValueError("frequencies must have shape (nk, n_branches).")
        if self.frequencies.shape[0] != self.grid.nk:
            raise GridError(
                f"frequencies cover {self.frequencies.shape[0]} k-points but the grid has {self.grid.nk}."
            )
        nk, ns = self.frequencies.shape
        if self.eigenvectors.ndim != 3 or self.eigenvectors.shape[:2] != (nk, ns):
            raise ValueError("eigenvectors must have shape (nk, n_branches, ndof).")
        if self.eigenvectors.shape[2] != ns:
            raise ValueError("eigenvectors must be square per k-point (ndof == n_branches).")
        if self.group_velocities is not None and self.group_velocities.shape != (nk, ns, 3):
            raise ValueError("group_velocities must have shape (nk, n_branches, 3).")

    @property
    def nk(self) -> int:
        return int(self.frequencies.shape[0])

    @property
    def n_branches(self) -> int:
        return int(self.frequencies.shape[1])

    def frequency(self, k: int, s: int) -> float:
        return float(self.frequencies[k, s])

    def eigenvector(self, k: int, s: int) -> Array:
        return self.eigenvectors[k, s]

    def negate(self, k: int) -> int:
        return int(self.grid.minus[k])

    def nearest_grid_index(self, x: Array, tol: float = 1e-6) -> int:
        return self.grid.nearest_grid_index(x, tol=tol)

    def conjugation_residual(self) -> float:
        """Largest ``|e(-k) - conj(e(k))|`` over the grid."""

        minus = np.asarray(self.grid.minus)
        return float(np.max(np.abs(self.eigenvectors[minus] - self.eigenvectors.conj())))


@dataclass(frozen=True)
class SelfEnergyResult:
    """Finalized self-energy of one mode over a temperature list.

    ``diagrams[label]`` holds complex arrays of shape ``(n_temperatures,)`` with
    ``Im = Gamma`` (half linewidth) and ``Re = -Delta`` (minus the frequency shift).
    """

    mode: Mode
    frequency: float
    temperatures: Array
    diagrams: dict[str, Array] = field(default_factory=dict)
    real_part_available: bool = True

    @property
    def total(self) -> Array:
        out = np.zeros(len(self.temperatures), dtype=np.complex128)
        for value in self.diagrams.values():
            out = out + value
        return out

    @property
    def linewidth(self) -> Array:
        """Half width ``Gamma = Im Sigma`` in QE omega."""

        return self.total.imag

    @property
    def shift(self) -> Array:
        """Frequency shift ``Delta = -Re Sigma`` in QE omega."""

        return -self.total.real

    @property
    def scattering_rate(self) -> Array:
        return 2.0 * self.linewidth
