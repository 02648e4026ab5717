"""Config knobs for self-energy evaluation."""

from __future__ import annotations

from dataclasses import dataclass


SMEARING_METHODS: tuple[str, ...] = ("lorentzian", "gaussian", "tetrahedron")


@dataclass(frozen=True)
class EngineConfig:
    """Self-energy engine settings. Frequencies are in QE omega (Ry) units."""

    method: str = "lorentzian"
    smearing: float = 1.0e-5
    four_phonon: bool = False
    classical_occupation: bool = False
    frequency_tol: float = 1.0e-6
    degeneracy_tol: float = 1.0e-10
    momentum_tol: float = 1.0e-8
