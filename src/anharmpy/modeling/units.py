"""Unit conversion helpers for Rydberg-atomic-unit phonon quantities.

Internal frequencies follow the QE convention: force constants in Ry/Bohr^n,
masses in Ry-mass units (``2 * electron_mass``), hbar = 1, so an angular
frequency ``omega`` is also an energy in Ry.
"""

from __future__ import annotations

import numpy as np


# CODATA 2018 constants (SI).
RYDBERG_J = 2.1798723611035e-18
BOHR_M = 5.29177210903e-11
ELECTRON_MASS_KG = 9.1093837015e-31
QE_RY_MASS_UNIT_KG = 2.0 * ELECTRON_MASS_KG
SPEED_OF_LIGHT_CM_S = 2.99792458e10
KB_J_K = 1.380649e-23
AMU_KG = 1.66053906660e-27

# Boltzmann constant in Ry/K.
KB_RY = KB_J_K / RYDBERG_J


def qe_omega_to_rad_s(omega: np.ndarray | float) -> np.ndarray | float:
    """Convert internal QE omega to angular frequency [rad/s]."""

    factor = np.sqrt(RYDBERG_J / (QE_RY_MASS_UNIT_KG * BOHR_M * BOHR_M))
    return np.asarray(omega) * factor


def qe_omega_to_thz(omega: np.ndarray | float) -> np.ndarray | float:
    """Convert internal QE omega to frequency [THz]."""

    w = np.asarray(qe_omega_to_rad_s(omega), dtype=float)
    return w / (2.0 * np.pi * 1.0e12)


def qe_omega_to_cm1(omega: np.ndarray | float) -> np.ndarray | float:
    """Convert internal QE omega to wavenumber [cm^-1]."""

    w = np.asarray(qe_omega_to_rad_s(omega), dtype=float)
    return w / (2.0 * np.pi * SPEED_OF_LIGHT_CM_S)


def cm1_to_qe_omega(wavenumber: np.ndarray | float) -> np.ndarray | float:
    """Convert wavenumber [cm^-1] to internal QE omega."""

    factor = float(np.asarray(qe_omega_to_cm1(1.0), dtype=float))
    return np.asarray(wavenumber, dtype=float) / factor


def qe_rate_to_lifetime_ps(rate: np.ndarray | float) -> np.ndarray | float:
    """Convert a scattering rate ``2*Gamma`` in QE omega units to a lifetime [ps].

    Non-positive rates map to ``inf``.
    """

    r = np.asarray(qe_omega_to_rad_s(rate), dtype=float)
    out = np.full_like(r, np.inf, dtype=float)
    np.divide(1.0e12, r, out=out, where=r > 0.0)
    return out


def amu_to_qe_mass(mass_amu: np.ndarray | float) -> np.ndarray | float:
    """Convert atomic mass units to QE Ry-mass units."""

    return np.asarray(mass_amu, dtype=float) * (AMU_KG / QE_RY_MASS_UNIT_KG)


def qe_velocity_to_m_s(velocity: np.ndarray | float) -> np.ndarray | float:
    """Convert a group velocity d(omega)/dk in QE omega * Bohr to [m/s]."""

    return np.asarray(qe_omega_to_rad_s(velocity), dtype=float) * BOHR_M


def bohr3_to_m3(volume: float) -> float:
    return float(volume) * BOHR_M**3
