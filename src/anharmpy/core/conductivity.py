"""Lattice thermal conductivity in the relaxation-time approximation."""

from __future__ import annotations

import numpy as np

from anharmpy.logger import get_logger
from anharmpy.modeling.units import bohr3_to_m3, qe_omega_to_rad_s, qe_velocity_to_m_s

from .kgrid import check_lattice
from .occupation import heat_capacity
from .types import Array, PhononStates


log = get_logger(__name__)


def relaxation_times(linewidths: Array) -> Array:
    """Lifetimes ``tau = 1/(2 Gamma)`` in seconds; ``inf`` where ``Gamma <= 0``."""

    rate = np.asarray(qe_omega_to_rad_s(2.0 * np.asarray(linewidths, dtype=float)), dtype=float)
    out = np.full_like(rate, np.inf)
    np.divide(1.0, rate, out=out, where=rate > 0.0)
    return out


def rta_conductivity(
    states: PhononStates,
    linewidths: Array,
    temperatures: Array,
    lattice_vectors: Array,
    frequency_tol: float = 1e-6,
) -> Array:
    """``kappa_ab(T) = 1/(N V) sum_ks C v_a v_b tau`` in W/(m K), shape ``(n_T, 3, 3)``.

    ``linewidths`` holds ``Gamma`` with shape ``(nk, ns, n_T)``; modes with
    ``w <= frequency_tol`` or without a positive linewidth do not contribute.
    """

    if states.group_velocities is None:
        raise ValueError("PhononStates carries no group velocities; rebuild with with_velocities=True.")
    temperatures = np.atleast_1d(np.asarray(temperatures, dtype=float))
    gamma = np.asarray(linewidths, dtype=float)
    if gamma.shape != states.frequencies.shape + (temperatures.size,):
        raise ValueError("linewidths must have shape (nk, n_branches, n_temperatures).")
    volume = bohr3_to_m3(check_lattice(lattice_vectors))

    w = states.frequencies
    active = (w > frequency_tol)[..., None] & (gamma > 0.0)
    cv = heat_capacity(np.where(w > frequency_tol, w, 0.0), temperatures)
    tau = relaxation_times(gamma)
    weight = np.where(active, cv * np.where(np.isfinite(tau), tau, 0.0), 0.0)
    vel = np.asarray(qe_velocity_to_m_s(states.group_velocities), dtype=float)
    kappa = np.einsum("kst,ksa,ksb->tab", weight, vel, vel) / (states.nk * volume)
    log.info("RTA conductivity: trace/3 at T=%.1f K is %.4e W/(m K)", temperatures[0], np.trace(kappa[0]) / 3.0)
    return kappa
