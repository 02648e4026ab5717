"""Bose-Einstein occupations, their derivatives, and mode heat capacities.

Frequencies are QE omega (Ry); temperatures are Kelvin. Every function
broadcasts ``omega`` of shape ``(...)`` against a 1D temperature array and
returns shape ``(..., n_T)``.
"""

from __future__ import annotations

import numpy as np

from anharmpy.modeling.units import KB_J_K, KB_RY


Array = np.ndarray

_T_EPS = 1.0e-12


def _grid(omega: Array | float, temperatures: Array | float) -> tuple[Array, Array, Array]:
    w = np.asarray(omega, dtype=float)[..., None]
    t = np.atleast_1d(np.asarray(temperatures, dtype=float))
    if t.ndim != 1:
        raise ValueError("temperatures must be a scalar or a 1D array.")
    if np.any(t < 0.0):
        raise ValueError("temperatures must be non-negative.")
    w, t = np.broadcast_arrays(w, t)
    hot = t > _T_EPS
    return w, t, hot


def bose(omega: Array | float, temperatures: Array | float) -> Array:
    """Bose occupation ``1/(exp(w/kT)-1)``; satisfies ``n(-w) = -1 - n(w)``.

    At ``T = 0`` the occupation is ``0`` for ``w > 0`` and ``-1`` for ``w < 0``.
    """

    w, t, hot = _grid(omega, temperatures)
    out = np.where(w < 0.0, -1.0, 0.0)
    with np.errstate(divide="ignore", over="ignore"):
        x = np.divide(w, KB_RY * t, out=np.zeros_like(w), where=hot)
        val = 1.0 / np.expm1(x)
    mask = hot & (w != 0.0)
    out[mask] = val[mask]
    return out


def classical(omega: Array | float, temperatures: Array | float) -> Array:
    """Boltzmann occupation ``exp(-w/kT)``, zero at ``T = 0``."""

    w, t, hot = _grid(omega, temperatures)
    out = np.zeros_like(w)
    with np.errstate(over="ignore"):
        x = np.divide(w, KB_RY * t, out=np.zeros_like(w), where=hot)
        out[hot] = np.exp(-x[hot])
    return out


def bose_domega(omega: Array | float, temperatures: Array | float) -> Array:
    """``dn/dw = -n(n+1)/(kT)``; zero at ``T = 0``."""

    w, t, hot = _grid(omega, temperatures)
    n = bose(omega, temperatures)
    out = np.zeros_like(w)
    out[hot] = -n[hot] * (n[hot] + 1.0) / (KB_RY * t[hot])
    return out


def bose_dtemperature(omega: Array | float, temperatures: Array | float) -> Array:
    """``dn/dT = w n(n+1)/(kT^2)``; zero at ``T = 0``."""

    w, t, hot = _grid(omega, temperatures)
    n = bose(omega, temperatures)
    out = np.zeros_like(w)
    out[hot] = w[hot] * n[hot] * (n[hot] + 1.0) / (KB_RY * t[hot] ** 2)
    return out


def heat_capacity(omega: Array | float, temperatures: Array | float) -> Array:
    """Mode heat capacity ``kB x^2 e^x/(e^x-1)^2`` in J/K, ``x = w/kT``.

    Zero for non-positive frequencies and at ``T = 0``.
    """

    w, t, hot = _grid(omega, temperatures)
    out = np.zeros_like(w)
    mask = hot & (w > 0.0)
    x = w[mask] / (KB_RY * t[mask])
    with np.errstate(over="ignore", invalid="ignore"):
        val = x * x * np.exp(-x) / (-np.expm1(-x)) ** 2
    out[mask] = KB_J_K * np.nan_to_num(val)
    return out
