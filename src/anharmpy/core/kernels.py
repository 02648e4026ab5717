"""Broadened delta functions and resolvents for energy conservation.

The resolvent ``R(x)`` approximates ``1/(x + i0)``: its imaginary part is
``-pi * delta(x)`` for the chosen kernel and its real part is the matching
principal value (Lorentzian: ``x/(x^2+eps^2)``; Gaussian: ``2/eps * D(x/eps)``
with ``D`` the Dawson function).
"""

from __future__ import annotations

import numpy as np
from scipy.special import dawsn


Array = np.ndarray

SMEARING_KERNELS: tuple[str, ...] = ("lorentzian", "gaussian")


def _check(eps: float, method: str | None = None) -> None:
    if eps <= 0.0:
        raise ValueError("smearing width must be positive.")
    if method is not None and method not in SMEARING_KERNELS:
        raise ValueError(f"Unknown smearing kernel '{method}'. Available: {', '.join(SMEARING_KERNELS)}")


def lorentzian(x: Array | float, eps: float) -> Array:
    _check(eps)
    x = np.asarray(x, dtype=float)
    return eps / (np.pi * (x * x + eps * eps))


def gaussian(x: Array | float, eps: float) -> Array:
    _check(eps)
    x = np.asarray(x, dtype=float)
    return np.exp(-(x * x) / (eps * eps)) / (eps * np.sqrt(np.pi))


def delta(x: Array | float, method: str, eps: float) -> Array:
    _check(eps, method)
    if method == "lorentzian":
        return lorentzian(x, eps)
    return gaussian(x, eps)


def resolvent(x: Array | float, method: str, eps: float) -> Array:
    """Broadened ``1/(x + i0)``."""

    _check(eps, method)
    x = np.asarray(x, dtype=float)
    if method == "lorentzian":
        return 1.0 / (x + 1j * eps)
    return (2.0 / eps) * dawsn(x / eps) - 1j * np.pi * gaussian(x, eps)


def resolvent_derivative(x: Array | float, method: str, eps: float) -> Array:
    """``dR/dx`` of :func:`resolvent`."""

    _check(eps, method)
    x = np.asarray(x, dtype=float)
    if method == "lorentzian":
        return -1.0 / (x + 1j * eps) ** 2
    u = x / eps
    real = (2.0 / (eps * eps)) * (1.0 - 2.0 * u * dawsn(u))
    dg = -(2.0 * x / (eps * eps)) * gaussian(x, eps)
    return real - 1j * np.pi * dg


class Broadening:
    """A chosen kernel bound to its width."""

    def __init__(self, method: str, eps: float) -> None:
        _check(eps, method)
        self.method = method
        self.eps = float(eps)

    def __repr__(self) -> str:
        return f"Broadening(method={self.method!r}, eps={self.eps!r})"

    def delta(self, x: Array | float) -> Array:
        return delta(x, self.method, self.eps)

    def resolvent(self, x: Array | float) -> Array:
        return resolvent(x, self.method, self.eps)

    def derivative(self, x: Array | float) -> Array:
        return resolvent_derivative(x, self.method, self.eps)
