"""Closed-form Matsubara frequency sums for the self-energy diagrams.

All functions take frequency arrays of a common (broadcastable) shape ``S``
and a 1D temperature array, and return shape ``S + (n_T,)``. Resolvents
``R(x) ~ 1/(x + i0)`` come from a :class:`~anharmpy.core.kernels.Broadening`.

Removable poles ``1/(w_a - w_b)`` switch to their analytic limits when
``|w_a - w_b| < degeneracy_tol``; the ``*_explicit`` and ``*_limit`` forms are
exposed separately so the two branches can be compared.
"""

from __future__ import annotations

from itertools import product
from typing import Callable

import numpy as np

from .kernels import Broadening
from .occupation import bose, bose_domega


Array = np.ndarray
Occupation = Callable[[Array, Array], Array]


def _r(broadening: Broadening, x: Array) -> Array:
    return broadening.resolvent(x)[..., None]


def s2(
    omega: float,
    w1: Array,
    w2: Array,
    temperatures: Array,
    broadening: Broadening,
    occupation: Occupation = bose,
) -> Array:
    """Two-line sum of the bubble.

    ``n+ [R(w+w1+w2) - R(w-w1-w2)] + n- [R(w-w1+w2) - R(w+w1-w2)]`` with
    ``n+ = n1+n2+1`` and ``n- = n1-n2``; its imaginary part is
    ``pi [n+ d(w-w1-w2) - n+ d(w+w1+w2) + n- d(w+w1-w2) - n- d(w-w1+w2)]``.
    """

    w1 = np.asarray(w1, dtype=float)
    w2 = np.asarray(w2, dtype=float)
    n1 = occupation(w1, temperatures)
    n2 = occupation(w2, temperatures)
    n_plus = n1 + n2 + 1.0
    n_minus = n1 - n2
    ws = w1 + w2
    wd = w1 - w2
    return n_plus * (_r(broadening, omega + ws) - _r(broadening, omega - ws)) + n_minus * (
        _r(broadening, omega - wd) - _r(broadening, omega + wd)
    )


def s3(omega: float, w1: Array, w2: Array, w3: Array, temperatures: Array, broadening: Broadening) -> Array:
    """Three-line sum of the quartic sunset, ``sum_sigma s1 s2 s3 P3 R(w - sum s w)``."""

    w = [np.asarray(x, dtype=float) for x in (w1, w2, w3)]
    n = [bose(x, temperatures) for x in w]
    out = 0.0
    for signs in product((1, -1), repeat=3):
        occ = [n[i] if s > 0 else -1.0 - n[i] for i, s in enumerate(signs)]
        p3 = 1.0 + occ[0] + occ[1] + occ[2] + occ[0] * occ[1] + occ[1] * occ[2] + occ[2] * occ[0]
        energy = signs[0] * w[0] + signs[1] * w[1] + signs[2] * w[2]
        out = out + signs[0] * signs[1] * signs[2] * p3 * _r(broadening, omega - energy)
    return out


def t2_explicit(wa: Array, wb: Array, temperatures: Array) -> Array:
    wa = np.asarray(wa, dtype=float)
    wb = np.asarray(wb, dtype=float)
    na = bose(wa, temperatures)
    nb = bose(wb, temperatures)
    diff = (wa - wb)[..., None]
    return -2.0 * (na - nb) / diff + 2.0 * (1.0 + na + nb) / (wa + wb)[..., None]


def t2_limit(wa: Array, temperatures: Array) -> Array:
    wa = np.asarray(wa, dtype=float)
    na = bose(wa, temperatures)
    return -2.0 * bose_domega(wa, temperatures) + (1.0 + 2.0 * na) / wa[..., None]


def t2(wa: Array, wb: Array, temperatures: Array, degeneracy_tol: float = 1e-10) -> Array:
    """Static two-line sum of a loop carrying a two-point insertion.

    ``-2 (na - nb)/(wa - wb) + 2 (1 + na + nb)/(wa + wb)``.
    """

    wa, wb = np.broadcast_arrays(np.asarray(wa, dtype=float), np.asarray(wb, dtype=float))
    degenerate = np.abs(wa - wb) < degeneracy_tol
    safe_b = np.where(degenerate, wb + 1.0, wb)
    explicit = t2_explicit(wa, safe_b, temperatures)
    return np.where(degenerate[..., None], t2_limit(wa, temperatures), explicit)


def _f(omega: float, x: Array, z: Array, temperatures: Array, broadening: Broadening) -> Array:
    return -(1.0 + bose(x, temperatures) + bose(z, temperatures)) * _r(broadening, omega - x - z)


def _g_limit(omega: float, x: Array, z: Array, temperatures: Array, broadening: Broadening) -> Array:
    u = omega - x - z
    occ = 1.0 + bose(x, temperatures) + bose(z, temperatures)
    return -bose_domega(x, temperatures) * _r(broadening, u) + occ * broadening.derivative(u)[..., None]


def b3_explicit(
    omega: float, wa: Array, wb: Array, wc: Array, temperatures: Array, broadening: Broadening
) -> Array:
    wa, wb, wc = (np.asarray(x, dtype=float) for x in (wa, wb, wc))
    out = 0.0
    for sa, sb, sc in product((1, -1), repeat=3):
        x, y, z = sa * wa, sb * wb, sc * wc
        num = _f(omega, x, z, temperatures, broadening) - _f(omega, y, z, temperatures, broadening)
        g = num / (x - y)[..., None]
        out = out + sa * sb * sc * g
    return out


def b3_limit(omega: float, wa: Array, wc: Array, temperatures: Array, broadening: Broadening) -> Array:
    wa, wc = (np.asarray(x, dtype=float) for x in (wa, wc))
    out = 0.0
    for sa, sb, sc in product((1, -1), repeat=3):
        x, z = sa * wa, sc * wc
        if sa == sb:
            g = _g_limit(omega, x, z, temperatures, broadening)
        else:
            num = _f(omega, x, z, temperatures, broadening) - _f(omega, -x, z, temperatures, broadening)
            g = num / (2.0 * x)[..., None]
        out = out + sa * sb * sc * g
    return out


def b3(
    omega: float,
    wa: Array,
    wb: Array,
    wc: Array,
    temperatures: Array,
    broadening: Broadening,
    degeneracy_tol: float = 1e-10,
) -> Array:
    """Dynamic three-line sum of a bubble whose first line carries a two-point insertion.

    ``sum_{sa,sb,sc} sa sb sc [F(sa wa, sc wc) - F(sb wb, sc wc)] / (sa wa - sb wb)``
    with ``F(x, z) = -(1 + n(x) + n(z)) R(w - x - z)``.
    """

    wa, wb, wc = np.broadcast_arrays(*(np.asarray(x, dtype=float) for x in (wa, wb, wc)))
    degenerate = np.abs(wa - wb) < degeneracy_tol
    safe_b = np.where(degenerate, wb + 1.0, wb)
    explicit = b3_explicit(omega, wa, safe_b, wc, temperatures, broadening)
    if not np.any(degenerate):
        return explicit
    return np.where(degenerate[..., None], b3_limit(omega, wa, wc, temperatures, broadening), explicit)
