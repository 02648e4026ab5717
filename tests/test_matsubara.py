import numpy as np

from anharmpy.core import Broadening, resolvent
from anharmpy.core.matsubara import b3, b3_explicit, b3_limit, s2, s3, t2, t2_explicit, t2_limit
from anharmpy.core.occupation import bose


# Frequencies of order one Ry with kT ~ 0.6 Ry keep the occupations O(1).
TEMPS = np.array([1.0e5])
BROADENING = Broadening("lorentzian", 0.05)


def _rel(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.max(np.abs(a - b)) / np.max(np.abs(b)))


def test_t2_explicit_converges_to_degenerate_limit() -> None:
    w = 1.0
    limit = t2_limit(np.array(w), TEMPS)
    errors = []
    for delta in (1e-2, 1e-3, 1e-4, 1e-7):
        explicit = t2_explicit(np.array(w - 0.5 * delta), np.array(w + 0.5 * delta), TEMPS)
        errors.append(_rel(explicit, limit))
    assert errors[0] > errors[1] > errors[2]
    assert errors[-1] < 1e-6
    assert np.allclose(t2(np.array(w), np.array(w), TEMPS), limit)


def test_b3_explicit_converges_to_degenerate_limit() -> None:
    omega, w, wc = 2.9, 1.0, 0.7
    limit = b3_limit(omega, np.array(w), np.array(wc), TEMPS, BROADENING)
    errors = []
    for delta in (1e-2, 1e-3, 1e-4, 1e-7):
        explicit = b3_explicit(
            omega, np.array(w - 0.5 * delta), np.array(w + 0.5 * delta), np.array(wc), TEMPS, BROADENING
        )
        errors.append(_rel(explicit, limit))
    assert errors[0] > errors[1] > errors[2]
    assert errors[-1] < 1e-6
    dispatched = b3(omega, np.array([w, w]), np.array([w, w + 0.3]), np.array([wc, wc]), TEMPS, BROADENING)
    assert np.allclose(dispatched[0], limit)
    assert np.allclose(
        dispatched[1], b3_explicit(omega, np.array(w), np.array(w + 0.3), np.array(wc), TEMPS, BROADENING)
    )


def test_s2_imaginary_part_is_the_damping_formula() -> None:
    b = Broadening("gaussian", 0.02)
    temps = np.array([0.0, 300.0, 1.0e5])
    w1 = np.array([0.4, 0.9])
    w2 = np.array([0.5, 0.2])
    omega = 0.95
    n1 = bose(w1, temps)
    n2 = bose(w2, temps)
    n_plus = n1 + n2 + 1.0
    n_minus = n1 - n2

    def d(x):
        return b.delta(x)[:, None]

    expected = np.pi * (
        -n_plus * d(omega + w1 + w2)
        + n_plus * d(omega - w1 - w2)
        - n_minus * d(omega - w1 + w2)
        + n_minus * d(omega + w1 - w2)
    )
    assert np.allclose(s2(omega, w1, w2, temps, b).imag, expected)


def test_s3_at_zero_temperature() -> None:
    b = Broadening("lorentzian", 0.01)
    w = np.array([0.3, 0.4, 0.5])
    omega = 1.1
    total = w.sum()
    expected = resolvent(omega - total, "lorentzian", 0.01) - resolvent(omega + total, "lorentzian", 0.01)
    got = s3(omega, w[0], w[1], w[2], np.array([0.0]), b)
    assert np.allclose(got[0], expected)
