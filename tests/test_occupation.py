import numpy as np

from anharmpy.core import bose, bose_domega, bose_dtemperature, classical, heat_capacity
from anharmpy.modeling import KB_RY
from anharmpy.modeling.units import KB_J_K


def test_bose_shape_and_negative_frequency_identity() -> None:
    w = np.array([[1e-3, 4e-3], [2e-3, 8e-3]])
    temps = np.array([10.0, 300.0, 1000.0])
    n = bose(w, temps)
    assert n.shape == (2, 2, 3)
    assert np.allclose(bose(-w, temps), -1.0 - n)


def test_bose_zero_temperature_limits() -> None:
    n = bose(np.array([-2e-3, 3e-3]), [0.0])
    assert np.allclose(n[:, 0], [-1.0, 0.0])
    assert np.allclose(bose_domega(3e-3, [0.0]), 0.0)
    assert np.allclose(classical(3e-3, [0.0]), 0.0)


def test_bose_derivatives_match_finite_differences() -> None:
    w = 3e-3
    temps = np.array([100.0, 300.0])
    h = 1e-9
    fd_w = (bose(w + h, temps) - bose(w - h, temps)) / (2.0 * h)
    assert np.allclose(bose_domega(w, temps), fd_w, rtol=1e-6)
    ht = 1e-4
    fd_t = (bose(w, temps + ht) - bose(w, temps - ht)) / (2.0 * ht)
    assert np.allclose(bose_dtemperature(w, temps), fd_t, rtol=1e-6)


def test_classical_limit_and_heat_capacity() -> None:
    temps = np.array([50.0])
    w = 40.0 * KB_RY * temps[0]
    assert np.isclose(classical(w, temps)[0], bose(w, temps)[0], rtol=1e-12)
    c_hot = heat_capacity(1e-7, [1.0e4])
    assert np.isclose(c_hot[0], KB_J_K, rtol=1e-6)
    assert heat_capacity(-1e-3, [300.0])[0] == 0.0
