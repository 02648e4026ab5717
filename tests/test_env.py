import numpy as np
import scipy.linalg as la
from scipy.special import dawsn


def test_numpy_scipy_stack() -> None:
    a = np.random.default_rng(0).random((5, 5))
    h = a + a.T
    w_np = np.linalg.eigvalsh(h)
    w_sp = la.eigh(h, eigvals_only=True)
    assert np.allclose(w_np, w_sp)
    # D(x) ~ x for small x
    assert np.isclose(dawsn(1e-6), 1e-6)
