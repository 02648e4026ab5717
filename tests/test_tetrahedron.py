import numpy as np
import pytest
from scipy.integrate import trapezoid

from anharmpy.core import GridError, KPointGrid, TetrahedronIntegrator


def _band(grid: KPointGrid) -> np.ndarray:
    x = 2.0 * np.pi * grid.xk
    return 3.0 - np.cos(x[:, 0]) - np.cos(x[:, 1]) - np.cos(x[:, 2])


def test_six_tetrahedra_per_cube() -> None:
    grid = KPointGrid((3, 2, 2))
    tet = TetrahedronIntegrator(grid)
    assert tet.n_tetrahedra == 6 * grid.nk
    assert np.all(np.bincount(tet.tetrahedra.ravel(), minlength=grid.nk) == 24)


def test_dos_is_normalized() -> None:
    grid = KPointGrid((6, 6, 6))
    tet = TetrahedronIntegrator(grid)
    e = _band(grid)
    targets = np.linspace(e.min() - 0.1, e.max() + 0.1, 8001)
    dos = np.array([tet.integrate(e, np.ones(grid.nk), t) for t in targets])
    assert np.all(dos >= 0.0)
    assert np.isclose(trapezoid(dos, targets), 1.0, rtol=5e-3)


def test_one_dimensional_band_dos_is_exact() -> None:
    n = 8
    grid = KPointGrid((n, 1, 1))
    tet = TetrahedronIntegrator(grid)
    e = np.cos(2.0 * np.pi * grid.xk[:, 0])
    for target in (-0.55, 0.3, 0.9):
        expected = 0.0
        for i in range(n):
            lo, hi = sorted((e[i], e[(i + 1) % n]))
            if lo <= target < hi:
                expected += 1.0 / (n * (hi - lo))
        assert np.isclose(tet.integrate(e, np.ones(n), target), expected, rtol=1e-12)


def test_isosurface_average_and_multiple_columns() -> None:
    grid = KPointGrid((5, 4, 3))
    tet = TetrahedronIntegrator(grid)
    e = _band(grid)
    f = np.sin(2.0 * np.pi * grid.xk[:, 1]) + 0.3
    target = 2.7
    dos = tet.integrate(e, np.ones(grid.nk), target)
    # the interpolant of e equals target on the isosurface
    assert np.isclose(tet.integrate(e, e, target), target * dos, rtol=1e-12)
    stacked = tet.integrate(e, np.stack([f, 2.0 * f], axis=1), target)
    single = tet.integrate(e, f, target)
    assert np.allclose(stacked, [single, 2.0 * single])
    assert np.isclose(tet.weights(e, target) @ f, single)


def test_shape_errors() -> None:
    grid = KPointGrid((2, 2, 2))
    tet = TetrahedronIntegrator(grid)
    with pytest.raises(GridError):
        tet.weights(np.zeros(5), 0.0)
