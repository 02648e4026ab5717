import numpy as np
import pytest

from anharmpy.core import GridError, KPointGrid, MomentumConservationError, check_lattice


def test_grid_enumeration_and_minus_map() -> None:
    grid = KPointGrid((2, 3, 4))
    assert grid.nk == 24
    idx = grid.index(1, 2, 3)
    assert idx == 3 + 4 * 2 + 12 * 1
    assert np.allclose(grid.xk[idx], [0.5, 2.0 / 3.0, 0.75])
    assert grid.minus[grid.gamma_index] == grid.gamma_index
    for k in range(grid.nk):
        assert grid.minus[grid.minus[k]] == k
        assert grid.conserves((k, int(grid.minus[k])))


def test_partner_folding_conserves_momentum() -> None:
    grid = KPointGrid((3, 3, 2))
    for k in (0, 5, 11):
        for k1 in range(grid.nk):
            k2 = grid.partner(k, k1)
            assert grid.conserves((k, k1, k2), signs=(-1, 1, 1))
            for k2b in (0, 7):
                k3 = grid.partner3(k, k1, k2b)
                assert grid.conserves((k, k1, k2b, k3), signs=(-1, 1, 1, 1))


def test_explicit_triplet_scan_gives_one_partner_per_pair() -> None:
    grid = KPointGrid((2, 2, 3))
    triplets = set(grid.momentum_conserving_triplets())
    assert all(a <= b <= c for a, b, c in triplets)
    for k1 in range(grid.nk):
        for k2 in range(grid.nk):
            hits = [k3 for k3 in range(grid.nk) if tuple(sorted((k1, k2, k3))) in triplets]
            assert hits == [grid.fold(-grid.xk[k1] - grid.xk[k2])]


def test_nearest_grid_index_and_errors() -> None:
    grid = KPointGrid((4, 4, 4))
    assert grid.nearest_grid_index(grid.xk[9] + np.array([1.0, -2.0, 0.0])) == 9
    with pytest.raises(GridError):
        grid.nearest_grid_index([0.1, 0.0, 0.0])
    with pytest.raises(GridError):
        KPointGrid((0, 2, 2))
    with pytest.raises(MomentumConservationError):
        grid.require_conserving((1, 2, 3), (1, 1, 1), 1e-8, "test triple")


def test_check_lattice() -> None:
    assert np.isclose(check_lattice(2.0 * np.eye(3)), 8.0)
    with pytest.raises(GridError):
        check_lattice([[1.0, 0.0, 0.0], [2.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
