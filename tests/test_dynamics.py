import logging

import numpy as np
import pytest

from anharmpy.core import KPointGrid, dynamical_matrix, phonon_states_from_ifc
from anharmpy.modeling import IFCData, IFCTerm
from anharmpy.models import diatomic_model, simple_cubic_model
from anharmpy.models.lattice import SimpleCubicParams


def test_simple_cubic_dynamical_matrix_is_analytic() -> None:
    params = SimpleCubicParams()
    model = simple_cubic_model(params)
    m = float(model.ifc.masses[0])
    xk = np.array([0.2, 0.1, -0.3])
    dmat = dynamical_matrix(model.ifc, xk)
    c = 1.0 - np.cos(2.0 * np.pi * xk)
    expected_xx = 2.0 * (params.k_par * c[0] + params.k_perp * (c[1] + c[2])) / m
    expected_zz = 2.0 * (params.k_perp * (c[0] + c[1]) + params.k_par * c[2]) / m
    assert np.isclose(dmat[0, 0].real, expected_xx)
    assert np.isclose(dmat[2, 2].real, expected_zz)
    assert np.allclose(dmat - np.diag(np.diag(dmat)), 0.0, atol=1e-14)


def test_states_obey_time_reversal_and_orthonormality() -> None:
    states = phonon_states_from_ifc(diatomic_model().ifc, KPointGrid((3, 3, 2)))
    assert states.conjugation_residual() < 1e-12
    for k in range(states.nk):
        mk = int(states.grid.minus[k])
        assert np.allclose(states.frequencies[k], states.frequencies[mk])
        e = states.eigenvectors[k]
        assert np.allclose(e @ e.conj().T, np.eye(states.n_branches), atol=1e-10)


def test_gamma_has_three_acoustic_modes() -> None:
    states = phonon_states_from_ifc(diatomic_model().ifc, KPointGrid((2, 2, 2)))
    w0 = states.frequencies[states.grid.gamma_index]
    assert np.allclose(w0[:3], 0.0, atol=1e-7)
    assert np.all(w0[3:] > 1e-4)
    assert np.all(np.isreal(states.eigenvectors[states.grid.gamma_index]))


def test_group_velocity_of_longitudinal_branch() -> None:
    params = SimpleCubicParams()
    model = simple_cubic_model(params)
    states = phonon_states_from_ifc(model.ifc, KPointGrid((4, 4, 4)), with_velocities=True)
    k = states.grid.index(1, 0, 0)
    m = float(model.ifc.masses[0])
    w = states.frequencies[k, 2]
    assert np.isclose(w, np.sqrt(2.0 * params.k_par / m))
    v = states.group_velocities[k, 2]
    assert np.isclose(v[0], params.lattice_constant * params.k_par / (m * w))
    assert np.allclose(v[1:], 0.0, atol=1e-12)


def test_group_velocities_need_lattice_vectors() -> None:
    ifc = IFCData(masses=np.array([1.0]), dof_per_atom=3, terms=(IFCTerm(0, 0, 0, np.eye(3)),))
    with pytest.raises(ValueError):
        phonon_states_from_ifc(ifc, KPointGrid((1, 1, 1)), with_velocities=True)


def test_non_hermitian_matrix_is_symmetrized_with_warning(caplog) -> None:
    block = np.array([[1.0, 0.2, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    ifc = IFCData(masses=np.array([1.0]), dof_per_atom=3, terms=(IFCTerm(0, 0, 0, block),))
    with caplog.at_level(logging.WARNING, logger="anharmpy"):
        dmat = dynamical_matrix(ifc, np.zeros(3))
    assert "not Hermitian" in caplog.text
    assert np.allclose(dmat, dmat.conj().T)
    assert np.isclose(dmat[0, 1].real, 0.1)


def test_mode_accessors() -> None:
    states = phonon_states_from_ifc(diatomic_model().ifc, KPointGrid((3, 3, 3)))
    k = states.grid.index(1, 2, 0)
    mk = states.negate(k)
    assert np.allclose(states.grid.xk[k] + states.grid.xk[mk], np.rint(states.grid.xk[k] + states.grid.xk[mk]))
    assert np.allclose(states.eigenvector(mk, 4), states.eigenvector(k, 4).conj())
    assert states.frequency(mk, 4) == states.frequency(k, 4)
    assert states.nearest_grid_index(states.grid.xk[k] + 1.0) == k
