import numpy as np

from anharmpy.core import KPointGrid, phonon_states_from_ifc, relaxation_times, rta_conductivity
from anharmpy.modeling.units import qe_omega_to_rad_s
from anharmpy.models import simple_cubic_model


def test_relaxation_times() -> None:
    gamma = np.array([0.0, 1e-6, -1.0])
    tau = relaxation_times(gamma)
    assert np.isinf(tau[0]) and np.isinf(tau[2])
    assert np.isclose(tau[1], 1.0 / float(qe_omega_to_rad_s(2e-6)))


def test_rta_conductivity_is_symmetric_and_positive() -> None:
    model = simple_cubic_model()
    states = phonon_states_from_ifc(model.ifc, KPointGrid((4, 4, 4)), with_velocities=True)
    temps = np.array([100.0, 300.0])
    gamma = np.full(states.frequencies.shape + (temps.size,), 1e-6)
    kappa = rta_conductivity(states, gamma, temps, model.ifc.lattice_vectors)
    assert kappa.shape == (2, 3, 3)
    assert np.all(np.isfinite(kappa))
    for t in range(2):
        assert np.allclose(kappa[t], kappa[t].T)
        assert np.all(np.diag(kappa[t]) > 0.0)
        assert np.allclose(np.diag(kappa[t]), kappa[t, 0, 0])
    # Fixed linewidths: kappa follows the heat capacity, which grows with T.
    assert kappa[1, 0, 0] > kappa[0, 0, 0]
    doubled = rta_conductivity(states, 2.0 * gamma, temps, model.ifc.lattice_vectors)
    assert np.allclose(doubled, 0.5 * kappa)
