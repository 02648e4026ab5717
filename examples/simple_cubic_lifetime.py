"""Print three-phonon scattering rates and lifetimes of the simple cubic toy lattice."""

import numpy as np

from anharmpy.core import AnharmonicCoupling, KPointGrid, SelfEnergyEngine, phonon_states_from_ifc
from anharmpy.logger import setup
from anharmpy.modeling import EngineConfig, cm1_to_qe_omega, qe_omega_to_cm1, qe_rate_to_lifetime_ps
from anharmpy.models import SimpleCubicParams, simple_cubic_model


setup("INFO")

model = simple_cubic_model(SimpleCubicParams(k3=-0.3))
grid = KPointGrid((6, 6, 6))
states = phonon_states_from_ifc(model.ifc, grid)
coupling = AnharmonicCoupling(model.force_constants, states)
engine = SelfEnergyEngine(states, coupling, EngineConfig(method="gaussian", smearing=float(cm1_to_qe_omega(8.0))))

temperatures = np.array([100.0, 300.0, 600.0])
print(f"{'k':>16} {'w[cm^-1]':>10} " + " ".join(f"{'tau(' + str(int(t)) + 'K)[ps]':>16}" for t in temperatures))
for ix in range(1, grid.dims[0] // 2 + 1):
    k = grid.index(ix, 0, 0)
    res = engine.selfenergy(k, 2, temperatures)
    tau = qe_rate_to_lifetime_ps(res.scattering_rate)
    xk = " ".join(f"{x:.3f}" for x in grid.xk[k])
    print(f"{xk:>16} {float(qe_omega_to_cm1(res.frequency)):10.2f} " + " ".join(f"{t:16.4e}" for t in tau))
