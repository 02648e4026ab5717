"""Diagram-resolved self-energy of the optical mode of the diatomic toy lattice.

Compares the three-phonon bubble with the full four-phonon set of diagrams
and shows the effect of splitting the k-point sum over workers and threads.
"""

import numpy as np

from anharmpy.core import (
    AnharmonicCoupling,
    KPointGrid,
    ParallelConfig,
    ParallelReducer,
    SelfEnergyEngine,
    phonon_states_from_ifc,
)
from anharmpy.logger import setup
from anharmpy.modeling import EngineConfig, cm1_to_qe_omega, qe_omega_to_cm1
from anharmpy.models import diatomic_model


setup("INFO")

model = diatomic_model()
grid = KPointGrid((3, 3, 3))
states = phonon_states_from_ifc(model.ifc, grid)
coupling = AnharmonicCoupling(model.force_constants, states)
config = EngineConfig(method="lorentzian", smearing=float(cm1_to_qe_omega(5.0)), four_phonon=True)
reducer = ParallelReducer(ParallelConfig(backend="serial", n_workers=3, n_threads=2))
engine = SelfEnergyEngine(states, coupling, config, reducer=reducer)

k = grid.index(1, 0, 0)
s = states.n_branches - 1
temperatures = np.array([300.0])
res = engine.selfenergy(k, s, temperatures)

print(f"mode k={grid.xk[k]} branch={s} w={float(qe_omega_to_cm1(res.frequency)):.2f} cm^-1 at T=300 K")
print(f"{'diagram':>8} {'Gamma[cm^-1]':>14} {'Delta[cm^-1]':>14}")
for label, value in res.diagrams.items():
    gamma = float(qe_omega_to_cm1(value[0].imag))
    delta = float(qe_omega_to_cm1(-value[0].real))
    print(f"{label:>8} {gamma:14.6e} {delta:14.6e}")
print(f"{'total':>8} {float(qe_omega_to_cm1(res.linewidth[0])):14.6e} {float(qe_omega_to_cm1(res.shift[0])):14.6e}")
