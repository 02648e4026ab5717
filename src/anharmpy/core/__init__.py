from .conductivity import relaxation_times, rta_conductivity
from .coupling import AnharmonicCoupling, ReciprocalV3Table, tabulate_v3
from .diagrams import DiagramEvaluator, Insertions, compute_insertions
from .dynamics import dynamical_matrix, group_velocities, phonon_states_from_ifc
from .errors import ConfigurationError, GridError, MomentumConservationError
from .kernels import Broadening, gaussian, lorentzian, resolvent, resolvent_derivative
from .kgrid import KPointGrid, check_lattice
from .occupation import bose, bose_domega, bose_dtemperature, classical, heat_capacity
from .parallel import PARALLEL_BACKENDS, ParallelConfig, ParallelReducer, ordered_sum, round_robin, thread_sum
from .selfenergy import SelfEnergyEngine
from .tetrahedron import TetrahedronIntegrator
from .types import DIAGRAM_LABELS, PhononStates, SelfEnergyResult

__all__ = [
    "AnharmonicCoupling",
    "Broadening",
    "ConfigurationError",
    "DIAGRAM_LABELS",
    "DiagramEvaluator",
    "GridError",
    "Insertions",
    "KPointGrid",
    "MomentumConservationError",
    "PARALLEL_BACKENDS",
    "ParallelConfig",
    "ParallelReducer",
    "PhononStates",
    "ReciprocalV3Table",
    "SelfEnergyEngine",
    "SelfEnergyResult",
    "TetrahedronIntegrator",
    "bose",
    "bose_domega",
    "bose_dtemperature",
    "check_lattice",
    "classical",
    "compute_insertions",
    "dynamical_matrix",
    "gaussian",
    "group_velocities",
    "heat_capacity",
    "lorentzian",
    "ordered_sum",
    "phonon_states_from_ifc",
    "relaxation_times",
    "resolvent",
    "resolvent_derivative",
    "round_robin",
    "rta_conductivity",
    "tabulate_v3",
    "thread_sum",
]
