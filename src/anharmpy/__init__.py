from .core import (
    AnharmonicCoupling,
    KPointGrid,
    ParallelConfig,
    ParallelReducer,
    PhononStates,
    SelfEnergyEngine,
    SelfEnergyResult,
    TetrahedronIntegrator,
    phonon_states_from_ifc,
)
from .modeling import AnharmonicForceConstants, EngineConfig, ForceConstantEntry
from .models import diatomic_model, dimerized_model, simple_cubic_model

__all__ = [
    "AnharmonicCoupling",
    "AnharmonicForceConstants",
    "EngineConfig",
    "ForceConstantEntry",
    "KPointGrid",
    "ParallelConfig",
    "ParallelReducer",
    "PhononStates",
    "SelfEnergyEngine",
    "SelfEnergyResult",
    "TetrahedronIntegrator",
    "phonon_states_from_ifc",
    "simple_cubic_model",
    "diatomic_model",
    "dimerized_model",
]
