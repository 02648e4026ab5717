from .ifc_tools import (
    complete_permutations,
    enforce_translational_asr_on_self_term,
    permutation_symmetry_residual,
    translational_sum_rule_residual,
    with_completed_permutations,
)
from .schema import AnharmonicForceConstants, EngineConfig, ForceConstantEntry, IFCData, IFCTerm
from .units import (
    KB_RY,
    amu_to_qe_mass,
    cm1_to_qe_omega,
    qe_omega_to_cm1,
    qe_omega_to_rad_s,
    qe_omega_to_thz,
    qe_rate_to_lifetime_ps,
)
from .validators import validate_engine_config, validate_force_constants, validate_ifc_data

__all__ = [
    "IFCTerm",
    "IFCData",
    "ForceConstantEntry",
    "AnharmonicForceConstants",
    "EngineConfig",
    "enforce_translational_asr_on_self_term",
    "complete_permutations",
    "with_completed_permutations",
    "translational_sum_rule_residual",
    "permutation_symmetry_residual",
    "validate_ifc_data",
    "validate_force_constants",
    "validate_engine_config",
    "KB_RY",
    "amu_to_qe_mass",
    "cm1_to_qe_omega",
    "qe_omega_to_cm1",
    "qe_omega_to_rad_s",
    "qe_omega_to_thz",
    "qe_rate_to_lifetime_ps",
]
