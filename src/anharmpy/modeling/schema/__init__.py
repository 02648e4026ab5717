from .engine_config import SMEARING_METHODS, EngineConfig
from .ifc_data import AnharmonicForceConstants, ForceConstantEntry, IFCData, IFCTerm

__all__ = [
    "IFCTerm",
    "IFCData",
    "ForceConstantEntry",
    "AnharmonicForceConstants",
    "EngineConfig",
    "SMEARING_METHODS",
]
