from .ifc_validator import validate_engine_config, validate_force_constants, validate_ifc_data

__all__ = ["validate_ifc_data", "validate_force_constants", "validate_engine_config"]
