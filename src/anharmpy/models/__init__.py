from .lattice import (
    BondModelParams,
    DiatomicParams,
    DimerizedParams,
    LatticeModel,
    SimpleCubicParams,
    bond_lattice_model,
    diatomic_model,
    dimerized_model,
    simple_cubic_model,
)

__all__ = [
    "BondModelParams",
    "SimpleCubicParams",
    "DiatomicParams",
    "DimerizedParams",
    "LatticeModel",
    "bond_lattice_model",
    "simple_cubic_model",
    "diatomic_model",
    "dimerized_model",
]
