"""Validation helpers for the IFC intermediate schema."""

from __future__ import annotations

import numpy as np

from anharmpy.modeling.schema import SMEARING_METHODS, AnharmonicForceConstants, EngineConfig, IFCData


def validate_ifc_data(ifc: IFCData) -> None:
    masses = np.asarray(ifc.masses, dtype=float)
    if masses.ndim != 1 or masses.size == 0:
        raise ValueError("IFCData.masses must be a non-empty 1D array.")
    if np.any(masses <= 0.0):
        raise ValueError("All IFCData masses must be positive.")
    if ifc.dof_per_atom != 3:
        raise ValueError("IFCData.dof_per_atom must be 3 for anharmonic calculations.")
    if len(ifc.terms) == 0:
        raise ValueError("IFCData.terms must contain at least one term.")

    ndof = masses.size * ifc.dof_per_atom
    for term in ifc.terms:
        block = np.asarray(term.block)
        if block.shape != (ndof, ndof):
            raise ValueError("All IFC terms must have shape (n_atoms*3, n_atoms*3).")
    if ifc.lattice_vectors is not None and np.asarray(ifc.lattice_vectors).shape != (3, 3):
        raise ValueError("IFCData.lattice_vectors must have shape (3, 3).")
    if ifc.atom_positions is not None and np.asarray(ifc.atom_positions).shape != (masses.size, 3):
        raise ValueError("IFCData.atom_positions must have shape (n_atoms, 3).")


def validate_force_constants(fcs: AnharmonicForceConstants) -> None:
    masses = np.asarray(fcs.masses, dtype=float)
    if masses.ndim != 1 or masses.size == 0:
        raise ValueError("AnharmonicForceConstants.masses must be a non-empty 1D array.")
    if np.any(masses <= 0.0):
        raise ValueError("All masses must be positive.")
    if fcs.atom_positions is not None and np.asarray(fcs.atom_positions).shape != (masses.size, 3):
        raise ValueError("atom_positions must have shape (n_atoms, 3).")
    if fcs.supercell is not None and (len(fcs.supercell) != 3 or min(fcs.supercell) <= 0):
        raise ValueError("supercell must contain three positive integers.")
    for order in (3, 4):
        for entry in fcs.entries(order):
            if entry.order != order:
                raise ValueError(f"Entry of order {entry.order} stored with order-{order} constants.")
            if any(a < 0 or a >= masses.size for a in entry.atoms):
                raise ValueError("Force-constant atom index out of range.")


def validate_engine_config(config: EngineConfig) -> None:
    if config.method not in SMEARING_METHODS:
        raise ValueError(f"Unknown smearing method '{config.method}'. Available: {', '.join(SMEARING_METHODS)}")
    if config.method != "tetrahedron" and config.smearing <= 0.0:
        raise ValueError("smearing width must be positive.")
    if config.frequency_tol < 0.0 or config.degeneracy_tol < 0.0 or config.momentum_tol <= 0.0:
        raise ValueError("Tolerances must be non-negative (momentum_tol positive).")
