"""Utility transforms for harmonic and anharmonic IFC datasets."""

from __future__ import annotations

from collections import defaultdict
from itertools import permutations
from typing import Iterable

import numpy as np

from .schema import AnharmonicForceConstants, ForceConstantEntry, IFCData, IFCTerm


def enforce_translational_asr_on_self_term(ifc: IFCData) -> tuple[IFCData, float]:
    """Enforce the harmonic acoustic sum rule by correcting only the R=(0,0,0) block.

    Returns:
        (corrected_ifc, max_residual_before_correction)
    """

    ndof = len(ifc.masses) * ifc.dof_per_atom
    terms = list(ifc.terms)
    phi_sum = np.zeros((ndof, ndof), dtype=np.complex128)
    r0_idx: int | None = None
    for idx, term in enumerate(terms):
        phi_sum += np.asarray(term.block, dtype=np.complex128)
        if term.dx == 0 and term.dy == 0 and term.dz == 0:
            r0_idx = idx
    if r0_idx is None:
        raise ValueError("Missing IFC term at translation (0,0,0); cannot enforce ASR.")

    residual = np.zeros((ndof, ifc.dof_per_atom), dtype=np.complex128)
    for beta in range(ifc.dof_per_atom):
        cols = np.arange(beta, ndof, ifc.dof_per_atom)
        residual[:, beta] = np.sum(phi_sum[:, cols], axis=1)
    residual_max = float(np.max(np.abs(residual)))

    corrected = np.asarray(terms[r0_idx].block, dtype=np.complex128).copy()
    for row in range(ndof):
        atom_i = row // ifc.dof_per_atom
        for beta in range(ifc.dof_per_atom):
            corrected[row, atom_i * ifc.dof_per_atom + beta] -= residual[row, beta]
    corrected = 0.5 * (corrected + corrected.conj().T)
    terms[r0_idx] = IFCTerm(dx=0, dy=0, dz=0, block=corrected)

    metadata = dict(ifc.metadata)
    metadata["asr_enforced"] = True
    return (
        IFCData(
            masses=np.asarray(ifc.masses, dtype=float),
            dof_per_atom=ifc.dof_per_atom,
            terms=tuple(terms),
            units=ifc.units,
            metadata=metadata,
            lattice_vectors=ifc.lattice_vectors,
            atom_positions=ifc.atom_positions,
            atom_symbols=ifc.atom_symbols,
        ),
        residual_max,
    )


def _entry_key(atoms, cells, components) -> tuple:
    return tuple(atoms), tuple(tuple(int(x) for x in c) for c in cells), tuple(components)


def complete_permutations(entries: Iterable[ForceConstantEntry]) -> tuple[ForceConstantEntry, ...]:
    """Return the permutation-complete, home-cell-anchored set of entries.

    Every permutation of the legs of every entry is generated and shifted so
    that its leg 0 sits in cell (0,0,0). Entries that already exist keep their
    stored value; the output order is deterministic.
    """

    table: dict[tuple, float] = {}
    for entry in entries:
        legs = list(zip(entry.atoms, entry.cells, entry.components))
        for perm in permutations(legs):
            origin = np.asarray(perm[0][1], dtype=int)
            atoms = [leg[0] for leg in perm]
            cells = [tuple(int(x) for x in np.asarray(leg[1], dtype=int) - origin) for leg in perm]
            comps = [leg[2] for leg in perm]
            key = _entry_key(atoms, cells, comps)
            if key not in table:
                table[key] = float(entry.value)
    return tuple(
        ForceConstantEntry(value=value, atoms=key[0], cells=key[1], components=key[2])
        for key, value in sorted(table.items())
    )


def translational_sum_rule_residual(entries: Iterable[ForceConstantEntry]) -> float:
    """Return max |sum over the last leg's (atom, cell)| of the entries."""

    sums: dict[tuple, float] = defaultdict(float)
    for entry in entries:
        head = _entry_key(entry.atoms[:-1], entry.cells[:-1], entry.components[:-1])
        sums[head + (entry.components[-1],)] += float(entry.value)
    if not sums:
        return 0.0
    return float(max(abs(v) for v in sums.values()))


def permutation_symmetry_residual(entries: Iterable[ForceConstantEntry]) -> float:
    """Return the largest value mismatch between an entry and its re-anchored permutations."""

    entry_list = list(entries)
    table = {_entry_key(e.atoms, e.cells, e.components): float(e.value) for e in entry_list}
    worst = 0.0
    for entry in entry_list:
        legs = list(zip(entry.atoms, entry.cells, entry.components))
        for perm in permutations(legs):
            origin = np.asarray(perm[0][1], dtype=int)
            key = _entry_key(
                [leg[0] for leg in perm],
                [np.asarray(leg[1], dtype=int) - origin for leg in perm],
                [leg[2] for leg in perm],
            )
            worst = max(worst, abs(table.get(key, 0.0) - float(entry.value)))
    return worst


def with_completed_permutations(fcs: AnharmonicForceConstants) -> AnharmonicForceConstants:
    metadata = dict(fcs.metadata)
    metadata["permutations_completed"] = True
    return AnharmonicForceConstants(
        masses=np.asarray(fcs.masses, dtype=float),
        cubic=complete_permutations(fcs.cubic),
        quartic=complete_permutations(fcs.quartic),
        atom_positions=fcs.atom_positions,
        supercell=fcs.supercell,
        units=fcs.units,
        metadata=metadata,
    )
