"""JSON model files: harmonic IFC terms plus cubic/quartic force constants.

Layout::

    {
      "name": "...",
      "masses_amu": [...],              # or "masses" in QE Ry-mass units
      "lattice_vectors": [[...], ...],  # Bohr, rows
      "atom_positions": [[...], ...],   # fractional
      "terms": [{"translation": [dx, dy, dz], "block": [[...]]}, ...],
      "cubic": [{"value": v, "atoms": [...], "cells": [[...], ...], "components": "xyz"}, ...],
      "quartic": [...],
      "supercell": [n1, n2, n3],        # optional, enables minimum-image folding
      "complete_permutations": false,
      "enforce_asr": false
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np

from anharmpy.logger import get_logger
from anharmpy.modeling.ifc_tools import (
    enforce_translational_asr_on_self_term,
    translational_sum_rule_residual,
    with_completed_permutations,
)
from anharmpy.modeling.schema import AnharmonicForceConstants, ForceConstantEntry, IFCData, IFCTerm
from anharmpy.modeling.units import amu_to_qe_mass
from anharmpy.modeling.validators import validate_force_constants, validate_ifc_data
from anharmpy.models.lattice import LatticeModel


log = get_logger(__name__)

_AXES = {"x": 0, "y": 1, "z": 2}


def _load_source_payload(source: Any) -> dict[str, Any]:
    if isinstance(source, dict):
        return source
    path = Path(source)
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _parse_term(item: dict[str, Any]) -> IFCTerm:
    if "translation" in item:
        dx, dy, dz = item["translation"]
    else:
        dx, dy, dz = item["dx"], item["dy"], item["dz"]
    block = np.asarray(item["block"], dtype=np.complex128)
    if np.allclose(block.imag, 0.0):
        block = block.real
    return IFCTerm(dx=int(dx), dy=int(dy), dz=int(dz), block=block)


def _parse_components(raw: Any) -> tuple[int, ...]:
    if isinstance(raw, str):
        try:
            return tuple(_AXES[c] for c in raw.strip().lower())
        except KeyError as exc:
            raise ValueError(f"Invalid component string '{raw}'; use letters x, y, z.") from exc
    return tuple(int(c) for c in raw)


def _parse_entry(item: dict[str, Any]) -> ForceConstantEntry:
    return ForceConstantEntry(
        value=float(item["value"]),
        atoms=tuple(int(a) for a in item["atoms"]),
        cells=tuple(tuple(int(x) for x in c) for c in item["cells"]),
        components=_parse_components(item["components"]),
    )


def _masses(payload: dict[str, Any]) -> np.ndarray:
    if "masses_amu" in payload:
        return np.asarray(amu_to_qe_mass(np.asarray(payload["masses_amu"], dtype=float)), dtype=float)
    if "masses" in payload:
        return np.asarray(payload["masses"], dtype=float)
    raise ValueError("Model source must define 'masses_amu' or 'masses'.")


def read_json_model(source: Any) -> LatticeModel:
    """Parse a JSON model file (or an already-loaded dict) into a :class:`LatticeModel`."""

    payload = _load_source_payload(source)
    if "terms" not in payload:
        raise ValueError("Model source must define harmonic 'terms'.")
    masses = _masses(payload)
    lattice = payload.get("lattice_vectors")
    positions = payload.get("atom_positions")
    lattice = None if lattice is None else np.asarray(lattice, dtype=float)
    positions = None if positions is None else np.asarray(positions, dtype=float)
    name = str(payload.get("name", "json_model"))

    ifc = IFCData(
        masses=masses,
        dof_per_atom=3,
        terms=tuple(_parse_term(t) for t in payload["terms"]),
        units=str(payload.get("units", "Ry/Bohr^2")),
        metadata={"source": str(source) if not isinstance(source, dict) else "<dict>", "model": name},
        lattice_vectors=lattice,
        atom_positions=positions,
    )
    validate_ifc_data(ifc)
    if bool(payload.get("enforce_asr", False)):
        ifc, residual = enforce_translational_asr_on_self_term(ifc)
        log.info("harmonic ASR enforced (max residual before correction %.3e)", residual)

    supercell = payload.get("supercell")
    fcs = AnharmonicForceConstants(
        masses=masses,
        cubic=tuple(_parse_entry(e) for e in payload.get("cubic", [])),
        quartic=tuple(_parse_entry(e) for e in payload.get("quartic", [])),
        atom_positions=positions,
        supercell=None if supercell is None else tuple(int(n) for n in supercell),
        units=str(payload.get("anharmonic_units", "Ry/Bohr^n")),
        metadata={"model": name},
    )
    if bool(payload.get("complete_permutations", False)):
        fcs = with_completed_permutations(fcs)
    validate_force_constants(fcs)
    for order, entries in ((3, fcs.cubic), (4, fcs.quartic)):
        residual = translational_sum_rule_residual(entries)
        if residual > 1e-6:
            log.warning("order-%d force constants violate the translational sum rule (residual %.3e)", order, residual)
    return LatticeModel(name=name, ifc=ifc, force_constants=fcs)


def _entry_payload(entry: ForceConstantEntry) -> dict[str, Any]:
    return {
        "value": float(entry.value),
        "atoms": [int(a) for a in entry.atoms],
        "cells": [[int(x) for x in c] for c in entry.cells],
        "components": "".join("xyz"[c] for c in entry.components),
    }


def _block_payload(term: IFCTerm) -> list:
    block = np.asarray(term.block)
    if np.iscomplexobj(block):
        if not np.allclose(block.imag, 0.0):
            raise ValueError(
                f"IFC block at translation ({term.dx}, {term.dy}, {term.dz}) has a non-zero imaginary part; "
                "JSON model files store real blocks only."
            )
        block = block.real
    return block.tolist()


def model_to_payload(model: LatticeModel) -> dict[str, Any]:
    ifc = model.ifc
    fcs = model.force_constants
    payload: dict[str, Any] = {
        "name": model.name,
        "masses": np.asarray(ifc.masses, dtype=float).tolist(),
        "terms": [
            {"translation": [t.dx, t.dy, t.dz], "block": _block_payload(t)} for t in ifc.terms
        ],
        "cubic": [_entry_payload(e) for e in fcs.cubic],
        "quartic": [_entry_payload(e) for e in fcs.quartic],
    }
    if ifc.lattice_vectors is not None:
        payload["lattice_vectors"] = np.asarray(ifc.lattice_vectors, dtype=float).tolist()
    if ifc.atom_positions is not None:
        payload["atom_positions"] = np.asarray(ifc.atom_positions, dtype=float).tolist()
    if fcs.supercell is not None:
        payload["supercell"] = list(fcs.supercell)
    return payload


def write_json_model(model: LatticeModel, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as f:
        json.dump(model_to_payload(model), f, indent=2)
    return out
