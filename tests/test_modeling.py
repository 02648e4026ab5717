import numpy as np
import pytest

from anharmpy.modeling import (
    AnharmonicForceConstants,
    EngineConfig,
    ForceConstantEntry,
    IFCData,
    IFCTerm,
    complete_permutations,
    enforce_translational_asr_on_self_term,
    permutation_symmetry_residual,
    translational_sum_rule_residual,
    validate_engine_config,
    validate_force_constants,
    validate_ifc_data,
    with_completed_permutations,
)
from anharmpy.modeling.units import cm1_to_qe_omega, qe_omega_to_cm1, qe_rate_to_lifetime_ps
from anharmpy.models import (
    BondModelParams,
    DimerizedParams,
    bond_lattice_model,
    diatomic_model,
    dimerized_model,
    simple_cubic_model,
)


def test_enforce_asr_on_self_term() -> None:
    onsite = np.array([[2.5, 0.0, 0.0], [0.0, 2.0, 0.0], [0.0, 0.0, 2.0]])
    hop = -np.eye(3)
    ifc = IFCData(
        masses=np.array([1.0]),
        dof_per_atom=3,
        terms=(IFCTerm(0, 0, 0, onsite), IFCTerm(1, 0, 0, hop), IFCTerm(-1, 0, 0, hop)),
    )
    fixed, residual = enforce_translational_asr_on_self_term(ifc)
    assert np.isclose(residual, 0.5)
    total = sum(np.asarray(t.block) for t in fixed.terms)
    assert np.allclose(total, 0.0)
    assert fixed.metadata["asr_enforced"]


@pytest.mark.parametrize("builder", [simple_cubic_model, diatomic_model, dimerized_model])
def test_toy_models_satisfy_sum_rules_and_permutation_symmetry(builder) -> None:
    model = builder()
    fcs = model.force_constants
    for entries in (fcs.cubic, fcs.quartic):
        assert len(entries) > 0
        assert translational_sum_rule_residual(entries) < 1e-12
        assert permutation_symmetry_residual(entries) < 1e-12
        assert all(entry.cells[0] == (0, 0, 0) for entry in entries)
    n_atoms = fcs.n_atoms
    total = sum(np.asarray(t.block) for t in model.ifc.terms).reshape(n_atoms, 3, n_atoms, 3)
    assert np.allclose(total.sum(axis=2), 0.0)
    validate_ifc_data(model.ifc)
    validate_force_constants(fcs)


def test_dimerized_bonds_carry_their_own_constants() -> None:
    params = DimerizedParams(stiffness_ratio=0.5, cubic_ratio=2.0)
    second = params.second_bond()
    assert second.k_par == pytest.approx(0.5 * params.k_par)
    assert second.k3 == pytest.approx(2.0 * params.k3)
    terms = {(t.dx, t.dy, t.dz): np.asarray(t.block) for t in dimerized_model(params).ifc.terms}
    # A-B springs inside the cell and across the boundary differ.
    assert terms[(0, 0, 0)][0, 3] == pytest.approx(-params.k_par)
    assert terms[(-1, 0, 0)][0, 3] == pytest.approx(-second.k_par)
    with pytest.raises(ValueError):
        DimerizedParams(stiffness_ratio=0.0)
    positions = np.array([[0.0, 0.0, 0.0], [0.5, 0.0, 0.0]])
    with pytest.raises(ValueError):
        bond_lattice_model("pair", [1.0, 1.0], np.eye(3), positions, [(0, 1, (0, 0, 0))], [BondModelParams()] * 2)


def test_complete_permutations_fills_missing_entries() -> None:
    entry = ForceConstantEntry(value=0.3, atoms=(0, 0, 1), cells=((0, 0, 0), (0, 0, 0), (1, 0, 0)), components=(0, 1, 2))
    assert permutation_symmetry_residual([entry]) > 0.0
    completed = complete_permutations([entry])
    assert len(completed) == 6
    assert permutation_symmetry_residual(completed) == 0.0
    anchored = [e for e in completed if e.atoms[0] == 1]
    assert all(e.cells[0] == (0, 0, 0) for e in anchored)
    assert all((-1, 0, 0) in e.cells for e in anchored)

    fcs = with_completed_permutations(AnharmonicForceConstants(masses=np.array([1.0, 2.0]), cubic=(entry,)))
    assert len(fcs.cubic) == 6
    assert fcs.metadata["permutations_completed"]


def test_force_constant_entry_validation() -> None:
    with pytest.raises(ValueError):
        ForceConstantEntry(value=1.0, atoms=(0, 0), cells=((0, 0, 0), (0, 0, 0)), components=(0, 0))
    with pytest.raises(ValueError):
        ForceConstantEntry(value=1.0, atoms=(0, 0, 0), cells=((0, 0, 0),) * 2, components=(0, 0, 0))
    with pytest.raises(ValueError):
        ForceConstantEntry(value=1.0, atoms=(0, 0, 0), cells=((0, 0, 0),) * 3, components=(0, 3, 0))
    bad_atom = ForceConstantEntry(value=1.0, atoms=(0, 0, 2), cells=((0, 0, 0),) * 3, components=(0, 0, 0))
    with pytest.raises(ValueError):
        validate_force_constants(AnharmonicForceConstants(masses=np.array([1.0, 1.0]), cubic=(bad_atom,)))


def test_engine_config_validation() -> None:
    validate_engine_config(EngineConfig())
    validate_engine_config(EngineConfig(method="tetrahedron", smearing=0.0))
    with pytest.raises(ValueError):
        validate_engine_config(EngineConfig(method="box"))
    with pytest.raises(ValueError):
        validate_engine_config(EngineConfig(method="gaussian", smearing=0.0))
    with pytest.raises(ValueError):
        validate_engine_config(EngineConfig(frequency_tol=-1.0))


def test_unit_conversions() -> None:
    assert np.isclose(qe_omega_to_cm1(cm1_to_qe_omega(520.0)), 520.0)
    # A 1 cm^-1 rate corresponds to a 5.3 ps lifetime.
    assert np.isclose(qe_rate_to_lifetime_ps(cm1_to_qe_omega(1.0)), 5.3088, rtol=1e-4)
    assert np.isinf(qe_rate_to_lifetime_ps(0.0))
