from itertools import permutations

import numpy as np

from anharmpy.core import AnharmonicCoupling, KPointGrid, phonon_states_from_ifc, tabulate_v3
from anharmpy.core.coupling import build_vertex_table
from anharmpy.io.readers import model_to_payload, read_json_model
from anharmpy.models import diatomic_model


def _setup(dims):
    model = diatomic_model()
    states = phonon_states_from_ifc(model.ifc, KPointGrid(dims))
    return states, AnharmonicCoupling(model.force_constants, states)


def _assert_block_symmetric(coupling: AnharmonicCoupling, ks: tuple[int, ...]) -> None:
    ref = coupling.block(ks, omega_tol=1e-6)
    scale = np.max(np.abs(ref))
    assert scale > 0.0
    for perm in permutations(range(len(ks))):
        other = coupling.block(tuple(ks[p] for p in perm), omega_tol=1e-6)
        # other[a_perm...] = ref[a...]
        inverse = np.argsort(perm)
        assert np.allclose(np.transpose(other, inverse), ref, rtol=1e-8, atol=1e-10 * scale)


def test_v3_permutation_symmetry_on_conserving_triples() -> None:
    states, coupling = _setup((3, 3, 3))
    grid = states.grid
    for k1, k2 in [(1, 4), (5, 13), (7, 26)]:
        k3 = grid.partner3(grid.gamma_index, k1, k2)
        _assert_block_symmetric(coupling, (k1, k2, k3))


def test_v4_permutation_symmetry_on_conserving_quadruples() -> None:
    states, coupling = _setup((2, 2, 2))
    grid = states.grid
    for k1, k2, k3 in [(1, 2, 3), (4, 4, 6)]:
        k4 = grid.fold(-grid.xk[k1] - grid.xk[k2] - grid.xk[k3])
        _assert_block_symmetric(coupling, (k1, k2, k3, k4))


def test_scalar_and_block_paths_agree_and_conjugate() -> None:
    states, coupling = _setup((3, 3, 3))
    grid = states.grid
    k1, k2 = 2, 10
    k3 = grid.partner3(0, k1, k2)
    blk = coupling.v3_block(k1, k2, k3)
    s1, s2, s3 = np.unravel_index(np.argmax(np.abs(blk)), blk.shape)
    modes = ((k1, int(s1)), (k2, int(s2)), (k3, int(s3)))
    v = coupling.v3(*modes)
    assert np.isclose(v, blk[s1, s2, s3], rtol=1e-12, atol=0.0)
    assert coupling.conjugation_residual(modes) <= 1e-10 * abs(v) + 1e-16
    assert coupling.permutation_residual(modes) < 1e-8


def test_zero_frequency_modes_are_masked_in_blocks() -> None:
    states, coupling = _setup((2, 2, 2))
    blk = coupling.v3_block(0, 0, 0, omega_tol=1e-6)
    acoustic = np.where(states.frequencies[0] <= 1e-6)[0]
    assert acoustic.size == 3
    assert np.all(blk[acoustic] == 0.0)
    assert np.all(np.isfinite(blk))


def test_tabulate_v3_matches_direct_evaluation() -> None:
    states, coupling = _setup((2, 2, 1))
    table = tabulate_v3(coupling, threshold=1e-14)
    ns = states.n_branches
    assert len(table) > 0
    assert np.all(np.diff(table.modes, axis=1) >= 0)
    for (a, b, c), value in list(zip(table.modes, table.values))[:25]:
        modes = [divmod(int(x), ns) for x in (a, b, c)]
        assert states.grid.conserves(tuple(m[0] for m in modes))
        assert np.isclose(coupling.v3(*modes), value, rtol=1e-10)


def test_v4_scalar_matches_block() -> None:
    states, coupling = _setup((2, 2, 2))
    grid = states.grid
    k1, k2, k3 = 1, 2, 7
    k4 = grid.fold(-grid.xk[k1] - grid.xk[k2] - grid.xk[k3])
    blk = coupling.v4_block(k1, k2, k3, k4)
    idx = np.unravel_index(np.argmax(np.abs(blk)), blk.shape)
    modes = tuple((k, int(s)) for k, s in zip((k1, k2, k3, k4), idx))
    assert abs(blk[idx]) > 0.0
    assert np.isclose(coupling.v4(*modes), blk[idx], rtol=1e-12, atol=0.0)


def test_supercell_wrapped_cells_fold_back_to_minimum_image() -> None:
    model = diatomic_model()
    payload = model_to_payload(model)
    # Store every leg cell inside the 3x3x3 supercell, as supercell-based codes write them.
    for key in ("cubic", "quartic"):
        for entry in payload[key]:
            entry["cells"] = [[c % 3 for c in cell] for cell in entry["cells"]]
    payload["supercell"] = [3, 3, 3]
    wrapped = read_json_model(payload)
    assert wrapped.force_constants.supercell == (3, 3, 3)
    assert any(max(max(cell) for cell in e.cells) == 2 for e in wrapped.force_constants.cubic)

    for order in (3, 4):
        ref = build_vertex_table(model.force_constants, order)
        table = build_vertex_table(wrapped.force_constants, order)
        assert np.allclose(table.coef, ref.coef)
        assert np.array_equal(table.evec_index, ref.evec_index)
        assert np.allclose(table.relative_cells, ref.relative_cells)

    states = phonon_states_from_ifc(model.ifc, KPointGrid((3, 3, 3)))
    coupling = AnharmonicCoupling(wrapped.force_constants, states)
    reference = AnharmonicCoupling(model.force_constants, states)
    grid = states.grid
    for k1, k2 in [(1, 4), (5, 13)]:
        k3 = grid.partner3(grid.gamma_index, k1, k2)
        blk = coupling.v3_block(k1, k2, k3, omega_tol=1e-6)
        assert np.allclose(blk, reference.v3_block(k1, k2, k3, omega_tol=1e-6), rtol=1e-10, atol=1e-14)
        _assert_block_symmetric(coupling, (k1, k2, k3))
