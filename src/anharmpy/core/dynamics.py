"""Harmonic phonon states on a k-grid from real-space IFC terms."""

from __future__ import annotations

import numpy as np

from anharmpy.logger import get_logger
from anharmpy.modeling.schema import IFCData
from anharmpy.modeling.validators import validate_ifc_data

from .kgrid import KPointGrid, check_lattice
from .types import Array, PhononStates


log = get_logger(__name__)


def _prepared_terms(ifc: IFCData) -> tuple[Array, Array, Array]:
    validate_ifc_data(ifc)
    masses = np.asarray(ifc.masses, dtype=float)
    minv = 1.0 / np.sqrt(np.repeat(masses, int(ifc.dof_per_atom)))
    shifts = np.array([(t.dx, t.dy, t.dz) for t in ifc.terms], dtype=float)
    blocks = np.stack([np.asarray(t.block, dtype=np.complex128) for t in ifc.terms])
    return minv, shifts, blocks * minv[None, :, None] * minv[None, None, :]


def dynamical_matrix(ifc: IFCData, xk: Array, hermiticity_tol: float = 1e-8) -> Array:
    """Mass-weighted ``D(k) = M^-1/2 sum_R Phi(0,R) exp(2 pi i k.R) M^-1/2`` at fractional ``xk``.

    A Hermiticity residual above ``hermiticity_tol`` is logged and the matrix
    is symmetrized before it is returned.
    """

    _, shifts, blocks = _prepared_terms(ifc)
    return _dynamical_matrix(shifts, blocks, np.asarray(xk, dtype=float), hermiticity_tol)


def _dynamical_matrix(shifts: Array, blocks: Array, xk: Array, hermiticity_tol: float) -> Array:
    phase = np.exp(2j * np.pi * (shifts @ xk))
    dmat = np.tensordot(phase, blocks, axes=(0, 0))
    residual = float(np.max(np.abs(dmat - dmat.conj().T)))
    scale = max(float(np.max(np.abs(dmat))), 1e-300)
    if residual > hermiticity_tol * scale:
        log.warning("dynamical matrix at k=%s is not Hermitian (residual %.3e); symmetrizing.", xk.tolist(), residual)
    return 0.5 * (dmat + dmat.conj().T)


def _frequencies(eigenvalues: Array) -> Array:
    return np.sign(eigenvalues) * np.sqrt(np.abs(eigenvalues))


def phonon_states_from_ifc(
    ifc: IFCData,
    grid: KPointGrid,
    *,
    hermiticity_tol: float = 1e-8,
    with_velocities: bool = False,
) -> PhononStates:
    """Diagonalize ``D(k)`` on every grid point.

    Only one k of each ``(k, -k)`` pair is diagonalized; its partner gets
    ``w(-k) = w(k)`` and ``e(-k) = conj(e(k))``. Self-inverse points use the
    real part of ``D(k)`` so their eigenvectors are real. Unstable modes get
    negative frequencies ``-sqrt(|lambda|)``.
    """

    _, shifts, blocks = _prepared_terms(ifc)
    ndof = blocks.shape[1]
    nk = grid.nk
    freqs = np.zeros((nk, ndof))
    evecs = np.zeros((nk, ndof, ndof), dtype=np.complex128)
    done = np.zeros(nk, dtype=bool)
    for k in range(nk):
        if done[k]:
            continue
        mk = int(grid.minus[k])
        dmat = _dynamical_matrix(shifts, blocks, grid.xk[k], hermiticity_tol)
        if mk == k:
            lam, vec = np.linalg.eigh(dmat.real)
        else:
            lam, vec = np.linalg.eigh(dmat)
        freqs[k] = _frequencies(lam)
        evecs[k] = vec.T
        done[k] = True
        if mk != k:
            freqs[mk] = freqs[k]
            evecs[mk] = vec.T.conj()
            done[mk] = True

    velocities = None
    if with_velocities:
        velocities = group_velocities(ifc, grid, freqs, evecs)
    n_unstable = int(np.sum(freqs < -1e-8))
    if n_unstable:
        log.warning("%d modes have imaginary harmonic frequencies.", n_unstable)
    log.info("phonon states: %d k-points, %d branches, max frequency %.6e", nk, ndof, float(np.max(freqs)))
    return PhononStates(grid=grid, frequencies=freqs, eigenvectors=evecs, group_velocities=velocities)


def group_velocities(ifc: IFCData, grid: KPointGrid, frequencies: Array, eigenvectors: Array) -> Array:
    """``v = Re <e| dD/dk |e> / (2 w)`` in QE omega * Bohr; zero for non-positive frequencies."""

    if ifc.lattice_vectors is None:
        raise ValueError("Group velocities need lattice_vectors.")
    check_lattice(ifc.lattice_vectors)
    _, shifts, blocks = _prepared_terms(ifc)
    r_cart = shifts @ np.asarray(ifc.lattice_vectors, dtype=float)
    nk, ns = frequencies.shape
    out = np.zeros((nk, ns, 3))
    for k in range(nk):
        phase = np.exp(2j * np.pi * (shifts @ grid.xk[k]))
        for axis in range(3):
            ddk = np.tensordot(1j * r_cart[:, axis] * phase, blocks, axes=(0, 0))
            proj = np.einsum("si,ij,sj->s", eigenvectors[k].conj(), ddk, eigenvectors[k]).real
            w = frequencies[k]
            out[k, :, axis] = np.where(w > 0.0, proj / (2.0 * np.where(w > 0.0, w, 1.0)), 0.0)
    return out
