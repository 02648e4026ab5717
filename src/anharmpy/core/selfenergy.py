"""Anharmonic phonon self-energy engine."""

from __future__ import annotations

from functools import partial

import numpy as np

from anharmpy.logger import get_logger
from anharmpy.modeling.schema import EngineConfig
from anharmpy.modeling.units import qe_omega_to_cm1
from anharmpy.modeling.validators import validate_engine_config

from .coupling import AnharmonicCoupling
from .diagrams import DiagramEvaluator, Insertions, compute_insertions
from .errors import ConfigurationError
from .kernels import Broadening
from .parallel import ParallelReducer, thread_sum
from .tetrahedron import TetrahedronIntegrator
from .types import DIAGRAM_LABELS, Array, PhononStates, SelfEnergyResult


log = get_logger(__name__)


def _engine_partial(engine: "SelfEnergyEngine", mode, omega: float, temperatures: Array, items: Array) -> Array:
    return engine.partial(mode, omega, temperatures, items)


class SelfEnergyEngine:
    """Evaluates diagram-resolved self-energies of single modes.

    The primary internal k-point is distributed by the reducer; within one
    rank the k-points are summed over ``n_threads`` threads and all branch
    sums are vectorized.
    """

    def __init__(
        self,
        states: PhononStates,
        coupling: AnharmonicCoupling,
        config: EngineConfig | None = None,
        *,
        integrator: TetrahedronIntegrator | None = None,
        reducer: ParallelReducer | None = None,
    ) -> None:
        config = config or EngineConfig()
        validate_engine_config(config)
        if config.method == "tetrahedron" and config.four_phonon:
            raise ConfigurationError(
                "The tetrahedron method only supports the three-phonon bubble; disable four_phonon or use smearing."
            )
        if coupling.states is not states:
            raise ValueError("coupling must be built on the same PhononStates as the engine.")
        self.states = states
        self.coupling = coupling
        self.config = config
        self.reducer = reducer or ParallelReducer()
        if config.method == "tetrahedron":
            self.broadening = None
            self.integrator = integrator or TetrahedronIntegrator(states.grid)
        else:
            self.broadening = Broadening(config.method, config.smearing)
            self.integrator = None
        self._insertions: dict[tuple[float, ...], Insertions] = {}
        self._log_setup()

    def _log_setup(self) -> None:
        w = self.states.frequencies
        positive = w[w > self.config.frequency_tol]
        log.info(
            "self-energy engine: method=%s grid=%s branches=%d diagrams=%s",
            self.config.method,
            self.states.grid.dims,
            self.states.n_branches,
            "".join(self.labels),
        )
        residual = self.states.conjugation_residual()
        if residual > 1e-8:
            log.warning("eigenvectors violate e(-k) = conj(e(k)) (max residual %.3e).", residual)
        if self.broadening is None or positive.size == 0:
            return
        w_min = float(np.min(positive))
        log.info(
            "smallest grid frequency %.4f cm^-1, smearing width %.4f cm^-1",
            float(qe_omega_to_cm1(w_min)),
            float(qe_omega_to_cm1(self.broadening.eps)),
        )
        if self.broadening.eps > w_min:
            log.warning("smearing width exceeds the smallest nonzero grid frequency; linewidths may be over-broadened.")

    @property
    def labels(self) -> tuple[str, ...]:
        if not self.config.four_phonon:
            return ("a",)
        labels = list(DIAGRAM_LABELS)
        if not self.coupling.has_order(4):
            labels = [lbl for lbl in labels if lbl not in ("b", "d", "e", "f", "h", "i")]
        return tuple(labels)

    def insertions(self, temperatures: Array) -> Insertions:
        key = tuple(float(t) for t in np.atleast_1d(temperatures))
        if key not in self._insertions:
            self._insertions[key] = compute_insertions(self.coupling, np.asarray(key), self.config.frequency_tol)
        return self._insertions[key]

    def partial(self, mode: tuple[int, int], omega: float, temperatures: Array, items: Array) -> Array:
        """Sum of all diagrams over the primary k-points ``items``; shape ``(n_labels, n_T)``."""

        temperatures = np.atleast_1d(np.asarray(temperatures, dtype=float))
        labels = self.labels
        shape = (len(labels), temperatures.size)
        if len(items) == 0:
            return np.zeros(shape, dtype=np.complex128)
        needs_insertions = any(lbl in labels for lbl in ("e", "f", "g", "h", "i", "j"))
        evaluator = DiagramEvaluator(
            self.coupling,
            self.config,
            mode,
            omega,
            temperatures,
            labels,
            broadening=self.broadening,
            integrator=self.integrator,
            insertions=self.insertions(temperatures) if needs_insertions else None,
        )
        return thread_sum(evaluator.evaluate, list(items), self.reducer.n_threads, shape)

    def selfenergy(self, knum: int, snum: int, temperatures: Array, omega: float | None = None) -> SelfEnergyResult:
        """Diagram-resolved self-energy of mode ``(knum, snum)`` at ``omega`` (default: its own frequency)."""

        temperatures = np.atleast_1d(np.asarray(temperatures, dtype=float))
        nk = self.states.nk
        if not 0 <= knum < nk or not 0 <= snum < self.states.n_branches:
            raise ValueError(f"Mode ({knum}, {snum}) is outside the {nk} x {self.states.n_branches} mode table.")
        w_mode = self.states.frequency(knum, snum)
        omega = w_mode if omega is None else float(omega)
        labels = self.labels
        real_available = self.integrator is None

        if w_mode <= self.config.frequency_tol:
            log.warning("mode (%d, %d) has frequency %.3e <= tol; returning zero self-energy.", knum, snum, w_mode)
            zeros = {lbl: np.zeros(temperatures.size, dtype=np.complex128) for lbl in labels}
            return SelfEnergyResult((knum, snum), w_mode, temperatures, zeros, real_available)

        task = partial(_engine_partial, self, (knum, snum), omega, temperatures)
        total = self.reducer.reduce(task, nk)
        diagrams = {lbl: total[i] for i, lbl in enumerate(labels)}
        log.debug("mode (%d, %d): Gamma(T[0]) = %.6e", knum, snum, float(sum(d[0] for d in diagrams.values()).imag))
        return SelfEnergyResult((knum, snum), w_mode, temperatures, diagrams, real_available)

    def linewidth(self, knum: int, snum: int, temperatures: Array, omega: float | None = None) -> Array:
        """Half linewidth ``Gamma`` in QE omega for every temperature."""

        return self.selfenergy(knum, snum, temperatures, omega).linewidth
