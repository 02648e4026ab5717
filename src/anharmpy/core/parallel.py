"""Work partitioning and deterministic reductions.

The primary summation index is split round-robin over ``n_workers`` ranks.
Each rank sums its items, optionally across a thread pool, and the rank
partials are combined in rank order so the result does not depend on
scheduling.
"""

from __future__ import annotations

import multiprocessing as mp
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

from anharmpy.logger import get_logger


log = get_logger(__name__)

PARALLEL_BACKENDS: tuple[str, ...] = ("serial", "process", "mpi")

Task = Callable[[np.ndarray], np.ndarray]


@dataclass(frozen=True)
class ParallelConfig:
    """Worker layout. ``serial`` runs the simulated ranks one after another."""

    backend: str = "serial"
    n_workers: int = 1
    n_threads: int = 1

    def __post_init__(self) -> None:
        if self.backend not in PARALLEL_BACKENDS:
            raise ValueError(f"Unknown parallel backend '{self.backend}'. Available: {', '.join(PARALLEL_BACKENDS)}")
        if self.n_workers < 1:
            raise ValueError("n_workers must be >= 1.")
        if self.n_threads < 1:
            raise ValueError("n_threads must be >= 1.")


def round_robin(n_items: int, rank: int, size: int) -> np.ndarray:
    """Items ``rank, rank + size, ...`` of ``range(n_items)``."""

    if size < 1 or not 0 <= rank < size:
        raise ValueError(f"Invalid rank {rank} for size {size}.")
    return np.arange(rank, n_items, size, dtype=int)


def ordered_sum(partials: Sequence[np.ndarray]) -> np.ndarray:
    if len(partials) == 0:
        raise ValueError("Nothing to reduce.")
    return np.sum(np.stack([np.asarray(p) for p in partials]), axis=0)


def thread_sum(func: Callable[[int], np.ndarray], items: Sequence[int], n_threads: int, shape, dtype=np.complex128):
    """Sum ``func(item)`` over ``items``; thread partials are combined in item order."""

    if len(items) == 0:
        return np.zeros(shape, dtype=dtype)
    if n_threads <= 1 or len(items) == 1:
        partials = [func(int(i)) for i in items]
    else:
        with ThreadPoolExecutor(max_workers=n_threads) as executor:
            partials = list(executor.map(func, [int(i) for i in items]))
    return ordered_sum(partials)


class ParallelReducer:
    """Runs ``task(items)`` on every rank and returns the rank-ordered sum."""

    def __init__(self, config: ParallelConfig | None = None) -> None:
        self.config = config or ParallelConfig()

    @property
    def n_threads(self) -> int:
        return self.config.n_threads

    def reduce(self, task: Task, n_items: int) -> np.ndarray:
        backend = self.config.backend
        if backend == "mpi":
            return self._reduce_mpi(task, n_items)
        size = self.config.n_workers
        chunks = [round_robin(n_items, rank, size) for rank in range(size)]
        if backend == "process" and size > 1:
            log.debug("dispatching %d items to %d processes", n_items, size)
            with mp.get_context().Pool(processes=size) as pool:
                partials = pool.map(task, chunks)
        else:
            partials = [task(chunk) for chunk in chunks]
        return ordered_sum(partials)

    def _reduce_mpi(self, task: Task, n_items: int) -> np.ndarray:
        from mpi4py import MPI

        comm = MPI.COMM_WORLD
        local = task(round_robin(n_items, comm.Get_rank(), comm.Get_size()))
        gathered = comm.gather(local, root=0)
        total = ordered_sum(gathered) if comm.Get_rank() == 0 else None
        return comm.bcast(total, root=0)

    @property
    def is_root(self) -> bool:
        if self.config.backend != "mpi":
            return True
        from mpi4py import MPI

        return MPI.COMM_WORLD.Get_rank() == 0
