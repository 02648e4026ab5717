import numpy as np
import pytest

from anharmpy.core import ParallelConfig, ParallelReducer, ordered_sum, round_robin, thread_sum


def _square_sum(items: np.ndarray) -> np.ndarray:
    values = np.asarray(items, dtype=float)
    return np.array([np.sum(values**2), float(len(values))])


def test_round_robin_covers_every_item_once() -> None:
    for size in (1, 2, 3, 7):
        chunks = [round_robin(10, rank, size) for rank in range(size)]
        merged = np.sort(np.concatenate(chunks))
        assert np.array_equal(merged, np.arange(10))
    assert np.array_equal(round_robin(10, 1, 3), [1, 4, 7])
    assert round_robin(2, 3, 4).size == 0


def test_round_robin_rejects_invalid_rank() -> None:
    with pytest.raises(ValueError):
        round_robin(5, 2, 2)
    with pytest.raises(ValueError):
        round_robin(5, 0, 0)


def test_parallel_config_validation() -> None:
    with pytest.raises(ValueError):
        ParallelConfig(backend="openmp")
    with pytest.raises(ValueError):
        ParallelConfig(n_workers=0)
    with pytest.raises(ValueError):
        ParallelConfig(n_threads=0)


def test_ordered_sum() -> None:
    total = ordered_sum([np.ones(3), 2.0 * np.ones(3)])
    assert np.allclose(total, 3.0)
    with pytest.raises(ValueError):
        ordered_sum([])


def test_thread_sum_matches_serial_sum() -> None:
    def func(i: int) -> np.ndarray:
        return np.array([i, i * i], dtype=np.complex128)

    items = list(range(13))
    serial = thread_sum(func, items, 1, (2,))
    threaded = thread_sum(func, items, 4, (2,))
    assert np.allclose(serial, [78, 650])
    assert np.array_equal(serial, threaded)
    assert np.array_equal(thread_sum(func, [], 4, (2,)), np.zeros(2))


def test_serial_reducer_is_independent_of_worker_count() -> None:
    expected = np.array([sum(i * i for i in range(11)), 11.0])
    for n_workers in (1, 2, 5, 20):
        reducer = ParallelReducer(ParallelConfig(n_workers=n_workers))
        assert np.allclose(reducer.reduce(_square_sum, 11), expected)
    assert ParallelReducer().is_root


def test_process_reducer_matches_serial() -> None:
    serial = ParallelReducer().reduce(_square_sum, 9)
    pooled = ParallelReducer(ParallelConfig(backend="process", n_workers=3)).reduce(_square_sum, 9)
    assert np.allclose(serial, pooled)
