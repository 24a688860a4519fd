import pickle
from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Any

import numpy as np
from numpy.testing import assert_array_equal

from lazydist import LocalWindowCache, PairwiseDistance, ThreadSynchronizer
from lazydist.core.sync import NoLock, nolock
from tests._shared import absdiff


def test_thread_synchronizer_locks() -> None:
    sync = ThreadSynchronizer()
    lock = sync[(0, 1)]
    assert isinstance(lock, type(Lock()))
    assert sync[(0, 1)] is lock
    assert sync[(0, 2)] is not lock


def test_thread_synchronizer_pickle() -> None:
    sync = ThreadSynchronizer()
    sync[(0, 0)]
    restored = pickle.loads(pickle.dumps(sync))
    assert isinstance(restored, ThreadSynchronizer)
    assert len(restored.locks) == 0


def test_nolock() -> None:
    assert isinstance(nolock, NoLock)
    with nolock:
        pass


class SlowCountingMetric:
    def __init__(self) -> None:
        self.calls: dict[Any, int] = {}
        self.mutex = Lock()

    def __call__(self, a: Any, b: Any) -> Any:
        with self.mutex:
            key = (int(a), int(b))
            self.calls[key] = self.calls.get(key, 0) + 1
        return abs(a - b)


def test_concurrent_reads_evaluate_each_cell_once() -> None:
    metric = SlowCountingMetric()
    a = np.arange(20)
    dist = PairwiseDistance(
        metric, (a, a), LocalWindowCache(5), dtype="int64", synchronizer=ThreadSynchronizer()
    )
    cells = [(i, j) for i in range(20) for j in range(max(0, i - 2), min(20, i + 3))]

    with ThreadPoolExecutor(max_workers=8) as pool:
        for _ in range(4):
            results = list(pool.map(dist.read, cells))
            assert results == [abs(i - j) for i, j in cells]

    assert all(n == 1 for n in metric.calls.values())
    assert len(metric.calls) == len(cells)


def test_concurrent_reads_match_uncached() -> None:
    a = np.random.default_rng(5).random(16)
    dist = PairwiseDistance(
        absdiff, (a, a), LocalWindowCache(3), synchronizer=ThreadSynchronizer()
    )
    with ThreadPoolExecutor(max_workers=4) as pool:
        rows = list(pool.map(lambda i: dist[i, :], range(16)))
    assert_array_equal(np.stack(rows), np.abs(a[:, None] - a[None, :]))
