"""Eager filling of a local-window cache.

:func:`precalculate` walks every in-window, interior index pair once and returns a
:class:`CachedPairwiseDistance` whose reads of those pairs are plain buffer lookups. This
trades an upfront ``O(size(domain_a) * size(window))`` computation for removing the
populated-or-not check on each read, which only pays off when most of the window is read
afterwards. Measure before enabling it.
"""

from __future__ import annotations

import itertools
import logging
import time
from collections.abc import Sequence
from typing import Any

import numpy as np
import numpy.typing as npt

from lazydist.core._info import ArrayInfo
from lazydist.core.cache import CacheStrategy, LocalWindowCacheStore
from lazydist.core.domain import Index, IndexDomain, split_index
from lazydist.core.dtype import convert_value, try_operand
from lazydist.core.extraction import is_interior
from lazydist.core.lazy_array import LazyArray
from lazydist.core.pairwise import PairwiseDistance
from lazydist.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = ["CachedPairwiseDistance", "precalculate"]


class CachedPairwiseDistance(LazyArray):
    """A :class:`PairwiseDistance` paired with an eagerly filled result buffer.

    The buffer has the layout of the array's local-window store; ``covered`` marks the
    cells written by :func:`precalculate`. Reads of covered cells return the buffered value,
    everything else goes through the wrapped array's read path.
    """

    def __init__(
        self,
        dist: PairwiseDistance,
        buffer: npt.NDArray[Any],
        covered: npt.NDArray[np.bool_],
    ) -> None:
        store = dist.cache
        if not isinstance(store, LocalWindowCacheStore):
            raise ConfigurationError(
                "CachedPairwiseDistance requires an array with a LocalWindowCache strategy"
            )
        if buffer.shape != store.values.shape or covered.shape != store.values.shape:
            raise ConfigurationError(
                f"buffer and coverage mask must have shape {store.values.shape}, "
                f"got {buffer.shape} and {covered.shape}"
            )
        self._dist = dist
        self._store = store
        self._buffer = buffer
        self._covered = covered
        self._rank_a = dist.domains[0].ndim

    @property
    def dist(self) -> PairwiseDistance:
        """The wrapped lazy array."""
        return self._dist

    @property
    def buffer(self) -> npt.NDArray[Any]:
        return self._buffer

    @property
    def covered(self) -> npt.NDArray[np.bool_]:
        return self._covered

    @property
    def domain(self) -> IndexDomain:
        return self._dist.domain

    @property
    def domains(self) -> tuple[IndexDomain, IndexDomain]:
        return self._dist.domains

    @property
    def dtype(self) -> np.dtype[Any]:
        return self._dist.dtype

    @property
    def cache_strategy(self) -> CacheStrategy:
        return self._dist.cache_strategy

    def read(self, index: Sequence[int]) -> Any:
        index = self._check_index(index)
        p, q = split_index(index, self._rank_a)
        loc = self._store.locate(p, q)
        if loc is not None and self._covered[loc]:
            return self._buffer[loc]
        return self._dist._get_pair(p, q)

    def __repr__(self) -> str:
        t = type(self)
        return f"<{t.__module__}.{t.__name__} {self.shape} {self.dtype} {self.cache_strategy!r}>"

    @property
    def info(self) -> ArrayInfo:
        return ArrayInfo(
            _type=type(self).__name__,
            _data_type=str(self.dtype),
            _shape=self.shape,
            _domain_a=repr(self.domains[0]),
            _domain_b=repr(self.domains[1]),
            _cache_strategy=repr(self.cache_strategy),
            _cache_shape=self._buffer.shape,
            _cache_populated=f"{int(np.count_nonzero(self._covered))}/{self._covered.size}",
            _cache_bytes=int(self._buffer.nbytes + self._covered.nbytes),
        )


def precalculate(dist: PairwiseDistance) -> CachedPairwiseDistance:
    """Evaluate every in-window pair of ``dist`` whose operands are interior.

    A position is interior when its side's ``index_map`` yields a derived index lying
    fully inside the backing collection (e.g. the whole patch fits in the image).
    Non-interior pairs are skipped and keep being evaluated on read. Positions whose derived
    index cannot be checked up front count as non-interior when their access raises
    :class:`IndexError`. The B-side operand is extracted once per B position and reused for
    all A positions in its window.

    Parameters
    ----------
    dist : PairwiseDistance
        An array built with a :class:`~lazydist.LocalWindowCache` strategy.

    Returns
    -------
    CachedPairwiseDistance
        Reads the same values as ``dist`` at every valid coordinate.
    """
    store = dist.cache
    if not isinstance(store, LocalWindowCacheStore):
        raise ConfigurationError(
            f"precalculate requires a LocalWindowCache strategy, got {dist.cache_strategy!r}"
        )

    start = time.perf_counter()
    collection_a, collection_b = dist.arrays
    domain_a, domain_b = dist.domains
    side_a, side_b = dist.pipeline.side_a, dist.pipeline.side_b
    metric = dist.metric
    dtype = dist.dtype

    buffer = np.zeros_like(store.values)
    covered = np.zeros(store.values.shape, dtype=bool)

    # derived A-side indices of the interior positions
    derived_a: dict[Index, Any] = {}
    for p in domain_a.iter_indices():
        derived_p = side_a.index_map(p)
        if is_interior(derived_p, domain_a):
            derived_a[p] = derived_p

    n_filled = 0
    for q in domain_b.iter_indices():
        derived_q = side_b.index_map(q)
        if not is_interior(derived_q, domain_b):
            continue
        found, operand_b = try_operand(side_b, collection_b, derived_q)
        if not found:
            continue

        # A positions whose offset to q lies within the window
        window = [
            range(max(lo, qk - r), min(hi, qk + r + 1))
            for qk, lo, hi, r in zip(
                q, domain_a.inclusive_min, domain_a.exclusive_max, store.radius, strict=True
            )
        ]
        for p in itertools.product(*window):
            if p not in derived_a:
                continue
            found, operand_a = try_operand(side_a, collection_a, derived_a[p])
            if not found:
                continue
            loc = store.locate(p, q)
            buffer[loc] = convert_value(metric(operand_a, operand_b), dtype)
            covered[loc] = True
            n_filled += 1

    logger.info(
        "Precalculated %d of %d window cells in %.3fs",
        n_filled,
        covered.size,
        time.perf_counter() - start,
    )
    return CachedPairwiseDistance(dist, buffer, covered)
