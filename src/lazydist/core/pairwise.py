from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

import numpy as np
import numpy.typing as npt

from lazydist.core._info import ArrayInfo
from lazydist.core.cache import (
    CacheStore,
    CacheStrategy,
    LocalWindowCacheStore,
    NullCacheStore,
    default_cache_strategy,
)
from lazydist.core.config import config, parse_dtype
from lazydist.core.domain import Index, IndexDomain, domain_of, split_index
from lazydist.core.dtype import convert_value, infer_dtype
from lazydist.core.extraction import ExtractionPipeline
from lazydist.core.lazy_array import LazyArray
from lazydist.core.sync import Synchronizer, nolock
from lazydist.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = ["PairwiseDistance"]


class PairwiseDistance(LazyArray):
    """Lazily evaluate a binary function over all index pairs of two collections.

    ``dist[p..., q...]`` is defined as ``metric(operand_a, operand_b)`` where each operand
    is ``access(collection, index_map(index))`` for its side. Nothing is computed until an
    element is read; a cache strategy may keep some of the results around.

    Parameters
    ----------
    metric : callable
        Binary function ``metric(operand_a, operand_b)`` returning a number (or any value
        convertible to ``dtype``). It is assumed to be pure.
    arrays : tuple
        Exactly two backing collections ``(A, B)``. NumPy arrays, sequences, ``range``
        objects and :class:`~lazydist.core.domain.IndexDomain` instances are accepted; the
        latter two act as axes, i.e. their element at an index is the index itself.
    cache_strategy : CacheStrategy, optional
        How results are cached. Defaults to the strategy named by the ``cache.strategy``
        config value, which is :class:`~lazydist.NullCache` unless changed.
    index_map : callable or tuple of two callables, optional
        Maps a logical index to a derived index (or region). Identity by default.
    access : callable or tuple of two callables, optional
        ``access(collection, derived_index)`` returns an operand. Defaults to a
        bounds-checked element or view lookup.
    dtype : dtype-like, optional
        Data type of the results. Defaults to the ``array.dtype`` config value. When that is
        unset as well, the metric is evaluated once at construction on the first valid
        operand of each side and the type of its result is used. Results that cannot be
        converted without loss raise :class:`~lazydist.errors.ConversionError`.
    synchronizer : object, optional
        Per-cell lock provider, e.g. :class:`~lazydist.ThreadSynchronizer`, required when
        several threads read a cached array concurrently.

    Examples
    --------
    >>> import numpy as np
    >>> from lazydist import LocalWindowCache, PairwiseDistance, patch_map
    >>> dist = PairwiseDistance(lambda x, y: abs(x - y), (range(1, 7), range(1, 5)))
    >>> dist.shape
    (6, 4)
    >>> dist[3, 2]
    np.int64(1)

    Patch distances over an image, caching offsets up to 3 pixels away::

        >>> img = np.random.rand(64, 64)
        >>> patchwise = PairwiseDistance(
        ...     lambda x, y: ((x - y) ** 2).sum(),
        ...     (img, img),
        ...     LocalWindowCache((7, 7)),
        ...     index_map=patch_map(3),
        ... )
    """

    def __init__(
        self,
        metric: Callable[[Any, Any], Any],
        arrays: tuple[Any, Any],
        cache_strategy: CacheStrategy | None = None,
        *,
        index_map: Any = None,
        access: Any = None,
        dtype: npt.DTypeLike | None = None,
        synchronizer: Synchronizer | None = None,
    ) -> None:
        if not callable(metric):
            raise ConfigurationError(f"metric must be callable, got {type(metric).__name__}")
        if not isinstance(arrays, tuple):
            raise ConfigurationError(
                f"arrays must be a tuple of two collections, got {type(arrays).__name__}"
            )
        if len(arrays) != 2:
            raise ConfigurationError(f"exactly two arrays are supported, got {len(arrays)}")
        if cache_strategy is None:
            cache_strategy = default_cache_strategy()
        elif not isinstance(cache_strategy, CacheStrategy):
            raise ConfigurationError(
                f"cache_strategy must be a CacheStrategy, got {type(cache_strategy).__name__}"
            )

        self._metric = metric
        self._arrays = arrays
        self._domains = (domain_of(arrays[0]), domain_of(arrays[1]))
        self._domain = self._domains[0].concat(self._domains[1])
        self._rank_a = self._domains[0].ndim
        self._pipeline = ExtractionPipeline.from_ops(index_map, access)
        if dtype is None:
            dtype = config.get("array.dtype")
        if dtype is None:
            self._dtype = infer_dtype(metric, self._pipeline, arrays, self._domains)
        else:
            self._dtype = parse_dtype(dtype)
        self._cache_strategy = cache_strategy
        self._cache = cache_strategy.make_store(self._dtype, *self._domains)
        self._synchronizer = synchronizer

        # the read path is fixed here, null stores skip all cache bookkeeping
        self._getindex: Callable[[Index, Index], Any]
        if isinstance(self._cache, NullCacheStore):
            self._getindex = self._evaluate
        else:
            self._getindex = self._getindex_cached

        logger.debug(
            "Created %s with shape %s, dtype %s and %r",
            type(self).__name__,
            self.shape,
            self._dtype,
            cache_strategy,
        )

    @property
    def metric(self) -> Callable[[Any, Any], Any]:
        """The binary function evaluated for each index pair."""
        return self._metric

    @property
    def arrays(self) -> tuple[Any, Any]:
        """The two backing collections."""
        return self._arrays

    @property
    def domains(self) -> tuple[IndexDomain, IndexDomain]:
        """The index domains of the A side and the B side."""
        return self._domains

    @property
    def domain(self) -> IndexDomain:
        return self._domain

    @property
    def dtype(self) -> np.dtype[Any]:
        return self._dtype

    @property
    def pipeline(self) -> ExtractionPipeline:
        return self._pipeline

    @property
    def cache_strategy(self) -> CacheStrategy:
        return self._cache_strategy

    @property
    def cache(self) -> CacheStore:
        """The cache store owned by this array. An implementation detail; do not write to it."""
        return self._cache

    @property
    def synchronizer(self) -> Synchronizer | None:
        """Object used to synchronize cache writes."""
        return self._synchronizer

    def read(self, index: Sequence[int]) -> Any:
        """Read the element at the full coordinate tuple ``index``.

        Raises
        ------
        BoundsCheckError
            If ``index`` lies outside the array's domain.
        """
        index = self._check_index(index)
        p, q = split_index(index, self._rank_a)
        return self._getindex(p, q)

    def _get_pair(self, p: Index, q: Index) -> Any:
        # no bounds checking, callers validate (p, q) first
        return self._getindex(p, q)

    def evaluate(self, p: Index, q: Index) -> Any:
        """Compute the element for ``(p, q)`` without consulting the cache."""
        return self._evaluate(p, q)

    def _evaluate(self, p: Index, q: Index) -> Any:
        operand_a, operand_b = self._pipeline.evaluate(self._arrays[0], self._arrays[1], p, q)
        return convert_value(self._metric(operand_a, operand_b), self._dtype)

    def _getindex_cached(self, p: Index, q: Index) -> Any:
        cache = self._cache
        loc = cache.locate(p, q)
        if loc is None:
            # outside the window, never stored
            return self._evaluate(p, q)

        lock = nolock if self._synchronizer is None else self._synchronizer[loc]
        with lock:
            if cache.is_populated(loc):
                return cache[loc]
            value = self._evaluate(p, q)
            cache[loc] = value
        return value

    def __repr__(self) -> str:
        t = type(self)
        return f"<{t.__module__}.{t.__name__} {self.shape} {self._dtype} {self._cache_strategy!r}>"

    @property
    def info(self) -> ArrayInfo:
        """Report some diagnostic information about the array.

        Examples
        --------
        >>> dist = PairwiseDistance(lambda x, y: abs(x - y), (range(6), range(4)))
        >>> dist.info
        Type           : PairwiseDistance
        Data type      : int64
        Shape          : (6, 4)
        Domain A       : IndexDomain([0, 6))
        Domain B       : IndexDomain([0, 4))
        Cache strategy : NullCache()
        """
        kwargs: dict[str, Any] = {}
        if isinstance(self._cache, LocalWindowCacheStore):
            kwargs["_cache_shape"] = self._cache.values.shape
            kwargs["_cache_populated"] = f"{self._cache.npopulated}/{self._cache.values.size}"
            kwargs["_cache_bytes"] = self._cache.nbytes
        return ArrayInfo(
            _type=type(self).__name__,
            _data_type=str(self._dtype),
            _shape=self.shape,
            _domain_a=repr(self._domains[0]),
            _domain_b=repr(self._domains[1]),
            _cache_strategy=repr(self._cache_strategy),
            **kwargs,
        )
