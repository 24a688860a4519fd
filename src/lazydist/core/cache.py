"""Cache strategies and the cache stores they build.

A strategy is a small, immutable description of *how* results should be cached. At
construction time a lazy array asks its strategy for a store sized from the two index
domains; the store is owned by that one array for its whole lifetime.

Two strategies exist:

- :class:`NullCache` never caches. Its store only carries the shape metadata, and arrays
  built with it take a read path without any cache bookkeeping.
- :class:`LocalWindowCache` keeps results for the index pairs ``(p, q)`` whose offset
  ``q - p`` lies in an odd, symmetric window around zero. Results are stored densely in a
  buffer of shape ``shape(domain_a) + window_shape``, next to a boolean mask telling
  populated cells apart from cells that were never computed.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt

from lazydist.core.config import config, parse_cache_strategy_name
from lazydist.core.domain import Index, IndexDomain
from lazydist.core.indexing import is_integer
from lazydist.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "CacheStore",
    "CacheStrategy",
    "LocalWindowCache",
    "LocalWindowCacheStore",
    "NullCache",
    "NullCacheStore",
    "default_cache_strategy",
]


class CacheStore(ABC):
    """Backing store of a lazy array's cache.

    Cells are addressed by a *location*, the position in the store computed from an index
    pair by :meth:`locate`. ``None`` means the pair is not cacheable by this store.
    """

    dtype: np.dtype[Any]
    domain_a: IndexDomain
    domain_b: IndexDomain

    @property
    def domain(self) -> IndexDomain:
        """The full domain of the array this store serves."""
        return self.domain_a.concat(self.domain_b)

    @property
    def shape(self) -> tuple[int, ...]:
        return self.domain.shape

    @abstractmethod
    def locate(self, p: Index, q: Index) -> Index | None: ...

    @abstractmethod
    def is_populated(self, loc: Index) -> bool: ...

    @abstractmethod
    def __getitem__(self, loc: Index) -> Any: ...

    @abstractmethod
    def __setitem__(self, loc: Index, value: Any) -> None: ...

    @property
    def nbytes(self) -> int:
        return 0

    @property
    def npopulated(self) -> int:
        return 0


class NullCacheStore(CacheStore):
    """A store that never holds data; every pair reports "not cached"."""

    def __init__(self, dtype: npt.DTypeLike, domain_a: IndexDomain, domain_b: IndexDomain) -> None:
        self.dtype = np.dtype(dtype)
        self.domain_a = domain_a
        self.domain_b = domain_b

    def locate(self, p: Index, q: Index) -> None:
        return None

    def is_populated(self, loc: Index) -> bool:
        return False

    def __getitem__(self, loc: Index) -> Any:
        raise KeyError(loc)

    def __setitem__(self, loc: Index, value: Any) -> None:
        pass

    def __repr__(self) -> str:
        return f"NullCacheStore(shape={self.shape})"


class LocalWindowCacheStore(CacheStore):
    """Dense cache of the pairs ``(p, q)`` with ``q - p`` inside a symmetric window.

    Parameters
    ----------
    dtype : dtype-like
        Data type of the cached values.
    domain_a, domain_b : IndexDomain
        The two index domains; both must have the same rank so that ``q - p`` is defined.
    window_size : tuple of int
        Window extent per dimension. The window actually used is
        ``2 * (window_size // 2) + 1`` wide, i.e. even sizes are rounded up.
    """

    def __init__(
        self,
        dtype: npt.DTypeLike,
        domain_a: IndexDomain,
        domain_b: IndexDomain,
        window_size: tuple[int, ...],
    ) -> None:
        if domain_a.ndim != domain_b.ndim:
            raise ConfigurationError(
                "Local window caching requires both domains to have the same rank, "
                f"got {domain_a.ndim} and {domain_b.ndim}."
            )
        if len(window_size) != domain_a.ndim:
            raise ConfigurationError(
                f"Window size {window_size} has rank {len(window_size)}, "
                f"expected rank {domain_a.ndim} to match the domains."
            )
        self.dtype = np.dtype(dtype)
        self.domain_a = domain_a
        self.domain_b = domain_b
        self.radius = tuple(w // 2 for w in window_size)
        self.window_shape = tuple(2 * r + 1 for r in self.radius)

        buffer_shape = domain_a.shape + self.window_shape
        self.values: npt.NDArray[Any] = np.zeros(buffer_shape, dtype=self.dtype)
        self.populated: npt.NDArray[np.bool_] = np.zeros(buffer_shape, dtype=bool)
        logger.debug(
            "Allocated local window cache with buffer shape %s (%d bytes)",
            buffer_shape,
            self.nbytes,
        )

    @property
    def buffer_domain(self) -> IndexDomain:
        """Domain of ``(p, offset)`` pairs held by the buffer."""
        return IndexDomain(
            inclusive_min=self.domain_a.inclusive_min + tuple(-r for r in self.radius),
            exclusive_max=self.domain_a.exclusive_max + tuple(r + 1 for r in self.radius),
        )

    def offset(self, p: Index, q: Index) -> Index:
        return tuple(qk - pk for pk, qk in zip(p, q, strict=True))

    def in_window(self, offset: Index) -> bool:
        for o, r in zip(offset, self.radius):
            if o < -r or o > r:
                return False
        return True

    def locate(self, p: Index, q: Index) -> Index | None:
        # p is expected to lie within domain_a
        loc_a = []
        loc_w = []
        for pk, qk, lo, r in zip(p, q, self.domain_a.inclusive_min, self.radius):
            o = qk - pk
            if o < -r or o > r:
                return None
            loc_a.append(pk - lo)
            loc_w.append(o + r)
        return tuple(loc_a + loc_w)

    def is_populated(self, loc: Index) -> bool:
        return bool(self.populated[loc])

    def __getitem__(self, loc: Index) -> Any:
        return self.values[loc]

    def __setitem__(self, loc: Index, value: Any) -> None:
        self.values[loc] = value
        self.populated[loc] = True

    @property
    def nbytes(self) -> int:
        return int(self.values.nbytes + self.populated.nbytes)

    @property
    def npopulated(self) -> int:
        return int(np.count_nonzero(self.populated))

    def __repr__(self) -> str:
        return f"LocalWindowCacheStore(shape={self.shape}, window_shape={self.window_shape})"


class CacheStrategy(ABC):
    """Describes how a lazy array caches its results."""

    @abstractmethod
    def make_store(
        self, dtype: npt.DTypeLike, domain_a: IndexDomain, domain_b: IndexDomain
    ) -> CacheStore: ...


@dataclass(frozen=True)
class NullCache(CacheStrategy):
    """No caching; every read evaluates the distance function."""

    def make_store(
        self, dtype: npt.DTypeLike, domain_a: IndexDomain, domain_b: IndexDomain
    ) -> NullCacheStore:
        return NullCacheStore(dtype, domain_a, domain_b)


@dataclass(frozen=True)
class LocalWindowCache(CacheStrategy):
    """Cache the results of pairs ``(p, q)`` whose offset ``q - p`` lies in a local window.

    Parameters
    ----------
    window_size : int or sequence of int
        Window extent per dimension, non-negative. An integer is shorthand for a
        one-dimensional window.

    Examples
    --------
    >>> LocalWindowCache((7, 7))
    LocalWindowCache(window_size=(7, 7))
    """

    window_size: tuple[int, ...]

    def __init__(self, window_size: int | Sequence[int]) -> None:
        object.__setattr__(self, "window_size", parse_window_size(window_size))

    def make_store(
        self, dtype: npt.DTypeLike, domain_a: IndexDomain, domain_b: IndexDomain
    ) -> LocalWindowCacheStore:
        return LocalWindowCacheStore(dtype, domain_a, domain_b, self.window_size)


def parse_window_size(data: Any) -> tuple[int, ...]:
    if is_integer(data):
        data = (data,)
    try:
        window_size = tuple(data)
    except TypeError:
        raise ConfigurationError(
            f"Expected an integer or a sequence of integers for window_size, got {data!r}"
        ) from None
    for w in window_size:
        if not is_integer(w) or w < 0:
            raise ConfigurationError(
                f"window_size must contain non-negative integers, got {window_size!r}"
            )
    return tuple(int(w) for w in window_size)


def default_cache_strategy() -> CacheStrategy:
    """Build the cache strategy named by the ``cache.strategy`` config value."""
    name = parse_cache_strategy_name(config.get("cache.strategy"))
    if name == "null":
        return NullCache()
    window_size = config.get("cache.window_size")
    if window_size is None:
        raise ConfigurationError(
            "cache.strategy is 'local_window' but cache.window_size is not configured"
        )
    return LocalWindowCache(window_size)
