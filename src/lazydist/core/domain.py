"""Index domains and the coordinate helpers used on the read path.

An :class:`IndexDomain` is a rectangular region in index space with inclusive lower bounds
and exclusive upper bounds. Unlike NumPy shapes, domains keep non-zero origins, so an axis
``1..6`` is ``IndexDomain((1,), (7,))`` and its valid indices are 1, 2, ..., 6.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from lazydist.errors import BoundsCheckError, ConfigurationError

Index = tuple[int, ...]


@dataclass(frozen=True, slots=True)
class IndexDomain:
    """
    Represents a rectangular region in index space.

    Parameters
    ----------
    inclusive_min : tuple[int, ...]
        The inclusive lower bounds for each dimension (the first valid index).
    exclusive_max : tuple[int, ...]
        The exclusive upper bounds for each dimension (one past the last valid index).

    Examples
    --------
    >>> domain = IndexDomain(inclusive_min=(0, 0), exclusive_max=(10, 20))
    >>> domain.shape
    (10, 20)
    >>> IndexDomain.from_ranges((range(1, 7),)).origin
    (1,)
    """

    inclusive_min: Index
    exclusive_max: Index

    def __post_init__(self) -> None:
        if len(self.inclusive_min) != len(self.exclusive_max):
            raise ValueError(
                f"inclusive_min and exclusive_max must have the same length. "
                f"Got {len(self.inclusive_min)} and {len(self.exclusive_max)}."
            )
        for i, (lo, hi) in enumerate(zip(self.inclusive_min, self.exclusive_max, strict=True)):
            if lo > hi:
                raise ValueError(
                    f"inclusive_min must be <= exclusive_max for all dimensions. "
                    f"Dimension {i}: {lo} > {hi}"
                )

    @classmethod
    def from_shape(cls, shape: Sequence[int]) -> IndexDomain:
        """Create a domain with origin at zero and the given shape."""
        shape = tuple(int(s) for s in shape)
        return cls(inclusive_min=(0,) * len(shape), exclusive_max=shape)

    @classmethod
    def from_ranges(cls, ranges: Sequence[range]) -> IndexDomain:
        """Create a domain from one unit-step ``range`` per dimension."""
        for r in ranges:
            if not isinstance(r, range) or r.step != 1:
                raise ConfigurationError(f"Expected a range with step 1, got {r!r}")
        return cls(
            inclusive_min=tuple(r.start for r in ranges),
            exclusive_max=tuple(max(r.start, r.stop) for r in ranges),
        )

    @property
    def ndim(self) -> int:
        """Number of dimensions."""
        return len(self.inclusive_min)

    @property
    def origin(self) -> Index:
        """The origin (inclusive lower bounds) of the domain."""
        return self.inclusive_min

    @property
    def shape(self) -> Index:
        """The shape of the domain (exclusive_max - inclusive_min)."""
        return tuple(hi - lo for lo, hi in zip(self.inclusive_min, self.exclusive_max, strict=True))

    @property
    def size(self) -> int:
        n = 1
        for s in self.shape:
            n *= s
        return n

    @property
    def ranges(self) -> tuple[range, ...]:
        return tuple(range(lo, hi) for lo, hi in zip(self.inclusive_min, self.exclusive_max, strict=True))

    def contains(self, index: Sequence[int]) -> bool:
        """Check if an index is within this domain."""
        if len(index) != self.ndim:
            return False
        return contains(index, self)

    def check(self, index: Sequence[int]) -> None:
        """Raise :class:`BoundsCheckError` naming the first dimension ``index`` falls outside."""
        for dim, (idx, lo, hi) in enumerate(zip(index, self.inclusive_min, self.exclusive_max, strict=True)):
            if not lo <= idx < hi:
                raise BoundsCheckError(idx, dim, lo, hi)

    def concat(self, other: IndexDomain) -> IndexDomain:
        """The domain of the cartesian product ``self x other``."""
        return IndexDomain(
            inclusive_min=self.inclusive_min + other.inclusive_min,
            exclusive_max=self.exclusive_max + other.exclusive_max,
        )

    def translate(self, offset: Sequence[int]) -> IndexDomain:
        """
        Translate (shift) this domain by an offset.

        Examples
        --------
        >>> IndexDomain(inclusive_min=(10, 20), exclusive_max=(30, 40)).translate((-10, -20))
        IndexDomain([0, 10), [0, 20))
        """
        if len(offset) != self.ndim:
            raise ValueError(
                f"Offset must have same length as domain dimensions. "
                f"Domain has {self.ndim} dimensions, offset has {len(offset)}."
            )
        new_min = tuple(lo + off for lo, off in zip(self.inclusive_min, offset, strict=True))
        new_max = tuple(hi + off for hi, off in zip(self.exclusive_max, offset, strict=True))
        return IndexDomain(inclusive_min=new_min, exclusive_max=new_max)

    def iter_indices(self) -> Iterator[Index]:
        """Yield every index of the domain in row-major order."""
        return itertools.product(*self.ranges)

    def __getitem__(self, index: Any) -> Any:
        # an axis' element is its own coordinate
        index = index if isinstance(index, tuple) else (index,)
        if len(index) != self.ndim:
            raise IndexError(f"expected {self.ndim} indices, got {len(index)}")
        self.check(index)
        return index[0] if self.ndim == 1 else tuple(index)

    def __repr__(self) -> str:
        ranges = ", ".join(
            f"[{lo}, {hi})" for lo, hi in zip(self.inclusive_min, self.exclusive_max, strict=True)
        )
        return f"IndexDomain({ranges})"


def domain_of(collection: Any) -> IndexDomain:
    """Derive the index domain of a backing collection.

    ``IndexDomain`` objects and (tuples of) unit-step ranges keep their own origin; anything
    with a ``shape`` gets a zero-origin domain of that shape; other sized sequences are
    treated as one-dimensional.
    """
    if isinstance(collection, IndexDomain):
        return collection
    if isinstance(collection, range):
        return IndexDomain.from_ranges((collection,))
    if isinstance(collection, tuple) and collection and all(isinstance(r, range) for r in collection):
        return IndexDomain.from_ranges(collection)
    if hasattr(collection, "shape"):
        return IndexDomain.from_shape(collection.shape)
    try:
        n = len(collection)
    except TypeError:
        raise ConfigurationError(
            f"Cannot derive an index domain from object of type {type(collection).__name__}"
        ) from None
    return IndexDomain.from_shape((n,))


def is_axes_like(collection: Any) -> bool:
    """True for collections whose element at an index is the index itself."""
    return isinstance(collection, (IndexDomain, range)) or (
        isinstance(collection, tuple) and bool(collection) and all(isinstance(r, range) for r in collection)
    )


def split_index(index: Sequence[int], rank: int) -> tuple[Index, Index]:
    """Split a full index into its first ``rank`` components and the remainder.

    No bounds checking is performed.
    """
    index = tuple(index)
    return index[:rank], index[rank:]


def contains(point: Sequence[int], domain: IndexDomain) -> bool:
    """Check ``point`` against ``domain`` one dimension at a time, stopping at the first miss."""
    for idx, lo, hi in zip(point, domain.inclusive_min, domain.exclusive_max):
        if idx < lo or idx >= hi:
            return False
    return True
