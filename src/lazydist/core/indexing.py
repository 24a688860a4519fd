from __future__ import annotations

import itertools
import math
import numbers
from collections.abc import Iterator
from dataclasses import dataclass
from types import EllipsisType
from typing import TYPE_CHECKING, Any, NamedTuple, TypeGuard, cast

import numpy as np

from lazydist.errors import BoundsCheckError, NegativeStepError

if TYPE_CHECKING:
    from lazydist.core.domain import Index, IndexDomain

BasicSelector = int | slice | EllipsisType
BasicSelection = BasicSelector | tuple[BasicSelector, ...]
SelectionNormalized = tuple[int | slice, ...]


def err_too_many_indices(selection: Any, ndim: int) -> None:
    raise IndexError(f"too many indices for array; expected {ndim}, got {len(selection)}")


def ceildiv(a: float, b: float) -> int:
    if a == 0:
        return 0
    return math.ceil(a / b)


def is_integer(x: Any) -> TypeGuard[int]:
    """True if x is an integer (both pure Python or NumPy)."""
    return isinstance(x, numbers.Integral) and not is_bool(x)


def is_bool(x: Any) -> TypeGuard[bool | np.bool_]:
    """True if x is a boolean (both pure Python or NumPy)."""
    return type(x) in [bool, np.bool_]


def is_slice(s: Any) -> TypeGuard[slice]:
    return isinstance(s, slice)


def is_positive_slice(s: Any) -> TypeGuard[slice]:
    return is_slice(s) and (s.step is None or s.step >= 1)


def is_basic_selection(selection: Any) -> TypeGuard[BasicSelection]:
    selection = ensure_tuple(selection)
    return all(is_integer(s) or is_positive_slice(s) or s is Ellipsis for s in selection)


def is_full_index(selection: Any, ndim: int) -> TypeGuard[tuple[int, ...]]:
    """True if ``selection`` addresses exactly one element of an ``ndim``-dimensional array."""
    return (
        isinstance(selection, tuple)
        and len(selection) == ndim
        and all(is_integer(s) for s in selection)
    )


def ensure_tuple(v: Any) -> tuple[Any, ...]:
    if not isinstance(v, tuple):
        v = (v,)
    return v


def replace_ellipsis(selection: Any, ndim: int) -> SelectionNormalized:
    selection = ensure_tuple(selection)

    # count number of ellipsis present
    n_ellipsis = sum(1 for i in selection if i is Ellipsis)

    if n_ellipsis > 1:
        # more than 1 is an error
        raise IndexError("an index can only have a single ellipsis ('...')")

    elif n_ellipsis == 1:
        # locate the ellipsis, count how many items to left and right
        n_items_l = selection.index(Ellipsis)  # items to left of ellipsis
        n_items_r = len(selection) - (n_items_l + 1)  # items to right of ellipsis
        n_items = len(selection) - 1  # all non-ellipsis items

        if n_items >= ndim:
            # ellipsis does nothing, just remove it
            selection = tuple(i for i in selection if i is not Ellipsis)

        else:
            # replace ellipsis with as many slices are needed for number of dims
            new_item = selection[:n_items_l] + ((slice(None),) * (ndim - n_items))
            if n_items_r:
                new_item += selection[-n_items_r:]
            selection = new_item

    # fill out selection if not completely specified
    if len(selection) < ndim:
        selection += (slice(None),) * (ndim - len(selection))

    # check selection not too long
    if len(selection) > ndim:
        err_too_many_indices(selection, ndim)

    return cast(SelectionNormalized, selection)


def normalize_integer_selection(dim_sel: int, dim: int, dim_lo: int, dim_hi: int) -> int:
    # coordinates are absolute within the domain, there is no wraparound
    dim_sel = int(dim_sel)
    if dim_sel < dim_lo or dim_sel >= dim_hi:
        raise BoundsCheckError(dim_sel, dim, dim_lo, dim_hi)
    return dim_sel


class DimProjection(NamedTuple):
    """A mapping from a domain coordinate to the output array for a single dimension.

    Attributes
    ----------
    dim_coord
        Logical coordinate within the dimension's domain.
    dim_out_sel
        Position in the output array, or None when the dimension is dropped.
    """

    dim_coord: int
    dim_out_sel: int | None


@dataclass(frozen=True)
class IntDimIndexer:
    dim_sel: int
    nitems: int = 1

    def __init__(self, dim_sel: int, dim: int, dim_lo: int, dim_hi: int) -> None:
        object.__setattr__(self, "dim_sel", normalize_integer_selection(dim_sel, dim, dim_lo, dim_hi))
        object.__setattr__(self, "nitems", 1)

    def __iter__(self) -> Iterator[DimProjection]:
        yield DimProjection(self.dim_sel, None)


@dataclass(frozen=True)
class SliceDimIndexer:
    start: int
    stop: int
    step: int
    nitems: int

    def __init__(self, dim_sel: slice, dim_lo: int, dim_hi: int) -> None:
        step = 1 if dim_sel.step is None else int(dim_sel.step)
        if step < 1:
            raise NegativeStepError

        # slice bounds are absolute coordinates, clipped to the domain
        start = dim_lo if dim_sel.start is None else min(max(int(dim_sel.start), dim_lo), dim_hi)
        stop = dim_hi if dim_sel.stop is None else min(max(int(dim_sel.stop), dim_lo), dim_hi)
        stop = max(stop, start)

        object.__setattr__(self, "start", start)
        object.__setattr__(self, "stop", stop)
        object.__setattr__(self, "step", step)
        object.__setattr__(self, "nitems", ceildiv(stop - start, step))

    def __iter__(self) -> Iterator[DimProjection]:
        for dim_out_sel, dim_coord in enumerate(range(self.start, self.stop, self.step)):
            yield DimProjection(dim_coord, dim_out_sel)


class Projection(NamedTuple):
    """A single element of a selection.

    Attributes
    ----------
    coords
        Full logical index into the lazy array.
    out_selection
        Position of the element in the output array.
    """

    coords: Index
    out_selection: tuple[int, ...]


@dataclass(frozen=True)
class BasicIndexer:
    dim_indexers: list[IntDimIndexer | SliceDimIndexer]
    shape: tuple[int, ...]

    def __init__(self, selection: BasicSelection, domain: IndexDomain) -> None:
        # handle ellipsis
        selection_normalized = replace_ellipsis(selection, domain.ndim)

        # setup per-dimension indexers
        dim_indexers: list[IntDimIndexer | SliceDimIndexer] = []
        for dim, (dim_sel, dim_lo, dim_hi) in enumerate(
            zip(selection_normalized, domain.inclusive_min, domain.exclusive_max, strict=True)
        ):
            dim_indexer: IntDimIndexer | SliceDimIndexer
            if is_integer(dim_sel):
                dim_indexer = IntDimIndexer(dim_sel, dim, dim_lo, dim_hi)

            elif is_slice(dim_sel):
                dim_indexer = SliceDimIndexer(dim_sel, dim_lo, dim_hi)

            else:
                raise IndexError(
                    "unsupported selection item for basic indexing; "
                    f"expected integer or slice, got {type(dim_sel)!r}"
                )

            dim_indexers.append(dim_indexer)

        object.__setattr__(self, "dim_indexers", dim_indexers)
        object.__setattr__(
            self,
            "shape",
            tuple(s.nitems for s in self.dim_indexers if not isinstance(s, IntDimIndexer)),
        )

    def __iter__(self) -> Iterator[Projection]:
        for dim_projections in itertools.product(*self.dim_indexers):
            coords = tuple(p.dim_coord for p in dim_projections)
            out_selection = tuple(
                p.dim_out_sel for p in dim_projections if p.dim_out_sel is not None
            )
            yield Projection(coords, out_selection)
