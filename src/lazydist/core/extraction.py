"""The index-map + access pipeline turning a logical index pair into two operands.

For each side, ``index_map`` transforms a logical index into a derived index (identity by
default, or e.g. the patch around a point) and ``access`` reads the operand out of the
backing collection at that derived index (element or zero-copy view by default).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple

import numpy as np
import numpy.typing as npt

from lazydist.core.domain import Index, IndexDomain, domain_of, is_axes_like
from lazydist.core.indexing import ensure_tuple, is_integer, is_slice
from lazydist.errors import BoundsCheckError, ConfigurationError

IndexMap = Callable[[Index], Any]
Access = Callable[[Any, Any], Any]


def identity(index: Index) -> Index:
    return index


def to_index_tuple(derived: Any) -> tuple[int | slice | npt.NDArray[np.intp], ...] | None:
    """Interpret a derived index as a tuple of ints, slices and integer arrays.

    Returns None when the derived value is not made of ints, slices, unit-step ranges,
    integer lists or arrays, or an :class:`IndexDomain`.
    """
    if isinstance(derived, IndexDomain):
        return tuple(slice(lo, hi) for lo, hi in zip(derived.inclusive_min, derived.exclusive_max))
    out: list[int | slice | npt.NDArray[np.intp]] = []
    for d in ensure_tuple(derived):
        if is_integer(d):
            out.append(int(d))
        elif isinstance(d, range) and d.step == 1:
            out.append(slice(d.start, d.stop))
        elif is_slice(d):
            out.append(d)
        elif isinstance(d, (list, np.ndarray)):
            arr = np.asarray(d)
            if arr.dtype.kind not in "iu" and arr.size:
                return None
            out.append(arr.astype(np.intp, copy=False))
        else:
            return None
    return tuple(out)


def _find_violation(index: tuple[Any, ...], domain: IndexDomain) -> tuple[int, int, int, int] | None:
    if len(index) > domain.ndim:
        raise IndexError(f"too many indices for collection; expected {domain.ndim}, got {len(index)}")
    for dim, (d, lo, hi) in enumerate(zip(index, domain.inclusive_min, domain.exclusive_max)):
        if is_slice(d):
            if d.step is not None and d.step < 1:
                return (d.step, dim, lo, hi)
            start = lo if d.start is None else d.start
            stop = hi if d.stop is None else d.stop
            if start < lo or start > hi:
                return (start, dim, lo, hi)
            if stop < start or stop > hi:
                return (stop, dim, lo, hi)
        elif isinstance(d, np.ndarray):
            if d.size and d.min() < lo:
                return (int(d.min()), dim, lo, hi)
            if d.size and d.max() >= hi:
                return (int(d.max()), dim, lo, hi)
        elif d < lo or d >= hi:
            return (d, dim, lo, hi)
    return None


def is_interior(derived: Any, domain: IndexDomain) -> bool:
    """True when ``derived`` lies fully within ``domain``.

    Ints, slices and integer arrays are checked against ``domain``. Derived values that
    cannot be interpreted that way are treated as interior; the access function is then
    the only judge of their validity.
    """
    index = to_index_tuple(derived)
    if index is None:
        return True
    if len(index) > domain.ndim:
        return False
    return _find_violation(index, domain) is None


def view_access(collection: Any, derived: Any) -> Any:
    """Read ``collection`` at ``derived``, refusing anything outside its domain.

    Integer indices give the element, slices give a zero-copy view for NumPy arrays. Nothing
    is clamped: a derived index reaching outside the collection raises
    :class:`BoundsCheckError`. For axes-like collections (``IndexDomain``, ``range``) the
    element at an index is the index itself.
    """
    index = to_index_tuple(derived)
    if index is None:
        return collection[derived]

    domain = domain_of(collection)
    violation = _find_violation(index, domain)
    if violation is not None:
        raise BoundsCheckError(*violation)

    if is_axes_like(collection):
        resolved = tuple(
            range(lo if d.start is None else d.start, hi if d.stop is None else d.stop, d.step or 1)
            if is_slice(d)
            else d
            for d, lo, hi in zip(index, domain.inclusive_min, domain.exclusive_max)
        )
        return resolved[0] if len(resolved) == 1 else resolved
    if len(index) == 1 and not hasattr(collection, "shape"):
        if isinstance(index[0], np.ndarray):
            return [collection[i] for i in index[0].tolist()]
        return collection[index[0]]
    return collection[index]


def patch_map(radius: int | Sequence[int]) -> IndexMap:
    """Index map expanding a point ``p`` to the patch ``p - r : p + r + 1`` per dimension.

    Examples
    --------
    >>> patch_map(2)((4, 5))
    (slice(2, 7, None), slice(3, 8, None))
    """
    radii = None if is_integer(radius) else tuple(int(r) for r in radius)  # type: ignore[union-attr]

    def index_map(index: Index) -> tuple[slice, ...]:
        rs = (int(radius),) * len(index) if radii is None else radii  # type: ignore[arg-type]
        if len(rs) != len(index):
            raise IndexError(f"patch radius {rs} does not match index {index}")
        return tuple(slice(i - r, i + r + 1) for i, r in zip(index, rs))

    return index_map


class Extractor(NamedTuple):
    """Index map and access function for one side of the pairwise computation."""

    index_map: IndexMap
    access: Access

    def __call__(self, collection: Any, index: Index) -> Any:
        return self.access(collection, self.index_map(index))


def normalize_side_ops(op: Any, default: Callable[..., Any], name: str) -> tuple[Any, Any]:
    """Expand ``op`` into one function per side.

    A single callable is used for both sides, a 2-tuple gives one per side. Any other
    container, including lists, is rejected.
    """
    if op is None:
        return default, default
    if isinstance(op, tuple):
        if len(op) != 2 or not all(callable(o) for o in op):
            raise ConfigurationError(
                f"{name} given as a tuple must hold exactly two callables, one per side; got {op!r}"
            )
        return op[0], op[1]
    if callable(op):
        return op, op
    raise ConfigurationError(
        f"{name} must be a callable or a 2-tuple of callables, got {type(op).__name__}"
    )


@dataclass(frozen=True, slots=True)
class ExtractionPipeline:
    """Per-side extraction feeding the two operands of the distance function."""

    side_a: Extractor
    side_b: Extractor

    @classmethod
    def from_ops(cls, index_map: Any = None, access: Any = None) -> ExtractionPipeline:
        map_a, map_b = normalize_side_ops(index_map, identity, "index_map")
        access_a, access_b = normalize_side_ops(access, view_access, "access")
        return cls(Extractor(map_a, access_a), Extractor(map_b, access_b))

    def evaluate(self, collection_a: Any, collection_b: Any, p: Index, q: Index) -> tuple[Any, Any]:
        return self.side_a(collection_a, p), self.side_b(collection_b, q)
