from __future__ import annotations

import operator
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

from lazydist.core.domain import contains
from lazydist.core.indexing import BasicIndexer, is_full_index
from lazydist.errors import ReadOnlyError

if TYPE_CHECKING:
    import numpy.typing as npt

    from lazydist.core.domain import Index, IndexDomain
    from lazydist.core.indexing import BasicSelection


class LazyArray(ABC):
    """A read-only array whose elements are computed when they are read.

    Subclasses provide the domain, the data type and :meth:`read`; this class supplies the
    shape queries, selections, iteration and the NumPy array protocol so that lazy arrays
    compose with code written against ordinary arrays.
    """

    @property
    @abstractmethod
    def domain(self) -> IndexDomain:
        """The full index domain of the array."""

    @property
    @abstractmethod
    def dtype(self) -> np.dtype[Any]:
        """The NumPy data type."""

    @abstractmethod
    def read(self, index: Sequence[int]) -> Any:
        """Read a single element by its full coordinate tuple."""

    @property
    def shape(self) -> tuple[int, ...]:
        """A tuple of integers describing the length of each dimension of the array."""
        return self.domain.shape

    @property
    def ndim(self) -> int:
        """Number of dimensions."""
        return self.domain.ndim

    @property
    def size(self) -> int:
        """The total number of elements in the array."""
        return self.domain.size

    def _check_index(self, index: Sequence[int]) -> Index:
        index = tuple(operator.index(i) for i in index)
        if len(index) != self.ndim:
            raise IndexError(f"expected {self.ndim} indices, got {len(index)}")
        if not contains(index, self.domain):
            self.domain.check(index)
        return index

    def __getitem__(self, selection: BasicSelection) -> Any:
        """Retrieve an element or a region of the array.

        Coordinates are absolute within the array's domain; negative integers are not
        wrapped around. Integer dimensions are dropped from the result, slices keep theirs.

        Examples
        --------
        >>> import numpy as np
        >>> from lazydist import PairwiseDistance
        >>> dist = PairwiseDistance(lambda x, y: abs(x - y), (range(1, 7), range(1, 5)))
        >>> dist[3, 2]
        np.int64(1)
        >>> dist[3, :]
        array([2, 1, 0, 1])
        """
        if is_full_index(selection, self.ndim):
            return self.read(selection)
        return self.get_basic_selection(selection)

    def get_basic_selection(self, selection: BasicSelection = Ellipsis) -> Any:
        """Evaluate every element of a basic selection into a new ``numpy.ndarray``."""
        indexer = BasicIndexer(selection, self.domain)
        if not indexer.shape:
            # integers only
            (projection,) = indexer
            return self.read(projection.coords)
        out = np.empty(indexer.shape, dtype=self.dtype)
        for coords, out_selection in indexer:
            out[out_selection] = self.read(coords)
        return out

    def __setitem__(self, selection: Any, value: Any) -> None:
        raise ReadOnlyError

    def __len__(self) -> int:
        if self.shape:
            return self.shape[0]
        else:
            # 0-dimensional array, same error message as numpy
            raise TypeError("len() of unsized object")

    def __iter__(self) -> Iterator[Any]:
        if not self.shape:
            raise TypeError("iteration over a 0-d array")
        lo, hi = self.domain.inclusive_min[0], self.domain.exclusive_max[0]
        for i in range(lo, hi):
            yield self[i]

    def __array__(self, dtype: npt.DTypeLike | None = None, copy: bool | None = None) -> npt.NDArray[Any]:
        if copy is False:
            raise ValueError(
                "a lazy array is always evaluated into a new array, copy=False is not supported"
            )
        out = np.asarray(self.get_basic_selection(Ellipsis), dtype=self.dtype)
        if dtype is not None:
            out = out.astype(dtype)
        return out
