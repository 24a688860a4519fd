"""Result data types: inference from a trial evaluation and lossless conversion."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import numpy as np

from lazydist.core.extraction import is_interior
from lazydist.errors import ConversionError

if TYPE_CHECKING:
    from lazydist.core.domain import IndexDomain
    from lazydist.core.extraction import ExtractionPipeline, Extractor

# kinds an inferred result type may have, anything else is stored as objects
NUMERIC_KINDS = "biufc"


def try_operand(side: Extractor, collection: Any, derived: Any) -> tuple[bool, Any]:
    """Read an operand at a derived index, reporting ``(False, None)`` if it lies outside."""
    try:
        return True, side.access(collection, derived)
    except IndexError:
        return False, None


def first_operand(side: Extractor, collection: Any, domain: IndexDomain) -> tuple[bool, Any]:
    """The operand at the first position of ``domain`` (row-major) whose extraction succeeds."""
    for index in domain.iter_indices():
        derived = side.index_map(index)
        if not is_interior(derived, domain):
            continue
        found, operand = try_operand(side, collection, derived)
        if found:
            return True, operand
    return False, None


def infer_dtype(
    metric: Callable[[Any, Any], Any],
    pipeline: ExtractionPipeline,
    arrays: tuple[Any, Any],
    domains: tuple[IndexDomain, IndexDomain],
) -> np.dtype[Any]:
    """Data type of ``metric`` evaluated once on the first valid operand of each side.

    Empty domains, or sides without a single valid operand, give float64.
    """
    found_a, operand_a = first_operand(pipeline.side_a, arrays[0], domains[0])
    found_b, operand_b = first_operand(pipeline.side_b, arrays[1], domains[1])
    if not (found_a and found_b):
        return np.dtype("float64")
    dtype = np.asarray(metric(operand_a, operand_b)).dtype
    if dtype.kind not in NUMERIC_KINDS:
        return np.dtype(object)
    return dtype


def convert_value(value: Any, dtype: np.dtype[Any]) -> Any:
    """Convert one result to ``dtype``, refusing conversions that lose information.

    Integer and boolean targets require the value to survive the conversion exactly, and a
    complex value must have a zero imaginary part to become real. Floating point targets
    round like NumPy does.

    Examples
    --------
    >>> convert_value(2.0, np.dtype("int64"))
    np.int64(2)
    >>> convert_value(0.5, np.dtype("int64"))
    Traceback (most recent call last):
    ...
    lazydist.errors.ConversionError: cannot convert 0.5 to int64 without loss
    """
    if type(value) is dtype.type:
        return value
    exact = dtype.kind in "biu"
    if dtype.kind not in "cO" and np.iscomplexobj(value):
        if np.imag(value) != 0:
            raise ConversionError(value, dtype)
        value = np.real(value)
    if not exact:
        return dtype.type(value)

    try:
        arr = np.asarray(value)
        with np.errstate(invalid="ignore", over="ignore"):
            out = arr.astype(dtype)
    except (OverflowError, TypeError, ValueError) as e:
        raise ConversionError(value, dtype) from e
    if out.shape != () or not bool(out == arr):
        raise ConversionError(value, dtype)
    return out[()]
