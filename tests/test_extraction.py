import numpy as np
import pytest
from numpy.testing import assert_array_equal

from lazydist.core.domain import IndexDomain
from lazydist.core.extraction import (
    ExtractionPipeline,
    Extractor,
    identity,
    is_interior,
    normalize_side_ops,
    patch_map,
    to_index_tuple,
    view_access,
)
from lazydist.errors import BoundsCheckError, ConfigurationError


def test_identity() -> None:
    assert identity((1, 2)) == (1, 2)


def test_to_index_tuple() -> None:
    assert to_index_tuple(3) == (3,)
    assert to_index_tuple((1, slice(0, 2))) == (1, slice(0, 2))
    assert to_index_tuple((range(1, 4),)) == (slice(1, 4),)
    assert to_index_tuple(IndexDomain((0, 1), (2, 3))) == (slice(0, 2), slice(1, 3))
    (fancy,) = to_index_tuple(([0, 1],))
    assert_array_equal(fancy, [0, 1])
    assert to_index_tuple(([True, False],)) is None
    assert to_index_tuple("key") is None


def test_patch_map() -> None:
    assert patch_map(2)((4, 5)) == (slice(2, 7), slice(3, 8))
    assert patch_map((1, 0))((4, 5)) == (slice(3, 6), slice(5, 6))
    with pytest.raises(IndexError):
        patch_map((1, 1))((4,))


def test_view_access_elements() -> None:
    a = np.arange(12).reshape(3, 4)
    assert view_access(a, (1, 2)) == 6
    assert view_access([10, 20, 30], (1,)) == 20
    with pytest.raises(BoundsCheckError):
        view_access(a, (3, 0))
    with pytest.raises(BoundsCheckError):
        view_access(a, (-1, 0))
    with pytest.raises(BoundsCheckError):
        view_access([10, 20, 30], (3,))


def test_view_access_returns_view() -> None:
    a = np.arange(100.0).reshape(10, 10)
    patch = view_access(a, patch_map(1)((5, 5)))
    assert patch.shape == (3, 3)
    assert np.shares_memory(patch, a)
    assert_array_equal(patch, a[4:7, 4:7])


def test_view_access_does_not_clamp() -> None:
    a = np.zeros((10, 10))
    with pytest.raises(BoundsCheckError) as excinfo:
        view_access(a, patch_map(2)((1, 5)))
    assert excinfo.value.dim == 0
    with pytest.raises(BoundsCheckError):
        view_access(a, patch_map(2)((5, 8)))


def test_view_access_axes_like() -> None:
    assert view_access(range(1, 7), (3,)) == 3
    with pytest.raises(BoundsCheckError):
        view_access(range(1, 7), (0,))
    assert view_access(IndexDomain.from_shape((4, 4)), (1, 2)) == (1, 2)
    assert view_access(range(10), (slice(2, 5),)) == range(2, 5)


def test_view_access_too_many_indices() -> None:
    with pytest.raises(IndexError, match="too many indices"):
        view_access(np.zeros(3), (0, 0))


def test_view_access_custom_key() -> None:
    assert view_access({"a": 1}, "a") == 1


def test_is_interior() -> None:
    domain = IndexDomain.from_shape((10, 10))
    r = patch_map(2)
    assert is_interior(r((2, 2)), domain)
    assert is_interior(r((7, 7)), domain)
    assert not is_interior(r((1, 5)), domain)
    assert not is_interior(r((5, 8)), domain)
    assert is_interior((3, 3), domain)
    assert not is_interior((3, 3, 3), domain)


def test_normalize_side_ops() -> None:
    def f(x: object) -> object:
        return x

    def g(x: object) -> object:
        return x

    assert normalize_side_ops(None, identity, "index_map") == (identity, identity)
    assert normalize_side_ops(f, identity, "index_map") == (f, f)
    assert normalize_side_ops((f, g), identity, "index_map") == (f, g)


@pytest.mark.parametrize("op", [[identity, identity], (identity,), (identity, 1), 3])
def test_normalize_side_ops_rejects(op: object) -> None:
    with pytest.raises(ConfigurationError, match="index_map"):
        normalize_side_ops(op, identity, "index_map")


def test_extraction_pipeline() -> None:
    a = np.arange(10.0)
    b = np.arange(10.0) * 2
    pipeline = ExtractionPipeline.from_ops(index_map=(identity, patch_map(1)))
    assert pipeline.side_a == Extractor(identity, view_access)
    operand_a, operand_b = pipeline.evaluate(a, b, (3,), (4,))
    assert operand_a == 3.0
    assert_array_equal(operand_b, [6.0, 8.0, 10.0])


def test_extraction_pipeline_per_side_access() -> None:
    pipeline = ExtractionPipeline.from_ops(access=(view_access, lambda c, i: c[i] * 10))
    assert pipeline.evaluate(np.arange(3), np.arange(3), (1,), (2,)) == (1, 20)


def test_integer_list_derived_index_is_bounds_checked() -> None:
    domain = IndexDomain.from_shape((6,))
    neighbours = [[-1, 0, 1], [0, 1, 2], [4, 5, 6]]
    assert [is_interior(d, domain) for d in neighbours] == [False, True, False]
    assert is_interior(np.array([[1, 2], [3, 4]]), domain)

    a = np.arange(6.0)
    assert_array_equal(view_access(a, [0, 1, 2]), [0.0, 1.0, 2.0])
    assert view_access([10, 20, 30], [2, 0]) == [30, 10]
    # negative entries do not wrap around
    with pytest.raises(BoundsCheckError) as excinfo:
        view_access(a, [-1, 0, 1])
    assert excinfo.value.value == -1
    with pytest.raises(BoundsCheckError) as excinfo:
        view_access(a, np.array([4, 5, 6]))
    assert excinfo.value.value == 6
