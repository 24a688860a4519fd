import numpy as np
import pytest

from lazydist.core.cache import (
    LocalWindowCache,
    LocalWindowCacheStore,
    NullCache,
    NullCacheStore,
    parse_window_size,
)
from lazydist.core.domain import IndexDomain
from lazydist.errors import ConfigurationError


@pytest.fixture
def store() -> LocalWindowCacheStore:
    domain_a = IndexDomain.from_ranges((range(1, 7),))
    domain_b = IndexDomain.from_ranges((range(1, 5),))
    return LocalWindowCache(3).make_store("float64", domain_a, domain_b)


def test_null_cache_store() -> None:
    domain = IndexDomain.from_shape((4,))
    store = NullCache().make_store("float64", domain, domain)
    assert isinstance(store, NullCacheStore)
    assert store.shape == (4, 4)
    assert store.locate((0,), (0,)) is None
    assert not store.is_populated((0, 0))
    assert store.nbytes == 0
    with pytest.raises(KeyError):
        store[(0, 0)]


def test_local_window_store_layout(store: LocalWindowCacheStore) -> None:
    assert store.radius == (1,)
    assert store.window_shape == (3,)
    assert store.values.shape == (6, 3)
    assert store.populated.shape == (6, 3)
    assert store.shape == (6, 4)
    assert store.buffer_domain == IndexDomain((1, -1), (7, 2))
    assert store.npopulated == 0


def test_local_window_store_locate(store: LocalWindowCacheStore) -> None:
    # offset q - p = -1, window position 0
    assert store.locate((3,), (2,)) == (2, 0)
    assert store.locate((3,), (3,)) == (2, 1)
    assert store.locate((3,), (4,)) == (2, 2)
    assert store.locate((3,), (1,)) is None
    assert store.locate((1,), (4,)) is None
    assert store.offset((3,), (1,)) == (-2,)
    assert store.in_window((1,))
    assert not store.in_window((-2,))


def test_local_window_store_zero_is_not_unpopulated(store: LocalWindowCacheStore) -> None:
    loc = store.locate((2,), (2,))
    assert loc is not None
    assert not store.is_populated(loc)
    store[loc] = 0.0
    assert store.is_populated(loc)
    assert store[loc] == 0.0
    assert store.npopulated == 1


def test_even_window_is_rounded_up() -> None:
    domain = IndexDomain.from_shape((5, 5))
    store = LocalWindowCache((4, 2)).make_store("float32", domain, domain)
    assert store.window_shape == (5, 3)
    assert store.values.dtype == np.dtype("float32")
    assert store.values.shape == (5, 5, 5, 3)


def test_zero_window_caches_diagonal_only() -> None:
    domain = IndexDomain.from_shape((3,))
    store = LocalWindowCache(0).make_store("float64", domain, domain)
    assert store.locate((1,), (1,)) == (1, 0)
    assert store.locate((1,), (2,)) is None


def test_local_window_rank_mismatch() -> None:
    one_d = IndexDomain.from_shape((4,))
    two_d = IndexDomain.from_shape((4, 4))
    with pytest.raises(ConfigurationError, match="same rank"):
        LocalWindowCache(3).make_store("float64", one_d, two_d)
    with pytest.raises(ConfigurationError, match="Window size"):
        LocalWindowCache((3, 3)).make_store("float64", one_d, one_d)


def test_strategies_are_values() -> None:
    assert NullCache() == NullCache()
    assert LocalWindowCache(3) == LocalWindowCache((3,))
    assert LocalWindowCache([7, 7]).window_size == (7, 7)
    assert repr(LocalWindowCache((7, 7))) == "LocalWindowCache(window_size=(7, 7))"
    assert hash(LocalWindowCache((7, 7))) == hash(LocalWindowCache((7, 7)))


@pytest.mark.parametrize("window_size", [-1, (3, -1), (2.5,), "abc", None])
def test_parse_window_size_invalid(window_size: object) -> None:
    with pytest.raises(ConfigurationError):
        parse_window_size(window_size)


def test_parse_window_size_numpy_integers() -> None:
    assert parse_window_size(np.int64(5)) == (5,)
    assert parse_window_size((np.int32(3), 3)) == (3, 3)
