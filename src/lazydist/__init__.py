from lazydist import errors
from lazydist.core.cache import CacheStrategy, LocalWindowCache, NullCache
from lazydist.core.config import config
from lazydist.core.domain import IndexDomain
from lazydist.core.extraction import identity, patch_map, view_access
from lazydist.core.lazy_array import LazyArray
from lazydist.core.pairwise import PairwiseDistance
from lazydist.core.precompute import CachedPairwiseDistance, precalculate
from lazydist.core.sync import ThreadSynchronizer
from lazydist.version import version as __version__


def print_debug_info() -> None:
    """
    Print version info for use in bug reports.
    """
    import platform
    from importlib.metadata import PackageNotFoundError, version

    print(f"platform: {platform.platform()}")
    print(f"python: {platform.python_version()}")
    print(f"lazydist: {__version__}\n")
    print("**Required dependencies:**")
    for package in ["numpy", "donfig"]:
        try:
            print(f"{package}: {version(package)}")
        except PackageNotFoundError:
            print(f"{package}: not installed")


__all__ = [
    "CacheStrategy",
    "CachedPairwiseDistance",
    "IndexDomain",
    "LazyArray",
    "LocalWindowCache",
    "NullCache",
    "PairwiseDistance",
    "ThreadSynchronizer",
    "__version__",
    "config",
    "errors",
    "identity",
    "patch_map",
    "precalculate",
    "print_debug_info",
    "view_access",
]
