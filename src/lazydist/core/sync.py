from __future__ import annotations

from collections import defaultdict
from threading import Lock
from typing import Any, Protocol


class Synchronizer(Protocol):
    """Base class for synchronizers."""

    def __getitem__(self, item: Any) -> Any:
        # see subclasses
        ...


class ThreadSynchronizer(Synchronizer):
    """Provides synchronization using thread locks, one lock per cache cell."""

    def __init__(self) -> None:
        self.mutex = Lock()
        self.locks: defaultdict[Any, Lock] = defaultdict(Lock)

    def __getitem__(self, item: Any) -> Lock:
        with self.mutex:
            return self.locks[item]

    def __getstate__(self) -> bool:
        return True

    def __setstate__(self, *args: Any) -> None:
        # reinitialize from scratch
        self.__init__()  # type: ignore[misc]


class NoLock:
    """A lock that doesn't lock."""

    def __enter__(self) -> None:
        pass

    def __exit__(self, *args: Any) -> None:
        pass


nolock = NoLock()
