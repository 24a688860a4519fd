"""
The config module is responsible for managing the configuration of lazydist and is based on
the Donfig python library.

Example:
    Arrays constructed without an explicit cache strategy use the strategy named by
    ``cache.strategy``. To turn on local-window caching by default:

    ```python
    from lazydist import config

    config.set({"cache.strategy": "local_window", "cache.window_size": (7, 7)})
    ```

    ``array.dtype`` is unset by default, in which case the result type is inferred from one
    evaluation of the metric. Set it to force a data type for every array.

    Instead of setting the value programmatically with ``config.set``, you can also set the
    value with an environment variable. The environment variable ``LAZYDIST_CACHE__STRATEGY``
    can be set to ``local_window``. The double underscore ``__`` is used to indicate nested
    access.

For more information, see the Donfig documentation at https://github.com/pytroll/donfig.
"""

from __future__ import annotations

from typing import Any, Literal, cast

import numpy as np
from donfig import Config as DConfig

from lazydist.errors import ConfigurationError

CacheStrategyName = Literal["null", "local_window"]


class Config(DConfig):  # type: ignore[misc]
    """The Config will collect configuration from config files and environment variables

    Example environment variables:
    Grabs environment variables of the form "LAZYDIST_FOO__BAR_BAZ=123" and
    turns these into config variables of the form ``{"foo": {"bar-baz": 123}}``
    It transforms the key and value in the following way:

    -  Lower-cases the key text
    -  Treats ``__`` (double-underscore) as nested access
    -  Calls ``ast.literal_eval`` on the value

    """

    def reset(self) -> None:
        self.clear()
        self.refresh()


# The default configuration for lazydist
config = Config(
    "lazydist",
    defaults=[
        {
            "array": {"dtype": None},
            "cache": {"strategy": "null", "window_size": None},
        }
    ],
)


def parse_cache_strategy_name(data: Any) -> CacheStrategyName:
    if data in ("null", "local_window"):
        return cast("CacheStrategyName", data)
    msg = f"Expected one of ('null', 'local_window'), got {data!r} instead."
    raise ConfigurationError(msg)


def parse_dtype(data: Any) -> np.dtype[Any]:
    try:
        return np.dtype(data)
    except TypeError as e:
        raise ConfigurationError(f"Invalid dtype {data!r}: {e}") from e
