from __future__ import annotations

from collections.abc import Generator
from typing import Any

import numpy as np
import pytest

from lazydist import config
from tests._shared import CountingMetric


@pytest.fixture(autouse=True)
def reset_config() -> Generator[None, None, None]:
    config.reset()
    yield
    config.reset()


@pytest.fixture
def counting_metric() -> CountingMetric:
    return CountingMetric()


@pytest.fixture
def image() -> np.ndarray[Any, Any]:
    return np.random.default_rng(42).random((10, 10))
