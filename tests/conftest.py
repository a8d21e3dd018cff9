import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from engvantage.logger import logger  # noqa: E402

from fakes import FakeGateway, MemoryBackend  # noqa: E402


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep test output readable; the debug logger prints to stdout."""
    previous = logger.enabled
    logger.enabled = False
    yield
    logger.enabled = previous


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
