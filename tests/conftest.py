import os

import pytest

from src.shared.infrastructure.observability.metrics import MetricsCollector
from tests.fakes import InMemoryStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def metrics():
    return MetricsCollector(enabled=True)


def require_test_db():
    url = os.getenv("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL not set; skipping DB-dependent tests")
    return url
