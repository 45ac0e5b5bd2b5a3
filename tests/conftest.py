"""Pytest configuration for the pricekeeper test suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from prometheus_client import CollectorRegistry

from pricekeeper.core.data.storage import AggregateStore, PriceDatabase, SampleStore
from pricekeeper.core.monitoring import CleanupMetrics


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling slow tests."""

    parser.addoption(
        "--pricekeeper-skip-slow",
        action="store_true",
        default=False,
        help="Skip tests that write thousands of rows.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip slow tests when asked to."""

    if not config.getoption("--pricekeeper-skip-slow"):
        return

    skip_slow = pytest.mark.skip(reason="slow tests skipped by --pricekeeper-skip-slow")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def db() -> Iterator[PriceDatabase]:
    database = PriceDatabase(":memory:", busy_timeout=5.0)
    yield database
    database.close()


@pytest.fixture
def file_db(tmp_path) -> Iterator[PriceDatabase]:
    database = PriceDatabase(str(tmp_path / "prices.duckdb"), busy_timeout=5.0)
    yield database
    database.close()


@pytest.fixture
def samples(db: PriceDatabase) -> SampleStore:
    return SampleStore(db)


@pytest.fixture
def aggregates(db: PriceDatabase) -> AggregateStore:
    return AggregateStore(db)


@pytest.fixture
def metrics() -> CleanupMetrics:
    return CleanupMetrics(registry=CollectorRegistry())
