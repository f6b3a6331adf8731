"""
Pytest configuration and shared fixtures for Tableside tests.
"""

import pytest
from fastapi.testclient import TestClient

from tableside.core.config import Settings, get_settings
from tableside.domain import Order, OrderItem, order_numbers
from tableside.main import create_app
from tableside.services.archive import NullArchiveSink, reset_archive_sink
from tableside.services.events import OrderEventHub
from tableside.services.order_store import OrderStore


@pytest.fixture(autouse=True)
def fresh_globals():
    """Each test starts with order number 1 and uncached settings."""
    order_numbers.configure(999)
    order_numbers.reset()
    get_settings.cache_clear()
    reset_archive_sink()
    yield
    get_settings.cache_clear()
    reset_archive_sink()


@pytest.fixture
def store():
    return OrderStore()


@pytest.fixture
def order():
    return Order(table_id=3, total_price="12.50", note="window seat")


@pytest.fixture
def placed_order(store, order):
    assert store.add_order(order).successful
    return order


@pytest.fixture
def make_items():
    """Factory for item batches: make_items(("1", "Soup", 2), ...)."""
    def _make(*specs):
        return [OrderItem(id=i, name=n, amount=a) for i, n, a in specs]
    return _make


class RecordingSink(NullArchiveSink):
    """Archive sink that keeps every order it receives."""

    def __init__(self):
        self.archived = []

    @property
    def provider_name(self) -> str:
        return "recording"

    async def archive(self, order):
        self.archived.append(order.to_dict())
        return await super().archive(order)


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        data_directory=str(tmp_path),
        archive_timeout_seconds=0.5,
        cors_origins="http://testserver",
    )


@pytest.fixture
def app_store(settings):
    return OrderStore(page_size=settings.page_size, max_items=settings.max_items_per_order)


@pytest.fixture
def client(settings, app_store, recording_sink):
    app = create_app(
        settings=settings,
        store=app_store,
        archive_sink=recording_sink,
        hub=OrderEventHub(),
    )
    with TestClient(app) as c:
        yield c
