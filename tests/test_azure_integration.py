"""
Azure Table Storage backend integration tests.

These tests run against a real table service (Azure, or Azurite locally):
- Several CrustData instances racing on a missing table seed it once.
- Concurrent decrements on one row are all applied, none twice.
- A write carrying a stale ETag is rejected by the service.

They require CRUST_DATA_CONNECTION_STRING, e.g. "UseDevelopmentStorage=true"
with Azurite running (docker run -p 10002:10002 mcr.microsoft.com/azure-storage/azurite).
"""

import os
import threading
import uuid
from dataclasses import replace

import pytest

from crust_data import CrustData, VersionConflict


@pytest.fixture
def connection_string() -> str:
    value = os.environ.get("CRUST_DATA_CONNECTION_STRING")
    if not value:
        pytest.skip("CRUST_DATA_CONNECTION_STRING is not set; skipping Azure Tables tests.")
    return value


@pytest.fixture
def table_name(connection_string):
    """A fresh table per test, deleted afterwards."""
    from azure.data.tables import TableClient

    # Table names must be alphanumeric and start with a letter.
    name = f"crusts{uuid.uuid4().hex[:12]}"
    yield name

    TableClient.from_connection_string(connection_string, table_name=name).delete_table()


def _backend(connection_string: str, table_name: str):
    from crust_data.backends.azure_tables import AzureTableBackend

    return AzureTableBackend.from_connection_string(connection_string, table_name)


def test_racing_instances_seed_once(connection_string, table_name):
    """Independent instances (as in separate workers) must not double-seed."""
    start = threading.Barrier(4)
    created: list[bool] = []

    class Recording:
        def __init__(self, inner):
            self.inner = inner

        def create_table(self, **kwargs):
            result = self.inner.create_table(**kwargs)
            created.append(result)
            return result

        def __getattr__(self, name):
            return getattr(self.inner, name)

    def worker() -> None:
        crusts = CrustData(Recording(_backend(connection_string, table_name)))
        start.wait(timeout=5.0)
        crusts.list()

    threads = [threading.Thread(target=worker, name=f"worker-{i}") for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30.0)

    assert sorted(created) == [False, False, False, True]
    assert len(CrustData(_backend(connection_string, table_name)).list()) == 9


def test_concurrent_decrements_are_all_applied(connection_string, table_name):
    crusts = CrustData(_backend(connection_string, table_name), retry_attempts=1000)
    crusts.list()

    def buyer() -> None:
        for _ in range(10):
            crusts.decrement_stock("deep12")

    threads = [threading.Thread(target=buyer, name=f"buyer-{i}") for i in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60.0)

    assert crusts.get("deep12").stock_count == 1000 - 50


def test_stale_etag_is_rejected(connection_string, table_name):
    backend = _backend(connection_string, table_name)
    crusts = CrustData(backend)

    stale = crusts.get("thin15")
    assert stale.etag

    crusts.decrement_stock("thin15")

    with pytest.raises(VersionConflict):
        backend.update_entity(replace(stale, stock_count=0), stale.etag)

    assert crusts.get("thin15").stock_count == 999
