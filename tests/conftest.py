"""Shared fixtures and in-memory collaborators for the handler tests."""

import copy
import os
from typing import Any, Dict, List, Optional

import pytest

# Powertools reads these when the package is imported
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "orders")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "OrdersTest")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")

from orders_api.config import ServiceConfig  # noqa: E402
from orders_api.dependencies import Dependencies  # noqa: E402
from orders_api.errors import ArchiveUnavailable, UnprocessedItemsError  # noqa: E402
from orders_api.feature_flags import DISABLED, FeatureFlag  # noqa: E402
from orders_api.observability import metrics  # noqa: E402
from orders_api.populate_table import STORES  # noqa: E402

NEWCASTLE_STORE_ID = "59b8a675-9bb7-46c7-955d-2566edfba8ea"


class FakeFlagSource:
    """Returns preset flags; unknown names come back disabled."""

    def __init__(self, flags: Optional[Dict[str, FeatureFlag]] = None, error=None):
        self.flags = flags or {}
        self.error = error
        self.calls: List[Optional[List[str]]] = []

    def fetch_flags(
        self, application, environment, configuration, flag_names=None, deadline=None
    ):
        self.calls.append(list(flag_names) if flag_names else None)
        if self.error:
            raise self.error
        if flag_names is None:
            return dict(self.flags)
        return {name: self.flags.get(name, DISABLED) for name in flag_names}


class FakeOrderStore:
    """Dict-backed stand-in for the orders table, keyed by id."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.writes: List[Dict[str, Any]] = []
        self.unprocessed_ids: List[str] = []
        for record in records or []:
            self.records[record["id"]] = copy.deepcopy(record)

    def get_by_id(self, record_id):
        item = self.records.get(record_id)
        return copy.deepcopy(item) if item is not None else None

    def put(self, record):
        self.writes.append(copy.deepcopy(record))
        self.records[record["id"]] = copy.deepcopy(record)

    def query_by_type(self, record_type):
        return [
            copy.deepcopy(item)
            for item in self.records.values()
            if item.get("type") == record_type
        ]

    def batch_put(self, records):
        unprocessed = []
        for record in records:
            if record["id"] in self.unprocessed_ids:
                unprocessed.append(record)
                continue
            self.put(record)
        if unprocessed:
            raise UnprocessedItemsError(unprocessed)


class FakeInvoiceArchive:
    def __init__(self, fail: bool = False):
        self.objects: Dict[str, str] = {}
        self.fail = fail

    def put(self, key, content):
        if self.fail:
            raise ArchiveUnavailable(f"PutObject {key} failed: AccessDenied")
        self.objects[key] = content


class FakeLambdaContext:
    function_name = "test-orders-function"
    memory_limit_in_mb = 128
    invoked_function_arn = (
        "arn:aws:lambda:eu-west-1:123456789012:function:test-orders-function"
    )
    aws_request_id = "52fdfc07-2182-154f-163f-5f0f9a621d72"

    def get_remaining_time_in_millis(self) -> int:
        return 30000


@pytest.fixture(autouse=True)
def clear_metrics():
    """Keep metrics from one test leaking into the next flush."""
    yield
    metrics.clear_metrics()


@pytest.fixture
def lambda_context():
    return FakeLambdaContext()


@pytest.fixture
def service_config():
    return ServiceConfig(
        table_name="test-orders-table",
        bucket_name="test-invoices-bucket",
        appconfig_application_id="app-123",
        appconfig_environment_id="env-123",
        appconfig_configuration_id="cfg-123",
    )


@pytest.fixture
def flag_source():
    return FakeFlagSource()


@pytest.fixture
def order_store():
    return FakeOrderStore(STORES)


@pytest.fixture
def empty_store():
    return FakeOrderStore()


@pytest.fixture
def invoice_archive():
    return FakeInvoiceArchive()


@pytest.fixture
def deps(service_config, flag_source, order_store, invoice_archive):
    return Dependencies(
        config=service_config,
        flag_source=flag_source,
        store=order_store,
        archive=invoice_archive,
    )


@pytest.fixture
def store_id():
    return NEWCASTLE_STORE_ID


@pytest.fixture
def stored_order():
    """Factory for a persisted order record as it comes back from the table."""

    def _stored_order(order_id: str = "order-123", **overrides) -> Dict[str, Any]:
        item = {
            "id": order_id,
            "type": "Orders",
            "productId": "p1",
            "quantity": 5,
            "storeId": NEWCASTLE_STORE_ID,
            "created": "2024-05-01T10:00:00+00:00",
        }
        item.update(overrides)
        return item

    return _stored_order
