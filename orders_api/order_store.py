"""DynamoDB access for Order and Store records in the single orders table."""

import warnings
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from orders_api.deadline import Deadline
from orders_api.errors import StoreUnavailable, UnprocessedItemsError
from orders_api.observability import logger

RECORD_TYPE_INDEX = "recordTypeIndex"

# DynamoDB accepts at most 25 put requests per BatchWriteItem call.
BATCH_WRITE_LIMIT = 25

# Each call stays well inside the Lambda timeout.
BOTO_CONFIG = Config(
    connect_timeout=2,
    read_timeout=3,
    retries={"max_attempts": 2, "mode": "standard"},
)


@lru_cache(maxsize=1)
def _get_dynamodb():
    """Get or initialise the DynamoDB service resource (cached)."""
    return boto3.resource("dynamodb", config=BOTO_CONFIG)


def _to_dynamodb(value: Any) -> Any:
    """Floats are rejected by the boto3 serializer, Decimal is not."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamodb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_dynamodb(v) for v in value]
    return value


class OrderStore:
    """Key-value and secondary-index access to the orders table."""

    def __init__(
        self,
        table_name: str,
        dynamodb=None,
        deadline: Optional[Deadline] = None,
    ):
        self.table_name = table_name
        self._dynamodb = dynamodb
        self._deadline = deadline

    @property
    def dynamodb(self):
        return self._dynamodb or _get_dynamodb()

    @property
    def table(self):
        return self.dynamodb.Table(self.table_name)

    def _check_deadline(self, operation: str) -> None:
        if self._deadline is not None and self._deadline.expired():
            raise StoreUnavailable(f"request deadline exceeded before {operation}")

    def get_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Return the record with this id, or None when there is none."""
        self._check_deadline("GetItem")
        try:
            response = self.table.get_item(Key={"id": record_id})
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailable(f"GetItem {record_id} failed: {e}") from e
        return response.get("Item")

    def put(self, record: Dict[str, Any]) -> None:
        """Upsert a record; an existing record with the same id is replaced."""
        self._check_deadline("PutItem")
        try:
            self.table.put_item(Item=_to_dynamodb(record))
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailable(f"PutItem {record.get('id')} failed: {e}") from e

    def query_by_type(self, record_type: str) -> List[Dict[str, Any]]:
        """Return every record of one kind via the type index (index order)."""
        items: List[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {
            "IndexName": RECORD_TYPE_INDEX,
            "KeyConditionExpression": Key("type").eq(record_type),
        }
        while True:
            self._check_deadline("Query")
            try:
                response = self.table.query(**kwargs)
            except (ClientError, BotoCoreError) as e:
                raise StoreUnavailable(f"Query type={record_type} failed: {e}") from e

            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def scan_all(self) -> List[Dict[str, Any]]:
        """Return every record in the table.

        O(table size); prefer query_by_type for anything on a request path.
        """
        items: List[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {}
        while True:
            self._check_deadline("Scan")
            try:
                response = self.table.scan(**kwargs)
            except (ClientError, BotoCoreError) as e:
                raise StoreUnavailable(f"Scan failed: {e}") from e

            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def scan_by_type(self, record_type: str) -> List[Dict[str, Any]]:
        """Full scan filtered client-side. Superseded by query_by_type."""
        warnings.warn(
            "scan_by_type scans the whole table, use query_by_type",
            DeprecationWarning,
            stacklevel=2,
        )
        return [item for item in self.scan_all() if item.get("type") == record_type]

    def batch_put(self, records: Iterable[Dict[str, Any]]) -> None:
        """Write records in batches, failing if any item is left unprocessed.

        Unprocessed items are not retried; UnprocessedItemsError lists
        exactly the items that were not applied.
        """
        records = list(records)
        unprocessed: List[Dict[str, Any]] = []

        for start in range(0, len(records), BATCH_WRITE_LIMIT):
            chunk = records[start : start + BATCH_WRITE_LIMIT]
            self._check_deadline("BatchWriteItem")
            try:
                response = self.dynamodb.batch_write_item(
                    RequestItems={
                        self.table_name: [
                            {"PutRequest": {"Item": _to_dynamodb(record)}}
                            for record in chunk
                        ]
                    }
                )
            except (ClientError, BotoCoreError) as e:
                raise StoreUnavailable(f"BatchWriteItem failed: {e}") from e

            pending = response.get("UnprocessedItems", {}).get(self.table_name, [])
            unprocessed.extend(request["PutRequest"]["Item"] for request in pending)

        if unprocessed:
            logger.error(f"{len(unprocessed)} of {len(records)} items were unprocessed")
            raise UnprocessedItemsError(unprocessed)

        logger.info(f"Batch wrote {len(records)} items to {self.table_name}")
