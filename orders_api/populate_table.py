"""CloudFormation custom resource that seeds the Store records.

Create and Update (re)write the fixed stores, which is idempotent because
the ids never change. Delete does nothing as the table goes with the stack.
"""

from typing import Any, Dict, List, Optional

from orders_api.errors import ConfigurationError, OrderServiceError
from orders_api.models import STORE_TYPE
from orders_api.observability import logger
from orders_api.order_store import OrderStore

PHYSICAL_RESOURCE_ID = "OrdersConfigData"

STORES: List[Dict[str, str]] = [
    {
        "id": "59b8a675-9bb7-46c7-955d-2566edfba8ea",
        "storeCode": "NEW",
        "storeName": "Newcastle",
        "type": STORE_TYPE,
    },
    {
        "id": "4e02e8f2-c0fe-493e-b259-1047254ad969",
        "storeCode": "LON",
        "storeName": "London",
        "type": STORE_TYPE,
    },
    {
        "id": "f5de2a0a-5a1d-4842-b38d-34e0fe420d33",
        "storeCode": "MAN",
        "storeName": "Manchester",
        "type": STORE_TYPE,
    },
]


def seed_data(store: OrderStore) -> None:
    store.batch_put(STORES)


def _response(event: Dict[str, Any], status: str, reason: str = "") -> Dict[str, Any]:
    return {
        "Status": status,
        "Reason": reason,
        "LogicalResourceId": event.get("LogicalResourceId"),
        "PhysicalResourceId": PHYSICAL_RESOURCE_ID,
        "RequestId": event.get("RequestId"),
        "StackId": event.get("StackId"),
    }


def populate_table(
    event: Dict[str, Any], store: Optional[OrderStore] = None
) -> Dict[str, Any]:
    """Handle one custom resource lifecycle event.

    Failures, including unprocessed batch items, are reported as FAILED
    with the reason; they are never masked as SUCCESS.
    """
    try:
        table_name = (event.get("ResourceProperties") or {}).get("tableName")
        if not table_name:
            raise ConfigurationError("table name not supplied")

        request_type = event.get("RequestType")
        if request_type in ("Create", "Update"):
            seed_data(store or OrderStore(table_name))
            logger.info(f"{request_type}: seeded {len(STORES)} stores in {table_name}")
        elif request_type == "Delete":
            logger.info("Delete: nothing to do, the table is removed with the stack")
        else:
            raise ConfigurationError(f"event request type {request_type} not found")

        response = _response(event, "SUCCESS")
    except OrderServiceError as e:
        logger.error(f"Error seeding data: {e.message}")
        response = _response(event, "FAILED", e.message)
    except Exception as e:
        logger.exception("Error seeding data")
        response = _response(event, "FAILED", str(e))

    logger.info("response", extra={"response": response})
    return response


@logger.inject_lambda_context
def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.set_correlation_id(event.get("RequestId"))
    return populate_table(event)
