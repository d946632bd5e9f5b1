"""Order and Store records sharing the single orders table."""

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from orders_api.errors import BadRequest

ORDER_TYPE = "Orders"
STORE_TYPE = "Stores"

# Only these attributes of a stored order are ever returned to callers.
PUBLIC_ORDER_FIELDS = ("id", "productId", "quantity", "storeId", "created")


def invoice_key(order_id: str) -> str:
    return f"{order_id}-invoice.txt"


def project_order(item: Mapping[str, Any]) -> Dict[str, Any]:
    """Project a stored record onto the public Order shape."""
    return {field: item.get(field) for field in PUBLIC_ORDER_FIELDS}


@dataclass(frozen=True)
class Order:
    id: str
    product_id: str
    quantity: int
    store_id: str
    created: str
    type: str = ORDER_TYPE

    @classmethod
    def new(cls, product_id: str, quantity: int, store_id: str) -> "Order":
        """Create an order with a fresh id and creation timestamp."""
        return cls(
            id=str(uuid.uuid4()),
            product_id=product_id,
            quantity=quantity,
            store_id=store_id,
            created=datetime.now(timezone.utc).isoformat(),
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "Order":
        """Validate a request payload and build a new order from it.

        Caller supplied id, type and created values are ignored.
        """
        if not isinstance(payload, dict):
            raise BadRequest("Order payload must be a JSON object")

        product_id = payload.get("productId")
        quantity = payload.get("quantity")
        store_id = payload.get("storeId")

        if not product_id or not isinstance(product_id, str):
            raise BadRequest(
                "Missing or invalid productId (must be a non-empty string)"
            )

        if (
            isinstance(quantity, bool)
            or not isinstance(quantity, int)
            or quantity < 1
        ):
            raise BadRequest(
                "Missing or invalid quantity (must be a positive integer)"
            )

        if not store_id or not isinstance(store_id, str):
            raise BadRequest(
                "Missing or invalid storeId (must be a non-empty string)"
            )

        return cls.new(product_id, quantity, store_id)

    def to_item(self) -> Dict[str, Any]:
        """Serialise to the table's attribute names."""
        return {
            "id": self.id,
            "type": self.type,
            "productId": self.product_id,
            "quantity": self.quantity,
            "storeId": self.store_id,
            "created": self.created,
        }

    def to_invoice(self) -> str:
        return json.dumps(self.to_item())
