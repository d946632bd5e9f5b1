"""Lambda handler for creating new orders (POST /orders)."""

import json
import math
from dataclasses import asdict
from typing import Any, Dict

from aws_lambda_powertools.logging import correlation_paths

from orders_api.dependencies import Dependencies
from orders_api.errors import (
    ArchiveUnavailable,
    BadRequest,
    ConfigUnavailable,
    ConfigurationError,
    OperationDisabled,
    QuantityLimitExceeded,
    StoreNotFound,
)
from orders_api.feature_flags import DISABLED
from orders_api.models import STORE_TYPE, Order, invoice_key
from orders_api.observability import count, logger, metrics
from orders_api.random_errors import maybe_fail
from orders_api.responses import error_response, json_response


def _parse_body(body: Any) -> Any:
    """Decode the body for both API Gateway and direct invocation."""
    if isinstance(body, str):
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise BadRequest("Invalid JSON in request body") from e
    return body


def _create_order(event: Dict[str, Any], deps: Dependencies) -> Order:
    config = deps.config

    if not config.table_name:
        raise ConfigurationError("no table name supplied")
    if not config.bucket_name:
        raise ConfigurationError("bucket name not supplied")

    body = event.get("body")
    if not body:
        raise BadRequest("no order supplied")

    # Unavailable flags block creation: the kill switch cannot be evaluated.
    flags = deps.flag_source.fetch_flags(
        config.appconfig_application_id,
        config.appconfig_environment_id,
        config.appconfig_configuration_id,
        [config.prevent_create_orders_flag, config.check_create_order_quantity_flag],
        deadline=deps.deadline,
    )
    logger.info(
        "feature flags",
        extra={"flags": {name: asdict(flag) for name, flag in flags.items()}},
    )

    if flags.get(config.prevent_create_orders_flag, DISABLED).enabled:
        logger.error(
            f"{config.prevent_create_orders_flag} enabled, "
            "preventing new order creation"
        )
        raise OperationDisabled(
            "new order creation is currently disabled via feature flag"
        )

    maybe_fail(config.random_errors_enabled, config.random_errors_threshold)

    order = Order.from_payload(_parse_body(body))

    quantity_check = flags.get(config.check_create_order_quantity_flag, DISABLED)
    if quantity_check.enabled:
        if quantity_check.limit is None or not math.isfinite(quantity_check.limit):
            raise ConfigUnavailable(
                f"{config.check_create_order_quantity_flag} enabled "
                "without a usable limit"
            )
        if order.quantity >= quantity_check.limit:
            raise QuantityLimitExceeded(
                f"order quantity {order.quantity} is greater than "
                f"limit {quantity_check.limit}"
            )

    stores = deps.store.query_by_type(STORE_TYPE)
    if not any(store.get("id") == order.store_id for store in stores):
        raise StoreNotFound(f"{order.store_id} is not found")

    logger.info("create order", extra={"order": order.to_item()})
    deps.store.put(order.to_item())

    # The order is already persisted; a failed invoice write does not undo it.
    try:
        deps.archive.put(invoice_key(order.id), order.to_invoice())
    except ArchiveUnavailable:
        logger.error(f"order {order.id} persisted without an invoice")
        raise

    logger.info(f"invoice written to {config.bucket_name}")
    return order


def create_order(event: Dict[str, Any], deps: Dependencies) -> Dict[str, Any]:
    """Create an order, returning 201 with the order or 4xx with a message."""
    try:
        order = _create_order(event, deps)
    except Exception as e:
        count("OrderCreatedError")
        return error_response(e)

    count("OrdersCreatedSuccess")
    return json_response(201, order.to_item())


@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics
def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    return create_order(event, Dependencies.from_context(context))
