"""Lambda handler for fetching a single order (GET /orders/{id})."""

from typing import Any, Dict

from aws_lambda_powertools.logging import correlation_paths

from orders_api.dependencies import Dependencies
from orders_api.errors import (
    BadRequest,
    ConfigUnavailable,
    ConfigurationError,
    NotFound,
)
from orders_api.models import ORDER_TYPE, project_order
from orders_api.observability import count, logger, metrics
from orders_api.random_errors import maybe_fail
from orders_api.responses import error_response, json_response


def _get_order(event: Dict[str, Any], deps: Dependencies) -> Dict[str, Any]:
    config = deps.config

    order_id = (event.get("pathParameters") or {}).get("id")
    if not order_id:
        raise BadRequest("no id in the path parameters of the event")

    if not config.table_name:
        raise ConfigurationError("no table name supplied")

    # No flag gates this path, so an unreachable flag store does not block it.
    try:
        flags = deps.flag_source.fetch_flags(
            config.appconfig_application_id,
            config.appconfig_environment_id,
            config.appconfig_configuration_id,
            deadline=deps.deadline,
        )
        logger.info(f"feature flags: {sorted(flags)}")
    except ConfigUnavailable as e:
        logger.warning(f"continuing without feature flags: {e.message}")

    maybe_fail(config.random_errors_enabled, config.random_errors_threshold)

    logger.info(f"get order: {order_id}")
    item = deps.store.get_by_id(order_id)
    if not item or item.get("type") != ORDER_TYPE:
        raise NotFound(f"order id {order_id} is not found")

    return project_order(item)


def get_order(event: Dict[str, Any], deps: Dependencies) -> Dict[str, Any]:
    """Return 200 with the projected order, or 4xx with a message."""
    try:
        order = _get_order(event, deps)
    except Exception as e:
        count("GetOrderError")
        return error_response(e)

    count("GetOrderSuccess")
    return json_response(200, order)


@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics
def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    return get_order(event, Dependencies.from_context(context))
