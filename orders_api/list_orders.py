"""Lambda handler for listing orders (GET /orders)."""

import math
from typing import Any, Dict, List

from aws_lambda_powertools.logging import correlation_paths

from orders_api.dependencies import Dependencies
from orders_api.errors import ConfigUnavailable, ConfigurationError
from orders_api.feature_flags import DISABLED, FeatureFlag
from orders_api.models import ORDER_TYPE, project_order
from orders_api.observability import count, logger, metrics
from orders_api.random_errors import maybe_fail
from orders_api.responses import error_response, json_response


def _fetch_limit_flag(deps: Dependencies) -> FeatureFlag:
    """Fetch the list limit flag, treating an unavailable flag as disabled."""
    config = deps.config
    try:
        flags = deps.flag_source.fetch_flags(
            config.appconfig_application_id,
            config.appconfig_environment_id,
            config.appconfig_configuration_id,
            [config.limit_list_orders_flag],
            deadline=deps.deadline,
        )
    except ConfigUnavailable as e:
        logger.warning(f"listing orders without a result limit: {e.message}")
        return DISABLED

    flag = flags.get(config.limit_list_orders_flag, DISABLED)
    logger.info(f"feature flags: {config.limit_list_orders_flag}={flag}")
    if flag.enabled and (flag.limit is None or not math.isfinite(flag.limit)):
        logger.warning(
            f"{config.limit_list_orders_flag} enabled without a usable limit"
        )
        return DISABLED
    return flag


def _list_orders(deps: Dependencies) -> List[Dict[str, Any]]:
    config = deps.config
    if not config.table_name:
        raise ConfigurationError("no table name supplied")

    limit_flag = _fetch_limit_flag(deps)

    maybe_fail(config.random_errors_enabled, config.random_errors_threshold)

    logger.info("get the orders from the database")
    orders = [project_order(item) for item in deps.store.query_by_type(ORDER_TYPE)]

    # Truncation follows index order, not creation order.
    if limit_flag.enabled:
        limit = max(int(limit_flag.limit), 0)
        logger.warning(
            f"{config.limit_list_orders_flag} enabled so limiting results to {limit}"
        )
        orders = orders[:limit]

    return orders


def list_orders(event: Dict[str, Any], deps: Dependencies) -> Dict[str, Any]:
    """Return 200 with the (possibly truncated) orders, or 4xx with a message."""
    try:
        orders = _list_orders(deps)
    except Exception as e:
        count("ListOrdersError")
        return error_response(e)

    count("ListOrdersSuccess")
    return json_response(200, orders)


@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics
def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    return list_orders(event, Dependencies.from_context(context))
