"""Lambda handler for the liveness check (GET /health-checks)."""

from typing import Any, Dict

from aws_lambda_powertools.logging import correlation_paths

from orders_api.observability import logger
from orders_api.responses import json_response


@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.info("success")
    return json_response(200, {"message": "success"})
