"""API Gateway proxy responses."""

import json
from decimal import Decimal
from typing import Any, Dict

from orders_api.errors import OrderServiceError
from orders_api.observability import logger

HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Methods": "OPTIONS,POST,GET",
}

UNKNOWN_ERROR_MESSAGE = "Unknown error"


class DecimalEncoder(json.JSONEncoder):
    """Handle Decimal types returned by DynamoDB."""

    def default(self, obj):
        if isinstance(obj, Decimal):
            return int(obj) if obj == obj.to_integral_value() else float(obj)
        return super().default(obj)


def json_response(status_code: int, body: Any) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(HEADERS),
        "body": json.dumps(body, cls=DecimalEncoder),
    }


def error_response(error: Exception) -> Dict[str, Any]:
    """Log a failure and translate it into a 4xx response.

    Only the client-safe message reaches the body; the full detail and, for
    unexpected exceptions, the traceback go to the log.
    """
    if isinstance(error, OrderServiceError):
        logger.error(
            error.message,
            extra={"error_type": type(error).__name__},
        )
        return json_response(error.status_code, {"message": error.public_message})

    logger.exception(f"Unexpected error: {error}")
    return json_response(400, {"message": UNKNOWN_ERROR_MESSAGE})
