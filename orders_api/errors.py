"""Error taxonomy for the orders API.

Every error carries the HTTP status code and a client-safe message. Handlers
catch these at their boundary and translate them into responses; dependency
detail stays in the log.
"""

from typing import Any, Dict, List, Optional


class OrderServiceError(Exception):
    """Base class for all handled order service failures."""

    status_code = 400
    default_message = "Unknown error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def public_message(self) -> str:
        """Message that is safe to return to the caller."""
        return self.message


class BadRequest(OrderServiceError):
    default_message = "bad request"


class ConfigurationError(OrderServiceError):
    default_message = "service configuration is incomplete"


class OperationDisabled(OrderServiceError):
    default_message = "operation is currently disabled via feature flag"


class QuantityLimitExceeded(OrderServiceError):
    default_message = "order quantity exceeds the allowed limit"


class StoreNotFound(OrderServiceError):
    default_message = "store is not found"


class NotFound(OrderServiceError):
    status_code = 404
    default_message = "record is not found"


class InjectedFault(OrderServiceError):
    default_message = "random error!!!"


class DependencyUnavailable(OrderServiceError):
    """A backing service failed. The detail is logged, never returned."""

    @property
    def public_message(self) -> str:
        return self.default_message


class StoreUnavailable(DependencyUnavailable):
    default_message = "order store is unavailable"


class ArchiveUnavailable(DependencyUnavailable):
    default_message = "invoice archive is unavailable"


class ConfigUnavailable(DependencyUnavailable):
    default_message = "feature flags are unavailable"


class UnprocessedItemsError(StoreUnavailable):
    """A batch write left items unapplied."""

    def __init__(self, unprocessed: List[Dict[str, Any]]):
        super().__init__(f"The following were unprocessed: {unprocessed}")
        self.unprocessed = unprocessed
