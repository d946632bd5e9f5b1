"""Environment configuration for the order handlers."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from orders_api.observability import logger

DEFAULT_APPCONFIG_AGENT_URL = "http://localhost:2772"
DEFAULT_RANDOM_ERRORS_THRESHOLD = 0.75
DEFAULT_FLAG_FETCH_TIMEOUT_SECONDS = 2.0
DEFAULT_FLAG_FETCH_RETRIES = 1


def _get_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, using default {default}")
        return default


def _get_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, using default {default}")
        return default


def _get_threshold(environ: Mapping[str, str]) -> float:
    threshold = _get_float(
        environ, "RANDOM_ERRORS_THRESHOLD", DEFAULT_RANDOM_ERRORS_THRESHOLD
    )
    if not 0.0 <= threshold <= 1.0:
        logger.warning(
            f"RANDOM_ERRORS_THRESHOLD {threshold} is outside [0, 1], "
            f"using default {DEFAULT_RANDOM_ERRORS_THRESHOLD}"
        )
        return DEFAULT_RANDOM_ERRORS_THRESHOLD
    return threshold


@dataclass(frozen=True)
class ServiceConfig:
    """Per-invocation snapshot of the function's environment."""

    table_name: Optional[str] = None
    bucket_name: Optional[str] = None
    appconfig_application_id: Optional[str] = None
    appconfig_environment_id: Optional[str] = None
    appconfig_configuration_id: Optional[str] = None
    appconfig_agent_url: str = DEFAULT_APPCONFIG_AGENT_URL
    prevent_create_orders_flag: str = "opsPreventCreateOrders"
    check_create_order_quantity_flag: str = "releaseCheckCreateOrderQuantity"
    limit_list_orders_flag: str = "opsLimitListOrdersResults"
    random_errors_enabled: Optional[str] = None
    random_errors_threshold: float = DEFAULT_RANDOM_ERRORS_THRESHOLD
    flag_fetch_timeout: float = DEFAULT_FLAG_FETCH_TIMEOUT_SECONDS
    flag_fetch_retries: int = DEFAULT_FLAG_FETCH_RETRIES

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServiceConfig":
        """Read configuration from the environment.

        Never raises: required values are checked by the handlers that need
        them, and unparseable numbers fall back to their defaults.
        """
        if environ is None:
            environ = os.environ

        return cls(
            table_name=environ.get("TABLE_NAME") or None,
            bucket_name=environ.get("BUCKET_NAME") or None,
            appconfig_application_id=environ.get("APPCONFIG_APPLICATION_ID") or None,
            appconfig_environment_id=environ.get("APPCONFIG_ENVIRONMENT_ID") or None,
            appconfig_configuration_id=(
                environ.get("APPCONFIG_CONFIGURATION_ID") or None
            ),
            appconfig_agent_url=environ.get(
                "APPCONFIG_AGENT_URL", DEFAULT_APPCONFIG_AGENT_URL
            ),
            prevent_create_orders_flag=environ.get(
                "FLAG_PREVENT_CREATE_ORDERS", "opsPreventCreateOrders"
            ),
            check_create_order_quantity_flag=environ.get(
                "FLAG_CHECK_CREATE_ORDER_QUANTITY", "releaseCheckCreateOrderQuantity"
            ),
            limit_list_orders_flag=environ.get(
                "FLAG_LIMIT_LIST_ORDERS", "opsLimitListOrdersResults"
            ),
            random_errors_enabled=environ.get("RANDOM_ERRORS_ENABLED"),
            random_errors_threshold=_get_threshold(environ),
            flag_fetch_timeout=_get_float(
                environ,
                "FLAG_FETCH_TIMEOUT_SECONDS",
                DEFAULT_FLAG_FETCH_TIMEOUT_SECONDS,
            ),
            flag_fetch_retries=max(
                _get_int(environ, "FLAG_FETCH_RETRIES", DEFAULT_FLAG_FETCH_RETRIES), 0
            ),
        )
