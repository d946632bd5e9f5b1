"""Feature flags fetched from the AWS AppConfig Lambda extension agent."""

import math
from dataclasses import dataclass
from functools import lru_cache
from numbers import Number
from typing import Any, Dict, List, Optional, Sequence

import requests

from orders_api.config import (
    DEFAULT_APPCONFIG_AGENT_URL,
    DEFAULT_FLAG_FETCH_RETRIES,
    DEFAULT_FLAG_FETCH_TIMEOUT_SECONDS,
)
from orders_api.deadline import Deadline
from orders_api.errors import ConfigUnavailable
from orders_api.observability import logger


@dataclass(frozen=True)
class FeatureFlag:
    enabled: bool
    limit: Optional[float] = None


DISABLED = FeatureFlag(enabled=False)

Flags = Dict[str, FeatureFlag]


@lru_cache(maxsize=1)
def _get_session() -> requests.Session:
    """Get or initialise the HTTP session (cached)."""
    return requests.Session()


def parse_flag(name: str, value: Any) -> FeatureFlag:
    """Validate a single flag body."""
    if not isinstance(value, dict):
        raise ConfigUnavailable(f"flag {name} is not an object: {value!r}")

    enabled = value.get("enabled")
    if not isinstance(enabled, bool):
        raise ConfigUnavailable(f"flag {name} has no boolean 'enabled' attribute")

    limit = value.get("limit")
    if limit is not None and (
        isinstance(limit, bool) or not isinstance(limit, Number)
    ):
        raise ConfigUnavailable(f"flag {name} has a non-numeric 'limit': {limit!r}")
    if limit is not None and not math.isfinite(limit):
        raise ConfigUnavailable(f"flag {name} has a non-finite 'limit': {limit!r}")

    return FeatureFlag(enabled=enabled, limit=limit)


def parse_flags(payload: Any, flag_names: Optional[Sequence[str]] = None) -> Flags:
    """Validate the agent payload into a mapping of flag name to FeatureFlag.

    A request for a single flag is answered with the bare flag body, so it
    is wrapped back under its name here.
    """
    if not isinstance(payload, dict):
        raise ConfigUnavailable("feature flag payload is not an object")

    if (
        flag_names
        and len(flag_names) == 1
        and flag_names[0] not in payload
        and "enabled" in payload
    ):
        payload = {flag_names[0]: payload}

    if flag_names:
        missing = [name for name in flag_names if name not in payload]
        if missing:
            raise ConfigUnavailable(f"feature flags missing from payload: {missing}")
        return {name: parse_flag(name, payload[name]) for name in flag_names}

    return {name: parse_flag(name, value) for name, value in payload.items()}


class FeatureFlagSource:
    """Reads flags through the AppConfig agent's local HTTP endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_APPCONFIG_AGENT_URL,
        timeout: float = DEFAULT_FLAG_FETCH_TIMEOUT_SECONDS,
        retries: int = DEFAULT_FLAG_FETCH_RETRIES,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = retries
        self._session = session

    @property
    def session(self) -> requests.Session:
        return self._session or _get_session()

    def _attempt_timeout(self, deadline: Optional[Deadline]) -> float:
        if deadline is None:
            return self.timeout
        remaining = deadline.remaining()
        if remaining <= 0:
            raise ConfigUnavailable(
                "request deadline exceeded before fetching feature flags"
            )
        return min(self.timeout, remaining)

    def fetch_flags(
        self,
        application: Optional[str],
        environment: Optional[str],
        configuration: Optional[str],
        flag_names: Optional[Sequence[str]] = None,
        deadline: Optional[Deadline] = None,
    ) -> Flags:
        """Fetch the named flags, or the whole flag set when none are named.

        Transport errors and 5xx responses are retried ``retries`` times;
        anything else fails straight away with ConfigUnavailable.
        """
        if not application or not environment or not configuration:
            raise ConfigUnavailable(
                "AppConfig application, environment or configuration not supplied"
            )

        url = (
            f"{self.base_url}/applications/{application}"
            f"/environments/{environment}/configurations/{configuration}"
        )
        params: Optional[List[tuple]] = (
            [("flag", name) for name in flag_names] if flag_names else None
        )

        last_error: Optional[Exception] = None
        for attempt in range(1, self.retries + 2):
            timeout = self._attempt_timeout(deadline)
            try:
                response = self.session.get(url, params=params, timeout=timeout)
                response.raise_for_status()
            except requests.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status is not None and status < 500:
                    raise ConfigUnavailable(f"AppConfig agent returned {status}") from e
                last_error = e
            except requests.RequestException as e:
                last_error = e
            else:
                try:
                    payload = response.json()
                except ValueError as e:
                    raise ConfigUnavailable(
                        "AppConfig agent returned malformed JSON"
                    ) from e
                return parse_flags(payload, flag_names)

            logger.warning(f"Feature flag fetch attempt {attempt} failed: {last_error}")

        raise ConfigUnavailable(
            f"could not fetch feature flags: {last_error}"
        ) from last_error
