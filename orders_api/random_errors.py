"""Synthetic fault injection used to exercise deployment rollbacks."""

import random
from typing import Callable, Optional, Union

from orders_api.errors import InjectedFault
from orders_api.observability import logger

DEFAULT_THRESHOLD = 0.75

_TRUE_VALUES = {"true", "1", "yes", "on"}


def is_enabled(value: Union[str, bool, None]) -> bool:
    """Parse the random errors toggle; absent or unrecognised means off."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return value.strip().lower() in _TRUE_VALUES


def maybe_fail(
    enabled: Union[str, bool, None],
    threshold: float = DEFAULT_THRESHOLD,
    rng: Optional[Callable[[], float]] = None,
) -> None:
    """Randomly abort the current request when fault injection is on.

    Raises InjectedFault when the uniform draw exceeds ``threshold``, so the
    default of 0.75 fails roughly a quarter of requests. A disabled injector
    never raises, whatever the threshold.
    """
    if not is_enabled(enabled):
        return

    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")

    draw = (rng or random.random)()
    if draw > threshold:
        logger.warning(f"Injecting random error (draw {draw:.3f} > {threshold})")
        raise InjectedFault()
