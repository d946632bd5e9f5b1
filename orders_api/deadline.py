"""Request deadline derived from the Lambda context."""

import time
from typing import Any, Callable, Optional

# Time kept back from the platform timeout so the handler can still respond.
DEFAULT_SAFETY_MARGIN_MS = 500


class Deadline:
    """Absolute point in time after which downstream calls must not start."""

    def __init__(
        self, expires_at: float, clock: Callable[[], float] = time.monotonic
    ):
        self._expires_at = expires_at
        self._clock = clock

    @classmethod
    def after(
        cls, seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> "Deadline":
        return cls(clock() + seconds, clock)

    @classmethod
    def from_context(
        cls, context: Any, safety_margin_ms: int = DEFAULT_SAFETY_MARGIN_MS
    ) -> Optional["Deadline"]:
        """Build a deadline from a Lambda context, or None without one."""
        get_remaining = getattr(context, "get_remaining_time_in_millis", None)
        if get_remaining is None:
            return None
        remaining_ms = max(get_remaining() - safety_margin_ms, 0)
        return cls.after(remaining_ms / 1000.0)

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(self._expires_at - self._clock(), 0.0)

    def expired(self) -> bool:
        return self.remaining() <= 0.0
