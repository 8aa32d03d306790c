"""Rolling one-minute request and token counters for the primary model."""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict

from projecthub_ai.constants import RATE_WINDOW_SECONDS
from projecthub_ai.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RateWindow:
    """Counters for the current window."""

    request_count: int = 0
    token_count: int = 0
    window_reset_at: float = 0.0


class RateLimitTracker:
    """
    Per-process rate window used to decide when to skip the primary model.

    The window is reset lazily: once the clock passes ``window_reset_at``
    both counters drop to zero and the next boundary is set relative to
    the current time, not to the previous boundary. Windows can therefore
    drift under bursty load.
    """

    def __init__(
        self,
        requests_per_minute: int,
        tokens_per_minute: int,
        window_seconds: float = RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.requests_per_minute = requests_per_minute
        self.tokens_per_minute = tokens_per_minute
        self.window_seconds = window_seconds
        self._clock = clock
        self.window = RateWindow(window_reset_at=clock() + window_seconds)

    def _reset_if_expired(self) -> None:
        now = self._clock()
        if now >= self.window.window_reset_at:
            self.window.request_count = 0
            self.window.token_count = 0
            self.window.window_reset_at = now + self.window_seconds
            logger.debug("Rate limit counters reset")

    def allow_primary(self) -> bool:
        """Whether the primary model still has request budget in this window."""
        self._reset_if_expired()
        return self.window.request_count < self.requests_per_minute

    def record_usage(self, tokens: int) -> None:
        """Count one completed provider call and its tokens."""
        self.window.request_count += 1
        self.window.token_count += max(0, int(tokens or 0))

    def snapshot(self) -> Dict[str, Any]:
        """Current window state for stats endpoints."""
        return {
            "request_count": self.window.request_count,
            "token_count": self.window.token_count,
            "requests_per_minute": self.requests_per_minute,
            "tokens_per_minute": self.tokens_per_minute,
            "seconds_until_reset": max(0.0, round(self.window.window_reset_at - self._clock(), 2)),
        }
