import logging
import time
from collections.abc import Callable

from schemaforge.core.errors import RateLimitError

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please wait a second between generations."


class MinIntervalRateLimiter:
    """Accepts at most one call per `min_interval` seconds; faster calls raise RateLimitError."""

    def __init__(self, min_interval: float, clock: Callable[[], float] = time.monotonic):
        self.min_interval = min_interval
        self._clock = clock
        self._last_accepted: float | None = None

    def acquire(self) -> None:
        now = self._clock()
        if self._last_accepted is not None:
            elapsed = now - self._last_accepted
            if elapsed < self.min_interval:
                logger.warning("Rejected generation request %.3fs after the previous one", elapsed)
                raise RateLimitError(RATE_LIMIT_MESSAGE, retry_after=self.min_interval - elapsed)
        self._last_accepted = now
