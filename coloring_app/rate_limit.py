from typing import Optional
import logging
import math
import time

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter

from coloring_app.exceptions import RateLimitedException

log = logging.getLogger(__name__)


class GenerationRateLimiter:
    """
        Allows `limit` hits per key within each `window_seconds` window.

        Backed by the `limits` fixed-window strategy. The default storage is
        process memory, so every worker enforces its own limit.
    """

    def __init__(self, limit: int, window_seconds: int, storage: Optional[Storage] = None):
        self.item = RateLimitItemPerSecond(limit, window_seconds)
        self.storage = storage or MemoryStorage()
        self.strategy = FixedWindowRateLimiter(self.storage)

    def check(self, key: str) -> int:
        """Records a hit for key and returns the remaining budget.

        Raises RateLimitedException when the budget is spent.
        """
        if not self.strategy.hit(self.item, key):
            reset_time, _ = self.strategy.get_window_stats(self.item, key)
            retry_after = max(math.ceil(reset_time - time.time()), 1)
            log.warning("Rate limit hit for %s, retry in %ss", key, retry_after)
            raise RateLimitedException(
                retry_after, "Too many generation requests. Please try again later."
            )
        return self.strategy.get_window_stats(self.item, key).remaining

    def reset(self):
        self.storage.reset()
