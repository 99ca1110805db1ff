# core/utils/rate_limit.py

import logging
import random
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

class RateLimiter:
    def __init__(self,
                 min_delay: float = 0.5,
                 max_delay: float = 1.0,
                 burst_size: int = 20,
                 min_burst_delay: float = 3.0,
                 max_burst_delay: float = 6.0,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Spread out calls to public metadata APIs during bulk lookups.

        Args:
            min_delay: Minimum delay between requests in seconds
            max_delay: Maximum delay between requests in seconds
            burst_size: Number of requests before taking a longer break
            min_burst_delay: Minimum length of the longer break in seconds
            max_burst_delay: Maximum length of the longer break in seconds
            sleep: Function used to wait
        """
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.burst_size = burst_size
        self.min_burst_delay = min_burst_delay
        self.max_burst_delay = max_burst_delay
        self._sleep = sleep
        self.request_count = 0
        self.last_request_time: Optional[float] = None

    def delay(self) -> None:
        """Wait as needed before the next request"""
        now = time.monotonic()

        if self.last_request_time is not None:
            if self.request_count >= self.burst_size:
                burst_delay = random.uniform(self.min_burst_delay, self.max_burst_delay)
                logger.info(f"Pausing lookups for {burst_delay:.1f} seconds")
                self._sleep(burst_delay)
                self.request_count = 0
            else:
                wait_time = random.uniform(self.min_delay, self.max_delay) - (now - self.last_request_time)
                if wait_time > 0:
                    self._sleep(wait_time)

        self.request_count += 1
        self.last_request_time = time.monotonic()
