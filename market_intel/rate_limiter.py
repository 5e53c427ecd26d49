#!/usr/bin/env python3
"""
Shared Rate Limiter for the Finding API

One RateLimiter instance is shared by every research run in the process so
that concurrent runs are serialized against the marketplace's real limits:

- a minimum interval between call starts
- a maximum number of calls per rolling window
- an exponential backoff window after throttling/errors

Usage:
    limiter = get_rate_limiter()
    limiter.acquire(cancel_event)   # blocks until a call slot is ours
    ...make the call...
    limiter.record_success()        # or limiter.record_failure(retry_count)
"""

import logging
import random
import threading
import time
from collections import deque
from typing import Callable, Dict, Optional

from market_intel.config import Config

logger = logging.getLogger(__name__)


class ResearchCancelled(Exception):
    """Raised when a cancellation event fires while waiting for a call slot"""


def interruptible_sleep(seconds: float, cancel: Optional[threading.Event] = None):
    """Sleep for `seconds`, waking early and raising if `cancel` is set"""
    if cancel is None:
        if seconds > 0:
            time.sleep(seconds)
        return

    if cancel.is_set() or (seconds > 0 and cancel.wait(seconds)):
        raise ResearchCancelled("Research cancelled while waiting")


class RateLimiter:
    """Thread-safe call budget shared by all pipeline runs"""

    def __init__(self, min_interval: float = 3.0, max_calls: int = 5,
                 window_seconds: float = 60.0, base_retry_delay: float = 30.0,
                 max_backoff: float = 300.0,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable = interruptible_sleep):
        self.min_interval = min_interval
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self.base_retry_delay = base_retry_delay
        self.max_backoff = max_backoff

        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

        self.last_call_time: Optional[float] = None
        self.consecutive_errors = 0
        self.backoff_until = 0.0
        self._window_calls = deque()

    @classmethod
    def from_config(cls, config: Config, **kwargs) -> "RateLimiter":
        return cls(
            min_interval=config.min_call_interval,
            max_calls=config.max_calls_per_window,
            window_seconds=config.rate_window_seconds,
            base_retry_delay=config.base_retry_delay,
            max_backoff=config.max_backoff_seconds,
            **kwargs
        )

    def reserve(self) -> float:
        """
        Claim the next call slot.

        Returns:
            Seconds the caller has to wait before starting its call
        """
        return self._claim()[0]

    def _claim(self):
        with self._lock:
            now = self._clock()
            start = max(now, self.backoff_until)
            previous = self.last_call_time

            if previous is not None:
                start = max(start, previous + self.min_interval)

            self._prune(start)
            if self.max_calls > 0 and len(self._window_calls) >= self.max_calls:
                start = max(start, self._window_calls[-self.max_calls] + self.window_seconds)
                self._prune(start)

            self.last_call_time = start
            self._window_calls.append(start)

            return start - now, start, previous

    def release(self, start: float, previous: Optional[float] = None):
        """Give back a claimed slot whose call will never be made"""
        with self._lock:
            if start in self._window_calls:
                self._window_calls.remove(start)
            # Later claims were spaced after this one, so only the newest slot rolls back
            if self.last_call_time == start:
                self.last_call_time = previous

    def acquire(self, cancel: Optional[threading.Event] = None) -> float:
        """
        Block until a call slot is available.

        Args:
            cancel: Optional event; if set while waiting, the slot is released
                and ResearchCancelled is raised

        Returns:
            Seconds waited
        """
        if cancel is not None and cancel.is_set():
            raise ResearchCancelled("Research cancelled before call")

        delay, start, previous = self._claim()
        if delay > 0:
            logger.debug(f"Rate limiter: waiting {delay:.1f}s for next call slot")
            try:
                self._sleep(delay, cancel)
            except ResearchCancelled:
                self.release(start, previous)
                logger.debug("Rate limiter: released slot of cancelled call")
                raise
        return delay

    def backoff_delay(self, retry_count: int, jitter: Optional[float] = None) -> float:
        """
        Exponential backoff: base * 2^retry_count * jitter, capped at max_backoff.

        Args:
            retry_count: Zero-based retry number
            jitter: Fixed jitter factor; random in [0.8, 1.2] when None
        """
        if jitter is None:
            jitter = random.uniform(0.8, 1.2)
        delay = self.base_retry_delay * (2 ** max(0, retry_count)) * jitter
        return min(delay, self.max_backoff)

    def record_success(self):
        with self._lock:
            if self.consecutive_errors:
                logger.info(f"Call succeeded after {self.consecutive_errors} consecutive errors")
            self.consecutive_errors = 0

    def record_failure(self, retry_count: int, jitter: Optional[float] = None) -> float:
        """
        Register a throttled/failed call and push the shared backoff window out.

        Returns:
            The backoff delay applied
        """
        delay = self.backoff_delay(retry_count, jitter)
        with self._lock:
            self.consecutive_errors += 1
            self.backoff_until = max(self.backoff_until, self._clock() + delay)
            errors = self.consecutive_errors

        logger.warning(f"Backing off {delay:.1f}s ({errors} consecutive errors)")
        return delay

    def status(self) -> Dict:
        """Snapshot of the limiter state"""
        with self._lock:
            now = self._clock()
            self._prune(now)
            return {
                'consecutive_errors': self.consecutive_errors,
                'calls_in_window': len(self._window_calls),
                'max_calls': self.max_calls,
                'backoff_remaining': max(0.0, self.backoff_until - now),
            }

    def health_summary(self) -> str:
        status = self.status()
        if status['consecutive_errors'] == 0:
            return "No rate limit issues"
        return f"{status['consecutive_errors']} consecutive rate limit errors"

    def reset(self):
        with self._lock:
            self.consecutive_errors = 0
            self.backoff_until = 0.0
            self.last_call_time = None
            self._window_calls.clear()
        logger.info("Rate limit status reset")

    def _prune(self, at: float):
        # Caller holds the lock
        while self._window_calls and self._window_calls[0] <= at - self.window_seconds:
            self._window_calls.popleft()


# Process-wide limiter shared by all pipelines
_rate_limiter = None
_rate_limiter_lock = threading.Lock()


def get_rate_limiter(config: Optional[Config] = None) -> RateLimiter:
    """Get the process-wide rate limiter instance"""
    global _rate_limiter
    with _rate_limiter_lock:
        if _rate_limiter is None:
            _rate_limiter = RateLimiter.from_config(config or Config())
        return _rate_limiter
