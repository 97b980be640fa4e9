"""Retry policy for Frontend API requests.

Rate-limited and transiently failing requests are retried once by default. The
delay honors ``Retry-After`` / ``X-RateLimit-Reset`` when the server sends them
and falls back to exponential backoff otherwise; every delay is clamped to
``[min_delay_ms, max_backoff_ms]``.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from email.utils import parsedate_to_datetime
from typing import FrozenSet, Optional

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})

# Connection-level failures worth one more try
RETRYABLE_TRANSPORT_ERRORS = (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)


@dataclass
class RetryConfig:
    """Configuration for retry behavior with exponential backoff."""

    enabled: bool = True
    max_retries: int = 1
    initial_backoff_ms: int = 500
    min_delay_ms: int = 100
    max_backoff_ms: int = 5000
    backoff_multiplier: float = 2.0
    jitter: bool = False
    retry_on_status: FrozenSet[int] = field(default_factory=lambda: RETRYABLE_STATUS_CODES)


class ExponentialBackoff:
    """Calculate exponential backoff delays with optional jitter."""

    def __init__(self, config: RetryConfig):
        self.config = config
        self.attempt = 0

    def next_delay(self) -> Optional[float]:
        """
        Calculate next backoff delay in seconds.

        Returns:
            Delay in seconds, or None if max retries exceeded
        """
        if not self.config.enabled or self.attempt >= self.config.max_retries:
            return None

        delay_ms = self.config.initial_backoff_ms * (self.config.backoff_multiplier**self.attempt)

        # 50-150% of the calculated delay
        if self.config.jitter:
            delay_ms *= 0.5 + random.random()

        self.attempt += 1
        return self.clamp(delay_ms / 1000.0)

    def clamp(self, seconds: float) -> float:
        return min(max(seconds, self.config.min_delay_ms / 1000.0), self.config.max_backoff_ms / 1000.0)

    def reset(self):
        self.attempt = 0


def is_retryable_response(response: httpx.Response, config: RetryConfig) -> bool:
    return response.status_code in config.retry_on_status


def is_retryable_error(error: BaseException) -> bool:
    return isinstance(error, RETRYABLE_TRANSPORT_ERRORS)


def server_retry_delay(response: httpx.Response, now: Optional[float] = None) -> Optional[float]:
    """Delay in seconds requested by the server, if any.

    ``Retry-After`` may be delta-seconds or an HTTP date. ``X-RateLimit-Reset``
    is an absolute epoch time in seconds. Dates in the past are ignored.
    """
    now = time.time() if now is None else now

    retry_after = response.headers.get('retry-after')
    if retry_after:
        retry_after = retry_after.strip()
        try:
            return float(retry_after)
        except ValueError:
            pass
        try:
            interval = parsedate_to_datetime(retry_after).timestamp() - now
        except (TypeError, ValueError):
            logger.debug(f'Ignoring unparseable Retry-After header: {retry_after!r}')
        else:
            if interval > 0:
                return interval

    reset = response.headers.get('x-ratelimit-reset')
    if reset:
        try:
            interval = float(reset) - now
        except ValueError:
            logger.debug(f'Ignoring unparseable X-RateLimit-Reset header: {reset!r}')
        else:
            if interval > 0:
                return interval

    return None


def retry_delay(response: Optional[httpx.Response], backoff: ExponentialBackoff) -> Optional[float]:
    """Delay before the next attempt, or None when retries are exhausted."""
    delay = backoff.next_delay()
    if delay is None:
        return None
    if response is not None:
        requested = server_retry_delay(response)
        if requested is not None:
            return backoff.clamp(requested)
    return delay
