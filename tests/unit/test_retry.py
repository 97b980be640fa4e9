"""
Unit tests for the request retry policy.

Tests backoff calculation, clamping, and server-requested delays without
making any HTTP requests.
"""

import time
from email.utils import formatdate

import httpx
import pytest

from sessionkit.api.retry import (
    ExponentialBackoff,
    RetryConfig,
    is_retryable_error,
    is_retryable_response,
    retry_delay,
    server_retry_delay,
)


def _response(status=429, **headers):
    return httpx.Response(status, headers=headers)


class TestRetryConfig:
    """Test RetryConfig dataclass defaults"""

    def test_default_values(self):
        config = RetryConfig()
        assert config.enabled is True
        assert config.max_retries == 1  # One retry per request
        assert config.initial_backoff_ms == 500
        assert config.min_delay_ms == 100
        assert config.max_backoff_ms == 5000
        assert config.jitter is False

    @pytest.mark.parametrize('status', [408, 425, 429, 500, 502, 503, 504])
    def test_retryable_statuses(self, status):
        assert is_retryable_response(_response(status), RetryConfig())

    @pytest.mark.parametrize('status', [200, 400, 401, 404, 422, 501])
    def test_non_retryable_statuses(self, status):
        assert not is_retryable_response(_response(status), RetryConfig())


class TestExponentialBackoff:
    """Test backoff delay calculation"""

    def test_single_retry_then_exhausted(self):
        backoff = ExponentialBackoff(RetryConfig())
        assert backoff.next_delay() == pytest.approx(0.5)
        assert backoff.next_delay() is None

    def test_exponential_growth_capped(self):
        backoff = ExponentialBackoff(RetryConfig(max_retries=5, initial_backoff_ms=1000, max_backoff_ms=3000))
        delays = [backoff.next_delay() for _ in range(4)]
        assert delays == [pytest.approx(1.0), pytest.approx(2.0), pytest.approx(3.0), pytest.approx(3.0)]

    def test_disabled(self):
        assert ExponentialBackoff(RetryConfig(enabled=False)).next_delay() is None

    def test_jitter_stays_within_bounds(self):
        backoff = ExponentialBackoff(RetryConfig(max_retries=50, jitter=True, backoff_multiplier=1.0))
        for _ in range(50):
            assert 0.25 <= backoff.next_delay() <= 0.75

    def test_reset(self):
        backoff = ExponentialBackoff(RetryConfig())
        backoff.next_delay()
        backoff.reset()
        assert backoff.next_delay() is not None


class TestServerRetryDelay:
    """Test Retry-After and X-RateLimit-Reset parsing"""

    def test_retry_after_seconds(self):
        assert server_retry_delay(_response(**{'Retry-After': '2'})) == pytest.approx(2.0)

    def test_retry_after_http_date(self):
        now = time.time()
        header = formatdate(now + 3, usegmt=True)
        assert server_retry_delay(_response(**{'Retry-After': header}), now=now) == pytest.approx(3.0, abs=1.0)

    def test_retry_after_date_in_past_ignored(self):
        now = time.time()
        header = formatdate(now - 60, usegmt=True)
        assert server_retry_delay(_response(**{'Retry-After': header}), now=now) is None

    def test_rate_limit_reset_epoch(self):
        now = 1_700_000_000.0
        response = _response(**{'X-RateLimit-Reset': str(int(now) + 4)})
        assert server_retry_delay(response, now=now) == pytest.approx(4.0)

    def test_rate_limit_reset_in_past_ignored(self):
        now = 1_700_000_000.0
        assert server_retry_delay(_response(**{'X-RateLimit-Reset': str(int(now) - 4)}), now=now) is None

    def test_garbage_headers_ignored(self):
        response = _response(**{'Retry-After': 'soon', 'X-RateLimit-Reset': 'later'})
        assert server_retry_delay(response) is None

    def test_no_headers(self):
        assert server_retry_delay(_response()) is None

    def test_server_delay_is_clamped(self):
        backoff = ExponentialBackoff(RetryConfig())
        assert retry_delay(_response(**{'Retry-After': '120'}), backoff) == pytest.approx(5.0)

    def test_tiny_server_delay_raised_to_minimum(self):
        backoff = ExponentialBackoff(RetryConfig())
        assert retry_delay(_response(**{'Retry-After': '0'}), backoff) == pytest.approx(0.1)

    def test_no_delay_once_exhausted(self):
        backoff = ExponentialBackoff(RetryConfig())
        retry_delay(_response(), backoff)
        assert retry_delay(_response(**{'Retry-After': '1'}), backoff) is None


class TestRetryableErrors:
    def test_transport_errors(self):
        request = httpx.Request('GET', 'https://clerk.example.com/v1/client')
        assert is_retryable_error(httpx.ConnectError('refused', request=request))
        assert is_retryable_error(httpx.ReadTimeout('slow', request=request))
        assert not is_retryable_error(httpx.UnsupportedProtocol('ftp', request=request))
        assert not is_retryable_error(ValueError('nope'))
