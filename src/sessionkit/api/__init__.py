"""Frontend API client."""

from .frontend import FrontendClient
from .retry import ExponentialBackoff, RetryConfig

__all__ = ['ExponentialBackoff', 'FrontendClient', 'RetryConfig']
