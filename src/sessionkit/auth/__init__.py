"""Authentication: token codec, token fetcher, factor policy and attempt flows."""

from .factors import (
    alternative_first_factors,
    reset_password_factor,
    sort_factors,
    starting_first_factor,
    starting_second_factor,
)
from .flows import CredentialProvider, SignInFlow, SignUpFlow
from .token import DecodedToken, decode_token
from .tokens import SessionTokenFetcher, token_cache_key

__all__ = [
    'CredentialProvider',
    'DecodedToken',
    'SessionTokenFetcher',
    'SignInFlow',
    'SignUpFlow',
    'alternative_first_factors',
    'decode_token',
    'reset_password_factor',
    'sort_factors',
    'starting_first_factor',
    'starting_second_factor',
    'token_cache_key',
]
