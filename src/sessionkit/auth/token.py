"""Session token codec.

Decodes a three-part signed token into header, claims and signature without
verifying the signature. The Frontend API is the only party that verifies
tokens; the client reads claims only to learn when a token expires.
"""

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

import jwt

from ..errors import TokenDecodeError


@dataclass(frozen=True)
class DecodedToken:
    """A decoded, unverified token.

    Example:
        >>> token = decode_token(raw_jwt)
        >>> token.subject
        'user_123'
    """

    raw: str
    header: Dict[str, Any] = field(default_factory=dict)
    claims: Dict[str, Any] = field(default_factory=dict)
    signature: str = ''

    def claim(self, name: str) -> Any:
        return self.claims.get(name)

    def _timestamp(self, name: str) -> Optional[datetime]:
        value = self.claims.get(name)
        if isinstance(value, bool) or value is None:
            return None
        try:
            return datetime.fromtimestamp(float(value), tz=UTC)
        except (TypeError, ValueError):
            return None

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._timestamp('exp')

    @property
    def issued_at(self) -> Optional[datetime]:
        return self._timestamp('iat')

    @property
    def not_before(self) -> Optional[datetime]:
        return self._timestamp('nbf')

    @property
    def issuer(self) -> Optional[str]:
        value = self.claims.get('iss')
        return value if isinstance(value, str) else None

    @property
    def subject(self) -> Optional[str]:
        value = self.claims.get('sub')
        return value if isinstance(value, str) else None

    @property
    def identifier(self) -> Optional[str]:
        value = self.claims.get('jti')
        return value if isinstance(value, str) else None

    @property
    def audience(self) -> Optional[List[str]]:
        value = self.claims.get('aud')
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [v for v in value if isinstance(v, str)]
        return None

    @property
    def session_id(self) -> Optional[str]:
        value = self.claims.get('sid')
        return value if isinstance(value, str) else None

    def seconds_remaining(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds until ``exp``, or None when the token has no expiry."""
        expires_at = self.expires_at
        if expires_at is None:
            return None
        now = time.time() if now is None else now
        return expires_at.timestamp() - now

    @property
    def expired(self) -> bool:
        """True when ``exp`` is in the past. Tokens without ``exp`` never expire."""
        remaining = self.seconds_remaining()
        return remaining is not None and remaining <= 0


def decode_token(raw: str) -> DecodedToken:
    """Decode a token without verifying its signature.

    Args:
        raw: Compact serialized token (``header.claims.signature``)

    Returns:
        DecodedToken with header, claims and signature

    Raises:
        TokenDecodeError: If the token does not have three parts, a part is not
            valid base64url, or a part is not a JSON object
    """
    parts = raw.split('.')
    if len(parts) != 3:
        raise TokenDecodeError('invalid_part_count', f'The token has {len(parts)} parts when it should have 3 parts.')

    try:
        header = jwt.get_unverified_header(raw)
        claims = jwt.decode(raw, options={'verify_signature': False})
    except jwt.DecodeError as e:
        message = str(e)
        reason = 'invalid_base64url' if 'padding' in message.lower() or 'base64' in message.lower() else 'invalid_json'
        raise TokenDecodeError(reason, f'Failed to decode token: {message}') from e

    return DecodedToken(raw=raw, header=header, claims=claims, signature=parts[2])
