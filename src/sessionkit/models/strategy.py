"""Verification strategies.

Strategies arrive from the wire as strings such as ``email_code`` or ``oauth_google``.
They are parsed once into a closed ``FactorStrategy`` value so that callers compare
kinds instead of raw strings. Values the client does not know are kept as
``StrategyKind.UNKNOWN`` with the original string preserved.
"""

from enum import Enum
from typing import Any, Optional

from pydantic_core import core_schema


class StrategyKind(str, Enum):
    PASSWORD = 'password'
    EMAIL_CODE = 'email_code'
    EMAIL_LINK = 'email_link'
    PHONE_CODE = 'phone_code'
    PASSKEY = 'passkey'
    TOTP = 'totp'
    BACKUP_CODE = 'backup_code'
    TICKET = 'ticket'
    OAUTH = 'oauth'
    ID_TOKEN = 'id_token'
    RESET_PASSWORD_EMAIL_CODE = 'reset_password_email_code'
    RESET_PASSWORD_PHONE_CODE = 'reset_password_phone_code'
    SAML = 'saml'
    ENTERPRISE_SSO = 'enterprise_sso'
    UNKNOWN = 'unknown'


# Kinds whose wire value is exactly the enum value
_SIMPLE_KINDS = {
    kind.value: kind
    for kind in StrategyKind
    if kind not in (StrategyKind.OAUTH, StrategyKind.ID_TOKEN, StrategyKind.UNKNOWN)
}

OAUTH_PREFIX = 'oauth_'
ID_TOKEN_PREFIX = 'oauth_token_'


class FactorStrategy:
    """A verification strategy.

    Instances are immutable and compare by value. ``provider`` is set for the
    ``OAUTH`` and ``ID_TOKEN`` kinds, ``raw`` is set for ``UNKNOWN``.

    Example:
        >>> FactorStrategy.parse('oauth_google') == FactorStrategy.oauth('google')
        True
        >>> FactorStrategy.parse('magic_link').kind
        <StrategyKind.UNKNOWN: 'unknown'>
    """

    __slots__ = ('_kind', '_provider', '_raw')

    def __init__(self, kind: StrategyKind, provider: Optional[str] = None, raw: Optional[str] = None):
        if kind in (StrategyKind.OAUTH, StrategyKind.ID_TOKEN) and not provider:
            raise ValueError(f'{kind.value} strategy requires a provider')
        if kind is StrategyKind.UNKNOWN and raw is None:
            raise ValueError('unknown strategy requires the raw wire value')
        object.__setattr__(self, '_kind', kind)
        object.__setattr__(self, '_provider', provider)
        object.__setattr__(self, '_raw', raw if kind is StrategyKind.UNKNOWN else None)

    def __setattr__(self, name, value):
        raise AttributeError('FactorStrategy is immutable')

    @property
    def kind(self) -> StrategyKind:
        return self._kind

    @property
    def provider(self) -> Optional[str]:
        return self._provider

    @classmethod
    def oauth(cls, provider: str) -> 'FactorStrategy':
        return cls(StrategyKind.OAUTH, provider=provider)

    @classmethod
    def id_token(cls, provider: str) -> 'FactorStrategy':
        return cls(StrategyKind.ID_TOKEN, provider=provider)

    @classmethod
    def parse(cls, value: str) -> 'FactorStrategy':
        """Parse a wire strategy string."""
        kind = _SIMPLE_KINDS.get(value)
        if kind is not None:
            return cls(kind)
        if value.startswith(ID_TOKEN_PREFIX) and len(value) > len(ID_TOKEN_PREFIX):
            return cls.id_token(value[len(ID_TOKEN_PREFIX) :])
        if value.startswith(OAUTH_PREFIX) and len(value) > len(OAUTH_PREFIX):
            return cls.oauth(value[len(OAUTH_PREFIX) :])
        return cls(StrategyKind.UNKNOWN, raw=value)

    @property
    def raw_value(self) -> str:
        """The wire string for this strategy."""
        if self._kind is StrategyKind.OAUTH:
            return f'{OAUTH_PREFIX}{self._provider}'
        if self._kind is StrategyKind.ID_TOKEN:
            return f'{ID_TOKEN_PREFIX}{self._provider}'
        if self._kind is StrategyKind.UNKNOWN:
            return self._raw
        return self._kind.value

    @property
    def is_reset_password(self) -> bool:
        return self._kind in (StrategyKind.RESET_PASSWORD_EMAIL_CODE, StrategyKind.RESET_PASSWORD_PHONE_CODE)

    @property
    def is_external(self) -> bool:
        """True for strategies completed in an external flow (social, enterprise)."""
        return self._kind in (StrategyKind.OAUTH, StrategyKind.ID_TOKEN, StrategyKind.SAML, StrategyKind.ENTERPRISE_SSO)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FactorStrategy):
            return self.raw_value == other.raw_value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.raw_value)

    def __repr__(self) -> str:
        return f'FactorStrategy({self.raw_value!r})'

    def __str__(self) -> str:
        return self.raw_value

    @classmethod
    def _validate(cls, value: Any) -> 'FactorStrategy':
        if isinstance(value, FactorStrategy):
            return value
        if isinstance(value, StrategyKind):
            return cls(value)
        if isinstance(value, str):
            return cls.parse(value)
        raise ValueError(f'Cannot interpret {value!r} as a strategy')

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda strategy: strategy.raw_value, return_schema=core_schema.str_schema()
            ),
        )
