"""Exception hierarchy for sessionkit.

Errors fall into five groups:

- configuration errors, raised synchronously by ``SessionKit.configure``
- initialization errors, wrapping anything that fails inside ``SessionKit.load``
- remote-rejection errors, mapped from the Frontend API error envelope
- user cancellation of an external credential flow
- background errors (credential store, sync) that are logged and never surfaced
"""

from typing import Any, Dict, List, Optional


class SessionKitError(Exception):
    """Base exception for all sessionkit errors."""

    pass


# Configuration errors
class ConfigurationError(SessionKitError):
    """The kit was configured with missing or malformed input."""

    pass


class MissingPublishableKeyError(ConfigurationError):
    """No publishable key was provided."""

    def __init__(self):
        super().__init__(
            'Publishable key is missing. Pass one to SessionKit.configure() or set SESSIONKIT_PUBLISHABLE_KEY.'
        )


class InvalidPublishableKeyError(ConfigurationError):
    """The publishable key does not have the pk_test_/pk_live_ format."""

    def __init__(self, key: str):
        self.key = key
        masked = 'empty' if not key else (key[:10] + '...' if len(key) > 10 else key)
        super().__init__(
            f"Invalid publishable key format: '{masked}'. Publishable keys must start with 'pk_test_' or 'pk_live_'."
        )


class AlreadyConfiguredError(ConfigurationError):
    """configure() was called twice on the same instance."""

    pass


class NotConfiguredError(ConfigurationError):
    """An operation that needs configuration ran before configure()."""

    pass


# Initialization errors
class InitializationError(SessionKitError):
    """Wraps any failure during SessionKit.load().

    Attributes:
        underlying_error: The exception that caused the failure
    """

    def __init__(self, message: str, underlying_error: Optional[BaseException] = None):
        self.underlying_error = underlying_error
        super().__init__(message)


class ClientLoadError(InitializationError):
    """Fetching the Client from the Frontend API failed."""

    def __init__(self, underlying_error: BaseException):
        super().__init__(f'Failed to load client data: {underlying_error}', underlying_error)


class EnvironmentLoadError(InitializationError):
    """Fetching the Environment from the Frontend API failed."""

    def __init__(self, underlying_error: BaseException):
        super().__init__(f'Failed to load environment configuration: {underlying_error}', underlying_error)


# Remote-rejection errors
class APIResponseError(SessionKitError):
    """Structured error returned by the Frontend API.

    Attributes:
        code: Machine-readable error code (snake_case)
        message: Short human-readable description
        status_code: HTTP status code
        long_message: Longer description, if provided
        meta: Extra metadata, e.g. ``param_name`` for per-field display
        errors: Every raw error entry from the response
        trace_id: Server trace identifier, if provided
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int,
        long_message: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        trace_id: Optional[str] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.long_message = long_message
        self.meta = meta or {}
        self.errors = errors or []
        self.trace_id = trace_id
        super().__init__(f'[{code}] {long_message or message}')

    @property
    def param_name(self) -> Optional[str]:
        """Name of the form field the error refers to, if any."""
        return self.meta.get('param_name')


class IdentifierNotFoundError(APIResponseError):
    """No account matches the supplied identifier."""

    pass


class PasswordIncorrectError(APIResponseError):
    """The supplied password is wrong."""

    pass


class CodeIncorrectError(APIResponseError):
    """The supplied one-time code is wrong."""

    pass


class VerificationExpiredError(APIResponseError):
    """The verification expired and must be prepared again."""

    pass


class TooManyRequestsError(APIResponseError):
    """The request was rate limited."""

    pass


class SessionExistsError(APIResponseError):
    """A session already exists for this client in single-session mode."""

    pass


class FormParamMissingError(APIResponseError):
    """A required form field was not supplied."""

    pass


class AuthenticationInvalidError(APIResponseError):
    """The device or session is no longer authenticated."""

    pass


class ResourceNotFoundError(APIResponseError):
    """The requested resource does not exist."""

    pass


ERROR_CODE_MAPPING = {
    'form_identifier_not_found': IdentifierNotFoundError,
    'form_password_incorrect': PasswordIncorrectError,
    'form_code_incorrect': CodeIncorrectError,
    'verification_expired': VerificationExpiredError,
    'too_many_requests': TooManyRequestsError,
    'session_exists': SessionExistsError,
    'form_param_missing': FormParamMissingError,
    'authentication_invalid': AuthenticationInvalidError,
    'resource_not_found': ResourceNotFoundError,
}


def map_error_response(status_code: int, error_data: dict) -> APIResponseError:
    """Map a Frontend API error envelope to a typed exception.

    The envelope has the shape ``{"errors": [{"code", "message", "long_message", "meta"}], "clerk_trace_id"}``.
    Only the first entry decides the exception class; all entries are kept on ``errors``.

    Args:
        status_code: HTTP status code
        error_data: Decoded JSON error body

    Returns:
        Appropriate APIResponseError subclass instance

    Example:
        >>> body = {'errors': [{'code': 'form_password_incorrect', 'message': 'Password is incorrect'}]}
        >>> isinstance(map_error_response(422, body), PasswordIncorrectError)
        True
    """
    errors = error_data.get('errors') or []
    first = errors[0] if errors else {}

    code = first.get('code', 'unknown')
    message = first.get('message', 'Unknown error')

    error_class = ERROR_CODE_MAPPING.get(code, APIResponseError)
    return error_class(
        code=code,
        message=message,
        status_code=status_code,
        long_message=first.get('long_message'),
        meta=first.get('meta'),
        errors=errors,
        trace_id=error_data.get('clerk_trace_id'),
    )


# Cancellation
class UserCancelledError(SessionKitError):
    """The user dismissed an external credential flow (passkey sheet, social login)."""

    pass


# Token codec errors
class TokenDecodeError(SessionKitError):
    """A session token could not be decoded.

    Attributes:
        reason: One of ``invalid_part_count``, ``invalid_base64url``, ``invalid_json``
    """

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


# Background errors
class CredentialStoreError(SessionKitError):
    """The secure credential store failed to read, write or delete an item."""

    pass


class SyncError(SessionKitError):
    """The cross-device sync channel failed to encode, send or decode a context."""

    pass


# Attestation errors
class AttestationError(SessionKitError):
    """Base class for device attestation failures."""

    pass


class UnsupportedDeviceError(AttestationError):
    """The platform attestation capability is unavailable."""

    def __init__(self):
        super().__init__('Device attestation is not supported on this device.')


class ChallengeUnavailableError(AttestationError):
    """The Frontend API did not return an attestation challenge."""

    def __init__(self):
        super().__init__('Unable to get an attestation challenge from the server.')


class AttestationKeyMissingError(AttestationError):
    """The attestation provider does not hold the requested key."""

    pass


# State machine errors
class SessionPromotionError(SessionKitError):
    """A completed attempt's created session could not be found on the Client."""

    def __init__(self, session_id: Optional[str]):
        self.session_id = session_id
        super().__init__(f'Session {session_id!r} created by the completed attempt is not present on the client.')
