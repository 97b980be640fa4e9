"""Async HTTP client for the Frontend API.

This module provides the FrontendClient class, the single network collaborator
of the kit. Every request carries the device token, every enveloped response
feeds its ``client`` side-channel back to the state owner, and transient
failures are retried according to ``RetryConfig``.
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from ..errors import map_error_response
from ..models import Client
from .retry import ExponentialBackoff, RetryConfig, is_retryable_error, is_retryable_response, retry_delay

logger = logging.getLogger(__name__)

API_PATH_PREFIX = '/v1'
DEVICE_TOKEN_HEADER = 'Authorization'
CLIENT_ID_HEADER = 'x-clerk-client-id'
DEVICE_ID_HEADER = 'x-native-device-id'

ClientCallback = Callable[[Client], None]
TokenCallback = Callable[[str], None]


class FrontendClient:
    """Async HTTP client for the Frontend API.

    Provides access to API resources through sub-clients for the client,
    sessions, sign-ins, sign-ups, environment and device attestation.

    Args:
        base_url: Frontend API origin (e.g., 'https://clerk.example.com')
        device_token_provider: Returns the stored device token, if any
        on_client: Receives every Client found in a response side-channel
        on_device_token: Receives a new device token from a response header
        client_id_provider: Returns the current client id (sent in debug mode)
        debug_mode: Log every request and response at DEBUG
        timeout: Request timeout in seconds
        retry: Retry policy for rate-limited and transient failures
        device_id: Stable identifier for this device installation
        transport: Optional httpx transport, for tests

    Example:
        >>> async with FrontendClient('https://clerk.example.com') as api:
        ...     environment = await api.environment.get()
    """

    def __init__(
        self,
        base_url: str,
        device_token_provider: Optional[Callable[[], Optional[str]]] = None,
        on_client: Optional[ClientCallback] = None,
        on_device_token: Optional[TokenCallback] = None,
        client_id_provider: Optional[Callable[[], Optional[str]]] = None,
        debug_mode: bool = False,
        timeout: float = 30.0,
        retry: Optional[RetryConfig] = None,
        device_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.debug_mode = debug_mode
        self.retry = retry or RetryConfig()
        self.device_id = device_id or str(uuid.uuid4())

        self._device_token_provider = device_token_provider
        self._client_id_provider = client_id_provider
        self._on_client = on_client
        self._on_device_token = on_device_token

        self._http = httpx.AsyncClient(
            base_url=self.base_url + API_PATH_PREFIX,
            timeout=timeout,
            follow_redirects=True,
            params={'_is_native': 'true'},
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {DEVICE_ID_HEADER: self.device_id}
        if self._device_token_provider:
            token = self._device_token_provider()
            if token:
                headers[DEVICE_TOKEN_HEADER] = token
        if self.debug_mode and self._client_id_provider:
            client_id = self._client_id_provider()
            if client_id:
                headers[CLIENT_ID_HEADER] = client_id
        return headers

    async def _request(
        self, method: str, path: str, json: Optional[dict] = None, params: Optional[dict] = None, **kwargs
    ) -> httpx.Response:
        """Make async HTTP request with retry and error handling.

        Args:
            method: HTTP method (GET, POST, PATCH, PUT, DELETE)
            path: API endpoint path relative to /v1 (e.g., '/client')
            json: Optional JSON request body
            params: Optional query parameters
            **kwargs: Additional arguments passed to httpx.request()

        Returns:
            HTTP response object

        Raises:
            APIResponseError: If the API returns an error envelope
            httpx.HTTPStatusError: If the API returns a non-JSON error
        """
        backoff = ExponentialBackoff(self.retry)
        extra_headers = kwargs.pop('headers', {})

        while True:
            headers = {**self._headers(), **extra_headers}
            self._log_request(method, path, headers, json)

            try:
                response = await self._http.request(method, path, json=json, params=params, headers=headers, **kwargs)
            except httpx.TransportError as e:
                if not is_retryable_error(e):
                    raise
                delay = retry_delay(None, backoff)
                if delay is None:
                    raise
                logger.debug(f'Retrying {method} {path} after {type(e).__name__}. Backing off for {delay:.2f}s.')
                await asyncio.sleep(delay)
                continue

            self._log_response(method, path, response)

            if is_retryable_response(response, self.retry):
                delay = retry_delay(response, backoff)
                if delay is not None:
                    logger.debug(
                        f'Retrying {method} {path} after HTTP {response.status_code}. Backing off for {delay:.2f}s.'
                    )
                    await asyncio.sleep(delay)
                    continue

            break

        self._apply_device_token(response)

        if response.status_code >= 400:
            try:
                error_data = response.json()
            except ValueError:
                # Response is not JSON, fall back to generic HTTP error
                response.raise_for_status()
            else:
                self._apply_error_client(error_data)
                raise map_error_response(response.status_code, error_data)

        return response

    async def _send(self, method: str, path: str, json: Optional[dict] = None, params: Optional[dict] = None) -> Any:
        """Make a request and unwrap the ``{response, client}`` envelope.

        The ``client`` side-channel is handed to ``on_client`` before the
        primary payload is returned.

        Returns:
            The decoded ``response`` payload (None when absent or null)
        """
        response = await self._request(method, path, json=json, params=params)
        if not response.content:
            return None

        body = response.json()
        if not isinstance(body, dict) or 'response' not in body:
            return body

        self._apply_client(body.get('client'))
        return body.get('response')

    def _apply_device_token(self, response: httpx.Response) -> None:
        token = response.headers.get(DEVICE_TOKEN_HEADER)
        if token and self._on_device_token:
            self._on_device_token(token)

    def _apply_client(self, payload: Any) -> None:
        if payload is None or self._on_client is None:
            return
        try:
            client = Client.model_validate(payload)
        except ValidationError:
            logger.warning('Ignoring undecodable client in response side-channel', exc_info=True)
            return
        self._on_client(client)

    def _apply_error_client(self, error_data: Any) -> None:
        if not isinstance(error_data, dict):
            return
        meta = error_data.get('meta')
        if isinstance(meta, dict):
            self._apply_client(meta.get('client'))

    def _log_request(self, method: str, path: str, headers: Dict[str, str], body: Optional[dict]) -> None:
        if not self.debug_mode:
            return
        sanitized = {k: v for k, v in headers.items() if k.lower() != DEVICE_TOKEN_HEADER.lower()}
        logger.debug(f'Request: {method} {API_PATH_PREFIX}{path} | Headers: {sanitized} | Body: {body}')

    def _log_response(self, method: str, path: str, response: httpx.Response) -> None:
        if not self.debug_mode:
            return
        logger.debug(f'Response: {response.status_code} {method} {API_PATH_PREFIX}{path} | Body: {response.text}')

    @property
    def client(self):
        """Access the client resource.

        Returns:
            ClientResource for GET/PUT/DELETE /client
        """
        from .client_resource import ClientResource

        return ClientResource(self)

    @property
    def sessions(self):
        """Access the sessions resource.

        Returns:
            SessionsResource for session removal, activation and tokens
        """
        from .sessions import SessionsResource

        return SessionsResource(self)

    @property
    def sign_ins(self):
        """Access the sign-ins resource."""
        from .sign_ins import SignInsResource

        return SignInsResource(self)

    @property
    def sign_ups(self):
        """Access the sign-ups resource."""
        from .sign_ups import SignUpsResource

        return SignUpsResource(self)

    @property
    def environment(self):
        """Access the environment resource."""
        from .environment import EnvironmentResource

        return EnvironmentResource(self)

    @property
    def attestation(self):
        """Access the device attestation resource."""
        from .attestation import AttestationResource

        return AttestationResource(self)

    async def aclose(self):
        """Close the HTTP client and release resources."""
        await self._http.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()
