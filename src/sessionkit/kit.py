"""The SessionKit orchestrator.

SessionKit owns all mutable authentication state (Client, Environment, the
in-flight sign-in and sign-up) and wires the collaborators together: the
Frontend API client, the snapshot cache, token polling, the lifecycle observer,
cross-device sync and device attestation.

All state lives on the event loop that called ``configure``. Collaborators that
run elsewhere (sync transports, lifecycle notifications) hop onto that loop
before touching state, so the model itself needs no locks.
"""

import asyncio
import logging
from typing import Optional

from .api import FrontendClient
from .attestation import DeviceAttestation
from .auth.flows import SignInFlow, SignUpFlow
from .auth.tokens import SessionTokenFetcher
from .config import InstanceType, PublishableKey, SessionKitOptions, parse_publishable_key, resolve_publishable_key
from .errors import (
    AlreadyConfiguredError,
    ClientLoadError,
    CredentialStoreError,
    EnvironmentLoadError,
    NotConfiguredError,
    SessionPromotionError,
)
from .events import EventEmitter, SessionChanged, SignedOut, SignInCompleted, SignUpCompleted
from .lifecycle import LifecycleEvent, LifecycleManager, SessionPollingManager, TaskCoordinator
from .models import Client, Environment, Session, SessionStatus, SignIn, SignUp, User
from .storage import CacheManager, CredentialStore, KeyringCredentialStore, StoreKey
from .sync import SyncCoordinator

logger = logging.getLogger(__name__)


class SessionKit:
    """Client-side authentication session lifecycle.

    Construct one instance per application and pass it to whatever needs it.
    ``configure`` may be called once per instance.

    Example:
        >>> kit = SessionKit()
        >>> kit.configure('pk_test_Y2xlcmsuZXhhbXBsZS5jb20k')
        >>> await kit.load()
        >>> sign_in = await kit.sign_in.create(identifier='user@example.com')
    """

    def __init__(self):
        self._configured = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._client: Optional[Client] = None
        self._environment = Environment()
        self._is_loaded = False
        self._in_foreground = True
        self._cache_task: Optional[asyncio.Task] = None

        self.options: Optional[SessionKitOptions] = None
        self.publishable_key: Optional[PublishableKey] = None
        self.tasks = TaskCoordinator()
        self.events = EventEmitter()

        self.store: Optional[CredentialStore] = None
        self.api: Optional[FrontendClient] = None
        self.cache: Optional[CacheManager] = None
        self.tokens: Optional[SessionTokenFetcher] = None
        self.polling: Optional[SessionPollingManager] = None
        self.lifecycle: Optional[LifecycleManager] = None
        self.sync: Optional[SyncCoordinator] = None
        self.attestation: Optional[DeviceAttestation] = None
        self.sign_in: Optional[SignInFlow] = None
        self.sign_up: Optional[SignUpFlow] = None

    # Configuration

    def configure(self, publishable_key: Optional[str] = None, options: Optional[SessionKitOptions] = None) -> None:
        """Validate the publishable key, build collaborators and start loading cached state.

        Must be called from a running event loop; that loop becomes the owner of
        all session state. Nothing touches the network here.

        Args:
            publishable_key: ``pk_test_...`` or ``pk_live_...``; falls back to
                ``SESSIONKIT_PUBLISHABLE_KEY``
            options: Kit options; defaults to ``SessionKitOptions()``

        Raises:
            AlreadyConfiguredError: If this instance was already configured
            MissingPublishableKeyError: If no key was supplied
            InvalidPublishableKeyError: If the key is malformed
            RuntimeError: If no event loop is running
        """
        if self._configured:
            raise AlreadyConfiguredError('SessionKit.configure() may only be called once per instance')

        self.publishable_key = parse_publishable_key(resolve_publishable_key(publishable_key))
        self._loop = asyncio.get_running_loop()

        options = options or SessionKitOptions()
        self.options = options

        self.store = options.store or KeyringCredentialStore(options.keychain_service)
        self.api = FrontendClient(
            options.proxy_url or self.publishable_key.frontend_api_url,
            device_token_provider=self._device_token,
            on_client=self._apply_response_client,
            on_device_token=self._store_device_token,
            client_id_provider=self._client_id,
            debug_mode=options.debug_mode,
            timeout=options.request_timeout,
            retry=options.retry,
        )
        self.cache = CacheManager(self, self.store)
        self.tokens = SessionTokenFetcher(self.api, options.token_expiration_buffer, self.tasks)
        self.polling = SessionPollingManager(self._refresh_session_token, self.tasks, options.poll_interval)
        self.lifecycle = LifecycleManager(self.on_will_enter_foreground, self.on_did_enter_background, self.tasks)
        self.attestation = DeviceAttestation(
            self.api, self.store, options.attestation_provider, self._client_id, options.app_identifier
        )
        self.sign_in = SignInFlow(self)
        self.sign_up = SignUpFlow(self)

        if options.sync_enabled:
            self.sync = SyncCoordinator(self, options.sync_transport, self.store, options.sync_role, self.tasks)

        self._configured = True
        self._cache_task = self.tasks.spawn(self.cache.load_cached_data(), name='load-cached-data')

        if self.sync is not None:
            self.sync.start()

        logger.debug(f'SessionKit configured for {self.publishable_key.frontend_api_url}')

    def _require_configured(self) -> None:
        if not self._configured:
            raise NotConfiguredError('Call SessionKit.configure() before using the kit')

    async def load(self) -> None:
        """Fetch fresh Client and Environment and start background maintenance.

        Waits for cached state to be applied, then fetches Client and Environment
        concurrently. Both must succeed; ``is_loaded`` is set only then. Device
        attestation runs afterwards when the instance requires it; its failure is
        logged and does not fail the load.

        Raises:
            NotConfiguredError: If configure() was not called
            ClientLoadError: If the Client could not be fetched
            EnvironmentLoadError: If the Environment could not be fetched
        """
        self._require_configured()

        if self._cache_task is not None:
            cache_task, self._cache_task = self._cache_task, None
            await cache_task

        client_result, environment_result = await asyncio.gather(
            self.api.client.get(), self.api.environment.get(), return_exceptions=True
        )
        if isinstance(client_result, BaseException):
            raise ClientLoadError(client_result) from client_result
        if isinstance(environment_result, BaseException):
            raise EnvironmentLoadError(environment_result) from environment_result

        self._set_environment(environment_result)
        self._set_client(client_result)

        self.polling.start_polling()
        self.lifecycle.start()

        await self._attest_device_if_needed()

        self._is_loaded = True
        logger.info('SessionKit loaded')

    async def _attest_device_if_needed(self) -> None:
        if not self._environment.requires_attestation or self.attestation.has_key_id:
            return
        try:
            await self.attestation.perform_device_attestation()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning('Device attestation failed; continuing without it', exc_info=True)

    # State

    @property
    def is_configured(self) -> bool:
        return self._configured

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    @property
    def instance_type(self) -> Optional[InstanceType]:
        return self.publishable_key.instance_type if self.publishable_key else None

    @property
    def client(self) -> Optional[Client]:
        return self._client

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def session(self) -> Optional[Session]:
        """The last active session, if it is active or pending."""
        return self._client.last_active_session if self._client else None

    @property
    def user(self) -> Optional[User]:
        session = self.session
        return session.user if session else None

    @property
    def has_client(self) -> bool:
        return self._client is not None

    @property
    def is_environment_empty(self) -> bool:
        return self._environment.is_empty

    def set_client_if_needed(self, client: Optional[Client]) -> None:
        """Apply ``client`` only if no Client has been set yet."""
        if self._client is None:
            self._set_client(client)

    def set_environment_if_needed(self, environment: Environment) -> None:
        """Apply ``environment`` only if the current one is empty."""
        if self._environment.is_empty:
            self._set_environment(environment)

    def apply_synced_client(self, client: Optional[Client]) -> None:
        self._set_client(client)

    def apply_synced_environment(self, environment: Environment) -> None:
        self._set_environment(environment)

    def _set_client(self, client: Optional[Client]) -> None:
        previous = self._client
        self._client = client

        if client is not None:
            self.cache.save_client(client)
        else:
            self.cache.delete_client()

        self._log_pending_session(previous, client)
        self._emit_session_change(previous, client)

        if client is not None and client.active_session is not None and self._is_loaded and self._in_foreground:
            self.polling.start_polling()

        if self.sync is not None:
            self.sync.sync_all()

    def _set_environment(self, environment: Environment) -> None:
        self._environment = environment
        if not environment.is_empty:
            self.cache.save_environment(environment)
        if self.sync is not None:
            self.sync.sync_all()

    def _apply_response_client(self, client: Client) -> None:
        self._set_client(client)

    def _log_pending_session(self, previous: Optional[Client], current: Optional[Client]) -> None:
        session = current.last_active_session if current else None
        if session is None or session.status is not SessionStatus.PENDING:
            return
        before = previous.session_by_id(session.id) if previous else None
        if before is not None and before.status is SessionStatus.PENDING:
            return
        logger.info(f'Session {session.id} is pending; outstanding tasks: {", ".join(session.task_keys) or "none"}')

    def _emit_session_change(self, previous: Optional[Client], current: Optional[Client]) -> None:
        before = previous.last_active_session if previous else None
        after = current.last_active_session if current else None
        before_id = before.id if before else None
        after_id = after.id if after else None
        if before_id != after_id:
            self.events.emit(SessionChanged(previous_session_id=before_id, session=after))

    # Device token

    def _device_token(self) -> Optional[str]:
        try:
            return self.store.get_string(StoreKey.DEVICE_TOKEN)
        except CredentialStoreError:
            logger.warning('Failed to read device token', exc_info=True)
            return None

    def _store_device_token(self, token: str) -> None:
        if token == self._device_token():
            return
        try:
            self.store.set(StoreKey.DEVICE_TOKEN, token)
        except CredentialStoreError:
            logger.error('Failed to store device token', exc_info=True)
            return
        if self.sync is not None:
            self.sync.sync_all()

    def _client_id(self) -> Optional[str]:
        return self._client.id if self._client else None

    # Remote operations

    async def refresh_client(self) -> Optional[Client]:
        """Fetch the Client and replace local state with it."""
        self._require_configured()
        client = await self.api.client.get()
        self._set_client(client)
        return client

    async def refresh_environment(self) -> Environment:
        self._require_configured()
        environment = await self.api.environment.get()
        self._set_environment(environment)
        return environment

    async def sign_out(self, session_id: Optional[str] = None) -> None:
        """Sign out of one session, or of every session on the device.

        Args:
            session_id: Session to end; None ends every session and drops the Client
        """
        self._require_configured()
        if session_id is not None:
            await self.api.sessions.remove(session_id)
            self.tokens.clear(session_id)
        else:
            await self.api.client.destroy()
            self.tokens.clear()
            self._set_client(None)
        self.events.emit(SignedOut(session_id=session_id))

    async def set_active(self, session_id: str, organization_id: Optional[str] = None) -> Session:
        """Make ``session_id`` the active session on this device.

        Args:
            session_id: Session to activate
            organization_id: Organization to make active within the session

        Returns:
            The activated Session
        """
        self._require_configured()
        return await self.api.sessions.touch(session_id, active_organization_id=organization_id)

    async def get_token(self, template: Optional[str] = None, skip_cache: bool = False) -> Optional[str]:
        """A valid session token for the active session, or None when signed out."""
        self._require_configured()
        session = self._client.active_session if self._client else None
        if session is None:
            return None
        token = await self.tokens.get_token(session, template=template, skip_cache=skip_cache)
        return token.jwt if token else None

    async def _refresh_session_token(self) -> bool:
        session = self._client.active_session if self._client else None
        if session is None:
            return False
        await self.tokens.get_token(session)
        return True

    # Attempt completion

    async def _promote(self, attempt, created_session_id: Optional[str], identifier: Optional[str]) -> Session:
        """Activate the session a completed attempt created and drop the attempt."""
        session = self._client.session_by_id(created_session_id) if self._client else None
        if session is None and created_session_id is not None:
            logger.debug(f'Session {created_session_id} not on the local client yet; refreshing client')
            await self.refresh_client()
            session = self._client.session_by_id(created_session_id) if self._client else None
        if session is None:
            raise SessionPromotionError(created_session_id)

        if identifier and session.identifier and session.identifier != identifier:
            logger.info(
                f'Attempt for {identifier!r} completed as {session.identifier!r}; the accounts were linked'
            )

        await self.set_active(session.id)
        self._discard_attempt(attempt)
        session = (self._client.session_by_id(session.id) if self._client else None) or session

        if isinstance(attempt, SignIn):
            self.events.emit(SignInCompleted(sign_in=attempt, session=session))
        elif isinstance(attempt, SignUp):
            self.events.emit(SignUpCompleted(sign_up=attempt, session=session))
        return session

    def _discard_attempt(self, attempt) -> None:
        """Drop a finished attempt from the local Client."""
        client = self._client
        if client is None:
            return
        if isinstance(attempt, SignIn) and client.sign_in is not None and client.sign_in.id == attempt.id:
            self._set_client(client.model_copy(update={'sign_in': None}))
        elif isinstance(attempt, SignUp) and client.sign_up is not None and client.sign_up.id == attempt.id:
            self._set_client(client.model_copy(update={'sign_up': None}))

    # Lifecycle

    def post_lifecycle_event(self, event: LifecycleEvent) -> None:
        """Report a foreground/background transition. Safe to call from any thread."""
        self._require_configured()
        self.lifecycle.post(event)

    async def on_will_enter_foreground(self) -> None:
        """Resume polling, republish state and refetch Client and Environment."""
        self._in_foreground = True
        self.polling.start_polling()
        if self.sync is not None:
            self.sync.sync_all()

        results = await asyncio.gather(self.refresh_client(), self.refresh_environment(), return_exceptions=True)
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.warning(f'Refetch on foreground failed: {result}')

    async def on_did_enter_background(self) -> None:
        self._in_foreground = False
        self.polling.stop_polling()

    # Teardown

    async def aclose(self) -> None:
        """Cancel background work and close the HTTP client."""
        if not self._configured:
            return
        self.polling.stop_polling()
        self.lifecycle.stop()
        if self.sync is not None:
            self.sync.stop()
        await self.tasks.cancel_all()
        await self.api.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()
