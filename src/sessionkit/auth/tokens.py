"""Session token fetcher.

Mints short-lived session tokens and keeps the latest one per session and
template in memory. A cached token is reused while it has more than the
expiration buffer left. Concurrent requests for the same token share one
in-flight fetch instead of hitting the API several times.
"""

import asyncio
import logging
from typing import Dict, Optional

from ..api import FrontendClient
from ..errors import TokenDecodeError
from ..lifecycle.tasks import TaskCoordinator
from ..models import Session, TokenResource
from .token import decode_token

logger = logging.getLogger(__name__)


def token_cache_key(session_id: str, template: Optional[str] = None) -> str:
    """``sess_abc`` or ``sess_abc-template``."""
    return f'{session_id}-{template}' if template else session_id


class SessionTokenFetcher:
    """Fetches and caches session tokens.

    Args:
        api: Frontend API client
        expiration_buffer: Seconds of remaining validity below which a cached
            token is fetched again
        tasks: Task coordinator tracking in-flight fetches, so closing the kit
            cancels them

    Example:
        >>> fetcher = SessionTokenFetcher(api, expiration_buffer=10.0)
        >>> token = await fetcher.get_token(session)
        >>> token.jwt
    """

    def __init__(
        self, api: FrontendClient, expiration_buffer: float = 10.0, tasks: Optional[TaskCoordinator] = None
    ):
        self._api = api
        self.expiration_buffer = expiration_buffer
        self._tasks = tasks or TaskCoordinator()
        self._cache: Dict[str, TokenResource] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}

    async def get_token(
        self, session: Session, template: Optional[str] = None, skip_cache: bool = False
    ) -> Optional[TokenResource]:
        """Return a valid token for ``session``, fetching one if needed.

        Args:
            session: Session to mint the token for
            template: Optional JWT template name
            skip_cache: Always fetch a new token

        Returns:
            The token, or None if the server returned none

        Raises:
            APIResponseError: If the server rejects the request
        """
        key = token_cache_key(session.id, template)

        in_flight = self._in_flight.get(key)
        if in_flight is not None:
            return await asyncio.shield(in_flight)

        if not skip_cache:
            cached = self._cache.get(key)
            if cached is not None and self._is_fresh(cached):
                return cached

        task = self._tasks.spawn(self._fetch(session.id, template, key), name=f'session-token-{key}')
        self._in_flight[key] = task
        return await asyncio.shield(task)

    async def _fetch(self, session_id: str, template: Optional[str], key: str) -> Optional[TokenResource]:
        try:
            token = await self._api.sessions.token(session_id, template)
        finally:
            # Failed and successful fetches both release the slot
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]
        if token is not None:
            self._cache[key] = token
        return token

    def _is_fresh(self, token: TokenResource) -> bool:
        try:
            remaining = decode_token(token.jwt).seconds_remaining()
        except TokenDecodeError:
            logger.debug('Cached session token is undecodable; fetching a new one')
            return False
        return remaining is not None and remaining > self.expiration_buffer

    def cached(self, session_id: str, template: Optional[str] = None) -> Optional[TokenResource]:
        return self._cache.get(token_cache_key(session_id, template))

    def clear(self, session_id: Optional[str] = None) -> None:
        """Drop cached tokens for ``session_id``, or every cached token."""
        if session_id is None:
            self._cache.clear()
            return
        prefix = f'{session_id}-'
        for key in [k for k in self._cache if k == session_id or k.startswith(prefix)]:
            del self._cache[key]
