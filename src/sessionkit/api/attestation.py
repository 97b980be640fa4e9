"""Device attestation resource."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .frontend import FrontendClient


class AttestationResource:
    """Challenge, verify and assert endpoints of the attestation handshake.

    Args:
        api: Parent FrontendClient instance
    """

    def __init__(self, api: 'FrontendClient'):
        self._api = api

    async def challenge(self) -> Optional[str]:
        """Fetch a single-use challenge.

        Returns:
            The opaque challenge string, or None if the server did not return one
        """
        payload = await self._api._send('POST', '/client/device_attestation/challenges')
        if not isinstance(payload, dict):
            return None
        return payload.get('challenge')

    async def verify(self, key_id: str, challenge: str, attestation: str, bundle_id: Optional[str]) -> Any:
        """Submit an attestation object binding ``key_id`` to ``challenge``."""
        body: Dict[str, Any] = {
            'key_id': key_id,
            'challenge': challenge,
            'attestation': attestation,
            'bundle_id': bundle_id,
        }
        return await self._api._send('POST', '/client/device_attestation/verify', json=body)

    async def assert_device(self, client_data: str, assertion: str, challenge: str, bundle_id: Optional[str]) -> Any:
        """Submit an assertion signed by the previously attested key."""
        body: Dict[str, Any] = {
            'client_data': client_data,
            'assertion': assertion,
            'challenge': challenge,
            'platform': 'python',
            'bundle_id': bundle_id,
        }
        return await self._api._send('POST', '/client/verify', json=body)
