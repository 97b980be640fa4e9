"""Device attestation handshake.

Proves to the Frontend API that requests come from a genuine install of the
application. The handshake has two phases:

- attestation, run once per key: fetch a challenge, generate a key pair, bind
  the key to a hash of the challenge and have the server verify the binding.
  The key id is persisted only after the server accepts it.
- assertion, run afterwards: fetch a fresh challenge and sign a hash of
  ``{client_id, challenge}`` with the attested key.

The platform capability is abstracted as an ``AttestationProvider``. The
``SoftwareAttestationProvider`` holds ECDSA P-256 keys in memory and is meant for
development and tests; production hosts plug in a hardware-backed provider.
"""

import base64
import hashlib
import json
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from .api import FrontendClient
from .errors import AttestationKeyMissingError, ChallengeUnavailableError, CredentialStoreError, UnsupportedDeviceError
from .storage.store import CredentialStore, StoreKey

logger = logging.getLogger(__name__)


class AttestationProvider(ABC):
    """Platform attestation capability."""

    @property
    def is_supported(self) -> bool:
        return True

    @abstractmethod
    async def generate_key(self) -> str:
        """Create a new key pair and return its key id."""
        pass

    @abstractmethod
    async def attest_key(self, key_id: str, client_data_hash: bytes) -> bytes:
        """Produce an attestation object binding ``key_id`` to ``client_data_hash``."""
        pass

    @abstractmethod
    async def generate_assertion(self, key_id: str, client_data_hash: bytes) -> bytes:
        """Sign ``client_data_hash`` with the key identified by ``key_id``.

        Raises:
            AttestationKeyMissingError: If the provider does not hold the key
        """
        pass

    def has_key(self, key_id: str) -> bool:
        return True


class SoftwareAttestationProvider(AttestationProvider):
    """ECDSA P-256 keys held in process memory.

    The key id is the base64 SHA-256 digest of the DER public key. The attestation
    object is a JSON document carrying the public key and a signature over the
    client data hash.
    """

    def __init__(self):
        self._keys: Dict[str, ec.EllipticCurvePrivateKey] = {}

    async def generate_key(self) -> str:
        private_key = ec.generate_private_key(ec.SECP256R1())
        public_der = private_key.public_key().public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
        key_id = base64.b64encode(hashlib.sha256(public_der).digest()).decode('ascii')
        self._keys[key_id] = private_key
        return key_id

    def _key(self, key_id: str) -> ec.EllipticCurvePrivateKey:
        try:
            return self._keys[key_id]
        except KeyError:
            raise AttestationKeyMissingError(f'No attestation key with id {key_id!r}') from None

    def _sign(self, key_id: str, client_data_hash: bytes) -> bytes:
        return self._key(key_id).sign(client_data_hash, ec.ECDSA(Prehashed(hashes.SHA256())))

    async def attest_key(self, key_id: str, client_data_hash: bytes) -> bytes:
        public_der = (
            self._key(key_id)
            .public_key()
            .public_bytes(serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)
        )
        document = {
            'fmt': 'software-ecdsa-p256',
            'public_key': base64.b64encode(public_der).decode('ascii'),
            'signature': base64.b64encode(self._sign(key_id, client_data_hash)).decode('ascii'),
        }
        return json.dumps(document, separators=(',', ':')).encode('utf-8')

    async def generate_assertion(self, key_id: str, client_data_hash: bytes) -> bytes:
        return self._sign(key_id, client_data_hash)

    def has_key(self, key_id: str) -> bool:
        return key_id in self._keys


class DeviceAttestation:
    """Runs the attestation handshake against the Frontend API.

    Args:
        api: Frontend API client
        store: Credential store holding the attested key id
        provider: Platform attestation capability; None means unsupported
        client_id_provider: Returns the current client id for assertions
        app_identifier: Sent as ``bundle_id``
    """

    def __init__(
        self,
        api: FrontendClient,
        store: CredentialStore,
        provider: Optional[AttestationProvider],
        client_id_provider: Callable[[], Optional[str]],
        app_identifier: Optional[str] = None,
    ):
        self._api = api
        self._store = store
        self._provider = provider
        self._client_id_provider = client_id_provider
        self._app_identifier = app_identifier

    @property
    def is_supported(self) -> bool:
        return self._provider is not None and self._provider.is_supported

    @property
    def key_id(self) -> Optional[str]:
        try:
            return self._store.get_string(StoreKey.ATTEST_KEY_ID)
        except CredentialStoreError:
            logger.warning('Failed to read attestation key id', exc_info=True)
            return None

    @property
    def has_key_id(self) -> bool:
        return self.key_id is not None

    def remove_key_id(self) -> None:
        self._store.delete(StoreKey.ATTEST_KEY_ID)

    def _require_provider(self) -> AttestationProvider:
        if not self.is_supported:
            raise UnsupportedDeviceError()
        return self._provider

    async def _challenge(self) -> str:
        challenge = await self._api.attestation.challenge()
        if not challenge:
            raise ChallengeUnavailableError()
        return challenge

    async def perform_device_attestation(self) -> str:
        """Attest a new key and persist its id once the server accepts it.

        Returns:
            The attested key id

        Raises:
            UnsupportedDeviceError: If no attestation capability is available
            ChallengeUnavailableError: If the server returns no challenge
            APIResponseError: If the server rejects the attestation
        """
        provider = self._require_provider()

        challenge = await self._challenge()
        key_id = await provider.generate_key()
        client_data_hash = hashlib.sha256(challenge.encode('utf-8')).digest()
        attestation = await provider.attest_key(key_id, client_data_hash)

        await self._api.attestation.verify(
            key_id=key_id,
            challenge=challenge,
            attestation=base64.b64encode(attestation).decode('ascii'),
            bundle_id=self._app_identifier,
        )

        self._store.set(StoreKey.ATTEST_KEY_ID, key_id)
        logger.info('Device attestation verified')
        return key_id

    async def perform_assertion(self) -> None:
        """Prove possession of the attested key, attesting first if needed.

        Raises:
            UnsupportedDeviceError: If no attestation capability is available
            ChallengeUnavailableError: If the server returns no challenge
            AttestationKeyMissingError: If there is no client to assert for
            APIResponseError: If the server rejects the assertion
        """
        provider = self._require_provider()

        challenge = await self._challenge()
        client_id = self._client_id_provider()
        if not client_id:
            raise AttestationKeyMissingError('Cannot assert without a client id')

        payload = json.dumps({'client_id': client_id, 'challenge': challenge}, separators=(',', ':'))

        key_id = self.key_id
        if key_id is not None and not provider.has_key(key_id):
            logger.warning('Stored attestation key is no longer held by the provider; attesting a new key')
            self.remove_key_id()
            key_id = None
        if key_id is None:
            key_id = await self.perform_device_attestation()

        client_data_hash = hashlib.sha256(payload.encode('utf-8')).digest()
        assertion = await provider.generate_assertion(key_id, client_data_hash)

        await self._api.attestation.assert_device(
            client_data=payload,
            assertion=base64.b64encode(assertion).decode('ascii'),
            challenge=challenge,
            bundle_id=self._app_identifier,
        )
