"""Unit tests for kit options and publishable key parsing."""

import pytest

from sessionkit.config import InstanceType, SessionKitOptions, parse_publishable_key, resolve_publishable_key
from sessionkit.errors import InvalidPublishableKeyError, MissingPublishableKeyError
from sessionkit.sync import DeviceRole, InMemorySyncTransport
from tests.fixtures.factories import PUBLISHABLE_KEY

# Decodes to 'clerk.live.example.com$'
LIVE_KEY = 'pk_live_Y2xlcmsubGl2ZS5leGFtcGxlLmNvbSQ'


@pytest.mark.unit
class TestPublishableKey:
    """Test publishable key parsing"""

    def test_test_key(self):
        key = parse_publishable_key(PUBLISHABLE_KEY)
        assert key.frontend_api_url == 'https://clerk.example.com'
        assert key.instance_type is InstanceType.DEVELOPMENT
        assert key.raw == PUBLISHABLE_KEY

    def test_live_key_without_padding(self):
        key = parse_publishable_key(LIVE_KEY)
        assert key.frontend_api_url == 'https://clerk.live.example.com'
        assert key.instance_type is InstanceType.PRODUCTION

    @pytest.mark.parametrize(
        'raw',
        [
            'sk_test_Y2xlcmsuZXhhbXBsZS5jb20k',  # secret key prefix
            'pk_test_',  # empty payload
            'pk_test_!!!notbase64',
            'pk_prod_Y2xlcmsuZXhhbXBsZS5jb20k',
            'Y2xlcmsuZXhhbXBsZS5jb20k',
        ],
    )
    def test_invalid_keys(self, raw):
        with pytest.raises(InvalidPublishableKeyError):
            parse_publishable_key(raw)

    def test_resolve_prefers_argument(self, monkeypatch):
        monkeypatch.setenv('SESSIONKIT_PUBLISHABLE_KEY', LIVE_KEY)
        assert resolve_publishable_key(PUBLISHABLE_KEY) == PUBLISHABLE_KEY

    def test_resolve_falls_back_to_env(self, monkeypatch):
        monkeypatch.setenv('SESSIONKIT_PUBLISHABLE_KEY', f'  {LIVE_KEY}  ')
        assert resolve_publishable_key(None) == LIVE_KEY

    @pytest.mark.parametrize('value', [None, '', '   '])
    def test_missing_key(self, value):
        with pytest.raises(MissingPublishableKeyError):
            resolve_publishable_key(value)


@pytest.mark.unit
class TestSessionKitOptions:
    """Test option defaults and validation"""

    def test_defaults(self):
        options = SessionKitOptions()
        assert options.proxy_url is None
        assert options.debug_mode is False
        assert options.keychain_service == 'sessionkit'
        assert options.poll_interval == 5.0
        assert options.token_expiration_buffer == 10.0
        assert options.sync_enabled is False
        assert options.sync_role is DeviceRole.PRIMARY
        assert options.retry.max_retries == 1

    def test_env_fallbacks(self, monkeypatch):
        monkeypatch.setenv('SESSIONKIT_PROXY_URL', 'https://proxy.example.com/__clerk')
        monkeypatch.setenv('SESSIONKIT_DEBUG', 'true')

        options = SessionKitOptions()

        assert options.proxy_url == 'https://proxy.example.com/__clerk'
        assert options.debug_mode is True

    @pytest.mark.parametrize('interval', [0, 60, 75.5])
    def test_poll_interval_bounds(self, interval):
        with pytest.raises(ValueError):
            SessionKitOptions(poll_interval=interval)

    def test_negative_buffer(self):
        with pytest.raises(ValueError):
            SessionKitOptions(token_expiration_buffer=-1)

    def test_sync_requires_transport(self):
        with pytest.raises(ValueError):
            SessionKitOptions(sync_enabled=True)

        options = SessionKitOptions(sync_enabled=True, sync_transport=InMemorySyncTransport())
        assert options.sync_transport is not None
