"""Integration tests for FrontendClient with HTTP mocking."""

import json

import httpx
import pytest
import respx
from httpx import Response

from sessionkit.api import FrontendClient, RetryConfig
from sessionkit.errors import APIResponseError, PasswordIncorrectError, ResourceNotFoundError
from sessionkit.models import FactorStrategy
from tests.fixtures.factories import (
    API_BASE,
    FRONTEND_API_URL,
    client_json,
    envelope,
    environment_json,
    make_token,
    session_json,
    sign_in_json,
    sign_up_json,
    signed_in_client_json,
)

FAST_RETRY = RetryConfig(initial_backoff_ms=100)


def _body(route, index=-1):
    return json.loads(route.calls[index].request.content)


@pytest.mark.integration
class TestFrontendClientRequests:
    """Test request decoration and response unwrapping."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_client_unwraps_envelope(self):
        """Test GET /client returns the Client from the response envelope."""
        respx.get(f'{API_BASE}/client').mock(return_value=Response(200, json=envelope(signed_in_client_json())))

        async with FrontendClient(FRONTEND_API_URL) as api:
            client = await api.client.get()

        assert client.id == 'client_1'
        assert client.active_session.id == 'sess_1'

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_client_null(self):
        """Test a device without a client yet."""
        respx.get(f'{API_BASE}/client').mock(return_value=Response(200, json=envelope(None)))

        async with FrontendClient(FRONTEND_API_URL) as api:
            assert await api.client.get() is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_native_query_param_and_device_headers(self):
        """Test every request carries _is_native, the device id and the device token."""
        route = respx.get(f'{API_BASE}/environment').mock(return_value=Response(200, json=environment_json()))

        api = FrontendClient(FRONTEND_API_URL, device_token_provider=lambda: 'dvc_token_1', device_id='device-abc')
        environment = await api.environment.get()
        await api.aclose()

        request = route.calls.last.request
        assert request.url.params['_is_native'] == 'true'
        assert request.headers['Authorization'] == 'dvc_token_1'
        assert request.headers['x-native-device-id'] == 'device-abc'
        assert 'x-clerk-client-id' not in request.headers
        assert not environment.is_empty

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_device_token_header_when_absent(self):
        route = respx.get(f'{API_BASE}/environment').mock(return_value=Response(200, json=environment_json()))

        async with FrontendClient(FRONTEND_API_URL, device_token_provider=lambda: None) as api:
            await api.environment.get()

        assert 'Authorization' not in route.calls.last.request.headers

    @pytest.mark.asyncio
    @respx.mock
    async def test_debug_mode_sends_client_id(self):
        route = respx.get(f'{API_BASE}/environment').mock(return_value=Response(200, json=environment_json()))

        async with FrontendClient(FRONTEND_API_URL, client_id_provider=lambda: 'client_1', debug_mode=True) as api:
            await api.environment.get()

        assert route.calls.last.request.headers['x-clerk-client-id'] == 'client_1'

    @pytest.mark.asyncio
    @respx.mock
    async def test_debug_logging_redacts_device_token(self, caplog):
        respx.get(f'{API_BASE}/environment').mock(return_value=Response(200, json=environment_json()))
        caplog.set_level('DEBUG', logger='sessionkit.api.frontend')

        async with FrontendClient(FRONTEND_API_URL, device_token_provider=lambda: 'secret_dvc', debug_mode=True) as api:
            await api.environment.get()

        assert 'Request: GET /v1/environment' in caplog.text
        assert 'secret_dvc' not in caplog.text

    @pytest.mark.asyncio
    @respx.mock
    async def test_response_device_token_is_reported(self):
        """Test a rotated device token in the Authorization response header."""
        respx.get(f'{API_BASE}/client').mock(
            return_value=Response(200, json=envelope(client_json()), headers={'Authorization': 'dvc_new'})
        )
        received = []

        async with FrontendClient(FRONTEND_API_URL, on_device_token=received.append) as api:
            await api.client.get()

        assert received == ['dvc_new']

    @pytest.mark.asyncio
    @respx.mock
    async def test_proxy_url_base(self):
        """Test a proxy URL keeps its path and gains the API prefix."""
        route = respx.get('https://proxy.example.com/__clerk/v1/environment').mock(
            return_value=Response(200, json=environment_json())
        )

        async with FrontendClient('https://proxy.example.com/__clerk/') as api:
            await api.environment.get()

        assert route.called


@pytest.mark.integration
class TestClientSideChannel:
    """Test the client side-channel on success and error responses."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_envelope_client_reported(self):
        respx.post(f'{API_BASE}/client/sign_ins').mock(
            return_value=Response(200, json=envelope(sign_in_json(), client=client_json(sign_in=sign_in_json())))
        )
        seen = []

        async with FrontendClient(FRONTEND_API_URL, on_client=seen.append) as api:
            sign_in = await api.sign_ins.create({'identifier': 'user@example.com'})

        assert sign_in.id == 'sia_1'
        assert len(seen) == 1
        assert seen[0].sign_in.id == 'sia_1'

    @pytest.mark.asyncio
    @respx.mock
    async def test_null_client_not_reported(self):
        respx.get(f'{API_BASE}/environment').mock(return_value=Response(200, json=envelope(environment_json())))
        seen = []

        async with FrontendClient(FRONTEND_API_URL, on_client=seen.append) as api:
            await api.environment.get()

        assert seen == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_meta_client_reported_then_raised(self):
        """Test an error envelope's meta.client is applied before the error is raised."""
        error_body = {
            'errors': [{'code': 'form_password_incorrect', 'message': 'Password is incorrect.'}],
            'meta': {'client': client_json(updated_at=42)},
        }
        respx.post(f'{API_BASE}/client/sign_ins/sia_1/attempt_first_factor').mock(
            return_value=Response(422, json=error_body)
        )
        seen = []

        async with FrontendClient(FRONTEND_API_URL, on_client=seen.append) as api:
            with pytest.raises(PasswordIncorrectError) as exc_info:
                await api.sign_ins.attempt_first_factor('sia_1', FactorStrategy.parse('password'), password='wrong')

        assert exc_info.value.status_code == 422
        assert seen[0].updated_at == 42

    @pytest.mark.asyncio
    @respx.mock
    async def test_undecodable_side_channel_ignored(self, caplog):
        respx.get(f'{API_BASE}/environment').mock(
            return_value=Response(200, json=envelope(environment_json(), client={'sessions': 'nope'}))
        )
        seen = []

        async with FrontendClient(FRONTEND_API_URL, on_client=seen.append) as api:
            await api.environment.get()

        assert seen == []
        assert 'undecodable client' in caplog.text


@pytest.mark.integration
class TestRetry:
    """Test retry of rate-limited and transient failures."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_retries_once_on_429(self):
        route = respx.get(f'{API_BASE}/environment').mock(
            side_effect=[
                Response(429, json={'errors': [{'code': 'too_many_requests', 'message': 'Slow down'}]}),
                Response(200, json=environment_json()),
            ]
        )

        async with FrontendClient(FRONTEND_API_URL, retry=FAST_RETRY) as api:
            environment = await api.environment.get()

        assert route.call_count == 2
        assert not environment.is_empty

    @pytest.mark.asyncio
    @respx.mock
    async def test_gives_up_after_one_retry(self):
        route = respx.get(f'{API_BASE}/environment').mock(
            return_value=Response(503, json={'errors': [{'code': 'service_unavailable', 'message': 'Down'}]})
        )

        async with FrontendClient(FRONTEND_API_URL, retry=FAST_RETRY) as api:
            with pytest.raises(APIResponseError) as exc_info:
                await api.environment.get()

        assert route.call_count == 2
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_retried(self):
        route = respx.get(f'{API_BASE}/environment').mock(
            side_effect=[httpx.ConnectError('connection refused'), Response(200, json=environment_json())]
        )

        async with FrontendClient(FRONTEND_API_URL, retry=FAST_RETRY) as api:
            await api.environment.get()

        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_retry_disabled(self):
        route = respx.get(f'{API_BASE}/environment').mock(return_value=Response(502, text='Bad Gateway'))

        async with FrontendClient(FRONTEND_API_URL, retry=RetryConfig(enabled=False)) as api:
            with pytest.raises(httpx.HTTPStatusError):
                await api.environment.get()

        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_errors_not_retried(self):
        route = respx.post(f'{API_BASE}/client/sessions/sess_missing/touch').mock(
            return_value=Response(404, json={'errors': [{'code': 'resource_not_found', 'message': 'Not found'}]})
        )

        async with FrontendClient(FRONTEND_API_URL, retry=FAST_RETRY) as api:
            with pytest.raises(ResourceNotFoundError):
                await api.sessions.touch('sess_missing')

        assert route.call_count == 1


@pytest.mark.integration
class TestResources:
    """Test resource sub-client paths and bodies."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_session_token_with_template(self):
        jwt = make_token()
        route = respx.post(f'{API_BASE}/client/sessions/sess_1/tokens/supabase').mock(
            return_value=Response(200, json={'object': 'token', 'jwt': jwt})
        )

        async with FrontendClient(FRONTEND_API_URL) as api:
            token = await api.sessions.token('sess_1', 'supabase')

        assert route.called
        assert token.jwt == jwt

    @pytest.mark.asyncio
    @respx.mock
    async def test_touch_sends_organization(self):
        route = respx.post(f'{API_BASE}/client/sessions/sess_1/touch').mock(
            return_value=Response(200, json=envelope(session_json(), client=signed_in_client_json()))
        )

        async with FrontendClient(FRONTEND_API_URL) as api:
            session = await api.sessions.touch('sess_1', active_organization_id='org_1')

        assert session.id == 'sess_1'
        assert _body(route) == {'active_organization_id': 'org_1'}

    @pytest.mark.asyncio
    @respx.mock
    async def test_remove_session(self):
        route = respx.post(f'{API_BASE}/client/sessions/sess_1/remove').mock(
            return_value=Response(200, json=envelope(session_json(status='removed')))
        )

        async with FrontendClient(FRONTEND_API_URL) as api:
            session = await api.sessions.remove('sess_1')

        assert route.called
        assert session.status.value == 'removed'

    @pytest.mark.asyncio
    @respx.mock
    async def test_prepare_first_factor_body(self):
        route = respx.post(f'{API_BASE}/client/sign_ins/sia_1/prepare_first_factor').mock(
            return_value=Response(200, json=envelope(sign_in_json()))
        )

        async with FrontendClient(FRONTEND_API_URL) as api:
            await api.sign_ins.prepare_first_factor(
                'sia_1', FactorStrategy.parse('email_code'), email_address_id='idn_email_1'
            )

        assert _body(route) == {'strategy': 'email_code', 'email_address_id': 'idn_email_1'}

    @pytest.mark.asyncio
    @respx.mock
    async def test_reload_sign_in_with_nonce(self):
        route = respx.get(f'{API_BASE}/client/sign_ins/sia_1').mock(
            return_value=Response(200, json=envelope(sign_in_json()))
        )

        async with FrontendClient(FRONTEND_API_URL) as api:
            await api.sign_ins.get('sia_1', rotating_token_nonce='nonce_1')

        params = route.calls.last.request.url.params
        assert params['rotating_token_nonce'] == 'nonce_1'
        assert params['_is_native'] == 'true'

    @pytest.mark.asyncio
    @respx.mock
    async def test_sign_up_update_uses_patch(self):
        route = respx.patch(f'{API_BASE}/client/sign_ups/sua_1').mock(
            return_value=Response(200, json=envelope(sign_up_json(username='ada')))
        )

        async with FrontendClient(FRONTEND_API_URL) as api:
            sign_up = await api.sign_ups.update('sua_1', {'username': 'ada'})

        assert sign_up.username == 'ada'
        assert _body(route) == {'username': 'ada'}

    @pytest.mark.asyncio
    @respx.mock
    async def test_attestation_endpoints(self):
        challenge = respx.post(f'{API_BASE}/client/device_attestation/challenges').mock(
            return_value=Response(200, json={'challenge': 'chal_1'})
        )
        verify = respx.post(f'{API_BASE}/client/device_attestation/verify').mock(return_value=Response(200, json={}))
        assertion = respx.post(f'{API_BASE}/client/verify').mock(return_value=Response(200, json={}))

        async with FrontendClient(FRONTEND_API_URL) as api:
            assert await api.attestation.challenge() == 'chal_1'
            await api.attestation.verify('key_1', 'chal_1', 'YXR0', 'com.example.app')
            await api.attestation.assert_device('{}', 'c2ln', 'chal_1', None)

        assert challenge.called
        assert _body(verify)['key_id'] == 'key_1'
        assert _body(assertion)['platform'] == 'python'

    @pytest.mark.asyncio
    @respx.mock
    async def test_destroy_client(self):
        route = respx.delete(f'{API_BASE}/client').mock(return_value=Response(200, json=envelope(client_json())))

        async with FrontendClient(FRONTEND_API_URL) as api:
            client = await api.client.destroy()

        assert route.called
        assert client.sessions == []
