"""Unit tests for resource models and strategy parsing."""

import pytest
from pydantic import ValidationError

from sessionkit.models import (
    Client,
    DeviceAttestationMode,
    Environment,
    Factor,
    FactorStrategy,
    SessionStatus,
    SignIn,
    SignInStatus,
    SignUp,
    StrategyKind,
)
from tests.fixtures.factories import client_json, environment_json, session_json, sign_in_json, sign_up_json


@pytest.mark.unit
class TestFactorStrategy:
    """Test strategy parsing and wire serialization"""

    @pytest.mark.parametrize(
        'raw,kind',
        [
            ('password', StrategyKind.PASSWORD),
            ('email_code', StrategyKind.EMAIL_CODE),
            ('phone_code', StrategyKind.PHONE_CODE),
            ('passkey', StrategyKind.PASSKEY),
            ('totp', StrategyKind.TOTP),
            ('reset_password_email_code', StrategyKind.RESET_PASSWORD_EMAIL_CODE),
        ],
    )
    def test_parse_simple_kinds(self, raw, kind):
        strategy = FactorStrategy.parse(raw)
        assert strategy.kind is kind
        assert strategy.raw_value == raw

    def test_parse_oauth_provider(self):
        strategy = FactorStrategy.parse('oauth_google')
        assert strategy.kind is StrategyKind.OAUTH
        assert strategy.provider == 'google'
        assert strategy == FactorStrategy.oauth('google')

    def test_id_token_prefix_wins_over_oauth(self):
        """oauth_token_apple is an ID token strategy, not an OAuth provider named token_apple"""
        strategy = FactorStrategy.parse('oauth_token_apple')
        assert strategy.kind is StrategyKind.ID_TOKEN
        assert strategy.provider == 'apple'
        assert strategy.raw_value == 'oauth_token_apple'

    def test_unknown_strategy_keeps_raw_value(self):
        strategy = FactorStrategy.parse('web3_metamask_signature')
        assert strategy.kind is StrategyKind.UNKNOWN
        assert str(strategy) == 'web3_metamask_signature'

    def test_bare_prefix_is_unknown(self):
        assert FactorStrategy.parse('oauth_').kind is StrategyKind.UNKNOWN

    def test_provider_required(self):
        with pytest.raises(ValueError):
            FactorStrategy(StrategyKind.OAUTH)

    def test_immutable(self):
        strategy = FactorStrategy.parse('password')
        with pytest.raises(AttributeError):
            strategy.foo = 'bar'

    def test_usable_as_dict_key(self):
        lookup = {FactorStrategy.parse('email_code'): 1}
        assert lookup[FactorStrategy(StrategyKind.EMAIL_CODE)] == 1

    def test_classification(self):
        assert FactorStrategy.parse('reset_password_phone_code').is_reset_password
        assert FactorStrategy.parse('oauth_github').is_external
        assert FactorStrategy.parse('saml').is_external
        assert not FactorStrategy.parse('password').is_external

    def test_factor_round_trips_strategy_as_string(self):
        factor = Factor.model_validate({'strategy': 'oauth_token_google', 'safe_identifier': 'a***@example.com'})
        dumped = factor.model_dump(mode='json')
        assert dumped['strategy'] == 'oauth_token_google'
        assert Factor.model_validate(dumped) == factor


@pytest.mark.unit
class TestClient:
    """Test Client aggregate helpers"""

    def test_active_session_filter_excludes_pending(self):
        """A pending last-active session is not an active session"""
        client = Client.model_validate(
            client_json(
                sessions=[session_json('sess_1', status='pending', tasks=['choose-organization'])],
                last_active_session_id='sess_1',
            )
        )

        assert client.active_sessions == []
        assert client.active_session is None
        assert client.last_active_session.id == 'sess_1'
        assert client.last_active_session.task_keys == ['choose-organization']

    def test_active_sessions_only_active_status(self):
        client = Client.model_validate(
            client_json(
                sessions=[
                    session_json('sess_1', status='active'),
                    session_json('sess_2', status='ended'),
                    session_json('sess_3', status='revoked'),
                    session_json('sess_4', status='active'),
                ],
                last_active_session_id='sess_4',
            )
        )

        assert [s.id for s in client.active_sessions] == ['sess_1', 'sess_4']
        assert client.active_session.id == 'sess_4'

    def test_ended_last_active_session_is_not_current(self):
        client = Client.model_validate(
            client_json(sessions=[session_json('sess_1', status='expired')], last_active_session_id='sess_1')
        )
        assert client.last_active_session is None

    def test_unknown_session_status_decodes(self):
        client = Client.model_validate(client_json(sessions=[session_json('sess_1', status='brand_new_status')]))
        assert client.sessions[0].status is SessionStatus.UNKNOWN

    def test_session_identifier_from_public_user_data(self):
        client = Client.model_validate(client_json(sessions=[session_json('sess_1', identifier='ada@example.com')]))
        assert client.session_by_id('sess_1').identifier == 'ada@example.com'
        assert client.session_by_id('sess_missing') is None

    def test_json_round_trip(self):
        client = Client.model_validate(
            client_json(
                sessions=[session_json()],
                last_active_session_id='sess_1',
                sign_in=sign_in_json(),
                sign_up=sign_up_json(),
            )
        )
        assert Client.model_validate_json(client.model_dump_json()) == client

    def test_frozen(self):
        client = Client.model_validate(client_json())
        with pytest.raises(ValidationError):
            client.id = 'other'

    def test_extra_fields_ignored(self):
        client = Client.model_validate(client_json(object='client', captcha_bypass=False))
        assert client.id == 'client_1'


@pytest.mark.unit
class TestAttempts:
    """Test SignIn/SignUp decoding"""

    def test_sign_in_unknown_status(self):
        sign_in = SignIn.model_validate(sign_in_json(status='needs_client_trust'))
        assert sign_in.status is SignInStatus.UNKNOWN
        assert not sign_in.is_terminal

    def test_identifying_first_factor(self):
        sign_in = SignIn.model_validate(sign_in_json())
        factor = sign_in.identifying_first_factor(FactorStrategy.parse('email_code'))
        assert factor.email_address_id == 'idn_email_1'
        assert sign_in.identifying_first_factor(FactorStrategy.parse('password')) is None

    def test_sign_up_identifier_and_verifications(self):
        sign_up = SignUp.model_validate(
            sign_up_json(verifications={'email_address': {'status': 'unverified', 'strategy': 'email_code'}})
        )
        assert sign_up.identifier == 'new@example.com'
        assert sign_up.verification('email_address').strategy == FactorStrategy.parse('email_code')
        assert sign_up.verification('phone_number') is None


@pytest.mark.unit
class TestEnvironment:
    """Test Environment empty state and derived settings"""

    def test_default_is_empty(self):
        environment = Environment()
        assert environment.is_empty
        assert environment.device_attestation_mode is DeviceAttestationMode.DISABLED
        assert not environment.requires_attestation

    def test_populated_is_not_empty(self):
        assert not Environment.model_validate(environment_json()).is_empty

    @pytest.mark.parametrize('mode,required', [('disabled', False), ('onboarding', True), ('enforced', True)])
    def test_requires_attestation(self, mode, required):
        environment = Environment.model_validate(environment_json(attestation=mode))
        assert environment.requires_attestation is required

    def test_unknown_attestation_mode_is_disabled(self):
        environment = Environment.model_validate(environment_json(attestation='strict'))
        assert environment.device_attestation_mode is DeviceAttestationMode.DISABLED
