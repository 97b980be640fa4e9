"""Instance configuration published by the Frontend API."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from .common import Resource


class DeviceAttestationMode(str, Enum):
    DISABLED = 'disabled'
    ONBOARDING = 'onboarding'
    ENFORCED = 'enforced'

    @classmethod
    def _missing_(cls, value):
        return cls.DISABLED


class PreferredSignInStrategy(str, Enum):
    PASSWORD = 'password'
    OTP = 'otp'

    @classmethod
    def _missing_(cls, value):
        return cls.PASSWORD


class AuthConfig(Resource):
    id: Optional[str] = None
    single_session_mode: bool = True


class DisplayConfig(Resource):
    application_name: Optional[str] = None
    instance_environment_type: Optional[str] = None
    preferred_sign_in_strategy: PreferredSignInStrategy = PreferredSignInStrategy.PASSWORD
    home_url: Optional[str] = None


class UserSettings(Resource):
    attributes: Dict[str, Any] = Field(default_factory=dict)
    social: Dict[str, Any] = Field(default_factory=dict)
    sign_in: Dict[str, Any] = Field(default_factory=dict)
    sign_up: Dict[str, Any] = Field(default_factory=dict)
    passkey_settings: Dict[str, Any] = Field(default_factory=dict)


class NativeFraudSettings(Resource):
    device_attestation_mode: DeviceAttestationMode = DeviceAttestationMode.DISABLED


class FraudSettings(Resource):
    native: NativeFraudSettings = Field(default_factory=NativeFraudSettings)


class Environment(Resource):
    """Remote-authority configuration snapshot.

    An ``Environment()`` with every section unset is the empty state: a valid value,
    distinguishable via ``is_empty``, meaning no configuration has been received yet.
    """

    auth_config: Optional[AuthConfig] = None
    display_config: Optional[DisplayConfig] = None
    user_settings: Optional[UserSettings] = None
    fraud_settings: Optional[FraudSettings] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.auth_config is None
            and self.display_config is None
            and self.user_settings is None
            and self.fraud_settings is None
        )

    @property
    def device_attestation_mode(self) -> DeviceAttestationMode:
        if self.fraud_settings is None:
            return DeviceAttestationMode.DISABLED
        return self.fraud_settings.native.device_attestation_mode

    @property
    def requires_attestation(self) -> bool:
        return self.device_attestation_mode in (DeviceAttestationMode.ONBOARDING, DeviceAttestationMode.ENFORCED)

    @property
    def preferred_sign_in_strategy(self) -> PreferredSignInStrategy:
        if self.display_config is None:
            return PreferredSignInStrategy.PASSWORD
        return self.display_config.preferred_sign_in_strategy
