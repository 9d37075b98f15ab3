"""
passgate Configuration

Two layers:
- PassgateSettings: scalar settings (secret, TTLs, WebAuthn RP) loaded from
  the environment (PASSGATE_ prefix) or a JSON file, type-checked by Pydantic
- AuthConfig: the runtime configuration handed to ``Auth``, bundling the
  injected storage, codecs and transports with the validated settings

All durations are seconds. ``None`` is the only "forever" value.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from passgate.adapters.base import OtpTransport, SessionTransport, StorageAdapter
from passgate.tokens.base import RegistrationCodec, SessionCodec
from passgate.tokens.registration import HmacRegistrationCodec
from passgate.tokens.session import HmacSessionCodec
from passgate.webauthn.types import ResidentKeyRequirement, UserVerificationRequirement


class ConfigurationError(ValueError):
    """The auth configuration is incomplete or inconsistent."""


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class WebAuthnSettings(BaseModel):
    """Relying party and ceremony settings."""
    rp_id: str = "localhost"
    rp_name: str = "passgate"
    origin: Optional[str] = None  # defaults to https://{rp_id}
    challenge_ttl: float = 300.0
    timeout_ms: int = 60000  # browser-side ceremony timeout
    require_user_verification: bool = False
    user_verification: UserVerificationRequirement = UserVerificationRequirement.PREFERRED
    resident_key: ResidentKeyRequirement = ResidentKeyRequirement.PREFERRED

    @property
    def expected_origin(self) -> str:
        return self.origin or f"https://{self.rp_id}"

    @field_validator("rp_id")
    @classmethod
    def rp_id_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("rp_id must not be empty")
        return v

    @field_validator("challenge_ttl")
    @classmethod
    def challenge_ttl_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("challenge_ttl must be positive")
        return v


class SessionSettings(BaseModel):
    """Session lifetime settings."""
    ttl: Optional[float] = 30 * 24 * 60 * 60  # inactivity window; None = forever
    token_ttl: float = 600.0  # revocation-check window

    @property
    def is_forever(self) -> bool:
        return self.ttl is None


class OtpSettings(BaseModel):
    """One-time password settings."""
    ttl: float = 600.0
    length: int = Field(default=6, ge=4, le=10)


class RegistrationSettings(BaseModel):
    """Registration token settings."""
    ttl: float = 300.0


class PassgateSettings(BaseSettings):
    """
    Main passgate settings.

    Environment variables are prefixed with PASSGATE_ and nested with "__"
    (e.g., PASSGATE_WEBAUTHN__RP_ID=example.com).
    """

    secret: str
    debug: bool = False
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "text"] = "json"

    webauthn: WebAuthnSettings = Field(default_factory=WebAuthnSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    otp: OtpSettings = Field(default_factory=OtpSettings)
    registration: RegistrationSettings = Field(default_factory=RegistrationSettings)

    model_config = {
        "env_prefix": "PASSGATE_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }

    @field_validator("secret")
    @classmethod
    def secret_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("secret must not be empty")
        return v

    @classmethod
    def from_file(cls, config_path: Path) -> "PassgateSettings":
        """Load settings from a JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_data = json.load(f)

        return cls(**config_data)


@dataclass
class AuthConfig:
    """
    Runtime configuration for ``Auth``.

    Everything is validated here, once, rather than on each call.
    """

    storage: StorageAdapter
    session_codec: SessionCodec
    registration_codec: RegistrationCodec
    otp_transport: OtpTransport
    session_transport: SessionTransport
    webauthn: WebAuthnSettings = field(default_factory=WebAuthnSettings)
    session: SessionSettings = field(default_factory=SessionSettings)
    otp: OtpSettings = field(default_factory=OtpSettings)
    debug: bool = False

    def __post_init__(self) -> None:
        missing = [
            name
            for name in (
                "storage",
                "session_codec",
                "registration_codec",
                "otp_transport",
                "session_transport",
            )
            if getattr(self, name) is None
        ]
        if missing:
            raise ConfigurationError(f"Missing auth components: {', '.join(missing)}")

        for part in ("otp", "session", "credential"):
            if getattr(self.storage, part, None) is None:
                raise ConfigurationError(f"Storage adapter has no '{part}' store")

        if self.session.ttl is not None and self.session.ttl <= 0:
            raise ConfigurationError("session ttl must be positive or None (forever)")

        if getattr(self.otp_transport, "ttl", 0) <= 0:
            raise ConfigurationError("OTP transport ttl must be positive")

    @classmethod
    def from_settings(
        cls,
        settings: PassgateSettings,
        storage: StorageAdapter,
        otp_transport: OtpTransport,
        session_transport: SessionTransport,
        **overrides: Any,
    ) -> "AuthConfig":
        """Build a config with HMAC codecs keyed by ``settings.secret``."""

        values: dict[str, Any] = {
            "storage": storage,
            "session_codec": HmacSessionCodec(settings.secret, token_ttl=settings.session.token_ttl),
            "registration_codec": HmacRegistrationCodec(settings.secret, ttl=settings.registration.ttl),
            "otp_transport": otp_transport,
            "session_transport": session_transport,
            "webauthn": settings.webauthn,
            "session": settings.session,
            "otp": settings.otp,
            "debug": settings.debug,
        }
        values.update(overrides)
        return cls(**values)


# Global settings instance (lazy loaded)
_settings: Optional[PassgateSettings] = None


def get_settings() -> PassgateSettings:
    """Get the global passgate settings instance."""
    global _settings
    if _settings is None:
        _settings = PassgateSettings()
    return _settings


def set_settings(settings: PassgateSettings) -> None:
    """Set the global passgate settings instance."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset the global settings to default."""
    global _settings
    _settings = None
