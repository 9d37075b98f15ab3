"""
passgate core configuration.
"""

from passgate.core.config import (
    AuthConfig,
    ConfigurationError,
    LogLevel,
    OtpSettings,
    PassgateSettings,
    RegistrationSettings,
    SessionSettings,
    WebAuthnSettings,
    get_settings,
    reset_settings,
    set_settings,
)

__all__ = [
    "AuthConfig",
    "ConfigurationError",
    "LogLevel",
    "OtpSettings",
    "PassgateSettings",
    "RegistrationSettings",
    "SessionSettings",
    "WebAuthnSettings",
    "get_settings",
    "reset_settings",
    "set_settings",
]
