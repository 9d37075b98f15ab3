"""
passgate WebAuthn verifier

Registration and authentication ceremony verification for ES256 passkeys.
"""

from passgate.webauthn.authdata import (
    decode_client_data,
    der_to_raw,
    load_stored_public_key,
    parse_authenticator_data,
    serialize_cose_key,
)
from passgate.webauthn.errors import WebAuthnError, WebAuthnFailure
from passgate.webauthn.types import (
    AuthenticationCredential,
    AuthenticationOptions,
    AuthenticatorData,
    ClientData,
    COSEAlgorithm,
    CredentialRecord,
    RegistrationCredential,
    RegistrationOptions,
    ResidentKeyRequirement,
    StoredCredential,
    UserVerificationRequirement,
    VerifiedAuthentication,
    VerifiedRegistration,
)
from passgate.webauthn.verify import (
    verify_authentication_credential,
    verify_registration_credential,
)

__all__ = [
    # Verification
    "verify_registration_credential",
    "verify_authentication_credential",
    # Parsing
    "decode_client_data",
    "der_to_raw",
    "load_stored_public_key",
    "parse_authenticator_data",
    "serialize_cose_key",
    # Errors
    "WebAuthnError",
    "WebAuthnFailure",
    # Types
    "AuthenticationCredential",
    "AuthenticationOptions",
    "AuthenticatorData",
    "ClientData",
    "COSEAlgorithm",
    "CredentialRecord",
    "RegistrationCredential",
    "RegistrationOptions",
    "ResidentKeyRequirement",
    "StoredCredential",
    "UserVerificationRequirement",
    "VerifiedAuthentication",
    "VerifiedRegistration",
]
