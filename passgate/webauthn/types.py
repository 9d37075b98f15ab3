"""
WebAuthn data types.

Wire-facing credential payloads (the JSON a browser posts back after
``navigator.credentials.create()``/``get()``), the stored credential record,
parsed authenticator data, and the options sent to the browser.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class COSEAlgorithm(int, Enum):
    """COSE algorithm identifiers."""
    ES256 = -7      # ECDSA w/ SHA-256 on P-256


class COSEKeyType(int, Enum):
    """COSE key type identifiers."""
    EC2 = 2


class UserVerificationRequirement(str, Enum):
    REQUIRED = "required"
    PREFERRED = "preferred"
    DISCOURAGED = "discouraged"


class ResidentKeyRequirement(str, Enum):
    REQUIRED = "required"
    PREFERRED = "preferred"
    DISCOURAGED = "discouraged"


@dataclass
class StoredCredential:
    """A registered passkey as persisted by the storage adapter."""
    id: str  # base64url credential id
    public_key: bytes  # uncompressed P-256 point: 0x04 || x || y
    counter: int = 0
    transports: list[str] = field(default_factory=list)


@dataclass
class CredentialRecord:
    """A stored credential together with its owner."""
    user_id: str
    credential: StoredCredential


@dataclass
class ClientData:
    """Decoded clientDataJSON."""
    type: str
    challenge: str
    origin: str
    cross_origin: bool = False


@dataclass
class AttestedCredentialData:
    aaguid: bytes
    credential_id: bytes
    cose_key: dict[Any, Any]


@dataclass
class AuthenticatorData:
    """Parsed authenticator data structure."""
    rp_id_hash: bytes
    flags: int
    sign_count: int
    attested_credential_data: Optional[AttestedCredentialData] = None

    @property
    def user_present(self) -> bool:
        return bool(self.flags & 0x01)

    @property
    def user_verified(self) -> bool:
        return bool(self.flags & 0x04)

    @property
    def has_attested_credential_data(self) -> bool:
        return bool(self.flags & 0x40)

    @property
    def has_extension_data(self) -> bool:
        return bool(self.flags & 0x80)


@dataclass
class RegistrationCredential:
    """Credential returned by navigator.credentials.create()."""
    id: str
    raw_id: str
    client_data_json: str
    attestation_object: str
    transports: list[str] = field(default_factory=list)
    authenticator_attachment: Optional[str] = None
    client_extension_results: dict[str, Any] = field(default_factory=dict)
    type: str = "public-key"

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "RegistrationCredential":
        """Build from the browser's JSON (camelCase) representation."""
        response = data["response"]
        return cls(
            id=data["id"],
            raw_id=data.get("rawId", data["id"]),
            client_data_json=response["clientDataJSON"],
            attestation_object=response["attestationObject"],
            transports=list(response.get("transports") or []),
            authenticator_attachment=data.get("authenticatorAttachment"),
            client_extension_results=data.get("clientExtensionResults") or {},
            type=data.get("type", "public-key"),
        )


@dataclass
class AuthenticationCredential:
    """Credential returned by navigator.credentials.get()."""
    id: str
    raw_id: str
    client_data_json: str
    authenticator_data: str
    signature: str
    user_handle: Optional[str] = None
    authenticator_attachment: Optional[str] = None
    client_extension_results: dict[str, Any] = field(default_factory=dict)
    type: str = "public-key"

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "AuthenticationCredential":
        """Build from the browser's JSON (camelCase) representation."""
        response = data["response"]
        return cls(
            id=data["id"],
            raw_id=data.get("rawId", data["id"]),
            client_data_json=response["clientDataJSON"],
            authenticator_data=response["authenticatorData"],
            signature=response["signature"],
            user_handle=response.get("userHandle"),
            authenticator_attachment=data.get("authenticatorAttachment"),
            client_extension_results=data.get("clientExtensionResults") or {},
            type=data.get("type", "public-key"),
        )


@dataclass
class VerifiedRegistration:
    credential_id: str
    public_key: bytes
    counter: int
    transports: list[str] = field(default_factory=list)


@dataclass
class VerifiedAuthentication:
    counter: int


@dataclass
class RegistrationOptions:
    """PublicKeyCredentialCreationOptions, serialized for the browser."""
    challenge: str
    rp_id: str
    rp_name: str
    user_id: str  # base64url user handle
    user_name: str
    user_display_name: str
    timeout: int = 60000
    exclude_credentials: list[str] = field(default_factory=list)
    resident_key: ResidentKeyRequirement = ResidentKeyRequirement.PREFERRED
    user_verification: UserVerificationRequirement = UserVerificationRequirement.PREFERRED

    def to_json(self) -> dict[str, Any]:
        return {
            "challenge": self.challenge,
            "rp": {"name": self.rp_name, "id": self.rp_id},
            "user": {
                "id": self.user_id,
                "name": self.user_name,
                "displayName": self.user_display_name,
            },
            "pubKeyCredParams": [
                {"type": "public-key", "alg": COSEAlgorithm.ES256.value},
            ],
            "timeout": self.timeout,
            "attestation": "none",
            "excludeCredentials": [
                {"id": cred_id, "type": "public-key"}
                for cred_id in self.exclude_credentials
            ],
            "authenticatorSelection": {
                "residentKey": self.resident_key.value,
                "userVerification": self.user_verification.value,
            },
        }


@dataclass
class AuthenticationOptions:
    """PublicKeyCredentialRequestOptions, serialized for the browser."""
    challenge: str
    rp_id: str
    timeout: int = 60000
    user_verification: UserVerificationRequirement = UserVerificationRequirement.PREFERRED

    def to_json(self) -> dict[str, Any]:
        # Empty allowCredentials: discoverable credential flow
        return {
            "challenge": self.challenge,
            "rpId": self.rp_id,
            "timeout": self.timeout,
            "userVerification": self.user_verification.value,
            "allowCredentials": [],
        }
