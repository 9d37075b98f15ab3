"""
passgate binary codecs

CBOR subset decoding and the base64url/HMAC/SHA-256 primitives.
"""

from passgate.codec.cbor import (
    CborError,
    CborValue,
    TruncatedInput,
    UnsupportedEncoding,
    UnsupportedMajorType,
    decode_cbor,
    decode_cbor_prefix,
)
from passgate.codec.crypto import (
    base64url_decode,
    base64url_encode,
    decode_payload,
    encode_payload,
    hmac_sign,
    hmac_verify,
    sha256,
)

__all__ = [
    # CBOR
    "CborError",
    "CborValue",
    "TruncatedInput",
    "UnsupportedEncoding",
    "UnsupportedMajorType",
    "decode_cbor",
    "decode_cbor_prefix",
    # Crypto
    "base64url_decode",
    "base64url_encode",
    "decode_payload",
    "encode_payload",
    "hmac_sign",
    "hmac_verify",
    "sha256",
]
