"""
Minimal CBOR Decoder

Decodes the subset of RFC 8949 that WebAuthn relies on:
- Major type 0: unsigned integer
- Major type 1: negative integer
- Major type 2: byte string
- Major type 3: text string
- Major type 4: array
- Major type 5: map

Attestation objects (a map of authData, fmt, attStmt) and COSE keys
(integer-keyed maps) fit entirely inside this subset. Tags, floats and
simple values (major types 6 and 7) are rejected.
"""

from __future__ import annotations

import struct
from typing import Any, Union

CborValue = Union[int, bytes, str, list, dict]


class CborError(ValueError):
    """Base class for CBOR decoding failures."""


class UnsupportedEncoding(CborError):
    """Length/argument encoding outside the supported subset."""


class UnsupportedMajorType(CborError):
    """Major type 6 (tag) or 7 (float/simple) encountered."""


class TruncatedInput(CborError):
    """The cursor ran past the end of the buffer."""


class _Cursor:
    """Single forward pass over a byte buffer."""

    __slots__ = ("data", "offset")

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.offset = 0

    def read(self, n: int) -> bytes:
        end = self.offset + n
        if end > len(self.data):
            raise TruncatedInput(
                f"CBOR: need {n} bytes at offset {self.offset}, "
                f"only {len(self.data) - self.offset} left"
            )
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def read_uint8(self) -> int:
        return self.read(1)[0]

    def read_argument(self, additional_info: int) -> int:
        if additional_info < 24:
            return additional_info
        if additional_info == 24:
            return self.read_uint8()
        if additional_info == 25:
            return struct.unpack(">H", self.read(2))[0]
        if additional_info == 26:
            return struct.unpack(">I", self.read(4))[0]
        # 27 (8-byte) and 28-31 (reserved/indefinite) are not supported
        raise UnsupportedEncoding(
            f"CBOR: unsupported length encoding (additional info {additional_info})"
        )

    def decode_item(self) -> CborValue:
        initial = self.read_uint8()
        major_type = initial >> 5
        additional_info = initial & 0x1F

        if major_type == 0:
            return self.read_argument(additional_info)

        if major_type == 1:
            return -1 - self.read_argument(additional_info)

        if major_type == 2:
            return bytes(self.read(self.read_argument(additional_info)))

        if major_type == 3:
            raw = self.read(self.read_argument(additional_info))
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CborError(f"CBOR: invalid UTF-8 in text string: {e}") from e

        if major_type == 4:
            length = self.read_argument(additional_info)
            return [self.decode_item() for _ in range(length)]

        if major_type == 5:
            length = self.read_argument(additional_info)
            result: dict[Any, CborValue] = {}
            for _ in range(length):
                key = self.decode_item()
                if isinstance(key, (list, dict)):
                    raise CborError("CBOR: unhashable map key")
                result[key] = self.decode_item()
            return result

        raise UnsupportedMajorType(f"CBOR: unsupported major type {major_type}")


def decode_cbor(data: bytes) -> CborValue:
    """
    Decode one CBOR value from the start of ``data``.

    Trailing bytes after the first complete item are ignored, which is what
    attestation parsing needs when a COSE key is followed by extension data.
    """
    return _Cursor(bytes(data)).decode_item()


def decode_cbor_prefix(data: bytes) -> tuple[CborValue, int]:
    """Decode one CBOR value and return it with the number of bytes consumed."""
    cursor = _Cursor(bytes(data))
    value = cursor.decode_item()
    return value, cursor.offset
