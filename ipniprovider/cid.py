"""Content identifiers (CIDs) and the unsigned varints they are built from."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

IDENTITY = 0x00
SHA2_256 = 0x12
SHA3_256 = 0x16
RAW = 0x55
DAG_PB = 0x70
DAG_CBOR = 0x71

_MAX_VARINT_LEN = 9
_B58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


class CidError(ValueError):
    """A CID or varint could not be decoded."""


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer as an unsigned LEB128 varint."""
    if value < 0:
        raise ValueError("varint cannot be negative")
    out = bytearray()
    while value > 0x7F:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a varint at ``offset``; return the value and the offset after it."""
    value = shift = 0
    for count, byte in enumerate(data[offset : offset + _MAX_VARINT_LEN], start=1):
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            if byte == 0 and count > 1:
                raise CidError("varint not minimally encoded")
            return value, offset + count
        shift += 7
    raise CidError("varint too long" if len(data) - offset >= _MAX_VARINT_LEN else "varint truncated")


def _parse_multihash(mh: bytes) -> tuple[int, bytes]:
    code, pos = decode_varint(mh, 0)
    length, pos = decode_varint(mh, pos)
    if len(mh) - pos != length:
        raise CidError("multihash length does not match digest")
    return code, mh[pos:]


def _b58encode(data: bytes) -> str:
    number = int.from_bytes(data, "big")
    digits = ""
    while number:
        number, rem = divmod(number, 58)
        digits = _B58[rem] + digits
    return "1" * (len(data) - len(data.lstrip(b"\0"))) + digits


def _b58decode(text: str) -> bytes:
    number = 0
    for ch in text:
        if ch not in _B58:
            raise CidError(f"invalid base58 character {ch!r}")
        number = number * 58 + _B58.index(ch)
    zeros = len(text) - len(text.lstrip("1"))
    return b"\0" * zeros + number.to_bytes((number.bit_length() + 7) // 8, "big")


@dataclass(frozen=True)
class Cid:
    """A content identifier: version, content codec and multihash."""

    version: int
    codec: int
    multihash: bytes

    @classmethod
    def new_v1(cls, codec: int, multihash: bytes) -> Cid:
        """Build a version 1 CID; raise CidError on a malformed multihash."""
        multihash = bytes(multihash)
        _parse_multihash(multihash)
        return cls(1, codec, multihash)

    @classmethod
    def from_bytes(cls, data: bytes) -> Cid:
        """Decode the binary form of a CID, which must make up all of ``data``."""
        data = bytes(data)
        if len(data) == 34 and data[:2] == bytes([SHA2_256, 0x20]):
            return cls(0, DAG_PB, data)
        version, pos = decode_varint(data, 0)
        if version != 1:
            raise CidError(f"invalid cid version {version}")
        codec, pos = decode_varint(data, pos)
        return cls.new_v1(codec, data[pos:])

    @classmethod
    def decode(cls, text: str) -> Cid:
        """Decode the string form of a CID (base58 v0, base32 or base58btc v1)."""
        if len(text) == 46 and text.startswith("Qm"):
            return cls.from_bytes(_b58decode(text))
        prefix, body = text[:1], text[1:]
        if prefix in ("b", "B"):
            try:
                data = base64.b32decode(body.upper() + "=" * (-len(body) % 8))
            except (binascii.Error, ValueError) as err:
                raise CidError(f"invalid base32 text: {err}") from err
        elif prefix == "z":
            data = _b58decode(body)
        else:
            raise CidError("cid too short" if not text else f"unsupported multibase prefix {prefix!r}")
        return cls.from_bytes(data)

    @property
    def hash_code(self) -> int:
        """The multihash function code."""
        return _parse_multihash(self.multihash)[0]

    @property
    def digest(self) -> bytes:
        """The raw digest inside the multihash."""
        return _parse_multihash(self.multihash)[1]

    def to_bytes(self) -> bytes:
        """Return the binary form of this CID."""
        if self.version == 0:
            return self.multihash
        return encode_varint(self.version) + encode_varint(self.codec) + self.multihash

    def __str__(self) -> str:
        if self.version == 0:
            return _b58encode(self.multihash)
        return "b" + base64.b32encode(self.to_bytes()).decode("ascii").lower().rstrip("=")

    def __repr__(self) -> str:
        return f"Cid({self})"