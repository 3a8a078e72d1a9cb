"""Peer IDs and simple allow/deny policies over them."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterable
from dataclasses import dataclass

_B58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_LIBP2P_KEY_CODEC = 0x72


class PeerIDError(ValueError):
    """A peer ID could not be decoded."""


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
            raise PeerIDError(f"invalid base58 character {ch!r}")
        number = number * 58 + _B58.index(ch)
    zeros = len(text) - len(text.lstrip("1"))
    return b"\0" * zeros + number.to_bytes((number.bit_length() + 7) // 8, "big")


def _uvarint(data: bytes, pos: int) -> tuple[int, int]:
    value = shift = 0
    for count, byte in enumerate(data[pos : pos + 9], start=1):
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos + count
        shift += 7
    raise PeerIDError("invalid varint")


@dataclass(frozen=True)
class PeerID:
    """A peer identity: the raw multihash of a peer's public key."""

    raw: bytes

    @classmethod
    def decode(cls, text: str) -> PeerID:
        """Decode a base58 peer ID or a CID-encoded one."""
        if text.startswith(("Qm", "1")):
            raw = _b58decode(text)
        else:
            prefix, rest = text[:1], text[1:]
            if prefix == "z":
                data = _b58decode(rest)
            elif prefix == "b":
                try:
                    data = base64.b32decode(rest.upper() + "=" * (-len(rest) % 8))
                except (binascii.Error, ValueError) as err:
                    raise PeerIDError(f"invalid base32 text: {err}") from err
            else:
                raise PeerIDError(f"unsupported multibase prefix {prefix!r}")
            version, pos = _uvarint(data, 0)
            if version != 1:
                raise PeerIDError(f"unsupported cid version {version}")
            codec, pos = _uvarint(data, pos)
            if codec != _LIBP2P_KEY_CODEC:
                raise PeerIDError(f"can't convert CID of type {codec:#x} to a peer ID")
            raw = data[pos:]
        _, pos = _uvarint(raw, 0)
        length, pos = _uvarint(raw, pos)
        if len(raw) - pos != length:
            raise PeerIDError("multihash length does not match digest")
        return cls(raw)

    def __str__(self) -> str:
        return _b58encode(self.raw)


class Policy:
    """A default boolean with a set of peers for which it is inverted."""

    def __init__(self, value: bool, *args: PeerID) -> None:
        self._value = bool(value)
        self._except: dict[PeerID, None] = dict.fromkeys(args)

    @classmethod
    def from_strings(cls, value: bool, except_ids: Iterable[str] | None) -> Policy:
        """Build a policy from peer ID strings; raise PeerIDError on a bad one."""
        peers = []
        for text in except_ids or ():
            try:
                peers.append(PeerID.decode(text))
            except PeerIDError as err:
                raise PeerIDError(f'error decoding peer id "{text}": {err}') from err
        return cls(value, *peers)

    def eval(self, peer_id: PeerID) -> bool:
        """Return the value that applies to ``peer_id``."""
        return (peer_id in self._except) != self._value

    def any(self, value: bool) -> bool:
        """Return whether ``value`` can be the result for some peer."""
        return value == self._value or bool(self._except)

    def set_peer(self, peer_id: PeerID, value: bool) -> bool:
        """Make ``peer_id`` evaluate to ``value``; return whether anything changed."""
        excepted = peer_id in self._except
        if value != self._value and not excepted:
            self._except[peer_id] = None
            return True
        if value == self._value and excepted:
            del self._except[peer_id]
            return True
        return False

    def default(self) -> bool:
        """Return the default value."""
        return self._value

    def except_ids(self) -> list[PeerID]:
        """Return the excepted peers."""
        return list(self._except)

    def except_strings(self) -> list[str]:
        """Return the excepted peers as strings."""
        return [str(peer_id) for peer_id in self._except]