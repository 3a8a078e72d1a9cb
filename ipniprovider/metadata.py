"""Advertisement metadata: the retrieval transports a provider supports."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import ClassVar, Union

import cbor2

from ipniprovider.cid import Cid, CidError, decode_varint, encode_varint

TRANSPORT_BITSWAP = 0x0900
TRANSPORT_GRAPHSYNC_FILECOINV1 = 0x0910
TRANSPORT_IPFS_GATEWAY_HTTP = 0x0920

_CID_TAG = 42


class MetadataError(ValueError):
    """Metadata could not be decoded."""


class _NoPayload:
    def _encode_payload(self) -> bytes:
        return b""

    @classmethod
    def _decode_payload(cls, data: bytes, pos: int):
        return cls(), pos


@dataclass(frozen=True)
class Bitswap(_NoPayload):
    """Retrieval over Bitswap; carries no data."""

    code: ClassVar[int] = TRANSPORT_BITSWAP


@dataclass(frozen=True)
class HTTPV1(_NoPayload):
    """Retrieval over the HTTP gateway protocol; carries no data."""

    code: ClassVar[int] = TRANSPORT_IPFS_GATEWAY_HTTP


@dataclass(frozen=True)
class GraphsyncFilecoinV1:
    """Retrieval over Graphsync of a Filecoin piece."""

    code: ClassVar[int] = TRANSPORT_GRAPHSYNC_FILECOINV1

    piece_cid: Cid
    verified_deal: bool = False
    fast_retrieval: bool = False

    def _encode_payload(self) -> bytes:
        return cbor2.dumps(
            {
                "PieceCID": cbor2.CBORTag(_CID_TAG, b"\0" + self.piece_cid.to_bytes()),
                "VerifiedDeal": bool(self.verified_deal),
                "FastRetrieval": bool(self.fast_retrieval),
            },
            canonical=True,
        )

    @classmethod
    def _decode_payload(cls, data: bytes, pos: int) -> tuple[GraphsyncFilecoinV1, int]:
        stream = io.BytesIO(data)
        stream.seek(pos)
        try:
            obj = cbor2.CBORDecoder(stream).decode()
        except (cbor2.CBORDecodeError, ValueError, EOFError) as err:
            raise MetadataError(f"invalid graphsync metadata: {err}") from err
        if not isinstance(obj, dict):
            raise MetadataError("invalid graphsync metadata: not a map")
        link = obj.get("PieceCID")
        verified, fast = obj.get("VerifiedDeal"), obj.get("FastRetrieval")
        if not (
            isinstance(link, cbor2.CBORTag)
            and link.tag == _CID_TAG
            and isinstance(link.value, bytes)
            and link.value[:1] == b"\0"
            and isinstance(verified, bool)
            and isinstance(fast, bool)
        ):
            raise MetadataError("invalid graphsync metadata: bad or missing fields")
        try:
            piece = Cid.from_bytes(link.value[1:])
        except CidError as err:
            raise MetadataError(f"invalid graphsync metadata: {err}") from err
        return cls(piece, verified, fast), stream.tell()


Protocol = Union[Bitswap, HTTPV1, GraphsyncFilecoinV1]

_PROTOCOLS: dict[int, type] = {cls.code: cls for cls in (Bitswap, GraphsyncFilecoinV1, HTTPV1)}


@dataclass(frozen=True)
class Metadata:
    """A set of transport protocols, kept in order of protocol code."""

    protocols: tuple[Protocol, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "protocols", tuple(sorted(self.protocols, key=lambda p: p.code)))

    @classmethod
    def from_bytes(cls, data: bytes) -> Metadata:
        """Decode the binary form; raise MetadataError on unknown or bad data."""
        data = bytes(data)
        protocols = []
        pos = 0
        while pos < len(data):
            try:
                code, pos = decode_varint(data, pos)
            except CidError as err:
                raise MetadataError(f"invalid transport id: {err}") from err
            if code not in _PROTOCOLS:
                raise MetadataError(f"unknown transport id {code:#x}")
            protocol, pos = _PROTOCOLS[code]._decode_payload(data, pos)
            protocols.append(protocol)
        return cls(tuple(protocols))

    def to_bytes(self) -> bytes:
        """Return the binary form: each protocol code followed by its data."""
        return b"".join(encode_varint(p.code) + p._encode_payload() for p in self.protocols)