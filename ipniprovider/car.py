"""Reading and writing CAR (content addressable archive) files, versions 1 and 2."""

from __future__ import annotations

import os
import struct
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import BinaryIO

import cbor2

from ipniprovider.cid import IDENTITY, Cid, CidError, decode_varint, encode_varint

_V2_PRAGMA = bytes.fromhex("0aa16776657273696f6e02")
_V2_HEADER_SIZE = 40
_CID_TAG = 42


class CarError(ValueError):
    """A CAR file is malformed or cannot be used."""


@dataclass(frozen=True)
class Block:
    """A block in a CAR payload, with the offset of its section in the payload."""

    cid: Cid
    data: bytes
    offset: int


def _varint(data: bytes, pos: int) -> tuple[int, int]:
    try:
        return decode_varint(data, pos)
    except CidError as err:
        raise CarError(f"bad varint at offset {pos}: {err}") from err


def _read_header(data: bytes) -> tuple[dict, int]:
    length, pos = _varint(data, 0)
    end = pos + length
    if length == 0 or end > len(data):
        raise CarError("invalid CAR header: zero length or truncated")
    try:
        header = cbor2.loads(data[pos:end])
    except (cbor2.CBORDecodeError, ValueError) as err:
        raise CarError(f"invalid CAR header: {err}") from err
    if not isinstance(header, dict):
        raise CarError("invalid CAR header: not a map")
    return header, end


def _root(item: object) -> Cid:
    if not (
        isinstance(item, cbor2.CBORTag)
        and item.tag == _CID_TAG
        and isinstance(item.value, bytes)
        and item.value[:1] == b"\0"
    ):
        raise CarError("invalid CAR header: root is not a CID link")
    try:
        return Cid.from_bytes(item.value[1:])
    except CidError as err:
        raise CarError(f"invalid CAR root: {err}") from err


def _read_cid(section: bytes, pos: int) -> tuple[Cid, int]:
    try:
        if section[pos : pos + 2] == b"\x12\x20":
            cid_end = pos + 34
        else:
            p = pos
            for _ in range(3):
                _, p = decode_varint(section, p)
            length, p = decode_varint(section, p)
            cid_end = p + length
        if cid_end > len(section):
            raise CarError(f"section at offset {pos} is shorter than its CID")
        return Cid.from_bytes(section[pos:cid_end]), cid_end
    except CidError as err:
        raise CarError(f"invalid CID in section: {err}") from err


class CarFile:
    """A read-only CAR file; also serves its blocks like a blockstore."""

    def __init__(self, path: str | os.PathLike[str], store_identity_cids: bool = False) -> None:
        self.path = os.fspath(path)
        self.store_identity_cids = store_identity_cids
        with open(self.path, "rb") as fh:
            payload = fh.read()
        header, pos = _read_header(payload)
        version = header.get("version")
        if version == 2:
            if not payload.startswith(_V2_PRAGMA):
                raise CarError("invalid CARv2 pragma")
            fixed = payload[pos : pos + _V2_HEADER_SIZE]
            if len(fixed) != _V2_HEADER_SIZE:
                raise CarError("CARv2 header truncated")
            data_offset, data_size, _ = struct.unpack("<QQQ", fixed[16:])
            payload = payload[data_offset : data_offset + data_size]
            if len(payload) != data_size:
                raise CarError("CARv2 data payload truncated")
            header, pos = _read_header(payload)
            if header.get("version") != 1:
                raise CarError("CARv2 payload is not a CARv1")
        elif version != 1:
            raise CarError(f"unsupported CAR version {version!r}")
        self.version: int = version
        self.roots: list[Cid] = [_root(item) for item in header.get("roots") or []]
        self._payload: bytes | None = payload
        self._data_start = pos
        self._by_multihash: dict[bytes, bytes] | None = None

    def iter_blocks(self) -> Iterator[Block]:
        """Yield every block in payload order."""
        payload = self._payload
        if payload is None:
            raise CarError("CAR file is closed")
        pos = self._data_start
        while pos < len(payload):
            length, p = _varint(payload, pos)
            end = p + length
            if length == 0 or end > len(payload):
                raise CarError(f"section at offset {pos} is empty or truncated")
            cid, data_start = _read_cid(payload[:end], p)
            yield Block(cid, payload[data_start:end], pos)
            pos = end

    def multihash_index(self) -> list[tuple[bytes, int]]:
        """Return ``(multihash, offset)`` pairs, one per distinct multihash.

        Identity multihashes are left out unless ``store_identity_cids`` is set.
        """
        index: dict[bytes, int] = {}
        for block in self.iter_blocks():
            if block.cid.hash_code != IDENTITY or self.store_identity_cids:
                index.setdefault(block.cid.multihash, block.offset)
        return list(index.items())

    def _blocks(self) -> dict[bytes, bytes]:
        if self._by_multihash is None:
            self._by_multihash = {}
            for block in self.iter_blocks():
                self._by_multihash.setdefault(block.cid.multihash, block.data)
        return self._by_multihash

    def get(self, cid: Cid) -> bytes:
        """Return the data of the block with ``cid``'s multihash; raise KeyError if absent."""
        data = self._blocks().get(cid.multihash)
        if data is not None:
            return data
        if cid.hash_code == IDENTITY:
            return cid.digest
        raise KeyError(cid)

    def has(self, cid: Cid) -> bool:
        """Return whether a block with ``cid``'s multihash is available."""
        return cid.multihash in self._blocks() or cid.hash_code == IDENTITY

    def keys(self) -> list[Cid]:
        """Return the CIDs of all blocks in payload order."""
        return [block.cid for block in self.iter_blocks()]

    def close(self) -> None:
        """Release the file contents; the object is unusable afterwards."""
        self._payload = None
        self._by_multihash = None

    def __enter__(self) -> CarFile:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def write_car(
    stream: BinaryIO, roots: Iterable[Cid], blocks: Iterable[Block | tuple[Cid, bytes]]
) -> int:
    """Write a CARv1 with the given roots and blocks; return the bytes written."""
    header = cbor2.dumps(
        {"roots": [cbor2.CBORTag(_CID_TAG, b"\0" + r.to_bytes()) for r in roots], "version": 1},
        canonical=True,
    )
    written = stream.write(encode_varint(len(header)) + header)
    for item in blocks:
        cid, data = (item.cid, item.data) if isinstance(item, Block) else item
        body = cid.to_bytes() + bytes(data)
        written += stream.write(encode_varint(len(body)) + body)
    return written