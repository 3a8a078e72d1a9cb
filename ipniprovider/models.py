"""Request and response bodies of the admin HTTP API, with their JSON form."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any

from ipniprovider.cid import Cid


def _load_object(data: bytes | str) -> dict[str, Any]:
    obj = json.loads(data)
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ValueError(f"cannot unmarshal {type(obj).__name__} into an object")
    return obj


def _dump(obj: dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":")).encode("utf-8")


def _encode_bytes(value: bytes) -> str:
    return base64.b64encode(bytes(value)).decode("ascii")


def _decode_bytes(obj: dict[str, Any], name: str) -> bytes:
    value = obj.get(name)
    if value is None:
        return b""
    if not isinstance(value, str):
        raise ValueError(f"cannot unmarshal {type(value).__name__} into field {name} of type bytes")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ValueError(f"illegal base64 data in field {name}: {err}") from err


def _decode_str(obj: dict[str, Any], name: str) -> str:
    value = obj.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"cannot unmarshal {type(value).__name__} into field {name} of type string")
    return value


def _encode_cid(value: Cid | None) -> dict[str, str] | None:
    return None if value is None else {"/": str(value)}


def _decode_cid(obj: dict[str, Any], name: str) -> Cid | None:
    value = obj.get(name)
    if value is None:
        return None
    if not (isinstance(value, dict) and isinstance(value.get("/"), str)):
        raise ValueError(f"invalid cid json in field {name}")
    return Cid.decode(value["/"])


@dataclass
class ImportCarReq:
    """A request to import the CAR file at ``path`` under ``key``."""

    path: str = ""
    key: bytes = b""
    metadata: bytes = b""

    def to_json(self) -> bytes:
        """Return the JSON body."""
        return _dump(
            {
                "path": self.path,
                "key": _encode_bytes(self.key),
                "metadata": _encode_bytes(self.metadata),
            }
        )

    @classmethod
    def from_json(cls, data: bytes | str) -> ImportCarReq:
        """Parse a JSON body; raise ValueError when it is malformed."""
        obj = _load_object(data)
        return cls(
            _decode_str(obj, "path"), _decode_bytes(obj, "key"), _decode_bytes(obj, "metadata")
        )


@dataclass
class ImportCarRes:
    """The key of an imported CAR and the CID of the advertisement it produced."""

    key: bytes = b""
    adv_id: Cid | None = None

    def to_json(self) -> bytes:
        """Return the JSON body."""
        return _dump({"key": _encode_bytes(self.key), "adv_id": _encode_cid(self.adv_id)})

    @classmethod
    def from_json(cls, data: bytes | str) -> ImportCarRes:
        """Parse a JSON body; raise ValueError when it is malformed."""
        obj = _load_object(data)
        return cls(_decode_bytes(obj, "key"), _decode_cid(obj, "adv_id"))


@dataclass
class RemoveCarReq:
    """A request to remove the CAR stored under ``key``."""

    key: bytes = b""

    def to_json(self) -> bytes:
        """Return the JSON body."""
        return _dump({"key": _encode_bytes(self.key)})

    @classmethod
    def from_json(cls, data: bytes | str) -> RemoveCarReq:
        """Parse a JSON body; raise ValueError when it is malformed."""
        return cls(_decode_bytes(_load_object(data), "key"))


@dataclass
class RemoveCarRes:
    """The CID of the advertisement produced by a removal."""

    adv_id: Cid | None = None

    def to_json(self) -> bytes:
        """Return the JSON body."""
        return _dump({"adv_id": _encode_cid(self.adv_id)})

    @classmethod
    def from_json(cls, data: bytes | str) -> RemoveCarRes:
        """Parse a JSON body; raise ValueError when it is malformed."""
        return cls(_decode_cid(_load_object(data), "adv_id"))


@dataclass
class ListCarRes:
    """The paths of the imported CARs."""

    paths: list[str] = field(default_factory=list)

    def to_json(self) -> bytes:
        """Return the JSON body."""
        return _dump({"paths": list(self.paths)})

    @classmethod
    def from_json(cls, data: bytes | str) -> ListCarRes:
        """Parse a JSON body; raise ValueError when it is malformed."""
        value = _load_object(data).get("paths")
        if value is None:
            return cls([])
        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            raise ValueError("field paths must be a list of strings")
        return cls(value)


@dataclass
class AnnounceRes:
    """The CID of the advertisement announced as latest."""

    adv_id: Cid | None = None

    def to_json(self) -> bytes:
        """Return the JSON body."""
        return _dump({"adv_id": _encode_cid(self.adv_id)})

    @classmethod
    def from_json(cls, data: bytes | str) -> AnnounceRes:
        """Parse a JSON body; raise ValueError when it is malformed."""
        return cls(_decode_cid(_load_object(data), "adv_id"))