"""Supplies the multihashes of CAR files to a provider."""

from __future__ import annotations

import os
from collections.abc import Iterator, MutableMapping
from typing import Any

from ipniprovider.car import CarFile
from ipniprovider.iterators import car_multihash_iterator

_CAR_ID_PREFIX = "/car_supplier/car_id/"


class CarNotFoundError(LookupError):
    """The supplier knows no CAR for the given context ID."""

    def __init__(self, message: str = "no CID iterator found for given key") -> None:
        super().__init__(message)


def _car_id_key(context_id: bytes) -> str:
    return _CAR_ID_PREFIX + bytes(context_id).hex()


class CarSupplier:
    """Advertises the content of CAR files (v1 or v2) through a provider engine.

    On construction it registers itself as the engine's multihash lister.
    """

    def __init__(
        self,
        engine: Any,
        datastore: MutableMapping[str, bytes] | None = None,
        store_identity_cids: bool = False,
    ) -> None:
        self._engine = engine
        self._ds: MutableMapping[str, bytes] = {} if datastore is None else datastore
        self._store_identity_cids = store_identity_cids
        engine.register_multihash_lister(self.list_multihashes)

    def put(self, context_id: bytes, path: str | os.PathLike[str], metadata: Any) -> Any:
        """Make the CAR at ``path`` suppliable under ``context_id`` and advertise it."""
        clean = os.path.normpath(os.fspath(path))
        self._ds[_car_id_key(context_id)] = os.fsencode(clean)
        return self._engine.notify_put(None, context_id, metadata)

    def remove(self, context_id: bytes) -> Any:
        """Stop supplying the CAR for ``context_id`` and advertise the removal."""
        key = _car_id_key(context_id)
        if key not in self._ds:
            raise CarNotFoundError()
        del self._ds[key]
        return self._engine.notify_remove("", context_id)

    def list(self) -> list[str]:
        """Return the paths of the CARs this supplier supplies."""
        return [
            os.fsdecode(self._ds[key])
            for key in sorted(self._ds)
            if key.startswith(_CAR_ID_PREFIX)
        ]

    def _path(self, context_id: bytes) -> str:
        try:
            return os.fsdecode(self._ds[_car_id_key(context_id)])
        except KeyError:
            raise CarNotFoundError() from None

    def list_multihashes(self, provider: Any, context_id: bytes) -> Iterator[bytes]:
        """Iterate over the multihashes of the CAR for ``context_id`` in offset order."""
        with CarFile(self._path(context_id), self._store_identity_cids) as car:
            index = car.multihash_index()
        return car_multihash_iterator(index)

    def read_only_blockstore(self, context_id: bytes) -> CarFile:
        """Open the CAR for ``context_id`` as a read-only blockstore."""
        return CarFile(self._path(context_id), self._store_identity_cids)

    def close(self) -> None:
        """Close the underlying datastore, if it can be closed."""
        close = getattr(self._ds, "close", None)
        if callable(close):
            close()