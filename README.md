# ipniprovider

Building blocks for an index provider, the side of content routing that
announces which multihashes a peer can serve.

## What is in the package

- **`ipniprovider.provider`**: the abstract `Provider` class that a provider
  engine implements (`publish`, `publish_local`, `notify_put`, `notify_remove`,
  `get_adv`, `get_latest_adv`, `register_multihash_lister`, `shutdown`; it can
  be used as a context manager that calls `shutdown`). It also holds the errors
  an engine raises: `NoMultihashListerError`, `ContextIDNotFoundError` and
  `AlreadyAdvertisedError`, all subclasses of `ProviderError`.
- **`ipniprovider.iterators`**: multihash iterators built from a list
  (`slice_multihash_iterator`), from `(multihash, offset)` index pairs ordered
  by offset (`car_multihash_iterator`, which raises `ValueError` on a duplicate
  offset), or from a chain of `EntryChunk` values loaded on demand through a
  callable (`entry_chunk_multihash_iterator`).
- **`ipniprovider.peerutil`**: `PeerID` (decoded from base58 or CID text,
  raising `PeerIDError` when malformed) and `Policy`, a default boolean with a
  set of peers that evaluate to its opposite.
- **`ipniprovider.policy`**: `AccessPolicy`, a thread-safe allow/block policy
  over peers built from peer ID strings.
- **`ipniprovider.cid`**: `Cid` (versions 0 and 1) with `new_v1`,
  `from_bytes`, `decode`, `to_bytes` and a base32 string form, plus
  `encode_varint` and `decode_varint`.
- **`ipniprovider.car`**: `CarFile`, a reader for CARv1 and CARv2 files that
  also answers blockstore queries (`get`, `has`, `keys`), and `write_car`,
  which writes a CARv1.
- **`ipniprovider.metadata`**: `Metadata`, an ordered set of retrieval
  protocols (`Bitswap`, `HTTPV1`, `GraphsyncFilecoinV1`) with a binary form.
- **`ipniprovider.supplier`**: `CarSupplier`, which advertises the blocks of
  CAR files through a provider engine.
- **`ipniprovider.models`** and **`ipniprovider.adminserver`**: the JSON
  request and response types and the admin HTTP server that imports, removes
  and lists CAR files.

## Peer policies

```python
from ipniprovider.peerutil import PeerID, Policy

friend = PeerID.decode("12D3KooWK7CTS7cyWi51PeNE3cTjS2F2kDCZaQVU4A5xBmb9J1do")

policy = Policy(False, friend)   # deny everyone except `friend`
policy.eval(friend)              # True
policy.default()                 # False
policy.set_peer(friend, False)   # True: the exception set changed
policy.except_strings()          # [] once no exceptions remain
```

`AccessPolicy` wraps the same logic behind a lock:

```python
from ipniprovider.peerutil import PeerID
from ipniprovider.policy import AccessPolicy

other = PeerID.decode("12D3KooWSG3JuvEjRkSxt93ADTjQxqe4ExbBwSkQ9Zyk1WfBaZJF")

access = AccessPolicy(True, [str(other)])
access.allowed(other)            # False
access.allow(other)              # True: the policy changed
allow, except_ids = access.to_config()
```

A malformed peer ID raises `PeerIDError`.

## CIDs and CAR files

```python
import io
import hashlib

from ipniprovider.cid import RAW, SHA2_256, Cid, encode_varint
from ipniprovider.car import CarFile, write_car

data = b"hello"
mh = encode_varint(SHA2_256) + encode_varint(32) + hashlib.sha256(data).digest()
cid = Cid.new_v1(RAW, mh)
assert Cid.decode(str(cid)) == cid

with open("sample.car", "wb") as fh:
    write_car(fh, [cid], [(cid, data)])

with CarFile("sample.car") as car:
    car.get(cid)                 # b"hello"
    car.multihash_index()        # [(multihash, section offset), ...]
```

`CarFile` reads the whole file and builds its multihash index from the blocks
it contains; identity multihashes are left out of the index unless
`store_identity_cids` is set. Malformed files raise `CarError`.

## Advertising CAR files

`CarSupplier` registers its `list_multihashes` method as the multihash lister
of a provider engine. The datastore is any mutable mapping from string keys to
bytes (a plain dict by default).

```python
from ipniprovider.supplier import CarSupplier, CarNotFoundError

supplier = CarSupplier(engine, {}, store_identity_cids=False)

ad_cid = supplier.put(b"my-context", "data/sample.car", metadata)  # engine.notify_put(None, ...)
supplier.list()                          # ["data/sample.car"]

for mh in supplier.list_multihashes(None, b"my-context"):
    ...                                  # multihashes in CAR offset order

supplier.remove(b"my-context")           # engine.notify_remove("", ...)
supplier.remove(b"my-context")           # raises CarNotFoundError
```

Paths are normalised before they are stored. `read_only_blockstore` opens the
CAR of a context ID as a `CarFile`.

## Admin HTTP interface

`AdminServer(car_supplier, AdminOptions(...))` binds its socket when it is
created. `start()` serves until `shutdown()` is called; `handle(Request(...))`
routes a request without going through the network and returns a `Response`.

| Route               | Method | Body                            |
|---------------------|--------|---------------------------------|
| `/admin/import/car` | POST   | `ImportCarReq` → `ImportCarRes` |
| `/admin/remove/car` | POST   | `RemoveCarReq` → `RemoveCarRes` |
| `/admin/list/car`   | GET    | → `ListCarRes`                  |

`AdminOptions` defaults to listening on `0.0.0.0:3102` with read and write
timeouts of 30 seconds. Requests with the wrong method get `405`, bodies whose
content type is not JSON get `415`, and malformed bodies or metadata get
`400`. Importing content that is already advertised gets `409`, removing an
unknown key gets `404`, and unknown routes get `404`. Byte fields travel as
base64 and CIDs as `{"/": "<cid>"}`.

## What the package does not do

- It contains no provider engine: `Provider` is an interface only, so
  building, signing, storing and announcing advertisements is left to the
  engine passed to `CarSupplier`.
- The admin server has no announce or peer-connect routes; it handles CAR
  import, removal and listing only.
- It reads no index stored inside a CARv2 file; the index is always rebuilt
  from the blocks.
- There is no command-line program; the server is started from Python.