import hashlib
import io
import os
import random
import struct

import pytest

from ipniprovider.car import CarFile, write_car
from ipniprovider.cid import IDENTITY, RAW, SHA2_256, SHA3_256, Cid
from ipniprovider.metadata import Bitswap, Metadata
from ipniprovider.provider import AlreadyAdvertisedError
from ipniprovider.supplier import CarNotFoundError, CarSupplier

V2_PRAGMA = bytes.fromhex("0aa16776657273696f6e02")


class FakeEngine:
    def __init__(self):
        self.lister = None
        self.puts = []
        self.removes = []
        self.result = None
        self.error = None

    def register_multihash_lister(self, lister):
        self.lister = lister

    def notify_put(self, provider, context_id, metadata):
        self.puts.append((provider, context_id, metadata))
        if self.error is not None:
            raise self.error
        return self.result

    def notify_remove(self, provider_id, context_id):
        self.removes.append((provider_id, context_id))
        return self.result


class ClosableStore(dict):
    closed = False

    def close(self):
        self.closed = True


def generate_cid_v1(rng):
    data = f"🌊d-{rng.getrandbits(64)}".encode()
    return Cid.new_v1(RAW, bytes([SHA3_256, 32]) + hashlib.sha3_256(data).digest())


def sample_blocks():
    blocks = []
    for i in range(6):
        data = f"block-{i}".encode()
        blocks.append((Cid.new_v1(RAW, bytes([SHA2_256, 32]) + hashlib.sha256(data).digest()), data))
    inline = b"inline"
    blocks.insert(2, (Cid.new_v1(RAW, bytes([IDENTITY, len(inline)]) + inline), inline))
    return blocks


def write_sample(tmp_path, version):
    buf = io.BytesIO()
    blocks = sample_blocks()
    write_car(buf, [blocks[0][0]], blocks)
    payload = buf.getvalue()
    if version == 2:
        offset = len(V2_PRAGMA) + 40
        payload = V2_PRAGMA + bytes(16) + struct.pack("<QQQ", offset, len(payload), 0) + payload
    path = tmp_path / f"sample-v{version}.car"
    path.write_bytes(payload)
    return str(path), blocks


@pytest.mark.parametrize("version", [1, 2])
@pytest.mark.parametrize("store_identity", [True, False])
def test_put_car_returns_expected_iterator(tmp_path, version, store_identity):
    rng = random.Random(1413)
    path, blocks = write_sample(tmp_path, version)
    engine = FakeEngine()
    subject = CarSupplier(engine, {}, store_identity_cids=store_identity)
    assert engine.lister == subject.list_multihashes

    want = [
        cid.multihash for cid, _ in blocks if store_identity or cid.hash_code != IDENTITY
    ]
    md = Metadata()
    engine.result = generate_cid_v1(rng)
    context_id = hashlib.sha256(path.encode()).digest()

    assert subject.put(context_id, path, md) == engine.result
    assert engine.puts == [(None, context_id, md)]

    paths = subject.list()
    assert len(paths) == 1
    assert os.path.normpath(paths[0]) == os.path.normpath(path)

    got = list(subject.list_multihashes("", context_id))
    assert got == want
    assert len(set(got)) == len(got)
    subject.close()


def test_removed_path_is_no_longer_supplied(tmp_path):
    rng = random.Random(1413)
    path, _ = write_sample(tmp_path, 2)
    engine = FakeEngine()
    subject = CarSupplier(engine)
    md = Metadata((Bitswap(),))

    engine.result = generate_cid_v1(rng)
    context_id = hashlib.sha256(path.encode()).digest()
    assert subject.put(context_id, path, md) == engine.result

    paths = subject.list()
    assert len(paths) == 1
    assert os.path.normpath(paths[0]) == os.path.normpath(path)

    want_cid = generate_cid_v1(rng)
    engine.result = want_cid
    assert subject.remove(context_id) == want_cid
    assert engine.removes == [("", context_id)]

    with pytest.raises(CarNotFoundError) as info:
        subject.remove(context_id)
    assert str(info.value) == "no CID iterator found for given key"

    assert subject.list() == []


def test_put_cleans_path(tmp_path):
    path, _ = write_sample(tmp_path, 1)
    messy = os.path.join(os.path.dirname(path), ".", "sub", "..", os.path.basename(path))
    subject = CarSupplier(FakeEngine())
    subject.put(b"key", messy, Metadata())
    assert subject.list() == [os.path.normpath(messy)]


def test_list_multihashes_unknown_context(tmp_path):
    subject = CarSupplier(FakeEngine())
    with pytest.raises(CarNotFoundError):
        subject.list_multihashes("", b"missing")


def test_put_propagates_engine_error(tmp_path):
    path, _ = write_sample(tmp_path, 1)
    engine = FakeEngine()
    engine.error = AlreadyAdvertisedError()
    subject = CarSupplier(engine)
    with pytest.raises(AlreadyAdvertisedError):
        subject.put(b"key", path, Metadata())


def test_read_only_blockstore(tmp_path):
    path, blocks = write_sample(tmp_path, 1)
    subject = CarSupplier(FakeEngine())
    subject.put(b"key", path, Metadata())
    with subject.read_only_blockstore(b"key") as store:
        assert isinstance(store, CarFile)
        assert store.get(blocks[1][0]) == blocks[1][1]
    with pytest.raises(CarNotFoundError):
        subject.read_only_blockstore(b"other")


def test_close_closes_datastore():
    store = ClosableStore()
    subject = CarSupplier(FakeEngine(), store)
    subject.close()
    assert store.closed is True