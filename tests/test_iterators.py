import pytest

from ipniprovider.iterators import (
    EntryChunk,
    car_multihash_iterator,
    entry_chunk_multihash_iterator,
    slice_multihash_iterator,
)


def test_slice_iterator_yields_in_order_then_stops():
    mhs = [b"a", b"b", b"c"]
    it = slice_multihash_iterator(mhs)
    assert next(it) == b"a"
    assert list(it) == [b"b", b"c"]
    with pytest.raises(StopIteration):
        next(it)


def test_slice_iterator_empty():
    assert list(slice_multihash_iterator([])) == []


def test_car_iterator_orders_by_offset():
    index = [(b"third", 300), (b"first", 10), (b"second", 42)]
    assert list(car_multihash_iterator(index)) == [b"first", b"second", b"third"]


def test_car_iterator_order_independent_of_input_order():
    index = [(b"x", 5), (b"y", 9), (b"z", 7)]
    assert list(car_multihash_iterator(index)) == list(
        car_multihash_iterator(list(reversed(index)))
    )


def test_car_iterator_rejects_duplicate_offset():
    with pytest.raises(ValueError, match="duplicate offset 7"):
        car_multihash_iterator([(b"x", 7), (b"y", 7)])


def test_car_iterator_rejects_zero_offset():
    with pytest.raises(ValueError, match="duplicate offset 0"):
        car_multihash_iterator([(b"x", 0)])


def test_entry_chunk_iterator_follows_chain():
    store = {
        "one": EntryChunk([b"a", b"b"], "two"),
        "two": EntryChunk([], "three"),
        "three": EntryChunk([b"c"], None),
    }
    assert list(entry_chunk_multihash_iterator("one", store.__getitem__)) == [
        b"a",
        b"b",
        b"c",
    ]


def test_entry_chunk_iterator_loads_lazily():
    store = {"one": EntryChunk([b"a"], "two"), "two": EntryChunk([b"b"], None)}
    loaded = []

    def load(link):
        loaded.append(link)
        return store[link]

    it = entry_chunk_multihash_iterator("one", load)
    assert loaded == ["one"]
    assert next(it) == b"a"
    assert loaded == ["one"]
    assert next(it) == b"b"
    assert loaded == ["one", "two"]


def test_entry_chunk_iterator_first_load_failure_raises_immediately():
    with pytest.raises(KeyError):
        entry_chunk_multihash_iterator("missing", {}.__getitem__)


def test_entry_chunk_iterator_later_load_failure_raises_during_iteration():
    store = {"one": EntryChunk([b"a"], "gone")}
    it = entry_chunk_multihash_iterator("one", store.__getitem__)
    assert next(it) == b"a"
    with pytest.raises(KeyError):
        next(it)