"""Iterators over lists of multihashes."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any


@dataclass
class EntryChunk:
    """One chunk of a chained list of multihashes."""

    entries: list[bytes] = field(default_factory=list)
    next: Any = None


def slice_multihash_iterator(mhs: Iterable[bytes]) -> Iterator[bytes]:
    """Iterate over the given multihashes in order."""
    return iter(list(mhs))


def car_multihash_iterator(index: Iterable[tuple[bytes, int]]) -> Iterator[bytes]:
    """Iterate over a CAR index's multihashes in order of their offsets.

    ``index`` yields ``(multihash, offset)`` pairs. The order is the same
    regardless of how the index orders them. Raises ValueError on a
    duplicate (or zero) offset.
    """
    steps = sorted(index, key=lambda step: step[1])
    last_offset = 0
    for _, offset in steps:
        if offset == last_offset:
            raise ValueError(f"car multihash iterator has duplicate offset {offset}")
        last_offset = offset
    return iter([mh for mh, _ in steps])


def entry_chunk_multihash_iterator(
    link: Any, load: Callable[[Any], EntryChunk]
) -> Iterator[bytes]:
    """Iterate over chained entry chunks starting at ``link``.

    The first chunk is loaded immediately, so a failing load raises here;
    later chunks are loaded with ``load`` as iteration reaches them.
    """
    first = load(link)

    def walk(chunk: EntryChunk) -> Iterator[bytes]:
        while True:
            yield from chunk.entries
            if chunk.next is None:
                return
            chunk = load(chunk.next)

    return walk(first)