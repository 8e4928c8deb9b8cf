"""
Prefix indexes over quad keys.

Each index stores the quad keys under every 1-, 2- and 3-position prefix of
one ordering of (subject, predicate, object, graph). With complementary
orderings (SPOG, POSG, OSPG, GSPO by default) any pattern that binds one to
three positions can start from a small candidate bucket instead of a full
scan.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from quadset.storage.term_dict import TermId

# (subject, predicate, object, graph) term ids
QuadKey = tuple[TermId, TermId, TermId, TermId]

POSITIONS = "SPOG"
DEFAULT_ORDERINGS = ("SPOG", "POSG", "OSPG", "GSPO")


def parse_ordering(name: str) -> tuple[int, int, int, int]:
    """
    Translate an ordering name into key positions.

    Raises:
        ValueError: the name is not a permutation of "SPOG"
    """
    upper = name.upper()
    if len(upper) != 4 or set(upper) != set(POSITIONS):
        raise ValueError(f"Index ordering must be a permutation of SPOG, got {name!r}")
    return tuple(POSITIONS.index(c) for c in upper)


@dataclass
class IndexStats:
    """Statistics for an index."""
    ordering: str
    num_keys: int
    num_entries: int
    memory_bytes: int


class QuadIndex:
    """
    A prefix index for one ordering of the quad positions.

    Buckets are insertion-ordered dicts used as ordered sets.

    Example:
        idx = QuadIndex("POSG")
        idx.add((s, p, o, g))

        # All keys with predicate p and object o
        keys = idx.lookup((p, o))
    """

    def __init__(self, ordering: str):
        """
        Initialize the index.

        Args:
            ordering: Permutation of "SPOG", e.g. "POSG"
        """
        self.ordering = ordering.upper()
        self.positions = parse_ordering(ordering)

        # prefix tuple (length 1..3) -> ordered set of quad keys
        self._buckets: dict[tuple, dict[QuadKey, None]] = {}
        self._num_entries = 0

    def _prefixes(self, key: QuadKey) -> Iterable[tuple]:
        a, b, c, _ = (key[i] for i in self.positions)
        return ((a,), (a, b), (a, b, c))

    def add(self, key: QuadKey) -> None:
        """Add a quad key under all of its prefixes."""
        buckets = self._buckets
        for prefix in self._prefixes(key):
            bucket = buckets.get(prefix)
            if bucket is None:
                buckets[prefix] = {key: None}
            else:
                bucket[key] = None
        self._num_entries += 1

    def remove(self, key: QuadKey) -> None:
        """Remove a quad key from all of its prefix buckets."""
        buckets = self._buckets
        removed = False
        for prefix in self._prefixes(key):
            bucket = buckets.get(prefix)
            if bucket is None or key not in bucket:
                continue
            del bucket[key]
            removed = True
            if not bucket:
                del buckets[prefix]
        if removed:
            self._num_entries -= 1

    def lookup(self, prefix: tuple) -> dict[QuadKey, None]:
        """
        Return the keys sharing a prefix (1 to 3 ids, in index order).

        A hit returns the bucket owned by the index; callers copy it before
        mutating the store. A miss returns a new empty dict.
        """
        bucket = self._buckets.get(prefix)
        return {} if bucket is None else bucket

    def bucket_size(self, prefix: tuple) -> int:
        bucket = self._buckets.get(prefix)
        return 0 if bucket is None else len(bucket)

    def prefix_length(self, bound: Sequence[bool]) -> int:
        """
        Count the leading positions of this ordering that are bound.

        Capped at 3: a fully bound pattern is a direct key lookup.
        """
        length = 0
        for pos in self.positions[:3]:
            if not bound[pos]:
                break
            length += 1
        return length

    def prefix_for(self, values: Sequence[Optional[TermId]], length: int) -> tuple:
        """Build the lookup prefix of a given length from per-position values."""
        return tuple(values[pos] for pos in self.positions[:length])

    def covered(self, length: int) -> tuple[int, ...]:
        """Return the key positions covered by a prefix of the given length."""
        return self.positions[:length]

    def stats(self) -> IndexStats:
        """Get index statistics."""
        # Rough estimate: 8 bytes per id, one pointer per bucket slot
        key_bytes = sum(len(prefix) * 8 for prefix in self._buckets)
        entry_bytes = sum(len(bucket) * 8 for bucket in self._buckets.values())
        return IndexStats(
            ordering=self.ordering,
            num_keys=len(self._buckets),
            num_entries=self._num_entries,
            memory_bytes=key_bytes + entry_bytes,
        )

    def clear(self) -> None:
        """Clear the index."""
        self._buckets.clear()
        self._num_entries = 0


@dataclass
class IndexChoice:
    """The index and prefix chosen for a pattern."""
    index: QuadIndex
    prefix: tuple
    covered: tuple[int, ...]

    @property
    def size(self) -> int:
        return self.index.bucket_size(self.prefix)


class IndexSet:
    """
    Manages the configured orderings of one store.

    Example:
        indexes = IndexSet(["SPOG", "POSG"])
        indexes.add(key)
        choice = indexes.choose((s_id, None, None, None))
    """

    def __init__(self, orderings: Iterable[str] = DEFAULT_ORDERINGS):
        self._indexes: dict[str, QuadIndex] = {}
        for name in orderings:
            index = QuadIndex(name)
            if index.ordering in self._indexes:
                raise ValueError(f"Duplicate index ordering: {index.ordering}")
            self._indexes[index.ordering] = index

    def add(self, key: QuadKey) -> None:
        for index in self._indexes.values():
            index.add(key)

    def remove(self, key: QuadKey) -> None:
        for index in self._indexes.values():
            index.remove(key)

    def get_index(self, ordering: str) -> Optional[QuadIndex]:
        """Get an existing index."""
        return self._indexes.get(ordering.upper())

    def list_indexes(self) -> list[str]:
        """List all orderings."""
        return list(self._indexes.keys())

    def choose(self, values: Sequence[Optional[TermId]]) -> Optional[IndexChoice]:
        """
        Pick the index covering the most bound positions.

        Args:
            values: Per-position term ids, None where the position is unbound

        Returns:
            The chosen index and prefix, or None when no index covers any
            bound position. Ties go to the smallest bucket.
        """
        bound = [v is not None for v in values]
        best: Optional[IndexChoice] = None
        best_len = 0
        best_size = 0
        for index in self._indexes.values():
            length = index.prefix_length(bound)
            if length == 0 or length < best_len:
                continue
            prefix = index.prefix_for(values, length)
            size = index.bucket_size(prefix)
            if length > best_len or size < best_size:
                best = IndexChoice(index, prefix, index.covered(length))
                best_len = length
                best_size = size
        return best

    def stats(self) -> dict[str, IndexStats]:
        """Get stats for all indexes."""
        return {name: idx.stats() for name, idx in self._indexes.items()}

    def clear_all(self) -> None:
        """Clear all indexes."""
        for idx in self._indexes.values():
            idx.clear()

    def __len__(self) -> int:
        return len(self._indexes)
