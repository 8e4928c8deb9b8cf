"""
Indexed in-memory quad storage.

QuadStore keeps a set of quads as integer keys (via TermDict) in insertion
order and maintains the prefix indexes used by the matcher.

Key design:
- Set semantics: a quad is stored at most once; insert is idempotent
- Every stored key has a sequence number; iteration and index probes
  follow it, so results always come back in dataset order
- Removing a quad releases its term references so unused terms are retired
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional, Sequence

from quadset.storage.indexing import DEFAULT_ORDERINGS, IndexSet, QuadKey
from quadset.storage.term_dict import TermDict, TermId
from quadset.terms import Quad

logger = logging.getLogger(__name__)


class QuadStore:
    """
    Set of quads with term interning and prefix indexes.

    Thread-safety: NOT thread-safe. A store must have a single writer and
    no reads may run concurrently with a write.
    """

    def __init__(self, orderings: Iterable[str] = DEFAULT_ORDERINGS):
        """
        Initialize an empty store.

        Args:
            orderings: Index orderings to maintain (permutations of "SPOG")
        """
        self._term_dict = TermDict()
        self._indexes = IndexSet(orderings)

        # key -> quad, in iteration order
        self._quads: dict[QuadKey, Quad] = {}
        # key -> sequence number; increasing along _quads
        self._seq: dict[QuadKey, int] = {}
        self._next_seq = 0

        # Cached list of keys for positional access
        self._ordered_keys: Optional[list[QuadKey]] = None

    @property
    def term_dict(self) -> TermDict:
        return self._term_dict

    @property
    def indexes(self) -> IndexSet:
        return self._indexes

    def _invalidate_cache(self):
        """Invalidate the cached positional view after modifications."""
        self._ordered_keys = None

    # ========== Keys ==========

    def key_of(self, quad: Quad) -> Optional[QuadKey]:
        """Return the key of a quad if all of its terms are interned, without creating it."""
        get_id = self._term_dict.get_id
        key = []
        for term in quad.terms():
            term_id = get_id(term)
            if term_id is None:
                return None
            key.append(term_id)
        return tuple(key)

    def _acquire_key(self, quad: Quad) -> QuadKey:
        acquire = self._term_dict.acquire
        return tuple(acquire(term) for term in quad.terms())

    def _release_key(self, key: QuadKey) -> None:
        release = self._term_dict.release
        for term_id in key:
            release(term_id)

    # ========== Mutation ==========

    def insert(self, quad: Quad) -> bool:
        """
        Insert a quad.

        Returns:
            True if the quad was new, False if it was already stored
        """
        key = self.key_of(quad)
        if key is not None and key in self._quads:
            return False
        key = self._acquire_key(quad)
        self._link(key, quad, self._next_seq)
        self._next_seq += 1
        return True

    def _link(self, key: QuadKey, quad: Quad, seq: int) -> None:
        self._quads[key] = quad
        self._seq[key] = seq
        self._indexes.add(key)
        self._invalidate_cache()

    def _unlink(self, key: QuadKey) -> Quad:
        quad = self._quads.pop(key)
        del self._seq[key]
        self._indexes.remove(key)
        self._release_key(key)
        self._invalidate_cache()
        return quad

    def remove(self, quad: Quad) -> bool:
        """
        Remove a quad.

        Returns:
            True if the quad was stored, False otherwise
        """
        key = self.key_of(quad)
        if key is None or key not in self._quads:
            return False
        self._unlink(key)
        return True

    def remove_key(self, key: QuadKey) -> Quad:
        """
        Remove a quad by key.

        Raises:
            KeyError: no quad has this key
        """
        return self._unlink(key)

    def replace_many(self, replacements: dict[QuadKey, Quad]) -> int:
        """
        Replace stored quads in place.

        Each new quad takes the position of the quad it replaces. A new quad
        equal to another stored (or already placed) quad collapses into it,
        keeping whichever position comes first.

        Args:
            replacements: Mapping of existing key -> new quad

        Returns:
            The number of replacements that collapsed into another quad

        Raises:
            KeyError: a key is not stored
        """
        changed = {}
        for key, quad in replacements.items():
            if self._quads[key] != quad:
                changed[key] = quad
        if not changed:
            return 0

        old_order = list(self._quads)
        slots = {key: self._seq[key] for key in changed}
        for key in changed:
            self._unlink(key)

        # old key -> key now occupying its slot (None when nothing does)
        placement: dict[QuadKey, Optional[QuadKey]] = {}
        # existing keys pulled forward into an earlier slot
        moved = set()
        collapsed = 0
        for old_key, quad in sorted(changed.items(), key=lambda item: slots[item[0]]):
            slot = slots[old_key]
            key = self.key_of(quad)
            if key is not None and key in self._quads:
                if slot < self._seq[key]:
                    self._seq[key] = slot
                    placement[old_key] = key
                    moved.add(key)
                else:
                    placement[old_key] = None
                collapsed += 1
                continue
            key = self._acquire_key(quad)
            self._link(key, quad, slot)
            placement[old_key] = key

        # Linked keys were appended; rebuild the order in one pass
        order = []
        for key in old_order:
            if key in placement:
                if placement[key] is not None:
                    order.append(placement[key])
            elif key not in moved:
                order.append(key)
        quads = self._quads
        self._quads = {key: quads[key] for key in order}
        self._invalidate_cache()

        if collapsed:
            logger.debug(f"Replaced {len(changed)} quads, {collapsed} collapsed into existing quads")
        return collapsed

    def clear(self) -> None:
        """Remove every quad and term."""
        self._quads.clear()
        self._seq.clear()
        self._indexes.clear_all()
        self._term_dict.clear()
        self._invalidate_cache()

    # ========== Reads ==========

    def contains(self, quad: Quad) -> bool:
        key = self.key_of(quad)
        return key is not None and key in self._quads

    def has_key(self, key: QuadKey) -> bool:
        return key in self._quads

    def quad_of(self, key: QuadKey) -> Quad:
        return self._quads[key]

    def items(self) -> list[tuple[QuadKey, Quad]]:
        """Snapshot of (key, quad) pairs in iteration order."""
        return list(self._quads.items())

    def quads(self) -> list[Quad]:
        """Snapshot of the stored quads in iteration order."""
        return list(self._quads.values())

    def __iter__(self) -> Iterator[Quad]:
        return iter(self.quads())

    def __len__(self) -> int:
        return len(self._quads)

    def key_at(self, offset: int) -> QuadKey:
        """
        Return the key at a position in iteration order.

        Raises:
            IndexError: offset outside [0, len)
        """
        if offset < 0 or offset >= len(self._quads):
            raise IndexError(f"Offset {offset} out of range for {len(self._quads)} quads")
        if self._ordered_keys is None:
            self._ordered_keys = list(self._quads)
        return self._ordered_keys[offset]

    def in_order(self, keys: Iterable[QuadKey]) -> list[QuadKey]:
        """Sort stored keys into iteration order."""
        return sorted(keys, key=self._seq.__getitem__)

    def candidates(self, values: Sequence[Optional[TermId]]) -> Optional[tuple[list[QuadKey], tuple[int, ...], str]]:
        """
        Probe the best index for a partially bound key.

        Args:
            values: Per-position term ids, None where unbound

        Returns:
            (keys in iteration order, positions covered, index ordering),
            or None if no index covers a bound position
        """
        choice = self._indexes.choose(values)
        if choice is None:
            return None
        keys = self.in_order(choice.index.lookup(choice.prefix))
        return keys, choice.covered, choice.index.ordering

    def stats(self) -> dict:
        """Return statistics about the store."""
        return {
            "quads": len(self._quads),
            "terms": self._term_dict.stats(),
            "indexes": {
                name: {
                    "num_keys": s.num_keys,
                    "num_entries": s.num_entries,
                    "memory_bytes": s.memory_bytes,
                }
                for name, s in self._indexes.stats().items()
            },
        }
