"""
Term Dictionary with Integer ID Encoding.

Interns RDF terms behind integer TermIds so that quad keys are small tuples
of ints with O(1) equality and hashing.

Key design decisions:
- Tagged ID space: high bits encode term kind for O(1) kind detection
- Reference counting: an id lives as long as some quad (or quoted quad)
  references it, and is retired when the last reference is released
- Quoted quads hold references on their own components, so nested terms
  stay interned while the enclosing quad term is alive
"""

from __future__ import annotations

from typing import Optional

from quadset.terms import DEFAULT_GRAPH, Quad, Term, TermKind


# =============================================================================
# Term Identity and Encoding
# =============================================================================

# Type alias for term identifiers
TermId = int

# Constants for ID encoding
KIND_SHIFT = 60
KIND_MASK = 0x7  # 3 bits
PAYLOAD_MASK = (1 << KIND_SHIFT) - 1


def make_term_id(kind: TermKind, payload: int) -> TermId:
    """Create a TermId from kind and payload."""
    return (kind << KIND_SHIFT) | (payload & PAYLOAD_MASK)


def get_term_kind(term_id: TermId) -> TermKind:
    """Extract the term kind from a TermId (O(1) operation)."""
    return TermKind((term_id >> KIND_SHIFT) & KIND_MASK)


def get_term_payload(term_id: TermId) -> int:
    """Extract the payload (sequence number) from a TermId."""
    return term_id & PAYLOAD_MASK


def is_quoted_triple(term_id: TermId) -> bool:
    """Check if a TermId refers to a quoted quad."""
    return get_term_kind(term_id) == TermKind.QUOTED_TRIPLE


DEFAULT_GRAPH_ID: TermId = make_term_id(TermKind.DEFAULT_GRAPH, 0)


# =============================================================================
# Term Dictionary
# =============================================================================

class TermDict:
    """
    Reference-counted term catalog.

    Maps RDF terms to integer TermIds with:
    - O(1) kind detection via tagged ID space
    - O(1) average interning via a term -> id hash map
    - Retirement of ids whose reference count drops to zero

    The default graph is pre-interned and pinned.

    Thread-safety: NOT thread-safe. Use external synchronization for concurrent access.
    """

    def __init__(self):
        # Per-kind sequence counters.
        # Payload 0 is reserved so the default graph id stays unique.
        self._next_payload: dict[TermKind, int] = {kind: 1 for kind in TermKind}

        # Forward map: Term -> TermId (for interning)
        self._term_to_id: dict[Term, TermId] = {DEFAULT_GRAPH: DEFAULT_GRAPH_ID}

        # Reverse map: TermId -> Term (for lookup)
        self._id_to_term: dict[TermId, Term] = {DEFAULT_GRAPH_ID: DEFAULT_GRAPH}

        # Live reference counts (pinned ids are absent)
        self._refcounts: dict[TermId, int] = {}

        # Component ids held by interned quoted quads
        self._qt_components: dict[TermId, tuple[TermId, TermId, TermId, TermId]] = {}

        self._retired_count = 0

    def _allocate_id(self, kind: TermKind) -> TermId:
        """Allocate the next TermId for a given kind."""
        payload = self._next_payload[kind]
        self._next_payload[kind] = payload + 1
        return make_term_id(kind, payload)

    def acquire(self, term: Term) -> TermId:
        """
        Intern a term and take a reference on it.

        If the term already exists, returns the existing ID. Otherwise
        allocates a new ID and stores the term. Nested quads acquire their
        components on first allocation.
        """
        term_id = self._term_to_id.get(term)
        if term_id is None:
            if isinstance(term, Quad):
                components = tuple(self.acquire(t) for t in term.terms())
            else:
                components = None
            term_id = self._allocate_id(term.kind)
            self._term_to_id[term] = term_id
            self._id_to_term[term_id] = term
            self._refcounts[term_id] = 0
            if components is not None:
                self._qt_components[term_id] = components

        if term_id != DEFAULT_GRAPH_ID:
            self._refcounts[term_id] += 1
        return term_id

    def release(self, term_id: TermId) -> bool:
        """
        Drop one reference on a term.

        Returns:
            True if the term was retired as a result

        Raises:
            KeyError: the id is not interned
        """
        if term_id == DEFAULT_GRAPH_ID:
            return False
        count = self._refcounts[term_id] - 1
        if count > 0:
            self._refcounts[term_id] = count
            return False

        del self._refcounts[term_id]
        term = self._id_to_term.pop(term_id)
        del self._term_to_id[term]
        self._retired_count += 1

        components = self._qt_components.pop(term_id, None)
        if components is not None:
            for component_id in components:
                self.release(component_id)
        return True

    def get_id(self, term: Term) -> Optional[TermId]:
        """Get the TermId for a term if it exists, without creating it."""
        return self._term_to_id.get(term)

    def lookup(self, term_id: TermId) -> Optional[Term]:
        """Look up a term by its ID."""
        return self._id_to_term.get(term_id)

    def lookup_batch(self, term_ids) -> list[Optional[Term]]:
        """Bulk lookup terms by their IDs."""
        return [self._id_to_term.get(tid) for tid in term_ids]

    def refcount(self, term_id: TermId) -> int:
        """Return the live reference count of an id (0 if unknown or pinned)."""
        return self._refcounts.get(term_id, 0)

    def components(self, term_id: TermId) -> Optional[tuple[TermId, TermId, TermId, TermId]]:
        """Return the component ids of a quoted quad id."""
        return self._qt_components.get(term_id)

    def contains(self, term: Term) -> bool:
        """Check if a term is already interned."""
        return term in self._term_to_id

    def __contains__(self, term: Term) -> bool:
        return self.contains(term)

    def __len__(self) -> int:
        """Return the number of interned terms, the pinned default graph included."""
        return len(self._id_to_term)

    def count_by_kind(self) -> dict[TermKind, int]:
        """Return counts of live terms by kind."""
        counts = {kind: 0 for kind in TermKind}
        for term_id in self._id_to_term:
            counts[get_term_kind(term_id)] += 1
        return counts

    def clear(self) -> None:
        """Drop every term except the pinned default graph."""
        self._term_to_id = {DEFAULT_GRAPH: DEFAULT_GRAPH_ID}
        self._id_to_term = {DEFAULT_GRAPH_ID: DEFAULT_GRAPH}
        self._refcounts.clear()
        self._qt_components.clear()

    def stats(self) -> dict:
        """Return statistics about the term dictionary."""
        return {
            "total_terms": len(self),
            "by_kind": {kind.name: count for kind, count in self.count_by_kind().items()},
            "retired_terms": self._retired_count,
        }
