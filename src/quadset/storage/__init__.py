"""
quadset storage layer.

Reference-counted term dictionary, prefix indexes over quad keys and the
indexed quad store built on them.
"""

from quadset.storage.term_dict import (
    TermId,
    TermDict,
    DEFAULT_GRAPH_ID,
    make_term_id,
    get_term_kind,
    get_term_payload,
    is_quoted_triple,
)
from quadset.storage.indexing import (
    QuadKey,
    QuadIndex,
    IndexSet,
    IndexStats,
    IndexChoice,
    DEFAULT_ORDERINGS,
    parse_ordering,
)
from quadset.storage.quad_store import QuadStore

__all__ = [
    "TermId",
    "TermDict",
    "DEFAULT_GRAPH_ID",
    "make_term_id",
    "get_term_kind",
    "get_term_payload",
    "is_quoted_triple",
    "QuadKey",
    "QuadIndex",
    "IndexSet",
    "IndexStats",
    "IndexChoice",
    "DEFAULT_ORDERINGS",
    "parse_ordering",
    "QuadStore",
]
