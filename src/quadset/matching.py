"""
Quad matching.

A filter selects quads from a store. Every filter argument accepted by the
Dataset API is turned into one Filter variant up front by ``as_filter()``:

- ``None``                 -> MatchAll
- a ``Quad``               -> Exact
- a ``Template``           -> itself
- a callable ``fn(quad, dataset)`` -> Predicate
- an iterable of quads     -> QuadSet

Templates bind each position to a wildcard (None), an exact term, or a
callable ``fn(term, quad, dataset)``. Exact positions drive the index choice;
everything the chosen index does not cover is checked per candidate in
subject -> predicate -> object -> graph order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Union

from quadset.storage.indexing import POSITIONS, QuadKey
from quadset.storage.quad_store import QuadStore
from quadset.terms import Quad, Term

if TYPE_CHECKING:
    from quadset.dataset import Dataset

logger = logging.getLogger(__name__)

PositionSpec = Union[None, Term, Callable[[Term, Quad, "Dataset"], bool]]
Match = tuple[QuadKey, Quad]

_POSITION_NAMES = ("subject", "predicate", "object", "graph")


@dataclass
class MatchPlan:
    """How a filter will be evaluated against a store."""
    strategy: str  # "full_scan", "index", "lookup" or "empty"
    index: Optional[str] = None
    bound: list[str] = field(default_factory=list)
    residual: list[str] = field(default_factory=list)
    estimated_candidates: int = 0

    def to_dict(self) -> dict:
        """Convert plan to dictionary."""
        return {
            "strategy": self.strategy,
            "index": self.index,
            "bound": self.bound,
            "residual": self.residual,
            "estimated_candidates": self.estimated_candidates,
        }

    def __str__(self) -> str:
        lines = [f"Strategy: {self.strategy}"]
        if self.index:
            lines.append(f"Index: {self.index}")
        if self.bound:
            lines.append(f"Bound: {', '.join(self.bound)}")
        if self.residual:
            lines.append(f"Residual checks: {', '.join(self.residual)}")
        lines.append(f"Estimated candidates: {self.estimated_candidates}")
        return "\n".join(lines)


class Filter:
    """Base class of the filter variants."""

    def select(self, store: QuadStore, dataset: "Dataset", limit: Optional[int] = None) -> list[Match]:
        """
        Return the matching (key, quad) pairs in dataset order.

        The result is a snapshot; the store may be mutated afterwards.
        """
        raise NotImplementedError

    def test(self, quad: Quad, dataset: "Dataset") -> bool:
        """Check a single quad against the filter."""
        raise NotImplementedError

    def plan(self, store: QuadStore) -> MatchPlan:
        raise NotImplementedError


def _scan(store: QuadStore, keep: Callable[[Quad], bool], limit: Optional[int]) -> list[Match]:
    if limit == 0:
        return []
    result = []
    for key, quad in store.items():
        if keep(quad):
            result.append((key, quad))
            if limit is not None and len(result) >= limit:
                break
    return result


class MatchAll(Filter):
    """Matches every quad."""

    def select(self, store, dataset, limit=None):
        items = store.items()
        return items if limit is None else items[:limit]

    def test(self, quad, dataset):
        return True

    def plan(self, store):
        return MatchPlan(strategy="full_scan", estimated_candidates=len(store))

    def __repr__(self) -> str:
        return "MatchAll()"


class Exact(Filter):
    """Matches one quad by structural equality."""

    def __init__(self, quad: Quad):
        if not isinstance(quad, Quad):
            raise TypeError(f"Exact filter needs a Quad, got {type(quad).__name__}")
        self.quad = quad

    def select(self, store, dataset, limit=None):
        key = store.key_of(self.quad)
        if key is None or not store.has_key(key) or limit == 0:
            return []
        return [(key, store.quad_of(key))]

    def test(self, quad, dataset):
        return quad == self.quad

    def plan(self, store):
        key = store.key_of(self.quad)
        if key is None:
            return MatchPlan(strategy="empty", bound=list(_POSITION_NAMES))
        return MatchPlan(strategy="lookup", bound=list(_POSITION_NAMES), estimated_candidates=1)

    def __repr__(self) -> str:
        return f"Exact({self.quad})"


class Predicate(Filter):
    """Matches quads for which ``fn(quad, dataset)`` is true (always a full scan)."""

    def __init__(self, fn: Callable[[Quad, "Dataset"], bool]):
        if not callable(fn):
            raise TypeError("Predicate filter needs a callable")
        self.fn = fn

    def select(self, store, dataset, limit=None):
        fn = self.fn
        return _scan(store, lambda quad: fn(quad, dataset), limit)

    def test(self, quad, dataset):
        return bool(self.fn(quad, dataset))

    def plan(self, store):
        return MatchPlan(strategy="full_scan", residual=["quad"], estimated_candidates=len(store))

    def __repr__(self) -> str:
        return f"Predicate({self.fn!r})"


class QuadSet(Filter):
    """Matches any quad of a given collection."""

    def __init__(self, quads: Iterable[Quad]):
        members: dict[Quad, None] = {}
        for quad in quads:
            if not isinstance(quad, Quad):
                raise TypeError(f"Expected Quad, got {type(quad).__name__}")
            members[quad] = None
        self.quads = members

    def select(self, store, dataset, limit=None):
        keys = []
        for quad in self.quads:
            key = store.key_of(quad)
            if key is not None and store.has_key(key):
                keys.append(key)
        keys = store.in_order(keys)
        if limit is not None:
            keys = keys[:limit]
        return [(key, store.quad_of(key)) for key in keys]

    def test(self, quad, dataset):
        return quad in self.quads

    def plan(self, store):
        return MatchPlan(strategy="lookup", bound=list(_POSITION_NAMES), estimated_candidates=len(self.quads))

    def __repr__(self) -> str:
        return f"QuadSet({len(self.quads)} quads)"


def _check_spec(name: str, spec: Any) -> None:
    if spec is None or isinstance(spec, Term) or callable(spec):
        return
    raise TypeError(
        f"Template {name} must be None, a Term or a callable, got {type(spec).__name__}"
    )


class Template(Filter):
    """
    A partial quad pattern.

    Each position is None (wildcard), a Term (exact match) or a callable
    ``fn(term, quad, dataset) -> bool``.

    Example:
        Template(alice, knows)            # all quads with subject alice, predicate knows
        Template(object=lambda t, q, d: isinstance(t, Literal))
    """

    def __init__(
        self,
        subject: PositionSpec = None,
        predicate: PositionSpec = None,
        object: PositionSpec = None,
        graph: PositionSpec = None,
    ):
        for name, spec in zip(_POSITION_NAMES, (subject, predicate, object, graph)):
            _check_spec(name, spec)
        self.subject = subject
        self.predicate = predicate
        self.object = object
        self.graph = graph

    @property
    def specs(self) -> tuple[PositionSpec, PositionSpec, PositionSpec, PositionSpec]:
        return (self.subject, self.predicate, self.object, self.graph)

    def _resolve(self, store: QuadStore) -> Optional[list]:
        """Per-position term ids for exact specs; None if an exact term is unknown."""
        values = [None, None, None, None]
        get_id = store.term_dict.get_id
        for pos, spec in enumerate(self.specs):
            if isinstance(spec, Term):
                term_id = get_id(spec)
                if term_id is None:
                    return None
                values[pos] = term_id
        return values

    def select(self, store, dataset, limit=None):
        if limit == 0:
            return []
        values = self._resolve(store)
        if values is None:
            return []
        specs = self.specs

        if all(v is not None for v in values):
            key = tuple(values)
            return [(key, store.quad_of(key))] if store.has_key(key) else []

        probe = store.candidates(values)
        if probe is None:
            candidates = store.items()
            covered: tuple[int, ...] = ()
        else:
            keys, covered, ordering = probe
            logger.debug(f"Template probe via {ordering}: {len(keys)} candidates")
            candidates = [(key, store.quad_of(key)) for key in keys]

        checks = [pos for pos in range(4) if specs[pos] is not None and pos not in covered]
        if not checks:
            return candidates if limit is None else candidates[:limit]

        result = []
        for key, quad in candidates:
            terms = None
            for pos in checks:
                expected = values[pos]
                if expected is not None:
                    if key[pos] != expected:
                        break
                else:
                    if terms is None:
                        terms = quad.terms()
                    if not specs[pos](terms[pos], quad, dataset):
                        break
            else:
                result.append((key, quad))
                if limit is not None and len(result) >= limit:
                    break
        return result

    def test(self, quad, dataset):
        terms = quad.terms()
        for pos, spec in enumerate(self.specs):
            if spec is None:
                continue
            if isinstance(spec, Term):
                if terms[pos] != spec:
                    return False
            elif not spec(terms[pos], quad, dataset):
                return False
        return True

    def plan(self, store):
        specs = self.specs
        bound = [_POSITION_NAMES[pos] for pos in range(4) if isinstance(specs[pos], Term)]
        values = self._resolve(store)
        if values is None:
            return MatchPlan(strategy="empty", bound=bound)
        if len(bound) == 4:
            return MatchPlan(strategy="lookup", bound=bound, estimated_candidates=1)

        choice = store.indexes.choose(values)
        if choice is None:
            residual = [_POSITION_NAMES[pos] for pos in range(4) if specs[pos] is not None]
            return MatchPlan(
                strategy="full_scan", bound=bound, residual=residual,
                estimated_candidates=len(store),
            )
        residual = [
            _POSITION_NAMES[pos] for pos in range(4)
            if specs[pos] is not None and pos not in choice.covered
        ]
        return MatchPlan(
            strategy="index",
            index=choice.index.ordering,
            bound=bound,
            residual=residual,
            estimated_candidates=choice.size,
        )

    def __repr__(self) -> str:
        parts = []
        for letter, spec in zip(POSITIONS, self.specs):
            if spec is None:
                parts.append(f"{letter}=*")
            elif isinstance(spec, Term):
                parts.append(f"{letter}={spec}")
            else:
                parts.append(f"{letter}=<fn>")
        return f"Template({', '.join(parts)})"


def as_filter(value: Any) -> Filter:
    """
    Turn a filter argument into a Filter.

    Raises:
        TypeError: the value is not a supported filter
    """
    if value is None:
        return MatchAll()
    if isinstance(value, Filter):
        return value
    if isinstance(value, Quad):
        return Exact(value)
    if callable(value):
        return Predicate(value)
    if isinstance(value, (str, bytes, Term)):
        raise TypeError(f"Unsupported filter: {type(value).__name__}")
    try:
        iterator = iter(value)
    except TypeError:
        raise TypeError(f"Unsupported filter: {type(value).__name__}") from None
    return QuadSet(iterator)
