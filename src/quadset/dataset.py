"""
Edge-centric in-memory Dataset.

A Dataset is a mutable set of quads with pattern matching, bulk
transformation, positional access and set algebra, backed by an indexed
QuadStore.

Filters accepted by the query and mutation methods (see quadset.matching):
a Quad, a Template, a callable ``fn(quad, dataset)``, or an iterable of
quads. ``None`` where allowed means "all quads".

Concurrency: there is no internal locking. A Dataset must have a single
writer, and reads must not overlap a write. Methods that return quads
return snapshots, so later mutation does not disturb them. Callables
passed as filters or transforms must not mutate the dataset they run
against.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Iterable, Iterator, Optional, Union

import polars as pl

from quadset.config import ConfigValidator, DatasetConfig
from quadset.matching import Filter, MatchPlan, as_filter
from quadset.storage.quad_store import QuadStore
from quadset.terms import BlankNode, DefaultGraph, Quad, render_term

logger = logging.getLogger(__name__)

FilterArg = Union[None, Quad, Filter, Callable[[Quad, "Dataset"], bool], Iterable[Quad]]


def _materialize(quads: Union[Quad, Iterable[Quad]]) -> list[Quad]:
    """Consume a quad source and validate every item before anything is stored."""
    if isinstance(quads, Quad):
        return [quads]
    if isinstance(quads, (str, bytes)):
        raise TypeError(f"Expected a Quad or an iterable of quads, got {type(quads).__name__}")
    try:
        batch = list(quads)
    except TypeError:
        raise TypeError(
            f"Expected a Quad or an iterable of quads, got {type(quads).__name__}"
        ) from None
    for quad in batch:
        if not isinstance(quad, Quad):
            raise TypeError(f"Expected Quad, got {type(quad).__name__}")
    return batch


def _check_offset(offset: Any) -> None:
    if isinstance(offset, bool) or not isinstance(offset, int):
        raise TypeError(f"Offset must be an int, got {type(offset).__name__}")


class Dataset:
    """
    A set of quads.

    Iteration order is insertion order; replacing a quad (set_at, replace,
    for_each) keeps the position of the quad it replaces. Order never
    affects equality.

    Example:
        ds = Dataset([Quad(alice, knows, bob)])
        ds.add(Quad(bob, knows, carol))
        alice_quads = ds.copy(Template(alice))
        ds.delete(Template(predicate=knows))
    """

    def __init__(
        self,
        quads: Optional[Iterable[Quad]] = None,
        config: Optional[DatasetConfig] = None,
    ):
        """
        Create a dataset.

        Args:
            quads: Optional initial quads (any iterable, consumed once)
            config: Dataset configuration; defaults to DatasetConfig()
        """
        self.config = config if config is not None else DatasetConfig()
        ConfigValidator.validate_or_raise(self.config)
        self._store = QuadStore(self.config.index_orderings)
        if quads is not None:
            self.add(quads)

    def _empty_like(self) -> "Dataset":
        return Dataset(config=self.config)

    def _select(self, filter: FilterArg, limit: Optional[int] = None):
        return as_filter(filter).select(self._store, self, limit)

    # ========== Mutation ==========

    def add(self, quads: Union[Quad, Iterable[Quad]]) -> None:
        """
        Add quads.

        Accepts a single Quad or any iterable of quads. The whole input is
        validated before the first insertion, so a TypeError leaves the
        dataset unchanged. Quads already present are ignored.
        """
        batch = _materialize(quads)
        insert = self._store.insert
        added = 0
        for quad in batch:
            if insert(quad):
                added += 1
        if len(batch) > 1:
            logger.debug(f"Added {added} new quads ({len(batch) - added} already present)")

    def append(self, quad: Quad) -> None:
        """Add a single quad."""
        if not isinstance(quad, Quad):
            raise TypeError(f"Expected Quad, got {type(quad).__name__}")
        self._store.insert(quad)

    def delete(self, filter: FilterArg) -> "Dataset":
        """
        Remove every quad matching the filter.

        Deleting quads that are not present is a no-op.

        Returns:
            self
        """
        if filter is None:
            raise TypeError("delete() needs a filter; use clear() to remove everything")
        selected = self._select(filter)
        for key, _ in selected:
            self._store.remove_key(key)
        if selected:
            logger.debug(f"Deleted {len(selected)} quads")
        return self

    def filter(self, filter: FilterArg) -> "Dataset":
        """
        Keep only the quads matching the filter.

        Returns:
            self
        """
        keep = {key for key, _ in self._select(filter)}
        removed = 0
        for key, _ in self._store.items():
            if key not in keep:
                self._store.remove_key(key)
                removed += 1
        if removed:
            logger.debug(f"Filtered out {removed} quads")
        return self

    def delete_except(self, filter: FilterArg) -> "Dataset":
        """Remove every quad except the ones matching the filter. Returns self."""
        return self.filter(filter)

    def clear(self) -> None:
        """Remove all quads."""
        self._store.clear()

    def for_each(
        self,
        fn: Callable[[Quad, "Dataset"], Quad],
        filter: FilterArg = None,
    ) -> None:
        """
        Replace each matching quad with ``fn(quad, dataset)``.

        The matching quads are collected before any replacement, so a
        transform's output is never visited in the same pass. Each new quad
        takes the position of the one it replaces. A result equal to a quad
        already in the dataset collapses into it (set semantics), so the
        dataset can shrink.

        Raises:
            TypeError: fn returned something other than a Quad; nothing is
                replaced in that case
        """
        replacements = {}
        for key, quad in self._select(filter):
            result = fn(quad, self)
            if not isinstance(result, Quad):
                raise TypeError(f"for_each callback must return a Quad, got {type(result).__name__}")
            replacements[key] = result
        self._store.replace_many(replacements)

    # ========== Queries ==========

    def copy(self, filter: FilterArg = None) -> "Dataset":
        """
        Return a new dataset with the quads matching the filter (all quads
        if no filter is given). The two datasets share no mutable state.
        """
        result = self._empty_like()
        insert = result._store.insert
        for _, quad in self._select(filter):
            insert(quad)
        return result

    def copy_except(self, filter: FilterArg) -> "Dataset":
        """Return a new dataset with the quads not matching the filter."""
        skip = {key for key, _ in self._select(filter)}
        result = self._empty_like()
        insert = result._store.insert
        for key, quad in self._store.items():
            if key not in skip:
                insert(quad)
        return result

    def map(self, fn: Callable[[Quad, "Dataset"], Quad], filter: FilterArg = None) -> "Dataset":
        """
        Return a new dataset with ``fn(quad, dataset)`` applied to every
        matching quad. This dataset is not modified.
        """
        mapped = []
        for _, quad in self._select(filter):
            result = fn(quad, self)
            if not isinstance(result, Quad):
                raise TypeError(f"map callback must return a Quad, got {type(result).__name__}")
            mapped.append(result)
        result = self._empty_like()
        result.add(mapped)
        return result

    def reduce(
        self,
        fn: Callable[[Any, Quad, "Dataset"], Any],
        initial: Any = None,
        filter: FilterArg = None,
    ) -> Any:
        """
        Fold ``fn(accumulator, quad, dataset)`` over the matching quads in
        iteration order. Returns ``initial`` when nothing matches.
        """
        acc = initial
        for _, quad in self._select(filter):
            acc = fn(acc, quad, self)
        return acc

    def match(self, filter: FilterArg = None) -> list[Quad]:
        """Return the matching quads, in iteration order."""
        return [quad for _, quad in self._select(filter)]

    def any(self, filter: FilterArg = None) -> bool:
        """Check whether at least one quad matches."""
        return bool(self._select(filter, limit=1))

    def count(self, filter: FilterArg = None) -> int:
        if filter is None:
            return len(self._store)
        return len(self._select(filter))

    def get_one(self, filter: FilterArg) -> Quad:
        """
        Return the single quad matching the filter.

        Raises:
            KeyError: no quad matches
            ValueError: more than one quad matches
        """
        selected = self._select(filter, limit=2)
        if not selected:
            raise KeyError(f"No quad matches {filter!r}")
        if len(selected) > 1:
            raise ValueError(f"More than one quad matches {filter!r}")
        return selected[0][1]

    def explain(self, filter: FilterArg = None) -> MatchPlan:
        """Describe how a filter would be evaluated."""
        return as_filter(filter).plan(self._store)

    # ========== Positional access ==========

    def get_at(self, offset: int) -> Quad:
        """
        Return the quad at a position in iteration order.

        Raises:
            IndexError: offset outside [0, len)
        """
        _check_offset(offset)
        return self._store.quad_of(self._store.key_at(offset))

    def set_at(self, offset: int, quad: Quad) -> None:
        """
        Replace the quad at a position.

        If the new quad is already present elsewhere, the dataset shrinks
        by one.

        Raises:
            IndexError: offset outside [0, len)
        """
        _check_offset(offset)
        if not isinstance(quad, Quad):
            raise TypeError(f"Expected Quad, got {type(quad).__name__}")
        key = self._store.key_at(offset)
        self._store.replace_many({key: quad})

    def exists_at(self, offset: Union[int, FilterArg]) -> bool:
        """
        Check a position (int) or the existence of matching quads (Quad,
        Template, callable or iterable of quads).
        """
        if isinstance(offset, int) and not isinstance(offset, bool):
            return 0 <= offset < len(self._store)
        if offset is None:
            raise TypeError("exists_at() needs an offset or a filter")
        return self.any(offset)

    def remove_at(self, offset: Union[int, FilterArg]) -> None:
        """
        Remove the quad at a position (int) or every quad matching a filter.

        Raises:
            IndexError: int offset outside [0, len)
        """
        if isinstance(offset, int) and not isinstance(offset, bool):
            self._store.remove_key(self._store.key_at(offset))
            return
        self.delete(offset)

    def replace(self, old: FilterArg, new: Quad) -> None:
        """
        Replace the quad matching ``old`` with ``new``, keeping its position.

        Raises:
            KeyError: nothing matches ``old``
            ValueError: more than one quad matches ``old``
        """
        if not isinstance(new, Quad):
            raise TypeError(f"Expected Quad, got {type(new).__name__}")
        if old is None:
            raise TypeError("replace() needs a quad or filter to replace")
        selected = self._select(old, limit=2)
        if not selected:
            raise KeyError(f"No quad matches {old!r}")
        if len(selected) > 1:
            raise ValueError(f"More than one quad matches {old!r}")
        self._store.replace_many({selected[0][0]: new})

    # ========== Set algebra ==========

    def equals(self, other: "Dataset") -> bool:
        """True if both datasets hold the same quads, in any order."""
        if not isinstance(other, Dataset):
            return False
        if len(self._store) != len(other._store):
            return False
        contains = other._store.contains
        return all(contains(quad) for quad in self._store.quads())

    def union(self, other: Union["Dataset", Iterable[Quad]]) -> "Dataset":
        """Return a new dataset with the quads of both."""
        result = self.copy()
        result.add(other)
        return result

    def xor(self, other: Union["Dataset", Iterable[Quad]]) -> "Dataset":
        """Return a new dataset with the quads present in exactly one of the two."""
        if not isinstance(other, Dataset):
            other = Dataset(other)
        result = self._empty_like()
        insert = result._store.insert
        for quad in self._store.quads():
            if not other._store.contains(quad):
                insert(quad)
        for quad in other._store.quads():
            if not self._store.contains(quad):
                insert(quad)
        return result

    def __or__(self, other):
        if not isinstance(other, Dataset):
            return NotImplemented
        return self.union(other)

    def __xor__(self, other):
        if not isinstance(other, Dataset):
            return NotImplemented
        return self.xor(other)

    # ========== Protocols ==========

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[Quad]:
        return iter(self._store.quads())

    def __contains__(self, quad: object) -> bool:
        return isinstance(quad, Quad) and self._store.contains(quad)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dataset):
            return NotImplemented
        return self.equals(other)

    __hash__ = None

    def __str__(self) -> str:
        """Render as N-Quads, one statement per line, in iteration order."""
        return "".join(f"{quad}\n" for quad in self._store.quads())

    def __repr__(self) -> str:
        return f"Dataset({len(self._store)} quads)"

    # ========== Utilities ==========

    def new_blank_node(self) -> BlankNode:
        """
        Return a blank node whose id is not used in this dataset.

        Ids are ``{blank_node_prefix}-{12 random hex digits}``.
        """
        term_dict = self._store.term_dict
        while True:
            node = BlankNode(f"{self.config.blank_node_prefix}-{uuid.uuid4().hex[:12]}")
            if node not in term_dict:
                return node

    def to_dataframe(self) -> pl.DataFrame:
        """
        Export the quads to a Polars DataFrame.

        Columns (Utf8, N-Quads renderings): subject, predicate, object,
        graph. graph is null for the default graph.
        """
        quads = self._store.quads()
        return pl.DataFrame({
            "subject": pl.Series([render_term(q.subject) for q in quads], dtype=pl.Utf8),
            "predicate": pl.Series([str(q.predicate) for q in quads], dtype=pl.Utf8),
            "object": pl.Series([render_term(q.object) for q in quads], dtype=pl.Utf8),
            "graph": pl.Series(
                [None if isinstance(q.graph, DefaultGraph) else str(q.graph) for q in quads],
                dtype=pl.Utf8,
            ),
        })

    def stats(self) -> dict:
        """Return statistics about the dataset's storage."""
        return self._store.stats()
