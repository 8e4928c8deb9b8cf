"""
Tests for the prefix indexes.
"""

import pytest

from quadset.storage.indexing import (
    DEFAULT_ORDERINGS,
    IndexSet,
    IndexStats,
    QuadIndex,
    parse_ordering,
)


@pytest.fixture
def sample_keys():
    """(s, p, o, g) keys; subject 1 appears 3 times."""
    return [
        (1, 10, 100, 0),
        (2, 10, 101, 0),
        (3, 20, 102, 7),
        (1, 20, 103, 0),
        (2, 30, 104, 7),
        (1, 10, 105, 7),
    ]


class TestParseOrdering:
    def test_valid(self):
        assert parse_ordering("SPOG") == (0, 1, 2, 3)
        assert parse_ordering("posg") == (1, 2, 0, 3)
        assert parse_ordering("GSPO") == (3, 0, 1, 2)

    @pytest.mark.parametrize("name", ["SPO", "SPOO", "SPOX", ""])
    def test_invalid(self, name):
        with pytest.raises(ValueError):
            parse_ordering(name)


class TestQuadIndex:
    """Tests for QuadIndex."""

    def test_lookup_by_prefix(self, sample_keys):
        """Buckets hold every key sharing the prefix, in insertion order."""
        idx = QuadIndex("SPOG")
        for key in sample_keys:
            idx.add(key)

        assert list(idx.lookup((1,))) == [(1, 10, 100, 0), (1, 20, 103, 0), (1, 10, 105, 7)]
        assert list(idx.lookup((1, 10))) == [(1, 10, 100, 0), (1, 10, 105, 7)]
        assert list(idx.lookup((1, 10, 105))) == [(1, 10, 105, 7)]

    def test_rotated_ordering(self, sample_keys):
        idx = QuadIndex("POSG")
        for key in sample_keys:
            idx.add(key)

        # predicate 10, object 101
        assert list(idx.lookup((10, 101))) == [(2, 10, 101, 0)]
        assert len(idx.lookup((10,))) == 3

    def test_graph_ordering(self, sample_keys):
        idx = QuadIndex("GSPO")
        for key in sample_keys:
            idx.add(key)
        assert list(idx.lookup((7, 2))) == [(2, 30, 104, 7)]

    def test_lookup_missing(self):
        idx = QuadIndex("SPOG")
        assert len(idx.lookup((999,))) == 0
        assert idx.bucket_size((999,)) == 0

    def test_lookup_miss_is_not_shared(self):
        idx = QuadIndex("SPOG")
        miss = idx.lookup((999,))
        miss[(1, 2, 3, 4)] = None
        assert idx.lookup((999,)) == {}
        assert idx.lookup((1,)) == {}
        assert idx.bucket_size((999,)) == 0

    def test_remove(self, sample_keys):
        idx = QuadIndex("SPOG")
        for key in sample_keys:
            idx.add(key)

        idx.remove((1, 10, 100, 0))
        assert list(idx.lookup((1, 10))) == [(1, 10, 105, 7)]
        assert len(idx.lookup((1, 10, 100))) == 0

        # Removing an absent key is a no-op
        idx.remove((1, 10, 100, 0))
        assert idx.stats().num_entries == 5

    def test_prefix_length(self):
        idx = QuadIndex("POSG")
        assert idx.prefix_length([False, True, False, False]) == 1
        assert idx.prefix_length([True, True, True, False]) == 3
        assert idx.prefix_length([True, False, True, False]) == 0
        assert idx.prefix_length([True, True, True, True]) == 3

    def test_stats(self, sample_keys):
        idx = QuadIndex("SPOG")
        for key in sample_keys:
            idx.add(key)
        stats = idx.stats()
        assert isinstance(stats, IndexStats)
        assert stats.ordering == "SPOG"
        assert stats.num_entries == 6
        assert stats.num_keys > 0

    def test_clear(self, sample_keys):
        idx = QuadIndex("SPOG")
        for key in sample_keys:
            idx.add(key)
        idx.clear()
        stats = idx.stats()
        assert stats.num_keys == 0
        assert stats.num_entries == 0


class TestIndexSet:
    """Tests for index selection."""

    @pytest.fixture
    def indexes(self, sample_keys):
        indexes = IndexSet()
        for key in sample_keys:
            indexes.add(key)
        return indexes

    def test_default_orderings(self, indexes):
        assert indexes.list_indexes() == list(DEFAULT_ORDERINGS)

    def test_duplicate_orderings_rejected(self):
        with pytest.raises(ValueError):
            IndexSet(["SPOG", "spog"])

    @pytest.mark.parametrize("values,expected", [
        ((1, None, None, None), "SPOG"),
        ((None, 10, None, None), "POSG"),
        ((None, None, 100, None), "OSPG"),
        ((None, None, None, 7), "GSPO"),
        ((1, 10, None, None), "SPOG"),
        ((None, 10, 101, None), "POSG"),
        ((1, None, 100, None), "OSPG"),
        ((1, None, None, 7), "GSPO"),
        ((1, 10, None, 7), "GSPO"),
    ])
    def test_choose_covers_most_positions(self, indexes, values, expected):
        choice = indexes.choose(values)
        assert choice.index.ordering == expected

    def test_choose_covered_positions(self, indexes):
        choice = indexes.choose((1, 10, 100, None))
        assert choice.index.ordering == "SPOG"
        assert choice.covered == (0, 1, 2)
        assert choice.prefix == (1, 10, 100)

    def test_tie_goes_to_smaller_bucket(self, indexes):
        # predicate 30 + graph 7: POSG and GSPO both cover one position.
        # p=30 has 1 key, g=7 has 3 keys.
        choice = indexes.choose((None, 30, None, 7))
        assert choice.index.ordering == "POSG"
        assert choice.size == 1

    def test_choose_nothing_bound(self, indexes):
        assert indexes.choose((None, None, None, None)) is None

    def test_no_indexes(self, sample_keys):
        indexes = IndexSet([])
        for key in sample_keys:
            indexes.add(key)
        assert indexes.choose((1, None, None, None)) is None
        assert len(indexes) == 0

    def test_remove(self, indexes):
        indexes.remove((2, 30, 104, 7))
        choice = indexes.choose((None, 30, None, None))
        assert choice.size == 0

    def test_stats(self, indexes):
        stats = indexes.stats()
        assert set(stats) == set(DEFAULT_ORDERINGS)
        assert all(s.num_entries == 6 for s in stats.values())
