"""
Tests for filters, templates and match plans.
"""

import pytest

from quadset.dataset import Dataset
from quadset.config import DatasetConfig
from quadset.matching import (
    Exact,
    MatchAll,
    MatchPlan,
    Predicate,
    QuadSet,
    Template,
    as_filter,
)
from quadset.terms import DEFAULT_GRAPH, Literal, NamedNode, Quad

EX = "http://example.org/"


def iri(name):
    return NamedNode(EX + name)


@pytest.fixture
def quads():
    g = iri("g")
    return [
        Quad(iri("s1"), iri("p1"), iri("o1"), g),
        Quad(iri("s1"), iri("p2"), iri("o2"), g),
        Quad(iri("s2"), iri("p1"), iri("o3"), g),
        Quad(iri("s2"), iri("p2"), Literal.of(5)),
        Quad(iri("s3"), iri("p1"), Literal.of("x", lang="en")),
    ]


@pytest.fixture
def dataset(quads):
    return Dataset(quads)


class TestAsFilter:
    """Tests for filter argument dispatch."""

    def test_none(self):
        assert isinstance(as_filter(None), MatchAll)

    def test_quad(self, quads):
        f = as_filter(quads[0])
        assert isinstance(f, Exact)
        assert f.quad == quads[0]

    def test_template_passes_through(self):
        t = Template(iri("s1"))
        assert as_filter(t) is t

    def test_callable(self):
        assert isinstance(as_filter(lambda q, d: True), Predicate)

    def test_iterables(self, quads, dataset):
        assert isinstance(as_filter(quads), QuadSet)
        assert isinstance(as_filter(dataset), QuadSet)
        assert isinstance(as_filter(q for q in quads), QuadSet)

    @pytest.mark.parametrize("value", ["text", 42, iri("s1")])
    def test_unsupported(self, value):
        with pytest.raises(TypeError):
            as_filter(value)

    def test_iterable_of_non_quads(self):
        with pytest.raises(TypeError):
            as_filter([iri("s1")])

    def test_template_rejects_bad_spec(self):
        with pytest.raises(TypeError):
            Template("http://example.org/s1")


class TestTemplateMatching:
    """Tests for template evaluation."""

    def test_subject_only_keeps_relative_order(self, dataset, quads):
        assert dataset.match(Template(iri("s1"), None, None)) == [quads[0], quads[1]]

    @pytest.mark.parametrize("template,expected", [
        (Template(predicate=iri("p1")), [0, 2, 4]),
        (Template(object=iri("o3")), [2]),
        (Template(graph=iri("g")), [0, 1, 2]),
        (Template(graph=DEFAULT_GRAPH), [3, 4]),
        (Template(iri("s1"), iri("p2")), [1]),
        (Template(iri("s2"), None, None, iri("g")), [2]),
        (Template(None, iri("p1"), None, iri("g")), [0, 2]),
        (Template(iri("s1"), None, iri("o2")), [1]),
        (Template(iri("s1"), iri("p1"), iri("o1"), iri("g")), [0]),
        (Template(), [0, 1, 2, 3, 4]),
    ])
    def test_exact_positions(self, dataset, quads, template, expected):
        assert dataset.match(template) == [quads[i] for i in expected]

    def test_unknown_term_matches_nothing(self, dataset):
        assert dataset.match(Template(iri("nobody"))) == []
        assert dataset.explain(Template(iri("nobody"))).strategy == "empty"

    def test_fully_bound_miss(self, dataset):
        # All terms exist, but not in this combination
        assert dataset.match(Template(iri("s1"), iri("p1"), iri("o2"), iri("g"))) == []

    def test_predicate_position(self, dataset, quads):
        is_literal = lambda term, quad, ds: isinstance(term, Literal)
        assert dataset.match(Template(object=is_literal)) == [quads[3], quads[4]]

    def test_mixed_exact_and_predicate(self, dataset, quads):
        t = Template(iri("s2"), object=lambda term, quad, ds: isinstance(term, Literal))
        assert dataset.match(t) == [quads[3]]

    def test_predicate_receives_term_quad_and_dataset(self, dataset, quads):
        seen = []

        def spy(term, quad, ds):
            seen.append((term, quad, ds))
            return True

        dataset.match(Template(iri("s1"), predicate=spy))
        assert seen == [
            (iri("p1"), quads[0], dataset),
            (iri("p2"), quads[1], dataset),
        ]

    def test_short_circuit_in_position_order(self, dataset):
        calls = []

        def never(term, quad, ds):
            calls.append("subject")
            return False

        def record(term, quad, ds):
            calls.append("object")
            return True

        assert dataset.match(Template(subject=never, object=record)) == []
        assert "object" not in calls

    def test_predicate_errors_propagate(self, dataset):
        def boom(term, quad, ds):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            dataset.match(Template(object=boom))

    def test_without_indexes(self, quads):
        ds = Dataset(quads, config=DatasetConfig(index_orderings=[]))
        assert ds.match(Template(iri("s1"))) == [quads[0], quads[1]]
        assert ds.explain(Template(iri("s1"))).strategy == "full_scan"

    def test_restricted_orderings_use_residual_checks(self, quads):
        ds = Dataset(quads, config=DatasetConfig(index_orderings=["SPOG"]))
        assert ds.match(Template(None, iri("p1"), None, iri("g"))) == [quads[0], quads[2]]
        assert ds.match(Template(iri("s1"), None, iri("o2"))) == [quads[1]]

    def test_nested_quad_term(self, quads):
        inner = quads[0]
        said = Quad(iri("bob"), iri("says"), inner)
        ds = Dataset([said] + quads)
        assert ds.match(Template(object=inner)) == [said]

    def test_test_single_quad(self, dataset, quads):
        t = Template(iri("s1"), object=lambda term, quad, ds: term == iri("o2"))
        assert t.test(quads[1], dataset)
        assert not t.test(quads[0], dataset)


class TestOtherFilters:
    """Tests for the non-template filter variants."""

    def test_exact(self, dataset, quads):
        assert dataset.match(quads[2]) == [quads[2]]
        assert dataset.match(Quad(iri("s9"), iri("p1"), iri("o1"))) == []

    def test_predicate_receives_quad_and_dataset(self, dataset, quads):
        seen = []
        dataset.match(lambda q, ds: seen.append(ds) or q.subject == iri("s3"))
        assert len(seen) == len(quads)
        assert all(ds is dataset for ds in seen)
        assert dataset.match(lambda q, ds: q.subject == iri("s3")) == [quads[4]]

    def test_quad_set_returns_dataset_order(self, dataset, quads):
        picked = [quads[3], quads[0], Quad(iri("x"), iri("y"), iri("z"))]
        assert dataset.match(picked) == [quads[0], quads[3]]

    def test_limit(self, dataset, quads):
        store = dataset._store
        assert len(MatchAll().select(store, dataset, limit=2)) == 2
        assert len(Template(predicate=iri("p1")).select(store, dataset, limit=1)) == 1
        assert Predicate(lambda q, d: True).select(store, dataset, limit=0) == []

    @pytest.mark.parametrize("make_filter", [
        lambda quads: MatchAll(),
        lambda quads: Exact(quads[0]),
        lambda quads: Predicate(lambda q, d: True),
        lambda quads: QuadSet(quads),
        lambda quads: Template(predicate=iri("p1")),
        lambda quads: Template(object=lambda t, q, d: True),
    ])
    def test_zero_limit_selects_nothing(self, dataset, quads, make_filter):
        assert make_filter(quads).select(dataset._store, dataset, limit=0) == []


class TestMatchPlan:
    """Tests for explain()."""

    def test_index_plan(self, dataset):
        plan = dataset.explain(Template(None, iri("p1"), None, iri("g")))
        assert isinstance(plan, MatchPlan)
        assert plan.strategy == "index"
        assert plan.bound == ["predicate", "graph"]
        assert plan.residual == ["graph"]
        assert plan.estimated_candidates == 3

    def test_best_prefix(self, dataset):
        plan = dataset.explain(Template(iri("s1"), iri("p1")))
        assert plan.index == "SPOG"
        assert plan.residual == []
        assert plan.estimated_candidates == 1

    def test_predicate_positions_are_residual(self, dataset):
        plan = dataset.explain(Template(iri("s1"), object=lambda t, q, d: True))
        assert plan.index == "SPOG"
        assert plan.residual == ["object"]

    def test_lookup_and_scan(self, dataset, quads):
        assert dataset.explain(quads[0]).strategy == "lookup"
        assert dataset.explain(lambda q, d: True).strategy == "full_scan"
        assert dataset.explain().strategy == "full_scan"
        assert dataset.explain(Template()).strategy == "full_scan"

    def test_plan_serialization(self, dataset):
        plan = dataset.explain(Template(iri("s1")))
        assert plan.to_dict()["strategy"] == "index"
        assert "Index: SPOG" in str(plan)
