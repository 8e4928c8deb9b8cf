"""
quadset: an indexed in-memory RDF quad Dataset.

Immutable RDF terms (named nodes, blank nodes, literals, the default graph,
nested quads) and a mutable, set-semantics Dataset with pattern matching,
bulk transformation and set algebra.
"""

__version__ = "0.1.0"

from quadset.terms import (
    Term,
    TermKind,
    CastKind,
    NamedNode,
    BlankNode,
    Literal,
    DefaultGraph,
    DEFAULT_GRAPH,
    Quad,
    ConstructionError,
    InvalidOperation,
    XSD_STRING,
    XSD_BOOLEAN,
    XSD_INTEGER,
    XSD_DECIMAL,
    XSD_DOUBLE,
    XSD_DATETIME,
    XSD_DATE,
    RDF_LANGSTRING,
)
from quadset.matching import (
    Filter,
    MatchAll,
    Exact,
    Template,
    Predicate,
    QuadSet,
    MatchPlan,
    as_filter,
)
from quadset.dataset import Dataset
from quadset.config import DatasetConfig, ConfigValidator, ConfigValidationError

__all__ = [
    # Terms
    "Term",
    "TermKind",
    "CastKind",
    "NamedNode",
    "BlankNode",
    "Literal",
    "DefaultGraph",
    "DEFAULT_GRAPH",
    "Quad",
    "ConstructionError",
    "InvalidOperation",
    "XSD_STRING",
    "XSD_BOOLEAN",
    "XSD_INTEGER",
    "XSD_DECIMAL",
    "XSD_DOUBLE",
    "XSD_DATETIME",
    "XSD_DATE",
    "RDF_LANGSTRING",
    # Matching
    "Filter",
    "MatchAll",
    "Exact",
    "Template",
    "Predicate",
    "QuadSet",
    "MatchPlan",
    "as_filter",
    # Dataset
    "Dataset",
    # Configuration
    "DatasetConfig",
    "ConfigValidator",
    "ConfigValidationError",
]
