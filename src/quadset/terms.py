"""
RDF Term Model.

Immutable value types for the five RDF term kinds (named nodes, blank nodes,
literals, the default graph and quads used as terms) and the Quad itself.

Key design decisions:
- Structural equality: every term is a frozen dataclass, so equality and
  hashing compare kind + fields and never identity
- Quads are terms: a Quad may be nested as a subject or object (RDF-star)
- Literal lang/datatype consistency is enforced at construction; an
  inconsistent combination raises ConstructionError instead of letting one
  side win
"""

from __future__ import annotations

import dataclasses
import decimal
import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import IntEnum
from typing import Any, Optional


# =============================================================================
# Vocabulary
# =============================================================================

XSD = "http://www.w3.org/2001/XMLSchema#"
RDF = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"

XSD_STRING = XSD + "string"
XSD_BOOLEAN = XSD + "boolean"
XSD_INTEGER = XSD + "integer"
XSD_DECIMAL = XSD + "decimal"
XSD_DOUBLE = XSD + "double"
XSD_FLOAT = XSD + "float"
XSD_DATETIME = XSD + "dateTime"
XSD_DATE = XSD + "date"
RDF_LANGSTRING = RDF + "langString"

# Datatypes whose values map to Python ints
_INTEGER_TYPES = frozenset(
    XSD + name for name in (
        "integer", "long", "int", "short", "byte",
        "nonNegativeInteger", "nonPositiveInteger",
        "positiveInteger", "negativeInteger",
        "unsignedLong", "unsignedInt", "unsignedShort", "unsignedByte",
    )
)
_FLOAT_TYPES = frozenset((XSD_DOUBLE, XSD_FLOAT))


class ConstructionError(ValueError):
    """Raised when a term is built from an inconsistent set of fields."""
    pass


class InvalidOperation(Exception):
    """Raised when a term transformation is not allowed for the given input."""
    pass


class TermKind(IntEnum):
    """
    RDF term kind enumeration.

    The storage layer encodes it in the high bits of interned term ids.
    """
    IRI = 0
    LITERAL = 1
    BNODE = 2
    QUOTED_TRIPLE = 3
    DEFAULT_GRAPH = 4


class CastKind(IntEnum):
    """Kinds of value a Literal can be cast to by get_value()."""
    LEXICAL_FORM = 1
    DATATYPE = 2


# =============================================================================
# Terms
# =============================================================================

class Term:
    """Base class of all RDF terms."""
    __slots__ = ()

    kind: TermKind

    def equals(self, other: Any) -> bool:
        return self == other


@dataclass(frozen=True, slots=True)
class NamedNode(Term):
    """An IRI."""
    iri: str

    kind = TermKind.IRI

    def __post_init__(self):
        if not isinstance(self.iri, str):
            raise TypeError(f"NamedNode IRI must be a string, got {type(self.iri).__name__}")
        if not self.iri:
            raise ConstructionError("NamedNode IRI must not be empty")

    def __str__(self) -> str:
        return f"<{self.iri}>"


BNODE_ID_PREFIX = "genid-"


@dataclass(frozen=True, slots=True)
class BlankNode(Term):
    """
    A blank node identified by a local id.

    When no id is given a random one is generated: ``genid-`` followed by
    12 hex digits.
    """
    id: Optional[str] = None

    kind = TermKind.BNODE

    def __post_init__(self):
        if self.id is None or self.id == "":
            object.__setattr__(self, "id", f"{BNODE_ID_PREFIX}{uuid.uuid4().hex[:12]}")
        elif not isinstance(self.id, str):
            raise TypeError(f"BlankNode id must be a string, got {type(self.id).__name__}")

    def __str__(self) -> str:
        return f"_:{self.id}"


@dataclass(frozen=True, slots=True)
class DefaultGraph(Term):
    """The default graph. All instances are equal."""

    kind = TermKind.DEFAULT_GRAPH

    def __str__(self) -> str:
        return ""


DEFAULT_GRAPH = DefaultGraph()


def _lexical(value: Any, default_datatype: str) -> tuple[str, str]:
    """Return (lexical form, inferred datatype) for a Python value."""
    if isinstance(value, bool):
        return ("true" if value else "false"), XSD_BOOLEAN
    if isinstance(value, int):
        return str(value), XSD_INTEGER
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN", XSD_DOUBLE
        if math.isinf(value):
            return ("INF" if value > 0 else "-INF"), XSD_DOUBLE
        return format(Decimal(repr(value)), "f"), XSD_DECIMAL
    if isinstance(value, Decimal):
        if not value.is_finite():
            return _lexical(float(value), default_datatype)
        return format(value, "f"), XSD_DECIMAL
    if isinstance(value, datetime):
        return value.isoformat(), XSD_DATETIME
    if isinstance(value, date):
        return value.isoformat(), XSD_DATE
    if isinstance(value, Term):
        raise TypeError(f"Cannot build a literal from a {type(value).__name__}")
    return str(value), default_datatype


def _decimal_value(lex: str) -> Any:
    try:
        exact = Decimal(lex)
    except decimal.InvalidOperation:
        raise ValueError(f"Invalid xsd:decimal lexical form: {lex!r}") from None
    approx = float(exact)
    if exact.is_finite() and Decimal(repr(approx)) == exact:
        return approx
    return exact


def _escape(lex: str) -> str:
    return (
        lex.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


@dataclass(frozen=True, slots=True)
class Literal(Term):
    """
    An RDF literal.

    Attributes:
        lexical_form: The literal's lexical form
        datatype: Effective datatype IRI (never None after construction)
        lang: Language tag, or None. Never an empty string.

    The datatype is ``rdf:langString`` if and only if ``lang`` is set. A
    non-empty lang given together with any other explicit datatype raises
    ConstructionError, as does ``rdf:langString`` without a lang. Use
    ``Literal.of()`` to build a literal from a Python value.
    """
    lexical_form: str
    datatype: Optional[str] = None
    lang: Optional[str] = None

    kind = TermKind.LITERAL

    def __post_init__(self):
        if not isinstance(self.lexical_form, str):
            raise TypeError(
                f"Literal lexical form must be a string, got {type(self.lexical_form).__name__}; "
                "use Literal.of() for other values"
            )
        if self.datatype is not None and not isinstance(self.datatype, str):
            raise TypeError(
                f"Literal datatype must be an IRI string, got {type(self.datatype).__name__}"
            )
        if self.lang is not None and not isinstance(self.lang, str):
            raise TypeError(f"Literal lang must be a string, got {type(self.lang).__name__}")
        if self.lang == "":
            object.__setattr__(self, "lang", None)
        if not self.datatype:
            object.__setattr__(self, "datatype", RDF_LANGSTRING if self.lang else XSD_STRING)

        if self.lang is not None and self.datatype != RDF_LANGSTRING:
            raise ConstructionError(
                f"Literal with lang tag '{self.lang}' cannot have datatype <{self.datatype}>"
            )
        if self.lang is None and self.datatype == RDF_LANGSTRING:
            raise ConstructionError("rdf:langString literals require a non-empty lang tag")

    @classmethod
    def of(
        cls,
        value: Any,
        lang: Optional[str] = None,
        datatype: Optional[str] = None,
        default_datatype: str = XSD_STRING,
    ) -> "Literal":
        """
        Create a literal from a Python value.

        Args:
            value: bool, int, float, Decimal, date/datetime, str or any
                object with a meaningful ``str()``
            lang: Language tag; None or "" means no tag
            datatype: Explicit datatype IRI; None or "" means infer it
            default_datatype: Datatype used for strings and other
                stringable objects when nothing more specific applies

        The inferred datatype is rdf:langString when a lang tag is given,
        otherwise it follows the value type (xsd:boolean, xsd:integer,
        xsd:decimal, xsd:dateTime, xsd:date, else ``default_datatype``).

        Raises:
            ConstructionError: lang and datatype conflict
        """
        lex, inferred = _lexical(value, default_datatype)
        if lang:
            if datatype and datatype != RDF_LANGSTRING:
                raise ConstructionError(
                    f"Literal with lang tag '{lang}' cannot have datatype <{datatype}>"
                )
            return cls(lex, RDF_LANGSTRING, lang)
        if datatype:
            return cls(lex, datatype, None)
        return cls(lex, inferred, None)

    def get_value(self, cast: CastKind = CastKind.DATATYPE) -> Any:
        """
        Return the literal's value.

        ``CastKind.LEXICAL_FORM`` always returns the lexical form.
        ``CastKind.DATATYPE`` maps xsd:boolean, the xsd integer types,
        xsd:float/double, xsd:dateTime and xsd:date to Python values.
        xsd:decimal gives a float when the float reproduces the value
        exactly and a Decimal otherwise. Any other datatype returns the
        lexical form.

        Raises:
            ValueError: the lexical form is not valid for its datatype
        """
        if cast == CastKind.LEXICAL_FORM:
            return self.lexical_form
        if cast != CastKind.DATATYPE:
            raise ValueError(f"Unsupported cast kind: {cast!r}")

        lex = self.lexical_form
        dt = self.datatype
        if dt == XSD_BOOLEAN:
            if lex in ("true", "1"):
                return True
            if lex in ("false", "0"):
                return False
            raise ValueError(f"Invalid xsd:boolean lexical form: {lex!r}")
        if dt in _INTEGER_TYPES:
            return int(lex)
        if dt == XSD_DECIMAL:
            return _decimal_value(lex)
        if dt in _FLOAT_TYPES:
            return float(lex)
        if dt == XSD_DATETIME:
            if lex.endswith("Z"):
                lex = lex[:-1] + "+00:00"
            return datetime.fromisoformat(lex)
        if dt == XSD_DATE:
            return date.fromisoformat(lex)
        return lex

    def get_lang(self) -> Optional[str]:
        return self.lang

    def get_datatype(self) -> str:
        return self.datatype

    def with_value(self, value: Any) -> "Literal":
        """
        Return a copy with a new value.

        Strings and other stringable objects keep the lang tag and datatype.
        Booleans, numbers and dates drop the lang tag and take their
        inferred datatype.
        """
        if isinstance(value, (bool, int, float, Decimal, date)):
            return Literal.of(value)
        lex, _ = _lexical(value, self.datatype)
        return Literal(lex, self.datatype, self.lang)

    def with_lang(self, lang: Optional[str]) -> "Literal":
        """
        Return a copy with a new lang tag.

        Setting a tag forces rdf:langString; dropping it (None or "") forces
        xsd:string, discarding any previous datatype.
        """
        if lang:
            return Literal(self.lexical_form, RDF_LANGSTRING, lang)
        return Literal(self.lexical_form, XSD_STRING, None)

    def with_datatype(self, datatype: str) -> "Literal":
        """
        Return a copy with a new datatype and no lang tag.

        Raises:
            InvalidOperation: datatype is empty or rdf:langString (use
                with_lang() for language-tagged strings)
        """
        if not datatype:
            raise InvalidOperation("Datatype must not be empty")
        if datatype == RDF_LANGSTRING:
            raise InvalidOperation("Use with_lang() to create rdf:langString literals")
        return Literal(self.lexical_form, datatype, None)

    def __str__(self) -> str:
        quoted = f'"{_escape(self.lexical_form)}"'
        if self.lang is not None:
            return f"{quoted}@{self.lang}"
        if self.datatype == XSD_STRING:
            return quoted
        return f"{quoted}^^<{self.datatype}>"


# =============================================================================
# Quad
# =============================================================================

_SUBJECT_TYPES = (NamedNode, BlankNode)
_OBJECT_TYPES = (NamedNode, BlankNode, Literal)
_GRAPH_TYPES = (DefaultGraph, NamedNode, BlankNode)


def _check_position(name: str, value: Any, allowed: tuple) -> None:
    if not isinstance(value, allowed):
        names = ", ".join(t.__name__ for t in allowed)
        raise TypeError(f"Quad {name} must be one of {names}, got {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class Quad(Term):
    """
    An RDF quad: (subject, predicate, object, graph).

    Positional constraints:
    - subject: NamedNode, BlankNode or Quad
    - predicate: NamedNode
    - object: NamedNode, BlankNode, Literal or Quad
    - graph: DefaultGraph, NamedNode or BlankNode (None means default graph)

    A Quad is itself a term, so it can be nested as a subject or object.
    """
    subject: Term
    predicate: NamedNode
    object: Term
    graph: Term = field(default=DEFAULT_GRAPH)

    kind = TermKind.QUOTED_TRIPLE

    def __post_init__(self):
        if self.graph is None:
            object.__setattr__(self, "graph", DEFAULT_GRAPH)
        _check_position("subject", self.subject, _SUBJECT_TYPES + (Quad,))
        _check_position("predicate", self.predicate, (NamedNode,))
        _check_position("object", self.object, _OBJECT_TYPES + (Quad,))
        _check_position("graph", self.graph, _GRAPH_TYPES)

    def with_subject(self, subject: Term) -> "Quad":
        return dataclasses.replace(self, subject=subject)

    def with_predicate(self, predicate: NamedNode) -> "Quad":
        return dataclasses.replace(self, predicate=predicate)

    def with_object(self, object: Term) -> "Quad":
        return dataclasses.replace(self, object=object)

    def with_graph(self, graph: Optional[Term]) -> "Quad":
        return dataclasses.replace(self, graph=graph)

    def terms(self) -> tuple[Term, Term, Term, Term]:
        """Return (subject, predicate, object, graph)."""
        return (self.subject, self.predicate, self.object, self.graph)

    def as_term(self) -> str:
        """Render as a quoted (nested) term."""
        inner = f"{_render(self.subject)} {self.predicate} {_render(self.object)}"
        if isinstance(self.graph, DefaultGraph):
            return f"<< {inner} >>"
        return f"<< {inner} {self.graph} >>"

    def __str__(self) -> str:
        """Render as a single N-Quads statement."""
        line = f"{_render(self.subject)} {self.predicate} {_render(self.object)}"
        if not isinstance(self.graph, DefaultGraph):
            line = f"{line} {self.graph}"
        return f"{line} ."


def _render(term: Term) -> str:
    if isinstance(term, Quad):
        return term.as_term()
    return str(term)


def render_term(term: Term) -> str:
    """Render any term, nested quads included, in N-Quads-star syntax."""
    return _render(term)
