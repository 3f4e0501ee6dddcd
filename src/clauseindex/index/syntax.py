"""Syntax tree produced by the external analyzer.

The analyzer emits JSON with a string ``type`` tag on every node. It is
decoded here into a closed set of frozen pydantic models: top-level items
(rule, fact, directive, parse error) and terms (atom, variable, number,
operator, functor, infix, list, parenthesis, cut, param). Tags outside that
set decode into ``UnknownTerm`` / ``UnknownItem`` so a newer analyzer cannot
make a whole file undecodable.

Positions are optional on every node: ``line`` is 1-based and ``column`` is
1-based. Top-level items may carry ``fullRange``, which spans leading
comments through the final token.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    ValidationError,
    model_validator,
)

from clauseindex.core.errors import AnalyzerError

_TERM_TAGS = frozenset(
    {"atom", "var", "number", "operator", "functor", "infix", "list", "parenthesis", "cut", "param"}
)
_ITEM_TAGS = frozenset({"rule", "fact", "directive", "parseerror"})


def _tag_of(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get("type")
    return getattr(value, "type", None)


def _term_tag(value: Any) -> str:
    tag = _tag_of(value)
    if tag == "unnamed_var":
        return "var"
    return tag if tag in _TERM_TAGS else "unknown"


def _item_tag(value: Any) -> str:
    tag = _tag_of(value)
    return tag if tag in _ITEM_TAGS else "unknown"


class SyntaxNode(BaseModel):
    """Fields shared by every node."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    line: int | None = None
    column: int | None = None
    raw: str | list[str] | None = None

    @property
    def has_position(self) -> bool:
        return bool(self.line) and bool(self.column)


# ---------------------------------------------------------------------------
# Terms
# ---------------------------------------------------------------------------


class Atom(SyntaxNode):
    type: Literal["atom"] = "atom"
    text: str = ""


class Variable(SyntaxNode):
    type: Literal["var", "unnamed_var"] = "var"
    name: str = "_"


class Number(SyntaxNode):
    type: Literal["number"] = "number"
    value: int | float = 0


class Operator(SyntaxNode):
    type: Literal["operator"] = "operator"
    op: str = ""


class Functor(SyntaxNode):
    """Compound term ``name(params...)``; also how goal atoms appear in bodies."""

    type: Literal["functor"] = "functor"
    name: str = ""
    arity: int | None = None
    params: tuple[Term, ...] = ()

    @property
    def declared_arity(self) -> int:
        return self.arity if self.arity is not None else len(self.params)


class Infix(SyntaxNode):
    type: Literal["infix"] = "infix"
    op: Operator | None = None
    left: Term | None = None
    right: Term | None = None


class ListTerm(SyntaxNode):
    type: Literal["list"] = "list"
    items: tuple[Term, ...] = ()
    head: Term | None = None
    tail: Term | None = None


class Parenthesis(SyntaxNode):
    type: Literal["parenthesis"] = "parenthesis"
    content: tuple[Term, ...] = ()


class Cut(SyntaxNode):
    type: Literal["cut"] = "cut"


class Param(SyntaxNode):
    """Wrapper some analyzer versions put around functor arguments."""

    type: Literal["param"] = "param"
    value: Term | None = None


class UnknownTerm(SyntaxNode):
    type: str = "unknown"

    @model_validator(mode="before")
    @classmethod
    def _wrap_scalars(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return data
        return {"type": "unknown", "raw": None if data is None else str(data)}


Term = Annotated[
    Union[
        Annotated[Atom, Tag("atom")],
        Annotated[Variable, Tag("var")],
        Annotated[Number, Tag("number")],
        Annotated[Operator, Tag("operator")],
        Annotated[Functor, Tag("functor")],
        Annotated[Infix, Tag("infix")],
        Annotated[ListTerm, Tag("list")],
        Annotated[Parenthesis, Tag("parenthesis")],
        Annotated[Cut, Tag("cut")],
        Annotated[Param, Tag("param")],
        Annotated[UnknownTerm, Tag("unknown")],
    ],
    Discriminator(_term_tag),
]


# ---------------------------------------------------------------------------
# Top-level items
# ---------------------------------------------------------------------------


class SpanPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: int
    column: int


class Span(BaseModel):
    """Analyzer span; columns are 1-based, end column exclusive after conversion."""

    model_config = ConfigDict(frozen=True)

    start: SpanPoint
    end: SpanPoint


class TopLevelItem(SyntaxNode):
    full_range: Span | None = Field(default=None, alias="fullRange")


class Rule(TopLevelItem):
    type: Literal["rule"] = "rule"
    head: Term | None = None
    body: tuple[Term, ...] = ()


class Fact(TopLevelItem):
    type: Literal["fact"] = "fact"
    head: Term | None = None


class Directive(TopLevelItem):
    type: Literal["directive"] = "directive"
    directives: tuple[Term, ...] = ()


class ParseError(TopLevelItem):
    type: Literal["parseerror"] = "parseerror"
    kind: str = "syntax"


class UnknownItem(TopLevelItem):
    type: str = "unknown"


TopLevel = Annotated[
    Union[
        Annotated[Rule, Tag("rule")],
        Annotated[Fact, Tag("fact")],
        Annotated[Directive, Tag("directive")],
        Annotated[ParseError, Tag("parseerror")],
        Annotated[UnknownItem, Tag("unknown")],
    ],
    Discriminator(_item_tag),
]


class SyntaxTree(BaseModel):
    """Root of one file's tree."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    file: str = ""
    predicates: tuple[TopLevel, ...] = ()

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-ready dict in the analyzer's own field names, without ``raw``."""
        return strip_raw(self.model_dump(by_alias=True, exclude_none=True))


for _model in (Functor, Infix, ListTerm, Parenthesis, Param, Rule, Fact, Directive, SyntaxTree):
    _model.model_rebuild()


def parse_syntax_tree(data: Any) -> SyntaxTree:
    """Decode an already-loaded JSON payload.

    Raises:
        AnalyzerError: If the payload is not a tree object.
    """
    if not isinstance(data, dict) or "predicates" not in data:
        raise AnalyzerError.malformed_output("root must be an object with a 'predicates' list")
    try:
        return SyntaxTree.model_validate(data)
    except ValidationError as e:
        err = e.errors()[0]
        where = ".".join(str(loc) for loc in err["loc"])
        raise AnalyzerError.malformed_output(f"{where}: {err['msg']}") from e


def parse_syntax_tree_json(text: str) -> SyntaxTree:
    """Decode analyzer JSON text.

    Raises:
        AnalyzerError: On invalid JSON or an unexpected root shape.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalyzerError.malformed_output(str(e)) from e
    return parse_syntax_tree(data)


def strip_raw(data: Any) -> Any:
    """Recursively drop the analyzer's ``raw`` debugging payloads."""
    if isinstance(data, dict):
        return {key: strip_raw(value) for key, value in data.items() if key != "raw"}
    if isinstance(data, list | tuple):
        return [strip_raw(item) for item in data]
    return data
