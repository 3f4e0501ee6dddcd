"""Syntax tree to FileIndex transformation.

Clauses are grouped by ``name/arity``. The first clause of a predicate fixes
its definition range; later clauses only contribute calls and widen the full
range. The transformation is total: malformed trees produce diagnostics or
skipped items, never exceptions.
"""

from __future__ import annotations

import structlog

from clauseindex.index.models import CallSite, Diagnostic, FileIndex, PredicateRecord, Severity
from clauseindex.index.ranges import FALLBACK_RANGE, SourceRange, span_to_source_range
from clauseindex.index.syntax import (
    Atom,
    Cut,
    Directive,
    Fact,
    Functor,
    Infix,
    ListTerm,
    Number,
    Operator,
    Param,
    Parenthesis,
    ParseError,
    Rule,
    SyntaxNode,
    SyntaxTree,
    TopLevelItem,
    UnknownItem,
    Variable,
)

logger = structlog.get_logger()


def _rendered_text(node: SyntaxNode) -> str:
    """Approximate source text of a node, used only for its length."""
    if isinstance(node, Atom):
        return node.text
    if isinstance(node, Variable):
        return node.name
    if isinstance(node, Number):
        return str(node.value)
    if isinstance(node, Operator):
        return node.op
    if isinstance(node, Functor):
        return node.name
    if isinstance(node, Infix):
        return node.op.op if node.op is not None else "???"
    if isinstance(node, ListTerm):
        return "[]"
    if isinstance(node, Parenthesis):
        return "()"
    if isinstance(node, Cut):
        return "!"
    if isinstance(node, Param) and node.value is not None:
        return _rendered_text(node.value)
    return "???"


def node_range(node: SyntaxNode) -> SourceRange:
    """Single-line range from a node's start plus its rendered length.

    This is an approximation: tokens spanning lines or containing multi-byte
    characters can get a wrong end character. Nodes without a position get
    ``FALLBACK_RANGE``.
    """
    if node.has_position:
        start_character = node.column - 1
        return SourceRange(
            start_line=node.line,
            start_character=start_character,
            end_line=node.line,
            end_character=start_character + len(_rendered_text(node)),
        )
    logger.warning("node_missing_position", node_type=getattr(node, "type", None))
    return FALLBACK_RANGE


def _item_full_range(item: TopLevelItem, definition_range: SourceRange) -> SourceRange:
    if item.full_range is not None:
        span = item.full_range
        start, end = span.start, span.end
        return span_to_source_range(start.line, start.column, end.line, end.column)
    # No span from the analyzer: cover from the item start through the head.
    if item.line and item.column:
        start = SourceRange(item.line, item.column - 1, item.line, item.column - 1)
        return start.union(definition_range)
    return definition_range


def _head_name_arity(head: SyntaxNode | None) -> tuple[str, int] | None:
    if isinstance(head, Functor) and head.name:
        return head.name, head.declared_arity
    if isinstance(head, Atom) and head.text:
        return head.text, 0
    return None


def collect_calls(terms: tuple[SyntaxNode | None, ...]) -> list[CallSite]:
    """Every functor application in ``terms``, pre-order and depth-first.

    Functor arguments, infix operands, list elements, parenthesized goals and
    param wrappers are descended into. Atoms, variables, numbers, operators
    and cuts are leaves and never calls.
    """
    calls: list[CallSite] = []
    stack: list[SyntaxNode | None] = list(reversed(terms))
    while stack:
        term = stack.pop()
        children: tuple[SyntaxNode | None, ...]
        if term is None:
            continue
        if isinstance(term, Functor):
            calls.append(CallSite(term.name, term.declared_arity, node_range(term)))
            children = term.params
        elif isinstance(term, Infix):
            children = (term.left, term.right)
        elif isinstance(term, ListTerm):
            # [H|T] lists repeat H in items; head is only read when items is empty
            leading = term.items or (term.head,)
            children = (*leading, term.tail)
        elif isinstance(term, Parenthesis):
            children = term.content
        elif isinstance(term, Param):
            children = (term.value,)
        else:
            # atom, variable, number, operator, cut, unknown
            children = ()
        stack.extend(reversed(children))
    return calls


def _parse_error_diagnostic(item: ParseError) -> Diagnostic:
    return Diagnostic(
        line=item.line or 1,
        character=max((item.column or 1) - 1, 0),
        message=f"{item.kind} error",
        severity=Severity.ERROR,
    )


def transform_syntax_tree(tree: SyntaxTree, file_path: str | None = None) -> FileIndex:
    """Build the FileIndex for one analyzed file.

    Args:
        tree: Decoded analyzer output for the file.
        file_path: Identifier to record on the index. Defaults to the
            path the analyzer reported, which may be a temporary copy.

    Returns:
        FileIndex with predicates in first-occurrence order and one error
        diagnostic per parse-error item.
    """
    records: dict[str, PredicateRecord] = {}
    diagnostics: list[Diagnostic] = []

    for item in tree.predicates:
        if isinstance(item, ParseError):
            diagnostics.append(_parse_error_diagnostic(item))
            continue
        if isinstance(item, Directive | UnknownItem):
            continue
        if not isinstance(item, Rule | Fact):
            continue

        head = item.head
        head_info = _head_name_arity(head)
        if head is None or head_info is None:
            logger.warning(
                "head_shape_unsupported",
                file=tree.file,
                line=item.line,
                head_type=getattr(head, "type", None),
            )
            continue
        name, arity = head_info

        definition_range = node_range(head)
        full_range = _item_full_range(item, definition_range)
        clause_calls = collect_calls(item.body) if isinstance(item, Rule) else []

        key = f"{name}/{arity}"
        record = records.get(key)
        if record is None:
            records[key] = PredicateRecord(
                name=name,
                arity=arity,
                definition_range=definition_range,
                full_range=full_range,
                calls=clause_calls,
            )
        else:
            record.calls.extend(clause_calls)
            record.full_range = record.full_range.union(full_range)

    return FileIndex(
        file_path=file_path if file_path is not None else tree.file,
        predicates=list(records.values()),
        diagnostics=diagnostics,
    )
