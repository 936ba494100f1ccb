"""
parser.py — build syntax trees from templates and target snippets
==================================================================

``TreeBuilder`` walks the parsimonious parse tree produced by
``TEMPLATE_GRAMMAR`` and returns ``guardrules.syntax.Node`` trees.

Two entry points:

    parse_template(template, rule="")   → tuple of root nodes
    parse_source(text, filename="")     → FILE node

A template made of one expression statement is reduced to the expression,
one other statement stays a statement, and two or more statements form a
statement-sequence pattern (the tuple has one entry per statement).

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from parsimonious.exceptions import ParseError
from parsimonious.expressions import OneOf
from parsimonious.nodes import NodeVisitor

from guardrules.errors import (
    GuardErrorCodes,
    MalformedPatternError,
    SourceParseError,
    SourceSpan,
)
from guardrules.grammar import TEMPLATE_GRAMMAR
from guardrules.syntax import Node, NodeKind

logger = logging.getLogger(__name__)

__all__ = ["TreeBuilder", "parse_template", "parse_source"]


_STATEMENT_KINDS = frozenset({
    NodeKind.PACKAGE,
    NodeKind.IMPORT,
    NodeKind.FUNC_DECL,
    NodeKind.TYPE_DECL,
    NodeKind.VAR_DECL,
    NodeKind.IF_STMT,
    NodeKind.FOR_STMT,
    NodeKind.RETURN_STMT,
    NodeKind.DEFER_STMT,
    NodeKind.ASSIGN_STMT,
    NodeKind.INC_DEC_STMT,
    NodeKind.VARIADIC,
})


class _Suffix:
    """A call, selector or index suffix waiting for its operand."""

    __slots__ = ("kind", "children", "end")

    def __init__(self, kind: NodeKind, children: List[Node], end: int) -> None:
        self.kind = kind
        self.children = children
        self.end = end


def _optional(value: Any) -> Any:
    """Unwrap the result of ``rule?``: the matched value or None."""
    if isinstance(value, list) and value:
        return value[0]
    return None


def _many(value: Any) -> list:
    """Unwrap the result of ``rule*``: the list of matched values."""
    return value if isinstance(value, list) else []


class TreeBuilder(NodeVisitor):
    """Transforms a parsimonious parse tree into a ``Node`` tree."""

    def __init__(self, source: str) -> None:
        self.source = source

    def _make(
        self,
        kind: NodeKind,
        pnode: Any,
        children: Optional[List[Node]] = None,
        value: Optional[str] = None,
    ) -> Node:
        return Node(kind, value, children, pnode.start, pnode.end, self.source)

    def _list(self, items: List[Node], start: int, end: int) -> Node:
        return Node(NodeKind.LIST, None, items, start, end, self.source)

    def _empty(self, at: int) -> Node:
        return Node(NodeKind.EMPTY, None, None, at, at, self.source)

    def generic_visit(self, node, visited_children):
        """Default: pass alternatives through, keep sequences as lists."""
        if isinstance(node.expr, OneOf):
            return visited_children[0]
        return visited_children or node

    # ─────────────────────────────────────────────────────────────
    # Top level
    # ─────────────────────────────────────────────────────────────

    def visit_file(self, node, visited_children):
        _, stmts, _ = visited_children
        return self._make(NodeKind.FILE, node, _optional(stmts) or [])

    def visit_stmt_list(self, node, visited_children):
        first, rest, _ = visited_children
        return [first] + [stmt for _, stmt in _many(rest)]

    def visit_block(self, node, visited_children):
        _, _, stmts, _, _ = visited_children
        return self._make(NodeKind.BLOCK, node, _optional(stmts) or [])

    def visit_stmt(self, node, visited_children):
        stmt = visited_children[0]
        if stmt.kind in _STATEMENT_KINDS:
            return stmt
        return self._make(NodeKind.EXPR_STMT, node, [stmt])

    # ─────────────────────────────────────────────────────────────
    # Declarations
    # ─────────────────────────────────────────────────────────────

    def visit_package_clause(self, node, visited_children):
        _, _, name = visited_children
        return self._make(NodeKind.PACKAGE, node, value=name.value)

    def visit_import_decl(self, node, visited_children):
        return self._make(NodeKind.IMPORT, node, value=node.children[2].text)

    def visit_func_decl(self, node, visited_children):
        _, _, receiver, _, name, params, _, result, _, body = visited_children
        recv = _optional(receiver)
        if recv is None:
            recv = self._list([], node.start, node.start)
        return self._make(
            NodeKind.FUNC_DECL,
            node,
            [recv, name, params, self._results(result, params.end), body],
        )

    def visit_func_lit(self, node, visited_children):
        _, _, params, _, result, _, body = visited_children
        return self._make(
            NodeKind.FUNC_LIT,
            node,
            [params, self._results(result, params.end), body],
        )

    def _results(self, result: Any, at: int) -> Node:
        value = _optional(result)
        if value is None:
            return self._list([], at, at)
        if value.kind is NodeKind.LIST:
            return value
        # A bare result type reads the same as a one-element result list.
        param = Node(NodeKind.PARAM, None, [value], value.start, value.end, self.source)
        return self._list([param], value.start, value.end)

    def visit_params(self, node, visited_children):
        _, _, params, _, _ = visited_children
        return _optional(params) or self._list([], node.start, node.end)

    visit_receiver = visit_params

    def visit_param_list(self, node, visited_children):
        first, rest, _ = visited_children
        items = [first] + [param for _, _, _, param in _many(rest)]
        return self._list(items, node.start, node.end)

    def visit_param(self, node, visited_children):
        param = visited_children[0]
        if param.kind in (NodeKind.PARAM, NodeKind.VARIADIC):
            return param
        return self._make(NodeKind.PARAM, node, [param])

    def visit_named_param(self, node, visited_children):
        name, _, type_ = visited_children
        return self._make(NodeKind.PARAM, node, [name, type_])

    def visit_type_decl(self, node, visited_children):
        _, _, name, _, type_ = visited_children
        return self._make(NodeKind.TYPE_DECL, node, [name, type_])

    def visit_var_decl(self, node, visited_children):
        _, _, name, var_type, var_init = visited_children
        type_ = _optional(var_type) or self._empty(name.end)
        init = _optional(var_init) or self._empty(node.end)
        return self._make(NodeKind.VAR_DECL, node, [name, type_, init])

    def visit_var_type(self, node, visited_children):
        return visited_children[1]

    def visit_var_init(self, node, visited_children):
        return visited_children[3]

    # ─────────────────────────────────────────────────────────────
    # Statements
    # ─────────────────────────────────────────────────────────────

    def visit_if_stmt(self, node, visited_children):
        _, _, cond, _, body, else_clause = visited_children
        children = [cond, body]
        orelse = _optional(else_clause)
        if orelse is not None:
            children.append(orelse)
        return self._make(NodeKind.IF_STMT, node, children)

    def visit_else_clause(self, node, visited_children):
        return visited_children[3]

    def visit_for_stmt(self, node, visited_children):
        _, cond, _, body = visited_children
        cond = _optional(cond) or self._empty(node.start)
        return self._make(NodeKind.FOR_STMT, node, [cond, body])

    def visit_for_cond(self, node, visited_children):
        return visited_children[1]

    def visit_return_stmt(self, node, visited_children):
        _, values = visited_children
        values = _optional(values) or self._list([], node.end, node.end)
        return self._make(NodeKind.RETURN_STMT, node, [values])

    def visit_return_values(self, node, visited_children):
        return visited_children[1]

    def visit_defer_stmt(self, node, visited_children):
        _, _, call = visited_children
        return self._make(NodeKind.DEFER_STMT, node, [call])

    def visit_assign_stmt(self, node, visited_children):
        lhs, _, op, _, rhs = visited_children
        return self._make(NodeKind.ASSIGN_STMT, node, [lhs, rhs], value=op)

    def visit_inc_dec_stmt(self, node, visited_children):
        target, _, op = visited_children
        return self._make(NodeKind.INC_DEC_STMT, node, [target], value=op)

    def visit_expr_list(self, node, visited_children):
        first, rest = visited_children
        items = [first] + [item for _, _, _, item in _many(rest)]
        return self._list(items, node.start, node.end)

    # ─────────────────────────────────────────────────────────────
    # Expressions
    # ─────────────────────────────────────────────────────────────

    def _fold(self, visited_children) -> Node:
        left, rest = visited_children
        for _, op, _, right in _many(rest):
            left = Node(
                NodeKind.BINARY, op, [left, right], left.start, right.end, self.source
            )
        return left

    def visit_or_expr(self, node, visited_children):
        return self._fold(visited_children)

    def visit_and_expr(self, node, visited_children):
        return self._fold(visited_children)

    def visit_cmp_expr(self, node, visited_children):
        return self._fold(visited_children)

    def visit_add_expr(self, node, visited_children):
        return self._fold(visited_children)

    def visit_mul_expr(self, node, visited_children):
        return self._fold(visited_children)

    def visit_prefixed(self, node, visited_children):
        op, _, operand = visited_children
        return self._make(NodeKind.UNARY, node, [operand], value=op)

    def visit_primary_expr(self, node, visited_children):
        expr, suffixes = visited_children
        for suffix in _many(suffixes):
            expr = Node(
                suffix.kind,
                None,
                [expr] + suffix.children,
                node.start,
                suffix.end,
                self.source,
            )
        return expr

    def visit_call_suffix(self, node, visited_children):
        _, _, args, _, _ = visited_children
        args = _optional(args) or self._list([], node.start + 1, node.end - 1)
        return _Suffix(NodeKind.CALL, [args], node.end)

    def visit_arg_list(self, node, visited_children):
        first, rest, _ = visited_children
        items = [first] + [item for _, _, _, item in _many(rest)]
        return self._list(items, node.start, node.end)

    def visit_selector_suffix(self, node, visited_children):
        _, name = visited_children
        return _Suffix(NodeKind.SELECTOR, [name], node.end)

    def visit_index_suffix(self, node, visited_children):
        _, _, index, _, _ = visited_children
        return _Suffix(NodeKind.INDEX, [index], node.end)

    def visit_paren_expr(self, node, visited_children):
        _, _, inner, _, _ = visited_children
        # Grouping only: keep the inner node, widened over the parentheses.
        return Node(inner.kind, inner.value, inner.children, node.start, node.end, self.source)

    # ─────────────────────────────────────────────────────────────
    # Types
    # ─────────────────────────────────────────────────────────────

    def visit_slice_type(self, node, visited_children):
        _, elem = visited_children
        return self._make(NodeKind.SLICE_TYPE, node, [elem])

    def visit_map_type(self, node, visited_children):
        _, _, _, _, key, _, _, value = visited_children
        return self._make(NodeKind.MAP_TYPE, node, [key, value])

    def visit_pointer_type(self, node, visited_children):
        _, elem = visited_children
        return self._make(NodeKind.POINTER_TYPE, node, [elem])

    def visit_struct_type(self, node, visited_children):
        _, _, _, _, fields, _, _ = visited_children
        fields = _optional(fields) or self._list([], node.end - 1, node.end - 1)
        return self._make(NodeKind.STRUCT_TYPE, node, [fields])

    def visit_field_list(self, node, visited_children):
        first, rest, _ = visited_children
        items = [first] + [field for _, field in _many(rest)]
        return self._list(items, node.start, node.end)

    def visit_field(self, node, visited_children):
        field = visited_children[0]
        if field.kind in (NodeKind.FIELD, NodeKind.VARIADIC):
            return field
        return self._make(NodeKind.FIELD, node, [field])

    def visit_named_field(self, node, visited_children):
        name, _, type_ = visited_children
        return self._make(NodeKind.FIELD, node, [name, type_])

    def visit_type_name(self, node, visited_children):
        return self._make(NodeKind.TYPE_NAME, node, value=node.text)

    # ─────────────────────────────────────────────────────────────
    # Leaves
    # ─────────────────────────────────────────────────────────────

    def visit_placeholder(self, node, visited_children):
        _, name = visited_children
        return self._make(NodeKind.PLACEHOLDER, node, value=name)

    def visit_variadic(self, node, visited_children):
        _, name = visited_children
        return self._make(NodeKind.VARIADIC, node, value=name)

    def visit_ph_name(self, node, visited_children):
        return node.text

    def visit_ident(self, node, visited_children):
        return self._make(NodeKind.IDENT, node, value=node.text)

    def visit_string_lit(self, node, visited_children):
        return self._make(NodeKind.BASIC_LIT, node, value=node.text)

    def visit_number(self, node, visited_children):
        return self._make(NodeKind.BASIC_LIT, node, value=node.text)

    def _operator(self, node, visited_children):
        return node.text

    visit_or_op = _operator
    visit_and_op = _operator
    visit_cmp_op = _operator
    visit_add_op = _operator
    visit_mul_op = _operator
    visit_unary_op = _operator
    visit_assign_op = _operator
    visit_inc_dec_op = _operator


# ═══════════════════════════════════════════════════════════════════════════
# Entry points
# ═══════════════════════════════════════════════════════════════════════════

def _build(text: str) -> Node:
    tree = TEMPLATE_GRAMMAR.parse(text)
    return TreeBuilder(text).visit(tree)


def parse_source(text: str, filename: str = "") -> Node:
    """Parse a target snippet into a FILE node.

    Raises:
        SourceParseError: the text is not in the supported Go subset.
    """
    try:
        return _build(text)
    except ParseError as exc:
        span = SourceSpan.from_offsets(text, exc.pos, exc.pos, filename)
        excerpt = text[exc.pos:exc.pos + 20].split("\n", 1)[0]
        raise SourceParseError(
            filename,
            reason=f"unexpected input {excerpt!r} at {span.line}:{span.column}",
            span=span,
            source_line=text.split("\n")[span.line - 1],
        ) from exc


def parse_template(template: str, rule: str = "") -> Tuple[Node, ...]:
    """Parse a rule template into its root node(s).

    Raises:
        MalformedPatternError: the template is empty, does not parse, or
            is nothing but a variadic placeholder.
    """
    try:
        tree = _build(template)
    except ParseError as exc:
        span = SourceSpan.from_offsets(template, exc.pos, exc.pos)
        raise MalformedPatternError(
            template,
            rule=rule,
            reason=f"syntax error at column {span.column}",
            span=span,
        ) from exc

    stmts = tree.children
    if not stmts:
        raise MalformedPatternError(
            template, rule=rule, reason="template is empty",
            code=GuardErrorCodes.EMPTY_PATTERN,
        )
    if len(stmts) == 1:
        root = stmts[0]
        if root.kind is NodeKind.VARIADIC:
            raise MalformedPatternError(
                template, rule=rule,
                reason="a variadic placeholder needs an enclosing list",
                hint="wrap it in a call or a statement list",
            )
        if root.kind is NodeKind.EXPR_STMT:
            root = root.children[0]
        logger.debug("Template %r -> %s", template, root.to_sexp())
        return (root,)
    return tuple(stmts)
