"""
syntax.py — tagged-node syntax trees
====================================

Templates and target snippets are both read into the same uniform tree:
every node carries a ``NodeKind`` tag, an optional scalar ``value`` (an
operator, an identifier, a literal) and an ordered list of children.
Lists of statements, parameters, fields, arguments and results are
``LIST`` nodes so that variadic placeholders can capture runs of them.

Shapes by kind::

    FILE            children = statements
    BLOCK           children = statements
    FUNC_DECL       children = [LIST receiver, name, LIST params, LIST results, BLOCK]
    FUNC_LIT        children = [LIST params, LIST results, BLOCK]
    PARAM / FIELD   children = [name, type] or [type]
    TYPE_DECL       children = [name, type]
    VAR_DECL        children = [name, type-or-EMPTY, init-or-EMPTY]
    IF_STMT         children = [cond, BLOCK] or [cond, BLOCK, else]
    FOR_STMT        children = [cond-or-EMPTY, BLOCK]
    RETURN_STMT     children = [LIST values]
    DEFER_STMT      children = [call]
    ASSIGN_STMT     value = op, children = [LIST lhs, LIST rhs]
    INC_DEC_STMT    value = op, children = [expr]
    EXPR_STMT       children = [expr]
    BINARY          value = op, children = [left, right]
    UNARY           value = op, children = [operand]
    CALL            children = [callee, LIST args]
    SELECTOR        children = [operand, name]
    INDEX           children = [operand, index]
    SLICE_TYPE      children = [elem]
    MAP_TYPE        children = [key, value]
    POINTER_TYPE    children = [elem]
    STRUCT_TYPE     children = [LIST fields]
    TYPE_NAME       value = qualified name
    IDENT           value = name
    BASIC_LIT       value = literal text
    PLACEHOLDER     value = placeholder name
    VARIADIC        value = placeholder name

Parentheses only group: they never appear as nodes, but a parenthesised
node's span covers its parentheses so replacements stay well formed.
"""

from __future__ import annotations

import enum
from typing import Any, Iterator, List, Optional

from guardrules.errors import SourceSpan

__all__ = [
    "NodeKind",
    "Node",
    "TYPE_KINDS",
    "STATEMENT_LIST_KINDS",
    "same_shape",
]


class NodeKind(enum.Enum):
    FILE = "file"
    BLOCK = "block"
    LIST = "list"
    EMPTY = "empty"

    # Declarations
    PACKAGE = "package"
    IMPORT = "import"
    FUNC_DECL = "func_decl"
    FUNC_LIT = "func_lit"
    PARAM = "param"
    TYPE_DECL = "type_decl"
    VAR_DECL = "var_decl"
    FIELD = "field"

    # Statements
    IF_STMT = "if_stmt"
    FOR_STMT = "for_stmt"
    RETURN_STMT = "return_stmt"
    DEFER_STMT = "defer_stmt"
    ASSIGN_STMT = "assign_stmt"
    INC_DEC_STMT = "inc_dec_stmt"
    EXPR_STMT = "expr_stmt"

    # Expressions
    BINARY = "binary"
    UNARY = "unary"
    CALL = "call"
    SELECTOR = "selector"
    INDEX = "index"
    IDENT = "ident"
    BASIC_LIT = "basic_lit"

    # Types
    SLICE_TYPE = "slice_type"
    MAP_TYPE = "map_type"
    POINTER_TYPE = "pointer_type"
    STRUCT_TYPE = "struct_type"
    TYPE_NAME = "type_name"

    # Captures
    PLACEHOLDER = "placeholder"
    VARIADIC = "variadic"


TYPE_KINDS = frozenset({
    NodeKind.SLICE_TYPE,
    NodeKind.MAP_TYPE,
    NodeKind.POINTER_TYPE,
    NodeKind.STRUCT_TYPE,
    NodeKind.TYPE_NAME,
})

STATEMENT_LIST_KINDS = frozenset({NodeKind.FILE, NodeKind.BLOCK})


class Node:
    """A node of a template or target syntax tree."""

    __slots__ = ("kind", "value", "children", "start", "end", "source")

    def __init__(
        self,
        kind: NodeKind,
        value: Optional[str] = None,
        children: Optional[List["Node"]] = None,
        start: int = 0,
        end: int = 0,
        source: str = "",
    ) -> None:
        self.kind = kind
        self.value = value
        self.children = list(children or [])
        self.start = start
        self.end = end
        self.source = source

    @property
    def text(self) -> str:
        """The source text this node was read from."""
        return self.source[self.start:self.end]

    def span(self, file: str = "") -> SourceSpan:
        return SourceSpan.from_offsets(self.source, self.start, self.end, file)

    @property
    def is_placeholder(self) -> bool:
        return self.kind in (NodeKind.PLACEHOLDER, NodeKind.VARIADIC)

    def walk(self) -> Iterator["Node"]:
        """Pre-order traversal of this node and its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_sexp(self) -> str:
        head = self.kind.value
        if self.value is not None:
            head += f" {self.value}"
        if not self.children:
            return f"({head})"
        return f"({head} " + " ".join(c.to_sexp() for c in self.children) + ")"

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"kind": self.kind.value}
        if self.value is not None:
            result["value"] = self.value
        if self.children:
            result["children"] = [c.to_dict() for c in self.children]
        return result

    def __repr__(self) -> str:
        return f"Node({self.kind.name}, {self.text!r})"


def same_shape(a: Node, b: Node) -> bool:
    """Structural equality: same kinds, values and children, spans ignored."""
    pending = [(a, b)]
    while pending:
        x, y = pending.pop()
        if x.kind is not y.kind or x.value != y.value:
            return False
        if len(x.children) != len(y.children):
            return False
        pending.extend(zip(x.children, y.children))
    return True
