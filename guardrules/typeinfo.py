"""
guardrules.typeinfo
~~~~~~~~~~~~~~~~~~~

Static type information for guard evaluation.

Types are never inferred.  A ``TypeInfo`` is built from tables the caller
supplies (expression text → type, named type → underlying type), optionally
completed with the types a snippet declares explicitly (``var x T``,
parameters, ``type T U``).  Lookups that cannot be answered return None,
which makes type guards fail closed.

Usage::

    types = TypeInfo({"t0": "time.Time", "buf": "Payload"},
                     underlying={"Payload": "[]byte"})
    types.type_of(node)          # -> "time.Time"
    types.underlying_of("Payload")  # -> "[]byte"
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from guardrules.syntax import TYPE_KINDS, Node, NodeKind
from guardrules.visitor import DepthFirstVisitor

logger = logging.getLogger(__name__)

__all__ = [
    "TypeInfo",
    "Declarations",
    "DeclarationScanner",
    "ScopedTypes",
    "canonical_type",
    "BUILTIN_TYPES",
]


BUILTIN_TYPES = frozenset({
    "bool", "string", "error", "any",
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
    "float32", "float64", "complex64", "complex128",
    "byte", "rune",
})

# Alias → canonical spelling.
_ALIASES = {"uint8": "byte", "int32": "rune", "interface{}": "any"}

_ALIAS_RE = re.compile(r"\b(uint8|int32)\b|interface\{\}")
_PUNCT_SPACE_RE = re.compile(r"\s*([\[\]*{}])\s*")
_COMPOSITE_RE = re.compile(r"^(\[\]|\*|map\[|chan\b|func\b|struct\b)")


def canonical_type(text: str) -> str:
    """Normalise a type spelling: collapse whitespace, resolve aliases."""
    text = _PUNCT_SPACE_RE.sub(r"\1", " ".join(text.split()))
    return _ALIAS_RE.sub(lambda m: _ALIASES[m.group(0)], text)


def _expression_key(text: str) -> str:
    text = " ".join(text.split())
    while text.startswith("(") and text.endswith(")") and _balanced(text[1:-1]):
        text = text[1:-1].strip()
    return text


def _balanced(text: str) -> bool:
    depth = 0
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


class TypeInfo:
    """Expression types and named-type underlying types."""

    def __init__(
        self,
        types: Optional[Mapping[str, str]] = None,
        underlying: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._types: Mapping[str, str] = MappingProxyType({
            _expression_key(expr): canonical_type(t)
            for expr, t in (types or {}).items()
        })
        self._underlying: Mapping[str, str] = MappingProxyType({
            canonical_type(name): canonical_type(t)
            for name, t in (underlying or {}).items()
        })

    @classmethod
    def empty(cls) -> "TypeInfo":
        return cls()

    @property
    def types(self) -> Mapping[str, str]:
        return self._types

    @property
    def underlying(self) -> Mapping[str, str]:
        return self._underlying

    def merged(self, other: "TypeInfo") -> "TypeInfo":
        """A new table with *other*'s entries taking precedence."""
        types: Dict[str, str] = dict(self._types)
        types.update(other.types)
        underlying: Dict[str, str] = dict(self._underlying)
        underlying.update(other.underlying)
        return TypeInfo(types, underlying)

    def type_of(self, node: Node) -> Optional[str]:
        """Static type of *node*, or None when unknown.

        A type expression's "type" is its own canonical spelling, so guards
        over ``map[$k]$v`` can test the key type directly.
        """
        if node.kind in TYPE_KINDS:
            return canonical_type(node.text)
        found = self._types.get(_expression_key(node.text))
        if found is not None:
            return found
        if node.kind is NodeKind.BASIC_LIT:
            return _literal_type(node.value or "")
        return None

    def underlying_of(self, type_name: str) -> Optional[str]:
        """Underlying type of *type_name*, following named-type chains."""
        current = canonical_type(type_name)
        seen = set()
        while current not in seen:
            seen.add(current)
            if current in BUILTIN_TYPES or _COMPOSITE_RE.match(current):
                return current
            nxt = self._underlying.get(current)
            if nxt is None:
                return None
            current = nxt
        logger.debug("Cyclic underlying-type chain through %r", type_name)
        return None

    def __len__(self) -> int:
        return len(self._types)

    def __repr__(self) -> str:
        return f"TypeInfo({len(self._types)} exprs, {len(self._underlying)} named types)"


def _literal_type(text: str) -> Optional[str]:
    if text.startswith(('"', "`")):
        return "string"
    if text.isdigit() or text.lower().startswith("0x"):
        return "int"
    if text[:1].isdigit():
        return "float64"
    return None


#: Nodes that open a scope for the declarations beneath them.
SCOPE_KINDS = frozenset({
    NodeKind.FILE,
    NodeKind.FUNC_DECL,
    NodeKind.FUNC_LIT,
    NodeKind.BLOCK,
})


class Declarations:
    """Types a snippet declares, grouped by the scope node declaring them.

    Named types (``type T U``) are kept in one file-wide table.
    """

    def __init__(self) -> None:
        self._scopes: Dict[int, Dict[str, str]] = {}
        self.underlying: Dict[str, str] = {}

    def declare(self, scope: Node, name: str, type_text: str) -> None:
        self._scopes.setdefault(id(scope), {})[name] = type_text

    def declared_in(self, scope: Node) -> Mapping[str, str]:
        """Names declared directly in *scope* (not in nested scopes)."""
        return self._scopes.get(id(scope), {})

    def __repr__(self) -> str:
        return f"Declarations({len(self._scopes)} scopes, {len(self.underlying)} named types)"


class DeclarationScanner(DepthFirstVisitor):
    """Reads explicitly declared types out of a snippet.

    Picks up ``var x T``, named parameters (receivers included) and
    ``type Name T`` declarations.  Nothing is inferred from initialisers.
    A variable or parameter belongs to the innermost function or block
    around it; the scanned root always counts as a scope.
    """

    def __init__(self) -> None:
        self.declarations = Declarations()
        self._scopes: List[Node] = []

    def enter(self, node: Node) -> None:
        if not self._scopes or node.kind in SCOPE_KINDS:
            self._scopes.append(node)

    def leave(self, node: Node) -> None:
        if self._scopes and self._scopes[-1] is node:
            self._scopes.pop()

    def visit_var_decl(self, node: Node) -> None:
        name, type_, _ = node.children
        if type_.kind is not NodeKind.EMPTY and name.kind is NodeKind.IDENT:
            self.declarations.declare(self._scopes[-1], name.value or "", type_.text)

    def visit_param(self, node: Node) -> None:
        if len(node.children) == 2 and node.children[0].kind is NodeKind.IDENT:
            self.declarations.declare(
                self._scopes[-1], node.children[0].value or "", node.children[1].text
            )

    def visit_type_decl(self, node: Node) -> None:
        name, type_ = node.children
        if name.kind is NodeKind.IDENT and type_.kind is not NodeKind.STRUCT_TYPE:
            self.declarations.underlying[name.value or ""] = type_.text

    @classmethod
    def scan(cls, tree: Node) -> Declarations:
        scanner = cls()
        scanner.visit(tree)
        return scanner.declarations


class ScopedTypes:
    """
    Type tables that follow a walk through nested scopes.

    Call ``enter`` / ``leave`` for every node of the walk; ``current`` is
    the ``TypeInfo`` for the innermost scope entered so far.  Inner
    declarations shadow outer ones, and *overrides* (configured and
    caller-supplied types) win over anything declared.

    Usage::

        scoped = ScopedTypes(TypeInfo({"t": "time.Time"}), DeclarationScanner.scan(tree))
        scoped.enter(func_decl)
        scoped.current.type_of(node)
    """

    def __init__(
        self, overrides: TypeInfo, declarations: Optional[Declarations] = None
    ) -> None:
        self._overrides = overrides
        self._declarations = declarations
        self._stack: List[Tuple[Node, Dict[str, str], TypeInfo]] = []
        if declarations is not None:
            self._root = TypeInfo(underlying=declarations.underlying).merged(overrides)
        else:
            self._root = overrides

    @property
    def current(self) -> TypeInfo:
        return self._stack[-1][2] if self._stack else self._root

    def enter(self, node: Node) -> None:
        if self._declarations is None:
            return
        declared = self._declarations.declared_in(node)
        if not declared:
            return
        visible = dict(self._stack[-1][1]) if self._stack else {}
        visible.update(declared)
        info = TypeInfo(visible, self._declarations.underlying).merged(self._overrides)
        self._stack.append((node, visible, info))

    def leave(self, node: Node) -> None:
        if self._stack and self._stack[-1][0] is node:
            self._stack.pop()
