"""
guardrules/visitor.py
=====================

Visitor infrastructure for ``Node`` trees.

Provides:
- ``NodeVisitor`` — dispatches ``visit_<kind>`` by the node's ``NodeKind``
- ``DepthFirstVisitor`` — iterative pre/post-order traversal with ``enter`` / ``leave`` hooks
- ``PlaceholderCollector`` — names bound by the placeholders of a template
"""

from __future__ import annotations

from typing import Any, Callable, List, Set, Tuple

from guardrules.syntax import Node

__all__ = [
    "NodeVisitor",
    "DepthFirstVisitor",
    "PlaceholderCollector",
    "collect_placeholders",
]


class NodeVisitor:
    """Base class for ``Node`` visitors.

    ``visit`` looks for a method named ``visit_<kind>`` (``visit_call``,
    ``visit_if_stmt``...) and falls back to ``generic_visit``, which does
    nothing.  Subclasses override the methods they care about.
    """

    def visit(self, node: Node) -> Any:
        """Dispatch to the appropriate visit method."""
        method: Callable[[Node], Any] = getattr(
            self, f"visit_{node.kind.value}", self.generic_visit
        )
        return method(node)

    def generic_visit(self, node: Node) -> Any:
        return None


class DepthFirstVisitor(NodeVisitor):
    """Visitor that traverses all children in depth-first order.

    ``visit`` walks the whole subtree with an explicit stack, so long
    left-folded operator chains do not hit the recursion limit.  For each
    node ``enter`` runs first, then the node's ``visit_<kind>`` method,
    then the children, then ``leave``.  ``visit_<kind>`` methods handle the
    node itself and never recurse into its children.
    """

    def visit(self, node: Node) -> Any:
        stack: List[Tuple[Node, bool]] = [(node, False)]
        while stack:
            current, leaving = stack.pop()
            if leaving:
                self.leave(current)
                continue
            self.enter(current)
            super().visit(current)
            stack.append((current, True))
            stack.extend((child, False) for child in reversed(current.children))
        return None

    def enter(self, node: Node) -> None:
        """Called before visiting children."""

    def leave(self, node: Node) -> None:
        """Called after visiting children."""


class PlaceholderCollector(DepthFirstVisitor):
    """Collects the names bound by ``$x`` / ``$*x`` placeholders.

    The anonymous ``$_`` never binds and is not collected.
    """

    def __init__(self) -> None:
        self.names: List[str] = []
        self._seen: Set[str] = set()

    def _add(self, node: Node) -> None:
        name = node.value or ""
        if name != "_" and name not in self._seen:
            self._seen.add(name)
            self.names.append(name)

    def visit_placeholder(self, node: Node) -> None:
        self._add(node)

    def visit_variadic(self, node: Node) -> None:
        self._add(node)


def collect_placeholders(*roots: Node) -> List[str]:
    """Placeholder names bound by *roots*, in order of first appearance."""
    collector = PlaceholderCollector()
    for root in roots:
        collector.visit(root)
    return collector.names
