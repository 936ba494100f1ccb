"""
guardrules.matcher
~~~~~~~~~~~~~~~~~~

Structural unification of template trees against target trees.

* ``$x`` binds any single node; a repeated ``$x`` must bind a structurally
  identical sub-tree (spans and parentheses are ignored).
* ``$_`` matches any single node and never binds.
* ``$*x`` binds a run of zero or more siblings inside a list (statements,
  parameters, fields, arguments, results).  Runs are tried shortest first,
  backtracking when the rest of the list fails.
* Statement-sequence patterns are matched against contiguous windows of a
  statement list, anchored at a given statement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from guardrules.errors import SourceSpan
from guardrules.guards import Binding, binding_text
from guardrules.syntax import Node, NodeKind, same_shape

__all__ = ["Match", "match_node", "match_sequence", "match_window"]

_Bindings = Dict[str, Binding]


@dataclass(frozen=True)
class Match:
    """A successful structural match.

    ``nodes`` are the matched target nodes: one for a node pattern, the
    window of statements for a sequence pattern.
    """

    nodes: Tuple[Node, ...]
    bindings: Mapping[str, Binding] = field(default_factory=dict)

    @property
    def start(self) -> int:
        return self.nodes[0].start

    @property
    def end(self) -> int:
        return self.nodes[-1].end

    @property
    def source(self) -> str:
        return self.nodes[0].source

    @property
    def text(self) -> str:
        return self.source[self.start:self.end]

    def span(self, file: str = "") -> SourceSpan:
        return SourceSpan.from_offsets(self.source, self.start, self.end, file)

    def text_of(self, name: str) -> Optional[str]:
        value = self.bindings.get(name)
        return None if value is None else binding_text(value)


def _bind_single(name: str, target: Node, bindings: _Bindings) -> Optional[_Bindings]:
    if name == "_":
        return bindings
    bound = bindings.get(name)
    if bound is None:
        extended = dict(bindings)
        extended[name] = target
        return extended
    if isinstance(bound, tuple) or not same_shape(bound, target):
        return None
    return bindings


def _bind_run(name: str, run: Tuple[Node, ...], bindings: _Bindings) -> Optional[_Bindings]:
    if name == "_":
        return bindings
    bound = bindings.get(name)
    if bound is None:
        extended = dict(bindings)
        extended[name] = run
        return extended
    if not isinstance(bound, tuple) or len(bound) != len(run):
        return None
    if all(same_shape(a, b) for a, b in zip(bound, run)):
        return bindings
    return None


def _unify(pattern: Node, target: Node, bindings: _Bindings) -> Optional[_Bindings]:
    if pattern.kind is NodeKind.PLACEHOLDER:
        return _bind_single(pattern.value or "_", target, bindings)
    if pattern.kind is not target.kind or pattern.value != target.value:
        return None
    return _unify_list(pattern.children, target.children, bindings)


def _unify_list(
    patterns: Sequence[Node], targets: Sequence[Node], bindings: _Bindings
) -> Optional[_Bindings]:
    if not patterns:
        return bindings if not targets else None

    head, rest = patterns[0], patterns[1:]
    if head.kind is NodeKind.VARIADIC:
        for cut in range(len(targets) + 1):
            extended = _bind_run(head.value or "_", tuple(targets[:cut]), bindings)
            if extended is None:
                continue
            result = _unify_list(rest, targets[cut:], extended)
            if result is not None:
                return result
        return None

    if not targets:
        return None
    extended = _unify(head, targets[0], bindings)
    if extended is None:
        return None
    return _unify_list(rest, targets[1:], extended)


def match_node(pattern: Node, target: Node) -> Optional[Match]:
    """Unify a single-node pattern with *target*."""
    bindings = _unify(pattern, target, {})
    if bindings is None:
        return None
    return Match((target,), MappingProxyType(bindings))


def match_sequence(patterns: Sequence[Node], targets: Sequence[Node]) -> Optional[Match]:
    """Unify a statement-sequence pattern with exactly *targets*."""
    if not targets:
        return None
    bindings = _unify_list(patterns, targets, {})
    if bindings is None:
        return None
    return Match(tuple(targets), MappingProxyType(bindings))


def match_window(
    patterns: Sequence[Node], stmts: List[Node], index: int
) -> Optional[Match]:
    """Match a sequence pattern against a window of *stmts* starting at *index*.

    The shortest window that matches wins.
    """
    if any(p.kind is NodeKind.VARIADIC for p in patterns):
        ends = range(index + 1, len(stmts) + 1)
    else:
        end = index + len(patterns)
        ends = range(end, end + 1) if end <= len(stmts) else range(0)
    for end in ends:
        found = match_sequence(patterns, stmts[index:end])
        if found is not None:
            return found
    return None
