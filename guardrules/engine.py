"""
guardrules.engine
~~~~~~~~~~~~~~~~~

The evaluation contract: walk a target tree and try every rule.

For each node, in pre-order, each rule is tried in catalog order and each
of its patterns in declared order.  The first pattern that matches
structurally and whose guard holds yields one diagnostic for that node.
Statement-sequence patterns are tried against the windows of every
statement list (file or block), anchored at each statement in turn.

Guards that cannot be decided fail closed: the rule does not fire and the
reason is logged at DEBUG.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Tuple, Union

from guardrules.catalog import RuleCatalog, default_catalog
from guardrules.config import LintConfig
from guardrules.diagnostics import (
    Diagnostic,
    DiagnosticCollector,
    Suggestion,
    SuppressionManager,
    apply_suggestions,
)
from guardrules.errors import GuardUnavailable, SourceSpan
from guardrules.matcher import Match
from guardrules.parser import parse_source
from guardrules.rules import CompiledPattern, CompiledRule
from guardrules.syntax import STATEMENT_LIST_KINDS, Node
from guardrules.typeinfo import Declarations, DeclarationScanner, ScopedTypes, TypeInfo
from guardrules.visitor import DepthFirstVisitor

logger = logging.getLogger(__name__)

__all__ = ["Linter", "evaluate"]

TypesArg = Optional[Union[TypeInfo, Mapping[str, str]]]


def _guard_holds(rule: CompiledRule, match: Match, types: TypeInfo) -> bool:
    if rule.guard is None:
        return True
    try:
        return rule.guard(match.bindings, types)
    except GuardUnavailable as exc:
        logger.debug("%s: guard undecided at offset %d: %s", rule.name, match.start, exc.reason)
        return False


def _location(rule: CompiledRule, match: Match, filename: str) -> SourceSpan:
    if rule.at is not None:
        captured = match.bindings.get(rule.at)
        if isinstance(captured, tuple):
            if captured:
                return SourceSpan.merge(*(n.span(filename) for n in captured))
        elif captured is not None:
            return captured.span(filename)
    return match.span(filename)


def _diagnostic(
    rule: CompiledRule, pattern: CompiledPattern, match: Match, filename: str
) -> Diagnostic:
    region = match.span(filename)
    suggestion = None
    replacement = rule.suggestion_for(pattern, match)
    if replacement is not None:
        suggestion = Suggestion(region, match.text, replacement)
    return Diagnostic(
        rule=rule.name,
        message=rule.message_for(pattern, match),
        severity=rule.severity,
        location=_location(rule, match, filename),
        suggestion=suggestion,
        matched=match.text,
    )


class _RuleRunner(DepthFirstVisitor):
    """Pre-order walk trying every rule at every node."""

    def __init__(self, catalog: RuleCatalog, types: ScopedTypes, filename: str) -> None:
        self.catalog = catalog
        self.types = types
        self.filename = filename
        self.found: List[Diagnostic] = []

    def enter(self, node: Node) -> None:
        self.types.enter(node)
        types = self.types.current
        for rule in self.catalog:
            for pattern in rule.node_patterns:
                match = pattern.match(node)
                if match is not None and _guard_holds(rule, match, types):
                    self.found.append(_diagnostic(rule, pattern, match, self.filename))
                    break

        if node.kind in STATEMENT_LIST_KINDS:
            self._try_sequences(node.children, types)

    def leave(self, node: Node) -> None:
        self.types.leave(node)

    def _try_sequences(self, stmts: List[Node], types: TypeInfo) -> None:
        for index in range(len(stmts)):
            for rule in self.catalog:
                for pattern in rule.sequence_patterns:
                    match = pattern.match_at(stmts, index)
                    if match is not None and _guard_holds(rule, match, types):
                        self.found.append(_diagnostic(rule, pattern, match, self.filename))
                        break


def evaluate(
    catalog: RuleCatalog,
    tree: Node,
    types: TypeInfo,
    filename: str = "",
    declarations: Optional[Declarations] = None,
) -> List[Diagnostic]:
    """Run every rule of *catalog* over *tree*; no filtering or suppression.

    *declarations*, when given, adds the types the snippet declares,
    scoped to the function or block declaring them.  Entries of *types*
    take precedence.
    """
    runner = _RuleRunner(catalog, ScopedTypes(types, declarations), filename)
    runner.visit(tree)
    return runner.found


class Linter:
    """
    Runs a rule catalog over target snippets.

    Usage::

        linter = Linter()
        for diag in linter.check_source(text, "cache.go", {"t": "time.Time"}):
            print(diag.to_gcc_format())
    """

    def __init__(
        self,
        catalog: Optional[RuleCatalog] = None,
        config: Optional[LintConfig] = None,
    ) -> None:
        self.config = config or LintConfig()
        base = catalog if catalog is not None else default_catalog()
        self.catalog = base.select(
            self.config.enabled_rules,
            self.config.disabled_rules,
            self.config.severity_overrides(),
        )
        self._base_types = self.config.type_info()

    def _types_for(self, types: TypesArg) -> TypeInfo:
        resolved = self._base_types
        if types is not None:
            if not isinstance(types, TypeInfo):
                types = TypeInfo(types)
            resolved = resolved.merged(types)
        return resolved

    def _suppressions(self, tree: Node, filename: str) -> SuppressionManager:
        manager = SuppressionManager()
        for entry in self.config.suppress:
            rule, _, pattern = entry.partition(":")
            if pattern:
                manager.add_file_suppression(pattern, rule)
            else:
                manager.add_global_suppression(rule)
        manager.load_inline_suppressions_from_source(tree.source, filename)
        return manager

    def check_tree(
        self, tree: Node, types: TypesArg = None, filename: str = ""
    ) -> List[Diagnostic]:
        """Diagnostics for an already parsed snippet, ordered by location."""
        collector = DiagnosticCollector(
            suppression_manager=self._suppressions(tree, filename)
        )
        declarations = DeclarationScanner.scan(tree) if self.config.use_declarations else None
        collector.extend(
            evaluate(self.catalog, tree, self._types_for(types), filename, declarations)
        )
        if collector.suppressed_count:
            logger.debug("%s: %d finding(s) suppressed", filename or "<source>", collector.suppressed_count)
        return collector.diagnostics

    def check_source(
        self, text: str, filename: str = "", types: TypesArg = None
    ) -> List[Diagnostic]:
        """Parse *text* and return its diagnostics.

        Raises:
            SourceParseError: the text is not in the supported Go subset.
        """
        tree = parse_source(text, filename)
        return self.check_tree(tree, types, filename)

    def fix_source(
        self, text: str, filename: str = "", types: TypesArg = None
    ) -> Tuple[str, int]:
        """Apply every non-overlapping suggestion; returns (text, applied)."""
        return apply_suggestions(text, self.check_source(text, filename, types))
