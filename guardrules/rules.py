"""
guardrules.rules
~~~~~~~~~~~~~~~~

Rule declarations and their compiled form.

A ``Rule`` is plain data: a name, one or more pattern templates, an
optional guard, a message, an optional suggestion and an optional
location override.  ``compile_rule`` parses the templates and checks that
every placeholder the guard, suggestion and location refer to is bound by
some pattern, returning a ``CompiledRule`` plus the list of problems found.

Message and suggestion templates expand ``$name`` to the captured source
text; variadic captures join with ", ".  Names the match did not bind are
left as written.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union

from guardrules.diagnostics import Severity
from guardrules.errors import (
    DefinitionError,
    GuardErrorCodes,
    MalformedPatternError,
    UnboundPlaceholderError,
)
from guardrules.guards import Binding, Guard, binding_text
from guardrules.matcher import Match, match_node, match_window
from guardrules.parser import parse_template
from guardrules.syntax import Node
from guardrules.visitor import collect_placeholders

logger = logging.getLogger(__name__)

__all__ = [
    "Pattern",
    "Rule",
    "CompiledPattern",
    "CompiledRule",
    "compile_rule",
    "expand_template",
    "template_placeholders",
]

_PLACEHOLDER_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")


def expand_template(template: str, bindings: Mapping[str, Binding]) -> str:
    """Replace ``$name`` with the bound text; unbound names stay verbatim."""

    def substitute(m: "re.Match[str]") -> str:
        value = bindings.get(m.group(1))
        return m.group(0) if value is None else binding_text(value)

    return _PLACEHOLDER_RE.sub(substitute, template)


def template_placeholders(template: str) -> FrozenSet[str]:
    """Placeholder names referenced by a message or suggestion template."""
    return frozenset(n for n in _PLACEHOLDER_RE.findall(template) if n != "_")


@dataclass(frozen=True)
class Pattern:
    """One pattern variant of a rule.

    ``message`` / ``suggestion`` override the rule's own when this variant
    is the one that matched.
    """

    template: str
    message: Optional[str] = None
    suggestion: Optional[str] = None


@dataclass(frozen=True)
class Rule:
    name: str
    patterns: Tuple[Union[Pattern, str], ...]
    message: str
    guard: Optional[Guard] = None
    suggestion: Optional[str] = None
    at: Optional[str] = None
    severity: Severity = Severity.WARNING
    doc: str = ""

    def __post_init__(self) -> None:
        patterns = tuple(
            p if isinstance(p, Pattern) else Pattern(p) for p in self.patterns
        )
        object.__setattr__(self, "patterns", patterns)


@dataclass(frozen=True)
class CompiledPattern:
    pattern: Pattern
    roots: Tuple[Node, ...]
    placeholders: FrozenSet[str]

    @property
    def template(self) -> str:
        return self.pattern.template

    @property
    def is_sequence(self) -> bool:
        return len(self.roots) > 1

    def match(self, node: Node) -> Optional[Match]:
        return match_node(self.roots[0], node)

    def match_at(self, stmts: List[Node], index: int) -> Optional[Match]:
        return match_window(self.roots, stmts, index)


@dataclass(frozen=True)
class CompiledRule:
    """A validated rule with parsed patterns, ready for the engine."""

    rule: Rule
    patterns: Tuple[CompiledPattern, ...]
    index: int = 0
    severity: Severity = Severity.WARNING
    node_patterns: Tuple[CompiledPattern, ...] = field(default=(), repr=False)
    sequence_patterns: Tuple[CompiledPattern, ...] = field(default=(), repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "node_patterns", tuple(p for p in self.patterns if not p.is_sequence)
        )
        object.__setattr__(
            self, "sequence_patterns", tuple(p for p in self.patterns if p.is_sequence)
        )

    @property
    def name(self) -> str:
        return self.rule.name

    @property
    def guard(self) -> Optional[Guard]:
        return self.rule.guard

    @property
    def at(self) -> Optional[str]:
        return self.rule.at

    @property
    def doc(self) -> str:
        return self.rule.doc

    def message_for(self, pattern: CompiledPattern, match: Match) -> str:
        template = pattern.pattern.message or self.rule.message
        return expand_template(template, match.bindings)

    def suggestion_for(self, pattern: CompiledPattern, match: Match) -> Optional[str]:
        """Expanded replacement for *match*, or None.

        A ``;``-joined replacement for a statement sequence keeps the
        separators the matched statements had in the source.
        """
        template = pattern.pattern.suggestion or self.rule.suggestion
        if template is None:
            return None
        fragments = template.split("; ")
        if len(match.nodes) < 2 or len(fragments) != len(match.nodes):
            return expand_template(template, match.bindings)
        pieces = [expand_template(fragments[0], match.bindings)]
        for prev, nxt, fragment in zip(match.nodes, match.nodes[1:], fragments[1:]):
            pieces.append(match.source[prev.end:nxt.start])
            pieces.append(expand_template(fragment, match.bindings))
        return "".join(pieces)

    def with_severity(self, severity: Severity) -> "CompiledRule":
        return CompiledRule(self.rule, self.patterns, self.index, severity)

    def describe(self) -> str:
        lines = [f"{self.name} ({self.severity.value})"]
        if self.doc:
            lines.append(f"  {self.doc}")
        for p in self.patterns:
            lines.append(f"  match:   {p.template}")
            if p.pattern.suggestion:
                lines.append(f"           -> {p.pattern.suggestion}")
        if self.guard is not None:
            lines.append(f"  where:   {self.guard.describe()}")
        lines.append(f"  report:  {self.rule.message}")
        if self.rule.suggestion:
            lines.append(f"  suggest: {self.rule.suggestion}")
        if self.at:
            lines.append(f"  at:      ${self.at}")
        return "\n".join(lines)


def compile_rule(
    rule: Rule, index: int = 0
) -> Tuple[Optional[CompiledRule], List[DefinitionError]]:
    """Parse and validate *rule*.

    Returns the compiled rule (None when any problem was found) and every
    problem found, in discovery order.
    """
    problems: List[DefinitionError] = []

    if not rule.name:
        problems.append(DefinitionError("Rule has an empty name"))
    if not rule.patterns:
        problems.append(
            DefinitionError(
                f"Rule '{rule.name}' declares no patterns",
                code=GuardErrorCodes.EMPTY_PATTERN,
                rule=rule.name,
            )
        )
    if rule.guard is not None:
        for reason in rule.guard.validate():
            problems.append(
                DefinitionError(
                    f"Rule '{rule.name}': invalid guard: {reason}",
                    code=GuardErrorCodes.INVALID_GUARD,
                    rule=rule.name,
                )
            )

    compiled: List[CompiledPattern] = []
    for pattern in rule.patterns:
        try:
            roots = parse_template(pattern.template, rule=rule.name)
        except MalformedPatternError as exc:
            problems.append(exc)
            continue
        compiled.append(
            CompiledPattern(pattern, roots, frozenset(collect_placeholders(*roots)))
        )

    bound: FrozenSet[str] = frozenset().union(*(p.placeholders for p in compiled))
    # Binding checks only make sense once every template parsed.
    if len(compiled) == len(rule.patterns):
        problems.extend(_check_bindings(rule, compiled, bound))

    if problems:
        return None, problems

    logger.debug(
        "Compiled rule %s: %d pattern(s), placeholders %s",
        rule.name, len(compiled), sorted(bound),
    )
    return CompiledRule(rule, tuple(compiled), index, rule.severity), problems


def _check_bindings(
    rule: Rule, compiled: Sequence[CompiledPattern], bound: FrozenSet[str]
) -> List[DefinitionError]:
    problems: List[DefinitionError] = []

    def unbound(names, where, available):
        for name in sorted(set(names) - available):
            problems.append(UnboundPlaceholderError(name, rule=rule.name, where=where))

    if rule.guard is not None:
        unbound(rule.guard.placeholders(), "guard", bound)
    if rule.suggestion is not None:
        unbound(template_placeholders(rule.suggestion), "suggestion", bound)
    if rule.at is not None:
        unbound({rule.at}, "location override", bound)
    for p in compiled:
        if p.pattern.suggestion is not None:
            unbound(
                template_placeholders(p.pattern.suggestion),
                f"suggestion of pattern {p.template!r}",
                p.placeholders,
            )
    return problems
