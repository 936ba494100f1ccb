"""
guardrules.catalog
~~~~~~~~~~~~~~~~~~

``RuleCatalog``: the ordered, immutable, validated collection of rules,
and ``default_catalog()``, the built-in rule table.

Construction compiles every pattern and validates every rule.  All
problems are gathered; the first is raised as a ``DefinitionError`` with
the others attached as notes, so no partially built catalog ever exists.
"""

from __future__ import annotations

import functools
import logging
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from guardrules.diagnostics import Severity
from guardrules.errors import DefinitionError, DuplicateRuleError, UnknownRuleError
from guardrules.guards import IsExported, TextEquals, TextMatches, TypeIs, UnderlyingIs
from guardrules.rules import CompiledRule, Pattern, Rule, compile_rule

logger = logging.getLogger(__name__)

__all__ = ["RuleCatalog", "default_catalog", "DEFAULT_RULES"]


class RuleCatalog:
    """An ordered, immutable collection of compiled rules."""

    __slots__ = ("_rules", "_by_name")

    def __init__(self, rules: Iterable[Rule]) -> None:
        problems: List[DefinitionError] = []
        compiled: List[CompiledRule] = []
        seen: Dict[str, int] = {}

        for index, rule in enumerate(rules):
            if rule.name in seen:
                problems.append(DuplicateRuleError(rule.name))
            else:
                seen[rule.name] = index
            result, found = compile_rule(rule, index)
            problems.extend(found)
            if result is not None:
                compiled.append(result)

        if problems:
            first, rest = problems[0], problems[1:]
            for other in rest:
                first.add_note(other.error_message.message)
            logger.debug("Rule catalog rejected: %d problem(s)", len(problems))
            raise first

        self._init(tuple(compiled))
        logger.debug("Rule catalog built: %d rule(s)", len(compiled))

    def _init(self, rules: Tuple[CompiledRule, ...]) -> None:
        self._rules = rules
        self._by_name = MappingProxyType({r.name: r for r in rules})

    @classmethod
    def _from_compiled(cls, rules: Tuple[CompiledRule, ...]) -> "RuleCatalog":
        catalog = cls.__new__(cls)
        catalog._init(rules)
        return catalog

    def rules(self) -> Tuple[CompiledRule, ...]:
        """All rules in declaration order."""
        return self._rules

    def names(self) -> Tuple[str, ...]:
        return tuple(r.name for r in self._rules)

    def get(self, name: str) -> Optional[CompiledRule]:
        return self._by_name.get(name)

    def __getitem__(self, name: str) -> CompiledRule:
        return self._by_name[name]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[CompiledRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleCatalog({len(self._rules)} rules)"

    def select(
        self,
        enabled: Optional[Iterable[str]] = None,
        disabled: Iterable[str] = (),
        severities: Optional[Dict[str, Severity]] = None,
    ) -> "RuleCatalog":
        """A new catalog restricted to a subset of rules, order preserved.

        ``enabled=None`` keeps every rule.  Raises ``UnknownRuleError`` when
        a name does not belong to this catalog.
        """
        enabled_set = None if enabled is None else set(enabled)
        disabled_set = set(disabled)
        severities = severities or {}
        requested = (enabled_set or set()) | disabled_set | set(severities)
        unknown = sorted(n for n in requested if n not in self._by_name)
        if unknown:
            raise UnknownRuleError(unknown, known=self.names())

        kept = []
        for rule in self._rules:
            if enabled_set is not None and rule.name not in enabled_set:
                continue
            if rule.name in disabled_set:
                continue
            if rule.name in severities:
                rule = rule.with_severity(severities[rule.name])
            kept.append(rule)
        return RuleCatalog._from_compiled(tuple(kept))


# ═══════════════════════════════════════════════════════════════════════════
# Built-in rule table
# ═══════════════════════════════════════════════════════════════════════════

_SAME_MUTEX = TextEquals("mu1", "mu2")

DEFAULT_RULES: Tuple[Rule, ...] = (
    Rule(
        name="boolean-name-convention",
        patterns=("func $name($*params) bool { $*body }",),
        guard=~TextMatches("name", r"^(Is|is|Has|has)"),
        message="bool function name should start with 'Is' | 'is' | 'Has' | 'has'",
        severity=Severity.STYLE,
        doc="Functions returning bool read as predicates when named as one.",
    ),
    Rule(
        name="double-negated-inequality",
        patterns=("!($x != $y)",),
        message="suspicious double negation, use $x == $y",
        suggestion="$x == $y",
        severity=Severity.STYLE,
    ),
    Rule(
        name="double-negated-equality",
        patterns=("!($x == $y)",),
        message="suspicious double negation, use $x != $y",
        suggestion="$x != $y",
        severity=Severity.STYLE,
    ),
    Rule(
        name="exposed-lock-field",
        patterns=(
            "type $name struct { $*_; sync.Mutex; $*_ }",
            Pattern(
                "type $name struct { $*_; sync.RWMutex; $*_ }",
                message="do not embed sync.RWMutex",
            ),
        ),
        guard=IsExported("name"),
        message="do not embed sync.Mutex",
        doc="An embedded lock in an exported type makes Lock/Unlock part of its API.",
    ),
    Rule(
        name="timestamp-equality",
        patterns=(
            "$t0 == $t1",
            Pattern("$t0 != $t1", message="using != with time.Time"),
        ),
        guard=TypeIs("t0", "time.Time") | TypeIs("t1", "time.Time"),
        message="using == with time.Time",
        doc="time.Time carries a location and a monotonic reading; compare with Equal.",
    ),
    Rule(
        name="timestamp-map-key",
        patterns=("map[$k]$v",),
        guard=TypeIs("k", "time.Time"),
        message="map with time.Time keys are easy to misuse",
    ),
    Rule(
        name="self-referential-compound-assign",
        patterns=(
            "$x += $x + $_",
            "$x += $x - $_",
            Pattern("$x -= $x + $_", message="odd -= expression"),
            Pattern("$x -= $x - $_", message="odd -= expression"),
            Pattern("$x *= $x * $_", message="odd *= expression"),
            Pattern("$x *= $x / $_", message="odd *= expression"),
            Pattern("$x /= $x * $_", message="odd /= expression"),
            Pattern("$x /= $x / $_", message="odd /= expression"),
        ),
        message="odd += expression",
        doc="The target appears on both sides; a plain = was probably meant.",
    ),
    Rule(
        name="difference-vs-comparison",
        patterns=(
            Pattern("$x - $y == 0", suggestion="$x == $y"),
            Pattern("$x - $y != 0", suggestion="$x != $y"),
            Pattern("$x - $y < 0", suggestion="$y > $x"),
            Pattern("$x - $y <= 0", suggestion="$y >= $x"),
            Pattern("$x - $y > 0", suggestion="$x > $y"),
            Pattern("$x - $y >= 0", suggestion="$x >= $y"),
        ),
        message="odd comparison",
        doc="Subtracting before comparing with zero can overflow.",
    ),
    Rule(
        name="xor-vs-equality",
        patterns=(
            Pattern("$x ^ $y == 0", suggestion="$x == $y"),
            Pattern("$x ^ $y != 0", suggestion="$x != $y"),
        ),
        message="odd comparison",
        severity=Severity.STYLE,
    ),
    Rule(
        name="stringify-error-value",
        patterns=(
            "fmt.Sprint($err)",
            'fmt.Sprintf("%s", $err)',
            'fmt.Sprintf("%v", $err)',
        ),
        guard=TypeIs("err", "error"),
        message="maybe call $err.Error() instead of fmt.Sprint()?",
        severity=Severity.STYLE,
        doc="Advisory only: Error() on a nil error panics where Sprint does not.",
    ),
    Rule(
        name="swallow-error-on-nil-check",
        patterns=(
            "if err == nil { return err }",
            "if err == nil { return $*_, err }",
        ),
        message="return nil error instead of nil value",
    ),
    Rule(
        name="string-byte-length-roundtrip-string",
        patterns=("len(string($b))",),
        guard=UnderlyingIs("b", "[]byte"),
        message="Call len() on the byte slice instead of converting to a string first",
        suggestion="len($b)",
        severity=Severity.PERFORMANCE,
    ),
    Rule(
        name="string-byte-length-roundtrip-bytes",
        patterns=("len([]byte($s))",),
        guard=UnderlyingIs("s", "string"),
        message="Call len() on the string instead of converting to []byte first",
        suggestion="len($s)",
        severity=Severity.PERFORMANCE,
    ),
    Rule(
        name="lock-unlock-without-defer",
        patterns=(
            "$mu1.Lock(); $mu2.Unlock()",
            "$mu1.RLock(); $mu2.RUnlock()",
        ),
        guard=_SAME_MUTEX,
        message="defer is missing, mutex is unlocked immediately",
        at="mu2",
    ),
    Rule(
        name="mismatched-lock-kind",
        patterns=(
            Pattern(
                "$mu1.Lock(); defer $mu2.RUnlock()",
                suggestion="$mu1.Lock(); defer $mu1.Unlock()",
            ),
            Pattern(
                "$mu1.RLock(); defer $mu2.Unlock()",
                message="suspicious unlock, maybe RUnlock was intended?",
                suggestion="$mu1.RLock(); defer $mu1.RUnlock()",
            ),
        ),
        guard=_SAME_MUTEX,
        message="suspicious unlock, maybe Unlock was intended?",
        at="mu2",
    ),
    Rule(
        name="double-acquire-before-release",
        patterns=(
            Pattern(
                "$mu1.Lock(); defer $mu2.Lock()",
                message="maybe defer $mu1.Unlock() was intended?",
                suggestion="$mu1.Lock(); defer $mu1.Unlock()",
            ),
            Pattern(
                "$mu1.RLock(); defer $mu2.RLock()",
                message="maybe defer $mu1.RUnlock() was intended?",
                suggestion="$mu1.RLock(); defer $mu1.RUnlock()",
            ),
        ),
        guard=_SAME_MUTEX,
        message="maybe defer $mu1.Unlock() was intended?",
        at="mu2",
    ),
)


@functools.lru_cache(maxsize=None)
def default_catalog() -> RuleCatalog:
    """The built-in catalog, compiled once per process."""
    return RuleCatalog(DEFAULT_RULES)
