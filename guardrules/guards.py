"""
guardrules.guards
~~~~~~~~~~~~~~~~~

Guard predicates over a binding set.

A guard is a pure predicate that receives the bindings of a structural
match together with the ``TypeInfo`` of the target.  Guards compose with
``&``, ``|`` and ``~``::

    guard = ~TextMatches("name", r"^(Is|is|Has|has)")
    guard = TypeIs("t0", "time.Time") | TypeIs("t1", "time.Time")

Evaluation is three-valued.  A guard that lacks the information it needs
(an unknown static type, a placeholder the matching pattern did not bind)
raises ``GuardUnavailable``.  ``And`` / ``Or`` only propagate it when the
other operand cannot decide the outcome, and the engine treats an
unavailable result as "does not fire".
"""

from __future__ import annotations

import abc
import re
from dataclasses import dataclass
from typing import FrozenSet, List, Mapping, Tuple, Union

from guardrules.errors import GuardUnavailable
from guardrules.syntax import Node
from guardrules.typeinfo import TypeInfo, canonical_type

__all__ = [
    "Guard",
    "And",
    "Or",
    "Not",
    "TextMatches",
    "TextEquals",
    "TypeIs",
    "UnderlyingIs",
    "IsExported",
    "Binding",
    "binding_text",
]

Binding = Union[Node, Tuple[Node, ...]]


def binding_text(value: Binding) -> str:
    """Source text of a capture; variadic captures join with ", "."""
    if isinstance(value, tuple):
        return ", ".join(node.text for node in value)
    return value.text


def _lookup(bindings: Mapping[str, Binding], name: str) -> Binding:
    try:
        return bindings[name]
    except KeyError:
        raise GuardUnavailable(f"${name} is not bound by the matching pattern") from None


def _single(bindings: Mapping[str, Binding], name: str) -> Node:
    value = _lookup(bindings, name)
    if isinstance(value, tuple):
        raise GuardUnavailable(f"${name} captures a list, not a single node")
    return value


class Guard(abc.ABC):
    """Base class for guard predicates."""

    @abc.abstractmethod
    def evaluate(self, bindings: Mapping[str, Binding], types: TypeInfo) -> bool:
        """Decide the guard; raises ``GuardUnavailable`` when undecidable."""

    @abc.abstractmethod
    def placeholders(self) -> FrozenSet[str]:
        """Placeholder names this guard refers to."""

    @abc.abstractmethod
    def describe(self) -> str:
        """Human-readable rendering, used by ``guardrules rules``."""

    def validate(self) -> List[str]:
        """Problems that make this guard unusable; empty when valid."""
        return []

    def __call__(self, bindings: Mapping[str, Binding], types: TypeInfo) -> bool:
        return self.evaluate(bindings, types)

    def __and__(self, other: "Guard") -> "Guard":
        return And(self, other)

    def __or__(self, other: "Guard") -> "Guard":
        return Or(self, other)

    def __invert__(self) -> "Guard":
        return Not(self)

    def __str__(self) -> str:
        return self.describe()


# ─────────────────────────────────────────────────────────────
# Composition
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class And(Guard):
    left: Guard
    right: Guard

    def evaluate(self, bindings, types):
        pending = None
        for operand in (self.left, self.right):
            try:
                if not operand.evaluate(bindings, types):
                    return False
            except GuardUnavailable as exc:
                pending = exc
        if pending is not None:
            raise pending
        return True

    def placeholders(self):
        return self.left.placeholders() | self.right.placeholders()

    def validate(self):
        return self.left.validate() + self.right.validate()

    def describe(self):
        return f"({self.left.describe()} && {self.right.describe()})"


@dataclass(frozen=True)
class Or(Guard):
    left: Guard
    right: Guard

    def evaluate(self, bindings, types):
        pending = None
        for operand in (self.left, self.right):
            try:
                if operand.evaluate(bindings, types):
                    return True
            except GuardUnavailable as exc:
                pending = exc
        if pending is not None:
            raise pending
        return False

    def placeholders(self):
        return self.left.placeholders() | self.right.placeholders()

    def validate(self):
        return self.left.validate() + self.right.validate()

    def describe(self):
        return f"({self.left.describe()} || {self.right.describe()})"


@dataclass(frozen=True)
class Not(Guard):
    operand: Guard

    def evaluate(self, bindings, types):
        return not self.operand.evaluate(bindings, types)

    def placeholders(self):
        return self.operand.placeholders()

    def validate(self):
        return self.operand.validate()

    def describe(self):
        return f"!{self.operand.describe()}"


# ─────────────────────────────────────────────────────────────
# Atoms
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TextMatches(Guard):
    """The captured text matches a regular expression (``re.search``)."""

    name: str
    pattern: str

    def evaluate(self, bindings, types):
        return re.search(self.pattern, binding_text(_lookup(bindings, self.name))) is not None

    def validate(self):
        try:
            re.compile(self.pattern)
        except re.error as exc:
            return [f"bad regular expression {self.pattern!r}: {exc}"]
        return []

    def placeholders(self):
        return frozenset({self.name})

    def describe(self):
        return f"${self.name}.Text.Matches(`{self.pattern}`)"


@dataclass(frozen=True)
class TextEquals(Guard):
    """Two captures have identical source text."""

    left: str
    right: str

    def evaluate(self, bindings, types):
        return binding_text(_lookup(bindings, self.left)) == binding_text(
            _lookup(bindings, self.right)
        )

    def placeholders(self):
        return frozenset({self.left, self.right})

    def describe(self):
        return f"${self.left}.Text == ${self.right}.Text"


@dataclass(frozen=True)
class TypeIs(Guard):
    """The static type of a capture is exactly ``type_name``."""

    name: str
    type_name: str

    def evaluate(self, bindings, types):
        found = types.type_of(_single(bindings, self.name))
        if found is None:
            raise GuardUnavailable(f"static type of ${self.name} is unknown")
        return found == canonical_type(self.type_name)

    def placeholders(self):
        return frozenset({self.name})

    def describe(self):
        return f"${self.name}.Type.Is(`{self.type_name}`)"


@dataclass(frozen=True)
class UnderlyingIs(Guard):
    """The underlying type of a capture's static type is ``type_name``."""

    name: str
    type_name: str

    def evaluate(self, bindings, types):
        found = types.type_of(_single(bindings, self.name))
        if found is None:
            raise GuardUnavailable(f"static type of ${self.name} is unknown")
        underlying = types.underlying_of(found)
        if underlying is None:
            raise GuardUnavailable(f"underlying type of {found} is unknown")
        return underlying == canonical_type(self.type_name)

    def placeholders(self):
        return frozenset({self.name})

    def describe(self):
        return f"${self.name}.Type.Underlying().Is(`{self.type_name}`)"


@dataclass(frozen=True)
class IsExported(Guard):
    """The captured identifier starts with an upper-case letter."""

    name: str

    def evaluate(self, bindings, types):
        text = binding_text(_single(bindings, self.name))
        return text[:1].isupper()

    def placeholders(self):
        return frozenset({self.name})

    def describe(self):
        return f"${self.name}.Text.Matches(`^\\p{{Lu}}`)"
