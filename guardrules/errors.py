# guardrules/errors.py
"""
Guardrules Error Types

This module provides the error handling infrastructure for the guardrules
rule catalog: structured error codes, source spans, gcc-style rendering and
the exception hierarchy raised while a catalog is being defined or a target
snippet is being read.

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                     │
├─────────────────────────────────────────────────────────────────────────────┤
│  GuardrulesError (base)                                                     │
│  ├── DefinitionError          - Catalog construction failures (fatal)       │
│  │   ├── MalformedPatternError   - Template does not parse                  │
│  │   ├── UnboundPlaceholderError - Guard/suggestion uses unbound $name      │
│  │   └── DuplicateRuleError      - Two rules share a name                   │
│  ├── SourceParseError         - Target snippet cannot be read               │
│  └── ConfigError              - Invalid configuration                       │
│                                                                             │
│  GuardUnavailable (internal)  - Guard lacks information; fails closed       │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Each error has a code of the form GRD-XXXX where XXXX falls in:
  - 1000-1999: Template / source syntax errors
  - 3000-3999: Definition (binding / naming) errors
  - 6000-6999: Configuration errors
  - 9000-9999: Internal errors

Example Usage:
──────────────
    from guardrules.errors import DefinitionError

    try:
        catalog = RuleCatalog(my_rules)
    except DefinitionError as exc:
        print(exc.to_gcc_format())
        raise SystemExit(2)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto, unique
from typing import Any, List, Optional, Sequence, Tuple


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR SEVERITY AND CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorSeverity(Enum):
    """Severity levels for guardrules errors."""

    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"


@unique
class ErrorPhase(Enum):
    """Phase in which the error was raised."""

    SYNTAX = "syntax"          # Template or snippet parsing
    DEFINITION = "definition"  # Catalog construction
    CONFIG = "config"          # Configuration loading
    INTERNAL = "internal"


@unique
class ErrorCategory(Enum):
    """Fine-grained error categories for filtering."""

    INVALID_PATTERN = auto()
    INVALID_SOURCE = auto()
    EMPTY_PATTERN = auto()
    UNBOUND_PLACEHOLDER = auto()
    DUPLICATE_NAME = auto()
    INVALID_RULE = auto()
    INVALID_GUARD = auto()
    INVALID_CONFIG = auto()
    UNKNOWN_RULE = auto()
    INTERNAL_ERROR = auto()


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES
# ═══════════════════════════════════════════════════════════════════════════════

class ErrorCode:
    """
    Structured error code of the form PREFIX-NNNN.
    """

    __slots__ = ("prefix", "number", "category", "phase", "default_severity")

    def __init__(
        self,
        prefix: str,
        number: int,
        category: ErrorCategory,
        phase: ErrorPhase,
        default_severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> None:
        self.prefix = prefix
        self.number = number
        self.category = category
        self.phase = phase
        self.default_severity = default_severity

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.category.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class GuardErrorCodes:
    """Predefined error codes."""

    # ═══════════════════════════════════════════════════════════════════════════
    # SYNTAX ERRORS (1000-1999)
    # ═══════════════════════════════════════════════════════════════════════════

    MALFORMED_PATTERN = ErrorCode(
        "GRD", 1000, ErrorCategory.INVALID_PATTERN, ErrorPhase.SYNTAX,
        ErrorSeverity.FATAL
    )
    EMPTY_PATTERN = ErrorCode(
        "GRD", 1001, ErrorCategory.EMPTY_PATTERN, ErrorPhase.SYNTAX,
        ErrorSeverity.FATAL
    )
    SOURCE_PARSE_FAILURE = ErrorCode(
        "GRD", 1100, ErrorCategory.INVALID_SOURCE, ErrorPhase.SYNTAX
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # DEFINITION ERRORS (3000-3999)
    # ═══════════════════════════════════════════════════════════════════════════

    INVALID_RULE = ErrorCode(
        "GRD", 3000, ErrorCategory.INVALID_RULE, ErrorPhase.DEFINITION,
        ErrorSeverity.FATAL
    )
    UNBOUND_PLACEHOLDER = ErrorCode(
        "GRD", 3001, ErrorCategory.UNBOUND_PLACEHOLDER, ErrorPhase.DEFINITION,
        ErrorSeverity.FATAL
    )
    DUPLICATE_RULE = ErrorCode(
        "GRD", 3002, ErrorCategory.DUPLICATE_NAME, ErrorPhase.DEFINITION,
        ErrorSeverity.FATAL
    )
    INVALID_GUARD = ErrorCode(
        "GRD", 3003, ErrorCategory.INVALID_GUARD, ErrorPhase.DEFINITION,
        ErrorSeverity.FATAL
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # CONFIGURATION ERRORS (6000-6999)
    # ═══════════════════════════════════════════════════════════════════════════

    INVALID_CONFIG = ErrorCode(
        "GRD", 6000, ErrorCategory.INVALID_CONFIG, ErrorPhase.CONFIG
    )
    UNKNOWN_RULE = ErrorCode(
        "GRD", 6001, ErrorCategory.UNKNOWN_RULE, ErrorPhase.CONFIG
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # INTERNAL ERRORS (9000-9999)
    # ═══════════════════════════════════════════════════════════════════════════

    INTERNAL_ERROR = ErrorCode(
        "GRD", 9000, ErrorCategory.INTERNAL_ERROR, ErrorPhase.INTERNAL,
        ErrorSeverity.FATAL
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE LOCATION TYPES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceSpan:
    """
    A span of source text with start and end positions.

    Lines and columns are 1-based; ``offset`` / ``end_offset`` are 0-based
    character offsets into the text the span was computed from.
    """

    file: str = ""
    line: int = 0
    column: int = 0
    end_line: int = 0
    end_column: int = 0
    offset: int = 0
    end_offset: int = 0

    def __post_init__(self) -> None:
        # Normalize: if end not specified, use start
        if self.end_line == 0:
            object.__setattr__(self, "end_line", self.line)
        if self.end_column == 0:
            object.__setattr__(self, "end_column", self.column)
        if self.end_offset < self.offset:
            object.__setattr__(self, "end_offset", self.offset)

    @classmethod
    def from_offsets(
        cls, text: str, start: int, end: int, file: str = ""
    ) -> "SourceSpan":
        """Create a span from character offsets into *text*."""
        line, column = _line_col(text, start)
        end_line, end_column = _line_col(text, end)
        return cls(
            file=file,
            line=line,
            column=column,
            end_line=end_line,
            end_column=end_column,
            offset=start,
            end_offset=end,
        )

    @classmethod
    def merge(cls, *spans: "SourceSpan") -> "SourceSpan":
        """Merge spans into one that covers all of them."""
        if not spans:
            return cls()
        first = min(spans, key=lambda s: s.offset)
        last = max(spans, key=lambda s: s.end_offset)
        return cls(
            file=next((s.file for s in spans if s.file), ""),
            line=first.line,
            column=first.column,
            end_line=last.end_line,
            end_column=last.end_column,
            offset=first.offset,
            end_offset=last.end_offset,
        )

    def __str__(self) -> str:
        if not self.file and self.line == 0:
            return "<unknown location>"

        parts = []
        if self.file:
            parts.append(self.file)
        if self.line > 0:
            parts.append(str(self.line))
            if self.column > 0:
                parts.append(str(self.column))

        return ":".join(parts)


def _line_col(text: str, offset: int) -> Tuple[int, int]:
    line = text.count("\n", 0, offset) + 1
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR MESSAGE FORMATTING
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ErrorNote:
    """Additional note attached to an error."""

    message: str
    span: Optional[SourceSpan] = None
    label: str = ""

    def __str__(self) -> str:
        prefix = f"{self.label}: " if self.label else ""
        if self.span:
            return f"{self.span}: {prefix}{self.message}"
        return f"{prefix}{self.message}"


@dataclass
class ErrorMessage:
    """A complete error message with all context."""

    code: ErrorCode
    message: str
    span: SourceSpan = field(default_factory=SourceSpan)
    severity: Optional[ErrorSeverity] = None  # None means use code's default
    notes: List[ErrorNote] = field(default_factory=list)
    hint: str = ""
    source_line: str = ""

    def __post_init__(self) -> None:
        if self.severity is None:
            self.severity = self.code.default_severity

    def add_note(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        label: str = "note",
    ) -> "ErrorMessage":
        self.notes.append(ErrorNote(message=message, span=span, label=label))
        return self

    def to_gcc_format(self) -> str:
        """Format as a GCC-style error message."""
        severity = self.severity.value if self.severity else "error"
        lines = [f"{self.span}: {severity}: {self.message} [{self.code}]"]

        if self.source_line:
            lines.append(f"    {self.source_line}")
            if self.span.column > 0:
                caret_pos = self.span.column - 1
                caret_len = max(1, self.span.end_column - self.span.column)
                lines.append(f"    {' ' * caret_pos}{'^' * caret_len}")

        for note in self.notes:
            lines.append(str(note))

        if self.hint:
            lines.append(f"hint: {self.hint}")

        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_gcc_format()


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class GuardrulesError(Exception):
    """
    Base exception for all guardrules errors.

    Carries a structured ``ErrorMessage`` that can be rendered in gcc
    format.
    """

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[Exception] = None,
        notes: Optional[List[ErrorNote]] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.error_message = ErrorMessage(
            code=code or GuardErrorCodes.INTERNAL_ERROR,
            message=message,
            span=span or SourceSpan(),
            severity=severity,
            notes=notes or [],
            hint=hint,
        )
        self.cause = cause

    @property
    def code(self) -> ErrorCode:
        return self.error_message.code

    @property
    def span(self) -> SourceSpan:
        return self.error_message.span

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_message.severity or ErrorSeverity.ERROR

    @property
    def notes(self) -> List[ErrorNote]:
        return self.error_message.notes

    def add_note(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        label: str = "note",
    ) -> "GuardrulesError":
        self.error_message.add_note(message, span, label)
        return self

    def to_gcc_format(self) -> str:
        return self.error_message.to_gcc_format()

    def __str__(self) -> str:
        return self.to_gcc_format()


# ───────────────────────────────────────────────────────────────────────────────
# DEFINITION ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class DefinitionError(GuardrulesError):
    """The rule catalog cannot be constructed."""

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        rule: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=message,
            code=code or GuardErrorCodes.INVALID_RULE,
            span=span,
            **kwargs,
        )
        self.rule = rule


class MalformedPatternError(DefinitionError):
    """A pattern template does not conform to the template grammar."""

    def __init__(
        self,
        template: str,
        rule: str = "",
        reason: str = "",
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        msg = f"Malformed pattern {template!r}"
        if rule:
            msg = f"Rule '{rule}': malformed pattern {template!r}"
        if reason:
            msg += f": {reason}"

        super().__init__(
            message=msg,
            code=kwargs.pop("code", GuardErrorCodes.MALFORMED_PATTERN),
            span=span,
            rule=rule,
            **kwargs,
        )
        self.template = template


class UnboundPlaceholderError(DefinitionError):
    """A guard, suggestion or location refers to a placeholder no pattern binds."""

    def __init__(
        self,
        placeholder: str,
        rule: str = "",
        where: str = "guard",
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=(
                f"Rule '{rule}': {where} refers to ${placeholder}, "
                "which no pattern of the rule binds"
            ),
            code=GuardErrorCodes.UNBOUND_PLACEHOLDER,
            rule=rule,
            **kwargs,
        )
        self.placeholder = placeholder
        self.where = where


class DuplicateRuleError(DefinitionError):
    """Two rules share the same name."""

    def __init__(self, name: str, **kwargs: Any) -> None:
        super().__init__(
            message=f"Duplicate rule name '{name}'",
            code=GuardErrorCodes.DUPLICATE_RULE,
            rule=name,
            **kwargs,
        )


# ───────────────────────────────────────────────────────────────────────────────
# SOURCE AND CONFIGURATION ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class SourceParseError(GuardrulesError):
    """A target snippet could not be parsed."""

    def __init__(
        self,
        filename: str,
        reason: str = "",
        span: Optional[SourceSpan] = None,
        source_line: str = "",
        **kwargs: Any,
    ) -> None:
        msg = f"Could not parse '{filename or '<source>'}'"
        if reason:
            msg += f": {reason}"
        super().__init__(
            message=msg,
            code=GuardErrorCodes.SOURCE_PARSE_FAILURE,
            span=span,
            **kwargs,
        )
        self.filename = filename
        self.error_message.source_line = source_line


class ConfigError(GuardrulesError):
    """Invalid configuration."""

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=message,
            code=code or GuardErrorCodes.INVALID_CONFIG,
            **kwargs,
        )


class UnknownRuleError(ConfigError):
    """Configuration names a rule the catalog does not contain."""

    def __init__(
        self,
        names: Sequence[str],
        known: Sequence[str] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=f"Unknown rule(s): {', '.join(sorted(names))}",
            code=GuardErrorCodes.UNKNOWN_RULE,
            **kwargs,
        )
        self.names = list(names)
        if known:
            self.add_note(f"Known rules: {', '.join(known)}")


# ───────────────────────────────────────────────────────────────────────────────
# GUARD EVALUATION
# ───────────────────────────────────────────────────────────────────────────────

class GuardUnavailable(Exception):
    """
    Raised by a guard predicate that lacks the information it needs
    (missing static type, placeholder not bound by the matching pattern).

    The engine treats it as a non-match; it never reaches API callers.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
