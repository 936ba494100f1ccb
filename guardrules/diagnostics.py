"""
Guardrules Diagnostics

Findings produced by the rule engine and everything that happens to them
after a rule fires:

1. Diagnostic model - rule name, severity, message, location, suggestion
2. Suggestions - replacement of the matched region, applied to source text
3. Suppressions - inline ``// guardrules:ignore`` comments, file patterns,
   global rule suppressions
4. Collection and output - gcc-style lines, JSON, per-rule summary
"""

from __future__ import annotations

import fnmatch
import json
import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from guardrules.errors import SourceSpan

__all__ = [
    "Severity",
    "Suggestion",
    "Diagnostic",
    "SuppressionManager",
    "DiagnosticCollector",
    "apply_suggestions",
    "format_diagnostics",
    "OUTPUT_FORMATS",
]


# ============================================================================
# PART 1 — DIAGNOSTIC MODEL
# ============================================================================


class Severity(Enum):
    """
    Severity levels for rule findings.
    """
    ERROR = "error"              # Reserved for configuration-raised findings
    WARNING = "warning"          # Likely bug
    STYLE = "style"              # Convention violation
    PERFORMANCE = "performance"  # Avoidable work
    INFORMATION = "information"

    @classmethod
    def parse(cls, text: str) -> "Severity":
        try:
            return cls(text.strip().lower())
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ValueError(f"unknown severity {text!r} (expected one of: {choices})") from None


_SEVERITY_ORDER = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.STYLE: 2,
    Severity.PERFORMANCE: 3,
    Severity.INFORMATION: 4,
}


@dataclass(frozen=True, slots=True)
class Suggestion:
    """
    Replacement of a matched source region.

    ``span`` carries the character offsets of the region; ``old_text`` is
    what the region held when the suggestion was made.
    """
    span: SourceSpan
    old_text: str
    new_text: str

    def apply(self, source: str) -> str:
        """Return *source* with the region replaced by ``new_text``."""
        start, end = self.span.offset, self.span.end_offset
        if source[start:end] != self.old_text:
            raise ValueError(
                f"suggestion for {self.span} does not apply: expected "
                f"{self.old_text!r}, found {source[start:end]!r}"
            )
        return source[:start] + self.new_text + source[end:]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.span.offset,
            "end": self.span.end_offset,
            "old": self.old_text,
            "new": self.new_text,
        }


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """
    A finding produced by one rule at one occurrence.

    Attributes:
        rule: Name of the rule that fired (e.g. "timestamp-equality")
        message: Expanded, human-readable message
        severity: How serious the issue is
        location: Reported region (the location override capture, or the match)
        suggestion: Optional replacement of the whole matched region
        matched: Source text of the whole match
    """
    rule: str
    message: str
    severity: Severity
    location: SourceSpan
    suggestion: Optional[Suggestion] = None
    matched: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            "rule": self.rule,
            "message": self.message,
            "severity": self.severity.value,
            "location": {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
                "end_line": self.location.end_line,
                "end_column": self.location.end_column,
            },
        }
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion.to_dict()
        if self.matched:
            result["matched"] = self.matched
        return result

    def to_gcc_format(self) -> str:
        """Format as GCC-style diagnostic string."""
        return f"{self.location}: {self.severity.value}: {self.message} [{self.rule}]"

    def with_severity(self, severity: Severity) -> "Diagnostic":
        return Diagnostic(
            rule=self.rule,
            message=self.message,
            severity=severity,
            location=self.location,
            suggestion=self.suggestion,
            matched=self.matched,
        )

    def sort_key(self) -> Tuple[str, int, int, str]:
        return (self.location.file, self.location.offset, self.location.end_offset, self.rule)


# ============================================================================
# PART 2 — SUGGESTIONS
# ============================================================================


def apply_suggestions(source: str, diagnostics: Iterable[Diagnostic]) -> Tuple[str, int]:
    """
    Apply every non-overlapping suggestion to *source*.

    Earlier regions win over later ones that overlap them.  Returns the new
    text and the number of suggestions applied.
    """
    chosen: List[Suggestion] = []
    last_end = -1
    suggestions = sorted(
        (d.suggestion for d in diagnostics if d.suggestion is not None),
        key=lambda s: (s.span.offset, s.span.end_offset),
    )
    for suggestion in suggestions:
        if suggestion.span.offset < last_end:
            continue
        chosen.append(suggestion)
        last_end = suggestion.span.end_offset

    for suggestion in reversed(chosen):
        source = suggestion.apply(source)
    return source, len(chosen)


# ============================================================================
# PART 3 — SUPPRESSION MANAGER
# ============================================================================


class SuppressionManager:
    """
    Manages diagnostic suppressions from multiple sources.

    Suppression sources:
    1. Inline comments: // guardrules:ignore rule-name [rule-name ...]
    2. File-level suppressions: patterns matching file paths
    3. Global suppressions: rule names suppressed everywhere
    """

    _INLINE = re.compile(r"//\s*guardrules:ignore\b\s*([\w*,\s-]*)")

    def __init__(self) -> None:
        # (file, line) -> set of suppressed rule names ("*" for all)
        self._inline: Dict[Tuple[str, int], Set[str]] = {}
        # file pattern -> set of suppressed rule names
        self._file_level: Dict[str, Set[str]] = {}
        self._global: Set[str] = set()

    def add_inline_suppression(self, file: str, line: int, rule: str) -> None:
        """Add an inline suppression for a specific line."""
        self._inline.setdefault((file, line), set()).add(rule)

    def add_file_suppression(self, pattern: str, rule: str) -> None:
        """Add a file-level suppression for files matching pattern."""
        self._file_level.setdefault(pattern, set()).add(rule)

    def add_global_suppression(self, rule: str) -> None:
        """Suppress a rule globally."""
        self._global.add(rule)

    def load_inline_suppressions_from_source(self, source: str, filename: str) -> int:
        """
        Scan source text for suppression comments.

        A comment suppresses its own line and the next one; without rule
        names it suppresses every rule.  Returns the number of comments found.
        """
        found = 0
        for line_num, line in enumerate(source.splitlines(), start=1):
            match = self._INLINE.search(line)
            if not match:
                continue
            found += 1
            rules = re.split(r"[\s,]+", match.group(1).strip()) if match.group(1).strip() else ["*"]
            for rule in rules:
                self.add_inline_suppression(filename, line_num, rule)
                self.add_inline_suppression(filename, line_num + 1, rule)
        return found

    def is_suppressed(self, diag: Diagnostic) -> bool:
        """Check if a diagnostic should be suppressed."""
        rule = diag.rule

        if rule in self._global or "*" in self._global:
            return True

        file = diag.location.file
        suppressed = self._inline.get((file, diag.location.line))
        if suppressed and (rule in suppressed or "*" in suppressed):
            return True

        for pattern, suppressed in self._file_level.items():
            if rule in suppressed or "*" in suppressed:
                if file.endswith(pattern) or fnmatch.fnmatch(file, pattern):
                    return True

        return False

    def filter_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
        """Return diagnostics that are not suppressed."""
        return [d for d in diagnostics if not self.is_suppressed(d)]


# ============================================================================
# PART 4 — DIAGNOSTIC COLLECTOR
# ============================================================================


class DiagnosticCollector:
    """
    Collects diagnostics during a lint run.
    Supports severity filtering and suppression management.
    """

    def __init__(
        self,
        *,
        suppression_manager: Optional[SuppressionManager] = None,
        min_severity: Severity = Severity.INFORMATION,
    ) -> None:
        self._diagnostics: List[Diagnostic] = []
        self._suppression = suppression_manager or SuppressionManager()
        self._min_severity = min_severity
        self.suppressed_count = 0

    @property
    def suppressions(self) -> SuppressionManager:
        return self._suppression

    def report(self, diag: Diagnostic) -> bool:
        """
        Record a finding unless it is filtered or suppressed.
        Returns True when the finding was kept.
        """
        if _SEVERITY_ORDER[diag.severity] > _SEVERITY_ORDER[self._min_severity]:
            return False
        if self._suppression.is_suppressed(diag):
            self.suppressed_count += 1
            return False
        self._diagnostics.append(diag)
        return True

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diag in diagnostics:
            self.report(diag)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        """All collected diagnostics, ordered by location."""
        return sorted(self._diagnostics, key=Diagnostic.sort_key)

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self._diagnostics if d.severity is Severity.WARNING]

    def has_warnings(self) -> bool:
        """True when any WARNING or ERROR finding was collected."""
        return any(
            d.severity in (Severity.ERROR, Severity.WARNING) for d in self._diagnostics
        )

    def count_by_rule(self) -> Dict[str, int]:
        return dict(Counter(d.rule for d in self._diagnostics))

    def clear(self) -> None:
        self._diagnostics.clear()
        self.suppressed_count = 0


# ============================================================================
# PART 5 — OUTPUT
# ============================================================================

OUTPUT_FORMATS = ("gcc", "json", "summary")


def format_diagnostics(
    diagnostics: List[Diagnostic],
    output_format: str = "gcc",
    show_suggestions: bool = True,
) -> str:
    """Render diagnostics in one of ``OUTPUT_FORMATS``."""
    if output_format == "json":
        return json.dumps([d.to_dict() for d in diagnostics], indent=2)

    if output_format == "summary":
        by_rule = Counter(d.rule for d in diagnostics)
        by_severity = Counter(d.severity.value for d in diagnostics)
        lines = [f"{count:5d}  {rule}" for rule, count in sorted(by_rule.items())]
        totals = ", ".join(f"{n} {sev}" for sev, n in sorted(by_severity.items()))
        lines.append(f"{len(diagnostics)} finding(s)" + (f": {totals}" if totals else ""))
        return "\n".join(lines)

    if output_format != "gcc":
        raise ValueError(f"unknown output format {output_format!r}")

    lines = []
    for diag in diagnostics:
        lines.append(diag.to_gcc_format())
        if show_suggestions and diag.suggestion is not None:
            lines.append(f"    suggestion: {diag.suggestion.new_text}")
    return "\n".join(lines)
