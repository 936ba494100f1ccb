"""guardrules — pattern-based lint rules for Go snippets.

This package provides a catalog of structural lint rules, the template
language they are written in, and the engine that evaluates them against
small Go snippets.

Submodules
----------
errors
    Exception hierarchy, structured error codes (``GRD-XXXX``) and
    ``SourceSpan`` / ``ErrorMessage`` for rich diagnostic context.

grammar, parser, syntax, visitor
    The template / snippet front-end: a parsimonious PEG grammar for a Go
    subset with ``$x`` / ``$*x`` placeholders, the parse-tree builder, the
    tagged-node tree and its visitors.

matcher, guards, typeinfo
    Structural unification, guard predicates and the caller-supplied
    static type table guards consult.

rules, catalog
    ``Rule`` / ``Pattern`` declarations, ``RuleCatalog`` validation and
    the built-in rule table (``default_catalog``).

engine, diagnostics, config
    ``Linter``, findings and suggestions, suppressions, TOML configuration.

main
    CLI entry-point with subcommands: ``check``, ``rules``, ``parse``.

Usage
-----
Command-line::

    guardrules check cache.go --type t0=time.Time
    python -m guardrules rules --describe timestamp-equality

Programmatic::

    from guardrules import Linter, default_catalog

    for rule in default_catalog().rules():
        print(rule.name)

    for diag in Linter().check_source(text, "cache.go", {"t0": "time.Time"}):
        print(diag.to_gcc_format())
"""

from __future__ import annotations

__version__: str = "0.1.0"

from guardrules.catalog import RuleCatalog, default_catalog  # noqa: E402
from guardrules.diagnostics import Diagnostic, Severity, Suggestion  # noqa: E402
from guardrules.engine import Linter  # noqa: E402
from guardrules.errors import DefinitionError, GuardrulesError  # noqa: E402
from guardrules.rules import Pattern, Rule  # noqa: E402
from guardrules.typeinfo import TypeInfo  # noqa: E402

__all__: list[str] = [
    "__version__",
    "RuleCatalog",
    "default_catalog",
    "Rule",
    "Pattern",
    "Linter",
    "TypeInfo",
    "Diagnostic",
    "Severity",
    "Suggestion",
    "GuardrulesError",
    "DefinitionError",
]
