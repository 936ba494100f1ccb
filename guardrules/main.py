#!/usr/bin/env python3
"""guardrules/main.py — CLI entry-point for the guardrules linter.

Usage examples
--------------
    # Lint Go snippets with the built-in rule catalog
    guardrules check cache.go server.go

    # Supply static types the rules need
    guardrules check cache.go --type t0=time.Time --type err=error

    # Only run a couple of rules, JSON output
    guardrules check cache.go --enable timestamp-equality --enable timestamp-map-key -f json

    # Print the source with every suggestion applied
    guardrules check cache.go --fix

    # List the rules, or describe one
    guardrules rules
    guardrules rules --describe difference-vs-comparison

    # Dump the syntax tree of a snippet (debugging aid)
    guardrules parse cache.go --format sexp

Exit codes
----------
    0   Success (no warning-severity findings).
    1   One or more findings with severity WARNING were emitted.
    2   Infrastructure failure (bad file, bad config, unparseable input).

The module doubles as ``python -m guardrules`` via the companion
``guardrules/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import textwrap
from pathlib import Path
from typing import Dict, Optional, Sequence, TextIO

from guardrules import __version__
from guardrules.catalog import default_catalog
from guardrules.config import LintConfig
from guardrules.diagnostics import (
    OUTPUT_FORMATS,
    DiagnosticCollector,
    apply_suggestions,
    format_diagnostics,
)
from guardrules.engine import Linter
from guardrules.errors import ConfigError, DefinitionError, SourceParseError
from guardrules.parser import parse_source

_log = logging.getLogger("guardrules")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the root ``guardrules`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("guardrules")
    root.setLevel(level)
    root.addHandler(handler)


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Resolve *raw* to an absolute ``Path``, raising on missing files."""
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _open_output(dest: Optional[str]) -> TextIO:
    """Return a writable text stream.

    *dest* ``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path
    for writing (creating parent directories as needed).
    """
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _parse_type_args(raw: Sequence[str]) -> Dict[str, str]:
    """Turn ``EXPR=TYPE`` arguments into a mapping."""
    types: Dict[str, str] = {}
    for item in raw:
        expr, sep, type_name = item.partition("=")
        if not sep or not expr.strip() or not type_name.strip():
            raise ConfigError(f"--type expects EXPR=TYPE, got {item!r}")
        types[expr.strip()] = type_name.strip()
    return types


def _load_config(args: argparse.Namespace) -> LintConfig:
    """Config file first, then command-line overrides."""
    config_path = Path(args.config) if args.config else None
    config = LintConfig.from_file(config_path)

    if args.enable:
        config.enabled_rules = set(args.enable)
    if args.disable:
        config.disabled_rules |= set(args.disable)
    if args.format:
        config.output_format = args.format
    if args.no_suggestions:
        config.show_suggestions = False
    config.types.update(_parse_type_args(args.type))
    return config


# ===========================================================================
# Sub-commands
# ===========================================================================

# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

def cmd_check(args: argparse.Namespace) -> int:
    """Lint one or more snippets and report findings."""
    config = _load_config(args)
    linter = Linter(config=config)
    _log.info("Running %d rule(s) over %d file(s)", len(linter.catalog), len(args.files))

    collector = DiagnosticCollector()
    failed = 0
    out = _open_output(args.output)
    try:
        for raw in args.files:
            path = _resolve_path(raw, "source file")
            source = path.read_text(encoding="utf-8")
            try:
                found = linter.check_source(source, filename=raw)
            except SourceParseError as exc:
                _log.error("%s", exc)
                failed += 1
                continue
            collector.extend(found)

            if args.fix:
                fixed, applied = apply_suggestions(source, found)
                _log.info("%s: applied %d suggestion(s)", raw, applied)
                out.write(fixed)

        if not args.fix:
            text = format_diagnostics(
                collector.diagnostics, config.output_format, config.show_suggestions
            )
            if text:
                out.write(text + "\n")
    finally:
        if out is not sys.stdout:
            out.close()

    if failed:
        return EXIT_INFRA
    return EXIT_ERROR if collector.has_warnings() else EXIT_OK


# ---------------------------------------------------------------------------
# rules (list / describe the catalog)
# ---------------------------------------------------------------------------

def cmd_rules(args: argparse.Namespace) -> int:
    """List the rules of the built-in catalog."""
    catalog = default_catalog()

    if args.describe:
        rule = catalog.get(args.describe)
        if rule is None:
            _log.error("Unknown rule: %s", args.describe)
            return EXIT_INFRA
        sys.stdout.write(rule.describe() + "\n")
        return EXIT_OK

    if args.format == "json":
        payload = [
            {
                "name": r.name,
                "severity": r.severity.value,
                "patterns": [p.template for p in r.patterns],
                "guard": r.guard.describe() if r.guard else None,
                "message": r.rule.message,
            }
            for r in catalog
        ]
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
        return EXIT_OK

    width = max(len(name) for name in catalog.names())
    for r in catalog:
        sys.stdout.write(f"{r.name:<{width}}  {r.severity.value:<11}  {r.rule.message}\n")
    return EXIT_OK


# ---------------------------------------------------------------------------
# parse (debug dump of the syntax tree)
# ---------------------------------------------------------------------------

def cmd_parse(args: argparse.Namespace) -> int:
    """Parse a snippet and pretty-print its syntax tree.

    Useful for debugging templates without running any rule.
    """
    src_path = _resolve_path(args.source_file, "source file")
    source = src_path.read_text(encoding="utf-8")

    try:
        tree = parse_source(source, filename=args.source_file)
    except SourceParseError as exc:
        _log.error("Parse error: %s", exc)
        return EXIT_ERROR

    out = _open_output(args.output)
    try:
        if args.format == "json":
            out.write(json.dumps(tree.to_dict(), indent=2) + "\n")
        else:
            out.write(tree.to_sexp() + "\n")
    finally:
        if out is not sys.stdout:
            out.close()
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="guardrules",
        description=(
            "guardrules — pattern-based lint rules for Go snippets.\n\n"
            "Matches a catalog of structural templates against the input,\n"
            "filters matches with type and text guards, and reports findings\n"
            "with optional fix suggestions."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              guardrules check cache.go --type t0=time.Time
              guardrules check cache.go --fix
              guardrules rules --describe mismatched-lock-kind
              guardrules parse cache.go --format json
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    def _add_output_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "-o", "--output",
            default=None,
            metavar="FILE",
            help='Output file ("-" or omit for stdout).',
        )

    # --- check -------------------------------------------------------------
    p_check = subparsers.add_parser(
        "check",
        help="Lint Go snippets with the rule catalog.",
    )
    p_check.add_argument("files", nargs="+", metavar="FILE", help="Snippets to lint.")
    p_check.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="TOML configuration (default: search for guardrules.toml).",
    )
    p_check.add_argument(
        "--enable",
        action="append",
        default=[],
        metavar="RULE",
        help="Only run this rule (repeatable).",
    )
    p_check.add_argument(
        "--disable",
        action="append",
        default=[],
        metavar="RULE",
        help="Skip this rule (repeatable).",
    )
    p_check.add_argument(
        "--type",
        action="append",
        default=[],
        metavar="EXPR=TYPE",
        help="Static type of an expression, e.g. t0=time.Time (repeatable).",
    )
    p_check.add_argument(
        "-f", "--format",
        choices=list(OUTPUT_FORMATS),
        default=None,
        help="Output format (default: gcc, or the config file's).",
    )
    p_check.add_argument(
        "--no-suggestions",
        action="store_true",
        help="Do not print fix suggestions.",
    )
    p_check.add_argument(
        "--fix",
        action="store_true",
        help="Print the sources with every non-overlapping suggestion applied.",
    )
    _add_output_arg(p_check)
    p_check.set_defaults(func=cmd_check)

    # --- rules -------------------------------------------------------------
    p_rules = subparsers.add_parser(
        "rules",
        help="List or describe the built-in rules.",
    )
    p_rules.add_argument(
        "--describe",
        default=None,
        metavar="RULE",
        help="Show patterns, guard and output of one rule.",
    )
    p_rules.add_argument(
        "-f", "--format",
        choices=["text", "json"],
        default="text",
        help="Listing format (default: text).",
    )
    p_rules.set_defaults(func=cmd_rules)

    # --- parse -------------------------------------------------------------
    p_parse = subparsers.add_parser(
        "parse",
        help="Parse a snippet and dump its syntax tree.",
    )
    p_parse.add_argument("source_file", metavar="FILE", help="Snippet to parse.")
    p_parse.add_argument(
        "-f", "--format",
        choices=["sexp", "json"],
        default="sexp",
        help="Dump format (default: sexp).",
    )
    _add_output_arg(p_parse)
    p_parse.set_defaults(func=cmd_parse)

    return parser


# ===========================================================================
# Main
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the guardrules CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    # No subcommand given → print help.
    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except (ConfigError, DefinitionError) as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130  # Standard UNIX convention for SIGINT
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


# ---------------------------------------------------------------------------
# Module execution support
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    raise SystemExit(main())
