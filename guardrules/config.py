"""Configuration management for guardrules."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import toml

from guardrules.diagnostics import OUTPUT_FORMATS, Severity
from guardrules.errors import ConfigError
from guardrules.typeinfo import TypeInfo

logger = logging.getLogger(__name__)

__all__ = ["LintConfig", "CONFIG_FILENAMES"]

CONFIG_FILENAMES = ("guardrules.toml", ".guardrules.toml")

_OFF = ("off", "false", "disabled")


@dataclass
class LintConfig:
    """
    Configuration for a guardrules run.

    Attributes:
        enabled_rules: Rule names to run (None = every rule in the catalog)
        disabled_rules: Rule names to skip
        rule_severities: Severity overrides, rule name -> severity name
        output_format: Output format (gcc, json, summary)
        show_suggestions: Whether to print fix suggestions
        types: Expression text -> static type
        underlying: Named type -> underlying type
        use_declarations: Also read types the snippet declares explicitly
        suppress: Suppressions, "rule" or "rule:file-glob" ("*" for every rule)
    """
    enabled_rules: Optional[Set[str]] = None
    disabled_rules: Set[str] = field(default_factory=set)
    rule_severities: Dict[str, str] = field(default_factory=dict)
    output_format: str = "gcc"
    show_suggestions: bool = True
    types: Dict[str, str] = field(default_factory=dict)
    underlying: Dict[str, str] = field(default_factory=dict)
    use_declarations: bool = True
    suppress: List[str] = field(default_factory=list)

    @classmethod
    def from_file(cls, config_path: Optional[Path] = None) -> "LintConfig":
        """
        Load configuration from a TOML file.

        If config_path is None, searches for guardrules.toml (or
        .guardrules.toml) in the current directory and its parents; with no
        file found the defaults are returned.
        """
        if config_path is None:
            config_path = cls._find_config_file()
            if config_path is None:
                return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = toml.load(f)
        except OSError as exc:
            raise ConfigError(f"Cannot read config file '{config_path}': {exc}") from exc
        except toml.TomlDecodeError as exc:
            raise ConfigError(f"Invalid TOML in '{config_path}': {exc}") from exc

        logger.info("Loaded configuration from %s", config_path)
        config = cls._from_dict(data)
        problems = config.validate()
        if problems:
            raise ConfigError(f"Invalid configuration in '{config_path}': " + "; ".join(problems))
        return config

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "LintConfig":
        """Create LintConfig from dictionary."""
        config = cls()

        # Rules can be specified as rule-name = "off" | "<severity>"
        if "rules" in data:
            rules = dict(data["rules"])
            enable = rules.pop("enable", None)
            if enable is not None:
                config.enabled_rules = set(enable)
            for rule_id, setting in rules.items():
                setting = str(setting).lower()
                if setting in _OFF:
                    config.disabled_rules.add(rule_id)
                else:
                    config.rule_severities[rule_id] = setting

        if "output" in data:
            output = data["output"]
            if "format" in output:
                config.output_format = output["format"]
            if "show_suggestions" in output:
                config.show_suggestions = bool(output["show_suggestions"])

        if "types" in data:
            config.types = {str(k): str(v) for k, v in data["types"].items()}
        if "underlying" in data:
            config.underlying = {str(k): str(v) for k, v in data["underlying"].items()}

        if "analysis" in data:
            analysis = data["analysis"]
            if "use_declarations" in analysis:
                config.use_declarations = bool(analysis["use_declarations"])
            if "suppress" in analysis:
                config.suppress = [str(s) for s in analysis["suppress"]]

        return config

    @staticmethod
    def _find_config_file() -> Optional[Path]:
        """Search for a config file in current and parent directories."""
        current = Path.cwd()

        while True:
            for name in CONFIG_FILENAMES:
                config_path = current / name
                if config_path.exists():
                    return config_path

            parent = current.parent
            if parent == current:
                break
            current = parent

        return None

    def validate(self) -> List[str]:
        """Return a list of validation problems (empty if valid)."""
        problems: List[str] = []
        if self.output_format not in OUTPUT_FORMATS:
            problems.append(
                f"output format must be one of {', '.join(OUTPUT_FORMATS)}, "
                f"not {self.output_format!r}"
            )
        for rule_id, severity in self.rule_severities.items():
            try:
                Severity.parse(severity)
            except ValueError as exc:
                problems.append(f"rule {rule_id}: {exc}")
        for entry in self.suppress:
            if not entry.split(":", 1)[0]:
                problems.append(f"suppression {entry!r} names no rule")
        return problems

    def severity_overrides(self) -> Dict[str, Severity]:
        return {rule: Severity.parse(sev) for rule, sev in self.rule_severities.items()}

    def type_info(self) -> TypeInfo:
        return TypeInfo(self.types, self.underlying)
