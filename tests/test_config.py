# tests/test_config.py
"""
Tests for TOML configuration and how the linter applies it.
"""

import textwrap

import pytest

from guardrules.config import LintConfig
from guardrules.diagnostics import Severity
from guardrules.engine import Linter
from guardrules.errors import ConfigError, UnknownRuleError
from guardrules.typeinfo import TypeInfo


def write_config(tmp_path, body, name="guardrules.toml"):
    path = tmp_path / name
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


class TestLoading:

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = LintConfig.from_file()
        assert config == LintConfig()
        assert config.enabled_rules is None
        assert config.output_format == "gcc"

    def test_full_file(self, tmp_path):
        path = write_config(tmp_path, """
            [rules]
            enable = ["timestamp-equality", "xor-vs-equality", "timestamp-map-key"]
            "xor-vs-equality" = "off"
            "timestamp-map-key" = "error"

            [output]
            format = "json"
            show_suggestions = false

            [types]
            t0 = "time.Time"
            "c.created" = "time.Time"

            [underlying]
            Payload = "[]byte"

            [analysis]
            use_declarations = false
            suppress = ["timestamp-map-key:gen/*.go"]
        """)
        config = LintConfig.from_file(path)
        assert config.enabled_rules == {"timestamp-equality", "xor-vs-equality", "timestamp-map-key"}
        assert config.disabled_rules == {"xor-vs-equality"}
        assert config.severity_overrides() == {"timestamp-map-key": Severity.ERROR}
        assert config.output_format == "json"
        assert config.show_suggestions is False
        assert config.types == {"t0": "time.Time", "c.created": "time.Time"}
        assert config.underlying == {"Payload": "[]byte"}
        assert config.use_declarations is False
        assert config.suppress == ["timestamp-map-key:gen/*.go"]

    def test_found_in_parent_directory(self, tmp_path, monkeypatch):
        write_config(tmp_path, '[output]\nformat = "summary"\n', name=".guardrules.toml")
        nested = tmp_path / "pkg" / "cache"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        assert LintConfig.from_file().output_format == "summary"

    def test_invalid_toml(self, tmp_path):
        path = write_config(tmp_path, "[rules\n")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            LintConfig.from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            LintConfig.from_file(tmp_path / "absent.toml")

    def test_invalid_values(self, tmp_path):
        path = write_config(tmp_path, """
            [rules]
            "timestamp-map-key" = "loud"

            [output]
            format = "xml"
        """)
        with pytest.raises(ConfigError) as exc_info:
            LintConfig.from_file(path)
        message = exc_info.value.error_message.message
        assert "output format" in message
        assert "timestamp-map-key" in message


class TestValidation:

    def test_valid_defaults(self):
        assert LintConfig().validate() == []

    def test_empty_suppression(self):
        assert LintConfig(suppress=[":*.go"]).validate() == ["suppression ':*.go' names no rule"]

    def test_type_info(self):
        info = LintConfig(types={"b": "[] uint8"}, underlying={"P": "[]byte"}).type_info()
        assert isinstance(info, TypeInfo)
        assert dict(info.types) == {"b": "[]byte"}
        assert info.underlying_of("P") == "[]byte"


class TestLinterConfiguration:

    def test_disabled_rule(self):
        linter = Linter(config=LintConfig(disabled_rules={"double-negated-equality"}))
        assert "double-negated-equality" not in linter.catalog
        assert linter.check_source("ok := !(a == b)") == []

    def test_severity_override(self):
        linter = Linter(config=LintConfig(rule_severities={"double-negated-equality": "error"}))
        (diag,) = linter.check_source("ok := !(a == b)")
        assert diag.severity is Severity.ERROR

    def test_unknown_rule_in_config(self):
        with pytest.raises(UnknownRuleError):
            Linter(config=LintConfig(enabled_rules={"no-such-rule"}))

    def test_config_types(self):
        linter = Linter(config=LintConfig(
            enabled_rules={"timestamp-equality"}, types={"t0": "time.Time"},
        ))
        assert len(linter.check_source("same := t0 == t1")) == 1

    def test_call_types_override_config(self):
        linter = Linter(config=LintConfig(
            enabled_rules={"timestamp-equality"}, types={"t0": "time.Time"},
        ))
        assert linter.check_source("same := t0 == t1", types={"t0": "int", "t1": "int"}) == []

    def test_declared_types_can_be_turned_off(self):
        src = "var t0 time.Time\nsame := t0 == t1\n"
        rules = {"timestamp-equality"}
        assert len(Linter(config=LintConfig(enabled_rules=rules)).check_source(src)) == 1
        config = LintConfig(enabled_rules=rules, use_declarations=False)
        assert Linter(config=config).check_source(src) == []

    def test_config_suppressions(self):
        config = LintConfig(suppress=["double-negated-equality:gen/*.go"])
        linter = Linter(config=config)
        assert linter.check_source("ok := !(a == b)", "gen/model.go") == []
        assert len(linter.check_source("ok := !(a == b)", "cache.go")) == 1

    def test_global_config_suppression(self):
        linter = Linter(config=LintConfig(suppress=["*"]))
        assert linter.check_source("ok := !(a == b)") == []

    def test_inline_suppression(self):
        linter = Linter()
        src = "// guardrules:ignore double-negated-equality\nok := !(a == b)\nno := !(c == d)\n"
        (diag,) = linter.check_source(src, "cache.go")
        assert diag.location.line == 3
