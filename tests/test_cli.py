# tests/test_cli.py
"""
Tests for the command-line entry point: sub-commands, exit codes and
output formats.
"""

import json

import pytest

from guardrules import __version__
from guardrules.main import EXIT_ERROR, EXIT_INFRA, EXIT_OK, main


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """An isolated working directory with no config file above it."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def write(dirpath, name, text):
    path = dirpath / name
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestCheck:

    def test_clean_file(self, workdir, capsys):
        path = write(workdir, "ok.go", "func IsReady() bool {\n    return true\n}\n")
        assert main(["check", path]) == EXIT_OK
        assert capsys.readouterr().out == ""

    def test_warning_sets_exit_code(self, workdir, capsys):
        path = write(workdir, "cmp.go", "if (a - b) == 0 {\n}\n")
        assert main(["check", path]) == EXIT_ERROR
        out = capsys.readouterr().out
        assert f"{path}:1:4: warning: odd comparison [difference-vs-comparison]" in out
        assert "    suggestion: a == b" in out

    def test_style_findings_do_not_fail(self, workdir, capsys):
        path = write(workdir, "neg.go", "ok := !(a == b)\n")
        assert main(["check", path]) == EXIT_OK
        assert "double-negated-equality" in capsys.readouterr().out

    def test_type_arguments(self, workdir, capsys):
        path = write(workdir, "ts.go", "same := t0 == t1\n")
        assert main(["check", path]) == EXIT_OK
        assert main(["check", path, "--type", "t0=time.Time"]) == EXIT_ERROR
        assert "using == with time.Time" in capsys.readouterr().out

    def test_bad_type_argument(self, workdir):
        path = write(workdir, "ts.go", "same := t0 == t1\n")
        assert main(["check", path, "--type", "t0"]) == EXIT_INFRA

    def test_enable_and_disable(self, workdir, capsys):
        path = write(workdir, "two.go", "ok := !(a == b)\nx -= x - 1\n")
        main(["check", path, "--enable", "double-negated-equality"])
        out = capsys.readouterr().out
        assert "double-negated-equality" in out
        assert "self-referential-compound-assign" not in out

        main(["check", path, "--disable", "double-negated-equality"])
        out = capsys.readouterr().out
        assert "double-negated-equality" not in out
        assert "self-referential-compound-assign" in out

    def test_unknown_rule(self, workdir):
        path = write(workdir, "a.go", "x := 1\n")
        assert main(["check", path, "--enable", "no-such-rule"]) == EXIT_INFRA

    def test_json_output(self, workdir, capsys):
        path = write(workdir, "neg.go", "ok := !(a != b)\n")
        main(["check", path, "-f", "json"])
        payload = json.loads(capsys.readouterr().out)
        assert payload[0]["rule"] == "double-negated-inequality"
        assert payload[0]["suggestion"]["new"] == "a == b"

    def test_summary_output(self, workdir, capsys):
        path = write(workdir, "neg.go", "ok := !(a != b)\nno := !(c != d)\n")
        main(["check", path, "-f", "summary"])
        out = capsys.readouterr().out
        assert "2 finding(s): 2 style" in out

    def test_no_suggestions(self, workdir, capsys):
        path = write(workdir, "neg.go", "ok := !(a != b)\n")
        main(["check", path, "--no-suggestions"])
        assert "suggestion:" not in capsys.readouterr().out

    def test_fix(self, workdir, capsys):
        path = write(workdir, "neg.go", "ok := !(a != b)\nif (a - b) == 0 {\n}\n")
        main(["check", path, "--fix"])
        assert capsys.readouterr().out == "ok := a == b\nif a == b {\n}\n"

    def test_output_file(self, workdir):
        path = write(workdir, "neg.go", "ok := !(a != b)\n")
        report = workdir / "out" / "report.txt"
        main(["check", path, "-o", str(report)])
        assert "double-negated-inequality" in report.read_text(encoding="utf-8")

    def test_config_file(self, workdir, capsys):
        write(workdir, "guardrules.toml", '[types]\nt0 = "time.Time"\n[output]\nformat = "summary"\n')
        path = write(workdir, "ts.go", "same := t0 == t1\n")
        assert main(["check", path]) == EXIT_ERROR
        assert "1  timestamp-equality" in capsys.readouterr().out

    def test_bad_config_file(self, workdir):
        config = write(workdir, "bad.toml", "[output]\nformat = \"xml\"\n")
        path = write(workdir, "a.go", "x := 1\n")
        assert main(["check", path, "--config", config]) == EXIT_INFRA

    def test_parse_error(self, workdir, capsys):
        bad = write(workdir, "bad.go", "x := )\n")
        good = write(workdir, "good.go", "ok := !(a == b)\n")
        assert main(["check", bad, good]) == EXIT_INFRA
        assert "double-negated-equality" in capsys.readouterr().out

    def test_missing_file(self, workdir):
        assert main(["check", str(workdir / "absent.go")]) == EXIT_INFRA


class TestRules:

    def test_list(self, capsys):
        assert main(["rules"]) == EXIT_OK
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 16
        assert lines[0].startswith("boolean-name-convention")

    def test_json(self, capsys):
        assert main(["rules", "-f", "json"]) == EXIT_OK
        payload = json.loads(capsys.readouterr().out)
        assert len(payload) == 16
        by_name = {r["name"]: r for r in payload}
        assert by_name["timestamp-map-key"]["patterns"] == ["map[$k]$v"]
        assert by_name["xor-vs-equality"]["severity"] == "style"

    def test_describe(self, capsys):
        assert main(["rules", "--describe", "mismatched-lock-kind"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "$mu1.Lock(); defer $mu2.RUnlock()" in out
        assert "at:      $mu2" in out

    def test_describe_unknown(self):
        assert main(["rules", "--describe", "no-such-rule"]) == EXIT_INFRA


class TestParse:

    def test_sexp(self, workdir, capsys):
        path = write(workdir, "a.go", "x := 1\n")
        assert main(["parse", path]) == EXIT_OK
        assert capsys.readouterr().out.strip() == (
            "(file (assign_stmt := (list (ident x)) (list (basic_lit 1))))"
        )

    def test_json(self, workdir, capsys):
        path = write(workdir, "a.go", "mu.Lock()\n")
        assert main(["parse", path, "-f", "json"]) == EXIT_OK
        tree = json.loads(capsys.readouterr().out)
        assert tree["kind"] == "file"
        assert tree["children"][0]["kind"] == "expr_stmt"

    def test_parse_error(self, workdir):
        path = write(workdir, "bad.go", "x := )\n")
        assert main(["parse", path]) == EXIT_ERROR


class TestMain:

    def test_no_command(self, capsys):
        assert main([]) == EXIT_INFRA
        assert "usage" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out
