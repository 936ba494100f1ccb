# tests/test_matcher.py
"""
Tests for structural unification: placeholders, repeated captures,
variadic runs and statement-sequence windows.
"""

from guardrules.matcher import match_node, match_sequence, match_window
from guardrules.parser import parse_source, parse_template


def expr(text):
    """The expression of a one-statement snippet."""
    return parse_source(text).children[0].children[0]


def stmt(text):
    return parse_source(text).children[0]


def template(text):
    (root,) = parse_template(text)
    return root


class TestSingleNode:

    def test_placeholders_bind(self):
        m = match_node(template("$x == $y"), expr("a == b"))
        assert m is not None
        assert m.text_of("x") == "a"
        assert m.text_of("y") == "b"

    def test_operator_must_agree(self):
        assert match_node(template("$x == $y"), expr("a != b")) is None

    def test_placeholder_binds_whole_subtree(self):
        m = match_node(template("$x == $y"), expr("f(a).b == c[0]"))
        assert m.text_of("x") == "f(a).b"
        assert m.text_of("y") == "c[0]"

    def test_repeated_placeholder_requires_identical_subtrees(self):
        pattern = template("$x += $x + $_")
        assert match_node(pattern, stmt("total += total + n")) is not None
        assert match_node(pattern, stmt("total += other + n")) is None

    def test_repeated_placeholder_ignores_parentheses(self):
        pattern = template("$x == $x")
        assert match_node(pattern, expr("(a.b) == a.b")) is not None

    def test_anonymous_placeholder_never_binds(self):
        m = match_node(template("$_ == $_"), expr("a == b"))
        assert m is not None
        assert dict(m.bindings) == {}

    def test_literals_must_agree(self):
        pattern = template('fmt.Sprintf("%s", $err)')
        assert match_node(pattern, expr('fmt.Sprintf("%s", e)')) is not None
        assert match_node(pattern, expr('fmt.Sprintf("%d", e)')) is None

    def test_match_region(self):
        target = expr("(a - b) == 0")
        m = match_node(template("$x - $y == 0"), target)
        assert m.text == "(a - b) == 0"
        assert (m.start, m.end) == (0, len("(a - b) == 0"))

    def test_unmatched_name_text_is_none(self):
        m = match_node(template("$x"), expr("a"))
        assert m.text_of("y") is None


class TestVariadic:

    def test_empty_run(self):
        pattern = template("func $name($*params) bool { $*body }")
        m = match_node(pattern, stmt("func Ready() bool { return true }"))
        assert m is not None
        assert m.bindings["params"] == ()
        assert m.text_of("body") == "return true"

    def test_run_of_parameters(self):
        pattern = template("func $name($*params) bool { $*body }")
        m = match_node(pattern, stmt("func Ready(x int, y string) bool { return true }"))
        assert m.text_of("params") == "x int, y string"

    def test_result_list_must_agree(self):
        pattern = template("func $name($*params) bool { $*body }")
        assert match_node(pattern, stmt("func Count() int { return 0 }")) is None

    def test_middle_element(self):
        pattern = template("type $name struct { $*_; sync.Mutex; $*_ }")
        target = stmt("type Cache struct {\n    items map[string]int\n    sync.Mutex\n    size int\n}")
        assert match_node(pattern, target) is not None

    def test_middle_element_missing(self):
        pattern = template("type $name struct { $*_; sync.Mutex; $*_ }")
        target = stmt("type Cache struct {\n    mu sync.Mutex\n}")
        assert match_node(pattern, target) is None

    def test_leading_run_in_return(self):
        pattern = template("if err == nil { return $*_, err }")
        assert match_node(pattern, stmt("if err == nil { return nil, 0, err }")) is not None
        assert match_node(pattern, stmt("if err == nil { return nil, err, 0 }")) is None


class TestSequences:

    def test_adjacent_window(self):
        roots = parse_template("$mu1.Lock(); $mu2.Unlock()")
        stmts = parse_source("mu.Lock()\nmu.Unlock()\n").children
        m = match_window(roots, stmts, 0)
        assert m is not None
        assert len(m.nodes) == 2
        assert m.text == "mu.Lock()\nmu.Unlock()"
        assert m.text_of("mu2") == "mu"

    def test_window_must_be_contiguous(self):
        roots = parse_template("$mu1.Lock(); defer $mu2.Unlock()")
        stmts = parse_source("mu.Lock(); doWork(); defer mu.Unlock()").children
        assert all(match_window(roots, stmts, i) is None for i in range(len(stmts)))

    def test_window_anchored_at_index(self):
        roots = parse_template("$mu1.Lock(); $mu2.Unlock()")
        stmts = parse_source("x := 1\nmu.Lock()\nmu.Unlock()\n").children
        assert match_window(roots, stmts, 0) is None
        assert match_window(roots, stmts, 1) is not None

    def test_window_past_end(self):
        roots = parse_template("$mu1.Lock(); $mu2.Unlock()")
        stmts = parse_source("mu.Lock()").children
        assert match_window(roots, stmts, 0) is None

    def test_variadic_window_takes_shortest(self):
        roots = parse_template("open($f); $*_; close($f)")
        stmts = parse_source("open(a); use(a); close(a); close(a)").children
        m = match_window(roots, stmts, 0)
        assert len(m.nodes) == 3

    def test_repeated_run_must_agree(self):
        roots = parse_template("f($*xs); g($*xs)")
        assert match_sequence(roots, parse_source("f(1, 2); g(1, 2)").children) is not None
        assert match_sequence(roots, parse_source("f(1, 2); g(1)").children) is None

    def test_empty_targets(self):
        roots = parse_template("a(); b()")
        assert match_sequence(roots, []) is None
