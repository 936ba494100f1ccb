# tests/test_parser.py
"""
Tests for the template / snippet front-end: text → Node trees.
"""

import pytest

from guardrules.errors import (
    GuardErrorCodes,
    MalformedPatternError,
    SourceParseError,
)
from guardrules.grammar import KEYWORDS
from guardrules.parser import parse_source, parse_template
from guardrules.syntax import Node, NodeKind, same_shape
from guardrules.visitor import DepthFirstVisitor


def kinds(node):
    return [n.kind for n in node.walk()]


class TestParseSource:

    def test_empty_source(self):
        tree = parse_source("")
        assert tree.kind is NodeKind.FILE
        assert tree.children == []

    def test_comment_only(self):
        tree = parse_source("// nothing here\n\n")
        assert tree.children == []

    def test_statements_split_on_newlines_and_semicolons(self):
        tree = parse_source("a := 1\nb := 2; c := 3\n")
        assert [s.kind for s in tree.children] == [NodeKind.ASSIGN_STMT] * 3

    def test_expression_statement_is_wrapped(self):
        tree = parse_source("mu.Lock()")
        (stmt,) = tree.children
        assert stmt.kind is NodeKind.EXPR_STMT
        assert stmt.children[0].kind is NodeKind.CALL

    def test_func_decl_shape(self):
        tree = parse_source("func Ready(x int) bool {\n    return x > 0\n}\n")
        (func,) = tree.children
        assert func.kind is NodeKind.FUNC_DECL
        recv, name, params, results, body = func.children
        assert recv.kind is NodeKind.LIST and recv.children == []
        assert name.value == "Ready"
        assert params.children[0].kind is NodeKind.PARAM
        assert results.children[0].children[0].value == "bool"
        assert body.kind is NodeKind.BLOCK
        assert body.children[0].kind is NodeKind.RETURN_STMT

    def test_method_receiver(self):
        tree = parse_source("func (c *Cache) Len() int { return 0 }")
        recv = tree.children[0].children[0]
        assert len(recv.children) == 1
        param = recv.children[0]
        assert param.children[0].value == "c"
        assert param.children[1].kind is NodeKind.POINTER_TYPE

    def test_multiple_results(self):
        tree = parse_source("func Load() (int, error) { return 0, nil }")
        results = tree.children[0].children[3]
        assert [p.children[0].text for p in results.children] == ["int", "error"]

    def test_struct_type_decl(self):
        tree = parse_source("type Cache struct {\n    sync.Mutex\n    items map[string]int\n}\n")
        (decl,) = tree.children
        assert decl.kind is NodeKind.TYPE_DECL
        fields = decl.children[1].children[0]
        assert [f.kind for f in fields.children] == [NodeKind.FIELD, NodeKind.FIELD]
        assert fields.children[0].children[0].value == "sync.Mutex"
        assert fields.children[1].children[1].kind is NodeKind.MAP_TYPE

    def test_var_decl_without_initialiser(self):
        tree = parse_source("var t0 time.Time")
        name, type_, init = tree.children[0].children
        assert name.value == "t0"
        assert type_.value == "time.Time"
        assert init.kind is NodeKind.EMPTY

    def test_if_else_chain(self):
        tree = parse_source("if a { x++ } else if b { x-- } else { x = 0 }")
        stmt = tree.children[0]
        assert stmt.kind is NodeKind.IF_STMT
        assert stmt.children[2].kind is NodeKind.IF_STMT
        assert stmt.children[2].children[2].kind is NodeKind.BLOCK

    def test_conversions(self):
        tree = parse_source("n := len([]byte(s))")
        rhs = tree.children[0].children[1].children[0]
        assert rhs.kind is NodeKind.CALL
        inner = rhs.children[1].children[0]
        assert inner.children[0].kind is NodeKind.SLICE_TYPE

    def test_trailing_comment(self):
        tree = parse_source("x := !(a == b) // guardrules:ignore\n")
        assert len(tree.children) == 1

    def test_parse_error_reports_position(self):
        with pytest.raises(SourceParseError) as exc_info:
            parse_source("x := 1\ny := )\n", "bad.go")
        err = exc_info.value
        assert err.code == GuardErrorCodes.SOURCE_PARSE_FAILURE
        assert err.span.file == "bad.go"
        assert err.span.line == 2
        assert "bad.go" in err.error_message.message
        assert err.error_message.source_line == "y := )"
        assert "\n    y := )\n" in err.to_gcc_format()

    @pytest.mark.parametrize("keyword", KEYWORDS)
    def test_keywords_are_not_identifiers(self, keyword):
        with pytest.raises(SourceParseError):
            parse_source(f"{keyword} := 1")

    def test_keyword_prefix_is_an_identifier(self):
        tree = parse_source("format := 1")
        assert tree.children[0].children[0].children[0].value == "format"


class TestOperatorPrecedence:

    def test_comparison_binds_looser_than_additive(self):
        expr = parse_source("a - b == 0").children[0].children[0]
        assert expr.kind is NodeKind.BINARY and expr.value == "=="
        assert expr.children[0].value == "-"

    def test_xor_is_additive(self):
        expr = parse_source("a ^ b != 0").children[0].children[0]
        assert expr.value == "!="
        assert expr.children[0].value == "^"

    def test_left_fold(self):
        expr = parse_source("a + b + c").children[0].children[0]
        assert expr.children[0].text == "a + b"
        assert expr.children[1].text == "c"

    def test_logical_operators(self):
        expr = parse_source("a && b || c").children[0].children[0]
        assert expr.value == "||"
        assert expr.children[0].value == "&&"

    def test_unary_not(self):
        expr = parse_source("!ok").children[0].children[0]
        assert expr.kind is NodeKind.UNARY and expr.value == "!"


class TestParentheses:

    def test_parentheses_are_not_nodes(self):
        plain = parse_source("a - b == 0").children[0]
        grouped = parse_source("(a - b) == 0").children[0]
        assert same_shape(plain, grouped)

    def test_parenthesised_span_covers_parentheses(self):
        expr = parse_source("(a - b) == 0").children[0].children[0]
        assert expr.children[0].text == "(a - b)"

    def test_nested_parentheses(self):
        expr = parse_source("!((a != b))").children[0].children[0]
        assert expr.children[0].kind is NodeKind.BINARY
        assert expr.children[0].text == "((a != b))"


class TestParseTemplate:

    def test_single_expression_unwrapped(self):
        (root,) = parse_template("$x == $y")
        assert root.kind is NodeKind.BINARY
        assert [c.kind for c in root.children] == [NodeKind.PLACEHOLDER] * 2

    def test_statement_template_stays_a_statement(self):
        (root,) = parse_template("if err == nil { return err }")
        assert root.kind is NodeKind.IF_STMT

    def test_sequence_template(self):
        roots = parse_template("$mu1.Lock(); defer $mu2.Unlock()")
        assert [r.kind for r in roots] == [NodeKind.EXPR_STMT, NodeKind.DEFER_STMT]

    def test_variadic_in_lists(self):
        (root,) = parse_template("func $name($*params) bool { $*body }")
        assert root.kind is NodeKind.FUNC_DECL
        params = root.children[2]
        body = root.children[4]
        assert params.children[0].kind is NodeKind.VARIADIC
        assert body.children[0].kind is NodeKind.VARIADIC
        assert body.children[0].value == "body"

    def test_variadic_fields(self):
        (root,) = parse_template("type $name struct { $*_; sync.Mutex; $*_ }")
        fields = root.children[1].children[0].children
        assert [f.kind for f in fields] == [
            NodeKind.VARIADIC, NodeKind.FIELD, NodeKind.VARIADIC,
        ]

    def test_map_type_template(self):
        (root,) = parse_template("map[$k]$v")
        assert root.kind is NodeKind.MAP_TYPE
        assert [c.value for c in root.children] == ["k", "v"]

    def test_placeholder_in_selector(self):
        (root,) = parse_template("$err.Error()")
        callee = root.children[0]
        assert callee.kind is NodeKind.SELECTOR
        assert callee.children[0].kind is NodeKind.PLACEHOLDER

    def test_template_without_placeholders_is_a_snippet(self):
        (root,) = parse_template("fmt.Println(x)")
        target = parse_source("fmt.Println(x)").children[0].children[0]
        assert same_shape(root, target)

    def test_empty_template(self):
        with pytest.raises(MalformedPatternError) as exc_info:
            parse_template("   ", rule="r")
        assert exc_info.value.code == GuardErrorCodes.EMPTY_PATTERN
        assert exc_info.value.rule == "r"

    def test_syntax_error(self):
        with pytest.raises(MalformedPatternError) as exc_info:
            parse_template("$x +", rule="r")
        assert exc_info.value.code == GuardErrorCodes.MALFORMED_PATTERN
        assert "'$x +'" in exc_info.value.error_message.message

    def test_lone_variadic_rejected(self):
        with pytest.raises(MalformedPatternError) as exc_info:
            parse_template("$*xs")
        assert exc_info.value.to_gcc_format().endswith("hint: wrap it in a call or a statement list")


class TestNode:

    def test_to_sexp(self):
        (root,) = parse_template("!$x")
        assert root.to_sexp() == "(unary ! (placeholder x))"

    def test_to_dict(self):
        (root,) = parse_template("$x")
        assert root.to_dict() == {"kind": "placeholder", "value": "x"}

    def test_walk_is_pre_order(self):
        expr = parse_source("a + b").children[0].children[0]
        assert kinds(expr) == [NodeKind.BINARY, NodeKind.IDENT, NodeKind.IDENT]

    def test_span_lines_and_columns(self):
        tree = parse_source("x := 1\ny := 2\n")
        span = tree.children[1].span("f.go")
        assert (span.file, span.line, span.column) == ("f.go", 2, 1)

    def test_same_shape_ignores_spans(self):
        a = Node(NodeKind.IDENT, "x", start=0, end=1, source="x")
        b = Node(NodeKind.IDENT, "x", start=5, end=6, source="     x")
        assert same_shape(a, b)
        assert not same_shape(a, Node(NodeKind.IDENT, "y"))

    def test_same_shape_on_long_chains(self):
        text = " + ".join(["x"] * 2000)
        a = parse_source(text).children[0].children[0]
        b = parse_source("\n" + text).children[0].children[0]
        assert same_shape(a, b)
        c = parse_source(text + " + y").children[0].children[0]
        assert not same_shape(a, c)


class TestDepthFirstVisitor:

    class Recorder(DepthFirstVisitor):
        def __init__(self):
            self.events = []

        def enter(self, node):
            self.events.append(("enter", node.kind.value))

        def leave(self, node):
            self.events.append(("leave", node.kind.value))

        def visit_ident(self, node):
            self.events.append(("ident", node.value))

    def test_order(self):
        tree = parse_source("a + b").children[0].children[0]
        recorder = self.Recorder()
        recorder.visit(tree)
        assert recorder.events == [
            ("enter", "binary"),
            ("enter", "ident"), ("ident", "a"), ("leave", "ident"),
            ("enter", "ident"), ("ident", "b"), ("leave", "ident"),
            ("leave", "binary"),
        ]

    def test_deep_tree(self):
        tree = parse_source(" + ".join(["x"] * 3000))
        recorder = self.Recorder()
        recorder.visit(tree)
        assert recorder.events.count(("ident", "x")) == 3000
        assert recorder.events[-1] == ("leave", "file")
