"""
grammar.py — PEG grammar for rule templates and target snippets
================================================================

Rule patterns are written in a Go subset extended with capture
placeholders:

    $name       matches any single node and binds it
    $_          matches any single node, never binds
    $*name      matches zero or more items of a list (statements,
                parameters, fields, arguments, results)
    $*_         as above, never binds

The same grammar reads the small target snippets the linter checks, so a
template without placeholders is itself a valid snippet.

Whitespace is split in two: ``hs`` is horizontal only, ``ws`` also spans
newlines and line comments.  Newlines terminate statements (``sep``) the
way Go's semicolon insertion does for the forms supported here.

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

from parsimonious.grammar import Grammar

__all__ = ["TEMPLATE_GRAMMAR", "KEYWORDS"]

KEYWORDS = (
    "break", "case", "chan", "const", "continue", "default", "defer",
    "else", "fallthrough", "for", "func", "go", "goto", "if", "import",
    "interface", "map", "package", "range", "return", "select", "struct",
    "switch", "type", "var",
)


_GRAMMAR_TEXT = r'''
    # ─────────────────────────────────────────────────────────────
    # Top-Level Structure
    # ─────────────────────────────────────────────────────────────

    file                = ws stmt_list? ws
    stmt_list           = stmt (sep stmt)* sep?
    block               = "{" ws stmt_list? ws "}"

    stmt                = package_clause / import_decl / func_decl / type_decl
                        / var_decl / if_stmt / for_stmt / return_stmt
                        / defer_stmt / variadic / assign_stmt / inc_dec_stmt
                        / expr

    # ─────────────────────────────────────────────────────────────
    # Declarations
    # ─────────────────────────────────────────────────────────────

    package_clause      = kw_package hs1 ident
    import_decl         = kw_import hs import_spec
    import_spec         = string_lit / import_group
    import_group        = "(" ws (string_lit ws)* ")"

    func_decl           = kw_func hs receiver? hs name params hs result? hs block
    receiver            = "(" ws param_list? ws ")"
    params              = "(" ws param_list? ws ")"
    result              = params / type_expr
    param_list          = param (hs "," ws param)* (hs ",")?
    param               = variadic / named_param / type_expr
    named_param         = ident hs1 type_expr

    type_decl           = kw_type hs1 name hs1 type_expr
    var_decl            = kw_var hs1 name var_type? var_init?
    var_type            = hs1 type_expr
    var_init            = hs "=" ws expr

    # ─────────────────────────────────────────────────────────────
    # Statements
    # ─────────────────────────────────────────────────────────────

    if_stmt             = kw_if hs1 expr hs block else_clause?
    else_clause         = hs kw_else hs else_body
    else_body           = if_stmt / block
    for_stmt            = kw_for for_cond? hs block
    for_cond            = hs1 expr
    return_stmt         = kw_return return_values?
    return_values       = hs1 expr_list
    defer_stmt          = kw_defer hs1 expr
    assign_stmt         = expr_list hs assign_op ws expr_list
    inc_dec_stmt        = expr hs inc_dec_op

    expr_list           = list_item (hs "," ws list_item)*
    list_item           = variadic / expr

    # ─────────────────────────────────────────────────────────────
    # Expressions (Go precedence, loosest first)
    # ─────────────────────────────────────────────────────────────

    expr                = or_expr
    or_expr             = and_expr (hs or_op ws and_expr)*
    and_expr            = cmp_expr (hs and_op ws cmp_expr)*
    cmp_expr            = add_expr (hs cmp_op ws add_expr)*
    add_expr            = mul_expr (hs add_op ws mul_expr)*
    mul_expr            = unary_expr (hs mul_op ws unary_expr)*
    unary_expr          = prefixed / primary_expr
    prefixed            = unary_op hs unary_expr

    primary_expr        = operand postfix*
    postfix             = call_suffix / selector_suffix / index_suffix
    call_suffix         = "(" ws arg_list? ws ")"
    arg_list            = list_item (hs "," ws list_item)* (hs ",")?
    selector_suffix     = "." name
    index_suffix        = "[" ws expr ws "]"

    operand             = paren_expr / placeholder / string_lit / number
                        / func_lit / slice_type / map_type / ident
    paren_expr          = "(" ws expr ws ")"
    func_lit            = kw_func hs params hs result? hs block

    # ─────────────────────────────────────────────────────────────
    # Types
    # ─────────────────────────────────────────────────────────────

    type_expr           = placeholder / slice_type / map_type / pointer_type
                        / struct_type / type_name
    slice_type          = "[]" type_expr
    map_type            = kw_map hs "[" ws type_expr ws "]" type_expr
    pointer_type        = "*" type_expr
    struct_type         = kw_struct hs "{" ws field_list? ws "}"
    field_list          = field (sep field)* sep?
    field               = variadic / named_field / type_expr
    named_field         = ident hs1 type_expr
    type_name           = ident ("." ident)?

    # ─────────────────────────────────────────────────────────────
    # Placeholders & Names
    # ─────────────────────────────────────────────────────────────

    name                = placeholder / ident
    placeholder         = "$" ph_name
    variadic            = "$*" ph_name
    ph_name             = ~r"[A-Za-z_][A-Za-z0-9_]*"

    # ─────────────────────────────────────────────────────────────
    # Operators
    # ─────────────────────────────────────────────────────────────

    or_op               = "||"
    and_op              = "&&"
    cmp_op              = ~r"==|!=|<=|>=|<(?![<-])|>(?!>)"
    add_op              = ~r"\+(?![+=])|-(?![-=])|\|(?![|=])|\^(?!=)"
    mul_op              = ~r"\*(?!=)|/(?![/=*])|%(?!=)|<<(?!=)|>>(?!=)|&\^(?!=)|&(?![&=^])"
    unary_op            = ~r"!(?!=)|-|\+|\^|\*|&(?!&)"
    assign_op           = ~r"<<=|>>=|&\^=|:=|\+=|-=|\*=|/=|%=|&=|\|=|\^=|=(?!=)"
    inc_dec_op          = ~r"\+\+|--"

    # ─────────────────────────────────────────────────────────────
    # Keywords
    # ─────────────────────────────────────────────────────────────

    kw_package          = ~r"package\b"
    kw_import           = ~r"import\b"
    kw_func             = ~r"func\b"
    kw_type             = ~r"type\b"
    kw_var              = ~r"var\b"
    kw_if               = ~r"if\b"
    kw_else             = ~r"else\b"
    kw_for              = ~r"for\b"
    kw_return           = ~r"return\b"
    kw_defer            = ~r"defer\b"
    kw_map              = ~r"map\b"
    kw_struct           = ~r"struct\b"

    # ─────────────────────────────────────────────────────────────
    # Literals
    # ─────────────────────────────────────────────────────────────

    string_lit          = ~r'"(?:[^"\\\n]|\\.)*"' / ~r"`[^`]*`"
    number              = ~r"0[xX][0-9a-fA-F_]+|[0-9]+(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?"
    ident               = ~r"(?!(?:@KEYWORDS@)\b)[A-Za-z_][A-Za-z0-9_]*"

    # ─────────────────────────────────────────────────────────────
    # Whitespace & Separators
    # ─────────────────────────────────────────────────────────────

    sep                 = ~r"[ \t]*(?:;|(?://[^\n]*)?\n)(?:\s|;|//[^\n]*)*"
    hs                  = ~r"[ \t]*"
    hs1                 = ~r"[ \t]+"
    ws                  = ~r"(?:\s|//[^\n]*)*"
'''

# Keywords never read as identifiers.
TEMPLATE_GRAMMAR = Grammar(_GRAMMAR_TEXT.replace("@KEYWORDS@", "|".join(KEYWORDS)))
