import pytest

from analyzer import DeclKind, ParseError, ScopeKind, build_scopes
from lexer import tokenize


def _build(source: str):
    return build_scopes(tokenize(source))


def _shape(scope):
    """(name, kind, declared names, children) tuples for compact assertions."""
    return (
        scope.name,
        scope.kind,
        sorted(scope.declarations),
        [_shape(child) for child in scope.children],
    )


def test_global_scope_spans_source():
    source = "var a = 1;\n"
    tree = _build(source)

    assert tree.root.scope_id == "S0"
    assert (tree.root.start, tree.root.end) == (0, len(source))
    assert tree.root.parent is None


def test_function_declaration_binds_name_in_enclosing_scope():
    tree = _build("function outer(a, b) { function inner() {} }")

    assert _shape(tree.root) == (
        "global",
        ScopeKind.GLOBAL,
        ["outer"],
        [("outer", ScopeKind.FUNCTION, ["a", "b", "inner"], [("inner", ScopeKind.FUNCTION, [], [])])],
    )
    outer = tree.root.children[0]
    assert outer.declarations["a"].kind == DeclKind.PARAM
    assert outer.declarations["inner"].kind == DeclKind.FUNCTION
    assert tree.root.declarations["outer"].kind == DeclKind.FUNCTION


def test_function_scope_range_covers_parameters_and_body():
    source = "function f(a) { return a; } f(1);"
    tree = _build(source)

    scope = tree.root.children[0]
    assert scope.start == source.index("(")
    assert scope.end == source.index("}") + 1
    assert scope.parent is tree.root
    assert scope.parent_id == "S0"


def test_var_hoists_past_blocks_and_loops():
    tree = _build("function f() { if (x) { for (;;) { var deep = 1; } } }")

    fn = tree.root.children[0]
    assert fn.declarations["deep"].kind == DeclKind.VAR
    loop = fn.children[0].children[0]
    assert loop.kind == ScopeKind.LOOP
    assert loop.declarations == {}


def test_let_and_const_stay_in_their_block():
    tree = _build("{ let a = 1; const b = 2; var c = 3; }")

    block = tree.root.children[0]
    assert block.kind == ScopeKind.BLOCK
    assert sorted(block.declarations) == ["a", "b"]
    assert list(tree.root.declarations) == ["c"]


def test_for_header_declarations_belong_to_loop_scope():
    source = "for (let i = 0, n = 3; i < n; i++) { let body = i; }"
    tree = _build(source)

    loop = tree.root.children[0]
    assert loop.kind == ScopeKind.LOOP
    assert loop.name == "for-loop"
    assert sorted(loop.declarations) == ["body", "i", "n"]
    assert loop.start == source.index("(")
    assert loop.children == []


@pytest.mark.parametrize(
    "source, names",
    [
        ("for (const [k, v] of entries) {}", ["k", "v"]),
        ("for (let key in obj) {}", ["key"]),
        ("for await (const chunk of stream) {}", ["chunk"]),
    ],
)
def test_for_in_and_of_headers(source, names):
    loop = _build(source).root.children[0]
    assert sorted(loop.declarations) == names


def test_while_and_do_loops():
    tree = _build("while (go) { let a; }\ndo { let b; } while (again);")

    assert [(child.name, child.kind) for child in tree.root.children] == [
        ("while-loop", ScopeKind.LOOP),
        ("do-loop", ScopeKind.LOOP),
    ]


def test_braceless_bodies_still_get_a_scope():
    source = "if (ready) go(); else stop();\nwhile (busy) wait();"
    tree = _build(source)

    names = [child.name for child in tree.root.children]
    assert names == ["if-block", "else-block", "while-loop"]
    if_block = tree.root.children[0]
    assert source[if_block.start:if_block.end] == "go();"


def test_else_if_chain_does_not_nest():
    tree = _build("if (a) {} else if (b) {} else {}")

    assert [child.name for child in tree.root.children] == ["if-block", "if-block", "else-block"]


def test_try_catch_finally_scopes():
    tree = _build("try { a(); } catch ({ message }) { log(message); } finally { done(); }")

    names = [child.name for child in tree.root.children]
    assert names == ["try-block", "catch-block", "finally-block"]
    catch = tree.root.children[1]
    assert catch.declarations["message"].kind == DeclKind.CATCH_PARAM


def test_optional_catch_binding():
    tree = _build("try { a(); } catch { b(); }")

    assert tree.root.children[1].declarations == {}


def test_switch_body_is_one_block():
    tree = _build("switch (x) { case 1: let y = 2; break; default: let z = 3; }")

    switch = tree.root.children[0]
    assert switch.name == "switch-block"
    assert sorted(switch.declarations) == ["y", "z"]


def test_object_literals_never_open_scopes():
    tree = _build(
        "var o = { a: 1, b: { c: [ { d: 2 } ] } };\n"
        "f({ key: value });\n"
        "var g = () => ({ wrapped: true });\n"
    )

    assert [child.name for child in tree.root.children] == ["arrow"]
    assert [ref.name for ref in tree.references] == ["f", "value"]


def test_object_literal_methods_open_function_scopes():
    tree = _build("var api = { get size() { return 1; }, load(url) { return url; }, [key]: 1 };")

    assert [(child.name, sorted(child.declarations)) for child in tree.root.children] == [
        ("size", []),
        ("load", ["url"]),
    ]
    assert [ref.name for ref in tree.references] == ["url", "key"]


def test_named_function_expression_binds_inside():
    tree = _build("var g = function inner(n) { return inner(n - 1); };")

    assert list(tree.root.declarations) == ["g"]
    inner = tree.root.children[0]
    assert inner.declarations["inner"].kind == DeclKind.FUNCTION
    assert inner.declarations["n"].kind == DeclKind.PARAM


def test_arrow_function_forms():
    tree = _build(
        "const a = x => x;\n"
        "const b = async (p, { q }, ...rest) => { return p; };\n"
        "const c = ([first] = []) => first;\n"
    )

    params = [sorted(child.declarations) for child in tree.root.children]
    assert params == [["x"], ["p", "q", "rest"], ["first"]]


def test_destructuring_declarations():
    tree = _build("const { a, b: [c, d = e], ...rest } = obj;")

    assert sorted(tree.root.declarations) == ["a", "c", "d", "rest"]
    assert [ref.name for ref in tree.references] == ["e", "obj"]


def test_property_names_labels_and_keys_are_not_references():
    tree = _build("outer: for (;;) { promise.then(ok).catch(fail); break outer; }")

    assert [ref.name for ref in tree.references] == ["promise", "ok", "fail"]


def test_automatic_semicolon_insertion():
    tree = _build("let a = 1\nlet b = a\nb\nreturnValue()")

    assert sorted(tree.root.declarations) == ["a", "b"]
    assert [ref.name for ref in tree.references] == ["a", "b", "returnValue"]


def test_redeclaration_overwrites_binding():
    source = "var x = 1; var x = 2;"
    tree = _build(source)

    assert list(tree.root.declarations) == ["x"]
    assert tree.root.declarations["x"].declared_at == source.rindex("x")


def test_scope_ids_are_sequential():
    tree = _build("function a() { if (x) {} } function b() {}")

    assert [scope.scope_id for scope in tree.walk()] == ["S0", "S1", "S2", "S3"]
    assert tree.scope("S2").name == "if-block"


def test_with_and_eval_are_reported():
    tree = _build("with (o) { eval('1'); }")

    assert [issue.code for issue in tree.issues] == ["WITH_STATEMENT", "EVAL_CALL"]


@pytest.mark.parametrize(
    "source, fragment",
    [
        ("function f() {", "unterminated '{'"),
        ("}", "unbalanced closing bracket"),
        ("{ ( } )", "mismatched bracket"),
        ("if (x) let y = 1;", "single-statement body"),
        ("while (x) const y = 1;", "single-statement body"),
        ("class A {}", "class declarations are not supported"),
        ("import x from 'y';", "module imports are not supported"),
        ("var = 3;", "invalid binding target"),
        ("function () {}", "function declaration without a name"),
        ("try { a(); }", "has no handler"),
        ("while (x) { break outer more; }", "missing statement terminator"),
        ("x = if (y) {}", "unexpected keyword 'if'"),
    ],
)
def test_parse_errors(source, fragment):
    with pytest.raises(ParseError) as excinfo:
        _build(source)

    assert fragment in excinfo.value.reason
    assert 0 <= excinfo.value.position <= len(source)


def test_parse_error_describes_expected_and_found():
    with pytest.raises(ParseError) as excinfo:
        _build("if (x) let y = 1;")

    error = excinfo.value
    assert error.position == 7
    assert error.expected == "a statement or a block"
    assert error.found == "'let'"


def test_balance_property_on_random_brace_soup():
    sources = ["{", "{}}", "{{}", "({)}", "function f() { if (a) { }", "[{]}"]
    for source in sources:
        with pytest.raises(ParseError):
            _build(source)


@pytest.mark.parametrize(
    "source, params",
    [
        ("const f = c ? x => 1 : y => 2;", [["x"], ["y"]]),
        ("const f = c ? (x) => x + 1 : null;", [["x"]]),
        ("let g = c ? async x => x : 0;", [["x"]]),
        ("h(c ? x => d ? x : 0 : y => y);", [["x"], ["y"]]),
        ("const k = c ? 0 : y => a ? 1 : 2;", [["y"]]),
    ],
)
def test_arrow_functions_in_conditional_branches(source, params):
    tree = _build(source)

    assert [sorted(child.declarations) for child in tree.root.children] == params
    assert all(child.name == "arrow" for child in tree.root.children)


def test_concise_arrow_in_conditional_ends_before_colon():
    source = "const f = c ? x => 1 : y => 2;"
    tree = _build(source)

    first, second = tree.root.children
    assert source[first.start:first.end] == "x => 1"
    assert source[second.start:second.end] == "y => 2"
    assert [ref.name for ref in tree.references] == ["c"]


@pytest.mark.parametrize(
    "source, references",
    [
        ("switch (k) { case a ? b : c: go(); }", ["k", "a", "b", "c", "go"]),
        ("var o = { key: a ? b : c };", ["a", "b", "c"]),
        ("x = a ? b ? 1 : 2 : 3;", ["x", "a", "b"]),
        ("for (;;) { y = p ? q : r; }", ["y", "p", "q", "r"]),
    ],
)
def test_conditional_expressions(source, references):
    tree = _build(source)

    assert [ref.name for ref in tree.references] == references
