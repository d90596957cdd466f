"""
Unit tests for the workflow script parser.
Tests parse(), parse_program() and find_workflow() from flowlens.parser.
"""
import time

import pytest

from flowlens import ast as A
from flowlens.errors import ParseError
from flowlens.parser import WORKFLOW_NOT_FOUND, find_workflow, parse, parse_program


def _workflow_body(src):
    return find_workflow(parse(src)).body.body


def test_parse_snapshot_workflow(snapshot_workflow):
    """The snapshot program lowers to the expected statement kinds."""
    program = parse(snapshot_workflow)
    assert isinstance(program, A.Program)
    body = _workflow_body(snapshot_workflow)
    assert [type(s) for s in body] == [A.VariableDeclaration, A.IfStatement, A.ReturnStatement]

    decl = body[0]
    assert decl.kind == "const"
    assert decl.declarations[0].id == A.Identifier("x")
    assert decl.declarations[0].init == A.Literal("number", "1")

    cond = body[1]
    assert cond.test == A.BinaryExpression(">", A.Identifier("x"), A.Literal("number", "0"))
    assert isinstance(cond.consequent, A.BlockStatement)
    assert isinstance(cond.alternate, A.BlockStatement)
    assert body[2].argument == A.Identifier("x")


def test_missing_workflow_function():
    """A script without workflow() is rejected with a fixed message."""
    with pytest.raises(ParseError, match=r"workflow\(\) function not found\."):
        parse("function main() { return 1; }")


def test_workflow_with_parameters_is_not_an_entry_point():
    """Only a zero-parameter workflow() counts."""
    with pytest.raises(ParseError) as exc:
        parse("function workflow(page) { page.goto('x'); }")
    assert exc.value.message == WORKFLOW_NOT_FOUND


def test_async_and_exported_workflow():
    """async and export forms of workflow() are accepted."""
    assert find_workflow(parse("async function workflow() { await run(); }")).is_async
    exported = parse("export function workflow() { run(); }")
    assert isinstance(exported.body[0], A.ExportDeclaration)
    assert find_workflow(exported).id.name == "workflow"


def test_syntax_error_has_location():
    """Invalid syntax reports line and column."""
    src = "function workflow() {\n  const = 5;\n}"
    with pytest.raises(ParseError) as exc:
        parse(src)
    assert exc.value.location is not None
    line, column = exc.value.location
    assert line == 2
    assert column >= 1
    assert "Syntax error at line 2" in exc.value.message


def test_semicolon_insertion_between_lines():
    """Statements split across lines parse without semicolons."""
    src = "function workflow() {\n  const a = 1\n  const b = a + 1\n  log(b)\n  return b\n}"
    body = _workflow_body(src)
    assert [type(s) for s in body] == [
        A.VariableDeclaration, A.VariableDeclaration, A.ExpressionStatement, A.ReturnStatement,
    ]


def test_insertions_are_source_offsets():
    """Each implied ";" is recorded at the end of the statement it closes."""
    src = "function workflow() {\n  const a = 1\n  run(a)\n}"
    parsed = parse_program(src)
    assert parsed.source == src
    assert parsed.insertions == [src.index("1") + 1, src.index("run(a)") + len("run(a)")]


def test_line_break_after_return_ends_the_statement():
    body = _workflow_body("function workflow() {\n  return\n    a\n}")
    assert [type(s) for s in body] == [A.ReturnStatement, A.ExpressionStatement]
    assert body[0].argument is None
    assert body[1].expression == A.Identifier("a")


def test_line_leading_increment_starts_a_statement():
    """A `++` that begins a line is a prefix increment of the next operand."""
    body = _workflow_body("function workflow() {\n  let b = a\n  ++b\n}")
    assert [type(s) for s in body] == [A.VariableDeclaration, A.ExpressionStatement]
    assert body[0].declarations[0].init == A.Identifier("a")
    assert body[1].expression == A.UpdateExpression("++", A.Identifier("b"), prefix=True)


def test_no_empty_statement_is_implied():
    """The line after `if (x)` is its body."""
    body = _workflow_body("function workflow() {\n  if (x)\n    ++i\n  done()\n}")
    assert [type(s) for s in body] == [A.IfStatement, A.ExpressionStatement]
    assert isinstance(body[0].consequent, A.ExpressionStatement)


def test_script_without_semicolons_parses_quickly():
    lines = ["async function workflow() {", "  const page = await browser.newPage()"]
    for i in range(38):
        lines.append(f"  const v{i} = await page.$(\"#item-{i}\")")
        lines.append(f"  if (v{i}) {{ await v{i}.click() }}")
    lines += ["  return page", "}"]
    src = "\n".join(lines)
    parse("function workflow() {}")
    started = time.perf_counter()
    body = _workflow_body(src)
    assert time.perf_counter() - started < 5
    assert len(body) == 78


def test_type_annotations_are_accepted(browser_workflow):
    """TypeScript syntax parses; imports and interfaces become opaque statements."""
    program = parse(browser_workflow)
    kinds = [s.type for s in program.body]
    assert kinds[0] == "ImportDeclaration"
    assert kinds[1] == "InterfaceDeclaration"
    workflow = find_workflow(program)
    assert workflow.return_type is not None
    assert workflow.return_type.text == "Promise<Result>"


def test_leading_comments_are_attached(browser_workflow):
    """A comment is attached to the statement after it."""
    body = find_workflow(parse(browser_workflow)).body.body
    assert body[0].leading_comments
    assert body[0].leading_comments[0].text == "// open the landing page"


def test_control_flow_statements():
    """Loops, try/catch and switch lower to their own node types."""
    src = """
function workflow() {
  for (let i = 0; i < 3; i++) { tick(i); }
  for (const k in obj) { use(k); }
  while (busy()) wait(1);
  do { poll(); } while (pending);
  try { risky(); } catch (e) { report(e); } finally { done(); }
  switch (mode) { case "a": runA(); break; default: runB(); }
}
"""
    body = _workflow_body(src)
    assert [type(s) for s in body] == [
        A.ForStatement, A.ForInStatement, A.WhileStatement,
        A.DoWhileStatement, A.TryStatement, A.SwitchStatement,
    ]
    try_stmt = body[4]
    assert try_stmt.handler.param == A.Identifier("e")
    assert try_stmt.finalizer is not None
    assert len(body[5].cases) == 2
    assert body[5].cases[1].test is None


def test_else_if_chain():
    """`else if` nests an IfStatement as the alternate."""
    body = _workflow_body("function workflow() { if (a) { x(); } else if (b) { y(); } else { z(); } }")
    outer = body[0]
    assert isinstance(outer.alternate, A.IfStatement)
    assert isinstance(outer.alternate.alternate, A.BlockStatement)


def test_await_call_expression():
    """`await page.goto(url)` is an awaited call."""
    body = _workflow_body('async function workflow() { await page.goto("https://example.com"); }')
    expr = body[0].expression
    assert isinstance(expr, A.AwaitExpression)
    assert isinstance(expr.argument, A.CallExpression)
    assert expr.argument.callee == A.MemberExpression(A.Identifier("page"), A.Identifier("goto"))


def test_parse_program_without_entry_point():
    """parse_program() does not require workflow()."""
    parsed = parse_program("const a = 1;")
    assert isinstance(parsed.program.body[0], A.VariableDeclaration)
    with pytest.raises(ParseError):
        find_workflow(parsed.program)


class TestNewerSyntax:
    """Syntax beyond plain statements and expressions."""

    def test_labeled_loop(self):
        src = """
function workflow() {
  outer: for (const row of rows) {
    for (const cell of row) {
      if (!cell) continue outer
      if (cell.done) break outer
    }
  }
}
"""
        stmt = _workflow_body(src)[0]
        assert isinstance(stmt, A.OpaqueStatement)
        assert stmt.kind == "LabeledStatement"
        assert stmt.name == "outer"
        assert "break outer" in stmt.text

    def test_break_and_continue_keep_their_label(self):
        src = "function workflow() { while (a) { break loop; continue next; } }"
        inner = _workflow_body(src)[0].body.body
        assert inner == (A.BreakStatement(label="loop"), A.ContinueStatement(label="next"))

    def test_object_getter_and_setter(self):
        src = "function workflow() { const box = { get size() { return n; }, set size(v) { n = v; } }; }"
        props = _workflow_body(src)[0].declarations[0].init.properties
        assert [p.kind for p in props] == ["get", "set"]
        assert props[0].key == A.Identifier("size")
        assert isinstance(props[1].value, A.FunctionExpression)
        assert props[1].value.params[0].pattern == A.Identifier("v")

    def test_get_and_set_as_plain_names(self):
        body = _workflow_body("function workflow() { const get = map.get(key); const o = { get, set: 1 }; }")
        assert body[0].declarations[0].id == A.Identifier("get")
        assert [p.kind for p in body[1].declarations[0].init.properties] == ["init", "init"]

    def test_for_await(self):
        src = "async function workflow() { for await (const chunk of stream) { save(chunk); } }"
        loop = _workflow_body(src)[0]
        assert isinstance(loop, A.ForOfStatement)
        assert loop.is_await
        assert loop.right == A.Identifier("stream")

    def test_dynamic_import(self):
        src = 'async function workflow() { const mod = await import("./steps.js"); }'
        call = _workflow_body(src)[0].declarations[0].init.argument
        assert call == A.CallExpression(A.Identifier("import"), (A.Literal("string", '"./steps.js"'),))

    def test_private_class_fields(self):
        src = """
class Counter {
  #count = 0
  increment() { return ++this.#count }
}
function workflow() { new Counter().increment() }
"""
        program = parse(src)
        assert program.body[0].kind == "ClassDeclaration"
        assert "this.#count" in program.body[0].text

    def test_nested_type_arguments(self):
        src = "function workflow() { const grid: Array<Array<number>> = []; const ok = a >> 1 >= b; }"
        body = _workflow_body(src)
        assert body[0].declarations[0].type_annotation.text == "Array<Array<number>>"
        assert body[1].declarations[0].init.operator == ">="
