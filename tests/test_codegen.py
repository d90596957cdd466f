"""
Code generation tests.
Tests compact_code(), readable_code() and render_code() from flowlens.codegen.
"""
from flowlens import ast as A
from flowlens.codegen import CODEGEN_FAILED, CodegenOptions, compact_code, readable_code, render_code
from flowlens.parser import find_workflow, parse


def _body(src):
    return find_workflow(parse(src)).body.body


def test_compact_statements(snapshot_workflow):
    """Compact output keeps every statement on one line."""
    decl, cond, ret = _body(snapshot_workflow)
    assert compact_code(decl) == "const x = 1;"
    assert compact_code(cond.test) == "x > 0"
    assert compact_code(cond) == (
        'if (x > 0) { console.log("positive"); } else { console.log("non-positive"); }'
    )
    assert compact_code(ret) == "return x;"


def test_readable_program(snapshot_workflow):
    """Readable output indents blocks by two spaces."""
    expected = "\n".join([
        "function workflow() {",
        "  const x = 1;",
        "  if (x > 0) {",
        '    console.log("positive");',
        "  } else {",
        '    console.log("non-positive");',
        "  }",
        "  return x;",
        "}",
    ])
    assert readable_code(parse(snapshot_workflow)) == expected


def test_comments_only_when_requested():
    src = "function workflow() {\n  // say hi\n  greet();\n}"
    program = parse(src)
    assert "// say hi" not in readable_code(program)
    assert "  // say hi\n  greet();" in readable_code(program, comments=True)


def test_expressions_round_out():
    """Awaits, members, arrows and object literals print as written."""
    body = _body(
        "async function workflow() {"
        " const items = await page.$$eval('li', els => els.length);"
        " const o = { a: 1, b };"
        " count += 1;"
        " }"
    )
    assert compact_code(body[0]) == "const items = await page.$$eval('li', (els) => els.length);"
    assert compact_code(body[1]) == "const o = { a: 1, b };"
    assert compact_code(body[2]) == "count += 1;"


def test_loops_and_try():
    body = _body(
        "function workflow() {"
        " for (let i = 0; i < n; i++) { step(i); }"
        " try { risky(); } catch (e) { log(e); }"
        " }"
    )
    assert compact_code(body[0]) == "for (let i = 0; i < n; i++) { step(i); }"
    assert compact_code(body[1]) == "try { risky(); } catch (e) { log(e); }"


def test_concise_option_drops_spaces(snapshot_workflow):
    decl = _body(snapshot_workflow)[0]
    assert render_code(decl, CodegenOptions(concise=True)) == "const x=1;"


def test_broken_node_yields_sentinel():
    """A node that cannot be printed gives the sentinel instead of raising."""
    broken = A.IfStatement(test=None, consequent=A.BlockStatement())
    assert compact_code(broken) == CODEGEN_FAILED
    assert readable_code(A.ExpressionStatement(None)) == CODEGEN_FAILED


def test_newer_statement_forms():
    body = _body(
        "async function workflow() {"
        " for await (const c of stream) { save(c); }"
        " const box = { get size() { return n; }, set size(v) { n = v; } };"
        " ({ a, b } = pair);"
        " }"
    )
    assert compact_code(body[0]) == "for await (const c of stream) { save(c); }"
    assert compact_code(body[1]) == "const box = { get size() { return n; }, set size(v) { n = v; } };"
    assert compact_code(body[2]) == "({ a, b } = pair);"


def test_labels_on_break_and_continue():
    assert compact_code(A.BreakStatement(label="outer")) == "break outer;"
    assert compact_code(A.ContinueStatement()) == "continue;"


def test_trailing_comments_follow_the_last_statement():
    program = parse("function workflow() {\n  run();\n}\n// end\n/* done */\n")
    assert readable_code(program, comments=True).endswith("}\n// end\n/* done */")
    assert readable_code(program).endswith("}")
