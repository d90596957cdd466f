"""
Steps view tests.
Tests StepRenderer from flowlens.semantic on parsed workflow bodies.
"""
import pytest

from flowlens import ast as A
from flowlens.config import Settings
from flowlens.parser import find_workflow, parse
from flowlens.semantic import StepRenderer, branch_statements
from flowlens.types import NodeKind


def _statements(src):
    return find_workflow(parse(src)).body.body


def _render(src, **kwargs):
    return StepRenderer(**kwargs).render(_statements(src))


def test_snapshot_steps(snapshot_workflow):
    """variable -> condition with Then/Else -> return."""
    steps = _render(snapshot_workflow)
    assert [n.kind for n in steps] == [NodeKind.VARIABLE, NodeKind.CONDITION, NodeKind.RETURN]

    variable, condition, ret = steps
    assert variable.title == "Prepare variable"
    assert variable.summary == "const x = 1"
    assert variable.color_category == "purple"

    assert condition.summary == "if (x > 0)"
    assert [c.label for c in condition.children] == ["Then", "Else"]
    assert condition.collapsible
    assert not condition.default_collapsed
    assert condition.description == "Then: console.log\nElse: console.log"

    then_block = condition.children[0]
    assert then_block.kind == NodeKind.BLOCK
    assert then_block.depth == 1
    call = condition.find([0, 0])
    assert call.kind == NodeKind.CALL
    assert call.title == "Run tool: console.log"
    assert call.summary == "console.log(…) args=1"
    assert not call.important

    assert ret.summary == "return x"
    assert ret.color_category == "green"


def test_japanese_titles(snapshot_workflow, t_ja):
    steps = StepRenderer(t=t_ja).render(_statements(snapshot_workflow))
    assert steps[0].title == "変数を準備"
    assert steps[1].title == "条件分岐"
    assert steps[1].children[0].label == "Then"


def test_invalid_statement_does_not_affect_siblings():
    """A broken if becomes an error node; the next statement still renders."""
    broken = A.IfStatement(test=None, consequent=A.BlockStatement())
    steps = StepRenderer().render([broken, A.ReturnStatement(A.Identifier("x"))])
    assert steps[0].kind == NodeKind.ERROR
    assert steps[0].title == "If (invalid)"
    assert steps[0].message == "Missing test or consequent"
    assert steps[0].color_category == "red"
    assert steps[1].kind == NodeKind.RETURN


def test_unexpected_failure_becomes_error_node():
    renderer = StepRenderer()

    def boom(stmt, depth):
        raise RuntimeError("boom")

    renderer._handlers[A.ReturnStatement] = boom
    steps = renderer.render([A.ReturnStatement(None), A.VariableDeclaration("let", ())])
    assert steps[0].kind == NodeKind.ERROR
    assert steps[0].message == "Could not render statement: boom"
    assert steps[1].kind == NodeKind.ERROR
    assert steps[1].message == "No declarations"


def test_max_depth_cuts_nesting():
    src = "function workflow() { if (a) { if (b) { if (c) { x(); } } } }"
    steps = _render(src, settings=Settings(max_depth=1))
    inner = steps[0].find([0, 0])
    assert inner.kind == NodeKind.CONDITION
    assert inner.default_collapsed
    cut = inner.find([0])
    assert len(cut.children) == 1
    assert cut.children[0].kind == NodeKind.ERROR
    assert cut.children[0].message == "Nesting deeper than 1 levels is not shown"


def test_catalog_function_title(catalog):
    steps = _render('function workflow() { sendMail("ops@example.com"); }', catalog=catalog)
    node = steps[0]
    assert node.title == "Send e-mail"
    assert node.description == "Sends a message\nPackage: mail-tools"
    assert node.collapsible


def test_important_call():
    steps = _render('async function workflow() { await page.click("#go"); }')
    node = steps[0]
    assert node.title == "Important: page.click"
    assert node.important
    assert node.color_category == "orange"
    assert not node.collapsible


def test_unknown_statement():
    steps = _render('function workflow() { throw new Error("x"); }')
    assert steps[0].kind == NodeKind.UNKNOWN
    assert steps[0].title == "unknown: ThrowStatement"
    assert steps[0].summary == 'throw new Error("x");'
    assert steps[0].color_category == "pink"


def test_bare_block_is_spliced():
    """A nested block adds depth, not a node."""
    steps = _render("function workflow() { { a(); b(); } c(); }")
    assert [n.summary for n in steps] == ["a(…) args=0", "b(…) args=0", "c(…) args=0"]
    assert [n.depth for n in steps] == [1, 1, 0]


def test_loop_and_try(browser_workflow):
    steps = _render(browser_workflow)
    loop = next(n for n in steps if n.kind == NodeKind.LOOP)
    assert loop.summary == "for (const item of items)"
    assert loop.description == "count += 1;"
    assert loop.children[0].label == "Loop"

    guarded = next(n for n in steps if n.kind == NodeKind.ERROR_HANDLING)
    assert guarded.summary == "try … catch"
    assert [c.label for c in guarded.children] == ["Try", "Catch (err)"]
    assert guarded.children[1].title == "On error (err)"


@pytest.mark.parametrize("src, summary", [
    ("function workflow() { for (let i = 0; i < 3; i++) { t(); } }", "for (let i = 0; i < 3; i++)"),
    ("function workflow() { while (busy) wait(); }", "while (busy)"),
    ("function workflow() { do { poll(); } while (more); }", "do … while (more)"),
    ("function workflow() { for (const k in obj) use(k); }", "for (const k in obj)"),
])
def test_loop_heads(src, summary):
    assert _render(src)[0].summary == summary


def test_summary_is_truncated(snapshot_workflow):
    steps = _render(snapshot_workflow, settings=Settings(summary_max=10))
    assert steps[0].summary == "const x =…"


def test_branch_outline_counts_remaining_statements():
    src = "function workflow() { if (ok) { a(); b(); c(); d(); e(); } }"
    steps = _render(src)
    assert steps[0].description == "Then: a → b → c → 2 more"


def test_branch_statements():
    single = A.ExpressionStatement(A.Identifier("x"))
    assert branch_statements(single) == (single,)
    assert branch_statements(None) == ()
    assert branch_statements(A.BlockStatement((single,))) == (single,)
