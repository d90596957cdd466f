"""
Actions view tests.
Tests ActionGrouper from flowlens.grouping and the keyword classifier.
"""
from flowlens import ast as A
from flowlens.codegen import CODEGEN_FAILED
from flowlens.constants import classify_code
from flowlens.grouping import ActionGrouper, variable_name
from flowlens.parser import find_workflow, parse
from flowlens.types import ActionType, Importance


def _statements(src):
    return list(find_workflow(parse(src)).body.body)


def _group(src, t=None):
    return ActionGrouper(t).group(_statements(src))


def test_actions_partition_the_body(browser_workflow):
    """Every statement lands in exactly one action, in source order."""
    body = _statements(browser_workflow)
    actions = ActionGrouper().group(body)
    flattened = [s for action in actions for s in action.statements]
    assert flattened == body
    assert all(x is y for x, y in zip(flattened, body))


def test_browser_workflow_actions(browser_workflow):
    actions = _group(browser_workflow)
    assert [a.type for a in actions] == [
        ActionType.NAVIGATION,
        ActionType.DATA_EXTRACTION,
        ActionType.COMPUTATION,
        ActionType.CONTROL_FLOW,
        ActionType.CONTROL_FLOW,
        ActionType.RETURN,
    ]

    nav = actions[0]
    assert len(nav.statements) == 3
    assert nav.variables == ["page"]
    assert nav.importance == Importance.HIGH
    assert nav.description == "Open https://example.com"
    assert nav.details == [
        "create page `page`",
        "navigate to `https://example.com`",
        "click element",
    ]
    assert nav.human_readable_text == " → ".join(nav.details)
    assert nav.icon == "navigation"
    assert nav.color == "blue"

    extraction = actions[1]
    assert extraction.importance == Importance.MEDIUM
    assert extraction.variables == ["title"]

    prepare = actions[2]
    assert prepare.title == "Prepare variable `count`"
    assert prepare.importance == Importance.LOW
    assert prepare.color == "gray"

    loop = actions[3]
    assert loop.title == "Repeat for each item"
    assert loop.details == ["for each element repeat:", "  ↻ execute: `count += 1`"]

    assert actions[4].title == "Error handling"
    assert actions[5].importance == Importance.HIGH


def test_snapshot_actions(snapshot_workflow):
    actions = _group(snapshot_workflow)
    assert [a.type for a in actions] == [
        ActionType.COMPUTATION, ActionType.CONTROL_FLOW, ActionType.RETURN,
    ]
    assert actions[1].title == "Conditional branch"
    assert actions[1].description == "Check whether `x greater than 0`"
    assert actions[2].human_readable_text == "return `x`"
    assert actions[2].code == ["return x;"]


def test_declaration_absorbs_following_uses():
    """A declaration groups with the statements that mention its name."""
    src = """
async function workflow() {
  const button = await page.$("#go");
  await button.click();
  await button.hover();
  const other = 1;
}
"""
    actions = _group(src)
    assert [a.type for a in actions] == [ActionType.INTERACTION, ActionType.COMPUTATION]
    assert len(actions[0].statements) == 3
    assert actions[0].variables == ["button"]


def test_unclassified_run_falls_back_to_single_statements():
    """A group with no keyword match splits back into single actions."""
    actions = _group("function workflow() { const a = compute(); log(a); other(); }")
    assert [a.type for a in actions] == [ActionType.COMPUTATION] * 3
    assert actions[0].variables == ["a"]
    assert actions[1].variables is None
    assert actions[1].title == "Computation"


def test_group_stops_at_control_flow():
    src = 'async function workflow() { const page = await browser.newPage(); if (page) { await page.goto("x"); } }'
    actions = _group(src)
    assert [a.type for a in actions] == [ActionType.NAVIGATION, ActionType.CONTROL_FLOW]
    assert len(actions[0].statements) == 1


def test_keyword_priority():
    assert classify_code('page.fill("#title", v)') == ActionType.INTERACTION
    assert classify_code("page.goto(url); page.click(b)") == ActionType.NAVIGATION
    assert classify_code("el.textContent") == ActionType.DATA_EXTRACTION
    assert classify_code("x + 1") is None


def test_control_flow_without_details_uses_generic_lines():
    broken = A.IfStatement(test=None, consequent=A.BlockStatement())
    action = ActionGrouper().group([broken])[0]
    assert action.type == ActionType.CONTROL_FLOW
    assert action.details == ["Check the condition", "Execute the action"]
    assert action.code == [CODEGEN_FAILED]


def test_japanese_actions(snapshot_workflow, t_ja):
    actions = _group(snapshot_workflow, t_ja)
    assert actions[0].title == "変数 `x` を準備"
    assert actions[1].title == "条件分岐"


def test_dump_leaves_out_statements(snapshot_workflow):
    data = _group(snapshot_workflow)[0].model_dump(mode="json")
    assert "statements" not in data
    assert data["type"] == "computation"
    assert data["importance"] == "low"


def test_variable_name():
    decl = _statements("function workflow() { const { a } = obj; let b = 1; }")
    assert variable_name(decl[0]) is None
    assert variable_name(decl[1]) == "b"


class TestGroupingBoundaries:
    """Where one action ends and the next begins."""

    def test_navigation_then_extraction(self):
        """The title declaration starts a new action."""
        actions = _group(
            'function workflow() { const page = newPage(); page.goto("https://example.com");'
            " const title = page.title(); }"
        )
        assert [a.type for a in actions] == [ActionType.NAVIGATION, ActionType.DATA_EXTRACTION]
        assert len(actions[0].statements) == 2
        assert actions[1].variables == ["title"]

    def test_navigation_wins_over_interaction(self):
        """A group with both navigation and interaction keywords is navigation."""
        actions = _group("function workflow() { const p = newPage(); p.click(); }")
        assert len(actions) == 1
        assert actions[0].type == ActionType.NAVIGATION
        assert actions[0].variables == ["p"]

    def test_return_always_stands_alone(self):
        actions = _group("function workflow() { const p = newPage(); return p; }")
        assert [a.type for a in actions] == [ActionType.NAVIGATION, ActionType.RETURN]
