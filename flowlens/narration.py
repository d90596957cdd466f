"""Describe statements in plain language.

Everything here returns `Phrase`/`Joined` values from flowlens.messages; the
caller localizes them. A statement whose description fails contributes an
empty fragment and the rest of the explanation is kept.
"""
from __future__ import annotations
import re
from typing import Callable, List, Optional

from loguru import logger

from . import ast as A
from .codegen import compact_code
from .constants import EXECUTE_INLINE_MAX, RETURN_VALUE_MAX
from .messages import EMPTY, Joined, Message, Phrase, indent
from .semantic import branch_statements
from .text import collapse_whitespace, truncate

STRING_VALUE = re.compile(r"[\"']([^\"']+)[\"']")
LOG_CALL = re.compile(r"console\.log\((.*)\)")
PUSH_CALL = re.compile(r"(\w+)\.push\((.*)\)")

OPERATOR_PHRASES = {
    "==": "op.eq",
    "===": "op.eq",
    "!=": "op.ne",
    "!==": "op.ne",
    ">=": "op.ge",
    "<=": "op.le",
    ">": "op.gt",
    "<": "op.lt",
    "&&": "op.and",
    "||": "op.or",
}

THEN_PREFIX = "  ✓ "
LOOP_PREFIX = "  ↻ "
TRY_PREFIX = "  ▸ "
CATCH_PREFIX = "  ⚠ "


def extract_string_value(code: str) -> Optional[str]:
    """First quoted string in `code`, without its quotes."""
    m = STRING_VALUE.search(code)
    return m.group(1) if m else None


def declared_name(stmt: A.VariableDeclaration) -> str:
    return compact_code(stmt.declarations[0].id)


def _safe(describe: Callable[[A.Statement], Message], stmt: A.Statement) -> Message:
    try:
        return describe(stmt)
    except Exception as e:
        logger.debug("could not describe {}: {}", type(stmt).__name__, e)
        return EMPTY


# ---- one-line descriptions ----

def describe_statement(stmt: A.Statement) -> Message:
    if isinstance(stmt, A.VariableDeclaration):
        return _describe_declaration(stmt)
    if isinstance(stmt, A.ExpressionStatement):
        return _describe_expression(compact_code(stmt))
    if isinstance(stmt, A.ReturnStatement):
        return _describe_return(stmt)
    if isinstance(stmt, A.IfStatement):
        return Phrase("describe.check_condition")
    if isinstance(stmt, A.LOOPS):
        return Phrase("describe.repeat")
    if isinstance(stmt, A.TryStatement):
        return Phrase("describe.handle_errors")
    if isinstance(stmt, A.SwitchStatement):
        return Phrase("describe.choose_branch")
    return Phrase("describe.execute_operation")


def _is_simple_literal(expr: Optional[A.Expression]) -> bool:
    if isinstance(expr, (A.Literal, A.TemplateLiteral)):
        return True
    return (
        isinstance(expr, A.UnaryExpression)
        and expr.operator in ("-", "+")
        and isinstance(expr.argument, A.Literal)
    )


def _describe_declaration(stmt: A.VariableDeclaration) -> Message:
    name = declared_name(stmt)
    init = stmt.declarations[0].init
    init_code = compact_code(init) if init is not None else ""
    if "newPage" in init_code:
        return Phrase("describe.create_page", {"name": name})
    if "title" in init_code:
        return Phrase("describe.store_title", {"name": name})
    if "textContent" in init_code or "innerHTML" in init_code:
        return Phrase("describe.store_text", {"name": name})
    if _is_simple_literal(init):
        return Phrase("describe.assign", {"name": name, "value": init_code})
    return Phrase("describe.prepare", {"name": name})


def _describe_expression(code: str) -> Message:
    if "goto" in code:
        url = extract_string_value(code)
        if url:
            return Phrase("describe.navigate_to", {"url": url})
        return Phrase("describe.navigate")
    if "click" in code:
        return Phrase("describe.click")
    if "type" in code or "fill" in code:
        return Phrase("describe.fill")
    if "console.log" in code:
        m = LOG_CALL.search(code)
        if m:
            return Phrase("describe.log", {"args": m.group(1)})
        return Phrase("describe.log_plain")
    if ".push(" in code:
        m = PUSH_CALL.search(code)
        if m:
            return Phrase("describe.push", {"array": m.group(1), "value": m.group(2)})
        return Phrase("describe.push_plain")
    simplified = code.rstrip(";").strip()
    if len(simplified) < EXECUTE_INLINE_MAX:
        return Phrase("describe.execute", {"code": simplified})
    return Phrase("describe.execute_operation")


def _describe_return(stmt: A.ReturnStatement) -> Message:
    if stmt.argument is None:
        return Phrase("describe.return")
    value = collapse_whitespace(compact_code(stmt.argument))
    if value.endswith(";"):
        value = value[:-1].strip()
    return Phrase("describe.return_value", {"value": truncate(value, RETURN_VALUE_MAX)})


# ---- conditions ----

def describe_condition(expr: Optional[A.Expression]) -> Phrase:
    """`a > 1 && b` -> "`a greater than 1 and b`" with localized operators."""
    if expr is None:
        raise ValueError("condition without expression")
    return Phrase("describe.condition", {"text": Joined(tuple(_condition_parts(expr)))})


def _condition_parts(node: A.Expression) -> List[Message]:
    if isinstance(node, (A.BinaryExpression, A.LogicalExpression)) and node.operator in OPERATOR_PHRASES:
        return [
            *_condition_parts(node.left),
            Phrase(OPERATOR_PHRASES[node.operator]),
            *_condition_parts(node.right),
        ]
    if isinstance(node, A.ParenthesizedExpression):
        return [Joined(tuple(_condition_parts(node.expression)), prefix="(", suffix=")")]
    return [compact_code(node)]


# ---- multi-line details ----

def describe_details(statements) -> List[Message]:
    """Detail lines for a run of statements, nested branches indented."""
    lines: List[Message] = []
    for stmt in statements:
        try:
            lines.extend(_statement_details(stmt))
        except Exception as e:
            logger.debug("could not describe {}: {}", type(stmt).__name__, e)
            lines.append(EMPTY)
    return lines


def _statement_details(stmt: A.Statement) -> List[Message]:
    if isinstance(stmt, A.IfStatement):
        return _if_details(stmt)
    if isinstance(stmt, A.LOOPS):
        return _loop_details(stmt)
    if isinstance(stmt, A.TryStatement):
        return _try_details(stmt)
    if isinstance(stmt, A.SwitchStatement):
        return _switch_details(stmt)
    return [describe_statement(stmt)]


def _lines(statements, prefix: str) -> List[Message]:
    return [indent(_safe(describe_statement, s), prefix) for s in statements]


def _if_details(stmt: A.IfStatement) -> List[Message]:
    lines: List[Message] = [Phrase("describe.if", {"condition": describe_condition(stmt.test)})]
    lines += _lines(branch_statements(stmt.consequent), THEN_PREFIX)
    alternate = stmt.alternate
    if isinstance(alternate, A.IfStatement):
        lines.append(Phrase("describe.else_if"))
        lines += [indent(line, "  ") for line in _if_details(alternate)]
    elif alternate is not None:
        lines.append(Phrase("describe.else"))
        lines += _lines(branch_statements(alternate), THEN_PREFIX)
    return lines


def _loop_header(stmt) -> Phrase:
    if isinstance(stmt, A.ForStatement):
        return Phrase("describe.loop_times" if stmt.init is not None else "describe.loop")
    if isinstance(stmt, A.WhileStatement) and stmt.test is not None:
        return Phrase("describe.loop_while", {"condition": describe_condition(stmt.test)})
    if isinstance(stmt, A.DoWhileStatement) and stmt.test is not None:
        return Phrase("describe.loop_do_while", {"condition": describe_condition(stmt.test)})
    if isinstance(stmt, A.ForOfStatement):
        return Phrase("describe.loop_each_element")
    if isinstance(stmt, A.ForInStatement):
        return Phrase("describe.loop_each_property")
    return Phrase("describe.loop")


def _loop_details(stmt) -> List[Message]:
    return [_loop_header(stmt)] + _lines(branch_statements(stmt.body), LOOP_PREFIX)


def _try_details(stmt: A.TryStatement) -> List[Message]:
    lines: List[Message] = [Phrase("describe.try")]
    if stmt.block is not None:
        lines += _lines(stmt.block.body, TRY_PREFIX)
    handler = stmt.handler
    if handler is not None:
        if isinstance(handler.param, A.Identifier):
            name: Message = handler.param.name
        else:
            name = Phrase("describe.error_name")
        lines.append(Phrase("describe.catch", {"name": name}))
        if handler.body is not None:
            lines += _lines(handler.body.body, CATCH_PREFIX)
    if stmt.finalizer is not None:
        lines.append(Phrase("describe.finally"))
        lines += _lines(stmt.finalizer.body, THEN_PREFIX)
    return lines


def _switch_details(stmt: A.SwitchStatement) -> List[Message]:
    lines: List[Message] = [Phrase("describe.switch", {"value": compact_code(stmt.discriminant)})]
    for case in stmt.cases:
        if case.test is None:
            lines.append(indent(Phrase("describe.default_case"), "  "))
        else:
            lines.append(indent(Phrase("describe.case", {"value": compact_code(case.test)}), "  "))
        lines += _lines(case.consequent, "  " + THEN_PREFIX)
    return lines
