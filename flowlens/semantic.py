from __future__ import annotations
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from . import ast as A
from .codegen import compact_code
from .config import Settings
from .constants import (
    CALLEE_SUMMARY_MAX,
    CATCH_LABEL_MAX,
    IMPORTANT_CALL_COLOR,
    OUTLINE_STATEMENTS,
    get_node_color,
    is_important_call,
    is_important_function,
)
from .errors import NodeRenderError
from .messages import Translate, get_translator
from .text import join_texts, one_line
from .types import FunctionCatalog, NodeKind, SemanticNode


def branch_statements(stmt: Optional[A.Statement]) -> Sequence[A.Statement]:
    """Statements of an if/loop branch, whether or not it is braced."""
    if stmt is None:
        return ()
    if isinstance(stmt, A.BlockStatement):
        return stmt.body
    return (stmt,)


def call_of(expr: Optional[A.Expression]) -> Optional[A.CallExpression]:
    if isinstance(expr, A.AwaitExpression):
        expr = expr.argument
    return expr if isinstance(expr, A.CallExpression) else None


def _head(node) -> str:
    """A for-loop clause without its trailing semicolon."""
    if node is None:
        return ""
    return compact_code(node).rstrip(";")


class StepRenderer:
    """Builds the Steps view: one SemanticNode per statement, recursively.

    Dispatch goes through a table keyed by statement class; anything not in
    the table becomes an `unknown` node, so every statement yields output.
    A statement that cannot be rendered becomes an `error` node and its
    siblings are unaffected.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        t: Optional[Translate] = None,
        catalog: Optional[FunctionCatalog] = None,
    ):
        self.settings = settings or Settings()
        self.t = t or get_translator(self.settings.locale)
        self.catalog = catalog or FunctionCatalog()
        self._handlers: Dict[type, Callable[[A.Statement, int], SemanticNode]] = {
            A.VariableDeclaration: self._variable,
            A.ReturnStatement: self._return,
            A.ExpressionStatement: self._expression,
            A.IfStatement: self._condition,
            A.ForStatement: self._loop,
            A.ForInStatement: self._loop,
            A.ForOfStatement: self._loop,
            A.WhileStatement: self._loop,
            A.DoWhileStatement: self._loop,
            A.TryStatement: self._try,
        }

    def render(self, statements: Sequence[A.Statement], depth: int = 0) -> List[SemanticNode]:
        if depth > self.settings.max_depth:
            if not statements:
                return []
            return [self._too_deep(statements[0], depth)]
        nodes: List[SemanticNode] = []
        for stmt in statements:
            if isinstance(stmt, A.BlockStatement):
                if stmt.body is None:
                    nodes.append(self._error(stmt, depth, "Block", self.t("steps.error.no_body")))
                else:
                    # bare blocks add nesting but no node of their own
                    nodes.extend(self.render(stmt.body, depth + 1))
                continue
            nodes.append(self.render_statement(stmt, depth))
        return nodes

    def render_statement(self, stmt: A.Statement, depth: int = 0) -> SemanticNode:
        if depth > self.settings.max_depth:
            return self._too_deep(stmt, depth)
        handler = self._handlers.get(type(stmt), self._unknown)
        try:
            return handler(stmt, depth)
        except NodeRenderError as e:
            return self._error(stmt, depth, e.what, e.message)
        except RecursionError:
            return self._too_deep(stmt, depth)
        except Exception as e:
            logger.warning("rendering {} failed: {}", type(stmt).__name__, e)
            message = self.t("steps.error.render_failed", {"error": str(e)})
            return self._error(stmt, depth, type(stmt).__name__, message)

    # ---- node builders ----

    def _node(self, kind: NodeKind, stmt, depth: int, title: str, **fields) -> SemanticNode:
        fields.setdefault("color_category", get_node_color(kind))
        return SemanticNode(
            kind=kind,
            title=title,
            depth=depth,
            node_type=getattr(stmt, "type", type(stmt).__name__),
            **fields,
        )

    def _error(self, stmt, depth: int, what: str, message: str) -> SemanticNode:
        return self._node(
            NodeKind.ERROR, stmt, depth, self.t("steps.invalid", {"kind": what}), message=message
        )

    def _too_deep(self, stmt, depth: int) -> SemanticNode:
        message = self.t("steps.error.too_deep", {"max": self.settings.max_depth})
        return self._error(stmt, depth, getattr(stmt, "type", "Statement"), message)

    def _block(self, title: str, label: str, statements: Sequence[A.Statement], depth: int) -> SemanticNode:
        return SemanticNode(
            kind=NodeKind.BLOCK,
            title=title,
            label=label,
            children=self.render(statements, depth),
            depth=depth,
            color_category=get_node_color(NodeKind.BLOCK),
            node_type="BlockStatement",
        )

    def _summary(self, code: str) -> str:
        return one_line(code, self.settings.summary_max)

    # ---- statement kinds ----

    def _variable(self, stmt: A.VariableDeclaration, depth: int) -> SemanticNode:
        if not stmt.declarations:
            raise NodeRenderError("Variable", self.t("steps.error.no_declarations"))
        return self._node(
            NodeKind.VARIABLE, stmt, depth, self.t("steps.variable"),
            summary=self._summary(compact_code(stmt).rstrip(";")),
        )

    def _return(self, stmt: A.ReturnStatement, depth: int) -> SemanticNode:
        code = "return"
        if stmt.argument is not None:
            code += " " + compact_code(stmt.argument)
        return self._node(NodeKind.RETURN, stmt, depth, self.t("steps.return"), summary=self._summary(code))

    def _expression(self, stmt: A.ExpressionStatement, depth: int) -> SemanticNode:
        if stmt.expression is None:
            raise NodeRenderError("Expression", self.t("steps.error.no_expression"))
        call = call_of(stmt.expression)
        if call is None:
            return self._node(
                NodeKind.EXPRESSION, stmt, depth, self.t("steps.expression"),
                summary=self._summary(compact_code(stmt.expression)),
            )

        callee = one_line(compact_code(call.callee), CALLEE_SUMMARY_MAX)
        important = is_important_call(callee)
        match = None
        if isinstance(call.callee, A.Identifier):
            match = self.catalog.find(call.callee.name)
        if match is not None:
            title = match.name
            package = self.t("steps.package", {"name": match.package_name}) if match.package_name else None
            description = join_texts([match.description, package], "\n") or None
        else:
            key = "steps.important_call" if is_important_function(callee) else "steps.run_tool"
            title = self.t(key, {"callee": callee})
            description = None
        return self._node(
            NodeKind.CALL, stmt, depth, title,
            summary=f"{callee}(…) args={len(call.arguments)}",
            description=description,
            collapsible=match is not None,
            important=important,
            color_category=IMPORTANT_CALL_COLOR if important else get_node_color(NodeKind.CALL),
        )

    def _condition(self, stmt: A.IfStatement, depth: int) -> SemanticNode:
        if stmt.test is None or stmt.consequent is None:
            raise NodeRenderError("If", self.t("steps.error.missing_test"))
        then_title = self.t("steps.then")
        children = [self._block(then_title, "Then", branch_statements(stmt.consequent), depth + 1)]
        outline = [f"{then_title}: {self.outline(branch_statements(stmt.consequent))}"]
        if stmt.alternate is not None:
            else_title = self.t("steps.else")
            children.append(self._block(else_title, "Else", branch_statements(stmt.alternate), depth + 1))
            outline.append(f"{else_title}: {self.outline(branch_statements(stmt.alternate))}")
        return self._node(
            NodeKind.CONDITION, stmt, depth, self.t("steps.condition"),
            summary=self._summary(f"if ({compact_code(stmt.test)})"),
            description="\n".join(outline),
            children=children,
            collapsible=True,
            default_collapsed=depth > 0,
        )

    def _loop(self, stmt, depth: int) -> SemanticNode:
        if stmt.body is None:
            raise NodeRenderError("Loop", self.t("steps.error.missing_body"))
        if isinstance(stmt, A.ForStatement):
            head = f"for ({_head(stmt.init)}; {_head(stmt.test)}; {_head(stmt.update)})"
        elif isinstance(stmt, A.ForInStatement):
            head = f"for ({_head(stmt.left)} in {compact_code(stmt.right)})"
        elif isinstance(stmt, A.ForOfStatement):
            head = f"for ({_head(stmt.left)} of {compact_code(stmt.right)})"
        elif isinstance(stmt, A.WhileStatement):
            head = f"while ({_head(stmt.test)})"
        else:
            head = f"do … while ({_head(stmt.test)})"
        body = branch_statements(stmt.body)
        return self._node(
            NodeKind.LOOP, stmt, depth, self.t("steps.loop"),
            summary=self._summary(head),
            description=self.outline(body),
            children=[self._block(self.t("steps.loop_body"), "Loop", body, depth + 1)],
            collapsible=True,
            default_collapsed=depth > 0,
        )

    def _try(self, stmt: A.TryStatement, depth: int) -> SemanticNode:
        if stmt.block is None:
            raise NodeRenderError("Try...Catch", self.t("steps.error.missing_try"))
        children = [self._block(self.t("steps.try_block"), "Try", stmt.block.body, depth + 1)]
        parts = ["try"]
        handler = stmt.handler
        if handler is not None:
            parts.append("catch")
            if handler.param is not None:
                name = one_line(compact_code(handler.param), CATCH_LABEL_MAX)
                label = f"Catch ({name})"
                title = self.t("steps.catch_block", {"name": name})
            else:
                label = "Catch"
                title = self.t("steps.catch_block_plain")
            body = handler.body.body if handler.body is not None else ()
            children.append(self._block(title, label, body, depth + 1))
        if stmt.finalizer is not None:
            parts.append("finally")
            children.append(self._block(self.t("steps.finally_block"), "Finally", stmt.finalizer.body, depth + 1))
        return self._node(
            NodeKind.ERROR_HANDLING, stmt, depth, self.t("steps.error_handling"),
            summary=" … ".join(parts),
            children=children,
            collapsible=True,
            default_collapsed=depth > 0,
        )

    def _unknown(self, stmt, depth: int) -> SemanticNode:
        return self._node(
            NodeKind.UNKNOWN, stmt, depth,
            self.t("steps.unknown", {"type": getattr(stmt, "type", type(stmt).__name__)}),
            summary=self._summary(compact_code(stmt)),
        )

    # ---- branch outlines ----

    def outline(self, statements: Sequence[A.Statement]) -> str:
        """First few statements of a branch, then how many were left out."""
        if not statements:
            return self.t("steps.no_op")
        parts = [self.describe_simple(s) for s in statements[:OUTLINE_STATEMENTS]]
        rest = len(statements) - OUTLINE_STATEMENTS
        if rest > 0:
            parts.append(self.t("steps.more", {"count": rest}))
        return " → ".join(parts)

    def describe_simple(self, stmt: A.Statement) -> str:
        if isinstance(stmt, A.ExpressionStatement):
            call = call_of(stmt.expression)
            if call is not None:
                callee = compact_code(call.callee)
                if "goto" in callee or "navigate" in callee:
                    return self.t("steps.simple.goto")
                if "click" in callee:
                    return self.t("steps.simple.click")
                if "type" in callee or "fill" in callee:
                    return self.t("steps.simple.type")
                if "textContent" in callee or "innerHTML" in callee:
                    return self.t("steps.simple.get_text")
                return one_line(callee, CALLEE_SUMMARY_MAX)
        if isinstance(stmt, A.VariableDeclaration) and stmt.declarations:
            name = compact_code(stmt.declarations[0].id)
            return self.t("steps.simple.variable", {"name": name})
        if isinstance(stmt, A.ReturnStatement):
            return self.t("steps.simple.return")
        return one_line(compact_code(stmt), CALLEE_SUMMARY_MAX)


def render_steps(
    statements: Sequence[A.Statement],
    settings: Optional[Settings] = None,
    t: Optional[Translate] = None,
    catalog: Optional[FunctionCatalog] = None,
) -> List[SemanticNode]:
    return StepRenderer(settings, t, catalog).render(statements)
