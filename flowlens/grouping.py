from __future__ import annotations
from typing import Dict, List, Optional, Sequence, Tuple

from . import ast as A
from .codegen import compact_code, readable_code
from .constants import ACTION_ICONS, classify_code, get_action_color
from .messages import Translate, get_translator, localize
from .narration import describe_condition, describe_details, extract_string_value
from .types import ActionType, Importance, WorkflowAction

# action type -> (title, description, readable) catalog keys
ACTION_TEXT: Dict[ActionType, Tuple[str, str, str]] = {
    ActionType.NAVIGATION: (
        "actions.navigation", "actions.navigation_description", "actions.navigation_readable"),
    ActionType.INTERACTION: (
        "actions.interaction", "actions.interaction_description", "actions.interaction_readable"),
    ActionType.DATA_EXTRACTION: (
        "actions.data_extraction", "actions.data_extraction_description", "actions.data_extraction_readable"),
    ActionType.CONTROL_FLOW: (
        "actions.control_flow", "actions.control_flow_description", "actions.control_flow_readable"),
    ActionType.RETURN: (
        "actions.return", "actions.return_description", "actions.return_readable"),
    ActionType.COMPUTATION: (
        "actions.computation", "actions.computation_description", "actions.computation_readable"),
}

# statements that always start a new action
GROUP_BOUNDARIES = (A.ReturnStatement, A.VariableDeclaration) + A.CONTROL_FLOW


def variable_name(stmt: A.Statement) -> Optional[str]:
    """Name bound by a `const x = ...` style declaration, if any."""
    if isinstance(stmt, A.VariableDeclaration) and stmt.declarations:
        target = stmt.declarations[0].id
        if isinstance(target, A.Identifier):
            return target.name
    return None


class ActionGrouper:
    """Splits top-level statements into consecutive WorkflowActions.

    Every statement lands in exactly one action and actions keep source
    order. Grouping is textual: a declaration absorbs the statements right
    after it whose code mentions the declared name.
    """

    def __init__(self, t: Optional[Translate] = None):
        self.t = t or get_translator()

    def group(self, statements: Sequence[A.Statement]) -> List[WorkflowAction]:
        statements = list(statements)
        codes = [compact_code(s) for s in statements]
        actions: List[WorkflowAction] = []
        i = 0
        while i < len(statements):
            stmt = statements[i]
            if isinstance(stmt, A.ReturnStatement):
                actions.append(self._action(ActionType.RETURN, [stmt], Importance.HIGH))
                i += 1
                continue
            if isinstance(stmt, A.CONTROL_FLOW):
                actions.append(self._control_flow(stmt))
                i += 1
                continue

            name = variable_name(stmt)
            if name:
                j = i + 1
                while (
                    j < len(statements)
                    and not isinstance(statements[j], GROUP_BOUNDARIES)
                    and name in codes[j]
                ):
                    j += 1
                if j > i + 1:
                    action_type = classify_code(" ".join(codes[i:j]))
                    if action_type is not None:
                        actions.append(self._action(
                            action_type, statements[i:j], Importance.HIGH, [name], " ".join(codes[i:j])))
                        i = j
                        continue

            action_type = classify_code(codes[i])
            if action_type is None:
                actions.append(self._computation(stmt, name))
            else:
                importance = Importance.MEDIUM if action_type == ActionType.DATA_EXTRACTION else Importance.HIGH
                variables = [name] if name else None
                actions.append(self._action(action_type, [stmt], importance, variables, codes[i]))
            i += 1
        return actions

    # ---- action builders ----

    def _details(self, statements: Sequence[A.Statement]) -> List[str]:
        lines = (localize(m, self.t) for m in describe_details(statements))
        return [line for line in lines if line]

    def _action(
        self,
        action_type: ActionType,
        statements: Sequence[A.Statement],
        importance: Importance,
        variables: Optional[List[str]] = None,
        code: str = "",
        title: Optional[str] = None,
        description: Optional[str] = None,
        details: Optional[List[str]] = None,
    ) -> WorkflowAction:
        title_key, description_key, readable_key = ACTION_TEXT[action_type]
        if details is None:
            details = self._details(statements)
        if description is None and action_type == ActionType.NAVIGATION:
            url = extract_string_value(code)
            if url:
                description = self.t("actions.navigation_with_url", {"url": url})
        return WorkflowAction(
            type=action_type,
            title=title or self.t(title_key),
            description=description or self.t(description_key),
            human_readable_text=" → ".join(details) or self.t(readable_key),
            statements=list(statements),
            code=[readable_code(s) for s in statements],
            importance=importance,
            variables=variables,
            details=details,
            icon=ACTION_ICONS[action_type],
            color=get_action_color(action_type, importance),
        )

    def _computation(self, stmt: A.Statement, name: Optional[str]) -> WorkflowAction:
        if name:
            return self._action(
                ActionType.COMPUTATION, [stmt], Importance.LOW, [name],
                title=self.t("actions.prepare_variable", {"name": name}),
                description=self.t("actions.prepare_description", {"name": name}),
            )
        return self._action(ActionType.COMPUTATION, [stmt], Importance.LOW)

    def _control_flow(self, stmt: A.Statement) -> WorkflowAction:
        title, description = self._control_flow_text(stmt)
        details = self._details([stmt]) or [
            self.t("actions.check_condition"),
            self.t("actions.execute_action"),
        ]
        return self._action(
            ActionType.CONTROL_FLOW, [stmt], Importance.HIGH,
            title=title, description=description, details=details,
        )

    def _condition_text(self, expr: Optional[A.Expression]) -> str:
        if expr is None:
            return ""
        return localize(describe_condition(expr), self.t)

    def _control_flow_text(self, stmt: A.Statement) -> Tuple[str, str]:
        if isinstance(stmt, A.IfStatement):
            return self.t("actions.if_statement"), self.t(
                "actions.if_description", {"condition": self._condition_text(stmt.test)})
        if isinstance(stmt, A.ForStatement):
            return self.t("actions.for_loop"), self.t("actions.for_description")
        if isinstance(stmt, (A.WhileStatement, A.DoWhileStatement)):
            return self.t("actions.while_loop"), self.t(
                "actions.while_description", {"condition": self._condition_text(stmt.test)})
        if isinstance(stmt, (A.ForOfStatement, A.ForInStatement)):
            return self.t("actions.for_of_loop"), self.t("actions.for_of_description")
        if isinstance(stmt, A.TryStatement):
            return self.t("actions.try_statement"), self.t("actions.try_description")
        if isinstance(stmt, A.SwitchStatement):
            return self.t("actions.switch_statement"), self.t(
                "actions.switch_description", {"value": compact_code(stmt.discriminant)})
        return self.t("actions.control_flow"), self.t("actions.control_flow_description")


def group_actions(statements: Sequence[A.Statement], t: Optional[Translate] = None) -> List[WorkflowAction]:
    return ActionGrouper(t).group(statements)
