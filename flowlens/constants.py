"""Fixed limits, keyword sets and palettes shared by the Steps and Actions views."""
from typing import Dict, List, Optional, Tuple

from .types import ActionType, Importance, NodeKind

DEFAULT_SUMMARY_MAX = 80
DEFAULT_MAX_DEPTH = 10
DEFAULT_CACHE_SIZE = 32

CALLEE_SUMMARY_MAX = 40
CATCH_LABEL_MAX = 24
EXECUTE_INLINE_MAX = 60
RETURN_VALUE_MAX = 80
OUTLINE_STATEMENTS = 3

# Classification keyword sets, in priority order
NAVIGATION_KEYWORDS = ("goto", "navigate", "open", "visit", "newPage", "createPage")
INTERACTION_KEYWORDS = ("click", "type", "fill", "select", "submit", "press", "hover", "focus")
EXTRACTION_KEYWORDS = ("textContent", "innerHTML", "getAttribute", "evaluate", "$$eval", "$eval", "title")

ACTION_KEYWORDS: List[Tuple[ActionType, Tuple[str, ...]]] = [
    (ActionType.NAVIGATION, NAVIGATION_KEYWORDS),
    (ActionType.INTERACTION, INTERACTION_KEYWORDS),
    (ActionType.DATA_EXTRACTION, EXTRACTION_KEYWORDS),
]

# Calls highlighted in the Steps view
IMPORTANT_FUNCTIONS = ("navigate", "click", "fill", "select", "submit", "waitFor", "screenshot", "evaluate")
IMPORTANT_CALL_KEYWORDS = ("page", "navigate", "goto", "access", "plugin", "click", "type", "select", "submit", "wait")

NODE_COLORS: Dict[NodeKind, str] = {
    NodeKind.VARIABLE: "purple",
    NodeKind.RETURN: "green",
    NodeKind.CALL: "teal",
    NodeKind.EXPRESSION: "cyan",
    NodeKind.CONDITION: "amber",
    NodeKind.LOOP: "blue",
    NodeKind.ERROR_HANDLING: "red",
    NodeKind.ERROR: "red",
    NodeKind.BLOCK: "gray",
    NodeKind.UNKNOWN: "pink",
}
IMPORTANT_CALL_COLOR = "orange"

ACTION_COLORS: Dict[ActionType, Dict[Importance, str]] = {
    ActionType.NAVIGATION: {Importance.HIGH: "blue", Importance.MEDIUM: "blue", Importance.LOW: "gray"},
    ActionType.INTERACTION: {Importance.HIGH: "purple", Importance.MEDIUM: "purple", Importance.LOW: "gray"},
    ActionType.DATA_EXTRACTION: {Importance.HIGH: "green", Importance.MEDIUM: "green", Importance.LOW: "gray"},
    ActionType.CONTROL_FLOW: {Importance.HIGH: "orange", Importance.MEDIUM: "orange", Importance.LOW: "gray"},
    ActionType.RETURN: {Importance.HIGH: "pink", Importance.MEDIUM: "pink", Importance.LOW: "gray"},
    ActionType.COMPUTATION: {Importance.HIGH: "cyan", Importance.MEDIUM: "cyan", Importance.LOW: "gray"},
}

ACTION_ICONS: Dict[ActionType, str] = {
    ActionType.NAVIGATION: "navigation",
    ActionType.INTERACTION: "interaction",
    ActionType.DATA_EXTRACTION: "extraction",
    ActionType.CONTROL_FLOW: "branch",
    ActionType.RETURN: "return",
    ActionType.COMPUTATION: "compute",
}


def get_node_color(kind: NodeKind) -> str:
    return NODE_COLORS.get(kind, "gray")


def get_action_color(action_type: ActionType, importance: Importance) -> str:
    return ACTION_COLORS.get(action_type, {}).get(importance, "gray")


def is_important_function(name: str) -> bool:
    lowered = name.lower()
    return any(fn.lower() in lowered for fn in IMPORTANT_FUNCTIONS)


def is_important_call(callee: str) -> bool:
    lowered = callee.lower()
    return any(k in lowered for k in IMPORTANT_CALL_KEYWORDS)


def classify_code(code: str) -> Optional[ActionType]:
    """First keyword set (in priority order) with a member contained in `code`."""
    for action_type, keywords in ACTION_KEYWORDS:
        if any(k in code for k in keywords):
            return action_type
    return None
