from __future__ import annotations
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NodeKind(str, Enum):
    VARIABLE = "variable"
    RETURN = "return"
    EXPRESSION = "expression"
    CALL = "call"
    CONDITION = "condition"
    LOOP = "loop"
    ERROR_HANDLING = "error-handling"
    BLOCK = "block"
    UNKNOWN = "unknown"
    ERROR = "error"


class ActionType(str, Enum):
    NAVIGATION = "navigation"
    INTERACTION = "interaction"
    DATA_EXTRACTION = "data-extraction"
    CONTROL_FLOW = "control-flow"
    RETURN = "return"
    COMPUTATION = "computation"


class Importance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ─── Steps view ─────────────────────────────────────────────────
class SemanticNode(BaseModel):
    """One statement of the Steps view.

    Children are ordered; `depth` is the nesting level the node was rendered
    at. Nodes are rebuilt from the AST on every render and carry no identity.
    """
    kind: NodeKind
    title: str
    label: Optional[str] = Field(default=None, description="Stable, unlocalized branch label")
    summary: Optional[str] = None
    description: Optional[str] = None
    children: List["SemanticNode"] = Field(default_factory=list)
    depth: int = Field(default=0, ge=0)
    collapsible: bool = False
    default_collapsed: bool = False
    color_category: str = "gray"
    important: bool = False
    message: Optional[str] = None
    node_type: str = ""

    def find(self, path: List[int]) -> "SemanticNode":
        """Address a descendant by its structural index path."""
        node = self
        for index in path:
            node = node.children[index]
        return node


SemanticNode.model_rebuild()


# ─── Actions view ───────────────────────────────────────────────
class WorkflowAction(BaseModel):
    """A group of consecutive top-level statements with one purpose."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: ActionType
    title: str
    description: str
    human_readable_text: str = ""
    # AST statements; the AST is not serialisable so dumps leave it out
    statements: List[Any] = Field(default_factory=list, exclude=True)
    code: List[str] = Field(default_factory=list)
    importance: Importance = Importance.LOW
    variables: Optional[List[str]] = None
    details: List[str] = Field(default_factory=list)
    icon: str = "compute"
    color: str = "gray"

    @field_validator("variables", mode="before")
    @classmethod
    def dedupe_variables(cls, v: Any) -> Optional[List[str]]:
        """Keep the first occurrence of every variable name, in order."""
        if v is None:
            return None
        seen: List[str] = []
        for name in v:
            if name not in seen:
                seen.append(str(name))
        return seen


# ─── Plugin function catalog ────────────────────────────────────
class FunctionDefinition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    function_id: str = Field(alias="functionId", min_length=1)
    function_name: Optional[str] = Field(default=None, alias="functionName")
    description: Optional[str] = None


class PluginPackage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    package_name: str = Field(alias="packageName")
    functions: List[FunctionDefinition] = Field(default_factory=list)

    @field_validator("functions", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> List[Any]:
        if v is None:
            return []
        return v


class FunctionMatch(BaseModel):
    name: str
    description: Optional[str] = None
    package_name: Optional[str] = None


class FunctionCatalog(BaseModel):
    """Plugin packages whose functions a workflow may call by id."""
    packages: List[PluginPackage] = Field(default_factory=list)

    def find(self, function_id: str) -> Optional[FunctionMatch]:
        for pkg in self.packages:
            for fn in pkg.functions:
                if fn.function_id == function_id:
                    return FunctionMatch(
                        name=fn.function_name or fn.function_id,
                        description=fn.description,
                        package_name=pkg.package_name,
                    )
        return None


# ─── Pipeline result ────────────────────────────────────────────
class AnalysisError(BaseModel):
    message: str
    # (line, column), both 1-based
    location: Optional[Tuple[int, int]] = None


class AnalysisResult(BaseModel):
    steps: List[SemanticNode] = Field(default_factory=list)
    actions: List[WorkflowAction] = Field(default_factory=list)
    raw_code: str = ""
    error: Optional[AnalysisError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
