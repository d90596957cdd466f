from loguru import logger

from .config import Settings
from .errors import CodeGenError, ConfigError, FlowLensError, NodeRenderError, ParseError, StripTypesError
from .messages import Translator, get_translator
from .parser import find_workflow, parse, parse_program
from .pipeline import WorkflowAnalyzer, analyze_workflow, raw_view
from .strip import strip_types
from .types import (
    ActionType,
    AnalysisError,
    AnalysisResult,
    FunctionCatalog,
    Importance,
    NodeKind,
    SemanticNode,
    WorkflowAction,
)

logger.disable("flowlens")

__version__ = "0.1.0"
