from __future__ import annotations
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger
from opentelemetry import trace

from . import ast as A
from .codegen import CODEGEN_FAILED, readable_code
from .config import Settings
from .errors import ParseError
from .grouping import ActionGrouper
from .messages import Translate, get_translator
from .parser import DEFAULT_MAX_ASI_RETRIES, ParsedSource, find_workflow, parse_program
from .semantic import StepRenderer
from .strip import strip_types
from .types import AnalysisError, AnalysisResult, FunctionCatalog, SemanticNode, WorkflowAction

_tracer = trace.get_tracer("flowlens")


@dataclass(frozen=True)
class ParsedWorkflow:
    program: A.Program
    workflow: A.FunctionDeclaration
    parsed: Optional[ParsedSource] = field(default=None, compare=False, repr=False)

    @property
    def statements(self) -> List[A.Statement]:
        return list(self.workflow.body.body)


def raw_view(
    source: str,
    max_asi_retries: int = DEFAULT_MAX_ASI_RETRIES,
    parsed: Optional[ParsedSource] = None,
) -> str:
    """Source without types, reprinted; the stripped text if it will not reparse.

    A script with no type syntax is parsed only once; `parsed` is the parse
    of `source` when the caller already has it.
    """
    if parsed is None:
        try:
            parsed = parse_program(source, max_asi_retries)
        except ParseError as e:
            logger.debug("raw view keeps the source: {}", e)
            return source
    stripped = strip_types(source, max_asi_retries, parsed)
    try:
        if parsed is not None and parsed.source == stripped:
            program = parsed.program
        else:
            program = parse_program(stripped, max_asi_retries).program
    except ParseError as e:
        logger.debug("raw view keeps stripped text: {}", e)
        return stripped
    text = readable_code(program, comments=True)
    return stripped if text == CODEGEN_FAILED else text


class WorkflowAnalyzer:
    """Parses workflow scripts and builds the Steps, Actions and Raw views.

    Parsed programs are kept in a small LRU keyed by the exact source text;
    views are rebuilt on every call.
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
        self.tracer = _tracer
        self._cache: "OrderedDict[str, ParsedWorkflow]" = OrderedDict()

    def clear_cache(self) -> None:
        self._cache.clear()

    def parse(self, source: str) -> ParsedWorkflow:
        cached = self._cache.get(source)
        if cached is not None:
            self._cache.move_to_end(source)
            return cached
        with self.tracer.start_as_current_span("flowlens.parse") as span:
            span.set_attribute("flowlens.source_length", len(source))
            result = parse_program(source, self.settings.max_asi_retries)
            parsed = ParsedWorkflow(result.program, find_workflow(result.program), result)
        if self.settings.cache_size > 0:
            self._cache[source] = parsed
            while len(self._cache) > self.settings.cache_size:
                self._cache.popitem(last=False)
        return parsed

    def steps(self, source: str) -> List[SemanticNode]:
        return self._steps(self.parse(source))

    def actions(self, source: str) -> List[WorkflowAction]:
        return self._actions(self.parse(source))

    def raw(self, source: str) -> str:
        cached = self._cache.get(source)
        return self._raw(source, cached.parsed if cached else None)

    def _steps(self, parsed: ParsedWorkflow) -> List[SemanticNode]:
        with self.tracer.start_as_current_span("flowlens.steps") as span:
            nodes = StepRenderer(self.settings, self.t, self.catalog).render(parsed.statements)
            span.set_attribute("flowlens.nodes", len(nodes))
        return nodes

    def _actions(self, parsed: ParsedWorkflow) -> List[WorkflowAction]:
        with self.tracer.start_as_current_span("flowlens.actions") as span:
            actions = ActionGrouper(self.t).group(parsed.statements)
            span.set_attribute("flowlens.actions", len(actions))
        return actions

    def _raw(self, source: str, parsed: Optional[ParsedSource]) -> str:
        with self.tracer.start_as_current_span("flowlens.raw"):
            return raw_view(source, self.settings.max_asi_retries, parsed)

    def analyze(self, source: str) -> AnalysisResult:
        """All three views, or the parse error; never raises."""
        try:
            parsed = self.parse(source)
            return AnalysisResult(
                steps=self._steps(parsed),
                actions=self._actions(parsed),
                raw_code=self._raw(source, parsed.parsed),
            )
        except ParseError as e:
            logger.debug("analysis stopped: {}", e.message)
            return AnalysisResult(error=AnalysisError(message=e.message, location=e.location))
        except Exception as e:
            logger.exception("analysis failed")
            return AnalysisResult(error=AnalysisError(message=str(e) or type(e).__name__))


def analyze_workflow(
    source: str,
    settings: Optional[Settings] = None,
    t: Optional[Translate] = None,
    catalog: Optional[FunctionCatalog] = None,
) -> AnalysisResult:
    return WorkflowAnalyzer(settings, t, catalog).analyze(source)
