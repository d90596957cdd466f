"""Remove TypeScript-only syntax from a workflow script.

Stripping deletes source spans found in the parse tree instead of reprinting
the program, so everything that is not type syntax keeps its original
formatting and comments.
"""
from __future__ import annotations
from typing import List, Optional, Tuple

from lark import Token, Tree
from loguru import logger

from .errors import ParseError, StripTypesError
from .parser import DEFAULT_MAX_ASI_RETRIES, ParsedSource, parse_program

TYPE_ONLY_STATEMENTS = {"interface_decl", "type_alias", "enum_decl", "declare_decl", "function_sig"}
TS_MODIFIERS = {"public", "private", "protected", "readonly", "abstract", "override"}

Interval = Tuple[int, int]


def _start(node) -> int:
    if isinstance(node, Token):
        return node.start_pos
    return node.meta.start_pos


def _end(node) -> int:
    if isinstance(node, Token):
        return node.end_pos
    return node.meta.end_pos


def _subtree(tree: Tree, data: str) -> Optional[Tree]:
    for ch in tree.children:
        if isinstance(ch, Tree) and ch.data == data:
            return ch
    return None


def _has_body(method: Tree) -> bool:
    last = method.children[-1]
    return isinstance(last, Tree) and last.data == "block"

class TypeSpanCollector:
    """Collects the [start, end) spans of type-only syntax in a parse tree."""

    def __init__(self, text: str):
        self.text = text
        self.spans: List[Interval] = []
        self._stack: List[Tree] = []

    def collect(self, tree: Tree) -> List[Interval]:
        self._stack = [tree]
        while self._stack:
            node = self._stack.pop()
            if not isinstance(node, Tree):
                continue
            if self._visit(node):
                continue
            self._stack.extend(reversed(node.children))
        return merge_intervals(self.spans)

    def _remove(self, start: int, end: int) -> None:
        if start < end:
            self.spans.append((start, end))

    def _visit(self, node: Tree) -> bool:
        """Record spans for `node`; True when its subtree needs no further walk."""
        dt = node.data
        ch = node.children

        if dt in TYPE_ONLY_STATEMENTS:
            self._remove_statement(node)
            return True
        if dt in ("export_closed", "export_open"):
            inner = next((c for c in ch if isinstance(c, Tree)), None)
            if inner is not None and inner.data in TYPE_ONLY_STATEMENTS:
                self._remove_statement(node)
                return True
            return False
        if dt == "export_named":
            if ch and ch[0] is not None:
                self._remove_statement(node)
            else:
                named = _subtree(node, "named_imports")
                if named is not None:
                    self._named_specs(node, named, has_default=False)
            return True
        if dt == "import_decl":
            self._import(node)
            return True
        if dt in ("type_ann", "arrow_ret"):
            start = _start(node)
            if self.text[start] != ":":
                start = self.text.rfind(":", 0, start)
                if start < 0:
                    raise StripTypesError("type annotation without ':'")
            self._remove(start, _end(node))
            return True
        if dt in ("optional_mark", "type_params", "type_args", "call_type_args"):
            self._remove(_start(node), _end(node))
            return True
        if dt == "typed_item":
            # `(a: T = 1) =>` keeps the name and the default
            self._remove(_end(ch[0]), _end(ch[1]))
            self._stack.extend(c for c in (ch[2], ch[0]) if c is not None)
            return True
        if dt == "class_method" and not _has_body(node):
            # overload signature
            self._remove_statement(node)
            return True
        if dt == "implements_clause":
            self._remove(self._skip_space_back(_start(node)), _end(node))
            return True
        if dt in ("as_expr", "satisfies_expr"):
            left = ch[0]
            self._remove(_end(left), _end(node))
            # `x as A as B` nests; keep walking the left operand
            self._stack.append(left)
            return True
        if dt == "type_assertion":
            operand = ch[-1]
            self._remove(_start(node), _start(operand))
            self._stack.append(operand)
            return True
        if dt == "non_null":
            inner = ch[0]
            self._remove(_end(inner), _end(node))
            self._stack.append(inner)
            return True
        if dt == "modifier" and str(ch[0]) in TS_MODIFIERS:
            self._remove(_start(node), self._skip_space(_end(node)))
            return True
        return False

    # ---- whitespace helpers ----

    def _skip_space(self, pos: int) -> int:
        while pos < len(self.text) and self.text[pos] in " \t":
            pos += 1
        return pos

    def _skip_space_back(self, pos: int) -> int:
        while pos > 0 and self.text[pos - 1] in " \t\r\n":
            pos -= 1
        return pos

    def _remove_statement(self, node: Tree) -> None:
        start, end = _start(node), _end(node)
        end = self._skip_space(end)
        if end < len(self.text) and self.text[end] == ";":
            end = self._skip_space(end + 1)
        if end < len(self.text) and self.text[end] == "\r":
            end += 1
        if end < len(self.text) and self.text[end] == "\n":
            end += 1
            line_start = self.text.rfind("\n", 0, start) + 1
            if not self.text[line_start:start].strip():
                start = line_start
        self._remove(start, end)

    # ---- imports and exports ----

    def _import(self, node: Tree) -> None:
        if node.children and _subtree(node, "type_only") is not None:
            self._remove_statement(node)
            return
        clause = _subtree(node, "import_clause")
        if clause is None:
            return
        named = _subtree(clause, "named_imports")
        if named is None:
            return
        has_default = any(
            isinstance(c, Tree) and c.data in ("name", "namespace_import") for c in clause.children
        )
        self._named_specs(node, named, has_default)

    def _named_specs(self, statement: Tree, named: Tree, has_default: bool) -> None:
        specs = [s for s in named.children if isinstance(s, Tree)]
        typed = [i for i, s in enumerate(specs) if s.children[0] is not None]
        if not typed:
            return
        if len(typed) == len(specs):
            if not has_default:
                self._remove_statement(statement)
                return
            # `import A, { type B } from "x"` keeps the default import
            self._remove(self._skip_space_back(self.text.rfind(",", 0, _start(named))), _end(named))
            return
        for i in typed:
            if i + 1 < len(specs):
                self._remove(_start(specs[i]), _start(specs[i + 1]))
            else:
                self._remove(_end(specs[i - 1]), _end(specs[i]))


def merge_intervals(spans: List[Interval]) -> List[Interval]:
    merged: List[Interval] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged


def _apply(source: str, spans: List[Interval]) -> str:
    out = []
    pos = 0
    for start, end in spans:
        if start < pos or end > len(source):
            raise StripTypesError(f"invalid span {start}-{end}")
        out.append(source[pos:start])
        pos = end
    out.append(source[pos:])
    return "".join(out)


def strip_types(
    source: str,
    max_asi_retries: int = DEFAULT_MAX_ASI_RETRIES,
    parsed: Optional[ParsedSource] = None,
) -> str:
    """Return `source` without type-only syntax; the source itself on failure.

    `parsed` is reused instead of parsing `source` again when it was parsed
    from the same text.
    """
    try:
        if parsed is None or parsed.source != source:
            parsed = parse_program(source, max_asi_retries)
        spans = TypeSpanCollector(source).collect(parsed.tree)
        return _apply(source, spans)
    except ParseError as e:
        logger.debug("not stripping types, script does not parse: {}", e)
        return source
    except Exception as e:
        logger.warning("type stripping failed, keeping original source: {}", e)
        return source
