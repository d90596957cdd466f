from __future__ import annotations
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken
from lark.parsers.lalr_analysis import Reduce
from loguru import logger

from .ast import Comment, ExportDeclaration, FunctionDeclaration, Program, Span
from .errors import ParseError
from .lowering import Lowering

GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")

WORKFLOW_NOT_FOUND = "workflow() function not found."
DEFAULT_MAX_ASI_RETRIES = 500

RESERVED_WORDS = frozenset("""
    await break case catch class const continue default delete do else enum
    export extends false finally for function if import in instanceof
    interface let new null return super switch this throw true try typeof
    var void while async declare type
""".split())

# a line break after these ends the statement
RESTRICTED_KEYWORDS = ("return", "throw", "break", "continue")
# these start a new statement when they begin a line
LINE_START_OPERATORS = ("++", "--", "!")

EMPTY_STATEMENT_RULES = ("empty_stmt", "_stmt")

_parser = None
_terminal_types: Dict[str, str] = {}
_comment_sink = threading.local()


def _collect_comment(token: Token) -> None:
    sink = getattr(_comment_sink, "comments", None)
    if sink is not None:
        sink.append(Comment(
            text=str(token),
            block=str(token).startswith("/*"),
            span=Span(token.start_pos, token.end_pos, token.line, token.column),
        ))


def _load_parser() -> Lark:
    global _parser
    if _parser is None:
        grammar = GRAMMAR_PATH.read_text(encoding="utf-8")
        _parser = Lark(
            grammar,
            start="start",
            parser="lalr",
            lexer="contextual",
            propagate_positions=True,
            maybe_placeholders=True,
            lexer_callbacks={"COMMENT": _collect_comment},
        )
        # fixed-text terminals by their text: ";" -> "SEMICOLON"
        _terminal_types.update(
            (t.pattern.value, t.name) for t in _parser.terminals if t.pattern.type == "str"
        )
    return _parser


@dataclass
class ParsedSource:
    """A parsed script.

    `insertions` holds the offsets in `source` where a statement ended
    without its ";". Positions in `tree` and `program` refer to `source`.
    """
    source: str
    tree: Tree
    program: Program
    insertions: List[int] = field(default_factory=list)


def _make_token(type_: str, value: str, pos: int, line: int, column: int) -> Token:
    return Token(type_, value, pos, line, column, line, column + len(value), pos + len(value))


class TokenFeeder:
    """Feeds lexer tokens to the LALR parser one at a time.

    A token the parser refuses is retried after an implied ";" when it starts
    a new line, is a "}" or is the end of input. Words and braces that read
    differently at the start of a statement are offered in each reading.
    """

    def __init__(self, parser: Lark, source: str, max_insertions: int = DEFAULT_MAX_ASI_RETRIES):
        interactive = parser.parse_interactive(source)
        self.state = interactive.parser_state
        self.lexer = interactive.lexer_thread
        self.max_insertions = max_insertions
        self.insertions: List[int] = []
        self.prev: Optional[Token] = None

    def run(self) -> Tree:
        tokens = self.lexer.lex(self.state)
        while True:
            try:
                token = next(tokens)
            except StopIteration:
                break
            except UnexpectedToken as e:
                # the contextual lexer fell back to the full terminal set
                token = e.token
                tokens = self.lexer.lex(self.state)
            self._feed(token)
            self.prev = token
        return self._finish()

    # ---- parser state ----

    def _save(self) -> Tuple[list, list]:
        return list(self.state.state_stack), list(self.state.value_stack)

    def _restore(self, saved: Tuple[list, list]) -> None:
        self.state.state_stack[:] = saved[0]
        self.state.value_stack[:] = saved[1]

    def _accepts(self, token: Token) -> bool:
        saved = self._save()
        try:
            self.state.feed_token(token)
        except UnexpectedToken:
            self._restore(saved)
            return False
        return True

    def _feed_any(self, options: List[Token]) -> bool:
        return any(self._accepts(option) for option in options)

    def _at_empty_statement(self) -> bool:
        actions = self.state.parse_conf.states[self.state.position].values()
        return any(
            action is Reduce and rule.origin.name in EMPTY_STATEMENT_RULES and len(rule.expansion) == 1
            for action, rule in actions
        )

    # ---- tokens ----

    def _readings(self, token: Token) -> List[Token]:
        value = token.value
        keyword = _terminal_types.get(value)
        if token.type == "IDENT" and value in RESERVED_WORDS and keyword:
            # lexed where the keyword was not expected; a ";" may change that
            return self._statement_forms(Token.new_borrow_pos(keyword, value, token)) + [token]
        readings = self._statement_forms(token)
        if token.type != "IDENT" and value.isalpha() and value not in RESERVED_WORDS:
            readings.append(Token.new_borrow_pos("IDENT", value, token))
        return readings

    def _statement_forms(self, token: Token) -> List[Token]:
        if token.value == "{":
            return [Token.new_borrow_pos("_BLOCK_START", "{", token), token]
        if token.value == "function":
            return [Token.new_borrow_pos("_FUNCTION_START", "function", token), token]
        return [token]

    def _insert_semicolon(self) -> bool:
        prev = self.prev
        if prev is None or len(self.insertions) >= self.max_insertions:
            return False
        semicolon = Token(
            _terminal_types[";"], ";", prev.end_pos, prev.end_line, prev.end_column,
            prev.end_line, prev.end_column, prev.end_pos,
        )
        saved = self._save()
        if not self._accepts(semicolon):
            return False
        if self._at_empty_statement():
            self._restore(saved)
            return False
        logger.debug("implied ';' at line {}, column {}", prev.end_line, prev.end_column)
        self.insertions.append(prev.end_pos)
        return True

    def _split_angle(self, token: Token) -> bool:
        """Read `>>`, `>=` and friends one `>` at a time, as in `Array<Array<T>>`."""
        value = token.value
        if len(value) < 2 or value[0] != ">":
            return False
        head = _make_token(_terminal_types[">"], ">", token.start_pos, token.line, token.column)
        if not self._accepts(head):
            return False
        rest = value[1:]
        self.prev = head
        self._feed(_make_token(_terminal_types[rest], rest, token.start_pos + 1, token.line, token.column + 1))
        return True

    def _feed(self, token: Token) -> None:
        prev = self.prev
        readings = self._readings(token)
        line_break = prev is not None and token.line > prev.end_line
        restricted = prev is not None and prev.type != "IDENT" and prev.value in RESTRICTED_KEYWORDS
        if line_break and (restricted or token.value in LINE_START_OPERATORS):
            self._insert_semicolon()
        may_end_statement = line_break or token.value == "}"
        if len(readings) == 1 and not may_end_statement and token.value[:1] != ">":
            self.state.feed_token(token)
            return
        if self._feed_any(readings):
            return
        if may_end_statement and self._insert_semicolon() and self._feed_any(readings):
            return
        if self._split_angle(token):
            return
        self.state.feed_token(readings[-1])

    def _finish(self) -> Tree:
        prev = self.prev
        if prev is None:
            end = Token("$END", "", 0, 1, 1)
        else:
            end = Token.new_borrow_pos("$END", "", prev)
        saved = self._save()
        try:
            return self.state.feed_token(end, True)
        except UnexpectedToken:
            self._restore(saved)
            if not self._insert_semicolon():
                raise
        return self.state.feed_token(end, True)


def _error_position(text: str, err: UnexpectedInput) -> int:
    if isinstance(err, UnexpectedEOF):
        return len(text)
    if isinstance(err, UnexpectedToken):
        if err.token.type == "$END":
            return len(text)
        if getattr(err.token, "start_pos", None) is not None:
            return err.token.start_pos
    pos = getattr(err, "pos_in_stream", None)
    return len(text) if pos is None else pos


def _line_col(text: str, pos: int) -> Tuple[int, int]:
    pos = max(0, min(pos, len(text)))
    line = text.count("\n", 0, pos) + 1
    column = pos - (text.rfind("\n", 0, pos) + 1) + 1
    return line, column


def _describe(err: UnexpectedInput) -> str:
    if isinstance(err, UnexpectedToken):
        if err.token.type == "$END":
            return "unexpected end of input"
        return f"unexpected token {err.token.value!r}"
    if isinstance(err, UnexpectedCharacters):
        return f"unexpected character {err.char!r}"
    if isinstance(err, UnexpectedEOF):
        return "unexpected end of input"
    return str(err).splitlines()[0]


def _parse_tree(source: str, max_asi_retries: int) -> Tuple[Tree, List[int], List[Comment]]:
    _comment_sink.comments = []
    try:
        feeder = TokenFeeder(_load_parser(), source, max_asi_retries)
        tree = feeder.run()
        return tree, feeder.insertions, _comment_sink.comments
    except UnexpectedInput as e:
        line, column = _line_col(source, _error_position(source, e))
        message = f"Syntax error at line {line}, column {column}: {_describe(e)}"
        logger.debug("parse failed: {}", message)
        raise ParseError(message, (line, column)) from e
    finally:
        _comment_sink.comments = None


def parse_program(source: Union[str, Path], max_asi_retries: int = DEFAULT_MAX_ASI_RETRIES) -> ParsedSource:
    """Parse a whole script without requiring a workflow() entry point."""
    text = source.read_text(encoding="utf-8") if isinstance(source, Path) else str(source)
    try:
        tree, insertions, comments = _parse_tree(text, max_asi_retries)
        program = Lowering(tree, text, comments).lower()
    except ParseError:
        raise
    except RecursionError as e:
        raise ParseError("Script is nested too deeply to parse") from e
    except Exception as e:
        raise ParseError(str(e)) from e
    return ParsedSource(source=text, tree=tree, program=program, insertions=insertions)


def find_workflow(program: Program) -> FunctionDeclaration:
    """Return the zero-parameter top-level `workflow` function."""
    for stmt in program.body:
        decl = stmt.declaration if isinstance(stmt, ExportDeclaration) else stmt
        if (
            isinstance(decl, FunctionDeclaration)
            and decl.id is not None
            and decl.id.name == "workflow"
            and not decl.params
            and decl.body is not None
        ):
            return decl
    raise ParseError(WORKFLOW_NOT_FOUND)


def parse(source: Union[str, Path], max_asi_retries: int = DEFAULT_MAX_ASI_RETRIES) -> Program:
    program = parse_program(source, max_asi_retries).program
    find_workflow(program)
    return program
