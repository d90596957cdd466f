from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple

# -------- Workflow script AST ---------
# Produced by flowlens.lowering from the lark parse tree and read-only
# afterwards. Type syntax is not modelled; it is kept as source text.


@dataclass(frozen=True)
class Span:
    start: int
    end: int
    line: int
    column: int


@dataclass(frozen=True)
class Comment:
    text: str
    block: bool
    span: Optional[Span] = None


@dataclass(frozen=True)
class Node:
    span: Optional[Span] = field(default=None, kw_only=True, compare=False, repr=False)

    @property
    def type(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class Statement(Node):
    leading_comments: Tuple[Comment, ...] = field(default=(), kw_only=True, compare=False, repr=False)


@dataclass(frozen=True)
class Expression(Node):
    pass


@dataclass(frozen=True)
class TypeAnnotation(Node):
    text: str


# ---- statements ----

@dataclass(frozen=True)
class Program(Node):
    body: Tuple[Statement, ...] = ()
    # comments after the last statement
    trailing_comments: Tuple[Comment, ...] = field(default=(), kw_only=True, compare=False, repr=False)


@dataclass(frozen=True)
class VariableDeclarator(Node):
    id: Node
    init: Optional[Expression] = None
    type_annotation: Optional[TypeAnnotation] = None


@dataclass(frozen=True)
class VariableDeclaration(Statement):
    kind: str
    declarations: Tuple[VariableDeclarator, ...] = ()


@dataclass(frozen=True)
class Parameter(Node):
    pattern: Node
    type_annotation: Optional[TypeAnnotation] = None
    optional: bool = False
    default: Optional[Expression] = None
    modifiers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BlockStatement(Statement):
    body: Tuple[Statement, ...] = ()


@dataclass(frozen=True)
class FunctionDeclaration(Statement):
    id: Optional[Identifier]
    params: Tuple[Node, ...] = ()
    body: Optional[BlockStatement] = None
    is_async: bool = False
    type_parameters: Optional[str] = None
    return_type: Optional[TypeAnnotation] = None


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    expression: Optional[Expression]


@dataclass(frozen=True)
class IfStatement(Statement):
    test: Optional[Expression]
    consequent: Optional[Statement]
    alternate: Optional[Statement] = None


@dataclass(frozen=True)
class ForStatement(Statement):
    init: Optional[Node]
    test: Optional[Expression]
    update: Optional[Expression]
    body: Optional[Statement]


@dataclass(frozen=True)
class ForInStatement(Statement):
    left: Node
    right: Expression
    body: Optional[Statement]


@dataclass(frozen=True)
class ForOfStatement(Statement):
    left: Node
    right: Expression
    body: Optional[Statement]
    is_await: bool = False


@dataclass(frozen=True)
class WhileStatement(Statement):
    test: Optional[Expression]
    body: Optional[Statement]


@dataclass(frozen=True)
class DoWhileStatement(Statement):
    body: Optional[Statement]
    test: Optional[Expression]


@dataclass(frozen=True)
class CatchClause(Node):
    param: Optional[Node]
    body: Optional[BlockStatement]
    param_type: Optional[TypeAnnotation] = None


@dataclass(frozen=True)
class TryStatement(Statement):
    block: Optional[BlockStatement]
    handler: Optional[CatchClause] = None
    finalizer: Optional[BlockStatement] = None


@dataclass(frozen=True)
class SwitchCase(Node):
    test: Optional[Expression]
    consequent: Tuple[Statement, ...] = ()


@dataclass(frozen=True)
class SwitchStatement(Statement):
    discriminant: Expression
    cases: Tuple[SwitchCase, ...] = ()


@dataclass(frozen=True)
class ReturnStatement(Statement):
    argument: Optional[Expression] = None


@dataclass(frozen=True)
class ThrowStatement(Statement):
    argument: Optional[Expression] = None


@dataclass(frozen=True)
class BreakStatement(Statement):
    label: Optional[str] = None


@dataclass(frozen=True)
class ContinueStatement(Statement):
    label: Optional[str] = None


@dataclass(frozen=True)
class ExportDeclaration(Statement):
    """`export` wrapping a declaration; other export forms are OpaqueStatement."""
    declaration: Statement


@dataclass(frozen=True)
class OpaqueStatement(Statement):
    """A statement kept as source text: classes, imports, type declarations."""
    kind: str
    text: str
    name: Optional[str] = None
    needs_semicolon: bool = False

    @property
    def type(self) -> str:
        return self.kind


# ---- expressions ----

@dataclass(frozen=True)
class Identifier(Expression):
    name: str


@dataclass(frozen=True)
class Literal(Expression):
    kind: str  # 'number' | 'string' | 'boolean' | 'null' | 'regex'
    raw: str

    @property
    def value(self):
        if self.kind == "string":
            return self.raw[1:-1]
        if self.kind == "boolean":
            return self.raw == "true"
        if self.kind == "null":
            return None
        return self.raw


@dataclass(frozen=True)
class TemplateLiteral(Expression):
    raw: str


@dataclass(frozen=True)
class ThisExpression(Expression):
    pass


@dataclass(frozen=True)
class SuperExpression(Expression):
    pass


@dataclass(frozen=True)
class SpreadElement(Expression):
    argument: Expression


@dataclass(frozen=True)
class ArrayExpression(Expression):
    elements: Tuple[Expression, ...] = ()


@dataclass(frozen=True)
class Property(Node):
    key: Node
    value: Node
    computed: bool = False
    shorthand: bool = False
    method: bool = False
    kind: str = "init"  # 'init' | 'get' | 'set'


@dataclass(frozen=True)
class ObjectExpression(Expression):
    properties: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class FunctionExpression(Expression):
    id: Optional[Identifier]
    params: Tuple[Node, ...] = ()
    body: Optional[BlockStatement] = None
    is_async: bool = False
    type_parameters: Optional[str] = None
    return_type: Optional[TypeAnnotation] = None


@dataclass(frozen=True)
class ArrowFunctionExpression(Expression):
    params: Tuple[Node, ...]
    body: Node
    is_async: bool = False
    return_type: Optional[TypeAnnotation] = None


@dataclass(frozen=True)
class UnaryExpression(Expression):
    operator: str
    argument: Expression


@dataclass(frozen=True)
class AwaitExpression(Expression):
    argument: Expression


@dataclass(frozen=True)
class UpdateExpression(Expression):
    operator: str
    argument: Expression
    prefix: bool


@dataclass(frozen=True)
class BinaryExpression(Expression):
    operator: str
    left: Expression
    right: Expression


@dataclass(frozen=True)
class LogicalExpression(Expression):
    operator: str
    left: Expression
    right: Expression


@dataclass(frozen=True)
class AssignmentExpression(Expression):
    operator: str
    left: Expression
    right: Expression


@dataclass(frozen=True)
class ConditionalExpression(Expression):
    test: Expression
    consequent: Expression
    alternate: Expression


@dataclass(frozen=True)
class CallExpression(Expression):
    callee: Expression
    arguments: Tuple[Expression, ...] = ()
    optional: bool = False
    type_arguments: Optional[str] = None


@dataclass(frozen=True)
class NewExpression(Expression):
    callee: Expression
    arguments: Optional[Tuple[Expression, ...]] = None
    type_arguments: Optional[str] = None


@dataclass(frozen=True)
class MemberExpression(Expression):
    object: Expression
    property: Expression
    computed: bool = False
    optional: bool = False


@dataclass(frozen=True)
class SequenceExpression(Expression):
    expressions: Tuple[Expression, ...] = ()


@dataclass(frozen=True)
class ParenthesizedExpression(Expression):
    expression: Expression


@dataclass(frozen=True)
class TaggedTemplateExpression(Expression):
    tag: Expression
    quasi: TemplateLiteral


@dataclass(frozen=True)
class TypeCastExpression(Expression):
    """`x as T`, `x satisfies T` and `<T>x`."""
    expression: Expression
    type_text: str
    operator: str


@dataclass(frozen=True)
class NonNullExpression(Expression):
    expression: Expression


# ---- patterns ----

@dataclass(frozen=True)
class PatternProperty(Node):
    key: Node
    value: Node
    computed: bool = False
    shorthand: bool = False


@dataclass(frozen=True)
class ObjectPattern(Node):
    properties: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class ArrayPattern(Node):
    elements: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class AssignmentPattern(Node):
    left: Node
    right: Expression


@dataclass(frozen=True)
class RestElement(Node):
    argument: Node
    type_annotation: Optional[TypeAnnotation] = None


CONTROL_FLOW = (
    IfStatement,
    ForStatement,
    ForInStatement,
    ForOfStatement,
    WhileStatement,
    DoWhileStatement,
    TryStatement,
    SwitchStatement,
)

LOOPS = (ForStatement, ForInStatement, ForOfStatement, WhileStatement, DoWhileStatement)
