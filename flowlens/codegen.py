"""Render flowlens.ast nodes back to source text.

Two presets cover every caller: COMPACT prints a node on one line for
summaries and keyword matching, READABLE prints indented multi-line code for
the full code views.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from loguru import logger

from . import ast as A
from .errors import CodeGenError

CODEGEN_FAILED = "[code generation failed]"

WORD_OPERATORS = {"typeof", "void", "delete", "instanceof", "in"}


@dataclass(frozen=True)
class CodegenOptions:
    compact: bool = True
    comments: bool = False
    concise: bool = False


COMPACT = CodegenOptions(compact=True, comments=False, concise=False)
READABLE = CodegenOptions(compact=False, comments=False, concise=False)


class CodeGenerator:
    def __init__(self, options: CodegenOptions = COMPACT):
        self.options = options
        self.level = 0
        self._sp = "" if options.concise else " "
        self._statements: Dict[type, Callable] = {
            A.Program: self._program,
            A.BlockStatement: self._block,
            A.VariableDeclaration: self._var_decl,
            A.FunctionDeclaration: self._function_decl,
            A.ExpressionStatement: self._expr_stmt,
            A.IfStatement: self._if,
            A.ForStatement: self._for,
            A.ForInStatement: self._for_in,
            A.ForOfStatement: self._for_of,
            A.WhileStatement: self._while,
            A.DoWhileStatement: self._do_while,
            A.TryStatement: self._try,
            A.SwitchStatement: self._switch,
            A.ReturnStatement: self._return,
            A.ThrowStatement: self._throw,
            A.BreakStatement: lambda n: "break" + (" " + n.label if n.label else "") + ";",
            A.ContinueStatement: lambda n: "continue" + (" " + n.label if n.label else "") + ";",
            A.ExportDeclaration: lambda n: "export " + self.generate(n.declaration),
            A.OpaqueStatement: self._opaque,
        }

    def generate(self, node) -> str:
        if node is None:
            return ""
        handler = self._statements.get(type(node))
        if handler is not None:
            return handler(node)
        return self._expr(node)

    # ---- layout helpers ----

    def _newline(self) -> str:
        if self.options.compact:
            return "" if self.options.concise else " "
        return "\n" + "  " * self.level

    def _comments(self, node) -> str:
        if not self.options.comments:
            return ""
        out = []
        for c in getattr(node, "leading_comments", ()):
            text = c.text
            if self.options.compact and not c.block:
                text = "/* " + text[2:].strip() + " */"
            out.append(text + self._newline())
        return "".join(out)

    def _statement_list(self, body) -> str:
        parts = [self._comments(s) + self.generate(s) for s in body]
        return self._newline().join(parts)

    def _body(self, stmt) -> str:
        """A statement used as the body of if/for/while."""
        if stmt is None:
            raise CodeGenError("missing statement body")
        return self.generate(stmt)

    # ---- statements ----

    def _program(self, node: A.Program) -> str:
        saved = self.level
        self.level = 0
        try:
            text = self._statement_list(node.body)
            if self.options.comments:
                for c in node.trailing_comments:
                    text += ("\n" if text else "") + c.text
            return text
        finally:
            self.level = saved

    def _block(self, node: A.BlockStatement) -> str:
        if not node.body:
            return "{}"
        self.level += 1
        try:
            inner = self._statement_list(node.body)
            opening = "{" + self._newline()
        finally:
            self.level -= 1
        return opening + inner + self._newline() + "}"

    def _declarations(self, node: A.VariableDeclaration) -> str:
        decls = []
        for d in node.declarations:
            text = self._pattern(d.id) + self._annotation(d.type_annotation)
            if d.init is not None:
                text += self._sp + "=" + self._sp + self._expr(d.init)
            decls.append(text)
        return node.kind + " " + ("," + self._sp).join(decls)

    def _var_decl(self, node: A.VariableDeclaration) -> str:
        return self._declarations(node) + ";"

    def _function_head(self, node, method_key: Optional[str] = None) -> str:
        head = "async " if node.is_async else ""
        if method_key is not None:
            head += method_key
        else:
            head += "function"
            if node.id is not None:
                head += " " + node.id.name
        head += node.type_parameters or ""
        head += "(" + self._params(node.params) + ")" + self._annotation(node.return_type)
        return head

    def _function_decl(self, node: A.FunctionDeclaration) -> str:
        return self._function_head(node) + self._sp + self._block(node.body or A.BlockStatement())

    def _expr_stmt(self, node: A.ExpressionStatement) -> str:
        if node.expression is None:
            raise CodeGenError("expression statement without expression")
        text = self._expr(node.expression)
        if isinstance(node.expression, (A.ObjectExpression, A.FunctionExpression)) or (
            isinstance(node.expression, A.AssignmentExpression) and isinstance(node.expression.left, A.ObjectPattern)
        ):
            text = "(" + text + ")"
        return text + ";"

    def _if(self, node: A.IfStatement) -> str:
        if node.test is None:
            raise CodeGenError("if statement without test")
        text = "if" + self._sp + "(" + self._expr(node.test) + ")" + self._sp + self._body(node.consequent)
        if node.alternate is not None:
            sep = self._sp if isinstance(node.consequent, A.BlockStatement) else self._newline()
            text += sep + "else " + self._body(node.alternate)
        return text

    def _for(self, node: A.ForStatement) -> str:
        if isinstance(node.init, A.VariableDeclaration):
            init = self._declarations(node.init)
        else:
            init = self._expr(node.init) if node.init is not None else ""
        test = self._expr(node.test) if node.test is not None else ""
        update = self._expr(node.update) if node.update is not None else ""
        head = init + ";" + (self._sp + test if test else "") + ";" + (self._sp + update if update else "")
        return "for" + self._sp + "(" + head + ")" + self._sp + self._body(node.body)

    def _for_left(self, left) -> str:
        if isinstance(left, A.VariableDeclaration):
            return self._declarations(left)
        return self._expr(left)

    def _for_in(self, node: A.ForInStatement) -> str:
        return ("for" + self._sp + "(" + self._for_left(node.left) + " in " + self._expr(node.right) + ")"
                + self._sp + self._body(node.body))

    def _for_of(self, node: A.ForOfStatement) -> str:
        head = "for await" if node.is_await else "for"
        return (head + self._sp + "(" + self._for_left(node.left) + " of " + self._expr(node.right) + ")"
                + self._sp + self._body(node.body))

    def _while(self, node: A.WhileStatement) -> str:
        if node.test is None:
            raise CodeGenError("while statement without test")
        return "while" + self._sp + "(" + self._expr(node.test) + ")" + self._sp + self._body(node.body)

    def _do_while(self, node: A.DoWhileStatement) -> str:
        if node.test is None:
            raise CodeGenError("do-while statement without test")
        return ("do " + self._body(node.body) + self._sp + "while" + self._sp
                + "(" + self._expr(node.test) + ");")

    def _try(self, node: A.TryStatement) -> str:
        if node.block is None:
            raise CodeGenError("try statement without block")
        text = "try" + self._sp + self._block(node.block)
        if node.handler is not None:
            text += self._sp + self._catch(node.handler)
        if node.finalizer is not None:
            text += self._sp + "finally" + self._sp + self._block(node.finalizer)
        return text

    def _catch(self, node: A.CatchClause) -> str:
        text = "catch"
        if node.param is not None:
            text += self._sp + "(" + self._pattern(node.param) + self._annotation(node.param_type) + ")"
        return text + self._sp + self._block(node.body or A.BlockStatement())

    def _switch(self, node: A.SwitchStatement) -> str:
        head = "switch" + self._sp + "(" + self._expr(node.discriminant) + ")" + self._sp + "{"
        if not node.cases:
            return head + "}"
        self.level += 1
        parts = []
        try:
            for case in node.cases:
                label = "default:" if case.test is None else "case " + self._expr(case.test) + ":"
                if case.consequent:
                    self.level += 1
                    try:
                        label += self._newline() + self._statement_list(case.consequent)
                    finally:
                        self.level -= 1
                parts.append(label)
            body = self._newline() + self._newline().join(parts)
        finally:
            self.level -= 1
        return head + body + self._newline() + "}"

    def _return(self, node: A.ReturnStatement) -> str:
        if node.argument is None:
            return "return;"
        return "return " + self._expr(node.argument) + ";"

    def _throw(self, node: A.ThrowStatement) -> str:
        return "throw " + self._expr(node.argument) + ";"

    def _opaque(self, node: A.OpaqueStatement) -> str:
        text = node.text.strip()
        if self.options.compact:
            text = " ".join(text.split())
        if node.needs_semicolon and not text.endswith((";", "}")):
            text += ";"
        return text

    # ---- patterns and parameters ----

    def _annotation(self, ann: Optional[A.TypeAnnotation]) -> str:
        if ann is None:
            return ""
        return ":" + self._sp + ann.text

    def _params(self, params) -> str:
        return ("," + self._sp).join(self._param(p) for p in params)

    def _param(self, p) -> str:
        if isinstance(p, A.Parameter):
            text = "".join(m + " " for m in p.modifiers) + self._pattern(p.pattern)
            text += "?" if p.optional else ""
            text += self._annotation(p.type_annotation)
            if p.default is not None:
                text += self._sp + "=" + self._sp + self._expr(p.default)
            return text
        return self._pattern(p)

    def _pattern(self, node) -> str:
        if isinstance(node, A.ObjectPattern):
            if not node.properties:
                return "{}"
            inner = ("," + self._sp).join(self._pattern(p) for p in node.properties)
            return "{" + self._sp + inner + self._sp + "}"
        if isinstance(node, A.ArrayPattern):
            return "[" + ("," + self._sp).join(self._pattern(e) for e in node.elements) + "]"
        if isinstance(node, A.PatternProperty):
            if node.shorthand:
                return self._pattern(node.value)
            key = "[" + self._expr(node.key) + "]" if node.computed else self._expr(node.key)
            return key + ":" + self._sp + self._pattern(node.value)
        if isinstance(node, A.AssignmentPattern):
            return self._pattern(node.left) + self._sp + "=" + self._sp + self._expr(node.right)
        if isinstance(node, A.RestElement):
            return "..." + self._pattern(node.argument) + self._annotation(node.type_annotation)
        if isinstance(node, A.Parameter):
            return self._param(node)
        return self._expr(node)

    # ---- expressions ----

    def _args(self, args) -> str:
        return "(" + ("," + self._sp).join(self._expr(a) for a in args) + ")"

    def _expr(self, node) -> str:
        if node is None:
            raise CodeGenError("missing expression")
        sp = self._sp

        if isinstance(node, A.Identifier):
            return node.name
        if isinstance(node, (A.Literal, A.TemplateLiteral)):
            return node.raw
        if isinstance(node, A.ThisExpression):
            return "this"
        if isinstance(node, A.SuperExpression):
            return "super"
        if isinstance(node, A.ParenthesizedExpression):
            return "(" + self._expr(node.expression) + ")"
        if isinstance(node, A.SequenceExpression):
            return ("," + sp).join(self._expr(e) for e in node.expressions)
        if isinstance(node, A.SpreadElement):
            return "..." + self._expr(node.argument)
        if isinstance(node, A.ArrayExpression):
            return "[" + ("," + sp).join(self._expr(e) for e in node.elements) + "]"
        if isinstance(node, A.ObjectExpression):
            if not node.properties:
                return "{}"
            return "{" + sp + ("," + sp).join(self._property(p) for p in node.properties) + sp + "}"
        if isinstance(node, A.FunctionExpression):
            return self._function_head(node) + sp + self._block(node.body or A.BlockStatement())
        if isinstance(node, A.ArrowFunctionExpression):
            head = ("async " if node.is_async else "") + "(" + self._params(node.params) + ")"
            head += self._annotation(node.return_type)
            if isinstance(node.body, A.BlockStatement):
                body = self._block(node.body)
            else:
                body = self._expr(node.body)
                if isinstance(node.body, A.ObjectExpression):
                    body = "(" + body + ")"
            return head + sp + "=>" + sp + body
        if isinstance(node, A.AwaitExpression):
            return "await " + self._expr(node.argument)
        if isinstance(node, A.UnaryExpression):
            arg = self._expr(node.argument)
            if node.operator in WORD_OPERATORS:
                return node.operator + " " + arg
            if node.operator in ("+", "-") and arg.startswith(node.operator):
                return node.operator + " " + arg
            return node.operator + arg
        if isinstance(node, A.UpdateExpression):
            arg = self._expr(node.argument)
            return node.operator + arg if node.prefix else arg + node.operator
        if isinstance(node, (A.BinaryExpression, A.LogicalExpression)):
            op = node.operator
            gap = " " if op in WORD_OPERATORS else sp
            return self._expr(node.left) + gap + op + gap + self._expr(node.right)
        if isinstance(node, A.AssignmentExpression):
            return self._pattern(node.left) + sp + node.operator + sp + self._expr(node.right)
        if isinstance(node, A.ConditionalExpression):
            return (self._expr(node.test) + sp + "?" + sp + self._expr(node.consequent)
                    + sp + ":" + sp + self._expr(node.alternate))
        if isinstance(node, A.CallExpression):
            callee = self._expr(node.callee)
            return callee + ("?." if node.optional else "") + (node.type_arguments or "") + self._args(node.arguments)
        if isinstance(node, A.NewExpression):
            text = "new " + self._expr(node.callee) + (node.type_arguments or "")
            if node.arguments is not None:
                text += self._args(node.arguments)
            return text
        if isinstance(node, A.MemberExpression):
            obj = self._expr(node.object)
            if node.computed:
                return obj + ("?." if node.optional else "") + "[" + self._expr(node.property) + "]"
            return obj + ("?." if node.optional else ".") + self._expr(node.property)
        if isinstance(node, A.TaggedTemplateExpression):
            return self._expr(node.tag) + node.quasi.raw
        if isinstance(node, A.TypeCastExpression):
            if node.operator == "<>":
                return "<" + node.type_text + ">" + self._expr(node.expression)
            return self._expr(node.expression) + " " + node.operator + " " + node.type_text
        if isinstance(node, A.NonNullExpression):
            return self._expr(node.expression) + "!"
        if isinstance(node, A.Property):
            return self._property(node)
        if isinstance(node, A.VariableDeclarator):
            text = self._pattern(node.id) + self._annotation(node.type_annotation)
            if node.init is not None:
                text += sp + "=" + sp + self._expr(node.init)
            return text
        if isinstance(node, (A.ObjectPattern, A.ArrayPattern, A.AssignmentPattern,
                             A.RestElement, A.Parameter, A.PatternProperty)):
            return self._pattern(node)
        if isinstance(node, A.TypeAnnotation):
            return node.text
        if isinstance(node, A.CatchClause):
            return self._catch(node)
        raise CodeGenError(f"cannot render {type(node).__name__}")

    def _property(self, p) -> str:
        if not isinstance(p, A.Property):
            return self._expr(p)
        key = "[" + self._expr(p.key) + "]" if p.computed else self._expr(p.key)
        if p.method or p.kind != "init":
            fn = p.value
            if p.kind in ("get", "set"):
                key = p.kind + " " + key
            return self._function_head(fn, method_key=key) + self._sp + self._block(fn.body or A.BlockStatement())
        if p.shorthand:
            return self._expr(p.value)
        return key + ":" + self._sp + self._expr(p.value)


def render_code(node, options: CodegenOptions = COMPACT) -> str:
    """Render a node, returning CODEGEN_FAILED instead of raising."""
    try:
        return CodeGenerator(options).generate(node)
    except Exception as e:
        logger.warning("code generation failed for {}: {}", type(node).__name__, e)
        return CODEGEN_FAILED


def compact_code(node) -> str:
    return render_code(node, COMPACT)


def readable_code(node, comments: bool = False) -> str:
    options = READABLE if not comments else CodegenOptions(compact=False, comments=True, concise=False)
    return render_code(node, options)
