from __future__ import annotations
from bisect import bisect_left
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from lark import Tree, Token

from .ast import (
    Node, Statement, Expression, Program, Span, Comment, TypeAnnotation,
    VariableDeclaration, VariableDeclarator, Parameter, BlockStatement,
    FunctionDeclaration, ExpressionStatement, IfStatement, ForStatement,
    ForInStatement, ForOfStatement, WhileStatement, DoWhileStatement,
    CatchClause, TryStatement, SwitchCase, SwitchStatement, ReturnStatement,
    ThrowStatement, BreakStatement, ContinueStatement, ExportDeclaration,
    OpaqueStatement, Identifier, Literal, TemplateLiteral, ThisExpression,
    SuperExpression, SpreadElement, ArrayExpression, Property, ObjectExpression,
    FunctionExpression, ArrowFunctionExpression, UnaryExpression, AwaitExpression,
    UpdateExpression, BinaryExpression, LogicalExpression, AssignmentExpression,
    ConditionalExpression, CallExpression, NewExpression, MemberExpression,
    SequenceExpression, ParenthesizedExpression, TaggedTemplateExpression,
    TypeCastExpression, NonNullExpression, PatternProperty, ObjectPattern,
    ArrayPattern, AssignmentPattern, RestElement,
)

BINARY_RULES = {
    "logical_or", "logical_and", "bit_or", "bit_xor", "bit_and", "equality",
    "relational", "shift", "additive", "multiplicative", "exponent",
}
LOGICAL_OPERATORS = {"||", "&&", "??"}

# statements kept as source text: rule -> (node kind, needs ';' when printed)
OPAQUE_STATEMENTS = {
    "class_decl": ("ClassDeclaration", False),
    "interface_decl": ("InterfaceDeclaration", False),
    "enum_decl": ("EnumDeclaration", False),
    "type_alias": ("TypeAliasDeclaration", True),
    "declare_decl": ("DeclareStatement", True),
    "function_sig": ("FunctionSignature", True),
    "import_decl": ("ImportDeclaration", True),
    "export_default": ("ExportDefaultDeclaration", True),
    "export_named": ("ExportNamedDeclaration", True),
    "export_all": ("ExportAllDeclaration", True),
    "labeled_stmt": ("LabeledStatement", False),
}


def _kids(tree: Tree) -> List:
    return [c for c in tree.children if c is not None]


def _subtree(tree: Tree, data: str) -> Optional[Tree]:
    for ch in tree.children:
        if isinstance(ch, Tree) and ch.data == data:
            return ch
    return None


class Lowering:
    """Turns the lark parse tree of a workflow script into flowlens.ast nodes."""

    def __init__(self, tree: Tree, text: str, comments: Sequence[Comment] = ()):
        self.tree = tree
        self.text = text
        self.comments = sorted(comments, key=lambda c: c.span.start)
        self._comment_starts = [c.span.start for c in self.comments]
        self._statement_rules: Dict[str, Callable[[Tree], Statement]] = {
            "block": self._block,
            "var_decl": self._var_decl,
            "function_decl": self._function_decl,
            "if_stmt": self._if,
            "for_stmt": self._for,
            "for_in_stmt": self._for_in,
            "for_in_expr": self._for_in_expr,
            "for_of_stmt": self._for_of,
            "while_stmt": self._while,
            "do_while_stmt": self._do_while,
            "try_stmt": self._try,
            "switch_stmt": self._switch,
            "return_stmt": self._return,
            "throw_stmt": self._throw,
            "break_stmt": lambda t: BreakStatement(self._label(t), span=self._span(t)),
            "continue_stmt": lambda t: ContinueStatement(self._label(t), span=self._span(t)),
            "empty_stmt": lambda t: BlockStatement(span=self._span(t)),
            "expr_stmt": self._expr_stmt,
            "export_closed": self._export,
            "export_open": self._export,
        }

    def lower(self) -> Program:
        body = self._statements(self.tree.children, 0)
        last = next((s.span for s in reversed(body) if s.span is not None), None)
        return Program(
            body=body,
            span=Span(0, len(self.text), 1, 1),
            trailing_comments=self._comments_between(last.end if last else 0, len(self.text)),
        )

    # ---- positions ----

    def _span(self, node) -> Optional[Span]:
        if isinstance(node, Token):
            if node.start_pos is None:
                return None
            return Span(node.start_pos, node.end_pos, node.line, node.column)
        if isinstance(node, Tree):
            meta = node.meta
            if getattr(meta, "empty", True):
                return None
            return Span(meta.start_pos, meta.end_pos, meta.line, meta.column)
        return None

    def _source(self, node) -> str:
        span = self._span(node)
        return "" if span is None else self.text[span.start:span.end]

    def _comments_between(self, start: int, end: int) -> Tuple[Comment, ...]:
        i = bisect_left(self._comment_starts, start)
        found = []
        while i < len(self.comments) and self.comments[i].span.end <= end:
            found.append(self.comments[i])
            i += 1
        return tuple(found)

    # ---- statements ----

    def _statements(self, children, start: int) -> Tuple[Statement, ...]:
        out: List[Statement] = []
        cursor = start
        for ch in children:
            if not isinstance(ch, Tree):
                continue
            stmt = self._statement(ch)
            span = stmt.span
            if span is not None:
                leading = self._comments_between(cursor, span.start)
                if leading:
                    stmt = replace(stmt, leading_comments=leading)
                cursor = span.end
            out.append(stmt)
        return tuple(out)

    def _statement(self, tree: Tree) -> Statement:
        handler = self._statement_rules.get(tree.data)
        if handler is not None:
            return handler(tree)
        if tree.data in OPAQUE_STATEMENTS:
            return self._opaque(tree, tree)
        raise ValueError(f"unsupported statement: {tree.data}")

    def _opaque(self, tree: Tree, inner: Tree) -> OpaqueStatement:
        kind, needs_semicolon = OPAQUE_STATEMENTS[inner.data]
        if inner.data == "declare_decl":
            named = next((c for c in inner.children if isinstance(c, Tree)), None)
        else:
            named = inner
        name_tree = _subtree(named, "name") if named is not None else None
        return OpaqueStatement(
            kind=kind,
            text=self._source(tree),
            name=self._name(name_tree) if name_tree is not None else None,
            needs_semicolon=needs_semicolon,
            span=self._span(tree),
        )

    def _export(self, tree: Tree) -> Statement:
        inner = next(c for c in tree.children if isinstance(c, Tree))
        if inner.data in ("var_decl", "function_decl"):
            return ExportDeclaration(declaration=self._statement(inner), span=self._span(tree))
        return self._opaque(tree, inner)

    def _block(self, tree: Tree) -> BlockStatement:
        span = self._span(tree)
        start = span.start + 1 if span else 0
        return BlockStatement(body=self._statements(tree.children, start), span=span)

    def _var_decl(self, tree: Tree) -> VariableDeclaration:
        kind_tree, *decls = _kids(tree)
        return VariableDeclaration(
            kind=str(kind_tree.children[0]),
            declarations=tuple(self._declarator(d) for d in decls),
            span=self._span(tree),
        )

    def _declarator(self, tree: Tree) -> VariableDeclarator:
        pattern, ann, init = tree.children
        return VariableDeclarator(
            id=self._pattern(pattern),
            init=self._default(init),
            type_annotation=self._type_ann(ann),
            span=self._span(tree),
        )

    def _function_parts(self, children) -> dict:
        is_async, name, type_params, params, ann, body = children
        return dict(
            id=self._identifier(name) if name is not None else None,
            params=self._params(params),
            body=self._block(body),
            is_async=is_async is not None,
            type_parameters=self._source(type_params) if type_params is not None else None,
            return_type=self._type_ann(ann),
        )

    def _function_decl(self, tree: Tree) -> FunctionDeclaration:
        return FunctionDeclaration(**self._function_parts(tree.children), span=self._span(tree))

    def _if(self, tree: Tree) -> IfStatement:
        test, consequent, *rest = tree.children
        alternate = None
        if rest and rest[0] is not None:
            alternate = self._statement(rest[0].children[0])
        return IfStatement(
            test=self._expr(test),
            consequent=self._statement(consequent),
            alternate=alternate,
            span=self._span(tree),
        )

    def _for(self, tree: Tree) -> ForStatement:
        init, test, update, body = tree.children
        if isinstance(init, Tree) and init.data == "var_decl":
            init_node = self._var_decl(init)
        else:
            init_node = self._expr(init) if init is not None else None
        return ForStatement(
            init=init_node,
            test=self._expr(test) if test is not None else None,
            update=self._expr(update) if update is not None else None,
            body=self._statement(body),
            span=self._span(tree),
        )

    def _for_left(self, tree: Tree) -> Node:
        if tree.data == "for_binding":
            kind_tree, pattern = tree.children
            return VariableDeclaration(
                kind=str(kind_tree.children[0]),
                declarations=(VariableDeclarator(id=self._pattern(pattern), span=self._span(pattern)),),
                span=self._span(tree),
            )
        return self._expr(tree)

    def _for_in(self, tree: Tree) -> ForInStatement:
        left, right, body = tree.children
        return ForInStatement(self._for_left(left), self._expr(right), self._statement(body), span=self._span(tree))

    def _for_in_expr(self, tree: Tree) -> ForInStatement:
        head, body = tree.children
        if head.data != "relational" or str(head.children[1]) != "in":
            raise ValueError("expected ';' or 'in' in for statement")
        left, _, right = head.children
        return ForInStatement(self._expr(left), self._expr(right), self._statement(body), span=self._span(tree))

    def _for_of(self, tree: Tree) -> ForOfStatement:
        is_await, left, right, body = tree.children
        return ForOfStatement(
            self._for_left(left), self._expr(right), self._statement(body),
            is_await=is_await is not None, span=self._span(tree),
        )

    def _while(self, tree: Tree) -> WhileStatement:
        test, body = tree.children
        return WhileStatement(self._expr(test), self._statement(body), span=self._span(tree))

    def _do_while(self, tree: Tree) -> DoWhileStatement:
        body, test = tree.children
        return DoWhileStatement(self._statement(body), self._expr(test), span=self._span(tree))

    def _try(self, tree: Tree) -> TryStatement:
        block, catch, final = tree.children
        handler = None
        if catch is not None:
            param, body = catch.children
            handler = CatchClause(
                param=self._pattern(param.children[0]) if param is not None else None,
                body=self._block(body),
                param_type=self._type_ann(param.children[1]) if param is not None else None,
                span=self._span(catch),
            )
        return TryStatement(
            block=self._block(block),
            handler=handler,
            finalizer=self._block(final.children[0]) if final is not None else None,
            span=self._span(tree),
        )

    def _switch(self, tree: Tree) -> SwitchStatement:
        discriminant, *clauses = _kids(tree)
        cases = []
        for clause in clauses:
            span = self._span(clause)
            start = span.start if span else 0
            if clause.data == "case_clause":
                test, *body = clause.children
                cases.append(SwitchCase(self._expr(test), self._statements(body, start), span=span))
            else:
                cases.append(SwitchCase(None, self._statements(clause.children, start), span=span))
        return SwitchStatement(self._expr(discriminant), tuple(cases), span=self._span(tree))

    def _return(self, tree: Tree) -> ReturnStatement:
        arg = tree.children[0] if tree.children else None
        return ReturnStatement(self._expr(arg) if arg is not None else None, span=self._span(tree))

    def _throw(self, tree: Tree) -> ThrowStatement:
        return ThrowStatement(self._expr(tree.children[0]), span=self._span(tree))

    def _expr_stmt(self, tree: Tree) -> ExpressionStatement:
        return ExpressionStatement(self._expr(tree.children[0]), span=self._span(tree))

    def _label(self, tree: Tree) -> Optional[str]:
        name = tree.children[0] if tree.children else None
        return self._name(name) if name is not None else None

    # ---- types ----

    def _type_ann(self, tree: Optional[Tree]) -> Optional[TypeAnnotation]:
        if tree is None:
            return None
        return TypeAnnotation(text=self._source(tree.children[0]), span=self._span(tree))

    # ---- patterns ----

    def _name(self, tree: Tree) -> str:
        return str(tree.children[0])

    def _identifier(self, tree: Tree) -> Identifier:
        return Identifier(self._name(tree), span=self._span(tree))

    def _default(self, tree: Optional[Tree]) -> Optional[Expression]:
        if tree is None:
            return None
        return self._expr(tree.children[0])

    def _pattern(self, tree: Tree) -> Node:
        dt = tree.data
        if dt == "name":
            return self._identifier(tree)
        if dt == "object_pattern":
            return ObjectPattern(tuple(self._pattern_member(m) for m in _kids(tree)), span=self._span(tree))
        if dt == "array_pattern":
            return ArrayPattern(tuple(self._pattern_member(m) for m in _kids(tree)), span=self._span(tree))
        if dt == "pattern_target":
            pattern, default = tree.children
            target = self._pattern(pattern)
            if default is None:
                return target
            return AssignmentPattern(target, self._default(default), span=self._span(tree))
        if dt == "rest_element":
            return RestElement(self._pattern(tree.children[0]), span=self._span(tree))
        # an assignment target such as `obj.field`
        return self._expr(tree)

    def _pattern_member(self, tree: Tree) -> Node:
        dt = tree.data
        if dt == "pattern_prop":
            key_tree, target = tree.children
            key, computed = self._prop_key(key_tree)
            return PatternProperty(key, self._pattern(target), computed=computed, span=self._span(tree))
        if dt == "pattern_shorthand":
            name, default = tree.children
            ident = self._identifier(name)
            value: Node = ident
            if default is not None:
                value = AssignmentPattern(ident, self._default(default), span=self._span(tree))
            return PatternProperty(ident, value, shorthand=True, span=self._span(tree))
        return self._pattern(tree)

    def _params(self, tree: Tree) -> Tuple[Node, ...]:
        if tree.data == "name":
            return (Parameter(self._identifier(tree), span=self._span(tree)),)
        params: List[Node] = []
        for p in _kids(tree):
            if p.data == "rest_param":
                pattern, ann = p.children
                params.append(RestElement(self._pattern(pattern), self._type_ann(ann), span=self._span(p)))
                continue
            modifiers = [c for c in p.children if isinstance(c, Tree) and c.data == "modifier"]
            pattern, optional, ann, default = p.children[len(modifiers):]
            params.append(Parameter(
                pattern=self._pattern(pattern),
                type_annotation=self._type_ann(ann),
                optional=optional is not None,
                default=self._default(default),
                modifiers=tuple(str(m.children[0]) for m in modifiers),
                span=self._span(p),
            ))
        return tuple(params)

    def _prop_key(self, tree: Tree) -> Tuple[Node, bool]:
        if tree.data == "computed_key":
            return self._expr(tree.children[0]), True
        child = tree.children[0]
        if isinstance(child, Tree):
            return Identifier(str(child.children[0]), span=self._span(child)), False
        kind = "string" if child.type == "STRING" else "number"
        return Literal(kind, str(child), span=self._span(child)), False

    # ---- expressions ----

    def _exprs(self, children) -> Tuple[Expression, ...]:
        return tuple(self._expr(c) for c in children if c is not None)

    def _expr(self, tree) -> Expression:
        span = self._span(tree)
        dt = tree.data
        ch = tree.children

        if dt == "name" or dt == "prop_name":
            return Identifier(str(ch[0]), span=span)
        if dt in ("number", "string", "regex"):
            return Literal(dt, str(ch[0]), span=span)
        if dt == "template":
            return TemplateLiteral(str(ch[0]), span=span)
        if dt == "true_lit" or dt == "false_lit":
            return Literal("boolean", "true" if dt == "true_lit" else "false", span=span)
        if dt == "null_lit":
            return Literal("null", "null", span=span)
        if dt == "this_expr":
            return ThisExpression(span=span)
        if dt == "super_expr":
            return SuperExpression(span=span)
        if dt == "paren":
            return self._paren(tree)
        if dt == "sequence":
            return SequenceExpression(self._exprs(ch), span=span)
        if dt == "spread":
            return SpreadElement(self._expr(ch[0]), span=span)
        if dt == "array_literal":
            return ArrayExpression(self._exprs(ch), span=span)
        if dt == "object_literal":
            return ObjectExpression(tuple(self._object_member(m) for m in _kids(tree)), span=span)
        if dt == "function_expr":
            return FunctionExpression(**self._function_parts(ch), span=span)
        if dt == "arrow_fn":
            if len(ch) == 4:
                is_async, head, ann, body = ch
                params = self._arrow_params(head)
            else:
                is_async, head, body = ch
                ann = None
                params = self._params(head)
            body_node = self._block(body) if isinstance(body, Tree) and body.data == "block" else self._expr(body)
            return ArrowFunctionExpression(
                params=params,
                body=body_node,
                is_async=is_async is not None,
                return_type=self._type_ann(ann),
                span=span,
            )
        if dt == "assignment":
            left, op, right = ch
            operator = "".join(str(t) for t in op.children)
            if left.data in ("object_literal", "array_literal"):
                target = self._cover_pattern(left)
            else:
                target = self._expr(left)
            return AssignmentExpression(operator, target, self._expr(right), span=span)
        if dt == "ternary":
            test, cons, alt = ch
            return ConditionalExpression(self._expr(test), self._expr(cons), self._expr(alt), span=span)
        if dt in BINARY_RULES:
            left, *ops, right = ch
            op = "".join(str(t) for t in ops)
            cls = LogicalExpression if op in LOGICAL_OPERATORS else BinaryExpression
            return cls(op, self._expr(left), self._expr(right), span=span)
        if dt == "as_expr" or dt == "satisfies_expr":
            left, op, type_tree = ch
            return TypeCastExpression(self._expr(left), self._source(type_tree), str(op), span=span)
        if dt == "type_assertion":
            _, type_tree, _, operand = ch
            return TypeCastExpression(self._expr(operand), self._source(type_tree), "<>", span=span)
        if dt == "unary_op":
            op, arg = ch
            if str(op) == "await":
                return AwaitExpression(self._expr(arg), span=span)
            return UnaryExpression(str(op), self._expr(arg), span=span)
        if dt == "prefix_update":
            op, arg = ch
            return UpdateExpression(str(op), self._expr(arg), True, span=span)
        if dt == "postfix_update":
            arg, op = ch
            return UpdateExpression(str(op.children[0]), self._expr(arg), False, span=span)
        if dt == "non_null":
            return NonNullExpression(self._expr(ch[0]), span=span)
        if dt == "member" or dt == "optional_member":
            obj, prop = ch
            return MemberExpression(self._expr(obj), self._expr(prop), optional=dt == "optional_member", span=span)
        if dt == "index" or dt == "optional_index":
            obj, prop = ch
            return MemberExpression(self._expr(obj), self._expr(prop), computed=True, optional=dt == "optional_index", span=span)
        if dt == "call":
            callee, type_args, args = ch
            return CallExpression(
                self._expr(callee),
                self._exprs(args.children),
                type_arguments=self._source(type_args) if type_args is not None else None,
                span=span,
            )
        if dt == "optional_call":
            callee, args = ch
            return CallExpression(self._expr(callee), self._exprs(args.children), optional=True, span=span)
        if dt == "dynamic_import":
            callee = Identifier("import", span=Span(span.start, span.start + 6, span.line, span.column) if span else None)
            return CallExpression(callee, self._exprs(ch[0].children), span=span)
        if dt == "new_expr":
            target, type_args, *rest = ch
            args = rest[0] if rest else None
            return NewExpression(
                self._expr(target),
                self._exprs(args.children) if args is not None else None,
                type_arguments=self._source(type_args) if type_args is not None else None,
                span=span,
            )
        if dt == "tagged_template":
            tag, quasi = ch
            return TaggedTemplateExpression(self._expr(tag), TemplateLiteral(str(quasi), span=self._span(quasi)), span=span)
        raise ValueError(f"unsupported expression: {dt}")

    def _object_member(self, tree: Tree) -> Node:
        dt = tree.data
        span = self._span(tree)
        if dt == "object_prop":
            key_tree, value = tree.children
            key, computed = self._prop_key(key_tree)
            return Property(key, self._expr(value), computed=computed, span=span)
        if dt == "object_shorthand":
            ident = self._identifier(tree.children[0])
            return Property(ident, ident, shorthand=True, span=span)
        if dt == "object_cover_init":
            raise ValueError("shorthand property with '=' outside a destructuring pattern")
        if dt == "object_accessor":
            kind, key_tree, params, ann, body = tree.children
            key, computed = self._prop_key(key_tree)
            fn = FunctionExpression(
                id=None,
                params=self._params(params),
                body=self._block(body),
                return_type=self._type_ann(ann),
                span=span,
            )
            return Property(key, fn, computed=computed, kind=str(kind.children[0]), span=span)
        if dt == "object_method":
            is_async, key_tree, type_params, params, ann, body = tree.children
            key, computed = self._prop_key(key_tree)
            fn = FunctionExpression(
                id=None,
                params=self._params(params),
                body=self._block(body),
                is_async=is_async is not None,
                type_parameters=self._source(type_params) if type_params is not None else None,
                return_type=self._type_ann(ann),
                span=span,
            )
            return Property(key, fn, computed=computed, method=True, span=span)
        return self._expr(tree)

    # ---- arrow function heads ----

    def _paren(self, tree: Tree) -> Expression:
        items = _kids(tree)
        if not items or any(i.data in ("typed_item", "rest_item") for i in items):
            raise ValueError("arrow function parameters without '=>'")
        if len(items) == 1:
            inner = self._expr(items[0])
        else:
            inner = SequenceExpression(self._exprs(items), span=self._span(tree))
        return ParenthesizedExpression(inner, span=self._span(tree))

    def _arrow_params(self, tree: Tree) -> Tuple[Node, ...]:
        params: List[Node] = []
        for item in _kids(tree):
            span = self._span(item)
            if item.data == "rest_item":
                pattern, ann = item.children
                params.append(RestElement(self._pattern(pattern), self._type_ann(ann), span=span))
                continue
            ann = None
            if item.data == "typed_item":
                item, type_tree, default = item.children
                ann = TypeAnnotation(text=self._source(type_tree), span=self._span(type_tree))
            elif item.data == "assignment" and str(item.children[1].children[0]) == "=":
                item, _, default = item.children
            else:
                default = None
            params.append(Parameter(
                pattern=self._cover_pattern(item),
                type_annotation=ann,
                default=self._expr(default) if default is not None else None,
                span=span,
            ))
        return tuple(params)

    def _cover_pattern(self, tree: Tree) -> Node:
        """Read an expression written in a binding position as a pattern."""
        dt = tree.data
        span = self._span(tree)
        if dt == "name":
            return self._identifier(tree)
        if dt == "assignment" and str(tree.children[1].children[0]) == "=":
            left, _, right = tree.children
            return AssignmentPattern(self._cover_pattern(left), self._expr(right), span=span)
        if dt == "spread":
            return RestElement(self._cover_pattern(tree.children[0]), span=span)
        if dt == "array_literal":
            return ArrayPattern(tuple(self._cover_pattern(e) for e in _kids(tree)), span=span)
        if dt == "object_literal":
            members: List[Node] = []
            for m in _kids(tree):
                mspan = self._span(m)
                if m.data == "object_prop":
                    key_tree, value = m.children
                    key, computed = self._prop_key(key_tree)
                    members.append(PatternProperty(key, self._cover_pattern(value), computed=computed, span=mspan))
                elif m.data == "object_shorthand":
                    ident = self._identifier(m.children[0])
                    members.append(PatternProperty(ident, ident, shorthand=True, span=mspan))
                elif m.data == "object_cover_init":
                    name, default = m.children
                    ident = self._identifier(name)
                    value = AssignmentPattern(ident, self._expr(default), span=mspan)
                    members.append(PatternProperty(ident, value, shorthand=True, span=mspan))
                elif m.data == "spread":
                    members.append(RestElement(self._cover_pattern(m.children[0]), span=mspan))
                else:
                    raise ValueError("methods are not allowed in a destructuring pattern")
            return ObjectPattern(tuple(members), span=span)
        return self._expr(tree)
