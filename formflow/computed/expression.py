"""
Computed-field expression language.

A small arithmetic/string language parsed with the Python ast module and
checked against a node whitelist. Expressions are interpreted node by node;
nothing is ever passed to eval().

Supported:
- numbers, strings, true/false/null (also True/False/None), list literals
- + - * / // % and ^ or ** for powers
- == != < <= > >=, in / not in
- and / or / not, "a if cond else b"
- calls to functions in the evaluation context: round(total, 2)
- member access on mappings and plain objects: applicant.income, items[0].price,
  user.name (non-callable attributes only)

Usage:
    compiled = compile_expression("price * qty")
    compiled.evaluate({"price": 3, "qty": 3})  # 9
"""

from __future__ import annotations

import ast
import io
import operator
import tokenize
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..errors import ExpressionError, UnsafeExpressionError


ALLOWED_NODES = (
    ast.Expression,
    ast.BoolOp,
    ast.BinOp,
    ast.UnaryOp,
    ast.Compare,
    ast.IfExp,
    ast.Call,
    ast.Name,
    ast.Load,
    ast.Constant,
    ast.Attribute,
    ast.Subscript,
    ast.List,
    ast.Tuple,
    ast.And,
    ast.Or,
    ast.Not,
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.FloorDiv,
    ast.Mod,
    ast.Pow,
    ast.USub,
    ast.UAdd,
    ast.Eq,
    ast.NotEq,
    ast.Gt,
    ast.GtE,
    ast.Lt,
    ast.LtE,
    ast.In,
    ast.NotIn,
)

# Lower-case literals read naturally in schema files
LITERAL_NAMES = {"true": True, "false": False, "null": None}

# Guard against 9 ** 9 ** 9 style expressions
MAX_EXPONENT = 1000

_MISSING = object()

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Not: operator.not_,
}

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}


def _translate_caret(source: str) -> str:
    """Rewrite the "^" power operator to "**", leaving string literals alone."""
    if "^" not in source:
        return source
    try:
        tokens = list(tokenize.generate_tokens(io.StringIO(source).readline))
    except (tokenize.TokenError, IndentationError, SyntaxError) as e:
        raise ExpressionError(f"Invalid expression {source!r}: {e}") from e
    rewritten = [
        (tok.type, "**") if tok.type == tokenize.OP and tok.string == "^" else (tok.type, tok.string)
        for tok in tokens
    ]
    return tokenize.untokenize(rewritten)


def _validate(tree: ast.AST, source: str) -> None:
    for node in ast.walk(tree):
        if not isinstance(node, ALLOWED_NODES):
            raise UnsafeExpressionError(
                f"Unsupported syntax in expression {source!r}: {type(node).__name__}"
            )
        if isinstance(node, ast.Name) and node.id.startswith("_"):
            raise UnsafeExpressionError(
                f"Private names are not allowed in expression {source!r}: {node.id}"
            )
        if isinstance(node, ast.Attribute) and node.attr.startswith("_"):
            raise UnsafeExpressionError(
                f"Private attributes are not allowed in expression {source!r}: {node.attr}"
            )
        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name):
                raise UnsafeExpressionError(
                    f"Only named functions can be called in expression {source!r}"
                )
            if node.keywords:
                raise UnsafeExpressionError(
                    f"Keyword arguments are not supported in expression {source!r}"
                )


class _ReferencedNameVisitor(ast.NodeVisitor):
    def __init__(self) -> None:
        self.names: set[str] = set()
        self.calls: set[str] = set()

    def visit_Call(self, node: ast.Call) -> Any:
        if isinstance(node.func, ast.Name):
            self.calls.add(node.func.id)
        for arg in node.args:
            self.visit(arg)

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id not in LITERAL_NAMES:
            self.names.add(node.id)


@dataclass(frozen=True)
class CompiledExpression:
    """Validated expression tree, reusable across evaluations."""
    source: str
    tree: ast.Expression
    names: frozenset[str]
    calls: frozenset[str]

    def evaluate(self, context: Mapping[str, Any]) -> Any:
        """
        Evaluate against a name -> value mapping.

        Raises:
            ExpressionError: Unknown name/function or a non-callable call target
            ArithmeticError, TypeError, ValueError: From the operations themselves
        """
        return _Interpreter(context, self.source).visit(self.tree.body)

    def __repr__(self) -> str:
        return f"CompiledExpression({self.source!r})"


def compile_expression(source: str) -> CompiledExpression:
    """
    Parse and validate an expression.

    Raises:
        ExpressionError: Syntax error
        UnsafeExpressionError: Syntax outside the whitelist
    """
    if not isinstance(source, str) or not source.strip():
        raise ExpressionError("Expression must be a non-empty string")
    text = _translate_caret(source.strip())
    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression {source!r}: {e.msg}") from e
    _validate(tree, source)

    visitor = _ReferencedNameVisitor()
    visitor.visit(tree)
    return CompiledExpression(
        source=source,
        tree=tree,
        names=frozenset(visitor.names),
        calls=frozenset(visitor.calls),
    )


class _Interpreter:
    """Walks a validated tree. Only whitelisted node types reach here."""

    def __init__(self, context: Mapping[str, Any], source: str):
        self.context = context
        self.source = source

    def visit(self, node: ast.AST) -> Any:
        method = getattr(self, f"visit_{type(node).__name__}", None)
        if method is None:
            raise UnsafeExpressionError(
                f"Unsupported syntax in expression {self.source!r}: {type(node).__name__}"
            )
        return method(node)

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id in self.context:
            return self.context[node.id]
        if node.id in LITERAL_NAMES:
            return LITERAL_NAMES[node.id]
        raise ExpressionError(f"Undefined variable '{node.id}' in {self.source!r}")

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(elt) for elt in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return [self.visit(elt) for elt in node.elts]

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        value = self.visit(node.value)
        if isinstance(value, Mapping):
            return value.get(node.attr)
        if value is None:
            return None
        # Plain objects (e.g. a dataclass user context) expose data attributes;
        # underscore names were already rejected at compile time
        attribute = getattr(value, node.attr, _MISSING)
        if attribute is _MISSING or callable(attribute):
            raise ExpressionError(
                f"Cannot read '{node.attr}' of {type(value).__name__} in {self.source!r}"
            )
        return attribute

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        value = self.visit(node.value)
        key = self.visit(node.slice)
        if isinstance(value, Mapping):
            return value.get(key)
        if isinstance(value, (list, tuple, str)) and isinstance(key, int) and not isinstance(key, bool):
            return value[key] if -len(value) <= key < len(value) else None
        if value is None:
            return None
        raise ExpressionError(
            f"Cannot index {type(value).__name__} with {key!r} in {self.source!r}"
        )

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Pow) and isinstance(right, (int, float)) and abs(right) > MAX_EXPONENT:
            raise ExpressionError(f"Exponent {right} too large in {self.source!r}")
        return _BINARY_OPS[type(node.op)](left, right)

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        return _UNARY_OPS[type(node.op)](self.visit(node.operand))

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        # Python semantics: returns the deciding operand, short-circuits
        if isinstance(node.op, ast.And):
            result: Any = True
            for value in node.values:
                result = self.visit(value)
                if not result:
                    return result
            return result
        result = False
        for value in node.values:
            result = self.visit(value)
            if result:
                return result
        return result

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            if not _COMPARE_OPS[type(op)](left, right):
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)

    def visit_Call(self, node: ast.Call) -> Any:
        name = node.func.id
        fn = self.context.get(name)
        if fn is None:
            raise ExpressionError(f"Unknown function '{name}' in {self.source!r}")
        if not callable(fn):
            raise ExpressionError(f"'{name}' is not a function in {self.source!r}")
        return fn(*[self.visit(arg) for arg in node.args])


__all__ = [
    "ALLOWED_NODES",
    "LITERAL_NAMES",
    "MAX_EXPONENT",
    "CompiledExpression",
    "compile_expression",
]
