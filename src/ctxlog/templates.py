"""
Context templates.

A message like ``"%name% is %age + 1% next year (100%%)"`` is rendered
against a Context: every ``%expr%`` span is evaluated against the context's
fields and replaced by its text, ``%%`` becomes a literal ``%``.

Expressions are parsed with ``ast`` and walked by a small whitelist
interpreter. They can read context fields, follow dotted paths and
subscripts, and do arithmetic and comparisons. They cannot call anything,
see builtins, touch names starting with an underscore, or reach into
modules, functions, classes or interpreter internals (frames, code).
Results are capped in size so a single placeholder cannot stall a write.
"""

from __future__ import annotations

import ast
import inspect
import operator
import re
from collections.abc import Mapping, Sequence, Sized
from typing import Any, Iterator

# "%%" or "%<expr>%", where <expr> is printable non-% text or runs of two
# or more "%" (escaped modulo operators).
REX_PLACEHOLDER = re.compile(r"%%|%(?:[\s\x21-\x24\x26-\u01ff]|%{2,})+%")

# Generic formatter directives. "%d%" is "%d" written in closed form.
FORMAT_DIRECTIVES = frozenset("sdifjoOc")

MAX_EXPONENT = 1024
MAX_INT_BITS = 4096
MAX_SEQUENCE_LENGTH = 100_000

# Interpreter internals hanging off generators, coroutines and tracebacks
_BLOCKED_ATTRIBUTES = frozenset({
    "gi_frame", "gi_code", "gi_yieldfrom",
    "cr_frame", "cr_code", "cr_await",
    "ag_frame", "ag_code", "ag_await",
    "f_globals", "f_locals", "f_builtins", "f_back", "f_code",
    "tb_frame", "tb_next",
    "mro",
})


class TemplateError(ValueError):
    """A placeholder expression failed to parse or evaluate."""

    def __init__(self, expr: str, reason: str):
        super().__init__(f"Cannot evaluate '%{expr}%': {reason}")
        self.expr = expr
        self.reason = reason


class _Rejected(Exception):
    """Raised inside the evaluator; converted to TemplateError at the boundary."""


class Context(Mapping):
    """
    Read-only bag of fields that placeholders are evaluated against.

    Passing a Context as the first argument of a logger call is what marks
    the call as templated.
    """

    __slots__ = ("_fields",)

    def __init__(self, data: Any = None, **fields: Any):
        object.__setattr__(self, "_fields", {**_own_fields(data), **fields})

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Context is read-only")

    def __repr__(self) -> str:
        return f"Context({self._fields!r})"


def contextualize(data: Any = None, **fields: Any) -> Context:
    """Wrap `data` (a mapping or any object with attributes) as a Context."""
    return Context(data, **fields)


def _own_fields(data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return dict(data)
    try:
        return dict(vars(data))
    except TypeError:
        raise TypeError(
            f"Cannot build a context from {type(data).__name__}; "
            f"expected a mapping or an object with attributes"
        )


# ── Rendering ─────────────────────────────────────────────────────

def render_template(context: Mapping, message: str, literal_percent: str = "%") -> str:
    """
    Replace every placeholder in `message`, left to right, single pass.

    `literal_percent` is what a literal "%" becomes, both for the "%%"
    escape and inside evaluated values. The write path passes "%%" so the
    generic formatter collapses it exactly once.
    """

    def substitute(match: re.Match) -> str:
        span = match.group(0)
        if span == "%%":
            return literal_percent
        expr = span[1:-1]
        if expr in FORMAT_DIRECTIVES and expr not in context:
            return "%" + expr
        return render_value(context, expr).replace("%", literal_percent)

    return REX_PLACEHOLDER.sub(substitute, message)


def render_value(context: Mapping, expr: str) -> str:
    """Evaluate `expr` and convert the result to text."""
    value = evaluate_expression(context, expr)
    try:
        return str(value)
    except (LookupError, TypeError, ArithmeticError, ValueError) as exc:
        raise TemplateError(expr, f"{type(exc).__name__}: {exc}") from exc


def evaluate_expression(context: Mapping, expr: str) -> Any:
    """
    Evaluate one placeholder expression against `context`.

    Raises:
        TemplateError: syntax error, undefined name or path, disallowed
            construct, or a failing operation (e.g. division by zero).
    """
    source = expr.replace("%%", "%").strip()
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as exc:
        raise TemplateError(expr, f"syntax error ({exc.msg})") from exc
    try:
        return _Evaluator(context).visit(tree)
    except _Rejected as exc:
        raise TemplateError(expr, str(exc)) from exc
    except (LookupError, TypeError, ArithmeticError, ValueError) as exc:
        raise TemplateError(expr, f"{type(exc).__name__}: {exc}") from exc


_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
    ast.Invert: operator.invert,
}

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


class _Evaluator(ast.NodeVisitor):
    """Whitelist interpreter over a parsed expression. Unknown nodes are errors."""

    def __init__(self, context: Mapping):
        self.context = context

    def generic_visit(self, node: ast.AST) -> Any:
        raise _Rejected(f"{type(node).__name__} is not allowed in templates")

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        try:
            return self.context[node.id]
        except KeyError:
            raise _Rejected(f"'{node.id}' is not defined")

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        return _get_field(self.visit(node.value), node.attr, ast.unparse(node))

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        value = self.visit(node.value)
        if not isinstance(value, (Mapping, Sequence)):
            raise _Rejected(f"'{ast.unparse(node.value)}' is not subscriptable")
        key = self.visit(node.slice)
        if isinstance(key, str) and key.startswith("_"):
            raise _Rejected(f"access to '{key}' is not allowed")
        return value[key]

    def visit_Slice(self, node: ast.Slice) -> Any:
        return slice(
            self.visit(node.lower) if node.lower else None,
            self.visit(node.upper) if node.upper else None,
            self.visit(node.step) if node.step else None,
        )

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(elt) for elt in node.elts)

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(elt) for elt in node.elts]

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        op = _UNARY_OPS.get(type(node.op))
        if op is None:
            return self.generic_visit(node.op)
        return op(self.visit(node.operand))

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        op = _BIN_OPS.get(type(node.op))
        if op is None:
            return self.generic_visit(node.op)
        left = self.visit(node.left)
        right = self.visit(node.right)
        if op is operator.pow:
            _check_power(left, right)
        elif op is operator.mul:
            _check_product(left, right)
        elif op is operator.mod and isinstance(left, (str, bytes)):
            raise _Rejected("string formatting is not allowed in templates")
        return _check_size(op(left, right))

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        result = None
        for value_node in node.values:
            result = self.visit(value_node)
            if isinstance(node.op, ast.And) and not result:
                return result
            if isinstance(node.op, ast.Or) and result:
                return result
        return result

    def visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        for op_node, right_node in zip(node.ops, node.comparators):
            right = self.visit(right_node)
            if not _COMPARE_OPS[type(op_node)](left, right):
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_power(base: Any, exponent: Any) -> None:
    if isinstance(exponent, (int, float)) and abs(exponent) > MAX_EXPONENT:
        raise _Rejected(f"exponent {exponent} is too large")
    if _is_int(base) and _is_int(exponent) and exponent > 0:
        if base.bit_length() * exponent > MAX_INT_BITS:
            raise _Rejected(f"result of {base.bit_length()}-bit base ** {exponent} is too large")


def _check_product(left: Any, right: Any) -> None:
    if _is_int(left) and _is_int(right):
        if left.bit_length() + right.bit_length() > MAX_INT_BITS:
            raise _Rejected("product is too large")
        return
    for seq, count in ((left, right), (right, left)):
        if isinstance(seq, Sized) and _is_int(count):
            if len(seq) * count > MAX_SEQUENCE_LENGTH:
                raise _Rejected(f"repetition of {count} is too large")


def _check_size(result: Any) -> Any:
    if _is_int(result) and result.bit_length() > MAX_INT_BITS:
        raise _Rejected(f"integer result of {result.bit_length()} bits is too large")
    if isinstance(result, (str, bytes, list, tuple)) and len(result) > MAX_SEQUENCE_LENGTH:
        raise _Rejected(f"result of length {len(result)} is too large")
    return result


def _is_opaque(value: Any) -> bool:
    """Objects whose attributes lead out of the context's data."""
    return (
        inspect.ismodule(value)
        or inspect.isclass(value)
        or inspect.isroutine(value)
        or inspect.isgenerator(value)
        or inspect.iscoroutine(value)
        or inspect.isasyncgen(value)
        or inspect.isframe(value)
        or inspect.istraceback(value)
        or inspect.iscode(value)
    )


def _get_field(value: Any, name: str, path: str) -> Any:
    """Dotted access: mapping key first, then public attribute of plain data."""
    if name.startswith("_"):
        raise _Rejected(f"access to '{name}' is not allowed")
    if isinstance(value, Mapping):
        try:
            return value[name]
        except KeyError:
            raise _Rejected(f"'{path}' is not defined")
    if _is_opaque(value) or name in _BLOCKED_ATTRIBUTES:
        raise _Rejected(f"access to '{path}' is not allowed")
    try:
        return getattr(value, name)
    except AttributeError:
        raise _Rejected(f"'{path}' is not defined")
