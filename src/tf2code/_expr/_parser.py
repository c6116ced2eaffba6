"""Parser for HCL template strings and expressions."""

import functools
import re
from typing import NoReturn

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken, VisitError

from ._ast import (
    AttrStep,
    BinaryExpr,
    CallExpr,
    ConditionalExpr,
    Expr,
    IndexStep,
    LiteralExpr,
    ObjectExpr,
    RelativeTraversalExpr,
    SplatStep,
    Step,
    TemplateExpr,
    TraversalExpr,
    TupleExpr,
    UnaryExpr,
)


class ExpressionSyntaxError(ValueError):
    """Raised when a template or expression cannot be parsed."""


_HCL_ESCAPE_RE = re.compile(r"\\(u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|.)", re.DOTALL)
# Python string reprs also use \x escapes.
_REPR_ESCAPE_RE = re.compile(r"\\(x[0-9A-Fa-f]{2}|u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|.)", re.DOTALL)
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "'": "'", "\\": "\\"}
_ESCAPED_TEXT = {"ESCAPED_INTERPOLATION": "${", "ESCAPED_DIRECTIVE": "%{"}
_KEYWORDS: dict[str, bool | None] = {
    "true": True,
    "false": False,
    "null": None,
    "True": True,
    "False": False,
    "None": None,
}


def _decode_escape(match: re.Match[str]) -> str:
    code = match.group(1)
    if len(code) > 1:
        return chr(int(code[1:], 16))
    return _ESCAPES.get(code, code)


def _unescape(text: str, pattern: re.Pattern[str] = _HCL_ESCAPE_RE) -> str:
    return pattern.sub(_decode_escape, text)


def _join_template(parts: tuple[Expr, ...]) -> Expr:
    """Merge adjacent literal text; a lone part stands for the whole template."""
    merged: list[Expr] = []
    for part in parts:
        previous = merged[-1] if merged else None
        if (
            isinstance(previous, LiteralExpr)
            and isinstance(previous.value, str)
            and isinstance(part, LiteralExpr)
            and isinstance(part.value, str)
        ):
            merged[-1] = LiteralExpr(previous.value + part.value)
        else:
            merged.append(part)
    if not merged:
        return LiteralExpr("")
    if len(merged) == 1:
        return merged[0]
    return TemplateExpr(tuple(merged))


def _extend(base: Expr, *steps: Step) -> Expr:
    match base:
        case TraversalExpr(root, existing):
            return TraversalExpr(root, existing + steps)
        case RelativeTraversalExpr(source, existing):
            return RelativeTraversalExpr(source, existing + steps)
    return RelativeTraversalExpr(base, steps)


@v_args(inline=True)
class _ExprBuilder(Transformer):
    """Turns a parse tree into `Expr` nodes."""

    def __init__(self, source: str, *, escaped: bool) -> None:
        super().__init__()
        self._source = source
        self._escaped = escaped

    def template(self, *parts: Expr) -> Expr:
        return _join_template(parts)

    def dq_string(self, *parts: Expr) -> Expr:
        return _join_template(parts)

    def sq_string(self, *parts: Expr) -> Expr:
        return _join_template(parts)

    def text(self, token: Token) -> LiteralExpr:
        if token.type in _ESCAPED_TEXT:
            return LiteralExpr(_ESCAPED_TEXT[token.type])
        return LiteralExpr(_unescape(token) if self._escaped else str(token))

    def dq_text(self, token: Token) -> LiteralExpr:
        return LiteralExpr(_ESCAPED_TEXT.get(token.type) or _unescape(token))

    def sq_text(self, token: Token) -> LiteralExpr:
        # A Python repr of text that still carries its HCL escapes.
        return LiteralExpr(_ESCAPED_TEXT.get(token.type) or _unescape(_unescape(token, _REPR_ESCAPE_RE)))

    def interpolation(self, expr: Expr) -> Expr:
        return expr

    def directive(self, _body: Token) -> NoReturn:
        msg = f"Template directives are not supported: {self._source!r}"
        raise ExpressionSyntaxError(msg)

    def number(self, token: Token) -> LiteralExpr:
        is_float = any(c in token for c in ".eE")
        return LiteralExpr(float(token) if is_float else int(token))

    def variable(self, token: Token) -> Expr:
        if token in _KEYWORDS:
            return LiteralExpr(_KEYWORDS[token])
        return TraversalExpr(str(token))

    def get_attr(self, base: Expr, name: Token) -> Expr:
        return _extend(base, AttrStep(str(name)))

    def legacy_index(self, base: Expr, number: Token) -> Expr:
        # "a.0.1" lexes the trailing "0.1" as a single number.
        parts = number.split(".")
        if not all(p.isdigit() for p in parts):
            msg = f"Invalid expression {self._source!r}: bad index {str(number)!r}"
            raise ExpressionSyntaxError(msg)
        return _extend(base, *(IndexStep(LiteralExpr(int(p))) for p in parts))

    def index(self, base: Expr, key: Expr) -> Expr:
        return _extend(base, IndexStep(key))

    def splat(self, base: Expr, _token: Token) -> Expr:
        return _extend(base, SplatStep())

    def unary_op(self, op: Token, operand: Expr) -> UnaryExpr:
        return UnaryExpr(str(op), operand)

    def binary(self, left: Expr, op: Token, right: Expr) -> BinaryExpr:
        return BinaryExpr(str(op), left, right)

    def conditional(self, condition: Expr, true_result: Expr, false_result: Expr) -> ConditionalExpr:
        return ConditionalExpr(condition, true_result, false_result)

    def call(self, name: Token, arguments: tuple[tuple[Expr, ...], bool] = ((), False)) -> CallExpr:
        args, expand_final = arguments
        return CallExpr(str(name), args, expand_final)

    def arguments(self, *items: Expr | Token) -> tuple[tuple[Expr, ...], bool]:
        expand_final = bool(items) and isinstance(items[-1], Token) and items[-1].type == "ELLIPSIS"
        return tuple(item for item in items if not isinstance(item, Token)), expand_final

    def tuple_expr(self, *items: Expr) -> TupleExpr:
        return TupleExpr(items)

    def object_expr(self, *items: tuple[Expr, Expr]) -> ObjectExpr:
        return ObjectExpr(items)

    def object_item(self, key: Expr, value: Expr) -> tuple[Expr, Expr]:
        if isinstance(key, TraversalExpr) and not key.steps:
            # Bare identifiers are literal keys.
            key = LiteralExpr(key.root)
        return key, value

    def for_tuple(self, *_children: object) -> NoReturn:
        msg = f"For expressions are not supported: {self._source!r}"
        raise ExpressionSyntaxError(msg)

    def for_object(self, *_children: object) -> NoReturn:
        msg = f"For expressions are not supported: {self._source!r}"
        raise ExpressionSyntaxError(msg)


@functools.cache
def _parser() -> Lark:
    return Lark.open("_grammar.lark", rel_to=__file__, parser="lalr", start=["template", "expression"])


def _describe(error: UnexpectedInput) -> str:
    match error:
        case UnexpectedCharacters(char=char, column=column):
            return f"unexpected character {char!r} at column {column}"
        case UnexpectedToken(token=token, column=column) if token.type != "$END":
            return f"unexpected {str(token)!r} at column {column}"
    return "unexpected end of expression"


def _parse(source: str, start: str, *, escaped: bool) -> Expr:
    try:
        tree = _parser().parse(source, start=start)
    except UnexpectedInput as e:
        msg = f"Invalid expression {source!r}: {_describe(e)}"
        raise ExpressionSyntaxError(msg) from e
    try:
        return _ExprBuilder(source, escaped=escaped).transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, ExpressionSyntaxError):
            raise e.orig_exc from None
        raise


def parse_template(text: str, *, escaped: bool = False) -> Expr:
    """Parse a string that may contain ``${...}`` interpolations.

    A string without interpolations becomes a `LiteralExpr`. A string that is a
    single interpolation and nothing else unwraps to that interpolation's
    expression, as HCL does. Anything else becomes a `TemplateExpr`.

    Args:
        text: The raw string value.
        escaped: Whether backslash escapes in the literal text must be decoded
            (true for string literals nested inside an expression).

    Returns:
        The parsed expression.

    Raises:
        ExpressionSyntaxError: If an interpolation is malformed or a template
            directive (``%{...}``) is used.

    """
    return _parse(text, "template", escaped=escaped)


def parse_expression(source: str) -> Expr:
    """Parse the body of a single ``${...}`` interpolation.

    Raises:
        ExpressionSyntaxError: If the expression is malformed or uses an
            unsupported construct.

    """
    if not source.strip():
        msg = "Empty interpolation"
        raise ExpressionSyntaxError(msg)
    return _parse(source, "expression", escaped=True)
