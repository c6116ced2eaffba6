"""Syntax tree for HCL expressions, before any name resolution."""

from dataclasses import dataclass


class Expr:
    pass


class Step:
    pass


@dataclass(slots=True, frozen=True)
class AttrStep(Step):
    name: str


@dataclass(slots=True, frozen=True)
class IndexStep(Step):
    key: Expr


@dataclass(slots=True, frozen=True)
class SplatStep(Step):
    pass


@dataclass(slots=True, frozen=True)
class LiteralExpr(Expr):
    value: str | int | float | bool | None


@dataclass(slots=True, frozen=True)
class TemplateExpr(Expr):
    """String interpolation; literal text appears as `LiteralExpr` parts."""

    parts: tuple[Expr, ...]


@dataclass(slots=True, frozen=True)
class TraversalExpr(Expr):
    """A name followed by attribute, index and splat steps (e.g. ``aws_instance.web[0].id``)."""

    root: str
    steps: tuple[Step, ...] = ()


@dataclass(slots=True, frozen=True)
class RelativeTraversalExpr(Expr):
    """Steps applied to the result of an arbitrary expression (e.g. ``split(",", x)[0]``)."""

    source: Expr
    steps: tuple[Step, ...]


@dataclass(slots=True, frozen=True)
class CallExpr(Expr):
    name: str
    args: tuple[Expr, ...] = ()
    expand_final: bool = False


@dataclass(slots=True, frozen=True)
class TupleExpr(Expr):
    items: tuple[Expr, ...] = ()


@dataclass(slots=True, frozen=True)
class ObjectExpr(Expr):
    items: tuple[tuple[Expr, Expr], ...] = ()


@dataclass(slots=True, frozen=True)
class UnaryExpr(Expr):
    op: str
    operand: Expr


@dataclass(slots=True, frozen=True)
class BinaryExpr(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass(slots=True, frozen=True)
class ConditionalExpr(Expr):
    condition: Expr
    true_result: Expr
    false_result: Expr
