"""HCL template and expression syntax.

Strings coming out of the HCL parser may contain ``${...}`` interpolations.
This package turns them into a small syntax tree that the binder resolves
against the declarations of a module.
"""

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
from ._parser import ExpressionSyntaxError, parse_expression, parse_template

__all__ = [
    "AttrStep",
    "BinaryExpr",
    "CallExpr",
    "ConditionalExpr",
    "Expr",
    "ExpressionSyntaxError",
    "IndexStep",
    "LiteralExpr",
    "ObjectExpr",
    "RelativeTraversalExpr",
    "SplatStep",
    "Step",
    "TemplateExpr",
    "TraversalExpr",
    "TupleExpr",
    "UnaryExpr",
    "parse_expression",
    "parse_template",
]
