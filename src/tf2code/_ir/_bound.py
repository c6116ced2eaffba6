"""Bound expression trees: expressions whose references point at nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ._nodes import LocalNode, ModuleNode, Node, ResourceNode, VariableNode


class BoundNode:
    pass


class BoundStep:
    pass


@dataclass(slots=True, frozen=True)
class BoundAttr(BoundStep):
    name: str


@dataclass(slots=True, frozen=True)
class BoundIndex(BoundStep):
    key: BoundNode


@dataclass(slots=True, frozen=True)
class BoundSplat(BoundStep):
    pass


@dataclass(slots=True, frozen=True)
class BoundLiteral(BoundNode):
    value: str | int | float | bool | None


@dataclass(slots=True, frozen=True)
class BoundList(BoundNode):
    items: tuple[BoundNode, ...] = ()


@dataclass(slots=True, frozen=True)
class BoundMap(BoundNode):
    items: dict[str, BoundNode] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class BoundTemplate(BoundNode):
    """String interpolation. Literal text parts are `BoundLiteral` strings."""

    parts: tuple[BoundNode, ...]


@dataclass(slots=True, frozen=True)
class BoundVariableAccess(BoundNode):
    variable: VariableNode
    steps: tuple[BoundStep, ...] = ()


@dataclass(slots=True, frozen=True)
class BoundLocalAccess(BoundNode):
    local: LocalNode
    steps: tuple[BoundStep, ...] = ()


@dataclass(slots=True, frozen=True)
class BoundResourceAccess(BoundNode):
    resource: ResourceNode
    steps: tuple[BoundStep, ...] = ()


@dataclass(slots=True, frozen=True)
class BoundModuleAccess(BoundNode):
    module: ModuleNode
    output: str
    steps: tuple[BoundStep, ...] = ()


@dataclass(slots=True, frozen=True)
class BoundMetaAccess(BoundNode):
    """Access to a built-in object such as ``count.index``, ``each.value`` or ``path.module``."""

    root: str
    steps: tuple[BoundStep, ...] = ()


@dataclass(slots=True, frozen=True)
class BoundRelativeAccess(BoundNode):
    source: BoundNode
    steps: tuple[BoundStep, ...]


@dataclass(slots=True, frozen=True)
class BoundCall(BoundNode):
    name: str
    args: tuple[BoundNode, ...] = ()
    expand_final: bool = False


@dataclass(slots=True, frozen=True)
class BoundUnary(BoundNode):
    op: str
    operand: BoundNode


@dataclass(slots=True, frozen=True)
class BoundBinary(BoundNode):
    op: str
    left: BoundNode
    right: BoundNode


@dataclass(slots=True, frozen=True)
class BoundConditional(BoundNode):
    condition: BoundNode
    true_result: BoundNode
    false_result: BoundNode


def _children(node: BoundNode) -> Iterator[BoundNode]:  # noqa: C901
    match node:
        case BoundList(items) | BoundTemplate(items) | BoundCall(_, items, _):
            yield from items
        case BoundMap(items):
            yield from items.values()
        case (
            BoundVariableAccess(_, steps)
            | BoundLocalAccess(_, steps)
            | BoundResourceAccess(_, steps)
            | BoundMetaAccess(_, steps)
            | BoundModuleAccess(_, _, steps)
        ):
            yield from (s.key for s in steps if isinstance(s, BoundIndex))
        case BoundRelativeAccess(source, steps):
            yield source
            yield from (s.key for s in steps if isinstance(s, BoundIndex))
        case BoundUnary(_, operand):
            yield operand
        case BoundBinary(_, left, right):
            yield left
            yield right
        case BoundConditional(condition, true_result, false_result):
            yield condition
            yield true_result
            yield false_result


def walk(node: BoundNode) -> Iterator[BoundNode]:
    """Yield ``node`` and every bound node below it, depth first."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(_children(current))))


def referenced_nodes(node: BoundNode) -> list[Node]:
    """Nodes referenced anywhere inside ``node``, in first-reference order."""
    seen: dict[int, Node] = {}
    for child in walk(node):
        match child:
            case (
                BoundVariableAccess(target)
                | BoundLocalAccess(target)
                | BoundResourceAccess(target)
                | BoundModuleAccess(target)
            ):
                seen.setdefault(id(target), target)
    return list(seen.values())


def is_literal_tree(node: BoundNode) -> bool:
    """Whether ``node`` contains nothing but literals, lists and maps."""
    return all(isinstance(child, BoundLiteral | BoundList | BoundMap) for child in walk(node))
