"""IR nodes: one per declaration of a module."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import TYPE_CHECKING, ClassVar

from tf2code._module import Position

from ._schema import SchemaInfo, Schemas

if TYPE_CHECKING:
    from ._bound import BoundNode
    from ._schema import ProviderInfo, ResourceInfo


class NodeKind(StrEnum):
    """The kind of a node, in the order graphs enumerate them."""

    MODULE = auto()
    PROVIDER = auto()
    RESOURCE = auto()
    OUTPUT = auto()
    LOCAL = auto()
    VARIABLE = auto()


@dataclass(slots=True)
class Comments:
    """Comments attached to a node. ``leading`` lines are emitted above it, in order."""

    leading: list[str] = field(default_factory=list)
    trailing: list[str] = field(default_factory=list)


@dataclass(eq=False, kw_only=True, slots=True)
class Node:
    """Fields shared by every node.

    Attributes:
        name: The declared name.
        location: Where the node was declared. Invalid for synthesized nodes.
        comments: Comments recovered from the source, if any.
        deps: Nodes this node refers to, in first-reference order.

    """

    kind: ClassVar[NodeKind]

    name: str
    location: Position = field(default_factory=Position.invalid)
    comments: Comments | None = None
    deps: list[Node] = field(default_factory=list)


@dataclass(eq=False, kw_only=True, slots=True)
class ModuleNode(Node):
    kind: ClassVar[NodeKind] = NodeKind.MODULE

    source: str = ""
    tree_path: tuple[str, ...] = ()
    properties: dict[str, BoundNode] = field(default_factory=dict)


@dataclass(eq=False, kw_only=True, slots=True)
class ProviderNode(Node):
    """A provider configuration.

    Placeholder providers stand in for providers that are neither declared nor
    known to the schema source; they carry no info. Implicit providers are
    known to the schema source but have no ``provider`` block; they are not
    part of any graph.
    """

    kind: ClassVar[NodeKind] = NodeKind.PROVIDER

    provider_name: str
    alias: str | None = None
    properties: dict[str, BoundNode] = field(default_factory=dict)
    info: ProviderInfo | None = None
    is_placeholder: bool = False
    is_implicit: bool = False


@dataclass(eq=False, kw_only=True, slots=True)
class ResourceNode(Node):
    kind: ClassVar[NodeKind] = NodeKind.RESOURCE

    type: str
    is_data_source: bool = False
    provider: ProviderNode | None = None
    properties: dict[str, BoundNode] = field(default_factory=dict)
    count: BoundNode | None = None
    for_each: BoundNode | None = None
    explicit_deps: list[Node] = field(default_factory=list)
    ignore_changes: list[str] = field(default_factory=list)
    info: ResourceInfo | None = None

    @property
    def address(self) -> str:
        address = f"{self.type}.{self.name}"
        return f"data.{address}" if self.is_data_source else address

    def schemas(self) -> Schemas:
        """Schema lookup rooted at this resource's type."""
        if self.info is None:
            return Schemas()
        return Schemas(SchemaInfo(fields=self.info.fields))


@dataclass(eq=False, kw_only=True, slots=True)
class OutputNode(Node):
    kind: ClassVar[NodeKind] = NodeKind.OUTPUT

    value: BoundNode | None = None
    sensitive: bool = False
    description: str | None = None


@dataclass(eq=False, kw_only=True, slots=True)
class LocalNode(Node):
    kind: ClassVar[NodeKind] = NodeKind.LOCAL

    value: BoundNode | None = None


@dataclass(eq=False, kw_only=True, slots=True)
class VariableNode(Node):
    kind: ClassVar[NodeKind] = NodeKind.VARIABLE

    default: BoundNode | None = None
    description: str | None = None
    type_hint: str | None = None
    is_placeholder: bool = False
