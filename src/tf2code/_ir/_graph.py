"""The per-module graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ._nodes import LocalNode, ModuleNode, Node, OutputNode, ProviderNode, ResourceNode, VariableNode


@dataclass(eq=False, slots=True)
class Graph:
    """The IR of one module instance.

    Each collection maps a node key to its node, in declaration order. Resources
    are keyed by address (``aws_instance.web``, ``data.aws_ami.ubuntu``), every
    other kind by name.

    Attributes:
        name: The module call name, or ``"root"`` for the root module.
        path: Module call names from the root module to this one.
        is_root: Whether this graph is the root module's graph.

    """

    name: str
    path: tuple[str, ...] = ()
    is_root: bool = True
    modules: dict[str, ModuleNode] = field(default_factory=dict)
    providers: dict[str, ProviderNode] = field(default_factory=dict)
    resources: dict[str, ResourceNode] = field(default_factory=dict)
    outputs: dict[str, OutputNode] = field(default_factory=dict)
    locals: dict[str, LocalNode] = field(default_factory=dict)
    variables: dict[str, VariableNode] = field(default_factory=dict)

    def nodes(self) -> Iterator[Node]:
        """All nodes: modules, providers, resources, outputs, locals, then variables."""
        yield from self.modules.values()
        yield from self.providers.values()
        yield from self.resources.values()
        yield from self.outputs.values()
        yield from self.locals.values()
        yield from self.variables.values()

    def __len__(self) -> int:
        return (
            len(self.modules)
            + len(self.providers)
            + len(self.resources)
            + len(self.outputs)
            + len(self.locals)
            + len(self.variables)
        )

    def __contains__(self, node: Node) -> bool:
        return any(n is node for n in self.nodes())
