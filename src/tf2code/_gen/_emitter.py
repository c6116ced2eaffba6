"""Shared machinery of the program generators."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager, nullcontext
from typing import TYPE_CHECKING, ClassVar, Protocol

from tf2code._errors import GenerationError
from tf2code._graph import CycleError, topological_sort
from tf2code._ir import (
    BoundModuleAccess,
    BoundResourceAccess,
    BoundVariableAccess,
    LocalNode,
    ModuleNode,
    Node,
    OutputNode,
    ProviderNode,
    ResourceNode,
    VariableNode,
    dependencies,
    walk,
)

from ._naming import provider_package

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from typing import TextIO

    from tf2code._ir import BoundNode, Graph

logger = logging.getLogger(__name__)


class Generator(Protocol):
    """A code generator backend. ``generate`` is called once with the whole forest."""

    def generate(self, forest: Sequence[Graph]) -> None: ...


def ordered_nodes(graph: Graph) -> list[Node]:
    """Nodes of ``graph`` other than outputs, dependencies first.

    Independent nodes keep the order variables, providers, locals, modules,
    resources, and declaration order within each kind.
    """
    nodes: list[Node] = [
        *graph.variables.values(),
        *graph.providers.values(),
        *graph.locals.values(),
        *graph.modules.values(),
        *graph.resources.values(),
    ]
    successors: dict[Node, list[Node]] = {node: [] for node in nodes}
    for node in nodes:
        for dep in dependencies(node):
            if dep in successors:
                successors[dep].append(node)
    try:
        return topological_sort(successors)
    except CycleError as e:
        msg = f"module {graph.name!r} has a dependency cycle"
        raise GenerationError(msg) from e


def bound_values(graph: Graph) -> Iterator[BoundNode]:
    """Every bound expression held by the nodes of ``graph``."""
    for node in graph.nodes():
        match node:
            case ModuleNode(properties=properties) | ProviderNode(properties=properties):
                yield from properties.values()
            case ResourceNode():
                yield from node.properties.values()
                if node.count is not None:
                    yield node.count
                if node.for_each is not None:
                    yield node.for_each
            case VariableNode(default=value) | LocalNode(value=value) | OutputNode(value=value):
                if value is not None:
                    yield value


def references_outputs(node: BoundNode, *, data_sources: bool = True) -> bool:
    """Whether ``node`` reads a value that is only known once resources exist."""
    for child in walk(node):
        match child:
            case BoundModuleAccess():
                return True
            case BoundResourceAccess(resource=resource) if data_sources or not resource.is_data_source:
                return True
    return False


def placeholder_variables(graph: Graph) -> list[VariableNode]:
    """Placeholder variables referenced from ``graph``, once per name, in first-reference order."""
    found: dict[str, VariableNode] = {}
    for value in bound_values(graph):
        for child in walk(value):
            if isinstance(child, BoundVariableAccess) and child.variable.is_placeholder:
                found.setdefault(child.variable.name, child.variable)
    return list(found.values())


class ProgramEmitter(ABC):
    """Walks a forest and renders it as a single program.

    Child module graphs become functions and the root graph becomes the main
    program. Subclasses render each kind of node and every bound expression.
    The rendered program is written to the writer in one piece, at the end.
    """

    indent_unit: ClassVar[str] = "    "
    comment_prefix: ClassVar[str]
    reserved_words: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, project_name: str, writer: TextIO) -> None:
        self.project_name = project_name
        self._writer = writer
        self._lines: list[str] = []
        self._level = 0
        self._names: dict[int, str] = {}
        self._used_names: set[str] = set()
        self._reserved: set[str] = set(self.reserved_words)
        self.graph: Graph | None = None
        self._module_functions: dict[tuple[str, ...], str] = {}

    # -------------------------------------------------------------------------
    # Output helpers
    # -------------------------------------------------------------------------

    def line(self, text: str = "") -> None:
        self._lines.append(self.indent_unit * self._level + text if text else "")

    @contextmanager
    def indented(self) -> Iterator[None]:
        self._level += 1
        try:
            yield
        finally:
            self._level -= 1

    @property
    def in_root_module(self) -> bool:
        return self.graph is None or self.graph.is_root

    def is_declared(self, node: Node) -> bool:
        """Whether ``node`` belongs to the module being rendered, rather than being synthesized."""
        return self.graph is not None and node in self.graph

    def emit_comments(self, node: Node) -> None:
        if node.comments is None:
            return
        for text in (*node.comments.leading, *node.comments.trailing):
            self.line(f"{self.comment_prefix}{text}")

    # -------------------------------------------------------------------------
    # Naming
    # -------------------------------------------------------------------------

    @abstractmethod
    def identifier(self, name: str) -> str:
        """Convert a declared name to an identifier of the target language."""

    def reserve(self, *names: str) -> None:
        """Keep generated identifiers from shadowing ``names``."""
        self._reserved.update(names)

    def name_of(self, node: Node) -> str:
        """The identifier a node is bound to in the current module."""
        if id(node) not in self._names:
            self._names[id(node)] = self._fresh_name(node)
        return self._names[id(node)]

    def _fresh_name(self, node: Node) -> str:
        base = self.identifier(node.name)
        candidate = base
        if candidate in self._used_names or candidate in self._reserved:
            qualifier = node.type.split("_", 1)[-1] if isinstance(node, ResourceNode) else str(node.kind)
            candidate = base = self.identifier(f"{node.name}_{qualifier}")
        suffix = 2
        while candidate in self._used_names or candidate in self._reserved:
            candidate = f"{base}{suffix}"
            suffix += 1
        self._used_names.add(candidate)
        return candidate

    def module_function(self, path: tuple[str, ...]) -> str:
        try:
            return self._module_functions[path]
        except KeyError as e:
            msg = f"module {'.'.join(path)!r} was not generated before its caller"
            raise GenerationError(msg) from e

    @abstractmethod
    def module_function_name(self, graph: Graph) -> str:
        """Name of the function a child module graph is rendered as."""

    # -------------------------------------------------------------------------
    # Rendering hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def emit_preamble(self, forest: Sequence[Graph], packages: list[str]) -> None: ...

    @abstractmethod
    def begin_module(self, graph: Graph) -> None: ...

    @abstractmethod
    def emit_outputs(self, graph: Graph) -> None:
        """Export the root module's outputs, or return a child module's."""

    def end_module(self, graph: Graph) -> None:
        pass

    @abstractmethod
    def emit_variable(self, graph: Graph, node: VariableNode) -> None: ...

    @abstractmethod
    def emit_provider(self, node: ProviderNode) -> None: ...

    @abstractmethod
    def emit_local(self, node: LocalNode) -> None: ...

    @abstractmethod
    def emit_module_call(self, node: ModuleNode) -> None: ...

    @abstractmethod
    def emit_resource(self, node: ResourceNode) -> None: ...

    @abstractmethod
    def expr(self, node: BoundNode) -> str:
        """Render a bound expression."""

    # -------------------------------------------------------------------------
    # Driver
    # -------------------------------------------------------------------------

    def generate(self, forest: Sequence[Graph]) -> None:
        """Render ``forest`` (children before parents) and write the program.

        Raises:
            GenerationError: If the forest is empty, contains something the
                target cannot express, or the program cannot be written.

        """
        if not forest:
            msg = "nothing to generate: the forest is empty"
            raise GenerationError(msg)

        packages = sorted(
            {provider_package(r) for g in forest for r in g.resources.values()}
            | {p.provider_name for g in forest for p in g.providers.values()},
        )
        self.reserve(*packages)
        self._lines = []
        for graph in forest:
            self._emit_graph(graph)

        # The preamble goes last so it can import whatever the body ended up using.
        body, self._lines = self._lines, []
        self.emit_preamble(forest, packages)
        self._lines.extend(body)

        text = "\n".join(self._lines).rstrip("\n") + "\n"
        try:
            self._writer.write(text)
            self._writer.flush()
        except OSError as e:
            msg = f"could not write generated code: {e}"
            raise GenerationError(msg) from e
        logger.debug(f"Generated {len(self._lines)} lines for {len(forest)} module(s)")

    def _emit_graph(self, graph: Graph) -> None:
        self.graph = graph
        self._names = {}
        self._used_names = set()
        if not graph.is_root:
            self._module_functions[graph.path] = self.module_function_name(graph)
            self.reserve(self._module_functions[graph.path])

        self.line()
        self.begin_module(graph)
        with nullcontext() if graph.is_root else self.indented():
            for variable in placeholder_variables(graph):
                self.emit_variable(graph, variable)
            for node in ordered_nodes(graph):
                self.emit_comments(node)
                match node:
                    case VariableNode():
                        self.emit_variable(graph, node)
                    case ProviderNode():
                        self.emit_provider(node)
                    case LocalNode():
                        self.emit_local(node)
                    case ModuleNode():
                        self.emit_module_call(node)
                    case ResourceNode():
                        self.emit_resource(node)
            self.emit_outputs(graph)
        self.end_module(graph)
