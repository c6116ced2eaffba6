"""Build the graph of one module: declare a node per declaration, then bind every expression."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from tf2code._errors import BindingError, CommentsError, MissingProviderError, MissingVariableError
from tf2code._expr import (
    AttrStep,
    BinaryExpr,
    CallExpr,
    ConditionalExpr,
    Expr,
    ExpressionSyntaxError,
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
    parse_template,
)
from tf2code._graph import CycleError, topological_sort

from ._bound import (
    BoundAttr,
    BoundBinary,
    BoundCall,
    BoundConditional,
    BoundIndex,
    BoundList,
    BoundLiteral,
    BoundLocalAccess,
    BoundMap,
    BoundMetaAccess,
    BoundModuleAccess,
    BoundNode,
    BoundRelativeAccess,
    BoundResourceAccess,
    BoundSplat,
    BoundStep,
    BoundTemplate,
    BoundUnary,
    BoundVariableAccess,
)
from ._comments import extract_comments
from ._graph import Graph
from ._nodes import (
    Comments,
    LocalNode,
    ModuleNode,
    Node,
    OutputNode,
    ProviderNode,
    ResourceNode,
    VariableNode,
)
from ._options import BuildOptions

if TYPE_CHECKING:
    from tf2code._module import Declaration, ModuleTree

    from ._schema import ProviderInfo

logger = logging.getLogger(__name__)

N = TypeVar("N", bound=Node)

META_ROOTS = frozenset({"count", "each", "path", "self", "terraform"})
RESOURCE_META_ARGUMENTS = frozenset(
    {"count", "for_each", "depends_on", "provider", "lifecycle", "connection", "provisioner"},
)
MODULE_META_ARGUMENTS = frozenset({"source", "version", "providers", "count", "for_each", "depends_on"})
PROVIDER_META_ARGUMENTS = frozenset({"alias", "version"})


def _strip_interpolation(value: str) -> str:
    """Turn ``"${aws.west}"`` (or a legacy quoted ``"aws.west"``) into ``"aws.west"``."""
    value = value.strip()
    if value.startswith("${") and value.endswith("}"):
        return value[2:-1].strip()
    return value


class _Binder:
    def __init__(self, tree: ModuleTree, options: BuildOptions, *, is_root: bool) -> None:
        self._tree = tree
        self._options = options
        self._logger = options.logger or logger
        self._graph = Graph(name=tree.name or "root", path=tree.path, is_root=is_root)
        self._implicit_providers: dict[str, ProviderNode] = {}
        self._placeholder_variables: dict[str, VariableNode] = {}
        self._provider_infos: dict[str, ProviderInfo | None] = {}
        self._context = ""
        self._deps: list[Node] = []

    def _fail(self, message: str, error: type[BindingError] = BindingError) -> BindingError:
        where = f"module {self._tree.display_path}"
        if self._context:
            where += f", {self._context}"
        return error(f"{where}: {message}")

    # -------------------------------------------------------------------------
    # Declaration
    # -------------------------------------------------------------------------

    def _comments(self, decl: Declaration) -> Comments | None:
        try:
            return extract_comments(decl)
        except CommentsError as e:
            if not self._options.allow_missing_comments:
                raise self._fail(str(e), CommentsError) from e
            self._logger.debug(f"Ignoring missing comments: {e}")
            return None

    def _provider_info(self, provider_name: str) -> ProviderInfo | None:
        if provider_name not in self._provider_infos:
            source = self._options.provider_info_source
            self._provider_infos[provider_name] = source.get_provider_info(provider_name) if source else None
        return self._provider_infos[provider_name]

    def _declare(self, group: dict[str, N], key: str, node: N) -> None:
        if key in group:
            msg = f"duplicate {node.kind} {key!r}"
            raise self._fail(msg)
        group[key] = node

    def _declare_all(self) -> None:
        config = self._tree.config
        graph = self._graph

        for decl in config.providers:
            alias = decl.body.get("alias") if isinstance(decl.body, dict) else None
            node = ProviderNode(
                name=decl.name,
                location=decl.position,
                comments=self._comments(decl),
                provider_name=decl.type,
                alias=alias if isinstance(alias, str) else None,
                info=self._provider_info(decl.type),
            )
            self._declare(graph.providers, decl.name, node)

        for decl in config.resources:
            resource = ResourceNode(
                name=decl.name,
                location=decl.position,
                comments=self._comments(decl),
                type=decl.type,
                is_data_source=decl.kind == "data",
            )
            self._declare(graph.resources, resource.address, resource)

        for decl in config.variables:
            body = decl.body if isinstance(decl.body, dict) else {}
            description = body.get("description")
            type_hint = body.get("type")
            variable = VariableNode(
                name=decl.name,
                location=decl.position,
                comments=self._comments(decl),
                description=description if isinstance(description, str) else None,
                type_hint=_strip_interpolation(type_hint) if isinstance(type_hint, str) else None,
            )
            self._declare(graph.variables, decl.name, variable)

        for decl in config.locals:
            local = LocalNode(name=decl.name, location=decl.position, comments=self._comments(decl))
            self._declare(graph.locals, decl.name, local)

        for decl in config.outputs:
            output = OutputNode(name=decl.name, location=decl.position, comments=self._comments(decl))
            self._declare(graph.outputs, decl.name, output)

        for decl in config.modules:
            module = ModuleNode(
                name=decl.name,
                location=decl.position,
                comments=self._comments(decl),
                source=decl.body.get("source", ""),
                tree_path=(*self._tree.path, decl.name),
            )
            self._declare(graph.modules, decl.name, module)

    # -------------------------------------------------------------------------
    # Binding
    # -------------------------------------------------------------------------

    def _begin(self, context: str) -> None:
        self._context = context
        self._deps = []

    def _add_dep(self, node: Node) -> None:
        if node in self._graph and not any(d is node for d in self._deps):
            self._deps.append(node)

    def _bind_value(self, value: Any) -> BoundNode:
        """Bind a raw value from the parser: a string, number, bool, None, list or dict."""
        if isinstance(value, str):
            try:
                expr = parse_template(value)
            except ExpressionSyntaxError as e:
                raise self._fail(str(e)) from e
            return self._bind_expr(expr)
        if isinstance(value, list):
            return BoundList(tuple(self._bind_value(item) for item in value))
        if isinstance(value, dict):
            return BoundMap({str(k): self._bind_value(v) for k, v in value.items()})
        if value is None or isinstance(value, bool | int | float):
            return BoundLiteral(value)
        msg = f"unsupported value of type {type(value).__name__}"
        raise self._fail(msg)

    def _bind_properties(self, body: Any, excluded: frozenset[str]) -> dict[str, BoundNode]:
        if not isinstance(body, dict):
            return {}
        return {key: self._bind_value(value) for key, value in body.items() if key not in excluded}

    def _bind_expr(self, expr: Expr) -> BoundNode:  # noqa: PLR0911
        match expr:
            case LiteralExpr(value):
                return BoundLiteral(value)
            case TemplateExpr(parts):
                return BoundTemplate(tuple(self._bind_expr(p) for p in parts))
            case TraversalExpr(root, steps):
                return self._bind_traversal(root, steps)
            case RelativeTraversalExpr(source, steps):
                return BoundRelativeAccess(self._bind_expr(source), self._bind_steps(steps))
            case CallExpr(name, args, expand_final):
                return BoundCall(name, tuple(self._bind_expr(a) for a in args), expand_final)
            case TupleExpr(items):
                return BoundList(tuple(self._bind_expr(item) for item in items))
            case ObjectExpr(items):
                return BoundMap({self._object_key(k): self._bind_expr(v) for k, v in items})
            case UnaryExpr(op, operand):
                return BoundUnary(op, self._bind_expr(operand))
            case BinaryExpr(op, left, right):
                return BoundBinary(op, self._bind_expr(left), self._bind_expr(right))
            case ConditionalExpr(condition, true_result, false_result):
                return BoundConditional(
                    self._bind_expr(condition),
                    self._bind_expr(true_result),
                    self._bind_expr(false_result),
                )
        msg = f"unsupported expression {type(expr).__name__}"
        raise self._fail(msg)

    def _object_key(self, key: Expr) -> str:
        if isinstance(key, LiteralExpr) and key.value is not None:
            return str(key.value)
        msg = "object keys must be literal names or strings"
        raise self._fail(msg)

    def _bind_steps(self, steps: tuple[Step, ...]) -> tuple[BoundStep, ...]:
        bound: list[BoundStep] = []
        for step in steps:
            match step:
                case AttrStep(name):
                    bound.append(BoundAttr(name))
                case IndexStep(key):
                    bound.append(BoundIndex(self._bind_expr(key)))
                case SplatStep():
                    bound.append(BoundSplat())
        return tuple(bound)

    def _leading_names(self, root: str, steps: tuple[Step, ...], count: int) -> list[str]:
        names: list[str] = []
        for step in steps[:count]:
            if not isinstance(step, AttrStep):
                break
            names.append(step.name)
        if len(names) < count:
            msg = f"invalid reference {root!r}: expected {count} attribute name(s) after it"
            raise self._fail(msg)
        return names

    def _bind_traversal(self, root: str, steps: tuple[Step, ...]) -> BoundNode:  # noqa: C901
        match root:
            case "var":
                (name,) = self._leading_names(root, steps, 1)
                return BoundVariableAccess(self._variable(name), self._bind_steps(steps[1:]))
            case "local":
                (name,) = self._leading_names(root, steps, 1)
                local = self._graph.locals.get(name)
                if local is None:
                    msg = f"reference to undeclared local value {name!r}"
                    raise self._fail(msg)
                self._add_dep(local)
                return BoundLocalAccess(local, self._bind_steps(steps[1:]))
            case "module":
                module_name, output = self._leading_names(root, steps, 2)
                module = self._module_output(module_name, output)
                self._add_dep(module)
                return BoundModuleAccess(module, output, self._bind_steps(steps[2:]))
            case "data":
                type_, name = self._leading_names(root, steps, 2)
                return self._resource_access(f"data.{type_}.{name}", steps[2:])
            case _ if root in META_ROOTS:
                return BoundMetaAccess(root, self._bind_steps(steps))
        if not steps or not isinstance(steps[0], AttrStep):
            msg = f"unknown reference {root!r}"
            raise self._fail(msg)
        return self._resource_access(f"{root}.{steps[0].name}", steps[1:])

    def _resource_access(self, address: str, steps: tuple[Step, ...]) -> BoundResourceAccess:
        resource = self._graph.resources.get(address)
        if resource is None:
            msg = f"reference to undeclared resource {address!r}"
            raise self._fail(msg)
        self._add_dep(resource)
        return BoundResourceAccess(resource, self._bind_steps(steps))

    def _variable(self, name: str) -> VariableNode:
        variable = self._graph.variables.get(name)
        if variable is not None:
            self._add_dep(variable)
            return variable
        if not self._options.allow_missing_variables:
            msg = f"reference to undeclared variable {name!r}"
            raise self._fail(msg, MissingVariableError)
        self._logger.warning(f"module {self._tree.display_path}: binding undeclared variable {name!r} to a placeholder")
        if name not in self._placeholder_variables:
            self._placeholder_variables[name] = VariableNode(name=name, is_placeholder=True)
        return self._placeholder_variables[name]

    def _module_output(self, module_name: str, output: str) -> ModuleNode:
        module = self._graph.modules.get(module_name)
        if module is None:
            msg = f"reference to undeclared module {module_name!r}"
            raise self._fail(msg)
        child = next((c for c in self._tree.children() if c.name == module_name), None)
        if child is not None and child.config.output(output) is None:
            msg = f"module {module_name!r} has no output {output!r}"
            raise self._fail(msg)
        return module

    def _resource_provider(self, resource: ResourceNode, body: dict[str, Any]) -> ProviderNode:
        explicit = body.get("provider")
        if isinstance(explicit, str) and explicit:
            name = _strip_interpolation(explicit)
        else:
            name = resource.type.split("_", 1)[0]

        provider = self._graph.providers.get(name)
        if provider is not None:
            self._add_dep(provider)
            return provider

        provider_name = name.split(".", 1)[0]
        if name in self._implicit_providers:
            return self._implicit_providers[name]

        info = self._provider_info(provider_name)
        if info is not None and "." not in name:
            provider = ProviderNode(name=name, provider_name=provider_name, info=info, is_implicit=True)
        elif self._options.allow_missing_providers:
            self._logger.warning(
                f"module {self._tree.display_path}: provider {name!r} is not declared; using a placeholder",
            )
            provider = ProviderNode(name=name, provider_name=provider_name, is_placeholder=True)
        else:
            msg = f"provider {name!r} is not declared and no schema information is available for it"
            raise self._fail(msg, MissingProviderError)
        self._implicit_providers[name] = provider
        return provider

    def _depends_on(self, value: Any) -> list[Node]:
        if not isinstance(value, list):
            return []
        nodes: list[Node] = []
        for item in value:
            if not isinstance(item, str):
                continue
            reference = _strip_interpolation(item)
            if reference.startswith("module."):
                nodes.append(self._module_output_node(reference))
                continue
            if not reference.startswith("data."):
                reference = ".".join(reference.split(".")[:2])
            resource = self._graph.resources.get(reference)
            if resource is None:
                msg = f"depends_on refers to undeclared resource {reference!r}"
                raise self._fail(msg)
            self._add_dep(resource)
            nodes.append(resource)
        return nodes

    def _module_output_node(self, reference: str) -> ModuleNode:
        name = reference.split(".")[1]
        module = self._graph.modules.get(name)
        if module is None:
            msg = f"depends_on refers to undeclared module {name!r}"
            raise self._fail(msg)
        self._add_dep(module)
        return module

    @staticmethod
    def _ignore_changes(lifecycle: Any) -> list[str]:
        blocks = lifecycle if isinstance(lifecycle, list) else [lifecycle]
        ignored: list[str] = []
        for block in blocks:
            if isinstance(block, dict) and isinstance(block.get("ignore_changes"), list):
                ignored.extend(_strip_interpolation(str(key)) for key in block["ignore_changes"])
        return ignored

    def _bind_all(self) -> None:  # noqa: C901
        config = self._tree.config
        graph = self._graph

        for decl in config.providers:
            node = graph.providers[decl.name]
            self._begin(f"provider {decl.name!r}")
            node.properties = self._bind_properties(decl.body, PROVIDER_META_ARGUMENTS)
            node.deps = self._deps

        for decl in config.variables:
            variable = graph.variables[decl.name]
            self._begin(f"variable {decl.name!r}")
            if isinstance(decl.body, dict) and "default" in decl.body:
                variable.default = self._bind_value(decl.body["default"])
            variable.deps = self._deps

        for decl in config.resources:
            address = f"data.{decl.type}.{decl.name}" if decl.kind == "data" else f"{decl.type}.{decl.name}"
            resource = graph.resources[address]
            body = decl.body if isinstance(decl.body, dict) else {}
            self._begin(f"resource {address!r}")
            resource.provider = self._resource_provider(resource, body)
            info = resource.provider.info
            resource.info = info.resource_info(resource.type, is_data_source=resource.is_data_source) if info else None
            if "count" in body:
                resource.count = self._bind_value(body["count"])
            if "for_each" in body:
                resource.for_each = self._bind_value(body["for_each"])
            resource.explicit_deps = self._depends_on(body.get("depends_on"))
            resource.ignore_changes = self._ignore_changes(body.get("lifecycle"))
            resource.properties = self._bind_properties(body, RESOURCE_META_ARGUMENTS)
            resource.deps = self._deps

        for decl in config.locals:
            local = graph.locals[decl.name]
            self._begin(f"local {decl.name!r}")
            local.value = self._bind_value(decl.body)
            local.deps = self._deps

        for decl in config.outputs:
            output = graph.outputs[decl.name]
            body = decl.body if isinstance(decl.body, dict) else {}
            self._begin(f"output {decl.name!r}")
            if "value" not in body:
                msg = "output has no value"
                raise self._fail(msg)
            output.value = self._bind_value(body["value"])
            output.sensitive = body.get("sensitive") is True
            description = body.get("description")
            output.description = description if isinstance(description, str) else None
            output.deps = self._deps

        for decl in config.modules:
            module = graph.modules[decl.name]
            self._begin(f"module {decl.name!r}")
            module.properties = self._bind_properties(decl.body, MODULE_META_ARGUMENTS)
            module.deps = self._deps

        self._context = ""

    def _check_cycles(self) -> None:
        successors: dict[Node, list[Node]] = {node: [] for node in self._graph.nodes()}
        for node in self._graph.nodes():
            for dep in node.deps:
                successors[dep].append(node)
        try:
            topological_sort(successors)
        except CycleError as e:
            names = ", ".join(sorted(f"{n.kind} {n.name!r}" for n in e.remaining))
            msg = f"dependency cycle between {names}"
            raise self._fail(msg) from e

    def build(self) -> Graph:
        self._declare_all()
        self._bind_all()
        self._check_cycles()
        self._logger.debug(f"Built graph for module {self._tree.display_path} with {len(self._graph)} nodes")
        return self._graph


def build_graph(tree: ModuleTree, options: BuildOptions | None = None, *, is_root: bool = True) -> Graph:
    """Build the graph of a single, loaded module.

    Every declaration becomes a node and every expression in it a bound node
    whose references point at other nodes of the same graph (module outputs
    are checked against the called module's declared outputs).

    Args:
        tree: The module to build. Its child modules are consulted but not built.
        options: Strictness and schema options. Defaults to fully strict.
        is_root: Whether ``tree`` is the root module of the conversion.

    Returns:
        The bound graph.

    Raises:
        MissingProviderError: If a provider is unknown and missing providers are not allowed.
        MissingVariableError: If a variable is undeclared and missing variables are not allowed.
        CommentsError: If comments cannot be recovered and missing comments are not allowed.
        BindingError: For any other unresolved reference, malformed expression or cycle.

    """
    return _Binder(tree, options or BuildOptions(), is_root=is_root).build()


def dependencies(node: Node) -> list[Node]:
    """All nodes ``node`` depends on, in the order generators should respect."""
    deps = list(node.deps)
    if isinstance(node, ResourceNode):
        deps.extend(d for d in node.explicit_deps if not any(d is x for x in deps))
    return deps

