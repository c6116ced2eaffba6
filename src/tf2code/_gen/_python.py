"""Python program generator."""

from __future__ import annotations

import json
import keyword
from typing import TYPE_CHECKING, ClassVar, TypeAlias

from tf2code._errors import GenerationError
from tf2code._ir import (
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
    BoundRelativeAccess,
    BoundResourceAccess,
    BoundSplat,
    BoundTemplate,
    BoundUnary,
    BoundVariableAccess,
    ResourceNode,
)

from ._emitter import ProgramEmitter, placeholder_variables, references_outputs
from ._naming import resource_token, snake_case

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from typing import TextIO

    from tf2code._ir import BoundNode, BoundStep, Graph, LocalNode, ModuleNode, ProviderNode, VariableNode

_RESERVED = frozenset(
    {
        *keyword.kwlist,
        "pulumi", "config", "args", "name", "json", "base64", "math", "pathlib", "i", "key", "value",
        "len", "str", "float", "list", "set", "min", "max", "abs", "next",
    },
)  # fmt: skip

_OPERATORS = {"&&": "and", "||": "or"}

_CONFIG_GETTERS = {"number": "_float", "bool": "_bool", "string": ""}


def _literal(value: str | float | bool | None) -> str:
    match value:
        case None:
            return "None"
        case bool():
            return "True" if value else "False"
        case str():
            return json.dumps(value, ensure_ascii=False)
        case _:
            return repr(value)


def _quote(name: str) -> str:
    return json.dumps(name, ensure_ascii=False)


def _keyword(name: str) -> str:
    converted = snake_case(name)
    return f"{converted}_" if keyword.iskeyword(converted) else converted


def _package_alias(package: str) -> str:
    return package.replace("-", "_")


_Render: TypeAlias = "Callable[[list[str]], str]"

# name -> (minimum arguments, maximum arguments or None, stdlib module it needs, renderer)
_FUNCTIONS: dict[str, tuple[int, int | None, str | None, _Render]] = {
    "abs": (1, 1, None, lambda a: f"abs({a[0]})"),
    "base64decode": (1, 1, "base64", lambda a: f"base64.b64decode({a[0]}).decode()"),
    "base64encode": (1, 1, "base64", lambda a: f"base64.b64encode({a[0]}.encode()).decode()"),
    "ceil": (1, 1, "math", lambda a: f"math.ceil({a[0]})"),
    "coalesce": (1, None, None, lambda a: f"({' or '.join(a)})"),
    "concat": (1, None, None, lambda a: f"({' + '.join(a)})"),
    "contains": (2, 2, None, lambda a: f"({a[1]} in {a[0]})"),
    "element": (2, 2, None, lambda a: f"{a[0]}[{a[1]}]"),
    "file": (1, 1, "pathlib", lambda a: f"pathlib.Path({a[0]}).read_text()"),
    "floor": (1, 1, "math", lambda a: f"math.floor({a[0]})"),
    "join": (2, 2, None, lambda a: f"{a[0]}.join({a[1]})"),
    "jsondecode": (1, 1, "json", lambda a: f"json.loads({a[0]})"),
    "jsonencode": (1, 1, "json", lambda a: f"json.dumps({a[0]})"),
    "keys": (1, 1, None, lambda a: f"list({a[0]}.keys())"),
    "length": (1, 1, None, lambda a: f"len({a[0]})"),
    "lookup": (2, 3, None, lambda a: f"{a[0]}[{a[1]}]" if len(a) == 2 else f"{a[0]}.get({a[1]}, {a[2]})"),  # noqa: PLR2004
    "lower": (1, 1, None, lambda a: f"{a[0]}.lower()"),
    "max": (1, None, None, lambda a: f"max({', '.join(a)})"),
    "merge": (1, None, None, lambda a: "{" + ", ".join(f"**{x}" for x in a) + "}"),
    "min": (1, None, None, lambda a: f"min({', '.join(a)})"),
    "replace": (3, 3, None, lambda a: f"{a[0]}.replace({a[1]}, {a[2]})"),
    "split": (2, 2, None, lambda a: f"{a[1]}.split({a[0]})"),
    "tolist": (1, 1, None, lambda a: f"list({a[0]})"),
    "toset": (1, 1, None, lambda a: f"list(dict.fromkeys({a[0]}))"),
    "tonumber": (1, 1, None, lambda a: f"float({a[0]})"),
    "tostring": (1, 1, None, lambda a: f"str({a[0]})"),
    "trimspace": (1, 1, None, lambda a: f"{a[0]}.strip()"),
    "upper": (1, 1, None, lambda a: f"{a[0]}.upper()"),
    "values": (1, 1, None, lambda a: f"list({a[0]}.values())"),
}


class PythonGenerator(ProgramEmitter):
    """Renders a forest as a Pulumi Python program.

    Child modules become functions ``<path>_module(name, args)`` returning a
    dict of their outputs.
    """

    comment_prefix: ClassVar[str] = "#"
    reserved_words: ClassVar[frozenset[str]] = _RESERVED

    def __init__(self, project_name: str, writer: TextIO) -> None:
        super().__init__(project_name, writer)
        self._imports: set[str] = set()

    def identifier(self, name: str) -> str:
        return snake_case(name)

    def module_function_name(self, graph: Graph) -> str:
        return snake_case("_".join((*graph.path, "module")))

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def emit_preamble(self, forest: Sequence[Graph], packages: list[str]) -> None:
        for module in sorted(self._imports):
            self.line(f"import {module}")
        if self._imports:
            self.line()
        self.line("import pulumi")
        for package in packages:
            self.line(f"import pulumi_{_package_alias(package)} as {_package_alias(package)}")

    def begin_module(self, graph: Graph) -> None:
        self.line()
        if not graph.is_root:
            self.line(f"def {self.module_function(graph.path)}(name, args):")
        elif graph.variables or placeholder_variables(graph):
            self.line("config = pulumi.Config()")

    def emit_outputs(self, graph: Graph) -> None:
        if graph.is_root:
            for output in graph.outputs.values():
                self.emit_comments(output)
                value = self.expr(output.value) if output.value is not None else "None"
                self.line(f"pulumi.export({_quote(output.name)}, {value})")
            return
        if not graph.outputs:
            self.line("return {}")
            return
        self.line("return {")
        with self.indented():
            for output in graph.outputs.values():
                self.emit_comments(output)
                value = self.expr(output.value) if output.value is not None else "None"
                self.line(f"{_quote(output.name)}: {value},")
        self.line("}")

    def emit_variable(self, graph: Graph, node: VariableNode) -> None:
        key = _quote(node.name)
        if graph.is_root:
            getter = _CONFIG_GETTERS.get(node.type_hint or "string", "_object")
            if getter == "_float" and isinstance(node.default, BoundLiteral) and isinstance(node.default.value, int):
                getter = "_int"
            if node.default is None:
                value = f"config.require{getter}({key})"
            else:
                value = f"config.get{getter}({key}) or {self._operand(node.default, 0)}"
        elif node.default is None:
            value = f"args[{key}]"
        else:
            value = f"args.get({key}, {self.expr(node.default)})"
        self.line(f"{self.name_of(node)} = {value}")

    def emit_provider(self, node: ProviderNode) -> None:
        arguments = [self._resource_name(node.name), *self._keywords(node.properties, 1)]
        constructor = f"{_package_alias(node.provider_name)}.Provider"
        self.line(f"{self.name_of(node)} = {self._invocation(constructor, arguments)}")

    def emit_local(self, node: LocalNode) -> None:
        value = self.expr(node.value) if node.value is not None else "None"
        self.line(f"{self.name_of(node)} = {value}")

    def emit_module_call(self, node: ModuleNode) -> None:
        function = self.module_function(node.tree_path)
        args = self._object([(_quote(k), v) for k, v in node.properties.items()], 0, blocks=True)
        self.line(f"{self.name_of(node)} = {function}({self._resource_name(node.name)}, {args})")

    def emit_resource(self, node: ResourceNode) -> None:
        name = self.name_of(node)
        if node.count is not None:
            self.line(f"{name} = []")
            self.line(f"for i in range({self.expr(node.count)}):")
            with self.indented():
                self.line(f"{name}.append({self._instantiate(node, 'i')})")
        elif node.for_each is not None:
            self.line(f"{name} = {{}}")
            self.line(f"for key, value in {self._items(node.for_each)}:")
            with self.indented():
                self.line(f"{name}[key] = {self._instantiate(node, 'key')}")
        else:
            self.line(f"{name} = {self._instantiate(node)}")

    # -------------------------------------------------------------------------
    # Resource helpers
    # -------------------------------------------------------------------------

    def _constructor(self, node: ResourceNode) -> str:
        package, modules, member = resource_token(node)
        if node.is_data_source:
            member = snake_case(member)
        return ".".join((_package_alias(package), *modules, member))

    def _resource_name(self, name: str, suffix: str | None = None) -> str:
        if self.in_root_module and suffix is None:
            return _quote(name)
        escaped = _quote(name)[1:-1].replace("{", "{{").replace("}", "}}")
        prefix = "" if self.in_root_module else "{name}-"
        tail = "" if suffix is None else f"-{{{suffix}}}"
        return f'f"{prefix}{escaped}{tail}"'

    def _instantiate(self, node: ResourceNode, suffix: str | None = None) -> str:
        depth = 1
        arguments = [] if node.is_data_source else [self._resource_name(node.name, suffix)]
        arguments.extend(self._keywords(node.properties, depth))
        provider = node.provider if node.provider is not None and self.is_declared(node.provider) else None

        options = []
        if provider is not None:
            options.append(f"provider={self.name_of(provider)}")
        if node.is_data_source:
            if options:
                arguments.append(f"opts=pulumi.InvokeOptions({', '.join(options)})")
            return self._invocation(self._constructor(node), arguments)

        depends_on = [self._dependency(dep) for dep in node.explicit_deps if isinstance(dep, ResourceNode)]
        if depends_on:
            options.append(f"depends_on=[{', '.join(depends_on)}]")
        if node.ignore_changes:
            ignored = ", ".join(_quote(snake_case(key)) for key in node.ignore_changes)
            options.append(f"ignore_changes=[{ignored}]")
        if options:
            arguments.append(f"opts=pulumi.ResourceOptions({', '.join(options)})")
        return self._invocation(self._constructor(node), arguments)

    def _invocation(self, callee: str, arguments: list[str]) -> str:
        if len(arguments) <= 1:
            return f"{callee}({''.join(arguments)})"
        inner = self.indent_unit * (self._level + 1)
        lines = [f"{inner}{argument}," for argument in arguments]
        return f"{callee}(\n" + "\n".join(lines) + f"\n{self.indent_unit * self._level})"

    def _keywords(self, properties: dict[str, BoundNode], depth: int) -> list[str]:
        return [f"{_keyword(key)}={self._value(value, depth, blocks=True)}" for key, value in properties.items()]

    def _dependency(self, node: ResourceNode) -> str:
        name = self.name_of(node)
        if node.count is not None:
            return f"*{name}"
        if node.for_each is not None:
            return f"*{name}.values()"
        return name

    def _items(self, for_each: BoundNode) -> str:
        rendered = self.expr(for_each)
        if isinstance(for_each, BoundList) or (isinstance(for_each, BoundCall) and for_each.name in ("toset", "tolist")):
            return f"((v, v) for v in {rendered})"
        return f"{self._operand(for_each, 0)}.items()"

    # -------------------------------------------------------------------------
    # Objects
    # -------------------------------------------------------------------------

    def _object(self, entries: list[tuple[str, BoundNode]], depth: int, *, blocks: bool) -> str:
        if not entries:
            return "{}"
        inner = self.indent_unit * (self._level + depth + 1)
        outer = self.indent_unit * (self._level + depth)
        lines = [f"{inner}{key}: {self._value(value, depth + 1, blocks=blocks)}," for key, value in entries]
        return "{\n" + "\n".join(lines) + f"\n{outer}}}"

    def _value(self, value: BoundNode, depth: int, *, blocks: bool) -> str:
        # Nested blocks arrive as lists of maps and take argument-style keys.
        if blocks and isinstance(value, BoundList) and value.items and all(isinstance(i, BoundMap) for i in value.items):
            items = [
                self._object([(_quote(snake_case(k)), v) for k, v in item.items.items()], depth, blocks=True)
                for item in value.items
                if isinstance(item, BoundMap)
            ]
            return f"[{', '.join(items)}]"
        return self._render(value, depth)

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def expr(self, node: BoundNode) -> str:
        return self._render(node, 0)

    def _render(self, node: BoundNode, depth: int) -> str:  # noqa: C901, PLR0911
        match node:
            case BoundLiteral(value):
                return _literal(value)
            case BoundList(items):
                return f"[{', '.join(self._render(item, depth) for item in items)}]"
            case BoundMap(items):
                return self._object([(_quote(k), v) for k, v in items.items()], depth, blocks=False)
            case BoundTemplate(parts):
                return self._template(parts, depth)
            case BoundVariableAccess(variable, steps):
                return self._steps(self.name_of(variable), steps, depth)
            case BoundLocalAccess(local, steps):
                return self._steps(self.name_of(local), steps, depth)
            case BoundResourceAccess(resource, steps):
                return self._steps(self.name_of(resource), steps, depth, members=True)
            case BoundModuleAccess(module, output, steps):
                return self._steps(f"{self.name_of(module)}[{_quote(output)}]", steps, depth)
            case BoundMetaAccess(root, steps):
                return self._meta(root, steps, depth)
            case BoundRelativeAccess(source, steps):
                return self._steps(self._operand(source, depth), steps, depth)
            case BoundCall(name, args, expand_final):
                return self._call(name, args, expand_final=expand_final, depth=depth)
            case BoundUnary("!", operand):
                return f"not {self._operand(operand, depth)}"
            case BoundUnary(op, operand):
                return f"{op}{self._operand(operand, depth)}"
            case BoundBinary(op, left, right):
                return f"{self._operand(left, depth)} {_OPERATORS.get(op, op)} {self._operand(right, depth)}"
            case BoundConditional(condition, true_result, false_result):
                return (
                    f"{self._operand(true_result, depth)} if {self._operand(condition, depth)}"
                    f" else {self._operand(false_result, depth)}"
                )
        msg = f"cannot render {type(node).__name__} as Python"
        raise GenerationError(msg)

    def _operand(self, node: BoundNode, depth: int) -> str:
        rendered = self._render(node, depth)
        if isinstance(node, BoundBinary | BoundConditional) or (isinstance(node, BoundUnary) and node.op == "!"):
            return f"({rendered})"
        return rendered

    def _steps(self, base: str, steps: tuple[BoundStep, ...], depth: int, *, members: bool = False) -> str:
        result = base
        for i, step in enumerate(steps):
            match step:
                case BoundAttr(name) if name.isdigit():
                    result += f"[{name}]"
                case BoundAttr(name) if members and name.isidentifier() and name == name.lower():
                    result += f".{_keyword(name)}"
                case BoundAttr(name):
                    result += f"[{_quote(name)}]"
                case BoundIndex(key):
                    result += f"[{self._render(key, depth)}]"
                case BoundSplat():
                    rest = self._steps("v", steps[i + 1 :], depth, members=members)
                    return result if rest == "v" else f"[{rest} for v in {result}]"
        return result

    def _meta(self, root: str, steps: tuple[BoundStep, ...], depth: int) -> str:
        match root, steps:
            case "count", (BoundAttr("index"), *rest):
                return self._steps("i", tuple(rest), depth)
            case "each", (BoundAttr("key"), *rest):
                return self._steps("key", tuple(rest), depth)
            case "each", (BoundAttr("value"), *rest):
                return self._steps("value", tuple(rest), depth)
            case "path", (BoundAttr("module" | "root" | "cwd"),):
                return '"."'
            case "terraform", (BoundAttr("workspace"),):
                return "pulumi.get_stack()"
        msg = f"unsupported reference to {root!r}"
        raise GenerationError(msg)

    def _template(self, parts: tuple[BoundNode, ...], depth: int) -> str:
        if any(references_outputs(part, data_sources=False) for part in parts):
            return f"pulumi.Output.concat({', '.join(self._render(part, depth) for part in parts)})"

        # Each piece is either escaped literal text or a rendered expression.
        pieces: list[tuple[str | None, str | None]] = []
        for part in parts:
            if isinstance(part, BoundLiteral) and isinstance(part.value, str):
                pieces.append((_quote(part.value)[1:-1].replace("{", "{{").replace("}", "}}"), None))
            else:
                pieces.append((None, self._render(part, depth)))
        expressions = [e for _, e in pieces if e is not None]
        if any(c in e for e in expressions for c in "\"\\{}\n"):
            text = "".join("{}" if t is None else t for t, _ in pieces)
            return f'"{text}".format({", ".join(expressions)})'
        text = "".join(f"{{{e}}}" if t is None else t for t, e in pieces)
        return f'f"{text}"'

    def _call(self, name: str, args: tuple[BoundNode, ...], *, expand_final: bool, depth: int) -> str:
        try:
            minimum, maximum, module, render = _FUNCTIONS[name]
        except KeyError as e:
            msg = f"function {name!r} is not supported when generating Python"
            raise GenerationError(msg) from e
        if len(args) < minimum or (maximum is not None and len(args) > maximum):
            msg = f"function {name!r} called with {len(args)} argument(s)"
            raise GenerationError(msg)
        if module is not None:
            self._imports.add(module)

        rendered = [self._operand(arg, depth) for arg in args]
        if not any(references_outputs(arg, data_sources=False) for arg in args):
            if expand_final:
                rendered[-1] = f"*{rendered[-1]}"
            return render(rendered)

        params = [f"args[{i}]" for i in range(len(args))]
        if expand_final:
            params[-1] = f"*{params[-1]}"
        return f"pulumi.Output.all({', '.join(rendered)}).apply(lambda args: {render(params)})"
