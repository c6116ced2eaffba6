"""TypeScript program generator."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, ClassVar, TypeAlias

from tf2code._errors import ConfigurationError, GenerationError
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
from ._naming import camel_case, is_identifier, resource_token

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from typing import TextIO

    from tf2code._ir import BoundNode, BoundStep, Graph, LocalNode, ModuleNode, ProviderNode, VariableNode

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)(?:[-+].*)?$")

# Invokes take an `async` option from this SDK version on.
ASYNC_INVOKE_VERSION = (0, 17, 28)

_RESERVED = frozenset(
    {
        "break", "case", "catch", "class", "const", "continue", "debugger", "default", "delete", "do",
        "else", "enum", "export", "extends", "false", "finally", "for", "function", "if", "import",
        "in", "instanceof", "let", "new", "null", "return", "super", "switch", "this", "throw",
        "true", "try", "typeof", "undefined", "var", "void", "while", "with", "yield", "await",
        "pulumi", "config", "args", "name", "fs", "i", "key", "value",
    },
)  # fmt: skip

_OPERATORS = {"==": "===", "!=": "!=="}

_CONFIG_GETTERS = {"number": "Number", "bool": "Boolean", "string": ""}


def parse_sdk_version(version: str) -> tuple[int, int, int] | None:
    """Parse ``"1.2.3"`` (optionally ``v``-prefixed or with a suffix). An empty string means the latest SDK."""
    if not version:
        return None
    parsed = _VERSION_RE.match(version)
    if parsed is None:
        msg = f"invalid SDK version {version!r}"
        raise ConfigurationError(msg)
    return int(parsed[1]), int(parsed[2]), int(parsed[3])


def _literal(value: str | float | bool | None) -> str:
    match value:
        case None:
            return "undefined"
        case bool():
            return "true" if value else "false"
        case str():
            return json.dumps(value, ensure_ascii=False)
        case _:
            return repr(value)


def _escape_template(text: str) -> str:
    return text.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")


def _member(name: str) -> str:
    return camel_case(name) if name == name.lower() else name


_Render: TypeAlias = "Callable[[list[str]], str]"

# name -> (minimum arguments, maximum arguments or None, renderer)
_FUNCTIONS: dict[str, tuple[int, int | None, _Render]] = {
    "abs": (1, 1, lambda a: f"Math.abs({a[0]})"),
    "base64decode": (1, 1, lambda a: f'Buffer.from({a[0]}, "base64").toString()'),
    "base64encode": (1, 1, lambda a: f'Buffer.from({a[0]}).toString("base64")'),
    "ceil": (1, 1, lambda a: f"Math.ceil({a[0]})"),
    "coalesce": (1, None, lambda a: f"({' ?? '.join(a)})"),
    "concat": (1, None, lambda a: f"{a[0]}.concat({', '.join(a[1:])})"),
    "contains": (2, 2, lambda a: f"{a[0]}.includes({a[1]})"),
    "element": (2, 2, lambda a: f"{a[0]}[{a[1]}]"),
    "file": (1, 1, lambda a: f'fs.readFileSync({a[0]}, "utf8")'),
    "floor": (1, 1, lambda a: f"Math.floor({a[0]})"),
    "join": (2, 2, lambda a: f"{a[1]}.join({a[0]})"),
    "jsondecode": (1, 1, lambda a: f"JSON.parse({a[0]})"),
    "jsonencode": (1, 1, lambda a: f"JSON.stringify({a[0]})"),
    "keys": (1, 1, lambda a: f"Object.keys({a[0]})"),
    "length": (1, 1, lambda a: f"{a[0]}.length"),
    "lookup": (2, 3, lambda a: f"{a[0]}[{a[1]}]" if len(a) == 2 else f"({a[0]}[{a[1]}] ?? {a[2]})"),  # noqa: PLR2004
    "lower": (1, 1, lambda a: f"{a[0]}.toLowerCase()"),
    "max": (1, None, lambda a: f"Math.max({', '.join(a)})"),
    "merge": (1, None, lambda a: "{" + ", ".join(f"...{x}" for x in a) + "}"),
    "min": (1, None, lambda a: f"Math.min({', '.join(a)})"),
    "replace": (3, 3, lambda a: f"{a[0]}.split({a[1]}).join({a[2]})"),
    "split": (2, 2, lambda a: f"{a[1]}.split({a[0]})"),
    "tolist": (1, 1, lambda a: a[0]),
    "toset": (1, 1, lambda a: f"[...new Set({a[0]})]"),
    "tonumber": (1, 1, lambda a: f"Number({a[0]})"),
    "tostring": (1, 1, lambda a: f"String({a[0]})"),
    "trimspace": (1, 1, lambda a: f"{a[0]}.trim()"),
    "upper": (1, 1, lambda a: f"{a[0]}.toUpperCase()"),
    "values": (1, 1, lambda a: f"Object.values({a[0]})"),
}


class TypeScriptGenerator(ProgramEmitter):
    """Renders a forest as a Pulumi TypeScript program.

    Child modules become functions taking a name prefix and an ``args`` object
    and returning their outputs; the root module reads its variables from the
    stack configuration and exports its outputs.
    """

    comment_prefix: ClassVar[str] = "//"
    reserved_words: ClassVar[frozenset[str]] = _RESERVED

    def __init__(self, project_name: str, sdk_version: str, use_prompt_data_sources: bool, writer: TextIO) -> None:  # noqa: FBT001
        super().__init__(project_name, writer)
        self.sdk_version = sdk_version
        self.use_prompt_data_sources = use_prompt_data_sources
        parsed = parse_sdk_version(sdk_version)
        self._async_invokes = not use_prompt_data_sources and (parsed is None or parsed >= ASYNC_INVOKE_VERSION)
        self._uses_fs = False

    def identifier(self, name: str) -> str:
        return camel_case(name)

    def module_function_name(self, graph: Graph) -> str:
        return camel_case("_".join((*graph.path, "module")))

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def emit_preamble(self, forest: Sequence[Graph], packages: list[str]) -> None:
        self.line('import * as pulumi from "@pulumi/pulumi";')
        for package in packages:
            self.line(f'import * as {camel_case(package)} from "@pulumi/{package}";')
        if self._uses_fs:
            self.line('import * as fs from "fs";')

    def begin_module(self, graph: Graph) -> None:
        if not graph.is_root:
            self.line(f"function {self.module_function(graph.path)}(name: string, args: Record<string, any>) {{")
        elif graph.variables or placeholder_variables(graph):
            self.line("const config = new pulumi.Config();")

    def emit_outputs(self, graph: Graph) -> None:
        if graph.is_root:
            for output in graph.outputs.values():
                self.emit_comments(output)
                value = self.expr(output.value) if output.value is not None else "undefined"
                self.line(f"export const {self.name_of(output)} = {value};")
            return
        if not graph.outputs:
            self.line("return {};")
            return
        self.line("return {")
        with self.indented():
            for output in graph.outputs.values():
                self.emit_comments(output)
                value = self.expr(output.value) if output.value is not None else "undefined"
                self.line(f"{camel_case(output.name)}: {value},")
        self.line("};")

    def end_module(self, graph: Graph) -> None:
        if not graph.is_root:
            self.line("}")

    def emit_variable(self, graph: Graph, node: VariableNode) -> None:
        if graph.is_root:
            getter = _CONFIG_GETTERS.get(node.type_hint or "string", "Object")
            key = json.dumps(node.name)
            if node.default is None:
                value = f"config.require{getter}({key})"
            else:
                value = f"config.get{getter}({key}) ?? {self.expr(node.default)}"
        else:
            value = f"args.{camel_case(node.name)}"
            if node.default is not None:
                value = f"{value} ?? {self.expr(node.default)}"
        self.line(f"const {self.name_of(node)} = {value};")

    def emit_provider(self, node: ProviderNode) -> None:
        constructor = f"{camel_case(node.provider_name)}.Provider"
        args = self._properties(node.properties)
        self.line(f"const {self.name_of(node)} = new {constructor}({self._resource_name(node.name)}, {args});")

    def emit_local(self, node: LocalNode) -> None:
        value = self.expr(node.value) if node.value is not None else "undefined"
        self.line(f"const {self.name_of(node)} = {value};")

    def emit_module_call(self, node: ModuleNode) -> None:
        function = self.module_function(node.tree_path)
        args = self._properties(node.properties)
        self.line(f"const {self.name_of(node)} = {function}({self._resource_name(node.name)}, {args});")

    def emit_resource(self, node: ResourceNode) -> None:
        name = self.name_of(node)
        element_type = "any" if node.is_data_source else self._constructor(node)
        if node.count is not None:
            self.line(f"const {name}: {element_type}[] = [];")
            self.line(f"for (let i = 0; i < {self.expr(node.count)}; i++) {{")
            with self.indented():
                self.line(f"{name}.push({self._instantiate(node, 'i')});")
            self.line("}")
        elif node.for_each is not None:
            self.line(f"const {name}: Record<string, {element_type}> = {{}};")
            self.line(f"for (const [key, value] of {self._entries(node.for_each)}) {{")
            with self.indented():
                self.line(f"{name}[key] = {self._instantiate(node, 'key')};")
            self.line("}")
        else:
            self.line(f"const {name} = {self._instantiate(node)};")

    # -------------------------------------------------------------------------
    # Resource helpers
    # -------------------------------------------------------------------------

    def _constructor(self, node: ResourceNode) -> str:
        package, modules, member = resource_token(node)
        return ".".join((camel_case(package), *modules, member))

    def _resource_name(self, name: str, suffix: str | None = None) -> str:
        if self.in_root_module and suffix is None:
            return json.dumps(name)
        prefix = "" if self.in_root_module else "${name}-"
        tail = "" if suffix is None else f"-${{{suffix}}}"
        return f"`{prefix}{_escape_template(name)}{tail}`"

    def _instantiate(self, node: ResourceNode, suffix: str | None = None) -> str:
        args = self._properties(node.properties)
        provider = node.provider if node.provider is not None and self.is_declared(node.provider) else None

        if node.is_data_source:
            options = [f"provider: {self.name_of(provider)}"] if provider is not None else []
            if self._async_invokes:
                options.append("async: true")
            call = f"{self._constructor(node)}({args}"
            call += f", {{ {', '.join(options)} }})" if options else ")"
            return call if self.use_prompt_data_sources else f"pulumi.output({call})"

        options = []
        if provider is not None:
            options.append(f"provider: {self.name_of(provider)}")
        depends_on = [self._dependency(dep) for dep in node.explicit_deps if isinstance(dep, ResourceNode)]
        if depends_on:
            options.append(f"dependsOn: [{', '.join(depends_on)}]")
        if node.ignore_changes:
            ignored = ", ".join(json.dumps(camel_case(key)) for key in node.ignore_changes)
            options.append(f"ignoreChanges: [{ignored}]")
        parts = [self._resource_name(node.name, suffix), args]
        if options:
            parts.append(f"{{ {', '.join(options)} }}")
        return f"new {self._constructor(node)}({', '.join(parts)})"

    def _dependency(self, node: ResourceNode) -> str:
        name = self.name_of(node)
        if node.count is not None:
            return f"...{name}"
        if node.for_each is not None:
            return f"...Object.values({name})"
        return name

    def _entries(self, for_each: BoundNode) -> str:
        rendered = self.expr(for_each)
        if isinstance(for_each, BoundList) or (isinstance(for_each, BoundCall) and for_each.name in ("toset", "tolist")):
            return f"{rendered}.map(v => [v, v])"
        return f"Object.entries({rendered})"

    # -------------------------------------------------------------------------
    # Objects
    # -------------------------------------------------------------------------

    def _properties(self, properties: dict[str, BoundNode], depth: int = 0) -> str:
        return self._object([(camel_case(key), value) for key, value in properties.items()], depth, blocks=True)

    def _object(self, entries: list[tuple[str, BoundNode]], depth: int, *, blocks: bool) -> str:
        if not entries:
            return "{}"
        inner = self.indent_unit * (self._level + depth + 1)
        outer = self.indent_unit * (self._level + depth)
        lines = [f"{inner}{key}: {self._value(value, depth + 1, blocks=blocks)}," for key, value in entries]
        return "{\n" + "\n".join(lines) + f"\n{outer}}}"

    def _value(self, value: BoundNode, depth: int, *, blocks: bool) -> str:
        # Nested blocks arrive as lists of maps and take property-style keys.
        if blocks and isinstance(value, BoundList) and value.items and all(isinstance(i, BoundMap) for i in value.items):
            items = [self._properties(item.items, depth) for item in value.items if isinstance(item, BoundMap)]
            return f"[{', '.join(items)}]"
        return self._render(value, depth)

    @staticmethod
    def _key(key: str) -> str:
        return key if is_identifier(key) else json.dumps(key)

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def expr(self, node: BoundNode) -> str:
        return self._render(node, 0)

    def _is_output(self, node: BoundNode) -> bool:
        return references_outputs(node, data_sources=not self.use_prompt_data_sources)

    def _render(self, node: BoundNode, depth: int) -> str:  # noqa: C901, PLR0911
        match node:
            case BoundLiteral(value):
                return _literal(value)
            case BoundList(items):
                return f"[{', '.join(self._render(item, depth) for item in items)}]"
            case BoundMap(items):
                return self._object([(self._key(k), v) for k, v in items.items()], depth, blocks=False)
            case BoundTemplate(parts):
                return self._template(parts, depth)
            case BoundVariableAccess(variable, steps):
                return self._steps(self.name_of(variable), steps, depth)
            case BoundLocalAccess(local, steps):
                return self._steps(self.name_of(local), steps, depth)
            case BoundResourceAccess(resource, steps):
                return self._steps(self.name_of(resource), steps, depth, members=True)
            case BoundModuleAccess(module, output, steps):
                return self._steps(f"{self.name_of(module)}.{camel_case(output)}", steps, depth)
            case BoundMetaAccess(root, steps):
                return self._meta(root, steps, depth)
            case BoundRelativeAccess(source, steps):
                return self._steps(self._operand(source, depth), steps, depth)
            case BoundCall(name, args, expand_final):
                return self._call(name, args, expand_final=expand_final, depth=depth)
            case BoundUnary(op, operand):
                return f"{op}{self._operand(operand, depth)}"
            case BoundBinary(op, left, right):
                return f"{self._operand(left, depth)} {_OPERATORS.get(op, op)} {self._operand(right, depth)}"
            case BoundConditional(condition, true_result, false_result):
                return (
                    f"{self._operand(condition, depth)} ? {self._operand(true_result, depth)}"
                    f" : {self._operand(false_result, depth)}"
                )
        msg = f"cannot render {type(node).__name__} as TypeScript"
        raise GenerationError(msg)

    def _operand(self, node: BoundNode, depth: int) -> str:
        rendered = self._render(node, depth)
        return f"({rendered})" if isinstance(node, BoundBinary | BoundConditional) else rendered

    def _steps(self, base: str, steps: tuple[BoundStep, ...], depth: int, *, members: bool = False) -> str:
        result = base
        for i, step in enumerate(steps):
            match step:
                case BoundAttr(name) if name.isdigit():
                    result += f"[{name}]"
                case BoundAttr(name):
                    key = _member(name) if members else name
                    result += f".{key}" if is_identifier(key) else f"[{json.dumps(key)}]"
                case BoundIndex(key):
                    result += f"[{self._render(key, depth)}]"
                case BoundSplat():
                    rest = self._steps("v", steps[i + 1 :], depth, members=members)
                    return result if rest == "v" else f"{result}.map(v => {rest})"
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
                return "pulumi.getStack()"
        msg = f"unsupported reference to {root!r}"
        raise GenerationError(msg)

    def _template(self, parts: tuple[BoundNode, ...], depth: int) -> str:
        text = ""
        for part in parts:
            if isinstance(part, BoundLiteral) and isinstance(part.value, str):
                text += _escape_template(part.value)
            else:
                text += f"${{{self._render(part, depth)}}}"
        tag = "pulumi.interpolate" if any(self._is_output(part) for part in parts) else ""
        return f"{tag}`{text}`"

    def _call(self, name: str, args: tuple[BoundNode, ...], *, expand_final: bool, depth: int) -> str:
        try:
            minimum, maximum, render = _FUNCTIONS[name]
        except KeyError as e:
            msg = f"function {name!r} is not supported when generating TypeScript"
            raise GenerationError(msg) from e
        if len(args) < minimum or (maximum is not None and len(args) > maximum):
            msg = f"function {name!r} called with {len(args)} argument(s)"
            raise GenerationError(msg)
        if name == "file":
            self._uses_fs = True

        rendered = [self._operand(arg, depth) for arg in args]
        if not any(self._is_output(arg) for arg in args):
            if expand_final:
                rendered[-1] = f"...{rendered[-1]}"
            return render(rendered)

        params = [f"arg{i}" for i in range(len(args))]
        body_args = list(params)
        if expand_final:
            body_args[-1] = f"...{body_args[-1]}"
        return f"pulumi.all([{', '.join(rendered)}]).apply(([{', '.join(params)}]) => {render(body_args)})"
