"""The conversion pipeline: load, bind, post-process and generate."""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from ._errors import ConfigurationError, ConvertError, Tf2CodeError
from ._gen import (
    VALID_LANGUAGES,
    PythonGenerator,
    PythonOptions,
    TargetLanguage,
    TypeScriptGenerator,
    TypeScriptOptions,
)
from ._ir import BuildOptions, Comments, build_graph, filter_properties
from ._module import ModuleStorage, ModuleTree

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from typing import TextIO

    from ._gen import Generator
    from ._ir import BoundNode, Graph, Node, ProviderInfoSource, ResourceNode

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "auto"


@dataclass(frozen=True, slots=True)
class Options:
    """Everything a conversion can be configured with.

    Attributes:
        allow_missing_providers: Use placeholder providers for undeclared, unknown providers.
        allow_missing_variables: Use placeholder variables for undeclared variables.
        allow_missing_comments: Continue when comments cannot be recovered.
        annotate_nodes_with_locations: Add an "Originally defined at" comment to every node.
        filter_resource_names: Remove resource name properties from resources.
        resource_name_property: The property to remove. Empty means every
            property whose schema default is auto-named.
        path: Directory of the root module.
        writer: Where the generated program is written. ``None`` means standard output.
        provider_info_source: Provider schema information.
        logger: Logger for binding diagnostics.
        target_language: One of `VALID_LANGUAGES`.
        target_sdk_version: Version of the target SDK, used by the TypeScript generator.
        target_options: `TypeScriptOptions` for TypeScript. Python takes
            `PythonOptions` or ``None``.

    """

    allow_missing_providers: bool = False
    allow_missing_variables: bool = False
    allow_missing_comments: bool = False
    annotate_nodes_with_locations: bool = False
    filter_resource_names: bool = False
    resource_name_property: str = ""
    path: str = "."
    writer: TextIO | None = None
    provider_info_source: ProviderInfoSource | None = None
    logger: logging.Logger | None = None
    target_language: str = TargetLanguage.TYPESCRIPT
    target_sdk_version: str = ""
    target_options: object = None

    def build_options(self) -> BuildOptions:
        return BuildOptions(
            allow_missing_providers=self.allow_missing_providers,
            allow_missing_variables=self.allow_missing_variables,
            allow_missing_comments=self.allow_missing_comments,
            provider_info_source=self.provider_info_source,
            logger=self.logger,
        )


def build_forest(tree: ModuleTree, is_root: bool, options: Options | BuildOptions) -> list[Graph]:  # noqa: FBT001
    """Build the graphs of ``tree`` and all of its descendants, children before parents.

    Raises:
        BindingError: As raised by `build_graph` for the first module that fails.

    """
    build_options = options.build_options() if isinstance(options, Options) else options
    forest: list[Graph] = []
    for child in tree.children():
        forest.extend(build_forest(child, False, build_options))  # noqa: FBT003
    forest.append(build_graph(tree, build_options, is_root=is_root))
    return forest


def _name_property_filter(resource: ResourceNode, property_name: str) -> Callable[[str, BoundNode], bool]:
    def keep(key: str, _value: BoundNode) -> bool:
        if property_name:
            return key != property_name
        schema = resource.schemas().property_schemas(key).info
        return schema is None or schema.default is None or not schema.default.auto_named

    return keep


def filter_resource_names(forest: list[Graph], property_name: str = "") -> None:
    """Remove resource name properties from every managed resource of ``forest``.

    With ``property_name`` set, that property is removed. Otherwise a
    property is removed when its schema declares an auto-named default.
    Data sources are left alone.
    """
    for graph in forest:
        for resource in graph.resources.values():
            if resource.is_data_source:
                continue
            filter_properties(resource, _name_property_filter(resource, property_name))


def _annotate(node: Node) -> None:
    location = node.location
    if not location.is_valid:
        return
    if node.comments is None:
        node.comments = Comments()
    if node.comments.leading:
        node.comments.leading.append("")
    node.comments.leading.append(f" Originally defined at {location.filename}:{location.line}")


def add_location_annotations(graph: Graph) -> None:
    """Record the source location of every node of ``graph`` as a leading comment."""
    for node in graph.nodes():
        _annotate(node)


def new_generator(project_name: str, options: Options) -> Generator:
    """Create the generator for ``options.target_language``. Nothing is generated yet.

    Raises:
        ConfigurationError: If the language is unknown or the target options
            do not belong to it.

    """
    target_options = options.target_options
    writer = options.writer if options.writer is not None else sys.stdout
    match options.target_language:
        case TargetLanguage.TYPESCRIPT:
            if not isinstance(target_options, TypeScriptOptions):
                msg = f"invalid target options of type {type(target_options).__name__}"
                raise ConfigurationError(msg)
            return TypeScriptGenerator(
                project_name,
                options.target_sdk_version,
                target_options.use_prompt_data_sources,
                writer,
            )
        case TargetLanguage.PYTHON:
            if target_options is not None and not isinstance(target_options, PythonOptions):
                msg = f"invalid target options of type {type(target_options).__name__}"
                raise ConfigurationError(msg)
            return PythonGenerator(project_name, writer)
        case _:
            expected = ", ".join(VALID_LANGUAGES)
            msg = f"invalid language '{options.target_language}', expected one of {expected}"
            raise ConfigurationError(msg)


def convert(options: Options) -> None:
    """Convert the Terraform module at ``options.path`` and write the program to ``options.writer``.

    Raises:
        ConvertError: Naming the stage that failed, with the underlying error as its cause.

    """
    if not options.path:
        options = replace(options, path=".")
    storage = ModuleStorage.default()

    with _stage("creating tree module"):
        tree = ModuleTree.new("", options.path)
    with _stage("loading module"):
        tree.load(storage)
    with _stage("importing Terraform project graphs"):
        forest = build_forest(tree, True, options)  # noqa: FBT003
    logger.debug(f"Built {len(forest)} graph(s) from {options.path}")

    if options.filter_resource_names:
        filter_resource_names(forest, options.resource_name_property)
    if options.annotate_nodes_with_locations:
        for graph in forest:
            add_location_annotations(graph)

    with _stage("creating generator"):
        generator = new_generator(DEFAULT_PROJECT_NAME, options)
    with _stage("generating code"):
        generator.generate(forest)


@contextmanager
def _stage(name: str) -> Iterator[None]:
    """Re-raise tf2code errors and OS errors as `ConvertError` labelled with a pipeline stage."""
    logger.debug(f"Stage: {name}")
    try:
        yield
    except (Tf2CodeError, OSError) as e:
        raise ConvertError(name, e) from e
