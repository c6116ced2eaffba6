"""Convert Terraform configurations into Pulumi programs."""

__all__ = [
    "VALID_LANGUAGES",
    "BindingError",
    "BuildOptions",
    "CommentsError",
    "ConfigurationError",
    "ConvertError",
    "GenerationError",
    "Generator",
    "Graph",
    "LoadError",
    "MissingProviderError",
    "MissingVariableError",
    "ModuleStorage",
    "ModuleTree",
    "NoCredentials",
    "Options",
    "ProviderInfo",
    "ProviderInfoSource",
    "PythonGenerator",
    "PythonOptions",
    "ServiceDiscovery",
    "StaticProviderInfoSource",
    "TargetLanguage",
    "Tf2CodeError",
    "TypeScriptGenerator",
    "TypeScriptOptions",
    "add_location_annotations",
    "build_forest",
    "build_graph",
    "convert",
    "filter_resource_names",
    "load_provider_info_source",
    "new_generator",
]

from ._convert import (
    Options,
    add_location_annotations,
    build_forest,
    convert,
    filter_resource_names,
    new_generator,
)
from ._errors import (
    BindingError,
    CommentsError,
    ConfigurationError,
    ConvertError,
    GenerationError,
    LoadError,
    MissingProviderError,
    MissingVariableError,
    Tf2CodeError,
)
from ._gen import (
    VALID_LANGUAGES,
    Generator,
    PythonGenerator,
    PythonOptions,
    TargetLanguage,
    TypeScriptGenerator,
    TypeScriptOptions,
)
from ._ir import (
    BuildOptions,
    Graph,
    ProviderInfo,
    ProviderInfoSource,
    StaticProviderInfoSource,
    build_graph,
    load_provider_info_source,
)
from ._module import ModuleStorage, ModuleTree, NoCredentials, ServiceDiscovery
