"""Code generators turning a forest of graphs into program text."""

from ._emitter import Generator, ProgramEmitter, ordered_nodes, placeholder_variables, references_outputs
from ._options import VALID_LANGUAGES, PythonOptions, TargetLanguage, TargetOptions, TypeScriptOptions
from ._python import PythonGenerator
from ._typescript import ASYNC_INVOKE_VERSION, TypeScriptGenerator, parse_sdk_version

__all__ = [
    "ASYNC_INVOKE_VERSION",
    "VALID_LANGUAGES",
    "Generator",
    "ProgramEmitter",
    "PythonGenerator",
    "PythonOptions",
    "TargetLanguage",
    "TargetOptions",
    "TypeScriptGenerator",
    "TypeScriptOptions",
    "ordered_nodes",
    "parse_sdk_version",
    "placeholder_variables",
    "references_outputs",
]
