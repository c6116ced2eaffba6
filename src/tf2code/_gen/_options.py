"""Target languages and their generator options."""

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, TypeAlias


class TargetLanguage(StrEnum):
    """Languages a forest can be generated in."""

    TYPESCRIPT = "typescript"
    PYTHON = "python"


VALID_LANGUAGES: tuple[TargetLanguage, ...] = tuple(TargetLanguage)


@dataclass(slots=True, frozen=True)
class TypeScriptOptions:
    """Options of the TypeScript generator.

    Attributes:
        use_prompt_data_sources: Treat data source results as plain values
            instead of wrapping them in ``pulumi.output``.

    """

    language: ClassVar[TargetLanguage] = TargetLanguage.TYPESCRIPT

    use_prompt_data_sources: bool = False


@dataclass(slots=True, frozen=True)
class PythonOptions:
    """Options of the Python generator. There are none yet."""

    language: ClassVar[TargetLanguage] = TargetLanguage.PYTHON


TargetOptions: TypeAlias = TypeScriptOptions | PythonOptions
