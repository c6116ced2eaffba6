"""Declarations of a single configuration module."""

from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import Any, Self


class DeclarationKind(StrEnum):
    """The kind of top-level block a declaration comes from."""

    PROVIDER = auto()
    RESOURCE = auto()
    DATA = auto()
    VARIABLE = auto()
    LOCAL = auto()
    OUTPUT = auto()
    MODULE = auto()


@dataclass(slots=True, frozen=True)
class Position:
    """A source position. ``Position.invalid()`` marks an unknown position."""

    filename: str = ""
    line: int = 0

    @classmethod
    def invalid(cls) -> Self:
        return cls()

    @property
    def is_valid(self) -> bool:
        return bool(self.filename) and self.line > 0

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}"


@dataclass(slots=True, frozen=True)
class Declaration:
    """One declaration of a module, as parsed from its source.

    Attributes:
        kind: The block kind.
        name: The declared name. Aliased providers are named ``"<provider>.<alias>"``.
        body: The raw attributes of the block. For locals this is the raw value itself.
        type: The resource or data source type, or the provider name for providers.
        position: Where the declaration starts.
        source_text: The text of the file the declaration was read from.

    """

    kind: DeclarationKind
    name: str
    body: Any
    type: str = ""
    position: Position = field(default_factory=Position.invalid)
    source_text: str | None = None


@dataclass(slots=True)
class ModuleConfig:
    """All declarations of one module, in source order."""

    providers: list[Declaration] = field(default_factory=list)
    resources: list[Declaration] = field(default_factory=list)
    variables: list[Declaration] = field(default_factory=list)
    locals: list[Declaration] = field(default_factory=list)
    outputs: list[Declaration] = field(default_factory=list)
    modules: list[Declaration] = field(default_factory=list)

    def module_call(self, name: str) -> Declaration | None:
        return next((d for d in self.modules if d.name == name), None)

    def output(self, name: str) -> Declaration | None:
        return next((d for d in self.outputs if d.name == name), None)

    def __len__(self) -> int:
        return sum(
            len(group)
            for group in (self.providers, self.resources, self.variables, self.locals, self.outputs, self.modules)
        )
