"""Provider schema information consulted while binding and filtering."""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, ConfigDict, ValidationError

from tf2code._errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path


class DefaultInfo(BaseModel):
    """Default value metadata of a property.

    Attributes:
        value: The literal default, if any.
        auto_named: Whether the target platform generates this value itself
            (for example a physical resource name derived from the logical name).
        env_vars: Environment variables the default is read from.

    """

    model_config = ConfigDict(frozen=True)

    value: Any = None
    auto_named: bool = False
    env_vars: list[str] = []


class SchemaInfo(BaseModel):
    """Metadata of one property (and, for objects and lists, of its contents)."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    default: DefaultInfo | None = None
    fields: dict[str, SchemaInfo] = {}
    elem: SchemaInfo | None = None


class ResourceInfo(BaseModel):
    """Metadata of a resource or data source type."""

    model_config = ConfigDict(frozen=True)

    token: str | None = None
    fields: dict[str, SchemaInfo] = {}


class ProviderInfo(BaseModel):
    """Metadata of a provider and all of its resource and data source types."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    package: str | None = None
    resources: dict[str, ResourceInfo] = {}
    data_sources: dict[str, ResourceInfo] = {}

    def resource_info(self, type_: str, *, is_data_source: bool = False) -> ResourceInfo | None:
        return (self.data_sources if is_data_source else self.resources).get(type_)


class ProviderInfoSource(Protocol):
    """Source of provider schema information."""

    def get_provider_info(self, name: str) -> ProviderInfo | None: ...


class StaticProviderInfoSource:
    """A `ProviderInfoSource` serving a fixed mapping of provider infos."""

    def __init__(self, infos: Mapping[str, ProviderInfo]) -> None:
        self._infos = dict(infos)

    def get_provider_info(self, name: str) -> ProviderInfo | None:
        return self._infos.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._infos


class _ProviderInfoFile(BaseModel):
    providers: dict[str, ProviderInfo] = {}


def load_provider_info_source(path: Path) -> StaticProviderInfoSource:
    """Load provider infos from a TOML or JSON file.

    The file holds a ``providers`` table keyed by provider name::

        [providers.aws.resources.aws_s3_bucket]
        token = "aws:s3/bucket:Bucket"

        [providers.aws.resources.aws_s3_bucket.fields.bucket.default]
        auto_named = true

    Raises:
        ConfigurationError: If the file cannot be read or does not match the schema.

    """
    try:
        with path.open("rb") as f:
            data = json.load(f) if path.suffix == ".json" else tomllib.load(f)
    except (OSError, json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
        msg = f"Could not read provider info from {path}: {e}"
        raise ConfigurationError(msg) from e

    try:
        parsed = _ProviderInfoFile.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid provider info in {path}: {e}"
        raise ConfigurationError(msg) from e

    return StaticProviderInfoSource(
        {name: info.model_copy(update={"name": info.name or name}) for name, info in parsed.providers.items()},
    )


@dataclass(slots=True, frozen=True)
class Schemas:
    """Schema lookup capability of a resource, rooted at some property.

    ``info`` is None when nothing is known about the property.
    """

    info: SchemaInfo | None = None

    def property_schemas(self, key: str) -> Schemas:
        if self.info is None:
            return Schemas()
        return Schemas(self.info.fields.get(key))

    def element_schemas(self) -> Schemas:
        if self.info is None:
            return Schemas()
        return Schemas(self.info.elem)
