"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import cast

from tf2code._errors import ConfigurationError
from tf2code._gen import VALID_LANGUAGES


class ConfigError(ConfigurationError):
    """Error in tf2code configuration."""


@dataclass(slots=True, frozen=True)
class Tf2CodeConfig:
    """Configuration loaded from pyproject.toml.

    All relative paths are resolved from the project root (directory containing pyproject.toml).
    Unset values are ``None`` so that command-line defaults apply.
    """

    target_language: str | None = None
    path: Path | None = None
    output: Path | None = None
    provider_info: Path | None = None
    sdk_version: str | None = None
    filter_resource_names: bool | None = None
    resource_name_property: str | None = None
    annotate_locations: bool | None = None
    allow_missing_providers: bool | None = None
    allow_missing_variables: bool | None = None
    allow_missing_comments: bool | None = None
    prompt_data_sources: bool | None = None
    project_root: Path | None = None


_PATH_KEYS = {"path": "path", "output": "output", "provider-info": "provider_info"}
_STRING_KEYS = {"sdk-version": "sdk_version", "resource-name-property": "resource_name_property"}
_BOOL_KEYS = {
    "filter-resource-names": "filter_resource_names",
    "annotate-locations": "annotate_locations",
    "allow-missing-providers": "allow_missing_providers",
    "allow-missing-variables": "allow_missing_variables",
    "allow-missing-comments": "allow_missing_comments",
    "prompt-data-sources": "prompt_data_sources",
}


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _parse_target_language(value: object) -> str:
    if not isinstance(value, str):
        msg = "Invalid [tool.tf2code].target-language: expected string"
        raise ConfigError(msg)
    if value not in VALID_LANGUAGES:
        expected = ", ".join(VALID_LANGUAGES)
        msg = f"Invalid [tool.tf2code].target-language '{value}'. Expected one of {expected}"
        raise ConfigError(msg)
    return value


def load_config(pyproject_path: Path) -> Tf2CodeConfig:
    """Load and validate [tool.tf2code] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed Tf2CodeConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    # Extract [tool.tf2code] section
    tool_section = data.get("tool", {})
    section = cast("dict[str, object]", tool_section.get("tf2code", {}))

    if not section:
        # No [tool.tf2code] section - return empty config
        return Tf2CodeConfig(project_root=project_root)

    unknown = sorted(set(section) - {"target-language", *_PATH_KEYS, *_STRING_KEYS, *_BOOL_KEYS})
    if unknown:
        msg = f"Unknown [tool.tf2code] key(s): {', '.join(unknown)}"
        raise ConfigError(msg)

    values: dict[str, object] = {"project_root": project_root}
    if "target-language" in section:
        values["target_language"] = _parse_target_language(section["target-language"])

    for key, field_name in _PATH_KEYS.items():
        if key not in section:
            continue
        value = section[key]
        if not isinstance(value, str):
            msg = f"Invalid [tool.tf2code].{key}: expected string path"
            raise ConfigError(msg)
        path = Path(value)
        if not path.is_absolute():
            path = project_root / path
        values[field_name] = path

    for key, field_name in _STRING_KEYS.items():
        if key not in section:
            continue
        if not isinstance(section[key], str):
            msg = f"Invalid [tool.tf2code].{key}: expected string"
            raise ConfigError(msg)
        values[field_name] = section[key]

    for key, field_name in _BOOL_KEYS.items():
        if key not in section:
            continue
        if not isinstance(section[key], bool):
            msg = f"Invalid [tool.tf2code].{key}: expected boolean"
            raise ConfigError(msg)
        values[field_name] = section[key]

    return Tf2CodeConfig(**values)  # type: ignore[arg-type]


def get_config() -> Tf2CodeConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        Tf2CodeConfig (may be empty if no pyproject.toml or no [tool.tf2code] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return Tf2CodeConfig()
    return load_config(pyproject_path)
