"""Parse the ``*.tf`` files of one directory into a `ModuleConfig`."""

import logging
from pathlib import Path
from typing import Any

import hcl2
from lark.exceptions import LarkError

from tf2code._errors import LoadError

from ._config import Declaration, DeclarationKind, ModuleConfig, Position
from ._scan import PositionKey, scan_positions

logger = logging.getLogger(__name__)


def _strip_meta(value: Any) -> Any:
    """Drop the ``__start_line__``/``__end_line__`` keys some parser versions add."""
    if isinstance(value, dict):
        return {k: _strip_meta(v) for k, v in value.items() if not (k.startswith("__") and k.endswith("__"))}
    if isinstance(value, list):
        return [_strip_meta(item) for item in value]
    return value


class _FileReader:
    """Turns the parsed content of one file into declarations."""

    def __init__(self, filename: str, text: str, config: ModuleConfig) -> None:
        self._filename = filename
        self._text = text
        self._config = config
        self._positions = scan_positions(text)

    def _position(self, key: PositionKey) -> Position:
        lines = self._positions.get(key)
        if not lines:
            logger.debug(f"No source position found for {key} in {self._filename}")
            return Position.invalid()
        return Position(self._filename, lines.pop(0))

    def _declare(
        self,
        group: list[Declaration],
        kind: DeclarationKind,
        name: str,
        body: Any,
        key: PositionKey,
        type_: str = "",
    ) -> None:
        group.append(
            Declaration(
                kind=kind,
                name=name,
                body=body,
                type=type_,
                position=self._position(key),
                source_text=self._text,
            ),
        )

    def read(self, data: dict[str, Any]) -> None:  # noqa: C901
        config = self._config
        for block in data.get("provider", []):
            for provider_name, body in block.items():
                alias = body.get("alias") if isinstance(body, dict) else None
                name = f"{provider_name}.{alias}" if isinstance(alias, str) and alias else provider_name
                self._declare(
                    config.providers,
                    DeclarationKind.PROVIDER,
                    name,
                    body,
                    ("provider", "", provider_name),
                    provider_name,
                )

        for block_kind, kind in (("resource", DeclarationKind.RESOURCE), ("data", DeclarationKind.DATA)):
            for block in data.get(block_kind, []):
                for type_, instances in block.items():
                    for name, body in instances.items():
                        self._declare(config.resources, kind, name, body, (block_kind, type_, name), type_)

        for block in data.get("variable", []):
            for name, body in block.items():
                self._declare(config.variables, DeclarationKind.VARIABLE, name, body, ("variable", "", name))

        for block in data.get("locals", []):
            for name, value in block.items():
                self._declare(config.locals, DeclarationKind.LOCAL, name, value, ("locals", "", name))

        for block in data.get("output", []):
            for name, body in block.items():
                self._declare(config.outputs, DeclarationKind.OUTPUT, name, body, ("output", "", name))

        for block in data.get("module", []):
            for name, body in block.items():
                self._declare(config.modules, DeclarationKind.MODULE, name, body, ("module", "", name))


def _display_name(path: Path, root_dir: Path | None) -> str:
    if root_dir is not None:
        try:
            return path.resolve().relative_to(root_dir).as_posix()
        except ValueError:
            pass
    return path.as_posix()


def load_module_config(directory: Path, root_dir: Path | None = None) -> ModuleConfig:
    """Parse every ``*.tf`` file in ``directory``, in file name order.

    Args:
        directory: The module directory.
        root_dir: The root module directory. File names in positions are made
            relative to it when possible.

    Returns:
        The declarations of the module.

    Raises:
        LoadError: If a file cannot be read or parsed.

    """
    config = ModuleConfig()
    for path in sorted(directory.glob("*.tf")):
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Could not read {path}: {e}"
            raise LoadError(msg) from e
        try:
            data = _strip_meta(hcl2.loads(text))
        except LarkError as e:
            msg = f"Could not parse {path}: {e}"
            raise LoadError(msg) from e

        _FileReader(_display_name(path, root_dir), text, config).read(data)
        logger.debug(f"Parsed {path}")

    return config
