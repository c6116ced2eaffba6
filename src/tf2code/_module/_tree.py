"""The module tree: the root module and, recursively, the modules it calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Self

from tf2code._errors import LoadError

from ._loader import load_module_config

if TYPE_CHECKING:
    from ._config import ModuleConfig
    from ._storage import ModuleStorage

logger = logging.getLogger(__name__)

_LOCAL_SOURCE_PREFIXES = ("./", "../")


@dataclass(slots=True)
class ModuleTree:
    """A module and its child modules.

    Attributes:
        name: The module call name (empty for the root module).
        directory: Directory holding the module's ``*.tf`` files.
        path: Module call names from the root to this module (``()`` for the root).

    """

    name: str
    directory: Path
    path: tuple[str, ...] = ()
    _config: ModuleConfig | None = None
    _children: list[ModuleTree] = field(default_factory=list)

    @classmethod
    def new(cls, name: str, directory: str | Path) -> Self:
        """Create an unloaded tree rooted at ``directory``.

        Raises:
            LoadError: If ``directory`` is not an existing directory.

        """
        directory = Path(directory)
        if not directory.is_dir():
            msg = f"Module directory {directory} does not exist"
            raise LoadError(msg)
        return cls(name=name, directory=directory)

    @property
    def loaded(self) -> bool:
        return self._config is not None

    @property
    def config(self) -> ModuleConfig:
        if self._config is None:
            msg = f"Module {self.display_path} has not been loaded"
            raise LoadError(msg)
        return self._config

    @property
    def display_path(self) -> str:
        return ".".join(("root", *self.path))

    def children(self) -> list[ModuleTree]:
        """Child modules, in module call order."""
        return list(self._children)

    def load(self, storage: ModuleStorage) -> None:
        """Parse this module and every module it calls, recursively.

        Raises:
            LoadError: If a file cannot be parsed, a module source cannot be
                resolved or module calls form a cycle.

        """
        root_dir = self.directory.resolve()
        self._load(storage, root_dir, ())

    def _load(self, storage: ModuleStorage, root_dir: Path, ancestors: tuple[Path, ...]) -> None:
        self._config = load_module_config(self.directory, root_dir)
        self._children = []
        logger.debug(f"Loaded module {self.display_path} from {self.directory} ({len(self._config)} declarations)")

        ancestors = (*ancestors, self.directory.resolve())
        for call in self._config.modules:
            source = call.body.get("source") if isinstance(call.body, dict) else None
            if not isinstance(source, str) or not source:
                msg = f"Module call {call.name!r} in {self.display_path} has no source"
                raise LoadError(msg)

            child_path = (*self.path, call.name)
            if source.startswith(_LOCAL_SOURCE_PREFIXES):
                child_dir = self.directory / source
            else:
                child_dir = storage.fetch(".".join(("root", *child_path)), source)

            if not child_dir.is_dir():
                msg = f"Module {call.name!r} source {source!r} does not exist ({child_dir})"
                raise LoadError(msg)
            if child_dir.resolve() in ancestors:
                msg = f"Module {call.name!r} in {self.display_path} calls one of its ancestors ({source!r})"
                raise LoadError(msg)

            child = type(self)(name=call.name, directory=child_dir, path=child_path)
            child._load(storage, root_dir, ancestors)  # noqa: SLF001
            self._children.append(child)
