"""Shared fixtures: Terraform modules written into temporary directories."""

from collections.abc import Callable
from pathlib import Path
from textwrap import dedent
from typing import TypeAlias

import pytest

from tf2code._convert import build_forest
from tf2code._ir import BuildOptions, Graph
from tf2code._module import ModuleStorage, ModuleTree

WriteModule: TypeAlias = Callable[..., Path]


@pytest.fixture
def write_module(tmp_path: Path) -> WriteModule:
    """Return a function writing ``{filename: text}`` into ``tmp_path / subdir``."""

    def write(subdir: str = "", /, **files: str) -> Path:
        directory = tmp_path / subdir if subdir else tmp_path
        directory.mkdir(parents=True, exist_ok=True)
        for name, text in files.items():
            (directory / f"{name}.tf").write_text(dedent(text).lstrip("\n"), encoding="utf-8")
        return directory

    return write


@pytest.fixture
def storage(tmp_path: Path) -> ModuleStorage:
    return ModuleStorage.default(tmp_path / ".terraform")


def load_tree(directory: Path, storage: ModuleStorage) -> ModuleTree:
    tree = ModuleTree.new("", directory)
    tree.load(storage)
    return tree


def load_forest(directory: Path, storage: ModuleStorage, **options: bool) -> list[Graph]:
    """Load and bind the module tree at ``directory``, children first."""
    return build_forest(load_tree(directory, storage), True, BuildOptions(**options))  # noqa: FBT003
