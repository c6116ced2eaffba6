from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from ._bound import BoundNode
    from ._nodes import ResourceNode


def filter_properties(resource: ResourceNode, keep: Callable[[str, BoundNode], bool]) -> None:
    """Remove, in place, every property of ``resource`` for which ``keep(key, value)`` is false."""
    resource.properties = {key: value for key, value in resource.properties.items() if keep(key, value)}
