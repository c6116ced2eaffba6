"""Graph algorithms for ordering nodes by their dependencies."""

from collections import deque
from collections.abc import Collection, Hashable, Mapping
from typing import TypeVar

T = TypeVar("T", bound=Hashable)


class CycleError(ValueError):
    """Raised when a graph that must be acyclic contains a cycle.

    Attributes:
        remaining: The nodes that could not be ordered (every cycle is among them).

    """

    def __init__(self, remaining: list[object]) -> None:
        super().__init__("Cycle detected in graph")
        self.remaining = remaining


def topological_sort(successors: Mapping[T, Collection[T]]) -> list[T]:
    """Sort a graph topologically (dependencies before dependents).

    Given a graph represented as a mapping from nodes to their successors
    (nodes that depend on them), return nodes in an order where each node
    appears before all nodes that depend on it. Among nodes that are ready at
    the same time, the order of ``successors`` is kept, so the result is
    deterministic.

    Args:
        successors: Mapping from node to collection of nodes that depend on it.
            An edge (a -> b) means "b depends on a".

    Returns:
        List of nodes in topological order.

    Raises:
        CycleError: If the graph contains a cycle.

    Example:
        >>> # the bucket depends on the variable, the policy on the bucket
        >>> topological_sort({"policy": [], "var": ["bucket"], "bucket": ["policy"]})
        ['var', 'bucket', 'policy']

    """
    indegree: dict[T, int] = {}
    for node, deps in successors.items():
        indegree.setdefault(node, 0)
        for dep in deps:
            indegree[dep] = indegree.get(dep, 0) + 1

    # Start with nodes that have no predecessors (in-degree 0)
    queue = deque(node for node, deg in indegree.items() if deg == 0)
    order: list[T] = []

    while queue:
        node = queue.popleft()
        order.append(node)
        for successor in successors.get(node, ()):
            indegree[successor] -= 1
            if indegree[successor] == 0:
                queue.append(successor)

    if len(order) != len(indegree):
        ordered = set(order)
        raise CycleError([node for node in indegree if node not in ordered])

    return order
