"""Dependency ordering shared by the binder and the generators."""

from ._algorithms import CycleError, topological_sort

__all__ = ["CycleError", "topological_sort"]
