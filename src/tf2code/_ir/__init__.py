"""Intermediate Representation (IR) module for tf2code.

One `Graph` is built per module of the configuration tree. Its nodes hold
bound expressions whose references point directly at other nodes, so later
passes and the generators never resolve names again.

Key types:
- Graph: the nodes of one module, grouped by kind
- Node and its subclasses: one per declaration
- BoundNode and its subclasses: resolved expressions
- BuildOptions: binding strictness and schema source
- build_graph: build the graph of one loaded module
"""

from ._binder import build_graph, dependencies
from ._bound import (
    BoundAttr,
    BoundBinary,
    BoundCall,
    BoundConditional,
    BoundIndex,
    BoundList,
    BoundLiteral,
    BoundLocalAccess,
    BoundMap,
    BoundMetaAccess,
    BoundModuleAccess,
    BoundNode,
    BoundRelativeAccess,
    BoundResourceAccess,
    BoundSplat,
    BoundStep,
    BoundTemplate,
    BoundUnary,
    BoundVariableAccess,
    is_literal_tree,
    referenced_nodes,
    walk,
)
from ._comments import extract_comments
from ._filter import filter_properties
from ._graph import Graph
from ._nodes import (
    Comments,
    LocalNode,
    ModuleNode,
    Node,
    NodeKind,
    OutputNode,
    ProviderNode,
    ResourceNode,
    VariableNode,
)
from ._options import BuildOptions
from ._schema import (
    DefaultInfo,
    ProviderInfo,
    ProviderInfoSource,
    ResourceInfo,
    SchemaInfo,
    Schemas,
    StaticProviderInfoSource,
    load_provider_info_source,
)

__all__ = [
    "BoundAttr",
    "BoundBinary",
    "BoundCall",
    "BoundConditional",
    "BoundIndex",
    "BoundList",
    "BoundLiteral",
    "BoundLocalAccess",
    "BoundMap",
    "BoundMetaAccess",
    "BoundModuleAccess",
    "BoundNode",
    "BoundRelativeAccess",
    "BoundResourceAccess",
    "BoundSplat",
    "BoundStep",
    "BoundTemplate",
    "BoundUnary",
    "BoundVariableAccess",
    "BuildOptions",
    "Comments",
    "DefaultInfo",
    "Graph",
    "LocalNode",
    "ModuleNode",
    "Node",
    "NodeKind",
    "OutputNode",
    "ProviderInfo",
    "ProviderInfoSource",
    "ResourceInfo",
    "ResourceNode",
    "SchemaInfo",
    "Schemas",
    "StaticProviderInfoSource",
    "VariableNode",
    "build_graph",
    "dependencies",
    "extract_comments",
    "filter_properties",
    "is_literal_tree",
    "load_provider_info_source",
    "referenced_nodes",
    "walk",
]
