"""
RELGRAPH VISUALIZATION - Exports for Debug & Graph UIs

This package turns the component graph into the shapes consumed by
external visualization and debug views:
- core: wire structures, VisualizationExporter, Arrow IPC serialization
"""

from viz.core import (
    VizNode,
    VizEdge,
    GraphExport,
    HierarchyNode,
    AdjacencyMatrix,
    LegendEntry,
    ForceNode,
    ForceLink,
    ForceGraph,
    VisualizationExporter,
    serialize_to_arrow,
)

__all__ = [
    "VizNode",
    "VizEdge",
    "GraphExport",
    "HierarchyNode",
    "AdjacencyMatrix",
    "LegendEntry",
    "ForceNode",
    "ForceLink",
    "ForceGraph",
    "VisualizationExporter",
    "serialize_to_arrow",
]
