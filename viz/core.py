"""
RELGRAPH VISUALIZATION CORE - The Exporter's Data Model

This module turns the GraphStore into the shapes consumed by external
visualization and debug UIs. The field names of every to_dict() result are
a wire contract: external code depends on them structurally.

Architecture:
- VizNode/VizEdge: lightweight visualization-focused representations
- GraphExport: nodes + edges, for full and focused views
- HierarchyNode: parent-child tree rooted at one component
- AdjacencyMatrix: strength matrix over a stable component ordering
- LegendEntry: relationship types present, with counts and descriptions
- ForceGraph: D3 force-layout format (nodes with groups, weighted links)

Performance:
- Uses polars for Arrow IPC serialization of large exports
- Every export is recomputed from the current store; nothing is cached
"""
import io
from typing import Optional, Dict, List, Any, Set, Tuple

import msgspec
import polars as pl

from core.ontology import RelationshipType, describe
from core.graph_store import GraphStore


# =============================================================================
# COLOR PALETTE (Consistent across views)
# =============================================================================

# Edge colors by relationship type (hex)
EDGE_COLORS: Dict[str, str] = {
    RelationshipType.PARENT_CHILD.value: "#457B9D",         # Blue - containment
    RelationshipType.PROP_DEPENDENCY.value: "#2A9D8F",      # Teal
    RelationshipType.STATE_DEPENDENCY.value: "#F4A261",     # Orange
    RelationshipType.CONTEXT_DEPENDENCY.value: "#9B59B6",   # Purple
    RelationshipType.REFERENCE.value: "#3498DB",            # Light blue
    RelationshipType.EVENT_DEPENDENCY.value: "#E63946",     # Red
    RelationshipType.CUSTOM.value: "#E83E8C",               # Pink
    "default": "#6C757D",                                   # Gray
}

# Multiplier from strength in [0, 1] to force-graph link width
LINK_WIDTH_SCALE = 5


# =============================================================================
# VISUALIZATION DATA STRUCTURES
# =============================================================================

class VizNode(msgspec.Struct, kw_only=True, rename={"neighbor_count": "neighborCount"}):
    """Node representation for graph views."""
    id: str
    name: str
    type: str
    neighbor_count: int = 0


class VizEdge(msgspec.Struct, kw_only=True):
    """Edge representation for graph views."""
    source: str
    target: str
    type: str
    strength: float = 1.0

    @classmethod
    def from_relationship(cls, rel) -> "VizEdge":
        return cls(
            source=rel.source_id,
            target=rel.target_id,
            type=rel.type.value,
            strength=rel.strength,
        )


class GraphExport(msgspec.Struct, kw_only=True):
    """Nodes and edges of a (possibly focused) graph view."""
    nodes: List[VizNode] = msgspec.field(default_factory=list)
    edges: List[VizEdge] = msgspec.field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return msgspec.to_builtins(self)


class HierarchyNode(msgspec.Struct, kw_only=True):
    """One level of the parent-child tree."""
    id: str
    name: str
    type: str = "unknown"
    children: List["HierarchyNode"] = msgspec.field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return msgspec.to_builtins(self)


class AdjacencyMatrix(msgspec.Struct, kw_only=True):
    """
    matrix[i][j] is the strength of the edge components[i] -> components[j],
    0 when absent. With several edge types on one ordered pair, the most
    recently inserted edge wins.
    """
    components: List[str] = msgspec.field(default_factory=list)
    matrix: List[List[float]] = msgspec.field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return msgspec.to_builtins(self)


class LegendEntry(msgspec.Struct, kw_only=True):
    type: str
    count: int
    description: str


class ForceNode(msgspec.Struct, kw_only=True):
    id: str
    name: str
    type: str
    group: int


class ForceLink(msgspec.Struct, kw_only=True):
    source: str
    target: str
    value: int
    type: str


class ForceGraph(msgspec.Struct, kw_only=True):
    """D3 force-directed layout input."""
    nodes: List[ForceNode] = msgspec.field(default_factory=list)
    links: List[ForceLink] = msgspec.field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return msgspec.to_builtins(self)


# =============================================================================
# EXPORTER
# =============================================================================

class VisualizationExporter:
    """
    Read-only exports of the component graph.

    Usage:
        exporter = VisualizationExporter(manager.store)
        exporter.export_graph().to_dict()
        exporter.export_hierarchy("app").to_dict()
    """

    def __init__(self, store: GraphStore):
        self.store = store

    def _viz_node(self, node) -> VizNode:
        return VizNode(
            id=node.id,
            name=node.name,
            type=node.type,
            neighbor_count=self.store.neighbor_count(node.id),
        )

    def export_graph(self) -> GraphExport:
        """Every node (discovery order) and every edge (insertion order)."""
        return GraphExport(
            nodes=[self._viz_node(node) for node in self.store.iter_nodes()],
            edges=[VizEdge.from_relationship(rel) for rel in self.store.get_all_edges()],
        )

    def export_focused(self, node_id: str) -> GraphExport:
        """
        A component, its direct neighbours and the edges touching it.

        Unknown components produce an empty export.
        """
        if not self.store.has_node(node_id):
            return GraphExport()

        focus: Set[str] = set(self.store.neighbors(node_id))
        focus.add(node_id)

        return GraphExport(
            nodes=[
                self._viz_node(node) for node in self.store.iter_nodes()
                if node.id in focus
            ],
            edges=[
                VizEdge.from_relationship(rel) for rel in self.store.get_all_edges()
                if rel.touches(node_id)
            ],
        )

    def export_hierarchy(self, root_id: str) -> HierarchyNode:
        """
        Parent-child tree below root_id.

        Each branch carries its own visited set (its ancestors), so a
        component re-entering its own branch is cut while the same component
        may still appear under several different branches.
        """
        tree = self._build_tree(root_id, frozenset())
        if tree is None:
            return HierarchyNode(id=root_id, name=root_id, type="unknown")
        return tree

    def _build_tree(self, node_id: str, ancestors: frozenset) -> Optional[HierarchyNode]:
        if node_id in ancestors:
            return None
        node = self.store.get_node(node_id)
        if node is None:
            return None

        branch = ancestors | {node_id}
        children = []
        for rel in self.store.out_edges(node_id):
            if rel.type is not RelationshipType.PARENT_CHILD:
                continue
            child = self._build_tree(rel.target_id, branch)
            if child is not None:
                children.append(child)

        return HierarchyNode(
            id=node_id,
            name=node.name or node_id,
            type=node.type or "unknown",
            children=children,
        )

    def export_adjacency_matrix(self) -> AdjacencyMatrix:
        components = self.store.node_ids()
        position = {node_id: i for i, node_id in enumerate(components)}
        matrix = [[0.0] * len(components) for _ in components]

        for rel in self.store.get_all_edges():
            matrix[position[rel.source_id]][position[rel.target_id]] = rel.strength

        return AdjacencyMatrix(components=components, matrix=matrix)

    def export_legend(self) -> List[LegendEntry]:
        """Relationship types present in the graph, in order of first use."""
        counts: Dict[RelationshipType, int] = {}
        for rel in self.store.get_all_edges():
            counts[rel.type] = counts.get(rel.type, 0) + 1

        return [
            LegendEntry(type=rel_type.value, count=count, description=describe(rel_type))
            for rel_type, count in counts.items()
        ]

    def export_force_graph(self) -> ForceGraph:
        """
        D3 force-graph format.

        group: 1-based index of the component type, numbered in the order
        types are first seen during discovery.
        value: strength scaled to an integer link width (0-5).
        """
        groups: Dict[str, int] = {}
        nodes = []
        for node in self.store.iter_nodes():
            group = groups.setdefault(node.type, len(groups) + 1)
            nodes.append(ForceNode(id=node.id, name=node.name, type=node.type, group=group))

        links = [
            ForceLink(
                source=rel.source_id,
                target=rel.target_id,
                value=round(rel.strength * LINK_WIDTH_SCALE),
                type=rel.type.value,
            )
            for rel in self.store.get_all_edges()
        ]
        return ForceGraph(nodes=nodes, links=links)


# =============================================================================
# ARROW IPC SERIALIZATION
# =============================================================================

def serialize_to_arrow(export: GraphExport) -> Tuple[bytes, bytes]:
    """
    Serialize a GraphExport to Apache Arrow IPC format.

    Returns:
        Tuple of (nodes_arrow_bytes, edges_arrow_bytes)

    Edges carry an extra `color` column from EDGE_COLORS for renderers
    that do not keep their own palette.
    """
    nodes_df = pl.DataFrame(
        {
            "id": [n.id for n in export.nodes],
            "name": [n.name for n in export.nodes],
            "type": [n.type for n in export.nodes],
            "neighborCount": [n.neighbor_count for n in export.nodes],
        },
        schema={"id": pl.Utf8, "name": pl.Utf8, "type": pl.Utf8, "neighborCount": pl.Int64},
    )

    edges_df = pl.DataFrame(
        {
            "source": [e.source for e in export.edges],
            "target": [e.target for e in export.edges],
            "type": [e.type for e in export.edges],
            "strength": [e.strength for e in export.edges],
            "color": [EDGE_COLORS.get(e.type, EDGE_COLORS["default"]) for e in export.edges],
        },
        schema={
            "source": pl.Utf8,
            "target": pl.Utf8,
            "type": pl.Utf8,
            "strength": pl.Float64,
            "color": pl.Utf8,
        },
    )

    nodes_buffer = io.BytesIO()
    edges_buffer = io.BytesIO()

    nodes_df.write_ipc(nodes_buffer)
    edges_df.write_ipc(edges_buffer)

    return nodes_buffer.getvalue(), edges_buffer.getvalue()
