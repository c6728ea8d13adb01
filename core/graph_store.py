"""
RELGRAPH GRAPH STORE - The Canonical Node & Edge Store

Every structural mutation of the component graph passes through this file.
It bridges registry component ids with rustworkx's integer indices:

  Python Layer (Business Logic)
  - Uses component ids: "header", "card-17"
  - Calls: store.add_edge(rel), store.neighbors("card-17")

  Bridge Layer (This File)
  - _node_map:  Dict[str, int]       (component id -> rustworkx index)
  - _inv_map:   Dict[int, str]       (rustworkx index -> component id)
  - _edge_map:  Dict[EdgeKey, int]   ((source, target, type) -> edge index)
  - _adjacency: Dict[str, Dict[str, int]]
                undirected neighbour -> number of stored edges between the pair

  Rust Layer (rustworkx.PyDiGraph, multigraph)
  - One node payload (ComponentNode) per component
  - One edge payload (Relationship) per (source, target, type)

Invariants (checked by check_consistency):
1. Node ids are unique; every known node has an adjacency entry
2. At most one edge per (source, target, type); re-adding merges metadata
3. _edge_map, the rustworkx edge set and _adjacency always agree
4. Edges never reference a missing node (rejected, never partially applied)

Rejected mutations are reported as diagnostics and never raise.

Thread Safety:
    NOT thread-safe. RelationshipGraph serializes access with a lock.
"""
import logging
from typing import Dict, List, Optional, Iterator

import rustworkx as rx

from core.ontology import RelationshipType, STORABLE_TYPES
from core.schemas import ComponentNode, Relationship, EdgeKey, merge_metadata
from infrastructure.diagnostics import DiagnosticReporter, ErrorCategory

logger = logging.getLogger("relgraph.graph_store")


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================

class GraphError(Exception):
    """Base exception for graph operations."""
    pass


class ReferentialError(GraphError):
    """An edge references a node that is not registered."""
    def __init__(self, source_id: str, target_id: str, missing: List[str]):
        self.source_id = source_id
        self.target_id = target_id
        self.missing = missing
        super().__init__(
            f"Relationship {source_id} -> {target_id} references unknown node(s): "
            f"{', '.join(missing)}"
        )


class ConsistencyError(GraphError):
    """
    An internal invariant of the store is violated.

    This indicates a defect in the engine itself, not a condition
    routine callers are expected to handle.
    """
    pass


# =============================================================================
# GRAPH STORE
# =============================================================================

class GraphStore:
    """
    In-memory component graph backed by rustworkx.

    Usage:
        store = GraphStore()
        store.add_or_update_node(ComponentNode(id="a", name="A"))
        store.add_or_update_node(ComponentNode(id="b", name="B"))
        store.add_edge(Relationship.parent_child("a", "b"))

        store.neighbors("b")     # ["a"]
        store.remove_node("a")   # cascades to every edge touching "a"
    """

    def __init__(self, reporter: Optional[DiagnosticReporter] = None):
        self._reporter = reporter if reporter is not None else DiagnosticReporter()
        self._init_storage()

    def _init_storage(self) -> None:
        self._graph: rx.PyDiGraph = rx.PyDiGraph(multigraph=True)
        self._node_map: Dict[str, int] = {}
        self._inv_map: Dict[int, str] = {}
        self._edge_map: Dict[EdgeKey, int] = {}
        # rustworkx recycles edge indices; sequence numbers keep insertion order
        self._edge_seq: Dict[int, int] = {}
        self._next_seq: int = 0
        self._adjacency: Dict[str, Dict[str, int]] = {}

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def node_count(self) -> int:
        return self._graph.num_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.num_edges()

    @property
    def is_empty(self) -> bool:
        return self.node_count == 0

    @property
    def reporter(self) -> DiagnosticReporter:
        return self._reporter

    # =========================================================================
    # NODE OPERATIONS
    # =========================================================================

    def add_or_update_node(self, node: ComponentNode) -> bool:
        """
        Insert a node, or overwrite its payload in place.

        Overwriting keeps the node's edges and its position in discovery
        order.

        Returns:
            True if the node was newly inserted
        """
        idx = self._node_map.get(node.id)
        if idx is not None:
            self._graph[idx] = node
            logger.debug(f"Updated node {node.id}")
            return False

        idx = self._graph.add_node(node)
        self._node_map[node.id] = idx
        self._inv_map[idx] = node.id
        self._adjacency[node.id] = {}
        logger.debug(f"Added node {node.id}")
        return True

    def remove_node(self, node_id: str) -> Optional[ComponentNode]:
        """
        Remove a node and every edge touching it, in both directions.

        Returns:
            The removed ComponentNode, or None if it was not registered
        """
        idx = self._node_map.get(node_id)
        if idx is None:
            return None

        node = self._graph[idx]
        removed = self.remove_edges_touching(node_id)

        self._graph.remove_node(idx)
        del self._node_map[node_id]
        del self._inv_map[idx]
        del self._adjacency[node_id]

        logger.debug(f"Removed node {node_id} ({len(removed)} edges cascaded)")
        return node

    def get_node(self, node_id: str) -> Optional[ComponentNode]:
        idx = self._node_map.get(node_id)
        return self._graph[idx] if idx is not None else None

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_map

    def node_ids(self) -> List[str]:
        """All node ids in discovery (registration) order."""
        return list(self._node_map)

    def iter_nodes(self) -> Iterator[ComponentNode]:
        """Iterate over all nodes in discovery order."""
        for idx in self._node_map.values():
            yield self._graph[idx]

    def get_all_nodes(self) -> List[ComponentNode]:
        return list(self.iter_nodes())

    def nodes_by_id(self) -> Dict[str, ComponentNode]:
        """Snapshot mapping of id -> node, in discovery order."""
        return {node_id: self._graph[idx] for node_id, idx in self._node_map.items()}

    # =========================================================================
    # EDGE OPERATIONS
    # =========================================================================

    def add_edge(self, relationship: Relationship) -> Optional[Relationship]:
        """
        Insert an edge, or merge it into the existing edge with the same
        (source, target, type).

        Rejected (no-op, reported) when an endpoint is unknown, the type is
        not storable or the strength is outside [0, 1].

        Returns:
            The stored Relationship, or None if rejected
        """
        source_id = relationship.source_id
        target_id = relationship.target_id

        rel_type = self._coerce_type(relationship)
        if rel_type is None:
            return None

        if not 0.0 <= relationship.strength <= 1.0:
            self._reporter.warning(
                "Cannot add relationship: strength outside [0, 1]",
                category=ErrorCategory.VALIDATION,
                metadata={
                    "source_id": source_id,
                    "target_id": target_id,
                    "strength": relationship.strength,
                },
            )
            return None

        missing = [i for i in (source_id, target_id) if i not in self._node_map]
        if missing:
            self._reporter.warning(
                "Cannot add relationship: one or both components do not exist",
                category=ErrorCategory.COMPONENT,
                metadata={"source_id": source_id, "target_id": target_id},
                exc=ReferentialError(source_id, target_id, sorted(set(missing))),
            )
            return None

        if relationship.type is not rel_type:
            relationship = Relationship(
                source_id=source_id,
                target_id=target_id,
                type=rel_type,
                strength=relationship.strength,
                metadata=merge_metadata({}, relationship.metadata),
            )

        key = relationship.key
        edge_idx = self._edge_map.get(key)
        if edge_idx is not None:
            merged = self._graph.get_edge_data_by_index(edge_idx).merged_with(relationship)
            self._graph.update_edge_by_index(edge_idx, merged)
            logger.debug(f"Merged relationship {source_id} -> {target_id} ({rel_type.value})")
            return merged

        stored = Relationship(
            source_id=source_id,
            target_id=target_id,
            type=rel_type,
            strength=relationship.strength,
            metadata=merge_metadata({}, relationship.metadata),
        )
        edge_idx = self._graph.add_edge(
            self._node_map[source_id], self._node_map[target_id], stored
        )
        self._edge_map[key] = edge_idx
        self._edge_seq[edge_idx] = self._next_seq
        self._next_seq += 1
        self._link(source_id, target_id)

        logger.debug(f"Added relationship {source_id} -> {target_id} ({rel_type.value})")
        return stored

    def remove_edge(
        self,
        source_id: str,
        target_id: str,
        rel_type: Optional[RelationshipType] = None,
    ) -> List[Relationship]:
        """
        Remove the edge source -> target of the given type, or every edge
        source -> target when rel_type is None.

        Returns:
            The removed relationships (empty if nothing matched)
        """
        if rel_type is not None:
            rel_type = self._lookup_type(rel_type, source_id, target_id)
            if rel_type is None:
                return []
            keys = [(source_id, target_id, rel_type)]
        else:
            keys = [
                key for key in self._edge_map
                if key[0] == source_id and key[1] == target_id
            ]

        removed = []
        for key in keys:
            edge_idx = self._edge_map.get(key)
            if edge_idx is not None:
                removed.append(self._remove_edge_index(key, edge_idx))
        return removed

    def remove_edges_touching(self, node_id: str) -> List[Relationship]:
        """Remove every edge with node_id as source or target."""
        removed = []
        for rel in self.all_edges(node_id):
            edge_idx = self._edge_map.get(rel.key)
            if edge_idx is not None:
                removed.append(self._remove_edge_index(rel.key, edge_idx))
        return removed

    def _remove_edge_index(self, key: EdgeKey, edge_idx: int) -> Relationship:
        rel = self._graph.get_edge_data_by_index(edge_idx)
        self._graph.remove_edge_from_index(edge_idx)
        del self._edge_map[key]
        del self._edge_seq[edge_idx]
        self._unlink(rel.source_id, rel.target_id)
        logger.debug(f"Removed relationship {rel.source_id} -> {rel.target_id} ({rel.type.value})")
        return rel

    def get_edge(
        self,
        source_id: str,
        target_id: str,
        rel_type: RelationshipType,
    ) -> Optional[Relationship]:
        rel_type = self._lookup_type(rel_type, source_id, target_id)
        if rel_type is None:
            return None
        edge_idx = self._edge_map.get((source_id, target_id, rel_type))
        if edge_idx is None:
            return None
        return self._graph.get_edge_data_by_index(edge_idx)

    def has_edge(
        self,
        source_id: str,
        target_id: str,
        rel_type: Optional[RelationshipType] = None,
    ) -> bool:
        if rel_type is not None:
            rel_type = self._lookup_type(rel_type, source_id, target_id)
            return rel_type is not None and (source_id, target_id, rel_type) in self._edge_map
        return any(
            key[0] == source_id and key[1] == target_id for key in self._edge_map
        )

    def get_all_edges(self) -> List[Relationship]:
        """All edges in insertion order."""
        return [
            self._graph.get_edge_data_by_index(edge_idx)
            for edge_idx in self._edge_map.values()
        ]

    # =========================================================================
    # ADJACENCY QUERIES
    # =========================================================================

    def out_edges(self, node_id: str) -> List[Relationship]:
        """Edges with node_id as source, in insertion order."""
        idx = self._node_map.get(node_id)
        if idx is None:
            return []
        return self._edges_by_index(self._graph.out_edge_indices(idx))

    def in_edges(self, node_id: str) -> List[Relationship]:
        """Edges with node_id as target, in insertion order."""
        idx = self._node_map.get(node_id)
        if idx is None:
            return []
        return self._edges_by_index(self._graph.in_edge_indices(idx))

    def all_edges(self, node_id: str) -> List[Relationship]:
        """Outgoing edges followed by incoming edges (a self-loop appears once)."""
        outgoing = self.out_edges(node_id)
        incoming = [rel for rel in self.in_edges(node_id) if rel.source_id != node_id]
        return outgoing + incoming

    def neighbors(self, node_id: str) -> List[str]:
        """
        Undirected neighbour view: outgoing targets and incoming sources.

        A node is never its own neighbour.
        """
        return list(self._adjacency.get(node_id, ()))

    def neighbor_count(self, node_id: str) -> int:
        return len(self._adjacency.get(node_id, ()))

    def _edges_by_index(self, edge_indices) -> List[Relationship]:
        ordered = sorted(edge_indices, key=self._edge_seq.__getitem__)
        return [self._graph.get_edge_data_by_index(i) for i in ordered]

    # =========================================================================
    # ADJACENCY INDEX MAINTENANCE
    # =========================================================================

    def _link(self, source_id: str, target_id: str) -> None:
        if source_id == target_id:
            return
        fwd = self._adjacency[source_id]
        fwd[target_id] = fwd.get(target_id, 0) + 1
        back = self._adjacency[target_id]
        back[source_id] = back.get(source_id, 0) + 1

    def _unlink(self, source_id: str, target_id: str) -> None:
        if source_id == target_id:
            return
        for a, b in ((source_id, target_id), (target_id, source_id)):
            entry = self._adjacency[a]
            remaining = entry[b] - 1
            if remaining:
                entry[b] = remaining
            else:
                del entry[b]

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def _coerce_type(self, relationship: Relationship) -> Optional[RelationshipType]:
        try:
            rel_type = RelationshipType(relationship.type)
        except ValueError:
            rel_type = None

        if rel_type is None or rel_type not in STORABLE_TYPES:
            self._reporter.warning(
                f"Cannot add relationship: type {relationship.type!r} is not storable",
                category=ErrorCategory.VALIDATION,
                metadata={
                    "source_id": relationship.source_id,
                    "target_id": relationship.target_id,
                },
            )
            return None
        return rel_type

    def _lookup_type(
        self,
        rel_type,
        source_id: str,
        target_id: str,
    ) -> Optional[RelationshipType]:
        try:
            return RelationshipType(rel_type)
        except ValueError:
            self._reporter.warning(
                f"Unknown relationship type {rel_type!r}",
                category=ErrorCategory.VALIDATION,
                metadata={"source_id": source_id, "target_id": target_id},
            )
            return None

    def check_consistency(self) -> None:
        """
        Verify every internal index agrees with the rustworkx graph.

        Raises:
            ConsistencyError: On the first violated invariant
        """
        if not (len(self._node_map) == len(self._inv_map) == self._graph.num_nodes()):
            raise ConsistencyError(
                f"Node maps out of sync: node_map={len(self._node_map)} "
                f"inv_map={len(self._inv_map)} graph={self._graph.num_nodes()}"
            )

        for node_id, idx in self._node_map.items():
            if self._inv_map.get(idx) != node_id:
                raise ConsistencyError(f"Bridge maps disagree for node {node_id}")
            if node_id not in self._adjacency:
                raise ConsistencyError(f"Node {node_id} missing from adjacency index")

        if set(self._adjacency) != set(self._node_map):
            raise ConsistencyError("Adjacency index holds unknown node ids")

        # Handshaking: every edge counted once as out and once as in
        indices = list(self._graph.node_indices())
        total_in = sum(self._graph.in_degree(i) for i in indices)
        total_out = sum(self._graph.out_degree(i) for i in indices)
        num_edges = self._graph.num_edges()
        if not (total_in == total_out == num_edges == len(self._edge_map) == len(self._edge_seq)):
            raise ConsistencyError(
                f"Edge count mismatch: in={total_in} out={total_out} graph={num_edges} "
                f"edge_map={len(self._edge_map)}"
            )

        expected: Dict[str, Dict[str, int]] = {node_id: {} for node_id in self._node_map}
        for key, edge_idx in self._edge_map.items():
            rel = self._graph.get_edge_data_by_index(edge_idx)
            if rel.key != key:
                raise ConsistencyError(f"Edge map key {key} points at {rel.key}")
            source_id, target_id, _ = key
            if source_id == target_id:
                continue
            expected[source_id][target_id] = expected[source_id].get(target_id, 0) + 1
            expected[target_id][source_id] = expected[target_id].get(source_id, 0) + 1

        for node_id, neighbours in expected.items():
            if neighbours != self._adjacency[node_id]:
                raise ConsistencyError(f"Adjacency index out of sync for node {node_id}")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def reset(self) -> None:
        """Drop every node and edge."""
        self._init_storage()
        logger.info("Graph store reset")
