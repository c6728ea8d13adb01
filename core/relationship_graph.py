"""
RELGRAPH FACADE - One Entry Point, One Lock

RelationshipGraph wires the three collaborators together and serializes
every public call behind a single re-entrant lock, so a mutation never
interleaves with a read:

    RelationshipGraph
        ├── RelationshipManager   (registration, detection, summaries)
        ├── GraphAnalyzer         (paths, cycles, hubs, dependency order)
        └── VisualizationExporter (wire-format exports)

The collaborators themselves stay lock-free and can be used directly
where a caller already guarantees single-threaded access.

Usage:
    graph = RelationshipGraph.from_config()
    graph.detect(ComponentNode.create(id="card", name="Card", parent_id="app"))
    graph.shortest_path("app", "card")
    graph.export_graph().to_dict()
"""
import threading
from pathlib import Path
from typing import List, Optional, Sequence

from core.ontology import RelationshipType
from core.schemas import ComponentNode, ComponentSummary, Relationship
from core.graph_store import GraphStore
from core.detection import DetectionStrategy
from core.relationship_manager import RelationshipManager
from core.analyzer import GraphAnalyzer, HubComponent, DependencyDepth, PropUsage
from infrastructure.config import EngineConfig, load_config
from infrastructure.diagnostics import DiagnosticReporter
from infrastructure.event_bus import EventBus
from viz.core import (
    VisualizationExporter,
    GraphExport,
    HierarchyNode,
    AdjacencyMatrix,
    LegendEntry,
    ForceGraph,
)


class RelationshipGraph:
    """Thread-safe facade over manager, analyzer and exporter."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        store: Optional[GraphStore] = None,
        strategies: Optional[Sequence[DetectionStrategy]] = None,
        event_bus: Optional[EventBus] = None,
        reporter: Optional[DiagnosticReporter] = None,
    ):
        self._lock = threading.RLock()
        self.config = config or EngineConfig()
        self.manager = RelationshipManager(
            store=store,
            strategies=strategies,
            event_bus=event_bus,
            reporter=reporter,
            config=self.config,
        )
        self.analyzer = GraphAnalyzer(
            self.manager.store,
            reporter=self.manager.reporter,
            config=self.config.analyzer,
        )
        self.exporter = VisualizationExporter(self.manager.store)

    @classmethod
    def from_config(cls, path: Optional[Path] = None, **kwargs) -> "RelationshipGraph":
        """Build a graph from a TOML config file (config/relgraph.toml by default)."""
        return cls(config=load_config(path), **kwargs)

    @property
    def store(self) -> GraphStore:
        return self.manager.store

    @property
    def event_bus(self) -> EventBus:
        return self.manager.event_bus

    @property
    def reporter(self) -> DiagnosticReporter:
        return self.manager.reporter

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def register_component(self, node: ComponentNode) -> bool:
        with self._lock:
            return self.manager.register_component(node)

    def unregister_component(self, node_id: str) -> bool:
        with self._lock:
            return self.manager.unregister_component(node_id)

    def detect(self, node: ComponentNode, force_redetect: bool = False) -> ComponentSummary:
        with self._lock:
            return self.manager.detect(node, force_redetect=force_redetect)

    def add_detection_strategy(self, strategy: DetectionStrategy) -> None:
        with self._lock:
            self.manager.add_detection_strategy(strategy)

    def remove_detection_strategy(self, strategy_name: str) -> bool:
        with self._lock:
            return self.manager.remove_detection_strategy(strategy_name)

    def add_relationship(self, relationship: Relationship) -> Optional[Relationship]:
        with self._lock:
            return self.manager.add_relationship(relationship)

    def remove_relationship(
        self,
        source_id: str,
        target_id: str,
        rel_type: Optional[RelationshipType] = None,
    ) -> List[Relationship]:
        with self._lock:
            return self.manager.remove_relationship(source_id, target_id, rel_type)

    def add_dependency(self, source_id: str, target_id: str) -> Optional[Relationship]:
        with self._lock:
            return self.manager.add_dependency(source_id, target_id)

    def set_parent_child(self, parent_id: str, child_id: str) -> Optional[Relationship]:
        with self._lock:
            return self.manager.set_parent_child(parent_id, child_id)

    def reset(self) -> None:
        with self._lock:
            self.manager.reset()

    # =========================================================================
    # DERIVED VIEWS
    # =========================================================================

    def compute_summary(self, node_id: str) -> ComponentSummary:
        with self._lock:
            return self.manager.compute_summary(node_id)

    def get_relationships(self, node_id: str) -> List[Relationship]:
        with self._lock:
            return self.manager.get_relationships(node_id)

    def get_connected_components(self, node_id: str) -> List[str]:
        with self._lock:
            return self.manager.get_connected_components(node_id)

    def get_related_state_keys(self, node_id: str) -> List[str]:
        with self._lock:
            return self.manager.get_related_state_keys(node_id)

    def get_affected_components(self, node_id: str, recursive: bool = True) -> List[str]:
        with self._lock:
            return self.manager.get_affected_components(node_id, recursive=recursive)

    # =========================================================================
    # ANALYSIS
    # =========================================================================

    def shortest_path(self, source_id: str, target_id: str) -> List[str]:
        with self._lock:
            return self.analyzer.shortest_path(source_id, target_id)

    def find_cycles(self, start_id: str) -> List[List[str]]:
        with self._lock:
            return self.analyzer.find_cycles(start_id)

    def find_hubs(self, threshold: Optional[int] = None) -> List[HubComponent]:
        with self._lock:
            return self.analyzer.find_hubs(threshold)

    def find_isolated(self, threshold: Optional[int] = None) -> List[str]:
        with self._lock:
            return self.analyzer.find_isolated(threshold)

    def dependency_depth(self, node_id: str) -> DependencyDepth:
        with self._lock:
            return self.analyzer.dependency_depth(node_id)

    def common_dependencies(self, node_ids: List[str]) -> List[str]:
        with self._lock:
            return self.analyzer.common_dependencies(node_ids)

    def topological_order(self) -> List[str]:
        with self._lock:
            return self.analyzer.topological_order()

    def has_dependency_cycle(self) -> bool:
        with self._lock:
            return self.analyzer.has_dependency_cycle()

    def analyze_prop_usage(self, node_id: str) -> List[PropUsage]:
        with self._lock:
            return self.analyzer.analyze_prop_usage(node_id)

    # =========================================================================
    # EXPORT
    # =========================================================================

    def export_graph(self) -> GraphExport:
        with self._lock:
            return self.exporter.export_graph()

    def export_focused(self, node_id: str) -> GraphExport:
        with self._lock:
            return self.exporter.export_focused(node_id)

    def export_hierarchy(self, root_id: str) -> HierarchyNode:
        with self._lock:
            return self.exporter.export_hierarchy(root_id)

    def export_adjacency_matrix(self) -> AdjacencyMatrix:
        with self._lock:
            return self.exporter.export_adjacency_matrix()

    def export_legend(self) -> List[LegendEntry]:
        with self._lock:
            return self.exporter.export_legend()

    def export_force_graph(self) -> ForceGraph:
        with self._lock:
            return self.exporter.export_force_graph()

    def check_consistency(self) -> None:
        with self._lock:
            self.store.check_consistency()
