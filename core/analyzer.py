"""
RELGRAPH ANALYZER - Graph Algorithms over the Component Graph

This module provides read-only analytics over the GraphStore.
These queries answer questions like:
- How are two components connected? (shortest path)
- Do dependencies loop back on themselves? (cycles)
- Which components are central, which are orphaned? (hubs / isolation)
- How deep are dependency chains? (dependency depth)
- In what order can components be initialised? (topological order)

All methods observe but never modify. Every query recomputes from the
current store state; nothing is cached between calls.

Traversal views:
- shortest_path, hubs, isolation: UNDIRECTED neighbour view
- find_cycles: forward (outgoing) edges of every type
- dependency_depth, common_dependencies, topological_order: depends_on
  edges only (sources of incoming prop/state/context edges)

Cycle policy: a cycle met during a dependency walk is reported as a
CycleWarning diagnostic and skipped. Queries return a best-effort result
and never raise.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import rustworkx as rx

from core.ontology import RelationshipType, is_dependency
from core.schemas import PROP_NAMES
from core.graph_store import GraphStore
from infrastructure.config import AnalyzerConfig
from infrastructure.diagnostics import DiagnosticReporter, ErrorCategory

logger = logging.getLogger("relgraph.analyzer")


class CycleWarning(UserWarning):
    """A dependency walk met a cycle; processing continued without it."""
    def __init__(self, component_id: str, path: Optional[List[str]] = None):
        self.component_id = component_id
        self.path = path or []
        message = f"Cycle detected involving component: {component_id}"
        if self.path:
            message += f" ({' -> '.join(self.path)})"
        super().__init__(message)


# =============================================================================
# DATA CLASSES FOR RESULTS
# =============================================================================

@dataclass
class HubComponent:
    """A component with many direct neighbours."""
    id: str
    connection_count: int


@dataclass
class DependencyDepth:
    """
    Result of dependency_depth().

    max_depth: edges on the longest dependency chain found from the start
    dependency_paths: dependency id -> path from the start to it (inclusive)
    """
    max_depth: int = 0
    dependency_paths: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class PropUsage:
    """How one prop name flows through a component's prop-dependency edges."""
    prop_name: str
    source_components: List[str] = field(default_factory=list)
    target_components: List[str] = field(default_factory=list)
    usage_count: int = 0


# =============================================================================
# ANALYZER
# =============================================================================

class GraphAnalyzer:
    """
    Read-only graph algorithms.

    Usage:
        analyzer = GraphAnalyzer(manager.store, reporter=manager.reporter)
        analyzer.shortest_path("header", "card")
        analyzer.topological_order()
    """

    def __init__(
        self,
        store: GraphStore,
        reporter: Optional[DiagnosticReporter] = None,
        config: Optional[AnalyzerConfig] = None,
    ):
        self.store = store
        self.reporter = reporter if reporter is not None else store.reporter
        self.config = config or AnalyzerConfig()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def depends_on(self, node_id: str) -> List[str]:
        """Distinct sources of incoming dependency edges, in edge order."""
        return list(dict.fromkeys(
            rel.source_id for rel in self.store.in_edges(node_id)
            if is_dependency(rel.type)
        ))

    def _successors(self, node_id: str) -> List[str]:
        return list(dict.fromkeys(rel.target_id for rel in self.store.out_edges(node_id)))

    def _warn_cycle(self, component_id: str, path: List[str]) -> None:
        self.reporter.warning(
            f"Cycle detected involving component: {component_id}",
            category=ErrorCategory.COMPONENT,
            metadata={"component_id": component_id, "path": list(path)},
            exc=CycleWarning(component_id, path),
        )

    # =========================================================================
    # PATHS & CYCLES
    # =========================================================================

    def shortest_path(self, source_id: str, target_id: str) -> List[str]:
        """
        Shortest path by edge count over the undirected neighbour view.

        Returns:
            [source_id, ..., target_id], [source_id] when both are the same
            component, or [] when unreachable or unknown. Ties between equal
            length paths follow adjacency order.
        """
        if not self.store.has_node(source_id) or not self.store.has_node(target_id):
            return []
        if source_id == target_id:
            return [source_id]

        previous: Dict[str, Optional[str]] = {source_id: None}
        queue = deque([source_id])

        while queue:
            current = queue.popleft()
            for neighbour in self.store.neighbors(current):
                if neighbour in previous:
                    continue
                previous[neighbour] = current
                if neighbour == target_id:
                    path = [neighbour]
                    while previous[path[-1]] is not None:
                        path.append(previous[path[-1]])
                    return path[::-1]
                queue.append(neighbour)

        return []

    def find_cycles(self, start_id: str) -> List[List[str]]:
        """
        Directed cycles reachable from start_id along outgoing edges.

        Each cycle is the DFS path slice from the first occurrence of the
        repeated component through the repeat, e.g. ["a", "b", "c", "a"].
        Components already fully explored are not revisited, so every cycle
        is reported at most once per call.
        """
        if not self.store.has_node(start_id):
            return []

        cycles: List[List[str]] = []
        visited: Set[str] = set()
        path: List[str] = []
        on_path: Set[str] = set()

        def dfs(current: str) -> None:
            if current in on_path:
                cycles.append(path[path.index(current):] + [current])
                return
            if current in visited:
                return

            visited.add(current)
            path.append(current)
            on_path.add(current)

            for successor in self._successors(current):
                dfs(successor)

            path.pop()
            on_path.discard(current)

        dfs(start_id)
        return cycles

    # =========================================================================
    # CONNECTIVITY CLASSIFICATION
    # =========================================================================

    def find_hubs(self, threshold: Optional[int] = None) -> List[HubComponent]:
        """
        Components with at least `threshold` neighbours, most connected first.

        Equal counts keep discovery (registration) order.
        """
        if threshold is None:
            threshold = self.config.hub_threshold

        hubs = [
            HubComponent(id=node_id, connection_count=self.store.neighbor_count(node_id))
            for node_id in self.store.node_ids()
        ]
        hubs = [h for h in hubs if h.connection_count >= threshold]
        return sorted(hubs, key=lambda h: h.connection_count, reverse=True)

    def find_isolated(self, threshold: Optional[int] = None) -> List[str]:
        """Components with at most `threshold` neighbours, in discovery order."""
        if threshold is None:
            threshold = self.config.isolation_threshold

        return [
            node_id for node_id in self.store.node_ids()
            if self.store.neighbor_count(node_id) <= threshold
        ]

    # =========================================================================
    # DEPENDENCY ANALYSIS
    # =========================================================================

    def dependency_depth(self, node_id: str) -> DependencyDepth:
        """
        Depth of the dependency tree below a component.

        Uses a single visited set: when a dependency is reachable through
        several routes, the first route the DFS takes wins, both for the
        recorded path and for the depth it contributes. For the expected
        acyclic case this is the intended behaviour; max_depth is then the
        depth along first-visit routes, not necessarily the longest route.
        """
        result = DependencyDepth()
        if not self.store.has_node(node_id):
            return result

        visited: Set[str] = set()
        on_path: Set[str] = set()
        longest = 0

        def explore(current: str, current_path: List[str]) -> None:
            nonlocal longest
            visited.add(current)
            on_path.add(current)

            new_path = current_path + [current]
            longest = max(longest, len(new_path))
            if current != node_id:
                result.dependency_paths[current] = new_path

            for dependency in self.depends_on(current):
                if dependency in on_path:
                    self._warn_cycle(dependency, new_path + [dependency])
                elif dependency not in visited:
                    explore(dependency, new_path)

            on_path.discard(current)

        explore(node_id, [])
        result.max_depth = max(0, longest - 1)
        return result

    def common_dependencies(self, node_ids: List[str]) -> List[str]:
        """Dependencies shared by every given component (order of the first)."""
        if not node_ids:
            return []

        first = self.depends_on(node_ids[0])
        others = [set(self.depends_on(node_id)) for node_id in node_ids[1:]]
        return [dep for dep in first if all(dep in deps for deps in others)]

    def topological_order(self) -> List[str]:
        """
        Components ordered so that dependents come before their dependencies.

        Reversed DFS post-order over depends_on edges, starting from every
        component in discovery order. A dependency edge that closes a cycle
        is reported as a CycleWarning and ignored; the result still covers
        every component, in a best-effort order for the cyclic part.
        """
        order: List[str] = []
        done: Set[str] = set()
        in_progress: List[str] = []

        def visit(current: str) -> None:
            in_progress.append(current)
            for dependency in self.depends_on(current):
                if dependency in done:
                    continue
                if dependency in in_progress:
                    cycle = in_progress[in_progress.index(dependency):] + [dependency]
                    self._warn_cycle(dependency, cycle)
                    continue
                visit(dependency)
            in_progress.pop()
            done.add(current)
            order.append(current)

        for node_id in self.store.node_ids():
            if node_id not in done:
                visit(node_id)

        if len(order) != self.store.node_count:
            logger.warning("Could not determine a clean dependency order")
        return order[::-1]

    def has_dependency_cycle(self) -> bool:
        """True if the depends_on edges contain a directed cycle."""
        graph = rx.PyDiGraph()
        index = {node_id: graph.add_node(node_id) for node_id in self.store.node_ids()}
        for rel in self.store.get_all_edges():
            if is_dependency(rel.type):
                graph.add_edge(index[rel.source_id], index[rel.target_id], rel.type.value)
        return not rx.is_directed_acyclic_graph(graph)

    def analyze_prop_usage(self, node_id: str) -> List[PropUsage]:
        """
        Prop names flowing into or out of a component.

        For each prop name on a touching prop-dependency edge: which
        components pass it in (sources), which receive it (targets) and how
        many edges carry it.
        """
        usage: Dict[str, PropUsage] = {}

        for rel in self.store.all_edges(node_id):
            if rel.type is not RelationshipType.PROP_DEPENDENCY:
                continue
            for prop_name in rel.metadata.get(PROP_NAMES, ()):
                entry = usage.setdefault(prop_name, PropUsage(prop_name=prop_name))
                if rel.source_id == node_id:
                    if rel.target_id not in entry.target_components:
                        entry.target_components.append(rel.target_id)
                elif rel.source_id not in entry.source_components:
                    entry.source_components.append(rel.source_id)
                entry.usage_count += 1

        return list(usage.values())
