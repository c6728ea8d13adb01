"""
RELGRAPH RELATIONSHIP MANAGER - Registration, Detection, Summaries

The manager is the only writer of the GraphStore in normal operation:

    external registry --(register / unregister / detect)--> RelationshipManager
                                                               |
                                 DetectionStrategy x N  <------+
                                                               |
                                                          GraphStore
                                                               |
                                          {GraphAnalyzer, VisualizationExporter}

Responsibilities:
- Keep the node cache in sync with the external component registry
- Run the registered detection strategies, in registration order, and feed
  every proposed relationship into GraphStore.add_edge (merge-or-insert)
- Derive per-node summaries (children, siblings, dependencies, state keys)
- Publish change notifications on the EventBus

Notifications:
- RELATIONSHIP_DETECTED  after every stored (or merged) relationship
- RELATIONSHIP_LOST      after every explicit relationship removal
- RELATIONSHIP_CHANGED   after EVERY detect() call, even when nothing changed;
                         payload {componentId, summary}. Callers needing
                         change detection diff summaries themselves.
"""
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from core.ontology import RelationshipType, is_dependency
from core.schemas import ComponentNode, ComponentSummary, Relationship, STATE_KEYS, DESCRIPTION
from core.graph_store import GraphStore
from core.detection import DetectionStrategy, StrategyError, create_default_strategies
from infrastructure.config import EngineConfig
from infrastructure.diagnostics import DiagnosticReporter, ErrorCategory
from infrastructure.event_bus import EventBus, EventType

logger = logging.getLogger("relgraph.relationship_manager")

EVENT_SOURCE = "relationship_manager"


def _dedupe(items) -> List[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(items))


class RelationshipManager:
    """
    Orchestrates component registration and relationship detection.

    All collaborators are optional constructor arguments; omitted ones are
    created fresh, so every manager is independent:

        manager = RelationshipManager()
        manager.detect(ComponentNode(id="card", name="Card"))
        manager.compute_summary("card")

    Pass strategies=[] to start with no detection strategies at all.
    """

    def __init__(
        self,
        store: Optional[GraphStore] = None,
        strategies: Optional[Sequence[DetectionStrategy]] = None,
        event_bus: Optional[EventBus] = None,
        reporter: Optional[DiagnosticReporter] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or EngineConfig()
        if reporter is None:
            reporter = store.reporter if store is not None else DiagnosticReporter(
                buffer_size=self.config.diagnostics.buffer_size
            )
        self.reporter = reporter
        self.store = store if store is not None else GraphStore(reporter=reporter)
        self.event_bus = event_bus if event_bus is not None else EventBus()

        if strategies is None:
            strategies = create_default_strategies(self.config.detection)
        self._strategies: List[DetectionStrategy] = list(strategies)

    # =========================================================================
    # STRATEGY REGISTRATION
    # =========================================================================

    @property
    def strategies(self) -> Tuple[DetectionStrategy, ...]:
        """Registered strategies in execution order."""
        return tuple(self._strategies)

    def add_detection_strategy(self, strategy: DetectionStrategy) -> None:
        """Append a strategy; it runs after every strategy already registered."""
        self._strategies.append(strategy)
        logger.debug(f"Added relationship detection strategy: {strategy.name}")

    def remove_detection_strategy(self, strategy_name: str) -> bool:
        """
        Remove every strategy with the given name.

        Returns:
            True if at least one strategy was removed
        """
        before = len(self._strategies)
        self._strategies = [s for s in self._strategies if s.name != strategy_name]
        removed = len(self._strategies) < before
        if removed:
            logger.debug(f"Removed relationship detection strategy: {strategy_name}")
        return removed

    # =========================================================================
    # COMPONENT REGISTRATION
    # =========================================================================

    def register_component(self, node: ComponentNode) -> bool:
        """
        Insert a component, or refresh its cached data.

        Refreshing never clears edges; use detect(node, force_redetect=True)
        for that.

        Returns:
            True if the component was newly registered
        """
        created = self.store.add_or_update_node(node)
        if created:
            self.event_bus.emit(
                EventType.COMPONENT_REGISTERED,
                {"componentId": node.id, "name": node.name, "type": node.type},
                source=EVENT_SOURCE,
            )
        return created

    def unregister_component(self, node_id: str) -> bool:
        """
        Remove a component and, by cascade, every relationship touching it.

        Returns:
            True if the component was registered
        """
        removed = self.store.remove_node(node_id)
        if removed is None:
            return False
        self.event_bus.emit(
            EventType.COMPONENT_UNREGISTERED,
            {"componentId": node_id},
            source=EVENT_SOURCE,
        )
        return True

    # =========================================================================
    # RELATIONSHIP MUTATION
    # =========================================================================

    def add_relationship(self, relationship: Relationship) -> Optional[Relationship]:
        """
        Store a relationship (merge-or-insert).

        Returns:
            The stored relationship, or None if the store rejected it
        """
        stored = self.store.add_edge(relationship)
        if stored is not None:
            self.event_bus.emit(
                EventType.RELATIONSHIP_DETECTED,
                {
                    "sourceId": stored.source_id,
                    "targetId": stored.target_id,
                    "type": stored.type.value,
                    "metadata": dict(stored.metadata),
                },
                source=EVENT_SOURCE,
            )
        return stored

    def remove_relationship(
        self,
        source_id: str,
        target_id: str,
        rel_type: Optional[RelationshipType] = None,
    ) -> List[Relationship]:
        """Remove source -> target edges of one type, or of every type when omitted."""
        removed = self.store.remove_edge(source_id, target_id, rel_type)
        if removed:
            self.event_bus.emit(
                EventType.RELATIONSHIP_LOST,
                {
                    "sourceId": source_id,
                    "targetId": target_id,
                    "type": RelationshipType(rel_type).value if rel_type is not None else None,
                },
                source=EVENT_SOURCE,
            )
        return removed

    def add_dependency(self, source_id: str, target_id: str) -> Optional[Relationship]:
        """Explicit prop dependency: target depends on source."""
        return self.add_relationship(Relationship.prop_dependency(
            source_id, target_id,
            strength=self.config.detection.explicit_strength,
            metadata={DESCRIPTION: "Explicit dependency"},
        ))

    def set_parent_child(self, parent_id: str, child_id: str) -> Optional[Relationship]:
        """Explicit parent-child relationship."""
        return self.add_relationship(Relationship.parent_child(
            parent_id, child_id,
            strength=self.config.detection.explicit_strength,
            metadata={DESCRIPTION: "Explicit parent-child relationship"},
        ))

    # =========================================================================
    # DETECTION
    # =========================================================================

    def detect(self, node: ComponentNode, force_redetect: bool = False) -> ComponentSummary:
        """
        Run every registered strategy for a component.

        Args:
            node: The component to analyse (registered if unknown, refreshed
                  otherwise)
            force_redetect: Clear every stored edge touching the component,
                            in both directions, before detecting

        Returns:
            The component's summary after detection. RELATIONSHIP_CHANGED is
            published unconditionally with the same summary.
        """
        self.register_component(node)

        if force_redetect:
            cleared = self.store.remove_edges_touching(node.id)
            logger.debug(f"Cleared {len(cleared)} relationships of {node.id} for redetection")

        all_nodes = self.store.nodes_by_id()

        for strategy in self._strategies:
            try:
                detected = list(strategy.detect(node, all_nodes))
            except Exception as e:
                error = StrategyError(strategy.name, node.id, e)
                self.reporter.error(
                    f"Error detecting relationships for component: {node.id}",
                    category=ErrorCategory.COMPONENT,
                    metadata={"strategy_name": strategy.name, "component_id": node.id},
                    exc=error,
                )
                continue

            for rel in detected:
                if not isinstance(rel, Relationship):
                    self.reporter.warning(
                        f"Strategy {strategy.name} returned a non-relationship value",
                        category=ErrorCategory.VALIDATION,
                        metadata={
                            "strategy_name": strategy.name,
                            "component_id": node.id,
                            "value_type": type(rel).__name__,
                        },
                    )
                    continue
                self.add_relationship(rel)

        summary = self.compute_summary(node.id)
        logger.debug(f"Detected relationships for component: {node.id}")

        self.event_bus.emit(
            EventType.RELATIONSHIP_CHANGED,
            {"componentId": node.id, "summary": summary.to_dict()},
            source=EVENT_SOURCE,
        )
        return summary

    # =========================================================================
    # DERIVED VIEWS
    # =========================================================================

    def get_relationships(self, node_id: str) -> List[Relationship]:
        """Outgoing followed by incoming relationships of a component."""
        return self.store.all_edges(node_id)

    def get_connected_components(self, node_id: str) -> List[str]:
        """Direct neighbours in the undirected view."""
        return self.store.neighbors(node_id)

    def compute_summary(self, node_id: str) -> ComponentSummary:
        """
        Derive the relationship summary of a component from stored edges.

        - children:          targets of outgoing parent-child edges
        - siblings:          other children of this component's parent(s)
        - depends_on:        sources of incoming dependency edges
        - depended_on_by:    targets of outgoing dependency edges
        - shared_state_keys: union of state keys on touching state edges
        """
        children: List[str] = []
        siblings: List[str] = []
        depends_on: List[str] = []
        depended_on_by: List[str] = []
        state_keys: List[str] = []

        for rel in self.store.all_edges(node_id):
            outgoing = rel.source_id == node_id

            if rel.type is RelationshipType.PARENT_CHILD:
                if outgoing:
                    children.append(rel.target_id)
                else:
                    for parent_rel in self.store.out_edges(rel.source_id):
                        if (parent_rel.type is RelationshipType.PARENT_CHILD
                                and parent_rel.target_id != node_id):
                            siblings.append(parent_rel.target_id)

            elif is_dependency(rel.type):
                if outgoing:
                    depended_on_by.append(rel.target_id)
                else:
                    depends_on.append(rel.source_id)

            if rel.type is RelationshipType.STATE_DEPENDENCY:
                state_keys.extend(rel.metadata.get(STATE_KEYS, ()))

        return ComponentSummary(
            children=_dedupe(children),
            siblings=_dedupe(siblings),
            depends_on=_dedupe(depends_on),
            depended_on_by=_dedupe(depended_on_by),
            shared_state_keys=_dedupe(state_keys),
        )

    def get_related_state_keys(self, node_id: str) -> List[str]:
        """State keys shared with other components."""
        return self.compute_summary(node_id).shared_state_keys

    def get_affected_components(self, node_id: str, recursive: bool = True) -> List[str]:
        """
        Components affected by a change to node_id.

        Follows relationships in both directions; with recursive=True the
        walk is transitive. node_id itself is never included.
        """
        affected: Dict[str, None] = {}
        visited: Set[str] = {node_id}
        frontier = [node_id]

        while frontier:
            current = frontier.pop()
            for neighbour in self.store.neighbors(current):
                if neighbour != node_id:
                    affected.setdefault(neighbour, None)
                if recursive and neighbour not in visited:
                    visited.add(neighbour)
                    frontier.append(neighbour)

        return list(affected)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def reset(self) -> None:
        """Drop every component and relationship. Strategies stay registered."""
        self.store.reset()
        self.event_bus.emit(EventType.GRAPH_RESET, {}, source=EVENT_SOURCE)
        logger.info("Relationship manager reset")
