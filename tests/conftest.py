"""
Pytest configuration and shared fixtures for the relgraph test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def reporter():
    """Provide a fresh DiagnosticReporter."""
    from infrastructure.diagnostics import DiagnosticReporter
    return DiagnosticReporter()


@pytest.fixture
def fresh_store(reporter):
    """Provide an empty GraphStore sharing the reporter fixture."""
    from core.graph_store import GraphStore
    return GraphStore(reporter=reporter)


@pytest.fixture
def event_bus():
    from infrastructure.event_bus import EventBus
    return EventBus()


@pytest.fixture
def recorded_events(event_bus):
    """Subscribe a recorder to every event type; returns the list it fills."""
    from infrastructure.event_bus import EventType

    events = []
    for event_type in EventType:
        event_bus.subscribe(event_type, events.append)
    return events


@pytest.fixture
def manager(fresh_store, event_bus, reporter):
    """RelationshipManager with the default strategies."""
    from core.relationship_manager import RelationshipManager
    return RelationshipManager(store=fresh_store, event_bus=event_bus, reporter=reporter)


@pytest.fixture
def bare_manager(fresh_store, event_bus, reporter):
    """RelationshipManager with no detection strategies."""
    from core.relationship_manager import RelationshipManager
    return RelationshipManager(
        store=fresh_store, strategies=[], event_bus=event_bus, reporter=reporter
    )


@pytest.fixture
def analyzer(fresh_store, reporter):
    from core.analyzer import GraphAnalyzer
    return GraphAnalyzer(fresh_store, reporter=reporter)


@pytest.fixture
def exporter(fresh_store):
    from viz.core import VisualizationExporter
    return VisualizationExporter(fresh_store)


@pytest.fixture
def add_nodes(fresh_store):
    """Register plain components by id: add_nodes("a", "b", ...)."""
    from core.schemas import ComponentNode

    def _add(*node_ids, type="unknown"):
        for node_id in node_ids:
            fresh_store.add_or_update_node(
                ComponentNode(id=node_id, name=node_id.capitalize(), type=type)
            )
        return fresh_store

    return _add


@pytest.fixture
def add_edges(fresh_store):
    """Store edges from (source, target) or (source, target, type) tuples."""
    from core.ontology import RelationshipType
    from core.schemas import Relationship

    def _add(*edges, strength=1.0):
        stored = []
        for edge in edges:
            source_id, target_id = edge[0], edge[1]
            rel_type = edge[2] if len(edge) > 2 else RelationshipType.PROP_DEPENDENCY
            stored.append(fresh_store.add_edge(Relationship(
                source_id=source_id,
                target_id=target_id,
                type=rel_type,
                strength=strength,
            )))
        return stored

    return _add
