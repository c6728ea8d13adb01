"""
RELGRAPH CORE - Central exports for the component graph engine.

This module provides access to:
- Vocabulary and data structures (ontology, schemas)
- The canonical store (GraphStore)
- Detection strategies and the RelationshipManager
- Read-only analytics (GraphAnalyzer)
- The thread-safe RelationshipGraph facade
"""

from core.ontology import (
    RelationshipType,
    DEPENDENCY_TYPES,
    describe,
    is_dependency,
)
from core.schemas import (
    ComponentNode,
    RelationshipHints,
    Relationship,
    ComponentSummary,
)
from core.graph_store import (
    GraphStore,
    GraphError,
    ReferentialError,
    ConsistencyError,
)
from core.detection import (
    DetectionStrategy,
    ParentChildDetectionStrategy,
    PropDependencyDetectionStrategy,
    StateDependencyDetectionStrategy,
    ContextDependencyDetectionStrategy,
    StrategyError,
    create_default_strategies,
)
from core.relationship_manager import RelationshipManager
from core.analyzer import (
    GraphAnalyzer,
    CycleWarning,
    HubComponent,
    DependencyDepth,
    PropUsage,
)
from core.relationship_graph import RelationshipGraph

__all__ = [
    # Vocabulary
    "RelationshipType",
    "DEPENDENCY_TYPES",
    "describe",
    "is_dependency",
    # Data
    "ComponentNode",
    "RelationshipHints",
    "Relationship",
    "ComponentSummary",
    # Store
    "GraphStore",
    "GraphError",
    "ReferentialError",
    "ConsistencyError",
    # Detection
    "DetectionStrategy",
    "ParentChildDetectionStrategy",
    "PropDependencyDetectionStrategy",
    "StateDependencyDetectionStrategy",
    "ContextDependencyDetectionStrategy",
    "StrategyError",
    "create_default_strategies",
    # Manager / analysis / facade
    "RelationshipManager",
    "GraphAnalyzer",
    "CycleWarning",
    "HubComponent",
    "DependencyDepth",
    "PropUsage",
    "RelationshipGraph",
]
