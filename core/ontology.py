"""
RELGRAPH ONTOLOGY - The Vocabulary of Component Relationships

If schemas.py is the Grammar (how we structure nodes and edges),
ontology.py is the Dictionary (the words we can use).

This module defines:
- RelationshipType: every edge type the store accepts
- DEPENDENCY_TYPES: the edge types that count as "depends on"
- RELATIONSHIP_DESCRIPTIONS: canned legend text for visual export

Direction convention for dependency edges:
    source -> target  means  "target depends on source"
    (the source provides props / state / context to the target)

Sibling relationships are DERIVED ("other children of the same parent").
SIBLING exists in the vocabulary for legends only and is never stored.
"""
from typing import Dict, FrozenSet
from enum import Enum


# =============================================================================
# ENUMS (The Vocabulary)
# =============================================================================

class RelationshipType(str, Enum):
    """Types of relationships between components."""
    PARENT_CHILD = "parent-child"                # Containment: parent -> child
    SIBLING = "sibling"                          # Derived only, never stored
    PROP_DEPENDENCY = "prop-dependency"          # Props flow: provider -> consumer
    STATE_DEPENDENCY = "state-dependency"        # Shared state: owner -> consumer
    CONTEXT_DEPENDENCY = "context-dependency"    # Shared context channel
    REFERENCE = "reference"                      # Ref handle: holder -> referenced
    EVENT_DEPENDENCY = "event-dependency"        # Events: emitter -> listener
    CUSTOM = "custom"                            # User-defined


# Edge types that feed depends_on / depended_on_by
DEPENDENCY_TYPES: FrozenSet[RelationshipType] = frozenset({
    RelationshipType.PROP_DEPENDENCY,
    RelationshipType.STATE_DEPENDENCY,
    RelationshipType.CONTEXT_DEPENDENCY,
})

# Edge types GraphStore will persist
STORABLE_TYPES: FrozenSet[RelationshipType] = frozenset(
    t for t in RelationshipType if t is not RelationshipType.SIBLING
)


# =============================================================================
# LEGEND TEXT
# =============================================================================

RELATIONSHIP_DESCRIPTIONS: Dict[RelationshipType, str] = {
    RelationshipType.PARENT_CHILD: "Parent-child component relationship",
    RelationshipType.SIBLING: "Components that share the same parent",
    RelationshipType.PROP_DEPENDENCY: "Component passes props to another",
    RelationshipType.STATE_DEPENDENCY: "Components share state",
    RelationshipType.CONTEXT_DEPENDENCY: "Components share a context channel",
    RelationshipType.REFERENCE: "Component references another via refs",
    RelationshipType.EVENT_DEPENDENCY: "Component emits events caught by another",
    RelationshipType.CUSTOM: "Custom user-defined relationship",
}

UNKNOWN_DESCRIPTION = "Unknown relationship type"


def describe(rel_type: RelationshipType) -> str:
    """Legend text for a relationship type."""
    return RELATIONSHIP_DESCRIPTIONS.get(rel_type, UNKNOWN_DESCRIPTION)


def is_dependency(rel_type: RelationshipType) -> bool:
    """True if the edge type contributes to depends_on / depended_on_by."""
    return rel_type in DEPENDENCY_TYPES
