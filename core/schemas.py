"""
RELGRAPH SCHEMAS - The Grammar of the Component Graph

If ontology.py is the Dictionary (defining the words we can use),
schemas.py is the Grammar (defining how we structure sentences).

This module defines the data structures that flow through the engine:
- RelationshipHints: explicit relationship cues supplied by the registry
- ComponentNode: the payload attached to every graph node
- Relationship: the payload attached to every graph edge
- ComponentSummary: the derived per-node relationship view
- Serialization helpers for IPC and debugging dumps

Design Principles:
1. STRICT TYPING: msgspec.Struct with no silent type coercion
2. KW_ONLY: Enforce keyword arguments to prevent positional mix-ups
3. IMMUTABLE IDS: Node ids are set by the registry and never change
4. MERGE, DON'T DUPLICATE: one edge per (source, target, type)
"""
import msgspec
from typing import Optional, Dict, Any, List, Tuple

from core.ontology import RelationshipType


# Conventional metadata keys written by the detection strategies
PROP_NAMES = "prop_names"
STATE_KEYS = "state_keys"
CONTEXT_NAMES = "context_names"
DESCRIPTION = "description"

EdgeKey = Tuple[str, str, RelationshipType]


# =============================================================================
# COMPONENT NODE (The Core Graph Payload)
# =============================================================================

class RelationshipHints(msgspec.Struct, kw_only=True, frozen=False):
    """
    Explicit relationship cues supplied by the component registry.

    Hints are authoritative: relationships derived from them are stored
    with strength 1.0, unlike pattern-derived detections.
    """
    parent_id: Optional[str] = None
    children_ids: List[str] = msgspec.field(default_factory=list)
    depends_on_ids: List[str] = msgspec.field(default_factory=list)
    shared_state_keys: List[str] = msgspec.field(default_factory=list)


class ComponentNode(msgspec.Struct, kw_only=True, frozen=False):
    """
    A tracked UI component.

    Architecture Notes:
    - `id`: registry-assigned unique id (NOT the rustworkx index)
    - `structural_text`: opaque serialized component text, only ever read
      by detection strategies
    - `attributes`: attribute name -> value map (props in React terms)
    """
    id: str
    name: str
    type: str = "unknown"
    structural_text: str = ""
    attributes: Dict[str, Any] = msgspec.field(default_factory=dict)
    hints: RelationshipHints = msgspec.field(default_factory=RelationshipHints)

    @classmethod
    def create(
        cls,
        id: str,
        name: str,
        parent_id: Optional[str] = None,
        children_ids: Optional[List[str]] = None,
        depends_on_ids: Optional[List[str]] = None,
        shared_state_keys: Optional[List[str]] = None,
        **kwargs
    ) -> "ComponentNode":
        """Factory method accepting hint fields as flat keyword arguments."""
        hints = RelationshipHints(
            parent_id=parent_id,
            children_ids=list(children_ids or []),
            depends_on_ids=list(depends_on_ids or []),
            shared_state_keys=list(shared_state_keys or []),
        )
        return cls(id=id, name=name, hints=hints, **kwargs)


# =============================================================================
# RELATIONSHIP (The Graph Edge Payload)
# =============================================================================

class Relationship(msgspec.Struct, kw_only=True, frozen=False):
    """
    A typed, directed, weighted connection between two components.

    Edges are intentionally "thin" - they carry relationship semantics
    and a strength in [0, 1], not heavy data.

    Strength convention:
    - 1.0: explicit (registry hints, explicit API calls)
    - 0.7-0.9: pattern-derived, heuristic
    """
    source_id: str
    target_id: str
    type: RelationshipType
    strength: float = 1.0
    metadata: Dict[str, Any] = msgspec.field(default_factory=dict)

    @property
    def key(self) -> EdgeKey:
        """Identity of the edge in the store."""
        return (self.source_id, self.target_id, self.type)

    def touches(self, node_id: str) -> bool:
        """True if node_id is either endpoint."""
        return self.source_id == node_id or self.target_id == node_id

    def other_end(self, node_id: str) -> str:
        """The endpoint that is not node_id."""
        return self.target_id if self.source_id == node_id else self.source_id

    def merged_with(self, newer: "Relationship") -> "Relationship":
        """
        Return the merge of this edge with a newer detection of the same key.

        Strength comes from the newer edge; metadata is merged with
        merge_metadata().
        """
        return msgspec.structs.replace(
            self,
            strength=newer.strength,
            metadata=merge_metadata(self.metadata, newer.metadata),
        )

    @classmethod
    def parent_child(cls, parent_id: str, child_id: str, **kwargs) -> "Relationship":
        """Create a PARENT_CHILD edge (parent contains child)."""
        return cls(
            source_id=parent_id,
            target_id=child_id,
            type=RelationshipType.PARENT_CHILD,
            **kwargs
        )

    @classmethod
    def prop_dependency(cls, provider_id: str, consumer_id: str, **kwargs) -> "Relationship":
        """Create a PROP_DEPENDENCY edge (consumer depends on provider)."""
        return cls(
            source_id=provider_id,
            target_id=consumer_id,
            type=RelationshipType.PROP_DEPENDENCY,
            **kwargs
        )


def merge_metadata(existing: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge edge metadata maps.

    List values present on both sides are unioned, keeping the order of
    first appearance. Any other incoming value replaces the existing one.
    """
    merged = dict(existing)
    for key, value in incoming.items():
        current = merged.get(key)
        if isinstance(current, list) and isinstance(value, list):
            union = list(current)
            for item in value:
                if item not in union:
                    union.append(item)
            merged[key] = union
        else:
            merged[key] = list(value) if isinstance(value, list) else value
    return merged


# =============================================================================
# COMPONENT SUMMARY (Derived View)
# =============================================================================

class ComponentSummary(
    msgspec.Struct,
    kw_only=True,
    rename={
        "children": "childrenIds",
        "siblings": "siblingIds",
        "depends_on": "dependsOn",
        "depended_on_by": "dependedOnBy",
        "shared_state_keys": "sharedStateKeys",
    },
):
    """
    Per-node relationship summary derived from stored edges.

    Serialized with the field names external consumers expect
    (childrenIds, siblingIds, dependsOn, dependedOnBy, sharedStateKeys).
    Every list is deduplicated; order is not significant.
    """
    children: List[str] = msgspec.field(default_factory=list)
    siblings: List[str] = msgspec.field(default_factory=list)
    depends_on: List[str] = msgspec.field(default_factory=list)
    depended_on_by: List[str] = msgspec.field(default_factory=list)
    shared_state_keys: List[str] = msgspec.field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire shape."""
        return msgspec.to_builtins(self)


# =============================================================================
# SERIALIZATION HELPERS
# =============================================================================

# Pre-compiled encoders/decoders, reused across the application

_encoder = msgspec.json.Encoder()
_node_decoder = msgspec.json.Decoder(type=ComponentNode)
_node_list_decoder = msgspec.json.Decoder(type=List[ComponentNode])
_relationship_list_decoder = msgspec.json.Decoder(type=List[Relationship])


def serialize_node(node: ComponentNode) -> bytes:
    """Serialize a ComponentNode to JSON bytes."""
    return _encoder.encode(node)


def deserialize_node(data: bytes) -> ComponentNode:
    """Deserialize JSON bytes to a ComponentNode."""
    return _node_decoder.decode(data)


def serialize_nodes(nodes: List[ComponentNode]) -> bytes:
    """Serialize a list of ComponentNode to JSON bytes."""
    return _encoder.encode(nodes)


def deserialize_nodes(data: bytes) -> List[ComponentNode]:
    """Deserialize JSON bytes to a list of ComponentNode."""
    return _node_list_decoder.decode(data)


def serialize_relationships(relationships: List[Relationship]) -> bytes:
    """Serialize a list of Relationship to JSON bytes."""
    return _encoder.encode(relationships)


def deserialize_relationships(data: bytes) -> List[Relationship]:
    """Deserialize JSON bytes to a list of Relationship."""
    return _relationship_list_decoder.decode(data)
