"""
RELGRAPH DETECTION - Pluggable Relationship Detection Strategies

A detection strategy looks at one component (plus the full set of
registered components) and proposes relationships along ONE dimension:

    ParentChildDetectionStrategy        containment       parent-child
    PropDependencyDetectionStrategy     attribute passing prop-dependency
    StateDependencyDetectionStrategy    local state reuse state-dependency
    ContextDependencyDetectionStrategy  context channels  context-dependency

Contract:
- detect(node, all_nodes) -> List[Relationship]
- Stateless and side-effect free: strategies never touch the store
- Explicit registry hints produce strength 1.0 (configurable)
- Pattern-derived detections produce partial strength (0.7-0.9)

Pattern detection scans `structural_text` for JSX-style naming
conventions. It is a heuristic and is kept entirely behind this interface,
so a real structural parser can replace it without touching the engine.

Symmetric relationships (explicitly shared state keys, shared context
channels) are emitted once per pair, directed from the lower component id
to the higher one, so detecting both ends never creates a two-node cycle.
"""
import re
from typing import Dict, List, Optional

from core.ontology import RelationshipType
from core.schemas import (
    ComponentNode,
    Relationship,
    PROP_NAMES,
    STATE_KEYS,
    CONTEXT_NAMES,
    DESCRIPTION,
)
from infrastructure.config import DetectionConfig


# Local state declarations: const [value, setValue] = useState(...)
_STATE_DECLARATION = re.compile(
    r"const\s+\[\s*([A-Za-z_$][\w$]*)\s*,[^\]]*\]\s*=\s*(?:React\.)?(?:useState|useReducer|useContext)\s*\("
)

# Context channel usage: useContext(ThemeContext)
_CONTEXT_USAGE = re.compile(r"useContext\(\s*([A-Za-z_$][\w$]*)\s*\)")


class StrategyError(Exception):
    """A detection strategy raised while analysing a component."""
    def __init__(self, strategy_name: str, node_id: str, cause: BaseException):
        self.strategy_name = strategy_name
        self.node_id = node_id
        self.cause = cause
        super().__init__(
            f"Strategy {strategy_name} failed on component {node_id}: {cause}"
        )


def _jsx_open_tag(name: str) -> str:
    """Regex fragment matching an opening JSX tag for exactly this name."""
    return rf"<\s*{re.escape(name)}(?![\w$])"


def _ordered_pair(a: str, b: str):
    return (a, b) if a <= b else (b, a)


# =============================================================================
# BASE STRATEGY
# =============================================================================

class DetectionStrategy:
    """
    Base class for relationship detection strategies.

    Subclasses set `name` and implement detect(). New strategies are added
    by registering an instance with the RelationshipManager.
    """
    name: str = "detection-strategy"

    def __init__(self, config: Optional[DetectionConfig] = None):
        self.config = config or DetectionConfig()

    def detect(
        self,
        node: ComponentNode,
        all_nodes: Dict[str, ComponentNode],
    ) -> List[Relationship]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# =============================================================================
# CONCRETE STRATEGIES
# =============================================================================

class ParentChildDetectionStrategy(DetectionStrategy):
    """
    Parent-child relationships from explicit hints and JSX containment.

    - hints.parent_id        -> parent -> node (explicit)
    - hints.children_ids     -> node -> child  (explicit)
    - `<OtherName` in text   -> node -> other  (heuristic)
    """
    name = "parent-child-detector"

    def detect(self, node, all_nodes):
        relationships: List[Relationship] = []
        explicit = self.config.explicit_strength

        parent_id = node.hints.parent_id
        if parent_id and parent_id != node.id:
            relationships.append(Relationship.parent_child(
                parent_id, node.id,
                strength=explicit,
                metadata={DESCRIPTION: "Explicit parent-child relationship"},
            ))

        for child_id in node.hints.children_ids:
            if child_id == node.id:
                continue
            relationships.append(Relationship.parent_child(
                node.id, child_id,
                strength=explicit,
                metadata={DESCRIPTION: "Explicit parent-child relationship"},
            ))

        text = node.structural_text
        if not text:
            return relationships

        for other_id, other in all_nodes.items():
            if other_id == node.id or not other.name:
                continue
            if re.search(_jsx_open_tag(other.name), text):
                relationships.append(Relationship.parent_child(
                    node.id, other_id,
                    strength=self.config.jsx_containment_strength,
                    metadata={DESCRIPTION: "Detected from JSX usage in parent component"},
                ))

        return relationships


class PropDependencyDetectionStrategy(DetectionStrategy):
    """
    Prop dependencies from explicit hints and attribute passing.

    - hints.depends_on_ids                      -> dependency -> node (explicit)
    - `<NodeName ... attr=` in another's text   -> other -> node      (heuristic)
      for every attribute name of this node
    """
    name = "prop-dependency-detector"

    def detect(self, node, all_nodes):
        relationships: List[Relationship] = []

        for dependency_id in node.hints.depends_on_ids:
            if dependency_id == node.id:
                continue
            relationships.append(Relationship.prop_dependency(
                dependency_id, node.id,
                strength=self.config.explicit_strength,
                metadata={DESCRIPTION: "Explicit prop dependency"},
            ))

        if not node.attributes or not node.name:
            return relationships

        tag = _jsx_open_tag(node.name)
        patterns = {
            prop_name: re.compile(rf"{tag}[^>]*\s{re.escape(prop_name)}\s*=\s*[\"'{{]")
            for prop_name in node.attributes
        }

        for other_id, other in all_nodes.items():
            if other_id == node.id or not other.structural_text:
                continue

            found = [
                prop_name for prop_name, pattern in patterns.items()
                if pattern.search(other.structural_text)
            ]
            if found:
                relationships.append(Relationship.prop_dependency(
                    other_id, node.id,
                    strength=self.config.prop_passing_strength,
                    metadata={
                        PROP_NAMES: found,
                        DESCRIPTION: "Props passed from parent to child",
                    },
                ))

        return relationships


class StateDependencyDetectionStrategy(DetectionStrategy):
    """
    State dependencies from local state reuse and explicit shared keys.

    - `const [x, setX] = useState(...)` in this node's text, with x passed
      as an attribute value to `<OtherName ... attr={x`  -> node -> other
    - hints.shared_state_keys overlapping another node's hints
      -> one edge per pair (lower id -> higher id), explicit strength
    """
    name = "state-dependency-detector"

    def detect(self, node, all_nodes):
        relationships = self._detect_passed_state(node, all_nodes)
        relationships.extend(self._detect_shared_keys(node, all_nodes))
        return relationships

    def _detect_passed_state(self, node, all_nodes) -> List[Relationship]:
        text = node.structural_text
        if not text:
            return []

        state_vars: List[str] = []
        for match in _STATE_DECLARATION.finditer(text):
            if match.group(1) not in state_vars:
                state_vars.append(match.group(1))
        if not state_vars:
            return []

        relationships = []
        for other_id, other in all_nodes.items():
            if other_id == node.id or not other.name:
                continue

            tag = _jsx_open_tag(other.name)
            passed = [
                var for var in state_vars
                if re.search(
                    rf"{tag}[^>]*\s[\w$-]+\s*=\s*[\"'{{]?\s*{re.escape(var)}(?![\w$])",
                    text,
                )
            ]
            if passed:
                relationships.append(Relationship(
                    source_id=node.id,
                    target_id=other_id,
                    type=RelationshipType.STATE_DEPENDENCY,
                    strength=self.config.state_passing_strength,
                    metadata={
                        STATE_KEYS: passed,
                        DESCRIPTION: "State passed from parent to child",
                    },
                ))
        return relationships

    def _detect_shared_keys(self, node, all_nodes) -> List[Relationship]:
        own_keys = node.hints.shared_state_keys
        if not own_keys:
            return []

        relationships = []
        for other_id, other in all_nodes.items():
            if other_id == node.id:
                continue
            other_keys = set(other.hints.shared_state_keys)
            shared = [key for key in own_keys if key in other_keys]
            if not shared:
                continue

            source_id, target_id = _ordered_pair(node.id, other_id)
            relationships.append(Relationship(
                source_id=source_id,
                target_id=target_id,
                type=RelationshipType.STATE_DEPENDENCY,
                strength=self.config.explicit_strength,
                metadata={
                    STATE_KEYS: shared,
                    DESCRIPTION: "Explicitly shared state",
                },
            ))
        return relationships


class ContextDependencyDetectionStrategy(DetectionStrategy):
    """
    Context dependencies between components reading the same context
    channel via useContext(Name). One edge per pair, lower id -> higher id.
    """
    name = "context-dependency-detector"

    def detect(self, node, all_nodes):
        text = node.structural_text
        if not text:
            return []

        context_names: List[str] = []
        for match in _CONTEXT_USAGE.finditer(text):
            if match.group(1) not in context_names:
                context_names.append(match.group(1))
        if not context_names:
            return []

        relationships = []
        for other_id, other in all_nodes.items():
            if other_id == node.id or not other.structural_text:
                continue

            other_contexts = set(_CONTEXT_USAGE.findall(other.structural_text))
            shared = [name for name in context_names if name in other_contexts]
            if not shared:
                continue

            source_id, target_id = _ordered_pair(node.id, other_id)
            relationships.append(Relationship(
                source_id=source_id,
                target_id=target_id,
                type=RelationshipType.CONTEXT_DEPENDENCY,
                strength=self.config.shared_context_strength,
                metadata={
                    CONTEXT_NAMES: shared,
                    DESCRIPTION: "Components share a context channel",
                },
            ))
        return relationships


# =============================================================================
# FACTORY
# =============================================================================

def create_default_strategies(config: Optional[DetectionConfig] = None) -> List[DetectionStrategy]:
    """All built-in strategies, in their default execution order."""
    return [
        ParentChildDetectionStrategy(config),
        PropDependencyDetectionStrategy(config),
        StateDependencyDetectionStrategy(config),
        ContextDependencyDetectionStrategy(config),
    ]
