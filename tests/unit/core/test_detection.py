"""
Unit tests for core/detection.py - relationship detection strategies

Strategies are pure: they take a node plus the full node map and return
proposed relationships, so these tests never need a store.
"""
import pytest

from core.detection import (
    DetectionStrategy,
    ParentChildDetectionStrategy,
    PropDependencyDetectionStrategy,
    StateDependencyDetectionStrategy,
    ContextDependencyDetectionStrategy,
    create_default_strategies,
)
from core.ontology import RelationshipType
from core.schemas import ComponentNode, PROP_NAMES, STATE_KEYS, CONTEXT_NAMES
from infrastructure.config import DetectionConfig


def _by_id(*nodes):
    return {node.id: node for node in nodes}


# =============================================================================
# PARENT-CHILD
# =============================================================================

def test_parent_child_from_explicit_hints():
    node = ComponentNode.create(id="card", name="Card", parent_id="dashboard", children_ids=["icon"])
    all_nodes = _by_id(node)

    rels = ParentChildDetectionStrategy().detect(node, all_nodes)

    assert [(r.source_id, r.target_id) for r in rels] == [("dashboard", "card"), ("card", "icon")]
    assert all(r.type is RelationshipType.PARENT_CHILD for r in rels)
    assert all(r.strength == 1.0 for r in rels)


def test_parent_child_ignores_self_references():
    node = ComponentNode.create(id="card", name="Card", parent_id="card", children_ids=["card"])

    assert ParentChildDetectionStrategy().detect(node, _by_id(node)) == []


def test_parent_child_from_jsx_containment():
    dashboard = ComponentNode(
        id="dashboard", name="Dashboard",
        structural_text="<div><Card title='x' /><Header /></div>",
    )
    card = ComponentNode(id="card", name="Card")
    header = ComponentNode(id="header", name="Header")
    card_list = ComponentNode(id="card-list", name="CardList")

    rels = ParentChildDetectionStrategy().detect(
        dashboard, _by_id(dashboard, card, header, card_list)
    )

    assert {r.target_id for r in rels} == {"card", "header"}
    assert all(r.source_id == "dashboard" for r in rels)
    assert all(r.strength == 0.8 for r in rels)


def test_jsx_name_prefix_does_not_match_longer_name():
    """<CardList> must not be read as a use of <Card>."""
    page = ComponentNode(id="page", name="Page", structural_text="<CardList items={items} />")
    card = ComponentNode(id="card", name="Card")

    assert ParentChildDetectionStrategy().detect(page, _by_id(page, card)) == []


def test_jsx_names_are_regex_escaped():
    page = ComponentNode(id="page", name="Page", structural_text="<div>hello</div>")
    weird = ComponentNode(id="weird", name="d.v")

    assert ParentChildDetectionStrategy().detect(page, _by_id(page, weird)) == []


def test_jsx_containment_strength_is_configurable():
    parent = ComponentNode(id="p", name="P", structural_text="<Child />")
    child = ComponentNode(id="c", name="Child")
    strategy = ParentChildDetectionStrategy(DetectionConfig(jsx_containment_strength=0.5))

    rels = strategy.detect(parent, _by_id(parent, child))

    assert rels[0].strength == 0.5


# =============================================================================
# PROP DEPENDENCY
# =============================================================================

def test_prop_dependency_from_explicit_hints():
    node = ComponentNode.create(id="card", name="Card", depends_on_ids=["store", "card"])

    rels = PropDependencyDetectionStrategy().detect(node, _by_id(node))

    assert len(rels) == 1
    assert (rels[0].source_id, rels[0].target_id) == ("store", "card")
    assert rels[0].type is RelationshipType.PROP_DEPENDENCY


def test_prop_dependency_from_attribute_passing():
    card = ComponentNode(
        id="card", name="Card",
        attributes={"title": "Hello", "onClick": None, "footer": None},
    )
    dashboard = ComponentNode(
        id="dashboard", name="Dashboard",
        structural_text='<Card title="Hello" onClick={handleClick} />',
    )

    rels = PropDependencyDetectionStrategy().detect(card, _by_id(card, dashboard))

    assert len(rels) == 1
    rel = rels[0]
    assert (rel.source_id, rel.target_id) == ("dashboard", "card")
    assert rel.metadata[PROP_NAMES] == ["title", "onClick"]
    assert rel.strength == 0.9


def test_prop_dependency_needs_attributes():
    card = ComponentNode(id="card", name="Card")
    dashboard = ComponentNode(id="dashboard", name="Dashboard", structural_text='<Card title="x" />')

    assert PropDependencyDetectionStrategy().detect(card, _by_id(card, dashboard)) == []


# =============================================================================
# STATE DEPENDENCY
# =============================================================================

def test_state_passed_to_child():
    dashboard = ComponentNode(
        id="dashboard", name="Dashboard",
        structural_text="const [user, setUser] = useState(null);\nreturn <Card user={user} />;",
    )
    card = ComponentNode(id="card", name="Card")

    rels = StateDependencyDetectionStrategy().detect(dashboard, _by_id(dashboard, card))

    assert len(rels) == 1
    rel = rels[0]
    assert (rel.source_id, rel.target_id) == ("dashboard", "card")
    assert rel.type is RelationshipType.STATE_DEPENDENCY
    assert rel.metadata[STATE_KEYS] == ["user"]
    assert rel.strength == 0.8


def test_state_not_passed_produces_nothing():
    dashboard = ComponentNode(
        id="dashboard", name="Dashboard",
        structural_text="const [count, setCount] = useState(0);\nreturn <Card title='x' />;",
    )
    card = ComponentNode(id="card", name="Card")

    assert StateDependencyDetectionStrategy().detect(dashboard, _by_id(dashboard, card)) == []


def test_explicit_shared_state_keys_use_ordered_pair():
    """Both ends propose the same edge, directed lower id -> higher id."""
    a = ComponentNode.create(id="a", name="A", shared_state_keys=["theme", "user"])
    b = ComponentNode.create(id="b", name="B", shared_state_keys=["user"])
    all_nodes = _by_id(a, b)
    strategy = StateDependencyDetectionStrategy()

    from_a = strategy.detect(a, all_nodes)
    from_b = strategy.detect(b, all_nodes)

    assert [r.key for r in from_a] == [r.key for r in from_b] == [
        ("a", "b", RelationshipType.STATE_DEPENDENCY)
    ]
    assert from_a[0].metadata[STATE_KEYS] == ["user"]
    assert from_a[0].strength == 1.0


# =============================================================================
# CONTEXT DEPENDENCY
# =============================================================================

def test_shared_context_channel():
    x = ComponentNode(id="x", name="X", structural_text="const theme = useContext(ThemeContext);")
    y = ComponentNode(
        id="y", name="Y",
        structural_text="useContext( ThemeContext ); useContext(AuthContext);",
    )
    z = ComponentNode(id="z", name="Z", structural_text="useContext(AuthContext)")

    rels = ContextDependencyDetectionStrategy().detect(y, _by_id(x, y, z))

    assert [(r.source_id, r.target_id) for r in rels] == [("x", "y"), ("y", "z")]
    assert rels[0].metadata[CONTEXT_NAMES] == ["ThemeContext"]
    assert rels[1].metadata[CONTEXT_NAMES] == ["AuthContext"]
    assert all(r.strength == 0.7 for r in rels)


# =============================================================================
# BASE / FACTORY
# =============================================================================

def test_default_strategies_in_execution_order():
    names = [s.name for s in create_default_strategies()]

    assert names == [
        "parent-child-detector",
        "prop-dependency-detector",
        "state-dependency-detector",
        "context-dependency-detector",
    ]


def test_base_strategy_is_abstract():
    with pytest.raises(NotImplementedError):
        DetectionStrategy().detect(ComponentNode(id="a", name="A"), {})
