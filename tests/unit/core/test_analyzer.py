"""
Unit tests for core/analyzer.py - GraphAnalyzer

Tests the read-only graph algorithms:
- Shortest path over the undirected view
- Directed cycle discovery
- Hub / isolation classification
- Dependency depth, common dependencies, topological order
- Prop usage analysis
"""
from core.analyzer import GraphAnalyzer, HubComponent
from core.ontology import RelationshipType
from core.schemas import Relationship, PROP_NAMES
from infrastructure.config import AnalyzerConfig
from infrastructure.diagnostics import ErrorSeverity

PC = RelationshipType.PARENT_CHILD


def _cycle_warnings(reporter):
    return [
        d for d in reporter.get_by_severity(ErrorSeverity.WARNING)
        if d.metadata.get("error_type") == "CycleWarning"
    ]


# =============================================================================
# SHORTEST PATH
# =============================================================================

def test_shortest_path_prefers_fewest_edges(analyzer, add_nodes, add_edges):
    add_nodes("a", "b", "c", "d")
    add_edges(("a", "b", PC), ("b", "c", PC), ("c", "d", PC), ("a", "d", PC))

    assert analyzer.shortest_path("a", "d") == ["a", "d"]
    assert analyzer.shortest_path("b", "d") in (["b", "c", "d"], ["b", "a", "d"])


def test_shortest_path_ignores_edge_direction(analyzer, add_nodes, add_edges):
    add_nodes("a", "b", "c")
    add_edges(("a", "b"), ("c", "b"))

    assert analyzer.shortest_path("a", "c") == ["a", "b", "c"]
    assert analyzer.shortest_path("c", "a") == ["c", "b", "a"]


def test_shortest_path_edge_cases(analyzer, add_nodes, add_edges):
    add_nodes("a", "b", "lonely")
    add_edges(("a", "b"))

    assert analyzer.shortest_path("a", "a") == ["a"]
    assert analyzer.shortest_path("a", "lonely") == []
    assert analyzer.shortest_path("a", "ghost") == []
    assert analyzer.shortest_path("ghost", "ghost") == []


# =============================================================================
# CYCLES
# =============================================================================

def test_find_cycles_reports_directed_cycle(analyzer, add_nodes, add_edges):
    add_nodes("a", "b", "c")
    add_edges(("a", "b"), ("b", "c", PC), ("c", "a"))

    assert analyzer.find_cycles("a") == [["a", "b", "c", "a"]]


def test_find_cycles_from_node_leading_into_cycle(analyzer, add_nodes, add_edges):
    add_nodes("start", "x", "y")
    add_edges(("start", "x"), ("x", "y"), ("y", "x"))

    assert analyzer.find_cycles("start") == [["x", "y", "x"]]


def test_find_cycles_reports_disjoint_cycles_behind_one_start(analyzer, add_nodes, add_edges):
    add_nodes("s", "a", "b", "c", "d")
    add_edges(("s", "a"), ("a", "b"), ("b", "a"), ("s", "c"), ("c", "d"), ("d", "c"))

    assert analyzer.find_cycles("s") == [["a", "b", "a"], ["c", "d", "c"]]


def test_find_cycles_none_in_dag(analyzer, add_nodes, add_edges):
    add_nodes("a", "b", "c")
    add_edges(("a", "b"), ("a", "c"), ("b", "c"))

    assert analyzer.find_cycles("a") == []
    assert analyzer.find_cycles("ghost") == []


def test_find_cycles_self_loop(analyzer, add_nodes, add_edges):
    add_nodes("a")
    add_edges(("a", "a", RelationshipType.CUSTOM))

    assert analyzer.find_cycles("a") == [["a", "a"]]


# =============================================================================
# HUBS & ISOLATION
# =============================================================================

def test_star_center_is_hub_and_leaves_are_isolated(analyzer, add_nodes, add_edges):
    leaves = [f"leaf{i}" for i in range(6)]
    add_nodes("center", *leaves)
    add_edges(*[("center", leaf, PC) for leaf in leaves])

    assert analyzer.find_hubs() == [HubComponent(id="center", connection_count=6)]
    assert analyzer.find_isolated() == leaves


def test_find_hubs_sorted_descending_and_stable(analyzer, add_nodes, add_edges):
    add_nodes("a", "b", "c", "x", "y", "z")
    add_edges(("a", "x"), ("b", "x"), ("b", "y"), ("c", "x"), ("c", "y"))

    hubs = analyzer.find_hubs(threshold=2)

    # x:3, then b and c tie at 2 and y at 2; ties keep discovery order
    assert [(h.id, h.connection_count) for h in hubs] == [("x", 3), ("b", 2), ("c", 2), ("y", 2)]


def test_thresholds_come_from_config(fresh_store, reporter, add_nodes, add_edges):
    add_nodes("a", "b", "c")
    add_edges(("a", "b"), ("a", "c"))
    analyzer = GraphAnalyzer(
        fresh_store, reporter=reporter,
        config=AnalyzerConfig(hub_threshold=2, isolation_threshold=0),
    )

    assert [h.id for h in analyzer.find_hubs()] == ["a"]
    assert analyzer.find_isolated() == []


# =============================================================================
# DEPENDENCY ANALYSIS
# =============================================================================

def test_dependency_depth_chain(analyzer, add_nodes, add_edges):
    """card depends on dashboard, which depends on store."""
    add_nodes("card", "dashboard", "store")
    add_edges(("store", "dashboard"), ("dashboard", "card"))

    depth = analyzer.dependency_depth("card")

    assert depth.max_depth == 2
    assert depth.dependency_paths == {
        "dashboard": ["card", "dashboard"],
        "store": ["card", "dashboard", "store"],
    }


def test_dependency_depth_diamond_keeps_first_visited_path(analyzer, add_nodes, add_edges):
    """x depends on p and q, p depends on q; q is first reached through p."""
    add_nodes("x", "p", "q")
    add_edges(("p", "x"), ("q", "x"), ("q", "p"))

    depth = analyzer.dependency_depth("x")

    assert depth.max_depth == 2
    assert depth.dependency_paths == {"p": ["x", "p"], "q": ["x", "p", "q"]}


def test_dependency_depth_diamond_direct_route_visited_first(analyzer, add_nodes, add_edges):
    add_nodes("x", "p", "q")
    add_edges(("q", "x"), ("p", "x"), ("q", "p"))

    depth = analyzer.dependency_depth("x")

    # q is already visited when p is explored, so the longer route is not taken
    assert depth.max_depth == 1
    assert depth.dependency_paths == {"q": ["x", "q"], "p": ["x", "p"]}


def test_dependency_depth_ignores_non_dependency_edges(analyzer, add_nodes, add_edges):
    add_nodes("a", "b")
    add_edges(("b", "a", PC))

    depth = analyzer.dependency_depth("a")

    assert depth.max_depth == 0
    assert depth.dependency_paths == {}


def test_dependency_depth_unknown_component(analyzer):
    depth = analyzer.dependency_depth("ghost")
    assert depth.max_depth == 0
    assert depth.dependency_paths == {}


def test_dependency_depth_survives_cycle(analyzer, reporter, add_nodes, add_edges):
    add_nodes("a", "b")
    add_edges(("a", "b"), ("b", "a"))

    depth = analyzer.dependency_depth("a")

    assert depth.max_depth == 1
    assert depth.dependency_paths == {"b": ["a", "b"]}
    assert len(_cycle_warnings(reporter)) == 1


def test_common_dependencies(analyzer, add_nodes, add_edges):
    add_nodes("x", "y", "z", "store", "theme")
    add_edges(
        ("store", "x"), ("theme", "x"),
        ("theme", "y"), ("store", "y"),
        ("store", "z", RelationshipType.STATE_DEPENDENCY),
    )

    assert analyzer.common_dependencies(["x", "y"]) == ["store", "theme"]
    assert analyzer.common_dependencies(["y", "x"]) == ["theme", "store"]
    assert analyzer.common_dependencies(["x", "y", "z"]) == ["store"]
    assert analyzer.common_dependencies([]) == []


def test_topological_order_puts_dependents_first(analyzer, add_nodes, add_edges):
    add_nodes("card", "dashboard", "store")
    add_edges(("store", "dashboard"), ("dashboard", "card"))

    assert analyzer.topological_order() == ["card", "dashboard", "store"]


def test_topological_order_with_cycle_covers_every_node(analyzer, reporter, add_nodes, add_edges):
    add_nodes("a", "b", "c")
    add_edges(("a", "b"), ("b", "a"), ("a", "c"))

    order = analyzer.topological_order()

    assert sorted(order) == ["a", "b", "c"]
    assert order.index("c") < order.index("a")
    assert len(_cycle_warnings(reporter)) == 1


def test_has_dependency_cycle(analyzer, add_nodes, add_edges):
    add_nodes("a", "b")
    add_edges(("a", "b", PC), ("b", "a", PC))
    # Parent-child loops are not dependency cycles
    assert analyzer.has_dependency_cycle() is False

    add_edges(("a", "b"), ("b", "a", RelationshipType.CONTEXT_DEPENDENCY))
    assert analyzer.has_dependency_cycle() is True


def test_analyze_prop_usage(analyzer, fresh_store, add_nodes):
    add_nodes("app", "dashboard", "card", "icon")
    fresh_store.add_edge(Relationship.prop_dependency("dashboard", "card", metadata={PROP_NAMES: ["title"]}))
    fresh_store.add_edge(Relationship.prop_dependency("app", "card", metadata={PROP_NAMES: ["title", "footer"]}))
    fresh_store.add_edge(Relationship.prop_dependency("card", "icon", metadata={PROP_NAMES: ["size"]}))

    usage = {u.prop_name: u for u in analyzer.analyze_prop_usage("card")}

    assert set(usage) == {"title", "footer", "size"}
    assert usage["title"].source_components == ["dashboard", "app"]
    assert usage["title"].usage_count == 2
    assert usage["footer"].source_components == ["app"]
    assert usage["size"].target_components == ["icon"]
    assert usage["size"].source_components == []
