from agency_builder.graph.topology import find_cycle, has_cycle, topological_sort
from tests.workflow_helpers import agent_node, chain, edge, edges_from, ids


def test_linear_chain_is_ordered_by_edges_not_input_order():
    nodes = [agent_node("c"), agent_node("a"), agent_node("b")]
    ordered = topological_sort(nodes, chain("a", "b", "c"))
    assert ids(ordered) == ["a", "b", "c"]


def test_ties_are_broken_by_input_order():
    nodes = [agent_node("x"), agent_node("y"), agent_node("z")]
    assert ids(topological_sort(nodes, [])) == ["x", "y", "z"]

    reordered = [agent_node("z"), agent_node("x"), agent_node("y")]
    assert ids(topological_sort(reordered, [])) == ["z", "x", "y"]


def test_every_edge_respects_the_order_for_acyclic_graphs():
    nodes = [agent_node(n) for n in ("d", "c", "b", "a", "e")]
    edges = edges_from([("a", "b"), ("a", "c"), ("b", "d"), ("c", "d"), ("d", "e")])
    position = {node_id: i for i, node_id in enumerate(ids(topological_sort(nodes, edges)))}

    assert len(position) == len(nodes)
    for e in edges:
        assert position[e.source] < position[e.target]


def test_sort_is_deterministic():
    nodes = [agent_node(n) for n in ("a", "b", "c", "d")]
    edges = edges_from([("a", "c"), ("b", "c"), ("c", "d")])
    first = ids(topological_sort(nodes, edges))
    for _ in range(5):
        assert ids(topological_sort(nodes, edges)) == first


def test_nodes_on_a_cycle_and_downstream_are_omitted():
    nodes = [agent_node(n) for n in ("a", "b", "c", "d")]
    edges = edges_from([("a", "b"), ("b", "c"), ("c", "b"), ("c", "d")])
    assert ids(topological_sort(nodes, edges)) == ["a"]


def test_self_loop_is_omitted():
    nodes = [agent_node("a"), agent_node("b")]
    assert ids(topological_sort(nodes, [edge("a", "a")])) == ["b"]


def test_edge_from_unknown_source_holds_back_its_target():
    nodes = [agent_node("a"), agent_node("b")]
    ordered = topological_sort(nodes, [edge("ghost", "b")])
    assert ids(ordered) == ["a"]


def test_edge_to_unknown_target_is_ignored():
    nodes = [agent_node("a"), agent_node("b")]
    ordered = topological_sort(nodes, [edge("a", "ghost"), edge("a", "b")])
    assert ids(ordered) == ["a", "b"]


def test_has_cycle_detects_back_edges_only():
    nodes = [agent_node(n) for n in ("a", "b", "c", "d")]
    diamond = edges_from([("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")])
    assert has_cycle(nodes, diamond) is False
    assert has_cycle(nodes, diamond + [edge("d", "a")]) is True


def test_has_cycle_on_self_loop_and_empty_graph():
    assert has_cycle([agent_node("a")], [edge("a", "a")]) is True
    assert has_cycle([], []) is False


def test_find_cycle_returns_closed_path():
    nodes = [agent_node(n) for n in ("a", "b", "c")]
    edges = edges_from([("a", "b"), ("b", "c"), ("c", "a")])
    assert find_cycle(nodes, edges) == ["a", "b", "c", "a"]


def test_cycle_detection_handles_deep_chains():
    node_ids = [f"n{i}" for i in range(3000)]
    nodes = [agent_node(n) for n in node_ids]
    edges = chain(*node_ids)
    assert has_cycle(nodes, edges) is False
    assert has_cycle(nodes, edges + [edge(node_ids[-1], node_ids[0])]) is True


def test_three_node_cycle_leaves_only_the_isolated_node():
    nodes = [agent_node(n) for n in ("a", "b", "c", "d")]
    edges = edges_from([("a", "b"), ("b", "c"), ("c", "a")])

    assert ids(topological_sort(nodes, edges)) == ["d"]
    assert has_cycle(nodes, edges) is True
