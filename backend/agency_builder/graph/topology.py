"""
Graph ordering helpers: Kahn topological sort and DFS cycle detection.

``topological_sort`` never signals failure. Nodes on a cycle (and everything
downstream of one) never reach in-degree zero and are left out of the result,
so callers must run ``has_cycle`` before trusting that the order covers the
whole graph.
"""
import logging
from collections import defaultdict, deque
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .schema import WorkflowEdge, WorkflowNode

logger = logging.getLogger(__name__)


def _adjacency(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> Dict[str, List[str]]:
    adjacency: Dict[str, List[str]] = {node.id: [] for node in nodes}
    for edge in edges:
        adjacency.setdefault(edge.source, []).append(edge.target)
    return adjacency


def topological_sort(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[WorkflowNode]:
    """
    Order nodes with Kahn's algorithm.

    In-degrees are counted over every edge, including edges whose source is
    not one of ``nodes``. Ties are broken FIFO by input order, so the result is
    deterministic for a given input ordering.
    """
    adjacency: Dict[str, List[str]] = defaultdict(list)
    in_degree: Dict[str, int] = {node.id: 0 for node in nodes}

    for edge in edges:
        adjacency[edge.source].append(edge.target)
        in_degree[edge.target] = in_degree.get(edge.target, 0) + 1

    queue = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
    ordered_ids: List[str] = []

    while queue:
        current = queue.popleft()
        ordered_ids.append(current)

        for neighbor in adjacency[current]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    node_map = {node.id: node for node in nodes}
    ordered = [node_map[node_id] for node_id in ordered_ids if node_id in node_map]
    if len(ordered) != len(nodes):
        logger.debug(
            "Topological sort omitted %d of %d nodes (cycle or dangling edge)",
            len(nodes) - len(ordered),
            len(nodes),
        )
    return ordered


def find_cycle(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> Optional[List[str]]:
    """
    Return the node ids of the first cycle found by a depth-first search, or None.

    The path is closed, e.g. ``["a", "b", "c", "a"]``. Roots are tried in input
    order and neighbours in edge order.
    """
    adjacency = _adjacency(nodes, edges)
    visited: set[str] = set()

    for node in nodes:
        if node.id in visited:
            continue

        path: List[str] = [node.id]
        on_path: set[str] = {node.id}
        stack: List[Tuple[str, Iterator[str]]] = [(node.id, iter(adjacency.get(node.id, [])))]
        visited.add(node.id)

        while stack:
            current, neighbors = stack[-1]
            descended = False
            for neighbor in neighbors:
                if neighbor in on_path:
                    return path[path.index(neighbor):] + [neighbor]
                if neighbor not in visited:
                    visited.add(neighbor)
                    on_path.add(neighbor)
                    path.append(neighbor)
                    stack.append((neighbor, iter(adjacency.get(neighbor, []))))
                    descended = True
                    break
            if not descended:
                stack.pop()
                path.pop()
                on_path.discard(current)

    return None


def has_cycle(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> bool:
    return find_cycle(nodes, edges) is not None
