from collections import deque
from typing import Dict, List, Sequence, Union

from .schema import ExecutionMode, NodePosition, WorkflowEdge, WorkflowNode
from .topology import topological_sort

X_ORIGIN = 100
X_SPACING = 300
SEQUENTIAL_Y = 200
LEVEL_Y_ORIGIN = 100
LEVEL_Y_SPACING = 150
SINGLE_MEMBER_Y_OFFSET = 50


def auto_layout(
    nodes: Sequence[WorkflowNode],
    edges: Sequence[WorkflowEdge],
    mode: Union[ExecutionMode, str] = ExecutionMode.SEQUENTIAL,
) -> List[WorkflowNode]:
    """Return repositioned copies of ``nodes`` for the given execution mode."""
    mode_value = mode.value if isinstance(mode, ExecutionMode) else str(mode)
    if mode_value == ExecutionMode.SEQUENTIAL.value:
        return layout_sequential(nodes, edges)
    if mode_value == ExecutionMode.PARALLEL.value:
        return layout_parallel(nodes, edges)
    return layout_conditional(nodes, edges)


def layout_sequential(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[WorkflowNode]:
    """Left to right in topological order. Nodes left out by the sort are not returned."""
    return [
        _moved(node, X_ORIGIN + index * X_SPACING, SEQUENTIAL_Y)
        for index, node in enumerate(topological_sort(nodes, edges))
    ]


def assign_levels(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> Dict[str, int]:
    """
    BFS levels from every zero in-degree node.

    A node's level is fixed the first time it is dequeued, not by its longest
    incoming path, so a merge node reached early through a short branch keeps
    the short branch's level. Unreached nodes (e.g. on a cycle) get level 0.
    """
    node_ids = {node.id for node in nodes}
    incoming: Dict[str, int] = {node.id: 0 for node in nodes}
    children: Dict[str, List[str]] = {node.id: [] for node in nodes}
    for edge in edges:
        incoming[edge.target] = incoming.get(edge.target, 0) + 1
        if edge.source in children and edge.target in node_ids:
            children[edge.source].append(edge.target)

    queue = deque((node.id, 0) for node in nodes if incoming[node.id] == 0)
    levels: Dict[str, int] = {}
    while queue:
        node_id, level = queue.popleft()
        if node_id in levels:
            continue
        levels[node_id] = level
        for child in children[node_id]:
            if child not in levels:
                queue.append((child, level + 1))

    return {node.id: levels.get(node.id, 0) for node in nodes}


def layout_parallel(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[WorkflowNode]:
    """One column per BFS level, members of a level stacked vertically."""
    levels = assign_levels(nodes, edges)

    groups: Dict[int, List[str]] = {}
    for node in nodes:
        groups.setdefault(levels[node.id], []).append(node.id)

    positioned: List[WorkflowNode] = []
    for node in nodes:
        level = levels[node.id]
        group = groups[level]
        offset = 0 if len(group) > 1 else SINGLE_MEMBER_Y_OFFSET
        positioned.append(_moved(
            node,
            X_ORIGIN + level * X_SPACING,
            LEVEL_Y_ORIGIN + group.index(node.id) * LEVEL_Y_SPACING + offset,
        ))
    return positioned


def layout_conditional(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[WorkflowNode]:
    # TODO: branch-aware tree layout; same as parallel until conditional edges get their own lanes.
    return layout_parallel(nodes, edges)


def _moved(node: WorkflowNode, x: float, y: float) -> WorkflowNode:
    return node.model_copy(update={"position": NodePosition(x=x, y=y)}, deep=True)
