"""
Schedule -> canvas conversion.

Rebuilds an editable graph from compiled steps. Node ids and positions are
regenerated (``step-{index}``, laid out left to right), so a compile/decompile
round trip preserves step content and connection structure, not identity.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from .ir import AgentConnection, AgentStep
from .schema import (
    ConditionKind,
    ConnectionCondition,
    EdgeData,
    EdgeKind,
    ForEachLoop,
    NestedWorkflowTarget,
    NodeKind,
    NodePosition,
    NodeStatus,
    RepeatLoop,
    WhileLoop,
    WorkflowEdge,
    WorkflowNode,
    WorkflowNodeData,
)

logger = logging.getLogger(__name__)

DEFAULT_AGENT_ICON = "⚙️"
NESTED_WORKFLOW_ICON = "🔄"

# First match wins, so order matters.
AGENT_ICON_KEYWORDS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("customer", "support"), "👥"),
    (("data", "process"), "📊"),
    (("email", "notification"), "📧"),
    (("validation", "verify"), "✅"),
    (("ai", "assistant"), "🤖"),
    (("report", "analytics"), "📈"),
    (("integration", "api"), "🔗"),
    (("security", "auth"), "🔒"),
    (("payment", "billing"), "💳"),
    (("monitor", "health"), "🏥"),
)

STEP_X_ORIGIN = 100
STEP_X_SPACING = 300
STEP_Y = 100


def get_agent_icon(agent_name: str) -> str:
    name = (agent_name or "").lower()
    for keywords, icon in AGENT_ICON_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return icon
    return DEFAULT_AGENT_ICON


def describe_step(step: AgentStep) -> Tuple[str, str]:
    """Return the (icon, description) shown on the canvas for a compiled step."""
    icon = get_agent_icon(step.agent_name)
    description = f"Agent: {step.agent_name}"

    if isinstance(step.step_target, NestedWorkflowTarget):
        icon = NESTED_WORKFLOW_ICON
        description = f"Sub-workflow: {step.step_target.agency.agency_id}"

    loop = step.loop_config
    if isinstance(loop, ForEachLoop):
        description += f" (Loop: for each in {loop.for_each.array_source})"
    elif isinstance(loop, WhileLoop):
        description += f" (Loop: while {loop.while_loop.condition})"
    elif isinstance(loop, RepeatLoop):
        description += f" (Loop: repeat {loop.repeat.count} times)"

    return icon, description


class WorkflowDecompiler:
    def decompile(
        self,
        steps: Sequence[AgentStep],
        connections: Optional[Sequence[AgentConnection]] = None,
    ) -> Tuple[List[WorkflowNode], List[WorkflowEdge]]:
        nodes = [self._build_node(index, step) for index, step in enumerate(steps)]
        if connections:
            edges = self._edges_from_connections(nodes, connections)
        else:
            edges = self._linear_chain(nodes)
        return nodes, edges

    @staticmethod
    def _build_node(index: int, step: AgentStep) -> WorkflowNode:
        icon, description = describe_step(step)
        configured = bool(step.agent_canister_id) or step.step_target is not None
        return WorkflowNode(
            id=f"step-{index}",
            type=NodeKind.AGENT,
            position=NodePosition(x=STEP_X_ORIGIN + index * STEP_X_SPACING, y=STEP_Y),
            data=WorkflowNodeData(
                agent_canister_id=step.agent_canister_id,
                agent_name=step.agent_name,
                input_template=step.input_template,
                requires_approval=step.requires_approval,
                retry_on_failure=step.retry_on_failure,
                timeout=step.timeout,
                status=NodeStatus.CONFIGURED if configured else NodeStatus.UNCONFIGURED,
                validation_errors=[],
                trigger_config=dict(step.trigger_config) if step.trigger_config is not None else None,
                icon=icon,
                description=description,
                step_target=step.step_target.model_copy(deep=True) if step.step_target is not None else None,
                loop_config=step.loop_config.model_copy(deep=True) if step.loop_config is not None else None,
            ),
        )

    @staticmethod
    def _edges_from_connections(
        nodes: List[WorkflowNode],
        connections: Sequence[AgentConnection],
    ) -> List[WorkflowEdge]:
        edges: List[WorkflowEdge] = []
        for index, conn in enumerate(connections):
            if not (0 <= conn.source_step_index < len(nodes) and 0 <= conn.target_step_index < len(nodes)):
                logger.warning(
                    "Skipping connection %d -> %d: step index out of range (%d steps)",
                    conn.source_step_index,
                    conn.target_step_index,
                    len(nodes),
                )
                continue
            condition = conn.condition.model_copy(deep=True)
            edges.append(
                WorkflowEdge(
                    id=f"edge-{index}",
                    source=nodes[conn.source_step_index].id,
                    target=nodes[conn.target_step_index].id,
                    type=EdgeKind.DEFAULT if condition.kind == ConditionKind.ALWAYS else EdgeKind.CONDITIONAL,
                    animated=False,
                    data=EdgeData(condition=condition, label=condition.label()),
                )
            )
        return edges

    @staticmethod
    def _linear_chain(nodes: List[WorkflowNode]) -> List[WorkflowEdge]:
        return [
            WorkflowEdge(
                id=f"edge-{i}",
                source=nodes[i].id,
                target=nodes[i + 1].id,
                type=EdgeKind.DEFAULT,
                animated=False,
                data=EdgeData(condition=ConnectionCondition.always_()),
            )
            for i in range(len(nodes) - 1)
        ]


def convert_agent_steps_to_workflow(
    steps: Sequence[AgentStep],
    connections: Optional[Sequence[AgentConnection]] = None,
) -> Tuple[List[WorkflowNode], List[WorkflowEdge]]:
    return WorkflowDecompiler().decompile(steps, connections)
