import logging
from typing import Collection, Dict, List, Optional, Sequence

from .eligibility import filter_eligible_nodes
from .ir import AgentConnection, AgentStep, CompiledSchedule
from .schema import WorkflowEdge, WorkflowNode
from .topology import topological_sort

logger = logging.getLogger(__name__)


class WorkflowCompiler:
    """
    Compiles a canvas graph into an index-addressed schedule.

    The compilation process:
    1. Order all nodes topologically
    2. Keep the eligible agent nodes, preserving that order
    3. Number them: a step's index is its position among eligible nodes
    4. Re-address every edge between two eligible nodes by step index

    Edges touching an ineligible node are dropped, and a graph with no eligible
    node compiles to an empty schedule. Compilation never raises; callers that
    need at least one step check ``CompiledSchedule.is_empty`` themselves.
    Cycles are not detected here, run the validator first.
    """

    def __init__(
        self,
        hosting_canister_id: Optional[str] = None,
        available_agent_ids: Optional[Collection[str]] = None,
    ):
        self.hosting_canister_id = hosting_canister_id
        self.available_agent_ids = available_agent_ids

    def compile(self, nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> CompiledSchedule:
        eligible = self._eligible_in_order(nodes, edges)
        steps = [self._build_step(node) for node in eligible]
        step_index = {node.id: index for index, node in enumerate(eligible)}
        connections = self._build_connections(edges, step_index)

        logger.debug(
            "Compiled %d nodes / %d edges into %d steps / %d connections",
            len(nodes),
            len(edges),
            len(steps),
            len(connections),
        )
        return CompiledSchedule(steps=steps, connections=connections)

    def compile_steps(self, nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[AgentStep]:
        return [self._build_step(node) for node in self._eligible_in_order(nodes, edges)]

    def compile_connections(
        self,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
    ) -> List[AgentConnection]:
        eligible = self._eligible_in_order(nodes, edges)
        step_index = {node.id: index for index, node in enumerate(eligible)}
        return self._build_connections(edges, step_index)

    def _eligible_in_order(
        self,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
    ) -> List[WorkflowNode]:
        ordered = topological_sort(nodes, edges)
        if len(ordered) != len(nodes):
            logger.warning(
                "%d node(s) left out of the execution order; the graph likely contains a cycle",
                len(nodes) - len(ordered),
            )
        return filter_eligible_nodes(ordered, self.hosting_canister_id, self.available_agent_ids)

    @staticmethod
    def _build_step(node: WorkflowNode) -> AgentStep:
        data = node.data
        return AgentStep(
            agent_canister_id=data.agent_canister_id,
            agent_name=data.agent_name,
            input_template=data.input_template,
            requires_approval=data.requires_approval,
            retry_on_failure=data.retry_on_failure,
            timeout=data.timeout,
            trigger_config=dict(data.trigger_config) if data.trigger_config is not None else None,
            step_target=data.step_target.model_copy(deep=True) if data.step_target is not None else None,
            loop_config=data.loop_config.model_copy(deep=True) if data.loop_config is not None else None,
        )

    @staticmethod
    def _build_connections(edges: Sequence[WorkflowEdge], step_index: Dict[str, int]) -> List[AgentConnection]:
        connections: List[AgentConnection] = []
        for edge in edges:
            source_index = step_index.get(edge.source)
            target_index = step_index.get(edge.target)
            if source_index is None or target_index is None:
                logger.debug("Dropping edge %s (%s -> %s): endpoint not compiled", edge.id, edge.source, edge.target)
                continue
            connections.append(
                AgentConnection(
                    source_step_index=source_index,
                    target_step_index=target_index,
                    condition=edge.condition.normalized(),
                )
            )
        return connections


def compile_workflow(
    nodes: Sequence[WorkflowNode],
    edges: Sequence[WorkflowEdge],
    excluded_ref: Optional[str] = None,
    allowed_refs: Optional[Collection[str]] = None,
) -> CompiledSchedule:
    return WorkflowCompiler(excluded_ref, allowed_refs).compile(nodes, edges)


def convert_workflow_to_agent_steps(
    nodes: Sequence[WorkflowNode],
    edges: Sequence[WorkflowEdge],
    available_agent_ids: Optional[Collection[str]] = None,
    hosting_canister_id: Optional[str] = None,
) -> List[AgentStep]:
    return WorkflowCompiler(hosting_canister_id, available_agent_ids).compile_steps(nodes, edges)


def convert_edges_to_connections(
    nodes: Sequence[WorkflowNode],
    edges: Sequence[WorkflowEdge],
    available_agent_ids: Optional[Collection[str]] = None,
    hosting_canister_id: Optional[str] = None,
) -> List[AgentConnection]:
    return WorkflowCompiler(hosting_canister_id, available_agent_ids).compile_connections(nodes, edges)
