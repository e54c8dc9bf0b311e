import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from agency_builder.config import BuilderSettings, get_settings
from agency_builder.exceptions import WorkflowNotReadyError
from agency_builder.graph.compiler import WorkflowCompiler
from agency_builder.graph.decompiler import WorkflowDecompiler
from agency_builder.graph.ir import AgentConnection, AgentStep, CompiledSchedule
from agency_builder.graph.schema import ExecutionMode, WorkflowEdge, WorkflowNode
from agency_builder.graph.validator import ValidationResult, WorkflowValidator
from agency_builder.services.template_library import has_configured_agent

logger = logging.getLogger(__name__)

AvailableAgent = Union[str, Dict[str, Any]]


class CompiledWorkflowSnapshot(BaseModel):
    """
    Immutable snapshot of a compiled workflow.
    This is what gets handed to the agency runtime.
    """
    name: str
    description: str = ""
    execution_mode: ExecutionMode = ExecutionMode.SEQUENTIAL
    steps: List[AgentStep] = Field(default_factory=list)
    connections: List[AgentConnection] = Field(default_factory=list)
    validation: ValidationResult = Field(default_factory=ValidationResult)
    hash: str  # Checksum of the runtime schedule
    compiled_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_runtime(self) -> Dict[str, Any]:
        return CompiledSchedule(steps=self.steps, connections=self.connections).to_runtime()


class ExecutionRequest(BaseModel):
    input: str
    steps: List[AgentStep] = Field(default_factory=list)
    connections: List[AgentConnection] = Field(default_factory=list)

    def to_runtime(self) -> Dict[str, Any]:
        schedule = CompiledSchedule(steps=self.steps, connections=self.connections).to_runtime()
        return {"input": self.input, **schedule}


def available_agent_ids(available_agents: Optional[Iterable[AvailableAgent]]) -> Optional[List[str]]:
    """Canister ids from the agent picker; entries are plain ids or ``{"canisterId": ...}`` dicts."""
    if available_agents is None:
        return None
    ids: List[str] = []
    for agent in available_agents:
        if isinstance(agent, str):
            canister_id = agent
        elif isinstance(agent, dict):
            canister_id = agent.get("canisterId") or agent.get("canister_id")
        else:
            canister_id = getattr(agent, "canister_id", None)
        if canister_id:
            ids.append(str(canister_id))
    return ids


class WorkflowService:
    """
    Service layer for saving and running canvas workflows.

    Wraps the validator, compiler and decompiler with the readiness checks the
    canvas performs before a save or an execution.
    """

    def __init__(self, settings: Optional[BuilderSettings] = None):
        self.settings = settings or get_settings()
        self.validator = WorkflowValidator(self.settings)
        self.decompiler = WorkflowDecompiler()

    def check_ready(self, nodes: Sequence[WorkflowNode]) -> None:
        if not nodes:
            raise WorkflowNotReadyError("Workflow is empty; add at least one agent")
        if not has_configured_agent(nodes):
            raise WorkflowNotReadyError("Configure at least one agent with a canister ID")

    def compile_runnable(
        self,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
        available_agents: Optional[Iterable[AvailableAgent]] = None,
        hosting_canister_id: Optional[str] = None,
    ) -> CompiledSchedule:
        compiler = WorkflowCompiler(hosting_canister_id, available_agent_ids(available_agents))
        schedule = compiler.compile(nodes, edges)
        if schedule.is_empty:
            raise WorkflowNotReadyError(
                "No executable agents: check canister IDs and agent availability"
            )
        return schedule

    def build_snapshot(
        self,
        name: str,
        description: str,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
        available_agents: Optional[Iterable[AvailableAgent]] = None,
        hosting_canister_id: Optional[str] = None,
        execution_mode: Union[ExecutionMode, str] = ExecutionMode.SEQUENTIAL,
    ) -> CompiledWorkflowSnapshot:
        if not name or not name.strip():
            raise WorkflowNotReadyError("Workflow name is required")
        self.check_ready(nodes)

        mode = ExecutionMode(execution_mode)
        validation = self.validator.validate(nodes, edges, mode)
        if not validation.is_valid:
            raise WorkflowNotReadyError(
                f"Cannot save: workflow validation failed with {len(validation.errors)} errors"
            )

        schedule = self.compile_runnable(nodes, edges, available_agents, hosting_canister_id)
        snapshot = CompiledWorkflowSnapshot(
            name=name.strip(),
            description=description or "",
            execution_mode=mode,
            steps=schedule.steps,
            connections=schedule.connections,
            validation=validation,
            hash=schedule.compute_hash(),
        )
        logger.info(
            "Compiled workflow %r: %d steps, %d connections, hash %s",
            snapshot.name,
            len(snapshot.steps),
            len(snapshot.connections),
            snapshot.hash[:12],
        )
        return snapshot

    def prepare_execution(
        self,
        input_text: str,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
        available_agents: Optional[Iterable[AvailableAgent]] = None,
        hosting_canister_id: Optional[str] = None,
    ) -> ExecutionRequest:
        if not input_text or not input_text.strip():
            raise WorkflowNotReadyError("Execution input is required")
        self.check_ready(nodes)
        schedule = self.compile_runnable(nodes, edges, available_agents, hosting_canister_id)
        return ExecutionRequest(input=input_text, steps=schedule.steps, connections=schedule.connections)

    def load_snapshot(
        self,
        snapshot_or_steps: Union[CompiledWorkflowSnapshot, Sequence[Union[AgentStep, Dict[str, Any]]]],
        connections: Optional[Sequence[Union[AgentConnection, Dict[str, Any]]]] = None,
    ) -> Tuple[List[WorkflowNode], List[WorkflowEdge]]:
        """Rebuild an editable graph from a snapshot or from raw runtime steps."""
        if isinstance(snapshot_or_steps, CompiledWorkflowSnapshot):
            steps = snapshot_or_steps.steps
            if connections is None:
                connections = snapshot_or_steps.connections
        else:
            steps = [
                step if isinstance(step, AgentStep) else AgentStep.model_validate(step)
                for step in snapshot_or_steps
            ]
        conns = [
            conn if isinstance(conn, AgentConnection) else AgentConnection.model_validate(conn)
            for conn in connections or []
        ]
        return self.decompiler.decompile(steps, conns)
