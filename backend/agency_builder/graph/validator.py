"""
Structural validation of a canvas graph.

Problems come back as data for the UI to render; nothing here raises or
mutates its input. Errors block saving, warnings are advisory.
"""
import logging
from typing import List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field

from agency_builder.config import BuilderSettings, get_settings

from .identifiers import is_valid_principal
from .schema import ExecutionMode, NodeKind, WorkflowEdge, WorkflowNode
from .topology import find_cycle

logger = logging.getLogger(__name__)


class ValidationIssue(BaseModel):
    """A problem that makes the workflow invalid."""
    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    type: Literal["error", "warning", "info"] = "error"
    message: str
    suggestion: Optional[str] = None


class ValidationWarning(BaseModel):
    """An advisory that never blocks saving."""
    node_id: Optional[str] = None
    type: Literal["performance", "best-practice", "optimization"] = "best-practice"
    message: str
    suggestion: str


class ValidationResult(BaseModel):
    is_valid: bool = True
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationWarning] = Field(default_factory=list)


class WorkflowValidator:
    def __init__(self, settings: Optional[BuilderSettings] = None):
        self.settings = settings or get_settings()

    def validate(
        self,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
        mode: Union[ExecutionMode, str] = ExecutionMode.SEQUENTIAL,
    ) -> ValidationResult:
        errors: List[ValidationIssue] = []
        warnings: List[ValidationWarning] = []

        # 1. Node configuration
        for node in nodes:
            errors.extend(self._validate_canister_id(node))
            warnings.extend(self._validate_input_template(node))

        # 2. Connectivity
        if _mode_value(mode) == ExecutionMode.SEQUENTIAL.value:
            warnings.extend(self._validate_connectivity(nodes, edges))

        # 3. Circular dependencies
        cycle = find_cycle(nodes, edges)
        if cycle is not None:
            logger.info("Workflow contains a cycle: %s", " -> ".join(cycle))
            errors.append(ValidationIssue(
                type="error",
                message="Workflow contains circular dependencies",
                suggestion="Remove connections that create loops in the workflow",
            ))

        # 4. Size
        if len(nodes) > self.settings.large_workflow_threshold:
            warnings.append(ValidationWarning(
                type="performance",
                message="Large workflow may impact execution performance",
                suggestion="Consider breaking this into smaller sub-workflows",
            ))

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def _validate_canister_id(self, node: WorkflowNode) -> List[ValidationIssue]:
        canister_id = node.data.agent_canister_id
        if not canister_id or not canister_id.strip():
            if node.type != NodeKind.AGENT:
                return []
            return [ValidationIssue(
                node_id=node.id,
                type="error",
                message=f'Agent "{node.display_name}" is missing a canister ID',
                suggestion="Configure the agent by selecting a canister ID from available agents",
            )]

        if self.settings.strict_principals and not is_valid_principal(canister_id):
            return [ValidationIssue(
                node_id=node.id,
                type="error",
                message=f"Invalid canister ID format: {canister_id}",
                suggestion="Enter a valid Internet Computer Principal ID",
            )]
        return []

    @staticmethod
    def _validate_input_template(node: WorkflowNode) -> List[ValidationWarning]:
        if node.data.input_template.strip():
            return []
        return [ValidationWarning(
            node_id=node.id,
            type="best-practice",
            message=f'Agent "{node.display_name}" has an empty input template',
            suggestion="Provide an input template to define how data flows to this agent",
        )]

    @staticmethod
    def _validate_connectivity(
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
    ) -> List[ValidationWarning]:
        if len(nodes) <= 1:
            return []
        connected: set[str] = set()
        for edge in edges:
            connected.add(edge.source)
            connected.add(edge.target)
        return [
            ValidationWarning(
                node_id=node.id,
                type="performance",
                message=f'Agent "{node.display_name}" is not connected to the workflow',
                suggestion="Connect this agent to other agents to include it in the execution flow",
            )
            for node in nodes
            if node.id not in connected
        ]


def _mode_value(mode: Union[ExecutionMode, str]) -> str:
    return mode.value if isinstance(mode, ExecutionMode) else str(mode)


def validate_workflow(
    nodes: Sequence[WorkflowNode],
    edges: Sequence[WorkflowEdge],
    mode: Union[ExecutionMode, str] = ExecutionMode.SEQUENTIAL,
    settings: Optional[BuilderSettings] = None,
) -> ValidationResult:
    return WorkflowValidator(settings).validate(nodes, edges, mode)
