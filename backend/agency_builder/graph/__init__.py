from .schema import (
    AgentTarget,
    ConditionKind,
    ConnectionCondition,
    EdgeData,
    EdgeKind,
    ExecutionMode,
    ForEachLoop,
    LoopConfig,
    NestedWorkflowTarget,
    NoLoop,
    NodeKind,
    NodePosition,
    NodeStatus,
    RepeatLoop,
    StepTarget,
    WhileLoop,
    WorkflowEdge,
    WorkflowGraph,
    WorkflowNode,
    WorkflowNodeData,
)
from .ir import AgentConnection, AgentStep, CompiledSchedule
from .eligibility import EligibilityRejection, filter_eligible_nodes, is_eligible_node
from .topology import find_cycle, has_cycle, topological_sort
from .compiler import (
    WorkflowCompiler,
    compile_workflow,
    convert_edges_to_connections,
    convert_workflow_to_agent_steps,
)
from .decompiler import WorkflowDecompiler, convert_agent_steps_to_workflow, get_agent_icon
from .validator import ValidationIssue, ValidationResult, ValidationWarning, WorkflowValidator, validate_workflow
from .layout import auto_layout
from .estimator import estimate_execution_time
from .identifiers import generate_id, is_valid_principal

__all__ = [
    "AgentTarget",
    "ConditionKind",
    "ConnectionCondition",
    "EdgeData",
    "EdgeKind",
    "ExecutionMode",
    "ForEachLoop",
    "LoopConfig",
    "NestedWorkflowTarget",
    "NoLoop",
    "NodeKind",
    "NodePosition",
    "NodeStatus",
    "RepeatLoop",
    "StepTarget",
    "WhileLoop",
    "WorkflowEdge",
    "WorkflowGraph",
    "WorkflowNode",
    "WorkflowNodeData",
    "AgentConnection",
    "AgentStep",
    "CompiledSchedule",
    "EligibilityRejection",
    "filter_eligible_nodes",
    "is_eligible_node",
    "find_cycle",
    "has_cycle",
    "topological_sort",
    "WorkflowCompiler",
    "compile_workflow",
    "convert_edges_to_connections",
    "convert_workflow_to_agent_steps",
    "WorkflowDecompiler",
    "convert_agent_steps_to_workflow",
    "get_agent_icon",
    "ValidationIssue",
    "ValidationResult",
    "ValidationWarning",
    "WorkflowValidator",
    "validate_workflow",
    "auto_layout",
    "estimate_execution_time",
    "generate_id",
    "is_valid_principal",
]
