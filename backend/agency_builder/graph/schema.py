"""
Graph Schema - Pydantic models for the visual agency workflow graph.

Field names are snake_case in Python and camelCase on the wire, matching the
payloads produced by the React Flow canvas.
"""
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models exchanged with the canvas and the execution runtime."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


class NodeKind(str, Enum):
    """Types of nodes on the workflow canvas. Only AGENT nodes compile to steps."""
    AGENT = "agent"
    TRIGGER = "trigger"
    CONDITION = "condition"
    PARALLEL = "parallel"


class EdgeKind(str, Enum):
    DEFAULT = "default"
    CONDITIONAL = "conditional"
    PARALLEL = "parallel"
    TRIGGER = "trigger"


class NodeStatus(str, Enum):
    CONFIGURED = "configured"
    UNCONFIGURED = "unconfigured"
    ERROR = "error"
    VALID = "valid"


class ExecutionMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    CONDITIONAL = "conditional"


class ConditionKind(str, Enum):
    ON_SUCCESS = "on_success"
    ON_FAILURE = "on_failure"
    ALWAYS = "always"
    IF_CONTAINS = "if_contains"
    IF_EQUALS = "if_equals"


# ---------------------------------------------------------------------------
# Connection conditions
# ---------------------------------------------------------------------------

class FieldMatch(WireModel):
    field: str
    value: str


class ConnectionCondition(WireModel):
    """
    Branch predicate carried by an edge or a compiled connection.

    The wire form is an object keyed by variant, e.g. ``{"onSuccess": null}`` or
    ``{"ifContains": {"field": "status", "value": "ok"}}``. For the marker
    variants (onSuccess, onFailure, always) the presence of the key is what
    counts, not its value. When an object carries several keys the variant is
    resolved as onSuccess > onFailure > always > ifContains > ifEquals, and a
    condition with none of them behaves as always.
    """
    on_success: Any = None
    on_failure: Any = None
    always: Any = None
    if_contains: Optional[FieldMatch] = None
    if_equals: Optional[FieldMatch] = None

    @model_serializer(mode="wrap")
    def _dump_present_keys(self, handler):
        data = handler(self)
        present: set[str] = set()
        for name in self.model_fields_set:
            present.add(name)
            present.add(to_camel(name))
        return {key: value for key, value in data.items() if key in present}

    @property
    def kind(self) -> ConditionKind:
        fields_set = self.model_fields_set
        if "on_success" in fields_set:
            return ConditionKind.ON_SUCCESS
        if "on_failure" in fields_set:
            return ConditionKind.ON_FAILURE
        if "always" in fields_set:
            return ConditionKind.ALWAYS
        if self.if_contains:
            return ConditionKind.IF_CONTAINS
        if self.if_equals:
            return ConditionKind.IF_EQUALS
        return ConditionKind.ALWAYS

    def label(self) -> str:
        kind = self.kind
        if kind == ConditionKind.ON_SUCCESS:
            return "On Success"
        if kind == ConditionKind.ON_FAILURE:
            return "On Failure"
        if kind == ConditionKind.IF_CONTAINS:
            return f"If Contains: {self.if_contains.field} = {self.if_contains.value}"
        if kind == ConditionKind.IF_EQUALS:
            return f"If Equals: {self.if_equals.field} = {self.if_equals.value}"
        return "Always"

    def normalized(self) -> "ConnectionCondition":
        """Single-variant copy of this condition, as the runtime expects it."""
        kind = self.kind
        if kind == ConditionKind.ON_SUCCESS:
            return ConnectionCondition.on_success_()
        if kind == ConditionKind.ON_FAILURE:
            return ConnectionCondition.on_failure_()
        if kind == ConditionKind.IF_CONTAINS:
            return ConnectionCondition.if_contains_(self.if_contains.field, self.if_contains.value)
        if kind == ConditionKind.IF_EQUALS:
            return ConnectionCondition.if_equals_(self.if_equals.field, self.if_equals.value)
        return ConnectionCondition.always_()

    @classmethod
    def always_(cls) -> "ConnectionCondition":
        return cls(always=None)

    @classmethod
    def on_success_(cls) -> "ConnectionCondition":
        return cls(on_success=None)

    @classmethod
    def on_failure_(cls) -> "ConnectionCondition":
        return cls(on_failure=None)

    @classmethod
    def if_contains_(cls, field: str, value: str) -> "ConnectionCondition":
        return cls(if_contains=FieldMatch(field=field, value=value))

    @classmethod
    def if_equals_(cls, field: str, value: str) -> "ConnectionCondition":
        return cls(if_equals=FieldMatch(field=field, value=value))


# ---------------------------------------------------------------------------
# Step targets
# ---------------------------------------------------------------------------

class AgentTargetConfig(WireModel):
    agent_canister_id: str
    agent_config: Optional[Any] = None


class AgentTarget(WireModel):
    """``{"agent": {...}}`` - invoke a single agent canister."""
    agent: AgentTargetConfig


class NestedWorkflowConfig(WireModel):
    agency_id: str
    input_mapping: str = ""


class NestedWorkflowTarget(WireModel):
    """``{"agency": {...}}`` - invoke another whole workflow by reference."""
    agency: NestedWorkflowConfig


StepTarget = Union[AgentTarget, NestedWorkflowTarget]


# ---------------------------------------------------------------------------
# Loop configuration
# ---------------------------------------------------------------------------

class ForEachConfig(WireModel):
    array_source: str
    item_variable: str = "item"
    index_variable: str = "index"
    max_iterations: Optional[int] = None


class ForEachLoop(WireModel):
    for_each: ForEachConfig


class WhileConfig(WireModel):
    condition: str
    max_iterations: Optional[int] = None


class WhileLoop(WireModel):
    while_loop: WhileConfig


class RepeatConfig(WireModel):
    count: int
    index_variable: Optional[str] = None


class RepeatLoop(WireModel):
    repeat: RepeatConfig


class NoLoop(WireModel):
    none: None


LoopConfig = Union[ForEachLoop, WhileLoop, RepeatLoop, NoLoop]


# ---------------------------------------------------------------------------
# Nodes and edges
# ---------------------------------------------------------------------------

NODE_DATA_KEYS = (
    "agentCanisterId",
    "agentName",
    "inputTemplate",
    "requiresApproval",
    "retryOnFailure",
    "timeout",
    "triggerConfig",
    "stepTarget",
    "loopConfig",
)


class NodePosition(BaseModel):
    """Position of a node in the visual editor."""
    x: float = 0
    y: float = 0
    model_config = ConfigDict(extra="ignore")


class WorkflowNodeData(WireModel):
    agent_canister_id: Optional[str] = None
    agent_name: str = ""
    input_template: str = ""
    requires_approval: bool = False
    retry_on_failure: bool = False
    timeout: Optional[Union[int, float]] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    status: NodeStatus = NodeStatus.UNCONFIGURED
    validation_errors: list[str] = Field(default_factory=list)
    agent_config: Optional[Any] = None
    trigger_config: Optional[dict[str, Any]] = None
    step_target: Optional[StepTarget] = None
    loop_config: Optional[LoopConfig] = None


class WorkflowNode(WireModel):
    """A node on the workflow canvas."""
    id: str
    type: NodeKind = NodeKind.AGENT
    position: NodePosition = Field(default_factory=NodePosition)
    data: WorkflowNodeData = Field(default_factory=WorkflowNodeData)

    @model_validator(mode="before")
    @classmethod
    def lift_data_from_top_level(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("data"):
            # Flat payloads put the agent configuration next to id/type.
            lifted = {key: data[key] for key in NODE_DATA_KEYS if key in data}
            if lifted:
                data = dict(data)
                data["data"] = lifted
        return data

    @property
    def canister_id(self) -> Optional[str]:
        return self.data.agent_canister_id

    @property
    def display_name(self) -> str:
        return self.data.agent_name


class EdgeData(WireModel):
    condition: Optional[ConnectionCondition] = None
    label: Optional[str] = None


class WorkflowEdge(WireModel):
    """A directed connection between two canvas nodes."""
    id: str
    source: str
    target: str
    type: EdgeKind = EdgeKind.DEFAULT
    animated: bool = False
    data: Optional[EdgeData] = None

    @property
    def condition(self) -> ConnectionCondition:
        if self.data is not None and self.data.condition is not None:
            return self.data.condition
        return ConnectionCondition.always_()


class WorkflowGraph(WireModel):
    """The complete canvas graph, as exported and imported."""
    nodes: list[WorkflowNode] = Field(default_factory=list)
    edges: list[WorkflowEdge] = Field(default_factory=list)
