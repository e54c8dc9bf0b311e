import hashlib
import json
from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from .schema import ConnectionCondition, LoopConfig, StepTarget, WireModel

_OPTIONAL_STEP_KEYS = ("timeout", "triggerConfig", "stepTarget", "loopConfig")


class AgentStep(WireModel):
    """A compiled unit of work. Its position in the schedule is its identity."""
    agent_canister_id: str
    agent_name: str = ""
    input_template: str = ""
    requires_approval: bool = False
    retry_on_failure: bool = False
    timeout: Optional[Union[int, float]] = None
    trigger_config: Optional[Dict[str, Any]] = None
    step_target: Optional[StepTarget] = None
    loop_config: Optional[LoopConfig] = None

    def to_runtime(self) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True, mode="json")
        for key in _OPTIONAL_STEP_KEYS:
            if payload.get(key) is None:
                payload.pop(key, None)
        return payload


class AgentConnection(WireModel):
    """A compiled edge between two steps, addressed by step index."""
    source_step_index: int = Field(ge=0)
    target_step_index: int = Field(ge=0)
    condition: ConnectionCondition = Field(default_factory=ConnectionCondition.always_)

    def to_runtime(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class CompiledSchedule(WireModel):
    steps: List[AgentStep] = Field(default_factory=list)
    connections: List[AgentConnection] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.steps

    def to_runtime(self) -> Dict[str, Any]:
        return {
            "steps": [step.to_runtime() for step in self.steps],
            "connections": [conn.to_runtime() for conn in self.connections],
        }

    def compute_hash(self) -> str:
        """Compute SHA-256 hash of the schedule for integrity verification."""
        schedule_json = json.dumps(self.to_runtime(), sort_keys=True, default=str)
        return hashlib.sha256(schedule_json.encode()).hexdigest()
