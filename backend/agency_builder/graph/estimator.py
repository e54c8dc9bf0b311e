import math
from typing import Optional, Sequence

from agency_builder.config import BuilderSettings, get_settings

from .schema import NodeKind, WorkflowEdge, WorkflowNode


def estimate_execution_time(
    nodes: Sequence[WorkflowNode],
    edges: Optional[Sequence[WorkflowEdge]] = None,
    settings: Optional[BuilderSettings] = None,
) -> str:
    """Rough display-only duration: agents x average agent time x parallel efficiency."""
    settings = settings or get_settings()
    agent_count = sum(1 for node in nodes if node.type == NodeKind.AGENT)
    total_seconds = agent_count * settings.avg_seconds_per_agent * settings.parallel_factor

    if total_seconds < 60:
        return f"~{_round_half_up(total_seconds)}s"
    if total_seconds < 3600:
        return f"~{_round_half_up(total_seconds / 60)}m"
    return f"~{_round_half_up(total_seconds / 3600)}h"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
