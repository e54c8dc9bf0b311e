from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import jsonschema
from pydantic import BaseModel, ValidationError

from agency_builder.exceptions import InvalidWorkflowFormatError
from agency_builder.graph.schema import WorkflowEdge, WorkflowGraph, WorkflowNode

logger = logging.getLogger(__name__)

WORKFLOW_EXPORT_VERSION = "1.0"
INVALID_WORKFLOW_MESSAGE = "Invalid workflow JSON format"

WORKFLOW_ENVELOPE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "version": {"type": "string"},
        "metadata": {"type": ["object", "null"]},
        "nodes": {"type": ["array", "null"], "items": {"type": "object"}},
        "edges": {"type": ["array", "null"], "items": {"type": "object"}},
        "exportedAt": {"type": "string"},
    },
}


class WorkflowMetadata(BaseModel):
    name: str = ""
    description: str = ""


@dataclass
class ImportedWorkflow:
    nodes: List[WorkflowNode] = field(default_factory=list)
    edges: List[WorkflowEdge] = field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None


def export_workflow(
    nodes: Sequence[WorkflowNode],
    edges: Sequence[WorkflowEdge],
    metadata: WorkflowMetadata | Dict[str, Any],
) -> str:
    if not isinstance(metadata, WorkflowMetadata):
        metadata = WorkflowMetadata.model_validate(metadata)
    graph = WorkflowGraph(nodes=list(nodes), edges=list(edges)).model_dump(by_alias=True, mode="json")
    workflow = {
        "version": WORKFLOW_EXPORT_VERSION,
        "metadata": metadata.model_dump(),
        "nodes": graph["nodes"],
        "edges": graph["edges"],
        "exportedAt": _utc_timestamp(),
    }
    return json.dumps(workflow, indent=2, ensure_ascii=False)


def import_workflow(raw: str) -> ImportedWorkflow:
    """
    Parse an exported workflow.

    Any failure - malformed JSON, a wrong envelope shape or an unreadable node
    or edge - raises ``InvalidWorkflowFormatError`` with a single fixed message.
    Nothing is partially imported.
    """
    try:
        workflow = json.loads(raw)
        jsonschema.validate(instance=workflow, schema=WORKFLOW_ENVELOPE_SCHEMA)
        graph = WorkflowGraph.model_validate({
            "nodes": workflow.get("nodes") or [],
            "edges": workflow.get("edges") or [],
        })
    except (TypeError, ValueError, jsonschema.ValidationError, ValidationError) as exc:
        logger.warning("Rejected workflow import: %s", exc)
        raise InvalidWorkflowFormatError(INVALID_WORKFLOW_MESSAGE) from exc

    return ImportedWorkflow(nodes=graph.nodes, edges=graph.edges, metadata=workflow.get("metadata"))


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
